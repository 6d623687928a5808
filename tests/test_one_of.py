"""
Unit tests for one_of derived features

Tests cover:
- Not applicable when no candidate fingerprint is present
- Derived fingerprint shape (name, version, data, sha)
- Encounter order and duplicates
- Deterministic sha
- Selector and apply
- Hashing unusual string data
"""
import asyncio

import pytest

from core.ideals.features import DerivedFeature, one_of
from core.ideals.models import Fingerprint, sha256


def fp(name: str, data=None) -> Fingerprint:
    return Fingerprint.create(name=name, version="1.0.0", data=data if data is not None else {"tool": name})


CI = one_of("ci", "travis", "circle", "jenkins", "gitlab", display_name="CI")


def derive(fingerprints):
    return asyncio.run(CI.derive(fingerprints))


class TestNotApplicable:
    """No candidate present means the feature does not apply"""

    def test_empty_project(self):
        assert derive([]) is None

    def test_no_candidates_present(self):
        """Unrelated fingerprints never qualify"""
        assert derive([fp("tsVersion", "3.4.5"), fp("npm-project-dep::axios", ["axios", "0.19.0"])]) is None

    def test_own_name_does_not_qualify(self):
        """A fingerprint named like the feature is not a candidate"""
        assert derive([fp("ci")]) is None


class TestDerivedFingerprint:
    """Shape of the synthetic fingerprint"""

    def test_single_candidate(self):
        """Project with only circle: data holds exactly that fingerprint"""
        circle = fp("circle")
        result = derive([fp("tsVersion", "3.4.5"), circle])

        assert result is not None
        assert result.name == "ci"
        assert result.abbreviation == "ci"
        assert result.version == "0.1.0"
        assert result.data == [circle]
        assert CI.selector(result) is True

    def test_encounter_order_not_candidate_order(self):
        """Qualifying fingerprints keep input order"""
        result = derive([fp("jenkins"), fp("other"), fp("travis")])
        assert [f.name for f in result.data] == ["jenkins", "travis"]

    def test_duplicates_are_kept(self):
        """The same candidate seen twice is included twice"""
        first = fp("circle", {"config": ".circleci/config.yml"})
        second = fp("circle", {"config": "other.yml"})
        result = derive([first, second])
        assert result.data == [first, second]

    def test_sha_is_hash_of_qualifying_list(self):
        travis = fp("travis")
        gitlab = fp("gitlab")
        result = derive([travis, gitlab])
        assert result.sha == sha256([travis.model_dump(mode="json"), gitlab.model_dump(mode="json")])


class TestDeterministicSha:
    """Same qualifying set, any surrounding fingerprints, same sha"""

    def test_surrounding_fingerprints_do_not_matter(self):
        travis = fp("travis")
        circle = fp("circle")

        a = derive([travis, fp("tsVersion", "3.4.5"), circle])
        b = derive([fp("docker-base-image-node", {"image": "node"}), travis, circle, fp("x")])

        assert a.sha == b.sha

    def test_different_content_different_sha(self):
        a = derive([fp("travis", {"dist": "xenial"})])
        b = derive([fp("travis", {"dist": "bionic"})])
        assert a.sha != b.sha

    def test_field_order_in_data_does_not_matter(self):
        a = derive([fp("jenkins", {"a": 1, "b": 2})])
        b = derive([fp("jenkins", {"b": 2, "a": 1})])
        assert a.sha == b.sha


class TestFeatureDescriptor:
    """Selector, apply and construction"""

    def test_is_derived_feature_without_apply(self):
        assert isinstance(CI, DerivedFeature)
        assert CI.apply is None

    def test_selector_only_matches_own_name(self):
        assert CI.selector(fp("ci")) is True
        assert CI.selector(fp("circle")) is False

    def test_display_name(self):
        assert CI.display_name == "CI"
        assert CI.to_displayable_fingerprint_name("ci") == "CI"

    def test_display_name_defaults_to_feature_name(self):
        feature = one_of("linting", "eslint", "tslint")
        assert feature.display_name == "linting"

    def test_requires_candidates(self):
        with pytest.raises(ValueError):
            one_of("ci")


class TestUnusualData:
    """Any JSON-decodable payload can be hashed"""

    def test_lone_surrogate_in_candidate_data(self):
        circle = Fingerprint(name="circle", version="1", data="\ud800", sha="c")
        result = derive([circle])

        assert result is not None
        assert result.data == [circle]
        assert result.has_valid_sha()

    def test_non_ascii_data(self):
        result = derive([fp("gitlab", {"owner": "zoë"})])
        assert result.has_valid_sha()
