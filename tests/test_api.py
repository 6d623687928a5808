"""
API tests for main.py

Tests cover:
- Ideal CRUD (including write failure -> 503)
- Flag evaluation, derivation and scoring endpoints
- Lone surrogates in request data
"""
import pytest
from fastapi.testclient import TestClient

import main


TS_X = {"name": "tsVersion", "version": "0.0.1", "data": "3.4.5", "sha": "X"}
TS_Y = {"name": "tsVersion", "version": "0.0.1", "data": "3.5.1", "sha": "Y"}


@pytest.fixture
def client(manager):
    main.set_feature_manager(manager)
    yield TestClient(main.app)
    main.set_feature_manager(None)


class TestIdeals:
    def test_unknown_ideal(self, client):
        r = client.get("/ideals/tsVersion")
        assert r.status_code == 404
        assert "error" in r.json()

    def test_put_then_get(self, client, memory_storage):
        r = client.put("/ideals/tsVersion", json={"ideal": TS_X, "reason": "pin"})
        assert r.status_code == 200

        r = client.get("/ideals/tsVersion")
        assert r.status_code == 200
        body = r.json()
        assert body["reason"] == "pin"
        assert body["ideal"]["sha"] == "X"
        assert "tsVersion" in memory_storage.document

    def test_avoid_ideal(self, client):
        r = client.put("/ideals/npm-project-dep::axios", json={"ideal": None, "reason": "Proxying errors"})
        assert r.status_code == 200
        assert client.get("/ideals").json()["npm-project-dep::axios"]["ideal"] is None

    def test_blank_reason_rejected(self, client):
        r = client.put("/ideals/tsVersion", json={"ideal": TS_X, "reason": "  "})
        assert r.status_code == 422

    def test_name_mismatch_rejected(self, client):
        r = client.put("/ideals/npm-project-dep::lodash", json={"ideal": TS_X, "reason": "pin"})
        assert r.status_code == 422

    def test_write_failure(self, client, memory_storage):
        memory_storage.fail_writes = True
        r = client.put("/ideals/tsVersion", json={"ideal": TS_X, "reason": "pin"})
        assert r.status_code == 503
        assert client.get("/ideals/tsVersion").status_code == 404

    def test_delete(self, client):
        client.put("/ideals/tsVersion", json={"ideal": TS_X, "reason": "pin"})
        r = client.delete("/ideals/tsVersion")
        assert r.json() == {"fingerprint_name": "tsVersion", "deleted": True}
        assert client.get("/ideals/tsVersion").status_code == 404


class TestEvaluation:
    def test_flags(self, client):
        axios = {"name": "npm-project-dep::axios", "version": "0.0.1", "data": ["axios", "0.19.0"], "sha": "a"}
        r = client.post("/flags", json=axios)
        assert r.status_code == 200
        assert r.json() == [{"severity": "warn", "authority": "Christian", "message": "Don't use Axios"}]

    def test_flags_malformed_data(self, client):
        lint = {"name": "tslintproperty::rules:max-file-line-count", "version": "0.0.1", "data": "{oops", "sha": "b"}
        r = client.post("/flags", json=lint)
        assert r.status_code == 200
        assert r.json() == []

    def test_derive(self, client):
        circle = {"name": "elements.circle.name", "version": "0.0.1", "data": "circle", "sha": "c"}
        r = client.post("/derive", json={"fingerprints": [TS_X, circle]})
        assert r.status_code == 200
        derived = r.json()
        assert [d["name"] for d in derived] == ["ci"]
        assert [d["name"] for d in derived[0]["data"]] == ["elements.circle.name"]

    def test_score(self, client):
        client.put("/ideals/tsVersion", json={"ideal": TS_X, "reason": "pin"})

        good = client.post("/score", json={"fingerprints": [TS_X]}).json()
        bad = client.post("/score", json={"fingerprints": [TS_Y]}).json()

        assert good["score"] == 5
        assert good["correct"] == 1 and good["has_ideal"] == 1
        assert bad["score"] == 0

    def test_score_without_ideals(self, client):
        r = client.post("/score", json={"fingerprints": [TS_X], "include_derived": False})
        assert r.json()["score"] == 5


CIRCLE_SURROGATE = (
    '{"fingerprints": [{"name": "elements.circle.name", "version": "1", "data": "\\ud800", "sha": "c"}]}'
)


class TestUnusualData:
    """Lone surrogates in fingerprint data are valid JSON input"""

    def test_derive(self, client):
        r = client.post("/derive", content=CIRCLE_SURROGATE, headers={"Content-Type": "application/json"})
        assert r.status_code == 200
        derived = r.json()
        assert [d["name"] for d in derived] == ["ci"]
        assert derived[0]["data"][0]["data"] == "\ud800"

    def test_score_with_derived(self, client):
        r = client.post("/score", content=CIRCLE_SURROGATE, headers={"Content-Type": "application/json"})
        assert r.status_code == 200
        assert r.json()["score"] == 5


def test_health(client):
    body = client.get("/health").json()
    assert body["status"] == "healthy"
    assert body["features"] == 5
