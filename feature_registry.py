# feature_registry.py
from __future__ import annotations

from typing import List

from config import Settings, settings as default_settings
from core.ideals.features import Feature, RawFeature, one_of
from core.ideals.manager import FeatureManager
from core.ideals.models import Fingerprint
from core.ideals.postgres import PostgresIdealStorage
from core.ideals.store import FileIdealStorage, IdealStorage, IdealStore
from flag_rules import TS_VERSION_FINGERPRINT, default_flag_pipeline, typescript_version_of
from npm_registry import NPM_DEP_PREFIX, ideal_from_npm, library_from_fingerprint_name


DOCKER_FROM_PREFIX = "docker-base-image-"
TSLINT_PROPERTY_PREFIX = "tslintproperty::"


def _npm_dep_display(fp: Fingerprint) -> str:
    data = fp.data
    if isinstance(data, (list, tuple)) and len(data) == 2:
        return str(data[1])
    return str(data)


def _docker_display(fp: Fingerprint) -> str:
    data = fp.data
    if isinstance(data, dict) and data.get("image"):
        return f"{data['image']}:{data.get('version') or 'latest'}"
    return str(data)


def _ci_display(fp: Fingerprint) -> str:
    names = []
    for sub in fp.data or []:
        names.append(sub.name if isinstance(sub, Fingerprint) else str(sub.get("name")))
    return ", ".join(names)


TypeScriptVersionFeature = RawFeature(
    name=TS_VERSION_FINGERPRINT,
    display_name="TypeScript version",
    selector=lambda fp: fp.name == TS_VERSION_FINGERPRINT,
    to_displayable_fingerprint=lambda fp: typescript_version_of(fp) or "unknown",
    to_displayable_fingerprint_name=lambda name: "TypeScript version",
)

DockerFromFeature = RawFeature(
    name="docker-base-image",
    display_name="Docker base image",
    selector=lambda fp: fp.name.startswith(DOCKER_FROM_PREFIX),
    to_displayable_fingerprint=_docker_display,
    to_displayable_fingerprint_name=lambda name: name[len(DOCKER_FROM_PREFIX):] if name.startswith(DOCKER_FROM_PREFIX) else name,
)

NpmDepsFeature = RawFeature(
    name="npm-project-deps",
    display_name="npm dependencies",
    selector=lambda fp: fp.name.startswith(NPM_DEP_PREFIX),
    to_displayable_fingerprint=_npm_dep_display,
    to_displayable_fingerprint_name=lambda name: library_from_fingerprint_name(name) or name,
    suggested_ideals=ideal_from_npm,
)

TsLintPropertyFeature = RawFeature(
    name="tslintproperty",
    display_name="TSLint property",
    selector=lambda fp: fp.name.startswith(TSLINT_PROPERTY_PREFIX),
    to_displayable_fingerprint_name=lambda name: name[len(TSLINT_PROPERTY_PREFIX):] if name.startswith(TSLINT_PROPERTY_PREFIX) else name,
)

CiFeature = one_of(
    "ci",
    "elements.travis.name",
    "elements.circle.name",
    "elements.jenkins.name",
    "elements.gitlab.name",
    display_name="CI",
    to_displayable_fingerprint=_ci_display,
    to_displayable_fingerprint_name=lambda name: "CI",
)


def default_features() -> List[Feature]:
    return [
        TypeScriptVersionFeature,
        DockerFromFeature,
        NpmDepsFeature,
        TsLintPropertyFeature,
        CiFeature,
    ]


def build_storage(cfg: Settings = default_settings) -> IdealStorage:
    if cfg.IDEALS_BACKEND == "postgres":
        return PostgresIdealStorage(
            cfg.DATABASE_URL or "",
            pool_min=cfg.DB_POOL_MIN,
            pool_max=cfg.DB_POOL_MAX,
        )
    return FileIdealStorage(cfg.IDEALS_FILE)


def build_feature_manager(store: IdealStore, cfg: Settings = default_settings) -> FeatureManager:
    """Called once at startup with an already loaded store."""
    return FeatureManager(
        features=default_features(),
        store=store,
        flags=default_flag_pipeline(),
        suggested_ideal_timeout=cfg.SUGGESTED_IDEAL_TIMEOUT,
    )
