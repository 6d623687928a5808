from __future__ import annotations

import hashlib
import json
from typing import Any, Dict, Iterable, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


Severity = Literal["info", "warn", "error"]


def canonical_json(data: Any) -> str:
    return json.dumps(data, sort_keys=True, separators=(",", ":"), default=_jsonable)


def _jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def sha256(data: Any) -> str:
    """
    Content hash of a fingerprint payload.
    Keys are sorted so logically equal payloads hash the same.
    """
    return hashlib.sha256(canonical_json(data).encode("utf-8")).hexdigest()


class Fingerprint(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    data: Any = None
    sha: str
    abbreviation: Optional[str] = None

    @classmethod
    def create(
        cls,
        *,
        name: str,
        version: str,
        data: Any,
        abbreviation: Optional[str] = None,
    ) -> "Fingerprint":
        return cls(name=name, version=version, data=data, sha=sha256(data), abbreviation=abbreviation)

    def has_valid_sha(self) -> bool:
        return self.sha == sha256(self.data)


class PossibleIdeal(BaseModel):
    # older ideals.json documents spell it fingerprintName
    fingerprint_name: str = Field(validation_alias=AliasChoices("fingerprint_name", "fingerprintName"))
    # None: flagged as undesirable, no specific target
    ideal: Optional[Fingerprint] = None
    reason: str = Field(min_length=1)


class Flag(BaseModel):
    severity: Severity
    authority: str
    message: str


class ConvergenceScore(BaseModel):
    name: str = "ideals"
    score: int = Field(ge=0, le=5)
    correct: int = Field(ge=0)
    has_ideal: int = Field(ge=0)
    proportion: float = Field(ge=0, le=1)


def fingerprints_by_name(fingerprints: Iterable[Fingerprint]) -> Dict[str, Fingerprint]:
    """Last fingerprint wins when a name repeats."""
    return {fp.name: fp for fp in fingerprints}

