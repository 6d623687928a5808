from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Union

from core.ideals.models import Fingerprint, PossibleIdeal, sha256


Selector = Callable[[Fingerprint], bool]
Deriver = Callable[[Sequence[Fingerprint]], Awaitable[Optional[Fingerprint]]]
IdealSupplier = Callable[[str], Awaitable[List[PossibleIdeal]]]

DERIVED_FINGERPRINT_VERSION = "0.1.0"


def _display_data(fp: Fingerprint) -> str:
    return str(fp.data)


@dataclass(frozen=True)
class RawFeature:
    """Feature whose fingerprints come from extraction."""

    name: str
    display_name: str
    selector: Selector
    to_displayable_fingerprint: Callable[[Fingerprint], Any] = _display_data
    to_displayable_fingerprint_name: Callable[[str], str] = lambda name: name
    # writes a desired fingerprint back into a project
    apply: Optional[Callable[[Any, Fingerprint], Awaitable[Any]]] = None
    suggested_ideals: Optional[IdealSupplier] = None


@dataclass(frozen=True)
class DerivedFeature:
    """Feature computed from a project's other fingerprints. Never settable."""

    name: str
    display_name: str
    selector: Selector
    derive: Deriver
    to_displayable_fingerprint: Callable[[Fingerprint], Any] = _display_data
    to_displayable_fingerprint_name: Callable[[str], str] = lambda name: name

    @property
    def apply(self) -> None:
        return None


Feature = Union[RawFeature, DerivedFeature]


def one_of(
    name: str,
    *names: str,
    display_name: Optional[str] = None,
    to_displayable_fingerprint: Callable[[Fingerprint], Any] = _display_data,
    to_displayable_fingerprint_name: Optional[Callable[[str], str]] = None,
) -> DerivedFeature:
    """
    Feature satisfied by at least one of the named fingerprints.
    For example, is there CI? Travis, Circle or Jenkins fingerprints all qualify.

    The derived fingerprint holds the qualifying fingerprints in the order they
    were seen. When none qualify the feature is not applicable and derive
    returns None; that is never a violation.
    """
    if not names:
        raise ValueError(f"one_of feature '{name}' needs at least one fingerprint name")
    candidates = frozenset(names)

    async def derive(fingerprints: Sequence[Fingerprint]) -> Optional[Fingerprint]:
        qualifying: List[Fingerprint] = [fp for fp in fingerprints if fp.name in candidates]
        if not qualifying:
            return None
        return Fingerprint(
            name=name,
            abbreviation=name,
            version=DERIVED_FINGERPRINT_VERSION,
            data=qualifying,
            sha=sha256([fp.model_dump(mode="json") for fp in qualifying]),
        )

    return DerivedFeature(
        name=name,
        display_name=display_name or name,
        selector=lambda fp: fp.name == name,
        derive=derive,
        to_displayable_fingerprint=to_displayable_fingerprint,
        to_displayable_fingerprint_name=to_displayable_fingerprint_name or (lambda _: display_name or name),
    )
