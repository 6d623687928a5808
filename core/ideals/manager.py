from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Sequence

from core.ideals.features import DerivedFeature, Feature, RawFeature
from core.ideals.flags import FlagPipeline
from core.ideals.models import Fingerprint, Flag, PossibleIdeal
from core.ideals.store import IdealStore


logger = logging.getLogger(__name__)


class FeatureManager:
    """
    Facade over the feature registry, the ideal store and the flag pipeline.

    Holds references only; one instance is shared for the process lifetime.
    """

    def __init__(
        self,
        *,
        features: Sequence[Feature],
        store: IdealStore,
        flags: FlagPipeline,
        suggested_ideal_timeout: float = 15.0,
    ):
        self.features = tuple(features)
        self.store = store
        self.flags = flags
        self.suggested_ideal_timeout = suggested_ideal_timeout

    async def ideal_resolver(self, fingerprint_name: str) -> Optional[PossibleIdeal]:
        return self.store.get(fingerprint_name)

    async def evaluate_flags(self, fp: Fingerprint) -> List[Flag]:
        return await self.flags.evaluate(fp)

    def set_ideal(self, fingerprint_name: str, ideal: PossibleIdeal) -> None:
        self.store.set(fingerprint_name, ideal)

    def feature_for(self, fp: Fingerprint) -> Optional[Feature]:
        for feature in self.features:
            if feature.selector(fp):
                return feature
        return None

    @property
    def derived_features(self) -> List[DerivedFeature]:
        return [f for f in self.features if isinstance(f, DerivedFeature)]

    async def derive(self, fingerprints: Sequence[Fingerprint]) -> List[Fingerprint]:
        """Derived fingerprints that apply to this project, in registry order."""
        derived: List[Fingerprint] = []
        for feature in self.derived_features:
            fp = await feature.derive(fingerprints)
            if fp is not None:
                derived.append(fp)
        return derived

    async def suggested_ideals(self, fp: Fingerprint) -> List[PossibleIdeal]:
        feature = self.feature_for(fp)
        if not isinstance(feature, RawFeature) or feature.suggested_ideals is None:
            return []
        try:
            suggestions = await asyncio.wait_for(
                feature.suggested_ideals(fp.name),
                timeout=self.suggested_ideal_timeout,
            )
        except asyncio.TimeoutError:
            logger.error("Suggested ideal lookup for %s timed out after %ss", fp.name, self.suggested_ideal_timeout)
            return []
        except Exception as e:
            logger.error("Suggested ideal lookup for %s failed: %s", fp.name, e)
            return []
        return list(suggestions or [])
