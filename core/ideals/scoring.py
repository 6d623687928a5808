from __future__ import annotations

import math
from typing import Awaitable, Callable, Mapping, Optional

from core.ideals.models import ConvergenceScore, Fingerprint, PossibleIdeal


MAX_SCORE = 5

IdealResolver = Callable[[str], Awaitable[Optional[PossibleIdeal]]]
Scorer = Callable[[Mapping[str, Fingerprint]], Awaitable[ConvergenceScore]]


def round_half_up(x: float) -> int:
    # half up; round() would be half-to-even
    return int(math.floor(x + 0.5))


async def ideal_convergence_score(
    fingerprints: Mapping[str, Fingerprint],
    ideal_resolver: IdealResolver,
) -> ConvergenceScore:
    """
    How many of the project's ideal-bearing fingerprints match their ideal.

    Only ideals with a concrete target count; a name whose ideal is "avoid"
    (no target) neither helps nor hurts. Matching is exact sha equality.
    A project with nothing to compare scores MAX_SCORE.
    """
    correct = 0
    has_ideal = 0
    for name, fp in fingerprints.items():
        possible = await ideal_resolver(name)
        if possible is None or possible.ideal is None:
            continue
        has_ideal += 1
        if possible.ideal.sha == fp.sha:
            correct += 1

    proportion = correct / has_ideal if has_ideal > 0 else 1.0
    score = max(0, min(MAX_SCORE, round_half_up(proportion * MAX_SCORE)))

    return ConvergenceScore(
        score=score,
        correct=correct,
        has_ideal=has_ideal,
        proportion=proportion,
    )


def ideal_convergence_scorer(manager) -> Scorer:
    """Scorer bound to a FeatureManager's ideal resolver."""

    async def scorer(fingerprints: Mapping[str, Fingerprint]) -> ConvergenceScore:
        return await ideal_convergence_score(fingerprints, manager.ideal_resolver)

    return scorer
