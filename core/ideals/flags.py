from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from core.ideals.models import Fingerprint, Flag, Severity


logger = logging.getLogger(__name__)


class FlagRule(ABC):
    """
    One policy predicate over a single fingerprint.

    Subclasses set `authority` and implement `check`. A rule that cannot parse
    the fingerprint data returns None: the rule does not apply.
    """

    id: str = ""
    authority: str = ""

    @abstractmethod
    async def check(self, fp: Fingerprint) -> Optional[Flag]: ...

    def flag(self, message: str, severity: Severity = "warn") -> Flag:
        return Flag(severity=severity, authority=self.authority, message=message)


class FlagPipeline:
    """Runs every rule, in declaration order, and keeps the flags they raise."""

    def __init__(self, rules: Sequence[FlagRule]):
        self._rules = tuple(rules)

    @property
    def rules(self) -> Sequence[FlagRule]:
        return self._rules

    async def evaluate(self, fp: Fingerprint) -> List[Flag]:
        flags: List[Flag] = []
        for rule in self._rules:
            try:
                result = await rule.check(fp)
            except Exception:
                logger.exception("Flag rule %s failed on %s (treated as no flag)", rule.id or type(rule).__name__, fp.name)
                continue
            if result is not None:
                flags.append(result)
        return flags
