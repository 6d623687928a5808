# flag_rules.py
from __future__ import annotations

import json
import math
from typing import Any, Iterable, List, Optional

from core.ideals.flags import FlagPipeline, FlagRule
from core.ideals.models import Fingerprint, Flag


TS_VERSION_FINGERPRINT = "tsVersion"
MAX_FILE_LINE_COUNT_FINGERPRINT = "tslintproperty::rules:max-file-line-count"
LONG_FILE_THRESHOLD = 500


def typescript_version_of(fp: Fingerprint) -> Optional[str]:
    data = fp.data
    if isinstance(data, str):
        return data
    if isinstance(data, dict):
        v = data.get("typeScriptVersion")
        return v if isinstance(v, str) else None
    return None


def _int_prefix(value: Any) -> Optional[int]:
    # leading-digits parse: "600" -> 600, "600px" -> 600, "x" -> None
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    s = str(value).strip()
    sign = ""
    if s[:1] in ("-", "+"):
        sign, s = s[0], s[1:]
    digits = ""
    for ch in s:
        if not ch.isdigit():
            break
        digits += ch
    return int(sign + digits) if digits else None


# -------------------------
# Rules
# -------------------------

class OldTypeScriptRule(FlagRule):
    id = "old_typescript"
    authority = "Rod"

    async def check(self, fp: Fingerprint) -> Optional[Flag]:
        if fp.name != TS_VERSION_FINGERPRINT:
            return None
        version = typescript_version_of(fp)
        if version is None:
            return None
        if version.lstrip("^~=v ").startswith("2"):
            return self.flag("Old TypeScript version")
        return None


class DiscouragedDependencyRule(FlagRule):
    id = "discouraged_dependency"
    authority = "Christian"

    def __init__(self, fingerprint_name: str = "npm-project-dep::axios", message: str = "Don't use Axios"):
        self.fingerprint_name = fingerprint_name
        self.message = message

    async def check(self, fp: Fingerprint) -> Optional[Flag]:
        if fp.name == self.fingerprint_name:
            return self.flag(self.message)
        return None


class LongFileRule(FlagRule):
    id = "long_files"
    authority = "Rod"

    async def check(self, fp: Fingerprint) -> Optional[Flag]:
        if fp.name != MAX_FILE_LINE_COUNT_FINGERPRINT:
            return None
        try:
            obj = json.loads(fp.data) if isinstance(fp.data, str) else fp.data
            options: Iterable[Any] = obj.get("options") or []
            limits = [_int_prefix(opt) for opt in options]
            if any(n is not None and n > LONG_FILE_THRESHOLD for n in limits):
                return self.flag("Allow long files")
        except (ValueError, TypeError, AttributeError):
            # unparseable rule configuration: not applicable
            return None
        return None


def default_rules() -> List[FlagRule]:
    return [
        OldTypeScriptRule(),
        DiscouragedDependencyRule(),
        LongFileRule(),
    ]


def default_flag_pipeline() -> FlagPipeline:
    return FlagPipeline(default_rules())
