"""
npm_registry.py: latest-version ideals for npm dependency fingerprints

- Names and builds npm dependency fingerprints (npm-project-dep::<library>)
- Looks up a library's latest dist-tag on the npm registry
- Wraps the lookup as a suggested-ideal supplier that degrades to no ideal
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional
from urllib.parse import quote

import requests

from config import settings
from core.ideals.models import Fingerprint, PossibleIdeal


logger = logging.getLogger(__name__)

NPM_DEP_PREFIX = "npm-project-dep::"
NPM_DEP_FINGERPRINT_VERSION = "0.0.1"
NPM_IDEAL_REASON = "latest from NPM"


# -----------------------------
# Fingerprint naming
# -----------------------------

def npm_dep_fingerprint_name(library: str) -> str:
    """axios -> npm-project-dep::axios, @atomist/sdm -> npm-project-dep::atomist::sdm"""
    return NPM_DEP_PREFIX + library.lstrip("@").replace("/", "::")


def library_from_fingerprint_name(fingerprint_name: str) -> Optional[str]:
    if not fingerprint_name.startswith(NPM_DEP_PREFIX):
        return None
    rest = fingerprint_name[len(NPM_DEP_PREFIX):]
    if not rest:
        return None
    if "::" in rest:
        scope, _, name = rest.partition("::")
        return f"@{scope}/{name}"
    return rest


def npm_dep_fingerprint(library: str, version: str) -> Fingerprint:
    return Fingerprint.create(
        name=npm_dep_fingerprint_name(library),
        abbreviation="npmdeps",
        version=NPM_DEP_FINGERPRINT_VERSION,
        data=[library, version],
    )


# -----------------------------
# Registry client
# -----------------------------

class NpmRegistryClient:
    def __init__(self, base_url: str, timeout: int):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def latest_version(self, library: str) -> str:
        url = f"{self.base_url}/-/package/{quote(library, safe='@')}/dist-tags"
        r = requests.get(url, headers={"Accept": "application/json"}, timeout=self.timeout)
        if r.status_code < 200 or r.status_code >= 300:
            raise RuntimeError(f"npm registry error {r.status_code} for {library}: {r.text[:200]}")

        latest = (r.json() or {}).get("latest")
        if not latest:
            raise RuntimeError(f"npm registry returned no latest dist-tag for {library}")
        return str(latest).strip()


def default_client() -> NpmRegistryClient:
    return NpmRegistryClient(base_url=settings.NPM_REGISTRY_URL, timeout=settings.NPM_REGISTRY_TIMEOUT)


async def ideal_from_npm(
    fingerprint_name: str,
    client: Optional[NpmRegistryClient] = None,
) -> List[PossibleIdeal]:
    library = library_from_fingerprint_name(fingerprint_name)
    if library is None:
        return []
    client = client or default_client()
    try:
        version = await asyncio.to_thread(client.latest_version, library)
    except Exception as e:
        logger.error("Could not find version of %s: %s", library, e)
        return []

    logger.info("World ideal version is %s for %s", version, library)
    return [
        PossibleIdeal(
            fingerprint_name=fingerprint_name,
            ideal=npm_dep_fingerprint(library, version),
            reason=NPM_IDEAL_REASON,
        )
    ]
