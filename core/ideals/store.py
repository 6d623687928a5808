"""
Durable mapping from fingerprint name to PossibleIdeal.

The whole mapping is loaded once and rewritten on every change. Loading never
fails (an unreadable store is an empty store); writing does, because a lost
write would silently drop a policy decision.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from typing import Any, Dict, Optional, Protocol

from pydantic import ValidationError

from core.ideals.models import PossibleIdeal


logger = logging.getLogger(__name__)


class IdealStoreWriteError(RuntimeError):
    """The ideal document could not be persisted."""


class IdealStorage(Protocol):
    def describe(self) -> str: ...

    def load_document(self) -> Dict[str, Any]: ...

    def save_document(self, document: Dict[str, Any]) -> None: ...


class FileIdealStorage:
    def __init__(self, path: str):
        self.path = path

    def describe(self) -> str:
        return self.path

    def load_document(self) -> Dict[str, Any]:
        with open(self.path, "r", encoding="utf-8") as f:
            document = json.load(f)
        if not isinstance(document, dict):
            raise ValueError(f"{self.path} does not hold a JSON object")
        return document

    def save_document(self, document: Dict[str, Any]) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        fd, tmp_path = tempfile.mkstemp(prefix=".ideals-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            try:
                os.remove(tmp_path)
            except OSError:
                pass
            raise


class IdealStore:
    def __init__(self, storage: IdealStorage):
        self._storage = storage
        self._ideals: Dict[str, PossibleIdeal] = {}
        # serializes read-modify-write of the full document
        self._lock = threading.Lock()

    def load(self) -> Dict[str, PossibleIdeal]:
        logger.info("Retrieving ideals from %s", self._storage.describe())
        try:
            document = self._storage.load_document()
        except Exception as e:
            logger.info("Did not retrieve ideals from %s: %s", self._storage.describe(), e)
            document = {}

        ideals: Dict[str, PossibleIdeal] = {}
        for name, raw in document.items():
            try:
                ideals[name] = PossibleIdeal.model_validate(raw)
            except ValidationError as e:
                logger.warning("Skipping invalid stored ideal %s: %s", name, e)

        with self._lock:
            self._ideals = ideals
        logger.info("Found %d ideals", len(ideals))
        return dict(ideals)

    def get(self, name: str) -> Optional[PossibleIdeal]:
        return self._ideals.get(name)

    def all(self) -> Dict[str, PossibleIdeal]:
        return dict(self._ideals)

    def set(self, name: str, ideal: PossibleIdeal) -> None:
        if ideal.fingerprint_name != name:
            raise ValueError(f"Ideal for {ideal.fingerprint_name} cannot be stored under {name}")
        with self._lock:
            updated = dict(self._ideals)
            updated[name] = ideal
            self._persist(updated)
            self._ideals = updated
        logger.info("Ideal for %s set: %s", name, ideal.reason)

    def delete(self, name: str) -> bool:
        with self._lock:
            if name not in self._ideals:
                return False
            updated = dict(self._ideals)
            del updated[name]
            self._persist(updated)
            self._ideals = updated
        logger.info("Ideal for %s removed", name)
        return True

    def close(self) -> None:
        close = getattr(self._storage, "close", None)
        if close is not None:
            close()

    def _persist(self, ideals: Dict[str, PossibleIdeal]) -> None:
        document = {name: ideal.model_dump(mode="json") for name, ideal in ideals.items()}
        try:
            self._storage.save_document(document)
        except Exception as e:
            logger.exception("Failed saving ideals to %s", self._storage.describe())
            raise IdealStoreWriteError(f"Could not save ideals to {self._storage.describe()}: {e}") from e
