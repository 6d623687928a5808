"""Shared fixtures: in-memory ideal storage, store and feature manager."""

import json
import os
import sys
from typing import Any, Dict

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.ideals.store import IdealStore
from feature_registry import build_feature_manager


class MemoryIdealStorage:
    """Keeps the ideal document in memory; can be told to fail writes."""

    def __init__(self, document: Dict[str, Any] = None):
        self.document: Dict[str, Any] = dict(document or {})
        self.fail_writes = False
        self.saves = 0

    def describe(self) -> str:
        return "memory"

    def load_document(self) -> Dict[str, Any]:
        return json.loads(json.dumps(self.document))

    def save_document(self, document: Dict[str, Any]) -> None:
        if self.fail_writes:
            raise OSError("disk full")
        self.document = json.loads(json.dumps(document))
        self.saves += 1


@pytest.fixture
def memory_storage() -> MemoryIdealStorage:
    return MemoryIdealStorage()


@pytest.fixture
def store(memory_storage) -> IdealStore:
    s = IdealStore(memory_storage)
    s.load()
    return s


@pytest.fixture
def manager(store):
    return build_feature_manager(store)
