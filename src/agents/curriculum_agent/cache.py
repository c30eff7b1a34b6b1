"""
Cache collaborator contract. Keys are the exact topic string; no TTL or versioning.
"""

from __future__ import annotations

import copy
from typing import Any, Dict, Optional, Protocol


class CurriculumCache(Protocol):
    def get(self, topic_key: str) -> Optional[Dict[str, Any]]:
        ...

    def put(self, topic_key: str, payload: Dict[str, Any]) -> None:
        ...


class InMemoryCurriculumCache:
    """Process-local cache; stores deep copies so callers cannot mutate entries."""

    def __init__(self):
        self._entries: Dict[str, Dict[str, Any]] = {}

    def get(self, topic_key: str) -> Optional[Dict[str, Any]]:
        entry = self._entries.get(topic_key)
        return copy.deepcopy(entry) if entry is not None else None

    def put(self, topic_key: str, payload: Dict[str, Any]) -> None:
        self._entries[topic_key] = copy.deepcopy(payload)

    def delete(self, topic_key: str) -> bool:
        return self._entries.pop(topic_key, None) is not None

    def __len__(self) -> int:
        return len(self._entries)
