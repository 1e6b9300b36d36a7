"""In-memory TTL cache handed explicitly to the components that memoise fetches.

There is no module-level instance: the session that owns a tree store creates
one cache and passes it down, so its lifetime is the session's lifetime.
"""

from __future__ import annotations

import re
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Final

__all__ = [
    "LONG",
    "MEDIUM",
    "PERMANENT",
    "SHORT",
    "TTLCache",
    "equity_key",
    "node_key",
    "settings_key",
    "solution_key",
]

SHORT: Final = 2 * 60.0
MEDIUM: Final = 5 * 60.0
LONG: Final = 15 * 60.0
PERMANENT: Final = 60 * 60.0


def solution_key(solution_id: str) -> str:
    return f"solution:{solution_id}"


def node_key(solution_id: str, node_id: int) -> str:
    return f"node:{solution_id}:{node_id}"


def settings_key(path: str) -> str:
    return f"settings:{path}"


def equity_key(path: str) -> str:
    return f"equity:{path}"


@dataclass
class _Entry:
    value: Any
    expires_at: float


class TTLCache:
    def __init__(self, *, default_ttl: float = MEDIUM, clock: Callable[[], float] = time.monotonic) -> None:
        self._entries: dict[str, _Entry] = {}
        self._default_ttl = default_ttl
        self._clock = clock

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        lifetime = self._default_ttl if ttl is None else ttl
        self._entries[key] = _Entry(value=value, expires_at=self._clock() + lifetime)

    def get(self, key: str, default: Any = None) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return default
        if self._clock() > entry.expires_at:
            del self._entries[key]
            return default
        return entry.value

    def has(self, key: str) -> bool:
        sentinel = object()
        return self.get(key, sentinel) is not sentinel

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def invalidate_pattern(self, pattern: str | re.Pattern[str]) -> int:
        regex = re.compile(pattern) if isinstance(pattern, str) else pattern
        doomed = [key for key in self._entries if regex.search(key)]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    def clear(self) -> None:
        self._entries.clear()

    def stats(self) -> dict[str, Any]:
        return {"size": len(self._entries), "keys": list(self._entries)}
