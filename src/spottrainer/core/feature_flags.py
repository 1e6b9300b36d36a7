"""Feature flags for alternate trainer behaviour.

Flags come from the ``SPOTTRAINER_FEATURES`` environment variable (a
comma-separated, case-insensitive list) and can be forced on or off for a
block of code with :func:`override`.  The innermost override that mentions a
flag decides it; otherwise the environment does.

Usage::

    from spottrainer.core import feature_flags

    if feature_flags.is_enabled(feature_flags.PROPORTIONAL_POINTS):
        ...
"""

from __future__ import annotations

import os
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Final

__all__ = ["KNOWN_FLAGS", "PROPORTIONAL_POINTS", "enabled_flags", "is_enabled", "override"]

_ENV_VAR: Final = "SPOTTRAINER_FEATURES"

PROPORTIONAL_POINTS: Final = "scoring.proportional_points"

KNOWN_FLAGS: Final[dict[str, str]] = {
    PROPORTIONAL_POINTS: "award chosen/max frequency instead of binary points",
}

# each frame maps a flag to its forced state
_FRAMES: list[dict[str, bool]] = []


def _key(flag: str) -> str:
    return flag.strip().lower()


def _from_env() -> set[str]:
    raw = os.getenv(_ENV_VAR) or ""
    return {_key(entry) for entry in raw.split(",") if entry.strip()}


def is_enabled(flag: str) -> bool:
    key = _key(flag)
    for frame in reversed(_FRAMES):
        if key in frame:
            return frame[key]
    return key in _from_env()


def enabled_flags() -> list[str]:
    """Known flags currently switched on, for status output."""

    return sorted(flag for flag in KNOWN_FLAGS if is_enabled(flag))


@contextmanager
def override(*, enable: Iterable[str] = (), disable: Iterable[str] = ()) -> Iterator[None]:
    frame = {_key(flag): True for flag in enable}
    frame.update({_key(flag): False for flag in disable})
    _FRAMES.append(frame)
    try:
        yield
    finally:
        _FRAMES.pop()
