"""Thread pool for the blocking file reads behind node loading.

Node files are read and parsed synchronously; :func:`run_blocking` moves that
work off the event loop so traversal of one solution does not stall another
session waiting on its own nodes.  The pool is small: reads are short and the
tree store already collapses duplicate requests.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Any, TypeVar

__all__ = ["run_blocking"]

_T = TypeVar("_T")

_IO_WORKERS = max(1, min(8, os.cpu_count() or 1))
_NODE_READER = ThreadPoolExecutor(max_workers=_IO_WORKERS, thread_name_prefix="spot-node-io")


async def run_blocking(func: Callable[..., _T], /, *args: Any, **kwargs: Any) -> _T:
    """Await ``func(*args, **kwargs)`` on the node-reader pool."""

    return await asyncio.get_running_loop().run_in_executor(_NODE_READER, partial(func, *args, **kwargs))
