"""Solution catalog backed by a directory of solved spots.

Layout::

    <root>/<phase>/<spot>/settings.json
    <root>/<phase>/<spot>/equity.json
    <root>/<phase>/<spot>/nodes/<node_id>.json

Scanning reads only the two metadata files; nodes are read on demand by
:class:`FileNodeLoader`, which plugs into the tree store as its loader.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Sequence
from dataclasses import replace
from pathlib import Path
from typing import Any

from ..core.cache import PERMANENT, TTLCache, equity_key, node_key, settings_key
from ..core.concurrency import run_blocking
from ..core.models import DecisionNode, EquityData, Settings, Solution

__all__ = [
    "FileNodeLoader",
    "PHASE_DIRECTORIES",
    "display_name",
    "load_solution",
    "scan_spots_directory",
]

logger = logging.getLogger(__name__)

PHASE_DIRECTORIES: dict[str, str] = {
    "100-60": "100~60% left",
    "60-40": "60~40% left",
    "40-20": "40~20% left",
    "near_bubble": "Near bubble",
    "after_bubble": "After bubble",
    "3tables": "3 tables",
    "2tables": "2 tables",
    "final_table": "Final table",
}

_SETTINGS_FILE = "settings.json"
_EQUITY_FILE = "equity.json"
_NODES_DIR = "nodes"


def _read_json(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


def _cached_json(path: Path, key: str, cache: TTLCache | None) -> Any:
    if cache is not None:
        hit = cache.get(key)
        if hit is not None:
            return hit
    data = _read_json(path)
    if cache is not None:
        cache.set(key, data, ttl=PERMANENT)
    return data


def display_name(phase: str, settings: Settings, directory: str) -> str:
    """``"Final table - 6p 24bb (speed32)"`` style label for a solution."""

    players = len(settings.stacks)
    big_blind = settings.big_blind
    avg_bb = round(sum(settings.stacks) / players / big_blind) if players and big_blind > 0 else 0
    suffix = f" ({directory})" if directory.startswith("speed") else f" #{directory}"
    return f"{phase} - {players}p {avg_bb}bb{suffix}"


def load_solution(spot_dir: Path, phase_dir: str, *, cache: TTLCache | None = None) -> Solution | None:
    """Metadata-only solution for one spot directory, or ``None`` when incomplete."""

    settings_path = spot_dir / _SETTINGS_FILE
    if not settings_path.is_file() or not (spot_dir / _NODES_DIR).is_dir():
        return None
    try:
        settings = Settings.from_dict(_cached_json(settings_path, settings_key(str(spot_dir)), cache))
    except (OSError, ValueError) as exc:
        logger.warning("Skipping %s: unreadable settings (%s)", spot_dir, exc)
        return None

    equity = EquityData()
    equity_path = spot_dir / _EQUITY_FILE
    if equity_path.is_file():
        try:
            equity = EquityData.from_dict(_cached_json(equity_path, equity_key(str(spot_dir)), cache))
        except (OSError, ValueError) as exc:
            logger.info("Ignoring equity for %s (%s)", spot_dir, exc)

    phase = PHASE_DIRECTORIES.get(phase_dir, phase_dir)
    return Solution(
        id=f"{phase_dir}/{spot_dir.name}",
        name=display_name(phase, settings, spot_dir.name),
        tournament_phase=phase,
        settings=settings,
        equity=equity,
        path=str(spot_dir),
    )


def scan_spots_directory(root: str | Path, cache: TTLCache | None = None) -> list[Solution]:
    root = Path(root)
    if not root.is_dir():
        raise FileNotFoundError(f"spots directory '{root}' not found")

    solutions: list[Solution] = []
    for phase_dir in sorted(p for p in root.iterdir() if p.is_dir()):
        for spot_dir in sorted(p for p in phase_dir.iterdir() if p.is_dir()):
            solution = load_solution(spot_dir, phase_dir.name, cache=cache)
            if solution is not None:
                solutions.append(solution)
    logger.debug("Scanned spots directory", extra={"root": str(root), "solutions": len(solutions)})
    return solutions


class FileNodeLoader:
    """Async node loader reading ``nodes/<id>.json`` next to each solution.

    Returns a copy of the solution metadata carrying only the nodes it could
    read.  Missing or unparsable files simply leave their ids out.
    """

    def __init__(self, solutions: Iterable[Solution], cache: TTLCache | None = None) -> None:
        self._solutions = {solution.id: solution for solution in solutions}
        self._cache = cache

    async def __call__(self, solution_id: str, node_ids: Sequence[int]) -> Solution | None:
        meta = self._solutions.get(solution_id)
        if meta is None or not meta.path:
            logger.info("No storage path for solution %s", solution_id)
            return None
        loaded = await run_blocking(self._load_nodes, meta, list(node_ids))
        if not loaded:
            return None
        return replace(meta, nodes=loaded)

    def _load_nodes(self, meta: Solution, node_ids: list[int]) -> dict[int, DecisionNode]:
        nodes_dir = Path(meta.path or "") / _NODES_DIR
        loaded: dict[int, DecisionNode] = {}
        for node_id in node_ids:
            key = node_key(meta.id, node_id)
            if self._cache is not None:
                cached = self._cache.get(key)
                if cached is not None:
                    loaded[node_id] = cached
                    continue
            path = nodes_dir / f"{node_id}.json"
            if not path.is_file():
                continue
            try:
                payload = _read_json(path)
            except (OSError, ValueError) as exc:
                logger.info("Unreadable node file %s (%s)", path, exc)
                continue
            # structural violations propagate
            node = DecisionNode.from_dict(payload)
            loaded[node_id] = node
            if self._cache is not None:
                self._cache.set(key, node, ttl=PERMANENT)
        return loaded
