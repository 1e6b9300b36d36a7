from __future__ import annotations

import itertools
import json
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import pytest

# Ensure "src" is on sys.path for imports in tests
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from spottrainer.core.models import DecisionNode, Settings, Solution  # noqa: E402
from spottrainer.dynamic.cards import ALL_HANDS, RANKS  # noqa: E402

BIG_BLIND = 100.0
STACK = 2000.0
OPEN_SIZE = 200.0

SETTINGS_JSON: dict[str, Any] = {
    "handdata": {
        "stacks": [STACK] * 4,
        "blinds": [50, BIG_BLIND, 0],
        "bounties": [0, 0, 0, 0],
        "anteType": "regular",
    },
    "eqmodel": {
        "structure": {"name": "MTT", "prizes": {"1": 50, "2": 30, "3": 20}, "bountyType": ""},
    },
}

EQUITY_JSON: dict[str, Any] = {
    "equityUnit": "percent",
    "preHandEquity": [25.0, 25.0, 25.0, 25.0],
    "bubbleFactors": [[1.0, 1.2], [1.2, 1.0]],
}


def strength(hand: str) -> float:
    high = 12 - RANKS.index(hand[0])
    low = 12 - RANKS.index(hand[1])
    bonus = 10 if hand[0] == hand[1] else 0
    if hand.endswith("s"):
        bonus += 1
    return (high + low + bonus) / 35


def _unopened(s: float) -> tuple[list[float], list[float]]:
    # fold, open 2bb, jam
    if s >= 0.75:
        return [0.0, 0.2, 0.8], [0.0, 0.6, 0.9]
    if s >= 0.5:
        return [0.3, 0.7, 0.0], [0.0, 0.3, -0.5]
    if s >= 0.35:
        return [0.85, 0.15, 0.0], [0.0, 0.02, -1.5]
    return [1.0, 0.0, 0.0], [0.0, -0.4, -2.0]


def _facing_open(s: float) -> tuple[list[float], list[float]]:
    # fold, call, jam
    if s >= 0.75:
        return [0.0, 0.3, 0.7], [0.0, 0.4, 0.8]
    if s >= 0.5:
        return [0.4, 0.6, 0.0], [0.0, 0.25, -0.6]
    if s >= 0.35:
        return [0.9, 0.1, 0.0], [0.0, 0.03, -1.2]
    return [1.0, 0.0, 0.0], [0.0, -0.5, -2.0]


def _facing_allin(s: float) -> tuple[list[float], list[float]]:
    # fold, call
    if s >= 0.6:
        return [0.0, 1.0], [0.0, 0.5]
    return [1.0, 0.0], [0.0, -0.8]


def build_tree(num_players: int = 4) -> dict[int, dict[str, Any]]:
    """Single-orbit preflop tree: every seat acts once, then the hand ends.

    History tags: F fold, R open to 2bb, A all-in, C call.
    """

    nodes: dict[int, dict[str, Any]] = {}
    ids = itertools.count()

    def build(seat: int, history: tuple[str, ...]) -> int:
        node_id = next(ids)
        if "A" in history:
            options = [("F", 0.0, "F"), ("C", STACK, "C")]
            strategy = _facing_allin
        elif "R" in history:
            options = [("F", 0.0, "F"), ("C", OPEN_SIZE, "C"), ("R", STACK, "A")]
            strategy = _facing_open
        else:
            options = [("F", 0.0, "F"), ("R", OPEN_SIZE, "R"), ("R", STACK, "A")]
            strategy = _unopened

        actions: list[dict[str, Any]] = []
        for kind, amount, tag in options:
            after = history + (tag,)
            action: dict[str, Any] = {"type": kind, "amount": amount}
            uncontested = all(item == "F" for item in after) and len(after) == num_players - 1
            if seat + 1 < num_players and not uncontested:
                action["node"] = build(seat + 1, after)
            actions.append(action)

        hands = {}
        for hand in ALL_HANDS:
            played, evs = strategy(strength(hand))
            hands[hand] = {"weight": 1.0, "played": played, "evs": evs}
        nodes[node_id] = {
            "player": seat,
            "street": 0,
            "children": sum(1 for action in actions if "node" in action),
            "sequence": list(history),
            "actions": actions,
            "hands": hands,
        }
        return node_id

    build(0, ())
    return nodes


def follow(nodes: dict[int, dict[str, Any]], *picks: int) -> int:
    """Node id reached by taking the given action indices from the root."""

    node_id = 0
    for pick in picks:
        node_id = nodes[node_id]["actions"][pick]["node"]
    return node_id


def make_solution(
    solution_id: str = "final_table/speed32",
    phase: str = "Final table",
    path: str | None = "memory",
) -> Solution:
    return Solution(
        id=solution_id,
        name=f"{phase} - 4p 20bb",
        tournament_phase=phase,
        settings=Settings.from_dict(SETTINGS_JSON),
        path=path,
    )


class MemoryLoader:
    """Async loader serving parsed nodes from an in-memory tree, recording calls."""

    def __init__(self, trees: dict[str, dict[int, dict[str, Any]]], metas: Sequence[Solution]) -> None:
        self.trees = trees
        self.metas = {meta.id: meta for meta in metas}
        self.calls: list[tuple[str, tuple[int, ...]]] = []
        self.missing: set[int] = set()

    async def __call__(self, solution_id: str, node_ids: Sequence[int]) -> Solution | None:
        self.calls.append((solution_id, tuple(node_ids)))
        tree = self.trees.get(solution_id, {})
        found = {
            node_id: DecisionNode.from_dict(tree[node_id])
            for node_id in node_ids
            if node_id in tree and node_id not in self.missing
        }
        if not found:
            return None
        meta = self.metas[solution_id]
        return Solution(
            id=meta.id,
            name=meta.name,
            tournament_phase=meta.tournament_phase,
            settings=meta.settings,
            path=meta.path,
            nodes=found,
        )


def write_spot(root: Path, phase_dir: str, spot_dir: str, nodes: dict[int, dict[str, Any]]) -> Path:
    spot = root / phase_dir / spot_dir
    (spot / "nodes").mkdir(parents=True)
    (spot / "settings.json").write_text(json.dumps(SETTINGS_JSON), encoding="utf-8")
    (spot / "equity.json").write_text(json.dumps(EQUITY_JSON), encoding="utf-8")
    for node_id, payload in nodes.items():
        (spot / "nodes" / f"{node_id}.json").write_text(json.dumps(payload), encoding="utf-8")
    return spot


@pytest.fixture
def tree() -> dict[int, dict[str, Any]]:
    return build_tree()


@pytest.fixture
def solution() -> Solution:
    return make_solution()


@pytest.fixture
def loader(tree: dict[int, dict[str, Any]], solution: Solution) -> MemoryLoader:
    return MemoryLoader({solution.id: tree}, [solution])
