"""Per-hand strategy queries and the filters that pick instructive training hands.

A hand qualifies for training when its EVs sit in a two-sided band: away from
zero (too marginal to teach anything) and away from the extremes (too
obvious).  With exactly two actions any action's EV may land in the band;
with three or more only the most-played action counts.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from ..core.errors import DataUnavailableError
from ..core.models import DecisionNode, HandData
from .cards import combos_for_hand

__all__ = [
    "EVBounds",
    "argmax",
    "MIN_EV_DIFF",
    "PURE_STRATEGY_THRESHOLD",
    "dominant_action_index",
    "evs",
    "filter_by_ev_range",
    "filter_marginal",
    "frequencies",
    "hand_data",
    "hand_diagnostics",
    "hardest_hands",
    "is_in_range",
    "is_pure_strategy",
    "playable_hands",
    "select_training_hands",
    "training_combos",
]

logger = logging.getLogger(__name__)

PURE_STRATEGY_THRESHOLD = 0.90
MIN_EV_DIFF = 0.05


@dataclass(frozen=True)
class EVBounds:
    min_positive: float = 0.07
    max_positive: float = 1.00
    min_negative: float = -1.00
    max_negative: float = -0.07

    def contains(self, ev: float) -> bool:
        return (self.min_positive <= ev <= self.max_positive) or (self.min_negative <= ev <= self.max_negative)


DEFAULT_BOUNDS = EVBounds()


def hand_data(node: DecisionNode, hand: str) -> HandData:
    data = node.hands.get(hand)
    if data is None:
        raise DataUnavailableError(f"hand {hand} has no strategy at this node")
    return data


def frequencies(node: DecisionNode, hand: str) -> list[float]:
    return list(hand_data(node, hand).played)


def evs(node: DecisionNode, hand: str) -> list[float] | None:
    values = hand_data(node, hand).evs
    return list(values) if values else None


def argmax(values: Sequence[float]) -> int:
    best = 0
    for idx in range(1, len(values)):
        if values[idx] > values[best]:
            best = idx
    return best


def dominant_action_index(node: DecisionNode, hand: str) -> int:
    """Index of the most-played action; ties go to the first occurrence."""

    played = frequencies(node, hand)
    if not played:
        raise DataUnavailableError(f"hand {hand} has no frequencies")
    return argmax(played)


def is_pure_strategy(node: DecisionNode, hand: str, threshold: float = PURE_STRATEGY_THRESHOLD) -> bool:
    played = frequencies(node, hand)
    return bool(played) and max(played) >= threshold


def is_in_range(node: DecisionNode, hand: str, bounds: EVBounds = DEFAULT_BOUNDS) -> bool:
    data = node.hands.get(hand)
    if data is None:
        return False
    if not data.evs:
        # without EVs there is nothing to reject on
        return True
    num_actions = len(node.actions)
    if num_actions == 2:
        return any(bounds.contains(ev) for ev in data.evs)
    if num_actions >= 3:
        return bounds.contains(data.evs[argmax(data.played)])
    return True


def playable_hands(node: DecisionNode) -> list[str]:
    """Hands that take at least one action with nonzero frequency."""

    return [name for name, data in node.hands.items() if data.total_frequency > 0]


def _played_evs(data: HandData) -> list[float]:
    if not data.evs:
        return []
    return [ev for ev, freq in zip(data.evs, data.played, strict=False) if freq > 0]


def filter_by_ev_range(node: DecisionNode, hands: Iterable[str], bounds: EVBounds = DEFAULT_BOUNDS) -> list[str]:
    return [hand for hand in hands if is_in_range(node, hand, bounds)]


def hardest_hands(
    node: DecisionNode,
    hands: Sequence[str],
    *,
    fraction: float = 0.3,
    minimum: int = 5,
    maximum: int = 50,
) -> list[str]:
    """The lowest-EV slice of ``hands`` ranked by each hand's best played EV."""

    def best_ev(hand: str) -> float:
        values = _played_evs(node.hands[hand])
        return max(values) if values else float("-inf")

    ranked = sorted(hands, key=best_ev)
    count = min(maximum, max(minimum, int(len(ranked) * fraction)))
    return ranked[:count]


def filter_marginal(node: DecisionNode, hands: Iterable[str], min_diff: float = MIN_EV_DIFF) -> list[str]:
    """Drop coin-flip hands whose two best played EVs are within ``min_diff``."""

    kept: list[str] = []
    for hand in hands:
        values = sorted(_played_evs(node.hands[hand]), reverse=True)
        if len(values) >= 2 and values[0] - values[1] > min_diff:
            kept.append(hand)
    return kept


def select_training_hands(
    node: DecisionNode,
    bounds: EVBounds = DEFAULT_BOUNDS,
    *,
    min_ev_diff: float = MIN_EV_DIFF,
    hardest_fraction: float = 0.3,
    hardest_min: int = 5,
    hardest_max: int = 50,
) -> list[str]:
    """Cascade: playable -> EV band (or hardest fallback) -> marginality (unless it empties)."""

    playable = playable_hands(node)
    if not playable:
        logger.debug("No playable hands at node")
        return []

    candidates = filter_by_ev_range(node, playable, bounds)
    if not candidates:
        candidates = hardest_hands(
            node,
            playable,
            fraction=hardest_fraction,
            minimum=hardest_min,
            maximum=hardest_max,
        )
        logger.debug("EV band empty; falling back to %d hardest hands", len(candidates))

    decisive = filter_marginal(node, candidates, min_ev_diff)
    logger.debug(
        "Training hand cascade",
        extra={"playable": len(playable), "candidates": len(candidates), "decisive": len(decisive)},
    )
    return decisive or candidates


def training_combos(
    node: DecisionNode,
    hands: Iterable[str],
    bounds: EVBounds = DEFAULT_BOUNDS,
) -> list[tuple[str, str]]:
    """Every (hand, combo) pair whose hand still passes the EV band."""

    pairs: list[tuple[str, str]] = []
    for hand in hands:
        if not is_in_range(node, hand, bounds):
            continue
        pairs.extend((hand, combo) for combo in combos_for_hand(hand))
    return pairs


def hand_diagnostics(node: DecisionNode, hand: str, bounds: EVBounds = DEFAULT_BOUNDS) -> dict[str, Any]:
    data = node.hands.get(hand)
    if data is None:
        return {"exists": False, "num_actions": 0, "actions": [], "passes_ev_filter": False, "reason": "hand not found"}

    num_actions = len(node.actions)
    actions = [
        {
            "type": action.type,
            "freq": data.played[idx],
            "ev": data.evs[idx] if data.evs else None,
        }
        for idx, action in enumerate(node.actions)
    ]
    dominant = argmax(data.played) if data.played else None
    passes = is_in_range(node, hand, bounds)

    if not data.evs:
        reason = "no EV data"
    elif num_actions == 2:
        listed = ", ".join(f"{ev:.2f}" for ev in data.evs)
        reason = f"2 actions: {'an' if passes else 'no'} EV in range ({listed})"
    elif num_actions >= 3 and dominant is not None:
        ev = data.evs[dominant]
        where = "in" if passes else "out of"
        reason = f"{num_actions} actions: most used ({node.actions[dominant].type}) EV {where} range ({ev:.2f})"
    else:
        reason = "single action"

    return {
        "exists": True,
        "num_actions": num_actions,
        "actions": actions,
        "dominant_index": dominant,
        "pure": bool(data.played) and max(data.played) >= PURE_STRATEGY_THRESHOLD,
        "passes_ev_filter": passes,
        "reason": reason,
    }
