"""Human-readable action labels and the reverse lookup used when scoring.

Three flavours exist: the scoring label the answer buttons submit
(``"Raise 2.0"``), the short villain label used in simulated action
histories (``"Allin"`` past half the stack), and the display label whose
all-in detection is purely cosmetic.  Only the first one feeds correctness.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from .models import CALL, CHECK, FOLD, RAISE, Action, DecisionNode

__all__ = [
    "amount_in_bb",
    "display_label",
    "format_bb",
    "resolve_action_index",
    "scoring_label",
    "scoring_labels",
    "villain_label",
]

_LABEL_RE = re.compile(r"^(fold|call|check|raise|all-?in)\s*(\d+(?:\.\d+)?|\.\d+)?\s*(?:bb)?$")


def amount_in_bb(amount: float, big_blind: float) -> float:
    return amount / big_blind if big_blind > 0 else 0.0


def format_bb(value: float) -> str:
    text = f"{value:.1f}"
    return text[:-2] if text.endswith(".0") else text


def scoring_label(action: Action, big_blind: float) -> str:
    if action.type == FOLD:
        return "Fold"
    if action.type == CALL:
        return "Call"
    if action.type == CHECK:
        return "Check"
    return f"Raise {amount_in_bb(action.amount, big_blind):.1f}"


def scoring_labels(node: DecisionNode, big_blind: float) -> list[str]:
    return [scoring_label(action, big_blind) for action in node.actions]


def villain_label(
    action: Action,
    big_blind: float,
    stack: float,
    *,
    allin_fraction: float = 0.5,
) -> tuple[str, float | None]:
    if action.type == FOLD:
        return "Fold", None
    if action.type == CHECK:
        return "Check", None
    if action.type == CALL:
        return "Call", action.amount
    if action.amount > stack * allin_fraction:
        return "Allin", action.amount
    return f"Raise {amount_in_bb(action.amount, big_blind):.1f}", action.amount


def display_label(
    action: Action,
    big_blind: float,
    stack: float,
    all_stacks: Sequence[float] | None = None,
) -> str:
    """Table-facing label; flags all-ins by stack commitment or by covering a shorter stack."""

    if action.type == FOLD:
        return "Fold"
    if action.type == CHECK:
        return "Check"
    size_bb = amount_in_bb(action.amount, big_blind)
    stack_bb = amount_in_bb(stack, big_blind)
    all_in = stack_bb > 0 and (size_bb >= stack_bb * 0.90 or stack_bb - size_bb < 0.5)
    if action.type == RAISE and not all_in and all_stacks and big_blind > 0:
        for other in all_stacks:
            if other < stack and abs(size_bb - amount_in_bb(other, big_blind)) < 0.05:
                all_in = True
                break
    if action.type == CALL:
        return f"All-in {format_bb(size_bb)}" if all_in else "Call"
    if all_in:
        return f"All-in {format_bb(size_bb)}"
    return f"Raise {format_bb(size_bb)}"


def _matches_size(action: Action, size: float, big_blind: float) -> bool:
    return round(amount_in_bb(action.amount, big_blind), 1) == round(size, 1)


def resolve_action_index(node: DecisionNode, label: str, big_blind: float) -> int:
    """Map a submitted label onto the node's action list, or -1 when nothing matches."""

    match = _LABEL_RE.match((label or "").strip().lower())
    if match is None:
        return -1
    verb, raw_size = match.group(1), match.group(2)
    size = float(raw_size) if raw_size is not None else None

    if verb == "fold":
        return node.action_index(FOLD)
    if verb == "check":
        return node.action_index(CHECK)
    if verb == "call":
        return node.action_index(CALL)

    raises = [idx for idx, action in enumerate(node.actions) if action.type == RAISE]
    if verb == "raise":
        if size is None:
            return raises[0] if len(raises) == 1 else -1
        for idx in raises:
            if _matches_size(node.actions[idx], size, big_blind):
                return idx
        return -1

    # all-in: the sized raise/call when a size is given, else the largest raise
    if size is not None:
        for idx, action in enumerate(node.actions):
            if action.type in (RAISE, CALL) and _matches_size(action, size, big_blind):
                return idx
        return -1
    if raises:
        return max(raises, key=lambda idx: node.actions[idx].amount)
    return node.action_index(CALL)
