"""Villain policy simulator: plays every non-hero seat up to the hero's turn.

Two regimes exist.  Unconstrained play samples a combo per seat and follows
that hand's most-played action.  Constrained play forces chosen seats to open
or shove and folds everybody else.  Either way each step that needs an
unloaded node goes through the tree store, so loaded nodes are merged rather
than replaced.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field

from ..core.errors import PreconditionError, TraversalError
from ..core.labels import amount_in_bb, villain_label
from ..core.models import CALL, FOLD, RAISE, Action, DecisionNode, Solution, VillainAction
from ..data.tree_store import DecisionTreeStore
from .cards import ALL_COMBOS, hand_name_for_combo, random_combo
from .strategy import argmax

__all__ = [
    "ComboSource",
    "OPEN",
    "SHOVE",
    "VillainPath",
    "VillainPolicy",
    "VillainSimulator",
    "find_allin_action",
    "find_fold_action",
    "find_raise_action",
]

logger = logging.getLogger(__name__)

OPEN = "open"
SHOVE = "shove"

ComboSource = Callable[[], str]


def find_fold_action(actions: Sequence[Action]) -> int:
    for idx, action in enumerate(actions):
        if action.type == FOLD:
            return idx
    return -1


def find_raise_action(
    actions: Sequence[Action],
    target_bb: float,
    big_blind: float,
    tolerance: float = 0.1,
) -> int:
    """First raise sized within ``tolerance`` big blinds of ``target_bb``."""

    for idx, action in enumerate(actions):
        if action.type == RAISE and abs(amount_in_bb(action.amount, big_blind) - target_bb) < tolerance:
            return idx
    return -1


def find_allin_action(actions: Sequence[Action], stack: float, fraction: float = 0.5) -> int:
    """First raise committing at least ``fraction`` of the actor's stack.

    Facing an all-in that covers the actor only a call is left, so a call of
    that size counts too when no such raise exists.
    """

    for kind in (RAISE, CALL):
        for idx, action in enumerate(actions):
            if action.type == kind and action.amount >= stack * fraction:
                return idx
    return -1


@dataclass(frozen=True)
class VillainPolicy:
    """How non-hero seats act.

    ``forced`` maps a seat to :data:`OPEN` or :data:`SHOVE`.  Seats outside it
    either sample a combo (``sample_unforced``) or fold unconditionally.
    """

    sample_unforced: bool = True
    forced: Mapping[int, str] = field(default_factory=dict)

    @classmethod
    def unconstrained(cls) -> VillainPolicy:
        return cls(sample_unforced=True)

    @classmethod
    def constrained(cls, forced: Mapping[int, str] | None = None) -> VillainPolicy:
        return cls(sample_unforced=False, forced=dict(forced or {}))


@dataclass(frozen=True)
class VillainPath:
    final_node_id: int
    solution: Solution
    villain_actions: tuple[VillainAction, ...]


class VillainSimulator:
    def __init__(
        self,
        rng: random.Random,
        *,
        combo_source: ComboSource | None = None,
        max_steps: int = 50,
        open_size_bb: float = 2.0,
        raise_tolerance_bb: float = 0.1,
        allin_fraction: float = 0.5,
    ) -> None:
        self.rng = rng
        self._combo_source = combo_source or (lambda: self.rng.choice(ALL_COMBOS))
        self.max_steps = max_steps
        self.open_size_bb = open_size_bb
        self.raise_tolerance_bb = raise_tolerance_bb
        self.allin_fraction = allin_fraction

    async def advance_to_hero(
        self,
        store: DecisionTreeStore,
        solution_id: str,
        start_node_id: int,
        hero_seat: int,
        policy: VillainPolicy,
    ) -> VillainPath:
        """Walk from ``start_node_id`` until ``hero_seat`` is to act.

        Raises :class:`TraversalError` when the hand ends first, an expected
        action is missing, or the step bound is hit; load failures surface as
        :class:`~spottrainer.core.errors.DataUnavailableError`.
        """

        solution = store.solution(solution_id)
        node_id = start_node_id
        actions: list[VillainAction] = []

        for step in range(self.max_steps):
            node = await store.require_node(solution_id, node_id)
            if node.player == hero_seat:
                logger.debug(
                    "Reached hero",
                    extra={"solution_id": solution_id, "node_id": node_id, "steps": step},
                )
                return VillainPath(final_node_id=node_id, solution=solution, villain_actions=tuple(actions))

            seat = node.player
            idx, combo = self._decide(node, seat, policy, solution)
            action = node.actions[idx]
            label, amount = villain_label(
                action,
                solution.big_blind,
                solution.stack_for(seat),
                allin_fraction=self.allin_fraction,
            )
            actions.append(VillainAction(seat=seat, action=label, amount=amount, combo=combo))
            logger.debug("Villain step %d: seat %d %s -> %s", step, seat, label, action.node)

            if action.is_terminal:
                raise TraversalError(f"hand ended at seat {seat} before seat {hero_seat} acted")
            node_id = int(action.node or 0)

        raise TraversalError(f"hero seat {hero_seat} not reached within {self.max_steps} steps")

    async def can_force(
        self,
        store: DecisionTreeStore,
        solution_id: str,
        seat: int,
        kind: str,
        *,
        forced: Mapping[int, str] | None = None,
    ) -> bool:
        """Whether ``seat`` can take the ``kind`` action after the given forced seats act.

        Earlier forced seats take their own action and everyone else folds.
        Missing actions and zero-frequency forcing both count as "no".
        """

        policy = VillainPolicy.constrained(forced)
        try:
            path = await self.advance_to_hero(store, solution_id, 0, seat, policy)
            node = path.solution.get(path.final_node_id)
            if node is None:
                return False
            self._forced_index(node, seat, kind, path.solution)
        except (TraversalError, PreconditionError) as exc:
            logger.debug("Seat %d cannot %s in %s: %s", seat, kind, solution_id, exc)
            return False
        return True

    async def find_forcing_seat(
        self,
        store: DecisionTreeStore,
        solution_id: str,
        candidates: Sequence[int],
        kind: str,
    ) -> int | None:
        """First candidate, in the given order, able to take the ``kind`` action."""

        for seat in candidates:
            if await self.can_force(store, solution_id, seat, kind):
                return seat
        return None

    def _decide(
        self,
        node: DecisionNode,
        seat: int,
        policy: VillainPolicy,
        solution: Solution,
    ) -> tuple[int, str | None]:
        kind = policy.forced.get(seat)
        if kind is not None:
            idx = self._forced_index(node, seat, kind, solution)
            return idx, self._combo_playing(node, idx)

        if policy.sample_unforced:
            combo = self._combo_source()
            data = node.hands.get(hand_name_for_combo(combo))
            if data is not None and data.total_frequency > 0:
                return argmax(data.played), combo
            return self._fold_index(node, seat), combo

        return self._fold_index(node, seat), None

    def _fold_index(self, node: DecisionNode, seat: int) -> int:
        idx = find_fold_action(node.actions)
        if idx < 0:
            raise TraversalError(f"seat {seat} has no fold action")
        return idx

    def _forced_index(self, node: DecisionNode, seat: int, kind: str, solution: Solution) -> int:
        if kind == OPEN:
            idx = find_raise_action(node.actions, self.open_size_bb, solution.big_blind, self.raise_tolerance_bb)
        elif kind == SHOVE:
            idx = find_allin_action(node.actions, solution.stack_for(seat), self.allin_fraction)
        else:
            raise ValueError(f"unknown forced action {kind!r}")
        if idx < 0:
            raise TraversalError(f"seat {seat} has no {kind} action")
        if not any(data.played[idx] > 0 for data in node.hands.values()):
            raise PreconditionError(f"no hand at seat {seat} ever takes the {kind} action")
        return idx

    def _combo_playing(self, node: DecisionNode, idx: int) -> str | None:
        hands = [name for name, data in node.hands.items() if data.played[idx] > 0]
        if not hands:
            return None
        return random_combo(self.rng.choice(hands), self.rng)
