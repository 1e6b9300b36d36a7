from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from .errors import StructuralInvariantError

__all__ = [
    "ACTION_TYPES",
    "Action",
    "DecisionNode",
    "EquityData",
    "HandData",
    "Settings",
    "Solution",
    "SpotSimulation",
    "VillainAction",
]

FOLD = "F"
CALL = "C"
CHECK = "X"
RAISE = "R"

ACTION_TYPES = (FOLD, CALL, CHECK, RAISE)


def _as_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _float_list(values: Iterable[Any] | None) -> list[float]:
    return [_as_float(value) for value in (values or [])]


@dataclass(frozen=True)
class Action:
    """One option at a node.  ``node`` is ``None`` when the action ends the hand."""

    type: str
    amount: float = 0.0
    node: int | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Action:
        kind = str(data.get("type", "")).upper()
        if kind not in ACTION_TYPES:
            raise StructuralInvariantError(f"unknown action type {kind!r}")
        raw_node = data.get("node")
        node = int(raw_node) if raw_node is not None else None
        return cls(type=kind, amount=_as_float(data.get("amount")), node=node)

    @property
    def is_terminal(self) -> bool:
        return not self.node


@dataclass(frozen=True)
class HandData:
    """Solved strategy for one canonical hand at one node."""

    played: tuple[float, ...]
    evs: tuple[float, ...] = ()
    weight: float = 1.0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> HandData:
        return cls(
            played=tuple(_float_list(data.get("played"))),
            evs=tuple(_float_list(data.get("evs"))),
            weight=_as_float(data.get("weight"), 1.0),
        )

    @property
    def total_frequency(self) -> float:
        return sum(self.played)


@dataclass(frozen=True)
class DecisionNode:
    player: int
    street: int
    actions: tuple[Action, ...]
    hands: Mapping[str, HandData]
    sequence: tuple[Any, ...] = ()
    children: int = 0

    def __post_init__(self) -> None:
        expected = len(self.actions)
        for name, hand in self.hands.items():
            if len(hand.played) != expected:
                raise StructuralInvariantError(
                    f"hand {name} has {len(hand.played)} frequencies for {expected} actions"
                )
            if hand.evs and len(hand.evs) != expected:
                raise StructuralInvariantError(f"hand {name} has {len(hand.evs)} EVs for {expected} actions")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> DecisionNode:
        actions = tuple(Action.from_dict(item) for item in data.get("actions") or [])
        hands = {str(name): HandData.from_dict(payload) for name, payload in (data.get("hands") or {}).items()}
        return cls(
            player=int(data.get("player", 0)),
            street=int(data.get("street", 0)),
            actions=actions,
            hands=hands,
            sequence=tuple(data.get("sequence") or ()),
            children=int(data.get("children", 0) or 0),
        )

    def action_index(self, kind: str) -> int:
        """Index of the first action of ``kind``, or -1."""

        for idx, action in enumerate(self.actions):
            if action.type == kind:
                return idx
        return -1


@dataclass(frozen=True)
class Settings:
    stacks: tuple[float, ...]
    blinds: tuple[float, ...]
    bounties: tuple[float, ...] = ()
    ante_type: str = ""
    payouts: Mapping[str, float] = field(default_factory=dict)
    structure_name: str = ""
    bounty_type: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Settings:
        handdata = data.get("handdata") or {}
        eqmodel = data.get("eqmodel") or {}
        structure = eqmodel.get("structure") or {}
        prizes = structure.get("prizes") or {}
        return cls(
            stacks=tuple(_float_list(handdata.get("stacks"))),
            blinds=tuple(_float_list(handdata.get("blinds"))),
            bounties=tuple(_float_list(handdata.get("bounties"))),
            ante_type=str(handdata.get("anteType") or ""),
            payouts={str(key): _as_float(value) for key, value in prizes.items()},
            structure_name=str(structure.get("name") or ""),
            bounty_type=str(structure.get("bountyType") or ""),
        )

    @property
    def big_blind(self) -> float:
        if len(self.blinds) > 1:
            return max(self.blinds[0], self.blinds[1])
        return self.blinds[0] if self.blinds else 0.0


@dataclass(frozen=True)
class EquityData:
    unit: str = ""
    pre_hand_equity: tuple[float, ...] = ()
    bubble_factors: tuple[tuple[float, ...], ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> EquityData:
        if not data:
            return cls()
        return cls(
            unit=str(data.get("equityUnit") or ""),
            pre_hand_equity=tuple(_float_list(data.get("preHandEquity"))),
            bubble_factors=tuple(tuple(_float_list(row)) for row in data.get("bubbleFactors") or []),
        )


@dataclass(eq=False)
class Solution:
    """A solved spot.  ``nodes`` starts empty and only ever grows."""

    id: str
    name: str
    tournament_phase: str
    settings: Settings
    equity: EquityData = field(default_factory=EquityData)
    path: str | None = None
    nodes: dict[int, DecisionNode] = field(default_factory=dict)

    def has(self, node_id: int) -> bool:
        return node_id in self.nodes

    def get(self, node_id: int) -> DecisionNode | None:
        return self.nodes.get(node_id)

    def merge_nodes(self, nodes: Mapping[int, DecisionNode], *, requested: Iterable[int] = ()) -> list[int]:
        """Merge fetched nodes in place and return the ids that were written.

        Requested ids are written last-write-wins; anything else the loader
        happened to return is only added when absent, so a fetch for one id
        never replaces a different, already-loaded node.
        """

        wanted = set(requested)
        written: list[int] = []
        for node_id, node in nodes.items():
            if node_id in wanted or node_id not in self.nodes:
                self.nodes[node_id] = node
                written.append(node_id)
        return written

    @property
    def num_players(self) -> int:
        return len(self.settings.stacks)

    @property
    def big_blind(self) -> float:
        return self.settings.big_blind

    def stack_for(self, seat: int) -> float:
        stacks = self.settings.stacks
        return stacks[seat] if 0 <= seat < len(stacks) else 0.0

    @property
    def average_stack_bb(self) -> float:
        stacks = self.settings.stacks
        big_blind = self.big_blind
        if not stacks or big_blind <= 0:
            return 0.0
        return (sum(stacks) / len(stacks)) / big_blind


@dataclass(frozen=True)
class VillainAction:
    """One simulated opponent decision on the way to the hero's turn."""

    seat: int
    action: str
    amount: float | None = None
    combo: str | None = None


@dataclass(frozen=True)
class SpotSimulation:
    solution: Solution
    node_id: int
    hero_seat: int
    combo: str
    hand_name: str
    spot_type: str
    raiser_seat: int | None = None
    shover_seats: tuple[int, ...] = ()
    villain_actions: tuple[VillainAction, ...] = ()

    @property
    def node(self) -> DecisionNode | None:
        return self.solution.get(self.node_id)
