"""Spot generator: draws a solution, seats a hero, walks there and deals a hand.

Every draw is one *attempt*.  Attempts fail for ordinary reasons (a seat that
cannot open, a node the loader never delivered, a node where nothing is worth
training) and are retried from the top with fresh random choices, up to
``GeneratorConfig.max_retries`` times.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from ..core.errors import (
    GenerationExhaustedError,
    PreconditionError,
    SpotTrainerError,
    StructuralInvariantError,
)
from ..core.models import Solution, SpotSimulation
from ..data.tree_store import DecisionTreeStore
from .seating import (
    ANY,
    RFI,
    SPOT_TYPES,
    VS_MULTIWAY,
    VS_OPEN,
    VS_SHOVE,
    hero_seats_for,
    shover_count,
)
from .strategy import EVBounds, select_training_hands, training_combos
from .villain import OPEN, SHOVE, VillainPolicy, VillainSimulator

__all__ = ["GeneratorConfig", "SpotGenerator"]

logger = logging.getLogger(__name__)

ROOT_NODE_ID = 0

_MIN_PLAYERS = {RFI: 2, VS_OPEN: 2, VS_SHOVE: 3, VS_MULTIWAY: 4, ANY: 2}


@dataclass(frozen=True)
class GeneratorConfig:
    max_retries: int = 5
    max_steps: int = 50
    ev_bounds: EVBounds = field(default_factory=EVBounds)
    min_ev_diff: float = 0.05
    pure_threshold: float = 0.90
    vs_open_min_avg_stack_bb: float = 13.2
    open_size_bb: float = 2.0
    raise_tolerance_bb: float = 0.1
    allin_stack_fraction: float = 0.5
    hardest_fraction: float = 0.3
    hardest_min: int = 5
    hardest_max: int = 50


@dataclass(frozen=True)
class _Seating:
    hero_seat: int
    policy: VillainPolicy
    raiser_seat: int | None = None
    shover_seats: tuple[int, ...] = ()


class SpotGenerator:
    """Produces one :class:`SpotSimulation` per call to :meth:`generate`.

    Only one generation runs at a time; calling :meth:`generate` while one is
    in flight returns ``None`` immediately without touching the store.
    """

    def __init__(
        self,
        store: DecisionTreeStore,
        config: GeneratorConfig | None = None,
        *,
        rng: random.Random | None = None,
        simulator: VillainSimulator | None = None,
    ) -> None:
        self.store = store
        self.config = config or GeneratorConfig()
        self.rng = rng or random.Random()
        self.simulator = simulator or VillainSimulator(
            self.rng,
            max_steps=self.config.max_steps,
            open_size_bb=self.config.open_size_bb,
            raise_tolerance_bb=self.config.raise_tolerance_bb,
            allin_fraction=self.config.allin_stack_fraction,
        )
        self._generating = False

    @property
    def is_generating(self) -> bool:
        return self._generating

    async def generate(
        self,
        phases: Iterable[str] | None = None,
        spot_types: Iterable[str] | None = None,
        player_count: int | None = None,
    ) -> SpotSimulation | None:
        if self._generating:
            logger.debug("Generation already in flight; ignoring request")
            return None

        allowed_phases = set(phases) if phases else None
        types = list(spot_types) if spot_types else list(SPOT_TYPES)
        unknown = [kind for kind in types if kind not in SPOT_TYPES]
        if unknown:
            raise ValueError(f"unknown spot types: {', '.join(unknown)}")

        self._generating = True
        excluded: set[str] = set()
        last_error: Exception | None = None
        try:
            for attempt in range(1, self.config.max_retries + 1):
                try:
                    spot = await self._attempt(allowed_phases, types, player_count, excluded)
                except SpotTrainerError as exc:
                    last_error = exc
                    logger.info("Generation attempt %d/%d failed: %s", attempt, self.config.max_retries, exc)
                    continue
                logger.debug(
                    "Generated spot",
                    extra={
                        "attempt": attempt,
                        "solution_id": spot.solution.id,
                        "spot_type": spot.spot_type,
                        "hero_seat": spot.hero_seat,
                        "hand": spot.hand_name,
                    },
                )
                return spot
        finally:
            self._generating = False

        logger.warning("Spot generation exhausted after %d attempts", self.config.max_retries)
        raise GenerationExhaustedError(self.config.max_retries, last_error)

    # ------------------------------------------------------------------ attempt
    def _candidate_pool(
        self,
        phases: set[str] | None,
        player_count: int | None,
        excluded: set[str],
    ) -> list[Solution]:
        return [
            solution
            for solution in self.store.solutions
            if solution.id not in excluded
            and (phases is None or solution.tournament_phase in phases)
            and (player_count is None or solution.num_players == player_count)
        ]

    def _pool_for(self, spot_type: str, pool: Sequence[Solution]) -> list[Solution]:
        minimum = _MIN_PLAYERS[spot_type]
        eligible = [solution for solution in pool if solution.num_players >= minimum]
        if spot_type == VS_OPEN:
            threshold = self.config.vs_open_min_avg_stack_bb
            eligible = [solution for solution in eligible if solution.average_stack_bb >= threshold]
        return eligible

    async def _attempt(
        self,
        phases: set[str] | None,
        spot_types: Sequence[str],
        player_count: int | None,
        excluded: set[str],
    ) -> SpotSimulation:
        pool = self._candidate_pool(phases, player_count, excluded)
        if not pool:
            raise PreconditionError("no solution matches the phase and table-size filters")

        spot_type = self.rng.choice(list(spot_types))
        pool = self._pool_for(spot_type, pool)
        if not pool:
            raise PreconditionError(f"no solution satisfies the {spot_type} preconditions")

        solution = self.rng.choice(pool)
        if not solution.path:
            raise PreconditionError(f"solution {solution.id} has no storage path")

        try:
            return await self._build(solution, spot_type)
        except StructuralInvariantError:
            logger.warning("Excluding solution %s after a structural error", solution.id, exc_info=True)
            excluded.add(solution.id)
            raise

    async def _build(self, solution: Solution, spot_type: str) -> SpotSimulation:
        cfg = self.config
        await self.store.require_node(solution.id, ROOT_NODE_ID)

        seating = await self._seat(solution, spot_type)
        path = await self.simulator.advance_to_hero(
            self.store,
            solution.id,
            ROOT_NODE_ID,
            seating.hero_seat,
            seating.policy,
        )
        node = path.solution.get(path.final_node_id)
        if node is None:
            raise PreconditionError(f"hero node {path.final_node_id} missing after traversal")

        hands = select_training_hands(
            node,
            cfg.ev_bounds,
            min_ev_diff=cfg.min_ev_diff,
            hardest_fraction=cfg.hardest_fraction,
            hardest_min=cfg.hardest_min,
            hardest_max=cfg.hardest_max,
        )
        if not hands:
            raise PreconditionError("hero node has no playable hands")

        pairs = training_combos(node, hands, cfg.ev_bounds)
        if not pairs:
            raise PreconditionError("no combo passes the EV filter at the hero node")
        hand_name, combo = self.rng.choice(pairs)

        return SpotSimulation(
            solution=path.solution,
            node_id=path.final_node_id,
            hero_seat=seating.hero_seat,
            combo=combo,
            hand_name=hand_name,
            spot_type=spot_type,
            raiser_seat=seating.raiser_seat,
            shover_seats=seating.shover_seats,
            villain_actions=path.villain_actions,
        )

    async def _seat(self, solution: Solution, spot_type: str) -> _Seating:
        num_players = solution.num_players
        hero_seat = self.rng.choice(hero_seats_for(spot_type, num_players))

        if spot_type == ANY:
            return _Seating(hero_seat=hero_seat, policy=VillainPolicy.unconstrained())
        if spot_type == RFI:
            return _Seating(hero_seat=hero_seat, policy=VillainPolicy.constrained())

        if spot_type in (VS_OPEN, VS_SHOVE):
            kind = OPEN if spot_type == VS_OPEN else SHOVE
            candidates = list(range(hero_seat))
            self.rng.shuffle(candidates)
            seat = await self.simulator.find_forcing_seat(self.store, solution.id, candidates, kind)
            if seat is None:
                raise PreconditionError(f"no seat before {hero_seat} can {kind}")
            if kind == OPEN:
                return _Seating(hero_seat=hero_seat, policy=VillainPolicy.constrained({seat: OPEN}), raiser_seat=seat)
            return _Seating(
                hero_seat=hero_seat,
                policy=VillainPolicy.constrained({seat: SHOVE}),
                raiser_seat=seat,
                shover_seats=(seat,),
            )

        # multiway: at least two shovers ahead of the hero, checked in table order
        if hero_seat < 2:
            raise PreconditionError("not enough seats ahead of the hero for a multiway shove")
        count = shover_count(hero_seat, self.rng)
        shovers = sorted(self.rng.sample(range(hero_seat), count))
        forced: dict[int, str] = {}
        for seat in shovers:
            if not await self.simulator.can_force(self.store, solution.id, seat, SHOVE, forced=forced):
                raise PreconditionError(f"seat {seat} cannot shove in this multiway line")
            forced[seat] = SHOVE
        return _Seating(
            hero_seat=hero_seat,
            policy=VillainPolicy.constrained(forced),
            shover_seats=tuple(shovers),
        )
