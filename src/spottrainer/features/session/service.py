from __future__ import annotations

import logging
import random
import secrets
import string
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from ...core.labels import amount_in_bb, display_label, scoring_label, scoring_labels
from ...core.models import DecisionNode, SpotSimulation
from ...core.scoring import ResultRecord, ScoreResult, score_answer, score_timeout, summarize_results
from ...data.tree_store import DecisionTreeStore
from ...dynamic.cards import combo_cards
from ...dynamic.generator import GeneratorConfig, SpotGenerator
from ...dynamic.seating import SPOT_TYPES, position_name
from ...dynamic.strategy import hand_diagnostics
from .schemas import (
    ActionBreakdown,
    FeedbackPayload,
    HistoryEntry,
    PhaseSummary,
    SpotPayload,
    SpotResponse,
    SummaryPayload,
    VillainActionPayload,
)

__all__ = ["SessionConfig", "SessionManager", "SessionState"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionConfig:
    """Configuration for a training session."""

    phases: tuple[str, ...] = ()
    spot_types: tuple[str, ...] = ()
    player_count: int | None = None
    seed: int | None = None
    timebank_seconds: float | None = 15.0


@dataclass
class SessionState:
    config: SessionConfig
    generator: SpotGenerator
    spot: SpotSimulation | None = None
    dealt_at: float | None = None
    answered: bool = True
    records: list[ResultRecord] = field(default_factory=list)


class SessionManager:
    """Owns session lifecycle independent of the presentation layer.

    All sessions share one tree store, so nodes loaded for one trainee are
    reused by the next.  Each session owns its generator, which makes the
    one-generation-in-flight guard a per-session guard.
    """

    def __init__(
        self,
        store: DecisionTreeStore,
        generator_config: GeneratorConfig | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.store = store
        self.generator_config = generator_config or GeneratorConfig()
        self._clock = clock
        self._sessions: dict[str, SessionState] = {}
        self._lock = threading.Lock()

    def create_session(self, config: SessionConfig) -> str:
        unknown = [kind for kind in config.spot_types if kind not in SPOT_TYPES]
        if unknown:
            raise ValueError(f"unknown spot types: {', '.join(unknown)}")
        if config.player_count is not None and config.player_count < 2:
            raise ValueError("player count must be at least 2")
        timebank = config.timebank_seconds
        if timebank is not None and timebank <= 0:
            timebank = None

        seed = config.seed if config.seed is not None else secrets.SystemRandom().getrandbits(32)
        normalized = SessionConfig(
            phases=tuple(config.phases),
            spot_types=tuple(config.spot_types) or SPOT_TYPES,
            player_count=config.player_count,
            seed=seed,
            timebank_seconds=timebank,
        )
        generator = SpotGenerator(self.store, self.generator_config, rng=random.Random(seed))
        session_id = _sid()
        with self._lock:
            self._sessions[session_id] = SessionState(config=normalized, generator=generator)
        logger.debug("Created session", extra={"session_id": session_id, "seed": seed})
        return session_id

    async def next_spot(self, session_id: str) -> SpotResponse:
        """Deal the next spot; a call while one is being generated reports ``pending``."""

        with self._lock:
            state = self._require_session(session_id)
        if state.generator.is_generating:
            return SpotResponse(pending=True)

        config = state.config
        spot = await state.generator.generate(config.phases, config.spot_types, config.player_count)
        if spot is None:
            return SpotResponse(pending=True)

        with self._lock:
            state.spot = spot
            state.dealt_at = self._clock()
            state.answered = False
            return SpotResponse(pending=False, spot=_spot_payload(state, spot))

    def current_spot(self, session_id: str) -> SpotResponse:
        with self._lock:
            state = self._require_session(session_id)
            if state.spot is None:
                return SpotResponse(pending=state.generator.is_generating)
            return SpotResponse(pending=False, spot=_spot_payload(state, state.spot))

    def answer(self, session_id: str, label: str) -> FeedbackPayload:
        """Score ``label`` for the open spot; past the countdown it counts as a fold."""

        with self._lock:
            state = self._require_session(session_id)
            spot, node = _open_spot(state)
            pure_threshold = self.generator_config.pure_threshold
            if self._expired(state):
                logger.debug("Answer after timebank expiry scored as fold", extra={"session_id": session_id})
                result = score_timeout(node, spot.hand_name, pure_threshold=pure_threshold)
            else:
                result = score_answer(
                    node,
                    spot.hand_name,
                    label,
                    spot.solution.big_blind,
                    pure_threshold=pure_threshold,
                )
            return _record(state, spot, node, result)

    def expire(self, session_id: str) -> FeedbackPayload:
        """The countdown ran out: fold on the trainee's behalf."""

        with self._lock:
            state = self._require_session(session_id)
            spot, node = _open_spot(state)
            result = score_timeout(node, spot.hand_name, pure_threshold=self.generator_config.pure_threshold)
            return _record(state, spot, node, result)

    def summary(self, session_id: str) -> SummaryPayload:
        with self._lock:
            state = self._require_session(session_id)
            stats = summarize_results(state.records)
        return SummaryPayload(
            total=stats.total,
            correct=stats.correct,
            points=stats.points,
            accuracy_pct=stats.accuracy_pct,
            tournaments_played=stats.tournaments_played,
            reached_final_table=stats.reached_final_table,
            completed_tournaments=stats.completed_tournaments,
            by_phase={
                phase: PhaseSummary(total=row.total, correct=row.correct, points=row.points)
                for phase, row in stats.by_phase.items()
            },
        )

    def history(self, session_id: str) -> list[HistoryEntry]:
        with self._lock:
            state = self._require_session(session_id)
            return [HistoryEntry(**record.to_dict()) for record in state.records]

    def records(self, session_id: str) -> list[ResultRecord]:
        with self._lock:
            return list(self._require_session(session_id).records)

    def _expired(self, state: SessionState) -> bool:
        limit = state.config.timebank_seconds
        if limit is None or state.dealt_at is None:
            return False
        return self._clock() - state.dealt_at >= limit

    def _require_session(self, session_id: str) -> SessionState:
        state = self._sessions.get(session_id)
        if state is None:
            raise KeyError(f"session '{session_id}' not found")
        return state


def _sid(length: int = 10) -> str:
    alphabet = string.ascii_lowercase + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


def _open_spot(state: SessionState) -> tuple[SpotSimulation, DecisionNode]:
    spot = state.spot
    if spot is None or state.answered:
        raise ValueError("no spot is waiting for an answer")
    node = spot.node
    if node is None:
        raise ValueError("spot is no longer available")
    return spot, node


def _record(state: SessionState, spot: SpotSimulation, node: DecisionNode, result: ScoreResult) -> FeedbackPayload:
    big_blind = spot.solution.big_blind
    chosen = scoring_label(node.actions[result.chosen_index], big_blind) if result.chosen_index >= 0 else "Fold"
    state.records.append(
        ResultRecord(
            is_correct=result.is_correct,
            points=result.points,
            ev=result.chosen_ev,
            solution_path=spot.solution.path,
            node_id=spot.node_id,
            hand_name=spot.hand_name,
            combo=spot.combo,
            seat=spot.hero_seat,
            phase=spot.solution.tournament_phase,
            action=chosen,
            spot_type=spot.spot_type,
            timed_out=result.timed_out,
        )
    )
    state.answered = True

    data = node.hands[spot.hand_name]
    breakdown = [
        ActionBreakdown(
            label=scoring_label(action, big_blind),
            frequency=data.played[idx],
            ev=data.evs[idx] if data.evs else None,
        )
        for idx, action in enumerate(node.actions)
    ]
    return FeedbackPayload(
        correct=result.is_correct,
        points=result.points,
        timed_out=result.timed_out,
        chosen=chosen,
        best=scoring_label(node.actions[result.dominant_index], big_blind),
        chosen_ev=result.chosen_ev,
        pure=result.pure,
        quality=result.quality,
        frequency_score=result.frequency_score,
        actions=breakdown,
        reason=hand_diagnostics(node, spot.hand_name)["reason"],
    )


def _spot_payload(state: SessionState, spot: SpotSimulation) -> SpotPayload:
    solution = spot.solution
    node = spot.node
    big_blind = solution.big_blind
    num_players = solution.num_players
    stacks = solution.settings.stacks
    hero_stack = solution.stack_for(spot.hero_seat)
    actions = node.actions if node is not None else ()
    return SpotPayload(
        solution=solution.name,
        phase=solution.tournament_phase,
        spot_type=spot.spot_type,
        players=num_players,
        hero_seat=spot.hero_seat,
        hero_position=position_name(spot.hero_seat, num_players),
        hand=spot.hand_name,
        combo=spot.combo,
        hero_cards=list(combo_cards(spot.combo)),
        stacks_bb=[round(amount_in_bb(stack, big_blind), 1) for stack in stacks],
        options=scoring_labels(node, big_blind) if node is not None else [],
        display_options=[display_label(action, big_blind, hero_stack, stacks) for action in actions],
        villain_actions=[
            VillainActionPayload(
                seat=action.seat,
                position=position_name(action.seat, num_players),
                action=action.action,
                amount_bb=round(amount_in_bb(action.amount, big_blind), 1) if action.amount is not None else None,
                combo=action.combo,
            )
            for action in spot.villain_actions
        ],
        raiser_seat=spot.raiser_seat,
        shover_seats=list(spot.shover_seats) or None,
        timebank_seconds=state.config.timebank_seconds,
    )
