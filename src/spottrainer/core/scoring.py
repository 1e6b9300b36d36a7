from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import asdict, dataclass, field, replace
from typing import Any

from ..dynamic.strategy import PURE_STRATEGY_THRESHOLD, argmax, hand_data
from . import feature_flags
from .labels import resolve_action_index
from .models import FOLD, DecisionNode

__all__ = [
    "ActionGrade",
    "PhaseStats",
    "ResultRecord",
    "ScoreResult",
    "SummaryStats",
    "grade_action",
    "score_answer",
    "score_index",
    "score_timeout",
    "summarize_results",
]

FIRST_PHASE = "100~60% left"
FINAL_PHASE = "Final table"

# Grade bands on the chosen action's solver frequency.
BEST_TOLERANCE = 0.001
CORRECT_MIN_FREQ = 0.035
INACCURACY_MIN_FREQ = 0.005


@dataclass(frozen=True)
class ActionGrade:
    name: str
    points: float


BEST = ActionGrade("best", 1.25)
CORRECT = ActionGrade("correct", 1.0)
INACCURACY = ActionGrade("inaccuracy", 0.5)
MISTAKE = ActionGrade("mistake", 0.0)
BLUNDER = ActionGrade("blunder", 0.0)


def grade_action(frequency: float, max_frequency: float, ev: float | None = None) -> ActionGrade:
    """Qualitative grade of a choice; informational, never feeds correctness."""

    if frequency <= 0.0:
        return BLUNDER
    if abs(frequency - max_frequency) <= BEST_TOLERANCE:
        return BEST
    if frequency >= CORRECT_MIN_FREQ and (ev is None or ev > 0.0):
        return CORRECT
    if frequency > INACCURACY_MIN_FREQ:
        return INACCURACY
    return MISTAKE


@dataclass(frozen=True)
class ScoreResult:
    is_correct: bool
    points: float
    chosen_ev: float | None
    chosen_index: int
    dominant_index: int
    chosen_frequency: float
    max_frequency: float
    pure: bool
    timed_out: bool = False
    frequency_score: int = 0
    quality: str = BLUNDER.name


def score_index(
    node: DecisionNode,
    hand: str,
    index: int,
    *,
    pure_threshold: float = PURE_STRATEGY_THRESHOLD,
) -> ScoreResult:
    """Score the action at ``index`` for ``hand``.

    A pure hand (top frequency at or above ``pure_threshold``) has exactly one
    correct answer, the dominant action.  A mixed hand accepts any action the
    solver ever takes.
    """

    if not 0 <= index < len(node.actions):
        raise ValueError(f"action index {index} out of range")
    data = hand_data(node, hand)
    played = data.played
    dominant = argmax(played)
    max_freq = played[dominant]
    chosen_freq = played[index]
    pure = max_freq >= pure_threshold

    is_correct = index == dominant if pure else chosen_freq > 0.0
    ratio = chosen_freq / max_freq if max_freq > 0 else 0.0
    if feature_flags.is_enabled(feature_flags.PROPORTIONAL_POINTS):
        points = ratio
    else:
        points = 1.0 if is_correct else 0.0

    chosen_ev = data.evs[index] if data.evs else None
    return ScoreResult(
        is_correct=is_correct,
        points=points,
        chosen_ev=chosen_ev,
        chosen_index=index,
        dominant_index=dominant,
        chosen_frequency=chosen_freq,
        max_frequency=max_freq,
        pure=pure,
        frequency_score=round(ratio * 100),
        quality=grade_action(chosen_freq, max_freq, chosen_ev).name,
    )


def score_answer(
    node: DecisionNode,
    hand: str,
    label: str,
    big_blind: float,
    *,
    pure_threshold: float = PURE_STRATEGY_THRESHOLD,
) -> ScoreResult:
    index = resolve_action_index(node, label, big_blind)
    if index < 0:
        raise ValueError(f"action '{label}' is not available here")
    return score_index(node, hand, index, pure_threshold=pure_threshold)


def score_timeout(
    node: DecisionNode,
    hand: str,
    *,
    pure_threshold: float = PURE_STRATEGY_THRESHOLD,
) -> ScoreResult:
    """An expired countdown folds; it is scored exactly like a manual fold."""

    index = node.action_index(FOLD)
    if index < 0:
        played = hand_data(node, hand).played
        dominant = argmax(played)
        return ScoreResult(
            is_correct=False,
            points=0.0,
            chosen_ev=None,
            chosen_index=-1,
            dominant_index=dominant,
            chosen_frequency=0.0,
            max_frequency=played[dominant],
            pure=played[dominant] >= pure_threshold,
            timed_out=True,
        )
    return replace(score_index(node, hand, index, pure_threshold=pure_threshold), timed_out=True)


@dataclass(frozen=True)
class ResultRecord:
    """One answered spot as handed to history and leaderboard sinks."""

    is_correct: bool
    points: float
    ev: float | None
    solution_path: str | None
    node_id: int
    hand_name: str
    combo: str
    seat: int
    phase: str
    action: str
    spot_type: str
    timed_out: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class PhaseStats:
    total: int = 0
    correct: int = 0
    points: float = 0.0


@dataclass(frozen=True)
class SummaryStats:
    total: int
    correct: int
    points: float
    accuracy_pct: float
    tournaments_played: int
    reached_final_table: int
    completed_tournaments: int
    by_phase: Mapping[str, PhaseStats] = field(default_factory=dict)


def summarize_results(records: Sequence[ResultRecord]) -> SummaryStats:
    by_phase: dict[str, PhaseStats] = {}
    total = correct = 0
    points = 0.0
    tournaments = reached = completed = 0

    for record in records:
        total += 1
        points += record.points
        if record.is_correct:
            correct += 1
        if record.phase == FIRST_PHASE:
            tournaments += 1
        if record.phase == FINAL_PHASE:
            reached += 1
            if record.is_correct:
                completed += 1
        phase = by_phase.setdefault(record.phase, PhaseStats())
        phase.total += 1
        phase.points += record.points
        if record.is_correct:
            phase.correct += 1

    return SummaryStats(
        total=total,
        correct=correct,
        points=points,
        accuracy_pct=(100.0 * correct / total) if total else 0.0,
        tournaments_played=tournaments,
        reached_final_table=reached,
        completed_tournaments=completed,
        by_phase=by_phase,
    )
