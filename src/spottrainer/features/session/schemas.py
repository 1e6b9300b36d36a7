from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict

__all__ = [
    "ActionBreakdown",
    "FeedbackPayload",
    "HistoryEntry",
    "PhaseSummary",
    "SpotPayload",
    "SpotResponse",
    "SummaryPayload",
    "VillainActionPayload",
]


class _APIModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class VillainActionPayload(_APIModel):
    seat: int
    position: str
    action: str
    amount_bb: float | None = None
    combo: str | None = None


class SpotPayload(_APIModel):
    solution: str
    phase: str
    spot_type: str
    players: int
    hero_seat: int
    hero_position: str
    hand: str
    combo: str
    hero_cards: list[str]
    stacks_bb: list[float]
    options: list[str]
    display_options: list[str]
    villain_actions: list[VillainActionPayload]
    raiser_seat: int | None = None
    shover_seats: list[int] | None = None
    timebank_seconds: float | None = None


class SpotResponse(_APIModel):
    pending: bool
    spot: SpotPayload | None = None


class ActionBreakdown(_APIModel):
    label: str
    frequency: float
    ev: float | None = None


class FeedbackPayload(_APIModel):
    correct: bool
    points: float
    timed_out: bool
    chosen: str
    best: str
    chosen_ev: float | None = None
    pure: bool
    quality: str
    frequency_score: int
    actions: list[ActionBreakdown]
    reason: str | None = None


class PhaseSummary(_APIModel):
    total: int
    correct: int
    points: float


class SummaryPayload(_APIModel):
    total: int
    correct: int
    points: float
    accuracy_pct: float
    tournaments_played: int
    reached_final_table: int
    completed_tournaments: int
    by_phase: dict[str, PhaseSummary]


class HistoryEntry(_APIModel):
    is_correct: bool
    points: float
    ev: float | None = None
    solution_path: str | None = None
    node_id: int
    hand_name: str
    combo: str
    seat: int
    phase: str
    action: str
    spot_type: str
    timed_out: bool = False
