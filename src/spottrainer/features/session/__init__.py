"""Session feature: service layer, schemas, and API router."""

from .router import create_session_router
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
from .service import SessionConfig, SessionManager

__all__ = [
    "ActionBreakdown",
    "FeedbackPayload",
    "HistoryEntry",
    "PhaseSummary",
    "SessionConfig",
    "SessionManager",
    "SpotPayload",
    "SpotResponse",
    "SummaryPayload",
    "VillainActionPayload",
    "create_session_router",
]
