"""Exception hierarchy shared by the tree store, simulator and generator.

Every failure inside a generation attempt is one of these.  The spot generator
treats all of them except :class:`GenerationExhaustedError` as "this attempt
failed, draw again"; only exhaustion reaches the caller.
"""

from __future__ import annotations

__all__ = [
    "DataUnavailableError",
    "GenerationExhaustedError",
    "PreconditionError",
    "SpotTrainerError",
    "StructuralInvariantError",
    "TraversalError",
]


class SpotTrainerError(Exception):
    """Base class for trainer failures."""


class DataUnavailableError(SpotTrainerError):
    """A node or hand is still missing after the loader was awaited."""


class TraversalError(DataUnavailableError):
    """The villain simulator could not reach the hero's decision node."""


class StructuralInvariantError(SpotTrainerError):
    """Static tree content contradicts itself; retrying the same node is pointless."""


class PreconditionError(SpotTrainerError):
    """A spot type's requirements cannot be met by the current draw."""


class GenerationExhaustedError(SpotTrainerError):
    """Every generation attempt failed; no spot was produced this round."""

    def __init__(self, attempts: int, last_error: Exception | None = None) -> None:
        super().__init__("could not generate a spot, try again")
        self.attempts = attempts
        self.last_error = last_error
