"""Errors raised while forming hackathon teams."""

from __future__ import annotations

from typing import Optional


class TeamFormationError(Exception):
    """Base error for the team formation pipeline."""


class SelectionError(TeamFormationError):
    """Raised when eligible hackathons cannot be loaded; aborts the tick."""


class PartitionPreconditionError(TeamFormationError):
    """Raised when a hackathon cannot be partitioned as stored."""


class CommitError(TeamFormationError):
    """Raised when the team formation transaction was rolled back."""

    def __init__(self, hackathon_id: int, message: Optional[str] = None) -> None:
        self.hackathon_id = hackathon_id
        super().__init__(message or f"Team formation for hackathon {hackathon_id} was rolled back")


class FormationConflict(CommitError):
    """Raised when another pass already closed registration for the hackathon."""
