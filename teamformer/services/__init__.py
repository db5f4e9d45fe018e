"""Team formation pipeline: selection, partitioning, commit and notification."""

from .scheduler import TeamFormationScheduler, get_team_formation_scheduler
from .team_formation import FormationOutcome, FormationStatus, TeamFormationService

__all__ = [
    "FormationOutcome",
    "FormationStatus",
    "TeamFormationScheduler",
    "TeamFormationService",
    "get_team_formation_scheduler",
]
