"""ORM models; importing this package registers every table with ``Base``."""

from .hackathon import Hackathon, HackathonStatus, Registration
from .participant import Participant
from .team import SubmissionStatus, Team
from .team_membership import MemberRole, MembershipStatus, TeamMembership

__all__ = [
    "Hackathon",
    "HackathonStatus",
    "MemberRole",
    "MembershipStatus",
    "Participant",
    "Registration",
    "SubmissionStatus",
    "Team",
    "TeamMembership",
]
