# teamformer/schemas.py
# ------------------------------------------------------------
# Pydantic v2 schemas for formed teams, notifications and events
# ------------------------------------------------------------
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from teamformer.models.team import SubmissionStatus
from teamformer.models.team_membership import MemberRole, MembershipStatus


# ============================================================
# Teams
# ============================================================

class TeamMemberOut(BaseModel):
    participant_id: int
    name: str
    email: str
    skills: List[str] = Field(default_factory=list)
    role: MemberRole
    status: MembershipStatus = MembershipStatus.active


class TeamOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    hackathon_id: int
    name: str
    problem_statement: str
    submission_status: SubmissionStatus = SubmissionStatus.not_submitted
    created_at: Optional[datetime] = None
    members: List[TeamMemberOut] = Field(default_factory=list)

    @property
    def leader(self) -> Optional[TeamMemberOut]:
        return next((m for m in self.members if m.role == MemberRole.leader), None)


# ============================================================
# Notifications / real-time events
# ============================================================

class TeamNotification(BaseModel):
    recipient_address: str
    recipient_name: str
    hackathon_title: str
    team_name: str
    problem_statement: str
    teammate_names: List[str] = Field(default_factory=list)


class TeamsFormedPayload(BaseModel):
    hackathon_id: int
    teams: List[TeamOut]


TEAMS_FORMED_EVENT = "teams-formed"
