import enum
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from teamformer.database import Base


class MemberRole(str, enum.Enum):
    leader = "leader"
    developer = "developer"


class MembershipStatus(str, enum.Enum):
    active = "active"


class TeamMembership(Base):
    __tablename__ = "team_memberships"

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    participant_id = Column(Integer, ForeignKey("participants.id", ondelete="CASCADE"), nullable=False)
    # Denormalised so one participant can only hold one seat per hackathon
    hackathon_id = Column(Integer, ForeignKey("hackathons.id", ondelete="CASCADE"), nullable=False)
    role = Column(String(16), nullable=False, default=MemberRole.developer.value)
    status = Column(String(16), nullable=False, default=MembershipStatus.active.value)
    joined_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    team = relationship("Team", back_populates="memberships")
    participant = relationship("Participant", back_populates="memberships")

    __table_args__ = (
        UniqueConstraint("team_id", "participant_id", name="uq_membership_team_participant"),
        UniqueConstraint("hackathon_id", "participant_id", name="uq_membership_hackathon_participant"),
    )
