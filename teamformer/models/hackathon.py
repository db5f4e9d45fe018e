# teamformer/models/hackathon.py
import enum
from datetime import datetime

from sqlalchemy import (
    Boolean, Column, DateTime, ForeignKey, Index, Integer, JSON, String, Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from teamformer.database import Base


class HackathonStatus(str, enum.Enum):
    registration_open = "registration_open"
    registration_closed = "registration_closed"
    in_progress = "in_progress"
    completed = "completed"


class Hackathon(Base):
    __tablename__ = "hackathons"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text)
    # Naive UTC, like every other timestamp in the schema
    registration_deadline = Column(DateTime, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    status = Column(String(32), nullable=False, default=HackathonStatus.registration_open.value)
    max_team_size = Column(Integer, nullable=False, default=4)
    problem_statements = Column(JSON, nullable=False, default=list)
    teams_formed = Column(Boolean, nullable=False, default=False)
    teams_formed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    registrations = relationship(
        "Registration",
        back_populates="hackathon",
        order_by="Registration.id",
        cascade="all, delete-orphan",
    )
    teams = relationship("Team", back_populates="hackathon", order_by="Team.id")

    __table_args__ = (
        # Scheduler scan: deadline window + status
        Index("ix_hackathons_deadline_status", "registration_deadline", "status"),
    )

    def __repr__(self) -> str:
        return f"<Hackathon id={self.id} status={self.status} teams_formed={self.teams_formed}>"


class Registration(Base):
    __tablename__ = "hackathon_registrations"

    id = Column(Integer, primary_key=True, index=True)
    hackathon_id = Column(Integer, ForeignKey("hackathons.id", ondelete="CASCADE"), nullable=False, index=True)
    participant_id = Column(Integer, ForeignKey("participants.id", ondelete="CASCADE"), nullable=False)
    registered_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    hackathon = relationship("Hackathon", back_populates="registrations")
    participant = relationship("Participant", back_populates="registrations")

    __table_args__ = (
        UniqueConstraint("hackathon_id", "participant_id", name="uq_registration_hackathon_participant"),
    )
