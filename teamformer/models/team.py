# teamformer/models/team.py
import enum
from datetime import datetime

from sqlalchemy import (
    CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from teamformer.database import Base


class SubmissionStatus(str, enum.Enum):
    not_submitted = "not_submitted"
    draft = "draft"
    submitted = "submitted"
    late_submission = "late_submission"


class Team(Base):
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, index=True)
    hackathon_id = Column(Integer, ForeignKey("hackathons.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(String(500))
    problem_statement = Column(Text, nullable=False)
    project_repo = Column(String(255))
    project_demo = Column(String(255))
    project_presentation = Column(String(255))
    submission_status = Column(String(32), nullable=False, default=SubmissionStatus.not_submitted.value)
    submitted_at = Column(DateTime)
    score = Column(Integer)
    rank = Column(Integer)
    feedback = Column(Text)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    hackathon = relationship("Hackathon", back_populates="teams")
    memberships = relationship(
        "TeamMembership",
        back_populates="team",
        order_by="TeamMembership.id",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("hackathon_id", "name", name="uq_teams_hackathon_name"),
        CheckConstraint("score IS NULL OR (score >= 0 AND score <= 100)", name="ck_teams_score_range"),
        CheckConstraint("rank IS NULL OR rank >= 1", name="ck_teams_rank_positive"),
        Index("ix_teams_hackathon_id", "hackathon_id"),
        Index("ix_teams_submission_status", "submission_status"),
    )

    def __repr__(self) -> str:
        return f"<Team id={self.id} hackathon={self.hackathon_id} name={self.name!r}>"
