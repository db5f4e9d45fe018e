from sqlalchemy import Column, Integer, String, DateTime, JSON, func
from sqlalchemy.orm import relationship

from teamformer.database import Base


class Participant(Base):
    __tablename__ = "participants"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    skills = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=func.now())

    registrations = relationship("Registration", back_populates="participant")
    memberships = relationship("TeamMembership", back_populates="participant")

    def __repr__(self) -> str:
        return f"<Participant id={self.id} email={self.email}>"
