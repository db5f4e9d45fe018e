"""Hackathon team formation service."""

from .database import Base, SessionLocal, engine  # noqa: F401

__all__ = ["Base", "SessionLocal", "engine"]
