"""Find hackathons whose registration deadline just passed."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from teamformer.models.hackathon import Hackathon, HackathonStatus, Registration
from teamformer.services.errors import SelectionError

_LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ParticipantInfo:
    id: int
    name: str
    email: str
    skills: tuple[str, ...] = ()


@dataclass(slots=True)
class EligibleHackathon:
    """Detached copy of a hackathon and its registered participants."""

    id: int
    title: str
    max_team_size: int
    problem_statements: list[str]
    participants: list[ParticipantInfo] = field(default_factory=list)


def naive_utc(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def _snapshot(hackathon: Hackathon) -> EligibleHackathon:
    participants = [
        ParticipantInfo(
            id=reg.participant.id,
            name=reg.participant.name,
            email=reg.participant.email,
            skills=tuple(reg.participant.skills or ()),
        )
        for reg in hackathon.registrations
        if reg.participant is not None
    ]
    return EligibleHackathon(
        id=hackathon.id,
        title=hackathon.title,
        max_team_size=hackathon.max_team_size,
        problem_statements=list(hackathon.problem_statements or []),
        participants=participants,
    )


async def select_eligible_hackathons(
    db: AsyncSession,
    *,
    now: datetime,
    interval: timedelta,
) -> list[EligibleHackathon]:
    """Return hackathons whose deadline falls in ``[now - interval, now]``.

    Only active hackathons still open for registration, without teams, with
    at least one registration and at least one problem statement qualify.
    Registrations and participants are loaded eagerly and returned as plain
    snapshots so that later stages never go back to this session.
    """

    window_end = naive_utc(now)
    window_start = window_end - interval

    stmt = (
        select(Hackathon)
        .where(
            Hackathon.registration_deadline.between(window_start, window_end),
            Hackathon.is_active.is_(True),
            Hackathon.status == HackathonStatus.registration_open.value,
            Hackathon.teams_formed.is_(False),
            Hackathon.registrations.any(),
        )
        .options(selectinload(Hackathon.registrations).selectinload(Registration.participant))
        .order_by(Hackathon.registration_deadline, Hackathon.id)
    )

    try:
        hackathons = (await db.execute(stmt)).scalars().all()
    except (SQLAlchemyError, OSError) as exc:
        raise SelectionError(f"Unable to load eligible hackathons: {exc}") from exc

    eligible: list[EligibleHackathon] = []
    for hackathon in hackathons:
        if not hackathon.problem_statements:
            _LOGGER.info("Hackathon %s has no problem statements; not eligible", hackathon.id)
            continue
        eligible.append(_snapshot(hackathon))
    return eligible
