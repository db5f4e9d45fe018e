"""Persist a partition plan as one unit of work."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from teamformer.models.hackathon import Hackathon, HackathonStatus
from teamformer.models.team import SubmissionStatus, Team
from teamformer.models.team_membership import MembershipStatus, TeamMembership
from teamformer.schemas import TeamMemberOut, TeamOut
from teamformer.services.errors import CommitError, FormationConflict
from teamformer.services.partitioner import PartitionPlan
from teamformer.services.selection import EligibleHackathon, naive_utc

_LOGGER = logging.getLogger(__name__)


async def _close_registration(db: AsyncSession, hackathon_id: int, *, now: datetime) -> None:
    """Flip the hackathon to closed, but only if nobody else did it first."""

    result = await db.execute(
        update(Hackathon)
        .where(
            Hackathon.id == hackathon_id,
            Hackathon.status == HackathonStatus.registration_open.value,
            Hackathon.teams_formed.is_(False),
        )
        .values(
            status=HackathonStatus.registration_closed.value,
            teams_formed=True,
            teams_formed_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise FormationConflict(
            hackathon_id,
            f"Hackathon {hackathon_id} is no longer open for team formation",
        )


async def commit_partition_plan(
    db: AsyncSession,
    hackathon: EligibleHackathon,
    plan: PartitionPlan,
    *,
    now: datetime,
) -> list[TeamOut]:
    """Create teams, memberships and close registration atomically.

    On any failure the transaction is rolled back and a ``CommitError`` is
    raised, leaving the hackathon exactly as it was.
    """

    now = naive_utc(now)
    created: list[Team] = []

    try:
        for planned in plan.teams:
            team = Team(
                hackathon_id=hackathon.id,
                name=planned.name,
                problem_statement=planned.problem_statement,
                submission_status=SubmissionStatus.not_submitted.value,
                created_at=now,
                updated_at=now,
            )
            db.add(team)
            created.append(team)
        await db.flush()

        for team, planned in zip(created, plan.teams):
            for member in planned.members:
                membership = TeamMembership(
                    team_id=team.id,
                    participant_id=member.participant.id,
                    hackathon_id=hackathon.id,
                    role=member.role.value,
                    status=MembershipStatus.active.value,
                    joined_at=now,
                )
                db.add(membership)
        await db.flush()

        await _close_registration(db, hackathon.id, now=now)
        await db.commit()
    except CommitError:
        await db.rollback()
        raise
    except Exception as exc:
        await db.rollback()
        raise CommitError(hackathon.id, f"Team formation for hackathon {hackathon.id} failed: {exc}") from exc

    _LOGGER.debug("Committed %s teams for hackathon %s", len(created), hackathon.id)

    return [
        TeamOut(
            id=team.id,
            hackathon_id=hackathon.id,
            name=team.name,
            problem_statement=team.problem_statement,
            submission_status=SubmissionStatus(team.submission_status),
            created_at=team.created_at,
            members=[
                TeamMemberOut(
                    participant_id=member.participant.id,
                    name=member.participant.name,
                    email=member.participant.email,
                    skills=list(member.participant.skills),
                    role=member.role,
                )
                for member in planned.members
            ],
        )
        for team, planned in zip(created, plan.teams)
    ]
