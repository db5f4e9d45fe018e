from __future__ import annotations

import enum
import logging
import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from teamformer.realtime import EventBus
from teamformer.schemas import TeamOut
from teamformer.services.committer import commit_partition_plan
from teamformer.services.errors import CommitError, FormationConflict, PartitionPreconditionError
from teamformer.services.notifier import NotificationReport, NotificationSender, notify_team_formation
from teamformer.services.partitioner import build_partition_plan, validate_formation_inputs
from teamformer.services.selection import EligibleHackathon, select_eligible_hackathons

_LOGGER = logging.getLogger(__name__)


class FormationStatus(str, enum.Enum):
    formed = "formed"
    skipped = "skipped"
    failed = "failed"


@dataclass(slots=True)
class FormationOutcome:
    hackathon_id: int
    status: FormationStatus
    teams: list[TeamOut] = field(default_factory=list)
    notifications: Optional[NotificationReport] = None
    reason: Optional[str] = None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TeamFormationService:
    """Select, partition, commit and notify for every eligible hackathon."""

    def __init__(
        self,
        session_factory,
        *,
        sender: NotificationSender,
        event_bus: EventBus,
        interval: timedelta = timedelta(seconds=60),
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.session_factory = session_factory
        self.sender = sender
        self.event_bus = event_bus
        self.interval = interval
        self.rng = rng or random.SystemRandom()
        self.clock = clock

    async def run_formation_pass(
        self,
        now: Optional[datetime] = None,
        *,
        since: Optional[datetime] = None,
    ) -> list[FormationOutcome]:
        """Run one tick. ``SelectionError`` propagates and aborts the tick.

        ``since`` is the previous tick's instant; when given, the window
        stretches back to it so consecutive windows always meet.
        """

        now = now or self.clock()
        window = self.interval
        if since is not None and now - since > window:
            window = now - since
        async with self.session_factory() as db:
            eligible = await select_eligible_hackathons(db, now=now, interval=window)

        if eligible:
            _LOGGER.info("Forming teams for %s hackathon(s)", len(eligible))

        outcomes = []
        for hackathon in eligible:
            try:
                outcomes.append(await self.form_teams(hackathon, now=now))
            except Exception as exc:
                _LOGGER.exception("Unexpected error forming teams for hackathon %s", hackathon.id)
                outcomes.append(FormationOutcome(hackathon.id, FormationStatus.failed, reason=str(exc)))
        return outcomes

    async def form_teams(self, hackathon: EligibleHackathon, *, now: datetime) -> FormationOutcome:
        try:
            validate_formation_inputs(hackathon)
        except PartitionPreconditionError as exc:
            _LOGGER.warning("Skipping hackathon %s: %s", hackathon.id, exc)
            return FormationOutcome(hackathon.id, FormationStatus.skipped, reason=str(exc))

        plan = build_partition_plan(
            hackathon.participants,
            hackathon.max_team_size,
            hackathon.problem_statements,
            self.rng,
        )

        try:
            async with self.session_factory() as db:
                teams = await commit_partition_plan(db, hackathon, plan, now=now)
        except FormationConflict as exc:
            _LOGGER.info("Teams for hackathon %s were already formed: %s", hackathon.id, exc)
            return FormationOutcome(hackathon.id, FormationStatus.skipped, reason=str(exc))
        except CommitError as exc:
            _LOGGER.exception("Team formation for hackathon %s rolled back", hackathon.id)
            return FormationOutcome(hackathon.id, FormationStatus.failed, reason=str(exc))

        _LOGGER.info("Created %s teams for %s", len(teams), hackathon.title)

        # Teams are durable from here on; nothing below may report a failure
        try:
            report = await notify_team_formation(
                hackathon,
                teams,
                sender=self.sender,
                event_bus=self.event_bus,
            )
        except Exception:
            _LOGGER.exception("Notifying hackathon %s about its teams failed", hackathon.id)
            report = None
        return FormationOutcome(hackathon.id, FormationStatus.formed, teams=teams, notifications=report)
