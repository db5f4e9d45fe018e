"""Tell participants and live clients about freshly formed teams."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Sequence

from teamformer.email_templates import team_email_html, team_email_subject, team_email_text
from teamformer.emailer import send_email
from teamformer.realtime import EventBus
from teamformer.schemas import TEAMS_FORMED_EVENT, TeamNotification, TeamOut, TeamsFormedPayload
from teamformer.services.selection import EligibleHackathon

_LOGGER = logging.getLogger(__name__)


class NotificationSender(ABC):
    @abstractmethod
    async def send(self, notification: TeamNotification) -> bool:
        """Deliver one notification; ``False`` means it was not delivered."""


class EmailNotificationSender(NotificationSender):
    """Sends team notifications over SMTP without blocking the event loop."""

    async def send(self, notification: TeamNotification) -> bool:
        return await asyncio.to_thread(
            send_email,
            notification.recipient_address,
            team_email_subject(notification),
            team_email_html(notification),
            team_email_text(notification),
        )


@dataclass(slots=True)
class NotificationReport:
    sent: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)
    event_published: bool = False

    @property
    def attempted(self) -> int:
        return len(self.sent) + len(self.failed)


def build_notifications(hackathon: EligibleHackathon, teams: Sequence[TeamOut]) -> list[TeamNotification]:
    notifications: list[TeamNotification] = []
    for team in teams:
        for member in team.members:
            notifications.append(
                TeamNotification(
                    recipient_address=member.email,
                    recipient_name=member.name,
                    hackathon_title=hackathon.title,
                    team_name=team.name,
                    problem_statement=team.problem_statement,
                    teammate_names=[
                        other.name
                        for other in team.members
                        if other.participant_id != member.participant_id
                    ],
                )
            )
    return notifications


async def notify_team_formation(
    hackathon: EligibleHackathon,
    teams: Sequence[TeamOut],
    *,
    sender: NotificationSender,
    event_bus: EventBus,
) -> NotificationReport:
    """Email every member, then publish a single ``teams-formed`` event.

    Must only be called once the teams are committed. Delivery failures are
    recorded in the report and never raised.
    """

    report = NotificationReport()
    participant_ids = [member.participant_id for team in teams for member in team.members]

    for participant_id, notification in zip(participant_ids, build_notifications(hackathon, teams)):
        try:
            delivered = await sender.send(notification)
        except Exception as exc:
            _LOGGER.warning(
                "Team notification to %s for hackathon %s failed: %s",
                notification.recipient_address,
                hackathon.id,
                exc,
            )
            delivered = False
        (report.sent if delivered else report.failed).append(participant_id)

    if report.failed:
        _LOGGER.warning(
            "%s of %s team notifications for hackathon %s were not delivered",
            len(report.failed),
            report.attempted,
            hackathon.id,
        )

    payload = TeamsFormedPayload(hackathon_id=hackathon.id, teams=list(teams))
    try:
        await event_bus.publish(str(hackathon.id), TEAMS_FORMED_EVENT, payload.model_dump(mode="json"))
    except Exception:
        _LOGGER.exception("Publishing %s for hackathon %s failed", TEAMS_FORMED_EVENT, hackathon.id)
    else:
        report.event_published = True

    return report
