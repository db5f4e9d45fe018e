from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from teamformer.database import build_session_factory, init_models
from teamformer.models import Hackathon, HackathonStatus, Participant, Registration
from teamformer.services.notifier import NotificationSender
from teamformer.realtime import EventBus

NOW = datetime(2026, 3, 14, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'teams.db'}")
    await init_models(engine)
    try:
        yield build_session_factory(engine)
    finally:
        await engine.dispose()


@pytest.fixture
def seed_hackathon(session_factory):
    counter = {"participants": 0}

    async def _seed(
        *,
        participants: int = 5,
        max_team_size: int = 2,
        problem_statements=("Smart campus",),
        deadline: datetime = NOW - timedelta(seconds=30),
        title: str = "Spring Hack",
        email_domain: str = "example.com",
        **overrides,
    ) -> int:
        async with session_factory() as db:
            hackathon = Hackathon(
                title=title,
                registration_deadline=deadline.astimezone(timezone.utc).replace(tzinfo=None),
                max_team_size=max_team_size,
                problem_statements=list(problem_statements),
                **{"status": HackathonStatus.registration_open.value, **overrides},
            )
            db.add(hackathon)
            for _ in range(participants):
                counter["participants"] += 1
                n = counter["participants"]
                participant = Participant(
                    name=f"Member {n}",
                    email=f"member{n}@{email_domain}",
                    skills=["python", "ml"] if n % 2 else ["design"],
                )
                db.add(participant)
                db.add(Registration(hackathon=hackathon, participant=participant))
            await db.commit()
            return hackathon.id

    return _seed


class SpySender(NotificationSender):
    def __init__(self, *, fail_for=(), raise_for=(), calls=None):
        self.sent = []
        self.fail_for = set(fail_for)
        self.raise_for = set(raise_for)
        self.calls = calls if calls is not None else []

    async def send(self, notification):
        self.calls.append(("send", notification.recipient_address))
        self.sent.append(notification)
        if notification.recipient_address in self.raise_for:
            raise ConnectionError("smtp down")
        return notification.recipient_address not in self.fail_for


class SpyEventBus(EventBus):
    def __init__(self, *, fail=False, calls=None):
        self.events = []
        self.fail = fail
        self.calls = calls if calls is not None else []

    async def publish(self, channel, event_type, payload):
        self.calls.append(("publish", channel))
        self.events.append((channel, event_type, payload))
        if self.fail:
            raise RuntimeError("event bus unavailable")
        return 1


@pytest.fixture
def sender():
    return SpySender()


@pytest.fixture
def event_bus():
    return SpyEventBus()


@pytest.fixture
def make_sender():
    return SpySender


@pytest.fixture
def make_event_bus():
    return SpyEventBus


@pytest.fixture
def now():
    return NOW
