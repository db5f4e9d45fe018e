import random
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from teamformer.models import Hackathon, HackathonStatus, MemberRole, Team, TeamMembership
from teamformer.services import committer, team_formation
from teamformer.services.committer import commit_partition_plan
from teamformer.services.errors import CommitError, FormationConflict
from teamformer.services.partitioner import build_partition_plan
from teamformer.services.selection import select_eligible_hackathons
from teamformer.services.team_formation import FormationStatus, TeamFormationService


def _service(session_factory, sender, event_bus, now, seed=42):
    return TeamFormationService(
        session_factory,
        sender=sender,
        event_bus=event_bus,
        interval=timedelta(seconds=60),
        rng=random.Random(seed),
        clock=lambda: now,
    )


async def _counts(session_factory, hackathon_id):
    async with session_factory() as db:
        teams = await db.scalar(select(func.count(Team.id)).where(Team.hackathon_id == hackathon_id))
        members = await db.scalar(
            select(func.count(TeamMembership.id)).where(TeamMembership.hackathon_id == hackathon_id)
        )
        hackathon = await db.get(Hackathon, hackathon_id)
    return teams, members, hackathon


@pytest.mark.anyio
async def test_five_participants_form_three_teams(session_factory, seed_hackathon, sender, event_bus, now):
    hackathon_id = await seed_hackathon(participants=5, max_team_size=2, problem_statements=["Smart campus"])

    (outcome,) = await _service(session_factory, sender, event_bus, now).run_formation_pass()

    assert outcome.status == FormationStatus.formed
    assert [len(team.members) for team in outcome.teams] == [2, 2, 1]
    assert all(team.problem_statement == "Smart campus" for team in outcome.teams)

    teams, members, hackathon = await _counts(session_factory, hackathon_id)
    assert (teams, members) == (3, 5)
    assert hackathon.status == HackathonStatus.registration_closed.value
    assert hackathon.teams_formed is True
    assert hackathon.teams_formed_at is not None

    async with session_factory() as db:
        leaders = await db.scalar(
            select(func.count(TeamMembership.id)).where(
                TeamMembership.hackathon_id == hackathon_id,
                TeamMembership.role == MemberRole.leader.value,
            )
        )
        participant_ids = (
            await db.execute(
                select(TeamMembership.participant_id).where(TeamMembership.hackathon_id == hackathon_id)
            )
        ).scalars().all()
        submission_states = set(
            (await db.execute(select(Team.submission_status))).scalars().all()
        )
    assert leaders == 3
    assert len(set(participant_ids)) == 5
    assert submission_states == {"not_submitted"}

    assert len(sender.sent) == 5
    assert outcome.notifications.sent and not outcome.notifications.failed
    assert len(event_bus.events) == 1
    channel, event_type, payload = event_bus.events[0]
    assert channel == str(hackathon_id)
    assert event_type == "teams-formed"
    assert payload["hackathon_id"] == hackathon_id
    assert len(payload["teams"]) == 3


@pytest.mark.anyio
async def test_notifications_list_only_the_other_members(session_factory, seed_hackathon, sender, event_bus, now):
    await seed_hackathon(participants=3, max_team_size=3, title="Winter Hack")

    (outcome,) = await _service(session_factory, sender, event_bus, now).run_formation_pass()

    (team,) = outcome.teams
    names = {member.name for member in team.members}
    for notification in sender.sent:
        assert notification.hackathon_title == "Winter Hack"
        assert notification.team_name == team.name
        assert notification.problem_statement == team.problem_statement
        assert sorted(notification.teammate_names) == sorted(names - {notification.recipient_name})


@pytest.mark.anyio
async def test_hackathon_without_participants_is_left_alone(session_factory, seed_hackathon, sender, event_bus, now):
    hackathon_id = await seed_hackathon(participants=0)

    outcomes = await _service(session_factory, sender, event_bus, now).run_formation_pass()

    assert outcomes == []
    teams, members, hackathon = await _counts(session_factory, hackathon_id)
    assert (teams, members) == (0, 0)
    assert hackathon.status == HackathonStatus.registration_open.value
    assert sender.sent == []
    assert event_bus.events == []


@pytest.mark.anyio
async def test_interrupted_commit_leaves_no_trace(
    session_factory, seed_hackathon, sender, event_bus, now, monkeypatch
):
    hackathon_id = await seed_hackathon(participants=4, max_team_size=2)
    service = _service(session_factory, sender, event_bus, now)

    async def _lost_connection(db, hackathon_id, *, now):
        raise ConnectionResetError("connection lost before status update")

    with monkeypatch.context() as patched:
        patched.setattr(committer, "_close_registration", _lost_connection)
        (outcome,) = await service.run_formation_pass()

    assert outcome.status == FormationStatus.failed
    teams, members, hackathon = await _counts(session_factory, hackathon_id)
    assert (teams, members) == (0, 0)
    assert hackathon.status == HackathonStatus.registration_open.value
    assert hackathon.teams_formed is False
    assert sender.sent == []
    assert event_bus.events == []

    # Still inside the window, so the next tick picks it up again
    (retry,) = await service.run_formation_pass(now + timedelta(seconds=10))
    assert retry.status == FormationStatus.formed
    teams, members, _ = await _counts(session_factory, hackathon_id)
    assert (teams, members) == (2, 4)


@pytest.mark.anyio
async def test_running_the_pass_twice_forms_teams_once(session_factory, seed_hackathon, sender, event_bus, now):
    hackathon_id = await seed_hackathon(participants=6, max_team_size=4)
    service = _service(session_factory, sender, event_bus, now)

    first = await service.run_formation_pass()
    second = await service.run_formation_pass()

    assert [o.status for o in first] == [FormationStatus.formed]
    assert second == []
    teams, members, _ = await _counts(session_factory, hackathon_id)
    assert (teams, members) == (2, 6)
    assert len(sender.sent) == 6
    assert len(event_bus.events) == 1


@pytest.mark.anyio
async def test_overlapping_commits_let_only_one_win(session_factory, seed_hackathon, now):
    hackathon_id = await seed_hackathon(participants=5, max_team_size=2)
    async with session_factory() as db:
        (snapshot,) = await select_eligible_hackathons(db, now=now, interval=timedelta(seconds=60))

    plan_a = build_partition_plan(snapshot.participants, 2, snapshot.problem_statements, random.Random(1))
    plan_b = build_partition_plan(snapshot.participants, 2, snapshot.problem_statements, random.Random(2))

    async with session_factory() as db:
        await commit_partition_plan(db, snapshot, plan_a, now=now)
    with pytest.raises(CommitError):
        async with session_factory() as db:
            await commit_partition_plan(db, snapshot, plan_b, now=now)

    teams, members, _ = await _counts(session_factory, hackathon_id)
    assert (teams, members) == (3, 5)


@pytest.mark.anyio
async def test_closed_hackathon_raises_formation_conflict(session_factory, seed_hackathon, now):
    hackathon_id = await seed_hackathon(participants=2, max_team_size=2)
    async with session_factory() as db:
        (snapshot,) = await select_eligible_hackathons(db, now=now, interval=timedelta(seconds=60))
        hackathon = await db.get(Hackathon, hackathon_id)
        hackathon.status = HackathonStatus.registration_closed.value
        await db.commit()

    plan = build_partition_plan(snapshot.participants, 2, snapshot.problem_statements, random.Random(1))
    with pytest.raises(FormationConflict):
        async with session_factory() as db:
            await commit_partition_plan(db, snapshot, plan, now=now)

    teams, members, _ = await _counts(session_factory, hackathon_id)
    assert (teams, members) == (0, 0)


@pytest.mark.anyio
async def test_notifications_only_start_after_commit_is_durable(
    session_factory, seed_hackathon, make_sender, event_bus, now
):
    hackathon_id = await seed_hackathon(participants=3, max_team_size=2)
    observed = []

    class CheckingSender(make_sender):
        async def send(self, notification):
            teams, members, hackathon = await _counts(session_factory, hackathon_id)
            observed.append((teams, members, hackathon.status))
            return await super().send(notification)

    sender = CheckingSender()
    await _service(session_factory, sender, event_bus, now).run_formation_pass()

    assert observed == [(2, 3, HackathonStatus.registration_closed.value)] * 3


@pytest.mark.anyio
async def test_event_is_published_after_every_email_attempt(
    session_factory, seed_hackathon, make_sender, make_event_bus, now
):
    await seed_hackathon(participants=4, max_team_size=3)
    calls = []
    sender = make_sender(calls=calls, raise_for={"member2@example.com"})
    event_bus = make_event_bus(calls=calls)

    await _service(session_factory, sender, event_bus, now).run_formation_pass()

    assert [kind for kind, _ in calls] == ["send"] * 4 + ["publish"]


@pytest.mark.anyio
async def test_failed_deliveries_do_not_undo_the_teams(
    session_factory, seed_hackathon, make_sender, make_event_bus, now
):
    hackathon_id = await seed_hackathon(participants=4, max_team_size=2)
    sender = make_sender(fail_for={"member1@example.com"}, raise_for={"member3@example.com"})
    event_bus = make_event_bus(fail=True)

    (outcome,) = await _service(session_factory, sender, event_bus, now).run_formation_pass()

    assert outcome.status == FormationStatus.formed
    assert sorted(outcome.notifications.failed) == sorted(
        m.participant_id
        for team in outcome.teams
        for m in team.members
        if m.email in {"member1@example.com", "member3@example.com"}
    )
    assert len(outcome.notifications.sent) == 2
    assert outcome.notifications.event_published is False
    assert len(event_bus.events) == 1

    teams, members, hackathon = await _counts(session_factory, hackathon_id)
    assert (teams, members) == (2, 4)
    assert hackathon.status == HackathonStatus.registration_closed.value


@pytest.mark.anyio
async def test_one_bad_hackathon_does_not_stop_the_others(
    session_factory, seed_hackathon, sender, event_bus, now, monkeypatch
):
    bad_size = await seed_hackathon(participants=3, max_team_size=0)
    broken = await seed_hackathon(participants=2, max_team_size=2)
    healthy = await seed_hackathon(participants=3, max_team_size=2)

    original = committer._close_registration

    async def _flaky(db, hackathon_id, *, now):
        if hackathon_id == broken:
            raise RuntimeError("constraint violation")
        await original(db, hackathon_id, now=now)

    monkeypatch.setattr(committer, "_close_registration", _flaky)

    outcomes = await _service(session_factory, sender, event_bus, now).run_formation_pass()

    by_id = {o.hackathon_id: o.status for o in outcomes}
    assert by_id == {
        bad_size: FormationStatus.skipped,
        broken: FormationStatus.failed,
        healthy: FormationStatus.formed,
    }
    assert (await _counts(session_factory, healthy))[:2] == (2, 3)
    assert (await _counts(session_factory, broken))[:2] == (0, 0)
    assert (await _counts(session_factory, bad_size))[:2] == (0, 0)
    assert [channel for channel, _, _ in event_bus.events] == [str(healthy)]


@pytest.mark.anyio
async def test_internal_domain_addresses_still_get_notified(
    session_factory, seed_hackathon, sender, event_bus, now
):
    hackathon_id = await seed_hackathon(participants=2, max_team_size=2, email_domain="corp.local")

    (outcome,) = await _service(session_factory, sender, event_bus, now).run_formation_pass()

    assert outcome.status == FormationStatus.formed
    assert len(outcome.teams) == 1
    assert sorted(n.recipient_address for n in sender.sent) == [
        m.email for m in sorted(outcome.teams[0].members, key=lambda m: m.email)
    ]
    assert all(n.recipient_address.endswith("@corp.local") for n in sender.sent)
    assert len(event_bus.events) == 1

    teams, members, hackathon = await _counts(session_factory, hackathon_id)
    assert (teams, members) == (1, 2)
    assert hackathon.status == HackathonStatus.registration_closed.value


@pytest.mark.anyio
async def test_notifier_crash_after_commit_still_reports_formed(
    session_factory, seed_hackathon, sender, event_bus, now, monkeypatch
):
    hackathon_id = await seed_hackathon(participants=3, max_team_size=2)

    async def _crash(*args, **kwargs):
        raise RuntimeError("template rendering failed")

    monkeypatch.setattr(team_formation, "notify_team_formation", _crash)

    (outcome,) = await _service(session_factory, sender, event_bus, now).run_formation_pass()

    assert outcome.status == FormationStatus.formed
    assert outcome.notifications is None
    assert len(outcome.teams) == 2
    teams, members, hackathon = await _counts(session_factory, hackathon_id)
    assert (teams, members) == (2, 3)
    assert hackathon.teams_formed is True


@pytest.mark.anyio
async def test_window_reaches_back_to_the_previous_tick(
    session_factory, seed_hackathon, sender, event_bus, now
):
    hackathon_id = await seed_hackathon(participants=2, deadline=now - timedelta(seconds=80))
    service = _service(session_factory, sender, event_bus, now)

    assert await service.run_formation_pass(now) == []

    (outcome,) = await service.run_formation_pass(now, since=now - timedelta(seconds=90))

    assert outcome.hackathon_id == hackathon_id
    assert outcome.status == FormationStatus.formed
