"""Random partitioning of participants into teams."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Sequence

from teamformer.models.team_membership import MemberRole
from teamformer.services.errors import PartitionPreconditionError
from teamformer.services.selection import EligibleHackathon, ParticipantInfo

TEAM_NAME_PREFIX = "Team"


@dataclass(slots=True, frozen=True)
class PlannedMember:
    participant: ParticipantInfo
    role: MemberRole


@dataclass(slots=True)
class PlannedTeam:
    name: str
    problem_statement: str
    members: list[PlannedMember] = field(default_factory=list)

    @property
    def leader(self) -> PlannedMember:
        return self.members[0]


@dataclass(slots=True)
class PartitionPlan:
    teams: list[PlannedTeam] = field(default_factory=list)

    @property
    def member_count(self) -> int:
        return sum(len(team.members) for team in self.teams)


def _team_name(rng: random.Random, taken: set[str]) -> str:
    while True:
        name = f"{TEAM_NAME_PREFIX} {rng.getrandbits(24):06x}"
        if name not in taken:
            taken.add(name)
            return name


def build_partition_plan(
    participants: Sequence[ParticipantInfo],
    team_size: int,
    problem_statements: Sequence[str],
    rng: random.Random,
) -> PartitionPlan:
    """Shuffle ``participants`` once and chunk them into teams of ``team_size``.

    Every team but the last has exactly ``team_size`` members. Each team gets
    a problem statement drawn uniformly (with replacement) and its first
    member after the shuffle becomes the leader.
    """

    if team_size < 1:
        raise ValueError("team_size must be at least 1")
    if not problem_statements:
        raise ValueError("problem_statements must not be empty")

    order = list(participants)
    # random.Random.shuffle is an in-place Fisher-Yates shuffle
    rng.shuffle(order)

    plan = PartitionPlan()
    taken: set[str] = set()
    for start in range(0, len(order), team_size):
        chunk = order[start:start + team_size]
        members = [
            PlannedMember(
                participant=participant,
                role=MemberRole.leader if index == 0 else MemberRole.developer,
            )
            for index, participant in enumerate(chunk)
        ]
        plan.teams.append(
            PlannedTeam(
                name=_team_name(rng, taken),
                problem_statement=rng.choice(list(problem_statements)),
                members=members,
            )
        )
    return plan


def validate_formation_inputs(hackathon: EligibleHackathon) -> None:
    """Reject hackathons the partitioner cannot handle."""

    if not hackathon.participants:
        raise PartitionPreconditionError(f"Hackathon {hackathon.id} has no participants")
    if not hackathon.problem_statements:
        raise PartitionPreconditionError(f"Hackathon {hackathon.id} has no problem statements")
    if hackathon.max_team_size is None or hackathon.max_team_size < 1:
        raise PartitionPreconditionError(
            f"Hackathon {hackathon.id} has invalid max_team_size {hackathon.max_team_size!r}"
        )
