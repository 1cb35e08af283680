"""
Random team formation

Input: people who asked for random placement and have no team yet, each
with a primary and an optional secondary affinity group.

  1. T = ceil(M / team_size) teams are needed for M people.
  2. Primary groups larger than T give their surplus to groups smaller
     than T. Candidates are drawn in random order; a person whose
     secondary group is the destination moves first, then people with no
     secondary preference, then anyone. Moves never exceed the total
     surplus or the total deficit.
  3. Every effective group gets a random order. Groups are dealt onto
     the T teams one after another, continuing where the previous group
     stopped, so a team receives at most one person per group (unless the
     group is still larger than T) and team sizes differ by at most one.
"""
import math
import random
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple


NO_GROUP = 0


@dataclass(frozen=True)
class Candidate:
    people_id: str
    primary_group: Optional[int]
    secondary_group: Optional[int] = None

    @property
    def group(self) -> int:
        return self.primary_group if self.primary_group is not None else NO_GROUP

    @property
    def wish(self) -> int:
        return self.secondary_group if self.secondary_group is not None else NO_GROUP


@dataclass
class FormationPlan:
    team_count: int
    groups: Dict[str, int] = field(default_factory=dict)        # people_id -> effective group
    moves: Dict[str, Tuple[int, int]] = field(default_factory=dict)  # people_id -> (from, to)
    assignments: Dict[str, str] = field(default_factory=dict)   # people_id -> team_id


def target_team_count(n_people: int, team_size: int = 5) -> int:
    """
    Number of teams needed so no team exceeds team_size

    Example:
        >>> target_team_count(11)
        3
    """
    if team_size < 1:
        raise ValueError("team_size must be positive")
    return math.ceil(n_people / team_size)


def rebalance_groups(
    people: Sequence[Candidate],
    team_count: int,
    rng: random.Random,
) -> Tuple[Dict[str, int], Dict[str, Tuple[int, int]]]:
    """
    Move surplus members of oversized groups into undersized groups

    Args:
        people: Candidates to place
        team_count: T, the capacity of one group
        rng: Random source

    Returns:
        (effective group per person, moves as people_id -> (from, to))
    """
    sizes: Dict[int, int] = defaultdict(int)
    for person in people:
        sizes[person.group] += 1

    surplus = {g: n - team_count for g, n in sizes.items() if n > team_count}
    deficit = {g: team_count - n for g, n in sizes.items() if n < team_count}
    budget = min(sum(surplus.values()), sum(deficit.values()))

    effective = {p.people_id: p.group for p in people}
    moves: Dict[str, Tuple[int, int]] = {}
    if budget == 0:
        return effective, moves

    pool = sorted((p for p in people if p.group in surplus), key=lambda p: p.people_id)
    rng.shuffle(pool)
    destinations = sorted(deficit, key=lambda g: (-deficit[g], g))

    tiers = (
        lambda person, dest: person.wish == dest,
        lambda person, dest: person.wish == NO_GROUP,
        lambda person, dest: True,
    )
    for accepts in tiers:
        for dest in destinations:
            for person in pool:
                if budget == 0:
                    return effective, moves
                if deficit[dest] == 0:
                    break
                if person.people_id in moves or surplus[person.group] == 0:
                    continue
                if not accepts(person, dest):
                    continue
                moves[person.people_id] = (person.group, dest)
                effective[person.people_id] = dest
                surplus[person.group] -= 1
                deficit[dest] -= 1
                budget -= 1
    return effective, moves


def rank_within_groups(effective: Dict[str, int], rng: random.Random) -> Dict[int, List[str]]:
    """Random order (rank 1..k) of the members of every effective group"""
    members: Dict[int, List[str]] = defaultdict(list)
    for people_id in sorted(effective):
        members[effective[people_id]].append(people_id)
    for group in sorted(members):
        rng.shuffle(members[group])
    return dict(members)


def deal_to_teams(ranked: Dict[int, List[str]], team_ids: Sequence[str],
                  rng: random.Random) -> Dict[str, str]:
    """
    Deal ranked group members onto teams

    Larger groups are dealt first (equal sizes in random order); each
    group continues on the team after the one where the previous group
    ended.
    """
    if not team_ids:
        return {}
    order = sorted(ranked)
    rng.shuffle(order)
    order.sort(key=lambda g: -len(ranked[g]))

    assignments = {}
    position = 0
    for group in order:
        for people_id in ranked[group]:
            assignments[people_id] = team_ids[position % len(team_ids)]
            position += 1
    return assignments


def plan_formation(
    people: Sequence[Candidate],
    team_ids: Sequence[str],
    team_size: int = 5,
    rng: Optional[random.Random] = None,
) -> FormationPlan:
    """
    Compute the team of every candidate

    Args:
        people: Candidates (unassigned, asked for random placement)
        team_ids: Destination teams, ranked 1..T in this order; must hold
            at least target_team_count(len(people)) entries
        team_size: Maximum people per team
        rng: Random source; pass a seeded random.Random for reproducibility

    Returns:
        FormationPlan
    """
    rng = rng or random.Random()
    team_count = target_team_count(len(people), team_size)
    if team_count == 0:
        return FormationPlan(team_count=0)
    if len(team_ids) < team_count:
        raise ValueError(f"Need {team_count} destination teams, got {len(team_ids)}")

    effective, moves = rebalance_groups(people, team_count, rng)
    ranked = rank_within_groups(effective, rng)
    assignments = deal_to_teams(ranked, list(team_ids)[:team_count], rng)
    return FormationPlan(
        team_count=team_count,
        groups=effective,
        moves=moves,
        assignments=assignments,
    )
