"""
Round-end scoring

Which attempt counts:
  - Per (team, letter) repeated identical texts collapse to their first
    submission; the most recent of the remaining distinct texts counts.

Team result:
  score    = sum of positive points among counted attempts
  tiebreak = largest elapsed time (s) among positive counted attempts

Ranking (teams with at least one positive counted attempt):
  order by score desc, tiebreak asc; equal pairs share a rank and the
  next rank skips (1, 2, 2, 4).

Round outcome for N eligible teams, cutoff = ceil(N / 2):
  contribution = value * 100 + (cutoff - rank)   if rank <= cutoff else 0
  round_score  = score * 100 + N - rank
"""
import math
from dataclasses import dataclass
from datetime import datetime
from itertools import groupby
from typing import Dict, Iterable, Iterator, List, NamedTuple, Optional, Set


# Tiebreak of a team that never answered correctly
NO_TIEBREAK = float("inf")

# Contribution scale: leaves two digits for the cutoff bonus
PLACEMENT_SCALE = 100


class LedgerRow(NamedTuple):
    team_id: str
    letter: str
    answered: str
    time: datetime
    points: float


@dataclass
class TeamTally:
    team_id: str
    score: float = 0.0
    tiebreak: float = NO_TIEBREAK

    @property
    def qualifies(self) -> bool:
        return self.tiebreak < NO_TIEBREAK


@dataclass
class RoundOutcome:
    team_id: str
    rank: int
    score: float
    tiebreak: float
    contribution: int
    round_score: float


def counted_attempt(attempts: Iterable[LedgerRow]) -> Optional[LedgerRow]:
    """
    Pick the attempt that counts for one team and one letter

    Each distinct text is represented by its earliest submission; the
    latest of those representatives is returned.

    Args:
        attempts: Ledger rows of a single (team, letter)

    Returns:
        The counted row, or None when there were no attempts
    """
    first_by_text: Dict[str, LedgerRow] = {}
    for row in attempts:
        seen = first_by_text.get(row.answered)
        if seen is None or row.time < seen.time:
            first_by_text[row.answered] = row

    counted = None
    for row in first_by_text.values():
        if counted is None or row.time >= counted.time:
            counted = row
    return counted


def collapse_ledger(rows: Iterable[LedgerRow]) -> Iterator[LedgerRow]:
    """
    Reduce an ordered ledger stream to one counted attempt per (team, letter)

    Rows must arrive grouped by (team_id, letter), as produced by
    ORDER BY team_id, letter, time. Only one group is held in memory.
    """
    for _, group in groupby(rows, key=lambda r: (r.team_id, r.letter)):
        counted = counted_attempt(group)
        if counted is not None:
            yield counted


def tally_teams(counted: Iterable[LedgerRow], started: datetime) -> Dict[str, TeamTally]:
    """
    Sum counted attempts into per-team score and tiebreak

    Args:
        counted: Counted attempts (one per team and letter)
        started: Round start time

    Returns:
        Mapping team_id -> TeamTally (only teams that appear in `counted`)
    """
    tallies: Dict[str, TeamTally] = {}
    for row in counted:
        tally = tallies.setdefault(row.team_id, TeamTally(team_id=row.team_id))
        if row.points <= 0:
            continue
        elapsed = (row.time - started).total_seconds()
        tally.score += row.points
        if not tally.qualifies or elapsed > tally.tiebreak:
            tally.tiebreak = elapsed
    return tallies


def competition_ranks(tallies: Iterable[TeamTally]) -> List[tuple]:
    """
    Rank qualifying teams by score desc, tiebreak asc

    Returns:
        List of (TeamTally, rank) in ranking order; ties share a rank
    """
    ordered = sorted(
        (t for t in tallies if t.qualifies),
        key=lambda t: (-t.score, t.tiebreak, t.team_id),
    )
    ranked = []
    for idx, tally in enumerate(ordered):
        if idx > 0:
            prev, prev_rank = ranked[-1]
            if (prev.score, prev.tiebreak) == (tally.score, tally.tiebreak):
                ranked.append((tally, prev_rank))
                continue
        ranked.append((tally, idx + 1))
    return ranked


def round_cutoff(n_teams: int) -> int:
    """Number of placements that earn leaderboard points"""
    return math.ceil(n_teams / 2)


def calculate_contribution(value: int, rank: int, cutoff: int) -> int:
    """
    Leaderboard contribution of a placement

    Example:
        >>> calculate_contribution(4, 1, 2)
        401
        >>> calculate_contribution(4, 3, 2)
        0
    """
    if rank > cutoff:
        return 0
    return value * PLACEMENT_SCALE + (cutoff - rank)


def calculate_round_score(score: float, rank: int, n_teams: int) -> float:
    """Round-local display score; never summed into the leaderboard"""
    return score * PLACEMENT_SCALE + n_teams - rank


def score_round(
    counted: Iterable[LedgerRow],
    eligible: Set[str],
    value: int,
    started: datetime,
) -> List[RoundOutcome]:
    """
    Main scoring entry point for a finished round

    Args:
        counted: Counted attempts, one per (team, letter)
        eligible: Team ids taking part in the ranking (non-admin teams)
        value: Round value
        started: Round start time

    Returns:
        One RoundOutcome per ranked team, in ranking order
    """
    n_teams = len(eligible)
    cutoff = round_cutoff(n_teams)
    tallies = tally_teams((row for row in counted if row.team_id in eligible), started)

    outcomes = []
    for tally, rank in competition_ranks(tallies.values()):
        outcomes.append(RoundOutcome(
            team_id=tally.team_id,
            rank=rank,
            score=tally.score,
            tiebreak=round(tally.tiebreak, 3),
            contribution=calculate_contribution(value, rank, cutoff),
            round_score=calculate_round_score(tally.score, rank, n_teams),
        ))
    return outcomes
