"""
Guess ledger - append-only log of every submission attempt
"""
from datetime import datetime
from typing import Dict, Iterator, List, Optional

from sqlalchemy import DateTime, Float, String, delete, insert, literal, select
from sqlalchemy.orm import Session

from pubquiz import state
from pubquiz.core.scoring import LedgerRow, collapse_ledger
from pubquiz.core.lifecycle import RoundState
from pubquiz.db_models import GuessAction, Round, Team


def append_guess(
    db: Session,
    team_id: str,
    round_id: int,
    letter: str,
    answered: str,
    points: float,
    now: datetime,
) -> bool:
    """
    Insert one attempt if the round is still ACTIVE

    The insert selects from the round row itself, so an attempt racing
    a finish either lands before it or not at all. The caller owns the
    transaction.

    Returns:
        True if a row was written
    """
    source = (
        select(
            literal(team_id, String),
            Round.round_id,
            literal(letter, String),
            literal(now, DateTime),
            literal(answered, String),
            literal(points, Float),
        )
        .where(Round.round_id == round_id, Round.state == RoundState.ACTIVE)
    )
    result = db.execute(
        insert(GuessAction).from_select(
            ["team_id", "round_id", "letter", "time", "answered", "points"],
            source,
        )
    )
    return result.rowcount > 0


def iter_round_ledger(db: Session, round_id: int, team_id: Optional[str] = None) -> Iterator[LedgerRow]:
    """
    Stream a round's attempts ordered by team, letter and time

    Rows are fetched in batches of SETTINGS.ledger_batch_size so a long
    contest never loads the whole ledger at once.
    """
    stmt = (
        select(
            GuessAction.team_id,
            GuessAction.letter,
            GuessAction.answered,
            GuessAction.time,
            GuessAction.points,
        )
        .where(GuessAction.round_id == round_id)
        .order_by(GuessAction.team_id, GuessAction.letter, GuessAction.time, GuessAction.action_id)
        .execution_options(yield_per=state.SETTINGS.ledger_batch_size)
    )
    if team_id is not None:
        stmt = stmt.where(GuessAction.team_id == team_id)
    for row in db.execute(stmt):
        yield LedgerRow(*row)


def counted_attempts(db: Session, round_id: int, team_id: Optional[str] = None) -> Iterator[LedgerRow]:
    """The attempt that counts for every (team, letter) of a round"""
    return collapse_ledger(iter_round_ledger(db, round_id, team_id))


def team_history(db: Session, team_id: str) -> List[Dict]:
    """Every attempt of a team, newest first (points are not disclosed)"""
    rows = db.execute(
        select(GuessAction.time, GuessAction.round_id, GuessAction.letter, GuessAction.answered)
        .where(GuessAction.team_id == team_id)
        .order_by(GuessAction.time.desc(), GuessAction.action_id.desc())
    )
    return [
        {"time": r.time, "round": r.round_id, "letter": r.letter, "answered": r.answered}
        for r in rows
    ]


def round_progress(db: Session, round_id: int) -> List[Dict]:
    """All attempts of a round with team names (admin view)"""
    rows = db.execute(
        select(Team.name, GuessAction.action_id, GuessAction.letter, GuessAction.points, GuessAction.answered)
        .select_from(GuessAction)
        .join(Team, Team.team_id == GuessAction.team_id)
        .where(GuessAction.round_id == round_id)
        .order_by(GuessAction.action_id)
    )
    return [
        {
            "team": r.name,
            "action_id": r.action_id,
            "letter": r.letter,
            "points": r.points,
            "answered": r.answered,
        }
        for r in rows
    ]


def clear_ledger(db: Session) -> int:
    """Delete every attempt (full contest reset only)"""
    result = db.execute(delete(GuessAction))
    return result.rowcount
