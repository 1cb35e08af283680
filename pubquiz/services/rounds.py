"""
Round lifecycle service

Every transition is a single conditional UPDATE; zero affected rows means
the round was not in the required state (or does not exist) and the
transition is refused. No application-level locks are taken.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, aliased

from pubquiz.core.lifecycle import RoundState, schedule_for
from pubquiz.database import atomic
from pubquiz.db_models import Round
from pubquiz.models import RankedTeam
from pubquiz.services.scorer import write_round_results
from pubquiz.utils import utcnow


logger = logging.getLogger(__name__)


def get_active_round(db: Session) -> Optional[Round]:
    return db.scalars(
        select(Round).where(Round.state == RoundState.ACTIVE).order_by(Round.round_id)
    ).first()


def list_rounds(db: Session) -> List[Round]:
    return list(db.scalars(select(Round).order_by(Round.round_id)))


def displayed_round(db: Session) -> Optional[Round]:
    """The active round, else the most recent finished one"""
    active = get_active_round(db)
    if active is not None:
        return active
    return last_finished_round(db)


def last_finished_round(db: Session) -> Optional[Round]:
    return db.scalars(
        select(Round).where(Round.state == RoundState.FINISHED).order_by(Round.round_id.desc())
    ).first()


def any_round_started(db: Session) -> bool:
    """True once any round has left PENDING"""
    highest = db.scalar(select(func.max(Round.state)))
    return bool(highest)


def start_round(db: Session, round_id: int, now: Optional[datetime] = None) -> bool:
    """
    PENDING -> ACTIVE, stamping the start time

    Refused when the round is not PENDING or another round is ACTIVE.
    """
    other = aliased(Round)
    another_active = select(other.round_id).where(other.state == RoundState.ACTIVE).exists()
    with atomic(db):
        result = db.execute(
            update(Round)
            .where(
                Round.round_id == round_id,
                Round.state == RoundState.PENDING,
                ~another_active,
            )
            .values(state=RoundState.ACTIVE, started=now or utcnow())
            .execution_options(synchronize_session=False)
        )
    db.expire_all()
    started = result.rowcount > 0
    logger.info(f"{'▶️' if started else '⛔'} Start round {round_id}: {'ok' if started else 'refused'}")
    return started


def finish_round(db: Session, round_id: int) -> Optional[List[RankedTeam]]:
    """
    ACTIVE -> FINISHED and score the round, as one transaction

    Returns:
        Ranked teams, or None if the round was not ACTIVE
    """
    with atomic(db):
        result = db.execute(
            update(Round)
            .where(Round.round_id == round_id, Round.state == RoundState.ACTIVE)
            .values(state=RoundState.FINISHED)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            logger.info(f"⛔ Finish round {round_id}: refused (not active)")
            return None
        db.expire_all()
        ranked = write_round_results(db, round_id)
    logger.info(f"🛑 Round {round_id} finished")
    return ranked


def reopen_round(db: Session, round_id: int) -> bool:
    """
    Moderator override: put a round back to PENDING from any state

    The ledger and stored results are left alone; the start time is
    cleared so a later start begins a fresh schedule.
    """
    with atomic(db):
        result = db.execute(
            update(Round)
            .where(Round.round_id == round_id)
            .values(state=RoundState.PENDING, started=None)
            .execution_options(synchronize_session=False)
        )
    db.expire_all()
    reopened = result.rowcount > 0
    logger.info(f"↩️ Reopen round {round_id}: {'ok' if reopened else 'unknown round'}")
    return reopened


def change_round_state(db: Session, round_id: int, target: int) -> Dict:
    """
    Admin entry point for round transitions

    Args:
        round_id: Round to change
        target: 0 (pending), 1 (active) or 2 (finished)

    Returns:
        {"ok": bool} plus "winners" (ranked teams) after a finish

    Raises:
        ValueError: If target is not a known state
    """
    try:
        target_state = RoundState(target)
    except ValueError:
        raise ValueError(f"Invalid round state: {target}")

    if target_state == RoundState.PENDING:
        return {"ok": reopen_round(db, round_id)}
    if target_state == RoundState.ACTIVE:
        return {"ok": start_round(db, round_id)}

    ranked = finish_round(db, round_id)
    if ranked is None:
        return {"ok": False}
    return {"ok": True, "winners": [r.model_dump() for r in ranked]}


def rescore_round(db: Session, round_id: int) -> Optional[List[RankedTeam]]:
    """Recompute a finished round's results (overwrites, never accumulates)"""
    with atomic(db):
        rnd = db.get(Round, round_id)
        if rnd is None or rnd.state != RoundState.FINISHED:
            return None
        return write_round_results(db, round_id)


def reset_rounds(db: Session) -> int:
    """Every round back to PENDING; the caller owns the transaction"""
    result = db.execute(
        update(Round).values(state=RoundState.PENDING, started=None)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


def round_view(rnd: Round, now: Optional[datetime] = None) -> Dict:
    """Serializable summary of a round with its timing"""
    now = now or utcnow()
    view = {
        "round": rnd.round_id,
        "name": rnd.name,
        "value": rnd.value,
        "length": rnd.length,
        "active": rnd.state,
        "started": rnd.started,
    }
    schedule = schedule_for(rnd.started, rnd.length)
    if schedule is not None and rnd.state == RoundState.ACTIVE:
        view["remaining"] = round(schedule.remaining(now), 2)
        next_at = schedule.next_transition(now)
        view["next_transition"] = next_at
    return view
