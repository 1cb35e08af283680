"""
Round scorer - turns a finished round's ledger into RoundResult rows
"""
import logging
from typing import Dict, List

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from pubquiz.core.scoring import score_round
from pubquiz.db_models import Round, RoundResult, Team
from pubquiz.models import RankedTeam
from pubquiz.services.ledger import counted_attempts


logger = logging.getLogger(__name__)


def eligible_team_ids(db: Session) -> set:
    """Teams that take part in rankings (everyone but moderators)"""
    return set(db.scalars(select(Team.team_id).where(Team.is_admin.is_(False))))


def write_round_results(db: Session, round_id: int) -> List[RankedTeam]:
    """
    Recompute a round's results from the ledger and store them

    Previous rows of the round are replaced, never added to, so running
    this twice on the same ledger yields the same rows. The caller owns
    the transaction.

    Args:
        db: Session inside an open transaction
        round_id: Round to score (must have been started)

    Returns:
        Ranked teams in ranking order
    """
    rnd = db.get(Round, round_id)
    if rnd is None or rnd.started is None:
        raise ValueError(f"Round {round_id} was never started")

    eligible = eligible_team_ids(db)
    outcomes = score_round(counted_attempts(db, round_id), eligible, rnd.value, rnd.started)

    db.execute(delete(RoundResult).where(RoundResult.round_id == round_id))
    db.add_all(
        RoundResult(
            team_id=o.team_id,
            round_id=round_id,
            score=o.contribution,
            round_score=o.round_score,
        )
        for o in outcomes
    )
    db.flush()

    names = team_names(db)
    ranked = [
        RankedTeam(
            team_id=o.team_id,
            name=names.get(o.team_id),
            rank=o.rank,
            score=o.score,
            tiebreak=o.tiebreak,
            contribution=o.contribution,
            round_score=o.round_score,
        )
        for o in outcomes
    ]
    logger.info(
        f"🏁 Round {round_id} scored | {len(eligible)} eligible teams | "
        f"{len(ranked)} ranked | winner: {ranked[0].name if ranked else '-'}"
    )
    return ranked


def team_names(db: Session) -> Dict[str, str]:
    return {t.team_id: t.name for t in db.execute(select(Team.team_id, Team.name))}


def clear_results(db: Session) -> int:
    result = db.execute(delete(RoundResult))
    return result.rowcount
