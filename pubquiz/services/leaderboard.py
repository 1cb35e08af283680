"""
Leaderboard service - Assemble running totals from per-round results

Nothing here is stored: every call sums the RoundResult rows again, so
a re-scored round shows up immediately.
"""
from typing import Dict, List

from sqlalchemy import and_, func, select, true
from sqlalchemy.orm import Session

from pubquiz.db_models import Round, RoundResult, Team
from pubquiz.services.rounds import get_active_round


def leaderboard_rows(db: Session) -> List[Dict]:
    """
    Every (team, round) pair with its contribution and display score

    Teams without a result for a round read as zero.
    """
    stmt = (
        select(
            Team.team_id,
            Team.name,
            Round.round_id,
            func.coalesce(RoundResult.score, 0).label("score"),
            func.coalesce(RoundResult.round_score, 0).label("round_score"),
        )
        .select_from(Team)
        .join(Round, true())
        .outerjoin(
            RoundResult,
            and_(RoundResult.team_id == Team.team_id, RoundResult.round_id == Round.round_id),
        )
        .where(Team.is_admin.is_(False))
        .order_by(Team.team_id, Round.round_id)
    )
    return [
        {
            "team_id": r.team_id,
            "team": r.name,
            "round": r.round_id,
            "score": r.score,
            "round_score": r.round_score,
        }
        for r in db.execute(stmt)
    ]


def get_leaderboard_data(db: Session) -> Dict:
    """
    Leaderboard for display

    Returns:
        Rounds, and teams sorted by total contribution (descending) with
        their per-round contribution and display scores
    """
    rows = leaderboard_rows(db)
    teams_data: Dict[str, Dict] = {}
    rounds = []

    for row in rows:
        if row["round"] not in rounds:
            rounds.append(row["round"])
        team = teams_data.setdefault(row["team_id"], {
            "team_id": row["team_id"],
            "team_name": row["team"] or row["team_id"],
            "rounds": {},
            "total_score": 0,
        })
        team["rounds"][row["round"]] = {
            "score": row["score"],
            "round_score": row["round_score"],
        }
        team["total_score"] += row["score"]

    teams_list = sorted(
        teams_data.values(),
        key=lambda x: (-x["total_score"], x["team_name"]),
    )

    active = get_active_round(db)
    return {
        "active_round": active.round_id if active else None,
        "rounds": sorted(rounds),
        "teams": teams_list,
    }


def round_standings(db: Session, round_id: int) -> List[Dict]:
    """Stored results of one round ordered by display score"""
    stmt = (
        select(Team.team_id, Team.name, RoundResult.score, RoundResult.round_score)
        .select_from(RoundResult)
        .join(Team,Team.team_id == RoundResult.team_id)
        .where(RoundResult.round_id == round_id)
        .order_by(RoundResult.round_score.desc(), Team.team_id)
    )
    return [
        {"team_id": r.team_id, "team": r.name, "score": r.score, "round_score": r.round_score}
        for r in db.execute(stmt)
    ]
