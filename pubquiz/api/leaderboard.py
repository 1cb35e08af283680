"""
Leaderboard endpoints
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from pubquiz.database import get_db
from pubquiz.db_models import Round
from pubquiz.services.leaderboard import get_leaderboard_data, round_standings


router = APIRouter(tags=["leaderboard"])


@router.get("/api/leaderboard-data")
def leaderboard_data(db: Session = Depends(get_db)):
    """
    Running leaderboard

    Returns teams sorted by total contribution, each with the
    contribution and display score of every round.
    """
    return get_leaderboard_data(db)


@router.get("/api/rounds/{round_id}/results")
def round_results(round_id: int, db: Session = Depends(get_db)):
    """Stored results of one round, best display score first"""
    if db.get(Round, round_id) is None:
        raise HTTPException(status_code=404, detail=f"Round {round_id} not found")
    return {"round": round_id, "results": round_standings(db, round_id)}
