"""
Team endpoints: status, guess submission and rename
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pubquiz.api.deps import current_team
from pubquiz.database import get_db
from pubquiz.db_models import Team
from pubquiz.services.contest import get_status
from pubquiz.services.guesses import GuessOutcome, submit_guess
from pubquiz.services.team_registry import rename_team


router = APIRouter(tags=["submission"])
logger = logging.getLogger(__name__)


@router.get("/status")
def status(team: Team = Depends(current_team), db: Session = Depends(get_db)):
    """
    Everything the team screen shows: rounds, leaderboard, own guesses
    and the current questions (hints only once they are due)
    """
    return get_status(db, team)


@router.post("/guess")
def guess(request: dict, team: Team = Depends(current_team), db: Session = Depends(get_db)):
    """
    Submit a guess for one question of the active round

    Request:
        {"letter": "B", "answer": "Kilimanjaro"}

    Response:
        {"points": 1, "reason": "submitted"}        recorded
        {"points": 0, "reason": "no_letter"}        letter is not A-Z
        {"points": 0, "reason": "no_active_round"}  nothing to answer

    The response never reveals whether the guess was right.
    """
    outcome = submit_guess(db, team.team_id, request.get("letter"), str(request.get("answer") or ""))
    return {
        "points": 1 if outcome == GuessOutcome.SUBMITTED else 0,
        "reason": outcome.value,
    }


@router.post("/rename")
def rename(request: dict, team: Team = Depends(current_team), db: Session = Depends(get_db)):
    """
    Rename the calling team (only before the first round starts)

    Request:
        {"name": "Quizzly Bears"}
    """
    return {"updated": rename_team(db, team.team_id, str(request.get("name") or ""))}
