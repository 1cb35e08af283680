"""
Admin endpoints for round management, contest data and team formation
"""
from fastapi import APIRouter, Depends, HTTPException
from pydantic import ValidationError
from sqlalchemy.orm import Session
import logging

from pubquiz.api.deps import require_admin
from pubquiz.database import get_db
from pubquiz.models import ContestDefinition, RosterDefinition
from pubquiz.services import people as people_service
from pubquiz.services.contest import define_contest, reset_contest
from pubquiz.services.formation import create_random_teams
from pubquiz.services.rounds import change_round_state, rescore_round


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


def _int_param(request: dict, key: str) -> int:
    value = request.get(key)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail=f"{key} must be an integer")


@router.post("/round")
def update_round(request: dict, db: Session = Depends(get_db)):
    """
    Admin: move a round through its lifecycle

    Request:
        {"round": 3, "active": 1}   # 0 pending, 1 start, 2 finish

    Response (finish):
        {"ok": true, "winners": [{"team_id": ..., "rank": 1, ...}, ...]}

    "ok": false means the round was not in a state that allows the
    change (or another round is already active when starting).
    """
    round_id = _int_param(request, "round")
    target = _int_param(request, "active")
    try:
        return change_round_state(db, round_id, target)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.post("/rounds/{round_id}/rescore")
def rescore(round_id: int, db: Session = Depends(get_db)):
    """Admin: recompute a finished round's results from the ledger"""
    ranked = rescore_round(db, round_id)
    if ranked is None:
        return {"ok": False}
    return {"ok": True, "winners": [r.model_dump() for r in ranked]}


@router.post("/define")
def define(request: dict, db: Session = Depends(get_db)):
    """
    Admin: load teams, rounds and questions (clears all guesses and results)

    Request:
        {
            "teams": [{"team_id": "a1b2c3d4", "name": "Owls"}],
            "rounds": [{"round": 1, "name": "Warm-up", "length": 60, "value": 1}],
            "questions": [{"round": 1, "letter": "A", "question": "...",
                           "hint1": "...", "hint2": "...", "answer": "^paris$"}]
        }
    """
    try:
        definition = ContestDefinition.model_validate(request)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail={"ok": False, "error": "bad_json"}) from exc
    try:
        define_contest(db, definition)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail={"ok": False, "error": "bad_json", "message": str(exc)}) from exc
    return {"ok": True}


@router.post("/reset")
def reset(db: Session = Depends(get_db)):
    """Admin: clear all guesses and results, every round back to pending"""
    reset_contest(db)
    return {"ok": True}


@router.post("/people")
def import_people(request: dict, db: Session = Depends(get_db)):
    """
    Admin: replace the roster

    Request:
        {"people": [{"people_id": "...", "db_id": "...", "name": "...",
                     "login": "...", "primary": 1, "secondary": 2}]}
    """
    try:
        roster = RosterDefinition.model_validate(request)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail={"ok": False, "error": "bad_json"}) from exc
    if roster.people is not None:
        people_service.import_roster(db, roster.people)
    return {"ok": True}


@router.get("/people")
def get_people(db: Session = Depends(get_db)):
    return {"people": people_service.list_people(db)}


@router.post("/move-person")
def move_person(request: dict, db: Session = Depends(get_db)):
    """
    Admin: put a person on a team

    Request:
        {"person": "<people_id>", "new_team": "<team_id>"}
    """
    people_id = request.get("person")
    team_id = request.get("new_team")
    if not people_id or not team_id:
        raise HTTPException(status_code=400, detail="person and new_team required")
    return {"ok": people_service.move_person(db, people_id, team_id)}


@router.post("/make-teams")
def make_teams(db: Session = Depends(get_db)):
    """
    Admin: form random teams for everyone waiting for placement

    Response:
        {"ok": true, "removed": 1, "teams": 3, "created": 12,
         "moved_count": 2, "moved": ["p07", "p11"]}

    removed: empty teams deleted; teams: teams created; created: people
    placed; moved_count / moved: people placed outside their primary group.
    """
    report = create_random_teams(db)
    return {"ok": True, **report.model_dump()}


@router.post("/registration-status")
def set_status(request: dict, db: Session = Depends(get_db)):
    """Admin: set the registration phase shown to people"""
    status = _int_param(request, "status")
    return {"ok": True, "status": people_service.set_registration_status(db, status)}
