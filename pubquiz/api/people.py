"""
Registration endpoints for people (identified by people_id)
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from pubquiz.api.deps import current_person
from pubquiz.database import get_db
from pubquiz.db_models import Person
from pubquiz.services import people as people_service


router = APIRouter(prefix="/people", tags=["people"])


@router.get("/status")
def person_status(person: Person = Depends(current_person), db: Session = Depends(get_db)):
    return {
        "person": people_service.person_view(person),
        "status": people_service.get_registration_status(db),
    }


@router.post("/interest")
def register_interest(person: Person = Depends(current_person), db: Session = Depends(get_db)):
    """Ask to be placed on a random team"""
    return {"ok": people_service.register_interest(db, person.people_id)}


@router.post("/preference")
def set_preference(request: dict, person: Person = Depends(current_person),
                   db: Session = Depends(get_db)):
    """
    Request:
        {"preference": "R"}   # R random placement, S self-organized
    """
    try:
        ok = people_service.set_preference(db, person.people_id, request.get("preference"))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"ok": ok}


@router.post("/create-team")
def create_team(person: Person = Depends(current_person), db: Session = Depends(get_db)):
    view = people_service.create_own_team(db, person.people_id)
    return {"ok": view is not None, "person": view}


@router.post("/join")
def join_team(request: dict, person: Person = Depends(current_person),
              db: Session = Depends(get_db)):
    """
    Request:
        {"target_person_id": "<people_id of someone on the team>"}
    """
    target = request.get("target_person_id")
    if not target:
        raise HTTPException(status_code=400, detail="target_person_id required")
    ok = people_service.join_team(db, person.people_id, target)
    if not ok:
        return {"ok": False, "error": "Target person not found or not in a team"}
    return {"ok": True}


@router.post("/leave")
def leave_team(person: Person = Depends(current_person), db: Session = Depends(get_db)):
    return {"ok": people_service.leave_team(db, person.people_id)}


@router.get("/team")
def get_team(person: Person = Depends(current_person), db: Session = Depends(get_db)):
    """The person's team and teammates"""
    team = people_service.person_team(db, person.people_id)
    if team is None:
        return {"team": None, "teammates": []}
    return team


@router.get("/find")
def find_person(search: str = Query(..., min_length=1), person: Person = Depends(current_person),
                db: Session = Depends(get_db)):
    return {"ok": True, "people": people_service.find_people(db, person.people_id, search)}
