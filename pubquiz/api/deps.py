"""
Request dependencies: database session and credential checks
"""
from typing import Optional

from fastapi import Depends, HTTPException, Query
from sqlalchemy.orm import Session

from pubquiz.database import get_db
from pubquiz.db_models import Person, Team
from pubquiz.services.people import verify_person
from pubquiz.services.team_registry import verify_team


def current_team(team: Optional[str] = Query(None), db: Session = Depends(get_db)) -> Team:
    """Team behind the `team` credential, or 403"""
    row = verify_team(db, team)
    if row is None:
        raise HTTPException(status_code=403, detail="Unknown team")
    return row


def require_admin(team: Team = Depends(current_team)) -> Team:
    if not team.is_admin:
        raise HTTPException(status_code=403, detail="Admin only")
    return team


def current_person(people_id: Optional[str] = Query(None), db: Session = Depends(get_db)) -> Person:
    row = verify_person(db, people_id)
    if row is None:
        raise HTTPException(status_code=403, detail="Unknown person")
    return row
