"""
Health check endpoint
"""
from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from pubquiz.database import get_db
from pubquiz.db_models import Round, Team


router = APIRouter(tags=["health"])


@router.get("/")
def health_check(db: Session = Depends(get_db)):
    """Health check endpoint"""
    return {
        "status": "ok",
        "message": "Pub Quiz Server",
        "version": "1.0.0",
        "total_rounds": db.scalar(select(func.count()).select_from(Round)),
        "total_teams": db.scalar(select(func.count()).select_from(Team)),
    }
