"""
Shared fixtures: default settings, an in-memory store and a small contest
"""
import pytest
from sqlalchemy.orm import Session

from pubquiz import state
from pubquiz.database import Base, build_engine
from pubquiz.models import ContestDefinition, QuizSettings
from pubquiz.services.contest import define_contest
from pubquiz.services.team_registry import ensure_admin_team


ADMIN_ID = "a0a0a0a0"
TEAM_IDS = ["aaaa0001", "bbbb0002", "cccc0003", "dddd0004"]


@pytest.fixture(autouse=True)
def settings(monkeypatch):
    """Every test starts from default settings and no picture resolver"""
    quiz_settings = QuizSettings(database_url="sqlite://")
    monkeypatch.setattr(state, "SETTINGS", quiz_settings)
    monkeypatch.setattr(state, "CONTENT_RESOLVER", None)
    return quiz_settings


@pytest.fixture
def db():
    from pubquiz import db_models  # noqa: F401

    engine = build_engine("sqlite://")
    Base.metadata.create_all(engine)
    session = Session(bind=engine, autoflush=False, expire_on_commit=False)
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def contest(db):
    """Four teams, a moderator, round 1 (value 1) and round 3 (value 4)"""
    definition = ContestDefinition.model_validate({
        "teams": [{"team_id": t, "name": f"Team {i}"} for i, t in enumerate(TEAM_IDS, 1)],
        "rounds": [
            {"round": 1, "name": "Warm-up", "length": 60, "value": 1},
            {"round": 3, "name": "Geography", "length": 60, "value": 4},
        ],
        "questions": [
            {"round": 1, "letter": "A", "question": "2 + 2?", "hint1": "Even",
             "hint2": "Not five", "answer": "^(4|four)$"},
            {"round": 3, "letter": "A", "question": "Capital of France?", "hint1": "Seine",
             "hint2": "Eiffel", "answer": "^paris$"},
            {"round": 3, "letter": "B", "question": "Highest mountain in Africa?",
             "hint1": "Tanzania", "hint2": "Kili...", "answer": "kilimanjaro"},
        ],
    })
    ensure_admin_team(db, ADMIN_ID)
    define_contest(db, definition)
    return db
