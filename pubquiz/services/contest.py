"""
Contest-wide operations: definition import, reset and the status query
"""
import logging
import re
from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import delete
from sqlalchemy.orm import Session

from pubquiz.core.normalizer import compile_pattern
from pubquiz.database import atomic
from pubquiz.db_models import Question, Round, Team
from pubquiz.models import ContestDefinition
from pubquiz.services import ledger, rounds, team_registry
from pubquiz.services.guesses import parse_letter
from pubquiz.services.leaderboard import leaderboard_rows
from pubquiz.services.questions import current_questions
from pubquiz.services.scorer import clear_results, team_names
from pubquiz.utils import utcnow


logger = logging.getLogger(__name__)


def validate_definition(definition: ContestDefinition) -> None:
    """
    Reject a definition before anything touches the store

    Raises:
        ValueError: On a team id that is not a valid credential, a bad
            question letter or an answer pattern that does not compile
    """
    for t in definition.teams or []:
        if not team_registry.CREDENTIAL_PATTERN.match(t.team_id):
            raise ValueError(f"Invalid team id '{t.team_id}' (expected 8 hex characters)")
    for q in definition.questions or []:
        if parse_letter(q.letter) is None:
            raise ValueError(f"Round {q.round}: invalid question letter '{q.letter}'")
        try:
            compile_pattern(q.answer)
        except re.error as e:
            raise ValueError(f"Round {q.round}/{q.letter}: invalid answer pattern: {e}")
    for r in definition.rounds or []:
        if r.length <= 0:
            raise ValueError(f"Round {r.round}: length must be positive")


def define_contest(db: Session, definition: ContestDefinition) -> None:
    """
    Load teams, rounds and questions

    Results and the ledger are always cleared. Each section present in
    the payload replaces what is stored: teams replace all non-admin
    teams, rounds replace all rounds (and their questions), questions
    replace the questions of the rounds they mention.
    """
    validate_definition(definition)

    with atomic(db):
        clear_results(db)
        ledger.clear_ledger(db)

        if definition.teams is not None:
            team_registry.replace_teams(db, [t.model_dump() for t in definition.teams])

        if definition.rounds is not None:
            db.execute(delete(Question))
            db.execute(delete(Round))
            for r in definition.rounds:
                db.add(Round(round_id=r.round, name=r.name, length=r.length, value=r.value))
            db.flush()

        if definition.questions is not None:
            by_round = defaultdict(list)
            for q in definition.questions:
                by_round[q.round].append(q)
            for round_id, questions in by_round.items():
                db.execute(delete(Question).where(Question.round_id == round_id))
                for q in questions:
                    db.add(Question(
                        round_id=round_id,
                        letter=parse_letter(q.letter),
                        question=q.question,
                        hint1=q.hint1,
                        hint2=q.hint2,
                        answer=q.answer,
                    ))
    db.expire_all()
    logger.info(
        f"📥 Contest defined | teams: {len(definition.teams or [])} | "
        f"rounds: {len(definition.rounds or [])} | questions: {len(definition.questions or [])}"
    )


def reset_contest(db: Session) -> None:
    """Clear ledger and results, return every round to PENDING, restore team names"""
    with atomic(db):
        clear_results(db)
        ledger.clear_ledger(db)
        rounds.reset_rounds(db)
        team_registry.reset_teams(db)
    db.expire_all()
    logger.info("🔄 Contest reset")


def answers_review(db: Session, team_id: Optional[str] = None) -> List[Dict]:
    """
    Counted attempts of the most recently finished round

    Args:
        team_id: Restrict to one team; all teams when None (moderators)
    """
    rnd = rounds.last_finished_round(db)
    if rnd is None:
        return []
    names = team_names(db) if team_id is None else {}
    review = []
    for row in ledger.counted_attempts(db, rnd.round_id, team_id):
        entry = {
            "round": rnd.round_id,
            "letter": row.letter,
            "time": row.time,
            "answered": row.answered,
            "points": row.points,
            "value": rnd.value,
        }
        if team_id is None:
            entry["name"] = names.get(row.team_id)
        review.append(entry)
    review.sort(key=lambda e: (e["letter"], e.get("name") or ""))
    return review


def get_status(db: Session, team: Team, now: Optional[datetime] = None) -> Dict:
    """
    Everything a team's screen needs in one call

    Moderators additionally get the live progress of the active round
    and the team list. Between rounds, the counted answers of the last
    finished round are included.
    """
    now = now or utcnow()
    team_registry.touch_last_seen(db, team, now)

    active = rounds.get_active_round(db)
    status = {
        "team": team_registry.team_view(team, now),
        "current_round": rounds.round_view(active, now) if active else None,
        "all_rounds": [rounds.round_view(r, now) for r in rounds.list_rounds(db)],
        "overall_totals": leaderboard_rows(db),
        "my_actions": ledger.team_history(db, team.team_id),
        "questions": current_questions(db, is_admin=team.is_admin, now=now),
    }
    if team.is_admin:
        status["round_progress"] = ledger.round_progress(db, active.round_id) if active else []
        status["all_teams"] = team_registry.list_teams(db, now)
    if active is None:
        if team.is_admin:
            status["all_answers"] = answers_review(db)
        else:
            status["team_answers"] = answers_review(db, team.team_id)
    return status
