"""
Guess submission
"""
import logging
import re
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy.orm import Session

from pubquiz import state
from pubquiz.core.lifecycle import HintSchedule
from pubquiz.core.normalizer import answer_matches
from pubquiz.database import atomic
from pubquiz.services.ledger import append_guess
from pubquiz.services.questions import find_question
from pubquiz.services.rounds import get_active_round
from pubquiz.utils import sanitize_text, utcnow


logger = logging.getLogger(__name__)

LETTER_PATTERN = re.compile(r"^[A-Z]$")


class GuessOutcome(str, Enum):
    """Coarse result handed back to a team; never carries the score"""
    SUBMITTED = "submitted"
    NO_LETTER = "no_letter"
    NO_ACTIVE_ROUND = "no_active_round"


def parse_letter(letter: Optional[str]) -> Optional[str]:
    """Uppercased question letter, or None if it is not a single A-Z letter"""
    if not isinstance(letter, str):
        return None
    candidate = letter.strip().upper()
    return candidate if LETTER_PATTERN.match(candidate) else None


def award_points(answered: str, pattern: str, value: int, schedule: HintSchedule,
                 now: datetime, wrong_points: float) -> float:
    """
    Points an attempt would earn if it ends up counted

    Example (value 4, length 60s):
        correct at +30s  -> 4.0
        correct at +75s  -> 2.0
        correct at +100s -> 1.0
        wrong at any time -> wrong_points
    """
    if not answer_matches(answered, pattern):
        return wrong_points
    return value * schedule.multiplier(now)


def submit_guess(db: Session, team_id: str, letter: Optional[str], text: str,
                 now: Optional[datetime] = None) -> GuessOutcome:
    """
    Record a team's guess for a question of the active round

    Every attempt is appended to the ledger, right or wrong; which one
    counts is decided when the round is scored.

    Args:
        team_id: Submitting team
        letter: Question letter (case-insensitive)
        text: Raw guess text

    Returns:
        GuessOutcome
    """
    parsed = parse_letter(letter)
    if parsed is None:
        return GuessOutcome.NO_LETTER

    settings = state.SETTINGS
    now = now or utcnow()
    answered = sanitize_text(text, settings.answer_max_length)

    with atomic(db):
        rnd = get_active_round(db)
        if rnd is None or rnd.started is None:
            return GuessOutcome.NO_ACTIVE_ROUND
        question = find_question(db, rnd.round_id, parsed)
        if question is None:
            return GuessOutcome.NO_ACTIVE_ROUND

        schedule = HintSchedule(started=rnd.started, length=rnd.length)
        points = award_points(answered, question.answer, rnd.value, schedule, now,
                              settings.wrong_answer_points)
        written = append_guess(db, team_id, rnd.round_id, parsed, answered, points, now)

    if not written:
        return GuessOutcome.NO_ACTIVE_ROUND

    logger.info(
        f"{'✅' if points > 0 else '❌'} Team {team_id} | R{rnd.round_id}/{parsed} | "
        f"'{answered}' | {points:g} pts"
    )
    return GuessOutcome.SUBMITTED
