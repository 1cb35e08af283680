"""
Question listing with time-filtered hints
"""
import base64
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from pubquiz import state
from pubquiz.core.content import ContentResolver, is_image_reference
from pubquiz.core.lifecycle import schedule_for, visible_hints
from pubquiz.db_models import Question, Round
from pubquiz.services.rounds import displayed_round
from pubquiz.utils import utcnow


FIELDS = ("question", "hint1", "hint2")


def _encode(reference: str, resolver: Optional[ContentResolver]) -> str:
    data = resolver.resolve(reference) if resolver is not None else None
    if data is None:
        return "not_found"
    return base64.b64encode(data).decode("ascii")


def question_view(question: Question, rnd: Round, now: datetime, is_admin: bool,
                  resolver: Optional[ContentResolver] = None) -> Dict:
    """
    One question as a team sees it at `now`

    Hints appear only after their scheduled instant. For picture
    questions a team sees a single picture: the latest visible one of
    question, hint1, hint2. Moderators see every visible picture.
    """
    hint1, hint2 = visible_hints(schedule_for(rnd.started, rnd.length), now,
                                 question.hint1, question.hint2)
    view = {
        "round": rnd.round_id,
        "letter": question.letter,
        "question": question.question,
        "hint1": hint1,
        "hint2": hint2,
    }

    images = [name for name in FIELDS if is_image_reference(view[name])]
    if not images:
        view["question_type"] = "text"
        return view

    view["question_type"] = "image/png"
    if is_admin:
        for name in images:
            view[name] = _encode(view[name], resolver)
    else:
        view["question"] = _encode(view[images[-1]], resolver)
        view["hint1"] = ""
        view["hint2"] = ""
    return view


def current_questions(db: Session, is_admin: bool = False, now: Optional[datetime] = None,
                      resolver: Optional[ContentResolver] = None) -> List[Dict]:
    """Questions of the active round (or the last finished one), by letter"""
    rnd = displayed_round(db)
    if rnd is None:
        return []
    now = now or utcnow()
    resolver = resolver or state.CONTENT_RESOLVER
    questions = db.scalars(
        select(Question).where(Question.round_id == rnd.round_id).order_by(Question.letter)
    )
    return [question_view(q, rnd, now, is_admin, resolver) for q in questions]


def find_question(db: Session, round_id: int, letter: str) -> Optional[Question]:
    return db.get(Question, (round_id, letter))
