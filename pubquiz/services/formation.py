"""
Team formation service - places people who asked for a random team
"""
import logging
import random
from typing import List, Optional

from sqlalchemy import delete, exists, select
from sqlalchemy.orm import Session

from pubquiz import state
from pubquiz.core.formation import Candidate, plan_formation, target_team_count
from pubquiz.database import atomic
from pubquiz.db_models import Person, Team
from pubquiz.models import FormationReport
from pubquiz.services.team_registry import generate_team_id


logger = logging.getLogger(__name__)

RANDOM_PLACEMENT = "R"

# Team symbols in allocation order, with the name each one gets
SYMBOLS = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
SYMBOL_NAMES = [
    "Alpha", "Bravo", "Charlie", "Delta", "Echo", "Foxtrot", "Golf", "Hotel",
    "India", "Juliett", "Kilo", "Lima", "Mike", "November", "Oscar", "Papa",
    "Quebec", "Romeo", "Sierra", "Tango", "Uniform", "Victor", "Whiskey",
    "X-ray", "Yankee", "Zulu", "Zero", "One", "Two", "Three", "Four", "Five",
    "Six", "Seven", "Eight", "Nine",
]


def random_candidates(db: Session) -> List[Candidate]:
    """Unassigned people who asked for random placement"""
    people = db.scalars(
        select(Person)
        .where(Person.preference == RANDOM_PLACEMENT, Person.team_id.is_(None))
        .order_by(Person.people_id)
    )
    return [Candidate(p.people_id, p.primary_group, p.secondary_group) for p in people]


def remove_empty_teams(db: Session) -> int:
    """Delete non-admin teams without members"""
    result = db.execute(
        delete(Team)
        .where(Team.is_admin.is_(False), ~exists().where(Person.team_id == Team.team_id))
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


def create_placeholder_teams(db: Session, count: int) -> List[Team]:
    """
    Create `count` empty teams named after the next free symbols

    Symbols run A-Z then 0-9; once they are used up, new teams get no
    symbol and a generic name.
    """
    used = set(db.scalars(select(Team.symbol).where(Team.symbol.is_not(None))))
    free = [s for s in SYMBOLS if s not in used]
    teams = []
    for i in range(count):
        symbol = free[i] if i < len(free) else None
        team_id = generate_team_id()
        name = f"Team {SYMBOL_NAMES[SYMBOLS.index(symbol)]}" if symbol else f"Team {team_id[:4]}"
        team = Team(team_id=team_id, name=name, symbol=symbol)
        db.add(team)
        teams.append(team)
    db.flush()
    return teams


def create_random_teams(db: Session, rng: Optional[random.Random] = None) -> FormationReport:
    """
    Form teams for everyone waiting for random placement

    Empty teams are dropped, T fresh placeholder teams are created, the
    candidates are planned onto them and teams still empty afterwards are
    dropped again. Everything commits together or not at all.

    Args:
        rng: Random source; a fresh unseeded one when omitted

    Returns:
        FormationReport
    """
    settings = state.SETTINGS
    with atomic(db):
        removed = remove_empty_teams(db)
        people = random_candidates(db)
        count = target_team_count(len(people), settings.team_size)
        created = create_placeholder_teams(db, count)

        destinations = sorted(t.team_id for t in created)
        plan = plan_formation(people, destinations, settings.team_size, rng)
        for person in db.scalars(select(Person).where(Person.people_id.in_(list(plan.assignments)))):
            person.team_id = plan.assignments[person.people_id]
        db.flush()

        removed += remove_empty_teams(db)

    report = FormationReport(
        removed=removed,
        teams=len(created),
        created=len(plan.assignments),
        moved_count=len(plan.moves),
        moved=sorted(plan.moves),
    )
    logger.info(
        f"👥 Formed {report.teams} teams for {report.created} people | "
        f"{report.moved_count} moved across groups | {report.removed} empty teams removed"
    )
    return report
