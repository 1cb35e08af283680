"""
People registry - roster import and registration actions
"""
import logging
from typing import Dict, List, Optional

from sqlalchemy import delete, or_, select, update
from sqlalchemy.orm import Session

from pubquiz.database import atomic
from pubquiz.db_models import Person, RegistrationStatus, Team
from pubquiz.models import PersonDefinition
from pubquiz.services.team_registry import generate_team_id


logger = logging.getLogger(__name__)

PREFERENCES = ("R", "S")  # random placement, self-organized
SEARCH_LIMIT = 10


def person_view(person: Person) -> Dict:
    return {
        "people_id": person.people_id,
        "db_id": person.db_id,
        "name": person.name,
        "login": person.login,
        "primary_group": person.primary_group,
        "secondary_group": person.secondary_group,
        "preference": person.preference,
        "team_id": person.team_id,
    }


def verify_person(db: Session, people_id: Optional[str]) -> Optional[Person]:
    if not people_id:
        return None
    return db.get(Person, people_id)


def import_roster(db: Session, people: List[PersonDefinition]) -> int:
    """Replace the whole roster in one transaction"""
    with atomic(db):
        db.execute(delete(Person))
        db.add_all(
            Person(
                people_id=p.people_id,
                db_id=p.db_id,
                name=p.name,
                login=p.login,
                primary_group=p.primary,
                secondary_group=p.secondary,
            )
            for p in people
        )
    logger.info(f"📋 Imported roster of {len(people)} people")
    return len(people)


def list_people(db: Session) -> List[Dict]:
    return [person_view(p) for p in db.scalars(select(Person).order_by(Person.people_id))]


def set_preference(db: Session, people_id: str, preference: str) -> bool:
    """
    Record whether a person wants random placement ('R') or organizes
    their own team ('S')

    Raises:
        ValueError: If preference is not 'R' or 'S'
    """
    preference = (preference or "").upper()
    if preference not in PREFERENCES:
        raise ValueError(f"Invalid preference: {preference}")
    with atomic(db):
        result = db.execute(
            update(Person).where(Person.people_id == people_id).values(preference=preference)
            .execution_options(synchronize_session=False)
        )
    db.expire_all()
    return result.rowcount > 0


def register_interest(db: Session, people_id: str) -> bool:
    return set_preference(db, people_id, "R")


def move_person(db: Session, people_id: str, team_id: str) -> bool:
    """Admin: put a person on a team"""
    with atomic(db):
        if db.get(Team, team_id) is None:
            return False
        person = db.get(Person, people_id)
        if person is None:
            return False
        person.team_id = team_id
    return True


def create_own_team(db: Session, people_id: str) -> Optional[Dict]:
    """Start a self-organized team with this person as its first member"""
    with atomic(db):
        person = db.get(Person, people_id)
        if person is None:
            return None
        team_id = generate_team_id()
        db.add(Team(team_id=team_id, name=f"Team {team_id[:4]}"))
        db.flush()
        person.team_id = team_id
        person.preference = "S"
    logger.info(f"🆕 {people_id} created team {team_id}")
    return person_view(person)


def join_team(db: Session, people_id: str, target_people_id: str) -> bool:
    """Join the team another person is on"""
    with atomic(db):
        target = db.get(Person, target_people_id)
        person = db.get(Person, people_id)
        if target is None or target.team_id is None or person is None:
            return False
        person.team_id = target.team_id
        person.preference = "S"
    return True


def leave_team(db: Session, people_id: str) -> bool:
    with atomic(db):
        person = db.get(Person, people_id)
        if person is None:
            return False
        person.team_id = None
    return True


def person_team(db: Session, people_id: str) -> Optional[Dict]:
    """The person's team with its members, or None while unassigned"""
    person = db.get(Person, people_id)
    if person is None or person.team_id is None:
        return None
    team = db.get(Team, person.team_id)
    if team is None:
        return None
    members = db.scalars(select(Person).where(Person.team_id == team.team_id).order_by(Person.name))
    return {
        "team": {"team_id": team.team_id, "name": team.name, "symbol": team.symbol},
        "teammates": [
            {"db_id": m.db_id, "name": m.name, "login": m.login} for m in members
        ],
    }


def find_people(db: Session, people_id: str, search: str) -> List[Dict]:
    """Name or login substring search, excluding the searcher"""
    stmt = (
        select(Person)
        .where(
            or_(
                Person.name.icontains(search, autoescape=True),
                Person.login.icontains(search, autoescape=True),
            ),
            Person.people_id != people_id,
        )
        .order_by(Person.name)
        .limit(SEARCH_LIMIT)
    )
    return [
        {"people_id": p.people_id, "name": p.name, "login": p.login, "team_id": p.team_id}
        for p in db.scalars(stmt)
    ]


def get_registration_status(db: Session) -> int:
    row = db.scalars(select(RegistrationStatus).order_by(RegistrationStatus.id)).first()
    return row.status if row else 0


def set_registration_status(db: Session, status: int) -> int:
    with atomic(db):
        row = db.scalars(select(RegistrationStatus).order_by(RegistrationStatus.id)).first()
        if row is None:
            row = RegistrationStatus(id=1, status=status)
            db.add(row)
        row.status = status
    logger.info(f"📣 Registration status set to {status}")
    return status
