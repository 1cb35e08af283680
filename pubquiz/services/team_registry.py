"""Team credentials, naming and listing"""
import logging
import re
import uuid
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from pubquiz import state
from pubquiz.database import atomic
from pubquiz.db_models import Team
from pubquiz.services.rounds import any_round_started
from pubquiz.utils import sanitize_text, seconds_between, utcnow


logger = logging.getLogger(__name__)

CREDENTIAL_PATTERN = re.compile(r"^[A-Fa-f0-9]{8}$")


def generate_team_id() -> str:
    return uuid.uuid4().hex[:8]


def verify_team(db: Session, credential: Optional[str]) -> Optional[Team]:
    """Resolve a team credential; malformed credentials never reach the store"""
    if not credential or not CREDENTIAL_PATTERN.match(credential):
        return None
    return db.get(Team, credential.lower())


def touch_last_seen(db: Session, team: Team, now: Optional[datetime] = None) -> datetime:
    with atomic(db):
        team.last_seen = now or utcnow()
    return team.last_seen


def _unique_name(db: Session, team_id: str, name: str) -> str:
    taken = set(db.scalars(select(Team.name).where(Team.team_id != team_id)))
    if name not in taken:
        return name
    suffix = 2
    while f"{name} {suffix}" in taken:
        suffix += 1
    return f"{name} {suffix}"


def rename_team(db: Session, team_id: str, new_name: str) -> bool:
    """
    Rename a team

    Allowed only before any round has started and while the team's name
    is not locked. A name already used by another team gets a numeric
    suffix.

    Returns:
        True if the name was changed
    """
    settings = state.SETTINGS
    clean = sanitize_text(new_name, settings.team_name_max_length)
    if not clean:
        return False

    with atomic(db):
        if any_round_started(db):
            return False
        team = db.get(Team, team_id)
        if team is None or team.locked:
            return False
        team.name = _unique_name(db, team_id, clean)
    logger.info(f"✏️ Team {team_id} renamed to '{team.name}'")
    return True


def team_view(team: Team, now: Optional[datetime] = None) -> Dict:
    now = now or utcnow()
    return {
        "team_id": team.team_id,
        "name": team.name,
        "symbol": team.symbol,
        "is_admin": team.is_admin,
        "locked": team.locked,
        "last_seen": team.last_seen,
        "last_seen_age": round(seconds_between(now, team.last_seen), 1) if team.last_seen else None,
    }


def list_teams(db: Session, now: Optional[datetime] = None) -> List[Dict]:
    teams = db.scalars(select(Team).order_by(Team.team_id))
    return [team_view(t, now) for t in teams]


def replace_teams(db: Session, teams: List[Dict]) -> int:
    """Replace all non-admin teams; the caller owns the transaction"""
    db.execute(delete(Team).where(Team.is_admin.is_(False)))
    for t in teams:
        db.add(Team(team_id=t["team_id"].lower(), name=t.get("name")))
    return len(teams)


def reset_teams(db: Session) -> None:
    """Restore default names and forget last-seen times; the caller owns the transaction"""
    for team in db.scalars(select(Team)):
        team.last_seen = None
        if team.symbol:
            team.name = f"Team {team.symbol}"


def ensure_admin_team(db: Session, team_id: Optional[str]) -> Optional[Team]:
    """Create the moderator team on first start; an existing row is left as is"""
    if not team_id or not CREDENTIAL_PATTERN.match(team_id):
        return None
    team_id = team_id.lower()
    with atomic(db):
        team = db.get(Team, team_id)
        if team is None:
            team = Team(team_id=team_id, name="Moderator", is_admin=True, locked=True)
            db.add(team)
            logger.info(f"🔑 Created moderator team {team_id}")
    return team
