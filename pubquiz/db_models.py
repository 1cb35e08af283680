"""
Relational schema of the quiz
"""
from sqlalchemy import (
    Boolean, Column, DateTime, Float, ForeignKey, Index, Integer, String, Text,
)

from pubquiz.core.lifecycle import RoundState
from pubquiz.database import Base


class Team(Base):
    __tablename__ = "teams"

    team_id = Column(String(8), primary_key=True)     # Also the team's credential
    name = Column(String(64), nullable=True)
    symbol = Column(String(1), nullable=True)         # Display character (flag)
    is_admin = Column(Boolean, nullable=False, default=False)
    locked = Column(Boolean, nullable=False, default=False)  # Name cannot change
    last_seen = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<Team(team_id={self.team_id}, name='{self.name}', is_admin={self.is_admin})>"


class Round(Base):
    __tablename__ = "rounds"

    round_id = Column(Integer, primary_key=True, autoincrement=False)
    name = Column(String(128), nullable=True)
    value = Column(Integer, nullable=False, default=1)
    length = Column(Integer, nullable=False)          # Seconds per hint phase
    state = Column(Integer, nullable=False, default=int(RoundState.PENDING))
    started = Column(DateTime, nullable=True)         # Null iff PENDING

    __table_args__ = (
        Index("idx_rounds_state", "state"),
    )

    def __repr__(self):
        return f"<Round(round_id={self.round_id}, state={self.state}, started={self.started})>"


class Question(Base):
    __tablename__ = "questions"

    round_id = Column(Integer, ForeignKey("rounds.round_id", ondelete="CASCADE"), primary_key=True)
    letter = Column(String(1), primary_key=True)
    question = Column(Text, nullable=False)
    hint1 = Column(Text, nullable=True)
    hint2 = Column(Text, nullable=True)
    answer = Column(Text, nullable=False)             # Regular expression


class GuessAction(Base):
    """One submission attempt; rows are only ever inserted"""
    __tablename__ = "actions"

    action_id = Column(Integer, primary_key=True, autoincrement=True)
    team_id = Column(String(8), ForeignKey("teams.team_id", ondelete="CASCADE"), nullable=False)
    round_id = Column(Integer, ForeignKey("rounds.round_id", ondelete="CASCADE"), nullable=False)
    letter = Column(String(1), nullable=False)
    time = Column(DateTime, nullable=False)
    answered = Column(String(64), nullable=False)     # Sanitized submitted text
    points = Column(Float, nullable=False)            # Negative for a non-match

    __table_args__ = (
        Index("idx_actions_round_team_letter", "round_id", "team_id", "letter", "time"),
        Index("idx_actions_team", "team_id"),
    )


class RoundResult(Base):
    __tablename__ = "teams_per_round"

    team_id = Column(String(8), ForeignKey("teams.team_id", ondelete="CASCADE"), primary_key=True)
    round_id = Column(Integer, ForeignKey("rounds.round_id", ondelete="CASCADE"), primary_key=True)
    score = Column(Integer, nullable=False, default=0)        # Leaderboard contribution
    round_score = Column(Float, nullable=False, default=0.0)  # Round-local display score


class Person(Base):
    __tablename__ = "people"

    people_id = Column(String(32), primary_key=True)  # Also the person's credential
    db_id = Column(String(64), nullable=True)
    name = Column(String(128), nullable=True)
    login = Column(String(64), nullable=True)
    primary_group = Column(Integer, nullable=True)
    secondary_group = Column(Integer, nullable=True)  # 0 or null: no preference
    preference = Column(String(1), nullable=True)     # 'R' random, 'S' self-organized
    team_id = Column(String(8), ForeignKey("teams.team_id", ondelete="SET NULL"), nullable=True)

    __table_args__ = (
        Index("idx_people_team", "team_id"),
    )


class RegistrationStatus(Base):
    __tablename__ = "teams_status"

    id = Column(Integer, primary_key=True)
    status = Column(Integer, nullable=False, default=0)
