"""
Data models for the quiz server (settings, import payloads, results)
"""
from pydantic import BaseModel, Field
from typing import List, Optional


class QuizSettings(BaseModel):
    """Server settings loaded from config/quiz.yaml"""
    database_url: str = "sqlite:///./pubquiz.db"
    team_size: int = 5                  # People per randomly formed team
    wrong_answer_points: float = -1.0   # Ledger value of a non-matching guess
    answer_max_length: int = 32         # Stored guess text is truncated to this
    team_name_max_length: int = 16
    media_dir: str = "media"            # Root for file:// question references
    ledger_batch_size: int = 500        # Rows per fetch when streaming the ledger
    admin_team_id: Optional[str] = None  # Moderator credential created at startup


class TeamDefinition(BaseModel):
    team_id: str
    name: Optional[str] = None


class RoundDefinition(BaseModel):
    round: int
    name: Optional[str] = None
    length: int                         # Seconds per hint phase
    value: int                          # Point multiplier


class QuestionDefinition(BaseModel):
    round: int
    letter: str
    question: str                       # Text, or file://<path> for picture questions
    hint1: Optional[str] = None
    hint2: Optional[str] = None
    answer: str                         # Regular expression matched against normalized guesses


class ContestDefinition(BaseModel):
    """Payload of the admin define command; every section is optional"""
    teams: Optional[List[TeamDefinition]] = None
    rounds: Optional[List[RoundDefinition]] = None
    questions: Optional[List[QuestionDefinition]] = None


class PersonDefinition(BaseModel):
    people_id: str
    db_id: Optional[str] = None
    name: Optional[str] = None
    login: Optional[str] = None
    primary: Optional[int] = None
    secondary: Optional[int] = None


class RosterDefinition(BaseModel):
    people: Optional[List[PersonDefinition]] = None


class RankedTeam(BaseModel):
    """One team's outcome of a round close"""
    team_id: str
    name: Optional[str] = None
    rank: int
    score: float                        # Sum of counted positive points
    tiebreak: float                     # Seconds to the last counted correct answer
    contribution: int                   # Added to the running leaderboard
    round_score: float                  # Round-local display score


class FormationReport(BaseModel):
    """
    Counts returned by the random team formation

    `created` counts people placed on a team (not teams); `teams` counts
    the teams created for them.
    """
    removed: int = 0                    # Empty teams deleted
    teams: int = 0                      # Placeholder teams created
    created: int = 0                    # People placed on a team
    moved_count: int = 0                # People placed outside their primary group
    moved: List[str] = Field(default_factory=list)  # People placed outside their primary group
