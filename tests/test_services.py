"""
Service tests against an in-memory SQLite store
"""
import base64
import random
from datetime import datetime, timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from pubquiz.core.lifecycle import RoundState
from pubquiz.db_models import GuessAction, Person, Round, RoundResult, Team
from pubquiz.models import ContestDefinition, PersonDefinition
from pubquiz.services import formation as formation_service
from pubquiz.services import people as people_service
from pubquiz.services import rounds as rounds_service
from pubquiz.services import team_registry
from pubquiz.services.contest import answers_review, define_contest, get_status, reset_contest
from pubquiz.services.formation import create_random_teams
from pubquiz.services.guesses import GuessOutcome, submit_guess
from pubquiz.services.leaderboard import get_leaderboard_data, round_standings
from pubquiz.services.questions import current_questions
from pubquiz.services.rounds import (
    change_round_state,
    finish_round,
    get_active_round,
    rescore_round,
    start_round,
)
from pubquiz.services.team_registry import ensure_admin_team, rename_team, verify_team

from conftest import ADMIN_ID, TEAM_IDS


T0 = datetime(2026, 3, 14, 20, 0, 0)
A, B, C, D = TEAM_IDS


def at(seconds):
    return T0 + timedelta(seconds=seconds)


def ledger_size(db):
    return db.scalar(select(func.count()).select_from(GuessAction))


def results(db, round_id):
    rows = db.scalars(
        select(RoundResult).where(RoundResult.round_id == round_id).order_by(RoundResult.team_id)
    )
    return [(r.team_id, r.score, r.round_score) for r in rows]


# ==================== ROUND LIFECYCLE ====================

def test_start_round_stamps_time(contest):
    """PENDING -> ACTIVE sets the start time"""
    assert start_round(contest, 3, now=T0)
    rnd = contest.get(Round, 3)
    assert rnd.state == RoundState.ACTIVE
    assert rnd.started == T0


def test_start_refused_when_another_round_active(contest):
    """Only one round may be active"""
    assert start_round(contest, 1, now=T0)
    assert not start_round(contest, 3, now=at(5))
    assert contest.get(Round, 3).state == RoundState.PENDING


def test_start_refused_when_not_pending(contest):
    assert start_round(contest, 3, now=T0)
    assert not start_round(contest, 3, now=at(5))
    assert contest.get(Round, 3).started == T0


def test_finish_twice_rejected(contest):
    """A finished round is not scored again by a second finish"""
    start_round(contest, 3, now=T0)
    assert finish_round(contest, 3) is not None
    assert finish_round(contest, 3) is None
    assert change_round_state(contest, 3, RoundState.FINISHED) == {"ok": False}


def test_finish_requires_active(contest):
    assert finish_round(contest, 3) is None
    assert contest.get(Round, 3).state == RoundState.PENDING


def test_reopen_clears_start(contest):
    """Back to PENDING from any state, start time cleared"""
    start_round(contest, 3, now=T0)
    finish_round(contest, 3)
    assert change_round_state(contest, 3, RoundState.PENDING) == {"ok": True}
    rnd = contest.get(Round, 3)
    assert rnd.state == RoundState.PENDING
    assert rnd.started is None


def test_change_round_state_rejects_unknown_state(contest):
    with pytest.raises(ValueError):
        change_round_state(contest, 3, 7)


# ==================== GUESSES ====================

def test_guess_without_active_round(contest):
    """Nothing is recorded while no round is active"""
    assert submit_guess(contest, A, "B", "Kilimanjaro", now=T0) == GuessOutcome.NO_ACTIVE_ROUND
    assert ledger_size(contest) == 0


def test_guess_bad_letter(contest):
    start_round(contest, 3, now=T0)
    assert submit_guess(contest, A, "BB", "x", now=at(1)) == GuessOutcome.NO_LETTER
    assert submit_guess(contest, A, "7", "x", now=at(1)) == GuessOutcome.NO_LETTER
    assert submit_guess(contest, A, 5, "x", now=at(1)) == GuessOutcome.NO_LETTER
    assert ledger_size(contest) == 0


def test_guess_unknown_letter_is_noop(contest):
    """A letter the active round does not have writes nothing"""
    start_round(contest, 3, now=T0)
    assert submit_guess(contest, A, "Z", "x", now=at(1)) == GuessOutcome.NO_ACTIVE_ROUND
    assert ledger_size(contest) == 0


def test_guess_records_every_attempt(contest):
    """Right, wrong and repeated attempts all land in the ledger"""
    start_round(contest, 3, now=T0)
    assert submit_guess(contest, A, "b", "Everest", now=at(10)) == GuessOutcome.SUBMITTED
    assert submit_guess(contest, A, "B", "Kilimanjaro", now=at(20)) == GuessOutcome.SUBMITTED
    assert submit_guess(contest, A, "B", "Kilimanjaro", now=at(95)) == GuessOutcome.SUBMITTED

    rows = contest.scalars(select(GuessAction).order_by(GuessAction.action_id)).all()
    assert [(r.letter, r.answered, r.points) for r in rows] == [
        ("B", "Everest", -1.0),
        ("B", "Kilimanjaro", 4.0),
        ("B", "Kilimanjaro", 1.0),
    ]


def test_guess_text_is_sanitized(contest):
    """Stored text is stripped of markup and truncated"""
    start_round(contest, 3, now=T0)
    submit_guess(contest, A, "A", "<script>Paris</script>" + "x" * 40, now=at(1))
    stored = contest.scalar(select(GuessAction.answered))
    assert "<" not in stored
    assert len(stored) == 32


# ==================== SCORING ====================

def test_end_to_end_round(contest):
    """A right at +30s, C right at +90s, four teams, value 4"""
    start_round(contest, 3, now=T0)
    submit_guess(contest, A, "B", "Kilimanjaro", now=at(30))
    submit_guess(contest, B, "B", "Everest", now=at(40))
    submit_guess(contest, C, "B", "mount kilimanjaro", now=at(90))

    outcome = change_round_state(contest, 3, RoundState.FINISHED)
    assert outcome["ok"]
    winners = outcome["winners"]
    assert [(w["team_id"], w["rank"], w["contribution"]) for w in winners] == [
        (A, 1, 401),
        (C, 2, 400),
    ]
    assert results(contest, 3) == [(A, 401, 403.0), (C, 400, 202.0)]

    board = get_leaderboard_data(contest)
    totals = {t["team_id"]: t["total_score"] for t in board["teams"]}
    assert totals == {A: 401, B: 0, C: 400, D: 0}
    assert board["teams"][0]["team_id"] == A
    assert board["rounds"] == [1, 3]


def test_moderator_guesses_do_not_rank(contest):
    start_round(contest, 3, now=T0)
    submit_guess(contest, ADMIN_ID, "A", "Paris", now=at(1))
    submit_guess(contest, D, "A", "Paris", now=at(2))
    ranked = finish_round(contest, 3)
    assert [r.team_id for r in ranked] == [D]


def test_rescore_is_idempotent(contest):
    """Re-scoring overwrites the same rows instead of adding to them"""
    start_round(contest, 3, now=T0)
    submit_guess(contest, A, "A", "Paris", now=at(5))
    submit_guess(contest, B, "A", "Paris", now=at(8))
    finish_round(contest, 3)
    before = results(contest, 3)

    rescore_round(contest, 3)
    rescore_round(contest, 3)
    assert results(contest, 3) == before
    totals = {t["team_id"]: t["total_score"] for t in get_leaderboard_data(contest)["teams"]}
    assert totals[A] == 401


def test_rescore_requires_finished(contest):
    start_round(contest, 3, now=T0)
    assert rescore_round(contest, 3) is None
    assert results(contest, 3) == []


def test_round_standings(contest):
    start_round(contest, 3, now=T0)
    submit_guess(contest, A, "A", "Paris", now=at(5))
    submit_guess(contest, B, "A", "Paris", now=at(4))
    finish_round(contest, 3)
    standings = round_standings(contest, 3)
    assert [s["team_id"] for s in standings] == [B, A]


# ==================== QUESTIONS AND STATUS ====================

def test_hints_appear_over_time(contest):
    start_round(contest, 3, now=T0)
    early = current_questions(contest, now=at(30))
    assert [q["letter"] for q in early] == ["A", "B"]
    assert early[0]["hint1"] is None and early[0]["hint2"] is None

    middle = current_questions(contest, now=at(61))
    assert middle[0]["hint1"] == "Seine" and middle[0]["hint2"] is None

    late = current_questions(contest, now=at(91))
    assert late[0]["hint2"] == "Eiffel"


class StubResolver:
    def resolve(self, reference):
        return reference.encode("ascii")


def test_picture_questions(contest):
    """Teams see only the latest visible picture, moderators see all of them"""
    define_contest(contest, ContestDefinition.model_validate({
        "questions": [{"round": 1, "letter": "A", "question": "file://q.png",
                       "hint1": "file://h1.png", "hint2": "Plain", "answer": "x"}],
    }))
    start_round(contest, 1, now=T0)

    def encoded(ref):
        return base64.b64encode(ref.encode("ascii")).decode("ascii")

    team_view = current_questions(contest, now=at(70), resolver=StubResolver())[0]
    assert team_view["question_type"] == "image/png"
    assert team_view["question"] == encoded("file://h1.png")
    assert team_view["hint1"] == "" and team_view["hint2"] == ""

    admin_view = current_questions(contest, is_admin=True, now=at(70), resolver=StubResolver())[0]
    assert admin_view["question"] == encoded("file://q.png")
    assert admin_view["hint1"] == encoded("file://h1.png")
    assert admin_view["hint2"] is None


def test_picture_without_resolver(contest):
    define_contest(contest, ContestDefinition.model_validate({
        "questions": [{"round": 1, "letter": "A", "question": "file://q.png", "answer": "x"}],
    }))
    start_round(contest, 1, now=T0)
    assert current_questions(contest, now=at(1))[0]["question"] == "not_found"


def test_status_for_team(contest):
    team = verify_team(contest, A)
    start_round(contest, 3, now=T0)
    submit_guess(contest, A, "A", "Lyon", now=at(3))

    status = get_status(contest, team, now=at(10))
    assert status["current_round"]["round"] == 3
    assert status["current_round"]["remaining"] == 110
    assert [r["round"] for r in status["all_rounds"]] == [1, 3]
    assert status["my_actions"] == [
        {"time": at(3), "round": 3, "letter": "A", "answered": "Lyon"},
    ]
    assert "points" not in status["my_actions"][0]
    assert "round_progress" not in status
    assert contest.get(Team, A).last_seen == at(10)


def test_status_for_moderator(contest):
    admin = verify_team(contest, ADMIN_ID)
    start_round(contest, 3, now=T0)
    submit_guess(contest, A, "A", "Lyon", now=at(3))

    status = get_status(contest, admin, now=at(10))
    assert [(p["team"], p["letter"], p["points"]) for p in status["round_progress"]] == [
        ("Team 1", "A", -1.0),
    ]
    assert len(status["all_teams"]) == 5


def test_answers_review_after_finish(contest):
    start_round(contest, 3, now=T0)
    submit_guess(contest, A, "A", "Lyon", now=at(3))
    submit_guess(contest, A, "A", "Paris", now=at(6))
    submit_guess(contest, B, "B", "Kilimanjaro", now=at(9))
    finish_round(contest, 3)

    own = answers_review(contest, A)
    assert [(e["letter"], e["answered"], e["points"]) for e in own] == [("A", "Paris", 4.0)]
    assert "name" not in own[0]

    everyone = answers_review(contest)
    assert [(e["letter"], e["name"]) for e in everyone] == [("A", "Team 1"), ("B", "Team 2")]

    status = get_status(contest, verify_team(contest, A), now=at(200))
    assert status["current_round"] is None
    assert status["team_answers"] == own


# ==================== CONTEST DATA ====================

def test_define_rejects_bad_pattern(contest):
    with pytest.raises(ValueError):
        define_contest(contest, ContestDefinition.model_validate({
            "questions": [{"round": 1, "letter": "A", "question": "?", "answer": "(open"}],
        }))
    assert contest.scalar(select(func.count()).select_from(Round)) == 2


def test_define_rejects_bad_letter(contest):
    with pytest.raises(ValueError):
        define_contest(contest, ContestDefinition.model_validate({
            "questions": [{"round": 1, "letter": "AB", "question": "?", "answer": "x"}],
        }))


def test_define_keeps_moderator(contest):
    """Replacing teams leaves moderator teams alone"""
    define_contest(contest, ContestDefinition.model_validate({
        "teams": [{"team_id": "EEEE0005", "name": "Owls"}],
    }))
    ids = set(contest.scalars(select(Team.team_id)))
    assert ids == {ADMIN_ID, "eeee0005"}


def test_reset_contest(contest):
    start_round(contest, 3, now=T0)
    submit_guess(contest, A, "A", "Paris", now=at(5))
    finish_round(contest, 3)

    reset_contest(contest)
    assert ledger_size(contest) == 0
    assert results(contest, 3) == []
    assert all(r.state == RoundState.PENDING and r.started is None
               for r in contest.scalars(select(Round)))
    assert get_active_round(contest) is None


# ==================== TEAMS ====================

def test_verify_team_credentials(contest):
    assert verify_team(contest, A.upper()).team_id == A
    assert verify_team(contest, "nothex!!") is None
    assert verify_team(contest, "ffff9999") is None
    assert verify_team(contest, None) is None


def test_rename_before_start(contest):
    assert rename_team(contest, A, "Owls")
    assert rename_team(contest, B, "Owls")
    assert contest.get(Team, A).name == "Owls"
    assert contest.get(Team, B).name == "Owls 2"


def test_rename_truncates(contest):
    assert rename_team(contest, A, "The Extremely Long Quiz Team Name")
    assert contest.get(Team, A).name == "The Extremely Lo"


def test_rename_refused_after_start(contest):
    start_round(contest, 1, now=T0)
    assert not rename_team(contest, A, "Owls")
    assert contest.get(Team, A).name == "Team 1"


def test_rename_refused_when_locked(contest):
    contest.get(Team, A).locked = True
    contest.commit()
    assert not rename_team(contest, A, "Owls")
    assert not rename_team(contest, B, "<>!")


def test_ensure_admin_team_idempotent(db):
    ensure_admin_team(db, ADMIN_ID)
    ensure_admin_team(db, ADMIN_ID)
    assert db.scalar(select(func.count()).select_from(Team)) == 1
    assert db.get(Team, ADMIN_ID).is_admin
    assert ensure_admin_team(db, "not-a-credential") is None


# ==================== PEOPLE AND FORMATION ====================

def import_people(db, groups):
    roster = [
        PersonDefinition(people_id=f"p{i:02d}", name=f"Person {i:02d}", login=f"user{i:02d}",
                         primary=group, secondary=None)
        for i, group in enumerate(groups)
    ]
    people_service.import_roster(db, roster)
    return [p.people_id for p in roster]


def test_create_random_teams(db):
    ids = import_people(db, [1] * 5 + [2] * 4 + [3] * 3)
    for pid in ids:
        assert people_service.register_interest(db, pid)
    db.add(Team(team_id="eeee0005", name="Leftover"))
    db.commit()

    report = create_random_teams(db, rng=random.Random(4))
    assert report.teams == 3
    assert report.created == 12
    assert report.removed == 1

    teams = db.scalars(select(Team).order_by(Team.symbol)).all()
    assert [t.symbol for t in teams] == ["A", "B", "C"]
    assert [t.name for t in teams] == ["Team Alpha", "Team Bravo", "Team Charlie"]
    sizes = sorted(
        db.scalar(select(func.count()).select_from(Person).where(Person.team_id == t.team_id))
        for t in teams
    )
    assert sizes == [4, 4, 4]


def test_create_random_teams_skips_self_organized(db):
    ids = import_people(db, [1, 1, 2])
    people_service.register_interest(db, ids[0])
    people_service.set_preference(db, ids[1], "S")

    report = create_random_teams(db, rng=random.Random(1))
    assert report.created == 1
    assert db.get(Person, ids[1]).team_id is None
    assert db.get(Person, ids[2]).team_id is None


def test_create_random_teams_nobody_waiting(db):
    report = create_random_teams(db, rng=random.Random(1))
    assert report.model_dump() == {"removed": 0, "teams": 0, "created": 0, "moved_count": 0, "moved": []}


def test_set_preference_validates(db):
    ids = import_people(db, [1])
    with pytest.raises(ValueError):
        people_service.set_preference(db, ids[0], "X")
    assert people_service.set_preference(db, ids[0], "s")
    assert db.get(Person, ids[0]).preference == "S"
    assert not people_service.set_preference(db, "nobody", "R")


def test_self_organized_team(db):
    first, second, third = import_people(db, [1, 2, 3])
    view = people_service.create_own_team(db, first)
    assert view["preference"] == "S"
    assert view["team_id"] is not None

    assert people_service.join_team(db, second, first)
    assert not people_service.join_team(db, second, third)

    team = people_service.person_team(db, second)
    assert team["team"]["team_id"] == view["team_id"]
    assert [m["name"] for m in team["teammates"]] == ["Person 00", "Person 01"]

    assert people_service.leave_team(db, second)
    assert people_service.person_team(db, second) is None


def test_find_people(db):
    import_people(db, [1] * 12)
    found = people_service.find_people(db, "p00", "person")
    assert len(found) == people_service.SEARCH_LIMIT
    assert all(p["people_id"] != "p00" for p in found)
    assert people_service.find_people(db, "p00", "user11")[0]["people_id"] == "p11"
    assert people_service.find_people(db, "p00", "%") == []


def test_move_person(contest):
    import_people(contest, [1])
    assert people_service.move_person(contest, "p00", A)
    assert contest.get(Person, "p00").team_id == A
    assert not people_service.move_person(contest, "p00", "ffff9999")


def test_registration_status(db):
    assert people_service.get_registration_status(db) == 0
    people_service.set_registration_status(db, 2)
    people_service.set_registration_status(db, 3)
    assert people_service.get_registration_status(db) == 3



def test_create_random_teams_reports_moves(db):
    """Surplus of a large group fills a small one and is reported"""
    ids = import_people(db, [1] * 5 + [2])
    for pid in ids:
        people_service.register_interest(db, pid)

    report = create_random_teams(db, rng=random.Random(8))
    assert report.teams == 2
    assert report.created == 6
    assert report.moved_count == 1
    assert len(report.moved) == 1
    assert report.moved[0] in ids[:5]


def test_define_rejects_team_id_that_cannot_log_in(contest):
    """Team ids must be usable as credentials"""
    with pytest.raises(ValueError):
        define_contest(contest, ContestDefinition.model_validate({
            "teams": [{"team_id": "team-1", "name": "Owls"}],
        }))
    assert set(contest.scalars(select(Team.team_id))) == {ADMIN_ID, *TEAM_IDS}


# ==================== ROLLBACK ON STORE FAILURE ====================

def store_failure(*args, **kwargs):
    raise OperationalError("INSERT ...", {}, Exception("disk I/O error"))


def snapshot(db):
    teams = sorted(db.scalars(select(Team.team_id)))
    people = sorted(db.execute(select(Person.people_id, Person.team_id)).all())
    return teams, people


def test_formation_failure_leaves_roster_untouched(db, monkeypatch):
    """A failure after assignment rolls back teams and people together"""
    ids = import_people(db, [1] * 4 + [2] * 3)
    for pid in ids:
        people_service.register_interest(db, pid)
    db.add(Team(team_id="eeee0005", name="Leftover"))
    db.commit()
    before = snapshot(db)

    original = formation_service.remove_empty_teams
    calls = []

    def fail_on_second_cleanup(session):
        calls.append(1)
        if len(calls) == 2:
            store_failure()
        return original(session)

    monkeypatch.setattr(formation_service, "remove_empty_teams", fail_on_second_cleanup)
    with pytest.raises(OperationalError):
        create_random_teams(db, rng=random.Random(2))

    assert len(calls) == 2
    assert snapshot(db) == before
    assert all(p.team_id is None for p in db.scalars(select(Person)))


def test_finish_failure_keeps_round_active(contest, monkeypatch):
    """The round is not FINISHED unless its results were written"""
    start_round(contest, 3, now=T0)
    submit_guess(contest, A, "A", "Paris", now=at(5))

    monkeypatch.setattr(rounds_service, "write_round_results", store_failure)
    with pytest.raises(OperationalError):
        finish_round(contest, 3)

    assert contest.get(Round, 3).state == RoundState.ACTIVE
    assert results(contest, 3) == []
    assert ledger_size(contest) == 1


def test_define_failure_keeps_ledger(contest, monkeypatch):
    """Clearing the ledger is undone when a later step fails"""
    start_round(contest, 3, now=T0)
    submit_guess(contest, A, "A", "Paris", now=at(5))
    finish_round(contest, 3)
    teams_before = snapshot(contest)[0]

    monkeypatch.setattr(team_registry, "replace_teams", store_failure)
    with pytest.raises(OperationalError):
        define_contest(contest, ContestDefinition.model_validate({
            "teams": [{"team_id": "eeee0005", "name": "Owls"}],
        }))

    assert ledger_size(contest) == 1
    assert results(contest, 3) == [(A, 401, 403.0)]
    assert snapshot(contest)[0] == teams_before
