from datetime import datetime, timedelta, timezone

import pytest

import db

BASE = datetime(2024, 4, 1, 9, 0, tzinfo=timezone.utc)


def test_record_and_list_attempts_newest_first(temp_db):
    for day in range(3):
        db.record_attempt(
            "learner",
            "quiz-1",
            total_questions=20,
            correct_answers=15 + day,
            total_time_minutes=1.0,
            completed_at=BASE + timedelta(days=day),
            quiz_title="Sight words",
        )

    rows = db.list_attempts("learner")

    assert [row["correct_answers"] for row in rows] == [17, 16, 15]
    assert rows[0]["quiz_title"] == "Sight words"


def test_list_attempts_filters_by_quiz_and_user(temp_db):
    db.record_attempt("learner", "quiz-1", total_questions=10, correct_answers=9, total_time_minutes=1, completed_at=BASE)
    db.record_attempt("learner", "quiz-2", total_questions=10, correct_answers=8, total_time_minutes=1, completed_at=BASE)
    db.record_attempt("other", "quiz-1", total_questions=10, correct_answers=7, total_time_minutes=1, completed_at=BASE)

    rows = db.list_attempts("learner", "quiz-2")

    assert len(rows) == 1
    assert rows[0]["correct_answers"] == 8
    assert len(db.list_attempts("learner")) == 2


def test_to_attempt_record_round_trip(temp_db):
    attempt_id = db.record_attempt(
        "learner",
        "quiz-1",
        total_questions=12,
        correct_answers=10,
        total_time_minutes=0,
        completed_at=BASE,
    )

    (record,) = db.load_attempt_records("learner")

    assert record.attempt_id == attempt_id
    assert record.completed_at == BASE
    assert record.quiz_title == "quiz-1"
    assert record.fluency_rate == pytest.approx(10.0)


def test_naive_timestamps_are_stored_as_utc(temp_db):
    db.record_attempt(
        "learner", "quiz-1", total_questions=5, correct_answers=5, total_time_minutes=1,
        completed_at=datetime(2024, 4, 1, 9, 0),
    )

    (record,) = db.load_attempt_records("learner")

    assert record.completed_at.tzinfo is not None


@pytest.mark.parametrize(
    "kwargs",
    [
        {"total_questions": 5, "correct_answers": 6, "total_time_minutes": 1},
        {"total_questions": -1, "correct_answers": 0, "total_time_minutes": 1},
        {"total_questions": 5, "correct_answers": 5, "total_time_minutes": -2},
    ],
)
def test_record_attempt_rejects_malformed_counts(temp_db, kwargs):
    with pytest.raises(ValueError):
        db.record_attempt("learner", "quiz-1", **kwargs)


def test_quiz_title_updates_but_is_not_cleared(temp_db):
    db.record_attempt("learner", "quiz-1", total_questions=5, correct_answers=5, total_time_minutes=1,
                      completed_at=BASE, quiz_title="Old title")
    db.record_attempt("learner", "quiz-1", total_questions=5, correct_answers=5, total_time_minutes=1,
                      completed_at=BASE + timedelta(days=1))
    db.upsert_quiz("quiz-1", "New title")

    rows = db.list_quizzes("learner")

    assert [(row["quiz_id"], row["title"]) for row in rows] == [("quiz-1", "New title")]


def test_list_quizzes_orders_by_recent_practice(temp_db):
    db.record_attempt("learner", "quiz-1", total_questions=5, correct_answers=5, total_time_minutes=1, completed_at=BASE)
    db.record_attempt("learner", "quiz-2", total_questions=5, correct_answers=5, total_time_minutes=1,
                      completed_at=BASE + timedelta(days=2))

    assert [row["quiz_id"] for row in db.list_quizzes("learner")] == ["quiz-2", "quiz-1"]


def test_delete_attempts(temp_db):
    db.record_attempt("learner", "quiz-1", total_questions=5, correct_answers=5, total_time_minutes=1, completed_at=BASE)

    assert db.delete_attempts("learner") == 1
    assert db.list_attempts("learner") == []


def test_ordering_compares_instants_across_offsets(temp_db):
    eastern = timezone(timedelta(hours=-5))
    db.record_attempt("learner", "quiz-1", total_questions=5, correct_answers=4, total_time_minutes=1,
                      completed_at=datetime(2024, 4, 1, 23, 0, tzinfo=eastern))
    db.record_attempt("learner", "quiz-2", total_questions=5, correct_answers=3, total_time_minutes=1,
                      completed_at=datetime(2024, 4, 2, 2, 0, tzinfo=timezone.utc))

    assert [row["quiz_id"] for row in db.list_quizzes("learner")] == ["quiz-1", "quiz-2"]
    assert [row["correct_answers"] for row in db.list_attempts("learner")] == [4, 3]

    newest = db.load_attempt_records("learner")[0]
    assert newest.day_key.isoformat() == "2024-04-01"
