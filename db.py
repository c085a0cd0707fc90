import logging
import os
import sqlite3
from datetime import datetime, timezone
from typing import Iterable, Optional
from uuid import uuid4

from db_pool import SQLiteConnectionPool
from engines.attempts import AttemptRecord

logger = logging.getLogger(__name__)

DB_PATH = os.getenv("DB_PATH", "data.db")

# Initialize connection pool
_pool = SQLiteConnectionPool(DB_PATH, max_connections=10)


def configure(path: str) -> None:
    """Point the store at ``path`` and reset the connection pool."""
    global DB_PATH, _pool
    _pool.close_all()
    DB_PATH = path
    _pool = SQLiteConnectionPool(path, max_connections=10)


def _exec(sql: str, params: Iterable = ()):
    with _pool.get_connection() as con:
        cur = con.execute(sql, params)
        con.commit()
        return cur


def _query(sql: str, params: Iterable = ()) -> list[sqlite3.Row]:
    with _pool.get_connection() as con:
        cur = con.execute(sql, params)
        return cur.fetchall()


def init() -> None:
    with _pool.get_connection() as con:
        con.executescript(
            """
            CREATE TABLE IF NOT EXISTS quizzes (
              quiz_id      TEXT PRIMARY KEY,
              title        TEXT NOT NULL,
              description  TEXT,
              created_at   TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );

            CREATE TABLE IF NOT EXISTS quiz_attempts (
              id                  TEXT PRIMARY KEY,
              user_id             TEXT NOT NULL,
              quiz_id             TEXT NOT NULL,
              total_questions     INTEGER NOT NULL CHECK (total_questions >= 0),
              correct_answers     INTEGER NOT NULL CHECK (correct_answers >= 0),
              total_time_minutes  REAL NOT NULL DEFAULT 0,
              completed_at        TEXT NOT NULL,
              completed_at_utc    TEXT NOT NULL,
              created_at          TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
              FOREIGN KEY(quiz_id) REFERENCES quizzes(quiz_id) ON DELETE CASCADE
            );

            CREATE INDEX IF NOT EXISTS idx_quiz_attempts_user
              ON quiz_attempts(user_id, quiz_id, completed_at_utc DESC);
            """
        )
        con.commit()


# -------------- quizzes --------------
def upsert_quiz(quiz_id: str, title: Optional[str] = None, description: Optional[str] = None) -> None:
    """Insert ``quiz_id`` or refresh its title/description when provided."""
    _exec(
        """
        INSERT INTO quizzes (quiz_id, title, description)
        VALUES (?, ?, ?)
        ON CONFLICT(quiz_id) DO UPDATE SET
            title = COALESCE(?, quizzes.title),
            description = COALESCE(?, quizzes.description)
        """,
        (quiz_id, title or quiz_id, description, title, description),
    )


def list_quizzes(user_id: str) -> list[sqlite3.Row]:
    """Quizzes ``user_id`` has attempted, most recently practised first."""
    return _query(
        """
        SELECT q.quiz_id, q.title, MAX(a.completed_at_utc) AS last_completed_at
        FROM quiz_attempts a
        JOIN quizzes q ON q.quiz_id = a.quiz_id
        WHERE a.user_id = ?
        GROUP BY q.quiz_id, q.title
        ORDER BY last_completed_at DESC
        """,
        (user_id,),
    )


# -------------- attempts --------------
def _iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def _utc_iso(value: datetime) -> str:
    """Sort key column: every stored value shares the +00:00 offset."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def record_attempt(
    user_id: str,
    quiz_id: str,
    *,
    total_questions: int,
    correct_answers: int,
    total_time_minutes: float,
    completed_at: Optional[datetime] = None,
    quiz_title: Optional[str] = None,
    quiz_description: Optional[str] = None,
    attempt_id: Optional[str] = None,
) -> str:
    """Persist a finished session and return its id."""
    if not user_id:
        raise ValueError("user_id required")
    if total_questions < 0 or correct_answers < 0:
        raise ValueError("question counts must be non-negative")
    if correct_answers > total_questions:
        raise ValueError("correct_answers cannot exceed total_questions")
    if total_time_minutes is None or total_time_minutes < 0:
        raise ValueError("total_time_minutes must be non-negative")

    upsert_quiz(quiz_id, quiz_title, quiz_description)
    attempt_id = attempt_id or uuid4().hex
    completed = completed_at or datetime.now(timezone.utc)
    _exec(
        """
        INSERT INTO quiz_attempts (
            id, user_id, quiz_id, total_questions, correct_answers, total_time_minutes, completed_at, completed_at_utc
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            attempt_id,
            user_id,
            quiz_id,
            int(total_questions),
            int(correct_answers),
            float(total_time_minutes),
            _iso(completed),
            _utc_iso(completed),
        ),
    )
    logger.info("Recorded attempt %s for user %s on quiz %s", attempt_id, user_id, quiz_id)
    return attempt_id


def list_attempts(user_id: str, quiz_id: Optional[str] = None) -> list[sqlite3.Row]:
    """All attempts for ``user_id`` newest first, optionally for one quiz."""
    sql = """
        SELECT a.id, a.user_id, a.quiz_id, q.title AS quiz_title,
               a.total_questions, a.correct_answers, a.total_time_minutes, a.completed_at
        FROM quiz_attempts a
        JOIN quizzes q ON q.quiz_id = a.quiz_id
        WHERE a.user_id = ?
    """
    params: list = [user_id]
    if quiz_id:
        sql += " AND a.quiz_id = ?"
        params.append(quiz_id)
    sql += " ORDER BY a.completed_at_utc DESC, a.created_at DESC"
    return _query(sql, params)


def delete_attempts(user_id: str) -> int:
    cur = _exec("DELETE FROM quiz_attempts WHERE user_id = ?", (user_id,))
    return cur.rowcount


def to_attempt_record(row: sqlite3.Row) -> AttemptRecord:
    return AttemptRecord(
        quiz_id=row["quiz_id"],
        completed_at=datetime.fromisoformat(row["completed_at"]),
        total_questions=int(row["total_questions"]),
        correct_answers=int(row["correct_answers"]),
        total_time_minutes=float(row["total_time_minutes"]),
        attempt_id=row["id"],
        user_id=row["user_id"],
        quiz_title=row["quiz_title"],
    )


def load_attempt_records(user_id: str, quiz_id: Optional[str] = None) -> list[AttemptRecord]:
    return [to_attempt_record(row) for row in list_attempts(user_id, quiz_id)]
