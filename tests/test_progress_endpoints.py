import asyncio
import json
from datetime import datetime, timedelta, timezone
from typing import Optional
from urllib.parse import urlencode

import pytest
from fastapi import HTTPException

import app
import db
from engines.advice import INSUFFICIENT_DATA_TIP
from schemas import AnalyzeRequest, AttemptCreateBody

BASE = datetime(2024, 6, 3, 15, 0, tzinfo=timezone.utc)


async def _call_app(method: str, path: str, *, payload: Optional[dict] = None, query: Optional[dict] = None):
    body = b""
    headers = [(b"host", b"testserver")]
    if payload is not None:
        body = json.dumps(payload).encode("utf-8")
        headers.extend(
            [
                (b"content-type", b"application/json"),
                (b"content-length", str(len(body)).encode()),
            ]
        )
    query_string = urlencode(query or {}, doseq=True).encode()
    scope = {
        "type": "http",
        "http_version": "1.1",
        "method": method.upper(),
        "path": path,
        "raw_path": path.encode(),
        "root_path": "",
        "scheme": "http",
        "query_string": query_string,
        "headers": headers,
        "client": ("testclient", 12345),
        "server": ("testserver", 80),
        "state": {},
    }

    messages = []

    async def receive():
        nonlocal body
        if body:
            chunk, body = body, b""
            return {"type": "http.request", "body": chunk, "more_body": False}
        return {"type": "http.disconnect"}

    async def send(message):
        messages.append(message)

    await app.app(scope, receive, send)
    status = 500
    body_bytes = b""
    for message in messages:
        if message["type"] == "http.response.start":
            status = message["status"]
        elif message["type"] == "http.response.body":
            body_bytes += message.get("body", b"")
    data = json.loads(body_bytes.decode("utf-8") or "{}")
    return status, data


def _attempt_payload(day: int, correct: int, total: int = 30, minutes: float = 1.0, quiz_id: str = "facts") -> dict:
    return {
        "quiz_id": quiz_id,
        "completed_at": (BASE + timedelta(days=day)).isoformat(),
        "total_questions": total,
        "correct_answers": correct,
        "total_time_minutes": minutes,
        "quiz_title": "Math facts",
    }


def test_create_attempt_and_report(temp_db):
    for day, correct in enumerate([10, 12, 15, 18, 22]):
        response = app.create_attempt(AttemptCreateBody(user_id="learner", **_attempt_payload(day, correct)))
        assert response["status"] == "ok"

    report = app.progress_report("learner", quiz_id="facts")

    assert report.quiz_id == "facts"
    assert len(report.daily_samples) == 5
    assert report.celeration.correct.factor_per_week > 1.0
    assert report.summary.total_attempts == 5
    assert report.tips


def test_report_for_unknown_user_is_insufficient(temp_db):
    report = app.progress_report("nobody")

    assert report.daily_samples == []
    assert report.summary is None
    assert report.tips == [INSUFFICIENT_DATA_TIP]


def test_report_requires_user_id(temp_db):
    with pytest.raises(HTTPException) as exc:
        app.progress_report("  ")
    assert exc.value.status_code == 400


def test_report_rejects_non_positive_aim(temp_db):
    with pytest.raises(HTTPException) as exc:
        app.progress_report("learner", aim_fluency=0)
    assert exc.value.status_code == 400


def test_quizzes_endpoint(temp_db):
    app.create_attempt(AttemptCreateBody(user_id="learner", **_attempt_payload(0, 10, quiz_id="a")))
    app.create_attempt(AttemptCreateBody(user_id="learner", **_attempt_payload(1, 10, quiz_id="b")))

    quizzes = app.progress_quizzes("learner")

    assert [quiz.quiz_id for quiz in quizzes] == ["b", "a"]


def test_analyze_endpoint_with_pivot():
    attempts = [_attempt_payload(day, 10 + 2 * day) for day in range(8)]
    body = AnalyzeRequest(attempts=attempts, pivot_date="2024-06-06")

    report = app.progress_analyze(body)

    assert report.split is not None
    assert report.split.pivot_date.isoformat() == "2024-06-06"
    assert report.split.before.sample_count == 3
    assert report.split.after.sample_count == 5
    assert report.split.after.correct is not None


def test_analyze_over_asgi_rejects_invalid_counts():
    payload = {"attempts": [_attempt_payload(0, correct=40, total=30)]}

    status, data = asyncio.run(_call_app("POST", "/progress/analyze", payload=payload))

    assert status == 422
    assert "detail" in data


def test_report_over_asgi(temp_db):
    for day in range(4):
        db.record_attempt(
            "learner", "facts", total_questions=30, correct_answers=12 + day, total_time_minutes=1,
            completed_at=BASE + timedelta(days=day),
        )

    status, data = asyncio.run(
        _call_app("GET", "/progress/report", query={"user_id": "learner", "pivot_date": "2024-06-04"})
    )

    assert status == 200
    assert len(data["daily_samples"]) == 4
    assert data["split"]["before"]["sample_count"] == 1
    assert data["split"]["after"]["sample_count"] == 3
    assert data["chart"]["aim_fluency"] == 25.0


def test_create_attempt_over_asgi_rejects_bad_payload(temp_db):
    payload = dict(_attempt_payload(0, 10), user_id="learner", total_time_minutes=-1)

    status, _ = asyncio.run(_call_app("POST", "/attempts", payload=payload))

    assert status == 422


def test_analyze_over_asgi_accepts_mixed_naive_and_aware_timestamps():
    first = dict(_attempt_payload(0, 12), completed_at="2024-01-01T09:00:00")
    second = dict(_attempt_payload(0, 15), completed_at="2024-01-02T09:00:00Z")
    third = dict(_attempt_payload(0, 18), completed_at="2024-01-03T09:00:00+02:00")
    payload = {"attempts": [second, first, third], "pivot_date": "2024-01-02"}

    status, data = asyncio.run(_call_app("POST", "/progress/analyze", payload=payload))

    assert status == 200
    assert [sample["day"] for sample in data["daily_samples"]] == ["2024-01-01", "2024-01-02", "2024-01-03"]
    assert data["split"]["before"]["sample_count"] == 1
    assert data["split"]["after"]["sample_count"] == 2
    assert data["celeration"]["correct"] is not None


def test_analyze_blank_quiz_id_means_all_quizzes():
    attempts = [_attempt_payload(0, 12, quiz_id="a"), _attempt_payload(1, 14, quiz_id="b")]

    report = app.progress_analyze(AnalyzeRequest(attempts=attempts, quiz_id=""))

    assert report.quiz_id is None
    assert len(report.daily_samples) == 2
