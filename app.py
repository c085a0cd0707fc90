# app.py - FluencyTrack progress analytics service
# - Stateless celeration engine behind a thin FastAPI layer
# - Attempts come from the SQLite store or straight from the request body

import logging
from contextlib import asynccontextmanager
from datetime import date
from typing import List, Optional

from fastapi import FastAPI, HTTPException

import db
from engines.attempts import ALL_QUIZZES
from engines.progress_report import ProgressAnalyticsEngine
from schemas import (
    AnalyzeRequest,
    AttemptCreateBody,
    ProgressReportResponse,
    QuizSummary,
)

logger = logging.getLogger(__name__)

ENGINE = ProgressAnalyticsEngine()


@asynccontextmanager
async def _lifespan(_: FastAPI):
    try:
        # Validate environment variables first
        from env_validation import validate_environment
        validate_environment()

        db.init()
        logger.info("Attempt store ready at %s", db.DB_PATH)
        yield
    except Exception as e:
        logger.error("Failed to initialize application: %s", str(e), exc_info=True)
        raise


app = FastAPI(title="FluencyTrack", version="1.0.0", lifespan=_lifespan)


def _require_user(user_id: Optional[str]) -> str:
    cleaned = (user_id or "").strip()
    if not cleaned:
        raise HTTPException(status_code=400, detail="user_id required")
    return cleaned


@app.get("/")
def root():
    return {"service": "FluencyTrack", "status": "ok"}


@app.post("/attempts")
def create_attempt(body: AttemptCreateBody):
    user_id = _require_user(body.user_id)
    try:
        attempt_id = db.record_attempt(
            user_id,
            body.quiz_id,
            total_questions=body.total_questions,
            correct_answers=body.correct_answers,
            total_time_minutes=body.total_time_minutes,
            completed_at=body.completed_at,
            quiz_title=body.quiz_title,
            quiz_description=body.quiz_description,
            attempt_id=body.attempt_id,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Failed to store attempt for %s: %s", user_id, exc)
        raise HTTPException(status_code=500, detail="Failed to persist attempt") from exc
    return {"status": "ok", "attempt_id": attempt_id}


@app.get("/progress/quizzes", response_model=List[QuizSummary])
def progress_quizzes(user_id: str):
    user_id = _require_user(user_id)
    rows = db.list_quizzes(user_id)
    return [QuizSummary(quiz_id=row["quiz_id"], title=row["title"]) for row in rows]


@app.get("/progress/report", response_model=ProgressReportResponse)
def progress_report(
    user_id: str,
    quiz_id: Optional[str] = None,
    pivot_date: Optional[date] = None,
    aim_fluency: Optional[float] = None,
    aim_error: Optional[float] = None,
    window: Optional[int] = None,
):
    user_id = _require_user(user_id)
    if aim_fluency is not None and aim_fluency <= 0:
        raise HTTPException(status_code=400, detail="aim_fluency must be positive")
    if aim_error is not None and aim_error <= 0:
        raise HTTPException(status_code=400, detail="aim_error must be positive")
    if window is not None and window < 1:
        raise HTTPException(status_code=400, detail="window must be at least 1")

    store_filter = None if quiz_id in (None, "", ALL_QUIZZES) else quiz_id
    try:
        attempts = db.load_attempt_records(user_id, store_filter)
    except Exception as exc:
        logger.exception("Failed to load attempts for %s: %s", user_id, exc)
        raise HTTPException(status_code=500, detail="Failed to load attempts") from exc

    report = ENGINE.analyze(
        attempts,
        quiz_id=store_filter,
        pivot_date=pivot_date,
        aim_fluency=aim_fluency,
        aim_error=aim_error,
        moving_average_window=window,
    )
    return ProgressReportResponse.from_report(report.to_dict())


@app.post("/progress/analyze", response_model=ProgressReportResponse)
def progress_analyze(body: AnalyzeRequest):
    report = ENGINE.analyze(
        [attempt.to_record() for attempt in body.attempts],
        quiz_id=body.quiz_id,
        pivot_date=body.pivot_date,
        aim_fluency=body.aim_fluency,
        aim_error=body.aim_error,
        moving_average_window=body.moving_average_window,
    )
    return ProgressReportResponse.from_report(report.to_dict())
