"""Pydantic schemas for the progress analytics HTTP surface."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Dict, List

from pydantic import BaseModel, Field, field_validator, model_validator

from engines.attempts import AttemptRecord

__all__ = [
    "AttemptIn",
    "AttemptCreateBody",
    "AnalyzeRequest",
    "CelerationOut",
    "CelerationPair",
    "SplitSide",
    "SplitOut",
    "SummaryOut",
    "DailySampleOut",
    "ChartPoint",
    "ChartOut",
    "ProgressReportResponse",
    "QuizSummary",
]


class AttemptIn(BaseModel):
    """One practice session as supplied by the record store or a client."""

    quiz_id: str = Field(min_length=1)
    completed_at: datetime
    total_questions: int = Field(ge=0)
    correct_answers: int = Field(ge=0)
    total_time_minutes: float = Field(
        ge=0.0,
        description="Session duration in minutes; 0 is charted as a 1-minute timing.",
    )
    attempt_id: str | None = None
    quiz_title: str | None = None

    @field_validator("completed_at")
    @classmethod
    def _naive_as_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @model_validator(mode="after")
    def _check_counts(self) -> "AttemptIn":
        if self.correct_answers > self.total_questions:
            raise ValueError("correct_answers cannot exceed total_questions")
        return self

    def to_record(self, user_id: str | None = None) -> AttemptRecord:
        return AttemptRecord(
            quiz_id=self.quiz_id,
            completed_at=self.completed_at,
            total_questions=self.total_questions,
            correct_answers=self.correct_answers,
            total_time_minutes=self.total_time_minutes,
            attempt_id=self.attempt_id,
            user_id=user_id,
            quiz_title=self.quiz_title,
        )


class AttemptCreateBody(AttemptIn):
    user_id: str
    quiz_description: str | None = None


class AnalyzeRequest(BaseModel):
    attempts: List[AttemptIn] = Field(default_factory=list)
    quiz_id: str | None = Field(
        default=None,
        description="Restrict the analysis to one quiz; omit or use 'all' for every quiz combined.",
    )
    pivot_date: date | None = Field(
        default=None,
        description="Calendar date splitting the series into before/after celerations.",
    )
    aim_fluency: float | None = Field(default=None, gt=0.0)
    aim_error: float | None = Field(default=None, gt=0.0)
    moving_average_window: int | None = Field(default=None, ge=1)

    @field_validator("quiz_id")
    @classmethod
    def _blank_quiz_means_all(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            return None
        return value


class CelerationOut(BaseModel):
    slope: float
    intercept: float
    factor_per_week: float
    sample_count: int
    start: datetime


class CelerationPair(BaseModel):
    correct: CelerationOut | None = None
    error: CelerationOut | None = None


class SplitSide(CelerationPair):
    sample_count: int = 0


class SplitOut(BaseModel):
    pivot_date: date | None = None
    before: SplitSide
    after: SplitSide


class SummaryOut(BaseModel):
    total_attempts: int
    average_accuracy: float
    average_fluency: float
    moving_average_accuracy: float
    moving_window: int
    moving_trend: float
    best_accuracy: float
    best_fluency: float
    accuracy_improvement: float
    fluency_improvement: float
    ideal_projection: float | None = None
    accuracy_target_hits: int


class DailySampleOut(BaseModel):
    day: date
    timestamp: datetime
    fluency_rate: float
    error_rate: float
    accuracy_percentage: float
    total_time_minutes: float


class ChartPoint(BaseModel):
    day: date
    weeks: float
    fluency_rate: float
    error_rate: float


class ChartOut(BaseModel):
    min_rate: float
    max_rate: float
    aim_fluency: float
    aim_error: float
    points: List[ChartPoint] = Field(default_factory=list)
    trend_line: List[List[float]] | None = None


class ProgressReportResponse(BaseModel):
    quiz_id: str | None = None
    daily_samples: List[DailySampleOut] = Field(default_factory=list)
    celeration: CelerationPair
    split: SplitOut | None = None
    summary: SummaryOut | None = None
    pattern: str | None = None
    tips: List[str] = Field(default_factory=list)
    rules: List[str] = Field(default_factory=list)
    chart: ChartOut

    @classmethod
    def from_report(cls, payload: Dict[str, Any]) -> "ProgressReportResponse":
        return cls.model_validate(payload)


class QuizSummary(BaseModel):
    quiz_id: str
    title: str
