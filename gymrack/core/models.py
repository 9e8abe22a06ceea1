"""
Domain models for logged sets, workouts and personal-record decisions.
"""
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel


class PreviousRecord(BaseModel):
    """The (weight, reps) of the record a submission was compared against."""
    weight: float
    reps: int


class PerformanceEntry(BaseModel):
    """
    One logged set.

    Weight, reps and date are never changed after insert; only `is_pr` may be
    cleared when a later submission supersedes this entry.
    """
    id: Optional[int] = None
    user_id: str
    exercise_name: str
    muscle_group: Optional[str] = None
    weight: float
    reps: int
    date: date
    is_pr: bool = False
    created_at: Optional[datetime] = None

    @property
    def volume(self) -> float:
        return self.weight * self.reps

    def as_previous_record(self) -> PreviousRecord:
        return PreviousRecord(weight=self.weight, reps=self.reps)


class LogResult(BaseModel):
    """Outcome of logging a set through the personal-record ledger."""
    entry: PerformanceEntry
    canonical_name: str
    is_new_record: bool
    previous_record: Optional[PreviousRecord] = None
    corrected_from: Optional[str] = None


class Workout(BaseModel):
    id: Optional[int] = None
    user_id: str
    name: str
    date: date
    created_at: Optional[datetime] = None
