"""
In-process store used when Supabase is not configured, and by the tests.

A single lock guards all state, so every method is atomic with respect to the
others. Commits follow the same compare-and-swap rules as the Postgres
function `commit_record_update`.
"""
import itertools
import logging
import threading
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Set

from gymrack.core.errors import RecordConflictError
from gymrack.core.models import PerformanceEntry, Workout
from gymrack.core.store import replay_record

logger = logging.getLogger(__name__)


class InMemoryStore:
    def __init__(self):
        self._lock = threading.Lock()
        self._entries: Dict[int, PerformanceEntry] = {}
        self._workouts: Dict[int, Workout] = {}
        self._exercises: Dict[str, Dict[str, Any]] = {}
        self._entry_ids = itertools.count(1)
        self._workout_ids = itertools.count(1)

    # ------------------------------------------------------------------
    # Workout logs
    # ------------------------------------------------------------------

    def fetch_vocabulary(self, user_id: str) -> Set[str]:
        with self._lock:
            return {e.exercise_name for e in self._entries.values() if e.user_id == user_id}

    def fetch_current_record(self, user_id: str, exercise_name: str) -> Optional[PerformanceEntry]:
        with self._lock:
            return self._current_record(user_id, exercise_name)

    def commit_record_update(
        self,
        user_id: str,
        exercise_name: str,
        new_entry: PerformanceEntry,
        demote: Optional[PerformanceEntry] = None,
        expected_current: Optional[PerformanceEntry] = None,
    ) -> PerformanceEntry:
        with self._lock:
            current = self._current_record(user_id, exercise_name)

            if demote is not None:
                if current is None or current.id != demote.id:
                    raise RecordConflictError(
                        f"record for '{exercise_name}' changed before commit"
                    )
            elif new_entry.is_pr:
                if current is not None:
                    raise RecordConflictError(
                        f"'{exercise_name}' already has a current record"
                    )
            elif current is None or (expected_current is not None and current.id != expected_current.id):
                raise RecordConflictError(
                    f"record for '{exercise_name}' changed before commit"
                )

            # all checks passed; nothing below can fail
            if demote is not None:
                self._entries[demote.id] = current.model_copy(update={"is_pr": False})

            entry_id = next(self._entry_ids)
            stored = new_entry.model_copy(update={
                "id": entry_id,
                "user_id": user_id,
                "exercise_name": exercise_name,
                "created_at": datetime.now(timezone.utc),
            })
            self._entries[entry_id] = stored
            return stored

    def list_entries(self, user_id: Optional[str] = None) -> List[PerformanceEntry]:
        with self._lock:
            entries = [e for e in self._entries.values() if user_id is None or e.user_id == user_id]
        entries.sort(key=lambda e: (e.date, e.created_at, e.id), reverse=True)
        return entries

    def delete_entry(self, entry_id: int) -> Optional[PerformanceEntry]:
        with self._lock:
            deleted = self._entries.pop(entry_id, None)
            if deleted is None:
                return None

            if deleted.is_pr:
                remaining = [
                    e for e in self._entries.values()
                    if e.user_id == deleted.user_id and e.exercise_name == deleted.exercise_name
                ]
                if remaining:
                    promoted = replay_record(remaining)
                    self._entries[promoted.id] = promoted.model_copy(update={"is_pr": True})
                    logger.info(f"Promoted log {promoted.id} to record for '{deleted.exercise_name}'")
            return deleted

    def _current_record(self, user_id: str, exercise_name: str) -> Optional[PerformanceEntry]:
        for e in self._entries.values():
            if e.user_id == user_id and e.exercise_name == exercise_name and e.is_pr:
                return e
        return None

    # ------------------------------------------------------------------
    # Workouts
    # ------------------------------------------------------------------

    def list_workouts(self, user_id: Optional[str] = None) -> List[Workout]:
        with self._lock:
            workouts = [w for w in self._workouts.values() if user_id is None or w.user_id == user_id]
        workouts.sort(key=lambda w: (w.date, w.id), reverse=True)
        return workouts

    def create_workout(self, user_id: str, name: str, workout_date: date) -> Workout:
        with self._lock:
            workout_id = next(self._workout_ids)
            workout = Workout(
                id=workout_id,
                user_id=user_id,
                name=name,
                date=workout_date,
                created_at=datetime.now(timezone.utc),
            )
            self._workouts[workout_id] = workout
            return workout

    def delete_workout(self, workout_id: int) -> Optional[Workout]:
        with self._lock:
            return self._workouts.pop(workout_id, None)

    # ------------------------------------------------------------------
    # Exercise catalog
    # ------------------------------------------------------------------

    def upsert_exercise(self, exercise: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            stored = {**self._exercises.get(exercise["name"], {}), **exercise}
            self._exercises[exercise["name"]] = stored
            return stored

    def list_exercises(self) -> List[Dict[str, Any]]:
        with self._lock:
            return sorted(self._exercises.values(), key=lambda e: e["name"])

    def close(self):
        """Nothing to release; present so the app can close any store."""
