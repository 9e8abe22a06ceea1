"""
Store interfaces (ports) for exercise logs and workouts.

Implementations: gymrack.database.SupabaseStore for Postgres via Supabase and
gymrack.core.memory_store.InMemoryStore for local runs and tests.
"""
from datetime import date
from typing import Iterable, Protocol, Optional, List, Set

from gymrack.core.models import PerformanceEntry, Workout


class WorkoutLogStore(Protocol):
    """
    Durable per-user history of logged sets.

    Reads must reflect every write committed before the call.
    """

    def fetch_vocabulary(self, user_id: str) -> Set[str]:
        """
        Distinct exercise names ever logged by this user.

        Raises:
            StoreUnavailableError: store unreachable or timed out
        """
        ...

    def fetch_current_record(
        self, user_id: str, exercise_name: str
    ) -> Optional[PerformanceEntry]:
        """
        The entry flagged as current record for (user, exercise name), if any.
        """
        ...

    def commit_record_update(
        self,
        user_id: str,
        exercise_name: str,
        new_entry: PerformanceEntry,
        demote: Optional[PerformanceEntry] = None,
        expected_current: Optional[PerformanceEntry] = None,
    ) -> PerformanceEntry:
        """
        Clear the record flag on `demote` (if given) and insert `new_entry`
        as one atomic unit.

        An unflagged `new_entry` is only accepted while a current record
        exists, and, when `expected_current` is given, only while that entry
        is still the current record.

        Returns:
            The persisted entry, with id and created_at filled in

        Raises:
            RecordConflictError: `demote` is no longer the current record, a
                flagged insert would leave two current records, or an
                unflagged insert was decided against a record that is gone
            StoreUnavailableError: store unreachable or timed out
        """
        ...

    def list_entries(self, user_id: Optional[str] = None) -> List[PerformanceEntry]:
        """Entries ordered by date desc, then creation desc."""
        ...

    def delete_entry(self, entry_id: int) -> Optional[PerformanceEntry]:
        """
        Delete an entry. If it was the current record, the remaining entry
        chosen by `replay_record` is promoted in the same unit.

        Returns:
            The deleted entry, or None if no entry has this id
        """
        ...


class WorkoutStore(Protocol):
    """Plain CRUD over named, dated workouts."""

    def list_workouts(self, user_id: Optional[str] = None) -> List[Workout]:
        ...

    def create_workout(self, user_id: str, name: str, workout_date: date) -> Workout:
        ...

    def delete_workout(self, workout_id: int) -> Optional[Workout]:
        ...


def is_new_record(weight: float, reps: int, previous: PerformanceEntry) -> bool:
    """
    Ordered record decision against the current record.

    Heavier wins outright; at equal weight more reps win; otherwise a larger
    volume (weight x reps) wins even with less weight.
    """
    if weight > previous.weight:
        return True
    if weight == previous.weight:
        return reps > previous.reps
    return weight * reps > previous.volume


def replay_record(entries: Iterable[PerformanceEntry]) -> Optional[PerformanceEntry]:
    """
    The entry that would hold the record if `entries` were logged again in
    creation order. Used to pick the promoted entry after a record is deleted.
    """
    record = None
    for entry in sorted(entries, key=lambda e: (e.created_at is None, e.created_at, e.id or 0)):
        if record is None or is_new_record(entry.weight, entry.reps, record):
            record = entry
    return record
