"""
Personal-record ledger.

Logs a set under its canonical exercise name and decides whether it is a new
personal record. For each (user, canonical name) at most one entry carries the
current-record flag; the first entry for a name is always the record.
"""
import logging
import math
import threading
import weakref
from datetime import date, datetime
from typing import Any, Hashable, Optional, Tuple

from gymrack.core.errors import InvalidInputError, RecordConflictError, StoreUnavailableError
from gymrack.core.models import LogResult, PerformanceEntry
from gymrack.core.store import WorkoutLogStore, is_new_record
from gymrack.mapping.exercise_name_matcher import RESOLVE_THRESHOLD, resolve_name

logger = logging.getLogger(__name__)

DEFAULT_LOCK_TIMEOUT = 5.0
DEFAULT_CONFLICT_RETRIES = 2

# Column limits of workout_logs (VARCHAR(255), VARCHAR(100), DECIMAL(10, 2), INTEGER)
MAX_NAME_LENGTH = 255
MAX_MUSCLE_GROUP_LENGTH = 100
WEIGHT_DECIMALS = 2
MAX_WEIGHT = 99_999_999.99
MAX_REPS = 2_147_483_647


# ============================================================================
# Input validation
# ============================================================================

def parse_exercise_name(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInputError("exercise_name must be a non-empty string")
    name = value.strip()
    if len(name) > MAX_NAME_LENGTH:
        raise InvalidInputError(f"exercise_name is longer than {MAX_NAME_LENGTH} characters")
    return name


def parse_muscle_group(value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidInputError("muscle_group must be a string")
    group = value.strip()
    if len(group) > MAX_MUSCLE_GROUP_LENGTH:
        raise InvalidInputError(f"muscle_group is longer than {MAX_MUSCLE_GROUP_LENGTH} characters")
    return group or None


def parse_weight(value: Any) -> float:
    """
    Accept a positive finite number, or a string holding one.

    The weight is rounded to the stored precision (two decimals) before it is
    compared, so a set is judged by the value that will be persisted.
    """
    if isinstance(value, bool):
        raise InvalidInputError("weight must be a number")
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            raise InvalidInputError(f"weight is not a number: {value!r}")
    if not isinstance(value, (int, float)):
        raise InvalidInputError("weight must be a number")

    weight = float(value)
    if not math.isfinite(weight):
        raise InvalidInputError("weight must be a finite number")
    weight = round(weight, WEIGHT_DECIMALS)
    if weight <= 0:
        raise InvalidInputError("weight must be greater than zero")
    if weight > MAX_WEIGHT:
        raise InvalidInputError(f"weight must be at most {MAX_WEIGHT}")
    return weight


def parse_reps(value: Any) -> int:
    """Accept a positive whole number (5, 5.0 or "5")."""
    if isinstance(value, bool):
        raise InvalidInputError("reps must be a whole number")
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            raise InvalidInputError(f"reps is not a number: {value!r}")
    if isinstance(value, float):
        if not value.is_integer():
            raise InvalidInputError("reps must be a whole number")
        value = int(value)
    if not isinstance(value, int):
        raise InvalidInputError("reps must be a whole number")

    if value <= 0:
        raise InvalidInputError("reps must be greater than zero")
    if value > MAX_REPS:
        raise InvalidInputError(f"reps must be at most {MAX_REPS}")
    return value


def parse_date(value: Any) -> date:
    """Calendar date of the set; today when omitted."""
    if value is None or value == "":
        return date.today()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            raise InvalidInputError(f"date must be YYYY-MM-DD, got {value!r}")
    raise InvalidInputError("date must be YYYY-MM-DD")


# ============================================================================
# Locking
# ============================================================================

class KeyedLocks:
    """One lock per key, dropped once nobody holds a reference to it."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = weakref.WeakValueDictionary()

    def get(self, key: Hashable) -> "_Lock":
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = _Lock()
                self._locks[key] = lock
            return lock


class _Lock:
    # threading.Lock objects cannot be weakly referenced; this wrapper can
    __slots__ = ("_lock", "__weakref__")

    def __init__(self):
        self._lock = threading.Lock()

    def acquire(self, timeout: float) -> bool:
        return self._lock.acquire(timeout=timeout)

    def release(self):
        self._lock.release()


# ============================================================================
# Ledger
# ============================================================================

class PersonalRecordLedger:
    """
    Logs sets and keeps the current-record flag consistent.

    The store is injected; the ledger never opens or closes it.
    """

    def __init__(
        self,
        store: WorkoutLogStore,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
        max_conflict_retries: int = DEFAULT_CONFLICT_RETRIES,
        resolve_threshold: float = RESOLVE_THRESHOLD,
    ):
        self.store = store
        self.lock_timeout = lock_timeout
        self.max_conflict_retries = max_conflict_retries
        self.resolve_threshold = resolve_threshold
        self._locks = KeyedLocks()

    def resolve(self, user_id: str, exercise_name: str) -> Tuple[str, Optional[str]]:
        """
        Canonical name for a typed exercise name, plus the typed name when it
        was corrected.
        """
        vocabulary = self.store.fetch_vocabulary(user_id)
        canonical = resolve_name(exercise_name, vocabulary, self.resolve_threshold) or exercise_name
        corrected_from = exercise_name if canonical != exercise_name else None
        return canonical, corrected_from

    def record_set(
        self,
        user_id: str,
        exercise_name: Any,
        weight: Any,
        reps: Any,
        performed_on: Any = None,
        muscle_group: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> LogResult:
        """
        Log one set and decide whether it is a new personal record.

        Args:
            user_id: Explicit user identifier (defaults are decided by the caller)
            exercise_name: Name as typed; may be corrected to a known name
            weight: Positive number (numeric strings are parsed)
            reps: Positive whole number
            performed_on: date or ISO date string; today when omitted
            muscle_group: Optional tag stored with the entry
            timeout: Seconds to wait for a concurrent submission on the same
                exercise before giving up

        Returns:
            LogResult with the persisted entry, canonical name, record decision,
            the record compared against and the typed name if corrected

        Raises:
            InvalidInputError: bad input, raised before any store access
            StoreUnavailableError: store unreachable or lock wait timed out
            RecordConflictError: record kept changing under us after retries
        """
        if not isinstance(user_id, str) or not user_id:
            raise InvalidInputError("user_id is required")
        name = parse_exercise_name(exercise_name)
        weight = parse_weight(weight)
        reps = parse_reps(reps)
        performed_on = parse_date(performed_on)
        muscle_group = parse_muscle_group(muscle_group)

        canonical, corrected_from = self.resolve(user_id, name)
        if corrected_from:
            logger.info(f"Corrected exercise name '{corrected_from}' -> '{canonical}' for user {user_id}")

        wait = self.lock_timeout if timeout is None else timeout
        lock = self._locks.get((user_id, canonical))
        if not lock.acquire(timeout=wait):
            raise StoreUnavailableError(
                f"timed out after {wait}s waiting for another submission on '{canonical}'"
            )
        try:
            return self._commit(user_id, canonical, corrected_from, weight, reps, performed_on, muscle_group)
        finally:
            lock.release()

    def _commit(
        self,
        user_id: str,
        canonical: str,
        corrected_from: Optional[str],
        weight: float,
        reps: int,
        performed_on: date,
        muscle_group: Optional[str],
    ) -> LogResult:
        attempt = 0
        while True:
            previous = self.store.fetch_current_record(user_id, canonical)
            new_record = previous is None or is_new_record(weight, reps, previous)

            entry = PerformanceEntry(
                user_id=user_id,
                exercise_name=canonical,
                muscle_group=muscle_group,
                weight=weight,
                reps=reps,
                date=performed_on,
                is_pr=new_record,
            )
            try:
                stored = self.store.commit_record_update(
                    user_id,
                    canonical,
                    entry,
                    demote=previous if new_record else None,
                    expected_current=previous,
                )
            except RecordConflictError:
                if attempt >= self.max_conflict_retries:
                    raise
                attempt += 1
                logger.warning(f"Record for '{canonical}' changed during commit, retrying ({attempt})")
                continue

            if new_record:
                logger.info(f"New record for user {user_id} on '{canonical}': {weight} x {reps}")

            return LogResult(
                entry=stored,
                canonical_name=canonical,
                is_new_record=new_record,
                previous_record=previous.as_previous_record() if previous else None,
                corrected_from=corrected_from,
            )
