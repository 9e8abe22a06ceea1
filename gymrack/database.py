"""
Database module for Supabase integration.
Handles workout log, workout and exercise catalog storage.

Schema and the Postgres functions used here live in supabase/migrations/.
"""
import os
from datetime import date
from typing import Optional, Dict, Any, List, Set

import httpx
from postgrest.exceptions import APIError
from supabase import create_client, Client
from supabase.client import ClientOptions
import logging

from gymrack.core.errors import StoreError, StoreUnavailableError, RecordConflictError
from gymrack.core.models import PerformanceEntry, Workout

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0

# serialization_failure (raised by commit_record_update on a lost race) and
# unique_violation (partial unique index on current records)
CONFLICT_CODES = {"40001", "23505"}


def get_supabase_client() -> Optional[Client]:
    """Get Supabase client instance, or None when credentials are not configured."""
    supabase_url = os.getenv("SUPABASE_URL")
    supabase_key = os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv("SUPABASE_ANON_KEY")

    if not supabase_url or not supabase_key:
        logger.warning("Supabase credentials not configured. Falling back to in-memory storage.")
        return None

    timeout = float(os.getenv("SUPABASE_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS))
    try:
        return create_client(
            supabase_url,
            supabase_key,
            options=ClientOptions(postgrest_client_timeout=timeout),
        )
    except Exception as e:
        logger.error(f"Failed to create Supabase client: {e}")
        return None


def _first_row(data: Any) -> Optional[Dict[str, Any]]:
    # PostgREST returns a bare object for single-row functions and a list otherwise
    if isinstance(data, list):
        return data[0] if data else None
    return data or None


class SupabaseStore:
    """
    WorkoutLogStore and WorkoutStore backed by Supabase (Postgres).

    Demote+insert and delete+promote run inside Postgres functions so each is
    a single transaction.
    """

    def __init__(self, client: Client):
        self.client = client

    def _execute(self, action: str, request):
        try:
            return request.execute()
        except APIError as e:
            if e.code in CONFLICT_CODES:
                raise RecordConflictError(e.message or f"conflict while trying to {action}")
            logger.error(f"Failed to {action}: {e}")
            raise StoreError(f"failed to {action}: {e.message}")
        except httpx.HTTPError as e:
            # covers timeouts and connection errors
            logger.error(f"Supabase unreachable while trying to {action}: {e}")
            raise StoreUnavailableError(f"store unavailable while trying to {action}")

    # ------------------------------------------------------------------
    # Workout logs
    # ------------------------------------------------------------------

    def fetch_vocabulary(self, user_id: str) -> Set[str]:
        result = self._execute(
            "fetch exercise vocabulary",
            self.client.rpc("exercise_vocabulary", {"p_user_id": user_id}),
        )
        return {row["exercise_name"] for row in (result.data or [])}

    def fetch_current_record(self, user_id: str, exercise_name: str) -> Optional[PerformanceEntry]:
        result = self._execute(
            "fetch current record",
            self.client.table("workout_logs")
            .select("*")
            .eq("user_id", user_id)
            .eq("exercise_name", exercise_name)
            .eq("is_pr", True)
            .limit(1),
        )
        row = _first_row(result.data)
        return PerformanceEntry(**row) if row else None

    def commit_record_update(
        self,
        user_id: str,
        exercise_name: str,
        new_entry: PerformanceEntry,
        demote: Optional[PerformanceEntry] = None,
        expected_current: Optional[PerformanceEntry] = None,
    ) -> PerformanceEntry:
        params = {
            "p_user_id": user_id,
            "p_exercise_name": exercise_name,
            "p_muscle_group": new_entry.muscle_group,
            "p_weight": new_entry.weight,
            "p_reps": new_entry.reps,
            "p_date": new_entry.date.isoformat(),
            "p_is_pr": new_entry.is_pr,
            "p_demote_id": demote.id if demote else None,
            "p_expected_id": expected_current.id if expected_current else None,
        }
        result = self._execute(
            "commit workout log",
            self.client.rpc("commit_record_update", params),
        )
        row = _first_row(result.data)
        if not row:
            raise StoreError("commit_record_update returned no row")
        logger.info(f"Workout log saved for user {user_id}: '{exercise_name}' (is_pr={new_entry.is_pr})")
        return PerformanceEntry(**row)

    def list_entries(self, user_id: Optional[str] = None) -> List[PerformanceEntry]:
        query = self.client.table("workout_logs").select("*")
        if user_id is not None:
            query = query.eq("user_id", user_id)
        query = query.order("date", desc=True).order("created_at", desc=True)

        result = self._execute("list workout logs", query)
        return [PerformanceEntry(**row) for row in (result.data or [])]

    def delete_entry(self, entry_id: int) -> Optional[PerformanceEntry]:
        result = self._execute(
            "delete workout log",
            self.client.rpc("delete_workout_log", {"p_id": entry_id}),
        )
        row = _first_row(result.data)
        return PerformanceEntry(**row) if row else None

    # ------------------------------------------------------------------
    # Workouts
    # ------------------------------------------------------------------

    def list_workouts(self, user_id: Optional[str] = None) -> List[Workout]:
        query = self.client.table("workouts").select("*")
        if user_id is not None:
            query = query.eq("user_id", user_id)
        result = self._execute("list workouts", query.order("date", desc=True))
        return [Workout(**row) for row in (result.data or [])]

    def create_workout(self, user_id: str, name: str, workout_date: date) -> Workout:
        result = self._execute(
            "save workout",
            self.client.table("workouts").insert({
                "user_id": user_id,
                "name": name,
                "date": workout_date.isoformat(),
            }),
        )
        row = _first_row(result.data)
        if not row:
            raise StoreError("workout insert returned no row")
        logger.info(f"Workout saved for user {user_id}")
        return Workout(**row)

    def delete_workout(self, workout_id: int) -> Optional[Workout]:
        result = self._execute(
            "delete workout",
            self.client.table("workouts").delete().eq("id", workout_id),
        )
        row = _first_row(result.data)
        return Workout(**row) if row else None

    # ------------------------------------------------------------------
    # Exercise catalog
    # ------------------------------------------------------------------

    def upsert_exercise(self, exercise: Dict[str, Any]) -> Dict[str, Any]:
        """Insert or update a catalog exercise, keyed by name."""
        result = self._execute(
            f"upsert exercise '{exercise.get('name')}'",
            self.client.table("exercises").upsert(exercise, on_conflict="name"),
        )
        return _first_row(result.data) or {}

    def close(self):
        session = getattr(getattr(self.client, "postgrest", None), "session", None)
        if session is not None:
            session.close()
