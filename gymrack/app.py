from contextlib import asynccontextmanager
from typing import Optional, Any, Callable, Union
from fastapi import FastAPI, Query, Request, Depends
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from pydantic import BaseModel

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)

from gymrack.adapters.exercise_catalog import ExerciseCatalogClient
from gymrack.core.body_metrics import compute_body_metrics
from gymrack.core.errors import (
    GymRackError,
    InvalidInputError,
    RecordConflictError,
    StoreUnavailableError,
    UpstreamError,
)
from gymrack.core.memory_store import InMemoryStore
from gymrack.core.personal_records import PersonalRecordLedger, parse_date
from gymrack.database import SupabaseStore, get_supabase_client
from gymrack.mapping.exercise_name_matcher import MIN_QUERY_LENGTH, suggest_names

# The API has no authentication; callers that omit user_id log as this user.
DEFAULT_USER_ID = os.getenv("DEFAULT_USER_ID", "1")
RECORD_LOCK_TIMEOUT_SECONDS = float(os.getenv("RECORD_LOCK_TIMEOUT_SECONDS", "5"))


def open_store():
    """Supabase when configured, otherwise an in-memory store."""
    client = get_supabase_client()
    if client is None:
        return InMemoryStore()
    return SupabaseStore(client)


def _user_id(value: Union[str, int, None]) -> str:
    if value is None or value == "":
        return DEFAULT_USER_ID
    return str(value)


# ============================================================================
# Request Models
# ============================================================================

class CreateWorkoutRequest(BaseModel):
    user_id: Optional[Union[str, int]] = None
    name: Optional[str] = None
    date: Any = None


class WorkoutLogRequest(BaseModel):
    """A logged set. Values are validated by the ledger so every problem is a 400."""
    user_id: Optional[Union[str, int]] = None
    exercise_name: Any = None
    muscle_group: Any = None
    weight: Any = None
    reps: Any = None
    date: Any = None
    # accepted for older clients; record status is always decided server-side
    is_pr: Optional[bool] = None


class BodyMetricsRequest(BaseModel):
    heightCm: Any = None
    weightKg: Any = None
    age: Any = None
    gender: Any = None


# ============================================================================
# Dependencies
# ============================================================================

def get_store(request: Request):
    return request.app.state.store


def get_ledger(request: Request) -> PersonalRecordLedger:
    return request.app.state.ledger


def get_catalog_client():
    """ExerciseCatalogClient, or None when API_NINJAS_KEY is not set."""
    api_key = os.getenv("API_NINJAS_KEY")
    if not api_key:
        yield None
        return
    with ExerciseCatalogClient(api_key, os.getenv("YOUTUBE_API_KEY")) as catalog:
        yield catalog


ERROR_STATUS = [
    (InvalidInputError, 400),
    (RecordConflictError, 409),
    (StoreUnavailableError, 503),
]


def error_response(exc: GymRackError) -> JSONResponse:
    status_code = 500
    if isinstance(exc, UpstreamError):
        status_code = exc.status_code
    for error_type, code in ERROR_STATUS:
        if isinstance(exc, error_type):
            status_code = code
            break
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.code, "message": exc.message, "retryable": exc.retryable},
    )


# ============================================================================
# App
# ============================================================================

def create_app(store_factory: Callable[[], Any] = open_store) -> FastAPI:
    """
    Build the API. The store is opened at startup, handed to the ledger and
    closed at shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store = store_factory()
        app.state.store = store
        app.state.ledger = PersonalRecordLedger(store, lock_timeout=RECORD_LOCK_TIMEOUT_SECONDS)
        logger.info(f"Store ready: {type(store).__name__}")
        try:
            yield
        finally:
            store.close()

    app = FastAPI(lifespan=lifespan)

    # Mobile clients call from arbitrary LAN addresses
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(GymRackError)
    async def gymrack_error_handler(request: Request, exc: GymRackError):
        if not isinstance(exc, InvalidInputError):
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return error_response(exc)

    @app.get("/health")
    def health():
        """
        Simple liveness endpoint.
        """
        return {"status": "ok"}

    # ------------------------------------------------------------------
    # Workouts
    # ------------------------------------------------------------------

    @app.get("/workouts")
    def list_workouts_endpoint(
        user_id: Optional[str] = Query(None, description="Filter by user"),
        store=Depends(get_store),
    ):
        """Workouts, newest date first."""
        return [w.model_dump(mode="json") for w in store.list_workouts(user_id)]

    @app.post("/workouts", status_code=201)
    def create_workout_endpoint(request: CreateWorkoutRequest, store=Depends(get_store)):
        if not request.name or not request.name.strip():
            raise InvalidInputError("name is required")
        workout = store.create_workout(
            _user_id(request.user_id),
            request.name.strip(),
            parse_date(request.date),
        )
        return workout.model_dump(mode="json")

    @app.delete("/workouts/{workout_id}")
    def delete_workout_endpoint(workout_id: int, store=Depends(get_store)):
        deleted = store.delete_workout(workout_id)
        if deleted is None:
            return JSONResponse(status_code=404, content={"error": "workout_not_found"})
        return {"success": True, "deleted": deleted.model_dump(mode="json")}

    # ------------------------------------------------------------------
    # Workout logs and personal records
    # ------------------------------------------------------------------

    @app.get("/workout-logs")
    def list_workout_logs_endpoint(
        user_id: Optional[str] = Query(None, description="Filter by user"),
        store=Depends(get_store),
    ):
        """Logged sets, newest date first."""
        return [e.model_dump(mode="json") for e in store.list_entries(user_id)]

    @app.post("/workout-logs", status_code=201)
    def create_workout_log_endpoint(
        request: WorkoutLogRequest,
        ledger: PersonalRecordLedger = Depends(get_ledger),
    ):
        """
        Log a set.

        The typed exercise name is corrected to a previously used name when it
        looks like a typo of one, so records accumulate under one name.
        `previous_pr` is returned whether or not this set beat it.
        """
        result = ledger.record_set(
            _user_id(request.user_id),
            request.exercise_name,
            request.weight,
            request.reps,
            performed_on=request.date,
            muscle_group=request.muscle_group,
        )
        return {
            **result.entry.model_dump(mode="json"),
            "canonical_name": result.canonical_name,
            "is_new_pr": result.is_new_record,
            "previous_pr": result.previous_record.model_dump() if result.previous_record else None,
            "corrected_from": result.corrected_from,
        }

    @app.delete("/workout-logs/{log_id}")
    def delete_workout_log_endpoint(log_id: int, store=Depends(get_store)):
        deleted = store.delete_entry(log_id)
        if deleted is None:
            return JSONResponse(status_code=404, content={"error": "log_not_found"})
        return {"success": True, "deleted": deleted.model_dump(mode="json")}

    @app.get("/exercise-suggestions")
    def exercise_suggestions_endpoint(
        query: str = Query("", description="Partially typed exercise name"),
        user_id: Optional[str] = Query(None),
        store=Depends(get_store),
    ):
        """Up to five previously used names resembling the query."""
        if len(query.strip()) < MIN_QUERY_LENGTH:
            return []
        return suggest_names(query, store.fetch_vocabulary(_user_id(user_id)))

    # ------------------------------------------------------------------
    # Exercise catalog and body metrics
    # ------------------------------------------------------------------

    @app.get("/exercises")
    def exercise_catalog_endpoint(
        muscle: Optional[str] = None,
        type: Optional[str] = None,
        difficulty: Optional[str] = None,
        catalog: Optional[ExerciseCatalogClient] = Depends(get_catalog_client),
    ):
        """Exercises from API Ninjas with YouTube tutorial links and thumbnails."""
        if catalog is None:
            return JSONResponse(status_code=500, content={"error": "missing_api_key"})
        return catalog.search(muscle=muscle, type=type, difficulty=difficulty)

    @app.post("/health/metrics")
    def body_metrics_endpoint(request: BodyMetricsRequest):
        """BMI and BMR for the given height (cm), weight (kg), age and gender."""
        return compute_body_metrics(request.heightCm, request.weightKg, request.age, request.gender)

    return app


app = create_app()
