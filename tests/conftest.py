import sys
from pathlib import Path
from typing import List

import pytest
from fastapi.testclient import TestClient

# Ensure repo root is on sys.path so `import gymrack` works without installing
ROOT = Path(__file__).resolve().parents[1]
root_str = str(ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)

from gymrack.app import create_app
from gymrack.core.memory_store import InMemoryStore
from gymrack.core.personal_records import PersonalRecordLedger


# ---------------------------------------------------------------------------
# Store / ledger fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> InMemoryStore:
    """Fresh in-memory store per test."""
    return InMemoryStore()


@pytest.fixture
def ledger(store) -> PersonalRecordLedger:
    return PersonalRecordLedger(store, lock_timeout=2.0)


@pytest.fixture
def api_client(store) -> TestClient:
    """
    FastAPI TestClient running the full app (lifespan included) on the
    per-test in-memory store.
    """
    with TestClient(create_app(lambda: store)) as client:
        yield client


@pytest.fixture
def vocabulary() -> List[str]:
    """Names a user has already logged."""
    return [
        "Bench Press",
        "Incline Bench Press",
        "Squat",
        "Deadlift",
        "Bent Over Row",
        "Bicep Curl",
    ]


# ---------------------------------------------------------------------------
# Mock Environment Variables
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def mock_env_vars(monkeypatch):
    """Keep tests off real Supabase and third-party APIs."""
    for name in ("SUPABASE_URL", "SUPABASE_SERVICE_ROLE_KEY", "SUPABASE_ANON_KEY",
                 "API_NINJAS_KEY", "YOUTUBE_API_KEY"):
        monkeypatch.delenv(name, raising=False)
