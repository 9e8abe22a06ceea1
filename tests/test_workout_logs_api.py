"""Tests for workout log, personal record and suggestion endpoints."""

import pytest
from fastapi.testclient import TestClient

from gymrack.app import create_app
from gymrack.core.errors import StoreUnavailableError
from gymrack.core.memory_store import InMemoryStore


def log(client, name, weight, reps, **extra):
    body = {"user_id": 1, "exercise_name": name, "muscle_group": "back",
            "weight": weight, "reps": reps, "date": "2025-03-01"}
    body.update(extra)
    return client.post("/workout-logs", json=body)


class TestCreateWorkoutLog:
    """Test POST /workout-logs."""

    def test_first_log_is_pr(self, api_client):
        response = log(api_client, "Deadlift", 100, 5)
        assert response.status_code == 201
        data = response.json()
        assert data["exercise_name"] == "Deadlift"
        assert data["canonical_name"] == "Deadlift"
        assert data["user_id"] == "1"
        assert data["is_pr"] is True
        assert data["is_new_pr"] is True
        assert data["previous_pr"] is None
        assert data["corrected_from"] is None
        assert data["date"] == "2025-03-01"

    def test_previous_pr_returned_on_non_pr(self, api_client):
        log(api_client, "Deadlift", 100, 5)

        data = log(api_client, "Deadlift", 90, 4).json()

        assert data["is_new_pr"] is False
        assert data["is_pr"] is False
        assert data["previous_pr"] == {"weight": 100.0, "reps": 5}

    def test_volume_pr(self, api_client):
        log(api_client, "Deadlift", 100, 5)
        data = log(api_client, "Deadlift", 90, 6).json()
        assert data["is_new_pr"] is True

    def test_spelling_correction(self, api_client):
        log(api_client, "Bench Press", 80, 5)

        data = log(api_client, "Bnech Press", 85, 5).json()

        assert data["exercise_name"] == "Bench Press"
        assert data["canonical_name"] == "Bench Press"
        assert data["corrected_from"] == "Bnech Press"
        assert data["is_new_pr"] is True

    def test_client_pr_flag_is_ignored(self, api_client, store):
        log(api_client, "Deadlift", 100, 5)

        data = log(api_client, "Deadlift", 50, 1, is_pr=True).json()

        assert data["is_pr"] is False
        assert sum(e.is_pr for e in store.list_entries()) == 1

    def test_missing_user_id_uses_default(self, api_client):
        response = api_client.post("/workout-logs", json={"exercise_name": "Squat", "weight": 60, "reps": 5})
        assert response.status_code == 201
        assert response.json()["user_id"] == "1"

    @pytest.mark.parametrize("body", [
        {"exercise_name": "Squat", "weight": 0, "reps": 5},
        {"exercise_name": "Squat", "weight": "heavy", "reps": 5},
        {"exercise_name": "Squat", "weight": 60, "reps": 1.5},
        {"exercise_name": "", "weight": 60, "reps": 5},
        {"exercise_name": "Squat", "weight": 60, "reps": 5, "date": "yesterday"},
        {"exercise_name": "Squat", "weight": 100_000_000, "reps": 5},
        {"exercise_name": "Squat", "weight": 60, "reps": 3_000_000_000},
        {"exercise_name": "S" * 300, "weight": 60, "reps": 5},
        {},
    ])
    def test_invalid_input_returns_400(self, api_client, store, body):
        response = api_client.post("/workout-logs", json=body)
        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "invalid_input"
        assert data["retryable"] is False
        assert store.list_entries() == []

    def test_weight_below_stored_precision_is_not_a_pr(self, api_client):
        log(api_client, "Deadlift", 100, 5)

        response = log(api_client, "Deadlift", 100.004, 5)

        assert response.status_code == 201
        data = response.json()
        assert data["weight"] == 100.0
        assert data["is_new_pr"] is False


class TestListAndDeleteLogs:
    """Test GET and DELETE /workout-logs."""

    def test_list_logs(self, api_client):
        log(api_client, "Deadlift", 100, 5)
        log(api_client, "Squat", 80, 5, user_id="2")

        all_logs = api_client.get("/workout-logs").json()
        user_logs = api_client.get("/workout-logs", params={"user_id": "2"}).json()

        assert len(all_logs) == 2
        assert [l["exercise_name"] for l in user_logs] == ["Squat"]

    def test_delete_log(self, api_client):
        created = log(api_client, "Deadlift", 100, 5).json()

        response = api_client.delete(f"/workout-logs/{created['id']}")

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert response.json()["deleted"]["id"] == created["id"]
        assert api_client.get("/workout-logs").json() == []

    def test_delete_missing_log(self, api_client):
        response = api_client.delete("/workout-logs/999")
        assert response.status_code == 404
        assert response.json() == {"error": "log_not_found"}

    def test_delete_pr_promotes_next_best(self, api_client):
        log(api_client, "Deadlift", 90, 5)
        best = log(api_client, "Deadlift", 100, 5).json()

        api_client.delete(f"/workout-logs/{best['id']}")

        logs = api_client.get("/workout-logs").json()
        assert [(l["weight"], l["is_pr"]) for l in logs] == [(90.0, True)]


class TestExerciseSuggestions:
    """Test GET /exercise-suggestions."""

    @pytest.mark.parametrize("query", ["", "b"])
    def test_short_query_returns_empty(self, api_client, query):
        log(api_client, "Bench Press", 80, 5)
        response = api_client.get("/exercise-suggestions", params={"query": query})
        assert response.status_code == 200
        assert response.json() == []

    def test_suggestions_ranked(self, api_client):
        for name in ["Bench Press", "Incline Bench Press", "Squat"]:
            log(api_client, name, 50, 5)

        response = api_client.get("/exercise-suggestions", params={"query": "bench pres", "user_id": "1"})

        assert response.json() == ["Bench Press", "Incline Bench Press"]

    def test_suggestions_scoped_to_user(self, api_client):
        log(api_client, "Bench Press", 80, 5, user_id="2")
        response = api_client.get("/exercise-suggestions", params={"query": "bench pres"})
        assert response.json() == []


class UnavailableStore(InMemoryStore):
    def fetch_vocabulary(self, user_id):
        raise StoreUnavailableError("store unreachable")


class TestStoreErrors:

    def test_unavailable_store_returns_503(self):
        with TestClient(create_app(UnavailableStore)) as client:
            response = log(client, "Deadlift", 100, 5)

        assert response.status_code == 503
        data = response.json()
        assert data["error"] == "upstream_unavailable"
        assert data["retryable"] is True
