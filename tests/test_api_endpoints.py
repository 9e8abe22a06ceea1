"""Tests for workout, body metrics and exercise catalog endpoints."""

import httpx
import pytest

from gymrack.adapters.exercise_catalog import ExerciseCatalogClient
from gymrack.app import get_catalog_client


class TestWorkouts:
    """Test /workouts CRUD."""

    def test_create_and_list(self, api_client):
        response = api_client.post("/workouts", json={"user_id": 1, "name": "Push Day", "date": "2025-03-01"})
        assert response.status_code == 201
        created = response.json()
        assert created["name"] == "Push Day"
        assert created["user_id"] == "1"

        listed = api_client.get("/workouts").json()
        assert [w["id"] for w in listed] == [created["id"]]

    def test_list_newest_first(self, api_client):
        api_client.post("/workouts", json={"name": "Old", "date": "2025-01-01"})
        api_client.post("/workouts", json={"name": "New", "date": "2025-02-01"})

        names = [w["name"] for w in api_client.get("/workouts").json()]
        assert names == ["New", "Old"]

    def test_create_requires_name(self, api_client):
        response = api_client.post("/workouts", json={"name": "  "})
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_input"

    def test_delete(self, api_client):
        created = api_client.post("/workouts", json={"name": "Leg Day"}).json()

        response = api_client.delete(f"/workouts/{created['id']}")
        assert response.status_code == 200
        assert response.json()["deleted"]["name"] == "Leg Day"

        response = api_client.delete(f"/workouts/{created['id']}")
        assert response.status_code == 404
        assert response.json() == {"error": "workout_not_found"}


class TestBodyMetrics:
    """Test POST /health/metrics."""

    def test_male(self, api_client):
        response = api_client.post("/health/metrics", json={"heightCm": 180, "weightKg": 80, "age": 30, "gender": "male"})
        assert response.status_code == 200
        assert response.json() == {"bmi": 24.7, "bmr": 1780}

    def test_female(self, api_client):
        response = api_client.post("/health/metrics", json={"heightCm": "180", "weightKg": "80", "age": "30", "gender": "F"})
        assert response.json() == {"bmi": 24.7, "bmr": 1614}

    @pytest.mark.parametrize("body", [
        {},
        {"heightCm": 180, "weightKg": 80, "age": 30},
        {"heightCm": "tall", "weightKg": 80, "age": 30, "gender": "m"},
        {"heightCm": -180, "weightKg": 80, "age": 30, "gender": "m"},
    ])
    def test_missing_parameters(self, api_client, body):
        response = api_client.post("/health/metrics", json=body)
        assert response.status_code == 400
        assert response.json()["message"] == "missing_parameters"


def catalog_handler(request: httpx.Request) -> httpx.Response:
    if request.url.host == "api.api-ninjas.com":
        if request.url.params.get("muscle") == "broken":
            return httpx.Response(400, text="bad muscle")
        return httpx.Response(200, json=[{"name": "Hammer Curl", "muscle": "biceps"}])
    return httpx.Response(200, json={"items": [{
        "id": {"videoId": "abc123"},
        "snippet": {"thumbnails": {"high": {"url": "https://i.ytimg.com/abc123/hq.jpg"}}},
    }]})


class TestExerciseCatalogEndpoint:
    """Test GET /exercises."""

    def test_missing_api_key(self, api_client):
        response = api_client.get("/exercises")
        assert response.status_code == 500
        assert response.json() == {"error": "missing_api_key"}

    def test_enriched_results(self, api_client):
        def override():
            yield ExerciseCatalogClient(
                "test-key",
                youtube_api_key="yt-key",
                client=httpx.Client(transport=httpx.MockTransport(catalog_handler)),
            )

        api_client.app.dependency_overrides[get_catalog_client] = override
        try:
            response = api_client.get("/exercises", params={"muscle": "biceps"})
        finally:
            api_client.app.dependency_overrides.clear()

        assert response.status_code == 200
        exercise = response.json()[0]
        assert exercise["name"] == "Hammer Curl"
        assert exercise["videoId"] == "abc123"
        assert exercise["youtubeSearchUrl"] == "https://www.youtube.com/watch?v=abc123"

    def test_upstream_error_returns_502(self, api_client):
        def override():
            yield ExerciseCatalogClient(
                "test-key",
                client=httpx.Client(transport=httpx.MockTransport(catalog_handler)),
            )

        api_client.app.dependency_overrides[get_catalog_client] = override
        try:
            response = api_client.get("/exercises", params={"muscle": "broken"})
        finally:
            api_client.app.dependency_overrides.clear()

        assert response.status_code == 502
        assert response.json()["error"] == "upstream_error"
        assert response.json()["message"] == "bad muscle"
