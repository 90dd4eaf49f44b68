"""Shared fixtures: in-memory store, fake enrichers and an API test client."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from workout_api.db import make_session_factory
from workout_api.errors import EnrichmentUnavailable
from workout_api.main import app, get_enricher, get_store
from workout_api.schemas import Workout
from workout_api.store import WorkoutStore

NOW = datetime(2024, 3, 15, 10, 0, tzinfo=timezone.utc)


class FakeEnricher:
    """Deterministic stand-in for the weather and calorie lookups."""

    ICON = "https://openweathermap.org/img/wn/01d@2x.png"

    def __init__(self, calories: int = 420) -> None:
        self.calories = calories
        self.calls: list[str] = []

    def enrich(self, workout: Workout) -> Workout:
        self.calls.append(workout.workout_name)
        return workout.model_copy(update={"calories_burned": self.calories, "weather": self.ICON})


class FailingEnricher:
    def enrich(self, workout: Workout) -> Workout:
        raise EnrichmentUnavailable("Weather service timed out")


@pytest.fixture
def store() -> WorkoutStore:
    """Store backed by a private in-memory SQLite database."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    s = WorkoutStore(make_session_factory(engine), tz=timezone.utc)
    s.create_schema()
    yield s
    engine.dispose()


@pytest.fixture
def make_workout() -> Callable[..., Workout]:
    def _make(name: str = "Morning run", **overrides) -> Workout:
        fields = {
            "workout_name": name,
            "duration": 1800,
            "distance": 5.0,
            "heart_rate": 150,
            "date_time": NOW,
        }
        fields.update(overrides)
        return Workout(**fields)

    return _make


@pytest.fixture
def enricher() -> FakeEnricher:
    return FakeEnricher()


@pytest.fixture
def client(store, enricher) -> TestClient:
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_enricher] = lambda: enricher
    yield TestClient(app)
    app.dependency_overrides.clear()
