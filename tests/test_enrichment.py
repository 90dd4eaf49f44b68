"""Tests for the weather and calorie collaborators: mock-based, no real network calls."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import requests

from workout_api.enrichment import (
    CalorieEstimator,
    PassThroughEnricher,
    WeatherProvider,
    WorkoutEnricher,
    build_enricher,
)
from workout_api.errors import EnrichmentUnavailable
from workout_api.settings import Settings


def response(payload) -> MagicMock:
    r = MagicMock()
    r.json.return_value = payload
    return r


@pytest.fixture
def session():
    return MagicMock()


class TestCalorieEstimator:
    def test_returns_rounded_total(self, session):
        session.get.return_value = response([{"name": "Running", "total_calories": 412.6}])
        estimator = CalorieEstimator("key", activity="running", weight_lb=150, timeout=3, session=session)

        assert estimator.estimate_calories(45.4) == 413
        session.get.assert_called_once_with(
            CalorieEstimator.BASE_URL,
            params={"activity": "running", "weight": 150, "duration": 45},
            headers={"X-Api-Key": "key"},
            timeout=3,
        )

    def test_short_workouts_ask_for_at_least_a_minute(self, session):
        session.get.return_value = response([{"total_calories": 9}])
        CalorieEstimator("key", session=session).estimate_calories(0.2)
        assert session.get.call_args.kwargs["params"]["duration"] == 1

    def test_unknown_activity_raises(self, session):
        session.get.return_value = response([])
        with pytest.raises(EnrichmentUnavailable, match="underwater hockey"):
            CalorieEstimator("key", activity="underwater hockey", session=session).estimate_calories(30)

    def test_timeout_raises(self, session):
        session.get.side_effect = requests.Timeout()
        with pytest.raises(EnrichmentUnavailable, match="timed out"):
            CalorieEstimator("key", session=session).estimate_calories(30)

    def test_http_error_raises(self, session):
        r = response({})
        r.raise_for_status.side_effect = requests.HTTPError("401 Client Error")
        session.get.return_value = r
        with pytest.raises(EnrichmentUnavailable, match="unavailable"):
            CalorieEstimator("bad-key", session=session).estimate_calories(30)


class TestWeatherProvider:
    def test_returns_icon_url(self, session):
        session.get.return_value = response({"weather": [{"main": "Clear", "icon": "01d"}]})
        provider = WeatherProvider("key", timeout=2, session=session)

        assert provider.current_weather_icon(51.5, -0.12) == "https://openweathermap.org/img/wn/01d@2x.png"
        session.get.assert_called_once_with(
            WeatherProvider.BASE_URL,
            params={"lat": 51.5, "lon": -0.12, "appid": "key"},
            headers=None,
            timeout=2,
        )

    def test_missing_icon_raises(self, session):
        session.get.return_value = response({"weather": []})
        with pytest.raises(EnrichmentUnavailable):
            WeatherProvider("key", session=session).current_weather_icon(0, 0)

    def test_connection_error_raises(self, session):
        session.get.side_effect = requests.ConnectionError("no route to host")
        with pytest.raises(EnrichmentUnavailable):
            WeatherProvider("key", session=session).current_weather_icon(0, 0)


class TestWorkoutEnricher:
    def test_sets_both_fields_and_converts_seconds_to_minutes(self, make_workout):
        calories = MagicMock()
        calories.estimate_calories.return_value = 610
        weather = MagicMock()
        weather.current_weather_icon.return_value = "https://icons.test/02d.png"
        enricher = WorkoutEnricher(calories, weather, lat=1.0, lon=2.0)

        workout = make_workout(duration=3600)
        enriched = enricher.enrich(workout)

        calories.estimate_calories.assert_called_once_with(60.0)
        weather.current_weather_icon.assert_called_once_with(1.0, 2.0)
        assert enriched.calories_burned == 610
        assert enriched.weather == "https://icons.test/02d.png"
        assert enriched.duration == 3600
        assert workout.calories_burned is None

    def test_failure_propagates(self, make_workout):
        calories = MagicMock()
        calories.estimate_calories.side_effect = EnrichmentUnavailable("Calorie service timed out")
        enricher = WorkoutEnricher(calories, MagicMock(), lat=0, lon=0)
        with pytest.raises(EnrichmentUnavailable):
            enricher.enrich(make_workout())


class TestBuildEnricher:
    def test_disabled_passes_through(self, make_workout):
        enricher = build_enricher(Settings(enrichment_enabled=False))
        assert isinstance(enricher, PassThroughEnricher)
        workout = make_workout()
        assert enricher.enrich(workout) == workout

    def test_enabled_uses_configured_clients(self):
        enricher = build_enricher(
            Settings(enrichment_enabled=True, enrichment_timeout_sec=1.5, weather_lat=10.0, calories_weight_lb=180)
        )
        assert isinstance(enricher, WorkoutEnricher)
        assert enricher.lat == 10.0
        assert enricher.calories.weight_lb == 180
        assert enricher.weather.timeout == 1.5
