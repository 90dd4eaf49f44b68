"""Third-party lookups run once when a workout is created.

Both collaborators fail loudly with ``EnrichmentUnavailable``: a workout is
stored fully enriched or not at all.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol

import requests

from .errors import EnrichmentUnavailable
from .logging_config import setup_logger
from .schemas import Workout
from .settings import Settings

logger = setup_logger(__name__)


class Enricher(Protocol):
    def enrich(self, workout: Workout) -> Workout:
        ...


def _get_json(
    session: requests.Session,
    service: str,
    url: str,
    timeout: float,
    params: Optional[dict] = None,
    headers: Optional[dict] = None,
) -> Any:
    try:
        r = session.get(url, params=params, headers=headers, timeout=timeout)
        r.raise_for_status()
        return r.json()
    except requests.Timeout as exc:
        logger.warning("%s lookup timed out after %.1fs", service, timeout)
        raise EnrichmentUnavailable(f"{service} service timed out") from exc
    except requests.RequestException as exc:
        logger.warning("%s lookup failed: %s", service, exc)
        raise EnrichmentUnavailable(f"{service} service is unavailable") from exc
    except ValueError as exc:
        logger.warning("%s lookup returned invalid JSON", service)
        raise EnrichmentUnavailable(f"{service} service returned an invalid response") from exc


class CalorieEstimator:
    """Client for the API Ninjas calories-burned endpoint."""

    BASE_URL = "https://api.api-ninjas.com/v1/caloriesburned"

    def __init__(
        self,
        api_key: str,
        activity: str = "running",
        weight_lb: int = 160,
        timeout: float = 5.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.api_key = api_key
        self.activity = activity
        self.weight_lb = weight_lb
        self.timeout = timeout
        self._session = session or requests.Session()

    def estimate_calories(self, duration_minutes: float) -> int:
        params = {
            "activity": self.activity,
            "weight": self.weight_lb,
            # endpoint only takes whole minutes
            "duration": max(1, round(duration_minutes)),
        }
        payload = _get_json(
            self._session,
            "Calorie",
            self.BASE_URL,
            self.timeout,
            params=params,
            headers={"X-Api-Key": self.api_key},
        )
        try:
            return int(round(float(payload[0]["total_calories"])))
        except (IndexError, KeyError, TypeError, ValueError) as exc:
            raise EnrichmentUnavailable(
                f"No calorie estimate available for activity '{self.activity}'"
            ) from exc


class WeatherProvider:
    """Client for the OpenWeatherMap current-weather endpoint."""

    BASE_URL = "https://api.openweathermap.org/data/2.5/weather"
    ICON_URL = "https://openweathermap.org/img/wn/{icon}@2x.png"

    def __init__(
        self,
        api_key: str,
        timeout: float = 5.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.api_key = api_key
        self.timeout = timeout
        self._session = session or requests.Session()

    def current_weather_icon(self, lat: float, lon: float) -> str:
        payload = _get_json(
            self._session,
            "Weather",
            self.BASE_URL,
            self.timeout,
            params={"lat": lat, "lon": lon, "appid": self.api_key},
        )
        try:
            icon = payload["weather"][0]["icon"]
        except (IndexError, KeyError, TypeError) as exc:
            raise EnrichmentUnavailable("Weather service returned no icon") from exc
        return self.ICON_URL.format(icon=icon)


class WorkoutEnricher:
    def __init__(
        self,
        calories: CalorieEstimator,
        weather: WeatherProvider,
        lat: float,
        lon: float,
    ) -> None:
        self.calories = calories
        self.weather = weather
        self.lat = lat
        self.lon = lon

    def enrich(self, workout: Workout) -> Workout:
        # stored durations are seconds, the calorie API wants minutes
        calories_burned = self.calories.estimate_calories(workout.duration / 60)
        weather = self.weather.current_weather_icon(self.lat, self.lon)
        return workout.model_copy(
            update={"calories_burned": calories_burned, "weather": weather}
        )


class PassThroughEnricher:
    """Used when enrichment is switched off; leaves optional fields empty."""

    def enrich(self, workout: Workout) -> Workout:
        return workout


def build_enricher(settings: Settings) -> Enricher:
    if not settings.enrichment_enabled:
        logger.info("Workout enrichment disabled")
        return PassThroughEnricher()

    session = requests.Session()
    return WorkoutEnricher(
        calories=CalorieEstimator(
            api_key=settings.calories_api_key,
            activity=settings.calories_activity,
            weight_lb=settings.calories_weight_lb,
            timeout=settings.enrichment_timeout_sec,
            session=session,
        ),
        weather=WeatherProvider(
            api_key=settings.weather_api_key,
            timeout=settings.enrichment_timeout_sec,
            session=session,
        ),
        lat=settings.weather_lat,
        lon=settings.weather_lon,
    )
