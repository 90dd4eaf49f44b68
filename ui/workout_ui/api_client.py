import os

import requests

API_BASE_URL = os.getenv("API_BASE_URL", "http://api:8000")

TIMEFRAMES = ("day", "week", "month", "year")


def _drop_empty(params: dict) -> dict:
    return {k: v for k, v in params.items() if v not in (None, "")}


def add_workout(payload: dict) -> dict:
    r = requests.post(f"{API_BASE_URL}/add-workout", json=payload, timeout=30)
    r.raise_for_status()
    return r.json()


def delete_workout(workout_name: str) -> dict:
    r = requests.delete(
        f"{API_BASE_URL}/delete-workout", json={"workout_name": workout_name}, timeout=15
    )
    r.raise_for_status()
    return r.json()


def get_workouts(**filters) -> list:
    """Filters: workout_name, min/max_duration (s), min/max_distance (km),
    heart_rate, start_date, end_date ('today', 'yesterday' or YYYY-MM-DD)."""
    r = requests.get(f"{API_BASE_URL}/get-workouts", params=_drop_empty(filters), timeout=20)
    r.raise_for_status()
    return r.json()


def get_stats(timeframe: str) -> dict:
    stats = {}
    for path in (
        "get-total-distance",
        "get-average-duration",
        "get-average-heartrate",
        "get-average-calories",
    ):
        r = requests.get(f"{API_BASE_URL}/{path}/{timeframe}", timeout=15)
        r.raise_for_status()
        stats.update(r.json())
    return stats


def error_detail(exc: requests.HTTPError) -> str:
    if exc.response is None:
        return str(exc)
    try:
        return exc.response.json().get("detail", str(exc))
    except ValueError:
        return str(exc)
