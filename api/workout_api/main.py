from contextlib import asynccontextmanager
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, List, Optional, TypeVar

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .dates import local_timezone, normalize_date_range, parse_timeframe
from .db import create_db_engine, make_session_factory
from .enrichment import Enricher, build_enricher
from .errors import DuplicateKey, ValidationError, WorkoutError
from .filters import FilterCriteria, build_predicate
from .logging_config import setup_logger
from .schemas import (
    MAX_INT,
    AverageCaloriesOut,
    AverageDurationOut,
    AverageHeartRateOut,
    TotalDistanceOut,
    Workout,
    WorkoutCreated,
    WorkoutDeleted,
    WorkoutDeleteIn,
    WorkoutIn,
)
from .settings import settings
from .store import Aggregate, Metric, WorkoutStore

logger = setup_logger(__name__)

T = TypeVar("T")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Connecting to workout store...")
    engine = create_db_engine(settings.database_url)
    store = WorkoutStore(make_session_factory(engine), tz=local_timezone())
    store.create_schema()

    app.state.store = store
    app.state.enricher = build_enricher(settings)
    logger.info("Workout API started")

    yield

    engine.dispose()
    logger.info("Workout API shut down")


app = FastAPI(title="Workout Tracker API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(WorkoutError)
async def workout_error_handler(request: Request, exc: WorkoutError):
    logger.info("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=400, content={"detail": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.info("%s %s invalid request: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"detail": "Missing or invalid workout data"})


def get_store(request: Request) -> WorkoutStore:
    return request.app.state.store


def get_enricher(request: Request) -> Enricher:
    return request.app.state.enricher


def _optional(value: Optional[str], name: str, cast: Callable[[str], T]) -> Optional[T]:
    # empty query values mean "no filter", same as a missing key
    if value is None or not value.strip():
        return None
    try:
        return cast(value.strip())
    except ValueError:
        raise ValidationError(f"Invalid value for {name}: '{value}'") from None


def _optional_int(value: Optional[str], name: str) -> Optional[int]:
    number = _optional(value, name, int)
    if number is not None and not -MAX_INT <= number <= MAX_INT:
        raise ValidationError(f"Value for {name} is out of range: '{value}'")
    return number


def _round_half_up(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@app.get("/health")
def health(store: WorkoutStore = Depends(get_store)):
    store.ping()
    return {"status": "ok", "ts": datetime.now(timezone.utc).isoformat()}


@app.get("/get-workouts", response_model=List[Workout])
def get_workouts(
    workout_name: Optional[str] = None,
    min_duration: Optional[str] = None,
    max_duration: Optional[str] = None,
    min_distance: Optional[str] = None,
    max_distance: Optional[str] = None,
    heart_rate: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    store: WorkoutStore = Depends(get_store),
):
    """List workouts; durations in seconds, distances in kilometres.

    Without ``start_date``/``end_date`` only today's workouts are returned.
    """
    window = normalize_date_range(start_date, end_date)
    criteria = FilterCriteria(
        name_substring=(workout_name or "").strip() or None,
        min_duration=_optional_int(min_duration, "min_duration"),
        max_duration=_optional_int(max_duration, "max_duration"),
        min_distance=_optional(min_distance, "min_distance", float),
        max_distance=_optional(max_distance, "max_distance", float),
        heart_rate=_optional_int(heart_rate, "heart_rate"),
        start_instant=window.start_instant,
        end_instant=window.end_instant,
    )
    return store.list(build_predicate(criteria))


@app.get("/get-total-distance/{timeframe}", response_model=TotalDistanceOut)
def get_total_distance(timeframe: str, store: WorkoutStore = Depends(get_store)):
    total = store.aggregate(parse_timeframe(timeframe), Metric.DISTANCE, Aggregate.SUM)
    return {"total_distance": round(total, 2)}


@app.get("/get-average-duration/{timeframe}", response_model=AverageDurationOut)
def get_average_duration(timeframe: str, store: WorkoutStore = Depends(get_store)):
    avg_seconds = store.aggregate(parse_timeframe(timeframe), Metric.DURATION, Aggregate.AVG)
    return {"avg_duration": round(avg_seconds / 60, 2)}


@app.get("/get-average-heartrate/{timeframe}", response_model=AverageHeartRateOut)
def get_average_heartrate(timeframe: str, store: WorkoutStore = Depends(get_store)):
    avg = store.aggregate(parse_timeframe(timeframe), Metric.HEART_RATE, Aggregate.AVG)
    return {"avg_heartrate": _round_half_up(avg)}


@app.get("/get-average-calories/{timeframe}", response_model=AverageCaloriesOut)
def get_average_calories(timeframe: str, store: WorkoutStore = Depends(get_store)):
    avg = store.aggregate(parse_timeframe(timeframe), Metric.CALORIES_BURNED, Aggregate.AVG)
    return {"avg_calories": _round_half_up(avg)}


@app.post("/add-workout", response_model=WorkoutCreated)
def add_workout(
    payload: WorkoutIn,
    store: WorkoutStore = Depends(get_store),
    enricher: Enricher = Depends(get_enricher),
):
    # reject duplicates before any third-party lookup
    if store.exists(payload.workout_name):
        raise DuplicateKey(payload.workout_name)

    workout = enricher.enrich(Workout(**payload.model_dump()))
    saved = store.insert(workout)

    return {"message": "Workout added successfully", "workout": saved}


@app.delete("/delete-workout", response_model=WorkoutDeleted)
def delete_workout(payload: WorkoutDeleteIn, store: WorkoutStore = Depends(get_store)):
    deleted = store.delete(payload.workout_name)
    message = "Workout deleted" if deleted else "No workout with that name"
    return {"message": message, "deleted": deleted}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("workout_api.main:app", host=settings.host, port=settings.port)
