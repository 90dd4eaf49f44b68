"""Persistence for workouts, keyed by ``workout_name``."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone, tzinfo
from enum import Enum
from typing import Iterator, List, Optional

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .dates import Timeframe, timeframe_window
from .errors import DuplicateKey, StoreUnavailable
from .filters import FilterCriteria, Predicate, build_predicate
from .logging_config import setup_logger
from .schemas import Workout

logger = setup_logger(__name__)

CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS workouts (
    workout_name TEXT PRIMARY KEY,
    duration INTEGER NOT NULL,
    distance DECIMAL NOT NULL,
    heart_rate INTEGER,
    weather TEXT,
    calories_burned INTEGER,
    date_time TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
)
"""

WORKOUT_COLUMNS = "workout_name, duration, distance, heart_rate, weather, calories_burned, date_time"


class Metric(str, Enum):
    DISTANCE = "distance"
    DURATION = "duration"
    HEART_RATE = "heart_rate"
    CALORIES_BURNED = "calories_burned"


class Aggregate(str, Enum):
    SUM = "SUM"
    AVG = "AVG"


def _to_workout(row) -> Workout:
    data = dict(row)
    # SQLite hands timestamps back as ISO strings
    if isinstance(data.get("date_time"), str):
        data["date_time"] = datetime.fromisoformat(data["date_time"])
    return Workout(**data)


class WorkoutStore:
    def __init__(self, session_factory: sessionmaker, tz: Optional[tzinfo] = None) -> None:
        self._session_factory = session_factory
        self._tz = tz

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except IntegrityError:
            db.rollback()
            raise
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Workout store query failed")
            raise StoreUnavailable("Workout store is unavailable") from exc
        finally:
            db.close()

    def create_schema(self) -> None:
        with self._session() as db:
            db.execute(text(CREATE_TABLE_SQL))
        logger.info("Workouts table ready")

    def ping(self) -> None:
        with self._session() as db:
            db.execute(text("SELECT 1"))

    def exists(self, workout_name: str) -> bool:
        with self._session() as db:
            row = db.execute(
                text("SELECT 1 FROM workouts WHERE workout_name = :workout_name"),
                {"workout_name": workout_name},
            ).first()
        return row is not None

    def insert(self, workout: Workout) -> Workout:
        date_time = workout.date_time or datetime.now(timezone.utc)
        if date_time.tzinfo is None:
            date_time = date_time.replace(tzinfo=timezone.utc)
        stored = workout.model_copy(update={"date_time": date_time.astimezone(timezone.utc)})

        try:
            with self._session() as db:
                db.execute(
                    text(
                        f"""
                        INSERT INTO workouts({WORKOUT_COLUMNS})
                        VALUES (:workout_name, :duration, :distance, :heart_rate,
                                :weather, :calories_burned, :date_time)
                        """
                    ),
                    stored.model_dump(),
                )
        except IntegrityError as exc:
            raise DuplicateKey(workout.workout_name) from exc

        logger.info("Stored workout %r", stored.workout_name)
        return stored

    def list(self, predicate: Optional[Predicate] = None) -> List[Workout]:
        predicate = predicate or Predicate()
        with self._session() as db:
            rows = db.execute(
                text(
                    f"SELECT {WORKOUT_COLUMNS} FROM workouts "
                    f"{predicate.where_sql()} ORDER BY date_time DESC"
                ),
                predicate.params,
            ).mappings().all()
        return [_to_workout(r) for r in rows]

    def delete(self, workout_name: str) -> bool:
        """Remove a workout by name. Returns False when nothing matched."""
        with self._session() as db:
            result = db.execute(
                text("DELETE FROM workouts WHERE workout_name = :workout_name"),
                {"workout_name": workout_name},
            )
            deleted = result.rowcount > 0
        if deleted:
            logger.info("Deleted workout %r", workout_name)
        return deleted

    def count(self) -> int:
        with self._session() as db:
            return int(db.execute(text("SELECT COUNT(*) FROM workouts")).scalar_one())

    def aggregate(
        self,
        timeframe: Timeframe,
        metric: Metric,
        func: Aggregate,
        now: Optional[datetime] = None,
    ) -> float:
        """SUM or AVG of ``metric`` over the current ``timeframe`` bucket.

        Returns 0.0 when no row falls in the bucket.
        """
        window = timeframe_window(timeframe, now=now, tz=self._tz)
        predicate = build_predicate(
            FilterCriteria(start_instant=window.start_instant, end_instant=window.end_instant)
        )
        # metric and func come from closed enums, never from request text
        sql = (
            f"SELECT COALESCE({Aggregate(func).value}({Metric(metric).value}), 0) AS value "
            f"FROM workouts {predicate.where_sql()}"
        )
        with self._session() as db:
            value = db.execute(text(sql), predicate.params).scalar_one()
        return float(value or 0)
