"""Translate optional workout filters into a parameterized WHERE clause.

Clauses only reference bind names (``:min_duration``...); user values travel
in ``Predicate.params`` and are never formatted into the SQL text. The SQL
used is plain enough to run on both PostgreSQL and SQLite.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

LIKE_ESCAPE = "\\"


@dataclass(frozen=True)
class FilterCriteria:
    """Optional filters; ``None`` (or an empty name) means "no constraint"."""

    name_substring: Optional[str] = None
    min_duration: Optional[int] = None
    max_duration: Optional[int] = None
    min_distance: Optional[float] = None
    max_distance: Optional[float] = None
    heart_rate: Optional[int] = None
    start_instant: Optional[datetime] = None
    end_instant: Optional[datetime] = None


@dataclass
class Predicate:
    clauses: List[str] = field(default_factory=list)
    params: Dict[str, Any] = field(default_factory=dict)

    def add(self, clause: str, name: str, value: Any) -> None:
        self.clauses.append(clause)
        self.params[name] = value

    @property
    def values(self) -> List[Any]:
        return list(self.params.values())

    def where_sql(self) -> str:
        if not self.clauses:
            return "WHERE 1=1"
        return "WHERE " + " AND ".join(self.clauses)


def _like_pattern(value: str) -> str:
    escaped = (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped.lower()}%"


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        raise ValueError("filter instants must be timezone-aware")
    return value.astimezone(timezone.utc)


def build_predicate(criteria: FilterCriteria) -> Predicate:
    predicate = Predicate()

    if criteria.name_substring:
        predicate.add(
            f"LOWER(workout_name) LIKE :name_pattern ESCAPE '{LIKE_ESCAPE}'",
            "name_pattern",
            _like_pattern(criteria.name_substring),
        )

    if criteria.min_duration is not None:
        predicate.add("duration >= :min_duration", "min_duration", criteria.min_duration)
    if criteria.max_duration is not None:
        predicate.add("duration <= :max_duration", "max_duration", criteria.max_duration)

    if criteria.min_distance is not None:
        predicate.add("distance >= :min_distance", "min_distance", criteria.min_distance)
    if criteria.max_distance is not None:
        predicate.add("distance <= :max_distance", "max_distance", criteria.max_distance)

    if criteria.heart_rate is not None:
        predicate.add("heart_rate = :heart_rate", "heart_rate", criteria.heart_rate)

    # Half-open window: start inclusive, end exclusive
    if criteria.start_instant is not None:
        predicate.add("date_time >= :start_instant", "start_instant", _utc(criteria.start_instant))
    if criteria.end_instant is not None:
        predicate.add("date_time < :end_instant", "end_instant", _utc(criteria.end_instant))

    return predicate
