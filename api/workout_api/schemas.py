from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, Field, StringConstraints

# PostgreSQL INTEGER
MAX_INT = 2_147_483_647

WorkoutName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class WorkoutIn(BaseModel):
    workout_name: WorkoutName
    duration: int = Field(gt=0, le=MAX_INT)  # seconds
    distance: float = Field(gt=0)  # kilometres
    heart_rate: int = Field(gt=0, le=MAX_INT)


class Workout(BaseModel):
    workout_name: str
    duration: int
    distance: float
    heart_rate: int | None = None
    weather: str | None = None
    calories_burned: int | None = None
    date_time: datetime | None = None


class WorkoutCreated(BaseModel):
    message: str
    workout: Workout


class WorkoutDeleteIn(BaseModel):
    workout_name: WorkoutName


class WorkoutDeleted(BaseModel):
    message: str
    deleted: bool


class TotalDistanceOut(BaseModel):
    total_distance: float


class AverageDurationOut(BaseModel):
    avg_duration: float  # minutes


class AverageHeartRateOut(BaseModel):
    avg_heartrate: int


class AverageCaloriesOut(BaseModel):
    avg_calories: int
