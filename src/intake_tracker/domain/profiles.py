"""Domain models for user health profiles."""

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class HealthProfile:
    """Body metrics used to derive a nutrition goal."""

    user_id: UUID
    weight_kg: float | None
    height_cm: float | None
    age: int | None
    gender: str | None
    activity_level: str | None
    daily_calorie_goal: float | None = None
