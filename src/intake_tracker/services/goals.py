"""Goal resolution: manual override, then profile, then defaults."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol, TypeVar
from uuid import UUID

from intake_tracker.domain.errors import ValidationError
from intake_tracker.domain.nutrition import (
    DEFAULT_GOAL,
    NUTRIENT_FIELDS,
    GoalSource,
    NutritionGoal,
)
from intake_tracker.services.locks import KeyedLocks
from intake_tracker.services.persistence import run_blocking
from intake_tracker.services.profiles import ProfileGoalProvider

MIN_CALORIES = 1000
MAX_CALORIES = 5000
MAX_NUTRIENT_GRAMS = 1000

T = TypeVar("T")

_logger = logging.getLogger(__name__)


class ManualGoalRepository(Protocol):
    """Persistence interface for manual goal overrides."""

    def get_manual_goal(self, user_id: UUID) -> NutritionGoal | None:
        """Return the stored override, if any."""

    def save_manual_goal(self, user_id: UUID, goal: NutritionGoal) -> None:
        """Create or replace the override."""

    def delete_manual_goal(self, user_id: UUID) -> None:
        """Remove the override; no-op when absent."""


@dataclass
class GoalResolver:
    """Resolves the nutrition goal that applies to a user."""

    repository: ManualGoalRepository
    profile_goals: ProfileGoalProvider
    persistence_timeout_seconds: float = 5.0
    _locks: KeyedLocks = field(default_factory=KeyedLocks, init=False, repr=False)

    async def resolve_goal(self, user_id: UUID) -> NutritionGoal:
        """Return the manual override, else the profile goal, else defaults.

        Store failures raise DependencyError; only a missing or incomplete
        profile falls through to the defaults.
        """
        manual = await self._persist(
            self.repository.get_manual_goal, user_id, operation="get_manual_goal"
        )
        if manual is not None:
            return manual
        derived = await self._persist(
            self.profile_goals.derive_goal, user_id, operation="derive_profile_goal"
        )
        if derived is not None:
            return derived
        return DEFAULT_GOAL

    async def set_manual_goal(
        self, user_id: UUID, values: dict[str, object]
    ) -> NutritionGoal:
        """Validate and persist a manual override."""
        goal = validate_manual_goal(values)
        async with self._locks.hold(user_id):
            await self._persist(
                self.repository.save_manual_goal,
                user_id,
                goal,
                operation="save_manual_goal",
            )
        _logger.info("Manual goal saved: user_id=%s", user_id)
        return goal

    async def clear_manual_goal(self, user_id: UUID) -> None:
        """Remove the override; safe to call when none exists."""
        async with self._locks.hold(user_id):
            await self._persist(
                self.repository.delete_manual_goal,
                user_id,
                operation="delete_manual_goal",
            )

    async def _persist(
        self, func: Callable[..., T], *args: object, operation: str
    ) -> T:
        return await run_blocking(
            func,
            *args,
            timeout_seconds=self.persistence_timeout_seconds,
            operation=operation,
        )


def validate_manual_goal(values: dict[str, object]) -> NutritionGoal:
    """Check all five nutrients are present and within bounds."""
    parsed: dict[str, float] = {}
    for name in NUTRIENT_FIELDS:
        raw = values.get(name)
        if raw is None or isinstance(raw, bool):
            raise ValidationError(f"{name} is required", field=name)
        try:
            parsed[name] = float(raw)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"{name} must be a number", field=name) from exc
    if not MIN_CALORIES <= parsed["calories"] <= MAX_CALORIES:
        raise ValidationError(
            f"calories must be between {MIN_CALORIES} and {MAX_CALORIES}",
            field="calories",
        )
    for name in NUTRIENT_FIELDS[1:]:
        if not 0 <= parsed[name] <= MAX_NUTRIENT_GRAMS:
            raise ValidationError(
                f"{name} must be between 0 and {MAX_NUTRIENT_GRAMS}", field=name
            )
    return NutritionGoal(**parsed, source=GoalSource.MANUAL)
