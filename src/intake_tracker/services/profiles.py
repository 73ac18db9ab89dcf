"""Profile-derived nutrition goals."""

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from intake_tracker.domain.nutrition import GoalSource, NutritionGoal
from intake_tracker.domain.profiles import HealthProfile

ACTIVITY_MULTIPLIERS = {
    "sedentary": 1.2,
    "light": 1.375,
    "moderate": 1.55,
    "active": 1.725,
    "very_active": 1.9,
}
_DEFAULT_ACTIVITY_MULTIPLIER = 1.2

# Share of calories per macro and kcal per gram.
_PROTEIN_SHARE, _PROTEIN_KCAL = 0.25, 4.0
_CARBS_SHARE, _CARBS_KCAL = 0.45, 4.0
_FAT_SHARE, _FAT_KCAL = 0.30, 9.0
_FIBER_G_PER_1000_KCAL = 14.0


class ProfileRepository(Protocol):
    """Read contract for the profile store."""

    def get_profile(self, user_id: UUID) -> HealthProfile | None:
        """Return the user's health profile, if any."""


class ProfileGoalProvider(Protocol):
    """Anything that can derive a goal from a user's profile."""

    def derive_goal(self, user_id: UUID) -> NutritionGoal | None:
        """Return a profile goal, or None when the profile is insufficient."""


@dataclass
class HealthProfileGoalProvider(ProfileGoalProvider):
    """Derive goals with the revised Harris-Benedict equation."""

    repository: ProfileRepository

    def derive_goal(self, user_id: UUID) -> NutritionGoal | None:
        profile = self.repository.get_profile(user_id)
        if profile is None:
            return None
        calories = daily_calories(profile)
        if calories is None:
            return None
        return goal_from_calories(calories)


def daily_calories(profile: HealthProfile) -> float | None:
    """Return the maintenance calories for a profile, if computable."""
    if not profile.weight_kg or not profile.height_cm or not profile.activity_level:
        return None
    if not profile.age:
        return profile.daily_calorie_goal or None
    if (profile.gender or "").lower() == "female":
        bmr = (
            447.593
            + 9.247 * profile.weight_kg
            + 3.098 * profile.height_cm
            - 4.330 * profile.age
        )
    else:
        bmr = (
            88.362
            + 13.397 * profile.weight_kg
            + 4.799 * profile.height_cm
            - 5.677 * profile.age
        )
    multiplier = ACTIVITY_MULTIPLIERS.get(
        profile.activity_level, _DEFAULT_ACTIVITY_MULTIPLIER
    )
    return float(round(bmr * multiplier))


def goal_from_calories(calories: float) -> NutritionGoal:
    """Split a calorie target into the default macro ratios."""
    return NutritionGoal(
        calories=calories,
        protein=round(calories * _PROTEIN_SHARE / _PROTEIN_KCAL),
        carbs=round(calories * _CARBS_SHARE / _CARBS_KCAL),
        fat=round(calories * _FAT_SHARE / _FAT_KCAL),
        fiber=round(calories / 1000 * _FIBER_G_PER_1000_KCAL),
        source=GoalSource.PROFILE,
    )
