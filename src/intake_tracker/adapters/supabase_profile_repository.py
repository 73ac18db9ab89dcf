"""Supabase repository for health profiles."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from intake_tracker.domain.profiles import HealthProfile
from intake_tracker.services.profiles import ProfileRepository


@dataclass
class SupabaseProfileRepository(ProfileRepository):
    """Reads the profile service's health_profiles table."""

    client: Client

    def get_profile(self, user_id: UUID) -> HealthProfile | None:
        """Return the user's health profile."""
        response = (
            self.client.table("health_profiles")
            .select(
                "weight_kg, height_cm, age, gender, activity_level, daily_calorie_goal"
            )
            .eq("user_id", str(user_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        return HealthProfile(
            user_id=user_id,
            weight_kg=_optional_float(row.get("weight_kg")),
            height_cm=_optional_float(row.get("height_cm")),
            age=int(row["age"]) if row.get("age") is not None else None,
            gender=row.get("gender"),
            activity_level=row.get("activity_level"),
            daily_calorie_goal=_optional_float(row.get("daily_calorie_goal")),
        )


def _optional_float(value: object) -> float | None:
    if isinstance(value, int | float):
        return float(value)
    return None
