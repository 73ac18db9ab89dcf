"""Supabase repository for manual nutrition goals."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from intake_tracker.domain.nutrition import GoalSource, NutritionGoal
from intake_tracker.services.goals import ManualGoalRepository


@dataclass
class SupabaseGoalRepository(ManualGoalRepository):
    """Supabase implementation for manual goal overrides."""

    client: Client

    def get_manual_goal(self, user_id: UUID) -> NutritionGoal | None:
        """Return the stored override for a user."""
        response = (
            self.client.table("nutrition_goals")
            .select("calories, protein, carbs, fat, fiber")
            .eq("user_id", str(user_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        return NutritionGoal(
            calories=float(row["calories"]),
            protein=float(row["protein"]),
            carbs=float(row["carbs"]),
            fat=float(row["fat"]),
            fiber=float(row["fiber"]),
            source=GoalSource.MANUAL,
        )

    def save_manual_goal(self, user_id: UUID, goal: NutritionGoal) -> None:
        """Upsert the override keyed by user."""
        self.client.table("nutrition_goals").upsert(
            {
                "user_id": str(user_id),
                **goal.targets.as_dict(),
                "updated_at": datetime.now(tz=UTC).isoformat(),
            },
            on_conflict="user_id",
        ).execute()

    def delete_manual_goal(self, user_id: UUID) -> None:
        """Delete the override row if present."""
        self.client.table("nutrition_goals").delete().eq(
            "user_id", str(user_id)
        ).execute()
