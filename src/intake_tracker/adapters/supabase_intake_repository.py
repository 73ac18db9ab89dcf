"""Supabase repository for daily intake documents."""

from dataclasses import dataclass
from datetime import UTC, date, datetime
from uuid import UUID

from supabase import Client

from intake_tracker.domain.errors import ConflictError
from intake_tracker.domain.intake import (
    DailyIntake,
    EntrySource,
    FoodLogEntry,
    MealType,
)
from intake_tracker.domain.nutrition import NutritionVector, sum_vectors
from intake_tracker.services.ledger import IntakeRepository

_COLUMNS = "user_id, day, entries, total_nutrition, version"
_UNIQUE_VIOLATION = "23505"


@dataclass
class SupabaseIntakeRepository(IntakeRepository):
    """Stores one row per (user, day) with entries as JSON and a version counter."""

    client: Client

    def get_intake(self, user_id: UUID, day: date) -> DailyIntake | None:
        """Return the stored intake row for a day."""
        response = (
            self.client.table("daily_intakes")
            .select(_COLUMNS)
            .eq("user_id", str(user_id))
            .eq("day", day.isoformat())
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_intake(response.data[0])

    def save_intake(self, intake: DailyIntake, expected_version: int) -> DailyIntake:
        """Insert or compare-and-set the row on its version."""
        payload = {
            "entries": [entry.as_dict() for entry in intake.entries],
            "total_nutrition": intake.total_nutrition.as_dict(),
            "version": expected_version + 1,
            "updated_at": datetime.now(tz=UTC).isoformat(),
        }
        if expected_version == 0:
            try:
                response = (
                    self.client.table("daily_intakes")
                    .insert(
                        {
                            "user_id": str(intake.user_id),
                            "day": intake.day.isoformat(),
                            **payload,
                        }
                    )
                    .execute()
                )
            except Exception as exc:
                if getattr(exc, "code", None) == _UNIQUE_VIOLATION:
                    raise ConflictError(
                        "Daily intake was created concurrently", operation="insert"
                    ) from exc
                raise
        else:
            response = (
                self.client.table("daily_intakes")
                .update(payload)
                .eq("user_id", str(intake.user_id))
                .eq("day", intake.day.isoformat())
                .eq("version", expected_version)
                .execute()
            )
        if not response.data:
            raise ConflictError(
                "Daily intake changed concurrently", operation="save_intake"
            )
        return _parse_intake(response.data[0])

    def list_intakes(
        self, user_id: UUID, start: date, end: date
    ) -> list[DailyIntake]:
        """Return intakes within a date range, newest first."""
        response = (
            self.client.table("daily_intakes")
            .select(_COLUMNS)
            .eq("user_id", str(user_id))
            .gte("day", start.isoformat())
            .lte("day", end.isoformat())
            .order("day", desc=True)
            .execute()
        )
        return [_parse_intake(row) for row in response.data or []]


def _parse_intake(row: dict[str, object]) -> DailyIntake:
    entries = tuple(_parse_entry(item) for item in row.get("entries") or [])
    return DailyIntake(
        user_id=UUID(str(row["user_id"])),
        day=date.fromisoformat(str(row["day"])),
        entries=entries,
        total_nutrition=sum_vectors([entry.nutrition for entry in entries]),
        version=int(row.get("version") or 0),
    )


def _parse_entry(item: dict[str, object]) -> FoodLogEntry:
    return FoodLogEntry(
        id=UUID(str(item["id"])),
        meal_type=MealType(item["meal_type"]),
        source=EntrySource(item["source"]),
        food_name=str(item.get("food_name", "")),
        quantity=float(item.get("quantity") or 1.0),
        nutrition=NutritionVector.from_dict(item.get("nutrition") or {}),
        created_at=datetime.fromisoformat(str(item["created_at"])),
        catalog_ref=item.get("catalog_ref"),
    )
