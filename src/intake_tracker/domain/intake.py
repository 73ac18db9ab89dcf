"""Domain models for the daily intake ledger."""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import StrEnum
from uuid import UUID

from intake_tracker.domain.nutrition import NutritionGoal, NutritionVector


class MealType(StrEnum):
    """Meal slots an entry can be logged against."""

    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"


class EntrySource(StrEnum):
    """Provenance of a log entry."""

    CATALOG_RECIPE = "catalog-recipe"
    CATALOG_FOOD = "catalog-food"
    MANUAL = "manual"
    SCAN = "scan"


@dataclass(frozen=True)
class FoodLogEntry:
    """One line item in a day's ledger."""

    id: UUID
    meal_type: MealType
    source: EntrySource
    food_name: str
    quantity: float
    nutrition: NutritionVector
    created_at: datetime
    catalog_ref: str | None = None

    def as_dict(self) -> dict[str, object]:
        return {
            "id": str(self.id),
            "meal_type": self.meal_type.value,
            "source": self.source.value,
            "food_name": self.food_name,
            "quantity": self.quantity,
            "nutrition": self.nutrition.as_dict(),
            "created_at": self.created_at.isoformat(),
            "catalog_ref": self.catalog_ref,
        }


@dataclass(frozen=True)
class DailyIntake:
    """Aggregate root for a user's logged foods on one calendar day."""

    user_id: UUID
    day: date
    entries: tuple[FoodLogEntry, ...] = ()
    total_nutrition: NutritionVector = field(default_factory=NutritionVector.zero)
    version: int = 0

    @property
    def is_persisted(self) -> bool:
        return self.version > 0

    def find_entry(self, entry_id: UUID) -> FoodLogEntry | None:
        for entry in self.entries:
            if entry.id == entry_id:
                return entry
        return None

    def entries_for(self, meal_type: MealType) -> list[FoodLogEntry]:
        return [entry for entry in self.entries if entry.meal_type == meal_type]

    def as_dict(self) -> dict[str, object]:
        return {
            "user_id": str(self.user_id),
            "date": self.day.isoformat(),
            "entries": [entry.as_dict() for entry in self.entries],
            "total_nutrition": self.total_nutrition.as_dict(),
            "version": self.version,
        }


@dataclass(frozen=True)
class CatalogEntryDraft:
    """Entry referencing a catalog food or recipe by id."""

    meal_type: str
    source: EntrySource
    ref_id: str
    quantity: float


@dataclass(frozen=True)
class ManualEntryDraft:
    """Entry with caller-supplied absolute nutrition."""

    meal_type: str
    food_name: str
    nutrition: NutritionVector
    quantity: float = 1.0


@dataclass(frozen=True)
class ScanEntryDraft:
    """Entry produced by the image classifier: per-serving guess plus quantity."""

    meal_type: str
    food_name: str
    per_serving: NutritionVector
    quantity: float


EntryDraft = CatalogEntryDraft | ManualEntryDraft | ScanEntryDraft


@dataclass(frozen=True)
class MealFinalizationRecord:
    """Goal-relative snapshot of the day taken when a meal is finalized."""

    meal_type: MealType
    day: date
    goal: NutritionGoal
    consumed: NutritionVector
    meal_consumed: NutritionVector
    remaining: NutritionVector
    exceeded: NutritionVector
    has_exceeded: bool

    def as_dict(self) -> dict[str, object]:
        return {
            "meal_type": self.meal_type.value,
            "date": self.day.isoformat(),
            "goal": self.goal.as_dict(),
            "consumed": self.consumed.as_dict(),
            "meal_consumed": self.meal_consumed.as_dict(),
            "remaining": self.remaining.as_dict(),
            "exceeded": self.exceeded.as_dict(),
            "has_exceeded": self.has_exceeded,
        }
