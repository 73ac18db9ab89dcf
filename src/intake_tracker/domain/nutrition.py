"""Nutrition domain models."""

from dataclasses import dataclass
from enum import StrEnum

NUTRIENT_FIELDS = ("calories", "protein", "carbs", "fat", "fiber")


@dataclass(frozen=True)
class NutritionVector:
    """Calories plus macronutrients in grams."""

    calories: float = 0.0
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0
    fiber: float = 0.0

    @classmethod
    def zero(cls) -> "NutritionVector":
        """Return an all-zero vector."""
        return cls()

    @classmethod
    def from_dict(cls, payload: dict[str, object]) -> "NutritionVector":
        """Build a vector from a mapping, treating missing keys as zero."""
        return cls(
            **{name: float(payload.get(name) or 0.0) for name in NUTRIENT_FIELDS}
        )

    def scaled(self, factor: float) -> "NutritionVector":
        """Return this vector multiplied by a quantity."""
        return NutritionVector(
            calories=self.calories * factor,
            protein=self.protein * factor,
            carbs=self.carbs * factor,
            fat=self.fat * factor,
            fiber=self.fiber * factor,
        )

    def __add__(self, other: "NutritionVector") -> "NutritionVector":
        return NutritionVector(
            calories=self.calories + other.calories,
            protein=self.protein + other.protein,
            carbs=self.carbs + other.carbs,
            fat=self.fat + other.fat,
            fiber=self.fiber + other.fiber,
        )

    def as_dict(self) -> dict[str, float]:
        """Return the vector as a plain mapping."""
        return {name: getattr(self, name) for name in NUTRIENT_FIELDS}


def sum_vectors(vectors: list[NutritionVector]) -> NutritionVector:
    """Element-wise sum of vectors."""
    total = NutritionVector.zero()
    for vector in vectors:
        total = total + vector
    return total


class GoalSource(StrEnum):
    """Where a resolved goal came from."""

    MANUAL = "manual"
    PROFILE = "profile"
    DEFAULT = "default"


@dataclass(frozen=True)
class NutritionGoal:
    """Daily nutrition target."""

    calories: float
    protein: float
    carbs: float
    fat: float
    fiber: float
    source: GoalSource = GoalSource.DEFAULT

    @property
    def targets(self) -> NutritionVector:
        return NutritionVector(
            calories=self.calories,
            protein=self.protein,
            carbs=self.carbs,
            fat=self.fat,
            fiber=self.fiber,
        )

    def as_dict(self) -> dict[str, object]:
        return {**self.targets.as_dict(), "source": self.source.value}


DEFAULT_GOAL = NutritionGoal(
    calories=2000,
    protein=125,
    carbs=225,
    fat=67,
    fiber=25,
    source=GoalSource.DEFAULT,
)


@dataclass(frozen=True)
class CatalogItem:
    """Per-serving nutrition of a catalog food or recipe."""

    ref_id: str
    name: str
    per_serving: NutritionVector
    serving_size_g: float | None = None
