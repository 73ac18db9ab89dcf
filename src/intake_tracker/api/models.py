"""Request payload models for the tracking API."""

from typing import Any
from uuid import UUID

from pydantic import AliasChoices, BaseModel, Field

from intake_tracker.domain.nutrition import NutritionVector


class NutritionPayload(BaseModel):
    """Nutrient amounts; omitted nutrients count as zero."""

    calories: float = 0.0
    protein: float = 0.0
    carbs: float = Field(
        default=0.0, validation_alias=AliasChoices("carbs", "carbohydrates")
    )
    fat: float = 0.0
    fiber: float = 0.0

    def to_vector(self) -> NutritionVector:
        return NutritionVector(
            calories=self.calories,
            protein=self.protein,
            carbs=self.carbs,
            fat=self.fat,
            fiber=self.fiber,
        )


class GoalRequest(BaseModel):
    """Manual goal override; presence and bounds are checked by the resolver."""

    calories: float | None = None
    protein: float | None = None
    carbs: float | None = None
    fat: float | None = None
    fiber: float | None = None


class CatalogEntryRequest(BaseModel):
    meal_type: str
    ref_id: str
    quantity: float = 1.0


class ManualEntryRequest(BaseModel):
    meal_type: str
    food_name: str
    nutrition: NutritionPayload
    quantity: float = 1.0


class ScanEntryRequest(BaseModel):
    """Result of the image classifier: a label and a per-serving guess."""

    meal_type: str
    food_name: str
    nutrition: NutritionPayload
    quantity: float = 1.0


class FinalizeRequest(BaseModel):
    meal_type: str


class InternalEventRequest(BaseModel):
    """Event pushed by a collaborator service to a user's sessions."""

    user_id: UUID
    type: str
    payload: dict[str, Any] = Field(default_factory=dict)
