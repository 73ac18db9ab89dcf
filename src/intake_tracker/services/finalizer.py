"""Meal finalization against the day's goal."""

import logging
from dataclasses import dataclass
from datetime import date
from uuid import UUID

from intake_tracker.domain.errors import NotFoundError
from intake_tracker.domain.intake import DailyIntake, MealFinalizationRecord, MealType
from intake_tracker.domain.nutrition import (
    NUTRIENT_FIELDS,
    NutritionGoal,
    NutritionVector,
    sum_vectors,
)
from intake_tracker.services.dispatch import BackgroundDispatcher
from intake_tracker.services.goals import GoalResolver
from intake_tracker.services.ledger import IntakeLedger, parse_meal_type
from intake_tracker.services.notifications import NotificationService

_logger = logging.getLogger(__name__)


@dataclass
class MealFinalizer:
    """Computes goal deltas for a meal and schedules one notification per call.

    Calls are not deduplicated: finalizing the same meal twice notifies twice.
    """

    ledger: IntakeLedger
    goal_resolver: GoalResolver
    notification_service: NotificationService
    dispatcher: BackgroundDispatcher

    async def finalize_meal(
        self, user_id: UUID, day: date, meal_type: str
    ) -> MealFinalizationRecord:
        resolved_meal = parse_meal_type(meal_type)
        intake = await self.ledger.get_intake(user_id, day)
        if not intake.is_persisted:
            raise NotFoundError("Daily intake", day.isoformat())
        goal = await self.goal_resolver.resolve_goal(user_id)
        record = build_finalization(intake, resolved_meal, goal)
        self.dispatcher.schedule(
            self.notification_service.send_meal_finalized(user_id, record),
            name=f"notify:finalize:{resolved_meal.value}",
        )
        _logger.info(
            "Meal finalized: user_id=%s day=%s meal=%s exceeded=%s",
            user_id,
            day,
            resolved_meal,
            record.has_exceeded,
        )
        return record


def build_finalization(
    intake: DailyIntake, meal_type: MealType, goal: NutritionGoal
) -> MealFinalizationRecord:
    """Compare the day's cumulative total against the goal."""
    consumed = intake.total_nutrition
    targets = goal.targets
    remaining = NutritionVector(
        **{
            name: max(0.0, getattr(targets, name) - getattr(consumed, name))
            for name in NUTRIENT_FIELDS
        }
    )
    exceeded = NutritionVector(
        **{
            name: max(0.0, getattr(consumed, name) - getattr(targets, name))
            for name in NUTRIENT_FIELDS
        }
    )
    meal_consumed = sum_vectors(
        [entry.nutrition for entry in intake.entries_for(meal_type)]
    )
    return MealFinalizationRecord(
        meal_type=meal_type,
        day=intake.day,
        goal=goal,
        consumed=consumed,
        meal_consumed=meal_consumed,
        remaining=remaining,
        exceeded=exceeded,
        has_exceeded=any(getattr(exceeded, name) > 0 for name in NUTRIENT_FIELDS),
    )
