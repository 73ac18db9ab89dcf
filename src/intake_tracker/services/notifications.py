"""Notification formatting and delivery."""

from dataclasses import dataclass
from datetime import date
from uuid import UUID

from intake_tracker.adapters.notification_client import NotificationClient
from intake_tracker.domain.intake import MealFinalizationRecord
from intake_tracker.domain.nutrition import NutritionGoal, NutritionVector

_MACRO_LABELS = (("protein", "Protein"), ("carbs", "Carbs"), ("fat", "Fat"))


@dataclass
class NotificationService:
    """Sends meal finalization summaries and goal warnings."""

    client: NotificationClient

    async def send_meal_finalized(
        self, user_id: UUID, record: MealFinalizationRecord
    ) -> None:
        subject, text = format_meal_finalized(record)
        await self.client.send(user_id, subject, text)

    async def send_goal_exceeded(
        self,
        user_id: UUID,
        day: date,
        consumed: NutritionVector,
        goal: NutritionGoal,
    ) -> None:
        subject, text = format_goal_exceeded(day, consumed, goal)
        await self.client.send(user_id, subject, text)


def format_meal_finalized(record: MealFinalizationRecord) -> tuple[str, str]:
    """Return subject and body for a meal finalization message."""
    meal = record.meal_type.value.capitalize()
    status = "Limit exceeded!" if record.has_exceeded else "On track!"
    goal = record.goal
    lines = [
        f"Your {meal} on {record.day.strftime('%A, %B %d, %Y')} has been finalized.",
        f"{meal}: {record.meal_consumed.calories:.0f} kcal",
    ]
    if record.exceeded.calories > 0:
        percentage = record.consumed.calories / goal.calories * 100
        lines.append(
            f"Warning: you've consumed {percentage:.1f}% of your daily calorie "
            f"goal, {record.exceeded.calories:.0f} kcal over."
        )
    lines.append(
        f"Calories: {record.consumed.calories:.0f} / {goal.calories:.0f} kcal "
        f"({_remaining_label(record, 'calories', 0, ' kcal')})"
    )
    for name, label in (*_MACRO_LABELS, ("fiber", "Fiber")):
        lines.append(
            f"{label}: {getattr(record.consumed, name):.1f}g / "
            f"{getattr(goal, name):.0f}g ({_remaining_label(record, name, 1, 'g')})"
        )
    return f"{meal} finalized - {status}", "\n".join(lines)


def format_goal_exceeded(
    day: date, consumed: NutritionVector, goal: NutritionGoal
) -> tuple[str, str]:
    """Return subject and body for a daily calorie limit warning."""
    over = consumed.calories - goal.calories
    text = (
        f"You've logged {consumed.calories:.0f} kcal on {day.isoformat()}, "
        f"{over:.0f} kcal over your {goal.calories:.0f} kcal goal."
    )
    return "Daily limit exceeded", text


def _remaining_label(
    record: MealFinalizationRecord, name: str, digits: int, unit: str
) -> str:
    exceeded = getattr(record.exceeded, name)
    if exceeded > 0:
        return f"+{exceeded:.{digits}f}{unit} over"
    return f"{getattr(record.remaining, name):.{digits}f}{unit} left"
