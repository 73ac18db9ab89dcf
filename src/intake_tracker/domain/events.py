"""Events emitted by the ledger and pushed to live sessions."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from uuid import UUID

from intake_tracker.domain.intake import DailyIntake, FoodLogEntry


class RealtimeEventType(StrEnum):
    """Event names understood by connected clients."""

    FOOD_ADDED = "food:added"
    FOOD_REMOVED = "food:removed"
    MEALPLAN_GENERATED = "mealplan:generated"
    PROFILE_UPDATED = "profile:updated"


@dataclass(frozen=True)
class RealtimeEvent:
    """Message delivered to every session of a user."""

    type: RealtimeEventType
    user_id: UUID
    payload: dict[str, object]
    emitted_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))

    def as_message(self) -> dict[str, object]:
        return {
            "type": self.type.value,
            "payload": self.payload,
            "emitted_at": self.emitted_at.isoformat(),
        }


class IntakeChange(StrEnum):
    ADDED = "added"
    REMOVED = "removed"


@dataclass(frozen=True)
class IntakeChanged:
    """In-process notification that a ledger mutation was committed."""

    change: IntakeChange
    intake: DailyIntake
    entry: FoodLogEntry
