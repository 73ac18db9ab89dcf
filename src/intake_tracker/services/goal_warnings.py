"""One-shot warning when a day's calories cross the goal."""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date
from uuid import UUID

from intake_tracker.domain.events import IntakeChanged
from intake_tracker.domain.intake import DailyIntake
from intake_tracker.services.dispatch import BackgroundDispatcher
from intake_tracker.services.events import Debouncer, EventBus
from intake_tracker.services.goals import GoalResolver
from intake_tracker.services.notifications import NotificationService

_logger = logging.getLogger(__name__)


@dataclass
class ExceededGoalWarner:
    """Warns once per under-to-over transition of a day's calories.

    Bursts of mutations are debounced per day so only the settled state is
    evaluated. Only days currently over goal are remembered, capped at
    max_tracked_days with the least recently evaluated dropped first.
    """

    goal_resolver: GoalResolver
    notification_service: NotificationService
    dispatcher: BackgroundDispatcher
    debouncer: Debouncer
    max_tracked_days: int = 4096
    _over_goal: OrderedDict[tuple[UUID, date], None] = field(
        default_factory=OrderedDict, init=False, repr=False
    )

    def register(self, event_bus: EventBus) -> None:
        event_bus.subscribe(IntakeChanged, self.on_intake_changed)

    async def on_intake_changed(self, event: IntakeChanged) -> None:
        intake = event.intake
        key = (intake.user_id, intake.day)
        self.debouncer.call(key, lambda: self.evaluate(intake))

    async def evaluate(self, intake: DailyIntake) -> bool:
        """Send the warning if this state newly exceeds the goal."""
        key = (intake.user_id, intake.day)
        goal = await self.goal_resolver.resolve_goal(intake.user_id)
        if intake.total_nutrition.calories <= goal.calories:
            self._over_goal.pop(key, None)
            return False
        if key in self._over_goal:
            self._over_goal.move_to_end(key)
            return False
        self._over_goal[key] = None
        while len(self._over_goal) > self.max_tracked_days:
            self._over_goal.popitem(last=False)
        _logger.info(
            "Daily goal exceeded: user_id=%s day=%s calories=%.0f goal=%.0f",
            intake.user_id,
            intake.day,
            intake.total_nutrition.calories,
            goal.calories,
        )
        self.dispatcher.schedule(
            self.notification_service.send_goal_exceeded(
                intake.user_id, intake.day, intake.total_nutrition, goal
            ),
            name="notify:goal-exceeded",
        )
        return True

    @property
    def tracked_days(self) -> int:
        return len(self._over_goal)
