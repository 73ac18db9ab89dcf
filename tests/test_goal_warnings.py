"""Tests for the debounced daily goal warning."""

import asyncio
from datetime import date, timedelta
from uuid import uuid4

from intake_tracker.domain.intake import DailyIntake, ManualEntryDraft
from intake_tracker.domain.nutrition import NutritionVector
from intake_tracker.services.dispatch import BackgroundDispatcher
from intake_tracker.services.events import Debouncer
from intake_tracker.services.goal_warnings import ExceededGoalWarner
from intake_tracker.services.notifications import NotificationService
from tests.conftest import FakeNotificationClient, build_goal_resolver, build_ledger

DAY = date(2024, 1, 1)


def _draft(calories: float) -> ManualEntryDraft:
    return ManualEntryDraft(
        meal_type="dinner",
        food_name="Pasta",
        nutrition=NutritionVector(calories=calories),
    )


def _wire(delay_seconds: float = 0.01):
    ledger = build_ledger()
    client = FakeNotificationClient()
    warner = ExceededGoalWarner(
        goal_resolver=build_goal_resolver(),
        notification_service=NotificationService(client),
        dispatcher=BackgroundDispatcher(),
        debouncer=Debouncer(delay_seconds=delay_seconds),
    )
    warner.register(ledger.event_bus)
    return ledger, warner, client


def test_warns_once_when_crossing_goal() -> None:
    ledger, warner, client = _wire()
    user_id = uuid4()

    async def scenario():
        await ledger.add_entry(user_id, DAY, _draft(1500))
        await warner.debouncer.flush()
        await ledger.add_entry(user_id, DAY, _draft(700))
        await warner.debouncer.flush()
        await ledger.add_entry(user_id, DAY, _draft(100))
        await warner.debouncer.flush()
        await warner.dispatcher.drain()

    asyncio.run(scenario())

    assert len(client.messages) == 1
    assert client.messages[0][1] == "Daily limit exceeded"


def test_burst_of_changes_is_evaluated_once() -> None:
    ledger, warner, client = _wire(delay_seconds=0.05)
    user_id = uuid4()

    async def scenario():
        first = await ledger.add_entry(user_id, DAY, _draft(2500))
        await ledger.remove_entry(user_id, DAY, first.entries[0].id)
        await warner.debouncer.flush()
        await warner.dispatcher.drain()

    asyncio.run(scenario())

    assert client.messages == []


def test_rearms_after_dropping_under_goal() -> None:
    ledger, warner, client = _wire()
    user_id = uuid4()

    async def scenario():
        over = await ledger.add_entry(user_id, DAY, _draft(2500))
        await warner.debouncer.flush()
        await ledger.remove_entry(user_id, DAY, over.entries[0].id)
        await warner.debouncer.flush()
        await ledger.add_entry(user_id, DAY, _draft(2100))
        await warner.debouncer.flush()
        await warner.dispatcher.drain()

    asyncio.run(scenario())

    assert len(client.messages) == 2


def test_only_recent_days_over_goal_are_remembered() -> None:
    _, warner, client = _wire()
    warner.max_tracked_days = 3
    user_id = uuid4()

    def intake(offset: int, calories: float) -> DailyIntake:
        return DailyIntake(
            user_id=user_id,
            day=DAY + timedelta(days=offset),
            total_nutrition=NutritionVector(calories=calories),
            version=1,
        )

    async def scenario():
        for offset in range(10):
            await warner.evaluate(intake(offset, 2500))
        repeated = await warner.evaluate(intake(9, 2600))
        settled = await warner.evaluate(intake(8, 1200))
        await warner.dispatcher.drain()
        return repeated, settled

    repeated, settled = asyncio.run(scenario())

    assert repeated is False
    assert settled is False
    assert warner.tracked_days == 2
    assert len(client.messages) == 10
