"""Shared test fixtures."""

import asyncio
import time
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any
from uuid import UUID, uuid4

import pytest

from intake_tracker.adapters.fdc_client import FdcClient
from intake_tracker.adapters.notification_client import NotificationClient
from intake_tracker.adapters.supabase_authenticator import Authenticator
from intake_tracker.config import Settings
from intake_tracker.containers import AppContainer, wire_container
from intake_tracker.domain.errors import ConflictError, DependencyError
from intake_tracker.domain.intake import DailyIntake
from intake_tracker.domain.nutrition import CatalogItem, NutritionGoal, NutritionVector
from intake_tracker.domain.profiles import HealthProfile
from intake_tracker.services.cache import InMemoryCache
from intake_tracker.services.catalog import CatalogService, RecipeRepository
from intake_tracker.services.dispatch import BackgroundDispatcher
from intake_tracker.services.events import EventBus
from intake_tracker.services.goals import GoalResolver, ManualGoalRepository
from intake_tracker.services.ledger import IntakeLedger, IntakeRepository
from intake_tracker.services.notifications import NotificationService
from intake_tracker.services.profiles import (
    HealthProfileGoalProvider,
    ProfileRepository,
)

USER_TOKEN = "user-token"
OTHER_TOKEN = "other-token"


@dataclass
class InMemoryIntakeRepository(IntakeRepository):
    """In-memory intake repository with version checks."""

    intakes: dict[tuple[UUID, date], DailyIntake] = field(default_factory=dict)
    conflicts_to_raise: int = 0
    delay_seconds: float = 0.0
    fail_with: Exception | None = None
    saves: int = 0

    def get_intake(self, user_id: UUID, day: date) -> DailyIntake | None:
        self._maybe_stall()
        return self.intakes.get((user_id, day))

    def save_intake(self, intake: DailyIntake, expected_version: int) -> DailyIntake:
        self._maybe_stall()
        if self.conflicts_to_raise > 0:
            self.conflicts_to_raise -= 1
            raise ConflictError("simulated conflict", operation="save_intake")
        key = (intake.user_id, intake.day)
        current = self.intakes.get(key)
        current_version = current.version if current else 0
        if current_version != expected_version:
            raise ConflictError("version mismatch", operation="save_intake")
        saved = replace(intake, version=expected_version + 1)
        self.intakes[key] = saved
        self.saves += 1
        return saved

    def list_intakes(
        self, user_id: UUID, start: date, end: date
    ) -> list[DailyIntake]:
        self._maybe_stall()
        found = [
            intake
            for (owner, day), intake in self.intakes.items()
            if owner == user_id and start <= day <= end
        ]
        return sorted(found, key=lambda intake: intake.day, reverse=True)

    def _maybe_stall(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        if self.delay_seconds:
            time.sleep(self.delay_seconds)


@dataclass
class InMemoryGoalRepository(ManualGoalRepository):
    """In-memory manual goal repository for tests."""

    goals: dict[UUID, NutritionGoal] = field(default_factory=dict)
    deletes: int = 0
    fail_with: Exception | None = None

    def get_manual_goal(self, user_id: UUID) -> NutritionGoal | None:
        self._maybe_fail()
        return self.goals.get(user_id)

    def save_manual_goal(self, user_id: UUID, goal: NutritionGoal) -> None:
        self._maybe_fail()
        self.goals[user_id] = goal

    def delete_manual_goal(self, user_id: UUID) -> None:
        self._maybe_fail()
        self.deletes += 1
        self.goals.pop(user_id, None)

    def _maybe_fail(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with


@dataclass
class InMemoryProfileRepository(ProfileRepository):
    """In-memory profile store for tests."""

    profiles: dict[UUID, HealthProfile] = field(default_factory=dict)
    fail_with: Exception | None = None

    def get_profile(self, user_id: UUID) -> HealthProfile | None:
        if self.fail_with is not None:
            raise self.fail_with
        return self.profiles.get(user_id)


@dataclass
class InMemoryRecipeRepository(RecipeRepository):
    """In-memory recipe catalog for tests."""

    recipes: dict[str, CatalogItem] = field(
        default_factory=lambda: {
            "recipe-oats": CatalogItem(
                ref_id="recipe-oats",
                name="Overnight oats",
                per_serving=NutritionVector(
                    calories=350, protein=15, carbs=55, fat=8, fiber=7
                ),
            )
        }
    )
    calls: int = 0

    def get_recipe(self, recipe_id: str) -> CatalogItem | None:
        self.calls += 1
        return self.recipes.get(recipe_id)


@dataclass
class FakeFdcClient(FdcClient):
    """Fake FDC client with in-memory responses."""

    food_payload: dict[str, object] = field(
        default_factory=lambda: {
            "fdcId": 171077,
            "description": "Chicken breast, roasted",
            "servingSize": 100,
            "servingSizeUnit": "g",
            "foodNutrients": [
                {"nutrientId": 1008, "amount": 165},
                {"nutrientId": 1003, "amount": 31},
                {"nutrientId": 1004, "amount": 3.6},
                {"nutrientId": 1005, "amount": 0},
                {"nutrientId": 1079, "amount": 0},
            ],
        }
    )
    errors: list[Exception] = field(default_factory=list)
    calls: list[int] = field(default_factory=list)

    async def get_food(self, fdc_id: int) -> dict[str, object]:
        self.calls.append(fdc_id)
        if self.errors:
            raise self.errors.pop(0)
        return self.food_payload


@dataclass
class FakeNotificationClient(NotificationClient):
    """Fake notification client that records messages."""

    messages: list[tuple[UUID, str, str]] = field(default_factory=list)

    async def send(self, user_id: UUID, subject: str, text: str) -> None:
        self.messages.append((user_id, subject, text))


@dataclass
class FakeAuthenticator(Authenticator):
    """Maps fixed tokens to user ids."""

    tokens: dict[str, UUID] = field(default_factory=dict)
    unavailable: bool = False

    def authenticate(self, token: str) -> UUID | None:
        if self.unavailable:
            raise DependencyError("auth down", operation="authenticate")
        return self.tokens.get(token)


@dataclass
class FakeChannel:
    """Realtime channel that records pushed messages."""

    messages: list[Any] = field(default_factory=list)
    fail: bool = False
    closed_with: int | None = None
    send_delays: list[float] = field(default_factory=list)

    async def send_json(self, data: Any) -> None:
        if self.fail:
            raise ConnectionError("socket gone")
        if self.send_delays:
            await asyncio.sleep(self.send_delays.pop(0))
        self.messages.append(data)

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        self.closed_with = code


def build_ledger(
    repository: InMemoryIntakeRepository | None = None,
    fdc_client: FakeFdcClient | None = None,
    recipe_repository: InMemoryRecipeRepository | None = None,
    **kwargs: Any,
) -> IntakeLedger:
    """Ledger over in-memory collaborators."""
    catalog = CatalogService(
        fdc_client=fdc_client or FakeFdcClient(),
        recipe_repository=recipe_repository or InMemoryRecipeRepository(),
        cache=InMemoryCache(),
        retry_delay_seconds=0,
    )
    return IntakeLedger(
        repository=repository or InMemoryIntakeRepository(),
        catalog=catalog,
        event_bus=EventBus(),
        **kwargs,
    )


def build_goal_resolver(
    goals: InMemoryGoalRepository | None = None,
    profiles: InMemoryProfileRepository | None = None,
) -> GoalResolver:
    return GoalResolver(
        repository=goals or InMemoryGoalRepository(),
        profile_goals=HealthProfileGoalProvider(
            profiles or InMemoryProfileRepository()
        ),
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.payload.signature",
        internal_token="internal-token",
        fdc_api_key="fdc-key",
        goal_warning_debounce_seconds=0.01,
    )


@pytest.fixture
def user_id() -> UUID:
    return uuid4()


@pytest.fixture
def other_user_id() -> UUID:
    return uuid4()


@pytest.fixture
def notification_client() -> FakeNotificationClient:
    return FakeNotificationClient()


@pytest.fixture
def container(
    settings: Settings,
    user_id: UUID,
    other_user_id: UUID,
    notification_client: FakeNotificationClient,
) -> AppContainer:
    ledger = build_ledger()
    return wire_container(
        settings=settings,
        authenticator=FakeAuthenticator(
            tokens={USER_TOKEN: user_id, OTHER_TOKEN: other_user_id}
        ),
        catalog_service=ledger.catalog,
        goal_resolver=build_goal_resolver(),
        ledger=ledger,
        notification_service=NotificationService(notification_client),
        dispatcher=BackgroundDispatcher(),
    )
