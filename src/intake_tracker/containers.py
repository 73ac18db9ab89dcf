"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from intake_tracker.adapters.fdc_client import HttpxFdcClient
from intake_tracker.adapters.notification_client import HttpxNotificationClient
from intake_tracker.adapters.supabase_authenticator import (
    Authenticator,
    SupabaseAuthenticator,
)
from intake_tracker.adapters.supabase_goal_repository import SupabaseGoalRepository
from intake_tracker.adapters.supabase_intake_repository import (
    SupabaseIntakeRepository,
)
from intake_tracker.adapters.supabase_profile_repository import (
    SupabaseProfileRepository,
)
from intake_tracker.adapters.supabase_recipe_repository import (
    SupabaseRecipeRepository,
)
from intake_tracker.config import Settings
from intake_tracker.services.cache import InMemoryCache
from intake_tracker.services.catalog import CatalogService
from intake_tracker.services.dispatch import BackgroundDispatcher
from intake_tracker.services.events import Debouncer, EventBus
from intake_tracker.services.finalizer import MealFinalizer
from intake_tracker.services.goal_warnings import ExceededGoalWarner
from intake_tracker.services.goals import GoalResolver
from intake_tracker.services.ledger import IntakeLedger
from intake_tracker.services.notifications import NotificationService
from intake_tracker.services.profiles import HealthProfileGoalProvider
from intake_tracker.services.realtime import RealtimeForwarder, RealtimePropagator


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    authenticator: Authenticator
    catalog_service: CatalogService
    goal_resolver: GoalResolver
    ledger: IntakeLedger
    meal_finalizer: MealFinalizer
    propagator: RealtimePropagator
    dispatcher: BackgroundDispatcher
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    fdc_client = HttpxFdcClient.create(
        api_key=resolved_settings.fdc_api_key,
        base_url=resolved_settings.fdc_base_url,
    )
    notification_client = HttpxNotificationClient.create(
        webhook_url=resolved_settings.notification_webhook_url,
        token=resolved_settings.notification_token,
    )
    catalog_service = CatalogService(
        fdc_client=fdc_client,
        recipe_repository=SupabaseRecipeRepository(supabase_client),
        cache=InMemoryCache(max_entries=resolved_settings.catalog_cache_max_entries),
    )
    goal_resolver = GoalResolver(
        repository=SupabaseGoalRepository(supabase_client),
        profile_goals=HealthProfileGoalProvider(
            SupabaseProfileRepository(supabase_client)
        ),
    )
    dispatcher = BackgroundDispatcher()
    event_bus = EventBus()
    ledger = IntakeLedger(
        repository=SupabaseIntakeRepository(supabase_client),
        catalog=catalog_service,
        event_bus=event_bus,
        persistence_timeout_seconds=resolved_settings.persistence_timeout_seconds,
        conflict_retries=resolved_settings.conflict_retries,
    )
    return wire_container(
        settings=resolved_settings,
        authenticator=SupabaseAuthenticator(supabase_client),
        catalog_service=catalog_service,
        goal_resolver=goal_resolver,
        ledger=ledger,
        notification_service=NotificationService(notification_client),
        dispatcher=dispatcher,
        extra_closers=[fdc_client.close, notification_client.close],
    )


def wire_container(  # noqa: PLR0913
    *,
    settings: Settings,
    authenticator: Authenticator,
    catalog_service: CatalogService,
    goal_resolver: GoalResolver,
    ledger: IntakeLedger,
    notification_service: NotificationService,
    dispatcher: BackgroundDispatcher,
    extra_closers: list[Callable[[], Awaitable[None]]] | None = None,
) -> AppContainer:
    """Connect the ledger's event bus to the propagator and goal warner."""
    propagator = RealtimePropagator(
        dispatcher=dispatcher,
        send_timeout_seconds=settings.realtime_send_timeout_seconds,
    )
    RealtimeForwarder(propagator).register(ledger.event_bus)
    debouncer = Debouncer(delay_seconds=settings.goal_warning_debounce_seconds)
    ExceededGoalWarner(
        goal_resolver=goal_resolver,
        notification_service=notification_service,
        dispatcher=dispatcher,
        debouncer=debouncer,
    ).register(ledger.event_bus)
    meal_finalizer = MealFinalizer(
        ledger=ledger,
        goal_resolver=goal_resolver,
        notification_service=notification_service,
        dispatcher=dispatcher,
    )

    async def close_resources() -> None:
        await debouncer.flush()
        await dispatcher.drain()
        for close in extra_closers or []:
            await close()

    return AppContainer(
        settings=settings,
        authenticator=authenticator,
        catalog_service=catalog_service,
        goal_resolver=goal_resolver,
        ledger=ledger,
        meal_finalizer=meal_finalizer,
        propagator=propagator,
        dispatcher=dispatcher,
        close_resources=close_resources,
    )
