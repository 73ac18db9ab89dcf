"""Intake ledger: per-user, per-day food log with derived totals."""

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime
from typing import Protocol, TypeVar
from uuid import UUID, uuid4

from intake_tracker.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
)
from intake_tracker.domain.events import IntakeChange, IntakeChanged
from intake_tracker.domain.intake import (
    CatalogEntryDraft,
    DailyIntake,
    EntryDraft,
    EntrySource,
    FoodLogEntry,
    ManualEntryDraft,
    MealType,
    ScanEntryDraft,
)
from intake_tracker.domain.nutrition import (
    NUTRIENT_FIELDS,
    NutritionVector,
    sum_vectors,
)
from intake_tracker.services.catalog import CatalogService
from intake_tracker.services.events import EventBus
from intake_tracker.services.locks import KeyedLocks
from intake_tracker.services.persistence import run_blocking

T = TypeVar("T")

_logger = logging.getLogger(__name__)


class IntakeRepository(Protocol):
    """Persistence interface for daily intake documents."""

    def get_intake(self, user_id: UUID, day: date) -> DailyIntake | None:
        """Return the stored intake for a day, if any."""

    def save_intake(self, intake: DailyIntake, expected_version: int) -> DailyIntake:
        """Replace the stored document if its version still matches.

        Version 0 means the document must not exist yet. Returns the saved
        intake with its new version; raises ConflictError otherwise.
        """

    def list_intakes(
        self, user_id: UUID, start: date, end: date
    ) -> list[DailyIntake]:
        """Return stored intakes between start and end, inclusive, newest first."""


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class IntakeLedger:
    """Applies entry mutations atomically per (user, day) and recomputes totals."""

    repository: IntakeRepository
    catalog: CatalogService
    event_bus: EventBus
    persistence_timeout_seconds: float = 5.0
    conflict_retries: int = 2
    clock: Callable[[], datetime] = _utc_now
    _locks: KeyedLocks = field(default_factory=KeyedLocks, init=False, repr=False)

    async def get_intake(self, user_id: UUID, day: date) -> DailyIntake:
        """Return the day's intake, or an empty one when nothing is logged."""
        stored = await self._persist(
            self.repository.get_intake, user_id, day, operation="get_intake"
        )
        return stored or DailyIntake(user_id=user_id, day=day)

    async def list_intakes(
        self, user_id: UUID, start: date, end: date
    ) -> list[DailyIntake]:
        """Return logged days in a date range."""
        if end < start:
            raise ValidationError("end must not be before start", field="end")
        return await self._persist(
            self.repository.list_intakes, user_id, start, end, operation="list_intakes"
        )

    async def add_entry(
        self, user_id: UUID, day: date, draft: EntryDraft
    ) -> DailyIntake:
        """Normalize a draft into an entry and append it to the day's ledger."""
        entry = await self._build_entry(draft)

        def append(current: DailyIntake) -> tuple[DailyIntake, FoodLogEntry]:
            return _with_entries(current, (*current.entries, entry)), entry

        intake, _ = await self._mutate(user_id, day, append)
        _logger.info(
            "Entry added: user_id=%s day=%s source=%s entries=%s",
            user_id,
            day,
            entry.source,
            len(intake.entries),
        )
        await self.event_bus.publish(IntakeChanged(IntakeChange.ADDED, intake, entry))
        return intake

    async def remove_entry(
        self, user_id: UUID, day: date, entry_id: UUID
    ) -> DailyIntake:
        """Remove an entry by id; unknown ids are reported, never ignored."""

        def drop(current: DailyIntake) -> tuple[DailyIntake, FoodLogEntry]:
            if not current.is_persisted:
                raise NotFoundError("Daily intake", day.isoformat())
            target = current.find_entry(entry_id)
            if target is None:
                raise NotFoundError("Entry", entry_id)
            remaining = tuple(e for e in current.entries if e.id != entry_id)
            return _with_entries(current, remaining), target

        intake, removed = await self._mutate(user_id, day, drop)
        _logger.info(
            "Entry removed: user_id=%s day=%s entry_id=%s", user_id, day, entry_id
        )
        await self.event_bus.publish(
            IntakeChanged(IntakeChange.REMOVED, intake, removed)
        )
        return intake

    async def _mutate(
        self,
        user_id: UUID,
        day: date,
        apply: Callable[[DailyIntake], tuple[DailyIntake, FoodLogEntry]],
    ) -> tuple[DailyIntake, FoodLogEntry]:
        async with self._locks.hold((user_id, day)):
            attempt = 0
            while True:
                stored = await self._persist(
                    self.repository.get_intake, user_id, day, operation="get_intake"
                )
                current = stored or DailyIntake(user_id=user_id, day=day)
                updated, entry = apply(current)
                try:
                    saved = await self._persist(
                        self.repository.save_intake,
                        updated,
                        current.version,
                        operation="save_intake",
                    )
                except ConflictError:
                    attempt += 1
                    _logger.warning(
                        "Ledger write conflict: user_id=%s day=%s attempt=%s",
                        user_id,
                        day,
                        attempt,
                    )
                    if attempt > self.conflict_retries:
                        raise
                    continue
                return saved, entry

    async def _persist(
        self, func: Callable[..., T], *args: object, operation: str
    ) -> T:
        return await run_blocking(
            func,
            *args,
            timeout_seconds=self.persistence_timeout_seconds,
            operation=operation,
        )

    async def _build_entry(self, draft: EntryDraft) -> FoodLogEntry:
        meal_type = parse_meal_type(draft.meal_type)
        _check_quantity(draft.quantity)
        if isinstance(draft, CatalogEntryDraft):
            if not draft.ref_id:
                raise ValidationError("ref_id is required", field="ref_id")
            item = await self.catalog.lookup(draft.source, draft.ref_id)
            return self._new_entry(
                meal_type=meal_type,
                source=draft.source,
                food_name=item.name,
                quantity=draft.quantity,
                nutrition=item.per_serving.scaled(draft.quantity),
                catalog_ref=item.ref_id,
            )
        if isinstance(draft, ManualEntryDraft):
            _check_nutrition(draft.nutrition, "nutrition")
            return self._new_entry(
                meal_type=meal_type,
                source=EntrySource.MANUAL,
                food_name=_check_name(draft.food_name),
                quantity=draft.quantity,
                nutrition=draft.nutrition,
            )
        if isinstance(draft, ScanEntryDraft):
            _check_nutrition(draft.per_serving, "per_serving")
            return self._new_entry(
                meal_type=meal_type,
                source=EntrySource.SCAN,
                food_name=_check_name(draft.food_name),
                quantity=draft.quantity,
                nutrition=draft.per_serving.scaled(draft.quantity),
            )
        raise ValidationError(f"Unsupported entry draft: {type(draft).__name__}")

    def _new_entry(  # noqa: PLR0913
        self,
        *,
        meal_type: MealType,
        source: EntrySource,
        food_name: str,
        quantity: float,
        nutrition: NutritionVector,
        catalog_ref: str | None = None,
    ) -> FoodLogEntry:
        return FoodLogEntry(
            id=uuid4(),
            meal_type=meal_type,
            source=source,
            food_name=food_name,
            quantity=quantity,
            nutrition=nutrition,
            created_at=self.clock(),
            catalog_ref=catalog_ref,
        )


def parse_meal_type(value: object) -> MealType:
    """Return the MealType for a raw value or raise ValidationError."""
    try:
        return MealType(str(value).lower())
    except ValueError as exc:
        allowed = ", ".join(meal.value for meal in MealType)
        raise ValidationError(
            f"meal_type must be one of: {allowed}", field="meal_type"
        ) from exc


def _with_entries(
    intake: DailyIntake, entries: tuple[FoodLogEntry, ...]
) -> DailyIntake:
    return replace(
        intake,
        entries=entries,
        total_nutrition=sum_vectors([entry.nutrition for entry in entries]),
    )


def _check_quantity(quantity: float) -> None:
    if (
        isinstance(quantity, bool)
        or not isinstance(quantity, int | float)
        or not math.isfinite(quantity)
    ):
        raise ValidationError("quantity must be a number", field="quantity")
    if quantity <= 0:
        raise ValidationError("quantity must be greater than 0", field="quantity")


def _check_nutrition(vector: NutritionVector, field_name: str) -> None:
    for name in NUTRIENT_FIELDS:
        value = getattr(vector, name)
        if not math.isfinite(value) or value < 0:
            raise ValidationError(
                f"{name} must be a non-negative number", field=f"{field_name}.{name}"
            )


def _check_name(food_name: str) -> str:
    cleaned = (food_name or "").strip()
    if not cleaned:
        raise ValidationError("food_name is required", field="food_name")
    return cleaned
