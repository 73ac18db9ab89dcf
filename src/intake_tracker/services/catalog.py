"""Catalog lookup: resolves food and recipe ids to per-serving nutrition."""

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

import httpx

from intake_tracker.adapters.fdc_client import FdcClient
from intake_tracker.domain.errors import DependencyError, NotFoundError, ValidationError
from intake_tracker.domain.intake import EntrySource
from intake_tracker.domain.nutrition import CatalogItem, NutritionVector
from intake_tracker.services.cache import Cache

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

_NUTRIENT_IDS = {
    1008: "calories",
    1003: "protein",
    1004: "fat",
    1005: "carbs",
    1079: "fiber",
}
_HTTP_NOT_FOUND = 404
_HTTP_SERVER_ERROR = 500

_logger = logging.getLogger(__name__)


class RecipeRepository(Protocol):
    """Read contract for the recipe catalog."""

    def get_recipe(self, recipe_id: str) -> CatalogItem | None:
        """Return a recipe's per-serving nutrition, if it exists."""


@dataclass
class CatalogService:
    """Read-only view over the food and recipe catalogs with caching."""

    fdc_client: FdcClient
    recipe_repository: RecipeRepository
    cache: Cache
    food_ttl_seconds: int = 86400
    recipe_ttl_seconds: int = 300
    retry_attempts: int = 1
    retry_delay_seconds: float = 0.3

    async def lookup(self, source: EntrySource, ref_id: str) -> CatalogItem:
        """Resolve a catalog reference for the given provenance."""
        if source == EntrySource.CATALOG_FOOD:
            return await self.get_food(ref_id)
        if source == EntrySource.CATALOG_RECIPE:
            return await self.get_recipe(ref_id)
        raise ValidationError(f"{source} is not a catalog source", field="source")

    async def get_food(self, ref_id: str) -> CatalogItem:
        """Return per-serving nutrition for an FDC food id."""
        if not ref_id.isdigit():
            raise NotFoundError("Food", ref_id)
        cache_key = f"catalog:food:{ref_id}"
        cached = self.cache.get(cache_key)
        if isinstance(cached, CatalogItem):
            return cached

        payload = await self._call_with_retry(
            lambda: self.fdc_client.get_food(int(ref_id)),
            action=f"get_food:{ref_id}",
            resource="Food",
            ref_id=ref_id,
        )
        item = _parse_fdc_food(ref_id, payload)
        self.cache.set(cache_key, item, ttl_seconds=self.food_ttl_seconds)
        return item

    async def get_recipe(self, ref_id: str) -> CatalogItem:
        """Return per-serving nutrition for a recipe id."""
        cache_key = f"catalog:recipe:{ref_id}"
        cached = self.cache.get(cache_key)
        if isinstance(cached, CatalogItem):
            return cached
        try:
            item = await asyncio.to_thread(self.recipe_repository.get_recipe, ref_id)
        except Exception as exc:
            _logger.warning("Recipe lookup failed: recipe_id=%s error=%s", ref_id, exc)
            raise DependencyError(
                "Recipe catalog unavailable", operation="get_recipe"
            ) from exc
        if item is None:
            raise NotFoundError("Recipe", ref_id)
        self.cache.set(cache_key, item, ttl_seconds=self.recipe_ttl_seconds)
        return item

    async def _call_with_retry(
        self,
        func: "Callable[[], Awaitable[dict[str, object]]]",
        *,
        action: str,
        resource: str,
        ref_id: str,
    ) -> dict[str, object]:
        """Call the catalog with a short retry on transient failures."""
        attempt = 0
        while True:
            try:
                return await func()
            except httpx.HTTPStatusError as exc:
                status_code = exc.response.status_code
                if status_code == _HTTP_NOT_FOUND:
                    raise NotFoundError(resource, ref_id) from exc
                if status_code < _HTTP_SERVER_ERROR:
                    raise DependencyError(
                        f"Catalog rejected request ({status_code})", operation=action
                    ) from exc
                failure: Exception = exc
            except httpx.HTTPError as exc:
                failure = exc
            attempt += 1
            _logger.warning(
                "Catalog %s failed (attempt %s/%s): %s",
                action,
                attempt,
                self.retry_attempts + 1,
                failure,
            )
            if attempt > self.retry_attempts:
                raise DependencyError(
                    "Catalog lookup unavailable", operation=action
                ) from failure
            await asyncio.sleep(self.retry_delay_seconds)


def _parse_fdc_food(ref_id: str, payload: dict[str, object]) -> CatalogItem:
    per_100g = _extract_nutrients(payload.get("foodNutrients") or [])
    serving_size = payload.get("servingSize")
    unit = str(payload.get("servingSizeUnit") or "g").lower()
    if isinstance(serving_size, int | float) and serving_size > 0 and unit == "g":
        per_serving = per_100g.scaled(float(serving_size) / 100.0)
        serving_size_g: float | None = float(serving_size)
    else:
        per_serving = per_100g
        serving_size_g = None
    return CatalogItem(
        ref_id=ref_id,
        name=str(payload.get("description") or f"Food {ref_id}"),
        per_serving=per_serving,
        serving_size_g=serving_size_g,
    )


def _extract_nutrients(food_nutrients: list[dict[str, object]]) -> NutritionVector:
    """Pull calories, protein, carbs, fat and fiber (per 100 g) from FDC data."""
    values = dict.fromkeys(_NUTRIENT_IDS.values(), 0.0)
    for nutrient in food_nutrients:
        nutrient_info = nutrient.get("nutrient") or {}
        nutrient_id = nutrient_info.get("id") or nutrient.get("nutrientId")
        amount = nutrient.get("amount")
        name = _NUTRIENT_IDS.get(nutrient_id)
        if name is not None and amount is not None:
            values[name] = max(0.0, float(amount))
    return NutritionVector(**values)
