"""Supabase implementation of the recipe catalog."""

from dataclasses import dataclass

from supabase import Client

from intake_tracker.domain.nutrition import CatalogItem, NutritionVector
from intake_tracker.services.catalog import RecipeRepository


@dataclass
class SupabaseRecipeRepository(RecipeRepository):
    """Reads per-serving nutrition from the recipes table."""

    client: Client

    def get_recipe(self, recipe_id: str) -> CatalogItem | None:
        """Return a published recipe by id."""
        response = (
            self.client.table("recipes")
            .select("id, name, nutrition")
            .eq("id", recipe_id)
            .eq("is_published", True)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        return CatalogItem(
            ref_id=str(row["id"]),
            name=str(row.get("name") or "Recipe"),
            per_serving=NutritionVector.from_dict(row.get("nutrition") or {}),
        )
