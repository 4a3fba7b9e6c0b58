from __future__ import annotations

import logging

from supabase import Client

from src.app.domain.errors import RepositoryError
from src.app.domain.models import (
    IngredientCatalogEntry,
    InsertResult,
    MeasurementType,
    RecipeGraph,
)
from src.app.infra.db.base import CatalogRepository, RecipeRepository
from src.app.infra.db.supabase_common import NETWORK_ERRORS, create_supabase_client, safe_int, safe_str

logger = logging.getLogger(__name__)


class SupabaseCatalogRepository(CatalogRepository):
    INGREDIENTS_TABLE = "ingredients"
    MEASUREMENT_TYPES_TABLE = "measurement_types"

    def __init__(self, client: Client | None = None):
        self._client = client or create_supabase_client()

    def list_ingredients(self) -> list[IngredientCatalogEntry]:
        try:
            result = (
                self._client.table(self.INGREDIENTS_TABLE)
                .select("id,name_en,name_de")
                .order("name_en")
                .execute()
            )
        except NETWORK_ERRORS as error:
            raise RepositoryError("list_ingredients", str(error)) from error

        return [
            IngredientCatalogEntry(id=str(row["id"]), name_en=row["name_en"], name_de=row["name_de"])
            for row in result.data or []
        ]

    def list_measurement_types(self) -> list[MeasurementType]:
        try:
            result = (
                self._client.table(self.MEASUREMENT_TYPES_TABLE)
                .select("id,name_en,name_de,abbreviation_en,abbreviation_de")
                .execute()
            )
        except NETWORK_ERRORS as error:
            raise RepositoryError("list_measurement_types", str(error)) from error

        return [
            MeasurementType(
                id=str(row["id"]),
                name_en=row["name_en"],
                name_de=row["name_de"],
                abbreviation_en=safe_str(row.get("abbreviation_en")),
                abbreviation_de=safe_str(row.get("abbreviation_de")),
            )
            for row in result.data or []
        ]


class SupabaseRecipeRepository(RecipeRepository):
    """Writes the recipe graph through the insert_recipe_graph stored procedure."""

    def __init__(self, client: Client | None = None):
        self._client = client or create_supabase_client()

    def insert_recipe_graph(self, graph: RecipeGraph) -> InsertResult:
        try:
            result = self._client.rpc("insert_recipe_graph", {"p_graph": graph.to_payload()}).execute()
        except NETWORK_ERRORS as error:
            logger.error("recipe.insert_failed user=%s error=%s", graph.recipe.user_id, error)
            raise RepositoryError("insert_recipe_graph", str(error)) from error

        data = result.data
        row = data[0] if isinstance(data, list) and data else data
        if not isinstance(row, dict) or not row.get("recipe_id"):
            raise RepositoryError("insert_recipe_graph", "procedure returned no recipe id")

        return InsertResult(
            recipe_id=str(row["recipe_id"]),
            new_ingredients_count=safe_int(row.get("new_ingredients_count")),
        )
