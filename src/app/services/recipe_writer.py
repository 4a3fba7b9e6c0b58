# src/app/services/recipe_writer.py
"""
Turns an extraction into a normalized recipe graph and persists it.
"""
from __future__ import annotations

import logging
from typing import Optional

from src.app.domain.errors import PersistenceError, RepositoryError
from src.app.domain.models import (
    IngredientCatalogEntry,
    IngredientLine,
    InsertResult,
    MeasurementType,
    RecipeGraph,
    RecipeRow,
    StepRow,
)
from src.app.infra.db.base import RecipeRepository
from src.services.extraction import ExtractionResult
from src.services.extraction_schema import ExtractedIngredient, ExtractedRecipe

logger = logging.getLogger(__name__)


def _key(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def total_time(prep: Optional[int], cook: Optional[int]) -> Optional[int]:
    if prep is None and cook is None:
        return None
    return (prep or 0) + (cook or 0)


class IngredientMatcher:
    """Case-insensitive lookup of catalog ingredients by id, English or German name."""

    def __init__(self, catalog: list[IngredientCatalogEntry]):
        self._by_id = {entry.id: entry for entry in catalog}
        self._by_name: dict[str, IngredientCatalogEntry] = {}
        for entry in catalog:
            self._by_name.setdefault(_key(entry.name_en), entry)
            self._by_name.setdefault(_key(entry.name_de), entry)

    def match(self, item: ExtractedIngredient) -> Optional[IngredientCatalogEntry]:
        if item.existing_ingredient_id and item.existing_ingredient_id in self._by_id:
            return self._by_id[item.existing_ingredient_id]
        return self._by_name.get(_key(item.name_en)) or self._by_name.get(_key(item.name_de))


class MeasurementResolver:
    def __init__(self, measurement_types: list[MeasurementType]):
        self._by_name: dict[str, str] = {}
        for mt in measurement_types:
            # Full names win over abbreviations of other types
            self._by_name.setdefault(_key(mt.name_en), mt.id)
            self._by_name.setdefault(_key(mt.name_de), mt.id)
        for mt in measurement_types:
            for name in mt.names():
                self._by_name.setdefault(name, mt.id)

    def resolve(self, name: Optional[str]) -> Optional[str]:
        if not name:
            return None
        return self._by_name.get(_key(name))


def _recipe_row(
    recipe: ExtractedRecipe,
    owner: str,
    source_url: Optional[str],
    image_url: Optional[str],
    language: str,
) -> RecipeRow:
    return RecipeRow(
        user_id=owner,
        name=recipe.name.strip(),
        author=recipe.author,
        description=recipe.description,
        prep_time_minutes=recipe.prep_time_minutes,
        cook_time_minutes=recipe.cook_time_minutes,
        total_time_minutes=total_time(recipe.prep_time_minutes, recipe.cook_time_minutes),
        recipe_yield=recipe.recipe_yield,
        category=recipe.category,
        cuisine=recipe.cuisine,
        image_url=image_url,
        source_url=source_url,
        keywords=[k.strip() for k in recipe.keywords if k and k.strip()],
        language=language,
    )


def build_recipe_graph(
    extraction: ExtractionResult,
    owner: str,
    catalog: list[IngredientCatalogEntry],
    measurement_types: list[MeasurementType],
    language: str,
    image_url: Optional[str] = None,
) -> RecipeGraph:
    if extraction.recipe is None:
        raise PersistenceError("Extraction has no recipe to persist")

    steps = [
        StepRow(step_number=index, instruction=step.instruction.strip(), duration_minutes=step.duration_minutes)
        for index, step in enumerate(
            (s for s in extraction.steps if s.instruction and s.instruction.strip()),
            start=1,
        )
    ]

    matcher = IngredientMatcher(catalog)
    measurements = MeasurementResolver(measurement_types)
    new_names: dict[str, tuple[str, str]] = {}
    lines: list[IngredientLine] = []

    for item in extraction.ingredients:
        name_en = item.name_en.strip()
        name_de = item.name_de.strip() or name_en
        if not name_en:
            continue

        existing = matcher.match(item)
        if existing is None:
            # Same new ingredient twice in one recipe collapses to one insert
            canonical = new_names.get(_key(name_en)) or new_names.get(_key(name_de))
            if canonical is None:
                canonical = (name_en, name_de)
                new_names[_key(name_en)] = canonical
                new_names[_key(name_de)] = canonical
            name_en, name_de = canonical

        lines.append(
            IngredientLine(
                display_order=len(lines),
                name_en=existing.name_en if existing else name_en,
                name_de=existing.name_de if existing else name_de,
                ingredient_id=existing.id if existing else None,
                measurement_type_id=measurements.resolve(item.measurement_type),
                quantity=round(item.quantity, 3) if item.quantity is not None else None,
                notes=item.notes,
            )
        )

    recipe = _recipe_row(extraction.recipe, owner, extraction.source_url, image_url, language)
    return RecipeGraph(recipe=recipe, steps=steps, ingredients=lines)


class RecipeWriter:
    def __init__(self, repository: RecipeRepository):
        self._repo = repository

    def insert_recipe(
        self,
        extraction: ExtractionResult,
        owner: str,
        catalog: list[IngredientCatalogEntry],
        measurement_types: list[MeasurementType],
        language: str,
        image_url: Optional[str] = None,
    ) -> InsertResult:
        """
        Persist recipe, steps and ingredients as one unit.

        Raises:
            PersistenceError: nothing was written
        """
        graph = build_recipe_graph(extraction, owner, catalog, measurement_types, language, image_url)

        try:
            result = self._repo.insert_recipe_graph(graph)
        except RepositoryError as error:
            raise PersistenceError(f"Failed to save recipe: {error.reason}") from error

        logger.info(
            "recipe.inserted id=%s user=%s steps=%d ingredients=%d new_ingredients=%d",
            result.recipe_id,
            owner,
            len(graph.steps),
            len(graph.ingredients),
            result.new_ingredients_count,
        )
        return result
