from __future__ import annotations

from typing import Optional

import pytest

from src.app.domain.errors import PersistenceError, RepositoryError
from src.app.domain.models import IngredientCatalogEntry, InsertResult, MeasurementType, RecipeGraph
from src.app.infra.db.base import RecipeRepository
from src.app.services.recipe_writer import (
    MeasurementResolver,
    RecipeWriter,
    build_recipe_graph,
    total_time,
)
from src.services.extraction import ExtractionResult
from src.services.extraction_schema import RecipeExtraction

CATALOG = [
    IngredientCatalogEntry(id="ing-flour", name_en="flour", name_de="Mehl"),
    IngredientCatalogEntry(id="ing-egg", name_en="egg", name_de="Ei"),
]
MEASUREMENTS = [
    MeasurementType(id="mt-g", name_en="gram", name_de="Gramm", abbreviation_en="g", abbreviation_de="g"),
    MeasurementType(id="mt-tbsp", name_en="tablespoon", name_de="Esslöffel", abbreviation_en="tbsp", abbreviation_de="EL"),
    MeasurementType(id="mt-piece", name_en="piece", name_de="Stück", abbreviation_en="pc", abbreviation_de="St"),
]


def _extraction(**overrides) -> ExtractionResult:
    data = {
        "is_valid_recipe": True,
        "recipe": {"name": " Pancakes ", "prep_time_minutes": 10, "cook_time_minutes": 15, "keywords": ["breakfast", " "]},
        "steps": [
            {"step_number": 1, "instruction": "🥣 Mix flour and eggs"},
            {"step_number": 2, "instruction": "   "},
            {"step_number": 3, "instruction": "🍳 Fry"},
        ],
        "ingredients": [
            {"name_en": "Flour", "name_de": "Mehl", "quantity": 200, "measurement_type": "g"},
            {"name_en": "garlic", "name_de": "Knoblauch", "quantity": 0.33333, "measurement_type": "Zehe"},
            {"name_en": "Garlic", "name_de": "knoblauch", "quantity": 1, "measurement_type": "piece"},
            {"name_en": "egg", "name_de": "Ei", "existing_ingredient_id": "ing-egg", "quantity": 2},
        ],
    }
    data.update(overrides)
    return ExtractionResult(
        extraction=RecipeExtraction.model_validate(data),
        source_url="https://example.com/pancakes",
    )


class RecipeRepositoryStub(RecipeRepository):
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.graphs: list[RecipeGraph] = []

    def insert_recipe_graph(self, graph: RecipeGraph) -> InsertResult:
        if self.fail:
            raise RepositoryError("insert_recipe_graph", "deadlock detected")
        self.graphs.append(graph)
        return InsertResult(recipe_id="recipe-1", new_ingredients_count=sum(1 for i in graph.ingredients if i.is_new))


class TestTotalTime:
    def test_sums_known_parts(self) -> None:
        assert total_time(10, 15) == 25
        assert total_time(None, 15) == 15
        assert total_time(10, None) == 10

    def test_both_missing(self) -> None:
        assert total_time(None, None) is None


class TestMeasurementResolver:
    def test_resolves_names_and_abbreviations(self) -> None:
        resolver = MeasurementResolver(MEASUREMENTS)

        assert resolver.resolve("Gram") == "mt-g"
        assert resolver.resolve("EL") == "mt-tbsp"
        assert resolver.resolve("Stück") == "mt-piece"

    def test_unknown_unit(self) -> None:
        resolver = MeasurementResolver(MEASUREMENTS)

        assert resolver.resolve("smidgen") is None
        assert resolver.resolve(None) is None


class TestBuildRecipeGraph:
    def test_recipe_row(self) -> None:
        graph = build_recipe_graph(_extraction(), "u1", CATALOG, MEASUREMENTS, "de", image_url="https://cdn/x.jpg")

        assert graph.recipe.user_id == "u1"
        assert graph.recipe.name == "Pancakes"
        assert graph.recipe.total_time_minutes == 25
        assert graph.recipe.language == "de"
        assert graph.recipe.source_url == "https://example.com/pancakes"
        assert graph.recipe.image_url == "https://cdn/x.jpg"
        assert graph.recipe.keywords == ["breakfast"]

    def test_steps_are_dense_and_skip_blank(self) -> None:
        graph = build_recipe_graph(_extraction(), "u1", CATALOG, MEASUREMENTS, "en")

        assert [s.step_number for s in graph.steps] == [1, 2]
        assert graph.steps[1].instruction == "🍳 Fry"

    def test_ingredients_keep_order_and_match_catalog(self) -> None:
        graph = build_recipe_graph(_extraction(), "u1", CATALOG, MEASUREMENTS, "en")

        assert [i.display_order for i in graph.ingredients] == [0, 1, 2, 3]
        assert graph.ingredients[0].ingredient_id == "ing-flour"
        assert graph.ingredients[0].measurement_type_id == "mt-g"
        assert graph.ingredients[3].ingredient_id == "ing-egg"

    def test_repeated_new_ingredient_collapses(self) -> None:
        graph = build_recipe_graph(_extraction(), "u1", CATALOG, MEASUREMENTS, "en")

        garlic = [i for i in graph.ingredients if i.is_new]
        assert len(garlic) == 2
        assert {(i.name_en, i.name_de) for i in garlic} == {("garlic", "Knoblauch")}

    def test_quantity_rounded(self) -> None:
        graph = build_recipe_graph(_extraction(), "u1", CATALOG, MEASUREMENTS, "en")

        assert graph.ingredients[1].quantity == 0.333

    def test_missing_recipe_raises(self) -> None:
        extraction = _extraction(is_valid_recipe=False, recipe=None)

        with pytest.raises(PersistenceError):
            build_recipe_graph(extraction, "u1", CATALOG, MEASUREMENTS, "en")


class TestRecipeWriter:
    def test_inserts_graph(self) -> None:
        repo = RecipeRepositoryStub()

        result = RecipeWriter(repo).insert_recipe(_extraction(), "u1", CATALOG, MEASUREMENTS, "en")

        assert result.recipe_id == "recipe-1"
        assert result.new_ingredients_count == 2
        assert len(repo.graphs) == 1

    def test_repository_failure_becomes_persistence_error(self) -> None:
        with pytest.raises(PersistenceError) as exc_info:
            RecipeWriter(RecipeRepositoryStub(fail=True)).insert_recipe(_extraction(), "u1", CATALOG, MEASUREMENTS, "en")

        assert "deadlock" in str(exc_info.value)
