from __future__ import annotations

import json

import pytest

from src.services.errors import MalformedExtractionError
from src.services.extraction_schema import parse_extraction, strip_code_fence
from src.services.fetcher import is_http_url
from src.services.jsonld import clean_html, extract_jsonld_recipe, parse_iso_duration

RECIPE_LD = {"@context": "https://schema.org", "@type": "Recipe", "name": "Apple Pie", "totalTime": "PT1H30M"}


def _page(*blocks: str) -> str:
    scripts = "".join(f'<script type="application/ld+json">{b}</script>' for b in blocks)
    return f"<html><head>{scripts}</head><body><h1>Apple Pie</h1></body></html>"


class TestExtractJsonLd:
    def test_plain_recipe(self) -> None:
        recipe = extract_jsonld_recipe(_page(json.dumps(RECIPE_LD)))

        assert recipe is not None
        assert recipe["name"] == "Apple Pie"

    def test_recipe_in_graph(self) -> None:
        block = json.dumps({"@graph": [{"@type": "WebPage"}, RECIPE_LD]})

        assert extract_jsonld_recipe(_page(block))["name"] == "Apple Pie"

    def test_type_list_and_top_level_array(self) -> None:
        block = json.dumps([{"@type": "Organization"}, {"@type": ["Recipe", "NewsArticle"], "name": "Stew"}])

        assert extract_jsonld_recipe(_page(block))["name"] == "Stew"

    def test_skips_broken_blocks(self) -> None:
        recipe = extract_jsonld_recipe(_page("{not json", json.dumps(RECIPE_LD)))

        assert recipe["name"] == "Apple Pie"

    def test_no_recipe(self) -> None:
        assert extract_jsonld_recipe(_page(json.dumps({"@type": "Article"}))) is None
        assert extract_jsonld_recipe("<html></html>") is None


class TestParseIsoDuration:
    def test_hours_and_minutes(self) -> None:
        assert parse_iso_duration("PT1H30M") == 90
        assert parse_iso_duration("PT45M") == 45
        assert parse_iso_duration("P1DT2H") == 26 * 60

    def test_empty_or_invalid(self) -> None:
        assert parse_iso_duration(None) is None
        assert parse_iso_duration("") is None
        assert parse_iso_duration("soon") is None


class TestCleanHtml:
    def test_strips_boilerplate(self) -> None:
        html = (
            "<html><head><style>body{}</style><script>var x;</script></head>"
            "<body><nav>Menu</nav><!-- ad --><p>Mix   well</p><footer>(c)</footer></body></html>"
        )

        cleaned = clean_html(html, 1000)

        assert "Menu" not in cleaned
        assert "var x" not in cleaned
        assert "(c)" not in cleaned
        assert "<!--" not in cleaned
        assert "<p>Mix well</p>" in cleaned

    def test_truncates(self) -> None:
        cleaned = clean_html("<p>" + "a" * 100 + "</p>", 20)

        assert cleaned.startswith("<p>" + "a" * 17)
        assert cleaned.endswith("[truncated]")


class TestIsHttpUrl:
    def test_accepts_http_and_https(self) -> None:
        assert is_http_url("https://example.com/recipe")
        assert is_http_url("http://example.com")

    def test_rejects_other_schemes(self) -> None:
        assert not is_http_url("ftp://example.com")
        assert not is_http_url("example.com")
        assert not is_http_url("")


class TestParseExtraction:
    def _payload(self) -> dict:
        return {
            "is_valid_recipe": True,
            "recipe": {"name": "Soup", "keywords": None},
            "steps": [{"step_number": 1, "instruction": "🔥 Boil"}],
            "ingredients": None,
        }

    def test_plain_json(self) -> None:
        extraction = parse_extraction(json.dumps(self._payload()))

        assert extraction.is_valid_recipe is True
        assert extraction.recipe.name == "Soup"
        assert extraction.recipe.keywords == []
        assert extraction.ingredients == []

    def test_fenced_json(self) -> None:
        text = "Here you go:\n```json\n" + json.dumps(self._payload()) + "\n```"

        assert parse_extraction(text).steps[0].instruction == "🔥 Boil"

    def test_not_a_recipe(self) -> None:
        extraction = parse_extraction('{"is_valid_recipe": false, "error_message": "This is a news article"}')

        assert extraction.is_valid_recipe is False
        assert extraction.recipe is None
        assert extraction.error_message == "This is a news article"

    def test_malformed_json(self) -> None:
        with pytest.raises(MalformedExtractionError):
            parse_extraction("I could not find a recipe")

    def test_schema_mismatch(self) -> None:
        with pytest.raises(MalformedExtractionError):
            parse_extraction('{"is_valid_recipe": true, "steps": [{"step_number": 0, "instruction": "x"}]}')

    def test_strip_code_fence_without_fence(self) -> None:
        assert strip_code_fence('  {"a": 1} ') == '{"a": 1}'
