from __future__ import annotations

import json
from typing import Iterable, Optional

from src.app.domain.models import IngredientCatalogEntry, MeasurementType

from .jsonld import HTML_LIMIT_WITH_JSONLD, HTML_LIMIT_WITHOUT_JSONLD, clean_html

LANGUAGE_NAMES = {"en": "English", "de": "German"}

OUTPUT_SCHEMA = """{
  "is_valid_recipe": boolean,
  "error_message": string | null,
  "recipe": {
    "name": string,
    "author": string | null,
    "description": string | null,
    "prep_time_minutes": number | null,
    "cook_time_minutes": number | null,
    "recipe_yield": string | null,
    "category": string | null,
    "cuisine": string | null,
    "keywords": string[],
    "image_url": string | null
  } | null,
  "steps": [{ "step_number": number, "instruction": string, "duration_minutes": number | null }] | null,
  "ingredients": [{
    "name_en": string,
    "name_de": string,
    "quantity": number | null,
    "measurement_type": string | null,
    "notes": string | null,
    "is_new": boolean,
    "existing_ingredient_id": string | null
  }] | null
}"""

SOURCE_CONTEXT = {
    "webpage": "Extract structured recipe data from webpage content.",
    "video": (
        "Extract structured recipe data from a cooking video transcript. "
        "Spoken text is informal: infer quantities and steps from context and "
        "set is_valid_recipe=false if the video does not describe a recipe."
    ),
    "ocr": (
        "Extract structured recipe data from OCR-extracted text. The text may contain "
        "OCR errors or come from handwriting; use cooking knowledge to correct obvious mistakes."
    ),
}

OCR_IMAGE_PROMPT = """Extract ALL text from this recipe image. It may be a printed recipe from a
cookbook or magazine, a handwritten recipe card or a screenshot.

- Transcribe everything exactly as written
- Preserve the structure (title, ingredients list, instructions)
- Include quantities, measurements and cooking times
- If handwriting is unclear, make your best interpretation and note [unclear]

Output the complete recipe text only."""

OCR_MULTI_IMAGE_PROMPT = """These {count} images are pages of ONE recipe, in order.
Extract ALL text from every page. Start each page with a line "--- Page N ---".
Do not repeat text that appears on more than one page.

- Transcribe everything exactly as written
- Preserve the structure (title, ingredients list, instructions)
- Include quantities, measurements and cooking times

Output the complete recipe text only."""

OCR_PDF_PROMPT = """Extract ALL recipe text from this PDF document. Preserve the title,
ingredients list and instructions, including quantities and cooking times.
Ignore page headers, footers and page numbers. Output the recipe text only."""


def _language_rules(language: str, translate: bool) -> str:
    lang_name = LANGUAGE_NAMES.get(language, "English")
    if translate:
        return (
            f"## Output Language = {lang_name.upper()}\n"
            f"- Recipe name, description, category, cuisine: in {lang_name}\n"
            f"- All step instructions: in {lang_name}, simplified to single clear actions\n"
            f"- Ingredient notes: in {lang_name}"
        )
    return (
        "## Keep Original Language\n"
        "- Recipe name, description, category, cuisine: keep the source language\n"
        "- Step instructions: keep the original wording, do NOT reword or simplify\n"
        "- Ingredient notes: keep the source language"
    )


def build_system_prompt(
    source: str,
    ingredients: Iterable[IngredientCatalogEntry],
    measurement_types: Iterable[MeasurementType],
    language: str,
    translate: bool,
) -> str:
    catalog = [f"- {i.id}: {i.name_en} / {i.name_de}" for i in ingredients]
    ingredients_list = "\n".join(catalog) or "No existing ingredients yet - all ingredients will be new."
    measurements_list = "\n".join(f"- {m.name_en} ({m.name_de})" for m in measurement_types)

    return f"""You are a recipe extraction assistant. {SOURCE_CONTEXT[source]}

{_language_rules(language, translate)}

## Your Task:
1. Validate the content contains a recipe. Set is_valid_recipe=false and explain in error_message if not.
2. For EVERY ingredient provide BOTH name_en (English) and name_de (German). They must be real translations.
3. Match ingredients to existing ones when possible: set existing_ingredient_id and is_new=false.
   Set is_new=true only for unmatched ingredients.
4. Use ONLY the measurement types listed below (English name). Use null when there is no unit.

## Existing Ingredients (id: name_en / name_de):
{ingredients_list}

## Valid Measurement Types:
{measurements_list}

## Step Rules:
- Extract ALL cooking steps in order, one action per step, imperative mood.
- Start every instruction with ONE fitting emoji (main ingredient first, else the cooking action),
  e.g. "🧅 Dice the onions" or "🔥 Heat oil in a large pan".

## Output Format:
Respond with ONLY valid JSON matching this schema:
{OUTPUT_SCHEMA}"""


def build_webpage_prompt(html: str, jsonld: Optional[dict]) -> str:
    if jsonld:
        content = (
            "## Pre-extracted JSON-LD Recipe Data:\n"
            f"{json.dumps(jsonld, indent=2, ensure_ascii=False)}\n\n"
            "## Raw HTML (for additional context, especially for cooking instructions):\n"
            f"{clean_html(html, HTML_LIMIT_WITH_JSONLD)}"
        )
    else:
        content = f"## Raw HTML Content:\n{clean_html(html, HTML_LIMIT_WITHOUT_JSONLD)}"

    return f"Extract the recipe from this webpage:\n\n{content}\n\nReturn ONLY the JSON object, no other text."


def build_video_prompt(transcript: str, platform: str, url: str) -> str:
    return (
        f"Extract the recipe from this {platform} video transcript.\n"
        f"Video URL: {url}\n\n"
        f"## Transcript:\n{transcript}\n\n"
        "Return ONLY the JSON object, no other text."
    )


def build_ocr_prompt(text: str) -> str:
    return (
        "Extract the recipe from this OCR-extracted text:\n\n"
        f"{text}\n\n"
        "Return ONLY the JSON object, no other text."
    )
