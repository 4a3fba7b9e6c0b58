from __future__ import annotations

import json
import re
from typing import Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import MalformedExtractionError

_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?```", re.DOTALL)


class ExtractedIngredient(BaseModel):
    name_en: str
    name_de: str
    quantity: Optional[float] = None
    measurement_type: Optional[str] = None
    notes: Optional[str] = None
    is_new: bool = True
    existing_ingredient_id: Optional[str] = None


class ExtractedStep(BaseModel):
    step_number: int = Field(ge=1)
    instruction: str
    duration_minutes: Optional[int] = None


class ExtractedRecipe(BaseModel):
    name: str
    author: Optional[str] = None
    description: Optional[str] = None
    prep_time_minutes: Optional[int] = None
    cook_time_minutes: Optional[int] = None
    recipe_yield: Optional[str] = None
    category: Optional[str] = None
    cuisine: Optional[str] = None
    keywords: list[str] = Field(default_factory=list)
    image_url: Optional[str] = None

    @field_validator("keywords", mode="before")
    @classmethod
    def _none_keywords(cls, value):
        return value or []


class RecipeExtraction(BaseModel):
    """Structured answer the model must return for every import."""
    is_valid_recipe: bool
    error_message: Optional[str] = None
    recipe: Optional[ExtractedRecipe] = None
    steps: list[ExtractedStep] = Field(default_factory=list)
    ingredients: list[ExtractedIngredient] = Field(default_factory=list)

    @field_validator("steps", "ingredients", mode="before")
    @classmethod
    def _none_lists(cls, value):
        return value or []


def strip_code_fence(text: str) -> str:
    match = _FENCE_RE.search(text)
    return match.group(1).strip() if match else text.strip()


def parse_extraction(text: str) -> RecipeExtraction:
    """
    Parse the model's JSON answer; a markdown fence around it is tolerated.

    Raises:
        MalformedExtractionError: if the text is not JSON or does not match the schema
    """
    payload = strip_code_fence(text)
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as error:
        raise MalformedExtractionError(f"Failed to parse recipe data: {error}") from error

    try:
        return RecipeExtraction.model_validate(data)
    except ValidationError as error:
        raise MalformedExtractionError(f"Failed to parse recipe data: {error}") from error
