from __future__ import annotations

import logging
import mimetypes
from dataclasses import dataclass, field
from typing import Callable, Optional

from src.app.domain.errors import StorageError
from src.app.domain.models import (
    AIUsage,
    ImportPolicy,
    IngredientCatalogEntry,
    MeasurementType,
)
from src.app.infra.storage.base import StorageProvider

from .errors import (
    FileTooLargeError,
    FetchFailedError,
    NoReadableTextError,
    TooManyFilesError,
)
from .extraction_schema import (
    ExtractedIngredient,
    ExtractedRecipe,
    ExtractedStep,
    RecipeExtraction,
    parse_extraction,
)
from .fetcher import fetch_webpage
from .gemini_client import GeminiClient, GenerationResult, InlineFile
from .ids import require_video, thumbnail_url
from .jsonld import extract_jsonld_recipe
from .prompts import build_ocr_prompt, build_system_prompt, build_video_prompt, build_webpage_prompt
from .transcripts import TranscriptClient
from .vision import VisionReader

logger = logging.getLogger(__name__)

IMAGE_MEDIA = "image"
PDF_MEDIA = "pdf"


@dataclass
class ExtractionContext:
    """Catalogs and language options shared by every extraction path."""
    ingredients: list[IngredientCatalogEntry] = field(default_factory=list)
    measurement_types: list[MeasurementType] = field(default_factory=list)
    language: str = "en"
    translate: bool = True


@dataclass
class ExtractionResult:
    extraction: RecipeExtraction
    usage: AIUsage = field(default_factory=AIUsage)
    models_used: list[str] = field(default_factory=list)
    source_url: Optional[str] = None
    # Thumbnail for videos, page image for websites
    image_url: Optional[str] = None

    @property
    def is_valid_recipe(self) -> bool:
        return self.extraction.is_valid_recipe

    @property
    def recipe(self) -> Optional[ExtractedRecipe]:
        return self.extraction.recipe

    @property
    def steps(self) -> list[ExtractedStep]:
        return self.extraction.steps

    @property
    def ingredients(self) -> list[ExtractedIngredient]:
        return self.extraction.ingredients

    @property
    def error_message(self) -> Optional[str]:
        return self.extraction.error_message


def _merge_models(*names: str) -> list[str]:
    seen: list[str] = []
    for name in names:
        if name and name not in seen:
            seen.append(name)
    return seen


class RecipeExtractor:
    """Single point where every import path asks the model for structured recipe JSON."""

    def __init__(self, client: GeminiClient) -> None:
        self._client = client

    def extract(self, source: str, user_prompt: str, context: ExtractionContext) -> tuple[RecipeExtraction, GenerationResult]:
        system_prompt = build_system_prompt(
            source,
            context.ingredients,
            context.measurement_types,
            context.language,
            context.translate,
        )
        generation = self._client.generate(user_prompt, system_prompt)
        return parse_extraction(generation.text), generation


class ExtractionGateway:
    def __init__(
        self,
        extractor: RecipeExtractor,
        transcripts: TranscriptClient,
        vision: VisionReader,
        storage: StorageProvider,
        policy: ImportPolicy,
        page_fetcher: Callable[[str], str] = fetch_webpage,
    ) -> None:
        self._extractor = extractor
        self._transcripts = transcripts
        self._vision = vision
        self._storage = storage
        self._policy = policy
        self._fetch_page = page_fetcher

    def extract_from_url(self, url: str, context: ExtractionContext) -> ExtractionResult:
        html = self._fetch_page(url)
        jsonld = extract_jsonld_recipe(html)
        logger.info("extract.url url=%s jsonld=%s html_chars=%d", url, jsonld is not None, len(html))

        extraction, generation = self._extractor.extract("webpage", build_webpage_prompt(html, jsonld), context)
        image_url = extraction.recipe.image_url if extraction.recipe else None
        return ExtractionResult(
            extraction=extraction,
            usage=generation.usage,
            models_used=_merge_models(generation.model),
            source_url=url,
            image_url=image_url,
        )

    def extract_from_video(
        self,
        url: str,
        context: ExtractionContext,
        start_ms: Optional[int] = None,
        end_ms: Optional[int] = None,
    ) -> ExtractionResult:
        ref = require_video(url)
        transcript = self._transcripts.get_text(ref, start_ms, end_ms, preferred_lang=context.language)

        prompt = build_video_prompt(transcript.text, ref.platform, ref.normalized_url)
        extraction, generation = self._extractor.extract("video", prompt, context)
        return ExtractionResult(
            extraction=extraction,
            usage=generation.usage,
            models_used=_merge_models(generation.model),
            source_url=ref.normalized_url,
            image_url=thumbnail_url(ref),
        )

    def check_media_request(self, storage_paths: list[str], media_type: str) -> None:
        """Count limits: 1 to max_images images, or exactly max_pdfs PDF."""
        if not storage_paths:
            raise TooManyFilesError("At least one file is required")
        if media_type == PDF_MEDIA and len(storage_paths) > self._policy.max_pdfs:
            raise TooManyFilesError(f"Only {self._policy.max_pdfs} PDF can be imported at a time")
        if media_type == IMAGE_MEDIA and len(storage_paths) > self._policy.max_images:
            raise TooManyFilesError(f"Maximum {self._policy.max_images} images allowed")

    def _load_file(self, path: str, default_mime: str) -> InlineFile:
        try:
            data, content_type = self._storage.download_bytes(path)
        except StorageError as error:
            raise FetchFailedError(f"Failed to read uploaded file {path}: {error}") from error

        if len(data) > self._policy.max_file_bytes:
            raise FileTooLargeError(path, len(data), self._policy.max_file_bytes)

        mime = content_type or mimetypes.guess_type(path)[0] or default_mime
        return InlineFile(data=data, mime_type=mime)

    def extract_from_media(
        self,
        storage_paths: list[str],
        media_type: str,
        context: ExtractionContext,
    ) -> ExtractionResult:
        self.check_media_request(storage_paths, media_type)

        if media_type == PDF_MEDIA:
            ocr = self._vision.read_pdf(self._load_file(storage_paths[0], "application/pdf"))
        else:
            ocr = self._vision.read_images([self._load_file(p, "image/jpeg") for p in storage_paths])

        text = ocr.text.strip()
        if len(text) < self._policy.min_ocr_chars:
            raise NoReadableTextError(
                "Could not extract enough text from the file. "
                "Make sure the image is clear and contains a recipe.",
                usage=ocr.usage,
                models_used=_merge_models(ocr.model),
            )

        extraction, generation = self._extractor.extract("ocr", build_ocr_prompt(text), context)
        if extraction.recipe is not None:
            # Uploaded files are deleted after import, never keep a link to them
            extraction.recipe.image_url = None

        return ExtractionResult(
            extraction=extraction,
            usage=ocr.usage + generation.usage,
            models_used=_merge_models(ocr.model, generation.model),
            source_url=None,
            image_url=None,
        )
