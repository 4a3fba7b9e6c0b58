from __future__ import annotations

import logging
from typing import Optional

from .gemini_client import GeminiClient, GenerationResult, InlineFile
from .prompts import OCR_IMAGE_PROMPT, OCR_MULTI_IMAGE_PROMPT, OCR_PDF_PROMPT

logger = logging.getLogger(__name__)

OCR_SYSTEM_PROMPT = "You are a precise OCR engine for recipes. Output plain text only."


class VisionReader:
    """Turns recipe photos and PDFs into plain text with a vision-capable model."""

    def __init__(self, client: GeminiClient, model_name: Optional[str] = None) -> None:
        self._client = client
        self.model_name = model_name

    def read_images(self, images: list[InlineFile]) -> GenerationResult:
        # One call for all pages so the model can merge text across them
        if len(images) == 1:
            prompt = OCR_IMAGE_PROMPT
        else:
            prompt = OCR_MULTI_IMAGE_PROMPT.format(count=len(images))
        result = self._client.generate(
            prompt,
            OCR_SYSTEM_PROMPT,
            files=images,
            json_output=False,
            model_name=self.model_name,
            max_output_tokens=4096,
        )
        logger.info("ocr.images count=%d chars=%d", len(images), len(result.text))
        return result

    def read_pdf(self, document: InlineFile) -> GenerationResult:
        result = self._client.generate(
            OCR_PDF_PROMPT,
            OCR_SYSTEM_PROMPT,
            files=[document],
            json_output=False,
            model_name=self.model_name,
            max_output_tokens=8192,
        )
        logger.info("ocr.pdf chars=%d", len(result.text))
        return result
