from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from google import genai
from google.genai import types
from google.genai.errors import APIError, ClientError

from src.app.domain.models import AIUsage
from src.services.errors import AIServiceError, RateLimitedError, ServiceError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash"


class GeminiConfigurationError(ServiceError):
    pass


@dataclass
class InlineFile:
    data: bytes
    mime_type: str


@dataclass
class GenerationResult:
    text: str
    usage: AIUsage
    model: str


def _usage_from(response: types.GenerateContentResponse) -> AIUsage:
    meta = getattr(response, "usage_metadata", None)
    if meta is None:
        return AIUsage()
    return AIUsage(
        input_tokens=meta.prompt_token_count or 0,
        output_tokens=meta.candidates_token_count or 0,
    )


class GeminiClient:
    def __init__(
        self,
        api_key: str,
        model_name: str = DEFAULT_MODEL,
        client: Optional[genai.Client] = None,
    ) -> None:
        if not api_key and client is None:
            raise GeminiConfigurationError("Missing Gemini API key.")
        self.model_name = model_name
        self._client = client or genai.Client(api_key=api_key)

    def generate(
        self,
        user_prompt: str,
        system_prompt: str,
        files: Iterable[InlineFile] = (),
        json_output: bool = True,
        model_name: Optional[str] = None,
        max_output_tokens: int = 8192,
    ) -> GenerationResult:
        model = model_name or self.model_name
        contents: list = [types.Part.from_bytes(data=f.data, mime_type=f.mime_type) for f in files]
        contents.append(user_prompt)

        config = types.GenerateContentConfig(
            system_instruction=system_prompt,
            max_output_tokens=max_output_tokens,
            response_mime_type="application/json" if json_output else None,
        )

        try:
            response = self._client.models.generate_content(model=model, contents=contents, config=config)
        except ClientError as err:
            status_code = getattr(err, "code", None)
            message = str(err)
            if status_code == 429 or "RESOURCE_EXHAUSTED" in message:
                raise RateLimitedError(
                    "Gemini API rate limit reached. Try again in a moment."
                ) from err
            raise AIServiceError(f"Gemini API error: {message}") from err
        except APIError as err:
            raise AIServiceError(f"Gemini API error: {err}") from err

        text = response.text
        if not text:
            raise AIServiceError("Model response did not include text content.")

        usage = _usage_from(response)
        logger.info(
            "gemini.call model=%s input_tokens=%d output_tokens=%d",
            model,
            usage.input_tokens,
            usage.output_tokens,
        )
        return GenerationResult(text=text, usage=usage, model=model)
