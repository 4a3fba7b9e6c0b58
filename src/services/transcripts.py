from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

import httpx
from youtube_transcript_api import (
    CouldNotRetrieveTranscript,
    NoTranscriptFound,
    TranscriptsDisabled,
    VideoUnavailable,
    YouTubeTranscriptApi,
)

from .errors import (
    FetchFailedError,
    NetworkTimeoutError,
    TranscriptUnavailableError,
    VideoNotFoundError,
)
from .ids import VideoRef

logger = logging.getLogger(__name__)

DEFAULT_TRANSCRIPT_API_URL = "https://api.supadata.ai/v1"
FALLBACK_LANGUAGES = ("en", "de")
EMPTY_WINDOW_MESSAGE = (
    "No transcript content found in the specified time range. "
    "Try adjusting the timestamps or leave them empty to use the full video."
)


@dataclass
class TranscriptSegment:
    text: str
    offset_ms: int
    duration_ms: int = 0


@dataclass
class Transcript:
    segments: list[TranscriptSegment] = field(default_factory=list)
    language: str = "unknown"

    @property
    def text(self) -> str:
        return " ".join(s.text.strip() for s in self.segments if s.text.strip())


def filter_segments(
    segments: list[TranscriptSegment],
    start_ms: Optional[int],
    end_ms: Optional[int],
) -> list[TranscriptSegment]:
    """Segments whose offset lies in [start_ms, end_ms]; a missing bound is open."""
    return [
        s for s in segments
        if (start_ms is None or s.offset_ms >= start_ms)
        and (end_ms is None or s.offset_ms <= end_ms)
    ]


class TranscriptClient:
    """
    Fetches spoken-text transcripts for short-form videos.

    YouTube captions come from youtube-transcript-api; TikTok and Instagram go
    through an HTTP transcript service with the Supadata request shape.
    """

    def __init__(
        self,
        api_url: str = DEFAULT_TRANSCRIPT_API_URL,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    def fetch(self, ref: VideoRef, preferred_lang: Optional[str] = None) -> Transcript:
        if ref.platform == "youtube":
            return self._fetch_youtube(ref.video_id, preferred_lang)
        return self._fetch_from_service(ref, preferred_lang)

    def _fetch_youtube(self, video_id: str, preferred_lang: Optional[str]) -> Transcript:
        languages = [preferred_lang] if preferred_lang else []
        languages += [lang for lang in FALLBACK_LANGUAGES if lang not in languages]

        try:
            fetched = YouTubeTranscriptApi().fetch(video_id, languages=languages)
        except VideoUnavailable as error:
            raise VideoNotFoundError("Video not found") from error
        except (TranscriptsDisabled, NoTranscriptFound) as error:
            raise TranscriptUnavailableError("No transcript available for this video") from error
        except CouldNotRetrieveTranscript as error:
            raise TranscriptUnavailableError(f"Could not retrieve transcript: {error}") from error

        segments = [
            TranscriptSegment(
                text=str(item.get("text", "")),
                offset_ms=int(float(item.get("start", 0)) * 1000),
                duration_ms=int(float(item.get("duration", 0)) * 1000),
            )
            for item in fetched.to_raw_data()
        ]
        if not segments:
            raise TranscriptUnavailableError("No transcript available for this video")

        return Transcript(segments=segments, language=getattr(fetched, "language_code", None) or "unknown")

    def _fetch_from_service(self, ref: VideoRef, preferred_lang: Optional[str]) -> Transcript:
        endpoint = f"{self.api_url}/{ref.platform}/transcript"
        params = {"url": ref.normalized_url}
        if preferred_lang:
            params["lang"] = preferred_lang

        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["x-api-key"] = self.api_key

        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.get(endpoint, params=params, headers=headers)
        except httpx.TimeoutException as error:
            raise NetworkTimeoutError(endpoint, self.timeout) from error
        except httpx.HTTPError as error:
            raise FetchFailedError(f"Transcript service unreachable: {error}") from error

        if response.status_code == 404:
            raise VideoNotFoundError(self._error_message(response) or "Video not found")
        if response.status_code in (400, 422):
            raise TranscriptUnavailableError(
                self._error_message(response) or "No transcript available for this video"
            )
        if response.is_error:
            raise FetchFailedError(
                f"Transcript service error ({response.status_code}): "
                f"{self._error_message(response) or response.text}"
            )

        data = self._json_body(response)
        content = data.get("content") if isinstance(data, dict) else None
        if not content or not isinstance(content, list):
            raise TranscriptUnavailableError("No transcript available for this video")

        try:
            segments = [
                TranscriptSegment(
                    text=str(item.get("text") or ""),
                    offset_ms=int(item.get("offset") or 0),
                    duration_ms=int(item.get("duration") or 0),
                )
                for item in content
                if isinstance(item, dict)
            ]
        except (TypeError, ValueError) as error:
            raise TranscriptUnavailableError(f"Transcript service returned malformed segments: {error}") from error
        return Transcript(segments=segments, language=data.get("lang") or "unknown")

    @staticmethod
    def _json_body(response: httpx.Response) -> object:
        try:
            return response.json()
        except ValueError as error:
            content_type = response.headers.get("content-type", "")
            raise FetchFailedError(
                f"Transcript service returned a non-JSON response ({content_type or 'no content type'})"
            ) from error

    @staticmethod
    def _error_message(response: httpx.Response) -> Optional[str]:
        try:
            payload = response.json()
        except ValueError:
            return None
        return payload.get("message") if isinstance(payload, dict) else None

    def get_text(
        self,
        ref: VideoRef,
        start_ms: Optional[int] = None,
        end_ms: Optional[int] = None,
        preferred_lang: Optional[str] = None,
    ) -> Transcript:
        """Transcript restricted to the requested window; raises if the window is empty."""
        transcript = self.fetch(ref, preferred_lang)
        window = filter_segments(transcript.segments, start_ms, end_ms)
        if not window:
            raise TranscriptUnavailableError(EMPTY_WINDOW_MESSAGE)

        logger.info(
            "transcript.ok platform=%s video=%s segments=%d/%d lang=%s",
            ref.platform,
            ref.video_id,
            len(window),
            len(transcript.segments),
            transcript.language,
        )
        return Transcript(segments=window, language=transcript.language)
