from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

import httpx

from .errors import FetchFailedError, InvalidURLError, NetworkTimeoutError

logger = logging.getLogger(__name__)

USER_AGENT = "RecipeJoe/1.0 (Recipe Import Bot)"
PAGE_TIMEOUT_SECONDS = 20.0
IMAGE_TIMEOUT_SECONDS = 10.0
MAX_IMAGE_BYTES = 5 * 1024 * 1024

HTML_CONTENT_TYPES = ("text/html", "application/xhtml")
IMAGE_TYPES_BY_EXTENSION = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
}
ALLOWED_IMAGE_TYPES = frozenset(IMAGE_TYPES_BY_EXTENSION.values())


@dataclass(frozen=True)
class DownloadedImage:
    data: bytes
    content_type: str

    @property
    def extension(self) -> str:
        if self.content_type == "image/png":
            return "png"
        if self.content_type == "image/webp":
            return "webp"
        return "jpg"


def is_http_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def fetch_webpage(
    url: str,
    timeout: float = PAGE_TIMEOUT_SECONDS,
    transport: Optional[httpx.BaseTransport] = None,
) -> str:
    if not is_http_url(url):
        raise InvalidURLError(f"Invalid URL: {url}")

    headers = {
        "User-Agent": USER_AGENT,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9,de;q=0.8",
    }
    try:
        with httpx.Client(timeout=timeout, follow_redirects=True, headers=headers, transport=transport) as client:
            response = client.get(url)
            response.raise_for_status()
    except httpx.TimeoutException as error:
        raise NetworkTimeoutError(url, timeout) from error
    except httpx.HTTPStatusError as error:
        raise FetchFailedError(f"Failed to fetch URL: {error.response.status_code}") from error
    except httpx.HTTPError as error:
        raise FetchFailedError(f"Failed to fetch URL: {error}") from error

    content_type = response.headers.get("content-type", "")
    if not any(t in content_type for t in HTML_CONTENT_TYPES):
        raise FetchFailedError(f"Invalid content type: {content_type}. Expected HTML.")

    logger.info("fetch.page url=%s bytes=%d", url, len(response.content))
    return response.text


def _resolve_image_type(url: str, header_value: str) -> str | None:
    mime = header_value.split(";")[0].strip().lower()
    if mime in ALLOWED_IMAGE_TYPES:
        return mime
    extension = urlparse(url).path.rsplit(".", 1)[-1].lower()
    return IMAGE_TYPES_BY_EXTENSION.get(extension)


def download_image(
    url: str,
    timeout: float = IMAGE_TIMEOUT_SECONDS,
    max_bytes: int = MAX_IMAGE_BYTES,
) -> DownloadedImage:
    if not is_http_url(url):
        raise InvalidURLError("Invalid image URL protocol")

    headers = {"User-Agent": USER_AGENT, "Accept": "image/*"}
    try:
        with httpx.Client(timeout=timeout, follow_redirects=True, headers=headers) as client:
            response = client.get(url)
            response.raise_for_status()
    except httpx.TimeoutException as error:
        raise NetworkTimeoutError(url, timeout) from error
    except httpx.HTTPStatusError as error:
        raise FetchFailedError(f"Failed to fetch image: {error.response.status_code}") from error
    except httpx.HTTPError as error:
        raise FetchFailedError(f"Failed to fetch image: {error}") from error

    content_type = _resolve_image_type(url, response.headers.get("content-type", ""))
    if content_type is None:
        raise FetchFailedError(f"Unsupported image type: {response.headers.get('content-type')}")

    data = response.content
    if not data:
        raise FetchFailedError("Empty image data")
    if len(data) > max_bytes:
        raise FetchFailedError(f"Image too large: {len(data) / 1024 / 1024:.1f}MB")

    return DownloadedImage(data=data, content_type=content_type)
