from __future__ import annotations

import httpx
import pytest

from src.services.errors import (
    FetchFailedError,
    NetworkTimeoutError,
    TranscriptUnavailableError,
    VideoNotFoundError,
)
from src.services.fetcher import fetch_webpage
from src.services.ids import VideoRef
from src.services.transcripts import TranscriptClient

PAGE_URL = "https://site.example/recipes/pasta"
TIKTOK = VideoRef("tiktok", "7301234567890", "https://www.tiktok.com/@chef/video/7301234567890")


def _html(status: int = 200, body: bytes = b"<html><body>Pasta</body></html>") -> httpx.Response:
    return httpx.Response(status, content=body, headers={"content-type": "text/html; charset=utf-8"})


def _transcripts(handler, api_key: str | None = None) -> TranscriptClient:
    return TranscriptClient("https://transcripts.example/v1/", api_key, transport=httpx.MockTransport(handler))


class TestFetchWebpage:
    def test_returns_html(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return _html()

        text = fetch_webpage(PAGE_URL, transport=httpx.MockTransport(handler))

        assert "Pasta" in text
        assert seen[0].headers["user-agent"].startswith("RecipeJoe")

    def test_non_2xx_status(self) -> None:
        transport = httpx.MockTransport(lambda request: _html(status=503))

        with pytest.raises(FetchFailedError) as exc_info:
            fetch_webpage(PAGE_URL, transport=transport)

        assert "503" in str(exc_info.value)

    def test_not_found(self) -> None:
        with pytest.raises(FetchFailedError):
            fetch_webpage(PAGE_URL, transport=httpx.MockTransport(lambda request: _html(status=404)))

    def test_non_html_content_type(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"name": "Pasta"}))

        with pytest.raises(FetchFailedError) as exc_info:
            fetch_webpage(PAGE_URL, transport=transport)

        assert "Expected HTML" in str(exc_info.value)

    def test_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("too slow", request=request)

        with pytest.raises(NetworkTimeoutError):
            fetch_webpage(PAGE_URL, timeout=1.0, transport=httpx.MockTransport(handler))

    def test_connection_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(FetchFailedError):
            fetch_webpage(PAGE_URL, transport=httpx.MockTransport(handler))


class TestTranscriptService:
    def test_segments_and_request_shape(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={
                "lang": "de",
                "content": [
                    {"text": "Zwiebeln schneiden", "offset": 0, "duration": 1500},
                    {"text": "in Butter anbraten", "offset": 1500, "duration": 2000},
                ],
            })

        transcript = _transcripts(handler, api_key="secret").fetch(TIKTOK, preferred_lang="de")

        assert transcript.language == "de"
        assert transcript.text == "Zwiebeln schneiden in Butter anbraten"
        assert [s.offset_ms for s in transcript.segments] == [0, 1500]
        request = seen[0]
        assert request.url.path == "/v1/tiktok/transcript"
        assert request.url.params["url"] == TIKTOK.normalized_url
        assert request.url.params["lang"] == "de"
        assert request.headers["x-api-key"] == "secret"

    def test_not_found(self) -> None:
        client = _transcripts(lambda request: httpx.Response(404, json={"message": "Video is private"}))

        with pytest.raises(VideoNotFoundError) as exc_info:
            client.fetch(TIKTOK)

        assert str(exc_info.value) == "Video is private"

    @pytest.mark.parametrize("status", [400, 422])
    def test_unprocessable(self, status: int) -> None:
        client = _transcripts(lambda request: httpx.Response(status, json={}))

        with pytest.raises(TranscriptUnavailableError):
            client.fetch(TIKTOK)

    def test_empty_content(self) -> None:
        client = _transcripts(lambda request: httpx.Response(200, json={"content": []}))

        with pytest.raises(TranscriptUnavailableError):
            client.fetch(TIKTOK)

    def test_server_error(self) -> None:
        client = _transcripts(lambda request: httpx.Response(502, content=b"bad gateway"))

        with pytest.raises(FetchFailedError) as exc_info:
            client.fetch(TIKTOK)

        assert "502" in str(exc_info.value)

    def test_non_json_body(self) -> None:
        client = _transcripts(lambda request: _html(body=b"<html>gateway</html>"))

        with pytest.raises(FetchFailedError):
            client.fetch(TIKTOK)

    def test_missing_offsets_default_to_zero(self) -> None:
        client = _transcripts(lambda request: httpx.Response(200, json={
            "content": [{"text": "stir", "offset": None, "duration": None}],
        }))

        transcript = client.fetch(TIKTOK)

        assert transcript.segments[0].offset_ms == 0
        assert transcript.segments[0].duration_ms == 0

    def test_malformed_offsets(self) -> None:
        client = _transcripts(lambda request: httpx.Response(200, json={
            "content": [{"text": "stir", "offset": "soon"}],
        }))

        with pytest.raises(TranscriptUnavailableError):
            client.fetch(TIKTOK)

    def test_unreachable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection reset", request=request)

        with pytest.raises(FetchFailedError):
            _transcripts(handler).fetch(TIKTOK)
