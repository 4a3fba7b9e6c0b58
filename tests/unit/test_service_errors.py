from __future__ import annotations

from src.services.errors import (
    AIServiceError,
    FetchFailedError,
    FileTooLargeError,
    InvalidTimestampError,
    InvalidURLError,
    MalformedExtractionError,
    NetworkTimeoutError,
    NoReadableTextError,
    RateLimitedError,
    ServiceError,
    TooManyFilesError,
    TranscriptUnavailableError,
    UnsupportedPlatformError,
    VideoNotFoundError,
)


class TestServiceError:
    def test_base_exception(self) -> None:
        error = ServiceError("Base service error")
        assert str(error) == "Base service error"
        assert isinstance(error, Exception)
        assert error.code == "extraction_failed"


class TestInvalidTimestampError:
    def test_includes_value_and_format_hint(self) -> None:
        error = InvalidTimestampError("1:60")
        assert "1:60" in str(error)
        assert "MM:SS" in str(error)
        assert error.value == "1:60"
        assert error.code == "invalid_timestamp"


class TestFileTooLargeError:
    def test_reports_sizes_in_megabytes(self) -> None:
        error = FileTooLargeError("users/u/imports/a.jpg", 6 * 1024 * 1024, 4 * 1024 * 1024)
        assert "6.00MB" in str(error)
        assert "4.00MB" in str(error)
        assert error.path == "users/u/imports/a.jpg"
        assert error.code == "file_too_large"


class TestNetworkTimeoutError:
    def test_includes_url_and_timeout(self) -> None:
        error = NetworkTimeoutError("https://example.com", 20.0)
        assert "https://example.com" in str(error)
        assert "20.0" in str(error)
        assert error.url == "https://example.com"
        assert error.timeout_seconds == 20.0


class TestErrorCodes:
    def test_codes_are_distinct(self) -> None:
        classes = [
            InvalidURLError,
            UnsupportedPlatformError,
            FetchFailedError,
            RateLimitedError,
            AIServiceError,
            MalformedExtractionError,
            TranscriptUnavailableError,
            VideoNotFoundError,
            TooManyFilesError,
            NoReadableTextError,
        ]
        codes = [cls.code for cls in classes]
        assert len(set(codes)) == len(codes)

    def test_all_errors_inherit_from_service_error(self) -> None:
        errors = [
            InvalidURLError("x"),
            UnsupportedPlatformError("x"),
            FetchFailedError("x"),
            RateLimitedError("x"),
            AIServiceError("x"),
            MalformedExtractionError("x"),
            TranscriptUnavailableError("x"),
            VideoNotFoundError("x"),
            InvalidTimestampError("x"),
            TooManyFilesError("x"),
            FileTooLargeError("p", 2, 1),
            NoReadableTextError("x"),
            NetworkTimeoutError("u", 1.0),
        ]
        for error in errors:
            assert isinstance(error, ServiceError)
