from typing import Optional


class ServiceError(Exception):
    code = "extraction_failed"


class InvalidURLError(ServiceError):
    code = "invalid_url"


class UnsupportedPlatformError(ServiceError):
    code = "unsupported_platform"


class FetchFailedError(ServiceError):
    code = "fetch_failed"


class RateLimitedError(ServiceError):
    code = "ai_rate_limited"


class AIServiceError(ServiceError):
    code = "ai_error"


class MalformedExtractionError(ServiceError):
    code = "malformed_extraction"


class TranscriptUnavailableError(ServiceError):
    code = "transcript_unavailable"


class VideoNotFoundError(ServiceError):
    code = "video_not_found"


class InvalidTimestampError(ServiceError):
    code = "invalid_timestamp"

    def __init__(self, value: str):
        super().__init__(f"Invalid timestamp format: {value}. Use MM:SS or H:MM:SS")
        self.value = value


class TooManyFilesError(ServiceError):
    code = "too_many_files"


class FileTooLargeError(ServiceError):
    code = "file_too_large"

    def __init__(self, path: str, size_bytes: int, max_bytes: int):
        super().__init__(
            f"File {path} is {size_bytes / (1024 * 1024):.2f}MB, "
            f"maximum is {max_bytes / (1024 * 1024):.2f}MB"
        )
        self.path = path
        self.size_bytes = size_bytes
        self.max_bytes = max_bytes


class NoReadableTextError(ServiceError):
    """OCR ran but returned too little text; carries the usage of the OCR call."""
    code = "no_readable_text"

    def __init__(self, message: str, usage=None, models_used: Optional[list[str]] = None):
        super().__init__(message)
        self.usage = usage
        self.models_used = list(models_used or [])


class NetworkTimeoutError(ServiceError):
    code = "network_timeout"

    def __init__(self, url: str, timeout_seconds: float):
        super().__init__(f"Network timeout after {timeout_seconds}s: {url}")
        self.url = url
        self.timeout_seconds = timeout_seconds
