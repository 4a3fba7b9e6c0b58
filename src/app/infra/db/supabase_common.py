from __future__ import annotations

import os
from datetime import datetime

import httpx
from postgrest.exceptions import APIError
from supabase import Client, create_client

# Errors raised by supabase-py calls that repositories translate to RepositoryError
NETWORK_ERRORS = (APIError, httpx.HTTPError, ConnectionError, TimeoutError)

UNIQUE_VIOLATION = "23505"


def parse_datetime(value: str | datetime | None) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        return None

    try:
        normalized = value.replace("Z", "+00:00") if value.endswith("Z") else value
        return datetime.fromisoformat(normalized)
    except ValueError:
        return None


def safe_int(value: object, default: int = 0) -> int:
    return int(value) if value else default


def safe_str(value: object) -> str | None:
    return str(value) if value else None


def is_unique_violation(error: Exception) -> bool:
    return isinstance(error, APIError) and getattr(error, "code", None) == UNIQUE_VIOLATION


def create_supabase_client() -> Client:
    url = os.getenv("SUPABASE_URL")
    key = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
    if not url or not key:
        raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY required")
    return create_client(url, key)
