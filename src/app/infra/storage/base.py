# src/app/infra/storage/base.py
"""
Abstract base class for storage providers.
Holds temporary import uploads (images, PDFs) and re-hosted recipe images.
"""
from __future__ import annotations

import re
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from uuid import uuid4

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


class StorageProvider(ABC):
    """
    Abstract interface for object storage operations.

    Implementations:
    - R2StorageProvider: Cloudflare R2 (S3-compatible)
    """

    @abstractmethod
    def generate_signed_put_url(
        self,
        object_key: str,
        content_type: str,
        expires_seconds: int = 3600,
    ) -> tuple[str, datetime]:
        """
        Generate a pre-signed URL for uploading an object.

        Returns:
            Tuple of (signed_url, expiration_datetime)
        """
        pass

    @abstractmethod
    def download_bytes(self, object_key: str) -> tuple[bytes, str | None]:
        """
        Read an object into memory.

        Returns:
            Tuple of (content, content_type)

        Raises:
            StorageError: if the object is missing or unreadable
        """
        pass

    @abstractmethod
    def upload_bytes(self, object_key: str, data: bytes, content_type: str) -> str:
        """Store data under object_key and return its public URL."""
        pass

    @abstractmethod
    def delete_objects(self, object_keys: list[str]) -> list[str]:
        """
        Delete objects.

        Returns:
            The keys that could not be deleted
        """
        pass

    @abstractmethod
    def public_url(self, object_key: str) -> str:
        pass

    def generate_object_key(
        self,
        user_id: str,
        filename: str,
        prefix: str = "imports",
    ) -> str:
        """
        Build a standardized object key.

        Format: users/{user_id}/{prefix}/{YYYY}/{MM}/{uuid}_{filename}
        """
        now = datetime.now(timezone.utc)
        safe_filename = _UNSAFE_FILENAME_CHARS.sub("_", filename)
        unique_id = uuid4().hex[:8]
        return f"users/{user_id}/{prefix}/{now:%Y}/{now:%m}/{unique_id}_{safe_filename}"


def owner_prefix(user_id: str) -> str:
    return f"users/{user_id}/"
