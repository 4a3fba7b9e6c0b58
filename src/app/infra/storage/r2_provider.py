# src/app/infra/storage/r2_provider.py
"""
Cloudflare R2 storage provider implementation.
R2 is S3-compatible, so we use boto3 with custom endpoint.
"""
from __future__ import annotations

import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from src.app.domain.errors import StorageError
from src.app.infra.storage.base import StorageProvider

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey"}


class R2StorageProvider(StorageProvider):
    """
    Cloudflare R2 storage provider using boto3 (S3-compatible).

    Falls back to the R2_* environment variables for any argument not given.
    """

    def __init__(
        self,
        account_id: Optional[str] = None,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        bucket_name: Optional[str] = None,
        public_url: Optional[str] = None,
    ):
        self.account_id = account_id or os.getenv("R2_ACCOUNT_ID")
        self.access_key_id = access_key_id or os.getenv("R2_ACCESS_KEY_ID")
        self.secret_access_key = secret_access_key or os.getenv("R2_SECRET_ACCESS_KEY")
        self.bucket_name = bucket_name or os.getenv("R2_BUCKET_NAME")
        self.public_base_url = (public_url or os.getenv("R2_PUBLIC_URL") or "").rstrip("/")

        if not all([self.account_id, self.access_key_id, self.secret_access_key, self.bucket_name]):
            raise StorageError(
                "Missing R2 configuration. Required: R2_ACCOUNT_ID, R2_ACCESS_KEY_ID, "
                "R2_SECRET_ACCESS_KEY, R2_BUCKET_NAME"
            )

        self.endpoint_url = f"https://{self.account_id}.r2.cloudflarestorage.com"

        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint_url,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            config=Config(
                signature_version="s3v4",
                retries={"max_attempts": 3, "mode": "adaptive"},
            ),
            region_name="auto",  # R2 uses 'auto' as region
        )

        logger.info("R2StorageProvider initialized: bucket=%s", self.bucket_name)

    def generate_signed_put_url(
        self,
        object_key: str,
        content_type: str,
        expires_seconds: int = 3600,
    ) -> tuple[str, datetime]:
        try:
            url = self._client.generate_presigned_url(
                ClientMethod="put_object",
                Params={
                    "Bucket": self.bucket_name,
                    "Key": object_key,
                    "ContentType": content_type,
                },
                ExpiresIn=expires_seconds,
            )
        except ClientError as e:
            logger.error("Failed to generate signed PUT URL: %s", e)
            raise StorageError(f"Failed to generate upload URL: {e}") from e

        expires_at = datetime.now(timezone.utc) + timedelta(seconds=expires_seconds)
        return url, expires_at

    def download_bytes(self, object_key: str) -> tuple[bytes, str | None]:
        try:
            response = self._client.get_object(Bucket=self.bucket_name, Key=object_key)
            body = response["Body"].read()
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code in _NOT_FOUND_CODES:
                raise StorageError(f"Object not found: {object_key}") from e
            logger.error("Failed to download from R2: key=%s error=%s", object_key, e)
            raise StorageError(f"Failed to download file: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Failed to download file: {e}") from e

        logger.debug("Downloaded from R2: key=%s size=%d", object_key, len(body))
        return body, response.get("ContentType")

    def upload_bytes(self, object_key: str, data: bytes, content_type: str) -> str:
        try:
            self._client.put_object(
                Bucket=self.bucket_name,
                Key=object_key,
                Body=data,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("Failed to upload to R2: key=%s error=%s", object_key, e)
            raise StorageError(f"Failed to upload file: {e}") from e

        logger.info("Uploaded to R2: key=%s size=%d", object_key, len(data))
        return self.public_url(object_key)

    def delete_objects(self, object_keys: list[str]) -> list[str]:
        if not object_keys:
            return []
        try:
            response = self._client.delete_objects(
                Bucket=self.bucket_name,
                Delete={"Objects": [{"Key": key} for key in object_keys], "Quiet": True},
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("Failed to delete objects from R2: %s", e)
            return list(object_keys)

        return [err.get("Key", "") for err in response.get("Errors", [])]

    def public_url(self, object_key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url}/{object_key}"
        return f"{self.endpoint_url}/{self.bucket_name}/{object_key}"
