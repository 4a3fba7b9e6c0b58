# src/app/routers/media.py
"""
Signed upload URLs for media imports.

The client uploads photos or a PDF straight to R2, then passes the returned
object keys to POST /imports/media. Uploads are temporary and removed once
the recipe is saved.
"""
from __future__ import annotations

import logging
import os
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from src.app.config import settings
from src.app.deps import CurrentUser, get_current_user, get_storage
from src.app.domain.errors import StorageError
from src.app.infra.storage.base import StorageProvider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/media", tags=["media"])

ALLOWED_CONTENT_TYPES = {
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/heic",
    "application/pdf",
}

MAX_FILE_SIZE_BYTES = settings.import_policy().max_file_bytes
UPLOAD_URL_TTL_SECONDS = 900


class SignedUploadRequest(BaseModel):
    filename: str = Field(..., min_length=1, max_length=255, description="Original filename")
    content_type: str = Field(..., description="MIME type of the file")
    size_bytes: Optional[int] = Field(None, ge=1, description="File size in bytes")


class SignedUploadResponse(BaseModel):
    object_key: str = Field(..., description="Storage path to pass to the media import")
    upload_url: str = Field(..., description="Pre-signed PUT URL for direct upload")
    expires_at: datetime
    max_size_bytes: int = MAX_FILE_SIZE_BYTES


def _sanitize_filename(filename: str) -> str:
    filename = os.path.basename(filename)
    if len(filename) > 100:
        name, ext = os.path.splitext(filename)
        filename = name[:95] + ext
    return filename


@router.post("/signed-upload", response_model=SignedUploadResponse)
async def create_signed_upload(
    request: SignedUploadRequest,
    current_user: CurrentUser = Depends(get_current_user),
    storage: StorageProvider = Depends(get_storage),
):
    """
    Generate a pre-signed URL for a recipe photo or PDF.

    The client should PUT the file to upload_url with the same content_type,
    then start a media import with the returned object_key.
    """
    if request.content_type not in ALLOWED_CONTENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Content type '{request.content_type}' not allowed. Allowed types: {', '.join(sorted(ALLOWED_CONTENT_TYPES))}",
        )

    if request.size_bytes and request.size_bytes > MAX_FILE_SIZE_BYTES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File too large. Maximum size: {MAX_FILE_SIZE_BYTES / (1024 * 1024):.2f}MB",
        )

    object_key = storage.generate_object_key(
        user_id=current_user.id,
        filename=_sanitize_filename(request.filename),
        prefix="imports",
    )

    try:
        upload_url, expires_at = storage.generate_signed_put_url(
            object_key=object_key,
            content_type=request.content_type,
            expires_seconds=UPLOAD_URL_TTL_SECONDS,
        )
    except StorageError as e:
        logger.error("Failed to generate signed URL: %s", e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Failed to generate upload URL",
        )

    logger.info(
        "media.signed_upload user=%s object_key=%s content_type=%s",
        current_user.id,
        object_key,
        request.content_type,
    )
    return SignedUploadResponse(
        object_key=object_key,
        upload_url=upload_url,
        expires_at=expires_at,
        max_size_bytes=MAX_FILE_SIZE_BYTES,
    )
