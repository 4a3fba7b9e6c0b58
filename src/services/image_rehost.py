from __future__ import annotations

import logging
from typing import Callable, Optional
from uuid import uuid4

from src.app.domain.errors import StorageError
from src.app.infra.storage.base import StorageProvider

from .errors import ServiceError
from .fetcher import DownloadedImage, download_image

logger = logging.getLogger(__name__)

RECIPE_IMAGES_PREFIX = "recipe-images"


class ImageRehoster:
    """Copies a recipe's source image into our bucket so it survives the source site."""

    def __init__(
        self,
        storage: StorageProvider,
        downloader: Callable[[str], DownloadedImage] = download_image,
    ) -> None:
        self._storage = storage
        self._download = downloader

    def rehost(self, image_url: Optional[str]) -> Optional[str]:
        """Public URL of the stored copy, or None if anything fails."""
        if not image_url:
            return None

        try:
            image = self._download(image_url)
            key = f"{RECIPE_IMAGES_PREFIX}/{uuid4()}.{image.extension}"
            public_url = self._storage.upload_bytes(key, image.data, image.content_type)
        except (ServiceError, StorageError) as error:
            logger.warning("image.rehost_failed url=%s reason=%s", image_url, error)
            return None

        logger.info("image.rehosted url=%s kb=%.1f", image_url, len(image.data) / 1024)
        return public_url
