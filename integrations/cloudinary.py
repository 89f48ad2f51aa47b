import io
import os
from typing import Any, Dict, Optional

import cloudinary.uploader
import logging

logger = logging.getLogger(__name__)


class CloudinaryClient:
    """Cloudinary upload API client (images only), built on the cloudinary SDK.

    Environment variables:
    - CLOUDINARY_CLOUD_NAME
    - CLOUDINARY_API_KEY
    - CLOUDINARY_API_SECRET
    """

    def __init__(
        self,
        cloud_name: Optional[str] = None,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        timeout_seconds: int = 30,
    ) -> None:
        self.cloud_name = cloud_name or os.getenv("CLOUDINARY_CLOUD_NAME") or ""
        self.api_key = api_key or os.getenv("CLOUDINARY_API_KEY") or ""
        self.api_secret = api_secret or os.getenv("CLOUDINARY_API_SECRET") or ""
        self.timeout_seconds = timeout_seconds
        if not (self.cloud_name and self.api_key and self.api_secret):
            raise ValueError("CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY and CLOUDINARY_API_SECRET are required")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        """The SDK keeps no per-client connection."""

    def _options(self, **options: Any) -> Dict[str, Any]:
        options = {k: v for k, v in options.items() if v not in (None, "")}
        options.update(
            cloud_name=self.cloud_name,
            api_key=self.api_key,
            api_secret=self.api_secret,
            timeout=self.timeout_seconds,
        )
        return options

    def upload(
        self,
        data: bytes,
        filename: str,
        content_type: str,
        folder: Optional[str] = None,
        transformation: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Upload an image.

        Returns:
            The Cloudinary response; ``secure_url`` and ``public_id`` are the useful keys.
        """
        logger.debug(f"Uploading {filename} ({content_type}, {len(data)} bytes) to {folder}")
        return cloudinary.uploader.upload(
            io.BytesIO(data),
            **self._options(
                filename=filename,
                folder=folder,
                transformation=transformation,
                resource_type="image",
            ),
        )

    def destroy(self, public_id: str) -> Dict[str, Any]:
        """Delete an image by public id. Cloudinary answers ``{"result": "ok"}`` or ``"not found"``."""
        return cloudinary.uploader.destroy(public_id, **self._options(resource_type="image"))
