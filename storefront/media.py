"""Image hosting for product photos and payment proofs."""
import logging
import os
import re
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List

from cloudinary.exceptions import Error as CloudinaryError

from integrations.cloudinary import CloudinaryClient

from .errors import NotFoundError, UpstreamError

logger = logging.getLogger(__name__)

PRODUCT_TRANSFORMATION = "c_limit,h_1000,w_1000"

EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
}


@dataclass
class StoredImage:
    url: str
    public_id: str


class ImageHost(ABC):
    name = "abstract"

    @abstractmethod
    def upload(self, data: bytes, filename: str, content_type: str, folder: str, resize: bool = False) -> StoredImage:
        ...

    @abstractmethod
    def delete(self, public_id: str) -> None:
        ...

    def close(self) -> None:
        pass


class CloudinaryImageHost(ImageHost):
    name = "cloudinary"

    def __init__(self, client: CloudinaryClient) -> None:
        self.client = client

    def upload(self, data: bytes, filename: str, content_type: str, folder: str, resize: bool = False) -> StoredImage:
        try:
            result = self.client.upload(
                data,
                filename,
                content_type,
                folder=folder,
                transformation=PRODUCT_TRANSFORMATION if resize else None,
            )
        except CloudinaryError as e:
            logger.error(f"❌ [CLOUDINARY] upload failed: {e}")
            raise UpstreamError(f"Image upload failed: {e}")
        return StoredImage(url=result["secure_url"], public_id=result["public_id"])

    def delete(self, public_id: str) -> None:
        try:
            result = self.client.destroy(public_id)
        except CloudinaryError as e:
            raise UpstreamError(f"Image delete failed: {e}")
        if result.get("result") not in ("ok", "not found"):
            raise UpstreamError(f"Cloudinary destroy returned {result}")
        logger.info(f"🗑️ Deleted image from Cloudinary: {public_id}")

    def close(self) -> None:
        self.client.close()


class LocalMediaHost(ImageHost):
    """Stores files under a local directory served by the API at ``url_prefix``."""

    name = "local"

    def __init__(self, media_dir: str, url_prefix: str = "/media") -> None:
        self.media_dir = media_dir
        self.url_prefix = url_prefix.rstrip("/")
        os.makedirs(media_dir, exist_ok=True)

    def file_path(self, public_id: str) -> str:
        path = os.path.normpath(os.path.join(self.media_dir, public_id))
        if not path.startswith(os.path.normpath(self.media_dir) + os.sep):
            raise NotFoundError("Image not found")
        return path

    def upload(self, data: bytes, filename: str, content_type: str, folder: str, resize: bool = False) -> StoredImage:
        stem = re.sub(r"[^A-Za-z0-9_-]+", "-", os.path.splitext(filename or "image")[0]).strip("-") or "image"
        extension = EXTENSIONS.get(content_type) or os.path.splitext(filename or "")[1] or ".img"
        public_id = f"{folder}/{stem}-{uuid.uuid4().hex[:12]}{extension}"

        path = self.file_path(public_id)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "wb") as f:
            f.write(data)

        return StoredImage(url=f"{self.url_prefix}/{public_id}", public_id=public_id)

    def delete(self, public_id: str) -> None:
        path = self.file_path(public_id)
        try:
            os.remove(path)
            logger.info(f"🗑️ Deleted local image: {public_id}")
        except FileNotFoundError:
            logger.warning(f"⚠️ Local image already gone: {public_id}")


def image_public_ids(product) -> List[str]:
    """All hosted image ids that belong to a product."""
    ids = []
    if product.cloudinary_id:
        ids.append(product.cloudinary_id)
    for variant in product.variants:
        for public_id in variant.cloudinary_ids or []:
            if public_id not in ids:
                ids.append(public_id)
    return ids
