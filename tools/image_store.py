"""
ImageStore — Campaign and character images kept in MongoDB GridFS.

Files are named `<folder>/<millis>-<random>.<ext>` inside the `images`
bucket and exposed under `<base_url>/images/<name>`. The public URL is what
gets stored on campaigns and characters; deleting parses it back.
"""

import logging
import secrets
import time
from typing import Any, Optional
from urllib.parse import unquote, urlparse

from motor.motor_asyncio import AsyncIOMotorGridFSBucket
from pymongo.errors import PyMongoError

logger = logging.getLogger("ImageStore")

BUCKET_NAME = "images"
FOLDERS = ("campaigns", "characters")
URL_PREFIX = "/images/"

_CONTENT_TYPES = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "webp": "image/webp",
}


def build_filename(original_name: str, folder: str) -> str:
    ext = original_name.rsplit(".", 1)[-1].lower() if "." in original_name else "png"
    return f"{folder}/{int(time.time() * 1000)}-{secrets.token_hex(4)}.{ext}"


class ImageStore:
    """Upload/delete images in a GridFS bucket of the StateManager's database."""

    def __init__(self, database: Any, base_url: str):
        self._bucket = AsyncIOMotorGridFSBucket(database, bucket_name=BUCKET_NAME)
        self.base_url = base_url.rstrip("/")

    def public_url(self, filename: str) -> str:
        return f"{self.base_url}{URL_PREFIX}{filename}"

    def is_hosted_image(self, url: Optional[str]) -> bool:
        return bool(url) and url.startswith(f"{self.base_url}{URL_PREFIX}")

    def filename_from_url(self, url: str) -> Optional[str]:
        path = unquote(urlparse(url).path)
        if URL_PREFIX not in path:
            return None
        return path.split(URL_PREFIX, 1)[1] or None

    async def upload_image(self, data: bytes, original_name: str, folder: str = "campaigns") -> Optional[str]:
        """Store the bytes and return the public URL, or None on failure."""
        if folder not in FOLDERS:
            logger.error(f"Unknown image folder: {folder}")
            return None
        filename = build_filename(original_name, folder)
        content_type = _CONTENT_TYPES.get(filename.rsplit(".", 1)[-1], "application/octet-stream")
        try:
            await self._bucket.upload_from_stream(
                filename, data, metadata={"content_type": content_type}
            )
        except Exception as e:
            logger.error(f"Error uploading image {original_name}: {e}")
            return None
        logger.info(f"Image uploaded: {filename} ({len(data)} bytes)")
        return self.public_url(filename)

    async def delete_image(self, url: str) -> bool:
        filename = self.filename_from_url(url)
        if not filename:
            return False
        deleted = False
        try:
            async for grid_out in self._bucket.find({"filename": filename}):
                await self._bucket.delete(grid_out._id)
                deleted = True
        except PyMongoError as e:
            logger.error(f"Error deleting image {filename}: {e}")
            return False
        if not deleted:
            logger.warning(f"Image not found for deletion: {filename}")
        return deleted
