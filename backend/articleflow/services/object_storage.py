"""Cloudflare R2 object storage (S3 API via boto3).

``R2Storage.upload`` is the synchronous primitive used by upload endpoints;
``upload_diagram`` is the async uploader the diagram embedder awaits.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from ..core.config import settings
from ..exceptions import StorageError, StorageNotConfiguredError

logger = logging.getLogger(__name__)

# Uploaded objects are immutable (random keys), so clients may cache forever.
CACHE_CONTROL = "public, max-age=31536000"

_EXTENSIONS = {
    "image/svg+xml": "svg",
    "image/png": "png",
    "image/webp": "webp",
    "image/jpeg": "jpg",
    "text/markdown": "md",
}


@dataclass(frozen=True)
class StoredObject:
    """Location of an uploaded object."""
    url: str
    key: str
    bucket: str


def extension_for(content_type: str) -> str:
    """File extension for a MIME type, ``bin`` when unknown."""
    if content_type in _EXTENSIONS:
        return _EXTENSIONS[content_type]
    subtype = content_type.split("/")[-1].split("+")[0].split(";")[0].strip()
    return subtype or "bin"


def _create_client() -> Any:
    if not settings.r2_configured:
        raise StorageNotConfiguredError()
    return boto3.client(
        "s3",
        region_name="auto",
        endpoint_url=f"https://{settings.r2_account_id}.r2.cloudflarestorage.com",
        aws_access_key_id=settings.r2_access_key_id,
        aws_secret_access_key=settings.r2_secret_access_key,
        config=BotoConfig(signature_version="s3v4", retries={"max_attempts": 2}),
    )


class R2Storage:
    """Uploads byte buffers to an R2 bucket and returns their public URL."""

    def __init__(
        self,
        client: Optional[Any] = None,
        bucket: Optional[str] = None,
        public_url: Optional[str] = None,
        diagram_folder: Optional[str] = None,
    ):
        self.client = client if client is not None else _create_client()
        self.bucket = bucket or settings.r2_bucket_name
        self.public_url = (public_url or settings.get_r2_public_url()).rstrip("/")
        self.diagram_folder = diagram_folder or settings.diagram_folder

    def build_key(self, content_type: str, folder: str = "", file_name: Optional[str] = None) -> str:
        """``<folder>/<file_name>``, with a random UUID name by default."""
        name = file_name or f"{uuid.uuid4()}.{extension_for(content_type)}"
        folder = folder.strip("/")
        return f"{folder}/{name}" if folder else name

    def upload(
        self,
        data: bytes,
        content_type: str,
        folder: str = "",
        file_name: Optional[str] = None,
    ) -> StoredObject:
        """Store *data* and return where it landed. Raises StorageError on failure."""
        key = self.build_key(content_type, folder, file_name)
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                CacheControl=CACHE_CONTROL,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("R2 upload failed for %s: %s", key, e)
            raise StorageError(f"Failed to upload to R2: {e}", key=key) from e

        url = f"{self.public_url}/{key}"
        logger.info("Uploaded object", extra={"key": key, "bytes": len(data), "content_type": content_type})
        return StoredObject(url=url, key=key, bucket=self.bucket)

    async def upload_diagram(self, data: bytes, content_type: str) -> str:
        """Uploader contract for the diagram embedder: bytes in, public URL out."""
        stored = await asyncio.to_thread(self.upload, data, content_type, self.diagram_folder)
        return stored.url


@lru_cache(maxsize=1)
def _default_storage() -> R2Storage:
    return R2Storage()


def get_storage() -> R2Storage:
    """FastAPI dependency. Raises StorageNotConfiguredError (503) without credentials."""
    return _default_storage()


class LazyDiagramUploader:
    """Embedder uploader that looks up storage on first use.

    Passes with no diagram to render never touch storage, so they work
    without R2 credentials.
    """

    def __init__(self, storage_factory: Callable[[], R2Storage] = get_storage):
        self._storage_factory = storage_factory
        self._storage: Optional[R2Storage] = None

    def prepare(self) -> R2Storage:
        """Resolve storage. Raises StorageNotConfiguredError without credentials."""
        if self._storage is None:
            self._storage = self._storage_factory()
        return self._storage

    async def __call__(self, data: bytes, content_type: str) -> str:
        return await self.prepare().upload_diagram(data, content_type)
