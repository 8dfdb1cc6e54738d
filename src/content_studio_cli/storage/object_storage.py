"""Object storage for generated bitmaps.

Two backends share the ``upload(path, data, content_type) -> public_url`` contract:

* ``LocalObjectStorage`` writes under a local root and returns ``file://`` URLs,
  or URLs under ``public_base_url`` when one is configured.
* ``S3ObjectStorage`` uploads with ``put_object`` and returns the virtual-hosted
  bucket URL.  Selected automatically when ``AWS_ACCESS_KEY_ID`` and
  ``AWS_SECRET_ACCESS_KEY`` are present in the environment.

Uploads are upserts.  Any failure raises :class:`StorageUploadError`: a bitmap
that could not be stored counts as a failed generation for its slide.

Key scheme
----------
Slide images       : ``ai-slides/{content_id}/slide-{index}-{timestamp_ms}.{ext}``
Background images  : ``ai-backgrounds/{content_id}/bg-{index}-{timestamp_ms}.{ext}``
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path

from content_studio_cli.exceptions import ConfigurationError, StorageUploadError

logger = logging.getLogger(__name__)


def slide_image_key(content_id: str | None, slide_index: int, timestamp_ms: int, extension: str) -> str:
    return f"ai-slides/{content_id or 'draft'}/slide-{slide_index}-{timestamp_ms}.{extension}"


def background_image_key(content_id: str | None, slide_index: int, timestamp_ms: int, extension: str) -> str:
    return f"ai-backgrounds/{content_id or 'draft'}/bg-{slide_index}-{timestamp_ms}.{extension}"


class ObjectStorage(ABC):
    @abstractmethod
    def upload(self, path: str, data: bytes, content_type: str) -> str:
        """Store *data* at *path* (overwriting) and return its public URL."""
        raise NotImplementedError


class LocalObjectStorage(ObjectStorage):
    def __init__(self, root: Path, public_base_url: str | None = None) -> None:
        self.root = root
        self.public_base_url = public_base_url.rstrip("/") if public_base_url else None

    def upload(self, path: str, data: bytes, content_type: str) -> str:
        target = self.root / path
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            raise StorageUploadError(f"Local upload failed [path={path}]: {exc}") from exc

        logger.debug("Stored %s (%s, %d bytes)", target, content_type, len(data))
        if self.public_base_url:
            return f"{self.public_base_url}/{path}"
        return target.resolve().as_uri()


class S3ObjectStorage(ObjectStorage):
    def __init__(self, client: object, bucket: str, region: str = "us-east-1") -> None:
        self._client = client
        self.bucket = bucket
        self.region = region

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls, bucket: str) -> S3ObjectStorage | None:
        """Return an :class:`S3ObjectStorage` if AWS credentials are present, otherwise ``None``.

        Credentials read from:

        * ``AWS_ACCESS_KEY_ID``
        * ``AWS_SECRET_ACCESS_KEY``
        * ``AWS_DEFAULT_REGION`` (optional, defaults to ``us-east-1``)
        """
        access_key = os.getenv("AWS_ACCESS_KEY_ID")
        secret_key = os.getenv("AWS_SECRET_ACCESS_KEY")
        if not access_key or not secret_key:
            logger.debug("No AWS credentials found, S3 storage disabled.")
            return None

        try:
            import boto3  # type: ignore[import-untyped]
        except ImportError as exc:
            raise ConfigurationError(
                "AWS credentials are set but boto3 is not installed. Install with: pip install boto3"
            ) from exc

        region = os.getenv("AWS_DEFAULT_REGION", "us-east-1")
        client = boto3.client(
            "s3",
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=region,
        )
        logger.info("S3 storage active, bucket: %s, region: %s", bucket, region)
        return cls(client, bucket, region)

    def public_url(self, path: str) -> str:
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{path}"

    def upload(self, path: str, data: bytes, content_type: str) -> str:
        try:
            self._client.put_object(  # type: ignore[attr-defined]
                Bucket=self.bucket,
                Key=path,
                Body=data,
                ContentType=content_type,
            )
        except Exception as exc:
            raise StorageUploadError(f"S3 upload failed [key={path}]: {exc}") from exc

        logger.debug("S3 ↑ s3://%s/%s", self.bucket, path)
        return self.public_url(path)


def create_object_storage(storage_root: Path, bucket: str, public_base_url: str | None = None) -> ObjectStorage:
    s3_storage = S3ObjectStorage.from_env(bucket)
    if s3_storage is not None:
        return s3_storage
    return LocalObjectStorage(storage_root, public_base_url)
