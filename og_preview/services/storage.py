from __future__ import annotations

import hashlib
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from og_preview.models.preview import RenderRequest, RenderResult
from og_preview.services.errors import StorageError


logger = logging.getLogger(__name__)

PREVIEW_PREFIX = "previews"


def preview_key(request: RenderRequest) -> str:
    """
    Stable object key for a request.

    The same title, content, image and variant always map to the same key, so
    re-publishing an identical preview overwrites instead of piling up copies.
    """
    variant = getattr(request.variant, "value", request.variant)
    digest = hashlib.sha256()
    for part in (str(variant), request.title, request.content, request.source_image or ""):
        digest.update(part.encode("utf-8"))
        digest.update(b"\x00")
    return digest.hexdigest()[:32]


class PreviewStore(ABC):
    """Persists rendered previews and returns the URL they are served from."""

    @abstractmethod
    def save(self, result: RenderResult, key: str) -> str:
        """Store `result` under `key` and return its public URL."""


class LocalPreviewStore(PreviewStore):
    """
    Filesystem-backed store.

    Files land under `<base_dir>/previews/` and are expected to be served by
    the app's `/static` mount.
    """

    def __init__(self, base_dir: Path, public_base_url: str) -> None:
        self._base_dir = base_dir
        self._public_base_url = public_base_url.rstrip("/")

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def save(self, result: RenderResult, key: str) -> str:
        rel_path = f"{PREVIEW_PREFIX}/{key}.png"
        path = self._base_dir / rel_path
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(result.content)
        except OSError as exc:
            raise StorageError(f"Failed to write preview to {path}") from exc

        logger.info("Stored preview at %s", path)
        return f"{self._public_base_url}/static/{rel_path}"


class S3PreviewStore(PreviewStore):
    """
    Object-store backed store (S3 or any S3-compatible service such as MinIO).

    URLs are path-style (`<public_base_url>/<bucket>/<key>`) unless
    `bucket_in_path` is False, as for a virtual-hosted AWS base URL that
    already names the bucket.
    """

    def __init__(
        self,
        bucket: str,
        public_base_url: str,
        client: Optional[Any] = None,
        bucket_in_path: bool = True,
    ) -> None:
        self._bucket = bucket
        self._public_base_url = public_base_url.rstrip("/")
        self._bucket_in_path = bucket_in_path
        self._client = client or boto3.client(
            "s3",
            endpoint_url=os.getenv("OG_S3_ENDPOINT") or None,
            aws_access_key_id=os.getenv("OG_S3_ACCESS_KEY") or None,
            aws_secret_access_key=os.getenv("OG_S3_SECRET_KEY") or None,
            region_name=os.getenv("OG_S3_REGION", "us-east-1"),
        )

    def save(self, result: RenderResult, key: str) -> str:
        object_key = f"{PREVIEW_PREFIX}/{key}.png"
        try:
            self._client.put_object(
                Bucket=self._bucket,
                Key=object_key,
                Body=result.content,
                ContentType=result.content_type,
                CacheControl="public, max-age=31536000",
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"S3 upload failed for {self._bucket}/{object_key}") from exc

        logger.info("Uploaded preview to s3://%s/%s", self._bucket, object_key)
        if self._bucket_in_path:
            return f"{self._public_base_url}/{self._bucket}/{object_key}"
        return f"{self._public_base_url}/{object_key}"


def build_preview_store() -> PreviewStore:
    """Create the store selected by `OG_STORAGE_MODE` (`local` or `s3`)."""
    mode = os.getenv("OG_STORAGE_MODE", "local").strip().lower()
    public_base = os.getenv("OG_PUBLIC_BASE_URL", "http://localhost:8000")

    if mode == "s3":
        bucket = os.getenv("OG_S3_BUCKET", "og-previews")
        public = os.getenv("OG_S3_PUBLIC_BASE") or os.getenv("OG_S3_ENDPOINT")
        if public:
            return S3PreviewStore(bucket=bucket, public_base_url=public)
        # Plain AWS: serve from the bucket's virtual-hosted endpoint.
        region = os.getenv("OG_S3_REGION", "us-east-1")
        return S3PreviewStore(
            bucket=bucket,
            public_base_url=f"https://{bucket}.s3.{region}.amazonaws.com",
            bucket_in_path=False,
        )

    if mode != "local":
        logger.warning("Unknown OG_STORAGE_MODE %r; using local storage", mode)
    return LocalPreviewStore(base_dir=storage_dir(), public_base_url=public_base)


def storage_dir() -> Path:
    return Path(os.getenv("OG_STORAGE_DIR", "storage"))


_default_store: PreviewStore | None = None


def get_preview_store() -> PreviewStore:
    """
    Return the process-wide preview store.

    Abstracted behind a function so tests can override it through FastAPI's
    dependency overrides.
    """
    global _default_store
    if _default_store is None:
        _default_store = build_preview_store()
    return _default_store
