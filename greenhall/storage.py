"""
Asset storage for record images: S3-compatible hosts and in-memory testing.
"""

from __future__ import annotations

import logging
import re
import time
import uuid
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Any, Optional, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from greenhall.errors import AssetUploadError, UploadRejectedError

logger = logging.getLogger(__name__)

DEFAULT_FOLDER = "greenhall-capital"
DEFAULT_MAX_BYTES = 10 * 1024 * 1024
DEFAULT_FORMATS = ("jpg", "png", "jpeg", "gif", "webp", "svg")


@dataclass(frozen=True)
class ImageUpload:
    """File bytes received from a client, before they reach the asset host."""

    data: bytes
    content_type: str
    filename: str

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class StoredAsset:
    url: str
    asset_id: str


@dataclass(frozen=True)
class CleanupOutcome:
    """
    Result of a best-effort asset deletion.

    Callers log failed outcomes; they never turn them into request errors.
    """

    asset_id: str
    deleted: bool
    error: Optional[str] = None


class AssetStore(Protocol):
    """Defines the operations the services need from the image host."""

    def upload(
        self, data: bytes, content_type: str, original_name: str
    ) -> StoredAsset:
        ...

    def destroy(self, asset_id: str) -> CleanupOutcome:
        ...


def validate_image(
    data: bytes,
    content_type: str,
    original_name: str,
    *,
    allowed_formats=DEFAULT_FORMATS,
    max_bytes: int = DEFAULT_MAX_BYTES,
) -> None:
    """Raise UploadRejectedError unless the payload is an accepted image."""
    content_type = (content_type or "").lower()
    if not content_type.startswith("image/"):
        raise UploadRejectedError("Only image files are allowed!")

    extension = PurePath(original_name or "").suffix.lstrip(".").lower()
    subtype = content_type.split("/", 1)[1].split("+", 1)[0].split(";", 1)[0]
    allowed = {fmt.lower() for fmt in allowed_formats}
    if extension not in allowed and subtype not in allowed:
        raise UploadRejectedError(
            "Unsupported image format",
            details=f"Allowed formats: {', '.join(allowed_formats)}",
        )
    if len(data) > max_bytes:
        raise UploadRejectedError(
            "File too large", details=f"Maximum size is {max_bytes} bytes"
        )


def make_asset_id(
    folder: str, original_name: str, now: Optional[float] = None
) -> str:
    """
    Build an asset id of the form ``<folder>/<epoch-ms>-<stem>-<token>``.

    The stem is the original filename with whitespace turned into
    underscores, anything outside ``[A-Za-z0-9_.-]`` removed and the
    extension dropped.
    """
    timestamp = int((now if now is not None else time.time()) * 1000)
    safe_name = re.sub(r"\s+", "_", original_name or "")
    safe_name = re.sub(r"[^\w.-]", "", safe_name, flags=re.ASCII)
    stem = safe_name.split(".")[0] or "image"
    return f"{folder}/{timestamp}-{stem}-{uuid.uuid4().hex[:6]}"


@dataclass
class InMemoryAssetStore:
    """Test double for the image host."""

    base_url: str = "https://example.test/assets"
    folder: str = DEFAULT_FOLDER
    allowed_formats: tuple = DEFAULT_FORMATS
    max_bytes: int = DEFAULT_MAX_BYTES
    stored_objects: dict = field(default_factory=dict)

    def upload(
        self, data: bytes, content_type: str, original_name: str
    ) -> StoredAsset:
        validate_image(
            data,
            content_type,
            original_name,
            allowed_formats=self.allowed_formats,
            max_bytes=self.max_bytes,
        )
        asset_id = make_asset_id(self.folder, original_name)
        self.stored_objects[asset_id] = (bytes(data), content_type)
        return StoredAsset(url=f"{self.base_url}/{asset_id}", asset_id=asset_id)

    def destroy(self, asset_id: str) -> CleanupOutcome:
        if self.stored_objects.pop(asset_id, None) is None:
            return CleanupOutcome(asset_id, deleted=False, error="Asset not found")
        return CleanupOutcome(asset_id, deleted=True)

    def reset(self) -> None:
        """Clear all stored objects (useful in tests)."""
        self.stored_objects.clear()


@dataclass
class S3AssetStore:
    """
    Image host backed by any S3-compatible object store.

    Objects are written under their asset id and served publicly from
    ``public_base_url`` when set, otherwise from the bucket's own URL.
    """

    bucket: str
    region: str = ""
    endpoint: str = ""
    access_key_id: str = ""
    secret_access_key: str = ""
    public_base_url: str = ""
    folder: str = DEFAULT_FOLDER
    allowed_formats: tuple = DEFAULT_FORMATS
    max_bytes: int = DEFAULT_MAX_BYTES
    client: Any = None

    def __post_init__(self):
        if self.client is None:
            config = Config(
                s3={"addressing_style": "virtual"},
                signature_version="s3v4",
            )
            self.client = boto3.client(
                "s3",
                endpoint_url=self.endpoint or None,
                region_name=self.region or None,
                aws_access_key_id=self.access_key_id or None,
                aws_secret_access_key=self.secret_access_key or None,
                config=config,
            )

    def public_url(self, asset_id: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{asset_id}"
        if self.endpoint:
            return f"{self.endpoint.rstrip('/')}/{self.bucket}/{asset_id}"
        region = self.region or "us-east-1"
        return f"https://{self.bucket}.s3.{region}.amazonaws.com/{asset_id}"

    def upload(
        self, data: bytes, content_type: str, original_name: str
    ) -> StoredAsset:
        validate_image(
            data,
            content_type,
            original_name,
            allowed_formats=self.allowed_formats,
            max_bytes=self.max_bytes,
        )
        asset_id = make_asset_id(self.folder, original_name)
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=asset_id,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as exc:
            logger.error("Upload of %s to bucket %s failed: %s", asset_id, self.bucket, exc)
            raise AssetUploadError("Failed to upload image", details=str(exc)) from exc
        return StoredAsset(url=self.public_url(asset_id), asset_id=asset_id)

    def destroy(self, asset_id: str) -> CleanupOutcome:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=asset_id)
        except Exception as exc:
            logger.debug("delete_object failed for %s", asset_id, exc_info=True)
            return CleanupOutcome(asset_id, deleted=False, error=str(exc))
        return CleanupOutcome(asset_id, deleted=True)
