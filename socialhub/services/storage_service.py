"""S3-compatible object storage helpers: uploads, removals and signed URLs."""
from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Iterable
from uuid import UUID

from boto3.session import Session
from botocore.client import BaseClient, Config
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool

from ..config import get_settings
from ..errors import StorageConfigurationError, StorageError, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StorageConfig:
    """Runtime configuration extracted from settings."""

    endpoint_url: str | None
    access_key: str
    secret_key: str
    region: str


@dataclass(frozen=True)
class StoredObject:
    """Location of an object after a successful upload."""

    bucket: str
    key: str
    content_type: str


@lru_cache(maxsize=1)
def load_storage_config() -> StorageConfig:
    """Read and validate object storage configuration."""

    settings = get_settings()
    missing = [
        name
        for name, value in (
            ("STORAGE_ACCESS_KEY", settings.storage_access_key),
            ("STORAGE_SECRET_KEY", settings.storage_secret_key),
        )
        if not value or not value.strip()
    ]
    if missing:
        raise StorageConfigurationError("Missing required object storage configuration: " + ", ".join(sorted(missing)))

    endpoint = (settings.storage_endpoint_url or "").strip().rstrip("/") or None
    return StorageConfig(
        endpoint_url=endpoint,
        access_key=str(settings.storage_access_key).strip(),
        secret_key=str(settings.storage_secret_key).strip(),
        region=settings.storage_region,
    )


@lru_cache(maxsize=1)
def get_storage_client() -> BaseClient:
    """Create a singleton boto3 client for object storage interactions."""

    config = load_storage_config()
    session = Session()
    return session.client(
        "s3",
        region_name=config.region,
        endpoint_url=config.endpoint_url,
        aws_access_key_id=config.access_key,
        aws_secret_access_key=config.secret_key,
        config=Config(signature_version="s3v4"),
    )


def ensure_known_bucket(bucket: str) -> str:
    if bucket not in get_settings().buckets:
        raise ValidationError(f"Unknown bucket '{bucket}'")
    return bucket


def _sanitize_segments(parts: Iterable[str]) -> list[str]:
    sanitized: list[str] = []
    for part in parts:
        if part in {"", ".", ".."}:
            continue
        cleaned = re.sub(r"[^A-Za-z0-9._-]", "-", part.strip())
        cleaned = re.sub(r"-+", "-", cleaned).strip("-._")
        if cleaned:
            sanitized.append(cleaned)
    return sanitized


def object_key(owner_id: UUID, filename: str | None) -> str:
    """Generate ``<owner_id>/<uuid>.<ext>`` keys so each user's uploads share a prefix."""

    extension = Path(filename or "").suffix.lower()
    if extension and not re.fullmatch(r"\.[A-Za-z0-9]{1,10}", extension):
        extension = ""
    folder = "/".join(_sanitize_segments([str(owner_id)])) or "uploads"
    return f"{folder}/{uuid.uuid4().hex}{extension}"


def _normalize_key(key: str) -> str:
    normalized = (key or "").strip().lstrip("/")
    if not normalized or ".." in normalized.split("/"):
        raise ValidationError("Invalid object key")
    return normalized


async def upload_object(
    file: UploadFile,
    *,
    bucket: str,
    owner_id: UUID,
    client: BaseClient | None = None,
) -> StoredObject:
    """Upload an ``UploadFile`` under the owner's prefix and return its key."""

    ensure_known_bucket(bucket)
    s3_client = client or get_storage_client()
    key = object_key(owner_id, file.filename)
    content_type = (file.content_type or "application/octet-stream").strip() or "application/octet-stream"
    body = await file.read()

    def _upload() -> None:
        try:
            s3_client.put_object(Bucket=bucket, Key=key, Body=body, ContentType=content_type)
        except (ClientError, BotoCoreError) as exc:
            logger.exception("Upload of %s to bucket %s failed", key, bucket)
            raise StorageError("Upload to object storage failed") from exc

    await run_in_threadpool(_upload)
    logger.debug("Stored object %s/%s (%s)", bucket, key, content_type)
    return StoredObject(bucket=bucket, key=key, content_type=content_type)


def remove_objects(bucket: str, keys: Iterable[str | None], *, client: BaseClient | None = None) -> None:
    """Remove objects from a bucket; empty keys are skipped."""

    ensure_known_bucket(bucket)
    normalized = [_normalize_key(key) for key in keys if key and key.strip()]
    if not normalized:
        return
    s3_client = client or get_storage_client()
    try:
        s3_client.delete_objects(Bucket=bucket, Delete={"Objects": [{"Key": key} for key in normalized]})
    except (ClientError, BotoCoreError) as exc:
        logger.exception("Failed to delete objects %s from bucket %s", normalized, bucket)
        raise StorageError("Unable to delete media from storage") from exc


def create_signed_url(
    bucket: str,
    key: str,
    *,
    expires_in: int | None = None,
    client: BaseClient | None = None,
) -> str:
    """Generate a time-limited GET URL for a stored object."""

    ensure_known_bucket(bucket)
    normalized = _normalize_key(key)
    ttl = expires_in or get_settings().signed_url_ttl_seconds
    s3_client = client or get_storage_client()
    try:
        return s3_client.generate_presigned_url(
            "get_object",
            Params={"Bucket": bucket, "Key": normalized},
            ExpiresIn=ttl,
        )
    except (ClientError, BotoCoreError) as exc:
        logger.warning("Failed to generate signed URL for %s/%s: %s", bucket, normalized, exc)
        raise StorageError("Unable to sign object URL") from exc


__all__ = [
    "StorageConfig",
    "StoredObject",
    "load_storage_config",
    "get_storage_client",
    "ensure_known_bucket",
    "object_key",
    "upload_object",
    "remove_objects",
    "create_signed_url",
]
