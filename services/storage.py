"""Object storage for uploaded images.

Production forwards to Cloudflare R2 through its S3 API; tests and local
development write to a directory. Objects are immutable once uploaded and are
served with a one-year cache lifetime, so a path must never be reused for
different content: generate_image_path prefixes a millisecond timestamp.

Deletion is intentionally not implemented.
"""
import logging
import re
import time
from pathlib import Path
from typing import Optional, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from config import settings

logger = logging.getLogger(__name__)

CACHE_CONTROL = "public, max-age=31536000, immutable"


class StorageError(Exception):
    """Forwarding an object to storage failed."""


def sanitize_filename(filename: str) -> str:
    """Replace every character outside [A-Za-z0-9.] with an underscore."""
    return re.sub(r"[^A-Za-z0-9.]", "_", filename or "")


def generate_image_path(folder: str, user_id: str, filename: str, timestamp_ms: Optional[int] = None) -> str:
    """
    Build a storage path: {folder}/{user_id}/{timestamp_ms}_{sanitized filename}

    Two uploads by the same user only collide if they share a millisecond.
    """
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{folder}/{user_id}/{timestamp_ms}_{sanitize_filename(filename)}"


def is_safe_path(path: str) -> bool:
    if not path or path.startswith("/") or "\\" in path:
        return False
    return all(part not in ("", ".", "..") for part in path.split("/"))


class ObjectStorage(Protocol):
    def put(self, path: str, data: bytes, content_type: str) -> str: ...

    def delete(self, path: str) -> None: ...


class R2Storage:
    """Cloudflare R2 via the S3 API, served from a custom public domain."""

    def __init__(self, account_id: str, access_key_id: str, secret_access_key: str,
                 bucket: str, public_url: str, client=None):
        self.bucket = bucket
        self.public_url = public_url.rstrip("/")
        self.client = client or boto3.client(
            "s3",
            endpoint_url=f"https://{account_id}.r2.cloudflarestorage.com",
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            region_name="auto",
        )

    def put(self, path: str, data: bytes, content_type: str) -> str:
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=path,
                Body=data,
                ContentType=content_type,
                CacheControl=CACHE_CONTROL,
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"R2 upload failed for {path}: {e}") from e
        return f"{self.public_url}/{path}"

    def delete(self, path: str) -> None:
        logger.warning(f"Image deletion is not supported; leaving {path} in storage")


class LocalStorage:
    """Filesystem storage for tests and local development."""

    def __init__(self, root: str, public_url: str):
        self.root = Path(root)
        self.public_url = public_url.rstrip("/")

    def put(self, path: str, data: bytes, content_type: str) -> str:
        target = self.root / path
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Local upload failed for {path}: {e}") from e
        return f"{self.public_url}/{path}"

    def delete(self, path: str) -> None:
        logger.warning(f"Image deletion is not supported; leaving {path} in storage")


_storage: Optional[ObjectStorage] = None


def get_storage() -> ObjectStorage:
    """
    Dependency returning the configured storage backend.
    R2 when R2_ACCOUNT_ID/R2_BUCKET_NAME are set, otherwise the local directory.
    """
    global _storage
    if _storage is None:
        if settings.r2_enabled:
            _storage = R2Storage(
                settings.R2_ACCOUNT_ID,
                settings.R2_ACCESS_KEY_ID,
                settings.R2_SECRET_ACCESS_KEY,
                settings.R2_BUCKET_NAME,
                settings.R2_PUBLIC_URL,
            )
        else:
            _storage = LocalStorage(settings.LOCAL_UPLOAD_DIR, settings.LOCAL_UPLOAD_URL)
    return _storage
