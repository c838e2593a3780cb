"""
Blob Storage Service.

Bucket-based blob storage for record attachments with:
- Async file operations
- Opaque object paths (``<uuid4><ext>``) so a replaced file never reuses a path
- Mime type detection and SHA-256 content hashes
- Local filesystem and AWS S3 backends behind one interface

Paths handed out by ``upload`` are what the record rows store; every other
method takes the same ``(bucket, path)`` pair.
"""
from __future__ import annotations

import hashlib
import mimetypes
import re
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Protocol

import aioboto3
import aiofiles
import aiofiles.os
import structlog
from botocore.exceptions import BotoCoreError, ClientError

from ..core.config import Settings, get_settings
from ..core.exceptions import BlobStoreError, NotFoundError

log = structlog.get_logger(__name__)

# Bucket names and object paths are single, plain path segments.
_SEGMENT_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,127}$")


class StorageBackend(str, Enum):
    """Supported storage backends."""

    LOCAL = "local"
    S3 = "s3"


@dataclass(frozen=True)
class UploadResult:
    """Result of a blob upload operation."""

    bucket: str
    path: str
    url: str


@dataclass(frozen=True)
class StoredBlob:
    """A blob as seen by a bucket listing."""

    bucket: str
    path: str
    size: int
    modified_at: datetime


class BlobNotFoundError(NotFoundError):
    """Blob not found in storage."""

    def __init__(self, bucket: str, path: str) -> None:
        super().__init__(
            message="Blob not found",
            error_code="BLOB_NOT_FOUND",
            resource_type="blob",
            resource_id=f"{bucket}/{path}",
        )


def validate_segment(value: str, kind: str = "path") -> str:
    """Reject anything that is not a single safe path segment."""
    if not _SEGMENT_RE.match(value or "") or ".." in value:
        raise BlobNotFoundError(bucket=kind, path=value or "")
    return value


def new_blob_path(file_name: str) -> str:
    """Fresh opaque object path keeping the original extension."""
    return f"{uuid.uuid4()}{get_extension(file_name)}"


def get_extension(file_name: str) -> str:
    """Extract lowercase file extension (with dot) from a filename."""
    ext = Path(file_name).suffix.lower()
    return ext if ext else ".bin"


def compute_hash(content: bytes) -> str:
    """Compute SHA-256 hash of content."""
    return hashlib.sha256(content).hexdigest()


def detect_mime_type(file_name: str) -> str:
    """Detect MIME type from filename."""
    mime_type, _ = mimetypes.guess_type(file_name)
    if mime_type:
        return mime_type

    mime_map = {
        ".jpg": "image/jpeg",
        ".jpeg": "image/jpeg",
        ".png": "image/png",
        ".gif": "image/gif",
        ".webp": "image/webp",
        ".pdf": "application/pdf",
    }
    return mime_map.get(Path(file_name).suffix.lower(), "application/octet-stream")


class BlobStore(Protocol):
    """Interface for blob storage operations."""

    backend: StorageBackend

    async def upload(self, bucket: str, content: bytes, file_name: str) -> UploadResult:
        """Store bytes under a fresh path in ``bucket``."""
        ...

    async def remove(self, bucket: str, path: str) -> bool:
        """Delete a blob. Returns False if it did not exist."""
        ...

    async def exists(self, bucket: str, path: str) -> bool:
        ...

    def record_url(self, bucket: str, path: str) -> str:
        """Long-lived URL stored on the record row."""
        ...

    async def get_public_url(self, bucket: str, path: str) -> str:
        ...

    async def list_blobs(self, bucket: str) -> list[StoredBlob]:
        ...

    async def get_storage_stats(self) -> dict:
        ...


class LocalBlobStorageService:
    """
    Local filesystem-based blob storage implementation.

    Layout: ``{base_path}/{bucket}/{path}`` with a ``.meta`` sidecar holding
    the original filename, mime type and content hash.
    """

    backend = StorageBackend.LOCAL
    DEFAULT_STORAGE_PATH = "blob_storage"
    META_SUFFIX = ".meta"

    def __init__(
        self,
        base_path: str | Path | None = None,
        base_url: str = "/api/v1/blobs",
    ):
        self.base_path = Path(base_path) if base_path else Path(self.DEFAULT_STORAGE_PATH)
        self.base_url = base_url.rstrip("/")
        self.base_path.mkdir(parents=True, exist_ok=True)
        log.info("blob_storage_initialized", backend="local", path=str(self.base_path.absolute()))

    def resolve_path(self, bucket: str, path: str) -> Path:
        """Absolute filesystem path for a blob; rejects traversal attempts."""
        validate_segment(bucket, "bucket")
        validate_segment(path)
        if path.endswith(self.META_SUFFIX):
            raise BlobNotFoundError(bucket, path)
        blob_path = (self.base_path / bucket / path).resolve()
        if not blob_path.is_relative_to(self.base_path.resolve()):
            raise BlobNotFoundError(bucket, path)
        return blob_path

    def _metadata_path(self, blob_path: Path) -> Path:
        return blob_path.with_name(blob_path.name + self.META_SUFFIX)

    async def upload(self, bucket: str, content: bytes, file_name: str) -> UploadResult:
        path = new_blob_path(file_name)
        blob_path = self.resolve_path(bucket, path)
        mime_type = detect_mime_type(file_name)
        content_hash = compute_hash(content)

        try:
            blob_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(blob_path, "wb") as f:
                await f.write(content)

            metadata_content = (
                f"file_name={file_name}\n"
                f"mime_type={mime_type}\n"
                f"content_hash={content_hash}\n"
                f"created_at={datetime.now(UTC).isoformat()}\n"
            )
            async with aiofiles.open(self._metadata_path(blob_path), "w") as f:
                await f.write(metadata_content)
        except OSError as exc:
            log.error("blob_upload_failed", bucket=bucket, path=path, error=str(exc))
            raise BlobStoreError(f"Failed to store blob: {exc}", bucket=bucket) from exc

        log.info("blob_uploaded", bucket=bucket, path=path, size=len(content))
        return UploadResult(
            bucket=bucket,
            path=path,
            url=self.record_url(bucket, path),
        )

    async def remove(self, bucket: str, path: str) -> bool:
        """Delete a blob and its metadata from storage."""
        blob_path = self.resolve_path(bucket, path)
        metadata_path = self._metadata_path(blob_path)

        try:
            deleted = False
            if blob_path.exists():
                await aiofiles.os.remove(blob_path)
                deleted = True
            if metadata_path.exists():
                await aiofiles.os.remove(metadata_path)
        except OSError as exc:
            raise BlobStoreError(f"Failed to delete blob: {exc}", bucket=bucket) from exc

        if deleted:
            log.info("blob_removed", bucket=bucket, path=path)
        return deleted

    async def exists(self, bucket: str, path: str) -> bool:
        return self.resolve_path(bucket, path).is_file()

    def record_url(self, bucket: str, path: str) -> str:
        return f"{self.base_url}/{bucket}/{path}"

    async def get_public_url(self, bucket: str, path: str) -> str:
        return self.record_url(bucket, path)

    async def list_blobs(self, bucket: str) -> list[StoredBlob]:
        validate_segment(bucket, "bucket")
        directory = self.base_path / bucket
        if not directory.is_dir():
            return []

        blobs = []
        for entry in directory.iterdir():
            if not entry.is_file() or entry.name.endswith(self.META_SUFFIX):
                continue
            stat = entry.stat()
            blobs.append(
                StoredBlob(
                    bucket=bucket,
                    path=entry.name,
                    size=stat.st_size,
                    modified_at=datetime.fromtimestamp(stat.st_mtime, UTC),
                )
            )
        return blobs

    async def get_storage_stats(self) -> dict:
        """Get storage statistics."""
        total_size = 0
        total_files = 0

        for path in self.base_path.rglob("*"):
            if path.is_file() and not path.name.endswith(self.META_SUFFIX):
                total_size += path.stat().st_size
                total_files += 1

        return {
            "backend": self.backend.value,
            "total_files": total_files,
            "total_size_bytes": total_size,
            "total_size_mb": round(total_size / (1024 * 1024), 2),
            "storage_path": str(self.base_path.absolute()),
        }


class S3BlobStorageService:
    """
    AWS S3-based blob storage implementation.

    Key layout: ``{prefix}/{bucket}/{path}`` inside a single S3 bucket;
    the logical bucket name is the second key segment.
    """

    backend = StorageBackend.S3

    def __init__(
        self,
        bucket_name: str,
        access_key_id: str,
        secret_access_key: str,
        region: str = "us-east-1",
        prefix: str = "medrecords",
        use_signed_urls: bool = False,
        signed_url_expiry: int = 3600,
        base_url: str = "/api/v1/blobs",
    ):
        self.bucket_name = bucket_name
        self.base_url = base_url.rstrip("/")
        self.region = region
        self.prefix = prefix.strip("/")
        self.use_signed_urls = use_signed_urls
        self.signed_url_expiry = signed_url_expiry

        self.session = aioboto3.Session(
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            region_name=region,
        )
        log.info("blob_storage_initialized", backend="s3", bucket=bucket_name, region=region)

    def _key_prefix(self, bucket: str) -> str:
        validate_segment(bucket, "bucket")
        return f"{self.prefix}/{bucket}/" if self.prefix else f"{bucket}/"

    def _get_s3_key(self, bucket: str, path: str) -> str:
        validate_segment(path)
        return f"{self._key_prefix(bucket)}{path}"

    async def upload(self, bucket: str, content: bytes, file_name: str) -> UploadResult:
        path = new_blob_path(file_name)
        s3_key = self._get_s3_key(bucket, path)
        mime_type = detect_mime_type(file_name)
        content_hash = compute_hash(content)

        try:
            async with self.session.client("s3") as s3_client:
                await s3_client.put_object(
                    Bucket=self.bucket_name,
                    Key=s3_key,
                    Body=content,
                    ContentType=mime_type,
                    Metadata={
                        "original-filename": file_name,
                        "content-hash": content_hash,
                    },
                )
        except (ClientError, BotoCoreError) as exc:
            log.error("blob_upload_failed", bucket=bucket, key=s3_key, error=str(exc))
            raise BlobStoreError(f"S3 upload failed: {exc}", bucket=bucket) from exc

        log.info("blob_uploaded", bucket=bucket, key=s3_key, size=len(content))
        return UploadResult(
            bucket=bucket,
            path=path,
            url=self.record_url(bucket, path),
        )

    async def remove(self, bucket: str, path: str) -> bool:
        s3_key = self._get_s3_key(bucket, path)
        try:
            async with self.session.client("s3") as s3_client:
                await s3_client.delete_object(Bucket=self.bucket_name, Key=s3_key)
        except (ClientError, BotoCoreError) as exc:
            raise BlobStoreError(f"S3 deletion failed: {exc}", bucket=bucket) from exc

        log.info("blob_removed", bucket=bucket, key=s3_key)
        return True

    async def exists(self, bucket: str, path: str) -> bool:
        s3_key = self._get_s3_key(bucket, path)
        try:
            async with self.session.client("s3") as s3_client:
                await s3_client.head_object(Bucket=self.bucket_name, Key=s3_key)
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in ("404", "NoSuchKey", "NotFound"):
                return False
            raise BlobStoreError(f"S3 lookup failed: {exc}", bucket=bucket) from exc
        except BotoCoreError as exc:
            raise BlobStoreError(f"S3 lookup failed: {exc}", bucket=bucket) from exc
        return True

    def record_url(self, bucket: str, path: str) -> str:
        """
        URL stored on the record row.

        With signing enabled this is the blob route, which redirects to a
        freshly signed URL on every request.
        """
        if self.use_signed_urls:
            validate_segment(bucket, "bucket")
            validate_segment(path)
            return f"{self.base_url}/{bucket}/{path}"
        return self._plain_url(self._get_s3_key(bucket, path))

    def _plain_url(self, s3_key: str) -> str:
        return f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com/{s3_key}"

    async def get_public_url(self, bucket: str, path: str) -> str:
        """Generate S3 URL (public or signed)."""
        s3_key = self._get_s3_key(bucket, path)

        if self.use_signed_urls:
            async with self.session.client("s3") as s3_client:
                return await s3_client.generate_presigned_url(
                    "get_object",
                    Params={"Bucket": self.bucket_name, "Key": s3_key},
                    ExpiresIn=self.signed_url_expiry,
                )
        return self._plain_url(s3_key)

    async def list_blobs(self, bucket: str) -> list[StoredBlob]:
        key_prefix = self._key_prefix(bucket)
        blobs = []
        try:
            async with self.session.client("s3") as s3_client:
                paginator = s3_client.get_paginator("list_objects_v2")
                async for page in paginator.paginate(Bucket=self.bucket_name, Prefix=key_prefix):
                    for obj in page.get("Contents", []):
                        path = obj["Key"][len(key_prefix):]
                        if not path or "/" in path:
                            continue
                        blobs.append(
                            StoredBlob(
                                bucket=bucket,
                                path=path,
                                size=obj["Size"],
                                modified_at=obj["LastModified"],
                            )
                        )
        except (ClientError, BotoCoreError) as exc:
            raise BlobStoreError(f"S3 listing failed: {exc}", bucket=bucket) from exc
        return blobs

    async def get_storage_stats(self) -> dict:
        settings = get_settings()
        total_size = 0
        total_files = 0
        for bucket in (settings.DOCTOR_IMAGES_BUCKET, settings.PATIENT_REPORTS_BUCKET):
            for blob in await self.list_blobs(bucket):
                total_size += blob.size
                total_files += 1

        return {
            "backend": self.backend.value,
            "total_files": total_files,
            "total_size_bytes": total_size,
            "total_size_mb": round(total_size / (1024 * 1024), 2),
            "bucket": self.bucket_name,
        }


# =============================================================================
# Factory Pattern for Storage Backend Selection
# =============================================================================

class BlobStorageFactory:
    """Selects the blob storage backend from configuration."""

    @staticmethod
    def create_blob_service(settings: Settings) -> LocalBlobStorageService | S3BlobStorageService:
        """
        Create blob storage service based on configuration.

        Raises:
            ValueError: If storage backend is invalid or required settings are missing
        """
        backend = settings.STORAGE_BACKEND.lower()

        if backend == StorageBackend.LOCAL.value:
            return LocalBlobStorageService(
                base_path=settings.BLOB_STORAGE_PATH,
                base_url=settings.BLOB_BASE_URL,
            )

        if backend == StorageBackend.S3.value:
            for name in ("AWS_S3_BUCKET", "AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY"):
                if not getattr(settings, name):
                    raise ValueError(
                        f"{name} is required when STORAGE_BACKEND=s3. "
                        "Set it in your .env file or environment variables."
                    )
            return S3BlobStorageService(
                bucket_name=settings.AWS_S3_BUCKET,
                access_key_id=settings.AWS_ACCESS_KEY_ID,
                secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
                region=settings.AWS_REGION,
                prefix=settings.AWS_S3_PREFIX,
                use_signed_urls=settings.AWS_S3_USE_SIGNED_URLS,
                signed_url_expiry=settings.AWS_S3_SIGNED_URL_EXPIRY,
                base_url=settings.BLOB_BASE_URL,
            )

        raise ValueError(
            f"Invalid STORAGE_BACKEND: '{backend}'. Must be 'local' or 's3'."
        )


_blob_storage_instance: LocalBlobStorageService | S3BlobStorageService | None = None


def get_blob_storage_service() -> LocalBlobStorageService | S3BlobStorageService:
    """Get or create the blob storage service singleton (FastAPI dependency)."""
    global _blob_storage_instance

    if _blob_storage_instance is None:
        _blob_storage_instance = BlobStorageFactory.create_blob_service(get_settings())

    return _blob_storage_instance


def reset_blob_storage_service() -> None:
    """Reset the singleton instance (useful for testing)."""
    global _blob_storage_instance
    _blob_storage_instance = None
