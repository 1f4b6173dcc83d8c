# app/infra/s3_storage.py
"""
S3-compatible object storage for profile pictures.

Works with any S3 API endpoint:
- Supabase Storage (``https://<project>.supabase.co/storage/v1/s3``)
- AWS S3 / Cloudflare R2
- MinIO (for local testing)

Configuration:
    STORAGE_ENDPOINT_URL=https://xyz.supabase.co/storage/v1/s3
    STORAGE_ACCESS_KEY=...
    STORAGE_SECRET_KEY=...
    STORAGE_BUCKET=avatars
    STORAGE_PUBLIC_URL= (optional; defaults to SUPABASE_URL/storage/v1/object/public)

Public URLs have the form ``<public prefix>/<bucket>/<object name>``.
boto3 is blocking, so every call runs in a worker thread.
"""
from __future__ import annotations

import asyncio
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from app.core.engine.errors import StorageError
from app.infra.logging_config import get_logger
from app.infra.metrics import inc_counter

logger = get_logger(__name__)


class S3ObjectStorage:
    """ObjectStorage over an S3-compatible endpoint."""

    def __init__(
        self,
        *,
        endpoint_url: str,
        access_key: str,
        secret_key: str,
        public_url: str,
        region: str = "auto",
        force_path_style: bool = True,
        client: Any = None,
    ):
        self._client = client or boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=region,
            config=Config(
                signature_version="s3v4",
                retries={"max_attempts": 3, "mode": "adaptive"},
                s3={"addressing_style": "path" if force_path_style else "virtual"},
            ),
        )
        self._public_url = public_url.rstrip("/")
        logger.info("Object storage initialized: endpoint=%s", endpoint_url)

    @classmethod
    def from_settings(cls, settings) -> "S3ObjectStorage":
        if not settings.storage_enabled:
            raise RuntimeError("Object storage not configured")
        return cls(
            endpoint_url=settings.storage_endpoint_url,
            access_key=settings.storage_access_key,
            secret_key=settings.storage_secret_key,
            public_url=settings.effective_storage_public_url or settings.storage_endpoint_url,
            region=settings.storage_region,
            force_path_style=settings.storage_force_path_style,
        )

    def public_url(self, bucket: str, name: str) -> str:
        return f"{self._public_url}/{bucket}/{name}"

    async def upload(
        self,
        bucket: str,
        name: str,
        data: bytes,
        content_type: str,
        overwrite: bool = True,
    ) -> None:
        """
        Put one object.

        With ``overwrite=False`` the write is conditional (``If-None-Match: *``)
        and fails when the name is taken.

        Raises:
            StorageError: on any client or transport failure
        """
        params: dict[str, Any] = {
            "Bucket": bucket,
            "Key": name,
            "Body": data,
            "ContentType": content_type,
            "CacheControl": "public, max-age=31536000",
        }
        if not overwrite:
            params["IfNoneMatch"] = "*"

        try:
            await asyncio.to_thread(self._client.put_object, **params)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "Unknown")
            logger.error("S3 upload failed: bucket=%s key=%s code=%s", bucket, name, code)
            inc_counter("storage_uploads_failed", bucket=bucket)
            raise StorageError(f"Upload rejected ({code})") from e
        except BotoCoreError as e:
            logger.error("S3 upload failed: bucket=%s key=%s error=%s", bucket, name, e)
            inc_counter("storage_uploads_failed", bucket=bucket)
            raise StorageError(f"Upload failed: {e}") from e

        logger.info("Object uploaded: bucket=%s key=%s size=%d", bucket, name, len(data))
        inc_counter("storage_uploads_success", bucket=bucket)


class UnconfiguredObjectStorage:
    """Stand-in when no storage endpoint is configured: every upload fails."""

    async def upload(
        self,
        bucket: str,
        name: str,
        data: bytes,
        content_type: str,
        overwrite: bool = True,
    ) -> None:
        raise StorageError("Object storage is not configured")

    def public_url(self, bucket: str, name: str) -> str:
        return f"{bucket}/{name}"
