# app/core/engine/intake.py
"""
Attachment Intake - profile picture ingestion.

resolve link → fetch bytes → upload to object storage → public URL.
Any failure along the way degrades to the platform file id; the signup
always continues.
"""
from __future__ import annotations

import time
from typing import Callable

from app.core.bots.onboarding.validators import image_extension
from app.core.engine.domain import IntakeOutcome, MediaItem
from app.core.engine.ports import BinaryFetcher, ChatTransport, ObjectStorage
from app.infra.logging_config import LogContext, get_logger

logger = get_logger(__name__)

DEFAULT_CONTENT_TYPE = "image/jpeg"


class AttachmentIntake:
    def __init__(
        self,
        transport: ChatTransport,
        fetcher: BinaryFetcher,
        storage: ObjectStorage,
        bucket: str,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.transport = transport
        self.fetcher = fetcher
        self.storage = storage
        self.bucket = bucket
        self.clock = clock

    def object_name(self, user_id: str, content_type: str) -> str:
        """``<user_id>_<epoch_ms>.<ext>``"""
        epoch_ms = int(self.clock() * 1000)
        return f"{user_id}_{epoch_ms}.{image_extension(content_type)}"

    async def ingest(self, user_id: str, media: MediaItem) -> IntakeOutcome:
        """
        Store the image durably; fall back to ``media.provider_media_id``.

        Never raises: a failed download or upload degrades to the file id so
        the signup can still be finalized.
        """
        log = LogContext(logger, user_id=user_id)
        content_type = media.content_type or DEFAULT_CONTENT_TYPE
        name = self.object_name(user_id, content_type)
        fallback = media.provider_media_id

        try:
            url = await self.transport.resolve_download_link(media.provider_media_id)
            data = await self.fetcher.fetch(url)
        except Exception as e:
            log.error("Profile image download failed, keeping file id: object=%s error=%r", name, e, exc_info=True)
            return IntakeOutcome(reference=fallback, stored=False)

        try:
            await self.storage.upload(self.bucket, name, data, content_type, overwrite=True)
        except Exception as e:
            log.error(
                "Profile image upload failed, keeping file id: object=%s size=%d error=%r",
                name, len(data), e, exc_info=True,
            )
            return IntakeOutcome(reference=fallback, stored=False, storage_failed=True)

        public_url = self.storage.public_url(self.bucket, name)
        log.info("Profile image stored: object=%s size=%d", name, len(data))
        return IntakeOutcome(reference=public_url, stored=True)
