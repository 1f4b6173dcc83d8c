# app/infra/media_fetcher.py
"""
HTTP binary fetcher for attachment downloads.

The chat transport resolves a platform file id to a download URL; this
fetcher pulls the bytes over the shared ``fetcher`` session.
"""
from __future__ import annotations

import asyncio
from urllib.parse import urlparse

import aiohttp

from app.core.engine.errors import AttachmentFetchError
from app.infra.http_client import get_fetcher_session
from app.infra.logging_config import get_logger

logger = get_logger(__name__)

# Bot API downloads are capped at 20 MB
MAX_DOWNLOAD_BYTES = 20 * 1024 * 1024


class HttpBinaryFetcher:
    """Downloads a URL into memory."""

    def __init__(self, max_bytes: int = MAX_DOWNLOAD_BYTES):
        self.max_bytes = max_bytes

    async def fetch(self, url: str) -> bytes:
        parsed = urlparse(url)
        if parsed.scheme not in ("https", "http"):
            raise AttachmentFetchError(f"Invalid URL scheme: {parsed.scheme!r}")

        session = get_fetcher_session()
        try:
            async with session.get(url) as resp:
                if resp.status != 200:
                    raise AttachmentFetchError(f"Download returned HTTP {resp.status}")

                data = await resp.read()
                if not data:
                    raise AttachmentFetchError("Download returned empty body")

                cl_header = resp.headers.get("Content-Length")
                if cl_header and cl_header.isdigit() and len(data) < int(cl_header):
                    raise AttachmentFetchError(f"Incomplete download: got {len(data)} of {cl_header} bytes")

                if len(data) > self.max_bytes:
                    raise AttachmentFetchError(f"File too large: {len(data)} bytes")

        except aiohttp.ClientError as e:
            logger.error("Attachment download failed from %s: %s", parsed.netloc, e)
            raise AttachmentFetchError(f"Download failed: {e}") from e
        except asyncio.TimeoutError as e:
            logger.error("Attachment download timed out from %s", parsed.netloc)
            raise AttachmentFetchError("Download timed out") from e

        logger.debug("Attachment downloaded from %s: %d bytes", parsed.netloc, len(data))
        return data
