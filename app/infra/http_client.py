# app/infra/http_client.py
"""
Shared HTTP client sessions for the application.

Provides named, lazy-initialized aiohttp.ClientSession singletons so every
collaborator reuses one connection pool instead of opening a session per
request.

Session profiles
~~~~~~~~~~~~~~~~
- **telegram** – Bot API calls     (total=25 s, connect=5 s, pool limit=20)
- **fetcher**  – file downloads    (total=60 s, connect=15 s, pool limit=10)
- **identity** – Supabase Auth API (total=20 s, connect=5 s, pool limit=10)

Long-poll requests override the total timeout per call.

Shutdown
~~~~~~~~
Call ``close_all_sessions()`` once during application shutdown.
"""
from __future__ import annotations

import aiohttp

from app.infra.logging_config import get_logger

logger = get_logger(__name__)

_sessions: dict[str, aiohttp.ClientSession] = {}


def _get_or_create(
    name: str,
    timeout: aiohttp.ClientTimeout,
    limit: int = 10,
) -> aiohttp.ClientSession:
    """Return an existing open session or create a new one."""
    session = _sessions.get(name)
    if session is None or session.closed:
        session = aiohttp.ClientSession(
            timeout=timeout,
            connector=aiohttp.TCPConnector(
                keepalive_timeout=30,
                limit=limit,
                enable_cleanup_closed=True,
            ),
        )
        _sessions[name] = session
        logger.debug("HTTP session '%s' created (limit=%d)", name, limit)
    return session


def get_telegram_session() -> aiohttp.ClientSession:
    """Session for Telegram Bot API calls."""
    return _get_or_create("telegram", aiohttp.ClientTimeout(total=25, connect=5), limit=20)


def get_fetcher_session() -> aiohttp.ClientSession:
    """Session for attachment downloads."""
    return _get_or_create("fetcher", aiohttp.ClientTimeout(total=60, connect=15), limit=10)


def get_identity_session() -> aiohttp.ClientSession:
    """Session for the identity provider's admin API."""
    return _get_or_create("identity", aiohttp.ClientTimeout(total=20, connect=5), limit=10)


async def close_all_sessions() -> None:
    """Gracefully close every managed session.  Call during app shutdown."""
    for name in list(_sessions):
        session = _sessions.pop(name, None)
        if session is not None and not session.closed:
            await session.close()
            logger.debug("HTTP session '%s' closed", name)
