# app/infra/supabase_auth.py
"""
Identity provider backed by the Supabase Auth (GoTrue) admin API.

POST {supabase_url}/auth/v1/admin/users
    {"email": ..., "password": ..., "email_confirm": true}

Authenticated with the service-role key (``apikey`` + Bearer). Never call
this with an anon key: admin endpoints reject it.

Error classification:
- 422/400 with ``email_exists`` / ``user_already_exists`` or an
  "already registered" message → DuplicateEmailError
- any other non-2xx, malformed body, or network error → IdentityProviderError
"""
from __future__ import annotations

import aiohttp

from app.core.engine.errors import DuplicateEmailError, IdentityProviderError
from app.infra.http_client import get_identity_session
from app.infra.logging_config import get_logger
from app.infra.metrics import inc_counter

logger = get_logger(__name__)

_DUPLICATE_CODES = frozenset({"email_exists", "user_already_exists"})
_DUPLICATE_PHRASES = ("already registered", "already been registered")


def _error_message(body: dict | None, status: int) -> str:
    body = body or {}
    for key in ("msg", "message", "error_description", "error"):
        value = body.get(key)
        if isinstance(value, str) and value:
            return value
    return f"HTTP {status}"


def _is_duplicate(status: int, body: dict | None, message: str) -> bool:
    if status not in (400, 422):
        return False
    code = (body or {}).get("error_code") or (body or {}).get("code")
    if isinstance(code, str) and code in _DUPLICATE_CODES:
        return True
    lowered = message.lower()
    return any(phrase in lowered for phrase in _DUPLICATE_PHRASES)


class SupabaseIdentityProvider:
    """IdentityProvider over the Supabase Auth admin API."""

    def __init__(self, base_url: str, service_role_key: str):
        self.base_url = base_url.rstrip("/")
        self._key = service_role_key

    @property
    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self._key,
            "Authorization": f"Bearer {self._key}",
            "Content-Type": "application/json",
        }

    async def create_identity(self, email: str, password: str, pre_confirmed: bool = True) -> str:
        url = f"{self.base_url}/auth/v1/admin/users"
        payload = {"email": email, "password": password, "email_confirm": pre_confirmed}

        session = get_identity_session()
        try:
            async with session.post(url, json=payload, headers=self._headers) as resp:
                try:
                    body = await resp.json(content_type=None)
                except (aiohttp.ContentTypeError, ValueError):
                    body = None

                if 200 <= resp.status < 300:
                    user = body.get("user", body) if isinstance(body, dict) else None
                    user_id = user.get("id") if isinstance(user, dict) else None
                    if not user_id:
                        raise IdentityProviderError("Identity provider returned no user id")
                    inc_counter("identity_provider_requests", result="created")
                    return str(user_id)

                body = body if isinstance(body, dict) else None
                message = _error_message(body, resp.status)
                if _is_duplicate(resp.status, body, message):
                    inc_counter("identity_provider_requests", result="duplicate")
                    raise DuplicateEmailError(message)

                logger.error("Supabase admin createUser failed: status=%s, msg=%s", resp.status, message)
                inc_counter("identity_provider_requests", result="error")
                raise IdentityProviderError(message)

        except aiohttp.ClientError as e:
            logger.error("Supabase admin API connection error: %s", e)
            inc_counter("identity_provider_requests", result="connection_error")
            raise IdentityProviderError(f"Identity provider unreachable: {e}") from e


class UnconfiguredIdentityProvider:
    """Stand-in when Supabase credentials are missing."""

    async def create_identity(self, email: str, password: str, pre_confirmed: bool = True) -> str:
        raise IdentityProviderError("Account service is not configured")
