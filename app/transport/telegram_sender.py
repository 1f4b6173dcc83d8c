# app/transport/telegram_sender.py
"""
Telegram Bot API client: the chat transport of the onboarding bot.

Uses the Bot API to:
- Send text messages with a reply keyboard (or remove it)
- Delete messages (password confidentiality)
- Resolve file_id to a download URL (profile pictures)
- Long-poll for updates / manage the webhook

Error classification (TelegramSendError.retryable):
- Token invalid / bot blocked  → NOT retryable (needs human intervention)
- Bad request / chat not found → NOT retryable
- Rate limiting (429)          → retryable  (backoff then retry)
- Network / timeout            → retryable  (transient)
- Unknown server error         → retryable  (optimistic)

HTTP session lifecycle:
- Uses the shared telegram session from app.infra.http_client.
- Call close_all_sessions() during application shutdown.
"""
from __future__ import annotations

import asyncio
from typing import Any

import aiohttp

from app.core.engine.domain import Keyboard
from app.core.engine.errors import AttachmentFetchError
from app.infra.http_client import get_telegram_session
from app.infra.logging_config import get_logger, mask_id
from app.infra.metrics import inc_counter

logger = get_logger(__name__)

TELEGRAM_API_BASE = "https://api.telegram.org"


class TelegramSendError(Exception):
    """Error calling the Telegram Bot API.

    Attributes:
        status:     HTTP status code (0 for connection-level errors).
        error_code: Telegram-specific error code from the response body.
        retryable:  Whether the caller may retry later.
    """

    def __init__(
        self,
        status: int,
        error_code: int | None,
        message: str,
        *,
        retryable: bool = False,
    ):
        self.status = status
        self.error_code = error_code
        self.retryable = retryable
        self.description = message
        super().__init__(f"Telegram API error {status} (code={error_code}): {message}")


def keyboard_markup(keyboard: Keyboard | None, remove_keyboard: bool = False) -> dict | None:
    """Bot API ``reply_markup`` for a Keyboard, or the remove marker."""
    if keyboard is not None:
        return {
            "keyboard": [[{"text": label} for label in row] for row in keyboard.rows],
            "one_time_keyboard": keyboard.one_time,
            "resize_keyboard": keyboard.resize,
        }
    if remove_keyboard:
        return {"remove_keyboard": True}
    return None


def _classify(status: int, body: dict | None) -> TelegramSendError:
    error_desc = (body or {}).get("description", "Unknown error")
    error_code = (body or {}).get("error_code")

    if status == 401 or error_code == 401:
        logger.error("Telegram API auth error (token invalid): %s", error_desc)
        inc_counter("telegram_api_errors", kind="auth")
        return TelegramSendError(status, error_code, error_desc, retryable=False)

    if status in (400, 403):
        logger.warning("Telegram API rejected request: status=%s, %s", status, error_desc)
        inc_counter("telegram_api_errors", kind="rejected")
        return TelegramSendError(status, error_code, error_desc, retryable=False)

    if status == 429:
        retry_after = (body or {}).get("parameters", {}).get("retry_after", 30)
        logger.warning("Telegram API rate limit, retry_after=%ss", retry_after)
        inc_counter("telegram_api_errors", kind="rate_limited")
        return TelegramSendError(status, error_code, error_desc, retryable=True)

    logger.error("Telegram API error: status=%s, code=%s, msg=%s", status, error_code, error_desc)
    inc_counter("telegram_api_errors", kind="server")
    return TelegramSendError(status, error_code, error_desc, retryable=True)


async def _safe_response_json(resp: aiohttp.ClientResponse) -> dict | None:
    """Parse JSON from response, returning None if body is not valid JSON."""
    try:
        return await resp.json(content_type=None)
    except (aiohttp.ContentTypeError, ValueError):
        logger.warning("Telegram API returned non-JSON body: status=%s", resp.status)
        return None


class TelegramTransport:
    """ChatTransport over the Telegram Bot API."""

    def __init__(self, token: str, api_base: str = TELEGRAM_API_BASE):
        self._token = token
        self._api_base = api_base.rstrip("/")

    def _bot_url(self, method: str) -> str:
        return f"{self._api_base}/bot{self._token}/{method}"

    def file_download_url(self, file_path: str) -> str:
        return f"{self._api_base}/file/bot{self._token}/{file_path}"

    async def call(
        self,
        method: str,
        payload: dict[str, Any],
        timeout: aiohttp.ClientTimeout | None = None,
    ) -> Any:
        """
        Execute one Bot API method and return its ``result``.

        Raises:
            TelegramSendError: on API or connection errors (check .retryable)
        """
        session = get_telegram_session()
        kwargs: dict[str, Any] = {"json": payload}
        if timeout is not None:
            kwargs["timeout"] = timeout

        try:
            async with session.post(self._bot_url(method), **kwargs) as resp:
                body = await _safe_response_json(resp)
                if resp.status == 200 and body and body.get("ok"):
                    return body.get("result")
                raise _classify(resp.status, body)
        except TelegramSendError:
            raise
        except aiohttp.ClientError as exc:
            logger.error("Telegram API connection error (%s): %s", method, exc)
            inc_counter("telegram_api_errors", kind="connection")
            raise TelegramSendError(0, None, str(exc), retryable=True) from exc
        except asyncio.TimeoutError as exc:
            logger.error("Telegram API timeout (%s)", method)
            inc_counter("telegram_api_errors", kind="timeout")
            raise TelegramSendError(0, None, f"{method} timed out", retryable=True) from exc

    # ------------------------------------------------------------------
    # ChatTransport
    # ------------------------------------------------------------------

    async def reply(
        self,
        chat_id: str,
        text: str,
        keyboard: Keyboard | None = None,
        remove_keyboard: bool = False,
    ) -> None:
        payload: dict[str, Any] = {"chat_id": chat_id, "text": text}
        markup = keyboard_markup(keyboard, remove_keyboard)
        if markup is not None:
            payload["reply_markup"] = markup

        result = await self.call("sendMessage", payload)
        msg_id = result.get("message_id", "unknown") if isinstance(result, dict) else "ok"
        logger.debug("Telegram message sent: to=%s, msg_id=%s", mask_id(chat_id), msg_id)
        inc_counter("telegram_outbound_sent")

    async def delete_message(self, chat_id: str, message_id: str) -> None:
        await self.call("deleteMessage", {"chat_id": chat_id, "message_id": int(message_id)})

    async def resolve_download_link(self, attachment_id: str) -> str:
        """
        file_id → ``https://api.telegram.org/file/bot<token>/<file_path>``.

        Raises:
            AttachmentFetchError: getFile failed or returned no file_path
        """
        try:
            result = await self.call(
                "getFile",
                {"file_id": attachment_id},
                timeout=aiohttp.ClientTimeout(total=10, connect=5),
            )
        except TelegramSendError as e:
            raise AttachmentFetchError(f"getFile failed: {e.description}") from e

        file_path = (result or {}).get("file_path")
        if not file_path:
            raise AttachmentFetchError("getFile response missing 'file_path'")
        return self.file_download_url(file_path)

    # ------------------------------------------------------------------
    # Update delivery
    # ------------------------------------------------------------------

    async def get_updates(self, offset: int | None = None, timeout: int = 30) -> list[dict]:
        """Long-poll for updates; the HTTP timeout outlasts the poll timeout."""
        payload: dict[str, Any] = {"timeout": timeout, "allowed_updates": ["message"]}
        if offset is not None:
            payload["offset"] = offset
        result = await self.call(
            "getUpdates",
            payload,
            timeout=aiohttp.ClientTimeout(total=timeout + 10, connect=5),
        )
        return result or []

    async def delete_webhook(self) -> None:
        """Remove webhook so polling can work."""
        await self.call("deleteWebhook", {})

    async def set_webhook(self, webhook_url: str, secret_token: str | None = None) -> None:
        payload: dict[str, Any] = {"url": webhook_url, "allowed_updates": ["message"]}
        if secret_token:
            payload["secret_token"] = secret_token
        await self.call("setWebhook", payload)
