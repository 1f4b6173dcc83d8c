# app/transport/adapters.py
from __future__ import annotations

from app.core.engine.domain import InboundMessage, MediaItem
from app.infra.logging_config import get_logger, mask_id

logger = get_logger(__name__)


def parse_command(text: str) -> str | None:
    """
    Bot command named by the first token, or None.

    ``"/start@MyBot payload"`` → ``"start"``. The message text itself is
    never rewritten; answers that merely begin with "/" keep every character.
    """
    if not text.startswith("/"):
        return None

    first = text.split(maxsplit=1)[0]
    name = first[1:].split("@", 1)[0].lower()  # "/start@BotName" → "start"
    return name or None


class TelegramAdapter:
    """
    Adapter for Telegram Bot API updates.

    Telegram sends JSON Updates with structure:
    {
      "update_id": 123456,
      "message": {
        "message_id": 42,
        "from": {"id": 123, "first_name": "User", ...},
        "chat": {"id": 123, "type": "private", ...},
        "date": 1234567890,
        "text": "Hello",
        "photo": [{"file_id": "...", "width": ..., "height": ..., "file_size": ...}, ...],
        "document": {"file_id": "...", "mime_type": "...", ...},
        "caption": "...",
        ...
      }
    }
    """

    def adapt_update(self, update: dict) -> list[InboundMessage]:
        """Convert an Update dict (webhook body or getUpdates item)."""
        message = update.get("message")
        if not message:
            logger.debug("Telegram update without 'message', ignoring (keys=%s)", list(update.keys()))
            return []

        chat_id = str(message.get("chat", {}).get("id", ""))
        if not chat_id:
            logger.warning("Telegram message: missing chat.id, ignoring")
            return []

        sender = message.get("from") or {}
        user_id = str(sender.get("id") or chat_id)
        message_id = str(message.get("message_id", ""))

        command = None
        text = message.get("text")
        if text:
            command = parse_command(text)

        media = self._extract_media(message)

        # Caption stands in for text on media messages
        if text is None and message.get("caption"):
            text = message["caption"]

        if text is None and not media:
            logger.debug("Telegram message without text or media, ignoring (keys=%s)", list(message.keys()))
            return []

        logger.info(
            "Telegram message: from=%s, msg_id=%s, command=%s, has_text=%s, num_media=%d",
            mask_id(user_id), message_id, command, text is not None, len(media),
        )

        return [InboundMessage(
            provider="telegram",
            user_id=user_id,
            chat_id=chat_id,
            message_id=message_id,
            command=command,
            text=text,
            media=media,
            sender_name=self._extract_sender_name(sender),
        )]

    @staticmethod
    def _extract_media(message: dict) -> list[MediaItem]:
        media: list[MediaItem] = []

        photos = message.get("photo") or []
        if photos:
            # Several resolutions of one photo; keep the largest by pixel area
            largest = max(photos, key=lambda p: (p.get("width") or 0) * (p.get("height") or 0))
            media.append(MediaItem(
                provider_media_id=largest.get("file_id"),
                content_type="image/jpeg",
                size_bytes=largest.get("file_size"),
                width=largest.get("width"),
                height=largest.get("height"),
                kind="photo",
            ))

        doc = message.get("document")
        if doc:
            media.append(MediaItem(
                provider_media_id=doc.get("file_id"),
                content_type=doc.get("mime_type"),
                size_bytes=doc.get("file_size"),
                kind="document",
            ))

        return media

    @staticmethod
    def _extract_sender_name(sender: dict) -> str | None:
        """``"First Last (@username)"``, or whichever part exists."""
        if not sender:
            return None

        full_name = f"{sender.get('first_name', '')} {sender.get('last_name', '')}".strip()
        username = sender.get("username")

        if username and full_name:
            return f"{full_name} (@{username})"
        if username:
            return f"@{username}"
        return full_name or None
