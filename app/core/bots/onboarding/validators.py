# app/core/bots/onboarding/validators.py
"""
Input validators for the onboarding flow.
"""
from __future__ import annotations

import re
from typing import Optional

from app.core.bots.onboarding.config import LANGUAGE_BUTTONS

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 8

_IMAGE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
    "image/heic": "heic",
}


def match_language_button(text: str) -> Optional[str]:
    """Language code for an exact button label, else None."""
    language = LANGUAGE_BUTTONS.get(text)
    return language.value if language else None


def is_valid_email(text: str) -> bool:
    return bool(EMAIL_RE.match(text))


def normalize_email(text: str) -> str:
    return text.strip().lower()


def is_valid_password(text: str) -> bool:
    return len(text) >= MIN_PASSWORD_LENGTH


def is_image_content_type(content_type: Optional[str]) -> bool:
    return bool(content_type and content_type.lower().startswith("image/"))


def image_extension(content_type: Optional[str]) -> str:
    """File extension for an image MIME type (``jpg`` when unknown)."""
    if not content_type:
        return "jpg"
    return _IMAGE_EXTENSIONS.get(content_type.lower(), "jpg")
