# app/core/bots/onboarding/texts.py
"""
Text accessor for the onboarding bot bundle.

Resolves translations from ``ONBOARDING_TRANSLATIONS`` at call time so the
session language can be chosen per call.
"""
from __future__ import annotations

from app.core.engine.domain import DEFAULT_LANGUAGE


def get_text(key: str, lang: str | None = None, **params) -> str:
    """
    Get a translated text string from the onboarding bundle.

    Args:
        key: Translation key (e.g. ``"email_invalid"``).
        lang: ``"ru"`` or ``"uz"``; falls back to Russian when missing.
        **params: Values for ``{name}`` placeholders. Placeholders without
            a value are left as-is.

    Returns:
        Translated string, or *key* itself if no translation exists.
    """
    from app.core.bots.onboarding.config import ONBOARDING_TRANSLATIONS

    translation = ONBOARDING_TRANSLATIONS.get(key)
    if translation is None:
        return key

    text = translation.get(lang or DEFAULT_LANGUAGE.value)
    for name, value in params.items():
        text = text.replace("{" + name + "}", str(value))
    return text


def skip_label(lang: str | None = None) -> str:
    """Label of the "skip" button in the given language."""
    return get_text("btn_skip", lang)
