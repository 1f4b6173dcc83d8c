# app/core/bots/onboarding/regions.py
"""
Region catalog helpers: build the selection keyboard and map a tapped
(or typed) label back to its canonical key.
"""
from __future__ import annotations

from typing import Optional

from app.core.bots.onboarding.config import REGIONS
from app.core.engine.domain import Keyboard

_ROW_SIZE = 2


def region_labels(lang: str) -> list[str]:
    return [translation.get(lang) for translation in REGIONS.values()]


def region_keyboard(lang: str) -> Keyboard:
    """Region buttons in catalog order, two per row."""
    labels = region_labels(lang)
    rows = [labels[i:i + _ROW_SIZE] for i in range(0, len(labels), _ROW_SIZE)]
    return Keyboard.of(rows)


def resolve_region(text: str, lang: str) -> Optional[str]:
    """
    Return the canonical region key for a label, or None.

    The session language is tried first, then every supported language, so
    a user who typed the other language's label still resolves. Matching is
    exact and case-sensitive.
    """
    for key, translation in REGIONS.items():
        if translation.get(lang) == text:
            return key

    for key, translation in REGIONS.items():
        if text in translation.variants():
            return key

    return None
