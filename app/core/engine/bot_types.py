# app/core/engine/bot_types.py
"""
Shared building blocks for bot bundles: multi-language text storage.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional


# ============================================================================
# TRANSLATION SYSTEM
# ============================================================================

@dataclass(frozen=True)
class Translation:
    """Multi-language text storage"""
    ru: str
    uz: Optional[str] = None

    def get(self, lang: str = "ru") -> str:
        """Get translation for specified language, fallback to Russian"""
        return getattr(self, lang, None) or self.ru

    def variants(self) -> tuple[str, ...]:
        """All non-empty language variants (ru first)."""
        return tuple(v for v in (self.ru, self.uz) if v)
