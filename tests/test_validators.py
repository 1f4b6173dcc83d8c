# tests/test_validators.py
"""Tests for onboarding input validators"""
import pytest

from app.core.bots.onboarding.validators import (
    image_extension,
    is_image_content_type,
    is_valid_email,
    is_valid_password,
    match_language_button,
    normalize_email,
)


class TestLanguageButtons:
    def test_russian_button(self):
        assert match_language_button("🇷🇺 Русский") == "ru"

    def test_uzbek_button(self):
        assert match_language_button("🇺🇿 O'zbekcha") == "uz"

    @pytest.mark.parametrize("text", ["Русский", "ru", "uz", "", "🇷🇺"])
    def test_anything_else_rejected(self, text):
        assert match_language_button(text) is None


class TestEmail:
    @pytest.mark.parametrize("email", ["user@example.com", "a.b+c@sub.domain.uz", "X@Y.Z"])
    def test_valid(self, email):
        assert is_valid_email(email)

    @pytest.mark.parametrize("email", ["not-an-email", "user@", "@example.com", "user@example", "a b@c.d", "a@@b.c"])
    def test_invalid(self, email):
        assert not is_valid_email(email)

    def test_normalize_lowercases(self):
        assert normalize_email("  User@Example.COM ") == "user@example.com"


class TestPassword:
    def test_min_length(self):
        assert is_valid_password("12345678")
        assert not is_valid_password("1234567")


class TestImages:
    def test_content_type_detection(self):
        assert is_image_content_type("image/png")
        assert is_image_content_type("IMAGE/JPEG")
        assert not is_image_content_type("application/pdf")
        assert not is_image_content_type(None)

    @pytest.mark.parametrize("content_type,ext", [
        ("image/jpeg", "jpg"),
        ("image/png", "png"),
        ("image/webp", "webp"),
        ("image/heic", "heic"),
        ("image/x-unknown", "jpg"),
        (None, "jpg"),
    ])
    def test_extension(self, content_type, ext):
        assert image_extension(content_type) == ext
