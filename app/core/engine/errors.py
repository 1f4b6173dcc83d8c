# app/core/engine/errors.py
"""
Typed errors raised at the collaborator boundary.

Adapters translate library exceptions (aiohttp, botocore, asyncpg) into
these types so the engine can map them onto user-facing outcomes without
knowing which provider is behind a port.
"""
from __future__ import annotations


class OnboardingError(Exception):
    """Base class for all onboarding errors."""

    def __init__(self, detail: str = "Internal error"):
        self.detail = detail
        super().__init__(detail)


class DuplicateEmailError(OnboardingError):
    """Identity provider already has an account for this address."""


class IdentityProviderError(OnboardingError):
    """Identity creation failed for any other reason.

    ``detail`` carries the provider's own message, which is shown to the user.
    """


class StorageError(OnboardingError):
    """Object storage rejected or failed the upload."""


class RecordStoreError(OnboardingError):
    """Final profile record could not be inserted."""


class AttachmentFetchError(OnboardingError):
    """Attachment download link could not be resolved or fetched."""


class SessionNotFoundError(OnboardingError, KeyError):
    """``update`` was called for a user without a session."""

    def __str__(self) -> str:
        return self.detail
