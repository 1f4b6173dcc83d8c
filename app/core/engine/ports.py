# app/core/engine/ports.py
from __future__ import annotations
from typing import Protocol, Optional, Any
from app.core.engine.domain import SessionState, Keyboard


# ============================================================================
# SESSION STORE
# ============================================================================

class AsyncSessionStore(Protocol):
    async def get(self, user_id: str) -> Optional[SessionState]: ...
    async def init(self, user_id: str, language: Optional[str] = None) -> SessionState: ...
    async def save(self, state: SessionState) -> None: ...
    async def update(self, user_id: str, **changes: Any) -> SessionState: ...


# ============================================================================
# EXTERNAL COLLABORATORS
# ============================================================================

class ChatTransport(Protocol):
    async def reply(
        self,
        chat_id: str,
        text: str,
        keyboard: Optional[Keyboard] = None,
        remove_keyboard: bool = False,
    ) -> None: ...

    async def delete_message(self, chat_id: str, message_id: str) -> None:
        """Best-effort; callers must tolerate failures."""
        ...

    async def resolve_download_link(self, attachment_id: str) -> str: ...


class IdentityProvider(Protocol):
    async def create_identity(self, email: str, password: str, pre_confirmed: bool = True) -> str:
        """
        Create an account and return its id.

        Raises:
            DuplicateEmailError: address already registered
            IdentityProviderError: any other provider failure
        """
        ...


class ObjectStorage(Protocol):
    async def upload(
        self,
        bucket: str,
        name: str,
        data: bytes,
        content_type: str,
        overwrite: bool = True,
    ) -> None:
        """Raises StorageError on failure."""
        ...

    def public_url(self, bucket: str, name: str) -> str: ...


class RecordStore(Protocol):
    async def insert(self, table: str, record: dict) -> dict:
        """Insert and return the stored row (contains ``id``). Raises RecordStoreError."""
        ...


class BinaryFetcher(Protocol):
    async def fetch(self, url: str) -> bytes:
        """Raises AttachmentFetchError on failure."""
        ...
