# app/infra/memory_session_store.py
"""
In-process session store.

Sessions live for the lifetime of the process; a restart loses in-flight
conversations. Values are frozen dataclasses, so a reader never sees a
half-applied update.
"""
from __future__ import annotations

from dataclasses import fields, replace
from datetime import datetime, timezone
from typing import Any, Optional

from app.core.engine.domain import DEFAULT_LANGUAGE, OnboardingStep, ProfileData, SessionState
from app.core.engine.errors import SessionNotFoundError
from app.infra.logging_config import get_logger

logger = get_logger(__name__)

_SESSION_FIELDS = frozenset({"step", "language"})
_PROFILE_FIELDS = frozenset(f.name for f in fields(ProfileData))


class InMemorySessionStore:
    """AsyncSessionStore keyed by user id"""

    def __init__(self, default_language: str = DEFAULT_LANGUAGE.value):
        self.default_language = default_language
        self._sessions: dict[str, SessionState] = {}

    async def get(self, user_id: str) -> Optional[SessionState]:
        return self._sessions.get(user_id)

    async def init(self, user_id: str, language: Optional[str] = None) -> SessionState:
        """Fresh session at LANGUAGE, replacing any previous one."""
        state = SessionState(
            user_id=user_id,
            step=OnboardingStep.LANGUAGE.value,
            language=language or self.default_language,
        )
        self._sessions[user_id] = state
        logger.debug("Session initialised: user=%s", user_id)
        return state

    async def save(self, state: SessionState) -> None:
        self._sessions[state.user_id] = state

    async def update(self, user_id: str, **changes: Any) -> SessionState:
        """
        Read-modify-write of one session.

        Keys may be ``step``/``language`` or any ProfileData field.

        Raises:
            SessionNotFoundError: no session for *user_id*
            TypeError: unknown field name
        """
        current = self._sessions.get(user_id)
        if current is None:
            raise SessionNotFoundError(f"No session for user {user_id}")

        unknown = set(changes) - _SESSION_FIELDS - _PROFILE_FIELDS
        if unknown:
            raise TypeError(f"Unknown session fields: {', '.join(sorted(unknown))}")

        top = {k: v for k, v in changes.items() if k in _SESSION_FIELDS}
        if isinstance(top.get("step"), OnboardingStep):
            top["step"] = top["step"].value
        data = {k: v for k, v in changes.items() if k in _PROFILE_FIELDS}

        updated = replace(
            current,
            data=replace(current.data, **data) if data else current.data,
            updated_at=datetime.now(timezone.utc),
            **top,
        )
        self._sessions[user_id] = updated
        return updated
