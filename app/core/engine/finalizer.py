# app/core/engine/finalizer.py
"""
Signup Finalizer - writes the completed profile to the record store once.
"""
from __future__ import annotations

from typing import Any

from app.core.engine.domain import FinalizeOutcome, SessionState
from app.core.engine.errors import RecordStoreError
from app.core.engine.ports import RecordStore
from app.infra.logging_config import LogContext, get_logger

logger = get_logger(__name__)


def build_record(state: SessionState) -> dict[str, Any]:
    """Flat profile row, keyed by the email as creator identity."""
    d = state.data
    return {
        "created_by": d.email,
        "full_name": d.full_name,
        "email": d.email,
        "phone": d.phone,
        "job_title": d.job_title,
        "region": d.region,
        "location": d.location,
        "city": d.city if d.city is not None else "",
        "bio": d.bio,
        "years_experience": d.years_experience,
        "instagram": d.social_media,
        "facebook": None,
        "telegram": None,
        "profile_image": d.profile_image,
    }


class SignupFinalizer:
    def __init__(self, records: RecordStore, table: str) -> None:
        self.records = records
        self.table = table

    async def finalize(self, state: SessionState) -> FinalizeOutcome:
        """
        Insert the profile record.

        A failed insert is not fatal: the identity already exists, so the
        outcome carries the error message and no record id.
        """
        log = LogContext(logger, user_id=state.user_id)
        try:
            row = await self.records.insert(self.table, build_record(state))
        except RecordStoreError as e:
            log.error("Profile insert into %s failed: %s", self.table, e.detail)
            return FinalizeOutcome(error=e.detail)

        record_id = row.get("id")
        log.info("Profile inserted into %s: id=%s", self.table, record_id)
        return FinalizeOutcome(record_id=str(record_id) if record_id is not None else None)
