# app/core/engine/domain.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


# ============================================================================
# STEPS & LANGUAGES
# ============================================================================

class OnboardingStep(str, Enum):
    """Fixed, linear sequence of collection steps. COMPLETED is terminal."""
    LANGUAGE = "LANGUAGE"
    EMAIL = "EMAIL"
    PASSWORD = "PASSWORD"
    CONFIRM_PASSWORD = "CONFIRM_PASSWORD"
    NAME = "NAME"
    JOB_TITLE = "JOB_TITLE"
    PHONE = "PHONE"
    REGION = "REGION"
    LOCATION = "LOCATION"
    BIO = "BIO"
    EXPERIENCE = "EXPERIENCE"
    SOCIAL_MEDIA = "SOCIAL_MEDIA"
    PROFILE_PIC = "PROFILE_PIC"
    COMPLETED = "COMPLETED"


STEP_ORDER: tuple[OnboardingStep, ...] = tuple(OnboardingStep)


class Language(str, Enum):
    RU = "ru"  # primary
    UZ = "uz"  # secondary


DEFAULT_LANGUAGE = Language.RU


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# SESSION STATE (immutable, replaced on every transition)
# ============================================================================

@dataclass(frozen=True)
class ProfileData:
    """
    Answers collected during onboarding.

    ``password`` is transient: it is written at PASSWORD and cleared in the
    same transition that records ``identity_id``.
    ``profile_image`` is a public URL, a platform file id, or None (skipped).
    """
    email: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)
    full_name: Optional[str] = None
    job_title: Optional[str] = None
    phone: Optional[str] = None
    region: Optional[str] = None  # canonical region key, never the label
    location: Optional[str] = None
    city: Optional[str] = None  # reserved, always "" once region is chosen
    bio: Optional[str] = None
    years_experience: Optional[str] = None
    social_media: Optional[str] = None
    profile_image: Optional[str] = None
    identity_id: Optional[str] = None


@dataclass(frozen=True)
class SessionState:
    user_id: str
    step: str = OnboardingStep.LANGUAGE.value
    language: str = DEFAULT_LANGUAGE.value
    data: ProfileData = field(default_factory=ProfileData)
    created_at: datetime = field(default_factory=_utcnow, repr=False)
    updated_at: datetime = field(default_factory=_utcnow, repr=False)

    @property
    def is_completed(self) -> bool:
        return self.step == OnboardingStep.COMPLETED.value


# ============================================================================
# OUTBOUND REPLIES
# ============================================================================

@dataclass(frozen=True)
class Keyboard:
    """Reply keyboard: rows of button labels."""
    rows: tuple[tuple[str, ...], ...]
    one_time: bool = True
    resize: bool = True

    @classmethod
    def of(cls, rows: list[list[str]], one_time: bool = True, resize: bool = True) -> "Keyboard":
        return cls(rows=tuple(tuple(r) for r in rows), one_time=one_time, resize=resize)


@dataclass(frozen=True)
class Reply:
    text: str
    keyboard: Optional[Keyboard] = None
    remove_keyboard: bool = False


# ============================================================================
# STEP RESULTS
# ============================================================================

class Effect(str, Enum):
    """External side effect the engine must run after a transition."""
    NONE = "none"
    CREATE_IDENTITY = "create_identity"
    STORE_PROFILE_IMAGE = "store_profile_image"
    FINALIZE = "finalize"


@dataclass
class StepResult:
    """
    Outcome of one transition: the next state, what to say, and which
    collaborator (if any) to call next.
    """
    state: SessionState
    replies: list[Reply] = field(default_factory=list)
    effect: Effect = Effect.NONE
    delete_message: bool = False
    attachment: Optional["MediaItem"] = None


@dataclass(frozen=True)
class IntakeOutcome:
    """Where the profile image ended up.

    ``stored`` is False when the image never reached durable storage and
    ``reference`` holds the platform-native file id instead.
    ``storage_failed`` marks that the bytes were fetched but the upload was
    rejected.
    """
    reference: Optional[str]
    stored: bool
    storage_failed: bool = False


@dataclass(frozen=True)
class FinalizeOutcome:
    record_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def listed(self) -> bool:
        return self.error is None


# ============================================================================
# INBOUND MESSAGES
# ============================================================================

@dataclass
class MediaItem:
    """Attachment in an inbound message.

    ``provider_media_id`` is the platform file id; it doubles as the
    transient fallback reference when durable storage is unavailable.
    """
    provider_media_id: str
    content_type: Optional[str] = None
    size_bytes: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None
    kind: str = "photo"  # "photo" | "document"

    def is_image(self) -> bool:
        return bool(self.content_type and self.content_type.startswith("image/"))


@dataclass
class InboundMessage:
    """
    Normalized inbound message from the chat provider.
    """
    provider: str  # "telegram", "dev"
    user_id: str  # stable sender id, session key
    chat_id: str  # where replies go
    message_id: str
    command: Optional[str] = None  # "start" for "/start"
    text: Optional[str] = None
    media: list[MediaItem] = field(default_factory=list)
    sender_name: Optional[str] = None

    def has_command(self) -> bool:
        return bool(self.command)

    def has_text(self) -> bool:
        return self.text is not None

    def has_media(self) -> bool:
        return bool(self.media)
