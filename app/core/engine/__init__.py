# app/core/engine/__init__.py
"""
Core engine -- provider-agnostic onboarding logic.

This package contains the domain models, collaborator protocols (ports),
typed errors, Attachment Intake, Signup Finalizer and the use-case
orchestrator (OnboardingEngine). Only the leaf modules are re-exported here;
the orchestration modules import the bot bundle and are imported directly.

Canonical imports:
    from app.core.engine.use_cases import OnboardingEngine
    from app.core.engine.domain import SessionState, InboundMessage
    from app.core.engine.ports import AsyncSessionStore
"""
from app.core.engine.domain import (  # noqa: F401
    OnboardingStep,
    Language,
    ProfileData,
    SessionState,
    MediaItem,
    InboundMessage,
    StepResult,
    Effect,
)
from app.core.engine.ports import (  # noqa: F401
    AsyncSessionStore,
    ChatTransport,
    IdentityProvider,
    ObjectStorage,
    RecordStore,
    BinaryFetcher,
)
from app.core.engine.errors import (  # noqa: F401
    OnboardingError,
    DuplicateEmailError,
    IdentityProviderError,
    StorageError,
    RecordStoreError,
    AttachmentFetchError,
    SessionNotFoundError,
)
