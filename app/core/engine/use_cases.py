# app/core/engine/use_cases.py
import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from app.core.bots.onboarding.config import START_HINT
from app.core.bots.onboarding.texts import get_text
from app.core.engine.domain import (
    DEFAULT_LANGUAGE,
    Effect,
    InboundMessage,
    SessionState,
    StepResult,
)
from app.core.engine.errors import DuplicateEmailError, IdentityProviderError
from app.core.engine.finalizer import SignupFinalizer
from app.core.engine.intake import AttachmentIntake
from app.core.engine.ports import AsyncSessionStore, ChatTransport, IdentityProvider
from app.core.handlers.onboarding_handler import OnboardingHandler
from app.infra.logging_config import LogContext, get_logger
from app.infra.metrics import AppMetrics

logger = get_logger(__name__)

START_COMMAND = "start"


class OnboardingEngine:
    """
    Application service / use-case layer.
    Workflow: session lookup -> pure transition -> save -> replies -> effects.

    The handler decides; this class performs every side effect (session
    writes, chat replies, identity creation, image intake, record insert)
    and feeds collaborator outcomes back into the handler's continuations.
    Messages of one user are processed strictly one at a time.
    """

    def __init__(
        self,
        *,
        sessions: AsyncSessionStore,
        transport: ChatTransport,
        identity: IdentityProvider,
        intake: AttachmentIntake,
        finalizer: SignupFinalizer,
        handler: Optional[OnboardingHandler] = None,
    ) -> None:
        self.sessions = sessions
        self.transport = transport
        self.identity = identity
        self.intake = intake
        self.finalizer = finalizer
        self.handler = handler or OnboardingHandler()
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    @asynccontextmanager
    async def _user_lock(self, user_id: str):
        """Per-user lock; dropped once nobody holds or waits for it."""
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        self._lock_users[user_id] = self._lock_users.get(user_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[user_id] -= 1
            if not self._lock_users[user_id]:
                del self._lock_users[user_id]
                del self._locks[user_id]

    @staticmethod
    def _kind(message: InboundMessage) -> str:
        if message.has_command():
            return "command"
        if message.has_media():
            return "media"
        if message.has_text():
            return "text"
        return "empty"

    async def process_inbound_message(self, message: InboundMessage) -> dict:
        """
        Process a normalized InboundMessage from any provider.

        Routing priority: command > media > text (a photo caption does not
        count as a text answer).
        """
        kind = self._kind(message)
        log = LogContext(logger, user_id=message.user_id, chat_id=message.chat_id)
        AppMetrics.message_received(kind)

        async with self._user_lock(message.user_id):
            with AppMetrics.track_processing_time(kind):
                try:
                    step = await self._process(message, kind, log)
                except Exception:
                    log.exception("Unexpected error while handling %s message", kind)
                    AppMetrics.unexpected_error(kind)
                    step = await self._notify_failure(message, log)

        return {"step": step, "user_id": message.user_id}

    async def _process(self, message: InboundMessage, kind: str, log: LogContext) -> Optional[str]:
        state = await self.sessions.get(message.user_id)

        if kind == "command" and message.command == START_COMMAND:
            if state is None or not state.is_completed:
                state = await self.sessions.init(message.user_id)
                log.info("Session started at %s", state.step)
            result = self.handler.handle_start(state, message.user_id)
        elif kind == "empty":
            return state.step if state else None
        elif state is None:
            await self.transport.reply(message.chat_id, START_HINT)
            return None
        elif kind == "media":
            result = self.handler.handle_attachment(state, message.media[0])
        else:
            # Unknown commands are answered as plain text
            text = message.text if message.text is not None else f"/{message.command}"
            result = self.handler.handle_text(state, text)

        state = await self._apply(state, result, message, log)
        while result.effect is not Effect.NONE:
            result = await self._run_effect(state, result, log)
            state = await self._apply(state, result, message, log)
        return state.step

    async def _apply(
        self,
        previous: Optional[SessionState],
        result: StepResult,
        message: InboundMessage,
        log: LogContext,
    ) -> SessionState:
        """Delete (if asked), persist the new state, then send replies in order."""
        if result.delete_message:
            await self._delete_quietly(message, log)

        state = result.state
        if state is not previous:
            await self.sessions.save(state)
            if previous is not None and previous.step != state.step:
                AppMetrics.step_completed(previous.step)
                log.debug("Step %s -> %s", previous.step, state.step)

        for reply in result.replies:
            await self.transport.reply(
                message.chat_id,
                reply.text,
                keyboard=reply.keyboard,
                remove_keyboard=reply.remove_keyboard,
            )
        return state

    async def _run_effect(self, state: SessionState, result: StepResult, log: LogContext) -> StepResult:
        effect = result.effect
        log = log.bind(step=state.step)

        if effect is Effect.CREATE_IDENTITY:
            try:
                identity_id = await self.identity.create_identity(
                    state.data.email, state.data.password, pre_confirmed=True
                )
            except DuplicateEmailError as e:
                log.warning("Identity creation rejected: email already registered")
                AppMetrics.identity_failed("duplicate_email")
                return self.handler.identity_failed(state, e)
            except IdentityProviderError as e:
                log.error("Identity creation failed: %s", e.detail)
                AppMetrics.identity_failed("provider_error")
                return self.handler.identity_failed(state, e)
            log.info("Identity created: %s", identity_id)
            AppMetrics.identity_created()
            return self.handler.identity_created(state, identity_id)

        if effect is Effect.STORE_PROFILE_IMAGE:
            outcome = await self.intake.ingest(state.user_id, result.attachment)
            AppMetrics.upload_finished(outcome.stored)
            return self.handler.profile_image_stored(state, outcome)

        if effect is Effect.FINALIZE:
            outcome = await self.finalizer.finalize(state)
            AppMetrics.signup_completed(outcome.listed)
            log.info("Signup completed: record=%s listed=%s", outcome.record_id, outcome.listed)
            return self.handler.signup_finalized(state, outcome)

        raise ValueError(f"Unknown effect: {effect}")

    async def _delete_quietly(self, message: InboundMessage, log: LogContext) -> None:
        """Best-effort removal of the triggering message; failure never aborts the step."""
        try:
            await self.transport.delete_message(message.chat_id, message.message_id)
        except Exception as e:
            log.warning("Could not delete message %s: %s", message.message_id, e)

    async def _notify_failure(self, message: InboundMessage, log: LogContext) -> Optional[str]:
        """Generic failure notice; the session stays as last saved."""
        try:
            state = await self.sessions.get(message.user_id)
            lang = state.language if state else DEFAULT_LANGUAGE.value
            await self.transport.reply(message.chat_id, get_text("unexpected_error", lang))
        except Exception:
            log.exception("Failed to deliver failure notice")
            return None
        return state.step if state else None
