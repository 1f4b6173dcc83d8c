# app/core/handlers/onboarding_handler.py
"""
Onboarding Handler - the job-seeker registration flow as a step machine.

Every method is a pure function of (state, input): it returns a StepResult
with the replacement state, the replies to send and the external effect to
run next. The engine performs the I/O and feeds outcomes back through the
continuation methods (identity_created, identity_failed,
profile_image_stored, signup_finalized).

Flow:
LANGUAGE → EMAIL → PASSWORD → CONFIRM_PASSWORD → (create identity) → NAME →
JOB_TITLE → PHONE → REGION → LOCATION → BIO → EXPERIENCE → SOCIAL_MEDIA →
PROFILE_PIC → (store image) → (finalize) → COMPLETED
"""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Optional

from app.core.bots.onboarding.config import LANGUAGE_PROMPT, LANGUAGE_INVALID, LANGUAGE_BUTTONS
from app.core.bots.onboarding.regions import region_keyboard, resolve_region
from app.core.bots.onboarding.texts import get_text, skip_label
from app.core.bots.onboarding.validators import (
    match_language_button,
    is_valid_email,
    normalize_email,
    is_valid_password,
    is_image_content_type,
)
from app.core.engine.domain import (
    DEFAULT_LANGUAGE,
    Effect,
    FinalizeOutcome,
    IntakeOutcome,
    Keyboard,
    MediaItem,
    OnboardingStep,
    ProfileData,
    Reply,
    SessionState,
    StepResult,
)
from app.core.engine.errors import DuplicateEmailError, OnboardingError

logger = logging.getLogger(__name__)

Step = OnboardingStep

# Messages typed at these steps are removed from the chat
_SECRET_STEPS = (Step.PASSWORD.value, Step.CONFIRM_PASSWORD.value)


def _language_keyboard() -> Keyboard:
    return Keyboard.of([list(LANGUAGE_BUTTONS.keys())])


def _skip_keyboard(lang: str) -> Keyboard:
    return Keyboard.of([[skip_label(lang)]])


def _advance(state: SessionState, step: Step, **data_changes) -> SessionState:
    """Replacement state at *step* with the given ProfileData fields changed."""
    data = replace(state.data, **data_changes) if data_changes else state.data
    return replace(
        state,
        step=step.value,
        data=data,
        updated_at=datetime.now(timezone.utc),
    )


class OnboardingHandler:
    """Handler for job-seeker onboarding conversations"""

    def __init__(self) -> None:
        self._text_handlers: dict[str, Callable[[SessionState, str], StepResult]] = {
            Step.LANGUAGE.value: self._on_language,
            Step.EMAIL.value: self._on_email,
            Step.PASSWORD.value: self._on_password,
            Step.CONFIRM_PASSWORD.value: self._on_confirm_password,
            Step.NAME.value: self._on_name,
            Step.JOB_TITLE.value: self._on_job_title,
            Step.PHONE.value: self._on_phone,
            Step.REGION.value: self._on_region,
            Step.LOCATION.value: self._on_location,
            Step.BIO.value: self._on_bio,
            Step.EXPERIENCE.value: self._on_experience,
            Step.SOCIAL_MEDIA.value: self._on_social_media,
            Step.PROFILE_PIC.value: self._on_profile_pic,
            Step.COMPLETED.value: self._on_completed,
        }

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def new_session(self, user_id: str, language: str = DEFAULT_LANGUAGE.value) -> SessionState:
        """Create a fresh session at the LANGUAGE step"""
        return SessionState(user_id=user_id, step=Step.LANGUAGE.value, language=language)

    def handle_start(self, state: Optional[SessionState], user_id: str) -> StepResult:
        """
        ``/start``: restart the flow unless the profile is already complete.

        A completed session is frozen; it only gets a welcome-back notice.
        A session that is already fresh (initialised by the store) is kept.
        """
        if state is not None and state.is_completed:
            return StepResult(state=state, replies=[Reply(get_text("welcome_back", state.language))])

        if state is None or state.step != Step.LANGUAGE.value or state.data != ProfileData():
            state = self.new_session(user_id)
        return StepResult(state=state, replies=[Reply(LANGUAGE_PROMPT, keyboard=_language_keyboard())])

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def handle_text(self, state: SessionState, text: str) -> StepResult:
        """Validate *text* for the current step and advance or re-prompt."""
        msg = (text or "").strip()
        handler = self._text_handlers.get(state.step)
        if handler is None:
            # Unknown step value (corrupted session): restart from the top
            logger.warning("Unknown step %r for user, restarting flow", state.step)
            return self.handle_start(None, state.user_id)

        if not msg and state.step != Step.COMPLETED.value:
            return StepResult(
                state=state,
                replies=[self.prompt_for(state)],
                delete_message=state.step in _SECRET_STEPS,
            )

        return handler(state, msg)

    def handle_attachment(self, state: SessionState, media: MediaItem) -> StepResult:
        """
        Image intake is only open at PROFILE_PIC; elsewhere attachments are
        ignored without a reply.
        """
        if state.step != Step.PROFILE_PIC.value:
            return StepResult(state=state)

        lang = state.language
        if not is_image_content_type(media.content_type):
            return StepResult(state=state, replies=[Reply(get_text("photo_error", lang))])

        return StepResult(
            state=state,
            replies=[Reply(get_text("uploading_photo", lang))],
            effect=Effect.STORE_PROFILE_IMAGE,
            attachment=media,
        )

    def prompt_for(self, state: SessionState) -> Reply:
        """The question asked at the current step (used for re-prompts)."""
        lang = state.language
        step = state.step
        if step == Step.LANGUAGE.value:
            return Reply(LANGUAGE_PROMPT, keyboard=_language_keyboard())
        if step == Step.REGION.value:
            return Reply(get_text("region_prompt", lang), keyboard=region_keyboard(lang))
        if step in (Step.SOCIAL_MEDIA.value, Step.PROFILE_PIC.value):
            key = "social_media_prompt" if step == Step.SOCIAL_MEDIA.value else "profile_pic_prompt"
            return Reply(get_text(key, lang), keyboard=_skip_keyboard(lang))
        keys = {
            Step.EMAIL.value: "welcome_initial",
            Step.PASSWORD.value: "email_accepted",
            Step.CONFIRM_PASSWORD.value: "confirm_password",
            Step.NAME.value: "name_prompt",
            Step.JOB_TITLE.value: "job_title_prompt",
            Step.PHONE.value: "phone_prompt",
            Step.LOCATION.value: "location_prompt",
            Step.BIO.value: "bio_prompt",
            Step.EXPERIENCE.value: "experience_prompt",
            Step.COMPLETED.value: "already_set_up",
        }
        return Reply(get_text(keys.get(step, "already_set_up"), lang))

    # ------------------------------------------------------------------
    # Per-step text handlers
    # ------------------------------------------------------------------

    def _on_language(self, state: SessionState, msg: str) -> StepResult:
        lang = match_language_button(msg)
        if lang is None:
            return StepResult(state=state, replies=[Reply(LANGUAGE_INVALID, keyboard=_language_keyboard())])

        st = replace(_advance(state, Step.EMAIL), language=lang)
        return StepResult(state=st, replies=[Reply(get_text("welcome_initial", lang), remove_keyboard=True)])

    def _on_email(self, state: SessionState, msg: str) -> StepResult:
        lang = state.language
        if not is_valid_email(msg):
            return StepResult(state=state, replies=[Reply(get_text("email_invalid", lang))])

        st = _advance(state, Step.PASSWORD, email=normalize_email(msg))
        return StepResult(state=st, replies=[Reply(get_text("email_accepted", lang))])

    def _on_password(self, state: SessionState, msg: str) -> StepResult:
        lang = state.language
        if not is_valid_password(msg):
            return StepResult(
                state=state,
                replies=[Reply(get_text("password_short", lang))],
                delete_message=True,
            )

        st = _advance(state, Step.CONFIRM_PASSWORD, password=msg)
        return StepResult(
            state=st,
            replies=[Reply(get_text("confirm_password", lang))],
            delete_message=True,
        )

    def _on_confirm_password(self, state: SessionState, msg: str) -> StepResult:
        lang = state.language
        if msg != state.data.password:
            # Stays at CONFIRM_PASSWORD; the stored password is kept for retry
            return StepResult(
                state=state,
                replies=[Reply(get_text("password_mismatch", lang))],
                delete_message=True,
            )

        return StepResult(
            state=state,
            replies=[Reply(get_text("creating_account", lang))],
            effect=Effect.CREATE_IDENTITY,
            delete_message=True,
        )

    def _on_name(self, state: SessionState, msg: str) -> StepResult:
        st = _advance(state, Step.JOB_TITLE, full_name=msg)
        return StepResult(state=st, replies=[Reply(get_text("job_title_prompt", st.language))])

    def _on_job_title(self, state: SessionState, msg: str) -> StepResult:
        st = _advance(state, Step.PHONE, job_title=msg)
        return StepResult(state=st, replies=[Reply(get_text("phone_prompt", st.language))])

    def _on_phone(self, state: SessionState, msg: str) -> StepResult:
        st = _advance(state, Step.REGION, phone=msg)
        lang = st.language
        return StepResult(
            state=st,
            replies=[Reply(get_text("region_prompt", lang), keyboard=region_keyboard(lang))],
        )

    def _on_region(self, state: SessionState, msg: str) -> StepResult:
        lang = state.language
        region_key = resolve_region(msg, lang)
        if region_key is None:
            text = f"{get_text('region_prompt', lang)}\n\n{get_text('region_hint', lang)}"
            return StepResult(state=state, replies=[Reply(text, keyboard=region_keyboard(lang))])

        st = _advance(state, Step.LOCATION, region=region_key, city="")
        return StepResult(
            state=st,
            replies=[Reply(get_text("location_prompt", lang), remove_keyboard=True)],
        )

    def _on_location(self, state: SessionState, msg: str) -> StepResult:
        st = _advance(state, Step.BIO, location=msg)
        return StepResult(state=st, replies=[Reply(get_text("bio_prompt", st.language))])

    def _on_bio(self, state: SessionState, msg: str) -> StepResult:
        st = _advance(state, Step.EXPERIENCE, bio=msg)
        return StepResult(state=st, replies=[Reply(get_text("experience_prompt", st.language))])

    def _on_experience(self, state: SessionState, msg: str) -> StepResult:
        st = _advance(state, Step.SOCIAL_MEDIA, years_experience=msg)
        lang = st.language
        return StepResult(
            state=st,
            replies=[Reply(get_text("social_media_prompt", lang), keyboard=_skip_keyboard(lang))],
        )

    def _on_social_media(self, state: SessionState, msg: str) -> StepResult:
        lang = state.language
        if msg == skip_label(lang):
            st = _advance(state, Step.PROFILE_PIC)
        else:
            st = _advance(state, Step.PROFILE_PIC, social_media=msg)
        return StepResult(
            state=st,
            replies=[Reply(get_text("profile_pic_prompt", lang), keyboard=_skip_keyboard(lang))],
        )

    def _on_profile_pic(self, state: SessionState, msg: str) -> StepResult:
        lang = state.language
        if msg != skip_label(lang):
            return StepResult(state=state, replies=[Reply(get_text("photo_error", lang))])

        st = replace(state, data=replace(state.data, profile_image=None))
        return StepResult(
            state=st,
            replies=[Reply(get_text("saving_profile", lang))],
            effect=Effect.FINALIZE,
        )

    def _on_completed(self, state: SessionState, msg: str) -> StepResult:
        return StepResult(state=state, replies=[Reply(get_text("already_set_up", state.language))])

    # ------------------------------------------------------------------
    # Continuations (applied after the engine ran an effect)
    # ------------------------------------------------------------------

    def identity_created(self, state: SessionState, identity_id: str) -> StepResult:
        """Record the identity id, drop the password and move on to NAME."""
        st = _advance(state, Step.NAME, identity_id=identity_id, password=None)
        return StepResult(state=st, replies=[Reply(get_text("account_created", st.language))])

    def identity_failed(self, state: SessionState, error: OnboardingError) -> StepResult:
        """Halt at CONFIRM_PASSWORD; the session (password included) is untouched."""
        lang = state.language
        if isinstance(error, DuplicateEmailError):
            return StepResult(state=state, replies=[Reply(get_text("email_registered", lang))])
        return StepResult(
            state=state,
            replies=[Reply(get_text("account_error", lang, error=error.detail))],
        )

    def profile_image_stored(self, state: SessionState, outcome: IntakeOutcome) -> StepResult:
        """Attach the image reference and hand off to finalization."""
        lang = state.language
        st = replace(
            state,
            data=replace(state.data, profile_image=outcome.reference),
            updated_at=datetime.now(timezone.utc),
        )
        # Notice only when the upload itself was rejected
        replies = [Reply(get_text("photo_saved_bot", lang))] if outcome.storage_failed else []
        replies.append(Reply(get_text("saving_profile", lang)))
        return StepResult(state=st, replies=replies, effect=Effect.FINALIZE)

    def signup_finalized(self, state: SessionState, outcome: FinalizeOutcome) -> StepResult:
        """Freeze the session and confirm with the record (or identity) id."""
        lang = state.language
        st = _advance(state, Step.COMPLETED)
        replies: list[Reply] = []
        if not outcome.listed:
            replies.append(Reply(get_text("listing_error", lang, error=outcome.error)))

        link_id = outcome.record_id or state.data.identity_id
        replies.append(Reply(get_text("profile_completed", lang, id=link_id), remove_keyboard=True))
        return StepResult(state=st, replies=replies)
