# tests/test_use_cases.py
"""End-to-end conversation tests for OnboardingEngine over in-memory fakes"""
import asyncio
import pytest

from app.core.bots.onboarding.config import LANGUAGE_INVALID, LANGUAGE_PROMPT, START_HINT
from app.core.bots.onboarding.texts import get_text
from app.core.engine.errors import DuplicateEmailError, IdentityProviderError
from app.infra.metrics import get_metrics_collector

from fakes import (
    EngineHarness,
    FakeFetcher,
    FakeIdentityProvider,
    FakeObjectStorage,
    FakeRecordStore,
    make_message,
    make_photo,
)


async def _drive_to_confirm(h, email="ali@example.com", password="secret123"):
    await h.start()
    await h.send("🇷🇺 Русский")
    await h.send(email)
    await h.send(password)


async def _drive_to_profile_pic(h):
    await _drive_to_confirm(h)
    await h.send("secret123")
    for answer in ("Ali Valiyev", "Сантехник", "+998901234567", "Ташкент", "Чиланзар",
                   "Опыт 10 лет", "10", "Пропустить"):
        await h.send(answer)


class TestHappyPath:
    @pytest.mark.asyncio
    async def test_full_russian_signup_with_skips(self, harness):
        await _drive_to_profile_pic(harness)
        result = await harness.send("Пропустить")

        assert result == {"step": "COMPLETED", "user_id": "1001"}
        state = await harness.session()
        assert state.is_completed
        assert state.data.password is None
        assert state.data.identity_id == "auth-uuid-1"

        assert harness.identity.calls == [("ali@example.com", "secret123", True)]
        assert len(harness.records.inserts) == 1
        table, record = harness.records.inserts[0]
        assert table == "job_seekers"
        assert record["created_by"] == "ali@example.com"
        assert record["email"] == "ali@example.com"
        assert record["full_name"] == "Ali Valiyev"
        assert record["job_title"] == "Сантехник"
        assert record["phone"] == "+998901234567"
        assert record["region"] == "tashkent_city"
        assert record["city"] == ""
        assert record["location"] == "Чиланзар"
        assert record["bio"] == "Опыт 10 лет"
        assert record["years_experience"] == "10"
        assert record["instagram"] is None
        assert record["profile_image"] is None
        assert "password" not in record

        texts = harness.transport.texts
        assert texts[0] == LANGUAGE_PROMPT
        assert texts[-2:] == [get_text("saving_profile", "ru"), get_text("profile_completed", "ru", id="42")]

    @pytest.mark.asyncio
    async def test_password_messages_are_deleted(self, harness):
        await _drive_to_confirm(harness)
        await harness.send("secret123")
        # message ids: 1 /start, 2 language, 3 email, 4 password, 5 confirmation
        assert harness.transport.deleted == [("1001", "4"), ("1001", "5")]

    @pytest.mark.asyncio
    async def test_photo_upload_stores_public_url(self, harness):
        await _drive_to_profile_pic(harness)
        await harness.send(media=[make_photo("AgACphoto")])

        state = await harness.session()
        assert state.is_completed
        url = "https://cdn.example/avatars/1001_1700000000500.jpg"
        assert state.data.profile_image == url
        assert harness.records.inserts[0][1]["profile_image"] == url
        assert harness.fetcher.urls == ["https://files.example/AgACphoto"]
        bucket, name, data, content_type, overwrite = harness.storage.uploads[0]
        assert (bucket, name, content_type, overwrite) == ("avatars", "1001_1700000000500.jpg", "image/jpeg", True)
        assert data == harness.fetcher.data
        assert get_text("uploading_photo", "ru") in harness.transport.texts


class TestAccountCreation:
    @pytest.mark.asyncio
    async def test_mismatch_never_calls_identity(self, harness):
        await _drive_to_confirm(harness)
        result = await harness.send("secret124")

        assert result["step"] == "CONFIRM_PASSWORD"
        assert harness.identity.calls == []
        assert harness.transport.texts[-1] == get_text("password_mismatch", "ru")
        assert (await harness.session()).data.password == "secret123"

        # Retrying the confirmation still works
        result = await harness.send("secret123")
        assert result["step"] == "NAME"

    @pytest.mark.asyncio
    async def test_password_starting_with_slash_is_kept_verbatim(self, harness):
        await harness.start()
        await harness.send("🇷🇺 Русский")
        await harness.send("ali@example.com")
        await harness.send("/MyPassword@home", command="mypassword")

        result = await harness.send("/MyPassword", command="mypassword")
        assert result["step"] == "CONFIRM_PASSWORD"
        assert harness.identity.calls == []

        result = await harness.send("/MyPassword@home", command="mypassword")
        assert result["step"] == "NAME"
        assert harness.identity.calls == [("ali@example.com", "/MyPassword@home", True)]

    @pytest.mark.asyncio
    async def test_duplicate_email_halts_at_confirm(self):
        h = EngineHarness(identity=FakeIdentityProvider(error=DuplicateEmailError("User already registered")))
        await _drive_to_confirm(h)
        result = await h.send("secret123")

        assert result["step"] == "CONFIRM_PASSWORD"
        state = await h.session()
        assert state.data.password == "secret123"
        assert state.data.identity_id is None
        assert h.transport.texts[-1] == get_text("email_registered", "ru")
        assert h.records.inserts == []

    @pytest.mark.asyncio
    async def test_provider_error_reports_detail(self):
        h = EngineHarness(identity=FakeIdentityProvider(error=IdentityProviderError("HTTP 500")))
        await _drive_to_confirm(h)
        await h.send("secret123")
        assert h.transport.texts[-1] == get_text("account_error", "ru", error="HTTP 500")
        assert (await h.session()).step == "CONFIRM_PASSWORD"

    @pytest.mark.asyncio
    async def test_invalid_email_stays(self, harness):
        await harness.start()
        await harness.send("🇺🇿 O'zbekcha")
        result = await harness.send("not-an-email")
        assert result["step"] == "EMAIL"
        assert (await harness.session()).data.email is None
        assert harness.transport.texts[-1] == get_text("email_invalid", "uz")


class TestFallbacks:
    @pytest.mark.asyncio
    async def test_storage_failure_keeps_file_id(self):
        h = EngineHarness(storage=FakeObjectStorage(fail=True))
        await _drive_to_profile_pic(h)
        await h.send(media=[make_photo("AgACphoto")])

        state = await h.session()
        assert state.is_completed
        assert state.data.profile_image == "AgACphoto"
        assert len(h.records.inserts) == 1
        assert h.records.inserts[0][1]["profile_image"] == "AgACphoto"
        assert get_text("photo_saved_bot", "ru") in h.transport.texts

    @pytest.mark.asyncio
    async def test_fetch_failure_keeps_file_id(self):
        h = EngineHarness(fetcher=FakeFetcher(fail=True))
        await _drive_to_profile_pic(h)
        await h.send(media=[make_photo("AgACphoto")])
        assert (await h.session()).data.profile_image == "AgACphoto"
        assert h.storage.uploads == []
        assert get_text("photo_saved_bot", "ru") not in h.transport.texts

    @pytest.mark.asyncio
    async def test_fetch_timeout_still_completes(self, harness):
        async def timeout(url):
            raise asyncio.TimeoutError()

        harness.fetcher.fetch = timeout
        await _drive_to_profile_pic(harness)
        await harness.send(media=[make_photo("AgACphoto")])

        state = await harness.session()
        assert state.is_completed
        assert state.data.profile_image == "AgACphoto"
        assert len(harness.records.inserts) == 1
        assert get_text("unexpected_error", "ru") not in harness.transport.texts
        assert get_text("photo_saved_bot", "ru") not in harness.transport.texts

    @pytest.mark.asyncio
    async def test_listing_failure_still_completes(self):
        h = EngineHarness(records=FakeRecordStore(fail=True))
        await _drive_to_profile_pic(h)
        await h.send("Пропустить")

        assert (await h.session()).is_completed
        texts = h.transport.texts
        assert texts[-2] == get_text("listing_error", "ru", error='relation "job_seekers" does not exist')
        assert texts[-1] == get_text("profile_completed", "ru", id="auth-uuid-1")

    @pytest.mark.asyncio
    async def test_delete_failure_tolerated(self, harness):
        harness.transport.fail_delete = True
        await _drive_to_confirm(harness)
        assert (await harness.session()).step == "CONFIRM_PASSWORD"
        assert harness.transport.texts[-1] == get_text("confirm_password", "ru")


class TestRouting:
    @pytest.mark.asyncio
    async def test_no_session_gets_start_hint(self, harness):
        result = await harness.send("hello")
        assert result == {"step": None, "user_id": "1001"}
        assert harness.transport.texts == [START_HINT]
        assert await harness.session() is None

    @pytest.mark.asyncio
    async def test_start_on_completed_is_welcome_back(self, harness):
        await _drive_to_profile_pic(harness)
        await harness.send("Пропустить")
        result = await harness.start()

        assert result["step"] == "COMPLETED"
        assert harness.transport.texts[-1] == get_text("welcome_back", "ru")
        assert len(harness.records.inserts) == 1

    @pytest.mark.asyncio
    async def test_start_creates_session_through_store(self, harness):
        harness.sessions.default_language = "uz"
        await harness.start()
        state = await harness.session()
        assert state.step == "LANGUAGE"
        assert state.language == "uz"

    @pytest.mark.asyncio
    async def test_restart_mid_flow(self, harness):
        await _drive_to_confirm(harness)
        await harness.start()
        state = await harness.session()
        assert state.step == "LANGUAGE"
        assert state.data.email is None

    @pytest.mark.asyncio
    async def test_photo_caption_is_not_an_answer(self, harness):
        await harness.start()
        await harness.send("🇷🇺 Русский")
        message = make_message("ali@example.com", media=[make_photo()], message_id="99")
        await harness.engine.process_inbound_message(message)
        assert (await harness.session()).step == "EMAIL"

    @pytest.mark.asyncio
    async def test_unknown_command_treated_as_text(self, harness):
        await harness.start()
        await harness.send("/help", command="help")
        assert harness.transport.texts[-1] == LANGUAGE_INVALID
        assert (await harness.session()).step == "LANGUAGE"

    @pytest.mark.asyncio
    async def test_unexpected_error_sends_notice(self, harness):
        await harness.start()
        harness.engine.handler.handle_text = lambda state, text: 1 / 0
        before = get_metrics_collector().get_counter("unexpected_errors_total", stage="text")

        result = await harness.send("🇷🇺 Русский")

        assert result["step"] == "LANGUAGE"
        assert harness.transport.texts[-1] == get_text("unexpected_error", "ru")
        assert get_metrics_collector().get_counter("unexpected_errors_total", stage="text") == before + 1

    @pytest.mark.asyncio
    async def test_users_are_isolated(self, harness):
        await harness.start(user_id="1")
        await harness.start(user_id="2")
        await harness.send("🇺🇿 O'zbekcha", user_id="1")
        assert (await harness.session("1")).language == "uz"
        assert (await harness.session("2")).step == "LANGUAGE"


class TestSerialization:
    @pytest.mark.asyncio
    async def test_messages_of_one_user_run_in_order(self, harness):
        gate = asyncio.Event()

        async def slow_create(email, password, pre_confirmed=True):
            await gate.wait()
            return "auth-uuid-1"

        harness.identity.create_identity = slow_create
        await _drive_to_confirm(harness)

        confirm = asyncio.create_task(harness.send("secret123"))
        name = asyncio.create_task(harness.send("Ali Valiyev"))
        await asyncio.sleep(0)
        gate.set()
        await asyncio.gather(confirm, name)

        state = await harness.session()
        assert state.step == "JOB_TITLE"
        assert state.data.full_name == "Ali Valiyev"

    @pytest.mark.asyncio
    async def test_user_locks_are_released(self, harness):
        await asyncio.gather(
            harness.start(user_id="1"),
            harness.start(user_id="2"),
            harness.send("🇷🇺 Русский", user_id="1"),
        )
        assert harness.engine._locks == {}
        assert (await harness.session("1")).step == "EMAIL"
