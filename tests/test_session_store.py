# tests/test_session_store.py
"""Tests for the in-memory session store"""
import pytest

from app.core.engine.domain import OnboardingStep, SessionState
from app.core.engine.errors import SessionNotFoundError
from app.infra.memory_session_store import InMemorySessionStore


class TestInMemorySessionStore:
    def setup_method(self):
        self.store = InMemorySessionStore()

    @pytest.mark.asyncio
    async def test_get_unknown_user(self):
        assert await self.store.get("1") is None

    @pytest.mark.asyncio
    async def test_init_creates_language_step(self):
        state = await self.store.init("1")
        assert state.step == OnboardingStep.LANGUAGE.value
        assert state.language == "ru"
        assert state.data.email is None
        assert await self.store.get("1") == state

    @pytest.mark.asyncio
    async def test_init_replaces_existing_session(self):
        await self.store.init("1")
        await self.store.update("1", step=OnboardingStep.BIO, email="a@b.cd")
        state = await self.store.init("1", language="uz")
        assert state.step == "LANGUAGE"
        assert state.language == "uz"
        assert state.data.email is None

    @pytest.mark.asyncio
    async def test_default_language_is_configurable(self):
        store = InMemorySessionStore(default_language="uz")
        assert (await store.init("1")).language == "uz"

    @pytest.mark.asyncio
    async def test_update_merges_fields(self):
        await self.store.init("1")
        await self.store.update("1", step=OnboardingStep.EMAIL, language="uz")
        state = await self.store.update("1", email="a@b.cd", full_name="Ali")
        assert state.step == "EMAIL"
        assert state.language == "uz"
        assert state.data.email == "a@b.cd"
        assert state.data.full_name == "Ali"
        assert state.updated_at >= state.created_at

    @pytest.mark.asyncio
    async def test_update_does_not_mutate_previous_value(self):
        before = await self.store.init("1")
        await self.store.update("1", email="a@b.cd")
        assert before.data.email is None

    @pytest.mark.asyncio
    async def test_update_unknown_user(self):
        with pytest.raises(SessionNotFoundError):
            await self.store.update("missing", step="EMAIL")

    @pytest.mark.asyncio
    async def test_update_unknown_field(self):
        await self.store.init("1")
        with pytest.raises(TypeError):
            await self.store.update("1", favourite_colour="blue")

    @pytest.mark.asyncio
    async def test_save_replaces_value(self):
        await self.store.init("7")
        await self.store.save(SessionState(user_id="7", step="BIO"))
        assert (await self.store.get("7")).step == "BIO"
        assert await self.store.get("8") is None
