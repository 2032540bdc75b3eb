"""
Tests for the perspective invoker: time budget, retries and error mapping
"""
import asyncio
import time
from unittest.mock import AsyncMock

import pytest

from conftest import QUESTION, ScriptedProvider
from genius_machine.agent.base import BasePerspectiveProvider
from genius_machine.agent.invoker import PerspectiveInvoker
from genius_machine.config import Config, EngineConfig
from genius_machine.engine.context import build_carried_context
from genius_machine.engine.errors import (
    InvocationTimeout,
    PersonaValidationError,
    TransientUpstreamError,
    UpstreamError,
)
from genius_machine.engine.models import Archetype
from genius_machine.engine.registry import ArchetypeRegistry

SETTINGS = EngineConfig(invocation_timeout_seconds=0.2, retry_backoff_seconds=0.0, max_retries=1)
CONTEXT = build_carried_context(1, 1, (), 240)


class MockProvider(BasePerspectiveProvider):
    """Provider whose generate is an AsyncMock"""

    name = "mock"

    def __init__(self, side_effect):
        super().__init__(Config())
        self.generate = AsyncMock(side_effect=side_effect)

    async def generate(self, persona, prompt, timeout):
        raise NotImplementedError


@pytest.fixture
def skeptic() -> Archetype:
    return ArchetypeRegistry().get("skeptic")


class TestInvoke:
    """Successful and failing invocations"""

    @pytest.mark.asyncio
    async def test_returns_provider_text(self, skeptic):
        invoker = PerspectiveInvoker(ScriptedProvider(), SETTINGS)
        text = await invoker.invoke(skeptic, QUESTION, CONTEXT)
        assert text.startswith("The Skeptic at layer 1 says:")

    @pytest.mark.asyncio
    async def test_prompt_carries_question_and_layer(self, skeptic):
        provider = ScriptedProvider()
        await PerspectiveInvoker(provider, SETTINGS).invoke(skeptic, QUESTION, CONTEXT)

        _, layer, prompt = provider.prompts[0]
        assert layer == 1
        assert QUESTION in prompt

    @pytest.mark.asyncio
    async def test_timeout(self, skeptic):
        invoker = PerspectiveInvoker(ScriptedProvider(hang={"skeptic": 1}), SETTINGS)
        with pytest.raises(InvocationTimeout) as exc_info:
            await invoker.invoke(skeptic, QUESTION, CONTEXT)
        assert exc_info.value.archetype_id == "skeptic"

    @pytest.mark.asyncio
    async def test_transient_error_retried_once(self, skeptic):
        provider = MockProvider([TransientUpstreamError("429", "skeptic"), "recovered"])
        text = await PerspectiveInvoker(provider, SETTINGS).invoke(skeptic, QUESTION, CONTEXT)

        assert text == "recovered"
        assert provider.generate.await_count == 2

    @pytest.mark.asyncio
    async def test_retry_budget_is_bounded(self, skeptic):
        provider = MockProvider(TransientUpstreamError("429", "skeptic"))
        with pytest.raises(TransientUpstreamError):
            await PerspectiveInvoker(provider, SETTINGS).invoke(skeptic, QUESTION, CONTEXT)
        assert provider.generate.await_count == 2

    @pytest.mark.asyncio
    async def test_retry_shares_one_time_budget(self, skeptic):
        async def slow_then_hang(persona, prompt, timeout):
            if provider.generate.await_count == 1:
                await asyncio.sleep(0.15)
                raise TransientUpstreamError("503", persona.id)
            await asyncio.sleep(3600)

        provider = MockProvider(slow_then_hang)
        start = time.monotonic()
        with pytest.raises(InvocationTimeout):
            await PerspectiveInvoker(provider, SETTINGS).invoke(skeptic, QUESTION, CONTEXT)

        assert time.monotonic() - start < 0.3
        assert provider.generate.await_count == 2
        assert provider.generate.await_args_list[1].args[2] < 0.1

    @pytest.mark.asyncio
    async def test_non_transient_error_is_not_retried(self, skeptic):
        provider = MockProvider(UpstreamError("bad request", "skeptic"))
        with pytest.raises(UpstreamError):
            await PerspectiveInvoker(provider, SETTINGS).invoke(skeptic, QUESTION, CONTEXT)
        assert provider.generate.await_count == 1

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_wrapped(self, skeptic):
        provider = MockProvider(RuntimeError("socket closed"))
        with pytest.raises(UpstreamError) as exc_info:
            await PerspectiveInvoker(provider, SETTINGS).invoke(skeptic, QUESTION, CONTEXT)
        assert "socket closed" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_blank_persona_is_rejected_without_calling_provider(self):
        provider = MockProvider(["unused"])
        persona = Archetype(id="ghost", name=" ")
        with pytest.raises(PersonaValidationError):
            await PerspectiveInvoker(provider, SETTINGS).invoke(persona, QUESTION, CONTEXT)
        provider.generate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_concurrent_invocations_share_one_invoker(self):
        provider = ScriptedProvider(delay=0.05)
        invoker = PerspectiveInvoker(provider, SETTINGS)
        archetypes = ArchetypeRegistry().snapshot()

        texts = await asyncio.gather(*(invoker.invoke(a, QUESTION, CONTEXT) for a in archetypes))

        assert len(texts) == len(archetypes)
        for archetype, text in zip(archetypes, texts):
            assert text.startswith(archetype.name)
