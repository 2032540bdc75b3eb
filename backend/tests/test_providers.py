"""
Tests for providers, the provider factory and persona prompts
"""
import pytest

from genius_machine.agent.factory import ProviderFactory
from genius_machine.agent.openai_provider import OpenAIProvider
from genius_machine.agent.prompts import SYNTHESIS_PERSONA, build_persona_prompt
from genius_machine.agent.simulated_provider import SimulatedProvider
from genius_machine.config import Config, ModelConfig
from genius_machine.engine.models import Archetype, LanguageStyle
from genius_machine.engine.registry import ArchetypeRegistry
from genius_machine.engine.text import count_markers

PROMPT = "QUESTION: Should a small bakery open a second location?\n\nLAYER 1 of 3: Establish foundational understanding."


@pytest.fixture
def registry() -> ArchetypeRegistry:
    return ArchetypeRegistry()


class TestSimulatedProvider:
    """Deterministic local generation"""

    @pytest.mark.asyncio
    async def test_same_input_same_text(self, registry):
        provider = SimulatedProvider(Config())
        skeptic = registry.get("skeptic")

        first = await provider.generate(skeptic, PROMPT, 1.0)
        second = await SimulatedProvider(Config()).generate(skeptic, PROMPT, 1.0)
        assert first == second

    @pytest.mark.asyncio
    async def test_personas_differ(self, registry):
        provider = SimulatedProvider(Config())
        visionary = await provider.generate(registry.get("visionary"), PROMPT, 1.0)
        skeptic = await provider.generate(registry.get("skeptic"), PROMPT, 1.0)
        assert visionary != skeptic

    @pytest.mark.asyncio
    async def test_skeptics_voice_disagreement(self, registry):
        provider = SimulatedProvider(Config())
        text = await provider.generate(registry.get("skeptic"), PROMPT, 1.0)
        assert count_markers(text) >= 1

    @pytest.mark.asyncio
    async def test_text_mentions_question_terms(self, registry):
        provider = SimulatedProvider(Config())
        text = await provider.generate(registry.get("analyst"), PROMPT, 1.0)
        assert any(term in text for term in ("bakery", "location", "second", "small", "open"))


@pytest.mark.unit
class TestProviderFactory:
    """Model name routing"""

    def test_simulated(self):
        assert isinstance(ProviderFactory.create("simulated", Config()), SimulatedProvider)
        assert isinstance(ProviderFactory.create("local", Config()), SimulatedProvider)

    def test_unknown_model(self):
        with pytest.raises(ValueError):
            ProviderFactory.create("parrot", Config())

    def test_missing_api_key_falls_back(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        config = Config(model=ModelConfig(primary="openai", fallback="simulated"))

        with pytest.raises(ValueError):
            OpenAIProvider(config)
        assert isinstance(ProviderFactory.create_primary(config), SimulatedProvider)

    def test_openai_with_key(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        provider = ProviderFactory.create("gpt-4o", Config())

        assert isinstance(provider, OpenAIProvider)
        assert provider.model == "gpt-4o"


@pytest.mark.unit
class TestPersonaPrompt:
    """System prompt built from personality"""

    def test_high_scalars(self):
        persona = Archetype(
            id="x", name="The Firebrand", description="Pushes hard",
            language_style=LanguageStyle.DISRUPTIVE,
            imagination=9, skepticism=9, aggression=9, emotionality=9,
            constraint="Never agree quickly",
        )
        prompt = build_persona_prompt(persona)

        assert prompt.startswith("You are The Firebrand. Pushes hard")
        assert "highly creative" in prompt
        assert "rigorous proof" in prompt
        assert "highly confrontational" in prompt
        assert "provocative" in prompt
        assert "Additional constraints: Never agree quickly" in prompt

    def test_low_scalars(self):
        prompt = build_persona_prompt(Archetype(id="y", name="Calm", imagination=1, skepticism=1, aggression=1, emotionality=1))
        assert "grounded and realistic" in prompt
        assert "gentle and diplomatic" in prompt
        assert "Additional constraints" not in prompt

    def test_synthesis_persona(self):
        assert SYNTHESIS_PERSONA.id == "synthesis-agent"
