"""
Pytest configuration and shared fixtures for Genius Machine tests.

ScriptedProvider is a deterministic stand-in for a model provider: the
same persona and layer always give the same text, and it records when
each call starts and ends so ordering can be asserted.
"""
import asyncio
import re
from typing import Dict, List, Optional, Tuple

import pytest

from genius_machine.agent.base import BasePerspectiveProvider
from genius_machine.config import Config, EngineConfig, LearningConfig
from genius_machine.engine.errors import TransientUpstreamError, UpstreamError
from genius_machine.engine.models import Archetype
from genius_machine.engine.runner import InsightEngine
from genius_machine.learning.store import InMemoryLearningStore

QUESTION = "Should a 10-person startup pivot its core product?"

_LAYER_RE = re.compile(r"^LAYER (\d+)", re.MULTILINE)

CRITICAL_TEXT = "However, I reject this plan; it is wrong and flawed."
HOPEFUL_TEXT = "This opens a bold opportunity for growth and reinvention."
PRACTICAL_TEXT = "Teams should implement a staged rollout and measure retention carefully."


# =============================================================================
# Providers
# =============================================================================

class ScriptedProvider(BasePerspectiveProvider):
    """Deterministic provider with scripted failures"""

    name = "scripted"

    def __init__(
        self,
        delay: float = 0.0,
        hang: Optional[Dict[str, int]] = None,
        fail: Optional[Dict[str, int]] = None,
        transient: Optional[Dict[str, int]] = None,
        texts: Optional[Dict[str, str]] = None,
    ):
        super().__init__(Config())
        self.delay = delay
        self.hang = hang or {}            # archetype id -> first layer that hangs
        self.fail = fail or {}            # archetype id -> first layer that fails
        self.transient = dict(transient or {})  # archetype id -> transient failures left
        self.texts = texts or {}
        self.log: List[Tuple[str, str, int]] = []
        self.prompts: List[Tuple[str, int, str]] = []

    @staticmethod
    def layer_of(prompt: str) -> int:
        match = _LAYER_RE.search(prompt)
        return int(match.group(1)) if match else 0

    @staticmethod
    def _applies(rules: Dict[str, int], persona_id: str, layer: int) -> bool:
        first = rules.get(persona_id, rules.get("*"))
        return first is not None and layer >= first

    def text_for(self, persona: Archetype, layer: int) -> str:
        if persona.id in self.texts:
            body = self.texts[persona.id]
        elif persona.skepticism >= 7:
            body = CRITICAL_TEXT
        elif persona.imagination >= 7:
            body = HOPEFUL_TEXT
        else:
            body = PRACTICAL_TEXT
        return f"{persona.name} at layer {layer} says: {body}"

    async def generate(self, persona: Archetype, prompt: str, timeout: float) -> str:
        layer = self.layer_of(prompt)
        self.prompts.append((persona.id, layer, prompt))
        self.log.append(("start", persona.id, layer))
        try:
            if self.transient.get(persona.id, 0) > 0:
                self.transient[persona.id] -= 1
                raise TransientUpstreamError("rate limited", persona.id)
            if self._applies(self.fail, persona.id, layer):
                raise UpstreamError("scripted failure", persona.id)
            if persona.id == "synthesis-agent":
                return f"Integrated view of {prompt.count('- ')} perspectives."
            if self._applies(self.hang, persona.id, layer):
                await asyncio.sleep(3600)
            if self.delay:
                await asyncio.sleep(self.delay)
            return self.text_for(persona, layer)
        finally:
            self.log.append(("end", persona.id, layer))

    def calls(self, layer: int) -> List[Tuple[str, str]]:
        """(event, archetype id) pairs for one layer, archetypes only"""
        return [(kind, aid) for kind, aid, lyr in self.log if lyr == layer and aid != "synthesis-agent"]


# =============================================================================
# Configuration Fixtures
# =============================================================================

def make_config(**engine_overrides) -> Config:
    engine = {
        "invocation_timeout_seconds": 0.3,
        "run_timeout_seconds": 10.0,
        "retry_backoff_seconds": 0.0,
        "early_termination_confidence": 80.0,
    }
    engine.update(engine_overrides)
    return Config(engine=EngineConfig(**engine), learning=LearningConfig(store_path=""))


@pytest.fixture
def config() -> Config:
    return make_config()


@pytest.fixture
def provider() -> ScriptedProvider:
    return ScriptedProvider()


def make_engine(provider: BasePerspectiveProvider, **engine_overrides) -> InsightEngine:
    return InsightEngine(
        make_config(**engine_overrides),
        provider=provider,
        store=InMemoryLearningStore(min_samples=1),
    )


@pytest.fixture
def archetypes(config) -> Dict[str, Archetype]:
    from genius_machine.engine.registry import ArchetypeRegistry
    return {a.id: a for a in ArchetypeRegistry(config).list()}
