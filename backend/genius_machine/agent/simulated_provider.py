"""Deterministic local provider, no network access"""

import asyncio
import hashlib
import logging
import re
from typing import List, Optional

from .base import BasePerspectiveProvider
from ..config import Config
from ..engine.models import Archetype
from ..engine.text import keywords

logger = logging.getLogger(__name__)

OPENINGS = {
    "imagination": (
        "Picture {topic} as the seed of something far larger than the current plan.",
        "The real opportunity in {topic} lies beyond the obvious next step.",
        "Imagine {topic} reframed as a platform rather than a single decision.",
    ),
    "skepticism": (
        "However, the case for {topic} rests on assumptions nobody has tested.",
        "I reject the premise that {topic} is as clear-cut as it looks.",
        "The evidence behind {topic} is thin, and that should worry us.",
    ),
    "aggression": (
        "This framing of {topic} is wrong, and defending it wastes time.",
        "I challenge the comfortable consensus around {topic}.",
        "Stop treating {topic} as settled; it is the weakest link here.",
    ),
    "emotionality": (
        "What people feel about {topic} will decide it before any spreadsheet does.",
        "Underneath {topic} sits a question of trust and identity.",
        "The energy around {topic} matters as much as the numbers.",
    ),
}

STANCES_CRITICAL = (
    "But the downside scenario around {focus} is being ignored.",
    "However, the risk concentrated in {focus} deserves far more scrutiny than it gets.",
)
STANCES_HOPEFUL = (
    "The upside in {focus} compounds if momentum is protected.",
    "Momentum around {focus} creates options that did not exist before.",
)
ACTIONS = (
    "You should test {focus} with a small, reversible experiment first.",
    "Consider a staged plan that measures {focus} before committing fully.",
)

_QUESTION_RE = re.compile(r"^QUESTION:\s*(.+)$", re.MULTILINE)
_LAYER_RE = re.compile(r"^LAYER (\d+)", re.MULTILINE)


class SimulatedProvider(BasePerspectiveProvider):
    """
    Local simulation of an archetype - deterministic, NOT an LLM.

    The same persona and prompt always produce the same text. Sentences
    are picked from the persona's dominant trait, so skeptical and
    aggressive archetypes produce disagreement the tension detector
    can see.
    """

    name = "simulated"

    def __init__(self, config: Optional[Config] = None, latency_seconds: float = 0.0):
        super().__init__(config)
        self.latency_seconds = latency_seconds

    @staticmethod
    def _pick(options, seed: int, offset: int = 0) -> str:
        return options[(seed >> (offset * 8)) % len(options)]

    @staticmethod
    def _dominant_trait(persona: Archetype) -> str:
        scores = {
            "imagination": persona.imagination,
            "skepticism": persona.skepticism,
            "aggression": persona.aggression,
            "emotionality": persona.emotionality,
        }
        return max(scores, key=lambda k: scores[k])

    async def generate(self, persona: Archetype, prompt: str, timeout: float) -> str:
        if self.latency_seconds:
            await asyncio.sleep(self.latency_seconds)

        seed = int(hashlib.sha256(f"{persona.id}|{prompt}".encode("utf-8")).hexdigest(), 16)
        match = _QUESTION_RE.search(prompt)
        question = match.group(1) if match else prompt
        terms = keywords(question, 4) or ["this question"]
        topic = " ".join(terms[:2])
        focus = terms[(seed % len(terms))]
        layer_match = _LAYER_RE.search(prompt)
        layer = int(layer_match.group(1)) if layer_match else 1

        parts: List[str] = [
            self._pick(OPENINGS[self._dominant_trait(persona)], seed).format(topic=topic)
        ]

        if persona.skepticism >= 7:
            parts.append(self._pick(STANCES_CRITICAL, seed, 1).format(focus=focus))
        else:
            parts.append(self._pick(STANCES_HOPEFUL, seed, 1).format(focus=focus))

        if "EARLIER PERSPECTIVES IN THIS LAYER" in prompt and persona.aggression >= 6:
            parts.append("I disagree with the view just offered; it overlooks what is at stake.")
        if persona.imagination < 6:
            parts.append(self._pick(ACTIONS, seed, 2).format(focus=focus))
        if layer > 1:
            parts.append(f"At layer {layer}, {persona.name} sharpens this around {focus}.")

        return " ".join(parts)
