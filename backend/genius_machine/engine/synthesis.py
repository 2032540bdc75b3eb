"""Layer synthesis"""

import logging
from typing import List, Optional, Sequence, Tuple

from .errors import InvocationFailure
from ..agent.prompts import SYNTHESIS_PERSONA, build_synthesis_prompt
from .models import Perspective
from .text import sentences, word_set

logger = logging.getLogger(__name__)


def distinctive_sentence(perspective: Perspective, others: Sequence[Perspective]) -> str:
    """
    Sentence of a perspective that shares the fewest words with the others.

    Ties keep the earliest sentence.
    """
    other_words = set()
    for other in others:
        other_words |= word_set(other.text)

    best, best_score = None, -1.0
    for sentence in sentences(perspective.text):
        vocab = word_set(sentence)
        score = len(vocab - other_words) / len(vocab) if vocab else 0.0
        if score > best_score:
            best, best_score = sentence, score
    return best or perspective.text.strip()


def attribute(survivors: Sequence[Perspective]) -> List[str]:
    """One attributed, distinctive line per surviving archetype, in the given order"""
    lines = []
    for p in survivors:
        others = [o for o in survivors if o.archetype_id != p.archetype_id]
        lines.append(f"{p.archetype_name}: {distinctive_sentence(p, others)}")
    return lines


def extractive_synthesis(survivors: Sequence[Perspective], themes: Sequence[str] = ()) -> str:
    text = " ".join(attribute(survivors))
    if themes:
        text += f" Shared ground: {', '.join(themes)}."
    return text


class LayerSynthesizer:
    """
    Combines the surviving perspectives of a layer.

    Survivors must be passed in registry order; completion order never
    reaches this class, which keeps the output reproducible.
    """

    def __init__(self, invoker=None):
        self.invoker = invoker

    async def synthesize(
        self,
        question: str,
        layer_index: int,
        survivors: Sequence[Perspective],
        themes: Sequence[str] = (),
        enhanced: bool = False,
    ) -> Tuple[str, bool]:
        """
        Build the synthesis text for a layer.

        Args:
            question: Run question
            layer_index: 1-based layer index
            survivors: Successful perspectives in registry order
            themes: Convergent themes of the layer
            enhanced: Ask the provider for an integration paragraph first

        Returns:
            (synthesis text, low-diversity flag)
        """
        if len(survivors) == 1:
            return survivors[0].text, True

        text = extractive_synthesis(survivors, themes)
        integration = await self._integrate(question, layer_index, survivors) if enhanced else None
        if integration:
            text = f"{integration}\n\n{text}"
        return text, False

    async def _integrate(
        self, question: str, layer_index: int, survivors: Sequence[Perspective]
    ) -> Optional[str]:
        if self.invoker is None:
            return None

        prompt = build_synthesis_prompt(
            question, layer_index, [f"{p.archetype_name}: {p.text}" for p in survivors]
        )
        try:
            return (await self.invoker.generate(SYNTHESIS_PERSONA, prompt)).strip() or None
        except InvocationFailure as e:
            logger.warning(f"Layer {layer_index} integration failed, using extractive synthesis: {e}")
            return None
