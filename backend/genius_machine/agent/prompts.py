"""Prompt construction for archetype invocations"""

from typing import List

from ..engine.context import InvocationContext
from ..engine.models import Archetype, LanguageStyle, OutputType

STYLE_INSTRUCTIONS = {
    LanguageStyle.POETIC: "Express yourself in poetic, metaphorical language.",
    LanguageStyle.LOGICAL: "Use clear, logical, and structured language.",
    LanguageStyle.NARRATIVE: "Tell stories and use narrative structures in your responses.",
    LanguageStyle.DISRUPTIVE: "Use provocative and challenging language to disrupt conventional thinking.",
    LanguageStyle.BLUNT: "Be direct, blunt, and uncompromising in your language.",
    LanguageStyle.TECHNICAL: "Use precise, technical language with detailed explanations.",
}

OUTPUT_TYPE_GUIDANCE = {
    OutputType.PRACTICAL: "Favor concrete, actionable recommendations.",
    OutputType.THEORETICAL: "Favor models, mechanisms and explanatory frameworks.",
    OutputType.PHILOSOPHICAL: "Favor first principles, meaning and values.",
    OutputType.ABSTRACT: "Favor analogies, patterns and conceptual leaps.",
}

SYNTHESIS_PERSONA = Archetype(
    id="synthesis-agent",
    name="Synthesis Agent",
    description="Integrates every archetypal perspective into one coherent insight",
    language_style=LanguageStyle.LOGICAL,
    imagination=7, skepticism=5, aggression=2, emotionality=4,
    constraint="Do not introduce claims no perspective made",
)


def _band(value: float, high: str, mid: str, low: str) -> str:
    if value >= 8:
        return high
    if value >= 5:
        return mid
    return low


def build_persona_prompt(persona: Archetype) -> str:
    """
    Build the system prompt for an archetype from its personality.

    Args:
        persona: Archetype with scalars in [0, 10]

    Returns:
        System prompt text
    """
    traits = [
        _band(
            persona.imagination,
            "Your thinking is highly creative and speculative. You explore wild possibilities and unconventional ideas.",
            "You balance creative thinking with practical considerations.",
            "You are grounded and realistic, focusing on what's proven and practical.",
        ),
        _band(
            persona.skepticism,
            "You demand rigorous proof and question every assumption.",
            "You maintain healthy skepticism while being open to new ideas.",
            "You are trusting and accepting of new concepts and possibilities.",
        ),
        _band(
            persona.aggression,
            "You are highly confrontational and direct. You challenge ideas forcefully.",
            "You are assertive and willing to push back on ideas when necessary.",
            "You are gentle and diplomatic in your approach to challenging ideas.",
        ),
        _band(
            persona.emotionality,
            "You are deeply emotional and intuitive, and trust emotional wisdom.",
            "You balance emotional insights with rational analysis.",
            "You are analytical and detached, focusing on logic over emotion.",
        ),
        STYLE_INSTRUCTIONS[persona.language_style],
    ]

    prompt = f"You are {persona.name}. {persona.description}\n\n" + " ".join(traits)
    if persona.constraint:
        prompt += f"\n\nAdditional constraints: {persona.constraint}"
    prompt += (
        "\n\nProvide a focused 2-3 sentence perspective on the question. "
        "Be specific and insightful from your archetypal viewpoint."
    )
    return prompt


def build_invocation_prompt(question: str, context: InvocationContext) -> str:
    """Build the user prompt for one archetype invocation"""
    lines: List[str] = [f"QUESTION: {question}", ""]

    if context.enhanced:
        lines.append(
            f"LAYER {context.layer_index} of {context.total_layers}: {context.mission} "
            f"(focus: {context.focus})."
        )
    else:
        lines.append(f"LAYER {context.layer_index} of {context.total_layers}.")

    if context.prior_layers:
        lines += ["", "PREVIOUS LAYER INSIGHTS:"] + [f"- {s}" for s in context.prior_layers]
    if context.prior_perspectives:
        lines += ["", "PREVIOUS LAYER PERSPECTIVES:"] + [f"- {s}" for s in context.prior_perspectives]
    if context.prior_tensions:
        lines += ["", "DISCOVERED TENSIONS:"] + [f"- {s}" for s in context.prior_tensions]
    if context.peer_perspectives:
        lines += ["", "EARLIER PERSPECTIVES IN THIS LAYER (DISAGREE where you see it differently):"]
        lines += [f"- {s}" for s in context.peer_perspectives]

    if context.directive:
        lines += ["", context.directive]
    if context.output_type is not None:
        lines.append(OUTPUT_TYPE_GUIDANCE[context.output_type])

    return "\n".join(lines)


def build_synthesis_prompt(question: str, layer_index: int, attributed: List[str]) -> str:
    """Prompt asking the synthesis persona to integrate a layer"""
    lines = [
        f"QUESTION: {question}",
        "",
        f"PERSPECTIVES FROM LAYER {layer_index}:",
    ]
    lines += [f"- {a}" for a in attributed]
    lines += [
        "",
        "Write one short paragraph integrating these perspectives. "
        "Name the core tension and the insight that emerges from it.",
    ]
    return "\n".join(lines)
