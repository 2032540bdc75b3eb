"""Final synthesis rendering"""

from typing import List, Optional, Sequence

from .models import LayerResult, OutputStyle
from .synthesis import attribute
from .text import sentences, truncate

LAYER_NOTE_CHARS = 160


def render_final_synthesis(
    layers: Sequence[LayerResult],
    style: OutputStyle = OutputStyle.COMPREHENSIVE,
    note: Optional[str] = None,
) -> str:
    """
    Render the final synthesis from completed layers.

    Args:
        layers: Completed layers, at least one
        style: Output style
        note: Appended when fewer layers than requested were processed

    Returns:
        Final synthesis text
    """
    last = layers[-1]

    if style == OutputStyle.ULTRA_CONCISE:
        if last.low_diversity:
            first = sentences(last.synthesis)
            text = first[0] if first else last.synthesis
        else:
            text = " ".join(attribute(last.survivors))
    elif style == OutputStyle.INSIGHT_SUMMARY:
        text = last.synthesis
    else:
        parts: List[str] = [
            f"Layer {layer.layer_index}: {truncate(layer.synthesis, LAYER_NOTE_CHARS)}"
            for layer in layers[:-1]
        ]
        parts.append(last.synthesis)
        text = "\n\n".join(parts)

    if note:
        text = f"{text}\n\n({note})"
    return text
