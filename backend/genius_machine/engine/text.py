"""Lightweight text measures shared by synthesis and tension detection"""

import re
from collections import Counter
from typing import Iterable, List, Set

STOP_WORDS = frozenset("""
a about above after again against all also am an and any are as at be because been
before being below between both but by can could did do does doing down during each
few for from further had has have having he her here hers him his how i if in into is
it its itself just me more most my no nor not now of off on once only or other our ours
out over own same she should so some such than that the their them then there these they
this those through to too under until up very was we were what when where which while who
whom why will with would you your yours yet one may might must
""".split())

DISAGREEMENT_MARKERS = (
    "disagree", "contrary", "however", "but", "challenge", "oppose",
    "reject", "wrong", "flawed", "unlikely", "overlooks", "ignores",
)

ACTION_WORDS = ("should", "could", "recommend", "suggest", "implement", "consider", "try")

_WORD_RE = re.compile(r"[a-z][a-z'-]*")
_SENTENCE_RE = re.compile(r"(?<=[.!?])\s+")


def words(text: str) -> List[str]:
    return _WORD_RE.findall((text or "").lower())


def content_words(text: str) -> List[str]:
    """Words with stop words and very short tokens removed"""
    return [w for w in words(text) if w not in STOP_WORDS and len(w) > 2]


def word_set(text: str) -> Set[str]:
    return set(content_words(text))


def jaccard(first: Iterable[str], second: Iterable[str]) -> float:
    a, b = set(first), set(second)
    if not a and not b:
        return 1.0
    return len(a & b) / len(a | b)


def similarity(first: str, second: str) -> float:
    return jaccard(word_set(first), word_set(second))


def sentences(text: str) -> List[str]:
    return [s.strip() for s in _SENTENCE_RE.split((text or "").strip()) if s.strip()]


def count_markers(text: str, markers: Iterable[str] = DISAGREEMENT_MARKERS) -> int:
    tokens = Counter(words(text))
    return sum(tokens[m] for m in markers)


def keywords(text: str, limit: int = 5) -> List[str]:
    """Most frequent content words, ties broken alphabetically"""
    counts = Counter(content_words(text))
    ranked = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    return [w for w, _ in ranked[:limit]]


def truncate(text: str, limit: int) -> str:
    text = (text or "").strip()
    if len(text) <= limit:
        return text
    return text[: limit - 3].rstrip() + "..."
