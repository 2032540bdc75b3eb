"""Question domain and complexity detection - deterministic, NOT an LLM"""

import re
from typing import List, Tuple

DOMAIN_PATTERNS: List[Tuple[str, re.Pattern]] = [
    ("Philosophy", re.compile(r"\b(why|meaning|purpose|existence|consciousness|reality|truth|belief|ethic\w*|moral\w*)\b", re.I)),
    ("Business", re.compile(r"\b(startup|business|market\w*|revenue|customer\w*|pivot|strategy|profit\w*|company|product)\b", re.I)),
    ("Technical", re.compile(r"\b(software|code|system\w*|architecture|algorithm\w*|technical|engineering|database|api)\b", re.I)),
    ("Creative", re.compile(r"\b(art|creative|design|story|write|writing|music|novel|imagin\w*)\b", re.I)),
    ("Social", re.compile(r"\b(society|social|community|culture|people|relationship\w*|politic\w*|education)\b", re.I)),
]

DEFAULT_DOMAIN = "General"
COMPLEX_MARKERS = re.compile(r"\b(and|while|whether|versus|vs|trade-?offs?|if)\b|[,;:]", re.I)


def detect_domain(question: str) -> str:
    """Domain whose keywords match the question most often"""
    best, best_hits = DEFAULT_DOMAIN, 0
    for domain, pattern in DOMAIN_PATTERNS:
        hits = len(pattern.findall(question or ""))
        if hits > best_hits:
            best, best_hits = domain, hits
    return best


def assess_complexity(question: str) -> int:
    """8 for long or multi-clause questions, otherwise 5"""
    question = question or ""
    if len(question.split()) > 25 or len(COMPLEX_MARKERS.findall(question)) >= 2:
        return 8
    return 5
