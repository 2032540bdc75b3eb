"""Perspective generation

Providers implement the raw text generation capability (OpenAI, Claude,
or a deterministic local simulation). The invoker adds the per-call
time budget and the single retry on transient failures.
"""

from .base import BasePerspectiveProvider
from .factory import ProviderFactory
from .invoker import PerspectiveInvoker
from .simulated_provider import SimulatedProvider

__all__ = [
    "BasePerspectiveProvider",
    "ProviderFactory",
    "PerspectiveInvoker",
    "SimulatedProvider",
]
