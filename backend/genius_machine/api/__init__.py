"""
API package
"""

from .archetypes import router as archetypes_router
from .learning import router as learning_router
from .runs import router as runs_router

__all__ = ["archetypes_router", "learning_router", "runs_router"]
