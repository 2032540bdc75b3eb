"""Archetype registry: built-in personas plus user edits"""

import logging
import re
import threading
from typing import Dict, Iterable, List, Optional, Tuple

from .models import Archetype, LanguageStyle
from ..config import Config

logger = logging.getLogger(__name__)


BUILTIN_ARCHETYPES: Tuple[Archetype, ...] = (
    Archetype(
        id="analyst",
        name="The Analyst",
        description="Breaks down complex problems into components and examines them systematically",
        language_style=LanguageStyle.LOGICAL,
        imagination=6, skepticism=8, aggression=4, emotionality=3,
        constraint="Focus on logical analysis and evidence-based reasoning",
    ),
    Archetype(
        id="visionary",
        name="The Visionary",
        description="Sees big picture possibilities and future potential",
        language_style=LanguageStyle.POETIC,
        imagination=9, skepticism=3, aggression=6, emotionality=7,
        constraint="Explore innovative possibilities and transformative potential",
    ),
    Archetype(
        id="skeptic",
        name="The Skeptic",
        description="Questions assumptions and identifies potential problems",
        language_style=LanguageStyle.BLUNT,
        imagination=4, skepticism=9, aggression=7, emotionality=2,
        constraint="Challenge assumptions and identify risks or flaws",
    ),
    Archetype(
        id="pragmatist",
        name="The Pragmatist",
        description="Focuses on practical implementation and real-world constraints",
        language_style=LanguageStyle.TECHNICAL,
        imagination=5, skepticism=6, aggression=5, emotionality=4,
        constraint="Emphasize practical solutions and realistic implementation",
    ),
    Archetype(
        id="synthesizer",
        name="The Synthesizer",
        description="Finds connections and creates unified understanding from diverse elements",
        language_style=LanguageStyle.NARRATIVE,
        imagination=7, skepticism=5, aggression=3, emotionality=6,
        constraint="Connect different perspectives and find unifying themes",
    ),
    Archetype(
        id="mystic",
        name="The Mystic",
        description="Perceives patterns, emergent properties and the interconnectedness of ideas",
        language_style=LanguageStyle.POETIC,
        imagination=9, skepticism=2, aggression=2, emotionality=9,
    ),
    Archetype(
        id="contrarian",
        name="The Contrarian",
        description="Deliberately takes opposing viewpoints to reveal hidden assumptions",
        language_style=LanguageStyle.DISRUPTIVE,
        imagination=7, skepticism=8, aggression=9, emotionality=4,
    ),
    Archetype(
        id="craftsman",
        name="The Craftsman",
        description="Grounds ideas in actionable steps, constraints and quality execution",
        language_style=LanguageStyle.TECHNICAL,
        imagination=4, skepticism=6, aggression=3, emotionality=3,
    ),
    Archetype(
        id="realist",
        name="The Realist",
        description="Cuts through illusions and exposes uncomfortable truths",
        language_style=LanguageStyle.BLUNT,
        imagination=3, skepticism=9, aggression=8, emotionality=2,
    ),
)

DEFAULT_ACTIVE_IDS = ("analyst", "visionary", "skeptic", "pragmatist", "synthesizer")


def slugify(name: str) -> str:
    """Derive a stable archetype id from its name"""
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    if slug.startswith("the-"):
        slug = slug[4:]
    return slug or "custom"


def build_custom_archetype(data: Dict) -> Archetype:
    """
    Build an archetype from loosely specified user input.

    Missing personality scalars default to 5 and a missing language
    style defaults to logical.

    Args:
        data: Mapping with at least a name or id

    Returns:
        Archetype with clamped scalars
    """
    name = data.get("name") or "Custom Archetype"
    return Archetype(
        id=data.get("id") or slugify(name),
        name=name,
        description=data.get("description") or "A custom archetype",
        language_style=data.get("language_style"),
        imagination=data.get("imagination"),
        skepticism=data.get("skepticism"),
        aggression=data.get("aggression"),
        emotionality=data.get("emotionality"),
        constraint=data.get("constraint") or None,
    )


class ArchetypeRegistry:
    """
    Live, editable set of archetypes.

    Runs never hold a reference to the registry: they receive a
    snapshot tuple taken at run start, so edits between (or during)
    runs only affect later runs.
    """

    def __init__(self, config: Optional[Config] = None):
        self._lock = threading.Lock()
        self._archetypes: Dict[str, Archetype] = {a.id: a for a in BUILTIN_ARCHETYPES}
        self._active: List[str] = list(DEFAULT_ACTIVE_IDS)

        if config is not None:
            self._apply_overrides(config)

    def _apply_overrides(self, config: Config):
        for override in config.archetypes:
            fields = override.model_dump(exclude_none=True, exclude={"active"})
            existing = self._archetypes.get(override.id)
            if existing is not None:
                merged = existing.model_copy(update=fields)
                self._archetypes[override.id] = Archetype.model_validate(merged.model_dump())
            else:
                self._archetypes[override.id] = build_custom_archetype(fields)

            if override.active is True and override.id not in self._active:
                self._active.append(override.id)
            elif override.active is False and override.id in self._active:
                self._active.remove(override.id)

            logger.info(f"Applied archetype override: {override.id}")

    def list(self) -> List[Archetype]:
        """All archetypes in registry order"""
        with self._lock:
            return list(self._archetypes.values())

    def active_ids(self) -> List[str]:
        with self._lock:
            return [aid for aid in self._archetypes if aid in self._active]

    def get(self, archetype_id: str) -> Archetype:
        """
        Get archetype by ID.

        Raises:
            KeyError: If archetype_id is unknown
        """
        with self._lock:
            if archetype_id not in self._archetypes:
                available = ", ".join(self._archetypes.keys())
                raise KeyError(
                    f"Archetype '{archetype_id}' not found. Available archetypes: {available}"
                )
            return self._archetypes[archetype_id]

    def contains(self, archetype_id: str) -> bool:
        with self._lock:
            return archetype_id in self._archetypes

    def upsert(self, archetype: Archetype) -> Archetype:
        """Create or replace an archetype"""
        with self._lock:
            self._archetypes[archetype.id] = archetype
        logger.info(f"Archetype saved: {archetype.id} ({archetype.name})")
        return archetype

    def remove(self, archetype_id: str) -> Optional[Archetype]:
        """
        Remove a custom archetype, or restore a built-in one to its defaults.

        Returns:
            The restored built-in archetype, or None if a custom one was deleted
        """
        builtin = {a.id: a for a in BUILTIN_ARCHETYPES}
        with self._lock:
            if archetype_id not in self._archetypes:
                raise KeyError(f"Archetype '{archetype_id}' not found")
            if archetype_id in builtin:
                self._archetypes[archetype_id] = builtin[archetype_id]
                return builtin[archetype_id]
            del self._archetypes[archetype_id]
            if archetype_id in self._active:
                self._active.remove(archetype_id)
            return None

    def set_active(self, archetype_ids: Iterable[str]):
        ids = list(archetype_ids)
        with self._lock:
            unknown = [aid for aid in ids if aid not in self._archetypes]
            if unknown:
                raise KeyError(f"Unknown archetypes: {', '.join(unknown)}")
            self._active = ids

    def snapshot(self, archetype_ids: Optional[Iterable[str]] = None) -> Tuple[Archetype, ...]:
        """
        Copy the requested archetypes for a run.

        Args:
            archetype_ids: Archetypes to include; None means the active set.
                Order follows the registry, not the argument.

        Returns:
            Tuple of deep-copied archetypes
        """
        with self._lock:
            wanted = set(self._active if archetype_ids is None else archetype_ids)
            unknown = wanted - set(self._archetypes)
            if unknown:
                raise KeyError(f"Unknown archetypes: {', '.join(sorted(unknown))}")
            return tuple(
                a.model_copy(deep=True) for aid, a in self._archetypes.items() if aid in wanted
            )
