"""Run request validation"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError
from .models import (
    CircuitType,
    OutputStyle,
    OutputType,
    RunConfiguration,
    TensionParameters,
)
from .registry import ArchetypeRegistry, build_custom_archetype

logger = logging.getLogger(__name__)

MIN_QUESTION_LENGTH = 10
MIN_DEPTH = 1
MAX_DEPTH = 10
MIN_ARCHETYPES = 2


class RunOptions(BaseModel):
    """Unvalidated run options as supplied by a caller"""
    processing_depth: Any = 3
    circuit_type: Any = CircuitType.SEQUENTIAL
    enhanced_mode: bool = True
    archetype_ids: Optional[List[str]] = None
    custom_archetypes: Optional[List[Dict[str, Any]]] = None
    tension: Optional[Dict[str, Any]] = None
    output_style: Any = OutputStyle.COMPREHENSIVE
    output_type: Any = None


def _parse_enum(enum_cls, value, label: str, problems: List[str]):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        allowed = ", ".join(e.value for e in enum_cls)
        problems.append(f"{label} must be one of: {allowed} (got '{value}')")
        return None


def validate_run(
    question: str,
    options: RunOptions,
    registry: ArchetypeRegistry,
    tension_defaults: Optional[TensionParameters] = None,
) -> RunConfiguration:
    """
    Validate a run request and freeze it into a RunConfiguration.

    Args:
        question: Question text
        options: Caller-supplied options
        registry: Live registry to snapshot archetypes from
        tension_defaults: Tension parameters used for fields the caller omits

    Returns:
        Frozen RunConfiguration with a fresh run id

    Raises:
        ValidationError: With every problem found, before any invocation
    """
    problems: List[str] = []

    question = (question or "").strip()
    if len(question) < MIN_QUESTION_LENGTH:
        problems.append(f"Question must be at least {MIN_QUESTION_LENGTH} characters")

    depth = options.processing_depth
    if isinstance(depth, bool) or not isinstance(depth, int):
        problems.append(f"Processing depth must be an integer (got {depth!r})")
        depth = None
    elif not MIN_DEPTH <= depth <= MAX_DEPTH:
        problems.append(f"Processing depth must be between {MIN_DEPTH} and {MAX_DEPTH} (got {depth})")

    circuit = _parse_enum(CircuitType, options.circuit_type, "Circuit type", problems)
    output_style = _parse_enum(
        OutputStyle, options.output_style or OutputStyle.COMPREHENSIVE, "Output style", problems
    )
    output_type = None
    if options.output_type:
        output_type = _parse_enum(OutputType, options.output_type, "Output type", problems)

    archetypes = ()
    resolved = True
    if options.custom_archetypes:
        try:
            archetypes = tuple(build_custom_archetype(a) for a in options.custom_archetypes)
        except PydanticValidationError as e:
            problems.append(f"Invalid custom archetype: {e.errors()[0]['msg']}")
            resolved = False
    else:
        try:
            archetypes = registry.snapshot(options.archetype_ids)
        except KeyError as e:
            problems.append(str(e.args[0]))
            resolved = False

    ids = [a.id for a in archetypes]
    if len(set(ids)) != len(ids):
        problems.append("Archetype ids must be unique")
    if resolved and len(archetypes) < MIN_ARCHETYPES:
        problems.append(f"At least {MIN_ARCHETYPES} archetypes are required (got {len(archetypes)})")

    base = (tension_defaults or TensionParameters()).model_dump()
    try:
        tension = TensionParameters(**{**base, **(options.tension or {})})
    except PydanticValidationError as e:
        for err in e.errors():
            field = ".".join(str(p) for p in err["loc"])
            problems.append(f"Tension parameter {field}: {err['msg']}")
        tension = None

    if problems:
        logger.warning(f"Rejected run request: {problems}")
        raise ValidationError(problems)

    return RunConfiguration(
        run_id=uuid.uuid4().hex,
        question=question,
        processing_depth=depth,
        circuit_type=circuit,
        enhanced_mode=options.enhanced_mode,
        archetypes=archetypes,
        tension=tension,
        output_style=output_style,
        output_type=output_type,
    )
