"""
Archetype management API endpoints
"""

from fastapi import APIRouter, HTTPException, Request
from pydantic import ValidationError as PydanticValidationError
import logging

from .models import ArchetypeList, ArchetypeUpdate
from ..engine.models import Archetype
from ..engine.registry import build_custom_archetype

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/archetypes", tags=["archetypes"])


def get_registry(request: Request):
    return request.app.state.engine.registry


@router.get("", response_model=ArchetypeList)
async def list_archetypes(request: Request):
    """List all archetypes and the active set"""
    registry = get_registry(request)
    archetypes = registry.list()
    return ArchetypeList(archetypes=archetypes, active=registry.active_ids(), total=len(archetypes))


@router.get("/{archetype_id}", response_model=Archetype)
async def get_archetype(archetype_id: str, request: Request):
    """Get a single archetype"""
    try:
        return get_registry(request).get(archetype_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e.args[0]))


@router.put("/{archetype_id}", response_model=Archetype)
async def save_archetype(archetype_id: str, update: ArchetypeUpdate, request: Request):
    """Create or edit an archetype; running runs keep their snapshot"""
    data = update.model_dump(exclude_none=True)
    data["id"] = archetype_id
    try:
        archetype = build_custom_archetype(data)
    except PydanticValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors()[0]["msg"])

    return get_registry(request).upsert(archetype)


@router.delete("/{archetype_id}")
async def delete_archetype(archetype_id: str, request: Request):
    """Delete a custom archetype or restore a built-in one"""
    try:
        restored = get_registry(request).remove(archetype_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e.args[0]))

    if restored is not None:
        logger.info(f"Restored built-in archetype: {archetype_id}")
        return {"message": "Archetype restored to defaults", "archetype": restored}
    logger.info(f"Deleted archetype: {archetype_id}")
    return {"message": "Archetype deleted successfully"}
