"""
Run API endpoints: start, poll, cancel and stream insight runs
"""

from fastapi import APIRouter, HTTPException, Request, WebSocket, WebSocketDisconnect
import logging

from .models import (
    RunRequest,
    RunStarted,
    RunState,
    StreamComplete,
    StreamError,
    StreamProgress,
)
from ..engine.errors import RunNotFound, ValidationError
from ..engine.models import ProgressEvent, RunResult
from ..engine.runner import InsightEngine

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/runs", tags=["runs"])


def get_engine(request: Request) -> InsightEngine:
    return request.app.state.engine


def get_handle(engine: InsightEngine, run_id: str):
    """Look up a run or raise 404"""
    try:
        return engine.get(run_id)
    except RunNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("", response_model=RunStarted, status_code=202)
async def start_run(run_request: RunRequest, request: Request):
    """Validate the request and start a run"""
    engine = get_engine(request)
    try:
        handle = engine.start_run(run_request.question, run_request.to_options())
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.problems)

    return RunStarted(run_id=handle.run_id, stream_url=f"/api/runs/{handle.run_id}/stream")


@router.get("/{run_id}", response_model=RunState)
async def get_run(run_id: str, request: Request):
    """Last known state of a run, with the outcome once it is done"""
    handle = get_handle(get_engine(request), run_id)
    outcome = handle.outcome
    return RunState(
        run_id=run_id,
        done=handle.done,
        last_event=handle.last_event,
        result=outcome if isinstance(outcome, RunResult) else None,
        error=outcome if outcome is not None and not isinstance(outcome, RunResult) else None,
    )


@router.post("/{run_id}/cancel", response_model=RunState)
async def cancel_run(run_id: str, request: Request):
    """Request cancellation of a run"""
    engine = get_engine(request)
    handle = get_handle(engine, run_id)
    engine.cancel(handle)
    return RunState(run_id=run_id, done=handle.done, last_event=handle.last_event)


@router.websocket("/{run_id}/stream")
async def stream_run(websocket: WebSocket, run_id: str):
    """
    Stream progress events for a run via WebSocket, then one terminal message
    """
    await websocket.accept()
    engine: InsightEngine = websocket.app.state.engine

    try:
        handle = engine.get(run_id)
    except RunNotFound as e:
        await websocket.send_json({"type": "error", "message": str(e)})
        await websocket.close()
        return

    try:
        async for item in engine.subscribe(handle):
            if isinstance(item, ProgressEvent):
                message = StreamProgress(event=item)
            elif isinstance(item, RunResult):
                message = StreamComplete(result=item)
            else:
                message = StreamError(error=item)
            await websocket.send_json(message.model_dump(mode="json"))
        await websocket.close()

    except WebSocketDisconnect:
        logger.info(f"Client disconnected from run {run_id} stream")
