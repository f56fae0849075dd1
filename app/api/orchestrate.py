"""
Orchestrate API Route

Thin delegation layer to the orchestration router.
Contains NO business logic, planning, or provider-specific code.

DESIGN RULE: This file should never change for planner or provider work.
All intelligence lives in the orchestration and agent layers.
"""

import asyncio
import json
import logging
import uuid
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from app.dependencies import get_orchestration_router
from orchestration.router import OrchestrationRouter
from orchestration.state import OrchestratorResult
from schemas.progress import ProgressEvent
from schemas.request import OrchestrateRequest

logger = logging.getLogger(__name__)

router = APIRouter()


class OrchestrateResponse(BaseModel):
    """API response for orchestration."""
    request_id: str = Field(..., description="Request identifier")
    result: OrchestratorResult = Field(..., description="Orchestration result")


@router.post("/orchestrate", response_model=OrchestrateResponse)
async def orchestrate(
    request: OrchestrateRequest,
    orchestrator: OrchestrationRouter = Depends(get_orchestration_router),
) -> OrchestrateResponse:
    """
    Orchestrate a merchant request and return the final result.

    Progress events are included in `result.steps`.
    """
    request_id = str(uuid.uuid4())
    result = await orchestrator.handle(request=request.to_service_request(trace_id=request_id))
    return OrchestrateResponse(request_id=request_id, result=result)


@router.post("/orchestrate/stream")
async def orchestrate_stream(
    request: OrchestrateRequest,
    orchestrator: OrchestrationRouter = Depends(get_orchestration_router),
) -> StreamingResponse:
    """
    Orchestrate a merchant request, streaming progress as NDJSON.

    Lines are {"type": "progress", "event": ...} while the plan runs,
    then exactly one {"type": "result", ...} or {"type": "error", ...}.
    """
    request_id = str(uuid.uuid4())
    service_request = request.to_service_request(trace_id=request_id)
    queue: "asyncio.Queue[Optional[Dict[str, Any]]]" = asyncio.Queue()

    def on_progress(event: ProgressEvent) -> None:
        queue.put_nowait({"type": "progress", "event": event.model_dump(mode="json", exclude_none=True)})

    async def run() -> None:
        try:
            result = await orchestrator.handle(request=service_request, on_progress=on_progress)
            queue.put_nowait({
                "type": "result",
                "request_id": request_id,
                "result": result.model_dump(mode="json"),
            })
        except Exception as e:
            logger.error(f"[{request_id}] Streaming orchestration failed: {e}")
            queue.put_nowait({"type": "error", "request_id": request_id, "error": str(e)})
        finally:
            queue.put_nowait(None)

    async def lines() -> AsyncIterator[str]:
        task = asyncio.create_task(run())
        try:
            while True:
                item = await queue.get()
                if item is None:
                    break
                yield json.dumps(item, default=str) + "\n"
        finally:
            if not task.done():
                task.cancel()

    return StreamingResponse(lines(), media_type="application/x-ndjson")
