"""Training plan generation endpoint."""
from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from starlette.concurrency import run_in_threadpool

from runplan.api.deps import get_orchestrator
from runplan.api.schemas.plan import ErrorResponse, GeneratePlanResponse
from runplan.services.errors import PlanGenerationError
from runplan.services.plan_orchestrator import PlanGenerationOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/api/generatePlan",
    response_model=GeneratePlanResponse,
    responses={status: {"model": ErrorResponse} for status in (400, 401, 405, 500)},
    tags=["plans"],
)
async def generate_plan_endpoint(
    request: Request,
    orchestrator: PlanGenerationOrchestrator = Depends(get_orchestrator),
) -> GeneratePlanResponse:
    """Generate, validate and store a 4-week plan for the authenticated runner."""
    payload = await _read_json(request)
    try:
        # Blocking pipeline; it runs to completion in the worker thread even if the client disconnects.
        outcome = await run_in_threadpool(
            orchestrator.generate_plan,
            request.headers.get("Authorization"),
            payload,
        )
    except PlanGenerationError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc

    return GeneratePlanResponse(
        success=True,
        message="Plan generated successfully!",
        workout_plan=outcome.plan,
    )


async def _read_json(request: Request) -> Any:
    body = await request.body()
    if not body:
        return None
    try:
        return await request.json()
    except ValueError:
        logger.info("Request body is not valid JSON")
        return None
