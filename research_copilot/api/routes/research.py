from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from research_copilot.agents.orchestrator import ResearchOrchestrator
from research_copilot.api.deps import current_identity, get_orchestrator
from research_copilot.models.schemas import ErrorResponse, ResearchRequest, ResearchResponse
from research_copilot.services.identity import Identity

router = APIRouter(prefix="/api/research", tags=["research"])


@router.post(
    "",
    response_model=ResearchResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
)
async def run_research(
    request: ResearchRequest,
    identity: Identity = Depends(current_identity),
    orchestrator: ResearchOrchestrator = Depends(get_orchestrator),
):
    """Run one research request and return the structured brief."""
    run = await orchestrator.run(request, identity)
    return JSONResponse(
        content=run.response.to_wire(),
        headers={"X-RateLimit-Remaining": str(run.rate_limit_remaining)},
    )
