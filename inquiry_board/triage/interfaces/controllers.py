"""
Triage Controllers (API Routes)
===============================

FastAPI routes for the ask-AI feature and manual worker runs.

Controllers delegate to application services.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status

from inquiry_board.triage.application import (
    AnalysisService,
    AskRequest,
    AskResponse,
    TickResponse,
    TicketOutcome,
    TriageWorker,
)
from inquiry_board.workflow.application import StoreProvider
from inquiry_board.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/triage", tags=["Ticket Triage"])


# ========== Dependencies ==========

def get_analysis_service(request: Request) -> AnalysisService:
    """Get analysis service from app state."""
    analysis = getattr(request.app.state, "analysis_service", None)
    if analysis is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Analysis service not available - reasoning service not configured"
        )
    return analysis


def get_store_provider(request: Request) -> StoreProvider:
    """Get the ticket store provider from app state."""
    provider = getattr(request.app.state, "store_provider", None)
    if provider is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Ticket store not initialized"
        )
    return provider


def get_worker(request: Request) -> TriageWorker:
    """Get the triage worker from app state."""
    worker = getattr(request.app.state, "triage_worker", None)
    if worker is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Triage worker not initialized"
        )
    return worker


# ========== Routes ==========

@router.post(
    "/ask",
    response_model=AskResponse,
    summary="Answer a question and post it under the ticket",
    responses={
        404: {"description": "Ticket not found"},
        502: {"description": "Reasoning service failed"},
    }
)
async def ask_ai(
    request_body: AskRequest,
    analysis: AnalysisService = Depends(get_analysis_service),
    store_provider: StoreProvider = Depends(get_store_provider)
) -> AskResponse:
    answer, comment_id = await analysis.answer_ticket(
        store_provider,
        request_body.ticket_id,
        request_body.question
    )
    logger.info("Question answered", extra={"ticket_id": request_body.ticket_id, "comment_id": comment_id})
    return AskResponse(ticket_id=request_body.ticket_id, answer=answer, comment_id=comment_id)


@router.post(
    "/run",
    response_model=TickResponse,
    summary="Run one worker tick now",
    description="Same guarded entry point the scheduler uses; returns `ran: false` if a run is already active."
)
async def run_tick(worker: TriageWorker = Depends(get_worker)) -> TickResponse:
    report = await worker.run_tick()
    return TickResponse(
        ran=report.ran,
        published=report.ids(TicketOutcome.PUBLISHED),
        skipped=report.ids(TicketOutcome.SKIPPED),
        reverted=report.ids(TicketOutcome.REVERTED),
        failed=report.ids(TicketOutcome.FAILED)
    )
