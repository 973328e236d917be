"""
Workflow Controllers (API Routes)
=================================

FastAPI routes operators use to move tickets through the workflow.

Controllers delegate to the workflow state machine; domain errors are
mapped to HTTP status codes by the shared exception handler.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status

from inquiry_board.workflow.application import (
    ProcessHistoryResponse,
    ProcessLogResponse,
    ReanalysisRequest,
    RequeueResponse,
    TransitionRequest,
    TransitionResponse,
    WorkflowStateMachine,
)
from inquiry_board.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/process", tags=["Ticket Workflow"])


# ========== Example payloads for Swagger ==========

TRANSITION_REQUEST_EXAMPLE = {
    "ticket_id": 42,
    "target_step": "ai_processing",
    "note": "승인합니다. 진행해주세요.",
    "actor_id": 1
}

TRANSITION_RESPONSE_EXAMPLE = {
    "ticket_id": 42,
    "from_step": "pending_approval",
    "to_step": "ai_processing",
    "applied": True,
    "log_id": 108
}


# ========== Dependencies ==========

def get_state_machine(request: Request) -> WorkflowStateMachine:
    """Get the workflow state machine from app state."""
    state_machine = getattr(request.app.state, "state_machine", None)
    if state_machine is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Workflow not initialized"
        )
    return state_machine


# ========== Routes ==========

@router.post(
    "/transitions",
    response_model=TransitionResponse,
    summary="Move a ticket to another workflow step",
    description="""
Applies a guarded step change.

The ticket's current step is read and used as the expected value of a
conditional update; if another actor moves the ticket first, the response
has `applied: false` and nothing is written.

Sending a ticket from `pending_approval` back to `registered` records the
note as re-analysis feedback for the triage worker.
""",
    responses={
        200: {"content": {"application/json": {"example": TRANSITION_RESPONSE_EXAMPLE}}},
        404: {"description": "Ticket not found"},
        409: {"description": "Transition not permitted from the current step"},
        400: {"description": "Unknown target step"},
    },
    openapi_extra={"requestBody": {"content": {"application/json": {"example": TRANSITION_REQUEST_EXAMPLE}}}}
)
async def transition_ticket(
    request_body: TransitionRequest,
    state_machine: WorkflowStateMachine = Depends(get_state_machine)
) -> TransitionResponse:
    result = await state_machine.request_transition(
        request_body.ticket_id,
        request_body.target_step,
        note=request_body.note,
        actor_id=request_body.actor_id
    )
    return TransitionResponse(
        ticket_id=result.ticket_id,
        from_step=result.from_step,
        to_step=result.to_step,
        applied=result.applied,
        log_id=result.log_id
    )


@router.post(
    "/{ticket_id}/reanalysis",
    response_model=TransitionResponse,
    summary="Send a ticket back for analysis with feedback"
)
async def request_reanalysis(
    ticket_id: int,
    request_body: ReanalysisRequest,
    state_machine: WorkflowStateMachine = Depends(get_state_machine)
) -> TransitionResponse:
    result = await state_machine.request_reanalysis(
        ticket_id,
        request_body.feedback,
        actor_id=request_body.actor_id
    )
    return TransitionResponse(
        ticket_id=result.ticket_id,
        from_step=result.from_step,
        to_step=result.to_step,
        applied=result.applied,
        log_id=result.log_id
    )


@router.post(
    "/{ticket_id}/requeue",
    response_model=RequeueResponse,
    summary="Clear a parked ticket's failure counter"
)
async def requeue_ticket(
    ticket_id: int,
    state_machine: WorkflowStateMachine = Depends(get_state_machine)
) -> RequeueResponse:
    ticket = await state_machine.requeue(ticket_id)
    return RequeueResponse(
        ticket_id=ticket.id,
        status=ticket.status,
        analysis_failures=ticket.analysis_failures
    )


@router.get(
    "/{ticket_id}/logs",
    response_model=ProcessHistoryResponse,
    summary="Process log of a ticket, oldest first"
)
async def get_process_logs(
    ticket_id: int,
    state_machine: WorkflowStateMachine = Depends(get_state_machine)
) -> ProcessHistoryResponse:
    entries = await state_machine.history(ticket_id)
    return ProcessHistoryResponse(
        ticket_id=ticket_id,
        entries=[
            ProcessLogResponse(
                id=entry.id,
                step=entry.step,
                content=entry.content,
                created_by=entry.created_by,
                created_at=entry.created_at
            )
            for entry in entries
        ]
    )
