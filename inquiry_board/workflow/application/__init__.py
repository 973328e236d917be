"""
Workflow Application Layer
==========================

Application layer for the ticket workflow module.

Contains:
- Services: The state machine and the store interface it depends on
- DTOs: Data transfer objects for API serialization
"""

from inquiry_board.workflow.application.dto import (
    TransitionRequest,
    ReanalysisRequest,
    TransitionResponse,
    ProcessLogResponse,
    ProcessHistoryResponse,
    RequeueResponse,
)
from inquiry_board.workflow.application.services import (
    ITicketStore,
    StoreProvider,
    WorkflowStateMachine,
)

__all__ = [
    # DTOs
    "TransitionRequest",
    "ReanalysisRequest",
    "TransitionResponse",
    "ProcessLogResponse",
    "ProcessHistoryResponse",
    "RequeueResponse",
    # Services
    "WorkflowStateMachine",
    # Store Interfaces
    "ITicketStore",
    "StoreProvider",
]
