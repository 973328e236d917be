"""
Triage Application Layer
========================

Application layer for the triage module.

Contains:
- Services: Diagnostics collection, analysis and the pipeline worker
- DTOs: Data transfer objects for API serialization
"""

from inquiry_board.triage.application.dto import (
    AskRequest,
    AskResponse,
    TickResponse,
)
from inquiry_board.triage.application.services import (
    ANALYSIS_COMMENT_PREFIX,
    ANALYSIS_LOG_PREFIX,
    ASSISTANT_AUTHOR,
    AnalysisService,
    DiagnosticsCollector,
    TickReport,
    TicketOutcome,
    TriageWorker,
    server_context_from_record,
)

__all__ = [
    # DTOs
    "AskRequest",
    "AskResponse",
    "TickResponse",
    # Services
    "AnalysisService",
    "DiagnosticsCollector",
    "TriageWorker",
    "TickReport",
    "TicketOutcome",
    "server_context_from_record",
    "ANALYSIS_COMMENT_PREFIX",
    "ANALYSIS_LOG_PREFIX",
    "ASSISTANT_AUTHOR",
]
