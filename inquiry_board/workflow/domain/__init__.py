"""
Workflow Domain Layer
=====================

Steps, the transition table, default log messages, the feedback-marker
convention and the ticket/log snapshots. Framework-agnostic.
"""

from inquiry_board.workflow.domain.states import (
    Step,
    LegacyStatus,
    WORKFLOW_STEPS,
    TRANSITIONS,
    STEP_MESSAGES,
    FEEDBACK_MARKER,
    TransitionResult,
    is_allowed,
    default_message,
    feedback_content,
    is_feedback,
)
from inquiry_board.workflow.domain.entities import Ticket, ProcessLogEntry

__all__ = [
    "Step",
    "LegacyStatus",
    "WORKFLOW_STEPS",
    "TRANSITIONS",
    "STEP_MESSAGES",
    "FEEDBACK_MARKER",
    "TransitionResult",
    "is_allowed",
    "default_message",
    "feedback_content",
    "is_feedback",
    "Ticket",
    "ProcessLogEntry",
]
