"""
Workflow States
===============

The fixed set of ticket steps and the table of permitted moves between them.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional


class Step(str):
    """Ticket workflow steps."""
    REGISTERED = "registered"
    AI_REVIEW = "ai_review"
    PENDING_APPROVAL = "pending_approval"
    AI_PROCESSING = "ai_processing"
    COMPLETED = "completed"
    ADMIN_CONFIRM = "admin_confirm"
    REWORK = "rework"


class LegacyStatus(str):
    """Statuses from the original Q&A board, kept so old rows still load."""
    PENDING = "pending"
    ANSWERED = "answered"
    CLOSED = "closed"


WORKFLOW_STEPS = [
    Step.REGISTERED, Step.AI_REVIEW, Step.PENDING_APPROVAL, Step.AI_PROCESSING,
    Step.COMPLETED, Step.ADMIN_CONFIRM, Step.REWORK
]


# ai_review -> registered is absent: only the worker's own rollback makes that move
TRANSITIONS: Dict[str, FrozenSet[str]] = {
    Step.REGISTERED: frozenset({Step.AI_REVIEW}),
    Step.AI_REVIEW: frozenset({Step.PENDING_APPROVAL}),
    Step.PENDING_APPROVAL: frozenset({Step.AI_PROCESSING, Step.REGISTERED}),
    Step.AI_PROCESSING: frozenset({Step.COMPLETED, Step.ADMIN_CONFIRM, Step.REWORK}),
    Step.COMPLETED: frozenset({Step.REWORK, Step.ADMIN_CONFIRM}),
    Step.REWORK: frozenset({Step.COMPLETED, Step.AI_PROCESSING, Step.ADMIN_CONFIRM}),
    Step.ADMIN_CONFIRM: frozenset({Step.COMPLETED, Step.REWORK}),
    # Rows migrated from the old board enter the workflow from the start
    LegacyStatus.PENDING: frozenset({Step.REGISTERED}),
    LegacyStatus.ANSWERED: frozenset({Step.REGISTERED}),
    LegacyStatus.CLOSED: frozenset({Step.REGISTERED}),
}


STEP_MESSAGES: Dict[str, str] = {
    Step.REGISTERED: "문의글이 등록되었습니다.",
    Step.AI_REVIEW: "AI가 문의 내용을 분석하고 있습니다.",
    Step.PENDING_APPROVAL: "관리자 승인을 대기하고 있습니다.",
    Step.AI_PROCESSING: "AI가 작업을 진행하고 있습니다.",
    Step.COMPLETED: "작업이 완료되었습니다.",
    Step.ADMIN_CONFIRM: "관리자 확인이 필요합니다.",
    Step.REWORK: "재작업이 요청되었습니다.",
}

# Log content starting with this marker is a human re-analysis request
FEEDBACK_MARKER = "[재확인 요청]"


def is_allowed(current: str, target: str) -> bool:
    """Whether ``current -> target`` is an edge of the transition table."""
    return target in TRANSITIONS.get(current, frozenset())


def default_message(step: str) -> str:
    return STEP_MESSAGES.get(step, step)


def feedback_content(note: str) -> str:
    """Log content for a re-analysis request carrying ``note``."""
    return f"{FEEDBACK_MARKER} {note.strip()}".rstrip()


def is_feedback(content: Optional[str]) -> bool:
    return bool(content) and content.startswith(FEEDBACK_MARKER)


@dataclass
class TransitionResult:
    """
    Outcome of one guarded transition.

    ``applied`` is False when another actor moved the ticket first; that is
    an expected outcome, not an error.
    """
    ticket_id: int
    from_step: str
    to_step: str
    applied: bool
    log_id: Optional[int] = None
