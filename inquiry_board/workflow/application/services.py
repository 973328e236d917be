"""
Workflow Application Services
=============================

The guarded-transition protocol shared by the triage worker and by
operators acting through the API.

Protocol:
1. ``UPDATE posts SET status = target WHERE id = X AND status = expected``
2. Zero rows affected means another actor moved the ticket first; the
   transition is abandoned with a log line and no retry.
3. On success a process log entry for the target step is appended.
4. Steps 1 and 3 share one unit of work and commit or roll back together.
"""

from abc import ABC, abstractmethod
from typing import Any, AsyncContextManager, Callable, List, Optional, Tuple

from inquiry_board.core import (
    InvalidTransitionException,
    ResourceNotFoundException,
    ValidationException,
)
from inquiry_board.infrastructure.notifications import INotifier, NullNotifier, transition_message
from inquiry_board.shared.infrastructure.logging import get_logger
from inquiry_board.workflow.domain import (
    ProcessLogEntry,
    Step,
    Ticket,
    TransitionResult,
    WORKFLOW_STEPS,
    default_message,
    feedback_content,
    is_allowed,
    is_feedback,
)

logger = get_logger(__name__)


# ========== Store Interface (Dependency Inversion) ==========

class ITicketStore(ABC):
    """
    Interface for ticket data access within one unit of work.

    Nothing here commits; the surrounding unit of work does.
    """

    @abstractmethod
    async def list_by_status(
        self,
        status: str,
        limit: int,
        max_failures: Optional[int] = None
    ) -> List[Ticket]:
        """Oldest-first tickets in ``status``, skipping parked ones when a cap is given."""

    @abstractmethod
    async def get_ticket(self, ticket_id: int) -> Optional[Ticket]:
        """Get ticket by id."""

    @abstractmethod
    async def compare_and_set_status(self, ticket_id: int, expected: str, target: str) -> int:
        """Conditional status update; returns the number of rows changed."""

    @abstractmethod
    async def append_log(
        self,
        ticket_id: int,
        step: str,
        content: str,
        created_by: Optional[int] = None
    ) -> int:
        """Append a process log entry and return its id."""

    @abstractmethod
    async def delete_latest_log(self, ticket_id: int, step: str) -> bool:
        """Remove the most recent entry for ``step``; used only by the worker's rollback."""

    @abstractmethod
    async def latest_feedback(self, ticket_id: int) -> Optional[str]:
        """Content of the most recent feedback-marked entry, if any."""

    @abstractmethod
    async def list_logs(self, ticket_id: int) -> List[ProcessLogEntry]:
        """All entries for a ticket, oldest first."""

    @abstractmethod
    async def get_server_by_site(self, site_name: str) -> Optional[Any]:
        """Server record for a site tag (password fields still encrypted)."""

    @abstractmethod
    async def save_server(self, values: dict) -> int:
        """Insert or update a server record by ``site_name``, encrypting secrets."""

    @abstractmethod
    async def add_comment(
        self,
        ticket_id: int,
        content: str,
        author_name: str,
        is_ai_answer: bool = False
    ) -> int:
        """Insert a comment and return its id."""

    @abstractmethod
    async def increment_failures(self, ticket_id: int) -> int:
        """Bump the failed-analysis counter and return the new value."""

    @abstractmethod
    async def reset_failures(self, ticket_id: int) -> None:
        """Clear the failed-analysis counter."""


# ``async with provider() as store`` opens one unit of work
StoreProvider = Callable[[], AsyncContextManager[ITicketStore]]


# ========== Application Services ==========

class WorkflowStateMachine:
    """
    Authoritative transition table plus the guarded-update protocol.

    Used directly by operators (``request_transition``) and by the triage
    worker (``transition``, ``apply``, ``revert_claim``).
    """

    def __init__(self, store_provider: StoreProvider, notifier: Optional[INotifier] = None):
        self._store_provider = store_provider
        self._notifier = notifier or NullNotifier()

    @property
    def store_provider(self) -> StoreProvider:
        return self._store_provider

    async def apply(
        self,
        store: ITicketStore,
        ticket_id: int,
        expected: str,
        target: str,
        content: Optional[str] = None,
        actor_id: Optional[int] = None
    ) -> TransitionResult:
        """
        Run the guarded transition inside the caller's unit of work.

        Raises:
            InvalidTransitionException: If ``expected -> target`` is not in the table
        """
        if not is_allowed(expected, target):
            raise InvalidTransitionException(ticket_id, expected, target)

        rows = await store.compare_and_set_status(ticket_id, expected, target)
        if rows == 0:
            logger.info(
                "Transition skipped, ticket already moved",
                extra={"ticket_id": ticket_id, "expected": expected, "target": target}
            )
            return TransitionResult(ticket_id, expected, target, applied=False)

        log_id = await store.append_log(
            ticket_id,
            target,
            content or default_message(target),
            created_by=actor_id
        )
        logger.info(
            "Ticket transitioned",
            extra={"ticket_id": ticket_id, "from_step": expected, "to_step": target, "log_id": log_id}
        )
        return TransitionResult(ticket_id, expected, target, applied=True, log_id=log_id)

    async def transition(
        self,
        ticket_id: int,
        expected: str,
        target: str,
        content: Optional[str] = None,
        actor_id: Optional[int] = None
    ) -> TransitionResult:
        """Guarded transition in its own unit of work."""
        async with self._store_provider() as store:
            return await self.apply(store, ticket_id, expected, target, content, actor_id)

    async def request_transition(
        self,
        ticket_id: int,
        target: str,
        note: Optional[str] = None,
        actor_id: Optional[int] = None
    ) -> TransitionResult:
        """
        Human-driven entry point.

        Reads the ticket's current step, checks the edge, and applies the
        guarded protocol with the current step as the expected value. Sending
        a ticket back from ``pending_approval`` to ``registered`` stores the
        note as feedback so the worker's next analysis takes it into account.

        Raises:
            ValidationException: Unknown target step
            ResourceNotFoundException: No such ticket
            InvalidTransitionException: Edge not in the table
        """
        if target not in WORKFLOW_STEPS:
            raise ValidationException(
                f"Unknown workflow step '{target}'",
                {"valid_steps": WORKFLOW_STEPS}
            )

        async with self._store_provider() as store:
            ticket = await store.get_ticket(ticket_id)
            if ticket is None:
                raise ResourceNotFoundException("Ticket", str(ticket_id))

            content = note.strip() if note and note.strip() else None
            if ticket.status == Step.PENDING_APPROVAL and target == Step.REGISTERED:
                if not (content and is_feedback(content)):
                    content = feedback_content(content or "재분석을 요청합니다.")

            result = await self.apply(store, ticket_id, ticket.status, target, content, actor_id)

        if result.applied:
            await self._notifier.notify(transition_message(ticket_id, default_message(target), note))
        return result

    async def request_reanalysis(
        self,
        ticket_id: int,
        feedback: str,
        actor_id: Optional[int] = None
    ) -> TransitionResult:
        """Send a ticket awaiting approval back for analysis with operator feedback."""
        if not feedback or not feedback.strip():
            raise ValidationException("Feedback is required to request re-analysis")
        return await self.request_transition(ticket_id, Step.REGISTERED, feedback, actor_id)

    async def revert_claim(self, ticket_id: int) -> Tuple[bool, int]:
        """
        Worker rollback: ``ai_review -> registered`` without a new log entry.

        When the revert lands, the claim's ``ai_review`` entry is deleted and
        the failure counter is bumped. Returns (reverted, failure count).
        """
        async with self._store_provider() as store:
            rows = await store.compare_and_set_status(ticket_id, Step.AI_REVIEW, Step.REGISTERED)
            if rows == 0:
                logger.warning("Revert skipped, ticket no longer in ai_review", extra={"ticket_id": ticket_id})
                return False, 0

            await store.delete_latest_log(ticket_id, Step.AI_REVIEW)
            failures = await store.increment_failures(ticket_id)

        logger.info(
            "Ticket reverted to registered for retry",
            extra={"ticket_id": ticket_id, "analysis_failures": failures}
        )
        return True, failures

    async def requeue(self, ticket_id: int) -> Ticket:
        """Clear the failure counter so a parked ticket is picked up again."""
        async with self._store_provider() as store:
            ticket = await store.get_ticket(ticket_id)
            if ticket is None:
                raise ResourceNotFoundException("Ticket", str(ticket_id))
            await store.reset_failures(ticket_id)
            ticket.analysis_failures = 0

        logger.info("Ticket requeued for analysis", extra={"ticket_id": ticket_id})
        return ticket

    async def history(self, ticket_id: int) -> List[ProcessLogEntry]:
        """Process log of a ticket, oldest first."""
        async with self._store_provider() as store:
            if await store.get_ticket(ticket_id) is None:
                raise ResourceNotFoundException("Ticket", str(ticket_id))
            return await store.list_logs(ticket_id)
