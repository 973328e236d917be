"""
Triage Application Services
===========================

Application services for the automated triage pipeline.

- DiagnosticsCollector: runs the probe battery against a managed server
- AnalysisService: prompts the reasoning service for a report or an answer
- TriageWorker: one scheduled tick over the oldest registered tickets
"""

import asyncio
import random
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Tuple

from inquiry_board.config import Settings, settings as default_settings
from inquiry_board.core import ResourceNotFoundException
from inquiry_board.infrastructure.crypto import CredentialVault
from inquiry_board.infrastructure.llm import ILLMClient
from inquiry_board.infrastructure.notifications import (
    INotifier,
    NullNotifier,
    approval_request_message,
    failure_message,
)
from inquiry_board.infrastructure.remote_shell import IRemoteShell
from inquiry_board.shared.infrastructure.logging import get_logger, get_ticket_logger, log_latency
from inquiry_board.triage.domain import (
    AnalysisPromptBuilder,
    DiagnosticsBundle,
    ServerContext,
    StepOutcome,
    build_probe_battery,
    pick_display_alias,
)
from inquiry_board.triage.infrastructure import RunSentinel
from inquiry_board.workflow.application import StoreProvider, WorkflowStateMachine
from inquiry_board.workflow.domain import Step, Ticket

logger = get_logger(__name__)

ANALYSIS_LOG_PREFIX = "AI 분석이 완료되었습니다. 관리자 승인을 대기합니다.\n\n"
ANALYSIS_COMMENT_PREFIX = "📊 AI 분석 결과\n\n"
ASSISTANT_AUTHOR = "AI Assistant"


# ========== Diagnostics ==========

def server_context_from_record(record: Any, vault: Optional[CredentialVault]) -> ServerContext:
    """
    Build an in-memory server context, decrypting secrets just in time.

    Without a vault the secret fields stay empty, which disables remote
    diagnostics for that server.
    """
    def secret(value: Optional[str]) -> str:
        if vault is None or not value:
            return ""
        return vault.decrypt(value)

    return ServerContext(
        site_name=record.site_name,
        display_name=record.display_name,
        server_ip=record.server_ip or "",
        ssh_user=record.ssh_user or "root",
        ssh_password=secret(record.ssh_password),
        db_user=record.db_user or "root",
        db_password=secret(record.db_password),
        site_url=record.site_url or "",
        admin_url=record.admin_url or "",
    )


class DiagnosticsCollector:
    """
    Runs the fixed probe battery against one server.

    Each probe is a single attempt; its merged output is recorded whatever
    the exit code, so one failing check never blocks the others.
    """

    def __init__(self, remote_shell: IRemoteShell, settings: Optional[Settings] = None):
        self._shell = remote_shell
        self._settings = settings or default_settings

    async def collect(self, server: Optional[ServerContext]) -> Optional[DiagnosticsBundle]:
        """
        Collect diagnostics for ``server``.

        Returns:
            Probe name -> output for every probe, or None when the record
            lacks an address or SSH password.
        """
        if server is None or not server.has_shell_access:
            return None

        probes = build_probe_battery(server.site_url, server.db_user, server.db_password)
        bundle: DiagnosticsBundle = {}

        with log_latency(logger, "server_diagnostics", site=server.site_name, probes=len(probes)):
            for name, command in probes:
                bundle[name] = await self._run_probe(server, name, command)

        return bundle

    async def _run_probe(self, server: ServerContext, name: str, command: str) -> str:
        try:
            output, exit_code = await self._shell.run(
                server.server_ip,
                server.ssh_user,
                server.ssh_password,
                command,
                self._settings.probe_timeout_seconds
            )
        except Exception as e:
            logger.warning(
                "Probe transport error",
                extra={"site": server.site_name, "probe": name, "error": str(e)}
            )
            return f"진단 실패: {e}"

        if exit_code != 0 and not output:
            return f"명령 실패 (exit {exit_code})"
        return output


# ========== Analysis ==========

class AnalysisService:
    """
    Prompts the reasoning service.

    Errors from the client propagate; there is no retry here.
    """

    def __init__(self, llm_client: ILLMClient):
        self._llm = llm_client

    async def analyze(
        self,
        ticket: Ticket,
        feedback: Optional[str] = None,
        server: Optional[ServerContext] = None,
        diagnostics: Optional[DiagnosticsBundle] = None
    ) -> str:
        """
        Produce the approval report for a ticket.

        Raises:
            LLMException: If the reasoning service fails or answers nothing
        """
        prompt = AnalysisPromptBuilder.build_prompt(
            ticket.category,
            ticket.title,
            ticket.content,
            feedback=feedback,
            server=server,
            diagnostics=diagnostics
        )

        with log_latency(logger, "ticket_analysis", ticket_id=ticket.id):
            result = await self._llm.complete(prompt, operation="analysis")

        logger.info(
            "Analysis produced",
            extra={
                "ticket_id": ticket.id,
                "model": result.model,
                "total_tokens": result.total_tokens,
                "with_feedback": feedback is not None,
                "with_diagnostics": diagnostics is not None,
            }
        )
        return result.content

    async def answer_question(self, question: str) -> str:
        """Free-form answer for the ask-AI feature."""
        result = await self._llm.complete(
            AnalysisPromptBuilder.build_answer_prompt(question),
            operation="answer"
        )
        return result.content

    async def answer_ticket(self, store_provider: StoreProvider, ticket_id: int, question: str) -> Tuple[str, int]:
        """
        Answer a question about a ticket and store it as an assistant comment.

        The reasoning call happens before the unit of work is opened.
        """
        async with store_provider() as store:
            if await store.get_ticket(ticket_id) is None:
                raise ResourceNotFoundException("Ticket", str(ticket_id))

        answer = await self.answer_question(question)

        async with store_provider() as store:
            comment_id = await store.add_comment(ticket_id, answer, ASSISTANT_AUTHOR, is_ai_answer=True)
        return answer, comment_id


# ========== Worker ==========

class TicketOutcome(str):
    """How one ticket's pipeline pass ended."""
    PUBLISHED = "published"
    SKIPPED = "skipped"
    REVERTED = "reverted"
    FAILED = "failed"


@dataclass
class TickReport:
    """Summary of one worker tick."""
    ran: bool = True
    outcomes: List[Tuple[int, str]] = field(default_factory=list)

    def record(self, ticket_id: int, outcome: str) -> None:
        self.outcomes.append((ticket_id, outcome))

    def ids(self, outcome: str) -> List[int]:
        return [ticket_id for ticket_id, result in self.outcomes if result == outcome]

    @property
    def processed(self) -> List[int]:
        return [ticket_id for ticket_id, _ in self.outcomes]


class TriageWorker:
    """
    Pipeline orchestrator; one ``run_tick`` call is one scheduled run.

    Tickets are handled strictly one after another. Each step returns a
    ``StepOutcome``; a failed fatal step sends the ticket down the revert
    path and the batch moves on.
    """

    def __init__(
        self,
        state_machine: WorkflowStateMachine,
        collector: DiagnosticsCollector,
        analysis: AnalysisService,
        notifier: Optional[INotifier] = None,
        vault: Optional[CredentialVault] = None,
        settings: Optional[Settings] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rng: Optional[random.Random] = None
    ):
        self._state_machine = state_machine
        self._store_provider = state_machine.store_provider
        self._collector = collector
        self._analysis = analysis
        self._notifier = notifier or NullNotifier()
        self._vault = vault
        self._settings = settings or default_settings
        self._sleep = sleep
        self._rng = rng or random.Random()

    async def run_tick(self) -> TickReport:
        """
        Guarded entry point for the scheduler.

        Returns a report with ``ran=False`` when another run holds the
        sentinel. Errors selecting the batch propagate after the sentinel is
        released.
        """
        sentinel = RunSentinel(self._settings.worker_lock_path, self._settings.worker_lock_stale_seconds)
        if not sentinel.acquire():
            return TickReport(ran=False)

        try:
            return await self.process_batch()
        finally:
            sentinel.release()

    async def process_batch(self) -> TickReport:
        """Process the oldest registered tickets, pausing between them."""
        report = TickReport()
        max_failures = self._settings.max_analysis_attempts or None

        async with self._store_provider() as store:
            tickets = await store.list_by_status(Step.REGISTERED, self._settings.worker_batch_size, max_failures)

        if not tickets:
            logger.info("No tickets awaiting analysis")
            return report

        logger.info("Worker tick started", extra={"batch": [t.id for t in tickets]})
        for index, ticket in enumerate(tickets):
            if index:
                await self._sleep(self._settings.worker_pause_seconds)
            report.record(ticket.id, await self.process_ticket(ticket))

        logger.info(
            "Worker tick finished",
            extra={
                "published": report.ids(TicketOutcome.PUBLISHED),
                "skipped": report.ids(TicketOutcome.SKIPPED),
                "reverted": report.ids(TicketOutcome.REVERTED),
                "failed": report.ids(TicketOutcome.FAILED),
            }
        )
        return report

    async def process_ticket(self, ticket: Ticket) -> str:
        """Run one ticket through claim, analysis and publication."""
        log = get_ticket_logger(__name__, ticket.id)

        claim = await self._step("claim", self._state_machine.transition(ticket.id, Step.REGISTERED, Step.AI_REVIEW))
        if not claim.ok:
            # The claim's own unit of work rolled back; the ticket is still registered
            log.error("Claim failed", extra={"error": claim.error})
            return TicketOutcome.FAILED
        if not claim.value.applied:
            return TicketOutcome.SKIPPED

        context = await self._step("context", self._load_context(ticket))
        if not context.ok:
            return await self._revert(ticket, context)
        feedback, server = context.value

        diagnostics = None
        if server is not None:
            collected = await self._step("diagnostics", self._collector.collect(server))
            if collected.ok:
                diagnostics = collected.value
            else:
                log.warning("Diagnostics unavailable, analysing without them", extra={"error": collected.error})

        analysis = await self._step("analysis", self._analysis.analyze(ticket, feedback, server, diagnostics))
        if not analysis.ok:
            return await self._revert(ticket, analysis)

        published = await self._step("publish", self._publish(ticket, analysis.value))
        if not published.ok:
            return await self._revert(ticket, published)
        if not published.value:
            log.info("Ticket moved by another actor during analysis, result discarded")
            return TicketOutcome.SKIPPED

        await self._notifier.notify(
            approval_request_message(ticket.id, ticket.category, ticket.title, ticket.site)
        )
        log.info("Analysis published, awaiting approval")
        return TicketOutcome.PUBLISHED

    async def _step(self, name: str, operation: Awaitable[Any]) -> StepOutcome:
        try:
            return StepOutcome.success(name, await operation)
        except Exception as e:
            logger.warning("Pipeline step failed", extra={"step": name, "error": str(e)}, exc_info=True)
            return StepOutcome.failure(name, str(e) or type(e).__name__)

    async def _load_context(self, ticket: Ticket) -> Tuple[Optional[str], Optional[ServerContext]]:
        """Latest feedback plus the owner's server, decrypted in memory."""
        async with self._store_provider() as store:
            feedback = await store.latest_feedback(ticket.id)
            record = await store.get_server_by_site(ticket.site) if ticket.site else None

        server = server_context_from_record(record, self._vault) if record is not None else None
        return feedback, server

    async def _publish(self, ticket: Ticket, analysis: str) -> bool:
        """
        Move to pending approval with the report as log and comment.

        One unit of work; returns False on a guard miss.
        """
        async with self._store_provider() as store:
            result = await self._state_machine.apply(
                store,
                ticket.id,
                Step.AI_REVIEW,
                Step.PENDING_APPROVAL,
                content=ANALYSIS_LOG_PREFIX + analysis
            )
            if not result.applied:
                return False

            await store.add_comment(
                ticket.id,
                ANALYSIS_COMMENT_PREFIX + analysis,
                pick_display_alias(self._rng),
                is_ai_answer=True
            )
            await store.reset_failures(ticket.id)
        return True

    async def _revert(self, ticket: Ticket, failed: StepOutcome) -> str:
        """Put the ticket back in registered and report the failure."""
        log = get_ticket_logger(__name__, ticket.id)
        log.error("Pipeline failed, reverting claim", extra={"step": failed.step, "error": failed.error})

        reverted = await self._step("revert", self._state_machine.revert_claim(ticket.id))
        if not reverted.ok:
            log.error("Revert failed", extra={"error": reverted.error})
            reverted_ok, failures = False, 0
        else:
            reverted_ok, failures = reverted.value

        cap = self._settings.max_analysis_attempts
        parked = bool(reverted_ok and cap and failures >= cap)
        if parked:
            log.warning("Ticket parked after repeated failures", extra={"analysis_failures": failures})

        await self._notifier.notify(failure_message(ticket.id, ticket.title, failed.error or failed.step, parked))
        return TicketOutcome.REVERTED if reverted_ok else TicketOutcome.FAILED
