"""
Service Wiring
==============

Builds the object graph shared by the API process and the worker CLI.

Every collaborator is constructed here and passed down explicitly; nothing
below this module reaches for a process-global connection or client.
"""

from dataclasses import dataclass
from typing import Optional

from inquiry_board.config import Settings
from inquiry_board.core import ApplicationException
from inquiry_board.infrastructure.crypto import CredentialVault
from inquiry_board.infrastructure.database import Database
from inquiry_board.infrastructure.llm import ILLMClient, create_llm_client
from inquiry_board.infrastructure.notifications import INotifier, create_notifier
from inquiry_board.infrastructure.remote_shell import IRemoteShell, SSHPassRemoteShell
from inquiry_board.shared.infrastructure.logging import get_logger
from inquiry_board.triage.application import AnalysisService, DiagnosticsCollector, TriageWorker
from inquiry_board.workflow.application import WorkflowStateMachine
from inquiry_board.workflow.infrastructure import SQLAlchemyStoreProvider

logger = get_logger(__name__)


@dataclass
class Services:
    """The wired application; ``analysis_service`` and ``triage_worker`` need a reasoning backend."""
    settings: Settings
    database: Database
    vault: Optional[CredentialVault]
    store_provider: SQLAlchemyStoreProvider
    notifier: INotifier
    state_machine: WorkflowStateMachine
    collector: DiagnosticsCollector
    analysis_service: Optional[AnalysisService]
    triage_worker: Optional[TriageWorker]

    async def close(self) -> None:
        await self.notifier.close()
        await self.database.dispose()


def build_vault(settings: Settings) -> Optional[CredentialVault]:
    if not settings.credential_key:
        logger.warning("CREDENTIAL_KEY not set - server secrets cannot be read or stored")
        return None
    return CredentialVault(settings.credential_key)


def build_services(
    settings: Settings,
    database: Optional[Database] = None,
    llm_client: Optional[ILLMClient] = None,
    notifier: Optional[INotifier] = None,
    remote_shell: Optional[IRemoteShell] = None
) -> Services:
    """Construct every service from settings, using any collaborators passed in."""
    database = database or Database.from_settings(settings)
    vault = build_vault(settings)
    store_provider = SQLAlchemyStoreProvider(database, vault)
    notifier = notifier or create_notifier(settings)
    state_machine = WorkflowStateMachine(store_provider, notifier)

    remote_shell = remote_shell or SSHPassRemoteShell(connect_timeout=settings.ssh_connect_timeout_seconds)
    collector = DiagnosticsCollector(remote_shell, settings)

    if llm_client is None:
        try:
            llm_client = create_llm_client(settings)
        except ApplicationException as e:
            logger.warning("Reasoning service not available", extra={"error": str(e)})

    analysis_service = AnalysisService(llm_client) if llm_client else None
    triage_worker = None
    if analysis_service:
        triage_worker = TriageWorker(
            state_machine,
            collector,
            analysis_service,
            notifier=notifier,
            vault=vault,
            settings=settings
        )

    logger.info(
        "Services wired",
        extra={
            "llm_provider": settings.llm_provider,
            "notifier": type(notifier).__name__,
            "vault": vault is not None,
            "worker": triage_worker is not None,
        }
    )
    return Services(
        settings=settings,
        database=database,
        vault=vault,
        store_provider=store_provider,
        notifier=notifier,
        state_machine=state_machine,
        collector=collector,
        analysis_service=analysis_service,
        triage_worker=triage_worker,
    )
