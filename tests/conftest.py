"""
Shared fixtures: a file-backed SQLite database per test, the wired
workflow services and row factories.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from inquiry_board.config import Settings
from inquiry_board.infrastructure.crypto import CredentialVault
from inquiry_board.infrastructure.database import Database
from inquiry_board.infrastructure.notifications import INotifier
from inquiry_board.workflow.application import WorkflowStateMachine
from inquiry_board.workflow.domain import Step
from inquiry_board.workflow.infrastructure import (
    ProcessLogModel,
    SQLAlchemyStoreProvider,
    TicketModel,
    UserModel,
)

BASE_TIME = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        environment="development",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'board.db'}",
        credential_key="unit-test-credential-key",
        llm_provider="mock",
        worker_lock_path=tmp_path / "worker.lock",
        worker_pause_seconds=2.0,
        worker_batch_size=5,
        max_analysis_attempts=5,
    )


@pytest_asyncio.fixture
async def database(settings):
    db = Database(settings.database_url)
    await db.create_tables()
    yield db
    await db.dispose()


@pytest.fixture
def vault(settings) -> CredentialVault:
    return CredentialVault(settings.credential_key)


@pytest.fixture
def store_provider(database, vault) -> SQLAlchemyStoreProvider:
    return SQLAlchemyStoreProvider(database, vault)


@pytest.fixture
def notifier() -> AsyncMock:
    sink = AsyncMock(spec=INotifier)
    sink.notify.return_value = True
    return sink


@pytest.fixture
def state_machine(store_provider, notifier) -> WorkflowStateMachine:
    return WorkflowStateMachine(store_provider, notifier)


@pytest.fixture
def make_ticket(database):
    """Insert a ticket (and its owner) and return the ticket id."""
    counter = {"n": 0}

    async def _make(
        title: str = "문의",
        content: str = "내용",
        category: str = "기타",
        status: str = Step.REGISTERED,
        site: Optional[str] = None,
        ticket_id: Optional[int] = None,
        created_at: Optional[datetime] = None,
        analysis_failures: int = 0,
    ) -> int:
        counter["n"] += 1
        async with database.session() as session:
            user = UserModel(
                username=f"user{counter['n']}",
                display_name=f"사용자{counter['n']}",
                site=site
            )
            session.add(user)
            await session.flush()

            ticket = TicketModel(
                id=ticket_id,
                title=title,
                content=content,
                category=category,
                status=status,
                user_id=user.id,
                analysis_failures=analysis_failures,
                created_at=created_at or BASE_TIME + timedelta(minutes=counter["n"]),
            )
            session.add(ticket)
            await session.flush()
            return ticket.id

    return _make


@pytest.fixture
def read_ticket(database):
    async def _read(ticket_id: int) -> TicketModel:
        async with database.session() as session:
            return await session.get(TicketModel, ticket_id)

    return _read


@pytest.fixture
def read_logs(store_provider):
    async def _read(ticket_id: int):
        async with store_provider() as store:
            return await store.list_logs(ticket_id)

    return _read


@pytest.fixture
def add_log(database):
    async def _add(ticket_id: int, step: str, content: str, created_at: Optional[datetime] = None) -> int:
        async with database.session() as session:
            entry = ProcessLogModel(
                post_id=ticket_id,
                step=step,
                content=content,
                created_at=created_at or datetime.now(timezone.utc)
            )
            session.add(entry)
            await session.flush()
            return entry.id

    return _add
