"""
Workflow Infrastructure Repositories
====================================

SQLAlchemy implementation of the ticket store.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from inquiry_board.core import CredentialVaultException, RepositoryException
from inquiry_board.infrastructure.crypto import SECRET_FIELDS, CredentialVault
from inquiry_board.infrastructure.database import Database
from inquiry_board.workflow.application import ITicketStore
from inquiry_board.workflow.domain import FEEDBACK_MARKER, ProcessLogEntry, Ticket
from inquiry_board.workflow.infrastructure.models import (
    CommentModel,
    ProcessLogModel,
    ServerModel,
    TicketModel,
    UserModel,
)


class SQLAlchemyTicketStore(ITicketStore):
    """SQLAlchemy implementation for tickets, process logs, comments and servers."""

    def __init__(self, session: AsyncSession, vault: Optional[CredentialVault] = None):
        self._session = session
        self._vault = vault

    def _ticket_query(self):
        return (
            select(TicketModel, UserModel.site)
            .outerjoin(UserModel, UserModel.id == TicketModel.user_id)
        )

    @staticmethod
    def _to_ticket(model: TicketModel, site: Optional[str]) -> Ticket:
        return Ticket(
            id=model.id,
            title=model.title,
            content=model.content,
            category=model.category,
            status=model.status,
            user_id=model.user_id,
            site=site,
            created_at=model.created_at,
            analysis_failures=model.analysis_failures
        )

    async def list_by_status(
        self,
        status: str,
        limit: int,
        max_failures: Optional[int] = None
    ) -> List[Ticket]:
        stmt = self._ticket_query().where(TicketModel.status == status)
        if max_failures:
            stmt = stmt.where(TicketModel.analysis_failures < max_failures)
        stmt = stmt.order_by(TicketModel.created_at.asc(), TicketModel.id.asc()).limit(limit)

        result = await self._session.execute(stmt)
        return [self._to_ticket(model, site) for model, site in result.all()]

    async def get_ticket(self, ticket_id: int) -> Optional[Ticket]:
        stmt = self._ticket_query().where(TicketModel.id == ticket_id)
        result = await self._session.execute(stmt)
        row = result.first()
        if row is None:
            return None
        return self._to_ticket(row[0], row[1])

    async def compare_and_set_status(self, ticket_id: int, expected: str, target: str) -> int:
        stmt = (
            update(TicketModel)
            .where(TicketModel.id == ticket_id, TicketModel.status == expected)
            .values(status=target)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount

    async def append_log(
        self,
        ticket_id: int,
        step: str,
        content: str,
        created_by: Optional[int] = None
    ) -> int:
        model = ProcessLogModel(
            post_id=ticket_id,
            step=step,
            content=content,
            created_by=created_by
        )
        self._session.add(model)
        await self._session.flush()
        return model.id

    async def delete_latest_log(self, ticket_id: int, step: str) -> bool:
        stmt = (
            select(ProcessLogModel.id)
            .where(ProcessLogModel.post_id == ticket_id, ProcessLogModel.step == step)
            .order_by(ProcessLogModel.created_at.desc(), ProcessLogModel.id.desc())
            .limit(1)
        )
        log_id = (await self._session.execute(stmt)).scalar_one_or_none()
        if log_id is None:
            return False

        await self._session.execute(delete(ProcessLogModel).where(ProcessLogModel.id == log_id))
        return True

    async def latest_feedback(self, ticket_id: int) -> Optional[str]:
        stmt = (
            select(ProcessLogModel.content)
            .where(
                ProcessLogModel.post_id == ticket_id,
                ProcessLogModel.content.startswith(FEEDBACK_MARKER, autoescape=True)
            )
            .order_by(ProcessLogModel.created_at.desc(), ProcessLogModel.id.desc())
            .limit(1)
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def list_logs(self, ticket_id: int) -> List[ProcessLogEntry]:
        stmt = (
            select(ProcessLogModel)
            .where(ProcessLogModel.post_id == ticket_id)
            .order_by(ProcessLogModel.created_at.asc(), ProcessLogModel.id.asc())
        )
        result = await self._session.execute(stmt)
        return [
            ProcessLogEntry(
                id=model.id,
                ticket_id=model.post_id,
                step=model.step,
                content=model.content,
                created_by=model.created_by,
                created_at=model.created_at
            )
            for model in result.scalars().all()
        ]

    async def get_server_by_site(self, site_name: str) -> Optional[ServerModel]:
        stmt = select(ServerModel).where(ServerModel.site_name == site_name)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def save_server(self, values: dict) -> int:
        """
        Insert or update by ``site_name``; secret fields are encrypted first.

        On update an empty secret keeps the stored one, so editing other
        fields never erases a password.
        """
        site_name = values.get("site_name")
        if not site_name:
            raise RepositoryException("Server record requires a site_name")
        if self._vault is None:
            raise CredentialVaultException("Credential key not configured; refusing to store secrets")

        encrypted = self._vault.encrypt_fields(values)
        model = await self.get_server_by_site(site_name)
        if model is None:
            model = ServerModel(**encrypted)
            self._session.add(model)
        else:
            for key, value in encrypted.items():
                if key in SECRET_FIELDS and not value:
                    continue
                setattr(model, key, value)

        await self._session.flush()
        return model.id

    async def add_comment(
        self,
        ticket_id: int,
        content: str,
        author_name: str,
        is_ai_answer: bool = False
    ) -> int:
        model = CommentModel(
            post_id=ticket_id,
            content=content,
            author_name=author_name,
            is_ai_answer=is_ai_answer
        )
        self._session.add(model)
        await self._session.flush()
        return model.id

    async def increment_failures(self, ticket_id: int) -> int:
        await self._session.execute(
            update(TicketModel)
            .where(TicketModel.id == ticket_id)
            .values(analysis_failures=TicketModel.analysis_failures + 1)
            .execution_options(synchronize_session=False)
        )
        stmt = select(TicketModel.analysis_failures).where(TicketModel.id == ticket_id)
        return (await self._session.execute(stmt)).scalar_one_or_none() or 0

    async def reset_failures(self, ticket_id: int) -> None:
        await self._session.execute(
            update(TicketModel)
            .where(TicketModel.id == ticket_id)
            .values(analysis_failures=0)
            .execution_options(synchronize_session=False)
        )


class SQLAlchemyStoreProvider:
    """
    Opens one unit of work per call.

    Usage:
        async with provider() as store:
            await store.compare_and_set_status(...)
    """

    def __init__(self, database: Database, vault: Optional[CredentialVault] = None):
        self._database = database
        self._vault = vault

    @asynccontextmanager
    async def __call__(self) -> AsyncIterator[SQLAlchemyTicketStore]:
        async with self._database.session() as session:
            yield SQLAlchemyTicketStore(session, self._vault)
