"""
Workflow Infrastructure Layer
=============================

Infrastructure implementations for the ticket workflow module.

Contains:
- Models: SQLAlchemy ORM models
- Repositories: Ticket store and its unit-of-work provider
"""

from inquiry_board.workflow.infrastructure.models import (
    UserModel,
    TicketModel,
    ProcessLogModel,
    CommentModel,
    ServerModel,
)
from inquiry_board.workflow.infrastructure.repositories import (
    SQLAlchemyTicketStore,
    SQLAlchemyStoreProvider,
)

__all__ = [
    "UserModel",
    "TicketModel",
    "ProcessLogModel",
    "CommentModel",
    "ServerModel",
    "SQLAlchemyTicketStore",
    "SQLAlchemyStoreProvider",
]
