"""
Workflow Infrastructure Models
==============================

SQLAlchemy ORM models for the inquiry board tables.

Table names follow the existing board schema (tickets live in ``posts``).
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from inquiry_board.infrastructure.database import Base
from inquiry_board.config import TicketCategory
from inquiry_board.workflow.domain import Step


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserModel(Base):
    """Board account. ``site`` ties a user to a managed server record."""
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="user")
    site: Mapped[Optional[str]] = mapped_column(String(50), index=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


class TicketModel(Base):
    """
    Database model for a ticket (inquiry).

    ``status`` is only ever changed through a guarded update.
    """
    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False, default=TicketCategory.OTHER, index=True)
    user_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    status: Mapped[str] = mapped_column(String(30), nullable=False, default=Step.REGISTERED, index=True)
    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    analysis_failures: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow
    )


class ProcessLogModel(Base):
    """Append-only audit record of workflow steps."""
    __tablename__ = "process_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("posts.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    step: Mapped[str] = mapped_column(String(30), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_by: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


class CommentModel(Base):
    """Reply shown under a ticket."""
    __tablename__ = "comments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("posts.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    author_name: Mapped[str] = mapped_column(String(100), nullable=False)
    is_ai_answer: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


class ServerModel(Base):
    """
    Credentials and endpoints of a managed site.

    Password columns hold Credential Vault blobs, never clear text.
    """
    __tablename__ = "servers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    site_name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    server_ip: Mapped[str] = mapped_column(String(100), nullable=False)

    ssh_user: Mapped[str] = mapped_column(String(50), nullable=False, default="root")
    ssh_password: Mapped[str] = mapped_column(Text, nullable=False, default="")
    db_user: Mapped[str] = mapped_column(String(50), nullable=False, default="root")
    db_password: Mapped[str] = mapped_column(Text, nullable=False, default="")

    site_url: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    site_login_id: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    site_login_pw: Mapped[str] = mapped_column(Text, nullable=False, default="")
    admin_url: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    admin_login_id: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    admin_login_pw: Mapped[str] = mapped_column(Text, nullable=False, default="")

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow
    )
