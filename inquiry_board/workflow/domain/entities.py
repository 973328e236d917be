"""
Workflow Domain Entities
========================

Plain snapshots of stored records handed across layer boundaries.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class Ticket:
    """
    One user-filed inquiry as read from the store.

    ``site`` is the owning user's site tag, used to find the server record.
    """
    id: int
    title: str
    content: str
    category: str
    status: str
    user_id: Optional[int]
    site: Optional[str]
    created_at: datetime
    analysis_failures: int = 0


@dataclass
class ProcessLogEntry:
    """Audit record for one workflow step."""
    id: int
    ticket_id: int
    step: str
    content: str
    created_by: Optional[int]
    created_at: datetime
