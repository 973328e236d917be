"""
Fakes for the external collaborators of the triage pipeline.
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Dict, List, Tuple
from unittest.mock import AsyncMock

from inquiry_board.infrastructure.llm import ChatCompletionResult, ILLMClient
from inquiry_board.infrastructure.remote_shell import IRemoteShell
from inquiry_board.workflow.application import ITicketStore
from inquiry_board.workflow.domain import ProcessLogEntry, Ticket, is_feedback


class RecordingShell(IRemoteShell):
    """Remote shell fake returning a fixed reply and recording every call."""

    def __init__(self, reply: Tuple[str, int] = ("ok", 0)):
        self.reply = reply
        self.calls: List[dict] = []

    async def run(self, host, user, password, command, timeout):
        self.calls.append({
            "host": host, "user": user, "password": password,
            "command": command, "timeout": timeout,
        })
        return self.reply


def llm_returning(content: str = "분석 결과 보고서") -> AsyncMock:
    llm = AsyncMock(spec=ILLMClient)
    llm.complete.return_value = ChatCompletionResult(content=content, model="fake-model", latency_ms=5)
    return llm


class InMemoryTicketStore(ITicketStore):
    """
    Dict-backed store whose conditional update yields to the event loop
    before the atomic check, so concurrent callers genuinely interleave.
    """

    def __init__(self):
        self.tickets: Dict[int, Ticket] = {}
        self.logs: List[ProcessLogEntry] = []
        self.comments: List[dict] = []
        self._next_log_id = 1

    def add_ticket(self, ticket_id: int, status: str) -> None:
        self.tickets[ticket_id] = Ticket(
            id=ticket_id, title="t", content="c", category="기타", status=status,
            user_id=None, site=None, created_at=datetime.now(timezone.utc)
        )

    @asynccontextmanager
    async def provider(self):
        yield self

    async def list_by_status(self, status, limit, max_failures=None):
        found = [t for t in self.tickets.values() if t.status == status]
        return sorted(found, key=lambda t: (t.created_at, t.id))[:limit]

    async def get_ticket(self, ticket_id):
        return self.tickets.get(ticket_id)

    async def compare_and_set_status(self, ticket_id, expected, target):
        await asyncio.sleep(0)
        ticket = self.tickets.get(ticket_id)
        if ticket is None or ticket.status != expected:
            return 0
        ticket.status = target
        return 1

    async def append_log(self, ticket_id, step, content, created_by=None):
        entry = ProcessLogEntry(
            id=self._next_log_id, ticket_id=ticket_id, step=step, content=content,
            created_by=created_by, created_at=datetime.now(timezone.utc)
        )
        self._next_log_id += 1
        self.logs.append(entry)
        return entry.id

    async def delete_latest_log(self, ticket_id, step):
        matching = [e for e in self.logs if e.ticket_id == ticket_id and e.step == step]
        if not matching:
            return False
        self.logs.remove(matching[-1])
        return True

    async def latest_feedback(self, ticket_id):
        matching = [e.content for e in self.logs if e.ticket_id == ticket_id and is_feedback(e.content)]
        return matching[-1] if matching else None

    async def list_logs(self, ticket_id):
        return [e for e in self.logs if e.ticket_id == ticket_id]

    async def get_server_by_site(self, site_name):
        return None

    async def save_server(self, values):
        raise NotImplementedError

    async def add_comment(self, ticket_id, content, author_name, is_ai_answer=False):
        self.comments.append({"ticket_id": ticket_id, "content": content, "author_name": author_name})
        return len(self.comments)

    async def increment_failures(self, ticket_id):
        self.tickets[ticket_id].analysis_failures += 1
        return self.tickets[ticket_id].analysis_failures

    async def reset_failures(self, ticket_id):
        self.tickets[ticket_id].analysis_failures = 0
