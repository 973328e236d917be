"""
Notification Sink
=================

Best-effort delivery of short status messages to the operators' chat.

``notify`` never raises. It returns True when the HTTP call completed
without a transport error; the application-level response code is not
inspected. Losing a notification must never fail the caller.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from inquiry_board.config import Settings, settings as default_settings
from inquiry_board.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

TELEGRAM_API_BASE = "https://api.telegram.org"


class INotifier(ABC):
    """Interface for the messaging endpoint."""

    @abstractmethod
    async def notify(self, text: str) -> bool:
        """Send ``text``; return True iff the transport call completed."""

    async def close(self) -> None:
        """Release transport resources."""


class NullNotifier(INotifier):
    """Used when no endpoint is configured; silently drops messages."""

    async def notify(self, text: str) -> bool:
        return False


class _HttpNotifier(INotifier):
    """Shared httpx plumbing for JSON webhook style endpoints."""

    def __init__(self, timeout: float, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._timeout = timeout
        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None

    @property
    @abstractmethod
    def enabled(self) -> bool:
        """Whether the endpoint configuration is complete."""

    @abstractmethod
    def _endpoint(self) -> str:
        """URL the message is posted to."""

    @abstractmethod
    def _payload(self, text: str) -> Dict[str, Any]:
        """JSON body for ``text``."""

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport
            )
        return self._http_client

    async def notify(self, text: str) -> bool:
        if not self.enabled:
            logger.debug("Notification endpoint not configured, skipping")
            return False

        try:
            client = await self._get_client()
            response = await client.post(self._endpoint(), json=self._payload(text))
        except Exception as e:
            logger.warning(
                "Notification failed",
                extra={"notifier": type(self).__name__, "error": str(e)}
            )
            return False

        if response.status_code >= 300:
            logger.info(
                "Notification endpoint answered non-2xx",
                extra={"notifier": type(self).__name__, "status_code": response.status_code}
            )
        return True

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None


class TelegramNotifier(_HttpNotifier):
    """Posts messages through the Telegram bot API ``sendMessage`` method."""

    def __init__(
        self,
        bot_token: Optional[str],
        chat_id: Optional[str],
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        super().__init__(timeout, transport)
        self._bot_token = bot_token or ""
        self._chat_id = chat_id or ""

    @property
    def enabled(self) -> bool:
        return bool(self._bot_token and self._chat_id)

    def _endpoint(self) -> str:
        return f"{TELEGRAM_API_BASE}/bot{self._bot_token}/sendMessage"

    def _payload(self, text: str) -> Dict[str, Any]:
        return {"chat_id": self._chat_id, "text": text, "parse_mode": "HTML"}


class SlackWebhookNotifier(_HttpNotifier):
    """Posts plain-text messages to a Slack incoming webhook."""

    def __init__(
        self,
        webhook_url: Optional[str],
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        super().__init__(timeout, transport)
        self._webhook_url = webhook_url or ""

    @property
    def enabled(self) -> bool:
        return bool(self._webhook_url)

    def _endpoint(self) -> str:
        return self._webhook_url

    def _payload(self, text: str) -> Dict[str, Any]:
        return {"text": text}


def create_notifier(settings: Optional[Settings] = None) -> INotifier:
    """Telegram when configured, else Slack, else a no-op sink."""
    settings = settings or default_settings
    timeout = settings.notification_timeout_seconds

    if settings.telegram_bot_token and settings.telegram_chat_id:
        return TelegramNotifier(settings.telegram_bot_token, settings.telegram_chat_id, timeout)
    if settings.slack_webhook_url:
        return SlackWebhookNotifier(settings.slack_webhook_url, timeout)
    return NullNotifier()


# ========== Message builders ==========

def approval_request_message(ticket_id: int, category: str, title: str, site: Optional[str]) -> str:
    return (
        "🤖 AI 분석 완료 - 승인 요청\n\n"
        f"📌 게시글 #{ticket_id}\n"
        f"📂 카테고리: {category}\n"
        f"📝 제목: {title}\n"
        f"🏢 사이트: {site or '알 수 없음'}\n\n"
        "AI가 문의를 분석하고 처리 방안을 도출했습니다.\n"
        "관리자 페이지에서 확인 후 승인해주세요."
    )


def transition_message(ticket_id: int, step_label: str, note: Optional[str] = None) -> str:
    message = f"[처리절차 변경]\n게시글 #{ticket_id}\n단계: {step_label}"
    if note:
        message += f"\n메모: {note}"
    return message


def failure_message(ticket_id: int, title: str, error: str, parked: bool = False) -> str:
    message = f"⚠️ AI 처리 오류\n게시글 #{ticket_id}: {title}\n오류: {error}"
    if parked:
        message += "\n재시도 한도에 도달하여 자동 처리를 중단했습니다."
    return message
