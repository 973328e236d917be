"""
Tests for the notification sink.
"""

import json

import httpx
import pytest

from inquiry_board.infrastructure.notifications import (
    NullNotifier,
    SlackWebhookNotifier,
    TelegramNotifier,
    approval_request_message,
    create_notifier,
    failure_message,
    transition_message,
)


def recording_transport(status_code: int = 200):
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(status_code, json={"ok": status_code < 300})

    return httpx.MockTransport(handler), requests


class TestTelegramNotifier:

    @pytest.mark.asyncio
    async def test_posts_send_message(self):
        transport, requests = recording_transport()
        notifier = TelegramNotifier("123:abc", "-100200", transport=transport)

        assert await notifier.notify("<b>hello</b>") is True
        await notifier.close()

        assert len(requests) == 1
        assert str(requests[0].url) == "https://api.telegram.org/bot123:abc/sendMessage"
        assert json.loads(requests[0].content) == {
            "chat_id": "-100200",
            "text": "<b>hello</b>",
            "parse_mode": "HTML",
        }

    @pytest.mark.asyncio
    async def test_disabled_without_configuration(self):
        transport, requests = recording_transport()

        assert await TelegramNotifier("", "-100200", transport=transport).notify("x") is False
        assert await TelegramNotifier("123:abc", None, transport=transport).notify("x") is False
        assert requests == []

    @pytest.mark.asyncio
    async def test_non_2xx_still_counts_as_delivered(self):
        transport, _ = recording_transport(status_code=400)

        assert await TelegramNotifier("123:abc", "1", transport=transport).notify("x") is True

    @pytest.mark.asyncio
    async def test_transport_error_is_swallowed(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        notifier = TelegramNotifier("123:abc", "1", transport=httpx.MockTransport(handler))

        assert await notifier.notify("x") is False


class TestSlackWebhookNotifier:

    @pytest.mark.asyncio
    async def test_posts_text_payload(self):
        transport, requests = recording_transport()
        notifier = SlackWebhookNotifier("https://hooks.slack.com/services/T/B/X", transport=transport)

        assert await notifier.notify("hello") is True
        assert json.loads(requests[0].content) == {"text": "hello"}


class TestFactory:

    def test_telegram_preferred(self, settings):
        configured = settings.model_copy(update={
            "telegram_bot_token": "123:abc",
            "telegram_chat_id": "1",
            "slack_webhook_url": "https://hooks.slack.com/services/T/B/X",
        })
        assert isinstance(create_notifier(configured), TelegramNotifier)

    def test_slack_fallback(self, settings):
        configured = settings.model_copy(update={"slack_webhook_url": "https://hooks.slack.com/services/T/B/X"})
        assert isinstance(create_notifier(configured), SlackWebhookNotifier)

    @pytest.mark.asyncio
    async def test_null_when_unconfigured(self, settings):
        notifier = create_notifier(settings)

        assert isinstance(notifier, NullNotifier)
        assert await notifier.notify("x") is False


class TestMessages:

    def test_approval_request(self):
        message = approval_request_message(42, "오류", "결제 오류", None)

        assert message.startswith("🤖 AI 분석 완료 - 승인 요청")
        assert "#42" in message
        assert "알 수 없음" in message

    def test_transition_with_note(self):
        assert transition_message(42, "작업이 완료되었습니다.", "확인") == (
            "[처리절차 변경]\n게시글 #42\n단계: 작업이 완료되었습니다.\n메모: 확인"
        )

    def test_failure_parked(self):
        assert "재시도 한도" in failure_message(42, "t", "boom", parked=True)
        assert "재시도 한도" not in failure_message(42, "t", "boom")
