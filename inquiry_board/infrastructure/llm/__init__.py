"""
LLM Client Infrastructure
==========================

Clients for the external reasoning service used to analyze inquiries.

The application depends on the ``ILLMClient`` abstraction only; which
backend answers is a configuration choice (OpenAI, Z.AI, a local reasoning
CLI, or a mock for development and tests). Every backend treats an error or
an empty answer as a hard failure and raises ``LLMException``; none of them
retries.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from openai import AsyncOpenAI
from zai import ZaiClient

from inquiry_board.config import Settings, settings as default_settings
from inquiry_board.core import LLMException, ConfigurationException
from inquiry_board.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class ChatCompletionResult:
    """Result of a single reasoning call."""

    def __init__(
        self,
        content: str,
        model: str,
        latency_ms: int,
        prompt_tokens: int = 0,
        completion_tokens: int = 0
    ):
        self.content = content
        self.model = model
        self.latency_ms = latency_ms
        self.prompt_tokens = prompt_tokens
        self.completion_tokens = completion_tokens
        self.total_tokens = prompt_tokens + completion_tokens


class ILLMClient(ABC):
    """
    Interface for the reasoning service.

    Only one operation is needed: turn a prompt into free text.
    """

    @abstractmethod
    async def complete(self, prompt: str, operation: str = "analysis") -> ChatCompletionResult:
        """Run the prompt and return the answer text."""


def _require_content(content: Optional[str]) -> str:
    text = (content or "").strip()
    if not text:
        raise LLMException("Reasoning service returned an empty answer")
    return text


class OpenAILLMClient(ILLMClient):
    """
    OpenAI client implementation for GPT models.

    Provides async wrapper around OpenAI SDK operations.
    """

    def __init__(self, api_key: Optional[str] = None, settings: Optional[Settings] = None):
        self._settings = settings or default_settings
        self._api_key = api_key or self._settings.openai_api_key
        if not self._api_key:
            raise ConfigurationException("OpenAI API key not configured")

        self._client = AsyncOpenAI(api_key=self._api_key)
        self._model = self._settings.llm_model

    async def complete(self, prompt: str, operation: str = "analysis") -> ChatCompletionResult:
        """
        Run the prompt as a single user message.

        Raises:
            LLMException: If the call fails or returns nothing
        """
        start_time = time.perf_counter()

        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self._settings.llm_temperature,
                max_tokens=self._settings.llm_max_tokens
            )
        except Exception as e:
            raise LLMException(f"Chat completion failed: {str(e)}")

        content = _require_content(response.choices[0].message.content)
        usage = response.usage

        return ChatCompletionResult(
            content=content,
            model=self._model,
            latency_ms=int((time.perf_counter() - start_time) * 1000),
            prompt_tokens=usage.prompt_tokens if usage else 0,
            completion_tokens=usage.completion_tokens if usage else 0
        )


class ZAILLMClient(ILLMClient):
    """
    Z.AI SDK client implementation for GLM models.

    The SDK is synchronous, so the call runs in a worker thread.
    """

    def __init__(self, api_key: Optional[str] = None, settings: Optional[Settings] = None):
        self._settings = settings or default_settings
        self._api_key = api_key or self._settings.zai_api_key
        if not self._api_key:
            raise ConfigurationException("Z.AI API key not configured")

        self._client = ZaiClient(api_key=self._api_key)
        self._model = self._settings.llm_model

    async def complete(self, prompt: str, operation: str = "analysis") -> ChatCompletionResult:
        start_time = time.perf_counter()

        try:
            response = await asyncio.to_thread(
                self._client.chat.completions.create,
                model=self._model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self._settings.llm_temperature,
                max_tokens=self._settings.llm_max_tokens
            )
        except Exception as e:
            raise LLMException(f"Chat completion failed: {str(e)}")

        content = _require_content(response.choices[0].message.content)

        # Z.AI doesn't return token usage, so we estimate
        return ChatCompletionResult(
            content=content,
            model=self._model,
            latency_ms=int((time.perf_counter() - start_time) * 1000),
            prompt_tokens=len(prompt),
            completion_tokens=len(content)
        )


class CLIReasoningClient(ILLMClient):
    """
    Runs a reasoning CLI non-interactively: ``<cli> -p <prompt> --output-format text``.

    No timeout is imposed here; the call lasts as long as the CLI does.
    Cancelling the call kills the CLI process.
    """

    def __init__(self, cli_path: Optional[Path] = None, settings: Optional[Settings] = None):
        self._settings = settings or default_settings
        self._cli_path = Path(cli_path or self._settings.reasoning_cli_path)

    async def complete(self, prompt: str, operation: str = "analysis") -> ChatCompletionResult:
        start_time = time.perf_counter()

        try:
            process = await asyncio.create_subprocess_exec(
                str(self._cli_path), "-p", prompt, "--output-format", "text",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as e:
            raise LLMException(f"Reasoning CLI could not be started: {e}")

        try:
            stdout, _ = await process.communicate()
        except asyncio.CancelledError:
            process.kill()
            await process.wait()
            raise
        output = stdout.decode("utf-8", errors="replace").strip()

        if process.returncode != 0 or not output:
            raise LLMException(
                f"Reasoning CLI failed (code: {process.returncode}): {output[:500]}",
                details={"exit_code": process.returncode}
            )

        return ChatCompletionResult(
            content=output,
            model=self._cli_path.name,
            latency_ms=int((time.perf_counter() - start_time) * 1000)
        )


class MockLLMClient(ILLMClient):
    """
    Mock LLM client for testing.

    Returns predictable responses without calling external APIs.
    """

    async def complete(self, prompt: str, operation: str = "analysis") -> ChatCompletionResult:
        if operation == "answer":
            content = "This is a mock answer for testing purposes."
        else:
            content = (
                "📋 문의 요약\n- 문의 유형: 기타\n- 핵심 내용: mock analysis\n\n"
                "📌 최종 판단\n- 우선순위: 보통\n- 권장 조치: 모니터링\n"
                "- 승인 요청 사항: mock analysis approval"
            )

        return ChatCompletionResult(content=content, model="mock-model", latency_ms=0)


def create_llm_client(settings: Optional[Settings] = None) -> ILLMClient:
    """Build the reasoning client selected by ``llm_provider``."""
    settings = settings or default_settings
    provider = settings.llm_provider

    if provider == "openai":
        return OpenAILLMClient(settings=settings)
    if provider == "zai":
        return ZAILLMClient(settings=settings)
    if provider == "mock":
        return MockLLMClient()
    return CLIReasoningClient(settings=settings)
