"""
Tests for prompt composition, the analysis service and the reasoning CLI client.
"""

import asyncio
import os
from datetime import datetime, timezone

import pytest

from inquiry_board.core import LLMException
from inquiry_board.infrastructure.llm import CLIReasoningClient, MockLLMClient, create_llm_client
from inquiry_board.triage.application import AnalysisService
from inquiry_board.triage.domain import AnalysisPromptBuilder, ServerContext
from inquiry_board.workflow.domain import Ticket

from tests.fakes import llm_returning


def make_ticket(**overrides) -> Ticket:
    values = dict(
        id=42,
        title="결제 페이지 오류",
        content="site returns 500",
        category="오류",
        status="ai_review",
        user_id=7,
        site="shop",
        created_at=datetime(2026, 3, 2, tzinfo=timezone.utc),
    )
    values.update(overrides)
    return Ticket(**values)


SERVER = ServerContext(
    site_name="shop",
    display_name="Shop Mall",
    server_ip="203.0.113.10",
    ssh_password="secret-pw",
    site_url="shop.example.com",
    admin_url="shop.example.com/admin",
)


class TestAnalysisPrompt:

    def test_minimal_prompt(self):
        prompt = AnalysisPromptBuilder.build_prompt("오류", "제목", "site returns 500")

        assert prompt.startswith("당신은 웹 서비스 운영팀의 기술 분석 전문가입니다.")
        assert "절대 마크다운 문법" in prompt
        assert "[카테고리]: 오류\n[제목]: 제목\n[내용]: site returns 500" in prompt
        assert "관리자 재확인 요청" not in prompt
        assert "대상 서버 정보" not in prompt

    def test_output_template_sections_in_order(self):
        prompt = AnalysisPromptBuilder.build_prompt("기타", "t", "c")
        headings = ["📋 문의 요약", "🔍 확인 사항", "⚠️ 문제점 분석", "💡 수정 방안",
                    "🔗 연관 영향 분석", "⏱️ 예상 소요 시간", "🚨 수정 불가 시 대안", "📌 최종 판단"]

        positions = [prompt.index(heading) for heading in headings]
        assert positions == sorted(positions)
        assert prompt.index("[내용]") < positions[0]

    def test_feedback_section_precedes_ticket(self):
        prompt = AnalysisPromptBuilder.build_prompt("오류", "t", "c", feedback="[재확인 요청] DB 로그도 확인")

        assert "🔄 [관리자 재확인 요청]" in prompt
        assert "관리자 피드백: [재확인 요청] DB 로그도 확인" in prompt
        assert prompt.index("관리자 피드백") < prompt.index("[카테고리]")

    def test_server_and_diagnostics_sections(self):
        diagnostics = {"uptime": "up 3 days", "custom_probe": "value"}

        prompt = AnalysisPromptBuilder.build_prompt("오류", "t", "c", server=SERVER, diagnostics=diagnostics)

        assert "- 사이트명: Shop Mall" in prompt
        assert "- 서버 IP: 203.0.113.10" in prompt
        assert "--- 서버 가동시간 ---\nup 3 days" in prompt
        assert "--- custom_probe ---\nvalue" in prompt
        assert "secret-pw" not in prompt

    def test_server_without_diagnostics(self):
        prompt = AnalysisPromptBuilder.build_prompt("오류", "t", "c", server=SERVER)

        assert "대상 서버 정보" in prompt
        assert "실제 서버 진단 결과" not in prompt

    def test_answer_prompt(self):
        prompt = AnalysisPromptBuilder.build_answer_prompt("비밀번호 변경은 어디서 하나요?")

        assert prompt.endswith("질문: 비밀번호 변경은 어디서 하나요?")
        assert "Q&A 게시판" in prompt


class TestAnalysisService:

    @pytest.mark.asyncio
    async def test_analyze_sends_composed_prompt(self):
        llm = llm_returning("보고서")
        service = AnalysisService(llm)

        report = await service.analyze(make_ticket(), feedback="[재확인 요청] 다시", server=SERVER)

        assert report == "보고서"
        prompt = llm.complete.await_args.args[0]
        assert "[재확인 요청] 다시" in prompt
        assert "Shop Mall" in prompt
        assert llm.complete.await_args.kwargs["operation"] == "analysis"

    @pytest.mark.asyncio
    async def test_analyze_propagates_failures(self):
        llm = llm_returning()
        llm.complete.side_effect = LLMException("service unavailable")

        with pytest.raises(LLMException):
            await AnalysisService(llm).analyze(make_ticket())

    @pytest.mark.asyncio
    async def test_answer_question_uses_answer_operation(self):
        service = AnalysisService(MockLLMClient())

        assert await service.answer_question("hello") == "This is a mock answer for testing purposes."


def write_cli(tmp_path, body: str):
    script = tmp_path / "reasoning-cli"
    script.write_text("#!/bin/sh\n" + body)
    os.chmod(script, 0o755)
    return script


class TestCLIReasoningClient:

    @pytest.mark.asyncio
    async def test_prompt_passed_non_interactively(self, tmp_path, settings):
        script = write_cli(tmp_path, 'echo "flags: $1 $3 $4"\necho "prompt: $2"\n')
        client = CLIReasoningClient(cli_path=script, settings=settings)

        result = await client.complete("분석해주세요")

        assert "flags: -p --output-format text" in result.content
        assert "prompt: 분석해주세요" in result.content
        assert result.model == "reasoning-cli"

    @pytest.mark.asyncio
    async def test_non_zero_exit_is_a_failure(self, tmp_path, settings):
        script = write_cli(tmp_path, 'echo "rate limited"\nexit 3\n')

        with pytest.raises(LLMException) as exc_info:
            await CLIReasoningClient(cli_path=script, settings=settings).complete("p")

        assert exc_info.value.details["exit_code"] == 3
        assert "rate limited" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_empty_output_is_a_failure(self, tmp_path, settings):
        script = write_cli(tmp_path, "exit 0\n")

        with pytest.raises(LLMException):
            await CLIReasoningClient(cli_path=script, settings=settings).complete("p")

    @pytest.mark.asyncio
    async def test_missing_binary_is_a_failure(self, tmp_path, settings):
        client = CLIReasoningClient(cli_path=tmp_path / "missing", settings=settings)

        with pytest.raises(LLMException):
            await client.complete("p")

    @pytest.mark.asyncio
    async def test_cancellation_kills_the_cli(self, tmp_path, settings):
        pidfile = tmp_path / "cli.pid"
        script = write_cli(tmp_path, f'echo $$ > "{pidfile}"\nexec sleep 30\n')
        task = asyncio.create_task(CLIReasoningClient(cli_path=script, settings=settings).complete("p"))

        for _ in range(100):
            if pidfile.exists() and pidfile.read_text().strip():
                break
            await asyncio.sleep(0.05)
        pid = int(pidfile.read_text())

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        with pytest.raises(ProcessLookupError):
            os.kill(pid, 0)


class TestClientFactory:

    def test_mock_provider(self, settings):
        assert isinstance(create_llm_client(settings), MockLLMClient)

    def test_cli_provider(self, settings):
        cli_settings = settings.model_copy(update={"llm_provider": "cli"})
        assert isinstance(create_llm_client(cli_settings), CLIReasoningClient)
