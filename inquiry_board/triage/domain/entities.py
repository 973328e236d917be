"""
Triage Domain Entities
======================

Domain entities for the triage pipeline.

Contains the in-memory server context, the per-step outcome the worker
branches on, and the analysis prompt builder.
"""

from dataclasses import dataclass, field
from typing import Any, Generic, Optional, TypeVar

from inquiry_board.triage.domain.value_objects import DiagnosticsBundle, probe_label

T = TypeVar("T")


@dataclass
class ServerContext:
    """
    A managed server with its secrets decrypted.

    Lives only in memory for the duration of one ticket's pipeline pass.
    Secret fields are kept out of ``repr`` so they never reach a log line.
    """
    site_name: str
    display_name: str
    server_ip: str
    ssh_user: str = "root"
    ssh_password: str = field(default="", repr=False)
    db_user: str = "root"
    db_password: str = field(default="", repr=False)
    site_url: str = ""
    admin_url: str = ""

    @property
    def has_shell_access(self) -> bool:
        """Address and SSH password are the minimum needed to connect."""
        return bool(self.server_ip and self.ssh_password)


@dataclass
class StepOutcome(Generic[T]):
    """
    Result of one pipeline step.

    The worker inspects ``ok`` instead of relying on exceptions to reach its
    rollback path.
    """
    step: str
    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, step: str, value: Any = None) -> "StepOutcome":
        return cls(step=step, ok=True, value=value)

    @classmethod
    def failure(cls, step: str, error: str) -> "StepOutcome":
        return cls(step=step, ok=False, error=error)


class AnalysisPromptBuilder:
    """
    Builds the single prompt sent to the reasoning service for a ticket.

    All prompt text lives here so the report format has one owner.
    """

    ROLE = (
        "당신은 웹 서비스 운영팀의 기술 분석 전문가입니다.\n"
        "고객 문의를 분석하여 관리자가 승인할 수 있는 상세한 처리 보고서를 작성해주세요.\n\n"
        "절대 마크다운 문법(#, **, |, ---, >, ```)을 사용하지 마세요.\n"
        "이모지와 일반 텍스트, 번호 목록만 사용하세요.\n"
    )

    FEEDBACK_TEMPLATE = (
        "\n🔄 [관리자 재확인 요청]\n"
        "이전 분석에 대해 관리자가 아래와 같은 피드백을 보냈습니다.\n"
        "반드시 이 피드백 내용을 반영하여 재분석해주세요.\n"
        "기존 분석에서 부족했던 부분을 보완하고, 관리자가 지적한 사항을 중점적으로 다시 확인해주세요.\n\n"
        "관리자 피드백: {feedback}\n\n"
    )

    OUTPUT_TEMPLATE = """아래 형식을 정확히 따라주세요:

📋 문의 요약
- 문의 유형: (오류/건의/긴급/추가개발/기타)
- 핵심 내용: (1-2줄 요약)
- 접수 긴급도: (긴급/높음/보통/낮음)

🔍 확인 사항
(어떤 부분을 확인했는지 구체적으로 기술)
1. 확인 항목: (확인한 내용)
   확인 결과: (정상/이상/확인필요)
   상세: (확인한 내용의 세부사항)

⚠️ 문제점 분석
(각 문제점이 어떻게 잘못되었는지 원인까지 기술)
1. 문제: (문제 설명)
   원인: (왜 이 문제가 발생했는지)
   영향 범위: (이 문제로 인해 어디까지 영향을 받는지)
   심각도: (치명적/높음/보통/낮음)

💡 수정 방안
(각 문제에 대해 어떤 부분을 어떻게 수정하면 되는지 구체적으로)
1. 대상: (수정할 대상 - 서버/DB/코드/설정 등)
   수정 내용: (구체적으로 무엇을 어떻게 변경하는지)
   작업 절차: (순서대로 작업 단계를 나열)
   기대 효과: (수정 후 예상되는 결과)

🔗 연관 영향 분석
(수정했을 때 다른 관련된 부분에 영향이 없는지 확인)
1. 관련 시스템/기능: (영향받을 수 있는 부분)
   영향 여부: (영향있음/영향없음)
   대응 방안: (영향이 있다면 어떻게 대응하는지)

⏱️ 예상 소요 시간
- 분석 완료: 완료
- 수정 작업: (예상 시간)
- 테스트 검증: (예상 시간)
- 전체 소요: (총 예상 시간)

🚨 수정 불가 시 대안
(만약 수정이 안되거나 문제가 심각한 경우 어떤 조치를 할 수 있는지)
1. 대안: (대체 방안 설명)
   조건: (이 대안을 선택하는 조건)
   장단점: (장점과 단점)
- 긴급 연락: (에스컬레이션이 필요한 경우 누구에게 연락해야 하는지)

📌 최종 판단
- 우선순위: (긴급/높음/보통/낮음)
- 권장 조치: (즉시처리/일반처리/모니터링/보류)
- 승인 요청 사항: (관리자에게 승인받아야 할 구체적 내용을 한줄로)"""

    ANSWER_TEMPLATE = (
        "당신은 Q&A 게시판의 친절한 AI 어시스턴트입니다. "
        "사용자의 질문에 한국어로 명확하고 도움이 되는 답변을 해주세요.\n\n질문: {question}"
    )

    @classmethod
    def feedback_section(cls, feedback: Optional[str]) -> str:
        if not feedback:
            return ""
        return cls.FEEDBACK_TEMPLATE.format(feedback=feedback)

    @classmethod
    def server_section(cls, server: Optional[ServerContext], diagnostics: Optional[DiagnosticsBundle]) -> str:
        """Server context, followed by each probe result under its label."""
        if server is None:
            return ""

        lines = [
            "",
            "🖥️ [대상 서버 정보]",
            "이 문의는 아래 서버에서 발생한 문제입니다.",
            "",
            f"- 사이트명: {server.display_name}",
            f"- 서버 IP: {server.server_ip}",
            f"- 사이트 주소: {server.site_url}",
            f"- 관리자 페이지: {server.admin_url}",
        ]
        section = "\n".join(lines) + "\n"

        if diagnostics:
            section += (
                "\n📡 [실제 서버 진단 결과]\n"
                "아래는 해당 서버에 직접 접속하여 수집한 실시간 진단 데이터입니다.\n"
                "이 데이터를 기반으로 정확한 문제 원인을 분석해주세요.\n\n"
            )
            for name, output in diagnostics.items():
                section += f"--- {probe_label(name)} ---\n{output}\n\n"

        return section + "\n"

    @classmethod
    def build_prompt(
        cls,
        category: str,
        title: str,
        content: str,
        feedback: Optional[str] = None,
        server: Optional[ServerContext] = None,
        diagnostics: Optional[DiagnosticsBundle] = None
    ) -> str:
        """Build the analysis prompt for one ticket."""
        return (
            f"{cls.ROLE}"
            f"{cls.feedback_section(feedback)}"
            f"{cls.server_section(server, diagnostics)}"
            f"\n[카테고리]: {category}\n"
            f"[제목]: {title}\n"
            f"[내용]: {content}\n\n"
            f"{cls.OUTPUT_TEMPLATE}"
        )

    @classmethod
    def build_answer_prompt(cls, question: str) -> str:
        """Prompt for the synchronous ask-AI feature."""
        return cls.ANSWER_TEMPLATE.format(question=question)
