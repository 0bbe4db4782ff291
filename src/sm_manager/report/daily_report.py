# src/sm_manager/report/daily_report.py

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from ..core.models import INITIAL_RECORD, Person, TaskRecord
from ..core.ports import LLMClient

logger = logging.getLogger(__name__)

MISSING_KEY_MESSAGE = "API Key is missing. Cannot generate report."
EMPTY_REPORT_MESSAGE = "리포트를 생성할 수 없습니다."
FAILURE_MESSAGE = "AI 분석 중 오류가 발생했습니다. 잠시 후 다시 시도해주세요."

REPORT_SYSTEM_PROMPT = """
You write short daily briefing reports for a small team lead.
Answer in plain text only (no Markdown).
""".strip()

REPORT_PROMPT_TEMPLATE = """
다음은 {title}의 팀 업무 현황 리스트입니다.
이 데이터를 바탕으로 간단하고 명확한 일일 브리핑 보고서를 작성해주세요.

데이터:
{data}

요구사항:
1. 전체 완료율을 언급하세요.
2. 미완료된 인원이 있다면 그룹별로 정리해서 알려주세요.
3. 특이사항(비고)이 있는 인원에 대해 요약해주세요.
4. 한국어로 정중한 어조(해요체)를 사용해주세요.
5. Markdown 포맷을 사용하지 말고 일반 텍스트로 주세요.
""".strip()


def describe_records(members: Sequence[Person], records: Mapping[str, TaskRecord]) -> str:
    """One line per roster member: '- [group] name: 완료|미완료 (비고: ...)'."""
    lines: list[str] = []
    for p in members:
        rec = records.get(p.id, INITIAL_RECORD)
        status = "완료" if rec.completed else "미완료"
        remark = f" (비고: {rec.remarks})" if rec.remarks else ""
        lines.append(f"- [{p.group}] {p.name}: {status}{remark}")
    return "\n".join(lines)


def build_report_prompt(title: str, members: Sequence[Person], records: Mapping[str, TaskRecord]) -> str:
    return REPORT_PROMPT_TEMPLATE.format(title=title, data=describe_records(members, records))


def generate_daily_report(
    llm: LLMClient | None,
    title: str,
    members: Sequence[Person],
    records: Mapping[str, TaskRecord],
) -> str:
    """
    Ask the LLM for a briefing of one entry.

    Never raises: a missing client or any transport/model error comes back as a
    human-readable fallback string.
    """
    if llm is None:
        return MISSING_KEY_MESSAGE

    prompt = build_report_prompt(title, members, records)

    raw = ""
    try:
        for piece in llm.stream_chat([{"role": "user", "content": prompt}], REPORT_SYSTEM_PROMPT):
            raw += piece
    except Exception:
        logger.exception("Daily report generation failed title=%s", title)
        return FAILURE_MESSAGE

    report = raw.strip()
    if not report:
        return EMPTY_REPORT_MESSAGE

    logger.debug("Daily report produced len=%d", len(report))
    return report
