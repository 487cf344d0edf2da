"""
CRMAgent: 自然语言查询 CRM。

流程：
  1. 组装 system prompt（带 location / company id）
  2. 可选带上 session 历史
  3. 调 LLM（附工具定义），拿回文本 + tool calls
  4. include_history 时把这一轮（纯文本）追加进 session

tool calls 只报告，不执行。
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from django.conf import settings

from ..exceptions import UpstreamError, ValidationError
from ..llm import ToolCall, get_llm_service
from ..llm.base import BaseLLMService
from .sessions import DEFAULT_SESSION_ID, AgentSessionStore
from .tools import CRM_TOOLS, SYSTEM_PROMPT_TEMPLATE, WORKFLOWS

logger = logging.getLogger(__name__)

DEFAULT_AGENT_MAX_TOKENS = 4096
EMPTY_RESPONSE_TEXT = 'Operation completed.'


@dataclass
class QueryResult:
    response: str
    session_id: str
    tool_calls: list[ToolCall] = field(default_factory=list)

    def tool_calls_as_dicts(self) -> list[dict[str, Any]]:
        return [{'name': tc.name, 'input': tc.input} for tc in self.tool_calls]


def build_system_prompt() -> str:
    return SYSTEM_PROMPT_TEMPLATE.format(
        location_id=settings.GHL_LOCATION_ID,
        company_id=settings.GHL_COMPANY_ID,
        clinic_name=settings.CLINIC_NAME,
    )


def list_workflows() -> list[dict[str, str]]:
    return [
        {'name': name, 'description': description, 'schedule': schedule}
        for name, (description, schedule, _) in WORKFLOWS.items()
    ]


class CRMAgent:

    def __init__(self, llm: Optional[BaseLLMService] = None, sessions: Optional[AgentSessionStore] = None):
        self.llm = llm or get_llm_service()
        self.sessions = sessions or AgentSessionStore()

    def query(
        self,
        prompt: str,
        session_id: Optional[str] = None,
        include_history: bool = False,
        max_tokens: Optional[int] = None,
    ) -> QueryResult:
        if not prompt:
            raise ValidationError(message='prompt is required', code='MISSING_PROMPT')

        sid = session_id or DEFAULT_SESSION_ID
        history = self.sessions.get_history(sid) if include_history else []
        messages = history + [{'role': 'user', 'content': prompt}]

        try:
            response = self.llm.converse(
                build_system_prompt(),
                messages,
                tools=CRM_TOOLS,
                max_tokens=max_tokens or DEFAULT_AGENT_MAX_TOKENS,
            )
        except Exception as exc:
            logger.error("[Agent] LLM call failed for session %s: %s", sid, exc)
            raise UpstreamError(message=str(exc), code='LLM_ERROR')

        text = response.content or EMPTY_RESPONSE_TEXT
        logger.info("[Agent] session %s answered by %s, %d tool call(s)", sid, response.model, len(response.tool_calls))

        if include_history:
            self.sessions.append(sid, [
                {'role': 'user', 'content': prompt},
                {'role': 'assistant', 'content': text},
            ])

        return QueryResult(response=text, session_id=sid, tool_calls=response.tool_calls)

    def run_workflow(self, name: str, params: Optional[dict[str, Any]] = None) -> QueryResult:
        if not name:
            raise ValidationError(message='workflow name is required', code='MISSING_WORKFLOW')
        if name not in WORKFLOWS:
            raise ValidationError(
                message=f"Workflow '{name}' not found. Available: {', '.join(WORKFLOWS)}",
                code='UNKNOWN_WORKFLOW',
            )

        prompt = WORKFLOWS[name][2]
        if params:
            prompt += f'\n\nAdditional parameters: {json.dumps(params, indent=2)}'
        return self.query(prompt)
