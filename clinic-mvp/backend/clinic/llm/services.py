"""
具体 LLM 实现。

新增 LLM 供应商：在此文件添加一个类，然后在 factory.py 注册即可。

已注册供应商：
  anthropic: ClaudeService   (claude-sonnet-4-20250514)
  openai:    OpenAIService   (gpt-4o)
"""

import json
import os
from typing import Any, Optional

from .base import DEFAULT_MAX_TOKENS, BaseLLMService
from .types import LLMResponse, ToolCall


# ── ClaudeService ──────────────────────────────────────────────────────────
#
# 使用 Anthropic SDK。
# 环境变量：ANTHROPIC_API_KEY
# 模型：claude-sonnet-4-20250514（可通过 ANTHROPIC_MODEL 覆盖）

class ClaudeService(BaseLLMService):

    DEFAULT_MODEL = "claude-sonnet-4-20250514"

    def converse(
        self,
        system_prompt: str,
        messages: list[dict[str, Any]],
        tools: Optional[list[dict[str, Any]]] = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> LLMResponse:
        import anthropic

        api_key = os.getenv("ANTHROPIC_API_KEY")
        if not api_key:
            raise ValueError("ANTHROPIC_API_KEY is not set")

        model = os.getenv("ANTHROPIC_MODEL", self.DEFAULT_MODEL)
        client = anthropic.Anthropic(api_key=api_key)

        kwargs = {}
        if tools:
            kwargs["tools"] = tools

        response = client.messages.create(
            model=model,
            max_tokens=max_tokens,
            system=system_prompt,
            messages=messages,
            **kwargs,
        )

        text = "".join(block.text for block in response.content if block.type == "text")
        tool_calls = [
            ToolCall(id=block.id, name=block.name, input=dict(block.input))
            for block in response.content
            if block.type == "tool_use"
        ]

        return LLMResponse(content=text, model=model, tool_calls=tool_calls)


# ── OpenAIService ──────────────────────────────────────────────────────────
#
# 使用 OpenAI SDK。
# 环境变量：OPENAI_API_KEY
# 模型：gpt-4o（可通过 OPENAI_MODEL 覆盖）
# 工具定义是 Anthropic 格式，这里转成 function calling 格式。

class OpenAIService(BaseLLMService):

    DEFAULT_MODEL = "gpt-4o"

    @staticmethod
    def _to_openai_tools(tools: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return [
            {
                "type": "function",
                "function": {
                    "name": tool["name"],
                    "description": tool.get("description", ""),
                    "parameters": tool.get("input_schema", {"type": "object", "properties": {}}),
                },
            }
            for tool in tools
        ]

    def converse(
        self,
        system_prompt: str,
        messages: list[dict[str, Any]],
        tools: Optional[list[dict[str, Any]]] = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> LLMResponse:
        import openai

        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise ValueError("OPENAI_API_KEY is not set")

        model = os.getenv("OPENAI_MODEL", self.DEFAULT_MODEL)
        client = openai.OpenAI(api_key=api_key)

        kwargs = {}
        if tools:
            kwargs["tools"] = self._to_openai_tools(tools)

        response = client.chat.completions.create(
            model=model,
            max_tokens=max_tokens,
            messages=[{"role": "system", "content": system_prompt}, *messages],
            **kwargs,
        )

        message = response.choices[0].message
        tool_calls = [
            ToolCall(
                id=call.id,
                name=call.function.name,
                input=json.loads(call.function.arguments or "{}"),
            )
            for call in (message.tool_calls or [])
        ]

        return LLMResponse(content=message.content or "", model=model, tool_calls=tool_calls)
