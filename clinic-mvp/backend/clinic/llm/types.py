"""
LLM 层的标准响应结构。

所有 LLMService 实现的 converse() / complete() 都返回这个对象。
业务层（agent）只认识这个格式，不知道背后用的是哪家 LLM。
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ToolCall:
    id: str
    name: str
    input: dict[str, Any]


@dataclass
class LLMResponse:
    content: str                                              # 生成的文本内容
    model: str                                                # 实际使用的模型名
    tool_calls: list[ToolCall] = field(default_factory=list)  # 模型请求的工具调用（不执行）
