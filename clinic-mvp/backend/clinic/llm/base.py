"""
BaseLLMService: 所有 LLM 实现的抽象基类。

每个新 LLM 只需：
1. 继承 BaseLLMService
2. 实现 converse()
3. 在 factory.py 的 _build_registry 注册一行

agent 层完全不知道背后用哪家 LLM。
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from .types import LLMResponse

DEFAULT_MAX_TOKENS = 2000


class BaseLLMService(ABC):

    @abstractmethod
    def converse(
        self,
        system_prompt: str,
        messages: list[dict[str, Any]],
        tools: Optional[list[dict[str, Any]]] = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> LLMResponse:
        """
        多轮对话调用，返回标准 LLMResponse。

        Args:
            system_prompt: 系统级角色设定
            messages:      [{"role": "user" | "assistant", "content": str}, ...]
            tools:         Anthropic 风格的工具定义（name / description / input_schema），
                           其他供应商在实现里自行转换
            max_tokens:    输出上限

        Raises:
            Exception: API 调用失败时抛出，由调用方包装成 UpstreamError
        """

    def complete(self, system_prompt: str, user_prompt: str) -> LLMResponse:
        """单轮调用的快捷方式。"""
        return self.converse(system_prompt, [{"role": "user", "content": user_prompt}])
