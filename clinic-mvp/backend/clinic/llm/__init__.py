from .factory import get_llm_service
from .types import LLMResponse, ToolCall

__all__ = ['get_llm_service', 'LLMResponse', 'ToolCall']
