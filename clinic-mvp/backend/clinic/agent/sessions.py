"""
Agent 对话历史存储。

存在 Django cache 里（生产是 Redis），每个 session 一个 key，
每次写入都刷新 TTL，闲置超过 AGENT_SESSION_TTL 秒自动过期。
多个 worker 进程共享同一份历史。
"""

from typing import Any, Optional

from django.conf import settings
from django.core.cache import caches

DEFAULT_SESSION_ID = 'default'


class AgentSessionStore:

    key_prefix = 'agent-session:'

    def __init__(self, cache_alias: str = 'default', ttl: Optional[int] = None):
        self.cache = caches[cache_alias]
        self.ttl = ttl if ttl is not None else settings.AGENT_SESSION_TTL

    def _key(self, session_id: str) -> str:
        return f'{self.key_prefix}{session_id}'

    def get_history(self, session_id: str) -> list[dict[str, Any]]:
        return list(self.cache.get(self._key(session_id)) or [])

    def append(self, session_id: str, messages: list[dict[str, Any]]) -> list[dict[str, Any]]:
        history = self.get_history(session_id) + list(messages)
        self.cache.set(self._key(session_id), history, timeout=self.ttl)
        return history

    def clear(self, session_id: str):
        self.cache.delete(self._key(session_id))
