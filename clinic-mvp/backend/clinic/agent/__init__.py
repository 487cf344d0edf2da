from .agent import CRMAgent, QueryResult, list_workflows
from .sessions import AgentSessionStore

__all__ = ['CRMAgent', 'QueryResult', 'list_workflows', 'AgentSessionStore']
