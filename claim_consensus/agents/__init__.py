"""
Agent 模块
Document agents backed by a LangChain chat model
"""

from claim_consensus.agents.document_agent import AgentExecutor, DocumentAgent, create_document_agent

__all__ = [
    "AgentExecutor",
    "DocumentAgent",
    "create_document_agent",
]
