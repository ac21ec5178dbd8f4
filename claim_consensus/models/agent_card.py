"""
Agent Card 模型
Agent discovery descriptor
"""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import Field

from claim_consensus.models.base import WireModel
from claim_consensus.models.task import Modality


class AgentCapabilities(WireModel):
    supported_modalities: List[Modality] = Field(default_factory=lambda: ["text"])
    supported_tasks: Optional[List[str]] = None
    max_concurrent_tasks: Optional[int] = None


class AgentEndpoints(WireModel):
    base_url: str
    health: Optional[str] = None
    tasks: Optional[str] = None


class AuthenticationScheme(WireModel):
    type: Literal["api_key", "oauth", "oidc", "none"] = "none"
    name: Optional[str] = None
    description: Optional[str] = None


class AgentCard(WireModel):
    name: str
    description: str
    version: str
    capabilities: AgentCapabilities
    endpoints: AgentEndpoints
    authentication: Optional[List[AuthenticationScheme]] = None
