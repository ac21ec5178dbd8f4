"""
流程编排层
Flow Orchestration Layer
"""

from claim_consensus.flows.discussion_flow import (
    DiscussionAccumulator,
    DiscussionFailedError,
    DiscussionInputError,
    DiscussionOrchestrator,
    collect_discussion,
)

__all__ = [
    "DiscussionAccumulator",
    "DiscussionFailedError",
    "DiscussionInputError",
    "DiscussionOrchestrator",
    "collect_discussion",
]
