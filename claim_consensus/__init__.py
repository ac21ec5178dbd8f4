"""
Claim Consensus Agents

Wraps documents as A2A agents and lets an orchestrator negotiate a claim
across several of them.
"""

__version__ = "0.1.0"
