"""
API 路由汇总
API Router Aggregation
"""

from fastapi import APIRouter

from claim_consensus.api import agents, discussions, sources

api_router = APIRouter()

# 注册各模块路由
api_router.include_router(
    agents.router,
    prefix="/agents",
    tags=["Agents"],
)

api_router.include_router(
    discussions.router,
    prefix="/discussions",
    tags=["Discussions"],
)

api_router.include_router(
    sources.router,
    prefix="/sources",
    tags=["Sources"],
)
