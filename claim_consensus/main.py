"""
Claim Consensus Agents - FastAPI 应用入口
Document agents over A2A JSON-RPC plus a multi-agent claim discussion orchestrator
"""

from contextlib import asynccontextmanager
from functools import partial
from typing import AsyncGenerator, Optional

import httpx
import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from claim_consensus.a2a.client import A2AClient
from claim_consensus.a2a.dispatcher import A2ADispatcher
from claim_consensus.agents.document_agent import create_document_agent
from claim_consensus.api.router import api_router
from claim_consensus.config import Settings, settings as default_settings
from claim_consensus.core.observability import MetricsMiddleware, MetricsStore
from claim_consensus.flows.discussion_flow import DiscussionOrchestrator
from claim_consensus.runtime.agent_registry import AgentFactory, AgentRegistry
from claim_consensus.runtime.task_executor import TaskExecutor
from claim_consensus.runtime.task_store import TaskStore
from claim_consensus.services.settlement import HttpSettlementClient, SettlementClient
from claim_consensus.services.source_service import SourceService
from claim_consensus.services.status_policy import get_status_policy

IN_PROCESS_BASE_URL = "http://a2a.internal"


def configure_logging(config: Settings) -> None:
    """配置结构化日志"""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(ensure_ascii=False) if config.LOG_FORMAT == "json"
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging(default_settings)

logger = structlog.get_logger()


def _agents_root(config: Settings) -> str:
    base = config.A2A_BASE_URL.strip().rstrip("/") or IN_PROCESS_BASE_URL
    return f"{base}{config.API_PREFIX}/agents"


def create_application(
    config: Optional[Settings] = None,
    *,
    agent_factory: Optional[AgentFactory] = None,
    settlement_client: Optional[SettlementClient] = None,
    a2a_http_client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    """
    创建 FastAPI 应用实例

    Args:
        config: 配置，默认使用环境变量加载的全局配置
        agent_factory: 文档 Agent 工厂，默认抓取源 URL 并绑定 ChatOpenAI
        settlement_client: 结算客户端，默认 HTTP 结算服务
        a2a_http_client: 访问 agent 端点的 httpx 客户端；
            A2A_BASE_URL 为空时默认走进程内 ASGI transport
    """
    config = config or default_settings
    factory = agent_factory or partial(create_document_agent, config=config)
    owns_http_client = a2a_http_client is None

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """应用生命周期管理"""
        logger.info(
            "application_starting",
            app_name=config.APP_NAME,
            version=config.APP_VERSION,
            environment=config.ENVIRONMENT,
            a2a_agents_root=app.state.a2a_client.agent_url(""),
            status_policy=config.DISCUSSION_STATUS_POLICY,
            settlement_configured=config.settlement_configured,
        )

        yield

        if owns_http_client:
            await app.state.a2a_http_client.aclose()
        logger.info("application_shutting_down")

    app = FastAPI(
        title=config.APP_NAME,
        description="""
## Claim Consensus Agents

把任意文档源包装为 A2A JSON-RPC Agent，并让多个 Agent 围绕同一条声明展开讨论、聚合置信度、记录结算。

### 核心功能
- 🤖 每个文档源一个 LLM Agent（A2A JSON-RPC 任务通道）
- 🗣️ 多 peer 并发讨论（review / follow-up / conclusion）
- 📊 置信度提取与聚合、可切换的共识策略
- 🧾 外部结算记录
        """,
        version=config.APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # 运行时对象挂在 app.state 上，供路由按请求取用
    metrics = MetricsStore()
    store = TaskStore()
    registry = AgentRegistry(factory)
    if a2a_http_client is None:
        if config.A2A_BASE_URL.strip():
            a2a_http_client = httpx.AsyncClient(timeout=config.A2A_REQUEST_TIMEOUT)
        else:
            a2a_http_client = httpx.AsyncClient(
                transport=httpx.ASGITransport(app=app),
                base_url=IN_PROCESS_BASE_URL,
                timeout=config.A2A_REQUEST_TIMEOUT,
            )
    a2a_client = A2AClient(a2a_http_client, _agents_root(config), timeout=config.A2A_REQUEST_TIMEOUT)

    app.state.settings = config
    app.state.metrics = metrics
    app.state.task_store = store
    app.state.agent_registry = registry
    app.state.dispatcher = A2ADispatcher(store, registry, TaskExecutor(store, registry))
    app.state.a2a_http_client = a2a_http_client
    app.state.a2a_client = a2a_client
    app.state.orchestrator = DiscussionOrchestrator(
        a2a_client,
        settlement_client or HttpSettlementClient.from_settings(config),
        get_status_policy(config),
        poll_interval=config.A2A_POLL_INTERVAL_SECONDS,
        poll_max_attempts=config.A2A_POLL_MAX_ATTEMPTS,
        max_peers=config.DISCUSSION_MAX_PEERS,
        metrics=metrics,
    )
    app.state.source_service = SourceService(factory)

    # CORS 中间件
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(MetricsMiddleware, store=metrics)

    # 注册路由
    app.include_router(api_router, prefix=config.API_PREFIX)

    # 健康检查端点
    @app.get("/health", tags=["Health"])
    async def health_check():
        """健康检查"""
        return {
            "status": "healthy",
            "app_name": config.APP_NAME,
            "version": config.APP_VERSION,
            "environment": config.ENVIRONMENT,
            "agents": len(registry.list_agents()),
            "tasks": len(store),
        }

    @app.get("/metrics", tags=["Observability"])
    async def metrics_snapshot():
        """核心运行指标"""
        return metrics.snapshot()

    # 根路径
    @app.get("/", tags=["Root"])
    async def root():
        """根路径"""
        return {
            "message": f"Welcome to {config.APP_NAME}",
            "docs": "/docs",
            "health": "/health",
        }

    # 全局异常处理
    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=True,
        )
        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error",
                "message": str(exc) if config.DEBUG else "An unexpected error occurred",
            },
        )

    return app


# 创建应用实例
app = create_application()


def main():
    """主入口函数"""
    import uvicorn

    uvicorn.run(
        "claim_consensus.main:app",
        host="0.0.0.0",
        port=8000,
        reload=default_settings.is_development,
        log_level=default_settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
