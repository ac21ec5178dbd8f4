"""
应用配置模块
Application configuration module
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """应用配置"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # 应用基础配置
    APP_NAME: str = "Claim Consensus Agents"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"

    # API 配置
    API_PREFIX: str = "/api/v1"
    CORS_ORIGINS: List[str] = Field(default=["http://localhost:3000"])

    # LLM 配置 (OpenAI-compatible endpoint)
    LLM_MODEL: str = Field(default="gpt-4o-mini")
    LLM_API_KEY: str = Field(default="")
    LLM_BASE_URL: Optional[str] = Field(default=None)
    LLM_TEMPERATURE: float = 0.2
    LLM_TIMEOUT: int = 60
    LLM_MAX_RETRIES: int = 1

    # 文档源抓取
    SOURCE_FETCH_TIMEOUT: float = 20.0
    SOURCE_MAX_CHARS: int = 10000
    AGENT_MEMORY_MAX_TURNS: int = 20

    # A2A 协议
    # 为空时通过进程内 ASGI transport 访问本服务的 agent 端点
    A2A_BASE_URL: str = Field(default="")
    A2A_REQUEST_TIMEOUT: float = 120.0
    A2A_POLL_INTERVAL_SECONDS: float = 0.5
    A2A_POLL_MAX_ATTEMPTS: int = 10

    # 讨论配置
    DISCUSSION_MAX_PEERS: int = 5
    DISCUSSION_STATUS_POLICY: str = "threshold"  # threshold | classification
    DISCUSSION_AGREE_THRESHOLD: float = 0.7
    DISCUSSION_DISAGREE_THRESHOLD: float = 0.3

    # 结算服务
    SETTLEMENT_SERVICE_URL: str = Field(default="")
    SETTLEMENT_TOPIC_ID: Optional[str] = None
    SETTLEMENT_TIMEOUT: float = 30.0

    # 日志配置
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"
    ALERT_ERROR_RATE_THRESHOLD: float = 0.2

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    @field_validator("DISCUSSION_STATUS_POLICY", mode="before")
    @classmethod
    def normalize_status_policy(cls, v):
        if not v:
            return "threshold"
        value = str(v).strip().lower()
        if value not in {"threshold", "classification"}:
            raise ValueError(
                f"Unknown DISCUSSION_STATUS_POLICY {v!r}; expected threshold or classification"
            )
        return value

    @field_validator("A2A_POLL_MAX_ATTEMPTS", "DISCUSSION_MAX_PEERS", mode="after")
    @classmethod
    def at_least_one(cls, v: int) -> int:
        return max(1, int(v))

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def settlement_configured(self) -> bool:
        return bool(self.SETTLEMENT_SERVICE_URL.strip())


@lru_cache
def get_settings() -> Settings:
    """获取配置单例"""
    return Settings()


# 导出配置实例
settings = get_settings()
