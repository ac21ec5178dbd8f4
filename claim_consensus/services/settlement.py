"""
结算服务客户端
Settlement service client

Posts the discussion verdict to an external settlement recorder. Failures are
returned as results, never raised.
"""

from __future__ import annotations

from typing import List, Optional, Protocol

import httpx
import structlog
from pydantic import BaseModel, Field

from claim_consensus.config import Settings

logger = structlog.get_logger()


class SettlementRecord(BaseModel):
    claim_id: str = Field(serialization_alias="claimId")
    agents: List[str]
    agreement: str
    timestamp: int
    statement: str

    def to_payload(self) -> dict:
        payload = self.model_dump(by_alias=True)
        payload["type"] = "agent_settlement"
        return payload


class SettlementResult(BaseModel):
    success: bool
    transaction_hash: Optional[str] = None
    transaction_id: Optional[str] = None
    topic_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def settlement_hash(self) -> Optional[str]:
        return self.transaction_hash or self.transaction_id


class SettlementClient(Protocol):
    async def submit(self, record: SettlementRecord) -> SettlementResult:
        ...


class HttpSettlementClient:
    def __init__(
        self,
        service_url: str,
        *,
        topic_id: Optional[str] = None,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.service_url = service_url
        self.topic_id = topic_id
        self.timeout = timeout
        self._http_client = http_client

    @classmethod
    def from_settings(cls, config: Settings) -> "HttpSettlementClient":
        return cls(
            config.SETTLEMENT_SERVICE_URL,
            topic_id=config.SETTLEMENT_TOPIC_ID,
            timeout=config.SETTLEMENT_TIMEOUT,
        )

    async def _post(self, payload: dict) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.post(self.service_url, json=payload, timeout=self.timeout)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(self.service_url, json=payload)

    async def submit(self, record: SettlementRecord) -> SettlementResult:
        if not self.service_url:
            return SettlementResult(
                success=False,
                error="Settlement service not configured. Set SETTLEMENT_SERVICE_URL.",
            )

        payload = record.to_payload()
        if self.topic_id:
            payload["topicId"] = self.topic_id
        try:
            response = await self._post(payload)
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("settlement_failed", claim_id=record.claim_id, error=str(exc))
            return SettlementResult(success=False, error=str(exc) or exc.__class__.__name__)

        if not isinstance(body, dict):
            return SettlementResult(success=False, error="Settlement service returned a non-object body")
        if body.get("success") is False or body.get("error"):
            error = str(body.get("error") or "Settlement rejected")
            logger.error("settlement_failed", claim_id=record.claim_id, error=error)
            return SettlementResult(success=False, error=error)

        transaction_id = body.get("transactionId")
        result = SettlementResult(
            success=True,
            transaction_hash=body.get("transactionHash") or transaction_id,
            transaction_id=transaction_id,
            topic_id=body.get("topicId") or self.topic_id,
        )
        if not result.settlement_hash:
            return SettlementResult(success=False, error="Settlement service returned no transaction id")
        logger.info(
            "settlement_recorded",
            claim_id=record.claim_id,
            settlement_hash=result.settlement_hash,
            topic_id=result.topic_id,
        )
        return result
