"""
文档源工具 API
Source utility endpoints: summary and claim extraction.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, HTTPException, Request, status
from pydantic import BaseModel

from claim_consensus.services.source_service import SourceService

router = APIRouter()
logger = structlog.get_logger()


class SourceRequest(BaseModel):
    url: Optional[str] = None


def _require_url(payload: SourceRequest) -> str:
    url = (payload.url or "").strip()
    if not url:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="URL is required")
    return url


def _service(request: Request) -> SourceService:
    return request.app.state.source_service


@router.post("/summary")
async def summarize_source(payload: SourceRequest, request: Request):
    url = _require_url(payload)
    try:
        summary = await _service(request).summarize(url)
    except Exception as exc:
        logger.error("source_summary_failed", url=url, error=str(exc))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc) or "Failed to summarize source",
        ) from exc
    return {"message": "Agent initialized successfully", "summary": summary, "url": url}


@router.post("/claims")
async def extract_source_claims(payload: SourceRequest, request: Request):
    url = _require_url(payload)
    try:
        claims = await _service(request).extract_claims(url)
    except Exception as exc:
        logger.error("source_claims_failed", url=url, error=str(exc))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc) or "Failed to extract claims",
        ) from exc
    return {"claims": [claim.to_wire() for claim in claims]}
