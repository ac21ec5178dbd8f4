"""
文档源加载
Source document loader

Downloads the page a source URL points at and reduces it to plain text.
"""

from __future__ import annotations

import re
from typing import Optional

import httpx
import structlog

from claim_consensus.config import settings

logger = structlog.get_logger()

_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
_TRUNCATION_MARKER = "... [content truncated]"
_EMPTY_CONTENT = "Unable to extract text content from the URL."

_STRIP_BLOCKS = [
    re.compile(r"<script[^>]*>[\s\S]*?</script>", re.IGNORECASE),
    re.compile(r"<style[^>]*>[\s\S]*?</style>", re.IGNORECASE),
    re.compile(r"<!--[\s\S]*?-->"),
]
# most specific region first
_CONTENT_REGIONS = [
    re.compile(r"<article[^>]*>[\s\S]*?</article>", re.IGNORECASE),
    re.compile(r"<main[^>]*>[\s\S]*?</main>", re.IGNORECASE),
    re.compile(r"<body[^>]*>[\s\S]*?</body>", re.IGNORECASE),
]
_TAG = re.compile(r"<[^>]+>")
_WHITESPACE = re.compile(r"\s+")


class SourceFetchError(RuntimeError):
    pass


def html_to_text(html: str, max_chars: Optional[int] = None) -> str:
    limit = max_chars if max_chars is not None else settings.SOURCE_MAX_CHARS
    text = html or ""
    for pattern in _STRIP_BLOCKS:
        text = pattern.sub("", text)

    for pattern in _CONTENT_REGIONS:
        region = pattern.search(text)
        if region:
            text = region.group(0)
            break

    text = _TAG.sub(" ", text)
    text = _WHITESPACE.sub(" ", text).strip()

    if limit and len(text) > limit:
        text = text[:limit] + _TRUNCATION_MARKER
    return text or _EMPTY_CONTENT


class SourceLoader:
    def __init__(self, http_client: Optional[httpx.AsyncClient] = None, timeout: Optional[float] = None):
        self._client = http_client
        self._timeout = timeout or settings.SOURCE_FETCH_TIMEOUT

    async def fetch_text(self, url: str) -> str:
        if not url:
            raise SourceFetchError("url must be set")
        try:
            if self._client is not None:
                response = await self._client.get(url, headers={"User-Agent": _USER_AGENT})
            else:
                async with httpx.AsyncClient(timeout=self._timeout, follow_redirects=True) as client:
                    response = await client.get(url, headers={"User-Agent": _USER_AGENT})
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("source_fetch_failed", url=url, error=str(exc))
            raise SourceFetchError(f"Failed to fetch content from URL: {exc}") from exc

        text = html_to_text(response.text)
        logger.info("source_fetched", url=url, chars=len(text))
        return text
