"""LangChain chat model wiring for document agents."""

from __future__ import annotations

from typing import Any, List

from langchain_core.language_models import BaseChatModel
from langchain_openai import ChatOpenAI

from claim_consensus.config import Settings, settings as default_settings


def build_chat_model(config: Settings = default_settings) -> BaseChatModel:
    if not config.LLM_API_KEY:
        raise RuntimeError("LLM_API_KEY is not configured, cannot call the model")
    kwargs = {
        "model": config.LLM_MODEL,
        "api_key": config.LLM_API_KEY,
        "temperature": config.LLM_TEMPERATURE,
        "timeout": config.LLM_TIMEOUT,
        "max_retries": max(0, int(config.LLM_MAX_RETRIES)),
    }
    if config.LLM_BASE_URL:
        kwargs["base_url"] = config.LLM_BASE_URL
    return ChatOpenAI(**kwargs)


def extract_reply_text(reply: Any) -> str:
    """Flatten an AIMessage (or plain value) into text."""
    content = getattr(reply, "content", reply)
    if content is None:
        return ""
    if isinstance(content, str):
        return content.strip()
    if isinstance(content, list):
        texts: List[str] = []
        for part in content:
            if isinstance(part, str):
                texts.append(part)
            elif isinstance(part, dict) and part.get("type") == "text":
                text = part.get("text")
                if isinstance(text, str):
                    texts.append(text)
        return "\n".join(t.strip() for t in texts if t.strip())
    return str(content).strip()
