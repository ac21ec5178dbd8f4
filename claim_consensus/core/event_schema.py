"""
统一事件模型
Unified Event Schema

Discussion events are stamped with a trace id, a sequence number and a stable
event id before they reach any transport.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any, Dict, Optional
from uuid import uuid4

from claim_consensus.models.discussion import DiscussionEvent, DiscussionEventType


EVENT_SCHEMA_VERSION = "v1"


def new_trace_id(prefix: str = "dsc") -> str:
    return f"{prefix}_{uuid4().hex[:12]}"


def build_stable_event_id(trace_id: str, sequence: int, event: str) -> str:
    """Build a stable event id from key fields.

    The same (trace, sequence, event) triple always maps to the same id, so the
    SSE ``id:`` line and the batch payload agree.
    """
    seed = {"trace_id": trace_id, "event_sequence": sequence, "type": event}
    raw = json.dumps(seed, ensure_ascii=False, sort_keys=True, default=str)
    digest = hashlib.sha1(raw.encode("utf-8")).hexdigest()[:20]
    return f"evt_{digest}"


class EventStamper:
    """Assigns monotonically increasing sequence numbers within one trace."""

    def __init__(self, trace_id: Optional[str] = None):
        self.trace_id = trace_id or new_trace_id()
        self._sequence = 0

    def stamp(self, event: DiscussionEventType, data: Dict[str, Any]) -> DiscussionEvent:
        self._sequence += 1
        return DiscussionEvent(
            event=event,
            data=dict(data or {}),
            sequence=self._sequence,
            event_id=build_stable_event_id(self.trace_id, self._sequence, event.value),
        )
