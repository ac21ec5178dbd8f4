"""
可观测性组件
Observability Components
"""

from __future__ import annotations

import time
from collections import defaultdict
from datetime import datetime
from typing import Dict, List

import structlog
from starlette.middleware.base import BaseHTTPMiddleware

from claim_consensus.config import settings

logger = structlog.get_logger()


class MetricsStore:
    def __init__(self):
        self.request_total = 0
        self.error_total = 0
        self.path_counts: Dict[str, int] = defaultdict(int)
        self.path_latency_ms: Dict[str, float] = defaultdict(float)
        self.discussion_total = 0
        self.discussion_success_total = 0
        self.discussion_failure_total = 0
        self.degraded_peer_total = 0
        self.settlement_failure_total = 0
        self._discussion_latencies_ms: List[int] = []
        self.updated_at = datetime.utcnow().isoformat()

    def record(self, path: str, latency_ms: float, status_code: int):
        self.request_total += 1
        self.path_counts[path] += 1
        self.path_latency_ms[path] += latency_ms
        if status_code >= 500:
            self.error_total += 1
        self.updated_at = datetime.utcnow().isoformat()

    def record_discussion_result(
        self,
        *,
        succeeded: bool,
        latency_ms: int,
        degraded_peers: int = 0,
        settlement_failed: bool = False,
    ) -> None:
        self.discussion_total += 1
        if succeeded:
            self.discussion_success_total += 1
        else:
            self.discussion_failure_total += 1
        self.degraded_peer_total += max(0, int(degraded_peers or 0))
        if settlement_failed:
            self.settlement_failure_total += 1
        self._discussion_latencies_ms.append(max(0, int(latency_ms or 0)))
        if len(self._discussion_latencies_ms) > 5000:
            self._discussion_latencies_ms = self._discussion_latencies_ms[-5000:]
        self.updated_at = datetime.utcnow().isoformat()

    def snapshot(self):
        avg_latency = {
            p: (self.path_latency_ms[p] / self.path_counts[p])
            for p in self.path_counts
            if self.path_counts[p] > 0
        }
        error_rate = (self.error_total / self.request_total) if self.request_total else 0.0
        success_rate = (
            self.discussion_success_total / self.discussion_total if self.discussion_total else 0.0
        )
        return {
            "request_total": self.request_total,
            "error_total": self.error_total,
            "error_rate": error_rate,
            "avg_latency_ms": avg_latency,
            "discussion_slo": {
                "discussion_total": self.discussion_total,
                "success_total": self.discussion_success_total,
                "failure_total": self.discussion_failure_total,
                "success_rate": success_rate,
                "p95_latency_ms": self._percentile(self._discussion_latencies_ms, 95),
                "degraded_peer_total": self.degraded_peer_total,
                "settlement_failure_total": self.settlement_failure_total,
            },
            "updated_at": self.updated_at,
        }

    @staticmethod
    def _percentile(values: List[int], percentile: int) -> float:
        if not values:
            return 0.0
        sorted_values = sorted(values)
        rank = (max(0, min(percentile, 100)) / 100) * (len(sorted_values) - 1)
        low = int(rank)
        high = min(low + 1, len(sorted_values) - 1)
        if low == high:
            return float(sorted_values[low])
        weight = rank - low
        return float(sorted_values[low] * (1 - weight) + sorted_values[high] * weight)


metrics_store = MetricsStore()


class AlertManager:
    def __init__(self, store: MetricsStore):
        self._store = store

    def check_and_alert(self):
        snapshot = self._store.snapshot()
        error_rate = snapshot["error_rate"]
        if error_rate >= settings.ALERT_ERROR_RATE_THRESHOLD and snapshot["request_total"] >= 20:
            logger.warning(
                "high_error_rate_detected",
                error_rate=error_rate,
                threshold=settings.ALERT_ERROR_RATE_THRESHOLD,
                request_total=snapshot["request_total"],
            )


class MetricsMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, store: MetricsStore = metrics_store):
        super().__init__(app)
        self._store = store
        self._alerts = AlertManager(store)

    async def dispatch(self, request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = (time.perf_counter() - start) * 1000
        self._store.record(request.url.path, elapsed, response.status_code)
        self._alerts.check_and_alert()
        return response
