"""Free vs paid generation-call accounting for the self-hosted pipeline."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field

from app.services.pricing import TokenUsage

logger = logging.getLogger(__name__)


@dataclass
class _Bucket:
    calls: int = 0
    usage: TokenUsage = field(default_factory=TokenUsage)


class UsageTracker:
    """Counts synthesis calls per cost label ("free" / "paid" / "unknown")."""

    def __init__(self) -> None:
        self._buckets: dict[str, _Bucket] = {}
        self._fallbacks = 0
        self._lock = threading.Lock()

    def record(self, cost_label: str, usage: TokenUsage, fallback: bool = False) -> None:
        with self._lock:
            bucket = self._buckets.setdefault(cost_label, _Bucket())
            bucket.calls += 1
            bucket.usage = bucket.usage + usage
            if fallback:
                self._fallbacks += 1

    def snapshot(self) -> dict:
        with self._lock:
            free = self._buckets.get("free", _Bucket())
            paid = self._buckets.get("paid", _Bucket())
            total_calls = sum(b.calls for b in self._buckets.values())
            total_cost = sum(b.usage.estimated_cost for b in self._buckets.values())
            return {
                "free_calls": free.calls,
                "paid_calls": paid.calls,
                "fallback_calls": self._fallbacks,
                "total_calls": total_calls,
                "free_usage": free.usage.to_dict(),
                "paid_usage": paid.usage.to_dict(),
                "total_cost": round(total_cost, 6),
            }

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()
            self._fallbacks = 0


usage_tracker = UsageTracker()
