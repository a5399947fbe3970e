"""
Process-lifetime usage counters.

Token and cost totals are fed by the transport after every successful
provider call; request counts and latency are fed once per completed
analysis. Cumulative counters never reset; the *_today counters roll over
when the local date changes.
"""

import logging
import threading
from datetime import date
from typing import Callable, Optional

from ..schemas import UsageStats

logger = logging.getLogger(__name__)


class UsageTracker:
    """Thread-safe accumulator behind UsageStats."""

    def __init__(self, today: Optional[Callable[[], date]] = None):
        self._today = today or date.today
        self._lock = threading.Lock()
        self._stats = UsageStats()
        self._day = self._today()

    def _roll_day(self) -> None:
        current = self._today()
        if current != self._day:
            logger.info(f"Usage: new day {current.isoformat()}, resetting daily counters")
            self._day = current
            self._stats.requests_today = 0
            self._stats.cost_today = 0.0

    def record_tokens(self, tokens: int, cost: float) -> None:
        """Add token usage and cost from one completed provider call."""
        with self._lock:
            self._roll_day()
            self._stats.total_tokens += max(0, tokens)
            self._stats.total_cost += max(0.0, cost)
            self._stats.cost_today += max(0.0, cost)

    def record_request(self, response_time: float) -> None:
        """Count one completed analysis and fold its latency into the running mean."""
        with self._lock:
            self._roll_day()
            s = self._stats
            s.total_requests += 1
            s.requests_today += 1
            s.average_response_time += (response_time - s.average_response_time) / s.total_requests

    def snapshot(self) -> UsageStats:
        with self._lock:
            return self._stats.model_copy()
