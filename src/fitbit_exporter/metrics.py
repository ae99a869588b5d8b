# src/fitbit_exporter/metrics.py
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Callable, Dict, Iterable, List, Optional

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest
from prometheus_client.core import GaugeMetricFamily, Metric
from prometheus_client.registry import Collector

logger = logging.getLogger(__name__)

CONTENT_TYPE = CONTENT_TYPE_LATEST


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def utc_midnight_timestamp(day: date) -> float:
    # Days are treated as UTC; the user's Fitbit profile timezone is not consulted.
    return datetime.combine(day, time.min, tzinfo=timezone.utc).timestamp()


@dataclass(frozen=True)
class MetricPoint:
    """One gauge sample. `day is None` is the live "as of now" point."""

    value: int
    day: Optional[date] = None

    @property
    def live(self) -> bool:
        return self.day is None

    @property
    def timestamp(self) -> Optional[float]:
        return None if self.day is None else utc_midnight_timestamp(self.day)


class _BufferCollector(Collector):
    def __init__(self, buffer: "MetricsBuffer"):
        self.buffer = buffer

    def collect(self) -> Iterable[Metric]:
        gauge = GaugeMetricFamily(self.buffer.name, self.buffer.documentation)
        for point in self.buffer.points():
            gauge.add_metric([], point.value, timestamp=point.timestamp)
        yield gauge


class MetricsBuffer:
    """
    Small in-memory series for one gauge, keyed by day.

    The live point lives under the `None` key, so there is never more than one
    of it. Timed points are keyed by their calendar day and overwrite on repeat.
    Cleared only by restarting the process.
    """

    def __init__(
        self,
        name: str = "fitbit_steps",
        documentation: str = "Total number of steps",
        today: Optional[Callable[[], date]] = None,
    ):
        self.name = name
        self.documentation = documentation
        self._today = today or utc_today
        self._points: Dict[Optional[date], MetricPoint] = {}
        self._lock = threading.Lock()
        self.registry = CollectorRegistry(auto_describe=False)
        self.registry.register(_BufferCollector(self))

    def __len__(self) -> int:
        with self._lock:
            return len(self._points)

    def upsert_live(self, value: int) -> bool:
        """Set the live point. Returns False (and warns) when range data is already loaded."""
        with self._lock:
            n = len(self._points)
            if n == 0 or (n == 1 and None in self._points):
                self._points[None] = MetricPoint(value)
                return True
        logger.warning("Unexpected number of metric points for %s metric: %d; live value ignored", self.name, n)
        return False

    def upsert_timed(self, day: date, value: int) -> None:
        with self._lock:
            self._points[day] = MetricPoint(value, day)
            if day == self._today():
                # A dated reading for today supersedes the live one.
                self._points.pop(None, None)

    def points(self) -> List[MetricPoint]:
        with self._lock:
            live = self._points.get(None)
            timed = sorted((p for p in self._points.values() if not p.live), key=lambda p: p.day)
        return ([live] if live is not None else []) + timed

    def get(self, day: Optional[date] = None) -> Optional[MetricPoint]:
        with self._lock:
            return self._points.get(day)

    def render(self) -> str:
        return generate_latest(self.registry).decode("utf-8")
