"""
Crawl Monitor
=============
Metrics for a site-graph crawl.

Tracks:
- Pages visited / failed / duplicate claims
- Transitions and edges recorded
- Layers processed and frontier peak
- Per-phase visit timing (navigate, extract, probe)

Fed only by the scheduler after each chunk has been joined, so plain
counters are enough; nothing here is shared between concurrent visits.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Deque

logger = logging.getLogger(__name__)


@dataclass
class PageTiming:
    """Timing breakdown for a single visit."""
    url: str = ""
    navigate_ms: float = 0.0
    extract_ms: float = 0.0
    probe_ms: float = 0.0
    total_ms: float = 0.0
    action_count: int = 0
    transition_count: int = 0
    status: str = "ok"   # ok | duplicate | failed | timeout


@dataclass
class CrawlMetrics:
    """Snapshot of crawl metrics at a point in time."""
    pages_visited: int = 0
    pages_failed: int = 0
    pages_timed_out: int = 0
    duplicates: int = 0
    transitions: int = 0
    edges: int = 0
    layers: int = 0
    frontier_peak: int = 0

    avg_page_ms: float = 0.0
    avg_navigate_ms: float = 0.0
    avg_extract_ms: float = 0.0
    avg_probe_ms: float = 0.0
    p95_page_ms: float = 0.0

    elapsed_sec: float = 0.0
    stop_reason: str = ""

    def as_dict(self) -> dict:
        return dict(self.__dict__)


class CrawlMonitor:
    """
    Usage::

        monitor = CrawlMonitor()
        monitor.start()
        monitor.record_layer(depth, frontier_size)
        monitor.record_page(timing)
        monitor.stop("frontier exhausted")
        print(monitor.format_summary(monitor.snapshot()))
    """

    def __init__(self):
        self._start_time: float = 0.0
        self._end_time: float = 0.0
        self._pages_visited = 0
        self._pages_failed = 0
        self._pages_timed_out = 0
        self._duplicates = 0
        self._transitions = 0
        self._edges = 0
        self._layers = 0
        self._frontier_peak = 0
        self._stop_reason = ""

        # Page timings (keep last 1000 for percentile calc)
        self._page_timings: Deque[PageTiming] = deque(maxlen=1000)

    def start(self) -> None:
        self._start_time = time.monotonic()
        self._end_time = 0.0

    def stop(self, reason: str = "completed") -> None:
        self._end_time = time.monotonic()
        self._stop_reason = reason

    def record_layer(self, depth: int, frontier_size: int) -> None:
        self._layers += 1
        if frontier_size > self._frontier_peak:
            self._frontier_peak = frontier_size
        logger.debug(f"[MONITOR] layer {depth} frontier={frontier_size}")

    def record_page(self, timing: PageTiming) -> None:
        if timing.status == "duplicate":
            self._duplicates += 1
            return
        if timing.status == "failed":
            self._pages_failed += 1
            return
        if timing.status == "timeout":
            self._pages_timed_out += 1
        self._pages_visited += 1
        self._transitions += timing.transition_count
        self._page_timings.append(timing)

    def record_edges(self, count: int) -> None:
        self._edges += count

    def snapshot(self) -> CrawlMetrics:
        """Current metrics."""
        end = self._end_time or time.monotonic()
        elapsed = end - self._start_time if self._start_time else 0.0

        timings = [t.total_ms for t in self._page_timings if t.total_ms > 0]
        avg_page = sum(timings) / len(timings) if timings else 0.0
        nav_times = [t.navigate_ms for t in self._page_timings if t.navigate_ms > 0]
        avg_nav = sum(nav_times) / len(nav_times) if nav_times else 0.0
        ext_times = [t.extract_ms for t in self._page_timings if t.extract_ms > 0]
        avg_ext = sum(ext_times) / len(ext_times) if ext_times else 0.0
        probe_times = [t.probe_ms for t in self._page_timings if t.probe_ms > 0]
        avg_probe = sum(probe_times) / len(probe_times) if probe_times else 0.0

        p95 = 0.0
        if timings:
            sorted_t = sorted(timings)
            idx = int(len(sorted_t) * 0.95)
            p95 = sorted_t[min(idx, len(sorted_t) - 1)]

        return CrawlMetrics(
            pages_visited=self._pages_visited,
            pages_failed=self._pages_failed,
            pages_timed_out=self._pages_timed_out,
            duplicates=self._duplicates,
            transitions=self._transitions,
            edges=self._edges,
            layers=self._layers,
            frontier_peak=self._frontier_peak,
            avg_page_ms=round(avg_page, 1),
            avg_navigate_ms=round(avg_nav, 1),
            avg_extract_ms=round(avg_ext, 1),
            avg_probe_ms=round(avg_probe, 1),
            p95_page_ms=round(p95, 1),
            elapsed_sec=round(elapsed, 2),
            stop_reason=self._stop_reason,
        )

    def format_summary(self, metrics: CrawlMetrics) -> str:
        """Format a human-readable summary string."""
        lines = [
            "=" * 65,
            "  SITE GRAPH CRAWL SUMMARY",
            "=" * 65,
            f"  Pages visited:       {metrics.pages_visited}",
            f"  Nav timeouts:        {metrics.pages_timed_out} (kept, partial load)",
            f"  Visits failed:       {metrics.pages_failed}",
            f"  Duplicate claims:    {metrics.duplicates}",
            "-" * 65,
            f"  Transitions:         {metrics.transitions}",
            f"  Edges:               {metrics.edges}",
            f"  Layers:              {metrics.layers}",
            f"  Frontier peak:       {metrics.frontier_peak}",
            "-" * 65,
            f"  Avg page time:       {metrics.avg_page_ms:.0f} ms",
            f"  Avg navigate time:   {metrics.avg_navigate_ms:.0f} ms",
            f"  Avg extract time:    {metrics.avg_extract_ms:.0f} ms",
            f"  Avg probe time:      {metrics.avg_probe_ms:.0f} ms",
            f"  P95 page time:       {metrics.p95_page_ms:.0f} ms",
            "-" * 65,
            f"  Elapsed time:        {metrics.elapsed_sec:.1f} s",
            f"  Stop reason:         {metrics.stop_reason}",
            "=" * 65,
        ]
        return "\n".join(lines)
