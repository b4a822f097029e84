"""
Graph Crawler
=============
Breadth-first, depth-layered crawl that builds the site graph.

Architecture:
- One ``BrowserSession`` (single browser, single context, shared cookies)
- Layers processed in depth order; layer ``d+1`` starts after layer ``d``
- Within a layer, visits are dispatched in chunks of ``concurrency`` and
  joined with ``asyncio.gather(..., return_exceptions=True)``
- Visits only *return* data; the scheduler alone touches the visited set,
  the pages list and both graph views, merging results in chunk input
  order (first claimant of a canonical URL wins)

Per visit:
  navigate → screenshot → extract actions → title → probe transitions

Side effects at the end of the crawl: JSONL export (failure logged, never
fatal).
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Union

from .browser import BrowserSession, safe_title
from .extractor import ActionExtractor
from .graph import CrawlResult, SiteGraph
from .jsonl_exporter import export_jsonl
from .models import PageVisit, Transition
from .monitor import CrawlMonitor, PageTiming
from .run_config import CrawlConfig
from .transitions import TransitionProber
from .utils import canonicalize_url, origin_of, safe_file_name

logger = logging.getLogger(__name__)


@dataclass
class _FrontierEntry:
    url: str
    depth: int
    origin: Optional[str]


@dataclass
class _VisitOutcome:
    """What one visit hands back to the scheduler."""
    page: PageVisit
    transitions: List[Transition] = field(default_factory=list)
    timing: PageTiming = field(default_factory=PageTiming)


class GraphCrawler:
    """
    Usage::

        crawler = GraphCrawler(CrawlConfig(max_depth=2))
        result = crawler.run(["https://example.com"])

    ``session``, ``extractor`` and ``prober`` may be injected (tests use
    fakes); otherwise they are built from the config.
    """

    def __init__(
        self,
        config: Optional[CrawlConfig] = None,
        session: Optional[BrowserSession] = None,
        extractor: Optional[ActionExtractor] = None,
        prober: Optional[TransitionProber] = None,
    ):
        self.config = config or CrawlConfig()
        self._session = session
        self.extractor = extractor or ActionExtractor.from_config(self.config)
        self.prober = prober or TransitionProber.from_config(self.config)
        self.monitor = CrawlMonitor()

    # ------------------------------------------------------------------
    # Sync entry point
    # ------------------------------------------------------------------

    def run(self, seeds: Union[str, Iterable[str]]) -> CrawlResult:
        """Sync wrapper — run the async crawl from synchronous code."""
        return asyncio.run(self.crawl(seeds))

    # ------------------------------------------------------------------
    # Main async crawl
    # ------------------------------------------------------------------

    async def crawl(self, seeds: Union[str, Iterable[str]]) -> CrawlResult:
        """Crawl from *seeds* and return pages plus both graph views."""
        if isinstance(seeds, str):
            seeds = [seeds]
        seeds = [s for s in seeds if s]

        if self.config.screenshot_dir:
            os.makedirs(self.config.screenshot_dir, exist_ok=True)

        if self._session is not None:
            result = await self._crawl_with(self._session, seeds)
        else:
            async with BrowserSession(self.config) as session:
                result = await self._crawl_with(session, seeds)

        if self.config.jsonl_dir:
            try:
                export_jsonl(result, self.config.jsonl_dir)
            except Exception as e:
                logger.error(f"[EXPORT] JSONL export failed: {e}", exc_info=True)

        return result

    async def _crawl_with(self, session, seeds: List[str]) -> CrawlResult:
        cfg = self.config
        site = SiteGraph()
        errors: List[Dict] = []
        self.monitor = CrawlMonitor()
        self.monitor.start()

        frontier: List[_FrontierEntry] = []
        for seed in seeds:
            url = canonicalize_url(seed)
            frontier.append(_FrontierEntry(url=url, depth=0, origin=origin_of(url)))
        frontier = _dedup_frontier(frontier, site)

        logger.info("=" * 65)
        logger.info("SITE GRAPH CRAWL STARTED")
        logger.info(f"Seeds: {', '.join(e.url for e in frontier)}")
        logger.info(f"Limits: max_pages={cfg.max_pages}, max_depth={cfg.max_depth}, "
                    f"concurrency={cfg.concurrency}")
        logger.info("=" * 65)

        stop_reason = "frontier exhausted"
        depth = 0
        while frontier:
            if depth > cfg.max_depth:
                stop_reason = f"MAX_DEPTH reached ({cfg.max_depth})"
                break
            if site.page_count >= cfg.max_pages:
                stop_reason = f"MAX_PAGES limit reached ({cfg.max_pages})"
                break

            budget = max(0, cfg.max_pages - site.page_count)
            to_visit = [e for e in frontier if not site.is_visited(e.url)][:budget]
            self.monitor.record_layer(depth, len(to_visit))
            logger.info(f"[LAYER] depth={depth} visiting {len(to_visit)} page(s)")

            candidates: List[_FrontierEntry] = []
            for i in range(0, len(to_visit), cfg.concurrency):
                chunk = to_visit[i:i + cfg.concurrency]
                results = await asyncio.gather(
                    *(self._visit(session, entry) for entry in chunk),
                    return_exceptions=True,
                )
                for entry, outcome in zip(chunk, results):
                    candidates.extend(self._merge(site, entry, outcome, errors))

            frontier = _dedup_frontier(candidates, site)
            depth += 1
            if frontier and cfg.delay_ms > 0:
                await asyncio.sleep(cfg.delay_ms / 1000)

        self.monitor.stop(stop_reason)
        metrics = self.monitor.snapshot()
        logger.info("\n" + self.monitor.format_summary(metrics))

        stats = metrics.as_dict()
        stats['pages'] = site.page_count
        stats['nodes'] = len(site.nodes())
        return site.to_result(stats=stats, errors=errors)

    def _merge(
        self,
        site: SiteGraph,
        entry: _FrontierEntry,
        outcome,
        errors: List[Dict],
    ) -> List[_FrontierEntry]:
        """Fold one visit result into the graph; returns next-layer candidates."""
        if isinstance(outcome, BaseException):
            logger.warning(f"[VISIT] Failed: {entry.url[:80]} — {outcome}")
            errors.append({'url': entry.url, 'depth': entry.depth, 'error': str(outcome)})
            self.monitor.record_page(PageTiming(url=entry.url, status="failed"))
            return []

        before = sum(len(v) for v in site.action_graph.values())
        targets = site.add_page(
            outcome.page,
            outcome.transitions,
            origin=entry.origin,
            same_origin=self.config.same_origin,
        )
        if targets is None:
            logger.info(f"[VISIT] Already claimed: {outcome.page.url[:80]}")
            self.monitor.record_page(PageTiming(url=outcome.page.url, status="duplicate"))
            return []

        self.monitor.record_page(outcome.timing)
        self.monitor.record_edges(sum(len(v) for v in site.action_graph.values()) - before)

        child_depth = entry.depth + 1
        if child_depth > self.config.max_depth:
            return []
        return [_FrontierEntry(url=t, depth=child_depth, origin=entry.origin) for t in targets]

    # ------------------------------------------------------------------
    # Single visit
    # ------------------------------------------------------------------

    async def _visit(self, session, entry: _FrontierEntry) -> _VisitOutcome:
        """Load one page and gather its actions and transitions. Touches no shared state."""
        cfg = self.config
        timing = PageTiming(url=entry.url)
        start = time.monotonic()
        logger.info(f"[VISIT] [{entry.depth}] {entry.url[:80]}")

        async with session.page() as page:
            nav = await session.goto(page, entry.url)
            timing.navigate_ms = (time.monotonic() - start) * 1000
            if nav.timed_out:
                timing.status = "timeout"

            final_url = canonicalize_url(nav.final_url)

            screenshot_path = None
            if cfg.screenshot_dir:
                screenshot_path = await session.capture_screenshot(
                    page, os.path.join(cfg.screenshot_dir, safe_file_name(final_url)),
                )

            t0 = time.monotonic()
            actions = await self.extractor.extract(page)
            timing.extract_ms = (time.monotonic() - t0) * 1000
            title = await safe_title(page)

            transitions: List[Transition] = []
            if cfg.discover_transitions and cfg.transitions_per_page > 0:
                t0 = time.monotonic()
                try:
                    transitions = await self.prober.discover(page, cfg.transitions_per_page)
                except Exception as e:
                    logger.warning(f"[PROBE] Transition discovery failed on {final_url[:80]}: {e}")
                timing.probe_ms = (time.monotonic() - t0) * 1000

        timing.total_ms = (time.monotonic() - start) * 1000
        timing.action_count = len(actions)
        timing.transition_count = sum(1 for t in transitions if t.has_delta)

        logger.info(
            f"[VISIT] {final_url[:80]} — {len(actions)} actions, "
            f"{timing.transition_count} transitions, {timing.total_ms:.0f}ms"
        )
        page_visit = PageVisit(
            url=final_url,
            title=title,
            depth=entry.depth,
            actions=actions,
            screenshot_path=screenshot_path,
            status_code=nav.status_code,
        )
        return _VisitOutcome(page=page_visit, transitions=transitions, timing=timing)


def _dedup_frontier(candidates: List[_FrontierEntry], site: SiteGraph) -> List[_FrontierEntry]:
    """Distinct, not-yet-visited candidates; first occurrence keeps its origin."""
    seen = set()
    out = []
    for c in candidates:
        if site.is_visited(c.url) or c.url in seen:
            continue
        seen.add(c.url)
        out.append(c)
    return out
