"""
Crawl Configuration
===================
Single source of truth for crawl defaults and runtime limits.

The CLI, the scheduler, the browser session, the extractor and the
transition prober all read from ``CrawlConfig``.

Populate via:
  - ``CrawlConfig()``                   → all defaults
  - ``CrawlConfig(max_pages=10)``       → override one value
  - ``CrawlConfig.from_cli_args(ns)``   → from an argparse Namespace
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Canonical defaults — the ONLY place these numbers live
# ---------------------------------------------------------------------------
_DEFAULTS = {
    "max_depth": 1,
    "max_pages": 50,
    "same_origin": True,
    "delay_ms": 0,
    "concurrency": 3,
    "discover_transitions": True,
    "transitions_per_page": 12,
    # Browser
    "headless": True,
    "timeout_ms": 30000,
    "viewport_width": 1366,
    "viewport_height": 768,
    "block_media": True,
    "user_agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/125 Safari/537.36"
    ),
    # Extraction
    "action_limit": 3000,
    "probes": True,
    "max_probe_targets": 12,
    "probe_settle_ms": 150,
    # Transition probing
    "dialog_wait_ms": 1500,
    "quiet_timeout_ms": 1500,
    "quiet_window_ms": 250,
    "reset_timeout_ms": 600,
    "reset_window_ms": 200,
    # Outputs (None = skip)
    "screenshot_dir": os.path.join("out", "screens"),
    "jsonl_dir": os.path.join("out", "jsonl"),
    "dot_path": os.path.join("out", "site.dot"),
    # Manual login
    "login_wait_ms": 120000,
}

CONCURRENCY_RANGE = (1, 10)
TRANSITIONS_PER_PAGE_RANGE = (0, 50)

_WAIT_CONDITIONS = ("load", "domcontentloaded", "networkidle")


def _clamp(value: int, bounds) -> int:
    low, high = bounds
    return max(low, min(int(value), high))


@dataclass
class CrawlConfig:
    """Configuration consumed by every crawl subsystem."""

    # ---- Frontier ----
    max_depth: int = _DEFAULTS["max_depth"]
    max_pages: int = _DEFAULTS["max_pages"]
    same_origin: bool = _DEFAULTS["same_origin"]
    delay_ms: int = _DEFAULTS["delay_ms"]
    concurrency: int = _DEFAULTS["concurrency"]

    # ---- Transitions ----
    discover_transitions: bool = _DEFAULTS["discover_transitions"]
    transitions_per_page: int = _DEFAULTS["transitions_per_page"]
    dialog_wait_ms: int = _DEFAULTS["dialog_wait_ms"]
    quiet_timeout_ms: int = _DEFAULTS["quiet_timeout_ms"]
    quiet_window_ms: int = _DEFAULTS["quiet_window_ms"]
    reset_timeout_ms: int = _DEFAULTS["reset_timeout_ms"]
    reset_window_ms: int = _DEFAULTS["reset_window_ms"]

    # ---- Extraction ----
    action_limit: int = _DEFAULTS["action_limit"]
    probes: bool = _DEFAULTS["probes"]
    max_probe_targets: int = _DEFAULTS["max_probe_targets"]
    probe_settle_ms: int = _DEFAULTS["probe_settle_ms"]

    # ---- Browser ----
    headless: bool = _DEFAULTS["headless"]
    timeout_ms: int = _DEFAULTS["timeout_ms"]
    wait_until: List[str] = field(default_factory=lambda: list(_WAIT_CONDITIONS))
    viewport_width: int = _DEFAULTS["viewport_width"]
    viewport_height: int = _DEFAULTS["viewport_height"]
    block_media: bool = _DEFAULTS["block_media"]
    user_agent: str = _DEFAULTS["user_agent"]

    # ---- Outputs (None = skip) ----
    screenshot_dir: Optional[str] = _DEFAULTS["screenshot_dir"]
    jsonl_dir: Optional[str] = _DEFAULTS["jsonl_dir"]
    dot_path: Optional[str] = _DEFAULTS["dot_path"]

    # ---- Manual login ----
    manual_login_url: Optional[str] = None
    login_wait_ms: int = _DEFAULTS["login_wait_ms"]

    def __post_init__(self):
        self.concurrency = _clamp(self.concurrency, CONCURRENCY_RANGE)
        self.transitions_per_page = _clamp(self.transitions_per_page, TRANSITIONS_PER_PAGE_RANGE)
        self.max_depth = max(0, int(self.max_depth))
        self.max_pages = max(0, int(self.max_pages))
        self.delay_ms = max(0, int(self.delay_ms))
        unknown = [w for w in self.wait_until if w not in _WAIT_CONDITIONS]
        if unknown:
            raise ValueError(f"Unknown wait condition(s): {', '.join(unknown)}")
        if self.manual_login_url:
            # The operator needs a visible window to sign in
            self.headless = False

    # -----------------------------------------------------------------------
    # Factory helpers
    # -----------------------------------------------------------------------
    @classmethod
    def from_cli_args(cls, args) -> "CrawlConfig":
        """Build config from an argparse Namespace (``__main__.py``)."""
        screenshot_dir = getattr(args, "screenshot_dir", _DEFAULTS["screenshot_dir"])
        if getattr(args, "no_screenshots", False):
            screenshot_dir = None
        jsonl_dir = getattr(args, "jsonl_dir", _DEFAULTS["jsonl_dir"])
        if getattr(args, "no_jsonl", False):
            jsonl_dir = None

        return cls(
            max_depth=getattr(args, "depth", _DEFAULTS["max_depth"]),
            max_pages=getattr(args, "pages", _DEFAULTS["max_pages"]),
            same_origin=not getattr(args, "cross_origin", False),
            delay_ms=getattr(args, "delay_ms", _DEFAULTS["delay_ms"]),
            concurrency=getattr(args, "concurrency", _DEFAULTS["concurrency"]),
            discover_transitions=not getattr(args, "no_transitions", False),
            transitions_per_page=getattr(args, "transitions_per_page", _DEFAULTS["transitions_per_page"]),
            probes=not getattr(args, "no_probes", False),
            headless=not getattr(args, "headful", False),
            timeout_ms=int(getattr(args, "timeout", _DEFAULTS["timeout_ms"] / 1000) * 1000),
            screenshot_dir=screenshot_dir,
            jsonl_dir=jsonl_dir,
            dot_path=getattr(args, "dot", _DEFAULTS["dot_path"]),
            manual_login_url=getattr(args, "manual_login_url", None),
            login_wait_ms=getattr(args, "login_wait_ms", _DEFAULTS["login_wait_ms"]),
        )

    # -----------------------------------------------------------------------
    # Display
    # -----------------------------------------------------------------------
    def log_summary(self, seeds: Sequence[str]) -> None:
        """Log the effective configuration for a crawl."""
        logger.info("=" * 60)
        logger.info("SITE GRAPH CONFIGURATION")
        logger.info("=" * 60)
        for seed in seeds:
            logger.info(f"  Seed:            {seed}")
        logger.info(f"  Max depth:       {self.max_depth}")
        logger.info(f"  Max pages:       {self.max_pages}")
        logger.info(f"  Same origin:     {self.same_origin}")
        logger.info(f"  Concurrency:     {self.concurrency}")
        logger.info(f"  Transitions:     {self.discover_transitions} "
                    f"(up to {self.transitions_per_page}/page)")
        logger.info(f"  Hover probes:    {self.probes}")
        logger.info(f"  Timeout:         {self.timeout_ms}ms ({', '.join(self.wait_until)})")
        logger.info(f"  Headless:        {self.headless}")
        logger.info(f"  Screenshots:     {self.screenshot_dir or 'off'}")
        logger.info(f"  JSONL:           {self.jsonl_dir or 'off'}")
        logger.info(f"  DOT:             {self.dot_path or 'off'}")
        if self.manual_login_url:
            logger.info(f"  Manual login:    {self.manual_login_url} "
                        f"(wait {self.login_wait_ms // 1000}s)")
        logger.info("=" * 60)
