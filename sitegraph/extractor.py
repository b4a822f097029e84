"""
Action Extractor
================
Enumerates the visible, actionable elements of a loaded page as ``Action``
records.

Two passes:
  1. **harvest**      — one in-page script scans a prioritised selector
                        list inside the primary content region and any
                        open overlay (dialogs, menus).
  2. **perturbation** — hover + focus a bounded number of disclosure
                        controls, then harvest again to pick up elements
                        that only appear on hover/focus.

Results are merged and de-duplicated by ``(type, label, href, selector)``.

This module does NOT own Playwright lifecycle or page navigation.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from playwright.async_api import Error as PlaywrightError

from .models import Action

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Selector catalogue
# ---------------------------------------------------------------------------
HARVEST_SELECTORS: List[str] = [
    "a[href]",
    "button",
    "[role='button']",
    "[role='menuitem']",
    "[role='tab']",
    "input[type='submit']",
    "input[type='button']",
    "[onclick]",
    "[tabindex]",
    "label[for]",
]

OVERLAY_SELECTORS: List[str] = [
    "[role='dialog']",
    "dialog",
    "[aria-modal='true']",
    ".modal",
    ".dropdown-menu",
    "[role='menu']",
]

# Disclosure controls hovered/focused during the perturbation pass
PROBE_SELECTORS: List[str] = [
    "[aria-haspopup='true']",
    "[aria-expanded='false']",
    "[data-toggle]",
    "[data-menu]",
    "[role='button']",
    ".dropdown-toggle",
    ".menu-button",
    "label[for]",
]

# Chrome-like fixed/sticky bars shorter than this are not content
CHROME_BAR_MAX_HEIGHT = 140
LABEL_MAX_CHARS = 180
MAX_OPTIONS = 8


# ---------------------------------------------------------------------------
# In-page harvest script
# ---------------------------------------------------------------------------
_HARVEST_JS = """
(args) => {
    const { limit, queries, overlays, chromeMaxHeight, labelMax, maxOptions } = args;

    function isVisible(el) {
        const style = window.getComputedStyle(el);
        if (style.visibility === 'hidden' || style.display === 'none' || style.opacity === '0') return false;
        if (style.pointerEvents === 'none') return false;
        const rect = el.getBoundingClientRect();
        return !!rect && rect.width > 0 && rect.height > 0;
    }

    function isDisabled(el) {
        return el.disabled === true || el.getAttribute('aria-disabled') === 'true';
    }

    function labelOf(el) {
        const aria = (el.getAttribute('aria-label') || '').trim();
        if (aria) return aria.slice(0, labelMax);
        const labelledby = (el.getAttribute('aria-labelledby') || '').trim();
        if (labelledby) {
            const ref = document.getElementById(labelledby);
            if (ref) {
                const t = (ref.textContent || '').trim().replace(/\\s+/g, ' ');
                if (t) return t.slice(0, labelMax);
            }
        }
        for (const attr of ['title', 'placeholder', 'alt']) {
            const v = (el.getAttribute(attr) || '').trim();
            if (v) return v.slice(0, labelMax);
        }
        const text = el.innerText || el.textContent || '';
        return text.trim().replace(/\\s+/g, ' ').slice(0, labelMax);
    }

    function toSelector(el) {
        const id = el.getAttribute('id');
        if (id) return '#' + CSS.escape(id);
        const classes = (el.getAttribute('class') || '').split(/\\s+/).filter(Boolean)
            .slice(0, 2).map(c => '.' + CSS.escape(c)).join('');
        return el.tagName.toLowerCase() + classes;
    }

    function isChrome(el) {
        const tag = el.tagName.toLowerCase();
        if (tag === 'header' || tag === 'nav' || tag === 'aside') return true;
        const st = window.getComputedStyle(el);
        const r = el.getBoundingClientRect();
        return (st.position === 'fixed' || st.position === 'sticky') && r.height < chromeMaxHeight;
    }

    function primaryRegion() {
        const landmark = document.querySelector("[role='main'], main");
        if (landmark && isVisible(landmark)) return landmark;
        const cx = window.innerWidth / 2, cy = window.innerHeight / 2;
        let best = null, bestScore = -Infinity;
        for (const el of Array.from(document.body.querySelectorAll('*'))) {
            if (!isVisible(el) || isChrome(el)) continue;
            const st = window.getComputedStyle(el);
            if (st.position === 'fixed' || st.position === 'sticky') continue;
            const r = el.getBoundingClientRect();
            const dist = Math.hypot(r.left + r.width / 2 - cx, r.top + r.height / 2 - cy);
            const score = r.width * r.height - dist * 50;
            if (score > bestScore) { best = el; bestScore = score; }
        }
        return best || document.body;
    }

    function localOptions(el, label) {
        let container = el.parentElement || el;
        for (let i = 0; i < 4 && container.parentElement; i++) container = container.parentElement;
        const opts = [];
        const q = "button, [role='button'], a[href], input[type='submit'], input[type='button']";
        for (const c of Array.from(container.querySelectorAll(q))) {
            if (!isVisible(c)) continue;
            const l = labelOf(c);
            if (!l || l === label || opts.includes(l)) continue;
            opts.push(l);
            if (opts.length >= maxOptions) break;
        }
        return opts;
    }

    const roots = [primaryRegion(), ...Array.from(document.querySelectorAll(overlays.join(', ')))];
    const out = [];
    const seenEls = new Set();
    const seenKeys = new Set();

    for (const root of roots) {
        for (const q of queries) {
            for (const el of Array.from(root.querySelectorAll(q))) {
                if (out.length >= limit) return out;
                if (seenEls.has(el)) continue;
                if (!isVisible(el) || isDisabled(el)) continue;

                const tag = el.tagName.toLowerCase();
                let type = 'click';
                let href = null;
                if (tag === 'a') {
                    href = el.getAttribute('href') || null;
                    if (href) type = 'navigate';
                }
                if (tag === 'label' && el.htmlFor) {
                    const control = document.getElementById(el.htmlFor);
                    if (control && control.tagName.toLowerCase() === 'input'
                            && (control.type === 'checkbox' || control.type === 'radio')) {
                        type = 'toggle';
                    }
                }

                const label = labelOf(el);
                if (!label && tag !== 'a') continue;
                const selector = toSelector(el);
                const options = type === 'navigate' ? [] : localOptions(el, label);

                seenEls.add(el);
                const key = [type, label, href || '', selector].join('|');
                if (seenKeys.has(key)) continue;
                seenKeys.add(key);
                out.push({ type, label, href, selector, options });
            }
        }
    }
    return out;
}
"""


class ActionExtractor:
    """Produces the ``Action`` list for a page."""

    def __init__(
        self,
        *,
        limit: int = 3000,
        probes: bool = True,
        max_probe_targets: int = 12,
        probe_settle_ms: int = 150,
    ):
        self.limit = limit
        self.probes = probes
        self.max_probe_targets = max_probe_targets
        self.probe_settle_ms = probe_settle_ms

    @classmethod
    def from_config(cls, config) -> "ActionExtractor":
        return cls(
            limit=config.action_limit,
            probes=config.probes,
            max_probe_targets=config.max_probe_targets,
            probe_settle_ms=config.probe_settle_ms,
        )

    async def extract(
        self,
        page,
        *,
        limit: Optional[int] = None,
        probes: Optional[bool] = None,
        max_probe_targets: Optional[int] = None,
    ) -> List[Action]:
        """Harvest, optionally perturb and re-harvest, then merge."""
        limit = self.limit if limit is None else limit
        probes = self.probes if probes is None else probes
        max_probe_targets = self.max_probe_targets if max_probe_targets is None else max_probe_targets

        actions = await self.harvest(page, limit)

        if probes and max_probe_targets > 0:
            probed = await self._perturb(page, max_probe_targets)
            if probed:
                extra = await self.harvest(page, limit)
                actions = merge_actions(actions, extra)
                logger.debug(f"[EXTRACT] {probed} probe target(s) → {len(extra)} re-harvested")

        return actions

    async def harvest(self, page, limit: int) -> List[Action]:
        """Single harvest pass. Script failure yields an empty list."""
        try:
            raw = await page.evaluate(_HARVEST_JS, {
                'limit': limit,
                'queries': HARVEST_SELECTORS,
                'overlays': OVERLAY_SELECTORS,
                'chromeMaxHeight': CHROME_BAR_MAX_HEIGHT,
                'labelMax': LABEL_MAX_CHARS,
                'maxOptions': MAX_OPTIONS,
            })
        except PlaywrightError as e:
            logger.debug(f"[EXTRACT] Harvest script failed: {e}")
            return []
        return [Action.from_dict(item) for item in raw or []]

    async def _perturb(self, page, max_targets: int) -> int:
        """Hover + focus up to *max_targets* disclosure controls. Returns how many."""
        try:
            handles = await page.query_selector_all(', '.join(PROBE_SELECTORS))
        except PlaywrightError as e:
            logger.debug(f"[EXTRACT] Probe query failed: {e}")
            return 0

        probed = 0
        for handle in handles:
            try:
                if probed >= max_targets:
                    continue
                box = await handle.bounding_box()
                if not box or box['width'] <= 0 or box['height'] <= 0:
                    continue
                try:
                    await handle.hover(
                        position={
                            'x': max(0, min(2, box['width'] - 1)),
                            'y': max(0, min(2, box['height'] - 1)),
                        },
                        timeout=1000,
                    )
                except PlaywrightError:
                    pass
                try:
                    await handle.focus()
                except PlaywrightError:
                    pass
                await page.wait_for_timeout(self.probe_settle_ms)
                probed += 1
            except PlaywrightError as e:
                logger.debug(f"[EXTRACT] Probe target skipped: {e}")
            finally:
                try:
                    await handle.dispose()
                except PlaywrightError:
                    pass
        return probed


def merge_actions(first: List[Action], second: List[Action]) -> List[Action]:
    """Concatenate, keeping the first occurrence of each action identity."""
    seen = set()
    merged = []
    for action in list(first) + list(second):
        if action.identity in seen:
            continue
        seen.add(action.identity)
        merged.append(action)
    return merged
