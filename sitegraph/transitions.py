"""
Transition Prober
=================
Discovers UI states reached without navigation (menus, modals, dropdowns,
tabs, toggles) by activating candidate triggers one at a time and diffing
the labels visible in the affected region.

Per trigger:
  1. **pre**    — snapshot labels in the baseline scope
  2. **act**    — hover, then click
  3. **settle** — first of: dialog present / DOM quiescence (both bounded)
  4. **post**   — snapshot labels in the post scope
  5. **diff**   — ``added = post - pre``, ``removed = pre - post``
  6. **reset**  — Escape + short quiescence wait

Scopes are resolved by ordered strategy lists (``BASELINE_SCOPE_ORDER``,
``POST_SCOPE_ORDER``); the first strategy that yields a visible container
wins.  The result is observed evidence of a transition, not a guaranteed
state-machine edge: an empty diff only means the window saw nothing.

Triggers on one page are probed strictly sequentially.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from playwright.async_api import Error as PlaywrightError

from .models import Action, ActionType, Transition

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------
TRIGGER_SELECTORS: List[str] = [
    'button',
    '[role="button"]',
    'label[for]',
    '[tabindex]',
    '[role="tab"]',
    '[aria-haspopup="true"]',
]

# Elements whose labels make up a scope snapshot
SNAPSHOT_SELECTORS: List[str] = [
    'a[href]',
    'button',
    '[role="button"]',
    '[role="menuitem"]',
    '[role="tab"]',
    'input[type="submit"]',
    'input[type="button"]',
]

DIALOG_SELECTOR = '[role="dialog"], dialog, [aria-modal="true"]'
OPEN_STATE_SELECTOR = (
    '[role="dialog"], dialog, [aria-modal="true"], '
    '[data-state="open"], [aria-expanded="true"]'
)
MENU_CONTAINER_SELECTOR = (
    '[role="menu"], [role="listbox"], [data-sidebar="menu"], '
    '[data-sidebar="group"], ul, nav, aside'
)

# Scope resolution, in priority order
BASELINE_SCOPE_ORDER = ("aria-controls", "tabpanel", "menu-ancestor", "shallow-ancestor")
POST_SCOPE_ORDER = ("dialog", "aria-controls", "tabpanel", "expanded-menu", "overlay", "baseline")

TRIGGER_LABEL_MAX = 120
SNAPSHOT_MAX_LABELS = 40
CHROME_BAR_MAX_HEIGHT = 140


# ---------------------------------------------------------------------------
# In-page scripts
# ---------------------------------------------------------------------------
_SHARED_JS = """
    function visible(el) {
        if (!el) return false;
        const st = window.getComputedStyle(el);
        const r = el.getBoundingClientRect();
        return st.display !== 'none' && st.visibility !== 'hidden' && st.opacity !== '0'
            && r.width > 0 && r.height > 0;
    }
    function labelOf(el, max) {
        const aria = (el.getAttribute('aria-label') || '').trim(); if (aria) return aria.slice(0, max);
        const title = (el.getAttribute('title') || '').trim(); if (title) return title.slice(0, max);
        const txt = el.innerText || el.textContent || '';
        return txt.trim().replace(/\\s+/g, ' ').slice(0, max);
    }
"""

_TRIGGERS_JS = """
(args) => {
    %s
    function toSelector(el) {
        const id = el.getAttribute('id'); if (id) return '#' + CSS.escape(id);
        const cs = (el.getAttribute('class') || '').split(/\\s+/).filter(Boolean)
            .slice(0, 2).map(c => '.' + CSS.escape(c)).join('');
        return el.tagName.toLowerCase() + cs;
    }
    const out = [];
    for (const el of Array.from(document.querySelectorAll(args.selectors.join(', ')))) {
        if (out.length >= args.limit) break;
        if (!visible(el)) continue;
        const label = labelOf(el, args.labelMax);
        if (!label) continue;
        out.push({ label, selector: toSelector(el) });
    }
    return out;
}
""" % _SHARED_JS

_SNAPSHOT_JS = """
(trigger, args) => {
    %s
    const { mode, baselineOrder, postOrder, snapshotSelectors, maxLabels, labelMax,
            chromeMaxHeight, dialogSelector, menuSelector } = args;

    function isChrome(el) {
        const tag = el.tagName.toLowerCase();
        if (tag === 'header' || tag === 'nav' || tag === 'aside') return true;
        const st = window.getComputedStyle(el);
        const r = el.getBoundingClientRect();
        return (st.position === 'fixed' || st.position === 'sticky') && r.top <= 0 && r.height < chromeMaxHeight;
    }
    function nearestMenu(start) {
        let cur = start;
        while (cur) {
            const cand = cur.closest(menuSelector);
            if (cand && visible(cand)) return cand;
            cur = cur.parentElement;
        }
        return null;
    }
    function overlays() {
        const found = [];
        for (const el of Array.from(document.body.querySelectorAll('*'))) {
            const st = window.getComputedStyle(el);
            if (st.position !== 'fixed' && st.position !== 'absolute') continue;
            if (!visible(el) || isChrome(el)) continue;
            if (!el.querySelector(snapshotSelectors.join(', '))) continue;
            found.push(el);
        }
        return found;
    }

    const resolvers = {
        'aria-controls': (t) => {
            const id = t.getAttribute('aria-controls');
            const target = id ? document.getElementById(id) : null;
            return visible(target) ? target : null;
        },
        'tabpanel': (t) => {
            if ((t.getAttribute('role') || '').toLowerCase() !== 'tab') return null;
            const tid = t.getAttribute('id');
            if (!tid) return null;
            const panel = document.querySelector('[role="tabpanel"][aria-labelledby="' + CSS.escape(tid) + '"]');
            return visible(panel) ? panel : null;
        },
        'menu-ancestor': (t) => nearestMenu(t),
        'shallow-ancestor': (t) => {
            let up = t;
            for (let i = 0; i < 3 && up.parentElement; i++) up = up.parentElement;
            return up;
        },
        'dialog': () => {
            const vis = Array.from(document.querySelectorAll(dialogSelector)).filter(visible);
            return vis.length ? vis[vis.length - 1] : null;
        },
        'expanded-menu': (t) => nearestMenu(t.closest('[aria-expanded="true"]') || t),
        'overlay': () => {
            // Largest-by-score fixed/absolute overlay that was not there before the click
            const before = window.__sitegraphPreOverlays || new WeakSet();
            let best = null, bestScore = -Infinity;
            for (const el of overlays()) {
                if (before.has(el)) continue;
                const r = el.getBoundingClientRect();
                const z = parseInt(window.getComputedStyle(el).zIndex, 10) || 0;
                const score = r.width * r.height + z * 1000;
                if (score > bestScore) { best = el; bestScore = score; }
            }
            return best;
        },
        'baseline': (t) => resolve(baselineOrder, t).el,
    };

    function resolve(order, t) {
        for (const name of order) {
            const el = resolvers[name](t);
            if (el) return { name, el };
        }
        return { name: 'document', el: document.body };
    }

    function collect(root) {
        const labels = [];
        for (const q of snapshotSelectors) {
            for (const el of Array.from(root.querySelectorAll(q))) {
                if (!visible(el) || isChrome(el)) continue;
                const l = labelOf(el, labelMax);
                if (!l || labels.includes(l)) continue;
                labels.push(l);
                if (labels.length >= maxLabels) return labels;
            }
        }
        return labels;
    }

    if (mode === 'pre') {
        window.__sitegraphPreOverlays = new WeakSet(overlays());
    }
    const scope = resolve(mode === 'pre' ? baselineOrder : postOrder, trigger);
    return { scope: scope.name, labels: collect(scope.el) };
}
""" % _SHARED_JS

_DOM_QUIET_JS = """
(args) => new Promise((resolve) => {
    let last = Date.now();
    const obs = new MutationObserver(() => { last = Date.now(); });
    obs.observe(document.documentElement,
        { subtree: true, childList: true, attributes: true, characterData: true });
    const done = () => { clearInterval(iv); clearTimeout(cap); obs.disconnect(); resolve(true); };
    const iv = setInterval(() => { if (Date.now() - last >= args.quiet) done(); }, args.poll);
    const cap = setTimeout(done, args.timeout);
})
"""

_OPEN_STATE_JS = "(selector) => !!document.querySelector(selector)"


# ---------------------------------------------------------------------------
# Data containers
# ---------------------------------------------------------------------------
@dataclass
class ScopeSnapshot:
    """Labels visible in one resolved scope."""
    scope: str = ""
    labels: List[str] = field(default_factory=list)


@dataclass
class _Trigger:
    label: str
    selector: str


def label_delta(pre: Sequence[str], post: Sequence[str]):
    """``(added, removed)`` as order-preserving set differences."""
    pre_set = set(pre)
    post_set = set(post)
    added = tuple(l for l in post if l not in pre_set)
    removed = tuple(l for l in pre if l not in post_set)
    return added, removed


async def wait_for_dom_quiet(page, timeout_ms: int = 3000, quiet_ms: int = 350, poll_ms: int = 50) -> None:
    """Resolve once no DOM mutation was seen for *quiet_ms*, or after *timeout_ms*."""
    try:
        await page.evaluate(_DOM_QUIET_JS, {'timeout': timeout_ms, 'quiet': quiet_ms, 'poll': poll_ms})
    except PlaywrightError as e:
        logger.debug(f"[PROBE] Quiescence wait failed: {e}")


# ---------------------------------------------------------------------------
# Prober
# ---------------------------------------------------------------------------
class TransitionProber:
    """Runs the pre/act/settle/post/reset cycle over a page's triggers."""

    def __init__(
        self,
        *,
        dialog_wait_ms: int = 1500,
        quiet_timeout_ms: int = 1500,
        quiet_window_ms: int = 250,
        reset_timeout_ms: int = 600,
        reset_window_ms: int = 200,
        click_timeout_ms: int = 1500,
    ):
        self.dialog_wait_ms = dialog_wait_ms
        self.quiet_timeout_ms = quiet_timeout_ms
        self.quiet_window_ms = quiet_window_ms
        self.reset_timeout_ms = reset_timeout_ms
        self.reset_window_ms = reset_window_ms
        self.click_timeout_ms = click_timeout_ms

    @classmethod
    def from_config(cls, config) -> "TransitionProber":
        return cls(
            dialog_wait_ms=config.dialog_wait_ms,
            quiet_timeout_ms=config.quiet_timeout_ms,
            quiet_window_ms=config.quiet_window_ms,
            reset_timeout_ms=config.reset_timeout_ms,
            reset_window_ms=config.reset_window_ms,
        )

    async def discover(self, page, max_triggers: int = 12) -> List[Transition]:
        """Probe up to *max_triggers* triggers and return what was observed."""
        if max_triggers <= 0:
            return []
        triggers = await self._find_triggers(page, max_triggers)
        start_url = _strip_fragment(page.url)
        transitions: List[Transition] = []

        for trigger in triggers:
            transition = await self._probe(page, trigger)
            if _strip_fragment(page.url) != start_url:
                # The trigger navigated away: its diff compares two documents, and the
                # remaining selectors belong to the old page
                logger.info(f"[PROBE] Trigger '{trigger.label[:40]}' left the page — stopping probes")
                break
            if transition is None:
                continue
            transitions.append(transition)
            if transition.has_delta:
                logger.debug(
                    f"[PROBE] '{trigger.label[:40]}' → +{len(transition.added)} "
                    f"-{len(transition.removed)}"
                )

        return transitions

    async def _find_triggers(self, page, limit: int) -> List[_Trigger]:
        try:
            raw = await page.evaluate(_TRIGGERS_JS, {
                'selectors': TRIGGER_SELECTORS,
                'limit': limit,
                'labelMax': TRIGGER_LABEL_MAX,
            })
        except PlaywrightError as e:
            logger.debug(f"[PROBE] Trigger discovery failed: {e}")
            return []
        return [_Trigger(label=t['label'], selector=t['selector']) for t in raw or []]

    async def _probe(self, page, trigger: _Trigger) -> Optional[Transition]:
        try:
            handle = await page.query_selector(trigger.selector)
        except PlaywrightError:
            return None
        if handle is None:
            return None

        post = None
        try:
            pre = await self.snapshot(page, handle, 'pre')
            if pre is None:
                return None

            try:
                await handle.hover(timeout=self.click_timeout_ms)
            except PlaywrightError:
                pass
            try:
                await handle.click(delay=10, timeout=self.click_timeout_ms)
            except PlaywrightError:
                pass

            await self._wait_for_settle(page)
            post = await self.snapshot(page, handle, 'post')
        finally:
            try:
                await handle.dispose()
            except PlaywrightError:
                pass

        if post is None:
            # No observation, not an empty one
            await self._reset(page)
            return None

        added, removed = label_delta(pre.labels, post.labels)
        transition = Transition(
            trigger_label=trigger.label,
            trigger_selector=trigger.selector,
            actions=tuple(Action(type=ActionType.CLICK, label=l) for l in post.labels),
            added=added,
            removed=removed,
        )

        await self._reset(page)
        return transition

    async def snapshot(self, page, handle, mode: str) -> Optional[ScopeSnapshot]:
        """Labels visible in the *mode* (``pre`` / ``post``) scope of a trigger, or None if the script failed."""
        try:
            raw = await page.evaluate(_SNAPSHOT_JS, [handle, {
                'mode': mode,
                'baselineOrder': list(BASELINE_SCOPE_ORDER),
                'postOrder': list(POST_SCOPE_ORDER),
                'snapshotSelectors': SNAPSHOT_SELECTORS,
                'maxLabels': SNAPSHOT_MAX_LABELS,
                'labelMax': TRIGGER_LABEL_MAX,
                'chromeMaxHeight': CHROME_BAR_MAX_HEIGHT,
                'dialogSelector': DIALOG_SELECTOR,
                'menuSelector': MENU_CONTAINER_SELECTOR,
            }])
        except PlaywrightError as e:
            logger.debug(f"[PROBE] {mode} snapshot failed: {e}")
            return None
        return ScopeSnapshot(scope=raw.get('scope', ''), labels=list(raw.get('labels') or []))

    async def _wait_for_settle(self, page) -> None:
        """First of: an open-state element appears, or the DOM goes quiet."""
        tasks = [
            asyncio.ensure_future(self._wait_for_open_state(page)),
            asyncio.ensure_future(
                wait_for_dom_quiet(page, self.quiet_timeout_ms, self.quiet_window_ms)
            ),
        ]
        _, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    async def _wait_for_open_state(self, page) -> None:
        try:
            await page.wait_for_function(
                _OPEN_STATE_JS, arg=OPEN_STATE_SELECTOR, timeout=self.dialog_wait_ms,
            )
        except PlaywrightError:
            pass

    async def _reset(self, page) -> None:
        try:
            await page.keyboard.press('Escape')
        except PlaywrightError:
            pass
        await wait_for_dom_quiet(page, self.reset_timeout_ms, self.reset_window_ms)


def _strip_fragment(url: str) -> str:
    return (url or '').split('#', 1)[0]
