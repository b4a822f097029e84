"""
Tests for the action extractor: harvest, the hover/focus pass and merging,
using a scripted fake page in place of Playwright.
"""

import asyncio

from playwright.async_api import Error as PlaywrightError

from sitegraph.extractor import ActionExtractor, merge_actions
from sitegraph.models import Action, ActionType


class FakeHandle:
    def __init__(self, name, box=None, hover_error=False):
        self.name = name
        self.box = box if box is not None else {'x': 0, 'y': 0, 'width': 40, 'height': 20}
        self.hover_error = hover_error
        self.hovered_at = None
        self.focused = False
        self.disposed = False

    async def bounding_box(self):
        return self.box

    async def hover(self, position=None, timeout=None):
        if self.hover_error:
            raise PlaywrightError("Element is not attached to the DOM")
        self.hovered_at = position

    async def focus(self):
        self.focused = True

    async def dispose(self):
        self.disposed = True


class FakePage:
    """
    *harvests* is one list of plain action objects per harvest call; an
    exhausted list repeats the last one.
    """

    def __init__(self, harvests, handles=(), broken_harvest=False):
        self.harvests = list(harvests)
        self.handles = list(handles)
        self.broken_harvest = broken_harvest
        self.harvest_args = []
        self.queries = []
        self.waits = []

    async def evaluate(self, script, arg=None):
        self.harvest_args.append(arg)
        if self.broken_harvest:
            raise PlaywrightError("Execution context was destroyed")
        if len(self.harvests) > 1:
            return self.harvests.pop(0)
        return self.harvests[0] if self.harvests else []

    async def query_selector_all(self, selector):
        self.queries.append(selector)
        return list(self.handles)

    async def wait_for_timeout(self, ms):
        self.waits.append(ms)


def extract(page, **kwargs):
    return asyncio.run(ActionExtractor(**kwargs).extract(page))


LINK = {'type': 'navigate', 'label': 'Docs', 'href': '/docs/', 'selector': 'a.docs'}
MENU = {'type': 'click', 'label': 'Menu', 'selector': 'button.menu'}
HIDDEN = {'type': 'navigate', 'label': 'Settings', 'href': '/settings', 'selector': 'a.settings'}


# ====================================================================
# Merging
# ====================================================================

class TestMergeActions:

    def test_first_occurrence_kept(self):
        a = Action(ActionType.CLICK, 'Save', selector='#save')
        b = Action(ActionType.CLICK, 'Save', selector='#save', options=('x',))
        c = Action(ActionType.NAVIGATE, 'Docs', selector='a', href='/docs')
        merged = merge_actions([a, c], [b, c])
        assert merged == [a, c]
        assert merged[0].options == ()

    def test_same_label_different_selector_kept(self):
        a = Action(ActionType.CLICK, 'Save', selector='#save')
        b = Action(ActionType.CLICK, 'Save', selector='#save-2')
        assert merge_actions([a], [b]) == [a, b]


# ====================================================================
# Harvest
# ====================================================================

class TestHarvest:

    def test_plain_objects_become_actions(self):
        page = FakePage([[LINK, MENU]])
        actions = extract(page, probes=False)
        assert [(a.type, a.label) for a in actions] == [
            (ActionType.NAVIGATE, 'Docs'),
            (ActionType.CLICK, 'Menu'),
        ]
        assert actions[0].href == '/docs/'

    def test_limit_passed_to_page(self):
        page = FakePage([[]])
        extract(page, probes=False, limit=25)
        assert page.harvest_args[0]['limit'] == 25

    def test_script_failure_yields_nothing(self):
        page = FakePage([], broken_harvest=True)
        assert extract(page, probes=False) == []


# ====================================================================
# Hover / focus pass
# ====================================================================

class TestHoverPass:

    def test_disabled_touches_no_controls(self):
        page = FakePage([[LINK]], handles=[FakeHandle('a')])
        extract(page, probes=False)
        assert page.queries == []
        assert len(page.harvest_args) == 1

    def test_zero_targets_touches_no_controls(self):
        page = FakePage([[LINK]], handles=[FakeHandle('a')])
        extract(page, max_probe_targets=0)
        assert page.queries == []
        assert len(page.harvest_args) == 1

    def test_revealed_actions_merged(self):
        page = FakePage([[LINK, MENU], [MENU, HIDDEN]], handles=[FakeHandle('menu')])
        actions = extract(page)
        assert [a.label for a in actions] == ['Docs', 'Menu', 'Settings']
        assert len(page.harvest_args) == 2

    def test_no_usable_control_skips_second_harvest(self):
        flat = FakeHandle('flat', box={'x': 0, 'y': 0, 'width': 0, 'height': 10})
        detached = FakeHandle('gone', box={})
        page = FakePage([[LINK]], handles=[flat, detached])
        extract(page)
        assert flat.hovered_at is None
        assert len(page.harvest_args) == 1

    def test_target_budget_and_disposal(self):
        handles = [FakeHandle(str(i)) for i in range(5)]
        page = FakePage([[LINK]], handles=handles)
        extract(page, max_probe_targets=2, probe_settle_ms=7)
        assert [h.focused for h in handles] == [True, True, False, False, False]
        assert page.waits == [7, 7]
        assert all(h.disposed for h in handles)

    def test_hover_position_inside_small_box(self):
        tiny = FakeHandle('tiny', box={'x': 0, 'y': 0, 'width': 1, 'height': 1})
        page = FakePage([[LINK]], handles=[tiny])
        extract(page)
        assert tiny.hovered_at == {'x': 0, 'y': 0}

    def test_hover_failure_still_focuses(self):
        handle = FakeHandle('x', hover_error=True)
        page = FakePage([[LINK], [LINK]], handles=[handle])
        extract(page)
        assert handle.focused
        assert len(page.harvest_args) == 2


class TestFromConfig:

    def test_reads_config(self):
        from sitegraph.run_config import CrawlConfig

        extractor = ActionExtractor.from_config(CrawlConfig(probes=False, max_probe_targets=3))
        assert extractor.probes is False
        assert extractor.max_probe_targets == 3
