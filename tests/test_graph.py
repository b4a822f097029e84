"""
Tests for SiteGraph merging: navigate edges, transitions, option nodes,
trigger suppression and origin policy.
"""

from sitegraph.graph import SiteGraph
from sitegraph.models import (
    Action,
    ActionType,
    Edge,
    EdgeType,
    OptionNode,
    PageNode,
    PageVisit,
    Transition,
    TransitionNode,
)

ROOT = "https://example.com/"
ORIGIN = "https://example.com"


def nav(label, href):
    return Action(ActionType.NAVIGATE, label, selector="a", href=href)


def click(label, options=()):
    return Action(ActionType.CLICK, label, selector="button", options=tuple(options))


class TestNavigation:

    def test_docs_link(self):
        site = SiteGraph()
        targets = site.add_page(PageVisit(ROOT, actions=[nav("Docs", "/docs/")]), origin=ORIGIN)

        assert targets == ["https://example.com/docs"]
        assert site.graph[ROOT] == ["https://example.com/docs"]
        edges = site.action_graph[PageNode(ROOT)]
        assert Edge(PageNode("https://example.com/docs"), "Docs", EdgeType.NAVIGATE) in edges

    def test_duplicate_targets_enqueued_once(self):
        site = SiteGraph()
        targets = site.add_page(
            PageVisit(ROOT, actions=[nav("Docs", "/docs"), nav("Docs again", "/docs/#top")]),
            origin=ORIGIN,
        )
        assert targets == ["https://example.com/docs"]
        assert len(site.action_graph[PageNode(ROOT)]) == 2

    def test_cross_origin_recorded_not_enqueued(self):
        site = SiteGraph()
        targets = site.add_page(
            PageVisit(ROOT, actions=[nav("Elsewhere", "https://other.org/x")]),
            origin=ORIGIN,
        )
        assert targets == []
        assert site.graph[ROOT] == ["https://other.org/x"]
        assert PageNode("https://other.org/x") in site.nodes()

    def test_cross_origin_enqueued_when_allowed(self):
        site = SiteGraph()
        targets = site.add_page(
            PageVisit(ROOT, actions=[nav("Elsewhere", "https://other.org/x")]),
            origin=ORIGIN, same_origin=False,
        )
        assert targets == ["https://other.org/x"]

    def test_unresolvable_href_skipped(self):
        site = SiteGraph()
        targets = site.add_page(PageVisit(ROOT, actions=[nav("Mail", "mailto:a@b.c")]), origin=ORIGIN)
        assert targets == []
        assert site.action_graph[PageNode(ROOT)] == []

    def test_visited_targets_not_returned(self):
        site = SiteGraph()
        site.add_page(PageVisit("https://example.com/docs"), origin=ORIGIN)
        targets = site.add_page(PageVisit(ROOT, actions=[nav("Docs", "/docs")]), origin=ORIGIN)
        assert targets == []
        assert site.graph[ROOT] == ["https://example.com/docs"]

    def test_first_claimant_wins(self):
        site = SiteGraph()
        assert site.add_page(PageVisit(ROOT, title="First"), origin=ORIGIN) == []
        assert site.add_page(PageVisit(ROOT, title="Second"), origin=ORIGIN) is None
        assert [p.title for p in site.pages] == ["First"]

    def test_click_self_loop_carries_options(self):
        site = SiteGraph()
        site.add_page(PageVisit(ROOT, actions=[click("Sort", ["Asc", "Desc"])]), origin=ORIGIN)
        assert site.action_graph[PageNode(ROOT)] == [
            Edge(PageNode(ROOT), "Sort", EdgeType.CLICK, ("Asc", "Desc")),
        ]


class TestTransitions:

    def test_menu_transition(self):
        site = SiteGraph()
        site.add_page(
            PageVisit("a", actions=[click("Menu")]),
            [Transition("Menu", added=("Profile", "Logout"))],
        )

        trans = TransitionNode("a", "Menu")
        page_edges = site.action_graph[PageNode("a")]
        assert Edge(trans, "Menu", EdgeType.TRANSITION) in page_edges
        # The Menu click is represented by the transition instead
        assert not any(e.type is EdgeType.CLICK for e in page_edges)

        assert site.action_graph[trans] == [
            Edge(OptionNode("a", "Menu", "Profile"), "Profile", EdgeType.CLICK),
            Edge(OptionNode("a", "Menu", "Logout"), "Logout", EdgeType.CLICK),
        ]
        assert site.action_graph[OptionNode("a", "Menu", "Profile")] == [
            Edge(PageNode("a"), "Profile", EdgeType.CLICK),
        ]

    def test_option_follows_matching_link(self):
        site = SiteGraph()
        site.add_page(
            PageVisit(ROOT, actions=[nav("Profile", "/me")]),
            [Transition("Menu", added=("profile",))],
            origin=ORIGIN,
        )
        opt = OptionNode(ROOT, "Menu", "profile")
        assert site.action_graph[opt] == [
            Edge(PageNode("https://example.com/me"), "Profile", EdgeType.NAVIGATE),
        ]

    def test_exactly_one_incoming_page_edge(self):
        site = SiteGraph()
        site.add_page(
            PageVisit("a"),
            [Transition("Menu", added=("X",)), Transition("Menu", added=("Y",))],
        )
        trans = TransitionNode("a", "Menu")
        incoming = [
            e for src, edges in site.action_graph.items() for e in edges
            if e.to == trans
        ]
        assert len(incoming) == 1
        assert site.action_graph[trans] == [Edge(trans.option("X"), "X", EdgeType.CLICK)]

    def test_removed_labels_used_when_nothing_added(self):
        site = SiteGraph()
        site.add_page(PageVisit("a"), [Transition("Collapse", removed=("Item 1",))])
        assert OptionNode("a", "Collapse", "Item 1") in site.action_graph

    def test_no_delta_no_node_and_click_kept(self):
        site = SiteGraph()
        site.add_page(PageVisit("a", actions=[click("Help")]), [Transition("Help")])
        assert TransitionNode("a", "Help") not in site.action_graph
        assert site.action_graph[PageNode("a")] == [Edge(PageNode("a"), "Help", EdgeType.CLICK)]

    def test_unlabelled_trigger_ignored(self):
        site = SiteGraph()
        site.add_page(PageVisit("a"), [Transition("", added=("X",))])
        assert list(site.action_graph) == [PageNode("a")]

    def test_nodes_include_synthetic(self):
        site = SiteGraph()
        site.add_page(PageVisit("a"), [Transition("Menu", added=("X",))])
        nodes = site.nodes()
        assert PageNode("a") in nodes
        assert TransitionNode("a", "Menu") in nodes
        assert OptionNode("a", "Menu", "X") in nodes

    def test_graph_keys_are_page_nodes(self):
        site = SiteGraph()
        site.add_page(PageVisit(ROOT, actions=[nav("Docs", "/docs")]), origin=ORIGIN)
        result = site.to_result()
        for url in result.graph:
            assert PageNode(url) in result.action_graph
