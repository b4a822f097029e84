"""
Site Graph
==========
Accumulates visited pages and the edges discovered on them.

Two views over the same edges:

- ``graph``         canonical URL -> navigate destinations (simple view)
- ``action_graph``  node -> typed edges, including synthetic transition
                    and option nodes (authoritative view)

Only the scheduler mutates a ``SiteGraph``, and only after a visit has
resolved, so no locking is needed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

from .models import (
    ActionType,
    Edge,
    EdgeType,
    Node,
    PageNode,
    PageVisit,
    Transition,
    TransitionNode,
)
from .utils import canonicalize_url, is_same_origin, resolve_href

logger = logging.getLogger(__name__)


@dataclass
class CrawlResult:
    """Result of a crawl: pages plus both graph views."""
    pages: List[PageVisit] = field(default_factory=list)
    graph: Dict[str, List[str]] = field(default_factory=dict)
    action_graph: Dict[Node, List[Edge]] = field(default_factory=dict)
    stats: Dict = field(default_factory=dict)
    errors: List[Dict] = field(default_factory=list)

    def title_of(self, url: str) -> str:
        for page in self.pages:
            if page.url == url:
                return page.title
        return ""

    def nodes(self) -> List[Node]:
        return collect_nodes(self.graph, self.action_graph)


class SiteGraph:
    """Mutable crawl-time graph owned by the scheduler."""

    def __init__(self):
        self.pages: List[PageVisit] = []
        self.graph: Dict[str, List[str]] = {}
        self.action_graph: Dict[Node, List[Edge]] = {}
        self._visited: Set[str] = set()

    def is_visited(self, url: str) -> bool:
        return url in self._visited

    @property
    def page_count(self) -> int:
        return len(self.pages)

    # ------------------------------------------------------------------
    # Merge
    # ------------------------------------------------------------------

    def add_page(
        self,
        page: PageVisit,
        transitions: Iterable[Transition] = (),
        *,
        origin: Optional[str] = None,
        same_origin: bool = True,
    ) -> Optional[List[str]]:
        """
        Claim ``page.url`` and merge its actions and transitions.

        Returns the distinct, not-yet-visited navigate targets eligible for
        the next layer, or ``None`` when the URL was already claimed (the
        earlier claimant's data is kept).
        """
        if page.url in self._visited:
            return None
        self._visited.add(page.url)

        page_node = PageNode(page.url)
        edges: List[Edge] = []
        destinations: List[str] = []
        candidates: List[str] = []

        for action in page.actions:
            if action.type is ActionType.NAVIGATE:
                absolute = resolve_href(page.url, action.href)
                if not absolute:
                    continue
                target = canonicalize_url(absolute)
                edges.append(Edge(PageNode(target), action.label, EdgeType.NAVIGATE))
                if target not in destinations:
                    destinations.append(target)
                if same_origin and not is_same_origin(target, origin):
                    continue
                if target not in self._visited and target not in candidates:
                    candidates.append(target)
            else:
                edges.append(Edge(
                    page_node, action.label, EdgeType(action.type.value), action.options,
                ))

        triggers = self._add_transitions(page_node, transitions, edges)
        if triggers:
            edges = [
                e for e in edges
                if not (e.type in (EdgeType.CLICK, EdgeType.TOGGLE) and e.label in triggers)
            ]

        self.graph[page.url] = destinations
        self.action_graph[page_node] = self.action_graph.get(page_node, []) + edges
        self.pages.append(page)
        return candidates

    def _add_transitions(
        self,
        page_node: PageNode,
        transitions: Iterable[Transition],
        edges: List[Edge],
    ) -> Set[str]:
        """Append page->transition edges to *edges*; option nodes go straight into the graph."""
        triggers: Set[str] = set()
        for transition in transitions:
            trigger = transition.trigger_label
            if not trigger or not transition.has_delta or trigger in triggers:
                continue
            triggers.add(trigger)

            node = TransitionNode(page_node.url, trigger)
            edges.append(Edge(node, trigger, EdgeType.TRANSITION))
            option_edges = self.action_graph.setdefault(node, [])

            for label in transition.option_labels:
                option_node = node.option(label)
                option_edges.append(Edge(option_node, label, EdgeType.CLICK))
                match = _find_navigation(edges, label)
                out = self.action_graph.setdefault(option_node, [])
                if match is not None:
                    out.append(Edge(match.to, match.label or label, EdgeType.NAVIGATE))
                else:
                    out.append(Edge(page_node, label, EdgeType.CLICK))
        return triggers

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def nodes(self) -> List[Node]:
        return collect_nodes(self.graph, self.action_graph)

    def to_result(self, stats: Optional[Dict] = None, errors: Optional[List[Dict]] = None) -> CrawlResult:
        return CrawlResult(
            pages=list(self.pages),
            graph={k: list(v) for k, v in self.graph.items()},
            action_graph={k: list(v) for k, v in self.action_graph.items()},
            stats=dict(stats or {}),
            errors=list(errors or []),
        )


def collect_nodes(graph: Dict[str, List[str]], action_graph: Dict[Node, List[Edge]]) -> List[Node]:
    """Every node: graph keys, action-graph keys and every edge destination, in discovery order."""
    seen: Dict[Node, None] = {}
    for url, outs in graph.items():
        seen.setdefault(PageNode(url), None)
        for dst in outs:
            seen.setdefault(PageNode(dst), None)
    for src, edges in action_graph.items():
        seen.setdefault(src, None)
        for edge in edges:
            seen.setdefault(edge.to, None)
    return list(seen)


def _find_navigation(edges: List[Edge], label: str) -> Optional[Edge]:
    wanted = label.lower()
    for edge in edges:
        if edge.type is EdgeType.NAVIGATE and edge.label and edge.label.lower() == wanted:
            return edge
    return None
