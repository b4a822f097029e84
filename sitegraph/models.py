"""
Graph Data Model
================
Typed records shared by the extractor, the transition prober, the
scheduler and the exporters.

Node identity is a tagged union::

    Node = PageNode(url) | TransitionNode(page_url, trigger)
         | OptionNode(page_url, trigger, option)

Graph code works with these objects directly.  The string form
(``<url>::TRANS::<trigger>::OPT::<option>``) only exists at the
serialization boundary, through ``encode_node_id`` / ``decode_node_id``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

TRANSITION_MARKER = '::TRANS::'
OPTION_MARKER = '::OPT::'


class ActionType(str, Enum):
    """Kinds of affordance the extractor reports."""
    NAVIGATE = "navigate"
    CLICK = "click"
    TOGGLE = "toggle"


class EdgeType(str, Enum):
    NAVIGATE = "navigate"
    CLICK = "click"
    TOGGLE = "toggle"
    TRANSITION = "transition"


# ---------------------------------------------------------------------------
# Extraction results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Action:
    """An interactive element found on a page."""
    type: ActionType
    label: str
    selector: str = ""
    href: Optional[str] = None
    options: Tuple[str, ...] = ()

    @property
    def identity(self) -> Tuple[str, str, str, str]:
        """Dedup key: ``(type, label, href, selector)``."""
        return (self.type.value, self.label, self.href or "", self.selector)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Action":
        """Build from the plain object returned by the in-page harvest script."""
        try:
            action_type = ActionType(data.get('type') or 'click')
        except ValueError:
            action_type = ActionType.CLICK
        href = data.get('href') if action_type is ActionType.NAVIGATE else None
        return cls(
            type=action_type,
            label=str(data.get('label') or ''),
            selector=str(data.get('selector') or ''),
            href=href or None,
            options=tuple(data.get('options') or ()),
        )


@dataclass(frozen=True)
class Transition:
    """
    Observed evidence of a UI-state change after activating one trigger.

    ``added`` / ``removed`` are the labels present only after / only before
    the interaction, in the order they were seen.
    """
    trigger_label: str
    trigger_selector: str = ""
    actions: Tuple[Action, ...] = ()
    added: Tuple[str, ...] = ()
    removed: Tuple[str, ...] = ()

    @property
    def has_delta(self) -> bool:
        return bool(self.added or self.removed)

    @property
    def option_labels(self) -> List[str]:
        """Options exposed by this state: ``added``, or ``removed`` when nothing was added."""
        source = self.added if self.added else self.removed
        seen = set()
        out = []
        for label in source:
            if label and label not in seen:
                seen.add(label)
                out.append(label)
        return out


@dataclass
class PageVisit:
    """One visited page (first claimant of its canonical URL)."""
    url: str
    title: str = ""
    depth: int = 0
    actions: List[Action] = field(default_factory=list)
    screenshot_path: Optional[str] = None
    status_code: Optional[int] = None

    def to_record(self) -> dict:
        """``pages.jsonl`` record."""
        return {
            'url': self.url,
            'title': self.title,
            'depth': self.depth,
            'screenshotPath': self.screenshot_path,
        }


# ---------------------------------------------------------------------------
# Node identity
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PageNode:
    url: str

    @property
    def page_url(self) -> str:
        return self.url


@dataclass(frozen=True)
class TransitionNode:
    page_url: str
    trigger: str

    def option(self, label: str) -> "OptionNode":
        return OptionNode(self.page_url, self.trigger, label)


@dataclass(frozen=True)
class OptionNode:
    page_url: str
    trigger: str
    option: str

    @property
    def transition(self) -> TransitionNode:
        return TransitionNode(self.page_url, self.trigger)


Node = Union[PageNode, TransitionNode, OptionNode]


def encode_node_id(node: Node) -> str:
    """
    String form of a node, as written to JSONL and DOT.

    The markers are not escaped.  A trigger label containing ``::OPT::``
    encodes to the same string as an option node, and a page URL containing
    ``::TRANS::`` is cut at that point; neither survives ``decode_node_id``.
    Option labels and triggers containing ``::TRANS::`` do round-trip.
    """
    if isinstance(node, OptionNode):
        return f"{node.page_url}{TRANSITION_MARKER}{node.trigger}{OPTION_MARKER}{node.option}"
    if isinstance(node, TransitionNode):
        return f"{node.page_url}{TRANSITION_MARKER}{node.trigger}"
    return node.url


def decode_node_id(text: str) -> Node:
    """Inverse of ``encode_node_id``; splits on the first marker of each kind."""
    ix = text.find(TRANSITION_MARKER)
    if ix < 0:
        return PageNode(text)
    page_url = text[:ix]
    rest = text[ix + len(TRANSITION_MARKER):]
    opt_ix = rest.find(OPTION_MARKER)
    if opt_ix < 0:
        return TransitionNode(page_url, rest)
    return OptionNode(page_url, rest[:opt_ix], rest[opt_ix + len(OPTION_MARKER):])


def trigger_of(node: Node) -> Optional[str]:
    return None if isinstance(node, PageNode) else node.trigger


def option_of(node: Node) -> Optional[str]:
    return node.option if isinstance(node, OptionNode) else None


@dataclass(frozen=True)
class Edge:
    to: Node
    label: str
    type: EdgeType
    options: Tuple[str, ...] = ()
