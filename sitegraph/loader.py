"""
JSONL Loader
============
Reads ``pages.jsonl`` / ``edges.jsonl`` back into lookup tables for
downstream processing.

URLs are canonicalized with sorted query parameters (fragment dropped).
Edges are grouped by the page they start from (a transition or option
source maps to its page) and navigation edges by destination.
Blank or malformed lines are skipped.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from .jsonl_exporter import EDGES_FILE, PAGES_FILE
from .models import OptionNode, PageNode, TransitionNode, decode_node_id, encode_node_id
from .utils import sorted_query_url

logger = logging.getLogger(__name__)


@dataclass
class PageRecord:
    url: str
    title: str = ""
    depth: int = 0
    screenshot_path: Optional[str] = None


@dataclass
class EdgeRecord:
    type: str
    from_url: str
    to_url: str
    label: str = ""
    trigger: Optional[str] = None
    option: Optional[str] = None
    from_node: str = ""


@dataclass
class LoadedGraph:
    pages: Dict[str, PageRecord] = field(default_factory=dict)
    edges_by_from: Dict[str, List[EdgeRecord]] = field(default_factory=dict)
    nav_by_dest: Dict[str, List[EdgeRecord]] = field(default_factory=dict)


def _read_jsonl(path: Path) -> Iterator[dict]:
    if not path.exists():
        return
    with open(path, "r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                item = json.loads(line)
            except json.JSONDecodeError:
                logger.debug(f"[LOAD] {path.name}:{lineno} is not JSON — skipped")
                continue
            if isinstance(item, dict):
                yield item


def canonical_node_id(text: str) -> str:
    """Encoded node id with its page part in sorted-query canonical form."""
    node = decode_node_id(text)
    page = sorted_query_url(node.page_url)
    if isinstance(node, OptionNode):
        return encode_node_id(OptionNode(page, node.trigger, node.option))
    if isinstance(node, TransitionNode):
        return encode_node_id(TransitionNode(page, node.trigger))
    return encode_node_id(PageNode(page))


def load_pages(jsonl_dir: str) -> Dict[str, PageRecord]:
    """Canonical URL → first page record seen for it."""
    pages: Dict[str, PageRecord] = {}
    for rec in _read_jsonl(Path(jsonl_dir) / PAGES_FILE):
        url = rec.get('url')
        if not isinstance(url, str) or not url:
            continue
        try:
            depth = int(rec.get('depth') or 0)
        except (TypeError, ValueError):
            continue
        canon = sorted_query_url(url)
        if canon in pages:
            continue
        pages[canon] = PageRecord(
            url=canon,
            title=rec.get('title') or "",
            depth=depth,
            screenshot_path=rec.get('screenshotPath'),
        )
    return pages


def load_edges(jsonl_dir: str) -> List[EdgeRecord]:
    edges: List[EdgeRecord] = []
    for rec in _read_jsonl(Path(jsonl_dir) / EDGES_FILE):
        src = rec.get('fromUrl')
        dst = rec.get('toUrl')
        kind = rec.get('type')
        if not (isinstance(src, str) and isinstance(dst, str) and isinstance(kind, str)):
            continue
        edges.append(EdgeRecord(
            type=kind,
            from_url=sorted_query_url(decode_node_id(src).page_url),
            to_url=canonical_node_id(dst),
            label=rec.get('label') or "",
            trigger=rec.get('trigger'),
            option=rec.get('option'),
            from_node=canonical_node_id(src),
        ))
    return edges


def load_graph(jsonl_dir: str) -> LoadedGraph:
    """Pages plus edges grouped by origin page and navigation edges by destination."""
    graph = LoadedGraph(pages=load_pages(jsonl_dir))
    for edge in load_edges(jsonl_dir):
        graph.edges_by_from.setdefault(edge.from_url, []).append(edge)
        if edge.type == 'nav':
            graph.nav_by_dest.setdefault(edge.to_url, []).append(edge)
    logger.info(
        f"[LOAD] {len(graph.pages)} pages, "
        f"{sum(len(v) for v in graph.edges_by_from.values())} edges from {jsonl_dir}"
    )
    return graph
