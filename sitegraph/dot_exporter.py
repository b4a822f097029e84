"""
DOT Export
==========
Renders a crawl result as Graphviz DOT text.

Node styles:
  page        solid, rounded; labelled by title, else path + query
  transition  dotted, dodgerblue; ``▶ trigger``
  option      dashed, gray50, whitesmoke fill; ``• option``

Every node is declared exactly once, before any edge.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List
from urllib.parse import urlsplit

from .graph import CrawlResult
from .models import EdgeType, Node, OptionNode, PageNode, TransitionNode, encode_node_id
from .utils import truncate

logger = logging.getLogger(__name__)

LABEL_LIMIT = 120


def _esc(text: str) -> str:
    return text.replace('\\', '\\\\').replace('"', '\\"')


def _path_label(url: str) -> str:
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    if not parts.scheme:
        return url
    return (parts.path or '/') + (f"?{parts.query}" if parts.query else '')


def node_label(node: Node, result: CrawlResult) -> str:
    if isinstance(node, OptionNode):
        text = f"• {node.option}"
    elif isinstance(node, TransitionNode):
        text = f"▶ {node.trigger}"
    else:
        text = result.title_of(node.url) or _path_label(node.url)
    return truncate(text, LABEL_LIMIT)


def _node_attrs(node: Node) -> str:
    if isinstance(node, OptionNode):
        return 'color="gray50", style="dashed,rounded,filled", fillcolor="whitesmoke"'
    if isinstance(node, TransitionNode):
        return 'color="dodgerblue", style="dotted,rounded"'
    return 'color="black", style="rounded"'


def to_dot(result: CrawlResult) -> str:
    """DOT text for *result*."""
    lines: List[str] = [
        "digraph G {",
        "  rankdir=LR;",
        "  node [shape=box, style=rounded, fontsize=10];",
    ]

    for node in result.nodes():
        node_id = _esc(encode_node_id(node))
        lines.append(
            f'  "{node_id}" [label="{_esc(node_label(node, result))}", '
            f'tooltip="{node_id}", {_node_attrs(node)}];'
        )

    # Page navigation (solid), one edge per destination
    for src, outs in result.graph.items():
        page_edges = result.action_graph.get(PageNode(src), [])
        seen = set()
        for dst in outs:
            if dst in seen:
                continue
            seen.add(dst)
            label = next(
                (e.label for e in page_edges
                 if e.type is EdgeType.NAVIGATE and e.to == PageNode(dst) and e.label),
                "",
            )
            attrs = f' [label="{_esc(label)}"]' if label else ''
            lines.append(f'  "{_esc(src)}" -> "{_esc(dst)}"{attrs};')

    for src, edges in result.action_graph.items():
        src_id = _esc(encode_node_id(src))
        synthetic = not isinstance(src, PageNode)
        for edge in edges:
            dst_id = _esc(encode_node_id(edge.to))
            label = _esc(edge.label)
            if edge.type is EdgeType.NAVIGATE:
                # Page navigation was drawn above
                if synthetic:
                    lines.append(f'  "{src_id}" -> "{dst_id}" [label="{label}"];')
            elif edge.type is EdgeType.TRANSITION:
                lines.append(
                    f'  "{src_id}" -> "{dst_id}" [style=dotted, color=dodgerblue, label="{label}"];'
                )
            else:
                lines.append(
                    f'  "{src_id}" -> "{dst_id}" [style=dashed, color=gray50, label="{label}"];'
                )

    lines.append("}")
    return "\n".join(lines)


def write_dot(result: CrawlResult, path: str) -> str:
    """Write ``to_dot(result)`` to *path*; returns the absolute path."""
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(to_dot(result), encoding="utf-8")
    logger.info(f"[EXPORT] DOT graph → {out.absolute()}")
    return str(out.absolute())
