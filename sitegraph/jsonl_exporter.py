"""
JSONL Export
============
Writes a crawl result as two line-delimited JSON files:

  pages.jsonl   {url, title, depth, screenshotPath}
  edges.jsonl   {type: nav|click|transition, fromUrl, toUrl, label,
                 trigger?, option?}

Keys are camelCase and stable; downstream tools read these files.
Trigger/option provenance on an edge comes from the identity of its
source node.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Iterator, Tuple

from .graph import CrawlResult
from .models import EdgeType, encode_node_id, option_of, trigger_of

logger = logging.getLogger(__name__)

PAGES_FILE = "pages.jsonl"
EDGES_FILE = "edges.jsonl"

_RECORD_TYPES = {
    EdgeType.NAVIGATE: "nav",
    EdgeType.TRANSITION: "transition",
}


def edge_records(result: CrawlResult) -> Iterator[Dict]:
    """One ``edges.jsonl`` record per action-graph edge, in graph order."""
    for src, edges in result.action_graph.items():
        from_url = encode_node_id(src)
        trigger = trigger_of(src)
        option = option_of(src)
        for edge in edges:
            rec = {
                'type': _RECORD_TYPES.get(edge.type, "click"),
                'fromUrl': from_url,
                'toUrl': encode_node_id(edge.to),
                'label': edge.label,
            }
            if edge.type is EdgeType.TRANSITION:
                rec['trigger'] = edge.label
            else:
                if trigger:
                    rec['trigger'] = trigger
                if option:
                    rec['option'] = option
            yield rec


def export_jsonl(result: CrawlResult, out_dir: str) -> Tuple[str, str]:
    """Write ``pages.jsonl`` and ``edges.jsonl`` into *out_dir*; returns both paths."""
    path = Path(out_dir)
    path.mkdir(parents=True, exist_ok=True)
    pages_path = path / PAGES_FILE
    edges_path = path / EDGES_FILE

    with open(pages_path, "w", encoding="utf-8") as f:
        for page in result.pages:
            f.write(json.dumps(page.to_record(), ensure_ascii=False) + "\n")

    edge_count = 0
    with open(edges_path, "w", encoding="utf-8") as f:
        for rec in edge_records(result):
            f.write(json.dumps(rec, ensure_ascii=False) + "\n")
            edge_count += 1

    logger.info(
        f"[EXPORT] {len(result.pages)} pages, {edge_count} edges → {path.absolute()}"
    )
    return str(pages_path), str(edges_path)
