"""
Site Graph Package
Playwright crawler that maps a site's pages, actions and non-navigational
UI transitions (menus, dialogs, tabs, toggles) into a typed graph.

CLI Usage:
    python -m sitegraph <seed-url> [options]

    Options:
        --depth                 Maximum crawl depth (default: 1)
        --pages                 Maximum pages to visit (default: 50)
        --concurrency           Concurrent visits per chunk (default: 3)
        --no-transitions        Skip transition discovery
        --jsonl-dir             JSONL output directory
        --dot                   DOT output file
"""

from .models import (
    Action,
    ActionType,
    Edge,
    EdgeType,
    Node,
    OptionNode,
    PageNode,
    PageVisit,
    Transition,
    TransitionNode,
    decode_node_id,
    encode_node_id,
)
from .run_config import CrawlConfig
from .graph import CrawlResult, SiteGraph
from .browser import BrowserSession, NavigationResult, RenderResult
from .extractor import ActionExtractor
from .transitions import TransitionProber
from .crawler import GraphCrawler
from .dot_exporter import to_dot, write_dot
from .jsonl_exporter import export_jsonl
from .loader import load_graph
from .utils import canonicalize_url

__version__ = "0.1.0"

__all__ = [
    'Action',
    'ActionType',
    'Edge',
    'EdgeType',
    'Node',
    'OptionNode',
    'PageNode',
    'PageVisit',
    'Transition',
    'TransitionNode',
    'decode_node_id',
    'encode_node_id',
    'CrawlConfig',
    'CrawlResult',
    'SiteGraph',
    'BrowserSession',
    'NavigationResult',
    'RenderResult',
    'ActionExtractor',
    'TransitionProber',
    'GraphCrawler',
    'to_dot',
    'write_dot',
    'export_jsonl',
    'load_graph',
    'canonicalize_url',
]
