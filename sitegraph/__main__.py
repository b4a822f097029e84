#!/usr/bin/env python3
"""
Site Graph CLI
==============
Crawls one or more seed URLs and writes the resulting UI graph as JSONL
(pages + edges) and Graphviz DOT.

All configuration flows through ``CrawlConfig``.

Environment (a ``.env`` file is honoured):
  SEED_URL          default seed when none is given on the command line
  MANUAL_LOGIN_URL  open this page headful first and wait for a manual login
  LOGIN_WAIT_MS     how long to wait for that login (default 120000)

Run with: python -m sitegraph
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

# Load .env before reading any defaults from the environment
_env_path = Path(__file__).resolve().parent.parent / '.env'
if _env_path.exists():
    load_dotenv(_env_path)
else:
    load_dotenv()

from .browser import BrowserSession
from .crawler import GraphCrawler
from .dot_exporter import write_dot
from .run_config import CrawlConfig, _DEFAULTS

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='python -m sitegraph',
        description='Site Graph - crawl a site and map pages, actions and UI transitions',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m sitegraph https://example.com
  python -m sitegraph https://example.com --depth 2 --pages 100 --concurrency 5
  python -m sitegraph https://app.example.com --manual-login-url https://app.example.com/login
  python -m sitegraph https://example.com --render
        """
    )

    env_seed = os.environ.get('SEED_URL')
    parser.add_argument(
        'seeds', nargs='*', default=[env_seed] if env_seed else [],
        help='Seed URL(s) (default: $SEED_URL)',
    )
    parser.add_argument('--depth', type=int, default=_DEFAULTS['max_depth'],
                        help=f"Maximum crawl depth (default: {_DEFAULTS['max_depth']})")
    parser.add_argument('--pages', type=int, default=_DEFAULTS['max_pages'],
                        help=f"Maximum pages to visit (default: {_DEFAULTS['max_pages']})")
    parser.add_argument('--concurrency', type=int, default=_DEFAULTS['concurrency'],
                        help=f"Concurrent visits per chunk, 1-10 (default: {_DEFAULTS['concurrency']})")
    parser.add_argument('--delay-ms', type=int, default=_DEFAULTS['delay_ms'],
                        help='Pause between depth layers in ms (default: 0)')
    parser.add_argument('--cross-origin', action='store_true',
                        help='Follow links to other origins')

    probe_group = parser.add_argument_group('Transitions')
    probe_group.add_argument('--no-transitions', action='store_true',
                             help='Skip transition discovery')
    probe_group.add_argument('--transitions-per-page', type=int,
                             default=_DEFAULTS['transitions_per_page'],
                             help=f"Triggers probed per page, 0-50 (default: {_DEFAULTS['transitions_per_page']})")
    probe_group.add_argument('--no-probes', action='store_true',
                             help='Skip the hover/focus pass during action extraction')

    browser_group = parser.add_argument_group('Browser')
    browser_group.add_argument('--timeout', type=float, default=_DEFAULTS['timeout_ms'] / 1000,
                               help='Navigation timeout in seconds (default: 30)')
    browser_group.add_argument('--headful', action='store_true',
                               help='Show the browser window')

    out_group = parser.add_argument_group('Outputs')
    out_group.add_argument('--screenshot-dir', type=str, default=_DEFAULTS['screenshot_dir'],
                           help=f"Screenshot directory (default: {_DEFAULTS['screenshot_dir']})")
    out_group.add_argument('--no-screenshots', action='store_true', help='Disable screenshots')
    out_group.add_argument('--jsonl-dir', type=str, default=_DEFAULTS['jsonl_dir'],
                           help=f"JSONL output directory (default: {_DEFAULTS['jsonl_dir']})")
    out_group.add_argument('--no-jsonl', action='store_true', help='Disable JSONL export')
    out_group.add_argument('--dot', type=str, default=_DEFAULTS['dot_path'],
                           help=f"DOT output file (default: {_DEFAULTS['dot_path']})")

    login_group = parser.add_argument_group(
        'Manual login',
        'Open a login page headful and wait while you sign in; '
        'the crawl then reuses the session cookies.')
    login_group.add_argument('--manual-login-url', type=str,
                             default=os.environ.get('MANUAL_LOGIN_URL') or None,
                             help='Login page URL (default: $MANUAL_LOGIN_URL)')
    login_group.add_argument('--login-wait-ms', type=int,
                             default=int(os.environ.get('LOGIN_WAIT_MS') or _DEFAULTS['login_wait_ms']),
                             help='Time allowed for the manual login (default: $LOGIN_WAIT_MS or 120000)')

    parser.add_argument('--render', action='store_true',
                        help='Render the first seed only and print title, status and console output')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    return parser


async def _crawl(config: CrawlConfig, seeds):
    async with BrowserSession(config) as session:
        if config.manual_login_url:
            await session.wait_for_manual_login(config.manual_login_url, config.login_wait_ms)
        crawler = GraphCrawler(config, session=session)
        result = await crawler.crawl(seeds)
        return crawler, result


async def _render(config: CrawlConfig, url: str):
    async with BrowserSession(config) as session:
        return await session.render(url)


def _print_render(render) -> None:
    print("\n" + "=" * 65)
    print("RENDER")
    print("=" * 65)
    print(f"  URL:          {render.url}")
    print(f"  Status:       {render.status_code}")
    print(f"  Title:        {render.title}")
    print(f"  HTML size:    {len(render.html):,} chars")
    print(f"  Time:         {render.timing_ms:.0f} ms")
    print(f"  Console:      {len(render.console_messages)} message(s)")
    for msg in render.console_messages[:20]:
        print(f"    [{msg.type}] {msg.text[:100]}")
    print("=" * 65)


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s | %(levelname)s | %(message)s',
        datefmt='%H:%M:%S'
    )

    seeds = []
    for url in args.seeds:
        if not url.startswith(('http://', 'https://')):
            url = 'https://' + url
        seeds.append(url)
    if not seeds:
        parser.error("at least one seed URL is required (argument or $SEED_URL)")

    try:
        config = CrawlConfig.from_cli_args(args)
    except ValueError as e:
        parser.error(str(e))

    if args.render:
        render = asyncio.run(_render(config, seeds[0]))
        _print_render(render)
        return 0

    config.log_summary(seeds)
    crawler, result = asyncio.run(_crawl(config, seeds))

    if config.dot_path:
        try:
            write_dot(result, config.dot_path)
        except OSError as e:
            logger.error(f"[EXPORT] DOT export failed: {e}")

    metrics = crawler.monitor.snapshot()
    print("\n" + crawler.monitor.format_summary(metrics))
    print(f"  Nodes:               {len(result.nodes())}")
    if result.errors:
        print(f"  Errors:              {len(result.errors)}")
        for err in result.errors[:10]:
            print(f"    {err['url'][:70]} — {err['error'][:80]}")
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\n\nCrawl interrupted by user.")
        sys.exit(1)
