"""
Tests for CrawlConfig defaults, clamping and CLI mapping.
"""

import pytest

from sitegraph.__main__ import build_parser
from sitegraph.run_config import CrawlConfig


class TestClamping:

    def test_defaults(self):
        cfg = CrawlConfig()
        assert cfg.max_depth == 1
        assert cfg.max_pages == 50
        assert cfg.concurrency == 3
        assert cfg.transitions_per_page == 12
        assert cfg.same_origin is True
        assert cfg.wait_until == ["load", "domcontentloaded", "networkidle"]

    @pytest.mark.parametrize("given,expected", [(0, 1), (-5, 1), (4, 4), (99, 10)])
    def test_concurrency(self, given, expected):
        assert CrawlConfig(concurrency=given).concurrency == expected

    @pytest.mark.parametrize("given,expected", [(-1, 0), (0, 0), (20, 20), (80, 50)])
    def test_transitions_per_page(self, given, expected):
        assert CrawlConfig(transitions_per_page=given).transitions_per_page == expected

    def test_negative_limits_floor_at_zero(self):
        cfg = CrawlConfig(max_depth=-1, max_pages=-3, delay_ms=-10)
        assert (cfg.max_depth, cfg.max_pages, cfg.delay_ms) == (0, 0, 0)

    def test_unknown_wait_condition(self):
        with pytest.raises(ValueError):
            CrawlConfig(wait_until=["load", "idle"])

    def test_manual_login_forces_headful(self):
        cfg = CrawlConfig(manual_login_url="https://example.com/login")
        assert cfg.headless is False


class TestFromCliArgs:

    def test_flags_mapped(self):
        args = build_parser().parse_args([
            "https://example.com",
            "--depth", "2", "--pages", "10", "--concurrency", "20",
            "--timeout", "5", "--no-transitions", "--no-probes",
            "--no-screenshots", "--no-jsonl", "--dot", "g.dot", "--cross-origin",
        ])
        cfg = CrawlConfig.from_cli_args(args)
        assert cfg.max_depth == 2
        assert cfg.max_pages == 10
        assert cfg.concurrency == 10
        assert cfg.timeout_ms == 5000
        assert cfg.discover_transitions is False
        assert cfg.probes is False
        assert cfg.screenshot_dir is None
        assert cfg.jsonl_dir is None
        assert cfg.dot_path == "g.dot"
        assert cfg.same_origin is False

    def test_defaults_from_parser(self):
        args = build_parser().parse_args(["https://example.com"])
        cfg = CrawlConfig.from_cli_args(args)
        assert cfg.max_depth == CrawlConfig().max_depth
        assert cfg.timeout_ms == 30000
        assert cfg.screenshot_dir is not None

    def test_manual_login_flag(self):
        args = build_parser().parse_args([
            "https://example.com", "--manual-login-url", "https://example.com/login",
            "--login-wait-ms", "1000",
        ])
        cfg = CrawlConfig.from_cli_args(args)
        assert cfg.manual_login_url == "https://example.com/login"
        assert cfg.login_wait_ms == 1000
        assert cfg.headless is False
