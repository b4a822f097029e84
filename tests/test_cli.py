"""
Tests for the ``python -m sitegraph`` entry point with the crawl itself
stubbed out.
"""

from sitegraph import __main__ as cli
from sitegraph.crawler import GraphCrawler
from sitegraph.graph import SiteGraph


def stub_crawl(monkeypatch):
    seen = {}

    async def fake_crawl(config, seeds):
        seen['config'] = config
        seen['seeds'] = seeds
        return GraphCrawler(config), SiteGraph().to_result(stats={}, errors=[])

    monkeypatch.setattr(cli, '_crawl', fake_crawl)
    return seen


class TestMain:

    def test_dot_written(self, tmp_path, monkeypatch):
        seen = stub_crawl(monkeypatch)
        dot = tmp_path / "out" / "graph.dot"
        code = cli.main(['example.com', '--no-jsonl', '--no-screenshots', '--dot', str(dot)])
        assert code == 0
        assert seen['seeds'] == ['https://example.com']
        assert dot.read_text(encoding="utf-8").startswith("digraph G {")

    def test_unwritable_dot_path_still_succeeds(self, tmp_path, monkeypatch, capsys):
        stub_crawl(monkeypatch)
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        code = cli.main([
            'https://example.com/', '--no-jsonl', '--no-screenshots',
            '--dot', str(blocker / "graph.dot"),
        ])
        assert code == 0
        assert "Nodes:" in capsys.readouterr().out
