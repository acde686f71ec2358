"""Tests for result persistence and the stats command."""

import csv
import json
import sys
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from webcrawler.cli import build_config, main
from webcrawler.config import AuthMode, FetchMethod
from webcrawler.constants import CSV_COLUMNS
from webcrawler.exceptions import FetchErrorKind
from webcrawler.models import CrawlResult, FailedUrl, ImageRecord, LinkRecord, PageRecord
from webcrawler.output_manager import OutputManager, load_stats, timestamp_slug

TIMESTAMP = datetime(2026, 3, 1, 12, 30, 5, tzinfo=timezone.utc)


@pytest.fixture
def result():
    home = PageRecord(
        title="Home",
        url="https://example.com/",
        timestamp=TIMESTAMP,
        extracted_text="Welcome",
        links=(
            LinkRecord(text="About", absolute_url="https://example.com/about"),
            LinkRecord(text="About", absolute_url="https://example.com/about"),
        ),
        images=(ImageRecord(absolute_src="https://example.com/logo.png", alt="Logo"),),
    )
    about = PageRecord(
        title="About, us",
        url="https://example.com/about",
        timestamp=TIMESTAMP,
        extracted_text="About",
        depth=1,
    )
    return CrawlResult(
        seed_url="https://example.com/",
        pages=[home, about],
        failed=[FailedUrl(
            url="https://example.com/broken",
            depth=1,
            kind=FetchErrorKind.HTTP_ERROR,
            message="HTTP 500",
            status_code=500,
            attempts=4,
        )],
        blocked=["https://example.com/private"],
        visited=frozenset({
            "https://example.com/",
            "https://example.com/about",
            "https://example.com/broken",
            "https://example.com/private",
        }),
        started_at=TIMESTAMP,
        finished_at=TIMESTAMP,
    )


def test_timestamp_slug():
    assert timestamp_slug(TIMESTAMP) == "2026-03-01T12-30-05+00-00"


class TestOutputManager:
    """Test cases for OutputManager."""

    def test_save_both(self, tmp_path, result):
        manager = OutputManager(tmp_path / "data")

        paths = manager.save(result, timestamp=TIMESTAMP)

        assert paths["json"].name == "crawl-data-2026-03-01T12-30-05+00-00.json"
        assert paths["csv"].name == "crawl-data-2026-03-01T12-30-05+00-00.csv"
        assert paths["json"].exists()
        assert paths["csv"].exists()
        assert "report" not in paths

    def test_json_contents(self, tmp_path, result):
        paths = OutputManager(tmp_path).save(result, formats="json", timestamp=TIMESTAMP, config={"max_depth": 2})

        data = json.loads(paths["json"].read_text(encoding="utf-8"))

        assert set(paths) == {"json"}
        assert data["seed_url"] == "https://example.com/"
        assert data["config"] == {"max_depth": 2}
        assert data["stats"]["total_pages"] == 2
        assert data["stats"]["visited_count"] == 4
        assert data["stats"]["duration_seconds"] == 0.0
        assert data["pages"][0]["timestamp"] == "2026-03-01T12:30:05+00:00"
        assert data["pages"][0]["links"][0]["absolute_url"] == "https://example.com/about"
        assert data["failed"][0]["kind"] == "http_error"
        assert data["failed"][0]["attempts"] == 4
        assert data["blocked"] == ["https://example.com/private"]

    def test_csv_contents(self, tmp_path, result):
        paths = OutputManager(tmp_path).save(result, formats="csv", timestamp=TIMESTAMP)

        with open(paths["csv"], newline="", encoding="utf-8") as f:
            rows = list(csv.reader(f))

        assert tuple(rows[0]) == CSV_COLUMNS
        assert rows[1] == ["https://example.com/", "Home", "2026-03-01T12:30:05+00:00", "200", "2", "1"]
        assert rows[2][1] == "About, us"

    def test_markdown_report(self, tmp_path, result):
        result.finished_at = TIMESTAMP + timedelta(seconds=12.5)

        paths = OutputManager(tmp_path).save(result, formats="json", timestamp=TIMESTAMP, report=True)
        report = paths["report"].read_text(encoding="utf-8")

        assert paths["report"].name == "report-2026-03-01T12-30-05+00-00.md"
        assert report.startswith("# Web Crawling Report\n")
        assert "- **Duration**: 12.50 seconds" in report
        assert "- **Total Pages Crawled**: 2" in report
        assert "- **Total Links Found**: 2" in report
        assert "### About, us" in report
        assert "- **Content Type**: text/html" in report
        assert "- [Home](https://example.com/) - 2 links, 1 images" in report
        assert "- https://example.com/broken: http_error after 4 attempt(s) (HTTP 500)" in report
        assert "- https://example.com/private" in report

    def test_unknown_format(self, tmp_path, result):
        with pytest.raises(ValueError):
            OutputManager(tmp_path).save(result, formats="xml")

    def test_load_stats(self, tmp_path, result):
        paths = OutputManager(tmp_path).save(result, formats="json", timestamp=TIMESTAMP)

        stats = load_stats(paths["json"])

        assert stats["total_pages"] == 2
        assert stats["total_links"] == 2
        assert stats["total_images"] == 1
        assert stats["failed_count"] == 1
        assert stats["blocked_count"] == 1
        assert stats["visited_count"] == 4
        assert stats["duration_seconds"] == 0.0

    def test_load_stats_from_page_list(self, tmp_path):
        path = tmp_path / "pages.json"
        path.write_text(json.dumps([{"links": [{}, {}], "images": []}, {"links": [], "images": [{}]}]))

        assert load_stats(path) == {"total_pages": 2, "total_links": 2, "total_images": 1}


class TestCli:
    """Test cases for the command-line entry point."""

    def test_stats_command(self, tmp_path, result, capsys):
        paths = OutputManager(tmp_path).save(result, formats="json", timestamp=TIMESTAMP)

        with patch.object(sys, "argv", ["webcrawler", "stats", str(paths["json"])]):
            main()

        output = capsys.readouterr().out
        assert "total_pages: 2" in output
        assert "blocked_count: 1" in output

    def test_stats_missing_file(self, tmp_path):
        with patch.object(sys, "argv", ["webcrawler", "stats", str(tmp_path / "missing.json")]):
            with pytest.raises(SystemExit) as exc_info:
                main()

        assert exc_info.value.code == 1

    @pytest.mark.parametrize("extra_args,expected", [
        ([], {"json", "md"}),
        (["--no-report"], {"json"}),
    ])
    def test_crawl_command_writes_outputs(self, tmp_path, result, capsys, extra_args, expected):
        result.finished_at = TIMESTAMP + timedelta(seconds=3)
        session = MagicMock()
        session.run = AsyncMock(return_value=result)
        argv = [
            "webcrawler", "crawl", "--url", "https://example.com/",
            "--output", "json", "--output-dir", str(tmp_path), *extra_args,
        ]

        with patch("webcrawler.cli.CrawlSession", return_value=session):
            with patch.object(sys, "argv", argv):
                main()

        session.run.assert_awaited_once_with("https://example.com/")
        assert {path.suffix.lstrip(".") for path in tmp_path.iterdir()} == expected
        output = capsys.readouterr().out
        assert "Crawl finished in 3.00 seconds" in output
        assert "duration_seconds: 3.0" in output

    @pytest.mark.parametrize("seed", ["not a url", "ftp://example.com/file"])
    def test_invalid_seed_exits_with_error(self, tmp_path, seed):
        argv = ["webcrawler", "crawl", "--url", seed, "--output-dir", str(tmp_path)]

        with patch.object(sys, "argv", argv):
            with pytest.raises(SystemExit) as exc_info:
                main()

        assert exc_info.value.code == 1
        assert list(tmp_path.iterdir()) == []

    def test_build_config_from_flags(self, tmp_path):
        import argparse

        config_file = tmp_path / "crawl.yaml"
        config_file.write_text("max_depth: 4\nmax_pages: 99\n")

        args = argparse.Namespace(
            depth=1, max_pages=None, timeout=None, retries=2, concurrent=None, delay=0,
            method="curl", user_agent=None, proxy=None, no_robots=True, same_domain=False,
            auth_type="bearer", auth_username=None, auth_password=None, auth_token="tok",
            auth_cookies=None, login_url=None, login_data=None, config=str(config_file),
        )

        config = build_config(args)

        assert config.max_depth == 1
        assert config.max_pages == 99
        assert config.max_retries == 2
        assert config.delay_ms == 0
        assert config.respect_robots is False
        assert config.fetch_strategy == FetchMethod.EXTERNAL_PROCESS
        assert config.auth.mode == AuthMode.BEARER
        assert config.auth.token == "tok"
