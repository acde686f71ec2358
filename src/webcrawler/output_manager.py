"""Output manager for persisting crawl results with timestamps."""

import csv
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Union

from webcrawler.constants import CSV_COLUMNS, DEFAULT_OUTPUT_DIR
from webcrawler.models import CrawlResult, utc_now
from webcrawler.report_generator import ReportGenerator

logger = logging.getLogger(__name__)


class DateTimeEncoder(json.JSONEncoder):
    """JSON encoder that handles datetime objects."""

    def default(self, obj):
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, (set, frozenset)):
            return sorted(obj)
        return super().default(obj)


def timestamp_slug(timestamp: Optional[datetime] = None) -> str:
    """ISO timestamp with ':' and '.' replaced, safe for file names.

    Example:
        2026-03-01T12:30:05.123456+00:00 -> 2026-03-01T12-30-05-123456+00-00
    """
    timestamp = timestamp or utc_now()
    return timestamp.isoformat().replace(":", "-").replace(".", "-")


class OutputManager:
    """Writes crawl results as JSON (full records), CSV (one summary row per
    page) and, on request, a Markdown summary report.

    Example structure:
        data/
        ├── crawl-data-2026-03-01T12-30-05-123456+00-00.json
        ├── crawl-data-2026-03-01T12-30-05-123456+00-00.csv
        └── report-2026-03-01T12-30-05-123456+00-00.md
    """

    def __init__(self, base_output_dir: Union[str, Path] = DEFAULT_OUTPUT_DIR):
        """Initialize output manager.

        Args:
            base_output_dir: Directory for all crawl outputs (created if missing)
        """
        self.base_output_dir = Path(base_output_dir)
        self.base_output_dir.mkdir(parents=True, exist_ok=True)

    def save(
        self,
        result: CrawlResult,
        formats: str = "both",
        timestamp: Optional[datetime] = None,
        config: Optional[dict] = None,
        report: bool = False,
    ) -> Dict[str, Path]:
        """Save a crawl result.

        Partial results of a cancelled session are saved the same way.

        Args:
            result: Result of a crawl session
            formats: "json", "csv" or "both"
            timestamp: Timestamp used in the file names (defaults to now)
            config: Optional configuration summary stored in the JSON file
            report: Also write report-<timestamp>.md

        Returns:
            Mapping of format name to written path
        """
        if formats not in ("json", "csv", "both"):
            raise ValueError(f"Unknown output format: {formats}")

        timestamp = timestamp or utc_now()
        slug = timestamp_slug(timestamp)
        stem = f"crawl-data-{slug}"
        paths = {}

        if formats in ("json", "both"):
            paths["json"] = self.save_json(result, self.base_output_dir / f"{stem}.json", config)
        if formats in ("csv", "both"):
            paths["csv"] = self.save_csv(result, self.base_output_dir / f"{stem}.csv")
        if report:
            paths["report"] = self.save_report(result, self.base_output_dir / f"report-{slug}.md", timestamp)

        return paths

    def save_json(self, result: CrawlResult, filepath: Path, config: Optional[dict] = None) -> Path:
        data = {
            "seed_url": result.seed_url,
            "started_at": result.started_at,
            "finished_at": result.finished_at,
            "cancelled": result.cancelled,
            "stats": result.stats().to_dict(),
            "pages": [page.to_dict() for page in result.pages],
            "failed": [failure.to_dict() for failure in result.failed],
            "blocked": result.blocked,
        }
        if config is not None:
            data["config"] = config

        self._save_json(filepath, data)
        logger.info(f"Data saved to JSON: {filepath}")
        return filepath

    def save_csv(self, result: CrawlResult, filepath: Path) -> Path:
        with open(filepath, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS)
            writer.writeheader()
            for page in result.pages:
                writer.writerow(page.summary_row())

        logger.info(f"Data saved to CSV: {filepath}")
        return filepath

    def save_report(
        self,
        result: CrawlResult,
        filepath: Path,
        generated_at: Optional[datetime] = None,
    ) -> Path:
        """Write the Markdown summary report (see ReportGenerator)."""
        return ReportGenerator().generate_report(result, filepath, generated_at)

    def _save_json(self, filepath: Path, data: dict) -> None:
        """Save data as formatted JSON.

        Args:
            filepath: Path to save to
            data: Data to save
        """
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False, cls=DateTimeEncoder)


def load_stats(filepath: Union[str, Path]) -> dict:
    """Summary counters for a saved JSON crawl file.

    Accepts files written by OutputManager, or a bare list of page records.

    Returns:
        Dictionary with total_pages, total_links, total_images and, when
        the file carries them, failed_count, blocked_count and
        duration_seconds
    """
    with open(filepath, "r", encoding="utf-8") as f:
        data = json.load(f)

    pages = data if isinstance(data, list) else data.get("pages", [])

    stats = {
        "total_pages": len(pages),
        "total_links": sum(len(page.get("links", [])) for page in pages),
        "total_images": sum(len(page.get("images", [])) for page in pages),
    }

    if isinstance(data, dict):
        stats["failed_count"] = len(data.get("failed", []))
        stats["blocked_count"] = len(data.get("blocked", []))
        stats["visited_count"] = data.get("stats", {}).get("visited_count", len(pages))
        stats["cancelled"] = data.get("cancelled", False)
        if "duration_seconds" in data.get("stats", {}):
            stats["duration_seconds"] = data["stats"]["duration_seconds"]

    return stats
