"""Markdown crawl summary reports using Jinja2 templates."""

import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from jinja2 import Environment, FileSystemLoader

from webcrawler.constants import REPORT_TEMPLATE, REPORT_TOP_PAGES
from webcrawler.models import CrawlResult, PageRecord, utc_now

logger = logging.getLogger(__name__)


class ReportGenerator:
    """Renders the per-run summary: duration, totals and one section per page."""

    def __init__(self, template_dir: Optional[str] = None):
        """Initialize report generator.

        Args:
            template_dir: Directory containing Jinja2 templates
                (default: the templates shipped with the package)
        """
        template_path = Path(template_dir) if template_dir else Path(__file__).parent / "templates"

        self.env = Environment(
            loader=FileSystemLoader(str(template_path)),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )

    def render(self, result: CrawlResult, generated_at: Optional[datetime] = None) -> str:
        template = self.env.get_template(REPORT_TEMPLATE)
        return template.render(
            result=result,
            stats=result.stats(),
            generated_at=generated_at or utc_now(),
            top_pages=top_pages_by_links(result.pages),
        )

    def generate_report(
        self,
        result: CrawlResult,
        output_path: Path,
        generated_at: Optional[datetime] = None,
    ) -> Path:
        """Render the report for `result` and write it to `output_path`."""
        report = self.render(result, generated_at)

        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(report, encoding="utf-8")
        logger.info(f"Report saved to: {output_path}")
        return output_path


def top_pages_by_links(pages: List[PageRecord], limit: int = REPORT_TOP_PAGES) -> List[PageRecord]:
    """Pages with the most links, ties kept in crawl order."""
    return sorted(pages, key=lambda page: len(page.links), reverse=True)[:limit]
