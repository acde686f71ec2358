"""Command-line interface for the crawl engine."""

import asyncio
import json
import signal
import sys
from typing import Optional

from pydantic import ValidationError

from webcrawler.config import AuthConfig, AuthMode, CrawlConfig, FetchMethod, settings
from webcrawler.exceptions import AuthError, InvalidUrl
from webcrawler.logging_config import get_logger, setup_logging
from webcrawler.models import CrawlResult
from webcrawler.output_manager import OutputManager, load_stats
from webcrawler.session import CrawlSession

logger = get_logger(__name__)

# argparse dest -> CrawlConfig field
_CONFIG_ARGS = {
    "depth": "max_depth",
    "max_pages": "max_pages",
    "timeout": "timeout_ms",
    "retries": "max_retries",
    "concurrent": "concurrency",
    "delay": "delay_ms",
    "method": "fetch_strategy",
    "user_agent": "user_agent",
    "robots_agent": "robots_agent",
    "proxy": "proxy",
}


def build_config(args) -> CrawlConfig:
    """CrawlConfig from --config (if any), the environment and CLI flags.

    Flags given on the command line win over the config file.
    """
    overrides = {
        field: getattr(args, dest)
        for dest, field in _CONFIG_ARGS.items()
        if getattr(args, dest, None) is not None
    }
    if args.no_robots:
        overrides["respect_robots"] = False
    if args.same_domain:
        overrides["stay_on_domain"] = True

    auth = build_auth_config(args)
    if auth is not None:
        overrides["auth"] = auth

    if args.config:
        base = CrawlConfig.from_file(args.config)
        data = base.model_dump()
        data.update(overrides)
        return CrawlConfig(**data)

    return CrawlConfig.from_env(**overrides)


def build_auth_config(args) -> Optional[AuthConfig]:
    if not args.auth_type:
        return None

    login_data = {}
    if args.login_data:
        login_data = json.loads(args.login_data)

    return AuthConfig(
        mode=AuthMode(args.auth_type),
        username=args.auth_username,
        password=args.auth_password,
        token=args.auth_token,
        cookies=args.auth_cookies,
        login_url=args.login_url,
        login_data=login_data,
    )


async def _run_session(session: CrawlSession, url: str) -> CrawlResult:
    """Run a session with SIGINT/SIGTERM wired to session.cancel()."""
    loop = asyncio.get_running_loop()
    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, session.cancel)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            # Not supported on this platform / outside the main thread
            pass

    try:
        return await session.run(url)
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)


def print_stats(stats: dict, title: str = "CRAWL STATISTICS"):
    print(f"\n{'=' * 60}")
    print(title)
    print(f"{'=' * 60}")
    for key, value in stats.items():
        print(f"  {key}: {value}")
    print(f"{'=' * 60}\n")


def crawl_command(args):
    """Crawl from a seed URL and save the results."""
    try:
        config = build_config(args)
    except (ValidationError, ValueError) as e:
        print(f"Error: invalid configuration: {e}")
        sys.exit(1)

    session = CrawlSession(config)

    try:
        result = asyncio.run(_run_session(session, args.url))
    except InvalidUrl as e:
        print(f"Error: {e}")
        sys.exit(1)
    except AuthError as e:
        print(f"Error: authentication failed: {e}")
        sys.exit(1)

    output_dir = args.output_dir or settings.OUTPUT_DIR
    paths = OutputManager(output_dir).save(
        result,
        formats=args.output,
        config=config.to_dict(),
        report=not args.no_report,
    )

    print_stats(result.stats().to_dict())
    print(f"Crawl finished in {result.duration_seconds:.2f} seconds")
    if result.cancelled:
        print("Crawl was cancelled; partial results saved.")
    for fmt, path in paths.items():
        print(f"{fmt.upper()}: {path}")


def stats_command(args):
    """Print the summary of a saved crawl file."""
    try:
        stats = load_stats(args.file)
    except (OSError, json.JSONDecodeError) as e:
        print(f"Error: could not read {args.file}: {e}")
        sys.exit(1)

    print_stats(stats, title=f"Stats for {args.file}")


def main():
    """Main CLI entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Web Crawler - Breadth-first crawl with pluggable fetch strategies"
    )

    # Global flags (before subcommands)
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=settings.LOG_LEVEL.upper(),
        help="Set logging verbosity (default: INFO)",
    )
    parser.add_argument(
        "--log-file",
        default=settings.LOG_FILE,
        help="Write logs to file in addition to console",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    crawl_parser = subparsers.add_parser("crawl", help="Crawl a site from a seed URL.")
    crawl_parser.add_argument("--url", "-u", required=True, help="Seed URL")
    crawl_parser.add_argument("--depth", "-d", type=int, help="Maximum crawl depth (default: 2)")
    crawl_parser.add_argument("--max-pages", "-m", type=int, help="Maximum pages (default: 20)")
    crawl_parser.add_argument("--timeout", "-t", type=int, help="Request timeout in ms (default: 30000)")
    crawl_parser.add_argument("--retries", "-r", type=int, help="Retries per URL (default: 3)")
    crawl_parser.add_argument("--concurrent", "-c", type=int, help="Concurrent workers (default: 5)")
    crawl_parser.add_argument("--delay", type=int, help="Per-host delay and retry backoff in ms (default: 1000)")
    crawl_parser.add_argument(
        "--method",
        choices=[method.value for method in FetchMethod],
        help="Fetch strategy (default: http)",
    )
    crawl_parser.add_argument("--no-robots", action="store_true", help="Ignore robots.txt")
    crawl_parser.add_argument("--same-domain", action="store_true", help="Only follow links on the seed host")
    crawl_parser.add_argument(
        "--output",
        "-o",
        choices=["json", "csv", "both"],
        default="both",
        help="Output format (default: both)",
    )
    crawl_parser.add_argument("--output-dir", help="Directory for result files (default: data)")
    crawl_parser.add_argument("--no-report", action="store_true", help="Skip the Markdown summary report")
    crawl_parser.add_argument("--user-agent", help="User-Agent header")
    crawl_parser.add_argument("--robots-agent", help="Agent name for robots.txt matching (default: from User-Agent)")
    crawl_parser.add_argument("--proxy", help="Proxy URL")
    crawl_parser.add_argument(
        "--auth-type",
        choices=[mode.value for mode in AuthMode if mode != AuthMode.NONE],
        help="Authentication mode",
    )
    crawl_parser.add_argument("--auth-username", help="Basic auth username")
    crawl_parser.add_argument("--auth-password", help="Basic auth password")
    crawl_parser.add_argument("--auth-token", help="Bearer token")
    crawl_parser.add_argument("--auth-cookies", help="Cookie string, e.g. 'a=1; b=2'")
    crawl_parser.add_argument("--login-url", help="Form login URL")
    crawl_parser.add_argument("--login-data", help="Form login fields as JSON")
    crawl_parser.add_argument("--config", help="JSON or YAML config file")
    crawl_parser.set_defaults(func=crawl_command)

    stats_parser = subparsers.add_parser("stats", help="Show stats for a saved JSON crawl file.")
    stats_parser.add_argument("file", help="Path to crawl-data-*.json")
    stats_parser.set_defaults(func=stats_command)

    args = parser.parse_args()

    # Configure logging based on flags
    setup_logging(
        level=args.log_level,
        log_file=getattr(args, 'log_file', None),
    )

    if hasattr(args, "func"):
        args.func(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
