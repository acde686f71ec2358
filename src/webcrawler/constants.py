# src/webcrawler/constants.py
"""Centralized constants for the crawl engine.

Defaults for user-facing settings live here so that config.py, the CLI
and the fetch strategies agree on them. For per-run settings, see
CrawlConfig in config.py.
"""

# =============================================================================
# Crawler Defaults
# =============================================================================

# Maximum link depth relative to the seed URL (seed is depth 0)
DEFAULT_MAX_DEPTH = 2

# Maximum pages admitted to one session (visited + pending)
DEFAULT_MAX_PAGES = 20

# Delay between requests to the same host (milliseconds)
DEFAULT_DELAY_MS = 1000

# Per-attempt fetch timeout (milliseconds)
DEFAULT_TIMEOUT_MS = 30000

# Retries after the first failed attempt
DEFAULT_MAX_RETRIES = 3

# Concurrent fetch workers
DEFAULT_CONCURRENCY = 5

# Redirect hops followed by fetches and the login exchange
DEFAULT_MAX_REDIRECTS = 5

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (compatible; WebCrawler/1.0; +https://example.invalid/bot)"
)

# Sent with every document request
ACCEPT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Upgrade-Insecure-Requests": "1",
}

# URL schemes the frontier will admit
CRAWLABLE_SCHEMES = ("http", "https")


# =============================================================================
# Robots.txt
# =============================================================================

ROBOTS_TXT_PATH = "/robots.txt"

# Timeout for each robots.txt fetch (seconds)
ROBOTS_TIMEOUT_SECONDS = 5.0


# =============================================================================
# Extraction
# =============================================================================

# Title used when a page has neither <title> nor a heading
NO_TITLE_PLACEHOLDER = "No Title"

# Anchor target when the attribute is missing
DEFAULT_LINK_TARGET = "_self"

# Metadata keys present on every PageRecord
METADATA_KEYS = ("description", "keywords", "author", "viewport", "charset")

# Elements whose text is never part of the visible page text
NON_VISIBLE_TAGS = ("script", "style", "noscript", "template")


# =============================================================================
# Headless Browser
# =============================================================================

# Wait after network idle for deferred rendering (milliseconds)
DEFAULT_SETTLE_MS = 2000

DEFAULT_SCREENSHOT_DIR = "screenshots"

DESKTOP_VIEWPORT_WIDTH = 1920
DESKTOP_VIEWPORT_HEIGHT = 1080


# =============================================================================
# External Process (curl)
# =============================================================================

DEFAULT_CURL_PATH = "curl"

# Separates the document body from curl's --write-out trailer
CURL_WRITE_OUT_MARKER = "\n--webcrawler-status--"

# Extra seconds granted to the curl process beyond its own --max-time
CURL_KILL_GRACE_SECONDS = 5.0


# =============================================================================
# Output
# =============================================================================

DEFAULT_OUTPUT_DIR = "data"

CSV_COLUMNS = ("url", "title", "timestamp", "statusCode", "linkCount", "imageCount")

# Jinja2 template for the Markdown summary report
REPORT_TEMPLATE = "report.md.j2"

# Pages listed under "Top Pages by Links" in the Markdown report
REPORT_TOP_PAGES = 5


# =============================================================================
# Authentication
# =============================================================================

# Redirect hops followed by the form-login POST
LOGIN_MAX_REDIRECTS = 5
