from dotenv import load_dotenv
from enum import Enum
from pathlib import Path
from typing import Dict, List, Literal, Optional, Union
import json
import os

import yaml
from pydantic import BaseModel, Field

from webcrawler.constants import (
    DEFAULT_CONCURRENCY,
    DEFAULT_CURL_PATH,
    DEFAULT_DELAY_MS,
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_PAGES,
    DEFAULT_MAX_REDIRECTS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_OUTPUT_DIR,
    DEFAULT_SCREENSHOT_DIR,
    DEFAULT_SETTLE_MS,
    DEFAULT_TIMEOUT_MS,
    DEFAULT_USER_AGENT,
)

load_dotenv()  # Loads variables from .env file


class Settings:
    """
    Manages process-wide settings loaded from environment variables.
    """
    USER_AGENT = os.getenv("CRAWLER_USER_AGENT", DEFAULT_USER_AGENT)
    LOG_LEVEL = os.getenv("CRAWLER_LOG_LEVEL", "INFO")
    LOG_FILE = os.getenv("CRAWLER_LOG_FILE")
    OUTPUT_DIR = os.getenv("CRAWLER_OUTPUT_DIR", DEFAULT_OUTPUT_DIR)
    SCREENSHOT_DIR = os.getenv("CRAWLER_SCREENSHOT_DIR", DEFAULT_SCREENSHOT_DIR)


settings = Settings()


class AuthMode(str, Enum):
    """Supported authentication modes."""

    NONE = "none"
    BASIC = "basic"
    BEARER = "bearer"
    COOKIE = "cookie"
    FORM = "form"


class FetchMethod(str, Enum):
    """Available fetch strategies."""

    DIRECT_HTTP = "http"
    HEADLESS_BROWSER = "browser"
    EXTERNAL_PROCESS = "curl"


class CookiePair(BaseModel):
    """A single name/value cookie."""

    name: str
    value: str = ""


class AuthConfig(BaseModel):
    """
    Credentials for one authentication mode.

    Which fields are required depends on the mode; the AuthResolver
    enforces that so a missing credential is reported as an AuthError.
    """

    mode: AuthMode = Field(default=AuthMode.NONE, description="Authentication mode")
    username: Optional[str] = Field(default=None, description="Basic auth username")
    password: Optional[str] = Field(default=None, description="Basic auth password")
    token: Optional[str] = Field(default=None, description="Bearer token")
    cookies: Optional[Union[str, List[CookiePair]]] = Field(
        default=None,
        description="'a=1; b=2' string or list of {name, value} pairs"
    )
    login_url: Optional[str] = Field(default=None, description="Form login endpoint")
    login_data: Dict[str, str] = Field(
        default_factory=dict,
        description="Form fields posted to login_url"
    )

    class Config:
        """Pydantic model configuration."""
        frozen = True

    @property
    def requires_auth(self) -> bool:
        return self.mode != AuthMode.NONE


class CrawlConfig(BaseModel):
    """
    Immutable settings for one crawl session.

    All fields are validated by Pydantic; constraint violations raise
    pydantic.ValidationError at construction time.
    """

    max_depth: int = Field(
        default=DEFAULT_MAX_DEPTH,
        ge=0,
        description="Maximum link depth from the seed (seed is depth 0)"
    )

    max_pages: int = Field(
        default=DEFAULT_MAX_PAGES,
        gt=0,
        description="Maximum URLs admitted to the session (visited + pending)"
    )

    delay_ms: int = Field(
        default=DEFAULT_DELAY_MS,
        ge=0,
        description="Minimum delay between requests to one host; also the retry backoff base"
    )

    timeout_ms: int = Field(
        default=DEFAULT_TIMEOUT_MS,
        gt=0,
        description="Timeout for a single fetch attempt in milliseconds"
    )

    max_retries: int = Field(
        default=DEFAULT_MAX_RETRIES,
        ge=0,
        description="Retries after the first failed attempt"
    )

    concurrency: int = Field(
        default=DEFAULT_CONCURRENCY,
        ge=1,
        description="Number of concurrent fetch workers"
    )

    respect_robots: bool = Field(
        default=True,
        description="Consult robots.txt before fetching"
    )

    user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        min_length=1,
        description="User-Agent sent with every request"
    )

    robots_agent: Optional[str] = Field(
        default=None,
        description="Agent name matched against robots.txt groups (default: product token of user_agent)"
    )

    auth: AuthConfig = Field(
        default_factory=AuthConfig,
        description="Authentication mode and credentials"
    )

    fetch_strategy: FetchMethod = Field(
        default=FetchMethod.DIRECT_HTTP,
        description="How documents are retrieved"
    )

    follow_redirects: bool = Field(
        default=True,
        description="Follow HTTP redirects when fetching"
    )

    max_redirects: int = Field(
        default=DEFAULT_MAX_REDIRECTS,
        ge=0,
        description="Redirect hops followed when follow_redirects is set"
    )

    proxy: Optional[str] = Field(
        default=None,
        description="Proxy URL used by every fetch strategy"
    )

    keep_raw_html: bool = Field(
        default=True,
        description="Keep the raw document on each PageRecord"
    )

    stay_on_domain: bool = Field(
        default=False,
        description="Only admit links on the seed URL's host"
    )

    send_auth_off_site: bool = Field(
        default=False,
        description="Attach auth headers to hosts other than the seed and login hosts"
    )

    screenshot_dir: Path = Field(
        default=Path(DEFAULT_SCREENSHOT_DIR),
        description="Where the headless strategy writes screenshots"
    )

    settle_ms: int = Field(
        default=DEFAULT_SETTLE_MS,
        ge=0,
        description="Headless settle period after network idle"
    )

    headless: bool = Field(
        default=True,
        description="Run the browser without a visible window"
    )

    browser_type: Literal["chromium", "firefox", "webkit"] = Field(
        default="chromium",
        description="Browser engine for the headless strategy"
    )

    curl_path: str = Field(
        default=DEFAULT_CURL_PATH,
        description="HTTP client binary for the external-process strategy"
    )

    class Config:
        """Pydantic model configuration."""
        frozen = True

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    @classmethod
    def from_env(cls, **overrides) -> "CrawlConfig":
        """Load configuration from environment variables.

        Environment variables are prefixed with CRAWLER_,
        e.g. CRAWLER_MAX_PAGES=100. Keyword overrides win over the
        environment.

        Returns:
            CrawlConfig with values from environment
        """
        values = {"user_agent": settings.USER_AGENT, "screenshot_dir": settings.SCREENSHOT_DIR}
        prefix = "CRAWLER_"

        for field_name in cls.model_fields:
            if field_name == "auth":
                continue
            env_value = os.getenv(f"{prefix}{field_name.upper()}")
            if env_value is not None:
                values[field_name] = env_value

        values.update(overrides)
        return cls(**values)

    @classmethod
    def from_file(cls, path: str) -> "CrawlConfig":
        """Load configuration from a JSON or YAML file.

        The file may hold the fields at top level or under a ``crawl`` key.

        Args:
            path: Path to a .json, .yaml or .yml file

        Returns:
            CrawlConfig with values from file
        """
        file_path = Path(path)

        with open(file_path, 'r') as f:
            if file_path.suffix.lower() in (".yaml", ".yml"):
                data = yaml.safe_load(f) or {}
            else:
                data = json.load(f)

        return cls(**data.get('crawl', data))

    def to_dict(self) -> dict:
        """Convert config to a JSON-friendly dictionary.

        Credentials are left out.
        """
        data = self.model_dump(mode="json", exclude={"auth"})
        data["auth_mode"] = self.auth.mode.value
        return data
