"""External-process fetch strategy: shells out to curl."""

import asyncio
import contextlib
import logging
from typing import List, Tuple

from webcrawler.constants import CURL_KILL_GRACE_SECONDS, CURL_WRITE_OUT_MARKER
from webcrawler.exceptions import FetchError, FetchErrorKind
from webcrawler.fetchers.base import FetchStrategy
from webcrawler.models import AuthContext, Document

logger = logging.getLogger(__name__)

WRITE_OUT_FORMAT = CURL_WRITE_OUT_MARKER + "%{http_code} %{url_effective} %{content_type}"


class ExternalProcessStrategy(FetchStrategy):
    """Runs the configured HTTP client binary and reads the body from stdout.

    A non-zero exit status or empty output is an OTHER fetch error; any
    final status outside 2xx is an HTTP_ERROR, as for direct HTTP. curl
    reports the status code, effective URL and content type through
    --write-out, which is split off the end of stdout.
    """

    name = "curl"

    def build_command(self, url: str, auth: AuthContext) -> List[str]:
        config = self.config
        command = [
            config.curl_path,
            "--silent",
            "--show-error",
            "--user-agent", config.user_agent,
            "--max-time", f"{config.timeout_seconds:g}",
            "--write-out", WRITE_OUT_FORMAT,
        ]

        if config.follow_redirects:
            command += ["--location", "--max-redirs", str(config.max_redirects)]
        if config.proxy:
            command += ["--proxy", config.proxy]

        for name, value in self.compose_headers(auth).items():
            if name != "User-Agent":
                command += ["--header", f"{name}: {value}"]

        command.append(url)
        return command

    async def fetch(self, url: str, auth: AuthContext) -> Document:
        command = self.build_command(url, auth)

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise FetchError(
                FetchErrorKind.OTHER,
                f"Could not run {self.config.curl_path}: {e}",
                url=url,
            ) from e

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=self.config.timeout_seconds + CURL_KILL_GRACE_SECONDS,
            )
        except asyncio.TimeoutError as e:
            raise FetchError(
                FetchErrorKind.TIMEOUT,
                f"{self.config.curl_path} did not finish within {self.config.timeout_seconds}s: {url}",
                url=url,
            ) from e
        finally:
            if process.returncode is None:
                with contextlib.suppress(ProcessLookupError):
                    process.kill()
                await process.wait()

        error_text = stderr.decode("utf-8", errors="replace").strip()
        if process.returncode != 0:
            raise FetchError(
                FetchErrorKind.OTHER,
                f"{self.config.curl_path} exited with status {process.returncode} for {url}: {error_text}",
                url=url,
            )
        if error_text:
            logger.warning(f"curl stderr for {url}: {error_text}")

        body, status_code, final_url, content_type = self.parse_output(
            stdout.decode("utf-8", errors="replace")
        )

        if not 200 <= status_code < 300:
            raise FetchError.http_error(url, status_code)
        if not body.strip():
            raise FetchError(FetchErrorKind.OTHER, f"Empty output for {url}", url=url)

        headers = {"content-type": content_type} if content_type else {}
        return Document(url=final_url or url, body=body, status_code=status_code, headers=headers)

    @staticmethod
    def parse_output(output: str) -> Tuple[str, int, str, str]:
        """Split stdout into (body, status code, effective URL, content type).

        The effective URL is "" when curl wrote no trailer.
        """
        body, marker, trailer = output.rpartition(CURL_WRITE_OUT_MARKER)
        if not marker:
            return output, 200, "", ""

        code, _, rest = trailer.strip().partition(" ")
        final_url, _, content_type = rest.partition(" ")
        status_code = int(code) if code.isdigit() and int(code) > 0 else 200
        return body, status_code, final_url, content_type.strip()
