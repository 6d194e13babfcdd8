"""mdcapture.scraper - render a URL in headless Chromium and return its HTML.

Every navigation runs under :func:`mdcapture.retry.execute_with_retry`, so
timeouts, DNS hiccups, connection resets, 429s and 5xx responses are
retried with backoff while 404s and other permanent failures surface at
once.

Usage::

    from mdcapture.scraper import scrape_url
    from mdcapture.settings import create_config

    result = scrape_url("https://example.com/docs/intro", create_config())
    print(result.title, len(result.html))
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlparse

from mdcapture.errors import ClassifiedError, ErrorKind
from mdcapture.playwright_pool import PlaywrightPool, get_playwright_pool
from mdcapture.retry import RetryEvent, RetryPolicy, execute_with_retry
from mdcapture.settings import POST_LOAD_WAIT, CaptureConfig

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Public exception
# ---------------------------------------------------------------------------

class FetchError(ClassifiedError):
    """Raised when a page cannot be rendered.

    Attributes:
        url    -- the URL that failed
        status -- HTTP status of the main document (0 if none was received)
        code   -- symbolic network fault code such as ``"ENOTFOUND"``, if known
    """

    def __init__(
        self,
        message: str,
        url: str = "",
        status: int = 0,
        *,
        code: str | None = None,
        kind: ErrorKind = ErrorKind.NETWORK,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(
            message, kind, {"url": url, "status": status, "code": code}, cause=cause,
        )
        self.url = url
        self.status = status
        self.code = code


# Chromium net::ERR_* names mapped onto the classifier's fault codes
_CHROMIUM_NET_ERRORS: dict[str, str] = {
    "ERR_NAME_NOT_RESOLVED": "ENOTFOUND",
    "ERR_NAME_RESOLUTION_FAILED": "ENOTFOUND",
    "ERR_CONNECTION_REFUSED": "ECONNREFUSED",
    "ERR_CONNECTION_RESET": "ECONNRESET",
    "ERR_CONNECTION_CLOSED": "ECONNRESET",
    "ERR_CONNECTION_TIMED_OUT": "ETIMEDOUT",
    "ERR_TIMED_OUT": "ETIMEDOUT",
}


@dataclass
class ScrapeResult:
    html: str
    url: str
    title: str
    duration: float  # seconds


def _translate_error(exc: Exception, url: str) -> Exception:
    """Give Playwright's generic errors a fault code the classifier knows."""
    if isinstance(exc, ClassifiedError) or type(exc).__name__ == "TimeoutError":
        return exc
    message = str(exc)
    for name, code in _CHROMIUM_NET_ERRORS.items():
        if f"net::{name}" in message:
            return FetchError(f"{name} loading {url}", url=url, code=code, cause=exc)
    return exc


def _navigate_and_extract(page: Any, url: str, config: CaptureConfig) -> str:
    response = page.goto(
        url,
        wait_until=config.wait_until,
        timeout=config.timeout * 1_000,
    )
    if response is not None and response.status >= 400:
        status = response.status
        if status == 429:
            kind = ErrorKind.RATE_LIMIT
        elif status >= 500:
            kind = ErrorKind.NETWORK
        else:
            kind = ErrorKind.VALIDATION
        raise FetchError(f"HTTP {status} fetching {url}", url=url, status=status, kind=kind)
    # Brief settle so late DOM writes are captured
    page.wait_for_timeout(POST_LOAD_WAIT * 1_000)
    return page.content()


def _log_retry(url: str) -> Callable[[RetryEvent], None]:
    def _on_retry(event: RetryEvent) -> None:
        logger.warning(
            "Retry %d/%d for %s after %.2fs: %s",
            event.next_attempt, event.max_attempts, url, event.delay, event.error,
        )
    return _on_retry


def scrape_url(
    url: str,
    config: CaptureConfig,
    *,
    pool: PlaywrightPool | None = None,
    sleep: Callable[[float], Any] | None = None,
) -> ScrapeResult:
    """Render *url* and return its HTML and title.

    Args:
        url:    Fully-qualified HTTP/HTTPS URL.
        config: Timeout, wait condition, retry and browser settings.
        pool:   Playwright pool to draw a context from (default: shared pool).
        sleep:  Backoff sleep override, mainly for tests.

    Raises:
        ClassifiedError: When the page cannot be rendered.  Unsupported URL
            schemes raise a VALIDATION-kind :class:`FetchError` without any
            attempt.
    """
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        raise FetchError(
            f"Unsupported URL scheme: {parsed.scheme!r}", url=url,
            kind=ErrorKind.VALIDATION,
        )

    pool = pool or get_playwright_pool()
    policy = RetryPolicy(
        max_attempts=config.max_attempts,
        base_delay=config.base_delay,
        max_delay=config.max_delay,
        on_retry=_log_retry(url),
    )
    logger.debug("Starting scrape for %s", url)

    def _attempt(attempt: int) -> ScrapeResult:
        ctx = pool.get_context(
            headless=config.headless,
            browser_args=config.browser_args,
            blocked_resources=config.blocked_resources,
            user_agent=config.user_agent,
        )
        page = ctx.new_page()
        start = time.monotonic()
        try:
            html = _navigate_and_extract(page, url, config)
            title = page.title()
        except Exception as exc:
            translated = _translate_error(exc, url)
            if translated is exc:
                raise
            raise translated from exc
        finally:
            try:
                page.close()
            except Exception as exc:
                logger.debug("page.close() failed for %s: %s", url, exc)
        duration = time.monotonic() - start
        logger.debug(
            "Extracted %d bytes in %.2fs from %s (attempt %d)",
            len(html), duration, url, attempt,
        )
        return ScrapeResult(html=html, url=url, title=title, duration=duration)

    return execute_with_retry(_attempt, policy, sleep=sleep)
