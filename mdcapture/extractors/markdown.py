"""Convert rendered HTML to Markdown, then clean it with :func:`normalize`."""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass

from mdcapture.errors import ErrorKind, wrap_error
from mdcapture.retry import RetryPolicy, execute_with_retry

from .normalize import NormalizeOptions, normalize

logger = logging.getLogger(__name__)

_TRAILING_WHITESPACE_RE = re.compile(r"[ \t]+$", re.MULTILINE)

# Converter failures are wrapped as PARSE and fail on the first attempt.
# The second attempt only runs for errors that already carry a retryable
# kind, such as a TIMEOUT raised from inside a conversion hook.
CONVERSION_RETRY = RetryPolicy(max_attempts=2, base_delay=0.1, max_delay=0.5)


@dataclass
class ConversionResult:
    markdown: str
    duration: float    # seconds
    input_size: int
    output_size: int

    @property
    def compression_ratio(self) -> float:
        return self.output_size / self.input_size if self.input_size else 0.0


def html_to_markdown(html: str) -> str:
    """Convert *html* to baseline Markdown.

    Uses markdownify with ATX headings and ``-`` bullets so the normalizer's
    list and TOC patterns line up.  No cleanup beyond trailing whitespace;
    that is :func:`normalize`'s job.
    """
    if not html or not html.strip():
        return ""

    from bs4 import BeautifulSoup
    from markdownify import MarkdownConverter  # type: ignore[import-untyped]

    soup = BeautifulSoup(html, "lxml")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    md = MarkdownConverter(
        heading_style="ATX",
        bullets="-",
        code_language_callback=_detect_lang,
    ).convert_soup(soup)
    return _TRAILING_WHITESPACE_RE.sub("", md)


def _detect_lang(el: object) -> str:
    """Extract language hint from an element's class list for markdownify."""
    try:
        getter = getattr(el, "get", None)
        classes = (getter("class") if getter else None) or []
        for cls in classes:
            if isinstance(cls, str) and cls.startswith("language-"):
                return cls[len("language-"):]
    except Exception as exc:
        logger.debug("Language detection failed for element: %s", exc)
    return ""


def convert_to_markdown(
    html: str,
    *,
    options: NormalizeOptions | None = None,
    policy: RetryPolicy | None = None,
) -> ConversionResult:
    """Convert *html* to normalized Markdown.

    Raises:
        ClassifiedError: PARSE-kind when conversion fails on every attempt.
    """
    logger.debug("Converting %d bytes of HTML to Markdown", len(html))

    def _attempt(attempt: int) -> ConversionResult:
        start = time.monotonic()
        try:
            markdown = normalize(html_to_markdown(html), options)
        except Exception as exc:
            raise wrap_error(
                exc, ErrorKind.PARSE,
                {"input_size": len(html), "converter": "markdownify", "attempt": attempt},
            ) from exc
        result = ConversionResult(
            markdown=markdown,
            duration=time.monotonic() - start,
            input_size=len(html),
            output_size=len(markdown),
        )
        logger.debug(
            "Converted %d bytes to %d bytes in %.3fs (ratio %.2f)",
            result.input_size, result.output_size, result.duration,
            result.compression_ratio,
        )
        return result

    return execute_with_retry(_attempt, policy or CONVERSION_RETRY)
