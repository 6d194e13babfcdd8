"""mdcapture - capture rendered web pages as clean, archival Markdown.

Quick single-URL usage::

    from mdcapture import convert_to_markdown, scrape_url
    from mdcapture.settings import create_config

    page = scrape_url("https://example.com/docs/intro", create_config())
    print(convert_to_markdown(page.html).markdown)

Cleaning text that is already Markdown::

    from mdcapture import normalize

    clean = normalize(baseline_markdown)

Retrying any flaky call::

    from mdcapture import RetryPolicy, execute_with_retry

    data = execute_with_retry(lambda attempt: fetch(url), RetryPolicy(max_attempts=5))
"""

from mdcapture.errors import ClassifiedError, ErrorKind, classify, is_retryable
from mdcapture.extractors.markdown import convert_to_markdown
from mdcapture.extractors.navigation import remove_chrome
from mdcapture.extractors.normalize import normalize
from mdcapture.pipeline import process_all
from mdcapture.retry import RetryPolicy, execute_with_retry
from mdcapture.scraper import scrape_url

__version__ = "0.1.0"
__all__ = [
    "ClassifiedError",
    "ErrorKind",
    "RetryPolicy",
    "classify",
    "convert_to_markdown",
    "execute_with_retry",
    "is_retryable",
    "normalize",
    "process_all",
    "remove_chrome",
    "scrape_url",
]
