"""Per-URL capture pipeline: scrape -> convert -> write, plus run bookkeeping.

Documents are processed strictly one at a time.  A failure in one document
is captured in its :class:`~mdcapture.items.CaptureResult` and never aborts
the run.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from mdcapture.errors import format_error
from mdcapture.extractors.markdown import ConversionResult, convert_to_markdown
from mdcapture.items import CaptureResult, RunStats
from mdcapture.profiles import profile_overrides
from mdcapture.scraper import ScrapeResult, scrape_url
from mdcapture.settings import RUN_NAME_FILE, RUN_NAME_PREFIX, CaptureConfig, apply_overrides
from mdcapture.writer import write_json, write_markdown

logger = logging.getLogger(__name__)

ScrapeFn = Callable[[str, CaptureConfig], ScrapeResult]
ConvertFn = Callable[[str], ConversionResult]
ResultCallback = Callable[[int, int, CaptureResult], Any]


# ---------------------------------------------------------------------------
# Inputs and run folder
# ---------------------------------------------------------------------------

def read_urls(path: str | Path) -> list[str]:
    """Return the URLs listed in *path*, one per line.

    Blank lines and lines starting with ``#`` are ignored.

    Raises:
        OSError: If the file cannot be read.
    """
    text = Path(path).read_text(encoding="utf-8")
    urls = []
    for raw in text.splitlines():
        line = raw.strip()
        if line and not line.startswith("#"):
            urls.append(line)
    return urls


def determine_run_name(name: str | None = None, cwd: str | Path | None = None) -> str:
    """Pick the run folder name.

    An explicit *name* wins, then the contents of ``scrap-folder-name.txt``
    in *cwd*, then ``scrap-<UTC timestamp>``.
    """
    if name and name.strip():
        logger.info("Folder name from --name: %r", name.strip())
        return name.strip()

    name_file = Path(cwd or Path.cwd()) / RUN_NAME_FILE
    if name_file.is_file():
        from_file = name_file.read_text(encoding="utf-8").strip()
        if from_file:
            logger.info("Folder name from %s: %r", RUN_NAME_FILE, from_file)
            return from_file

    stamp = datetime.now(UTC).strftime("%Y-%m-%dT%H-%M-%S")
    run_name = f"{RUN_NAME_PREFIX}-{stamp}"
    logger.info("No %s found, using %r", RUN_NAME_FILE, run_name)
    return run_name


def prepare_output_dir(base_dir: str | Path, run_name: str) -> Path:
    """Create and return ``base_dir/run_name``."""
    output_dir = Path(base_dir) / run_name
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


# ---------------------------------------------------------------------------
# Processing
# ---------------------------------------------------------------------------

def process_url(
    url: str,
    config: CaptureConfig,
    output_dir: str | Path,
    *,
    profile: dict[str, Any] | None = None,
    scrape: ScrapeFn | None = None,
    convert: ConvertFn | None = None,
) -> CaptureResult:
    """Capture one URL end to end.

    *profile* is a parsed YAML profile whose overrides for *url* are
    applied on top of *config*.  *scrape* and *convert* default to
    :func:`scrape_url` and :func:`convert_to_markdown`.
    """
    start = time.monotonic()
    try:
        if profile:
            config = apply_overrides(config, profile_overrides(profile, url))

        scraped = (scrape or scrape_url)(url, config)
        converted = (convert or convert_to_markdown)(scraped.html)
        written = write_markdown(
            url, converted.markdown, output_dir, skip_existing=config.skip_existing,
        )
    except Exception as exc:
        duration = time.monotonic() - start
        logger.error("Failed %s: %s", url, exc)
        return CaptureResult(
            url=url,
            success=False,
            total_duration=duration,
            error=format_error(exc, {"url": url, "duration": round(duration, 3)}),
        )

    total = time.monotonic() - start
    if written.skipped:
        logger.info("Skipped %s (exists: %s)", url, written.filepath)
    else:
        logger.info("Captured %s -> %s in %.2fs", url, written.filepath, total)
    return CaptureResult(
        url=url,
        success=True,
        scrape_duration=scraped.duration,
        convert_duration=converted.duration,
        compression_ratio=converted.compression_ratio,
        write=written,
        total_duration=total,
    )


def process_all(
    urls: Iterable[str],
    config: CaptureConfig,
    output_dir: str | Path,
    *,
    profile: dict[str, Any] | None = None,
    scrape: ScrapeFn | None = None,
    convert: ConvertFn | None = None,
    on_result: ResultCallback | None = None,
) -> list[CaptureResult]:
    """Run :func:`process_url` over *urls* sequentially, in order.

    *on_result* is called as ``on_result(index, total, result)`` after each
    URL (1-based index).
    """
    url_list = list(urls)
    logger.info("Found %d URLs to process", len(url_list))

    results: list[CaptureResult] = []
    for index, url in enumerate(url_list, 1):
        result = process_url(
            url, config, output_dir, profile=profile, scrape=scrape, convert=convert,
        )
        results.append(result)
        if on_result is not None:
            on_result(index, len(url_list), result)
    return results


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------

def generate_stats(results: list[CaptureResult]) -> RunStats:
    stats = RunStats(total=len(results))
    scrape_sum = 0.0
    convert_sum = 0.0

    for result in results:
        if result.success:
            stats.successful += 1
            stats.total_duration += result.total_duration
            scrape_sum += result.scrape_duration
            convert_sum += result.convert_duration
            if result.skipped:
                stats.skipped += 1
        else:
            stats.failed += 1
            stats.errors.append(result.error or {"url": result.url})

    if stats.successful:
        stats.avg_scrape_duration = scrape_sum / stats.successful
        stats.avg_convert_duration = convert_sum / stats.successful
    return stats


def write_report(
    results: list[CaptureResult],
    stats: RunStats,
    output_dir: str | Path,
) -> Path:
    """Write ``report.json`` (stats plus every per-URL result) to *output_dir*."""
    path = Path(output_dir) / "report.json"
    write_json(path, {
        "generated_at": datetime.now(UTC).isoformat(),
        "stats": stats.model_dump(mode="json"),
        "results": [r.model_dump(mode="json") for r in results],
    })
    return path
