"""CLI entry point: python -m mdcapture [--urls FILE] [options]"""

from __future__ import annotations

import argparse
import logging
import sys
from collections import Counter
from contextlib import nullcontext
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.rule import Rule
from rich.table import Table

from mdcapture import settings
from mdcapture.errors import ClassifiedError
from mdcapture.items import CaptureResult, RunStats
from mdcapture.pipeline import (
    determine_run_name,
    generate_stats,
    prepare_output_dir,
    process_all,
    read_urls,
    write_report,
)
from mdcapture.profiles import read_profile
from mdcapture.settings import CaptureConfig, create_config

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mdcapture",
        description=(
            "Capture web pages as clean, archival Markdown.\n"
            "Headless Chromium rendering, navigation chrome removed, one TOC per page."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--urls", default=settings.URLS_FILE, metavar="FILE",
                        help=f"File with one URL per line (default: {settings.URLS_FILE})")
    parser.add_argument("--name", default=None, metavar="NAME",
                        help=f"Run folder name (default: {settings.RUN_NAME_FILE} "
                             f"or {settings.RUN_NAME_PREFIX}-<timestamp>)")
    parser.add_argument("--output-dir", default=settings.OUTPUT_DIR, metavar="DIR",
                        help=f"Base output directory (default: {settings.OUTPUT_DIR})")
    existing = parser.add_mutually_exclusive_group()
    existing.add_argument("--overwrite", dest="skip_existing", action="store_false",
                          help="Rewrite files that already exist")
    existing.add_argument("--continue", dest="skip_existing", action="store_true",
                          help="Skip files that already exist (default)")
    parser.set_defaults(skip_existing=settings.SKIP_EXISTING)
    parser.add_argument("--profile", default=None, metavar="YAML",
                        help="YAML profile with default and per-domain overrides")
    parser.add_argument("--timeout", type=float, default=None, metavar="S",
                        help=f"Navigation timeout in seconds (default: {settings.DOWNLOAD_TIMEOUT})")
    parser.add_argument("--max-retries", type=int, default=None, metavar="N",
                        help=f"Retries per URL after the first try (default: {settings.RETRY_TIMES})")
    parser.add_argument("--log-level", default=settings.LOG_LEVEL,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        metavar="{DEBUG,INFO,WARNING,ERROR}",
                        help=f"Logging level (default: {settings.LOG_LEVEL})")
    parser.add_argument("--progress", action="store_true", default=False,
                        help="Show a live Rich progress bar (sets log-level to WARNING)")
    return parser


def _print_banner(console: Console, urls_file: Path, output_dir: Path,
                  config: CaptureConfig, args: argparse.Namespace) -> None:
    console.print(
        Panel.fit(
            f"[bold cyan]mdcapture[/bold cyan]\n"
            f"URLs file:      [green]{urls_file}[/green]\n"
            f"Output:         [yellow]{output_dir}[/yellow]\n"
            f"Timeout:        {config.timeout:g}s\n"
            f"Max retries:    {config.max_retries}\n"
            f"Wait until:     {config.wait_until}\n"
            f"Existing files: {'skip' if config.skip_existing else 'overwrite'}\n"
            f"Profile:        {args.profile or '-'}",
            border_style="cyan",
            title="[bold]Configuration[/bold]",
        ),
    )


def _run_with_progress(
    console: Console,
    urls: list[str],
    config: CaptureConfig,
    output_dir: Path,
    profile: dict[str, Any] | None,
    show_progress: bool,
) -> list[CaptureResult]:
    progress = Progress(
        SpinnerColumn(),
        TextColumn("[bold cyan]Capturing[/bold cyan]"),
        BarColumn(bar_width=28),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        TextColumn("[dim]{task.fields[ok]} ok | {task.fields[failed]} failed[/dim]"),
        console=console,
        refresh_per_second=4,
        transient=False,
    )
    counts: Counter[str] = Counter()

    with progress if show_progress else nullcontext():
        task = progress.add_task("capture", total=len(urls), ok="0", failed="0")

        def _on_result(index: int, total: int, result: CaptureResult) -> None:
            counts["ok" if result.success else "failed"] += 1
            progress.update(
                task, completed=index, ok=str(counts["ok"]), failed=str(counts["failed"]),
            )
            if not show_progress:
                mark = "[green]OK[/green]" if result.success else "[red]FAIL[/red]"
                console.print(
                    f"  [{index}/{total}] {mark} {result.url} "
                    f"[dim]({result.total_duration:.2f}s)[/dim]",
                )

        return process_all(urls, config, output_dir, profile=profile, on_result=_on_result)


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    # --progress silences per-URL INFO logs so the bar is readable
    effective_log_level = "WARNING" if args.progress else args.log_level
    logging.basicConfig(level=effective_log_level, format=settings.LOG_FORMAT)

    console = Console()

    urls_file = Path(args.urls)
    try:
        urls = read_urls(urls_file)
    except OSError:
        logger.error("%s not found. Create it with one URL per line.", urls_file)
        return 1
    if not urls:
        logger.error("No URLs found in %s", urls_file)
        return 1

    try:
        config = create_config(
            timeout=args.timeout,
            max_retries=args.max_retries,
            output_dir=args.output_dir,
            skip_existing=args.skip_existing,
        )
    except ValidationError as exc:
        print(f"ERROR: invalid configuration:\n{exc}", file=sys.stderr)
        return 1

    profile = None
    if args.profile:
        try:
            profile = read_profile(args.profile)
        except ClassifiedError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 1

    run_name = determine_run_name(args.name, Path.cwd())
    output_dir = prepare_output_dir(config.output_dir, run_name)
    _print_banner(console, urls_file, output_dir, config, args)

    results = _run_with_progress(console, urls, config, output_dir, profile, args.progress)

    stats = generate_stats(results)
    write_report(results, stats, output_dir)
    _print_summary(console, results, stats, output_dir)
    _write_summary_txt(results, stats, output_dir)

    if stats.failed:
        logger.error("Completed with %d errors", stats.failed)
        return 1
    logger.info("Processing completed successfully")
    return 0


def _print_summary(console: Console, results: list[CaptureResult],
                   stats: RunStats, output_dir: Path) -> None:
    console.print()
    console.print(Rule("[bold cyan]Capture Summary[/bold cyan]"))
    console.print(f"  [bold]Successful       :[/bold] [green]{stats.successful}[/green]")
    console.print(f"  [bold]Skipped          :[/bold] [yellow]{stats.skipped}[/yellow]")
    console.print(f"  [bold]Failed           :[/bold] [red]{stats.failed}[/red]")
    console.print(f"  [bold]Files written    :[/bold] {stats.written}")
    console.print(f"  [bold]Total time       :[/bold] {stats.total_duration:.2f}s")
    console.print(f"  [bold]Avg scrape       :[/bold] {stats.avg_scrape_duration:.2f}s")
    console.print(f"  [bold]Avg convert      :[/bold] {stats.avg_convert_duration:.3f}s")
    console.print(f"  [bold]Output directory :[/bold] [green]{output_dir}[/green]")
    console.print()

    failed = [r for r in results if not r.success]
    if failed:
        tbl = Table(
            title=f"[bold red]Failed URLs ({len(failed)})[/bold red]",
            box=box.SIMPLE_HEAVY,
            show_lines=False,
        )
        tbl.add_column("#",      style="dim",  justify="right", width=4, no_wrap=True)
        tbl.add_column("Kind",   style="red",  width=18,                 no_wrap=True)
        tbl.add_column("URL",    style="blue", max_width=60,             no_wrap=True)
        tbl.add_column("Reason", max_width=50,                           no_wrap=True)
        for i, r in enumerate(failed, 1):
            error = r.error or {}
            tbl.add_row(
                str(i),
                error.get("kind", "-"),
                r.url[:60],
                (error.get("message") or "-")[:50],
            )
        console.print(tbl)


def _write_summary_txt(results: list[CaptureResult], stats: RunStats,
                       output_dir: Path) -> None:
    """Write a plain-text summary.txt to *output_dir* after the run."""
    now = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S UTC")
    lines: list[str] = []

    def h1(text: str) -> None:
        lines.append("")
        lines.append("=" * 72)
        lines.append(f"  {text}")
        lines.append("=" * 72)

    lines.append("=" * 72)
    lines.append("  MDCAPTURE RUN REPORT")
    lines.append("=" * 72)
    lines.append(f"  Generated : {now}")
    lines.append(f"  Output dir: {output_dir}")

    h1("STATISTICS")
    lines.append(f"  URLs processed         : {stats.total}")
    lines.append(f"  Successful             : {stats.successful}")
    lines.append(f"  Skipped (file existed) : {stats.skipped}")
    lines.append(f"  Failed                 : {stats.failed}")
    lines.append(f"  Files written          : {stats.written}")
    lines.append(f"  Total time             : {stats.total_duration:.2f}s")
    lines.append(f"  Avg scrape             : {stats.avg_scrape_duration:.2f}s")
    lines.append(f"  Avg convert            : {stats.avg_convert_duration:.3f}s")

    captured = [r for r in results if r.success]
    h1(f"CAPTURED  ({len(captured)})")
    if captured:
        for i, r in enumerate(captured, 1):
            status = "skipped" if r.skipped else "written"
            filepath = r.write.filepath if r.write else "-"
            lines.append(f"  {i:>5}  {status:<8}  {r.total_duration:>7.2f}s  {r.url}  ->  {filepath}")
    else:
        lines.append("  (none)")

    failed = [r for r in results if not r.success]
    h1(f"FAILED  ({len(failed)})")
    if failed:
        kinds = Counter((r.error or {}).get("kind", "unknown") for r in failed)
        for kind, count in kinds.most_common():
            lines.append(f"    {kind:<25} {count} URL(s)")
        lines.append("")
        for i, r in enumerate(failed, 1):
            message = ((r.error or {}).get("message") or "-")[:80]
            lines.append(f"  {i:>5}  {r.url}")
            lines.append(f"         {message}")
    else:
        lines.append("  (none)")

    lines.append("")
    lines.append("=" * 72)
    lines.append("  END OF REPORT")
    lines.append("=" * 72)
    lines.append("")

    summary_path = output_dir / "summary.txt"
    try:
        summary_path.write_text("\n".join(lines), encoding="utf-8")
    except OSError as exc:
        logger.warning("Could not write summary.txt: %s", exc)


if __name__ == "__main__":
    sys.exit(main())
