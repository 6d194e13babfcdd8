"""Markdown file writer: URL -> filename mapping and skip-existing writes."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from mdcapture.errors import ClassifiedError, ErrorKind, wrap_error
from mdcapture.items import WriteResult
from mdcapture.settings import FILENAME_MAX_LENGTH

logger = logging.getLogger(__name__)

_NON_FILENAME_RE = re.compile(r"[^A-Za-z0-9-]")
_MULTI_DASH_RE = re.compile(r"-{2,}")
_HTML_EXT_RE = re.compile(r"\.html?$", re.IGNORECASE)
_SCHEME_RE = re.compile(r"^https?://")


def _collapse(text: str) -> str:
    text = _NON_FILENAME_RE.sub("-", text)
    return _MULTI_DASH_RE.sub("-", text).strip("-")


def sanitize_filename(url: str) -> str:
    """Turn *url* into a filesystem-safe stem.

    ``https://docs.example.com/guide/setup/install.html#step-1`` becomes
    ``example-com-guide-setup-install-step-1``: the last two host labels,
    up to three trailing path parts without ``.html``, then the fragment.
    """
    parsed = urlparse(url)
    host = parsed.hostname
    if not parsed.scheme or not host:
        return _collapse(_SCHEME_RE.sub("", url))[:FILENAME_MAX_LENGTH].strip("-") or "index"

    labels = host.split(".")
    parts = [f"{labels[-2]}-{labels[-1]}" if len(labels) >= 2 else host]

    path_parts = [p for p in parsed.path.rstrip("/").split("/") if p]
    for part in path_parts[-3:]:
        clean = _HTML_EXT_RE.sub("", part)
        if clean:
            parts.append(clean)

    fragment = _collapse(parsed.fragment)
    if fragment:
        parts.append(fragment)

    cleaned = _collapse("-".join(parts))
    return cleaned[:FILENAME_MAX_LENGTH] or "index"


def generate_filename(url: str) -> str:
    """Return the ``.md`` filename for *url*."""
    return f"{sanitize_filename(url)}.md"


def _write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def write_json(path: Path, data: dict | list) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")


def write_markdown(
    url: str,
    markdown: str,
    output_dir: str | Path,
    *,
    skip_existing: bool = True,
) -> WriteResult:
    """Write *markdown* for *url* into *output_dir*.

    Returns a skipped result (``success=False, skipped=True``) when the
    target exists and *skip_existing* is set.

    Raises:
        ClassifiedError: VALIDATION-kind with ``filepath`` context when the
            directory or file cannot be written.
    """
    filepath = Path(output_dir) / generate_filename(url)

    if skip_existing and filepath.exists():
        logger.debug("Skipped existing file: %s", filepath)
        return WriteResult(
            success=False, skipped=True, filepath=str(filepath), reason="File exists",
        )

    try:
        _write_text(filepath, markdown)
    except OSError as exc:
        raise wrap_error(
            exc, ErrorKind.VALIDATION,
            {"filepath": str(filepath), "content_length": len(markdown)},
        ) from exc

    logger.debug("Wrote %d chars to %s", len(markdown), filepath)
    return WriteResult(
        success=True, skipped=False, filepath=str(filepath), bytes_written=len(markdown),
    )


def write_batch(
    items: list[tuple[str, str]],
    output_dir: str | Path,
    *,
    skip_existing: bool = True,
) -> dict[str, Any]:
    """Write several ``(url, markdown)`` pairs, counting outcomes.

    A failed write is recorded in ``errors`` and does not stop the batch.
    """
    logger.info("Writing %d files", len(items))
    summary: dict[str, Any] = {"written": 0, "skipped": 0, "failed": 0, "errors": []}

    for url, markdown in items:
        try:
            result = write_markdown(url, markdown, output_dir, skip_existing=skip_existing)
        except ClassifiedError as exc:
            summary["failed"] += 1
            summary["errors"].append({"url": url, **exc.to_dict()})
            logger.error("Failed to write %s: %s", url, exc)
            continue
        if result.skipped:
            summary["skipped"] += 1
        else:
            summary["written"] += 1

    logger.info(
        "Batch write complete: %d written, %d skipped, %d failed",
        summary["written"], summary["skipped"], summary["failed"],
    )
    return summary
