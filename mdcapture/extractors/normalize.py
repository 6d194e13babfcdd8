"""Post-conversion Markdown cleanup.

Baseline converters leave behind logo strips, repeated tables of contents,
raw ``<dl>`` fragments and site menus.  :func:`normalize` runs a fixed,
ordered sequence of pure text → text passes over the converted Markdown:

1. header/brand navigation strip
2. table-of-contents deduplication
3. definition-list conversion       (``convert_embedded_markup`` only)
4. residual HTML stripping          (``convert_embedded_markup`` only)
5. chrome / navigation-menu removal (:mod:`.navigation`)
6. whitespace normalisation

The order matters: chrome heuristics key on plain-text keyword
co-occurrence, so markup must be gone first, and whitespace collapse must
see the final line layout.  No pass raises on odd input; anything that
does not match is left as-is.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import NamedTuple

from .navigation import ChromeRules, NavigationDetector

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NormalizeOptions:
    # Accepted for API compatibility; no pass consults it yet.
    preserve_breadcrumbs: bool = False
    convert_embedded_markup: bool = True


class NormalizationPass(NamedTuple):
    rank: int
    name: str
    apply: Callable[[str], str]
    requires_markup_conversion: bool = False


# ---------------------------------------------------------------------------
# Pass 1: header / brand navigation
# ---------------------------------------------------------------------------

# [![Acme logo](/img/logo.svg) Docs](/)
_LOGO_HOME_LINK_RE = re.compile(r"^\[!\[.*?logo.*?\]\(.*?\).*?\]\(/\)")
# [![Acme](/assets/images/branding/acme.svg)](...)
_BRANDING_IMAGE_RE = re.compile(r"^\[!\[.*?\]\(/assets/images/branding/.*?\)")


def strip_header_nav(text: str) -> str:
    """Drop logo-plus-home-link lines and standalone branding images."""
    kept = [
        line for line in text.split("\n")
        if not _LOGO_HOME_LINK_RE.search(line.strip())
        and not _BRANDING_IMAGE_RE.search(line.strip())
    ]
    return "\n".join(kept)


# ---------------------------------------------------------------------------
# Pass 2: table-of-contents deduplication
# ---------------------------------------------------------------------------

# "- [Overview](#overview)" and nested "  - [Setup](#setup)"
_TOC_ITEM_RE = re.compile(r"^[-\s]*-\s+\[.+?\]\(#.+\)")

TOC_MIN_ITEMS = 2   # exclusive
TOC_MAX_ITEMS = 30  # exclusive


def is_toc_item(line: str) -> bool:
    return bool(_TOC_ITEM_RE.match(line.strip()))


def dedupe_toc(text: str) -> str:
    """Keep the first reasonably sized TOC block; delete every other one.

    A block is a contiguous run of TOC-item lines.  Only a block with more
    than 2 and fewer than 30 items qualifies, and only the first qualifying
    block survives (verbatim, in place).  All other TOC-shaped runs are
    removed whole.
    """
    result: list[str] = []
    block: list[str] = []
    seen_toc = False

    def flush() -> None:
        nonlocal seen_toc
        if not seen_toc and TOC_MIN_ITEMS < len(block) < TOC_MAX_ITEMS:
            result.extend(block)
            seen_toc = True
        elif block:
            logger.debug("dedupe_toc: dropped %d-item TOC block", len(block))
        block.clear()

    for line in text.split("\n"):
        if is_toc_item(line):
            block.append(line)
            continue
        if block:
            flush()
        result.append(line)

    if block:
        flush()
    return "\n".join(result)


# ---------------------------------------------------------------------------
# Pass 3: definition lists
# ---------------------------------------------------------------------------

_DT_DD_PAIR_RE = re.compile(
    r"<dt\b[^>]*>(.*?)</dt>\s*<dd\b[^>]*>(.*?)</dd>", re.IGNORECASE | re.DOTALL,
)
_DT_RE = re.compile(r"<dt\b[^>]*>(.*?)</dt>", re.IGNORECASE)
_DD_RE = re.compile(r"<dd\b[^>]*>(.*?)</dd>", re.IGNORECASE)
_DL_RE = re.compile(r"</?dl\b[^>]*>", re.IGNORECASE)
_EMPTY_DESCRIPTION_RE = re.compile(r"\n:[ \t]*(?=\n)")


def convert_definition_lists(text: str) -> str:
    """Rewrite ``<dt>term</dt><dd>desc</dd>`` as ``**term**`` / ``: desc``."""
    if "<d" not in text and "<D" not in text:
        return text

    def _pair(m: re.Match[str]) -> str:
        return f"**{m.group(1).strip()}**\n: {m.group(2).strip()}\n"

    out = _DT_DD_PAIR_RE.sub(_pair, text)
    out = _DT_RE.sub(lambda m: f"**{m.group(1).strip()}**\n", out)
    out = _DD_RE.sub(lambda m: f": {m.group(1).strip()}\n", out)
    out = _DL_RE.sub("", out)
    return _EMPTY_DESCRIPTION_RE.sub("", out)


# ---------------------------------------------------------------------------
# Pass 4: residual markup
# ---------------------------------------------------------------------------

DENYLIST_TAGS: tuple[str, ...] = (
    "script", "style", "nav", "footer", "header", "aside", "navlink",
)

ALLOWED_TAGS: tuple[str, ...] = (
    "code", "pre", "kbd", "samp", "strong", "em", "a", "p",
    "h1", "h2", "h3", "h4", "h5", "h6",
    "ul", "ol", "li", "blockquote", "div", "span",
)

_DENYLIST_RES: tuple[re.Pattern[str], ...] = tuple(
    re.compile(rf"<{tag}\b[^>]*>.*?</{tag}\s*>", re.IGNORECASE | re.DOTALL)
    for tag in DENYLIST_TAGS
)

_VOID_TAG_RES: tuple[re.Pattern[str], ...] = (
    re.compile(r"<img\b[^>]*>", re.IGNORECASE),
    re.compile(r"<br\s*/?>", re.IGNORECASE),
    re.compile(r"<hr\s*/?>", re.IGNORECASE),
    re.compile(r"<input\b[^>]*>", re.IGNORECASE),
    re.compile(r"<button\b[^>]*>.*?</button\s*>", re.IGNORECASE | re.DOTALL),
)

# Any tag-looking token outside the allow-list.  Markdown autolinks such as
# <https://example.com> carry a scheme and are left alone.
_DISALLOWED_TAG_RE = re.compile(
    r"<(?!/?(?:" + "|".join(ALLOWED_TAGS) + r")\b)(?![a-z][a-z0-9+.-]*:)/?[a-z!][^>]*>",
    re.IGNORECASE,
)


# Fenced blocks and inline code spans; split() keeps them at odd indices
_CODE_SEGMENT_RE = re.compile(r"(```.*?```|`[^`\n]+`)", re.DOTALL)


def _strip_tags(segment: str) -> str:
    if "<" not in segment:
        return segment
    out = segment
    for pattern in _DENYLIST_RES:
        out = pattern.sub("", out)
    for pattern in _VOID_TAG_RES:
        out = pattern.sub("", out)
    return _DISALLOWED_TAG_RE.sub("", out)


def strip_residual_markup(text: str) -> str:
    """Remove HTML the converter passed through, keeping inline/structural tags.

    Code is left as written: `Vec<String>` inside a fence or backtick span
    is content, not markup.
    """
    if "<" not in text:
        return text
    parts = _CODE_SEGMENT_RE.split(text)
    return "".join(
        part if i % 2 else _strip_tags(part) for i, part in enumerate(parts)
    )


# ---------------------------------------------------------------------------
# Pass 6: whitespace
# ---------------------------------------------------------------------------

_EXCESSIVE_BLANK_LINES_RE = re.compile(r"\n{3,}")


def clean_whitespace(text: str) -> str:
    """Collapse runs of blank lines to one and strip trailing whitespace."""
    # Strip first so whitespace-only lines count as blank
    out = "\n".join(line.rstrip() for line in text.split("\n"))
    return _EXCESSIVE_BLANK_LINES_RE.sub("\n\n", out)


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

class ContentNormalizer:
    """Runs the ordered normalisation passes over baseline Markdown."""

    def __init__(
        self,
        options: NormalizeOptions | None = None,
        rules: ChromeRules | None = None,
    ) -> None:
        self.options = options or NormalizeOptions()
        self.detector = NavigationDetector(rules)

    @property
    def passes(self) -> tuple[NormalizationPass, ...]:
        return (
            NormalizationPass(1, "header_nav", strip_header_nav),
            NormalizationPass(2, "toc_dedup", dedupe_toc),
            NormalizationPass(3, "definition_lists", convert_definition_lists, True),
            NormalizationPass(4, "residual_markup", strip_residual_markup, True),
            NormalizationPass(5, "chrome", self.detector.remove_chrome),
            NormalizationPass(6, "whitespace", clean_whitespace),
        )

    def active_passes(self) -> list[NormalizationPass]:
        return [
            p for p in sorted(self.passes, key=lambda p: p.rank)
            if self.options.convert_embedded_markup or not p.requires_markup_conversion
        ]

    def normalize(self, text: str) -> str:
        if not text:
            return ""
        processed = text
        for step in self.active_passes():
            processed = step.apply(processed)
        reduction = (1 - len(processed) / len(text)) * 100
        logger.debug(
            "normalize: %d -> %d chars (%.1f%% removed)",
            len(text), len(processed), reduction,
        )
        return processed


def normalize(
    text: str,
    options: NormalizeOptions | None = None,
    *,
    rules: ChromeRules | None = None,
) -> str:
    """Clean baseline Markdown *text*; see the module docstring for the passes."""
    return ContentNormalizer(options, rules).normalize(text)


# Default pass table, chrome pass bound to DEFAULT_RULES
PASSES: tuple[NormalizationPass, ...] = ContentNormalizer().passes
