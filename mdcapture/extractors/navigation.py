"""mdcapture.extractors.navigation - line-level chrome detector.

By the time text reaches this module the HTML structure is gone, so menus,
cookie banners and logo strips cannot be found by tag.  Instead a single
left-to-right scan classifies each line from its local shape: list density,
keyword co-occurrence in a short look-ahead window, and bare section-header
words.  Ambiguous runs are kept; a missed menu line is cheaper than a
deleted paragraph.

The scanner is an explicit three-state machine driven by :func:`transition`;
the phrase and shape lists live in :class:`ChromeRules` tables so callers
and tests can swap or narrow them without touching control flow.

Usage::

    from mdcapture.extractors.navigation import remove_chrome

    clean = remove_chrome(markdown)
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple

logger = logging.getLogger(__name__)

LIST_MARKER = "-"
LOOKAHEAD_LINES = 20

_EXCESSIVE_BLANK_LINES_RE = re.compile(r"\n{3,}")


class ScanState(Enum):
    NORMAL = "normal"
    IN_MENU_LIST = "in_menu_list"
    IN_MENU_SECTION = "in_menu_section"


class MenuShape(NamedTuple):
    """A look-ahead window is menu-shaped when it contains every term."""

    name: str
    terms: tuple[str, ...]

    def matches(self, window_text: str) -> bool:
        return all(term in window_text for term in self.terms)


# ---------------------------------------------------------------------------
# Rule tables
# ---------------------------------------------------------------------------

BOILERPLATE_PHRASES: tuple[str, ...] = (
    "skip to main content",
    "ok, got it",
    "learn more",
    "menuclose",
    "menu close",
    "uses cookies from google",
    "get started",
    "on this page",
    "copy link",
    "view source",
    "report issue",
    "more_vert",
    "[search]",
    "is live!",
)

SECTION_HEADERS: tuple[re.Pattern[str], ...] = (
    re.compile(r"menu", re.IGNORECASE),
    re.compile(r"routine", re.IGNORECASE),
    re.compile(r"apps", re.IGNORECASE),
    re.compile(r"list", re.IGNORECASE),
    re.compile(r"more_vert", re.IGNORECASE),
)

MENU_SHAPES: tuple[MenuShape, ...] = (
    MenuShape("logo_navigation", ("logo", "navigate to")),
    MenuShape("install_files", ("install", "files")),
    MenuShape("user_interface", ("user interface",)),
    MenuShape("component_catalog", ("component catalog",)),
    MenuShape("palette_icons", ("palette", "view_module")),
    MenuShape("introduction_anchor", ("#introduction",)),
    MenuShape("create_new_anchor", ("#create-a-new",)),
)

CHROME_LINES: tuple[re.Pattern[str], ...] = (
    # - [![Acme logo](/logo.svg)](/)
    re.compile(r"^-\s*\[!\[.*?logo.*?\]\(.*?\)"),
    # [#](#section-id)
    re.compile(r"^\[#\]\(#.+\)$"),
    # [vertical_align_top](#top)
    re.compile(r"^\[vertical_align_top.*?\]\(#.+\)$"),
    # 1. [Guides](/guides) chevron_right
    re.compile(r"^\d+\.\s+\[.*?\]\(.*\)(\s+chevron_right)?$"),
)


@dataclass(frozen=True)
class ChromeRules:
    """Ordered rule tables consulted by the scanner."""

    boilerplate_phrases: tuple[str, ...] = BOILERPLATE_PHRASES
    section_headers: tuple[re.Pattern[str], ...] = SECTION_HEADERS
    menu_shapes: tuple[MenuShape, ...] = MENU_SHAPES
    chrome_lines: tuple[re.Pattern[str], ...] = CHROME_LINES
    lookahead: int = LOOKAHEAD_LINES

    def __post_init__(self) -> None:
        # Menu-list detection reads window[1]
        if self.lookahead < 2:
            raise ValueError(f"lookahead must be >= 2, got {self.lookahead}")

    def boilerplate_phrase(self, stripped: str) -> str | None:
        lowered = stripped.lower()
        for phrase in self.boilerplate_phrases:
            if phrase in lowered:
                return phrase
        return None

    def is_section_header(self, stripped: str) -> bool:
        return any(p.fullmatch(stripped) for p in self.section_headers)

    def menu_shape(self, window_text: str) -> MenuShape | None:
        for shape in self.menu_shapes:
            if shape.matches(window_text):
                return shape
        return None

    def is_chrome_line(self, stripped: str) -> bool:
        return any(p.search(stripped) for p in self.chrome_lines)


DEFAULT_RULES = ChromeRules()


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------

def _is_list_item(stripped: str) -> bool:
    return stripped.startswith(LIST_MARKER)


def transition(
    state: ScanState,
    line: str,
    window: list[str] | tuple[str, ...],
    rules: ChromeRules = DEFAULT_RULES,
) -> tuple[ScanState, bool]:
    """Advance the scanner by one line.

    Args:
        state:  Current scanner state.
        line:   The line being classified.
        window: Look-ahead lines starting with *line* itself.
        rules:  Rule tables to consult.

    Returns:
        ``(next_state, emit)`` where *emit* says whether *line* is kept.
    """
    stripped = line.strip()

    if rules.boilerplate_phrase(stripped):
        return state, False

    next_line = window[1].strip() if len(window) > 1 else None

    if state is ScanState.IN_MENU_LIST:
        if not stripped or _is_list_item(stripped):
            return state, False
        # First prose line after the menu: fall through and judge it as NORMAL
        state = ScanState.NORMAL

    elif state is ScanState.IN_MENU_SECTION:
        if not stripped and (next_line is None or not _is_list_item(next_line)):
            return ScanState.NORMAL, False
        return state, False

    if rules.is_section_header(stripped):
        return ScanState.IN_MENU_SECTION, False

    if _is_list_item(stripped) and next_line is not None and _is_list_item(next_line):
        window_text = "\n".join(window[: rules.lookahead]).lower()
        if rules.menu_shape(window_text):
            return ScanState.IN_MENU_LIST, False

    if rules.is_chrome_line(stripped):
        return ScanState.NORMAL, False

    return ScanState.NORMAL, True


class NavigationDetector:
    """Drops chrome-shaped lines from flattened page text."""

    def __init__(self, rules: ChromeRules | None = None) -> None:
        self.rules = rules or DEFAULT_RULES

    def kept_lines(self, lines: list[str]) -> list[str]:
        kept: list[str] = []
        state = ScanState.NORMAL
        lookahead = self.rules.lookahead
        for i, line in enumerate(lines):
            state, emit = transition(state, line, lines[i : i + lookahead], self.rules)
            if emit:
                kept.append(line)
        return kept

    def remove_chrome(self, text: str) -> str:
        # Scan the layout the output will have so the look-ahead window
        # covers the same lines on every run
        text = "\n".join(line.rstrip() for line in text.split("\n"))
        lines = _EXCESSIVE_BLANK_LINES_RE.sub("\n\n", text).strip("\n").split("\n")
        kept = self.kept_lines(lines)
        logger.debug("remove_chrome: dropped %d of %d lines", len(lines) - len(kept), len(lines))
        result = _EXCESSIVE_BLANK_LINES_RE.sub("\n\n", "\n".join(kept))
        return result.strip()


def remove_chrome(text: str, rules: ChromeRules | None = None) -> str:
    """Return *text* with navigation menus, banners and logo strips removed."""
    return NavigationDetector(rules).remove_chrome(text)
