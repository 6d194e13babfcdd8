"""Shared pytest fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def _read_fixture(name: str) -> str:
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


@pytest.fixture
def docs_html() -> str:
    return _read_fixture("docs_page.html")


@pytest.fixture
def baseline_markdown() -> str:
    return _read_fixture("docs_baseline.md")


@pytest.fixture
def sleeps() -> list[float]:
    """Delays recorded by :func:`no_sleep` instead of actually sleeping."""
    return []


@pytest.fixture
def no_sleep(sleeps: list[float]):
    return sleeps.append


@pytest.fixture
def fixed_rng():
    """Jitter source pinned to the upper bound of the jitter range."""
    return lambda low, high: high
