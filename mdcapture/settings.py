"""Project settings for mdcapture.

Module-level constants are the defaults; :func:`create_config` merges user
overrides on top and validates them through :class:`CaptureConfig`.  The
resulting config is frozen and threaded explicitly through the pipeline.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# ---------------------------------------------------------------------------
# Project identity
# ---------------------------------------------------------------------------
BOT_NAME = "mdcapture"
USER_AGENT = "mdcapture/0.1 (+https://github.com/mdcapture/mdcapture)"

# ---------------------------------------------------------------------------
# Browser / navigation
# ---------------------------------------------------------------------------
# Seconds; Playwright gets milliseconds.
DOWNLOAD_TIMEOUT = 8.0
WAIT_UNTIL = "domcontentloaded"
HEADLESS = True

# Settle time after navigation so late DOM writes land (seconds)
POST_LOAD_WAIT = 0.1

BROWSER_ARGS: list[str] = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
]

# Images, fonts, analytics, trackers and ads are aborted at the network layer
BLOCKED_RESOURCES: list[str] = [
    "**/*.{png,jpg,jpeg,gif,webp,svg,woff,woff2,ico}",
    "**/analytics/**",
    "**/tracking/**",
    "**/ads/**",
    "**/ad-server/**",
    "**/doubleclick.net/**",
    "**/google-analytics/**",
    "**/googletagmanager/**",
    "**/facebook.net/**",
    "**/fbcdn.net/**",
]

# ---------------------------------------------------------------------------
# Retry policy (seconds)
# ---------------------------------------------------------------------------
RETRY_TIMES = 3
RETRY_BASE_DELAY = 1.0
RETRY_MAX_DELAY = 30.0

# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------
OUTPUT_DIR = "./captures"
SKIP_EXISTING = True
URLS_FILE = "urls.txt"
RUN_NAME_FILE = "scrap-folder-name.txt"
RUN_NAME_PREFIX = "scrap"
FILENAME_MAX_LENGTH = 80

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


WaitUntil = Literal["load", "domcontentloaded", "networkidle", "commit"]


class CaptureConfig(BaseModel):
    """Validated, immutable run configuration."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    timeout: float = Field(DOWNLOAD_TIMEOUT, ge=1, le=60)
    wait_until: WaitUntil = WAIT_UNTIL
    headless: bool = HEADLESS

    max_retries: int = Field(RETRY_TIMES, ge=0, le=10)
    base_delay: float = Field(RETRY_BASE_DELAY, ge=0.1, le=60)
    max_delay: float = Field(RETRY_MAX_DELAY, ge=1, le=300)

    output_dir: Path = Path(OUTPUT_DIR)
    skip_existing: bool = SKIP_EXISTING

    blocked_resources: tuple[str, ...] = tuple(BLOCKED_RESOURCES)
    browser_args: tuple[str, ...] = tuple(BROWSER_ARGS)
    user_agent: str = USER_AGENT

    @field_validator("output_dir", mode="before")
    @classmethod
    def non_empty_output_dir(cls, v: Any) -> Any:
        if v is None or not str(v).strip():
            raise ValueError("output_dir must be a non-empty path")
        return v

    @field_validator("blocked_resources", "browser_args", mode="before")
    @classmethod
    def list_of_patterns(cls, v: Any) -> Any:
        if isinstance(v, str) or not isinstance(v, (list, tuple)):
            raise ValueError("must be a list of strings")
        return tuple(v)

    @model_validator(mode="after")
    def delay_bounds(self) -> CaptureConfig:
        if self.max_delay < self.base_delay:
            raise ValueError(
                f"max_delay ({self.max_delay}) must be >= base_delay ({self.base_delay})",
            )
        return self

    @property
    def max_attempts(self) -> int:
        """Total attempts: the first try plus ``max_retries`` retries."""
        return self.max_retries + 1


def create_config(**overrides: Any) -> CaptureConfig:
    """Return a validated :class:`CaptureConfig` with *overrides* applied.

    ``None`` values are ignored so CLI flags that were not given fall back
    to the defaults.

    Raises:
        pydantic.ValidationError: If any value is out of range.
    """
    return CaptureConfig(**{k: v for k, v in overrides.items() if v is not None})


def apply_overrides(config: CaptureConfig, overrides: dict[str, Any]) -> CaptureConfig:
    """Return a re-validated copy of *config* with *overrides* merged in."""
    if not overrides:
        return config
    merged = {**config.model_dump(), **overrides}
    return CaptureConfig(**merged)
