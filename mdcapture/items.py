"""Pydantic result models for the write step, per-URL captures and run stats."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

# ---------------------------------------------------------------------------
# Writer output
# ---------------------------------------------------------------------------

class WriteResult(BaseModel):
    """Outcome of writing one Markdown file."""

    success: bool
    skipped: bool = False
    filepath: str
    bytes_written: int = 0
    reason: str | None = None   # set when skipped


# ---------------------------------------------------------------------------
# Per-URL capture
# ---------------------------------------------------------------------------

class CaptureResult(BaseModel):
    """Everything the pipeline learned about one URL."""

    url: str
    success: bool

    # Stage timings (seconds)
    scrape_duration: float = 0.0
    convert_duration: float = 0.0
    total_duration: float = 0.0

    compression_ratio: float = 0.0
    write: WriteResult | None = None

    # format_error() payload when success is False
    error: dict[str, Any] | None = None

    @field_validator("url", mode="before")
    @classmethod
    def strip_url(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v

    @property
    def skipped(self) -> bool:
        return bool(self.write and self.write.skipped)


# ---------------------------------------------------------------------------
# Run-level aggregate
# ---------------------------------------------------------------------------

class RunStats(BaseModel):
    """Aggregate over a whole run.

    Durations are summed over successful captures only; the averages are
    per successful capture.
    """

    total: int = 0
    successful: int = 0
    failed: int = 0
    skipped: int = 0
    total_duration: float = 0.0
    avg_scrape_duration: float = 0.0
    avg_convert_duration: float = 0.0
    errors: list[dict[str, Any]] = Field(default_factory=list)

    @property
    def written(self) -> int:
        """Files actually written (successful minus skipped)."""
        return self.successful - self.skipped
