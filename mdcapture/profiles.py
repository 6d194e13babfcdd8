"""YAML capture profiles: default and per-domain config overrides.

Example ``capture.yaml``::

    default:
      timeout: 15
    domains:
      docs.example.com:
        wait_until: networkidle
        max_retries: 5
"""

from __future__ import annotations

from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import yaml

from mdcapture.errors import ClassifiedError, ErrorKind


def read_profile(path: str | Path) -> dict[str, Any]:
    """Parse the YAML profile at *path*.

    Raises:
        ClassifiedError: VALIDATION-kind if the file is unreadable, not YAML,
            or its top level is not a mapping.
    """
    try:
        data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ClassifiedError(
            f"Cannot read profile {path}: {exc}", ErrorKind.VALIDATION,
            {"profile": str(path)}, cause=exc,
        ) from exc
    if not isinstance(data, dict):
        raise ClassifiedError(
            f"Profile {path} must be a mapping", ErrorKind.VALIDATION, {"profile": str(path)},
        )
    return data


def profile_overrides(profile: dict[str, Any], url: str) -> dict[str, Any]:
    """Return ``default`` merged with the longest matching ``domains`` entry."""
    default = profile.get("default", {})
    domains = profile.get("domains", {})

    netloc = urlparse(url).netloc.lower()
    best_key = ""
    best_cfg: dict[str, Any] = {}
    if isinstance(domains, dict):
        for key, cfg in domains.items():
            if not isinstance(key, str) or not isinstance(cfg, dict):
                continue
            key_lower = key.lower()
            if (netloc == key_lower or netloc.endswith("." + key_lower)) and (
                len(key_lower) > len(best_key)
            ):
                best_key = key_lower
                best_cfg = cfg

    merged: dict[str, Any] = {}
    if isinstance(default, dict):
        merged.update(default)
    merged.update(best_cfg)
    return merged


def load_profile(path: str | Path, url: str) -> dict[str, Any]:
    """Load the YAML profile at *path* and return the overrides for *url*."""
    return profile_overrides(read_profile(path), url)
