"""Tests for mdcapture.settings and mdcapture.profiles."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from mdcapture import settings
from mdcapture.errors import ClassifiedError, ErrorKind
from mdcapture.profiles import load_profile, profile_overrides, read_profile
from mdcapture.settings import CaptureConfig, apply_overrides, create_config

PROFILE_YAML = """\
default:
  timeout: 15
  max_retries: 2
domains:
  example.com:
    wait_until: load
  docs.example.com:
    wait_until: networkidle
    max_retries: 5
"""


# ---------------------------------------------------------------------------
# CaptureConfig
# ---------------------------------------------------------------------------

class TestCaptureConfig:
    def test_defaults(self):
        config = create_config()
        assert config.timeout == settings.DOWNLOAD_TIMEOUT
        assert config.wait_until == "domcontentloaded"
        assert config.max_retries == 3
        assert config.max_attempts == 4
        assert config.output_dir == Path("./captures")
        assert config.skip_existing is True
        assert "**/analytics/**" in config.blocked_resources
        assert len(config.blocked_resources) == 10

    def test_none_overrides_ignored(self):
        config = create_config(timeout=None, max_retries=None)
        assert config.timeout == settings.DOWNLOAD_TIMEOUT

    @pytest.mark.parametrize("field, value", [
        ("timeout", 0.5),
        ("timeout", 61),
        ("max_retries", -1),
        ("max_retries", 11),
        ("base_delay", 0.01),
        ("max_delay", 301),
        ("wait_until", "idle"),
        ("output_dir", ""),
        ("blocked_resources", "**/*.png"),
    ])
    def test_out_of_range_rejected(self, field, value):
        with pytest.raises(ValidationError):
            create_config(**{field: value})

    def test_max_delay_must_cover_base_delay(self):
        with pytest.raises(ValidationError):
            create_config(base_delay=10, max_delay=5)

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            create_config(concurrency=4)

    def test_frozen(self):
        config = create_config()
        with pytest.raises(ValidationError):
            config.timeout = 20  # type: ignore[misc]

    def test_apply_overrides_revalidates(self):
        config = create_config()
        updated = apply_overrides(config, {"timeout": 20, "wait_until": "load"})
        assert updated.timeout == 20
        assert updated.wait_until == "load"
        assert config.timeout == settings.DOWNLOAD_TIMEOUT
        with pytest.raises(ValidationError):
            apply_overrides(config, {"timeout": 500})

    def test_apply_no_overrides_returns_same(self):
        config = create_config()
        assert apply_overrides(config, {}) is config

    def test_is_pydantic_model(self):
        assert isinstance(create_config(), CaptureConfig)


# ---------------------------------------------------------------------------
# YAML profiles
# ---------------------------------------------------------------------------

class TestProfiles:
    @pytest.fixture
    def profile_path(self, tmp_path) -> Path:
        path = tmp_path / "capture.yaml"
        path.write_text(PROFILE_YAML, encoding="utf-8")
        return path

    def test_default_only(self, profile_path):
        overrides = load_profile(profile_path, "https://other.org/page")
        assert overrides == {"timeout": 15, "max_retries": 2}

    def test_longest_domain_suffix_wins(self, profile_path):
        overrides = load_profile(profile_path, "https://docs.example.com/guide")
        assert overrides == {"timeout": 15, "max_retries": 5, "wait_until": "networkidle"}

    def test_subdomain_matches_parent(self, profile_path):
        overrides = load_profile(profile_path, "https://blog.example.com/post")
        assert overrides["wait_until"] == "load"

    def test_suffix_must_be_label_boundary(self, profile_path):
        overrides = load_profile(profile_path, "https://notexample.com/")
        assert "wait_until" not in overrides

    def test_overrides_apply_to_config(self, profile_path):
        config = apply_overrides(
            create_config(), load_profile(profile_path, "https://docs.example.com/x"),
        )
        assert config.max_retries == 5
        assert config.wait_until == "networkidle"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert read_profile(path) == {}

    def test_missing_file(self, tmp_path):
        with pytest.raises(ClassifiedError) as exc_info:
            read_profile(tmp_path / "nope.yaml")
        assert exc_info.value.kind is ErrorKind.VALIDATION

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("default: [unclosed", encoding="utf-8")
        with pytest.raises(ClassifiedError):
            read_profile(path)

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ClassifiedError):
            read_profile(path)

    def test_malformed_domain_entries_skipped(self):
        profile = {"domains": {"example.com": "not a mapping", 5: {"timeout": 1}}}
        assert profile_overrides(profile, "https://example.com") == {}
