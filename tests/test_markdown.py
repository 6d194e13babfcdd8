"""Tests for mdcapture.extractors.markdown - baseline conversion (no network)."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from mdcapture.errors import ClassifiedError, ErrorKind
from mdcapture.extractors.markdown import (
    CONVERSION_RETRY,
    ConversionResult,
    convert_to_markdown,
    html_to_markdown,
)
from mdcapture.extractors.normalize import NormalizeOptions


class TestHtmlToMarkdown:
    def test_headings_are_atx(self, docs_html):
        md = html_to_markdown(docs_html)
        assert "# Widget Guide" in md
        assert "## Setup" in md

    def test_dash_bullets(self, docs_html):
        md = html_to_markdown(docs_html)
        assert "- Press the green button." in md

    def test_code_block_preserved(self, docs_html):
        md = html_to_markdown(docs_html)
        assert 'print("hello widget")' in md
        assert "```" in md

    def test_script_style_noscript_dropped(self, docs_html):
        md = html_to_markdown(docs_html)
        assert "window.analytics" not in md
        assert "font-family" not in md
        assert "Enable JavaScript" not in md

    def test_no_trailing_whitespace(self, docs_html):
        md = html_to_markdown(docs_html)
        assert all(line == line.rstrip() for line in md.split("\n"))

    @pytest.mark.parametrize("html", ["", "   \n  "])
    def test_empty_input(self, html):
        assert html_to_markdown(html) == ""


class TestConvertToMarkdown:
    def test_returns_conversion_result(self, docs_html):
        result = convert_to_markdown(docs_html)
        assert isinstance(result, ConversionResult)
        assert result.input_size == len(docs_html)
        assert result.output_size == len(result.markdown)
        assert 0 < result.compression_ratio < 1
        assert result.duration >= 0

    def test_output_is_normalized(self, docs_html):
        md = convert_to_markdown(docs_html).markdown
        assert "\n\n\n" not in md
        assert md == md.strip()

    def test_options_forwarded(self):
        options = NormalizeOptions(convert_embedded_markup=False)
        with patch("mdcapture.extractors.markdown.normalize", return_value="clean") as mock_norm:
            result = convert_to_markdown("<p>x</p>", options=options)
        assert result.markdown == "clean"
        assert mock_norm.call_args.args[1] is options

    def test_empty_html_ratio_zero(self):
        result = convert_to_markdown("")
        assert result.markdown == ""
        assert result.compression_ratio == 0.0

    def test_failure_wrapped_as_parse(self):
        with patch(
            "mdcapture.extractors.markdown.html_to_markdown",
            side_effect=ValueError("converter exploded"),
        ) as mock_convert:
            with pytest.raises(ClassifiedError) as exc_info:
                convert_to_markdown("<p>hi</p>")

        err = exc_info.value
        assert err.kind is ErrorKind.PARSE
        assert err.context["input_size"] == len("<p>hi</p>")
        assert err.context["converter"] == "markdownify"
        assert err.context["non_retryable"] is True
        assert isinstance(err.cause, ValueError)
        mock_convert.assert_called_once()

    def test_retryable_kind_gets_second_attempt(self):
        with patch(
            "mdcapture.extractors.markdown.html_to_markdown",
            side_effect=[ClassifiedError("slow hook", ErrorKind.TIMEOUT), "# Title"],
        ) as mock_convert, patch("mdcapture.retry.time.sleep"):
            result = convert_to_markdown("<h1>Title</h1>")

        assert result.markdown == "# Title"
        assert mock_convert.call_count == 2

    def test_retry_policy(self):
        assert CONVERSION_RETRY.max_attempts == 2
        assert CONVERSION_RETRY.base_delay == 0.1
        assert CONVERSION_RETRY.max_delay == 0.5
