"""Tests for mdcapture.extractors.normalize - the ordered cleanup passes."""

from __future__ import annotations

import pytest

from mdcapture.extractors.normalize import (
    PASSES,
    ContentNormalizer,
    NormalizeOptions,
    clean_whitespace,
    convert_definition_lists,
    dedupe_toc,
    is_toc_item,
    normalize,
    strip_header_nav,
    strip_residual_markup,
)

TOC = "\n".join([
    "- [Overview](#overview)",
    "- [Setup](#setup)",
    "- [Usage](#usage)",
    "- [Options](#options)",
    "- [FAQ](#faq)",
])


def _toc(n: int) -> str:
    return "\n".join(f"- [Section {i}](#section-{i})" for i in range(1, n + 1))


# ---------------------------------------------------------------------------
# Pass 1: header navigation
# ---------------------------------------------------------------------------

class TestStripHeaderNav:
    def test_logo_home_link_removed(self):
        text = "[![Acme logo](/img/logo.svg) Docs](/)\n# Title"
        assert strip_header_nav(text) == "# Title"

    def test_branding_image_removed(self):
        text = "[![Acme](/assets/images/branding/acme.svg)](/home)\nBody"
        assert strip_header_nav(text) == "Body"

    def test_ordinary_image_link_kept(self):
        text = "[![Diagram](/img/flow.png)](/docs/flow)"
        assert strip_header_nav(text) == text


# ---------------------------------------------------------------------------
# Pass 2: TOC deduplication
# ---------------------------------------------------------------------------

class TestDedupeToc:
    def test_is_toc_item(self):
        assert is_toc_item("- [Setup](#setup)")
        assert is_toc_item("  - [Nested](#nested)")
        assert not is_toc_item("- [External](https://example.com)")
        assert not is_toc_item("Plain text")

    def test_duplicate_block_removed(self):
        text = f"{TOC}\n\nBody one.\n\n{TOC}\n\nBody two."
        result = dedupe_toc(text)
        assert result.count("- [Overview](#overview)") == 1
        assert result.startswith(TOC)
        assert "Body one." in result
        assert "Body two." in result

    def test_first_block_stays_in_place(self):
        text = f"Intro.\n{TOC}\nBody."
        assert dedupe_toc(text) == text

    def test_single_item_block_not_kept(self):
        text = f"{_toc(1)}\nBody.\n{TOC}\nMore."
        result = dedupe_toc(text)
        assert "- [Section 1](#section-1)" not in result
        assert TOC in result

    def test_oversized_block_not_kept(self):
        text = f"{_toc(35)}\nBody.\n{TOC}\nMore."
        result = dedupe_toc(text)
        assert "#section-" not in result
        assert TOC in result

    @pytest.mark.parametrize("n, kept", [(2, False), (3, True), (29, True), (30, False)])
    def test_size_boundaries(self, n, kept):
        result = dedupe_toc(f"Intro\n{_toc(n)}\nBody")
        assert ("- [Section 1](#section-1)" in result) is kept

    def test_block_at_end_of_text(self):
        text = f"Body.\n{TOC}"
        assert dedupe_toc(text) == text

    def test_duplicate_at_end_of_text_removed(self):
        text = f"{TOC}\nBody.\n{TOC}"
        assert dedupe_toc(text) == f"{TOC}\nBody."


# ---------------------------------------------------------------------------
# Pass 3: definition lists
# ---------------------------------------------------------------------------

class TestDefinitionLists:
    def test_pair(self):
        text = "<dl><dt>Term</dt><dd>Meaning</dd></dl>"
        assert convert_definition_lists(text).strip() == "**Term**\n: Meaning"

    def test_multiline_pair(self):
        text = "<dl>\n<dt>Term</dt>\n<dd>\nLong\nmeaning\n</dd>\n</dl>"
        assert "**Term**\n: Long\nmeaning" in convert_definition_lists(text)

    def test_lone_dt_and_dd(self):
        out = convert_definition_lists("<dt>Alone</dt>\nx\n<dd>Orphan</dd>")
        assert "**Alone**" in out
        assert ": Orphan" in out

    def test_empty_description_dropped(self):
        out = convert_definition_lists("<dl><dt>Term</dt><dd></dd></dl>\nNext")
        assert out == "**Term**\n\nNext"

    def test_no_markup_untouched(self):
        assert convert_definition_lists("Plain : text") == "Plain : text"


# ---------------------------------------------------------------------------
# Pass 4: residual markup
# ---------------------------------------------------------------------------

class TestStripResidualMarkup:
    @pytest.mark.parametrize("tag", ["script", "style", "nav", "footer", "header", "aside"])
    def test_denylisted_tags_removed_with_content(self, tag):
        text = f"Before <{tag} class='x'>junk</{tag}> after"
        assert strip_residual_markup(text) == "Before  after"

    def test_void_tags_removed(self):
        text = 'a<br>b<br/>c<hr><img src="x.png">d<input type="text"><button>Go</button>e'
        assert strip_residual_markup(text) == "abcde"

    def test_allowed_tags_kept(self):
        text = "<code>x</code> <strong>y</strong> <kbd>Ctrl</kbd>"
        assert strip_residual_markup(text) == text

    def test_unknown_tags_unwrapped(self):
        assert strip_residual_markup("<figure><figcaption>Cap</figcaption></figure>") == "Cap"

    def test_autolink_kept(self):
        text = "See <https://example.com/docs> for more."
        assert strip_residual_markup(text) == text

    def test_comparison_kept(self):
        text = "if a < b and b > c"
        assert strip_residual_markup(text) == text

    def test_generics_in_fenced_code_kept(self):
        text = "```rust\nlet v: Vec<String> = Vec::new();\n```"
        assert strip_residual_markup(text) == text

    def test_generics_in_inline_code_kept(self):
        text = "Returns `List<T>` or `std::vector<int>` <figure>here</figure>."
        assert strip_residual_markup(text) == "Returns `List<T>` or `std::vector<int>` here."

    def test_tags_after_fence_still_stripped(self):
        text = "```\nMap<K, V>\n```\n<figure>Cap</figure>"
        assert strip_residual_markup(text) == "```\nMap<K, V>\n```\nCap"


# ---------------------------------------------------------------------------
# Pass 6: whitespace
# ---------------------------------------------------------------------------

class TestCleanWhitespace:
    def test_five_blank_lines_become_one(self):
        assert clean_whitespace("a\n\n\n\n\n\nb") == "a\n\nb"

    def test_trailing_spaces_removed(self):
        assert clean_whitespace("a   \nb\t\n") == "a\nb\n"

    def test_whitespace_only_lines_count_as_blank(self):
        assert clean_whitespace("a\n  \n \t\n\nb") == "a\n\nb"


# ---------------------------------------------------------------------------
# Full pipeline
# ---------------------------------------------------------------------------

class TestNormalize:
    def test_sample_page(self, baseline_markdown):
        result = normalize(baseline_markdown)
        assert result.startswith("# Widget Guide")
        assert "logo" not in result
        assert "Navigate to" not in result
        assert "Skip to main content" not in result
        assert result.count("- [Overview](#overview)") == 1
        assert "**Chime**\n: The sound a finished widget makes." in result
        assert "<nav>" not in result
        assert "Home | Guides" not in result
        assert "[#](#usage)" not in result
        assert "Press the green button and wait for the chime." in result
        assert "\n\n\n" not in result
        assert all(line == line.rstrip() for line in result.split("\n"))

    def test_idempotent(self, baseline_markdown):
        once = normalize(baseline_markdown)
        assert normalize(once) == once

    def test_idempotent_on_clean_text(self):
        text = f"# Guide\n\n{TOC}\n\nBody paragraph.\n\n- point\n- another point"
        assert normalize(normalize(text)) == normalize(text)

    def test_blank_lines_and_trailing_spaces(self):
        assert normalize("a  \n\n\n\n\n\nb  ") == "a\n\nb"

    def test_empty(self):
        assert normalize("") == ""

    def test_idempotent_with_menu_terms_past_blank_run(self):
        text = "- alpha\n- beta\n" + "\n" * 25 + "See the logo page to navigate to home."
        once = normalize(text)
        assert normalize(once) == once

    def test_code_generics_survive(self):
        text = "```rust\nlet v: Vec<String> = Vec::new();\n```"
        assert normalize(text) == text

    def test_toc_and_menu_overlap(self):
        # TOC dedup keeps the first block, then the chrome pass sees
        # "#introduction" in its window and drops it as a menu.
        block = "\n".join([
            "- [Introduction](#introduction)",
            "- [Setup](#setup)",
            "- [Usage](#usage)",
        ])
        text = f"{block}\n\nBody text.\n\n{block}\n\nMore body."
        result = normalize(text)
        assert "#introduction" not in result
        assert "- [Setup](#setup)" not in result
        assert result == "Body text.\n\nMore body."

    def test_markup_passes_can_be_disabled(self):
        text = "<dl><dt>Term</dt><dd>Meaning</dd></dl>\n\n<figure>x</figure>"
        result = normalize(text, NormalizeOptions(convert_embedded_markup=False))
        assert "<dt>Term</dt>" in result
        assert "<figure>" in result

    def test_active_passes_order(self):
        names = [p.name for p in ContentNormalizer().active_passes()]
        assert names == [
            "header_nav", "toc_dedup", "definition_lists",
            "residual_markup", "chrome", "whitespace",
        ]

    def test_active_passes_without_markup(self):
        normalizer = ContentNormalizer(NormalizeOptions(convert_embedded_markup=False))
        names = [p.name for p in normalizer.active_passes()]
        assert names == ["header_nav", "toc_dedup", "chrome", "whitespace"]


def test_module_pass_table():
    assert [p.rank for p in PASSES] == [1, 2, 3, 4, 5, 6]
    assert PASSES[1].apply is dedupe_toc
