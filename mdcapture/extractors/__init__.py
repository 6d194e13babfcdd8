"""Conversion sub-package: baseline HTML -> Markdown and text-level cleanup."""

from .markdown import ConversionResult, convert_to_markdown, html_to_markdown
from .navigation import ChromeRules, NavigationDetector, ScanState, remove_chrome
from .normalize import ContentNormalizer, NormalizeOptions, normalize

__all__ = [
    "convert_to_markdown",
    "html_to_markdown",
    "normalize",
    "remove_chrome",
    "ChromeRules",
    "ContentNormalizer",
    "ConversionResult",
    "NavigationDetector",
    "NormalizeOptions",
    "ScanState",
]
