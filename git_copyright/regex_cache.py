"""Copyright line rendering and the per-comment-style pattern cache."""

from __future__ import annotations

import re
import threading
from typing import Dict

from .logging import get_logger
from .models import CachedPattern, CommentStyle, Enclosing, LeftOnly

COPYRIGHT_MARKER = "(c) Copyright"
YEARS_PATTERN = r"(\d{4}(?:-\d{4})?)"

logger = get_logger("regex")


def generate_base_regex(name: str) -> str:
    """Return the holder-name-plus-years expression shared by all comment styles."""
    return " ".join((re.escape(COPYRIGHT_MARKER), re.escape(name), YEARS_PATTERN))


def generate_copyright_line(name: str, style: CommentStyle, years: str) -> str:
    """Render the copyright line for ``style``."""
    if isinstance(style, Enclosing):
        return " ".join((style.prefix, COPYRIGHT_MARKER, name, years, style.suffix))
    if isinstance(style, LeftOnly):
        return " ".join((style.prefix, COPYRIGHT_MARKER, name, years))
    raise TypeError(f"Unsupported comment style {style!r}")


def generate_comment_regex(base_regex: str, style: CommentStyle) -> "re.Pattern[str]":
    """Anchor ``base_regex`` between the escaped markers of ``style``."""
    if isinstance(style, Enclosing):
        expression = f"^{re.escape(style.prefix)} {base_regex} {re.escape(style.suffix)}$"
    elif isinstance(style, LeftOnly):
        expression = f"^{re.escape(style.prefix)} {base_regex}$"
    else:
        raise TypeError(f"Unsupported comment style {style!r}")
    return re.compile(expression)


class CopyrightCache:
    """Compiles one pattern per comment style and shares it across threads.

    Lookups never take the lock. Two threads missing on the same style may both
    compile; the second insert simply replaces an equivalent pattern.
    """

    def __init__(self, base_regex: str) -> None:
        self.base_regex = base_regex
        self._patterns: Dict[CommentStyle, CachedPattern] = {}
        self._lock = threading.Lock()

    def get_pattern(self, style: CommentStyle) -> CachedPattern:
        cached = self._patterns.get(style)
        if cached is not None:
            return cached

        logger.debug("Initializing regex for comment sign %r", style)
        pattern = CachedPattern(style=style, regex=generate_comment_regex(self.base_regex, style))
        with self._lock:
            self._patterns[style] = pattern
        return pattern

    def __len__(self) -> int:
        return len(self._patterns)


__all__ = [
    "COPYRIGHT_MARKER",
    "CopyrightCache",
    "generate_base_regex",
    "generate_comment_regex",
    "generate_copyright_line",
]
