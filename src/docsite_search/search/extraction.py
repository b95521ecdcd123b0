"""Text extraction helpers for Markdown/MDX pages.

These are deliberately regex based: the goal is a plain-text approximation
that never fails a build on malformed input, not a faithful parse.
"""

from __future__ import annotations

from collections.abc import Iterator
import re

from docsite_search.search.models import HeadingEntry
from docsite_search.utils.slug import slugify


_TITLE_PATTERN = re.compile(r"^#[ \t]+(.+)$")
_HEADING_PATTERN = re.compile(r"^(#{1,3})[ \t]+(.+)$")
_FENCE_PATTERN = re.compile(r"^\s*(```|~~~)")
# ATX headings may close with a run of hashes that is not part of the text
_CLOSING_HASHES_PATTERN = re.compile(r"(?:^|[ \t]+)#+[ \t]*$")

# Plain-text stripping, applied in order
_IMPORT_EXPORT_PATTERN = re.compile(r"^(?:import|export)\s+.*$", re.MULTILINE)
_TAG_PATTERN = re.compile(r"<[^>]+>")
_FENCED_CODE_PATTERN = re.compile(r"(```|~~~)[\s\S]*?\1")
_INLINE_CODE_PATTERN = re.compile(r"`[^`]+`")
_HEADING_MARKER_PATTERN = re.compile(r"#{1,6}\s+")
_BOLD_PATTERN = re.compile(r"\*\*([^*]+)\*\*")
_ITALIC_PATTERN = re.compile(r"\*([^*]+)\*")
_IMAGE_PATTERN = re.compile(r"!\[([^\]]*)\]\([^)]+\)")
_LINK_PATTERN = re.compile(r"\[([^\]]+)\]\([^)]+\)")
_WHITESPACE_PATTERN = re.compile(r"\s+")


def _iterate_prose_lines(markdown: str) -> Iterator[str]:
    """Yield lines that sit outside fenced code blocks."""
    fence: str | None = None
    for line in markdown.splitlines():
        fence_match = _FENCE_PATTERN.match(line)
        if fence_match:
            marker = fence_match.group(1)
            if fence is None:
                fence = marker
            elif marker == fence:
                fence = None
            continue
        if fence is None:
            yield line


def _heading_text(raw: str) -> str:
    return _CLOSING_HASHES_PATTERN.sub("", raw.strip()).strip()


def extract_title(markdown: str) -> str | None:
    """Return the text of the first top-level heading, or None."""
    for line in _iterate_prose_lines(markdown):
        match = _TITLE_PATTERN.match(line)
        if match:
            title = _heading_text(match.group(1))
            if title:
                return title
    return None


def extract_headings(markdown: str) -> list[HeadingEntry]:
    """Collect level 1-3 headings in document order."""
    headings: list[HeadingEntry] = []
    for line in _iterate_prose_lines(markdown):
        match = _HEADING_PATTERN.match(line)
        if not match:
            continue
        text = _heading_text(match.group(2))
        if not text:
            continue
        headings.append(HeadingEntry(level=len(match.group(1)), text=text, anchor_id=slugify(text)))
    return headings


def extract_plain_text(markdown: str) -> str:
    """Strip MDX/Markdown syntax down to whitespace-normalized prose."""
    text = _IMPORT_EXPORT_PATTERN.sub("", markdown)
    text = _TAG_PATTERN.sub(" ", text)
    text = _FENCED_CODE_PATTERN.sub(" ", text)
    text = _INLINE_CODE_PATTERN.sub(" ", text)
    text = _HEADING_MARKER_PATTERN.sub(" ", text)
    text = _BOLD_PATTERN.sub(r"\1", text)
    text = _ITALIC_PATTERN.sub(r"\1", text)
    # Images before links, otherwise the link rule leaves a stray "!"
    text = _IMAGE_PATTERN.sub(r"\1", text)
    text = _LINK_PATTERN.sub(r"\1", text)
    return _WHITESPACE_PATTERN.sub(" ", text).strip()


def truncate_excerpt(text: str, max_length: int) -> str:
    return text[:max_length]
