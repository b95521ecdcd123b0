"""Shared helpers for turning settings into indexing and matching parameters."""

from __future__ import annotations

from pathlib import Path

from docsite_search.config import Settings
from docsite_search.search.indexer import IndexingContext


def build_indexing_context(settings: Settings, *, content_root: Path | None = None) -> IndexingContext:
    root = content_root if content_root is not None else settings.content_root
    return IndexingContext(
        content_root=Path(root).expanduser(),
        content_extensions=settings.get_content_extensions(),
        index_page_names=settings.get_index_page_names(),
        skip_dirs=settings.get_skip_dirs(),
        content_root_segment=settings.content_root_segment,
        container_segment=settings.container_segment,
        home_label=settings.home_label,
        excerpt_length=settings.excerpt_length,
    )
