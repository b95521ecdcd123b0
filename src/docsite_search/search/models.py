"""Search data models.

``SearchRecord`` is what the index builder persists (one per titled page);
``SearchableItem`` is the flattened unit the query engine matches against.
Field aliases follow the persisted JSON layout::

    [{"title": ..., "href": ..., "category": ..., "content": ...,
      "headings": [{"level": 2, "text": ..., "id": ...}]}]
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class ContentDocument(BaseModel):
    """A raw page from the content tree, read-only to the builder."""

    model_config = ConfigDict(frozen=True)

    path: Path
    relative_path: Path
    raw_text: str


class HeadingEntry(BaseModel):
    """One level 1-3 heading of a page with its anchor id."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    level: Literal[1, 2, 3]
    text: str
    anchor_id: str = Field(alias="id")


class SearchRecord(BaseModel):
    """Indexed metadata and content snapshot of one page."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: str = Field(min_length=1)
    href: str
    category: str
    excerpt: str = Field(default="", alias="content")
    headings: tuple[HeadingEntry, ...] = ()


class SearchableItem(BaseModel):
    """A directly matchable unit: a whole page or one of its sub-headings."""

    model_config = ConfigDict(frozen=True)

    title: str
    href: str
    category: str
    is_heading: bool = False
    parent_title: str | None = None


class SearchHit(BaseModel):
    """A ranked match returned by the query engine."""

    model_config = ConfigDict(frozen=True)

    item: SearchableItem
    score: float
    position: int

    @property
    def breadcrumb(self) -> str:
        """Label shown above the title: category, plus the page for heading hits."""
        if self.item.parent_title:
            return f"{self.item.category} › {self.item.parent_title}"
        return self.item.category


SEARCH_INDEX_ADAPTER: TypeAdapter[list[SearchRecord]] = TypeAdapter(list[SearchRecord])


def dump_search_index(records: list[SearchRecord]) -> bytes:
    """Serialize records to the persisted JSON layout."""
    return SEARCH_INDEX_ADAPTER.dump_json(records, by_alias=True, indent=2)


def load_search_index(payload: bytes | str) -> list[SearchRecord]:
    """Parse and validate a persisted index.

    Raises:
        pydantic.ValidationError: If the payload is not a valid index
    """
    return SEARCH_INDEX_ADAPTER.validate_json(payload)


def flatten_index(records: list[SearchRecord]) -> list[SearchableItem]:
    """Project records onto searchable items.

    Every record yields one page item followed by one item per heading below
    level 1, in document order. Level-1 headings repeat the page title and
    href, so they are not emitted.
    """
    items: list[SearchableItem] = []
    for record in records:
        items.append(
            SearchableItem(
                title=record.title,
                href=record.href,
                category=record.category,
            )
        )
        for heading in record.headings:
            if heading.level <= 1:
                continue
            items.append(
                SearchableItem(
                    title=heading.text,
                    href=f"{record.href}#{heading.anchor_id}",
                    category=record.category,
                    is_heading=True,
                    parent_title=record.title,
                )
            )
    return items
