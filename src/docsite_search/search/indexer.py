"""Build-time indexing of the site's content tree.

The builder walks a directory of Markdown/MDX pages, turns every page with a
top-level heading into a :class:`SearchRecord` and writes the whole set as
one JSON artifact. Each build starts from scratch; there is no incremental
update. Per-document failures are logged and skipped so that a bad page never
aborts the surrounding site build.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
import logging
import os
from pathlib import Path, PurePosixPath
import re
import tempfile

from docsite_search.observability.metrics import INDEX_BUILD_ERRORS, INDEX_DOC_COUNT
from docsite_search.observability.tracing import create_span
from docsite_search.search.extraction import (
    extract_headings,
    extract_plain_text,
    extract_title,
    truncate_excerpt,
)
from docsite_search.search.models import ContentDocument, SearchRecord, dump_search_index
from docsite_search.utils.front_matter import strip_front_matter


logger = logging.getLogger(__name__)

DEFAULT_CONTENT_EXTENSIONS: tuple[str, ...] = (".mdx", ".md")
DEFAULT_INDEX_PAGE_NAMES: tuple[str, ...] = ("page.mdx", "page.md")
DEFAULT_SKIP_DIRS: frozenset[str] = frozenset({"components", "context", "fonts", "images", "api"})
DEFAULT_CONTENT_ROOT_SEGMENT = "app"
DEFAULT_CONTAINER_SEGMENT = "docs"
DEFAULT_HOME_LABEL = "Home"
DEFAULT_EXCERPT_LENGTH = 500

_SEPARATOR_PATTERN = re.compile(r"[-_]")


@dataclass(frozen=True)
class IndexingContext:
    """Immutable description of how to index one content tree."""

    content_root: Path
    content_extensions: tuple[str, ...] = DEFAULT_CONTENT_EXTENSIONS
    index_page_names: tuple[str, ...] = DEFAULT_INDEX_PAGE_NAMES
    skip_dirs: frozenset[str] = DEFAULT_SKIP_DIRS
    content_root_segment: str = DEFAULT_CONTENT_ROOT_SEGMENT
    container_segment: str = DEFAULT_CONTAINER_SEGMENT
    home_label: str = DEFAULT_HOME_LABEL
    excerpt_length: int = DEFAULT_EXCERPT_LENGTH


@dataclass(frozen=True)
class IndexBuildResult:
    """Outcome of one indexing run."""

    records: tuple[SearchRecord, ...]
    documents_indexed: int
    documents_skipped: int
    errors: tuple[str, ...] = field(default_factory=tuple)
    root_missing: bool = False


class DocumentLoadError(RuntimeError):
    """Raised when a content file cannot be read as text."""


def normalize_href(href: str) -> str:
    """Ensure a leading slash and drop trailing slashes, keeping the root as ``/``.

    Normalizing an already normalized href returns it unchanged.
    """
    stripped = href.strip("/")
    return f"/{stripped}" if stripped else "/"


def humanize_segment(segment: str, content_extensions: tuple[str, ...] = DEFAULT_CONTENT_EXTENSIONS) -> str:
    """Turn a folder or file name into a display label."""
    name = segment
    for extension in content_extensions:
        if name.endswith(extension):
            name = name[: -len(extension)]
            break
    name = _SEPARATOR_PATTERN.sub(" ", name)
    return name[:1].upper() + name[1:]


class SearchIndexBuilder:
    """Turn a content tree into a flat list of search records."""

    def __init__(self, context: IndexingContext) -> None:
        self.context = context

    def scan(self) -> IndexBuildResult:
        """Index every content file under the context's root.

        A missing root yields an empty result flagged ``root_missing``.
        """
        root = self.context.content_root
        with create_span("search_index.scan", attributes={"content_root": str(root)}) as span:
            if not root.is_dir():
                logger.warning("Content root does not exist: %s", root)
                INDEX_DOC_COUNT.set(0)
                return IndexBuildResult(records=(), documents_indexed=0, documents_skipped=0, root_missing=True)

            records: list[SearchRecord] = []
            documents_skipped = 0
            errors: list[str] = []

            for file_path in self._discover_content_files(root):
                try:
                    document = self._load_document(file_path)
                except DocumentLoadError as exc:
                    logger.warning("Skipping unreadable file %s: %s", file_path, exc)
                    INDEX_BUILD_ERRORS.labels(reason="unreadable").inc()
                    errors.append(str(exc))
                    documents_skipped += 1
                    continue

                record = self.build_record(document)
                if record is None:
                    logger.debug("Skipping %s: no top-level heading", document.relative_path)
                    documents_skipped += 1
                    continue

                records.append(record)
                logger.debug("Indexed %s as %s", document.relative_path, record.href)

            span.set_attribute("documents_indexed", len(records))
            span.set_attribute("documents_skipped", documents_skipped)
            INDEX_DOC_COUNT.set(len(records))
            logger.info("Indexed %d documents (%d skipped)", len(records), documents_skipped)
            return IndexBuildResult(
                records=tuple(records),
                documents_indexed=len(records),
                documents_skipped=documents_skipped,
                errors=tuple(errors),
            )

    def build_record(self, document: ContentDocument) -> SearchRecord | None:
        """Extract a record from one document; None when it has no title."""
        body = strip_front_matter(document.raw_text)
        title = extract_title(body)
        if title is None:
            return None

        return SearchRecord(
            title=title,
            href=self.derive_href(document.relative_path),
            category=self.derive_category(document.relative_path),
            excerpt=truncate_excerpt(extract_plain_text(body), self.context.excerpt_length),
            headings=tuple(extract_headings(body)),
        )

    def derive_href(self, relative_path: Path | str) -> str:
        """Map a content file to its site-relative URL path.

        ``guides/page.mdx`` -> ``/guides``, ``page.mdx`` -> ``/``,
        ``guides/intro.mdx`` -> ``/guides/intro``.
        """
        path = PurePosixPath(Path(relative_path).as_posix())
        if path.name in self.context.index_page_names:
            target = path.parent
        elif path.suffix in self.context.content_extensions:
            target = path.with_suffix("")
        else:
            target = path

        if target == PurePosixPath("."):
            return "/"
        return normalize_href(f"/{target}")

    def derive_category(self, relative_path: Path | str) -> str:
        """Derive the display category from a file's position in the tree.

        The first segment names the category. A leading content-root segment is
        ignored, and a generic container folder defers to the segment below it
        (a file name when the page sits directly in the container). Anything
        deeper than that second segment does not affect the category.
        """
        parts = list(PurePosixPath(Path(relative_path).as_posix()).parts)
        if parts and parts[0] == self.context.content_root_segment:
            parts = parts[1:]

        if len(parts) <= 1:
            return self.context.home_label

        segment = parts[0]
        if segment == self.context.container_segment:
            segment = parts[1]
        return humanize_segment(segment, self.context.content_extensions)

    def write(self, records: tuple[SearchRecord, ...] | list[SearchRecord], output_path: Path) -> Path:
        """Persist records as the JSON index, replacing any previous file atomically."""
        output_path.parent.mkdir(parents=True, exist_ok=True)
        payload = dump_search_index(list(records))
        fd, tmp_name = tempfile.mkstemp(dir=output_path.parent, prefix=f".{output_path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(payload)
            Path(tmp_name).replace(output_path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.info("Wrote search index with %d records to %s", len(records), output_path)
        return output_path

    # --- internal helpers -------------------------------------------------

    def _discover_content_files(self, root: Path) -> Iterator[Path]:
        for current, dirnames, filenames in os.walk(root):
            current_path = Path(current)
            if current_path == root:
                dirnames[:] = [name for name in dirnames if name not in self.context.skip_dirs]
            dirnames.sort()
            for filename in sorted(filenames):
                if filename.endswith(self.context.content_extensions):
                    yield current_path / filename

    def _load_document(self, file_path: Path) -> ContentDocument:
        try:
            raw_text = file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise DocumentLoadError(f"{file_path}: {exc}") from exc

        return ContentDocument(
            path=file_path,
            relative_path=file_path.relative_to(self.context.content_root),
            raw_text=raw_text,
        )
