"""Tests for the content-tree index builder."""

import json
from pathlib import Path

import pytest

from docsite_search.config import Settings
from docsite_search.search.indexer import (
    IndexingContext,
    SearchIndexBuilder,
    humanize_segment,
    normalize_href,
)
from docsite_search.search.indexing_utils import build_indexing_context
from docsite_search.search.models import ContentDocument, load_search_index


@pytest.fixture
def builder(content_root: Path) -> SearchIndexBuilder:
    return SearchIndexBuilder(IndexingContext(content_root=content_root))


def _document(relative: str, raw_text: str) -> ContentDocument:
    return ContentDocument(path=Path("/site/app") / relative, relative_path=Path(relative), raw_text=raw_text)


class TestNormalizeHref:
    @pytest.mark.parametrize(
        ("href", "expected"),
        [
            ("/", "/"),
            ("", "/"),
            ("//", "/"),
            ("/guides/", "/guides"),
            ("guides/intro", "/guides/intro"),
            ("/guides/intro", "/guides/intro"),
        ],
    )
    def test_normalizes(self, href, expected):
        assert normalize_href(href) == expected

    @pytest.mark.parametrize("href", ["/", "/guides/", "docs/api//", "/a/b/c"])
    def test_is_idempotent(self, href):
        once = normalize_href(href)
        assert normalize_href(once) == once


class TestHumanizeSegment:
    def test_replaces_separators_and_capitalizes(self):
        assert humanize_segment("getting-started") == "Getting started"
        assert humanize_segment("api_reference") == "Api reference"

    def test_strips_content_extension(self):
        assert humanize_segment("changelog.mdx") == "Changelog"

    def test_keeps_other_characters(self):
        assert humanize_segment("v2.0") == "V2.0"


class TestDeriveHref:
    @pytest.mark.parametrize(
        ("relative", "expected"),
        [
            ("page.mdx", "/"),
            ("page.md", "/"),
            ("guides/page.mdx", "/guides"),
            ("guides/intro.mdx", "/guides/intro"),
            ("guides/intro.md", "/guides/intro"),
            ("docs/api/tokens/page.md", "/docs/api/tokens"),
            (".hidden/page.mdx", "/.hidden"),
        ],
    )
    def test_maps_paths(self, builder, relative, expected):
        assert builder.derive_href(relative) == expected

    def test_accepts_path_objects(self, builder):
        assert builder.derive_href(Path("guides") / "intro.mdx") == "/guides/intro"


class TestDeriveCategory:
    @pytest.mark.parametrize(
        ("relative", "expected"),
        [
            ("page.mdx", "Home"),
            ("intro.mdx", "Home"),
            ("guides/intro.mdx", "Guides"),
            ("app/guides/intro.mdx", "Guides"),
            ("app/page.mdx", "Home"),
            ("docs/guides/intro.mdx", "Guides"),
            ("docs/changelog.mdx", "Changelog"),
            ("getting-started/deep/nested/page.mdx", "Getting started"),
        ],
    )
    def test_derives(self, builder, relative, expected):
        assert builder.derive_category(relative) == expected

    def test_custom_home_label(self, content_root):
        builder = SearchIndexBuilder(IndexingContext(content_root=content_root, home_label="Overview"))
        assert builder.derive_category("page.mdx") == "Overview"


class TestBuildRecord:
    def test_example_page(self, builder):
        record = builder.build_record(
            _document("guides/intro.mdx", "# Getting Started\n## Install\ntext...")
        )

        assert record is not None
        assert record.title == "Getting Started"
        assert record.href == "/guides/intro"
        assert record.category == "Guides"
        assert [(h.level, h.text, h.anchor_id) for h in record.headings] == [
            (1, "Getting Started", "getting-started"),
            (2, "Install", "install"),
        ]

    def test_untitled_document_yields_nothing(self, builder):
        assert builder.build_record(_document("notes.mdx", "## Only a subheading\n")) is None

    def test_front_matter_is_ignored(self, builder):
        raw = "---\ntitle: Not This\nsecret: value\n---\n# Real Title\n\nBody text.\n"

        record = builder.build_record(_document("guides/real.mdx", raw))

        assert record.title == "Real Title"
        assert "secret" not in record.excerpt
        assert record.excerpt == "Real Title Body text."

    def test_excerpt_is_truncated(self, content_root):
        builder = SearchIndexBuilder(IndexingContext(content_root=content_root, excerpt_length=10))
        record = builder.build_record(_document("a/b.mdx", "# T\n\n" + "word " * 50))

        assert len(record.excerpt) == 10

    def test_default_excerpt_limit(self, builder):
        record = builder.build_record(_document("a/b.mdx", "# T\n\n" + "x" * 2000))

        assert len(record.excerpt) == 500


class TestScan:
    def test_indexes_titled_pages_and_skips_the_rest(self, builder):
        result = builder.scan()

        assert result.documents_indexed == 4
        assert result.documents_skipped == 1
        assert result.errors == ()
        assert not result.root_missing
        assert [record.href for record in result.records] == [
            "/",
            "/docs/api-reference",
            "/guides/intro",
            "/guides",
        ]
        assert [record.category for record in result.records] == ["Home", "Api reference", "Guides", "Guides"]

    def test_top_level_skip_dirs_are_not_entered(self, builder):
        titles = {record.title for record in builder.scan().records}

        assert "Button" not in titles

    def test_skip_dirs_apply_only_at_top_level(self, content_root, page_writer):
        page_writer(content_root, "guides/images/gallery.mdx", "# Gallery\n")
        builder = SearchIndexBuilder(IndexingContext(content_root=content_root))

        hrefs = [record.href for record in builder.scan().records]

        assert "/guides/images/gallery" in hrefs

    def test_deep_headings_are_dropped(self, builder):
        api = next(record for record in builder.scan().records if record.title == "API Reference")

        assert [heading.text for heading in api.headings] == ["API Reference", "Endpoints", "Authentication"]

    def test_ignores_non_content_files(self, content_root, page_writer):
        page_writer(content_root, "guides/notes.txt", "# Not content\n")
        page_writer(content_root, "guides/layout.tsx", "# Not content either\n")
        builder = SearchIndexBuilder(IndexingContext(content_root=content_root))

        assert builder.scan().documents_indexed == 4

    def test_undecodable_file_is_skipped_and_reported(self, content_root):
        (content_root / "guides" / "broken.mdx").write_bytes(b"# Broken \xff\xfe\n")
        builder = SearchIndexBuilder(IndexingContext(content_root=content_root))

        result = builder.scan()

        assert result.documents_indexed == 4
        assert result.documents_skipped == 2
        assert len(result.errors) == 1
        assert "broken.mdx" in result.errors[0]

    def test_missing_root_gives_empty_result(self, tmp_path):
        builder = SearchIndexBuilder(IndexingContext(content_root=tmp_path / "missing"))

        result = builder.scan()

        assert result.root_missing
        assert result.records == ()
        assert result.documents_indexed == 0

    def test_is_deterministic(self, builder):
        assert builder.scan().records == builder.scan().records


class TestWrite:
    def test_writes_json_array_with_persisted_field_names(self, builder, tmp_path):
        result = builder.scan()
        output = tmp_path / "public" / "search-index.json"

        builder.write(result.records, output)

        data = json.loads(output.read_text(encoding="utf-8"))
        assert isinstance(data, list)
        assert len(data) == 4
        intro = next(entry for entry in data if entry["href"] == "/guides/intro")
        assert set(intro) == {"title", "href", "category", "content", "headings"}
        assert intro["headings"][1] == {"level": 2, "text": "Install", "id": "install"}

    def test_round_trips(self, builder, tmp_path):
        result = builder.scan()
        output = tmp_path / "index.json"

        builder.write(result.records, output)

        assert tuple(load_search_index(output.read_bytes())) == result.records

    def test_replaces_previous_index(self, builder, tmp_path):
        output = tmp_path / "public" / "index.json"
        output.parent.mkdir()
        output.write_text("stale", encoding="utf-8")

        builder.write([], output)

        assert json.loads(output.read_text(encoding="utf-8")) == []
        assert [path.name for path in output.parent.iterdir()] == ["index.json"]

    def test_keeps_non_ascii_text(self, content_root, page_writer, tmp_path):
        page_writer(content_root, "guides/ru.mdx", "# Установка\n## Настройка\n")
        builder = SearchIndexBuilder(IndexingContext(content_root=content_root))
        output = tmp_path / "index.json"

        builder.write(builder.scan().records, output)

        text = output.read_text(encoding="utf-8")
        assert "Установка" in text
        assert '"id": "настройка"' in text


def test_context_from_settings(tmp_path):
    settings = Settings(content_extensions="mdx", skip_dirs="partials, assets", home_label="Start")

    context = build_indexing_context(settings, content_root=tmp_path)

    assert context.content_root == tmp_path
    assert context.content_extensions == (".mdx",)
    assert context.skip_dirs == frozenset({"partials", "assets"})
    assert context.home_label == "Start"
