"""Shared test fixtures and configuration."""

import os
from pathlib import Path

import pytest

from docsite_search.search.engine import set_loader


# Settings read DOCSITE_SEARCH_* variables; keep the developer's shell out of the tests
TEST_ENV = {
    "DOCSITE_SEARCH_CONTENT_ROOT": "app",
    "DOCSITE_SEARCH_OUTPUT_PATH": "public/search-index.json",
    "DOCSITE_SEARCH_INDEX_URL": "/search-index.json",
    "DOCSITE_SEARCH_FUZZY_THRESHOLD": "0.3",
    "DOCSITE_SEARCH_RESULT_LIMIT": "8",
    "DOCSITE_SEARCH_DEBOUNCE_MS": "0",
    "DOCSITE_SEARCH_LOG_LEVEL": "info",
    "DOCSITE_SEARCH_LOG_JSON": "false",
}

for key, value in TEST_ENV.items():
    os.environ[key] = value


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Reset settings env vars and the process-wide loader for every test."""
    for key, value in TEST_ENV.items():
        monkeypatch.setenv(key, value)
    set_loader(None)
    yield
    set_loader(None)


def write_page(root: Path, relative: str, content: str) -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def page_writer():
    """Expose the page-writing helper to tests."""
    return write_page


@pytest.fixture
def content_root(tmp_path: Path) -> Path:
    """A small content tree shaped like a documentation site."""
    root = tmp_path / "app"
    write_page(root, "page.mdx", "# Welcome\n\nStart here.\n")
    write_page(
        root,
        "guides/intro.mdx",
        "# Getting Started\n## Install\ntext about installing the toolkit.\n## Configure\nSettings live in **config**.\n",
    )
    write_page(root, "guides/page.mdx", "# Guides\n\nAll the guides.\n")
    write_page(
        root,
        "docs/api-reference/page.md",
        "# API Reference\n## Endpoints\n### Authentication\n#### Tokens\nDetails.\n",
    )
    write_page(root, "drafts/untitled.mdx", "Just prose, no heading yet.\n")
    write_page(root, "components/Button.mdx", "# Button\n\nA component, not a page.\n")
    return root
