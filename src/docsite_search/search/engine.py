"""Runtime search structure and the load-once index loader.

The persisted index is fetched at most once per process. The loader moves
through ``UNINITIALIZED -> LOADING -> READY | FAILED``; concurrent callers
during ``LOADING`` share the same in-flight fetch, and once ``READY`` the
flattened items and matcher are reused by every session.

The fetch step is injected, so tests and alternative runtimes can supply
bytes from anywhere::

    loader = SearchIndexLoader(file_index_fetcher(Path("public/search-index.json")))
    structure = await loader.load()
    hits = structure.search("instal")
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from enum import Enum
import logging
from pathlib import Path

import anyio
import httpx

from docsite_search.config import Settings
from docsite_search.observability.metrics import INDEX_LOADS
from docsite_search.observability.tracing import create_span
from docsite_search.search.fuzzy import DEFAULT_DISTANCE, DEFAULT_KEYS, DEFAULT_THRESHOLD, FuzzyMatcher
from docsite_search.search.models import SearchableItem, SearchHit, SearchRecord, flatten_index, load_search_index


logger = logging.getLogger(__name__)

IndexFetcher = Callable[[], Awaitable[bytes]]


class IndexLoadState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class IndexLoadError(RuntimeError):
    """Raised when the persisted index cannot be fetched or parsed."""


@dataclass(frozen=True)
class SearchStructure:
    """Flattened items plus the matcher built over them. Immutable once built."""

    records: tuple[SearchRecord, ...]
    items: tuple[SearchableItem, ...]
    matcher: FuzzyMatcher

    def search(self, text: str, limit: int | None = None) -> list[SearchHit]:
        return self.matcher.search(text, limit=limit)


def build_search_structure(
    records: Sequence[SearchRecord],
    *,
    threshold: float = DEFAULT_THRESHOLD,
    distance: int = DEFAULT_DISTANCE,
    keys: Sequence[str] = DEFAULT_KEYS,
) -> SearchStructure:
    """Flatten records and build the fuzzy matcher over the resulting items."""
    items = tuple(flatten_index(list(records)))
    matcher = FuzzyMatcher(items, keys=keys, threshold=threshold, distance=distance)
    return SearchStructure(records=tuple(records), items=items, matcher=matcher)


def http_index_fetcher(
    url: str,
    *,
    timeout: float = 30.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> IndexFetcher:
    """Fetch the index over HTTP(S)."""

    async def fetch() -> bytes:
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=10.0),
            follow_redirects=True,
            transport=transport,
        ) as client:
            response = await client.get(url)
            response.raise_for_status()
            return response.content

    return fetch


def file_index_fetcher(path: Path) -> IndexFetcher:
    """Read the index from the local filesystem without blocking the event loop."""

    async def fetch() -> bytes:
        return await anyio.Path(path).read_bytes()

    return fetch


def fetcher_from_settings(settings: Settings) -> IndexFetcher:
    """Pick a fetcher: absolute ``index_url`` over HTTP, otherwise the built file on disk."""
    if settings.index_url.startswith(("http://", "https://")):
        return http_index_fetcher(settings.index_url)
    return file_index_fetcher(settings.output_path)


class SearchIndexLoader:
    """Fetch the index exactly once and hold the resulting search structure."""

    def __init__(
        self,
        fetch: IndexFetcher,
        *,
        threshold: float = DEFAULT_THRESHOLD,
        distance: int = DEFAULT_DISTANCE,
    ) -> None:
        self._fetch = fetch
        self._threshold = threshold
        self._distance = distance
        self._state = IndexLoadState.UNINITIALIZED
        self._structure: SearchStructure | None = None
        self._error: IndexLoadError | None = None
        self._task: asyncio.Task[SearchStructure] | None = None

    @property
    def state(self) -> IndexLoadState:
        return self._state

    @property
    def structure(self) -> SearchStructure | None:
        return self._structure

    @property
    def error(self) -> IndexLoadError | None:
        return self._error

    async def load(self) -> SearchStructure:
        """Return the search structure, fetching it on the first call.

        Raises:
            IndexLoadError: If the fetch or parse failed (now or on an earlier call)
        """
        if self._state is IndexLoadState.READY and self._structure is not None:
            return self._structure
        if self._state is IndexLoadState.FAILED and self._error is not None:
            raise self._error

        if self._task is None:
            self._state = IndexLoadState.LOADING
            self._task = asyncio.ensure_future(self._load())
            self._task.add_done_callback(_consume_outcome)

        # Shielded so a cancelled caller does not abort the shared fetch
        return await asyncio.shield(self._task)

    def reset(self) -> None:
        """Forget a failed or completed load so the next call fetches again."""
        if self._task is not None and not self._task.done():
            raise RuntimeError("Cannot reset while the index is loading")
        self._state = IndexLoadState.UNINITIALIZED
        self._structure = None
        self._error = None
        self._task = None

    async def _load(self) -> SearchStructure:
        with create_span("search_index.load") as span:
            try:
                payload = await self._fetch()
                records = load_search_index(payload)
                structure = build_search_structure(records, threshold=self._threshold, distance=self._distance)
            except Exception as exc:
                self._error = IndexLoadError(f"Failed to load search index: {exc}")
                self._state = IndexLoadState.FAILED
                INDEX_LOADS.labels(status="failed").inc()
                logger.warning("Search index load failed: %s", exc)
                raise self._error from exc

            span.set_attribute("records", len(structure.records))
            span.set_attribute("items", len(structure.items))

        self._structure = structure
        self._state = IndexLoadState.READY
        INDEX_LOADS.labels(status="ok").inc()
        logger.info("Search index loaded: %d pages, %d searchable items", len(structure.records), len(structure.items))
        return structure


def _consume_outcome(task: asyncio.Task[SearchStructure]) -> None:
    # The failure is kept in the loader; mark it retrieved in case every caller was cancelled
    if not task.cancelled():
        task.exception()


_loader_holder: dict[str, SearchIndexLoader | None] = {"loader": None}


def get_loader(settings: Settings | None = None) -> SearchIndexLoader:
    """Return the process-wide loader, creating it from settings on first use."""
    loader = _loader_holder["loader"]
    if loader is None:
        active = settings or Settings()
        loader = SearchIndexLoader(
            fetcher_from_settings(active),
            threshold=active.fuzzy_threshold,
            distance=active.fuzzy_distance,
        )
        _loader_holder["loader"] = loader
    return loader


def set_loader(loader: SearchIndexLoader | None) -> None:
    """Install (or clear, with None) the process-wide loader."""
    _loader_holder["loader"] = loader
