"""Interactive search sessions: query state, result cursor and navigation.

A session is what an open search dialog holds. It starts the index load
lazily on :meth:`SearchSession.open`, accepts keystrokes while the load is in
flight, and re-evaluates the latest query once the structure is ready::

    session = SearchSession(loader, navigator)
    session.open()
    await session.set_query("instal")
    await session.wait_until_loaded()
    session.select_next()
    session.confirm()

Only the newest query is ever applied: each keystroke bumps a sequence number
and any evaluation started for an older number is dropped.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
import logging
from typing import Protocol

from docsite_search.observability.metrics import SEARCH_LATENCY, SEARCH_QUERIES, track_latency
from docsite_search.search.engine import IndexLoadError, SearchIndexLoader, SearchStructure, get_loader
from docsite_search.search.models import SearchableItem, SearchHit


logger = logging.getLogger(__name__)

DEFAULT_RESULT_LIMIT = 8
DEFAULT_HEADER_OFFSET = 80


class SessionState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    QUERYING = "querying"
    FAILED = "failed"


class ResultView(str, Enum):
    """What the results area should show."""

    NO_QUERY = "no_query"
    PENDING = "pending"
    LOAD_FAILED = "load_failed"
    NO_RESULTS = "no_results"
    RESULTS = "results"


@dataclass(frozen=True)
class NavigationTarget:
    """A resolved result link: route path plus optional in-page anchor."""

    href: str
    path: str
    fragment: str | None
    header_offset: int


class Navigator(Protocol):
    """Routing layer used to follow a selected result."""

    def push(self, path: str) -> None: ...

    def scroll_to(self, anchor_id: str, offset: int) -> None: ...


def resolve_navigation(href: str, header_offset: int = DEFAULT_HEADER_OFFSET) -> NavigationTarget:
    """Split an href into route path and fragment."""
    path, _, fragment = href.partition("#")
    return NavigationTarget(
        href=href,
        path=path or "/",
        fragment=fragment or None,
        header_offset=header_offset,
    )


def scroll_target(element_top: float, page_offset: float, header_offset: int = DEFAULT_HEADER_OFFSET) -> float:
    """Scroll position that leaves an anchor just below the fixed header.

    ``element_top`` is the anchor's viewport-relative top and ``page_offset``
    the current scroll position.
    """
    return element_top + page_offset - header_offset


def navigate(item: SearchableItem, navigator: Navigator, header_offset: int = DEFAULT_HEADER_OFFSET) -> NavigationTarget:
    """Follow a result: route transition, then anchor scroll when the href has a fragment."""
    target = resolve_navigation(item.href, header_offset)
    navigator.push(target.path)
    if target.fragment:
        navigator.scroll_to(target.fragment, target.header_offset)
    logger.debug("Navigated to %s", target.href)
    return target


class SearchSession:
    """State of one open search dialog."""

    def __init__(
        self,
        loader: SearchIndexLoader | None = None,
        navigator: Navigator | None = None,
        *,
        result_limit: int = DEFAULT_RESULT_LIMIT,
        debounce_ms: int = 0,
        header_offset: int = DEFAULT_HEADER_OFFSET,
    ) -> None:
        if result_limit < 1:
            raise ValueError("result_limit must be >= 1")
        self._loader = loader
        self._navigator = navigator
        self._result_limit = result_limit
        self._debounce_seconds = debounce_ms / 1000
        self._header_offset = header_offset

        self._state = SessionState.IDLE
        self._structure: SearchStructure | None = None
        self._load_task: asyncio.Task[None] | None = None
        self._query = ""
        self._sequence = 0
        self._hits: list[SearchHit] = []
        self._selected = 0

    # --- read-only view ---------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def query(self) -> str:
        return self._query

    @property
    def hits(self) -> list[SearchHit]:
        return list(self._hits)

    @property
    def results(self) -> list[SearchableItem]:
        return [hit.item for hit in self._hits]

    @property
    def selected_index(self) -> int:
        return self._selected

    @property
    def selected_item(self) -> SearchableItem | None:
        if not self._hits:
            return None
        return self._hits[self._selected].item

    @property
    def view(self) -> ResultView:
        if not self._query.strip():
            return ResultView.NO_QUERY
        if self._state is SessionState.FAILED:
            return ResultView.LOAD_FAILED
        if self._structure is None:
            return ResultView.PENDING
        return ResultView.RESULTS if self._hits else ResultView.NO_RESULTS

    # --- lifecycle --------------------------------------------------------

    def open(self) -> None:
        """Start the lazy index load (no-op when already open)."""
        if self._state is not SessionState.IDLE:
            return
        loader = self._resolve_loader()
        if loader.structure is not None:
            self._structure = loader.structure
            self._state = SessionState.READY
            return
        self._state = SessionState.LOADING
        self._load_task = asyncio.ensure_future(self._run_load(loader))

    async def wait_until_loaded(self) -> None:
        """Wait for the background load started by :meth:`open`, if any."""
        if self._load_task is not None:
            await self._load_task

    def close(self) -> None:
        """Discard query, results and cursor. The loaded index stays cached in the loader."""
        if self._load_task is not None and not self._load_task.done():
            self._load_task.cancel()
        self._load_task = None
        self._structure = None
        self._state = SessionState.IDLE
        self._query = ""
        self._sequence += 1
        self._hits = []
        self._selected = 0

    def retry(self) -> None:
        """Retry a failed load."""
        if self._state is not SessionState.FAILED:
            return
        self._resolve_loader().reset()
        self._state = SessionState.IDLE
        self.open()

    # --- input ------------------------------------------------------------

    async def set_query(self, text: str) -> None:
        """Record a keystroke and recompute results once the debounce window passes."""
        if self._state is SessionState.IDLE:
            self.open()

        self._query = text
        self._sequence += 1
        sequence = self._sequence

        if self._state is SessionState.READY:
            self._state = SessionState.QUERYING

        if self._debounce_seconds > 0:
            await asyncio.sleep(self._debounce_seconds)
            if sequence != self._sequence:
                return

        self._evaluate(sequence)

    def select_next(self) -> None:
        if self._hits:
            self._selected = min(self._selected + 1, len(self._hits) - 1)

    def select_previous(self) -> None:
        if self._hits:
            self._selected = max(self._selected - 1, 0)

    def confirm(self) -> NavigationTarget | None:
        """Navigate to the selected result; nothing happens without results."""
        item = self.selected_item
        if item is None:
            return None
        if self._navigator is None:
            return resolve_navigation(item.href, self._header_offset)
        return navigate(item, self._navigator, self._header_offset)

    # --- internal helpers -------------------------------------------------

    def _resolve_loader(self) -> SearchIndexLoader:
        if self._loader is None:
            self._loader = get_loader()
        return self._loader

    async def _run_load(self, loader: SearchIndexLoader) -> None:
        try:
            structure = await loader.load()
        except IndexLoadError as exc:
            logger.warning("Search unavailable: %s", exc)
            self._state = SessionState.FAILED
            self._hits = []
            return

        self._structure = structure
        self._state = SessionState.READY
        # Keystrokes typed during the load are answered now rather than dropped
        self._evaluate(self._sequence)

    def _evaluate(self, sequence: int) -> None:
        if sequence != self._sequence:
            return

        if not self._query.strip():
            self._apply([], sequence)
            SEARCH_QUERIES.labels(outcome="empty").inc()
            return

        if self._structure is None:
            # Still loading (or failed): accept the query, show nothing yet
            self._hits = []
            self._selected = 0
            return

        with track_latency(SEARCH_LATENCY):
            hits = self._structure.search(self._query, limit=self._result_limit)
        SEARCH_QUERIES.labels(outcome="hit" if hits else "miss").inc()
        self._apply(hits, sequence)

    def _apply(self, hits: list[SearchHit], sequence: int) -> None:
        if sequence != self._sequence:
            logger.debug("Dropping stale results for query #%d", sequence)
            return
        self._hits = hits
        self._selected = 0
        if self._state is SessionState.QUERYING:
            self._state = SessionState.READY
