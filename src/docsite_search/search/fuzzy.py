"""Fuzzy matching for typo-tolerant, as-you-type search.

Scoring model (lower is better, 0.0 is a perfect match at the start):

- The query is aligned against the best-matching substring of each key value
  (semi-global edit distance), so partial input such as ``"instal"`` matches
  ``"Install"`` with no errors.
- ``errors / len(query)`` measures accuracy; ``match_start / distance`` adds a
  penalty for matches far from the beginning of the value.
- A key matches when its score is at or below ``threshold``. An item scores
  its best matching key; items with no matching key are dropped.

Smart defaults mirror common client-side fuzzy search setups: threshold 0.3,
distance 100, case-insensitive.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from docsite_search.search.models import SearchableItem, SearchHit


DEFAULT_THRESHOLD = 0.3
DEFAULT_DISTANCE = 100
DEFAULT_KEYS: tuple[str, ...] = ("title", "category", "parent_title")
MAX_PATTERN_LENGTH = 32


@dataclass(frozen=True)
class SubstringMatch:
    """Best alignment of a pattern inside a text."""

    errors: int
    start: int


def substring_edit_distance(pattern: str, text: str) -> SubstringMatch:
    """Find the substring of ``text`` closest to ``pattern`` by edit distance.

    Leading and trailing characters of ``text`` are free, so this measures how
    well the pattern occurs *somewhere* in the text. Ties on error count favour
    the earliest start.

    Examples:
        >>> substring_edit_distance("instal", "install")
        SubstringMatch(errors=0, start=0)
        >>> substring_edit_distance("gude", "user guides")
        SubstringMatch(errors=1, start=5)
    """
    m = len(pattern)
    if m == 0:
        return SubstringMatch(errors=0, start=0)
    if not text:
        return SubstringMatch(errors=m, start=0)

    n = len(text)
    # Row i holds costs of aligning pattern[:i]; starts track where that alignment began in text
    prev_cost = [0] * (n + 1)
    prev_start = list(range(n + 1))

    for i in range(1, m + 1):
        curr_cost = [i] + [0] * n
        curr_start = [0] + [0] * n
        pattern_char = pattern[i - 1]
        for j in range(1, n + 1):
            substitution = prev_cost[j - 1] + (0 if pattern_char == text[j - 1] else 1)
            deletion = prev_cost[j] + 1
            insertion = curr_cost[j - 1] + 1

            best = substitution
            start = prev_start[j - 1]
            if deletion < best or (deletion == best and prev_start[j] < start):
                best = deletion
                start = prev_start[j]
            if insertion < best or (insertion == best and curr_start[j - 1] < start):
                best = insertion
                start = curr_start[j - 1]

            curr_cost[j] = best
            curr_start[j] = start
        prev_cost, prev_start = curr_cost, curr_start

    best_errors = prev_cost[0]
    best_start = prev_start[0]
    for j in range(1, n + 1):
        cost = prev_cost[j]
        if cost < best_errors or (cost == best_errors and prev_start[j] < best_start):
            best_errors = cost
            best_start = prev_start[j]
    return SubstringMatch(errors=best_errors, start=best_start)


def match_score(pattern: str, text: str, *, distance: int = DEFAULT_DISTANCE) -> float:
    """Score one lowercase pattern against one lowercase text (0.0 is best)."""
    if pattern == text:
        return 0.0
    match = substring_edit_distance(pattern, text)
    accuracy = match.errors / len(pattern)
    if distance <= 0:
        return accuracy if match.start == 0 else 1.0
    return accuracy + match.start / distance


class FuzzyMatcher:
    """Approximate-match structure over a fixed list of searchable items.

    Built once per index load; every query scans the prepared key values.
    """

    def __init__(
        self,
        items: Sequence[SearchableItem],
        *,
        keys: Sequence[str] = DEFAULT_KEYS,
        threshold: float = DEFAULT_THRESHOLD,
        distance: int = DEFAULT_DISTANCE,
    ) -> None:
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"threshold must be within [0, 1], got {threshold}")
        self.items: tuple[SearchableItem, ...] = tuple(items)
        self.keys = tuple(keys)
        self.threshold = threshold
        self.distance = distance
        self._values: list[tuple[str, ...]] = [self._prepare(item) for item in self.items]

    def __len__(self) -> int:
        return len(self.items)

    def search(self, query: str, limit: int | None = None) -> list[SearchHit]:
        """Return matching items, best first, ties kept in insertion order."""
        pattern = query.strip().lower()
        if not pattern:
            return []

        hits: list[SearchHit] = []
        for position, values in enumerate(self._values):
            score = self._score_item(pattern, values)
            if score is None:
                continue
            hits.append(SearchHit(item=self.items[position], score=score, position=position))

        hits.sort(key=lambda hit: hit.score)
        if limit is not None:
            return hits[:limit]
        return hits

    # --- internal helpers -------------------------------------------------

    def _prepare(self, item: SearchableItem) -> tuple[str, ...]:
        values: list[str] = []
        for key in self.keys:
            value = getattr(item, key, None)
            values.append(value.lower() if isinstance(value, str) else "")
        return tuple(values)

    def _score_item(self, pattern: str, values: tuple[str, ...]) -> float | None:
        if len(pattern) <= MAX_PATTERN_LENGTH:
            return self._best_key_score(pattern, values)

        # Long input: every word has to match somewhere; average the word scores
        scores: list[float] = []
        for word in pattern.split():
            score = self._best_key_score(word[:MAX_PATTERN_LENGTH], values)
            if score is None:
                return None
            scores.append(score)
        return sum(scores) / len(scores) if scores else None

    def _best_key_score(self, pattern: str, values: tuple[str, ...]) -> float | None:
        best: float | None = None
        for value in values:
            if not value:
                continue
            score = match_score(pattern, value, distance=self.distance)
            if score <= self.threshold and (best is None or score < best):
                best = score
        return best
