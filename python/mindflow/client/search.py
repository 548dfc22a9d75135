"""Client-side search helpers.

- highlight_search_terms / extract_snippets: render search hits
- RecentSearches: bounded most-recent-first query history
- DebouncedSearch: coalesces keystrokes, applies only the latest result

Terms shorter than 3 characters are ignored by the text helpers.
"""

import asyncio
import json
import logging
import re
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Generic, TypeVar

from mindflow.contracts import MAX_RECENT_SEARCHES

logger = logging.getLogger(__name__)

T = TypeVar("T")

MIN_TERM_LENGTH = 3
CONTEXT_BEFORE_MATCH = 50
DEFAULT_DEBOUNCE_S = 0.3

ELLIPSIS = "..."


def search_terms(query: str) -> list[str]:
    """Lowercased whitespace-separated terms long enough to highlight."""
    return [term for term in query.lower().split() if len(term) >= MIN_TERM_LENGTH]


def highlight_search_terms(text: str, query: str, max_length: int = 200) -> str:
    """Return an excerpt around the first match with every term wrapped in <mark>.

    Without a usable term, or without a match, the text is truncated to
    max_length and returned unmarked.
    """
    terms = search_terms(query)
    if not terms:
        return text[:max_length]

    lower_text = text.lower()
    matches = [index for index in (lower_text.find(term) for term in terms) if index != -1]
    if not matches:
        return text[:max_length]

    first = min(matches)
    start = max(0, first - CONTEXT_BEFORE_MATCH)
    end = min(len(text), first + max_length)
    excerpt = text[start:end]
    if start > 0:
        excerpt = ELLIPSIS + excerpt
    if end < len(text):
        excerpt = excerpt + ELLIPSIS

    # One pass so a term never matches inside an earlier <mark>
    pattern = re.compile(
        "|".join(re.escape(term) for term in sorted(terms, key=len, reverse=True)),
        re.IGNORECASE,
    )
    return pattern.sub(lambda m: f"<mark>{m.group(0)}</mark>", excerpt)


def extract_snippets(
    text: str, query: str, snippet_length: int = 100, max_snippets: int = 3
) -> list[str]:
    """Return up to max_snippets excerpts centred on term occurrences.

    Terms are scanned in query order; each occurrence yields one snippet.
    """
    terms = search_terms(query)
    if not terms:
        return []

    half = snippet_length // 2
    lower_text = text.lower()
    used: set[int] = set()
    snippets: list[str] = []

    for term in terms:
        index = lower_text.find(term)
        while index != -1 and len(snippets) < max_snippets:
            if index not in used:
                used.add(index)
                start = max(0, index - half)
                end = min(len(text), index + half)
                snippet = text[start:end]
                if start > 0:
                    snippet = ELLIPSIS + snippet
                if end < len(text):
                    snippet = snippet + ELLIPSIS
                snippets.append(snippet)
            index = lower_text.find(term, index + 1)
        if len(snippets) >= max_snippets:
            break

    return snippets


class RecentSearches:
    """Most-recent-first search history, de-duplicated and bounded.

    When a path is given the history is loaded from and saved to a JSON
    file there. An unreadable or corrupt file loads as an empty history.
    """

    def __init__(self, path: Path | str | None = None, max_items: int = MAX_RECENT_SEARCHES):
        self.path = Path(path) if path is not None else None
        self.max_items = max_items
        self._items: list[str] = self._load()

    def _load(self) -> list[str]:
        if self.path is None or not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable recent searches file %s: %s", self.path, e)
            return []
        if not isinstance(data, list):
            return []
        return [item for item in data if isinstance(item, str)][: self.max_items]

    def _save(self) -> None:
        if self.path is not None:
            self.path.write_text(json.dumps(self._items), encoding="utf-8")

    @property
    def items(self) -> list[str]:
        return list(self._items)

    def add(self, query: str) -> None:
        """Record a query. Blank queries are ignored."""
        if not query.strip():
            return
        self._items = [query, *(q for q in self._items if q != query)][: self.max_items]
        self._save()

    def clear(self) -> None:
        self._items = []
        if self.path is not None and self.path.exists():
            self.path.unlink()


class DebouncedSearch(Generic[T]):
    """Run a search only after input has settled.

    Each submit() cancels the pending timer. Results and failures are
    delivered only if no newer query was submitted while the search ran.

    Args:
        search: Coroutine function called with the query.
        on_result: Receives (query, result) for the latest query only.
        delay: Quiet period in seconds before the search runs.
        on_error: Receives (query, exception) when the latest search fails.
            Failures are logged either way.
    """

    def __init__(
        self,
        search: Callable[[str], Awaitable[T]],
        on_result: Callable[[str, T], None],
        delay: float = DEFAULT_DEBOUNCE_S,
        on_error: Callable[[str, Exception], None] | None = None,
    ):
        self._search = search
        self._on_result = on_result
        self._on_error = on_error
        self._delay = delay
        self._generation = 0
        self._task: asyncio.Task | None = None

    @property
    def generation(self) -> int:
        return self._generation

    def submit(self, query: str) -> None:
        """Schedule a search for query, superseding any pending one."""
        self._generation += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = asyncio.get_running_loop().create_task(self._run(query, self._generation))

    async def _run(self, query: str, generation: int) -> None:
        await asyncio.sleep(self._delay)
        try:
            result = await self._search(query)
        except Exception as e:
            if generation != self._generation:
                logger.debug("Discarding stale search failure for generation %d", generation)
                return
            logger.warning("Search failed for generation %d: %s", generation, e)
            if self._on_error is not None:
                self._on_error(query, e)
            return
        if generation != self._generation:
            logger.debug("Discarding stale search result for generation %d", generation)
            return
        self._on_result(query, result)

    async def wait(self) -> None:
        """Wait for the pending search, if any, to finish or be cancelled."""
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            if not self._task.cancelled():
                raise

    def cancel(self) -> None:
        """Drop the pending search and any in-flight result."""
        self._generation += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
