"""Tests for client search helpers: highlighting, snippets, history, debounce."""

import asyncio
import json

import pytest

from mindflow.client.search import (
    DebouncedSearch,
    RecentSearches,
    extract_snippets,
    highlight_search_terms,
    search_terms,
)


class TestSearchTerms:
    def test_short_terms_dropped(self):
        assert search_terms("I am at the Park") == ["the", "park"]

    def test_blank(self):
        assert search_terms("   ") == []


class TestHighlight:
    def test_marks_match(self):
        assert (
            highlight_search_terms("I walked my dog today", "dog")
            == "I walked my <mark>dog</mark> today"
        )

    def test_case_insensitive_keeps_original_case(self):
        assert highlight_search_terms("My Dog barked", "DOG") == "My <mark>Dog</mark> barked"

    def test_marks_every_term(self):
        result = highlight_search_terms("Rain in the park, then sun", "park sun")
        assert result == "Rain in the <mark>park</mark>, then <mark>sun</mark>"

    def test_longer_term_wins_over_prefix(self):
        result = highlight_search_terms("We walked home", "walk walked")
        assert result == "We <mark>walked</mark> home"

    def test_no_usable_terms_truncates(self):
        assert highlight_search_terms("abcdef", "a b", max_length=3) == "abc"

    def test_no_match_truncates(self):
        assert highlight_search_terms("hello world", "xyz", max_length=5) == "hello"

    def test_long_text_gets_ellipses(self):
        text = "x" * 100 + " dog " + "y" * 300

        result = highlight_search_terms(text, "dog")

        assert result.startswith("...")
        assert result.endswith("...")
        assert "<mark>dog</mark>" in result
        # 50 characters of context before the match
        assert result[3:].index("<mark>") == 50

    def test_ellipsis_is_part_of_highlighted_excerpt(self):
        text = "x" * 60 + "dots... here"

        result = highlight_search_terms(text, "...")

        assert result == "<mark>...</mark>" + "x" * 46 + "dots<mark>...</mark> here"


class TestSnippets:
    def test_snippet_per_occurrence(self):
        text = "The dog ran. " + "z" * 200 + " Another dog."

        snippets = extract_snippets(text, "dog", snippet_length=20)

        assert snippets == ["The dog ran. z...", "...z Another dog."]

    def test_max_snippets(self):
        assert len(extract_snippets("dog " * 10, "dog", max_snippets=2)) == 2

    def test_no_terms(self):
        assert extract_snippets("anything", "an") == []

    def test_no_match(self):
        assert extract_snippets("anything", "dog") == []


class TestRecentSearches:
    def test_most_recent_first_without_duplicates(self):
        recent = RecentSearches()
        for query in ("dog", "park", "dog"):
            recent.add(query)

        assert recent.items == ["dog", "park"]

    def test_bounded(self):
        recent = RecentSearches(max_items=3)
        for query in ("a1", "b2", "c3", "d4"):
            recent.add(query)

        assert recent.items == ["d4", "c3", "b2"]

    def test_blank_ignored(self):
        recent = RecentSearches()
        recent.add("   ")
        assert recent.items == []

    def test_persists_between_instances(self, tmp_path):
        path = tmp_path / "recent.json"
        RecentSearches(path).add("sunset")

        assert RecentSearches(path).items == ["sunset"]
        assert json.loads(path.read_text()) == ["sunset"]

    @pytest.mark.parametrize("content", ["{not json", '{"a": 1}', "42"])
    def test_corrupt_file_loads_empty(self, tmp_path, content):
        path = tmp_path / "recent.json"
        path.write_text(content)

        assert RecentSearches(path).items == []

    def test_clear_removes_file(self, tmp_path):
        path = tmp_path / "recent.json"
        recent = RecentSearches(path)
        recent.add("rain")

        recent.clear()

        assert recent.items == []
        assert not path.exists()


class TestDebouncedSearch:
    async def test_only_latest_query_runs(self):
        searched: list[str] = []
        results: list[tuple[str, int]] = []

        async def search(query: str) -> int:
            searched.append(query)
            return len(query)

        debounced = DebouncedSearch(search, lambda q, r: results.append((q, r)), delay=0.01)
        for query in ("d", "do", "dog"):
            debounced.submit(query)
        await debounced.wait()

        assert searched == ["dog"]
        assert results == [("dog", 3)]
        assert debounced.generation == 3

    async def test_cancel_drops_pending(self):
        results: list = []

        async def search(query: str) -> str:
            return query

        debounced = DebouncedSearch(search, lambda q, r: results.append(r), delay=0.01)
        debounced.submit("dog")
        debounced.cancel()
        await debounced.wait()

        assert results == []

    async def test_in_flight_result_superseded(self):
        started = asyncio.Event()
        release = asyncio.Event()
        results: list[str] = []

        async def search(query: str) -> str:
            if query == "slow":
                started.set()
                await release.wait()
            return query

        debounced = DebouncedSearch(search, lambda q, r: results.append(r), delay=0)
        debounced.submit("slow")
        await started.wait()
        debounced.submit("fast")
        release.set()
        await debounced.wait()

        assert results == ["fast"]

    async def test_wait_without_submit(self):
        async def search(query: str) -> str:
            return query

        await DebouncedSearch(search, lambda q, r: None).wait()

    async def test_failure_reaches_on_error(self):
        results: list = []
        errors: list[tuple[str, Exception]] = []

        async def search(query: str) -> str:
            raise RuntimeError("server down")

        debounced = DebouncedSearch(
            search,
            lambda q, r: results.append(r),
            delay=0.01,
            on_error=lambda q, e: errors.append((q, e)),
        )
        debounced.submit("abc")
        debounced.submit("abcd")
        await debounced.wait()

        assert results == []
        assert [(q, str(e)) for q, e in errors] == [("abcd", "server down")]

    async def test_failure_without_on_error_is_logged(self, caplog):
        async def search(query: str) -> str:
            raise RuntimeError("server down")

        debounced = DebouncedSearch(search, lambda q, r: None, delay=0)
        debounced.submit("abc")
        await debounced.wait()

        assert "server down" in caplog.text

