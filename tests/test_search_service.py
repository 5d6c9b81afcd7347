"""Tests for card filtering and debounced search."""

from flashdeck.models import Card
from flashdeck.services.search_service import (
    DebouncedSearch,
    filter_cards,
    format_results,
    highlight,
)


def _cards():
    return [
        Card(id="card-1", front="Hola", back="Hello"),
        Card(id="card-2", front="Adiós", back="Goodbye"),
        Card(id="card-3", front="Gracias", back="Thank you"),
    ]


class TestFilterCards:

    def test_empty_query_returns_all_in_order(self) -> None:
        cards = _cards()
        result = filter_cards(cards, "")
        assert [c.id for c in result["matched"]] == ["card-1", "card-2", "card-3"]
        assert result["match_count"] == 3
        assert result["total_count"] == 3

    def test_whitespace_query_matches_everything(self) -> None:
        assert filter_cards(_cards(), "   ")["match_count"] == 3

    def test_case_insensitive_front_match(self) -> None:
        result = filter_cards(_cards(), "HOLA")
        assert [c.id for c in result["matched"]] == ["card-1"]

    def test_matches_back(self) -> None:
        result = filter_cards(_cards(), "thank")
        assert [c.id for c in result["matched"]] == ["card-3"]

    def test_no_match_is_empty_not_error(self) -> None:
        result = filter_cards(_cards(), "zzz")
        assert result["matched"] == []
        assert result["match_count"] == 0
        assert result["total_count"] == 3

    def test_query_is_normalised(self) -> None:
        assert filter_cards(_cards(), "  Hello ")["query"] == "hello"

    def test_idempotent(self) -> None:
        cards = _cards()
        first = filter_cards(cards, "o")
        second = filter_cards(cards, "o")
        assert [c.id for c in first["matched"]] == [c.id for c in second["matched"]]

    def test_filtering_filtered_result_changes_nothing(self) -> None:
        once = filter_cards(_cards(), "o")["matched"]
        twice = filter_cards(once, "o")["matched"]
        assert [c.id for c in twice] == [c.id for c in once]

    def test_does_not_mutate_input(self) -> None:
        cards = _cards()
        before = [c.model_dump() for c in cards]
        filter_cards(cards, "hola")
        assert [c.model_dump() for c in cards] == before
        assert len(cards) == 3


class TestFormatting:

    def test_format_without_query(self) -> None:
        assert format_results(filter_cards(_cards(), "")) == "3 cards"

    def test_format_no_matches(self) -> None:
        assert format_results(filter_cards(_cards(), "zzz")) == 'No matches for "zzz"'

    def test_format_partial(self) -> None:
        assert format_results(filter_cards(_cards(), "hola")) == "1 of 3 match"

    def test_highlight_first_occurrence(self) -> None:
        assert highlight("Hola hola", "HOLA") == "<mark>Hola</mark> hola"

    def test_highlight_without_match(self) -> None:
        assert highlight("Hello", "xyz") == "Hello"
        assert highlight("Hello", "") == "Hello"


class TestDebouncedSearch:

    def test_coalesces_rapid_queries(self, scheduler) -> None:
        applied = []
        search = DebouncedSearch(scheduler, 300, applied.append)

        search.request("h")
        scheduler.advance(100)
        search.request("ho")
        scheduler.advance(100)
        search.request("hol")
        scheduler.advance(299)
        assert applied == []

        scheduler.advance(1)
        assert applied == ["hol"]

    def test_cancel_discards_pending_query(self, scheduler) -> None:
        applied = []
        search = DebouncedSearch(scheduler, 300, applied.append)

        search.request("stale")
        assert search.pending
        assert search.cancel()
        scheduler.advance(1000)
        assert applied == []
        assert not search.pending

    def test_request_after_cancel_still_applies(self, scheduler) -> None:
        applied = []
        search = DebouncedSearch(scheduler, 300, applied.append)

        search.request("old")
        search.cancel()
        search.request("new")
        scheduler.advance(300)
        assert applied == ["new"]
