# flashdeck/services/search_service.py
from typing import Callable, List, Sequence, TypedDict

from flashdeck.core.log_manager import logger
from flashdeck.core.scheduler import Debouncer, Scheduler
from flashdeck.models import Card


class SearchResult(TypedDict):
    matched: List[Card]
    match_count: int
    total_count: int
    query: str  # normalised (trimmed, lower-cased)


def normalize_query(query) -> str:
    if not query or not isinstance(query, str):
        return ""
    return query.strip().lower()


def filter_cards(cards: Sequence[Card], query: str) -> SearchResult:
    """
    Case-insensitive substring match against front or back.
    An empty or whitespace-only query matches every card, in original order.
    The input sequence is never mutated.
    """
    q = normalize_query(query)
    if not q:
        matched = list(cards)
    else:
        matched = [
            card for card in cards
            if q in card.front.lower() or q in card.back.lower()
        ]
    return {
        "matched": matched,
        "match_count": len(matched),
        "total_count": len(cards),
        "query": q,
    }


def format_results(result: SearchResult) -> str:
    if not result["query"]:
        return f"{result['match_count']} cards"
    if result["match_count"] == 0:
        return f'No matches for "{result["query"]}"'
    return f"{result['match_count']} of {result['total_count']} match"


def highlight(text: str, query: str) -> str:
    """Wraps the first case-insensitive occurrence of `query` in <mark> tags."""
    if not query or not text:
        return text
    idx = text.lower().find(query.lower())
    if idx == -1:
        return text
    end = idx + len(query)
    return f"{text[:idx]}<mark>{text[idx:end]}</mark>{text[end:]}"


class DebouncedSearch:
    """
    Coalesces rapid query changes into one `apply(query)` call after the
    debounce window. Each request gets an identity; only the most recent
    one may ever be applied.
    """

    def __init__(self, scheduler: Scheduler, delay_ms: int, apply: Callable[[str], None]):
        self._debouncer = Debouncer(scheduler, delay_ms, name="search")
        self._apply = apply
        self._latest_query = ""
        self._latest_id = 0

    @property
    def pending(self) -> bool:
        return self._debouncer.pending

    def request(self, query: str) -> int:
        self._latest_query = query
        request_id = self._debouncer.schedule(lambda: self._fire(request_id))
        self._latest_id = request_id
        return request_id

    def cancel(self) -> bool:
        cancelled = self._debouncer.cancel()
        self._latest_id = 0
        return cancelled

    def _fire(self, request_id: int):
        if request_id != self._latest_id:
            logger.debug(f"Discarding stale search request #{request_id}")
            return
        self._apply(self._latest_query)
