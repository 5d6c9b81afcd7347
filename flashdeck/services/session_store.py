# flashdeck/services/session_store.py
import random
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple

from flashdeck.config import AUTO_SAVE_DELAY_MS, SEARCH_DEBOUNCE_MS
from flashdeck.core.locale_manager import T, plural
from flashdeck.core.log_manager import logger
from flashdeck.core.scheduler import Scheduler
from flashdeck.errors import NotFoundError, ValidationError
from flashdeck.models import AppState, Card, Deck, StudyMode, now_ms
from flashdeck.schemas import ExportDTO, Notice
from flashdeck.services.import_service import export_collection, merge_import
from flashdeck.services.persistence_service import AutoSaver, PersistenceService, repair_integrity
from flashdeck.services.search_service import DebouncedSearch, filter_cards, format_results


class SessionStore:
    """
    Single source of truth for decks, cards and the study presentation.

    Every public mutation validates fully before touching state, so a
    rejected call leaves the model exactly as it was. Successful data
    mutations schedule a (coalesced) save; every change, including
    navigation and flipping, calls `on_change` so the view can re-read.
    """

    def __init__(
        self,
        state: AppState,
        scheduler: Scheduler,
        persistence: Optional[PersistenceService] = None,
        on_change: Optional[Callable[[], None]] = None,
        on_notice: Optional[Callable[[Notice], None]] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], int] = now_ms,
        autosave_delay_ms: int = AUTO_SAVE_DELAY_MS,
        search_debounce_ms: int = SEARCH_DEBOUNCE_MS,
    ):
        self.state = state
        self._on_change = on_change
        self._on_notice = on_notice
        self._rng = rng or random.Random()
        self._clock = clock
        self._autosaver: Optional[AutoSaver] = None
        if persistence is not None:
            self._autosaver = AutoSaver(
                persistence,
                scheduler,
                autosave_delay_ms,
                snapshot=lambda: self.state.collection,
                on_saved=self._after_save,
            )
        self._search = DebouncedSearch(scheduler, search_debounce_ms, self.set_search_query)

        repair_integrity(self.state.collection)
        self._refresh_order(preserve=False, reset_cursor=True)

    # --- READ ACCESS ---

    @property
    def collection(self):
        return self.state.collection

    @property
    def session(self):
        return self.state.session

    @property
    def decks(self) -> List[Deck]:
        return list(self.collection.decks)

    @property
    def active_deck(self) -> Optional[Deck]:
        if not self.collection.active_deck_id:
            return None
        return self.collection.find_deck(self.collection.active_deck_id)

    def cards(self, deck_id: Optional[str] = None) -> List[Card]:
        deck_id = deck_id or self.collection.active_deck_id
        return list(self.collection.cards_by_deck_id.get(deck_id, []))

    @property
    def current_card(self) -> Optional[Card]:
        s = self.session
        if not s.order:
            return None
        return s.filtered[s.order[s.cursor]]

    def progress(self) -> Tuple[int, int, int]:
        """(1-based position, total, percent) of the presentation."""
        total = len(self.session.order)
        if not total:
            return 0, 0, 0
        position = self.session.cursor + 1
        return position, total, round(position / total * 100)

    def search_summary(self) -> str:
        return format_results(filter_cards(self.cards(), self.session.search_query))

    def total_card_count(self) -> int:
        return sum(len(cards) for cards in self.collection.cards_by_deck_id.values())

    @property
    def last_saved(self) -> Optional[datetime]:
        return self.state.last_saved

    @property
    def save_pending(self) -> bool:
        return bool(self._autosaver and self._autosaver.pending)

    @property
    def search_pending(self) -> bool:
        return self._search.pending

    # --- DECKS ---

    def create_deck(self, name: str) -> Optional[str]:
        try:
            trimmed = self._require_text(name, "deck_name_empty")
        except ValidationError as e:
            self._reject(e)
            return None

        c = self.collection
        deck_id = f"deck-{c.next_deck_id}"
        c.next_deck_id += 1
        c.decks.append(Deck(id=deck_id, name=trimmed, created_at=self._clock()))
        c.cards_by_deck_id[deck_id] = []

        logger.info(f"Created deck '{trimmed}' ({deck_id})")
        self._notify("success", "success", T("deck_created", name=trimmed))
        self._commit()
        return deck_id

    def rename_deck(self, deck_id: str, name: str) -> bool:
        try:
            deck = self._find_deck(deck_id)
            trimmed = self._require_text(name, "deck_name_empty")
        except NotFoundError as e:
            logger.debug(f"rename_deck ignored: {e}")
            return False
        except ValidationError as e:
            self._reject(e)
            return False

        old_name = deck.name
        deck.name = trimmed
        self._notify("success", "success", T("deck_renamed", old=old_name, new=trimmed))
        self._commit()
        return True

    def delete_deck(self, deck_id: str) -> bool:
        try:
            deck = self._find_deck(deck_id)
        except NotFoundError as e:
            logger.debug(f"delete_deck ignored: {e}")
            return False

        c = self.collection
        c.decks.remove(deck)
        c.cards_by_deck_id.pop(deck_id, None)

        if c.active_deck_id == deck_id:
            c.active_deck_id = c.decks[0].id if c.decks else None
            self._reset_session()
            if c.active_deck_id is None:
                self.session.mode = StudyMode.BROWSE

        logger.info(f"Deleted deck '{deck.name}' ({deck_id})")
        self._notify("success", "success", T("deck_deleted", name=deck.name))
        self._commit()
        return True

    def select_deck(self, deck_id: str) -> bool:
        try:
            self._find_deck(deck_id)
        except NotFoundError as e:
            logger.debug(f"select_deck ignored: {e}")
            return False

        self.collection.active_deck_id = deck_id
        self._reset_session()
        self.session.mode = StudyMode.STUDY
        self._commit()
        return True

    # --- CARDS ---

    def add_card(self, deck_id: str, front: str, back: str = "") -> Optional[str]:
        try:
            self._find_deck(deck_id)
            trimmed_front = self._require_text(front, "card_front_empty")
        except NotFoundError as e:
            logger.debug(f"add_card ignored: {e}")
            return None
        except ValidationError as e:
            self._reject(e)
            return None

        c = self.collection
        cards = c.cards_by_deck_id.setdefault(deck_id, [])
        card_id = f"card-{c.next_card_id}"
        c.next_card_id += 1
        cards.append(Card(
            id=card_id,
            front=trimmed_front,
            back=(back or "").strip(),
            created_at=self._clock(),
        ))

        self._after_card_change(deck_id)
        self._notify("success", "success", T("card_added"))
        self._commit()
        return card_id

    def update_card(self, deck_id: str, card_id: str, front: str, back: str) -> bool:
        """
        Blank inputs keep the existing value; unlike add_card, an empty
        front is not a validation failure here.
        """
        try:
            card = self._find_card(deck_id, card_id)
        except NotFoundError as e:
            logger.debug(f"update_card ignored: {e}")
            return False

        new_front = (front or "").strip() or card.front
        new_back = (back or "").strip() or card.back
        if not new_front:
            self._reject(ValidationError("card_front_empty"))
            return False

        card.front = new_front
        card.back = new_back
        card.updated_at = self._clock()

        self._after_card_change(deck_id)
        self._notify("success", "success", T("card_updated"))
        self._commit()
        return True

    def delete_card(self, deck_id: str, card_id: str) -> bool:
        try:
            card = self._find_card(deck_id, card_id)
        except NotFoundError as e:
            logger.debug(f"delete_card ignored: {e}")
            return False

        self.collection.cards_by_deck_id[deck_id].remove(card)

        self._after_card_change(deck_id)
        self._notify("success", "success", T("card_deleted"))
        self._commit()
        return True

    # --- SEARCH ---

    def set_search_query(self, query: str):
        """Applies `query` at once: identity order over the matches, cursor 0."""
        self.session.search_query = query or ""
        self.session.flipped = False
        self._refresh_order(preserve=False, reset_cursor=True)
        self._render()

    def request_search(self, query: str) -> int:
        """Debounced set_search_query; only the latest request is applied."""
        return self._search.request(query)

    def clear_search(self):
        self._search.cancel()
        self.set_search_query("")

    # --- STUDY ---

    def shuffle(self) -> bool:
        order = self.session.order
        if not order:
            self._notify("validation", "warning", T("no_cards_to_shuffle"))
            return False

        # Fisher-Yates
        for i in range(len(order) - 1, 0, -1):
            j = self._rng.randint(0, i)
            order[i], order[j] = order[j], order[i]

        self.session.cursor = 0
        self.session.flipped = False
        self._notify("info", "info", T("deck_shuffled"))
        self._render()
        return True

    def advance(self, direction: int) -> bool:
        if direction not in (1, -1):
            raise ValueError("direction must be +1 or -1")
        length = len(self.session.order)
        if not length:
            return False
        self.session.cursor = (self.session.cursor + direction) % length
        self.session.flipped = False
        self._render()
        return True

    def toggle_flip(self) -> bool:
        if not self.session.order:
            return False
        self.session.flipped = not self.session.flipped
        self._render()
        return self.session.flipped

    def enter_study_mode(self) -> bool:
        if self.active_deck is None:
            return False
        self.session.mode = StudyMode.STUDY
        self._refresh_order(preserve=True, reset_cursor=False)
        self._render()
        return True

    def exit_study_mode(self):
        self.session.mode = StudyMode.BROWSE
        self.session.flipped = False
        self._render()

    # --- IMPORT / EXPORT ---

    def import_collection(self, dto: ExportDTO) -> Tuple[int, int]:
        decks_added, cards_added = merge_import(self.collection, dto)
        if self.collection.active_deck_id is None and self.collection.decks:
            self.collection.active_deck_id = self.collection.decks[0].id
        self._refresh_order(preserve=True, reset_cursor=False)
        self._notify("success", "success", T("import_success", count=decks_added, s=plural(decks_added)))
        self._commit()
        return decks_added, cards_added

    def export_text(self) -> str:
        return export_collection(self.collection)

    # --- LIFECYCLE ---

    def flush(self) -> Optional[bool]:
        """Writes a pending save immediately (e.g. on shutdown)."""
        if self._autosaver is None:
            return None
        return self._autosaver.flush()

    def dispose(self):
        self.flush()
        self._search.cancel()

    # --- INTERNALS ---

    def _find_deck(self, deck_id: str) -> Deck:
        deck = self.collection.find_deck(deck_id)
        if deck is None:
            raise NotFoundError("deck", deck_id)
        return deck

    def _find_card(self, deck_id: str, card_id: str) -> Card:
        cards = self.collection.cards_by_deck_id.get(deck_id)
        if cards is None:
            raise NotFoundError("deck", deck_id)
        card = next((c for c in cards if c.id == card_id), None)
        if card is None:
            raise NotFoundError("card", card_id)
        return card

    @staticmethod
    def _require_text(value: Optional[str], message_key: str) -> str:
        trimmed = (value or "").strip()
        if not trimmed:
            raise ValidationError(message_key)
        return trimmed

    def _reject(self, error: ValidationError):
        logger.warning(f"Validation failed: {error.message_key}")
        self._notify("validation", "warning", T(error.message_key, **error.params))

    def _notify(self, kind: str, severity: str, message: str):
        if self._on_notice:
            self._on_notice({"kind": kind, "message": message, "severity": severity})

    def _render(self):
        if self._on_change:
            self._on_change()

    def _commit(self):
        if self._autosaver:
            self._autosaver.schedule()
        self._render()

    def _after_save(self, ok: bool):
        if ok:
            self.state.last_saved = datetime.now(timezone.utc)
        else:
            self._notify("persistence", "error", T("save_failed"))

    def _after_card_change(self, deck_id: str):
        if deck_id == self.collection.active_deck_id:
            self._refresh_order(preserve=True, reset_cursor=False)

    def _reset_session(self):
        self._search.cancel()
        s = self.session
        s.search_query = ""
        s.flipped = False
        self._refresh_order(preserve=False, reset_cursor=True)

    def _refresh_order(self, preserve: bool, reset_cursor: bool):
        """
        Recomputes the filtered set and presentation order of the active deck.
        With `preserve`, cards still visible keep their relative (possibly
        shuffled) order and newly visible cards are appended.
        """
        s = self.session
        matched = filter_cards(self.cards(), s.search_query)["matched"] if self.active_deck else []
        positions = {card.id: i for i, card in enumerate(matched)}

        if preserve and s.order:
            order = [positions[cid] for cid in s.presented_ids() if cid in positions]
            seen = set(order)
            order += [i for i in range(len(matched)) if i not in seen]
        else:
            order = list(range(len(matched)))

        s.filtered = matched
        s.order = order
        if reset_cursor:
            s.cursor = 0
        if not order:
            s.cursor = 0
        elif s.cursor >= len(order):
            s.cursor = len(order) - 1
