# flashdeck/services/persistence_service.py
import json
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from pydantic import TypeAdapter, ValidationError as SchemaError

from flashdeck.config import STORAGE_KEY, SCHEMA_VERSION
from flashdeck.core.log_manager import logger
from flashdeck.core.scheduler import Debouncer, Scheduler
from flashdeck.errors import StorageError, QuotaExceededError
from flashdeck.models import Card, Collection, Deck, now_ms
from flashdeck.schemas import CardDTO, DeckDTO, EnvelopeDTO, PayloadDTO
from flashdeck.services.storage_service import Storage

_DECKS = TypeAdapter(List[DeckDTO])
_CARDS_BY_DECK = TypeAdapter(Dict[str, List[CardDTO]])


# --- CONVERSION ---

def collection_to_payload(collection: Collection) -> PayloadDTO:
    return PayloadDTO(
        decks=[DeckDTO(**deck.model_dump()) for deck in collection.decks],
        cards_by_deck_id={
            deck_id: [CardDTO(**card.model_dump()) for card in cards]
            for deck_id, cards in collection.cards_by_deck_id.items()
        },
        active_deck_id=collection.active_deck_id,
        next_deck_id=collection.next_deck_id,
        next_card_id=collection.next_card_id,
    )


def decks_from_dtos(dtos: List[DeckDTO]) -> List[Deck]:
    return [Deck(**dto.model_dump()) for dto in dtos]


def cards_from_dtos(dtos: Dict[str, List[CardDTO]]) -> Dict[str, List[Card]]:
    """Cards with a blank front are dropped."""
    return {
        deck_id: [Card(**dto.model_dump()) for dto in cards if dto.front.strip()]
        for deck_id, cards in dtos.items()
    }


# --- INTEGRITY ---

def repair_integrity(collection: Collection) -> Collection:
    """
    Restores the collection invariants in place:
    1. No card list without a deck, no deck without a card list.
    2. active_deck_id is a known deck (first deck as fallback) or None.
    3. Deck ids are unique (first occurrence wins).
    4. Id counters exceed every numeric suffix in use.
    """
    unique: List[Deck] = []
    deck_ids = set()
    for deck in collection.decks:
        if deck.id in deck_ids:
            logger.warning(f"Dropping duplicate deck '{deck.id}' ('{deck.name}')")
            continue
        deck_ids.add(deck.id)
        unique.append(deck)
    collection.decks = unique

    orphans = [deck_id for deck_id in collection.cards_by_deck_id if deck_id not in deck_ids]
    for deck_id in orphans:
        logger.warning(f"Dropping {len(collection.cards_by_deck_id[deck_id])} orphaned cards of unknown deck '{deck_id}'")
        del collection.cards_by_deck_id[deck_id]

    for deck in collection.decks:
        collection.cards_by_deck_id.setdefault(deck.id, [])

    if collection.active_deck_id not in deck_ids:
        collection.active_deck_id = collection.decks[0].id if collection.decks else None

    collection.next_deck_id = max(collection.next_deck_id, collection.max_deck_suffix() + 1)
    collection.next_card_id = max(collection.next_card_id, collection.max_card_suffix() + 1)
    return collection


# --- ADAPTER ---

class PersistenceService:
    """
    Reads and writes the versioned envelope
    {schemaVersion, savedAt, payload} as JSON text in a Storage backend.
    """

    def __init__(
        self,
        storage: Storage,
        key: str = STORAGE_KEY,
        schema_version: int = SCHEMA_VERSION,
        clock: Callable[[], int] = now_ms,
    ):
        self.storage = storage
        self.key = key
        self.schema_version = schema_version
        self._clock = clock

    def encode(self, collection: Collection) -> bytes:
        envelope = EnvelopeDTO(
            schema_version=self.schema_version,
            saved_at=self._clock(),
            payload=collection_to_payload(collection),
        )
        return envelope.model_dump_json(by_alias=True).encode("utf-8")

    def save(self, collection: Collection) -> bool:
        """
        Writes the snapshot. Returns False on any store failure;
        never raises.
        """
        try:
            self.storage.save(self.key, self.encode(collection))
            return True
        except QuotaExceededError as e:
            logger.warning(f"Failed to save state, storage quota exceeded: {e}")
            # Recover space so the next write has a chance
            try:
                self.storage.remove(self.key)
                logger.warning("Cleared storage to recover quota")
            except StorageError as clear_error:
                logger.error(f"Failed to clear storage: {clear_error}")
            return False
        except StorageError as e:
            logger.warning(f"Failed to save state: {e}")
            return False

    def load(self, default: Collection) -> Collection:
        """
        Returns the stored snapshot, or `default` when the store is empty,
        unreadable, from another schema version or structurally invalid.
        Individual payload fields that fail validation fall back to the
        matching field of `default`.
        """
        try:
            raw = self.storage.load(self.key)
        except StorageError as e:
            logger.warning(f"Failed to read stored state: {e}")
            return default

        if not raw:
            return default

        try:
            parsed = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"Failed to parse stored state: {e}")
            self._discard()
            return default

        if not isinstance(parsed, dict):
            logger.warning("Invalid stored state: envelope is not an object")
            self._discard()
            return default

        version = parsed.get("schemaVersion")
        if version != self.schema_version:
            # Kept in the store: a later release may know how to migrate it
            logger.warning(f"Version mismatch: expected {self.schema_version}, got {version}")
            return default

        payload = parsed.get("payload")
        if not isinstance(payload, dict):
            logger.warning("Invalid data structure: payload missing")
            self._discard()
            return default

        return repair_integrity(self._merge_fields(payload, default))

    def _merge_fields(self, payload: Dict[str, Any], default: Collection) -> Collection:
        fallback = default.model_copy(deep=True)

        try:
            decks = decks_from_dtos(_DECKS.validate_python(payload.get("decks")))
        except SchemaError as e:
            logger.warning(f"Stored 'decks' invalid, using default: {e.error_count()} errors")
            decks = fallback.decks

        try:
            cards_by_deck_id = cards_from_dtos(_CARDS_BY_DECK.validate_python(payload.get("cardsByDeckId")))
        except SchemaError as e:
            logger.warning(f"Stored 'cardsByDeckId' invalid, using default: {e.error_count()} errors")
            cards_by_deck_id = fallback.cards_by_deck_id

        active_deck_id = payload.get("activeDeckId")
        if active_deck_id is not None and not isinstance(active_deck_id, str):
            logger.warning("Stored 'activeDeckId' invalid, using default")
            active_deck_id = fallback.active_deck_id

        return Collection(
            decks=decks,
            cards_by_deck_id=cards_by_deck_id,
            active_deck_id=active_deck_id,
            next_deck_id=self._counter(payload, "nextDeckId", fallback.next_deck_id),
            next_card_id=self._counter(payload, "nextCardId", fallback.next_card_id),
        )

    @staticmethod
    def _counter(payload: Dict[str, Any], field: str, default: int) -> int:
        value = payload.get(field)
        # bool is an int subclass; reject it explicitly
        if isinstance(value, int) and not isinstance(value, bool) and value >= 1:
            return value
        logger.warning(f"Stored '{field}' invalid, using default")
        return default

    def _discard(self):
        try:
            self.storage.remove(self.key)
        except StorageError as e:
            logger.error(f"Failed to clear corrupted storage: {e}")

    def clear(self) -> bool:
        try:
            self.storage.remove(self.key)
            return True
        except StorageError as e:
            logger.warning(f"Failed to clear storage: {e}")
            return False

    def get_info(self) -> Dict[str, Any]:
        """Storage metadata for the sidebar / debugging. Never raises."""
        try:
            raw = self.storage.load(self.key)
            if not raw:
                return {"exists": False, "message": "No data stored"}
            parsed = json.loads(raw)
            saved_at = datetime.fromtimestamp(parsed["savedAt"] / 1000, tz=timezone.utc)
            return {
                "exists": True,
                "version": parsed.get("schemaVersion"),
                "savedAt": saved_at.isoformat(),
                "size": f"{round(len(raw) / 1024, 2)} KB",
                "deckCount": len(parsed.get("payload", {}).get("decks") or []),
            }
        except Exception as e:
            return {"exists": False, "error": str(e)}


class AutoSaver:
    """
    Coalesces successive save requests into one write after `delay_ms`
    of idle time. The snapshot is taken when the timer fires, so the most
    recent state always wins.
    """

    def __init__(
        self,
        persistence: PersistenceService,
        scheduler: Scheduler,
        delay_ms: int,
        snapshot: Callable[[], Collection],
        on_saved: Optional[Callable[[bool], None]] = None,
    ):
        self.persistence = persistence
        self._debouncer = Debouncer(scheduler, delay_ms, name="autosave")
        self._snapshot = snapshot
        self._on_saved = on_saved
        self.write_count = 0

    @property
    def pending(self) -> bool:
        return self._debouncer.pending

    def schedule(self):
        self._debouncer.schedule(self._write)

    def cancel(self) -> bool:
        return self._debouncer.cancel()

    def flush(self) -> Optional[bool]:
        """Writes now if a save is pending. Returns None if nothing was pending."""
        if not self._debouncer.cancel():
            return None
        return self._write()

    def _write(self) -> bool:
        ok = self.persistence.save(self._snapshot())
        self.write_count += 1
        if ok:
            logger.info("Auto-saved")
        if self._on_saved:
            self._on_saved(ok)
        return ok
