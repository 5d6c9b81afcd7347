# flashdeck/services/import_service.py
import html
import json
import bleach
from datetime import datetime, timezone
from typing import Dict, List, Tuple

from pydantic import ValidationError as SchemaError

from flashdeck.config import APP_VERSION
from flashdeck.core.log_manager import logger
from flashdeck.errors import ImportFormatError
from flashdeck.models import Card, Collection, Deck, id_suffix, now_ms
from flashdeck.schemas import CardDTO, DeckDTO, ExportDTO, ImportStats

ALLOWED_TAGS = ['b', 'i', 'strong', 'em', 'p', 'br', 'ul', 'ol', 'li', 'code', 'pre', 'h1', 'h2', 'h3', 'blockquote', 'span']


def sanitize_html(content: str) -> str:
    if not content: return ""
    # Cards hold plain text; undo the entity escaping bleach applies to text nodes
    return html.unescape(bleach.clean(content, tags=ALLOWED_TAGS, strip=True))


def export_filename() -> str:
    return f"flashcards-backup-{now_ms()}.json"


def export_collection(collection: Collection) -> str:
    """Serializes decks and cards into the Import/Export payload (JSON text)."""
    exported = ExportDTO(
        version=APP_VERSION,
        exported_at=datetime.now(timezone.utc).isoformat(),
        decks=[DeckDTO(**deck.model_dump()) for deck in collection.decks],
        cards_by_deck_id={
            deck_id: [CardDTO(**card.model_dump()) for card in cards]
            for deck_id, cards in collection.cards_by_deck_id.items()
        },
    )
    return json.dumps(exported.model_dump(by_alias=True), indent=2, ensure_ascii=False)


def parse_import(file_content: str) -> Tuple[ExportDTO, ImportStats]:
    """
    1. Parses JSON.
    2. Validates Schema.
    3. Sanitizes card text (so the confirmation reflects what will be saved).
    4. Counts decks and cards for the confirmation dialog.
    """
    try:
        data = json.loads(file_content)
    except json.JSONDecodeError:
        raise ImportFormatError("import_invalid_json")

    if not isinstance(data, dict):
        raise ImportFormatError("import_invalid_format")

    try:
        dto = ExportDTO.model_validate(data)
    except SchemaError as e:
        logger.warning(f"Import schema error: {e.error_count()} errors")
        raise ImportFormatError("import_invalid_format")

    for cards in dto.cards_by_deck_id.values():
        for card in cards:
            card.front = sanitize_html(card.front)
            card.back = sanitize_html(card.back)

    stats: ImportStats = {
        "deck_count": len(dto.decks),
        "card_count": sum(len(cards) for cards in dto.cards_by_deck_id.values()),
    }
    return dto, stats


def merge_import(collection: Collection, dto: ExportDTO) -> Tuple[int, int]:
    """
    Adds the imported decks and cards to `collection` (never replaces).
    Colliding deck or card ids are given fresh ids; the id counters are
    raised above every suffix in the merged collection.
    Card lists whose deck is not part of the import are ignored.
    Returns (decks_added, cards_added).
    """
    existing_deck_ids = {d.id for d in collection.decks}
    existing_card_ids = {c.id for cards in collection.cards_by_deck_id.values() for c in cards}

    # Counters must clear every suffix, including the imported ones,
    # before any fresh id is handed out
    imported_decks: List[DeckDTO] = dto.decks
    imported_cards: Dict[str, List[CardDTO]] = dto.cards_by_deck_id
    next_deck = max(
        [collection.next_deck_id, collection.max_deck_suffix() + 1]
        + [_suffix_after(d.id) for d in imported_decks]
    )
    next_card = max(
        [collection.next_card_id, collection.max_card_suffix() + 1]
        + [_suffix_after(c.id) for cards in imported_cards.values() for c in cards]
    )

    decks_added = cards_added = 0
    for deck_dto in imported_decks:
        deck_id = deck_dto.id
        if deck_id in existing_deck_ids:
            deck_id = f"deck-{next_deck}"
            next_deck += 1
        existing_deck_ids.add(deck_id)

        name = deck_dto.name.strip() or "Imported deck"
        collection.decks.append(Deck(id=deck_id, name=name, created_at=deck_dto.created_at or now_ms()))

        cards: List[Card] = []
        for card_dto in imported_cards.get(deck_dto.id, []):
            front = card_dto.front.strip()
            if not front:
                logger.debug(f"Skipping imported card '{card_dto.id}' with empty front")
                continue
            card_id = card_dto.id
            if card_id in existing_card_ids:
                card_id = f"card-{next_card}"
                next_card += 1
            existing_card_ids.add(card_id)
            cards.append(Card(
                id=card_id,
                front=front,
                back=card_dto.back.strip(),
                created_at=card_dto.created_at or now_ms(),
                updated_at=card_dto.updated_at,
            ))
        collection.cards_by_deck_id[deck_id] = cards
        decks_added += 1
        cards_added += len(cards)

    collection.next_deck_id = next_deck
    collection.next_card_id = next_card
    logger.info(f"Import Success: {decks_added} decks, {cards_added} cards")
    return decks_added, cards_added


def _suffix_after(entity_id: str) -> int:
    return id_suffix(entity_id) + 1
