# flashdeck/schemas.py
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import List, Optional, Dict, TypedDict


class WireModel(BaseModel):
    """Base for every on-the-wire shape: camelCase keys, snake_case attributes."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CardDTO(WireModel):
    id: str
    front: str
    back: str = ""
    created_at: int = 0
    updated_at: Optional[int] = None

    @field_validator('id')
    def validate_id(cls, v):
        if not v.strip():
            raise ValueError("Card id cannot be empty.")
        return v


class DeckDTO(WireModel):
    id: str
    name: str
    created_at: int = 0

    @field_validator('id', 'name')
    def validate_not_blank(cls, v):
        if not v.strip():
            raise ValueError("Deck id and name cannot be empty.")
        return v


class PayloadDTO(WireModel):
    """The `payload` object inside the persistence envelope."""
    decks: List[DeckDTO]
    cards_by_deck_id: Dict[str, List[CardDTO]]
    active_deck_id: Optional[str] = None
    next_deck_id: int
    next_card_id: int


class EnvelopeDTO(WireModel):
    """Versioned wrapper written to the durable store."""
    schema_version: int
    saved_at: int
    payload: PayloadDTO


class ExportDTO(WireModel):
    """Import/Export file format."""
    version: str = "1.0.0"
    exported_at: str = ""
    decks: List[DeckDTO]
    cards_by_deck_id: Dict[str, List[CardDTO]] = Field(default_factory=dict)


class Notice(TypedDict):
    """
    A user-facing transient message.
    kind: 'validation' | 'not_found' | 'persistence' | 'import' | 'success' | 'info'
    severity: 'info' | 'success' | 'warning' | 'error'
    """
    kind: str
    message: str
    severity: str


class ImportStats(TypedDict):
    deck_count: int
    card_count: int
