from typing import Optional, List, Dict
from datetime import datetime, timezone
from enum import Enum
import re
import time
from sqlmodel import SQLModel, Field

SUFFIX_PATTERN = re.compile(r"\d+$")


def now_ms() -> int:
    """Current wall-clock time as integer epoch milliseconds."""
    return int(time.time() * 1000)


def id_suffix(entity_id: str) -> int:
    """
    Numeric suffix of an entity id ('deck-12' -> 12).
    Ids without a trailing number count as 0.
    """
    match = SUFFIX_PATTERN.search(entity_id or "")
    return int(match.group(0)) if match else 0


class StudyMode(str, Enum):
    """
    Which context the main view is in.
    """
    BROWSE = "browse"
    STUDY = "study"


# --- 1. COLLECTION (The Save File) ---

class Card(SQLModel):
    id: str
    front: str
    back: str = ""
    created_at: int = Field(default_factory=now_ms)
    updated_at: Optional[int] = None


class Deck(SQLModel):
    id: str
    name: str
    created_at: int = Field(default_factory=now_ms)


class Collection(SQLModel):
    """
    Everything that is persisted: decks, their cards (owned by containment)
    and the id counters. This is the snapshot handed to the persistence layer.
    """
    decks: List[Deck] = Field(default_factory=list)
    cards_by_deck_id: Dict[str, List[Card]] = Field(default_factory=dict)
    active_deck_id: Optional[str] = None
    next_deck_id: int = 1
    next_card_id: int = 1

    def find_deck(self, deck_id: str) -> Optional[Deck]:
        return next((d for d in self.decks if d.id == deck_id), None)

    def max_deck_suffix(self) -> int:
        return max((id_suffix(d.id) for d in self.decks), default=0)

    def max_card_suffix(self) -> int:
        return max(
            (id_suffix(c.id) for cards in self.cards_by_deck_id.values() for c in cards),
            default=0,
        )


# --- 2. SESSION (Transient, never persisted) ---

class StudySession:
    """
    View state of the study presentation.

    `filtered` holds the cards of the active deck matching `search_query`,
    in deck order. `order` holds positions into `filtered`, in the order
    they are presented; `cursor` indexes into `order`.
    """

    def __init__(self):
        self.mode: StudyMode = StudyMode.BROWSE
        self.filtered: List[Card] = []
        self.order: List[int] = []
        self.cursor: int = 0
        self.flipped: bool = False
        self.search_query: str = ""

    def presented_ids(self) -> List[str]:
        return [self.filtered[i].id for i in self.order]


class AppState:
    """
    The single owned state object. Store, modal controller and orchestrator
    all receive this handle explicitly.
    """

    def __init__(self, collection: Optional[Collection] = None):
        self.collection: Collection = collection or Collection()
        self.session: StudySession = StudySession()
        self.last_saved: Optional[datetime] = None


def sample_collection() -> Collection:
    """The collection shown on first run."""
    created = now_ms()
    samples = [
        ("Hola", "Hello"),
        ("Adiós", "Goodbye"),
        ("Sí", "Yes"),
        ("No", "No"),
        ("Gracias", "Thank you"),
        ("Por favor", "Please"),
    ]
    cards = [
        Card(id=f"card-{n}", front=front, back=back, created_at=created)
        for n, (front, back) in enumerate(samples, start=1)
    ]
    return Collection(
        decks=[Deck(id="deck-1", name="Spanish Basics", created_at=created)],
        cards_by_deck_id={"deck-1": cards},
        active_deck_id="deck-1",
        next_deck_id=2,
        next_card_id=len(cards) + 1,
    )


# --- 3. DURABLE STORE ---

class StoredValue(SQLModel, table=True):
    """
    One opaque key/value entry of the durable store.
    """
    key: str = Field(primary_key=True)
    value: bytes
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
