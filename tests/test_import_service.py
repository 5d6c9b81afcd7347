import json

import pytest

from flashdeck.errors import ImportFormatError
from flashdeck.models import Card, Collection, Deck, sample_collection
from flashdeck.services.import_service import (
    export_collection,
    export_filename,
    merge_import,
    parse_import,
    sanitize_html,
)


def _file(decks, cards_by_deck_id) -> str:
    return json.dumps({
        "version": "1.0.0",
        "exportedAt": "2024-01-01T00:00:00+00:00",
        "decks": decks,
        "cardsByDeckId": cards_by_deck_id,
    })


class TestExport:

    def test_export_shape(self) -> None:
        data = json.loads(export_collection(sample_collection()))
        assert data["version"] == "1.0.0"
        assert data["exportedAt"]
        assert data["decks"][0]["name"] == "Spanish Basics"
        assert len(data["cardsByDeckId"]["deck-1"]) == 6
        assert "activeDeckId" not in data

    def test_export_keeps_unicode_readable(self) -> None:
        assert "Adiós" in export_collection(sample_collection())

    def test_filename(self) -> None:
        name = export_filename()
        assert name.startswith("flashcards-backup-")
        assert name.endswith(".json")


class TestParseImport:

    def test_counts(self) -> None:
        _, stats = parse_import(export_collection(sample_collection()))
        assert stats == {"deck_count": 1, "card_count": 6}

    @pytest.mark.parametrize("text", ["", "{oops", "not json"])
    def test_invalid_json(self, text) -> None:
        with pytest.raises(ImportFormatError) as exc:
            parse_import(text)
        assert exc.value.message_key == "import_invalid_json"

    @pytest.mark.parametrize("text", [
        "[]",
        '"just a string"',
        '{"cardsByDeckId": {}}',
        '{"decks": "nope"}',
        '{"decks": [{"id": "deck-1"}]}',
    ])
    def test_invalid_format(self, text) -> None:
        with pytest.raises(ImportFormatError) as exc:
            parse_import(text)
        assert exc.value.message_key == "import_invalid_format"

    def test_missing_cards_map_is_allowed(self) -> None:
        dto, stats = parse_import('{"decks": [{"id": "deck-1", "name": "Empty"}]}')
        assert dto.cards_by_deck_id == {}
        assert stats["card_count"] == 0

    def test_card_text_is_sanitized(self) -> None:
        text = _file(
            [{"id": "deck-1", "name": "X", "createdAt": 1}],
            {"deck-1": [{
                "id": "card-1",
                "front": "<b>bold</b><script>alert(1)</script>",
                "back": '<img src=x onerror="alert(1)">ok',
                "createdAt": 1,
            }]},
        )
        dto, _ = parse_import(text)
        card = dto.cards_by_deck_id["deck-1"][0]
        assert card.front.startswith("<b>bold</b>")
        assert "<script" not in card.front
        assert card.back == "ok"

    def test_sanitize_empty(self) -> None:
        assert sanitize_html("") == ""
        assert sanitize_html(None) == ""


class TestMergeImport:

    def test_merge_into_empty(self) -> None:
        collection = Collection()
        dto, _ = parse_import(export_collection(sample_collection()))
        assert merge_import(collection, dto) == (1, 6)
        assert [c.id for c in collection.cards_by_deck_id["deck-1"]][:2] == ["card-1", "card-2"]
        assert collection.next_deck_id == 2
        assert collection.next_card_id == 7

    def test_collisions_are_renumbered(self) -> None:
        collection = Collection(
            decks=[Deck(id="deck-1", name="Mine")],
            cards_by_deck_id={"deck-1": [Card(id="card-1", front="Mine")]},
            next_deck_id=2,
            next_card_id=2,
        )
        text = _file(
            [{"id": "deck-1", "name": "Theirs"}, {"id": "deck-5", "name": "Other"}],
            {
                "deck-1": [{"id": "card-1", "front": "A"}, {"id": "card-3", "front": "B"}],
                "deck-5": [{"id": "card-9", "front": "C"}],
            },
        )
        dto, _ = parse_import(text)
        assert merge_import(collection, dto) == (2, 3)

        assert [(d.id, d.name) for d in collection.decks] == [("deck-1", "Mine"), ("deck-6", "Theirs"), ("deck-5", "Other")]
        assert collection.cards_by_deck_id["deck-1"][0].front == "Mine"
        assert [c.id for c in collection.cards_by_deck_id["deck-6"]] == ["card-10", "card-3"]
        assert collection.next_deck_id == 7
        assert collection.next_card_id == 11

    def test_blank_cards_and_stray_lists_skipped(self) -> None:
        collection = Collection()
        text = _file(
            [{"id": "deck-1", "name": "Deck"}],
            {
                "deck-1": [{"id": "card-1", "front": "   "}, {"id": "card-2", "front": " Kept ", "back": " b "}],
                "deck-7": [{"id": "card-3", "front": "Stray"}],
            },
        )
        dto, stats = parse_import(text)
        assert stats["card_count"] == 3
        assert merge_import(collection, dto) == (1, 1)
        card = collection.cards_by_deck_id["deck-1"][0]
        assert (card.id, card.front, card.back) == ("card-2", "Kept", "b")
        assert "deck-7" not in collection.cards_by_deck_id


class TestRoundTrip:

    def test_plain_text_survives_export_and_import(self) -> None:
        source = Collection(
            decks=[Deck(id="deck-1", name="Maths")],
            cards_by_deck_id={"deck-1": [Card(id="card-1", front="a < b & c > d", back="Tom & Jerry")]},
            next_deck_id=2,
            next_card_id=2,
        )
        target = Collection()
        for _ in range(2):
            dto, _ = parse_import(export_collection(source))
            target = Collection()
            merge_import(target, dto)
            source = target

        card = target.cards_by_deck_id["deck-1"][0]
        assert (card.front, card.back) == ("a < b & c > d", "Tom & Jerry")

    def test_entities_are_not_escaped(self) -> None:
        assert sanitize_html("Fish & Chips") == "Fish & Chips"
        assert sanitize_html("<b>x</b> & <i>y</i>") == "<b>x</b> & <i>y</i>"
