"""Tests for keyboard routing and the dialog flows driven by the orchestrator."""

import pytest

from flashdeck.components.modal import FocusTracker, ModalController, Outcome
from flashdeck.core.orchestrator import KeyPress, Orchestrator
from flashdeck.models import StudyMode, sample_collection
from flashdeck.services.import_service import export_collection


@pytest.fixture
def modal():
    return ModalController(FocusTracker())


@pytest.fixture
def make_orchestrator(make_store, modal, recorder):
    def _make(collection=None):
        store = make_store(collection)
        return Orchestrator(store, modal, on_notice=recorder.notice)
    return _make


@pytest.fixture
def orch(make_orchestrator):
    """Sample deck selected, in Study mode."""
    orchestrator = make_orchestrator(sample_collection())
    orchestrator.select_deck("deck-1")
    return orchestrator


def fill(modal, **values):
    for field in modal.current.container.text_fields:
        if field.name in values:
            field.value = values[field.name]


def press(modal, outcome):
    modal.activate(modal.current.button(outcome))


class TestStudyKeys:

    @pytest.mark.parametrize("key", [" ", "f", "F"])
    def test_flip_keys(self, orch, key) -> None:
        assert orch.handle_key(KeyPress(key)) is True
        assert orch.store.session.flipped is True

    @pytest.mark.parametrize("key, cursor", [("ArrowRight", 1), ("n", 1), ("ArrowLeft", 5), ("p", 5)])
    def test_navigation_keys(self, orch, key, cursor) -> None:
        orch.handle_key(KeyPress(key))
        assert orch.store.session.cursor == cursor

    def test_shuffle_key(self, orch, recorder) -> None:
        orch.handle_key(KeyPress("s"))
        assert recorder.kinds()[-1] == "info"

    def test_escape_exits_study_mode(self, orch) -> None:
        orch.handle_key(KeyPress("Escape"))
        assert orch.store.session.mode == StudyMode.BROWSE

    def test_keys_ignored_in_text_input(self, orch) -> None:
        assert orch.handle_key(KeyPress("f", in_text_input=True)) is False
        assert orch.store.session.flipped is False

    def test_study_keys_ignored_in_browse_mode(self, orch) -> None:
        orch.store.exit_study_mode()
        assert orch.handle_key(KeyPress("f")) is False
        assert orch.handle_key(KeyPress("ArrowRight")) is False
        assert orch.store.session.cursor == 0

    def test_modified_keys_are_not_study_keys(self, orch) -> None:
        assert orch.handle_key(KeyPress("f", alt=True)) is False
        assert orch.store.session.flipped is False

    def test_escape_in_browse_clears_search(self, orch) -> None:
        orch.store.exit_study_mode()
        orch.store.set_search_query("hola")
        assert orch.handle_key(KeyPress("Escape")) is True
        assert orch.store.session.search_query == ""
        assert orch.handle_key(KeyPress("Escape")) is False


class TestShortcuts:

    @pytest.mark.parametrize("mods", [{"ctrl": True}, {"meta": True}])
    def test_new_deck_shortcut(self, orch, modal, mods) -> None:
        assert orch.handle_key(KeyPress("n", **mods)) is True
        assert modal.current.spec.title == "Create New Deck"

    def test_new_card_shortcut(self, orch, modal) -> None:
        assert orch.handle_key(KeyPress("k", ctrl=True)) is True
        assert modal.current.spec.title == "Add New Card"

    def test_new_card_shortcut_needs_active_deck(self, make_orchestrator, modal) -> None:
        orchestrator = make_orchestrator()
        assert orchestrator.handle_key(KeyPress("k", ctrl=True)) is False
        assert not modal.is_open

    def test_shortcuts_suppressed_in_text_input(self, orch, modal) -> None:
        assert orch.handle_key(KeyPress("n", ctrl=True, in_text_input=True)) is False
        assert not modal.is_open

    def test_open_dialog_gets_keys_first(self, orch, modal) -> None:
        orch.open_create_deck()
        assert orch.handle_key(KeyPress("f")) is True
        assert orch.store.session.flipped is False
        orch.handle_key(KeyPress("Escape"))
        assert not modal.is_open
        assert orch.store.session.mode == StudyMode.STUDY


class TestDialogFlows:

    def test_create_deck_selects_it(self, orch, modal) -> None:
        orch.open_create_deck()
        fill(modal, name="French")
        press(modal, Outcome.SUBMIT)
        assert orch.store.active_deck.name == "French"
        assert orch.store.session.mode == StudyMode.STUDY

    def test_create_deck_blank_name(self, orch, modal, recorder) -> None:
        orch.open_create_deck()
        press(modal, Outcome.SUBMIT)
        assert len(orch.store.decks) == 1
        assert recorder.kinds()[-1] == "validation"

    def test_create_deck_cancel(self, orch, modal) -> None:
        orch.open_create_deck()
        fill(modal, name="French")
        press(modal, Outcome.CANCEL)
        assert len(orch.store.decks) == 1

    def test_enter_in_name_field_submits(self, orch, modal) -> None:
        orch.open_create_deck()
        fill(modal, name="Italian")
        orch.handle_key(KeyPress("Enter"))
        assert [d.name for d in orch.store.decks] == ["Spanish Basics", "Italian"]

    def test_rename_deck(self, orch, modal) -> None:
        orch.open_rename_deck("deck-1")
        assert modal.current.container.values() == {"name": "Spanish Basics"}
        fill(modal, name="Español")
        press(modal, Outcome.SUBMIT)
        assert orch.store.decks[0].name == "Español"

    def test_rename_dialog_can_delete(self, orch, modal) -> None:
        orch.open_rename_deck("deck-1")
        press(modal, Outcome.DESTRUCTIVE)
        assert orch.store.decks == []

    def test_rename_unknown_deck_opens_nothing(self, orch, modal) -> None:
        orch.open_rename_deck("deck-9")
        assert not modal.is_open

    def test_delete_deck_confirmation(self, orch, modal) -> None:
        orch.open_delete_deck("deck-1")
        paragraph = modal.current.container.elements[0]
        assert "Spanish Basics" in paragraph.text
        assert modal.current.initial_focus is modal.current.button(Outcome.SUBMIT)
        press(modal, Outcome.CANCEL)
        assert len(orch.store.decks) == 1

        orch.open_delete_deck("deck-1")
        press(modal, Outcome.SUBMIT)
        assert orch.store.decks == []

    def test_add_card(self, orch, modal) -> None:
        orch.open_create_card()
        assert modal.current.initial_focus.name == "front"
        fill(modal, front="Gato", back="Cat")
        press(modal, Outcome.SUBMIT)
        assert orch.store.cards()[-1].front == "Gato"

    def test_add_card_without_deck(self, make_orchestrator, modal) -> None:
        orchestrator = make_orchestrator()
        orchestrator.open_create_card()
        assert not modal.is_open

    def test_edit_current_card(self, orch, modal) -> None:
        orch.edit_current_card()
        assert modal.current.container.values() == {"front": "Hola", "back": "Hello"}
        fill(modal, front="Hola!", back="")
        press(modal, Outcome.SUBMIT)
        card = orch.store.cards()[0]
        assert (card.front, card.back) == ("Hola!", "Hello")

    def test_edit_dialog_can_delete_card(self, orch, modal) -> None:
        orch.open_edit_card("card-2")
        press(modal, Outcome.DESTRUCTIVE)
        assert "card-2" not in [c.id for c in orch.store.cards()]

    def test_edit_unknown_card(self, orch, modal) -> None:
        orch.open_edit_card("card-99")
        assert not modal.is_open


class TestImport:

    def test_import_asks_for_confirmation(self, make_orchestrator, modal) -> None:
        orchestrator = make_orchestrator()
        text = export_collection(sample_collection())
        assert orchestrator.import_text(text) is True
        assert modal.current.spec.title == "Import Decks?"
        assert orchestrator.store.decks == []

        press(modal, Outcome.SUBMIT)
        assert [d.name for d in orchestrator.store.decks] == ["Spanish Basics"]
        assert orchestrator.store.total_card_count() == 6

    def test_import_cancelled(self, make_orchestrator, modal) -> None:
        orchestrator = make_orchestrator()
        orchestrator.import_text(export_collection(sample_collection()))
        press(modal, Outcome.CANCEL)
        assert orchestrator.store.decks == []

    def test_invalid_import_notifies(self, orch, modal, recorder) -> None:
        assert orch.import_text("{broken") is False
        assert not modal.is_open
        assert recorder.notices[-1]["kind"] == "import"
        assert recorder.notices[-1]["severity"] == "error"
