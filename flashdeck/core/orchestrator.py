# core/orchestrator.py
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from flashdeck.components.modal import DialogContainer, DialogSpec, ModalController, Outcome
from flashdeck.core.locale_manager import T, plural
from flashdeck.core.log_manager import logger
from flashdeck.errors import ImportFormatError
from flashdeck.models import StudyMode
from flashdeck.schemas import Notice
from flashdeck.services.import_service import parse_import
from flashdeck.services.session_store import SessionStore

STUDY_KEYS = {
    ' ': 'flip', 'f': 'flip', 'F': 'flip',
    'ArrowRight': 'next', 'n': 'next', 'N': 'next',
    'ArrowLeft': 'prev', 'p': 'prev', 'P': 'prev',
    's': 'shuffle', 'S': 'shuffle',
    'Escape': 'exit',
}


@dataclass
class KeyPress:
    key: str
    ctrl: bool = False
    meta: bool = False
    shift: bool = False
    alt: bool = False
    in_text_input: bool = False

    @property
    def command(self) -> bool:
        return self.ctrl or self.meta


class Orchestrator:
    """
    Routes keyboard and UI actions to the store and the modal controller.
    Dialog outcomes come back here and are turned into store calls.

    Key routing order: open dialog first, then global shortcuts, then the
    study-mode keys.
    """

    def __init__(
        self,
        store: SessionStore,
        modal: ModalController,
        on_notice: Optional[Callable[[Notice], None]] = None,
    ):
        self.store = store
        self.modal = modal
        self._on_notice = on_notice

    # --- KEYBOARD ---

    def handle_key(self, press: KeyPress) -> bool:
        """Returns True when the key press was handled."""
        if self.modal.is_open:
            return self.modal.handle_key(press.key, shift=press.shift)

        if press.in_text_input:
            return False

        if press.command and not press.alt:
            if press.key.lower() == 'n':
                self.open_create_deck()
                return True
            if press.key.lower() == 'k':
                if self.store.active_deck is None:
                    return False
                self.open_create_card()
                return True
            return False

        if press.ctrl or press.meta or press.alt:
            return False

        session = self.store.session
        if session.mode == StudyMode.STUDY:
            action = STUDY_KEYS.get(press.key)
            if action:
                self._run_study_action(action)
                return True
            return False

        if press.key == 'Escape' and session.search_query:
            self.store.clear_search()
            return True
        return False

    def _run_study_action(self, action: str):
        if action == 'flip':
            self.store.toggle_flip()
        elif action == 'next':
            self.store.advance(1)
        elif action == 'prev':
            self.store.advance(-1)
        elif action == 'shuffle':
            self.store.shuffle()
        elif action == 'exit':
            self.store.exit_study_mode()

    # --- UI ACTIONS ---

    def select_deck(self, deck_id: str) -> bool:
        return self.store.select_deck(deck_id)

    def search_input(self, text: str):
        self.store.request_search(text)

    def clear_search(self):
        self.store.clear_search()

    def edit_current_card(self):
        card = self.store.current_card
        if card is not None:
            self.open_edit_card(card.id)

    # --- DIALOG FLOWS ---

    def open_create_deck(self):
        def build(container: DialogContainer):
            return container.add_text_field(
                "name", T("field_deck_name"), placeholder=T("placeholder_deck_name"), required=True,
            )

        def on_outcome(outcome: Outcome, values: Dict[str, str]):
            if outcome != Outcome.SUBMIT:
                return
            deck_id = self.store.create_deck(values.get("name", ""))
            if deck_id:
                self.store.select_deck(deck_id)

        self.modal.open(DialogSpec(
            title=T("dialog_create_deck_title"),
            build_content=build,
            on_outcome=on_outcome,
            submit_label=T("btn_create_deck"),
            cancel_label=T("cancel"),
        ))

    def open_rename_deck(self, deck_id: str):
        deck = self.store.collection.find_deck(deck_id)
        if deck is None:
            logger.debug(f"Rename requested for unknown deck '{deck_id}'")
            return

        def build(container: DialogContainer):
            return container.add_text_field("name", T("field_new_name"), value=deck.name, required=True)

        def on_outcome(outcome: Outcome, values: Dict[str, str]):
            if outcome == Outcome.DESTRUCTIVE:
                self.store.delete_deck(deck_id)
            elif outcome == Outcome.SUBMIT:
                self.store.rename_deck(deck_id, values.get("name", ""))

        self.modal.open(DialogSpec(
            title=T("dialog_rename_deck_title"),
            build_content=build,
            on_outcome=on_outcome,
            submit_label=T("save"),
            cancel_label=T("cancel"),
            destructive_label=T("btn_delete_deck"),
        ))

    def open_delete_deck(self, deck_id: str):
        deck = self.store.collection.find_deck(deck_id)
        if deck is None:
            logger.debug(f"Delete requested for unknown deck '{deck_id}'")
            return
        count = len(self.store.cards(deck_id))

        def build(container: DialogContainer):
            container.add_paragraph(T("delete_deck_message", name=deck.name, count=count, s=plural(count)))
            return None

        def on_outcome(outcome: Outcome, values: Dict[str, str]):
            if outcome in (Outcome.SUBMIT, Outcome.DESTRUCTIVE):
                self.store.delete_deck(deck_id)

        self.modal.open(DialogSpec(
            title=T("dialog_delete_deck_title"),
            build_content=build,
            on_outcome=on_outcome,
            submit_label=T("delete"),
            cancel_label=T("cancel"),
        ))

    def open_create_card(self):
        deck = self.store.active_deck
        if deck is None:
            return

        def build(container: DialogContainer):
            front = container.add_text_field(
                "front", T("field_front_question"), placeholder=T("placeholder_front"), required=True,
            )
            container.add_text_field("back", T("field_back_answer"), placeholder=T("placeholder_back"))
            return front

        def on_outcome(outcome: Outcome, values: Dict[str, str]):
            if outcome == Outcome.SUBMIT:
                self.store.add_card(deck.id, values.get("front", ""), values.get("back", ""))

        self.modal.open(DialogSpec(
            title=T("dialog_add_card_title"),
            build_content=build,
            on_outcome=on_outcome,
            submit_label=T("btn_add_card"),
            cancel_label=T("cancel"),
        ))

    def open_edit_card(self, card_id: str):
        deck = self.store.active_deck
        if deck is None:
            return
        card = next((c for c in self.store.cards(deck.id) if c.id == card_id), None)
        if card is None:
            logger.debug(f"Edit requested for unknown card '{card_id}'")
            return

        def build(container: DialogContainer):
            front = container.add_text_field("front", T("field_front"), value=card.front, required=True)
            container.add_text_field("back", T("field_back"), value=card.back)
            return front

        def on_outcome(outcome: Outcome, values: Dict[str, str]):
            if outcome == Outcome.DESTRUCTIVE:
                self.store.delete_card(deck.id, card_id)
            elif outcome == Outcome.SUBMIT:
                self.store.update_card(deck.id, card_id, values.get("front", ""), values.get("back", ""))

        self.modal.open(DialogSpec(
            title=T("dialog_edit_card_title"),
            build_content=build,
            on_outcome=on_outcome,
            submit_label=T("save"),
            cancel_label=T("cancel"),
            destructive_label=T("btn_delete_card"),
        ))

    def import_text(self, file_content: str) -> bool:
        """Parses an import file and asks for confirmation before merging."""
        try:
            dto, stats = parse_import(file_content)
        except ImportFormatError as e:
            logger.warning(f"Import rejected: {e.message_key}")
            self._notify("import", "error", T(e.message_key))
            return False

        decks, cards = stats["deck_count"], stats["card_count"]

        def build(container: DialogContainer):
            container.add_paragraph(T(
                "import_message", decks=decks, ds=plural(decks), cards=cards, cs=plural(cards),
            ))
            return None

        def on_outcome(outcome: Outcome, values: Dict[str, str]):
            if outcome == Outcome.SUBMIT:
                self.store.import_collection(dto)

        self.modal.open(DialogSpec(
            title=T("dialog_import_title"),
            build_content=build,
            on_outcome=on_outcome,
            submit_label=T("btn_import"),
            cancel_label=T("cancel"),
        ))
        return True

    def _notify(self, kind: str, severity: str, message: str):
        if self._on_notice:
            self._on_notice({"kind": kind, "message": message, "severity": severity})
