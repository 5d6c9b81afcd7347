# flashdeck/components/modal.py
"""
Accessible modal dialogs.

A dialog is described by a `DialogSpec` value: a title, a `build_content`
callback that fills a `DialogContainer` with fields, an `on_outcome`
handler, and button labels. `ModalController` runs the lifecycle:

    Closed --open()--> Open --submit | destructive | cancel--> Closed

While open, focus is trapped among the dialog's own elements, the page
behind is hidden from assistive technology, and on close focus returns to
whatever held it before `open()`.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Protocol

from flashdeck.core.log_manager import logger


class Outcome(str, Enum):
    SUBMIT = "submit"
    DESTRUCTIVE = "destructive"
    CANCEL = "cancel"


# --- ELEMENTS ---

@dataclass(eq=False)
class Element:
    """Anything that can sit in the focus order of a page or dialog."""
    name: str
    label: str = ""
    focusable: bool = True
    disabled: bool = False

    @property
    def can_focus(self) -> bool:
        return self.focusable and not self.disabled


@dataclass(eq=False)
class TextField(Element):
    value: str = ""
    placeholder: str = ""
    required: bool = False


@dataclass(eq=False)
class Paragraph(Element):
    text: str = ""
    focusable: bool = False


@dataclass(eq=False)
class DialogButton(Element):
    outcome: Outcome = Outcome.CANCEL


class DialogContainer:
    """The content area handed to `build_content`."""

    def __init__(self):
        self.elements: List[Element] = []

    def add(self, element: Element) -> Element:
        self.elements.append(element)
        return element

    def add_text_field(self, name: str, label: str, value: str = "", placeholder: str = "", required: bool = False) -> TextField:
        return self.add(TextField(name=name, label=label, value=value, placeholder=placeholder, required=required))

    def add_paragraph(self, text: str) -> Paragraph:
        return self.add(Paragraph(name=f"p{len(self.elements)}", text=text))

    @property
    def text_fields(self) -> List[TextField]:
        return [e for e in self.elements if isinstance(e, TextField)]

    def values(self) -> Dict[str, str]:
        return {f.name: f.value for f in self.text_fields}


@dataclass
class DialogSpec:
    title: str
    build_content: Callable[[DialogContainer], Optional[Element]]
    on_outcome: Callable[[Outcome, Dict[str, str]], None]
    submit_label: str = "OK"
    cancel_label: str = "Cancel"
    destructive_label: Optional[str] = None


# --- FOCUS ---

class FocusTracker:
    """
    Page-level focus and assistive-technology visibility of the background.
    The page layer keeps `active` in sync with the real focused element.
    """

    def __init__(self):
        self.active: Optional[Element] = None
        self.background_hidden: bool = False

    def focus(self, element: Optional[Element]):
        self.active = element


class DialogView(Protocol):
    """Rendering hook for an open dialog."""

    def show(self, dialog: "OpenDialog") -> None: ...

    def focus(self, element: Element) -> None: ...

    def hide(self) -> None: ...


@dataclass(eq=False)
class OpenDialog:
    spec: DialogSpec
    container: DialogContainer
    buttons: List[DialogButton]
    restore_to: Optional[Element]
    initial_focus: Optional[Element] = None

    @property
    def focus_order(self) -> List[Element]:
        return [e for e in self.container.elements if e.can_focus] + [b for b in self.buttons if b.can_focus]

    def button(self, outcome: Outcome) -> Optional[DialogButton]:
        return next((b for b in self.buttons if b.outcome == outcome), None)

    def owns(self, element: Optional[Element]) -> bool:
        return element is not None and (element in self.container.elements or element in self.buttons)


# --- CONTROLLER ---

class ModalController:
    """
    Owns the (single) open dialog. Opening while another dialog is open
    cancels the existing one first.
    """

    def __init__(self, focus: FocusTracker, view: Optional[DialogView] = None):
        self.focus = focus
        self.view = view
        self.current: Optional[OpenDialog] = None

    @property
    def is_open(self) -> bool:
        return self.current is not None

    def open(self, spec: DialogSpec) -> OpenDialog:
        if self.current is not None:
            logger.debug(f"Opening '{spec.title}' cancels '{self.current.spec.title}'")
            self.close(Outcome.CANCEL)

        restore_to = self.focus.active
        container = DialogContainer()
        target = spec.build_content(container)

        buttons = [DialogButton(name="cancel", label=spec.cancel_label, outcome=Outcome.CANCEL)]
        if spec.destructive_label:
            buttons.append(DialogButton(name="destructive", label=spec.destructive_label, outcome=Outcome.DESTRUCTIVE))
        buttons.append(DialogButton(name="submit", label=spec.submit_label, outcome=Outcome.SUBMIT))

        dialog = OpenDialog(spec=spec, container=container, buttons=buttons, restore_to=restore_to)
        dialog.initial_focus = self._initial_focus(dialog, target)
        self.current = dialog

        self.focus.background_hidden = True
        if self.view:
            self.view.show(dialog)
        self._move_focus(dialog.initial_focus)
        return dialog

    def close(self, outcome: Outcome):
        """Closes the open dialog, restores focus, then reports `outcome`."""
        dialog = self.current
        if dialog is None:
            return
        self.current = None

        if self.view:
            self.view.hide()
        self.focus.background_hidden = False
        self.focus.focus(dialog.restore_to)

        dialog.spec.on_outcome(outcome, dialog.container.values())

    # --- INPUT ---

    def handle_key(self, key: str, shift: bool = False) -> bool:
        """
        Keyboard input while open. Returns True when the key was consumed;
        every key is consumed while a dialog is open.
        """
        dialog = self.current
        if dialog is None:
            return False

        if key == "Escape":
            self.close(Outcome.CANCEL)
        elif key == "Tab":
            self._cycle_focus(dialog, backwards=shift)
        elif key == "Enter":
            active = self.focus.active
            if isinstance(active, DialogButton) and dialog.owns(active):
                self.close(active.outcome)
            elif isinstance(active, TextField):
                self.close(Outcome.SUBMIT)
        return True

    def activate(self, element: Element):
        """Pointer activation of an element inside the dialog."""
        dialog = self.current
        if dialog is None or not dialog.owns(element) or element.disabled:
            return
        if isinstance(element, DialogButton):
            self.close(element.outcome)
        elif element.can_focus:
            self._move_focus(element)

    def click_outside(self):
        """A click on the overlay, outside the dialog body."""
        if self.current is not None:
            self.close(Outcome.CANCEL)

    # --- FOCUS HELPERS ---

    @staticmethod
    def _initial_focus(dialog: OpenDialog, target: Optional[Element]) -> Optional[Element]:
        if target is not None and dialog.owns(target) and target.can_focus:
            return target
        content = [e for e in dialog.container.elements if e.can_focus]
        if content:
            return content[0]
        return dialog.button(Outcome.SUBMIT)

    def _cycle_focus(self, dialog: OpenDialog, backwards: bool):
        order = dialog.focus_order
        if not order:
            return
        active = self.focus.active
        if active in order:
            idx = order.index(active)
            idx = (idx - 1) % len(order) if backwards else (idx + 1) % len(order)
        else:
            idx = len(order) - 1 if backwards else 0
        self._move_focus(order[idx])

    def _move_focus(self, element: Optional[Element]):
        self.focus.focus(element)
        if self.view and element is not None:
            self.view.focus(element)
