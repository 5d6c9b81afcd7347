from typing import Dict, Optional
from nicegui import ui, events

from flashdeck.components.modal import (
    DialogButton,
    Element,
    ModalController,
    OpenDialog,
    Outcome,
    Paragraph,
    TextField,
)
from flashdeck.core.log_manager import logger

BUTTON_PROPS = {
    Outcome.CANCEL: 'flat color=white',
    Outcome.DESTRUCTIVE: 'flat color=red',
    Outcome.SUBMIT: 'raised color=indigo-600',
}


class NiceGuiDialogView:
    """
    Renders the controller's open dialog as a Quasar dialog. Quasar keeps
    browser focus inside the dialog; closing it with Escape or a backdrop
    click reports `cancel` to the controller.
    """

    def __init__(self):
        self.controller: Optional[ModalController] = None
        self._dialog: Optional[ui.dialog] = None
        self._widgets: Dict[int, ui.element] = {}

    def bind(self, controller: ModalController):
        self.controller = controller
        controller.view = self

    def show(self, dialog: OpenDialog) -> None:
        self._widgets = {}
        with ui.dialog() as self._dialog, ui.card().classes('bg-gray-900 border border-white/10 min-w-[24rem]'):
            ui.label(dialog.spec.title).classes('text-xl font-bold text-white')

            for element in dialog.container.elements:
                self._render_element(element)

            with ui.row().classes('w-full justify-end gap-4 mt-6'):
                for button in dialog.buttons:
                    self._widgets[id(button)] = ui.button(
                        button.label,
                        on_click=lambda _, b=button: self._activate(b),
                    ).props(BUTTON_PROPS[button.outcome])

        self._dialog.on('hide', self._on_hide)
        self._dialog.open()

    def _render_element(self, element: Element):
        if isinstance(element, TextField):
            field = ui.input(label=element.label, value=element.value, placeholder=element.placeholder) \
                .props('outlined dark autocomplete=off').classes('w-full')
            field.on_value_change(lambda e, f=element: setattr(f, 'value', e.value or ''))
            field.on('keydown.enter', lambda _, f=element: self._submit_from(f))
            field.on('focus', lambda _, f=element: self._track_focus(f))
            self._widgets[id(element)] = field
        elif isinstance(element, Paragraph):
            ui.label(element.text).classes('text-gray-400')

    def focus(self, element: Element) -> None:
        widget = self._widgets.get(id(element))
        if widget is not None:
            widget.run_method('focus')

    def hide(self) -> None:
        dialog, self._dialog = self._dialog, None
        if dialog is not None:
            dialog.close()
            dialog.delete()

    # --- EVENTS ---

    def _activate(self, button: DialogButton):
        if self.controller:
            self.controller.activate(button)

    def _submit_from(self, field: TextField):
        if self.controller and self.controller.is_open:
            self.controller.focus.focus(field)
            self.controller.handle_key('Enter')

    def _track_focus(self, element: Element):
        if self.controller and self.controller.is_open:
            self.controller.focus.focus(element)

    def _on_hide(self, _: events.GenericEventArguments):
        # Escape or backdrop click closed the Quasar dialog
        if self.controller and self.controller.is_open and self._dialog is not None:
            logger.debug("Dialog dismissed from the browser")
            # the controller calls hide(), which deletes the element
            self.controller.click_outside()
