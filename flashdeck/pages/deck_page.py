from nicegui import ui, events

from flashdeck.config import SEED_SAMPLE_DECK
from flashdeck.components.dialog_view import NiceGuiDialogView
from flashdeck.components.modal import FocusTracker, ModalController
from flashdeck.core.locale_manager import T, plural
from flashdeck.core.log_manager import logger
from flashdeck.core.orchestrator import KeyPress, Orchestrator
from flashdeck.core.scheduler import AsyncioScheduler
from flashdeck.models import AppState, Collection, StudyMode, sample_collection
from flashdeck.pages.common import setup_page, create_navbar, notify, relative_time
from flashdeck.services.import_service import export_filename
from flashdeck.services.search_service import highlight
from flashdeck.services.persistence_service import PersistenceService
from flashdeck.services.session_store import SessionStore
from flashdeck.services.storage_service import create_storage

persistence = PersistenceService(create_storage())


def default_collection() -> Collection:
    return sample_collection() if SEED_SAMPLE_DECK else Collection()


@ui.page('/')
def deck_page():
    setup_page()

    # --- STATE & WIRING ---
    state = AppState(persistence.load(default_collection()))
    focus = FocusTracker()
    dialog_view = NiceGuiDialogView()
    modal = ModalController(focus)
    dialog_view.bind(modal)

    store = SessionStore(
        state,
        AsyncioScheduler(),
        persistence,
        on_change=lambda: refresh(),
        on_notice=notify,
    )
    orchestrator = Orchestrator(store, modal, on_notice=notify)
    ui.context.client.on_disconnect(store.dispose)

    # --- HANDLERS ---

    def handle_key(e: events.KeyEventArguments):
        if not e.action.keydown:
            return
        press = KeyPress(
            key=e.key.name,
            ctrl=e.modifiers.ctrl,
            meta=e.modifiers.meta,
            shift=e.modifiers.shift,
            alt=e.modifiers.alt,
        )
        orchestrator.handle_key(press)

    def handle_search(e: events.ValueChangeEventArguments):
        text = e.value or ''
        if text == store.session.search_query and not store.search_pending:
            return
        orchestrator.search_input(text)

    async def handle_upload(e: events.UploadEventArguments):
        try:
            content = await e.file.text()
        except Exception as ex:
            logger.error(f"Failed to read import file: {ex}")
            ui.notify(T("import_read_failed"), type='negative')
            return
        orchestrator.import_text(content)
        upload.reset()

    def handle_export():
        try:
            ui.download.content(store.export_text(), export_filename())
            ui.notify(T("export_success"), type='positive')
        except Exception as ex:
            logger.error(f"Export failed: {ex}")
            ui.notify(T("export_failed"), type='negative')

    def toggle_mode():
        if store.session.mode == StudyMode.STUDY:
            store.exit_study_mode()
        else:
            store.enter_study_mode()

    ui.keyboard(on_key=handle_key)

    create_navbar(
        on_new_deck=orchestrator.open_create_deck,
        on_new_card=orchestrator.open_create_card,
        on_export=handle_export,
    )

    # --- LAYOUT ---

    def render_sidebar():
        """Deck list, totals and save status."""
        decks = store.decks
        sidebar_wrapper.clear()
        with sidebar_wrapper:
            _sidebar_content(decks)

    def _sidebar_content(decks):
        with ui.row().classes('w-full justify-between items-center'):
            ui.label(T("decks")).classes('text-lg font-bold text-gray-200')
            ui.badge(str(len(decks))).props('color=indigo-600')

        if not decks:
            ui.label(T("no_decks")).classes('text-sm italic text-gray-500')

        for deck in decks:
            active = deck.id == store.collection.active_deck_id
            count = len(store.cards(deck.id))
            with ui.row().classes('w-full items-center gap-1 no-wrap'):
                ui.button(deck.name, on_click=lambda _, d=deck.id: orchestrator.select_deck(d)) \
                    .props(f'no-caps align=left {"unelevated color=indigo-7" if active else "flat color=white"}') \
                    .classes('flex-grow truncate')
                ui.badge(str(count)).props('color=grey-8')
                with ui.button(icon='more_vert').props('flat round dense').classes('text-gray-500'):
                    with ui.menu().classes('bg-gray-900 border border-white/10'):
                        ui.menu_item(T("rename"), on_click=lambda _, d=deck.id: orchestrator.open_rename_deck(d))
                        ui.menu_item(T("delete"), on_click=lambda _, d=deck.id: orchestrator.open_delete_deck(d)) \
                            .classes('text-red-400')

        ui.separator().classes('bg-white/20 my-2')
        ui.label(T("total_cards", count=store.total_card_count())).classes('text-xs text-gray-500')
        ui.label(T("last_saved", when=relative_time(store.last_saved))).classes('text-xs text-gray-500')

    def render_main():
        content_wrapper.clear()
        with content_wrapper:
            _main_content()

    def _main_content():
        deck = store.active_deck
        session = store.session
        if deck is None:
            ui.label(T("no_deck_selected")).classes('text-3xl font-extrabold text-gray-500')
            return

        count = len(store.cards(deck.id))
        with ui.row().classes('w-full justify-between items-end'):
            with ui.column().classes('gap-0'):
                ui.label(deck.name).classes('text-3xl font-extrabold text-indigo-300')
                ui.label(T("card_count", count=count, s=plural(count))).classes('text-gray-400')
            ui.button(
                T("browse") if session.mode == StudyMode.STUDY else T("study"),
                icon='close' if session.mode == StudyMode.STUDY else 'school',
                on_click=toggle_mode,
            ).props('flat color=white no-caps')

        ui.label(store.search_summary()).classes('text-xs text-gray-500 font-mono')

        card = store.current_card
        if session.mode == StudyMode.BROWSE:
            render_card_list()
            return

        if count == 0:
            render_empty(T("no_cards_in_deck"), T("create_card_hint"))
            return
        if card is None:
            render_empty(T("no_matches"), T("no_matches_for", query=session.search_query))
            return

        position, total, percent = store.progress()
        with ui.column().classes('w-full gap-1'):
            ui.label(T("progress", position=position, total=total, percent=percent)) \
                .classes('text-xs text-gray-400 font-mono')
            ui.linear_progress(value=percent / 100, show_value=False) \
                .props('size="10px" color="indigo-400" track-color="grey-8" rounded')

        face = card.back if session.flipped else card.front
        with ui.card().classes('w-full min-h-[300px] bg-gray-900 border border-white/20 items-center justify-center cursor-pointer') \
                .on('click', store.toggle_flip) \
                .on('dblclick', orchestrator.edit_current_card):
            ui.markdown(face).classes('text-2xl text-center text-white')

        with ui.row().classes('w-full justify-center gap-4'):
            ui.button(icon='chevron_left', on_click=lambda: store.advance(-1)).props('round flat color=white').tooltip(T("previous"))
            ui.button(T("flip"), on_click=store.toggle_flip).props(f'color=indigo-600 aria-pressed={str(session.flipped).lower()}')
            ui.button(icon='chevron_right', on_click=lambda: store.advance(1)).props('round flat color=white').tooltip(T("next"))
            ui.button(icon='shuffle', on_click=store.shuffle).props('round flat color=white').tooltip(T("shuffle"))

        ui.label(T("card_hint")).classes('text-xs text-gray-500 text-center w-full')

    def render_card_list():
        visible = store.session.filtered
        query = store.session.search_query.strip()
        if not visible:
            render_empty(T("no_cards_in_deck"), T("create_card_hint"))
            return
        with ui.column().classes('w-full gap-2'):
            for card in visible:
                with ui.card().classes('w-full bg-black/40 border border-white/10 cursor-pointer') \
                        .on('dblclick', lambda _, c=card.id: orchestrator.open_edit_card(c)):
                    ui.markdown(highlight(card.front, query)).classes('font-bold text-gray-100')
                    ui.markdown(highlight(card.back, query)).classes('text-sm text-gray-400')

    def render_empty(title: str, message: str):
        with ui.column().classes('w-full items-center justify-center py-12 opacity-50'):
            ui.icon('style', size='4rem').classes('text-gray-600')
            ui.label(title).classes('text-xl text-gray-400 mt-4')
            ui.label(message).classes('text-sm text-gray-500')

    def refresh():
        render_sidebar()
        render_main()
        if (search.value or '') != store.session.search_query and not store.search_pending:
            search.set_value(store.session.search_query)

    with ui.row().classes('w-screen min-h-screen gradient-bg text-white no-wrap items-start'):
        with ui.column().classes('w-72 p-4 gap-2 bg-black/30 min-h-screen'):
            sidebar_wrapper = ui.column().classes('w-full gap-2')
            upload = ui.upload(label=T("import"), on_upload=handle_upload, auto_upload=True) \
                .props('accept=.json flat dark').classes('w-full')

        with ui.column().classes('flex-grow max-w-4xl mx-auto p-6 gap-4'):
            with ui.row().classes('w-full items-center gap-2'):
                search = ui.input(placeholder=T("search_placeholder"), on_change=handle_search) \
                    .props('outlined dark dense clearable').classes('flex-grow')
                ui.button(icon='add_card', on_click=orchestrator.open_create_card).props('flat round color=white') \
                    .tooltip(T("new_card"))
            content_wrapper = ui.column().classes('w-full gap-4')

    refresh()

    logger.info(f"Deck page ready with {len(store.decks)} decks, storage: {persistence.get_info()}")
