from datetime import datetime, timezone
from typing import Callable, Optional
from nicegui import ui
from flashdeck.config import MESSAGE_TIMEOUT_MS
from flashdeck.core.locale_manager import T
from flashdeck.schemas import Notice

# Notice severity -> Quasar notification type
NOTIFY_TYPES = {
    'info': 'info',
    'success': 'positive',
    'warning': 'warning',
    'error': 'negative',
}


def setup_page():
    ui.dark_mode() # Enable dark mode globally. For now, we keep it here.
    ui.add_head_html("<style>html, #c3 { padding: 0 !important;}</style>") # Remove default padding from html and #c3


def notify(notice: Notice):
    ui.notify(
        notice['message'],
        type=NOTIFY_TYPES.get(notice['severity'], 'info'),
        timeout=MESSAGE_TIMEOUT_MS,
        position='bottom',
    )


def relative_time(moment: Optional[datetime], now: Optional[datetime] = None) -> str:
    if moment is None:
        return T("never")
    now = now or datetime.now(timezone.utc)
    seconds = (now - moment).total_seconds()
    if seconds < 60:
        return T("just_now")
    if seconds < 3600:
        return T("minutes_ago", count=int(seconds // 60))
    if seconds < 86400:
        return T("hours_ago", count=int(seconds // 3600))
    return T("days_ago", count=int(seconds // 86400))


def create_navbar(on_new_deck: Callable, on_new_card: Callable, on_export: Callable):
    with ui.header().classes('w-full bg-black text-white justify-between items-center px-6 py-2 shadow-md'):

        with ui.row().classes('items-center gap-4'):
            ui.icon('style').classes('text-2xl')
            ui.label(T("app_title")).classes('text-xl font-bold tracking-tight')

        with ui.row().classes('items-center gap-2'):
            ui.button(T("new_deck"), icon='add', on_click=on_new_deck).props('flat color=white no-caps') \
                .tooltip('Ctrl+N')
            ui.button(T("new_card"), icon='add_card', on_click=on_new_card).props('flat color=white no-caps') \
                .tooltip('Ctrl+K')
            ui.button(icon='download', on_click=on_export).props('flat round color=white') \
                .tooltip(T("export"))
