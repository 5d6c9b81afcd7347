# main.py
from nicegui import ui, app
import os
from pathlib import Path
from flashdeck.config import STORAGE_SECRET, PORT
from flashdeck.database import init_db

# --- CORE MODULE IMPORTS ---
from flashdeck.core.locale_manager import T
from flashdeck.core.log_manager import logger
import flashdeck.pages.deck_page

# --- PATH & STYLING SETUP ---
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

# Define the path to the assets folder, located in the project root
ASSETS_DIR = os.path.join(PROJECT_ROOT, 'assets')

# Mount the 'assets' directory to be accessible at the '/assets/' URL path
if os.path.exists(ASSETS_DIR):
    app.add_static_files('/assets', ASSETS_DIR)
    ui.add_css(Path(ASSETS_DIR) / 'global.css', shared=True)
else:
    logger.warning(f"Assets directory not found at: {ASSETS_DIR}")


app.on_startup(init_db)


def main():
    ui.run(title=T("app_title"), reload=False, port=PORT, storage_secret=STORAGE_SECRET)


# --- STARTUP ---
if __name__ in {"__main__", "__mp_main__"}:
    main()
