import secrets
import dotenv
import os
dotenv.load_dotenv("flashdeck.env")

def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default

def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}

STORAGE_SECRET = os.getenv("STORAGE_SECRET")
if not STORAGE_SECRET:
    STORAGE_SECRET = secrets.token_hex(32)

APP_VERSION = os.getenv("APP_VERSION", "1.0.0")

# Durable store
STORAGE_KEY = os.getenv("STORAGE_KEY", "flashcards_app_v1")
SCHEMA_VERSION = _env_int("SCHEMA_VERSION", 1)
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "sqlite")  # 'sqlite' | 'memory'
DB_FILE = os.getenv("DB_FILE", "db/flashdeck.db")
SEED_SAMPLE_DECK = _env_bool("SEED_SAMPLE_DECK", True)

# Timers (milliseconds)
AUTO_SAVE_DELAY_MS = _env_int("AUTO_SAVE_DELAY_MS", 1000)
SEARCH_DEBOUNCE_MS = _env_int("SEARCH_DEBOUNCE_MS", 300)
MESSAGE_TIMEOUT_MS = _env_int("MESSAGE_TIMEOUT_MS", 3000)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE")

PORT = _env_int("PORT", 8080)
