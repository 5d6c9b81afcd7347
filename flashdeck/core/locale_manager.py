# core/locale_manager.py

import json
from typing import Dict, Any, List, Optional
import importlib.resources as pkg_resources
from flashdeck.core.log_manager import logger

# The reference to the directory where locale files (e.g., en.json) are stored.
I18N_PACKAGE_REF = pkg_resources.files('flashdeck.i18n')

FALLBACK_LOCALE = 'en'


class LocaleManager:
    """
    Loads every locale file shipped in flashdeck/i18n and resolves
    translation keys, falling back to English and then to the key itself.
    """

    def __init__(self, locale: str = FALLBACK_LOCALE):
        self._all_translations: Dict[str, Dict[str, str]] = {}
        self.locale = locale

        # 1. Load fallback first for guaranteed coverage
        self._fallback_translations = self._load_translations(FALLBACK_LOCALE)
        self._all_translations[FALLBACK_LOCALE] = self._fallback_translations

        # 2. Discover the remaining locales
        try:
            for path in I18N_PACKAGE_REF.iterdir():
                if path.name.endswith('.json'):
                    locale_code = path.name[:-len('.json')]
                    if locale_code not in self._all_translations:
                        self._all_translations[locale_code] = self._load_translations(locale_code)
        except OSError as e:
            logger.error(f"Error during locale discovery: {e}")

        logger.debug(f"LocaleManager initialized. Supported: {list(self._all_translations.keys())}. Fallback: {FALLBACK_LOCALE}")

    def _load_translations(self, locale: str) -> Dict[str, str]:
        file_name = f'{locale}.json'
        try:
            with (I18N_PACKAGE_REF / file_name).open('r', encoding='utf-8') as f:
                data = json.load(f)
                if not isinstance(data, dict):
                    raise TypeError("Translation file root must be a dictionary.")
                return data
        except FileNotFoundError:
            logger.warning(f"Translation resource not found for locale '{locale}' ({file_name}).")
            return {}
        except (json.JSONDecodeError, TypeError) as e:
            logger.error(f"Invalid translation file for locale '{locale}': {e}")
            return {}

    @property
    def supported_locales(self) -> List[str]:
        return list(self._all_translations.keys())

    def T(self, key: str, locale: Optional[str] = None, **kwargs: Any) -> str:
        """
        Translates `key` into `locale` (default: the manager's locale),
        interpolating `kwargs` with str.format.
        """
        current_locale = locale or self.locale
        translated_string = self._all_translations.get(current_locale, {}).get(key)

        if translated_string is None:
            translated_string = self._fallback_translations.get(key)
            if translated_string is None:
                logger.warning(f"Missing translation key '{key}' in both current and fallback locales.")
                return f"!! {key} !!"

        if kwargs:
            try:
                return translated_string.format(**kwargs)
            except (KeyError, IndexError, ValueError) as e:
                logger.error(f"Formatting failed for key '{key}' in locale '{current_locale}': {e}")
                return translated_string

        return translated_string


def plural(count: int) -> str:
    return "" if count == 1 else "s"


global_locale_manager = LocaleManager()

T = global_locale_manager.T
