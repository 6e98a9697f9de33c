import logging
from typing import Optional

import redis

from party_registration.workflow.session_store import SessionStore

logger = logging.getLogger(__name__)

LANGUAGE_KEY = "preferredLanguage"
SUPPORTED_LANGUAGES = ("en", "ru")
DEFAULT_LANGUAGE = "en"


class LanguagePreference:
    """Remembers the visitor's display language in session storage.

    Storage outages only cost the preference, never the page, so Redis
    errors are logged and treated as "no preference".
    """

    def __init__(self, session_store: SessionStore):
        self.session_store = session_store

    def load(self) -> Optional[str]:
        try:
            stored = self.session_store.get(LANGUAGE_KEY)
        except redis.RedisError as e:
            logger.warning(f"Could not load language preference: {e}")
            return None
        return stored if stored in SUPPORTED_LANGUAGES else None

    def current(self) -> str:
        return self.load() or DEFAULT_LANGUAGE

    def save(self, language: str) -> None:
        if language not in SUPPORTED_LANGUAGES:
            raise ValueError(f"Unsupported language: {language!r}")
        try:
            self.session_store.set(LANGUAGE_KEY, language)
        except redis.RedisError as e:
            logger.warning(f"Could not save language preference: {e}")

    def toggle(self) -> str:
        language = "ru" if self.current() == "en" else "en"
        self.save(language)
        return language
