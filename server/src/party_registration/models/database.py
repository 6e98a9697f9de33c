"""Process-wide registration store dependency"""

import logging
import threading

from party_registration.backends.json_file_backend import JsonFileBackend
from party_registration.config import config
from party_registration.services.registration_store import RegistrationStore

logger = logging.getLogger(__name__)

_store_lock = threading.Lock()
_registration_store = None


def get_registration_store() -> RegistrationStore:
    """Get or create the singleton store backed by ``config["data_file"]``.

    All request handlers must share one instance: its lock is what keeps
    concurrent writes from losing updates.
    """
    global _registration_store
    if _registration_store is None:
        with _store_lock:
            if _registration_store is None:
                _registration_store = RegistrationStore(
                    JsonFileBackend(config["data_file"]),
                    base_amount=config["base_amount"],
                    per_kid_amount=config["per_kid_amount"],
                )
                logger.info(f"Using registration file {config['data_file']}")
    return _registration_store
