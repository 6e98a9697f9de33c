"""Registration id generation"""

import secrets
import string
import threading
import time
from typing import Callable

_ALPHABET = string.digits + string.ascii_lowercase


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("base36 encoding requires a non-negative integer")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_ALPHABET[remainder])
    return "".join(reversed(digits))


class IdGenerator:
    """
    Produces ids of the form ``<base36 milliseconds><random base36 suffix>``.

    The millisecond component never goes backwards within a process, even if
    the wall clock does; the random suffix separates ids minted in the same
    millisecond. Collisions are still checked by the store.
    """

    def __init__(
        self,
        random_length: int = 11,
        clock: Callable[[], float] = time.time,
    ):
        self.random_length = random_length
        self.clock = clock
        self._last_millis = 0
        self._lock = threading.Lock()

    def _next_millis(self) -> int:
        with self._lock:
            millis = max(int(self.clock() * 1000), self._last_millis)
            self._last_millis = millis
            return millis

    def __call__(self) -> str:
        suffix = "".join(
            secrets.choice(_ALPHABET) for _ in range(self.random_length)
        )
        return to_base36(self._next_millis()) + suffix
