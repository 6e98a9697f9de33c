"""Error types shared by the store, the API routers and the workflow.

None of these depend on FastAPI; ``main`` maps them onto HTTP responses.
"""

from __future__ import annotations

from typing import Optional


class RegistrationError(Exception):
    """Base class for all registration errors"""


class ValidationError(RegistrationError):
    """Client-correctable input problem (missing name/phone, negative kids).

    ``errors`` maps a field name to its message so a form can render each
    one next to the offending input.
    """

    def __init__(self, message: str, errors: Optional[dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.errors = dict(errors or {})


class NotFoundError(RegistrationError):
    """Operation on an id that is not in the collection"""

    def __init__(self, registration_id: str):
        super().__init__(f"Registration {registration_id!r} not found")
        self.registration_id = registration_id


class PersistenceError(RegistrationError):
    """The backing file could not be read or written; nothing was changed"""


class IdGenerationError(PersistenceError):
    """Every generated id collided with an existing one"""


class CorruptionError(RegistrationError):
    """The backing file exists but does not hold a valid collection.

    Never surfaced to users: the store recovers by resetting.
    """


class InvalidTransitionError(RegistrationError):
    """A workflow event is not allowed in the current state"""

    def __init__(self, state: str, event: str, reason: Optional[str] = None):
        message = f"Cannot apply {event} in state {state}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.state = state
        self.event = event


class GateClosedError(InvalidTransitionError):
    """Commit attempted before the payment gate opened"""


class ApiUnavailableError(RegistrationError):
    """Network failure or server-side error talking to the API; retryable"""
