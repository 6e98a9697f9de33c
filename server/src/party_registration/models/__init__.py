"""Data models for the party registration service"""

from party_registration.models.draft import RegistrationDraft
from party_registration.models.registration import (
    Registration,
    RegistrationCreate,
    RegistrationReplace,
)

__all__ = [
    "Registration",
    "RegistrationCreate",
    "RegistrationReplace",
    "RegistrationDraft",
]
