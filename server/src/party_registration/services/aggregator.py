"""Attendance statistics derived from a registration snapshot"""

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Union

from party_registration.models.registration import ADULTS_PER_REGISTRATION, Registration


@dataclass(frozen=True)
class RegistrationSummary:
    count: int
    total_adults: int
    total_kids: int

    def to_json(self) -> dict[str, int]:
        return {
            "count": self.count,
            "totalAdults": self.total_adults,
            "totalKids": self.total_kids,
        }


def _kids(registration: Union[Registration, Mapping[str, Any]]) -> int:
    if isinstance(registration, Registration):
        return registration.number_of_kids
    return int(registration.get("numberOfKids") or 0)


def summarize(
    registrations: Iterable[Union[Registration, Mapping[str, Any]]],
) -> RegistrationSummary:
    """
    Count couples, adults and kids.

    Accepts store records or their JSON form (as the overview receives them).
    Pure: the result describes only the snapshot passed in.
    """
    count = 0
    total_kids = 0
    for registration in registrations:
        count += 1
        total_kids += _kids(registration)
    return RegistrationSummary(
        count=count,
        total_adults=count * ADULTS_PER_REGISTRATION,
        total_kids=total_kids,
    )
