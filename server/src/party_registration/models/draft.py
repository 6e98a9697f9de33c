"""Client-held registration draft"""

import re
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from party_registration.models.registration import (
    Amount,
    compose_couple_name,
    default_amount,
)

PHONE_PATTERN = re.compile(r"^[\d\s\-+()]+$")


class RegistrationDraft(BaseModel):
    """An uncommitted registration owned by one client session.

    Immutable: workflow transitions produce new drafts with ``model_copy``.
    Serialized with camelCase keys so the session storage entry matches what
    the web client keeps under ``registrationData``.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    couple_name: str = ""
    phone: str = ""
    number_of_kids: int = 0
    amount: Amount = Decimal("0")
    husband_name: Optional[str] = None
    wife_name: Optional[str] = None
    last_name: Optional[str] = None
    payment_acknowledged: bool = False
    # Epoch seconds at which the dwell timer lets commit through
    gate_opens_at: Optional[float] = None
    payment_link: Optional[str] = Field(default=None, alias="cashAppLink")

    @classmethod
    def from_form(
        cls,
        *,
        couple_name: str = "",
        phone: str = "",
        number_of_kids: int = 0,
        base_amount: Any = "100.00",
        per_kid_amount: Any = "25.00",
        husband_name: Optional[str] = None,
        wife_name: Optional[str] = None,
        last_name: Optional[str] = None,
        payment_link: Optional[str] = None,
    ) -> "RegistrationDraft":
        """Build a draft from intake input, pricing it with the kids formula"""
        if not couple_name.strip():
            couple_name = compose_couple_name(husband_name, wife_name, last_name)
        return cls(
            couple_name=couple_name,
            phone=phone,
            number_of_kids=number_of_kids,
            amount=default_amount(number_of_kids, base_amount, per_kid_amount),
            husband_name=husband_name,
            wife_name=wife_name,
            last_name=last_name,
            payment_link=payment_link,
        )

    def validation_errors(self) -> dict[str, str]:
        """Per-field messages for inline display; empty when the draft is valid"""
        errors = {}
        if not self.couple_name.strip():
            errors["coupleName"] = "Couple name is required"
        if not self.phone.strip():
            errors["phone"] = "Phone is required"
        elif not PHONE_PATTERN.match(self.phone):
            errors["phone"] = "Please enter a valid phone number"
        if self.number_of_kids < 0:
            errors["numberOfKids"] = "Number of kids cannot be negative"
        return errors

    def registration_payload(self) -> dict[str, Any]:
        """Body for POST /api/register"""
        return self.model_dump(
            mode="json",
            by_alias=True,
            include={
                "couple_name",
                "phone",
                "number_of_kids",
                "amount",
                "husband_name",
                "wife_name",
                "last_name",
            },
            exclude_none=True,
        )

    def to_storage(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
