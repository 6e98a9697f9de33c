"""Pydantic Registration model and API request bodies"""

import math
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Annotated, Any, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

# Amounts stay exact in memory but travel as JSON numbers, like the web client sends them
Amount = Annotated[
    Decimal, PlainSerializer(float, return_type=float, when_used="json")
]

ADULTS_PER_REGISTRATION = 2

# Wire names the client may never write
PROTECTED_FIELDS = frozenset({"id", "createdAt", "updatedAt"})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def coerce_kids(value: Any) -> int:
    """Lenient integer parse: missing or unparsable values count as zero kids.

    Negative results are returned as-is so callers can reject them.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    if isinstance(value, str):
        text = value.strip()
        sign = ""
        if text[:1] and text[:1] in "+-":
            sign, text = text[0], text[1:]
        digits = ""
        for char in text:
            if not char.isdigit():
                break
            digits += char
        return int(sign + digits) if digits else 0
    return 0


def parse_amount(value: Any) -> Optional[Decimal]:
    """Return ``value`` as a non-negative Decimal in cents, or None if it is not one"""
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).strip())
        if not amount.is_finite() or amount < 0:
            return None
        # Values too large to carry cents are treated like any other bad input
        return amount.quantize(Decimal("0.01"))
    except (InvalidOperation, ValueError):
        return None


def default_amount(number_of_kids: int, base: Any, per_kid: Any) -> Decimal:
    """Payment due for one couple: ``base + kids * per_kid``

    Raises:
        decimal.InvalidOperation: If the total is too large to carry cents
    """
    total = Decimal(str(base)) + Decimal(str(per_kid)) * max(number_of_kids, 0)
    return total.quantize(Decimal("0.01"))


def compose_couple_name(
    husband_name: Optional[str], wife_name: Optional[str], last_name: Optional[str]
) -> str:
    """Build "Husband & Wife Last" from whichever parts were supplied"""
    first_names = " & ".join(
        part.strip() for part in (husband_name, wife_name) if part and part.strip()
    )
    last = last_name.strip() if last_name else ""
    return " ".join(part for part in (first_names, last) if part)


class Registration(BaseModel):
    """One committed couple's attendance record.

    Unknown keys written through PATCH are kept as extras and round-trip
    through the data file untouched.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    id: str
    couple_name: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    number_of_kids: int = Field(default=0, ge=0)
    # Records written before amounts were collected have none
    amount: Optional[Amount] = Field(default=None, ge=0)
    husband_name: Optional[str] = None
    wife_name: Optional[str] = None
    last_name: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    def to_json(self) -> dict[str, Any]:
        """Wire/file representation with camelCase keys"""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def summary(self) -> dict[str, Any]:
        """Subset returned by the create endpoint"""
        data = self.to_json()
        return {
            key: data[key]
            for key in ("id", "coupleName", "phone", "numberOfKids", "createdAt")
        }


# Attribute names that differ from their wire name. Written as raw keys they
# would be kept as extras sitting next to (and shadowing) the real field.
ATTRIBUTE_ONLY_NAMES = frozenset(
    name for name in Registration.model_fields if to_camel(name) != name
)


class RegistrationCreate(BaseModel):
    """Body of POST /api/register; checked by the store, not by pydantic"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    couple_name: Optional[str] = None
    husband_name: Optional[str] = None
    wife_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    number_of_kids: Any = None
    amount: Any = None


class RegistrationReplace(BaseModel):
    """Body of PUT /api/users/{id}: known fields only, all optional"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    couple_name: Optional[str] = None
    phone: Optional[str] = None
    number_of_kids: Any = None
    amount: Any = None
    husband_name: Optional[str] = None
    wife_name: Optional[str] = None
    last_name: Optional[str] = None

    def changes(self) -> dict[str, Any]:
        """Supplied fields keyed by wire name, minus blank required text"""
        data = self.model_dump(by_alias=True, exclude_unset=True)
        for key in ("coupleName", "phone"):
            value = data.get(key)
            if value is None or not str(value).strip():
                data.pop(key, None)
        return data
