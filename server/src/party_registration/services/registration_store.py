"""Durable registration collection and its access operations"""

import logging
import threading
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, List, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from party_registration.backends.json_file_backend import JsonFileBackend
from party_registration.models.registration import (
    ATTRIBUTE_ONLY_NAMES,
    PROTECTED_FIELDS,
    Registration,
    coerce_kids,
    compose_couple_name,
    default_amount,
    parse_amount,
    utcnow,
)
from party_registration.services.errors import (
    CorruptionError,
    IdGenerationError,
    NotFoundError,
    ValidationError,
)
from party_registration.services.id_generator import IdGenerator

logger = logging.getLogger(__name__)

REQUIRED_FIELDS_MESSAGE = "Couple name and phone are required"
NEGATIVE_KIDS_MESSAGE = "Number of kids cannot be negative"
TOO_MANY_KIDS_MESSAGE = "Number of kids is too large"
INVALID_AMOUNT_MESSAGE = "Amount must be a non-negative number"


def _text(value: Any) -> str:
    return str(value).strip() if value is not None else ""


class RegistrationStore:
    """
    File-backed store of Registration records.

    Every mutation runs read-entire-file -> change in memory -> write-entire-file
    while holding one lock, so concurrent create/update/delete calls are
    strictly serialized. Reads take no lock: the backend replaces the file
    atomically, so each read parses a complete snapshot.
    """

    MAX_ID_ATTEMPTS = 5

    def __init__(
        self,
        backend: JsonFileBackend,
        base_amount: Any = "100.00",
        per_kid_amount: Any = "25.00",
        id_generator: Optional[Callable[[], str]] = None,
        clock: Callable[[], Any] = utcnow,
    ):
        """
        Args:
            backend: Whole-file persistence for the collection
            base_amount: Amount owed by a couple with no kids
            per_kid_amount: Amount added per kid
            id_generator: Callable returning a fresh id candidate
            clock: Returns the timestamp used for createdAt/updatedAt
        """
        self.backend = backend
        self.base_amount = Decimal(str(base_amount))
        self.per_kid_amount = Decimal(str(per_kid_amount))
        self.id_generator = id_generator or IdGenerator()
        self.clock = clock
        # Re-entrant: corruption recovery can run inside a mutation
        self._write_lock = threading.RLock()
        # Ids handed out by this process, including ones since deleted
        self._issued_ids: set[str] = set()
        self.backend.ensure_exists()

    # ------------------------------------------------------------------ reads

    def list(self) -> List[Registration]:
        """Return a fresh snapshot of all registrations in insertion order"""
        return self._load()

    def get(self, registration_id: str) -> Registration:
        """
        Get a registration by id.

        Raises:
            NotFoundError: If no registration has this id
        """
        for registration in self._load():
            if registration.id == registration_id:
                return registration
        raise NotFoundError(registration_id)

    # -------------------------------------------------------------- mutations

    def create(self, fields: Mapping[str, Any]) -> Registration:
        """
        Create and persist a new registration.

        Args:
            fields: Wire-named fields. ``coupleName`` may be omitted when
                ``husbandName``/``wifeName``/``lastName`` are given.

        Returns:
            Registration: The stored record

        Raises:
            ValidationError: Missing couple name or phone, or negative kids
            PersistenceError: If the collection could not be saved
        """
        husband_name = _text(fields.get("husbandName")) or None
        wife_name = _text(fields.get("wifeName")) or None
        last_name = _text(fields.get("lastName")) or None
        couple_name = _text(fields.get("coupleName")) or compose_couple_name(
            husband_name, wife_name, last_name
        )
        phone = _text(fields.get("phone"))
        number_of_kids = coerce_kids(fields.get("numberOfKids"))

        errors = {}
        if not couple_name:
            errors["coupleName"] = "Couple name is required"
        if not phone:
            errors["phone"] = "Phone is required"
        if errors:
            raise ValidationError(REQUIRED_FIELDS_MESSAGE, errors)
        self._check_kids(number_of_kids)

        amount = self._resolve_amount(fields.get("amount"), number_of_kids)

        with self._write_lock:
            registrations = self._load()
            registration_id = self._new_id({r.id for r in registrations})
            now = self.clock()
            registration = Registration(
                id=registration_id,
                couple_name=couple_name,
                phone=phone,
                number_of_kids=number_of_kids,
                amount=amount,
                husband_name=husband_name,
                wife_name=wife_name,
                last_name=last_name,
                created_at=now,
                updated_at=now,
            )
            registrations.append(registration)
            self._save(registrations)
            self._issued_ids.add(registration_id)

        logger.info(f"Created registration {registration.id} ({number_of_kids} kids)")
        return registration

    def update(self, registration_id: str, changes: Mapping[str, Any]) -> Registration:
        """
        Apply a partial update and refresh ``updatedAt``.

        Keys are wire names. ``id``, ``createdAt`` and ``updatedAt`` are
        ignored, as are blank ``coupleName``/``phone`` values and attribute
        spellings such as ``created_at``. Keys that are not registration
        fields are stored alongside the record.

        Returns:
            Registration: The updated record

        Raises:
            NotFoundError: If no registration has this id
            ValidationError: Negative kids or an unusable value
            PersistenceError: If the collection could not be saved
        """
        with self._write_lock:
            registrations = self._load()
            index = self._index_of(registrations, registration_id)
            data = registrations[index].to_json()

            for key, value in changes.items():
                if key in PROTECTED_FIELDS:
                    continue
                if key in ATTRIBUTE_ONLY_NAMES:
                    logger.info(
                        f"Ignoring {key!r} on {registration_id}; use its camelCase name"
                    )
                    continue
                if key in ("coupleName", "phone"):
                    value = _text(value)
                    if not value:
                        continue
                elif key == "numberOfKids":
                    value = coerce_kids(value)
                    self._check_kids(value)
                elif key == "amount":
                    value = parse_amount(value)
                    if value is None:
                        raise ValidationError(
                            INVALID_AMOUNT_MESSAGE, {"amount": INVALID_AMOUNT_MESSAGE}
                        )
                data[key] = value

            data["updatedAt"] = self.clock()
            try:
                updated = Registration.model_validate(data)
            except PydanticValidationError as e:
                raise ValidationError(f"Invalid registration update: {e}") from e

            registrations[index] = updated
            self._save(registrations)

        logger.info(f"Updated registration {registration_id}")
        return updated

    def delete(self, registration_id: str) -> Registration:
        """
        Remove a registration permanently.

        Returns:
            Registration: The removed record

        Raises:
            NotFoundError: If no registration has this id
            PersistenceError: If the collection could not be saved
        """
        with self._write_lock:
            registrations = self._load()
            index = self._index_of(registrations, registration_id)
            removed = registrations.pop(index)
            self._save(registrations)

        logger.info(f"Deleted registration {registration_id}")
        return removed

    # ---------------------------------------------------------------- helpers

    def _check_kids(self, number_of_kids: int) -> None:
        if number_of_kids < 0:
            raise ValidationError(
                NEGATIVE_KIDS_MESSAGE, {"numberOfKids": NEGATIVE_KIDS_MESSAGE}
            )
        # The amount owed for this many kids must still be representable
        try:
            default_amount(number_of_kids, self.base_amount, self.per_kid_amount)
        except InvalidOperation as e:
            raise ValidationError(
                TOO_MANY_KIDS_MESSAGE, {"numberOfKids": TOO_MANY_KIDS_MESSAGE}
            ) from e

    def _resolve_amount(self, supplied: Any, number_of_kids: int) -> Decimal:
        expected = default_amount(
            number_of_kids, self.base_amount, self.per_kid_amount
        )
        amount = parse_amount(supplied)
        if amount is None:
            return expected
        if amount < expected:
            logger.warning(
                f"Client amount {amount} is below {expected} expected for "
                f"{number_of_kids} kids; accepting as supplied"
            )
        return amount

    def _new_id(self, existing: set[str]) -> str:
        for attempt in range(1, self.MAX_ID_ATTEMPTS + 1):
            candidate = self.id_generator()
            if candidate not in existing and candidate not in self._issued_ids:
                return candidate
            logger.error(f"Generated id {candidate} collided (attempt {attempt})")
        raise IdGenerationError(
            f"Could not generate a unique id after {self.MAX_ID_ATTEMPTS} attempts"
        )

    @staticmethod
    def _index_of(registrations: List[Registration], registration_id: str) -> int:
        for index, registration in enumerate(registrations):
            if registration.id == registration_id:
                return index
        raise NotFoundError(registration_id)

    def _load(self) -> List[Registration]:
        try:
            return self._parse(self.backend.read())
        except CorruptionError as e:
            return self._recover(e)

    @staticmethod
    def _parse(records: List[dict]) -> List[Registration]:
        try:
            return [Registration.model_validate(record) for record in records]
        except PydanticValidationError as e:
            raise CorruptionError(f"Invalid registration record: {e}") from e

    def _recover(self, error: CorruptionError) -> List[Registration]:
        with self._write_lock:
            # Another caller may have reset the file while we waited
            try:
                return self._parse(self.backend.read())
            except CorruptionError:
                pass

            preserved = self.backend.quarantine()
            logger.error(
                f"REGISTRATION DATA CORRUPTED in {self.backend.path}: {error}. "
                f"Resetting to an empty collection; original bytes preserved at "
                f"{preserved or 'nowhere (copy failed)'}"
            )
            self.backend.write([])
            return []

    def _save(self, registrations: List[Registration]) -> None:
        self.backend.write([registration.to_json() for registration in registrations])
