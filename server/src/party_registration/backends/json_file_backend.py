import json
import logging
import os
import shutil
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List

from party_registration.services.errors import CorruptionError, PersistenceError

logger = logging.getLogger(__name__)


class JsonFileBackend:
    """
    Whole-file JSON persistence for a single ordered array of records.

    Writes go to a temporary sibling file that is fsynced and then moved over
    the target with ``os.replace``, so a reader sees either the previous or
    the next collection, never a partial one. This class does no locking of
    its own; callers serialize writers.
    """

    def __init__(self, path: str | os.PathLike):
        """
        Args:
            path: Location of the JSON array file (created on first use)
        """
        self.path = Path(path)

    def ensure_exists(self) -> None:
        """Create the data directory and an empty collection if missing"""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Cannot create data directory {self.path.parent}: {e}")
            raise PersistenceError(f"Cannot create data directory: {e}") from e
        if not self.path.exists():
            self.write([])
            logger.info(f"Initialized empty registration file at {self.path}")

    def read(self) -> List[dict[str, Any]]:
        """
        Load the collection.

        Returns:
            List of raw record dictionaries (empty if the file is missing)

        Raises:
            CorruptionError: If the file is not a JSON array of objects
            PersistenceError: If the file cannot be read
        """
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.error(f"Error reading registrations file {self.path}: {e}")
            raise PersistenceError(f"Failed to read registrations: {e}") from e

        try:
            records = json.loads(raw)
        except json.JSONDecodeError as e:
            raise CorruptionError(f"Invalid JSON in {self.path}: {e}") from e

        if not isinstance(records, list) or not all(
            isinstance(record, dict) for record in records
        ):
            raise CorruptionError(f"{self.path} does not hold an array of records")
        return records

    def write(self, records: List[dict[str, Any]]) -> None:
        """
        Replace the whole collection atomically.

        Raises:
            PersistenceError: If serialization or any filesystem step fails
        """
        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(records, handle, indent=2)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Error writing registrations file {self.path}: {e}")
            raise PersistenceError(f"Failed to save registrations: {e}") from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.warning(f"Could not remove temporary file {tmp_name}")

    def quarantine(self) -> Path | None:
        """
        Copy the current (corrupted) file aside before it is overwritten.

        Returns:
            Path of the copy, or None if nothing could be copied
        """
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        target = self.path.with_name(f"{self.path.name}.corrupt-{stamp}")
        try:
            shutil.copy2(self.path, target)
        except OSError as e:
            logger.error(f"Could not preserve corrupted file {self.path}: {e}")
            return None
        return target
