import asyncio
import contextlib
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from party_registration.config import config
from party_registration.services.aggregator import summarize
from party_registration.services.errors import ApiUnavailableError
from party_registration.workflow.api_client import RegistrationApiClient

logger = logging.getLogger(__name__)

OFFLINE_MESSAGE = "Server offline or unreachable."


@dataclass(frozen=True)
class OverviewSnapshot:
    count: int
    total_adults: int
    total_kids: int
    registrations: List[Dict[str, Any]] = field(default_factory=list)
    last_updated: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @classmethod
    def from_response(cls, body: Dict[str, Any]) -> "OverviewSnapshot":
        return cls(
            count=body.get("count", 0),
            total_adults=body.get("totalAdults", 0),
            total_kids=body.get("totalKids", 0),
            registrations=list(body.get("registrations") or []),
        )

    def without(self, registration_id: str) -> "OverviewSnapshot":
        """Drop one registration and recompute the totals locally"""
        remaining = [r for r in self.registrations if r.get("id") != registration_id]
        summary = summarize(remaining)
        return replace(
            self,
            count=summary.count,
            total_adults=summary.total_adults,
            total_kids=summary.total_kids,
            registrations=remaining,
            last_updated=datetime.now(timezone.utc),
        )

    def search(self, term: str) -> List[Dict[str, Any]]:
        """Guests whose couple name, phone or email contains ``term``"""
        needle = term.strip().lower()
        if not needle:
            return list(self.registrations)
        return [
            registration
            for registration in self.registrations
            if needle in str(registration.get("coupleName", "")).lower()
            or needle in str(registration.get("phone", ""))
            or needle in str(registration.get("email", "")).lower()
        ]


class OverviewPoller:
    """
    Organizer overview that refreshes on a fixed interval.

    ``start`` launches one background task on the running loop; ``stop``
    cancels it and waits for it to finish, so no refresh outlives the view.
    """

    def __init__(
        self,
        api_client: RegistrationApiClient,
        interval_seconds: Optional[float] = None,
        on_update: Optional[Callable[[OverviewSnapshot], None]] = None,
    ):
        self.api_client = api_client
        self.interval_seconds = (
            interval_seconds
            if interval_seconds is not None
            else config["overview_poll_seconds"]
        )
        self.on_update = on_update
        self.snapshot: Optional[OverviewSnapshot] = None
        self.error: Optional[str] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _publish(self, snapshot: OverviewSnapshot) -> None:
        self.snapshot = snapshot
        self.error = None
        if self.on_update is not None:
            self.on_update(snapshot)

    async def refresh(self) -> Optional[OverviewSnapshot]:
        """Fetch the current registrations once; keeps the last snapshot on failure"""
        try:
            body = await self.api_client.list_registrations()
        except ApiUnavailableError as e:
            logger.warning(f"Overview refresh failed: {e}")
            self.error = OFFLINE_MESSAGE
            return None
        self._publish(OverviewSnapshot.from_response(body))
        return self.snapshot

    async def _run(self) -> None:
        while True:
            await self.refresh()
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def delete(self, registration_id: str) -> Dict[str, Any]:
        """
        Delete a registration and update the snapshot without a refetch.

        Raises:
            NotFoundError: The registration no longer exists
            ApiUnavailableError: The server could not be reached
        """
        removed = await self.api_client.delete_registration(registration_id)
        if self.snapshot is not None:
            self._publish(self.snapshot.without(registration_id))
        return removed
