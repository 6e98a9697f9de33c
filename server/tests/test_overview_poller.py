"""Tests for the organizer overview"""

import asyncio

import httpx
import pytest

from party_registration.services.errors import ApiUnavailableError, NotFoundError
from party_registration.workflow.overview import (
    OFFLINE_MESSAGE,
    OverviewPoller,
    OverviewSnapshot,
)


def _seed(registration_store):
    return [
        registration_store.create(fields)
        for fields in (
            {"coupleName": "Ivan & Olga", "phone": "555-1111", "numberOfKids": 2},
            {"coupleName": "John & Mary", "phone": "555-2222", "numberOfKids": 0},
            {"coupleName": "Petr & Anna", "phone": "555-3333", "numberOfKids": 1},
        )
    ]


@pytest.mark.asyncio
class TestOverviewPoller:
    async def test_refresh_loads_totals(self, api_client, registration_store):
        _seed(registration_store)
        poller = OverviewPoller(api_client, interval_seconds=30)

        snapshot = await poller.refresh()

        assert (snapshot.count, snapshot.total_adults, snapshot.total_kids) == (3, 6, 3)
        assert poller.error is None

    async def test_polls_until_stopped(self, api_client, registration_store):
        updates = []
        poller = OverviewPoller(
            api_client, interval_seconds=0.02, on_update=updates.append
        )

        poller.start()
        await asyncio.sleep(0.05)
        registration_store.create({"coupleName": "Late", "phone": "1"})
        await asyncio.sleep(0.1)
        await poller.stop()

        assert not poller.running
        assert len(updates) >= 2
        assert updates[0].count == 0
        assert updates[-1].count == 1

        seen = len(updates)
        await asyncio.sleep(0.1)
        assert len(updates) == seen

    async def test_start_is_idempotent(self, api_client):
        poller = OverviewPoller(api_client, interval_seconds=10)

        poller.start()
        first_task = poller._task
        poller.start()

        assert poller._task is first_task
        await poller.stop()
        assert first_task.cancelled()

    async def test_stop_without_start(self, api_client):
        await OverviewPoller(api_client).stop()

    async def test_offline_server_keeps_last_snapshot(
        self, api_client, make_failing_api_client, registration_store
    ):
        _seed(registration_store)
        poller = OverviewPoller(api_client, interval_seconds=30)
        await poller.refresh()

        def unreachable(request):
            raise httpx.ConnectError("connection refused", request=request)

        poller.api_client = make_failing_api_client(unreachable)
        result = await poller.refresh()

        assert result is None
        assert poller.error == OFFLINE_MESSAGE
        assert poller.snapshot.count == 3

    async def test_delete_recomputes_locally(self, api_client, registration_store):
        ivan, _, _ = _seed(registration_store)
        poller = OverviewPoller(api_client, interval_seconds=30)
        before = await poller.refresh()

        removed = await poller.delete(ivan.id)

        assert removed["id"] == ivan.id
        assert (poller.snapshot.count, poller.snapshot.total_kids) == (2, 1)
        assert poller.snapshot.total_adults == 4
        assert poller.snapshot.last_updated >= before.last_updated
        assert len(registration_store.list()) == 2

    async def test_delete_unknown_keeps_snapshot(self, api_client, registration_store):
        _seed(registration_store)
        poller = OverviewPoller(api_client, interval_seconds=30)
        await poller.refresh()

        with pytest.raises(NotFoundError):
            await poller.delete("missing")

        assert poller.snapshot.count == 3


def test_search_matches_name_phone_and_email():
    snapshot = OverviewSnapshot(
        count=3,
        total_adults=6,
        total_kids=0,
        registrations=[
            {"id": "1", "coupleName": "Ivan & Olga", "phone": "555-1111"},
            {"id": "2", "coupleName": "John & Mary", "phone": "555-2222"},
            {
                "id": "3",
                "coupleName": "Petr & Anna",
                "phone": "555-3333",
                "email": "Petr@Example.com",
            },
        ],
    )

    assert [r["id"] for r in snapshot.search("olga")] == ["1"]
    assert [r["id"] for r in snapshot.search("2222")] == ["2"]
    assert [r["id"] for r in snapshot.search("petr@example")] == ["3"]
    assert len(snapshot.search("  ")) == 3
    assert snapshot.search("nobody") == []


@pytest.mark.asyncio
async def test_delete_without_registration_in_response(
    api_client, make_failing_api_client, registration_store
):
    _seed(registration_store)
    poller = OverviewPoller(api_client, interval_seconds=30)
    await poller.refresh()

    def bare_success(request):
        return httpx.Response(200, json={"success": True})

    poller.api_client = make_failing_api_client(bare_success)

    with pytest.raises(ApiUnavailableError):
        await poller.delete("anything")

    assert poller.snapshot.count == 3
