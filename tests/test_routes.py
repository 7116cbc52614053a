"""
Tests for the recurring API routes.

Drives the FastAPI app through httpx with the engine dependency overridden
to use an in-memory provider.
"""

import pytest
import pytest_asyncio
from datetime import date

from httpx import ASGITransport, AsyncClient

from ledgerflow.engines.pipeline import RecurringEngine, get_engine
from ledgerflow.main import app
from ledgerflow.services.matching import EntryMatcher

from conftest import USER_ID, make_obligation


@pytest_asyncio.fixture
async def client(provider):
    """HTTP client bound to an engine pinned to 2024-01-20."""
    engine = RecurringEngine(
        provider, matcher=EntryMatcher(fuzzy_enabled=True), today_provider=lambda: date(2024, 1, 20)
    )
    app.dependency_overrides[get_engine] = lambda: engine

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
        yield http

    app.dependency_overrides.clear()


class TestRecurringRoutes:
    """Tests for the /api/recurring endpoints."""

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    @pytest.mark.asyncio
    async def test_open_period(self, client, provider, rent):
        provider.add_obligation(rent)

        response = await client.get("/api/recurring/periods/2024/1", params={"user_id": USER_ID})

        assert response.status_code == 200
        body = response.json()
        assert body["window_start"] == "2024-01-01"
        assert body["obligations"][0]["status"] == "paid"
        assert len(body["created_entry_ids"]) == 1
        assert body["errors"] == []

    @pytest.mark.asyncio
    async def test_open_period_invalid_month(self, client):
        response = await client.get("/api/recurring/periods/2024/13", params={"user_id": USER_ID})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_open_last_month_of_calendar(self, client, provider):
        provider.add_obligation(make_obligation(name="Water", next_due_date=date(9999, 12, 15)))

        response = await client.get("/api/recurring/periods/9999/12", params={"user_id": USER_ID})

        assert response.status_code == 200
        assert response.json()["obligations"][0]["display_due_date"] == "9999-12-15"

    @pytest.mark.asyncio
    async def test_create_and_list(self, client):
        response = await client.post(
            "/api/recurring/obligations",
            params={"user_id": USER_ID},
            json={
                "name": "Internet",
                "amount": "60.00",
                "billing_period": "monthly",
                "next_due_date": "2024-01-28",
                "group": "bill",
            },
        )
        assert response.status_code == 201
        created = response.json()
        assert created["name"] == "Internet"

        listing = await client.get("/api/recurring/obligations", params={"user_id": USER_ID})
        assert [o["id"] for o in listing.json()] == [created["id"]]

    @pytest.mark.asyncio
    async def test_create_rejects_bad_period(self, client):
        response = await client.post(
            "/api/recurring/obligations",
            params={"user_id": USER_ID},
            json={"name": "X", "amount": "5", "billing_period": "daily", "next_due_date": "2024-01-28"},
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_patch_null_clears_notes(self, client, provider, rent):
        provider.add_obligation(rent.model_copy(update={"notes": "paid by standing order"}))

        response = await client.patch(f"/api/recurring/obligations/{rent.id}", json={"notes": None})

        assert response.status_code == 200
        assert response.json()["notes"] is None

        rejected = await client.patch(f"/api/recurring/obligations/{rent.id}", json={"amount": None})
        assert rejected.status_code == 422

    @pytest.mark.asyncio
    async def test_update_unknown_obligation(self, client):
        response = await client.patch("/api/recurring/obligations/rec_missing", json={"name": "New"})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_toggle(self, client, provider, netflix):
        provider.add_obligation(netflix)

        response = await client.post(
            f"/api/recurring/obligations/{netflix.id}/toggle", json={"is_active": False}
        )

        assert response.status_code == 200
        assert response.json()["is_active"] is False
        assert provider.obligations[netflix.id].is_active is False

    @pytest.mark.asyncio
    async def test_pay_future_and_payable(self, client, provider):
        lawn = provider.add_obligation(
            make_obligation(name="Lawn", billing_period="weekly", next_due_date=date(2024, 1, 22))
        )

        payable = await client.get(f"/api/recurring/obligations/{lawn.id}/payable")
        assert [p["due_date"] for p in payable.json()] == ["2024-01-22", "2024-01-29"]

        response = await client.post(f"/api/recurring/obligations/{lawn.id}/pay-future", json={"count": 2})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["new_next_due_date"] == "2024-02-05"
        assert len(body["created_entry_ids"]) == 2

    @pytest.mark.asyncio
    async def test_pay_future_rejects_zero(self, client, provider, netflix):
        provider.add_obligation(netflix)
        response = await client.post(f"/api/recurring/obligations/{netflix.id}/pay-future", json={"count": 0})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_delete(self, client, provider, rent):
        provider.add_obligation(rent)

        response = await client.delete(f"/api/recurring/obligations/{rent.id}")

        assert response.status_code == 200
        assert rent.id not in provider.obligations

        missing = await client.delete(f"/api/recurring/obligations/{rent.id}")
        assert missing.status_code == 404
