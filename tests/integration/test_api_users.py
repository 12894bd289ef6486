"""Integration tests for user, portfolio, tier and wishlist endpoints."""

import pytest
from httpx import ASGITransport, AsyncClient

from src.db.database import get_chain_reader, get_store
from src.domains.registry.models import User
from src.main import app
from tests.conftest import (
    ALICE,
    BOB,
    CAROL,
    PASTOR_ID,
    RAMEN_ID,
    SUADERO_ID,
    override_get_store,
    override_value,
)

pytestmark = pytest.mark.integration

BASE_URL = "http://test"


@pytest.fixture
def api_store(seeded_store, offline_chain_reader):
    app.dependency_overrides[get_store] = override_get_store(seeded_store)
    app.dependency_overrides[get_chain_reader] = override_value(offline_chain_reader)
    yield seeded_store
    app.dependency_overrides.clear()


def _client():
    transport = ASGITransport(app=app)
    return AsyncClient(transport=transport, base_url=BASE_URL)


class TestUserSync:
    @pytest.mark.asyncio
    async def test_sync_creates_then_updates(self, api_store):
        async with _client() as client:
            first = await client.post(
                "/api/v1/users/sync", json={"fid": 55, "username": "dana"}
            )
            second = await client.post(
                "/api/v1/users/sync", json={"fid": 55, "username": "dana.eth"}
            )

        assert first.status_code == 200
        assert first.json()["is_new_user"] is True
        assert second.json()["is_new_user"] is False
        assert second.json()["user"]["username"] == "dana.eth"

    @pytest.mark.asyncio
    async def test_sync_rejects_invalid_fid(self, api_store):
        async with _client() as client:
            response = await client.post("/api/v1/users/sync", json={"fid": 0})
        assert response.status_code == 422


class TestGetUser:
    @pytest.mark.asyncio
    async def test_get_user_with_portfolio(self, api_store):
        async with _client() as client:
            response = await client.get(f"/api/v1/users/{ALICE}")

        assert response.status_code == 200
        data = response.json()
        assert data["username"] == "alice"
        assert data["portfolio"]["total_value"] == pytest.approx(20.0)
        assert data["portfolio"]["dishes"][0]["return"] == pytest.approx(19.0)

    @pytest.mark.asyncio
    async def test_legacy_string_fid(self, api_store):
        api_store.put_user(User(fid="4242", username="legacy"))
        async with _client() as client:
            response = await client.get("/api/v1/users/4242")
        assert response.status_code == 200
        assert response.json()["username"] == "legacy"

    @pytest.mark.asyncio
    async def test_non_numeric_fid(self, api_store):
        async with _client() as client:
            response = await client.get("/api/v1/users/alice")
        assert response.status_code == 400
        assert response.json()["error"] == "bad_request"

    @pytest.mark.asyncio
    async def test_unknown_user(self, api_store):
        async with _client() as client:
            response = await client.get("/api/v1/users/999")
        assert response.status_code == 404
        assert response.json()["message"] == "User not found"
        assert "X-Request-ID" in response.headers


class TestPortfolioAndTier:
    @pytest.mark.asyncio
    async def test_portfolio(self, api_store):
        async with _client() as client:
            response = await client.get(f"/api/v1/users/{BOB}/portfolio")
        assert response.status_code == 200
        data = response.json()
        assert data["total_value"] == pytest.approx(4.0)
        assert [d["dish"] for d in data["dishes"]] == [RAMEN_ID]

    @pytest.mark.asyncio
    async def test_portfolio_survives_deleted_dish(self, api_store):
        del api_store.dishes[RAMEN_ID]
        async with _client() as client:
            response = await client.get(f"/api/v1/users/{BOB}/portfolio")
        assert response.status_code == 200
        assert response.json()["unresolved"] == [RAMEN_ID]

    @pytest.mark.asyncio
    async def test_tier_for_creator(self, api_store):
        async with _client() as client:
            response = await client.get(f"/api/v1/users/{ALICE}/tier")

        assert response.status_code == 200
        data = response.json()
        assert data["tier"] == {"name": "Taste Investor", "badge_class": "badge-mint"}
        assert data["signals"]["dishes_created"] == 2
        assert data["signals"]["dishes_backed"] == 1

    @pytest.mark.asyncio
    async def test_tier_for_newcomer(self, api_store):
        async with _client() as client:
            response = await client.get(f"/api/v1/users/{CAROL}/tier")
        assert response.json()["tier"]["name"] == "New Taster"


class TestWishlist:
    @pytest.mark.asyncio
    async def test_get_cleans_orphans(self, api_store):
        del api_store.dishes[SUADERO_ID]
        async with _client() as client:
            response = await client.get(f"/api/v1/users/{BOB}/wishlist")

        assert response.status_code == 200
        assert [i["dish"] for i in response.json()["wishlist"]] == [PASTOR_ID, RAMEN_ID]

    @pytest.mark.asyncio
    async def test_add_and_remove(self, api_store):
        async with _client() as client:
            added = await client.post(
                f"/api/v1/users/{CAROL}/wishlist",
                json={"dish_id": PASTOR_ID, "referrer": ALICE},
            )
            removed = await client.delete(
                f"/api/v1/users/{CAROL}/wishlist", params={"dish_id": PASTOR_ID}
            )

        assert added.json() == {"success": True, "added": True}
        assert removed.json() == {"success": True, "removed": 1}

    @pytest.mark.asyncio
    async def test_add_for_unknown_user(self, api_store):
        async with _client() as client:
            response = await client.post(
                "/api/v1/users/999/wishlist", json={"dish_id": PASTOR_ID}
            )
        assert response.status_code == 404
