"""Integration tests for referral endpoints."""

import pytest
from httpx import ASGITransport, AsyncClient

from src.db.database import get_attribution_store, get_store
from src.main import app
from tests.conftest import ALICE, BOB, CAROL, PASTOR_ID, override_get_store, override_value

pytestmark = pytest.mark.integration

BASE_URL = "http://test"


@pytest.fixture
def api_store(seeded_store, attribution_store):
    app.dependency_overrides[get_store] = override_get_store(seeded_store)
    app.dependency_overrides[get_attribution_store] = override_value(attribution_store)
    yield seeded_store
    app.dependency_overrides.clear()


def _client():
    transport = ASGITransport(app=app)
    return AsyncClient(transport=transport, base_url=BASE_URL)


def _referral(referrer: int, referee: int, dish_id: str = PASTOR_ID) -> dict:
    return {"referrer_fid": referrer, "referee_fid": referee, "dish_id": dish_id}


class TestRecordReferral:
    @pytest.mark.asyncio
    async def test_record_and_lookup(self, api_store):
        async with _client() as client:
            recorded = await client.post("/api/v1/referrals", json=_referral(ALICE, CAROL))
            lookup = await client.get(
                "/api/v1/referrals", params={"referred_fid": CAROL, "dish_id": PASTOR_ID}
            )

        assert recorded.status_code == 200
        assert recorded.json()["recorded"] is True
        assert lookup.json()["referrer_fid"] == ALICE

    @pytest.mark.asyncio
    async def test_repeat_is_noop(self, api_store):
        async with _client() as client:
            await client.post("/api/v1/referrals", json=_referral(ALICE, CAROL))
            again = await client.post("/api/v1/referrals", json=_referral(ALICE, CAROL))

        assert again.status_code == 200
        assert again.json()["recorded"] is False
        alice_position = await api_store.get_position(ALICE, PASTOR_ID)
        assert alice_position.referred_to == [CAROL]

    @pytest.mark.asyncio
    async def test_self_referral(self, api_store):
        async with _client() as client:
            response = await client.post("/api/v1/referrals", json=_referral(ALICE, ALICE))
        assert response.status_code == 422
        assert response.json()["error"] == "invalid_referral"

    @pytest.mark.asyncio
    async def test_referrer_without_position(self, api_store):
        async with _client() as client:
            response = await client.post("/api/v1/referrals", json=_referral(BOB, CAROL))
        assert response.status_code == 422
        assert response.json()["error"] == "invalid_referral"

    @pytest.mark.asyncio
    async def test_organic_lookup(self, api_store):
        async with _client() as client:
            response = await client.get(
                "/api/v1/referrals", params={"referred_fid": ALICE, "dish_id": PASTOR_ID}
            )
        assert response.json()["referrer_fid"] is None

    @pytest.mark.asyncio
    async def test_listings_and_chain(self, api_store):
        async with _client() as client:
            await client.post("/api/v1/referrals", json=_referral(ALICE, BOB))
            await client.post(
                f"/api/v1/dishes/{PASTOR_ID}/acquisitions", json={"fid": BOB, "quantity": 1}
            )
            await client.post("/api/v1/referrals", json=_referral(BOB, CAROL))
            by_alice = await client.get(f"/api/v1/referrals/by-referrer/{ALICE}")
            for_carol = await client.get(f"/api/v1/referrals/for-user/{CAROL}")
            chain = await client.get(
                f"/api/v1/referrals/chain/{CAROL}", params={"dish_id": PASTOR_ID}
            )

        assert by_alice.json()["total"] == 1
        assert for_carol.json()["items"][0]["referrer_fid"] == BOB
        assert [link["fid"] for link in chain.json()["chain"]] == [BOB, ALICE]


class TestAttribution:
    @pytest.mark.asyncio
    async def test_url_code_then_stored(self, api_store):
        headers = {"X-Client-Id": "browser-1"}
        async with _client() as client:
            first = await client.get(
                "/api/v1/referrals/attribution", params={"ref": str(ALICE)}, headers=headers
            )
            later = await client.get("/api/v1/referrals/attribution", headers=headers)
            override = await client.get(
                "/api/v1/referrals/attribution", params={"ref": str(BOB)}, headers=headers
            )

        assert first.json() == {"client_id": "browser-1", "referrer_fid": ALICE, "source": "url"}
        assert later.json()["source"] == "stored"
        assert later.json()["referrer_fid"] == ALICE
        assert override.json()["referrer_fid"] == BOB

    @pytest.mark.asyncio
    async def test_client_header_required(self, api_store):
        async with _client() as client:
            response = await client.get("/api/v1/referrals/attribution")
        assert response.status_code == 422


class TestReferredButNotHolding:
    @pytest.mark.asyncio
    async def test_cannot_refer_onward(self, api_store):
        async with _client() as client:
            await client.post("/api/v1/referrals", json=_referral(ALICE, CAROL))
            onward = await client.post("/api/v1/referrals", json=_referral(CAROL, BOB))

        assert onward.status_code == 422
        assert onward.json()["error"] == "invalid_referral"
        assert (await api_store.get_position(BOB, PASTOR_ID)) is None
