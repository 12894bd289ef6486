"""Unit tests for the referral ledger."""

import pytest

from src.domains.referrals.config import ReferralConfig
from src.domains.referrals.ledger import ReferralLedger
from src.domains.registry.models import PortfolioPosition
from src.shared.errors import InvalidReferral, NotFoundError, ValidationError
from tests.conftest import ALICE, BOB, CAROL, PASTOR_ID, RAMEN_ID, SUADERO_ID


@pytest.fixture
def ledger(seeded_store) -> ReferralLedger:
    return ReferralLedger(seeded_store)


class TestRecordReferral:
    @pytest.mark.asyncio
    async def test_records_attribution_both_ways(self, ledger, seeded_store):
        outcome = await ledger.record_referral(ALICE, BOB, PASTOR_ID)

        assert outcome.recorded is True
        assert outcome.effective_referrer == ALICE
        bob_position = await seeded_store.get_position(BOB, PASTOR_ID)
        alice_position = await seeded_store.get_position(ALICE, PASTOR_ID)
        assert bob_position.referred_by == ALICE
        assert alice_position.referred_to == [BOB]

    @pytest.mark.asyncio
    async def test_idempotent(self, ledger, seeded_store):
        await ledger.record_referral(ALICE, BOB, PASTOR_ID)
        second = await ledger.record_referral(ALICE, BOB, PASTOR_ID)

        assert second.recorded is False
        assert second.effective_referrer == ALICE
        alice_position = await seeded_store.get_position(ALICE, PASTOR_ID)
        assert alice_position.referred_to.count(BOB) == 1
        assert (await seeded_store.get_position(BOB, PASTOR_ID)).referred_by == ALICE
        assert len(await seeded_store.list_referrals(referred_fid=BOB)) == 1

    @pytest.mark.asyncio
    async def test_first_referrer_wins(self, ledger, seeded_store):
        seeded_store.positions[(CAROL, PASTOR_ID)] = PortfolioPosition(dish=PASTOR_ID, quantity=1)

        await ledger.record_referral(ALICE, BOB, PASTOR_ID)
        outcome = await ledger.record_referral(CAROL, BOB, PASTOR_ID)

        assert outcome.recorded is False
        assert outcome.effective_referrer == ALICE
        assert (await seeded_store.get_position(BOB, PASTOR_ID)).referred_by == ALICE
        assert (await seeded_store.get_position(CAROL, PASTOR_ID)).referred_to == []

    @pytest.mark.asyncio
    async def test_does_not_touch_market_fields(self, ledger, seeded_store):
        before = await seeded_store.get_dish(PASTOR_ID)
        await ledger.record_referral(ALICE, BOB, PASTOR_ID)
        after = await seeded_store.get_dish(PASTOR_ID)
        assert after == before

    @pytest.mark.asyncio
    async def test_keeps_existing_referee_quantity(self, ledger, seeded_store):
        seeded_store.positions[(BOB, PASTOR_ID)] = PortfolioPosition(dish=PASTOR_ID, quantity=7)
        await ledger.record_referral(ALICE, BOB, PASTOR_ID)
        assert (await seeded_store.get_position(BOB, PASTOR_ID)).quantity == 7


class TestRejections:
    @pytest.mark.asyncio
    async def test_self_referral(self, ledger):
        with pytest.raises(InvalidReferral):
            await ledger.record_referral(ALICE, ALICE, PASTOR_ID)

    @pytest.mark.asyncio
    async def test_referrer_without_position(self, ledger, seeded_store):
        with pytest.raises(InvalidReferral):
            await ledger.record_referral(CAROL, BOB, PASTOR_ID)
        assert await seeded_store.get_position(BOB, PASTOR_ID) is None

    @pytest.mark.asyncio
    async def test_reverse_referral_rejected(self, ledger, seeded_store):
        await ledger.record_referral(ALICE, BOB, PASTOR_ID)
        seeded_store.positions[(BOB, PASTOR_ID)].quantity = 2
        # Bob now holds a position referred by Alice; he cannot refer her back
        with pytest.raises(InvalidReferral):
            await ledger.record_referral(BOB, ALICE, PASTOR_ID)

    @pytest.mark.asyncio
    async def test_referred_but_not_holding_cannot_refer(self, ledger, seeded_store):
        await ledger.record_referral(ALICE, CAROL, PASTOR_ID)
        assert (await seeded_store.get_position(CAROL, PASTOR_ID)).quantity == 0

        with pytest.raises(InvalidReferral):
            await ledger.record_referral(CAROL, BOB, PASTOR_ID)
        assert await seeded_store.get_position(BOB, PASTOR_ID) is None

    @pytest.mark.asyncio
    async def test_unknown_referee(self, ledger):
        with pytest.raises(NotFoundError):
            await ledger.record_referral(ALICE, 999, PASTOR_ID)

    @pytest.mark.asyncio
    async def test_empty_dish_id(self, ledger):
        with pytest.raises(ValidationError):
            await ledger.record_referral(ALICE, BOB, "")


class TestLookups:
    @pytest.mark.asyncio
    async def test_get_referrer(self, ledger):
        await ledger.record_referral(ALICE, BOB, PASTOR_ID)
        assert await ledger.get_referrer(BOB, PASTOR_ID) == ALICE

    @pytest.mark.asyncio
    async def test_get_referrer_organic(self, ledger):
        assert await ledger.get_referrer(ALICE, PASTOR_ID) is None
        assert await ledger.get_referrer(CAROL, SUADERO_ID) is None

    @pytest.mark.asyncio
    async def test_get_referrer_falls_back_to_position(self, ledger, seeded_store):
        seeded_store.positions[(CAROL, RAMEN_ID)] = PortfolioPosition(
            dish=RAMEN_ID, quantity=1, referred_by=BOB
        )
        assert await ledger.get_referrer(CAROL, RAMEN_ID) == BOB

    @pytest.mark.asyncio
    async def test_referral_listings(self, ledger):
        await ledger.record_referral(ALICE, BOB, PASTOR_ID)
        await ledger.record_referral(ALICE, CAROL, PASTOR_ID)

        by_alice = await ledger.referrals_by_referrer(ALICE)
        assert {item.referred_fid for item in by_alice} == {BOB, CAROL}
        for_carol = await ledger.referrals_for_user(CAROL)
        assert [item.referrer_fid for item in for_carol] == [ALICE]
        assert await ledger.referrals_by_referrer(CAROL) == []


class TestReferralChain:
    @pytest.mark.asyncio
    async def test_walks_upward(self, ledger, seeded_store):
        await ledger.record_referral(ALICE, BOB, PASTOR_ID)
        seeded_store.positions[(BOB, PASTOR_ID)].quantity = 1
        await ledger.record_referral(BOB, CAROL, PASTOR_ID)

        chain = await ledger.referral_chain(CAROL, PASTOR_ID)
        assert [(link.fid, link.level) for link in chain] == [(BOB, 1), (ALICE, 2)]

    @pytest.mark.asyncio
    async def test_respects_depth_limit(self, seeded_store):
        ledger = ReferralLedger(seeded_store, ReferralConfig(max_chain_depth=1))
        await ledger.record_referral(ALICE, BOB, PASTOR_ID)
        seeded_store.positions[(BOB, PASTOR_ID)].quantity = 1
        await ledger.record_referral(BOB, CAROL, PASTOR_ID)

        chain = await ledger.referral_chain(CAROL, PASTOR_ID)
        assert [link.fid for link in chain] == [BOB]

    @pytest.mark.asyncio
    async def test_stops_on_loop(self, ledger, seeded_store):
        seeded_store.positions[(ALICE, PASTOR_ID)].referred_by = CAROL
        seeded_store.positions[(CAROL, PASTOR_ID)] = PortfolioPosition(
            dish=PASTOR_ID, quantity=1, referred_by=ALICE
        )
        chain = await ledger.referral_chain(ALICE, PASTOR_ID)
        assert [link.fid for link in chain] == [CAROL]
