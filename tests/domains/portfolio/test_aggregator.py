"""Unit tests for portfolio aggregation."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.domains.portfolio.aggregator import PortfolioAggregator, compute_portfolio
from src.domains.registry.models import PortfolioPosition
from src.shared.errors import UpstreamUnavailable
from tests.conftest import ALICE, BOB, CAROL, PASTOR_ID, RAMEN_ID, SUADERO_ID, make_dish


class TestComputePortfolio:
    def test_totals(self):
        positions = [
            PortfolioPosition(dish="a", quantity=10),
            PortfolioPosition(dish="b", quantity=4),
        ]
        dishes = [
            make_dish("a", "A", current_price=2.0),
            make_dish("b", "B", current_price=0.5),
        ]

        portfolio = compute_portfolio(1, positions, dishes)

        assert portfolio.total_value == pytest.approx(22.0)
        assert portfolio.total_invested == pytest.approx(1.4)
        assert portfolio.total_return == pytest.approx(20.6)
        assert portfolio.unresolved == []

    def test_per_position_return(self):
        portfolio = compute_portfolio(
            1,
            [PortfolioPosition(dish="a", quantity=10)],
            [make_dish("a", "A", current_price=2.0)],
        )
        assert portfolio.dishes[0].return_ == pytest.approx(19.0)
        assert portfolio.dishes[0].model_dump(by_alias=True)["return"] == pytest.approx(19.0)

    def test_missing_dish_is_excluded_not_fatal(self):
        positions = [
            PortfolioPosition(dish="a", quantity=10),
            PortfolioPosition(dish="gone", quantity=100),
        ]
        portfolio = compute_portfolio(1, positions, [make_dish("a", "A", current_price=2.0)])

        assert portfolio.total_value == pytest.approx(20.0)
        assert [p.dish for p in portfolio.dishes] == ["a"]
        assert portfolio.unresolved == ["gone"]

    def test_all_missing(self):
        portfolio = compute_portfolio(1, [PortfolioPosition(dish="gone", quantity=1)], [])
        assert portfolio.total_value == 0.0
        assert portfolio.total_return == 0.0
        assert portfolio.unresolved == ["gone"]

    def test_empty(self):
        portfolio = compute_portfolio(1, [], [])
        assert portfolio.total_value == 0.0
        assert portfolio.dishes == []

    def test_zero_quantity_position_contributes_nothing(self):
        portfolio = compute_portfolio(
            1,
            [PortfolioPosition(dish="a", quantity=0)],
            [make_dish("a", "A", current_price=5.0)],
        )
        assert portfolio.total_value == 0.0
        assert len(portfolio.dishes) == 1


class TestPortfolioAggregator:
    @pytest.mark.asyncio
    async def test_portfolio_for_user(self, seeded_store):
        portfolio = await PortfolioAggregator(seeded_store).portfolio_for(ALICE)
        assert portfolio.total_value == pytest.approx(20.0)
        assert portfolio.total_invested == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_no_positions(self, seeded_store):
        portfolio = await PortfolioAggregator(seeded_store).portfolio_for(CAROL)
        assert portfolio.total_value == 0.0
        assert portfolio.dishes == []

    @pytest.mark.asyncio
    async def test_deleted_dish_reported_unresolved(self, seeded_store):
        seeded_store.positions[(BOB, SUADERO_ID)] = PortfolioPosition(dish=SUADERO_ID, quantity=2)
        del seeded_store.dishes[SUADERO_ID]

        portfolio = await PortfolioAggregator(seeded_store).portfolio_for(BOB)

        assert portfolio.total_value == pytest.approx(4.0)
        assert portfolio.unresolved == [SUADERO_ID]

    @pytest.mark.asyncio
    async def test_bulk_read_failure_falls_back_per_dish(self, seeded_store):
        seeded_store.positions[(BOB, PASTOR_ID)] = PortfolioPosition(dish=PASTOR_ID, quantity=1)
        seeded_store.get_dishes = AsyncMock(side_effect=UpstreamUnavailable("down"))
        real_get_dish = seeded_store.get_dish

        async def flaky_get_dish(dish_id):
            if dish_id == PASTOR_ID:
                raise UpstreamUnavailable("down")
            return await real_get_dish(dish_id)

        seeded_store.get_dish = flaky_get_dish

        portfolio = await PortfolioAggregator(seeded_store).portfolio_for(BOB)

        assert [p.dish for p in portfolio.dishes] == [RAMEN_ID]
        assert portfolio.unresolved == [PASTOR_ID]
        assert portfolio.total_value == pytest.approx(4.0)

    @pytest.mark.asyncio
    async def test_live_price_from_chain(self, seeded_store):
        reader = MagicMock()
        reader.configured = True
        reader.current_price = AsyncMock(return_value=3.0)

        portfolio = await PortfolioAggregator(seeded_store, reader).portfolio_for(ALICE)

        assert portfolio.total_value == pytest.approx(30.0)
        reader.current_price.assert_awaited_once_with(PASTOR_ID)

    @pytest.mark.asyncio
    async def test_chain_failure_keeps_stored_price(self, seeded_store):
        reader = MagicMock()
        reader.configured = True
        reader.current_price = AsyncMock(side_effect=UpstreamUnavailable("rpc down"))

        portfolio = await PortfolioAggregator(seeded_store, reader).portfolio_for(ALICE)

        assert portfolio.total_value == pytest.approx(20.0)

    @pytest.mark.asyncio
    async def test_unconfigured_reader_is_skipped(self, seeded_store, offline_chain_reader):
        portfolio = await PortfolioAggregator(
            seeded_store, offline_chain_reader
        ).portfolio_for(ALICE)
        assert portfolio.total_value == pytest.approx(20.0)
