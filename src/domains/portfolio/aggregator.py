"""Portfolio aggregation.

Derives a user's portfolio metrics from raw positions and the current state
of each held dish. Cost basis is the dish's starting price: no per-position
entry price is tracked.

A position whose dish state cannot be loaded (deleted, or the read failed)
is left out of the totals and reported in ``Portfolio.unresolved``; it never
fails the whole computation.
"""

from collections.abc import Iterable

import structlog

from src.chain.reader import DishChainReader
from src.domains.registry.models import Dish, Portfolio, PortfolioPosition, User
from src.domains.registry.store import DishStore
from src.shared.errors import UpstreamUnavailable

logger = structlog.get_logger()


def compute_portfolio(
    user_fid: int,
    positions: Iterable[PortfolioPosition],
    dish_states: Iterable[Dish],
) -> Portfolio:
    """Aggregate positions against current dish states.

    ``total_value = sum(q * current_price)``,
    ``total_invested = sum(q * starting_price)``,
    ``total_return = total_value - total_invested``.
    """
    states = {d.dish_id: d for d in dish_states}

    total_value = 0.0
    total_invested = 0.0
    resolved: list[PortfolioPosition] = []
    unresolved: list[str] = []

    for position in positions:
        dish = states.get(position.dish)
        if dish is None:
            unresolved.append(position.dish)
            continue

        value = position.quantity * dish.current_price
        invested = position.quantity * dish.starting_price
        total_value += value
        total_invested += invested
        resolved.append(position.model_copy(update={"return_": value - invested}))

    if unresolved:
        logger.warning(
            "portfolio_positions_unresolved",
            fid=user_fid,
            count=len(unresolved),
            dish_ids=unresolved,
        )

    return Portfolio(
        total_value=total_value,
        total_return=total_value - total_invested,
        total_invested=total_invested,
        dishes=resolved,
        unresolved=unresolved,
    )


class PortfolioAggregator:
    """Loads positions and dish states for a user and aggregates them.

    With a chain reader, current prices are refreshed from the contract;
    a failed chain read falls back to the stored price.
    """

    def __init__(
        self, store: DishStore, chain_reader: DishChainReader | None = None
    ) -> None:
        self._store = store
        self._chain_reader = chain_reader

    async def portfolio_for(self, fid: int) -> Portfolio:
        positions = await self._store.list_positions(fid)
        if not positions:
            return Portfolio()

        dishes = await self._load_dishes([p.dish for p in positions])
        if self._chain_reader is not None and self._chain_reader.configured:
            dishes = [await self._with_live_price(d) for d in dishes]

        return compute_portfolio(fid, positions, dishes)

    async def with_portfolio(self, user: User, fid: int) -> User:
        """Copy of ``user`` with its portfolio freshly aggregated."""
        portfolio = await self.portfolio_for(fid)
        return user.model_copy(update={"portfolio": portfolio})

    async def _load_dishes(self, dish_ids: list[str]) -> list[Dish]:
        try:
            return await self._store.get_dishes(dish_ids)
        except UpstreamUnavailable:
            logger.warning("portfolio_bulk_load_failed", dish_count=len(dish_ids))

        # Fall back to one read per dish so one bad dish only costs itself
        dishes = []
        for dish_id in dish_ids:
            try:
                dish = await self._store.get_dish(dish_id)
            except UpstreamUnavailable:
                logger.warning("portfolio_dish_load_failed", dish_id=dish_id)
                continue
            if dish is not None:
                dishes.append(dish)
        return dishes

    async def _with_live_price(self, dish: Dish) -> Dish:
        try:
            price = await self._chain_reader.current_price(dish.dish_id)
        except UpstreamUnavailable:
            return dish
        return dish.model_copy(update={"current_price": price})
