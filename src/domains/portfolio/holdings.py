"""Holding changes after on-chain trades.

Keeps positions, dish market fields, holder counts and reputation in step
with a mint (acquisition) or sell (disposal). A position is created on the
first acquisition and removed once its quantity reaches zero.
"""

from datetime import UTC, datetime

import structlog

from src.domains.referrals.config import ReferralConfig
from src.domains.referrals.config import default_config as default_referral_config
from src.domains.referrals.ledger import ReferralLedger
from src.domains.registry.models import PortfolioPosition
from src.domains.registry.registry import DishRegistry
from src.domains.registry.store import DishStore
from src.shared.errors import InvalidReferral, NotFoundError

from .config import PortfolioConfig, default_config
from .models import (
    AcquisitionRequest,
    AcquisitionResult,
    DisposalRequest,
    DisposalResult,
)

logger = structlog.get_logger()


class HoldingsService:
    def __init__(
        self,
        store: DishStore,
        config: PortfolioConfig | None = None,
        referral_config: ReferralConfig | None = None,
    ) -> None:
        self._store = store
        self._config = config or default_config
        self._referral_config = referral_config or default_referral_config
        self._ledger = ReferralLedger(store, self._referral_config)
        self._registry = DishRegistry(store)

    async def record_acquisition(
        self, dish_id: str, request: AcquisitionRequest
    ) -> AcquisitionResult:
        """Apply a mint: grow the position, update the dish, attribute referrals."""
        dish = await self._store.get_dish(dish_id)
        if dish is None:
            raise NotFoundError("Dish not found")
        if await self._store.get_user(request.fid) is None:
            raise NotFoundError("User not found")

        fid = request.fid
        position = await self._store.get_position(fid, dish_id)
        inserted = False
        if position is None:
            inserted = await self._store.insert_position(
                fid, PortfolioPosition(dish=dish_id, quantity=request.quantity)
            )
        if inserted:
            new_quantity = request.quantity
        else:
            # Existing position, a referral placeholder, or a concurrent insert won
            incremented = await self._store.increment_position_quantity(
                fid, dish_id, request.quantity
            )
            new_quantity = incremented if incremented is not None else request.quantity
        is_new_holder = new_quantity - request.quantity <= 0

        supply = (
            request.current_supply
            if request.current_supply is not None
            else dish.current_supply + request.quantity
        )
        price = (
            request.current_price
            if request.current_price is not None
            else self._config.price_at_supply(supply)
        )
        market_cap = request.market_cap if request.market_cap is not None else price * supply

        inc_fields: dict[str, float] = {"daily_volume": request.usdc_amount}
        if is_new_holder:
            inc_fields["total_holders"] = 1
        await self._store.update_dish(
            dish_id,
            {
                "current_price": price,
                "current_supply": supply,
                "market_cap": market_cap,
                "daily_price_change": price - dish.current_price,
                "updated_at": datetime.now(UTC),
            },
            inc_fields,
        )

        referral = None
        rewarded_referrer: int | None = None
        if is_new_holder:
            if request.referrer_fid:
                try:
                    referral = await self._ledger.record_referral(
                        request.referrer_fid, fid, dish_id
                    )
                except InvalidReferral as exc:
                    logger.warning(
                        "acquisition_referral_rejected",
                        fid=fid,
                        dish_id=dish_id,
                        referrer_fid=request.referrer_fid,
                        reason=exc.message,
                    )
            if referral is not None:
                rewarded_referrer = referral.effective_referrer
            elif position is not None:
                # Attributed before the first mint
                rewarded_referrer = position.referred_by

        if rewarded_referrer is not None:
            await self._store.increment_reputation(
                rewarded_referrer, self._referral_config.referral_reward
            )

        await self._store.increment_reputation(fid, self._referral_config.mint_reward)
        await self._registry.refresh_restaurant_rating(dish.restaurant)

        logger.info(
            "acquisition_recorded",
            fid=fid,
            dish_id=dish_id,
            quantity=request.quantity,
            is_new_holder=is_new_holder,
            price=price,
        )

        return AcquisitionResult(
            fid=fid,
            dish_id=dish_id,
            quantity=new_quantity,
            is_new_holder=is_new_holder,
            current_price=price,
            current_supply=supply,
            market_cap=market_cap,
            referral=referral,
        )

    async def record_disposal(self, dish_id: str, request: DisposalRequest) -> DisposalResult:
        """Apply a sell: shrink or close the position and reprice the dish."""
        dish = await self._store.get_dish(dish_id)
        if dish is None:
            raise NotFoundError("Dish not found")

        fid = request.fid
        new_supply = max(0.0, dish.current_supply - request.quantity)
        new_price = self._config.price_at_supply(new_supply)
        now = datetime.now(UTC)

        await self._store.update_dish(
            dish_id,
            {
                "current_supply": new_supply,
                "current_price": new_price,
                "daily_price_change": new_price - dish.current_price,
                "updated_at": now,
            },
            {"daily_volume": request.usdc_received},
        )

        remaining = 0.0
        closed = False
        quantity = await self._store.increment_position_quantity(fid, dish_id, -request.quantity)
        if quantity is not None:
            remaining = max(0.0, quantity)
            if remaining == 0:
                await self._store.delete_position(fid, dish_id)
                closed = True
                if quantity + request.quantity > 0:
                    await self._store.update_dish(
                        dish_id, {"updated_at": now}, {"total_holders": -1}
                    )

        await self._registry.refresh_restaurant_rating(dish.restaurant)

        logger.info(
            "disposal_recorded",
            fid=fid,
            dish_id=dish_id,
            quantity=request.quantity,
            position_closed=closed,
            price=new_price,
        )

        return DisposalResult(
            fid=fid,
            dish_id=dish_id,
            quantity=remaining,
            position_closed=closed,
            current_price=new_price,
            current_supply=new_supply,
        )
