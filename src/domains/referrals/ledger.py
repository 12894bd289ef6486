"""Referral ledger.

Tracks who referred whom into which dish position. Attribution is per dish:
a position's ``referred_by`` is written once (first write wins) with a
conditional update, and the referrer's ``referred_to`` set gains the referee.
Price and supply fields are never touched here.
"""

from datetime import UTC, datetime

import structlog

from src.domains.registry.models import PortfolioPosition, ReferralRecord
from src.domains.registry.store import DishStore
from src.shared.errors import InvalidReferral, NotFoundError, ValidationError

from .config import ReferralConfig, default_config
from .models import ReferralChainLink, ReferralItem, ReferralOutcome

logger = structlog.get_logger()


class ReferralLedger:
    """Records and queries per-dish referral attribution."""

    def __init__(self, store: DishStore, config: ReferralConfig | None = None) -> None:
        self._store = store
        self._config = config or default_config

    async def record_referral(
        self, referrer_fid: int, referee_fid: int, dish_id: str
    ) -> ReferralOutcome:
        """Attribute ``referee_fid``'s position in ``dish_id`` to ``referrer_fid``.

        Safe to call repeatedly: the referee is attributed at most once and
        appears at most once in the referrer's ``referred_to``.

        Raises:
            InvalidReferral: self-referral, the referrer does not hold the
                dish, or the referee is the referrer's own referrer for
                this dish.
            NotFoundError: the referee is not a known user.
        """
        if not dish_id:
            raise ValidationError("Dish ID is required")
        if referrer_fid == referee_fid:
            raise InvalidReferral("Cannot refer yourself")

        referrer_position = await self._store.get_position(referrer_fid, dish_id)
        if referrer_position is None or referrer_position.quantity <= 0:
            raise InvalidReferral("Referrer does not hold this dish")
        if referrer_position.referred_by == referee_fid:
            raise InvalidReferral("Referee already referred the referrer into this dish")

        if await self._store.get_user(referee_fid) is None:
            raise NotFoundError("User not found")

        # Make sure the referee has a position to carry the attribution
        await self._store.insert_position(referee_fid, PortfolioPosition(dish=dish_id))

        recorded = await self._store.set_referred_by_if_unset(
            referee_fid, dish_id, referrer_fid
        )
        if recorded:
            effective_referrer: int | None = referrer_fid
        else:
            position = await self._store.get_position(referee_fid, dish_id)
            effective_referrer = position.referred_by if position else None

        if effective_referrer == referrer_fid:
            # Re-applied on repeat calls so a half-finished earlier call converges
            await self._store.insert_referral(
                ReferralRecord(
                    referred_fid=referee_fid,
                    dish_id=dish_id,
                    referrer_fid=referrer_fid,
                    created_at=datetime.now(UTC),
                )
            )
            await self._store.add_referred_to(referrer_fid, dish_id, referee_fid)

        if recorded:
            logger.info(
                "referral_recorded",
                referrer_fid=referrer_fid,
                referee_fid=referee_fid,
                dish_id=dish_id,
            )
        else:
            logger.debug(
                "referral_already_attributed",
                referrer_fid=referrer_fid,
                referee_fid=referee_fid,
                dish_id=dish_id,
                effective_referrer=effective_referrer,
            )

        return ReferralOutcome(
            referrer_fid=referrer_fid,
            referee_fid=referee_fid,
            dish_id=dish_id,
            recorded=recorded,
            effective_referrer=effective_referrer,
        )

    async def get_referrer(self, referee_fid: int, dish_id: str) -> int | None:
        """Referrer fid for a user+dish, or None if the user came in organically."""
        if not dish_id:
            raise ValidationError("Dish ID is required")
        record = await self._store.get_referral(referee_fid, dish_id)
        if record is not None:
            return record.referrer_fid
        position = await self._store.get_position(referee_fid, dish_id)
        return position.referred_by if position else None

    async def referrals_by_referrer(self, referrer_fid: int) -> list[ReferralItem]:
        records = await self._store.list_referrals(referrer_fid=referrer_fid)
        return [ReferralItem(**r.model_dump()) for r in records]

    async def referrals_for_user(self, referred_fid: int) -> list[ReferralItem]:
        records = await self._store.list_referrals(referred_fid=referred_fid)
        return [ReferralItem(**r.model_dump()) for r in records]

    async def referral_chain(
        self, fid: int, dish_id: str, max_depth: int | None = None
    ) -> list[ReferralChainLink]:
        """Walk ``referred_by`` links upward from ``fid`` for one dish.

        Level 1 is the direct referrer. Stops at an organic holder, at the
        depth limit, or if a fid repeats.
        """
        depth = max_depth or self._config.max_chain_depth
        chain: list[ReferralChainLink] = []
        seen = {fid}
        current = fid

        for level in range(1, depth + 1):
            position = await self._store.get_position(current, dish_id)
            if position is None or position.referred_by is None:
                break
            referrer = position.referred_by
            if referrer in seen:
                logger.warning(
                    "referral_loop_detected", fid=fid, dish_id=dish_id, at_fid=referrer
                )
                break
            chain.append(ReferralChainLink(fid=referrer, level=level))
            seen.add(referrer)
            current = referrer

        return chain
