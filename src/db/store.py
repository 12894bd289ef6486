"""PostgreSQL ``DishStore`` on the async SQLAlchemy session.

Every write commits on its own: the store gives per-record atomicity and
nothing more, which is what the engines are written against. Database
errors are rolled back and surfaced as ``UpstreamUnavailable`` without the
driver's message.
"""

from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from functools import wraps
from typing import Any, ParamSpec, TypeVar

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.registry.models import (
    Dish,
    Portfolio,
    PortfolioPosition,
    ReferralRecord,
    Restaurant,
    User,
    WishlistItem,
)
from src.shared.errors import UpstreamUnavailable

from .models import (
    DishDB,
    PortfolioPositionDB,
    PositionReferralDB,
    ReferralDB,
    RestaurantDB,
    UserDB,
    WishlistItemDB,
)

logger = structlog.get_logger()

P = ParamSpec("P")
T = TypeVar("T")


def store_operation(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
    """Roll back and convert database failures into ``UpstreamUnavailable``."""

    @wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
        store = args[0]
        try:
            return await func(*args, **kwargs)
        except SQLAlchemyError as exc:
            logger.warning(
                "store_operation_failed",
                operation=func.__name__,
                error_type=type(exc).__name__,
            )
            try:
                await store._session.rollback()
            except SQLAlchemyError:
                logger.exception("store_rollback_failed", operation=func.__name__)
            raise UpstreamUnavailable("Store unavailable") from exc

    return wrapper


def _to_restaurant(row: RestaurantDB) -> Restaurant:
    return Restaurant(
        id=row.id,
        name=row.name,
        address=row.address or "",
        image=row.image or "",
        latitude=row.latitude,
        longitude=row.longitude,
        tmap_rating=row.tmap_rating or 0.0,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _to_dish(row: DishDB) -> Dish:
    return Dish(
        dish_id=row.dish_id,
        name=row.name,
        description=row.description,
        image=row.image,
        creator=row.creator,
        restaurant=row.restaurant,
        starting_price=row.starting_price,
        current_price=row.current_price,
        daily_price_change=row.daily_price_change or 0.0,
        current_supply=row.current_supply or 0.0,
        total_holders=row.total_holders or 0,
        daily_volume=row.daily_volume or 0.0,
        market_cap=row.market_cap or 0.0,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _to_referral(row: ReferralDB) -> ReferralRecord:
    return ReferralRecord(
        referred_fid=row.referred_fid,
        dish_id=row.dish_id,
        referrer_fid=row.referrer_fid,
        created_at=row.created_at,
    )


class SqlDishStore:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    # --- users ---

    @store_operation
    async def get_user(self, fid: int | str) -> User | None:
        if isinstance(fid, int):
            stmt = select(UserDB).where(UserDB.fid == fid)
        else:
            stmt = select(UserDB).where(UserDB.legacy_fid == fid)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None

        wishlist_rows = (
            await self._session.execute(
                select(WishlistItemDB)
                .where(WishlistItemDB.user_fid == row.fid)
                .order_by(WishlistItemDB.id)
            )
        ).scalars().all()

        return User(
            fid=row.fid if isinstance(fid, int) else row.legacy_fid,
            username=row.username or "",
            wallet_address=row.wallet_address or "",
            pfp_url=row.pfp_url,
            display_name=row.display_name,
            badges=list(row.badges or []),
            reputation_score=row.reputation_score or 0,
            wish_list=[
                WishlistItem(dish=w.dish_id, referrer=w.referrer or 0) for w in wishlist_rows
            ],
            portfolio=Portfolio(dishes=await self._load_positions(row.fid)),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    @store_operation
    async def upsert_user(
        self,
        fid: int,
        username: str,
        wallet_address: str,
        pfp_url: str | None = None,
        display_name: str | None = None,
    ) -> tuple[User, bool]:
        existing = await self._session.get(UserDB, fid)
        is_new = existing is None

        now = datetime.now(UTC)
        set_fields: dict[str, Any] = {
            "username": username,
            "wallet_address": wallet_address,
            "updated_at": now,
        }
        # Only overwrite profile fields that were provided
        if pfp_url:
            set_fields["pfp_url"] = pfp_url
        if display_name:
            set_fields["display_name"] = display_name

        stmt = (
            pg_insert(UserDB)
            .values(fid=fid, badges=[], reputation_score=0, created_at=now, **set_fields)
            .on_conflict_do_update(index_elements=[UserDB.fid], set_=set_fields)
        )
        await self._session.execute(stmt)
        await self._session.commit()
        self._session.expire_all()

        return await self.get_user(fid), is_new

    @store_operation
    async def increment_reputation(self, fid: int, amount: int) -> None:
        await self._session.execute(
            update(UserDB)
            .where(UserDB.fid == fid)
            .values(reputation_score=UserDB.reputation_score + amount)
        )
        await self._session.commit()

    # --- wishlists ---

    @store_operation
    async def add_wishlist_item(self, fid: int, dish_id: str, referrer: int) -> bool:
        stmt = (
            pg_insert(WishlistItemDB)
            .values(user_fid=fid, dish_id=dish_id, referrer=referrer)
            .on_conflict_do_nothing(constraint="uq_wishlist_user_dish")
        )
        result = await self._session.execute(stmt)
        await self._session.commit()
        return result.rowcount > 0

    @store_operation
    async def remove_wishlist_item(self, fid: int, dish_id: str) -> int:
        result = await self._session.execute(
            delete(WishlistItemDB).where(
                WishlistItemDB.user_fid == fid, WishlistItemDB.dish_id == dish_id
            )
        )
        await self._session.commit()
        return result.rowcount

    @store_operation
    async def pull_dish_from_wishlists(self, dish_id: str) -> int:
        result = await self._session.execute(
            delete(WishlistItemDB).where(WishlistItemDB.dish_id == dish_id)
        )
        await self._session.commit()
        return result.rowcount

    # --- portfolio positions ---

    async def _load_positions(
        self, fid: int, dish_id: str | None = None
    ) -> list[PortfolioPosition]:
        stmt = select(PortfolioPositionDB).where(PortfolioPositionDB.user_fid == fid)
        ref_stmt = select(PositionReferralDB).where(PositionReferralDB.referrer_fid == fid)
        if dish_id is not None:
            stmt = stmt.where(PortfolioPositionDB.dish_id == dish_id)
            ref_stmt = ref_stmt.where(PositionReferralDB.dish_id == dish_id)

        rows = (
            await self._session.execute(stmt.order_by(PortfolioPositionDB.id))
        ).scalars().all()
        if not rows:
            return []

        referred_to: dict[str, list[int]] = {}
        for ref in (
            await self._session.execute(ref_stmt.order_by(PositionReferralDB.id))
        ).scalars():
            referred_to.setdefault(ref.dish_id, []).append(ref.referee_fid)

        return [
            PortfolioPosition(
                dish=row.dish_id,
                quantity=row.quantity or 0.0,
                referred_by=row.referred_by,
                referred_to=referred_to.get(row.dish_id, []),
            )
            for row in rows
        ]

    @store_operation
    async def get_position(self, fid: int, dish_id: str) -> PortfolioPosition | None:
        positions = await self._load_positions(fid, dish_id)
        return positions[0] if positions else None

    @store_operation
    async def list_positions(self, fid: int) -> list[PortfolioPosition]:
        return await self._load_positions(fid)

    @store_operation
    async def insert_position(self, fid: int, position: PortfolioPosition) -> bool:
        stmt = (
            pg_insert(PortfolioPositionDB)
            .values(
                user_fid=fid,
                dish_id=position.dish,
                quantity=position.quantity,
                referred_by=position.referred_by,
            )
            .on_conflict_do_nothing(constraint="uq_position_user_dish")
        )
        result = await self._session.execute(stmt)
        inserted = result.rowcount > 0
        if inserted:
            for referee in position.referred_to:
                await self._session.execute(
                    pg_insert(PositionReferralDB)
                    .values(referrer_fid=fid, dish_id=position.dish, referee_fid=referee)
                    .on_conflict_do_nothing(constraint="uq_position_referral")
                )
        await self._session.commit()
        return inserted

    @store_operation
    async def increment_position_quantity(
        self, fid: int, dish_id: str, delta: float
    ) -> float | None:
        quantity = (
            await self._session.execute(
                update(PortfolioPositionDB)
                .where(
                    PortfolioPositionDB.user_fid == fid, PortfolioPositionDB.dish_id == dish_id
                )
                .values(quantity=PortfolioPositionDB.quantity + delta)
                .returning(PortfolioPositionDB.quantity)
            )
        ).scalar_one_or_none()
        await self._session.commit()
        return quantity

    @store_operation
    async def set_referred_by_if_unset(
        self, fid: int, dish_id: str, referrer_fid: int
    ) -> bool:
        result = await self._session.execute(
            update(PortfolioPositionDB)
            .where(
                PortfolioPositionDB.user_fid == fid,
                PortfolioPositionDB.dish_id == dish_id,
                PortfolioPositionDB.referred_by.is_(None),
            )
            .values(referred_by=referrer_fid)
        )
        await self._session.commit()
        return result.rowcount > 0

    @store_operation
    async def add_referred_to(self, fid: int, dish_id: str, referee_fid: int) -> bool:
        result = await self._session.execute(
            pg_insert(PositionReferralDB)
            .values(referrer_fid=fid, dish_id=dish_id, referee_fid=referee_fid)
            .on_conflict_do_nothing(constraint="uq_position_referral")
        )
        await self._session.commit()
        return result.rowcount > 0

    @store_operation
    async def delete_position(self, fid: int, dish_id: str) -> bool:
        await self._session.execute(
            delete(PositionReferralDB).where(
                PositionReferralDB.referrer_fid == fid, PositionReferralDB.dish_id == dish_id
            )
        )
        result = await self._session.execute(
            delete(PortfolioPositionDB).where(
                PortfolioPositionDB.user_fid == fid, PortfolioPositionDB.dish_id == dish_id
            )
        )
        await self._session.commit()
        return result.rowcount > 0

    @store_operation
    async def pull_dish_from_portfolios(self, dish_id: str) -> int:
        await self._session.execute(
            delete(PositionReferralDB).where(PositionReferralDB.dish_id == dish_id)
        )
        result = await self._session.execute(
            delete(PortfolioPositionDB).where(PortfolioPositionDB.dish_id == dish_id)
        )
        await self._session.commit()
        return result.rowcount

    # --- referral records ---

    @store_operation
    async def insert_referral(self, record: ReferralRecord) -> bool:
        result = await self._session.execute(
            pg_insert(ReferralDB)
            .values(**record.model_dump())
            .on_conflict_do_nothing(constraint="uq_referral_user_dish")
        )
        await self._session.commit()
        return result.rowcount > 0

    @store_operation
    async def get_referral(self, referred_fid: int, dish_id: str) -> ReferralRecord | None:
        row = (
            await self._session.execute(
                select(ReferralDB).where(
                    ReferralDB.referred_fid == referred_fid, ReferralDB.dish_id == dish_id
                )
            )
        ).scalar_one_or_none()
        return _to_referral(row) if row else None

    @store_operation
    async def list_referrals(
        self, referrer_fid: int | None = None, referred_fid: int | None = None
    ) -> list[ReferralRecord]:
        stmt = select(ReferralDB)
        if referrer_fid is not None:
            stmt = stmt.where(ReferralDB.referrer_fid == referrer_fid)
        if referred_fid is not None:
            stmt = stmt.where(ReferralDB.referred_fid == referred_fid)
        rows = (
            await self._session.execute(stmt.order_by(ReferralDB.created_at.desc()))
        ).scalars().all()
        return [_to_referral(r) for r in rows]

    @store_operation
    async def delete_referrals_for_dish(self, dish_id: str) -> int:
        result = await self._session.execute(
            delete(ReferralDB).where(ReferralDB.dish_id == dish_id)
        )
        await self._session.commit()
        return result.rowcount

    # --- restaurants ---

    @store_operation
    async def get_restaurant(self, restaurant_id: str) -> Restaurant | None:
        row = await self._session.get(RestaurantDB, restaurant_id)
        return _to_restaurant(row) if row else None

    @store_operation
    async def save_restaurant(self, restaurant: Restaurant) -> Restaurant:
        values = restaurant.model_dump(exclude_none=True)
        stmt = (
            pg_insert(RestaurantDB)
            .values(**values)
            .on_conflict_do_update(
                index_elements=[RestaurantDB.id],
                set_={k: v for k, v in values.items() if k not in ("id", "created_at")},
            )
            .returning(RestaurantDB)
        )
        row = (await self._session.execute(stmt)).scalar_one()
        saved = _to_restaurant(row)
        await self._session.commit()
        return saved

    @store_operation
    async def set_restaurant_rating(self, restaurant_id: str, rating: float) -> None:
        await self._session.execute(
            update(RestaurantDB)
            .where(RestaurantDB.id == restaurant_id)
            .values(tmap_rating=rating, updated_at=datetime.now(UTC))
        )
        await self._session.commit()

    @store_operation
    async def delete_restaurant(self, restaurant_id: str) -> bool:
        result = await self._session.execute(
            delete(RestaurantDB).where(RestaurantDB.id == restaurant_id)
        )
        await self._session.commit()
        return result.rowcount > 0

    # --- dishes ---

    @store_operation
    async def get_dish(self, dish_id: str) -> Dish | None:
        row = await self._session.get(DishDB, dish_id)
        return _to_dish(row) if row else None

    @store_operation
    async def get_dishes(self, dish_ids: list[str]) -> list[Dish]:
        if not dish_ids:
            return []
        rows = (
            await self._session.execute(select(DishDB).where(DishDB.dish_id.in_(dish_ids)))
        ).scalars().all()
        return [_to_dish(r) for r in rows]

    @store_operation
    async def find_dishes(
        self,
        creator: int | None = None,
        restaurant: str | None = None,
        name: str | None = None,
        newest_first: bool = False,
    ) -> list[Dish]:
        stmt = select(DishDB)
        if creator is not None:
            stmt = stmt.where(DishDB.creator == creator)
        if restaurant is not None:
            stmt = stmt.where(DishDB.restaurant == restaurant)
        if name is not None:
            stmt = stmt.where(DishDB.name == name)
        if newest_first:
            stmt = stmt.order_by(DishDB.created_at.desc())
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_to_dish(r) for r in rows]

    @store_operation
    async def insert_dish(self, dish: Dish) -> Dish:
        row = DishDB(**dish.model_dump(exclude_none=True))
        self._session.add(row)
        await self._session.commit()
        await self._session.refresh(row)
        return _to_dish(row)

    @store_operation
    async def update_dish(
        self, dish_id: str, set_fields: dict[str, Any], inc_fields: dict[str, float] | None = None
    ) -> Dish | None:
        values: dict[str, Any] = dict(set_fields)
        for key, amount in (inc_fields or {}).items():
            values[key] = getattr(DishDB, key) + amount
        row = (
            await self._session.execute(
                update(DishDB).where(DishDB.dish_id == dish_id).values(**values).returning(DishDB)
            )
        ).scalar_one_or_none()
        dish = _to_dish(row) if row else None
        await self._session.commit()
        return dish

    @store_operation
    async def delete_dish(self, dish_id: str) -> bool:
        result = await self._session.execute(delete(DishDB).where(DishDB.dish_id == dish_id))
        await self._session.commit()
        return result.rowcount > 0
