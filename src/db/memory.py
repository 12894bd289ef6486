"""In-process ``DishStore`` for local runs and tests.

Mirrors the semantics of the SQL store: per-call atomic updates, wishlist
order preserved, positions unique per ``(fid, dish)``. Values handed out are
copies, so callers cannot mutate stored state by accident.
"""

from datetime import UTC, datetime
from typing import Any

from src.domains.registry.models import (
    Dish,
    Portfolio,
    PortfolioPosition,
    ReferralRecord,
    Restaurant,
    User,
    WishlistItem,
)


class MemoryDishStore:
    def __init__(self) -> None:
        self.users: dict[int | str, User] = {}
        self.positions: dict[tuple[int, str], PortfolioPosition] = {}
        self.referrals: dict[tuple[int, str], ReferralRecord] = {}
        self.restaurants: dict[str, Restaurant] = {}
        self.dishes: dict[str, Dish] = {}

    # --- users ---

    def put_user(self, user: User) -> None:
        """Store a user record as-is, including legacy string-typed fids."""
        self.users[user.fid] = user.model_copy(deep=True)

    async def get_user(self, fid: int | str) -> User | None:
        user = self.users.get(fid)
        # dict lookup would match 1 == True; exact type is part of the contract
        if user is None or type(user.fid) is not type(fid):
            return None
        user = user.model_copy(deep=True)
        if isinstance(fid, int):
            user.portfolio = Portfolio(dishes=self._positions_for(fid))
        return user

    async def upsert_user(
        self,
        fid: int,
        username: str,
        wallet_address: str,
        pfp_url: str | None = None,
        display_name: str | None = None,
    ) -> tuple[User, bool]:
        now = datetime.now(UTC)
        existing = self.users.get(fid)
        is_new = existing is None
        if is_new:
            existing = User(fid=fid, created_at=now)
        existing.username = username
        existing.wallet_address = wallet_address
        if pfp_url:
            existing.pfp_url = pfp_url
        if display_name:
            existing.display_name = display_name
        existing.updated_at = now
        self.users[fid] = existing
        return await self.get_user(fid), is_new

    async def increment_reputation(self, fid: int, amount: int) -> None:
        user = self.users.get(fid)
        if user is not None:
            user.reputation_score += amount

    # --- wishlists ---

    async def add_wishlist_item(self, fid: int, dish_id: str, referrer: int) -> bool:
        user = self.users.get(fid)
        if user is None or any(item.dish == dish_id for item in user.wish_list):
            return False
        user.wish_list.append(WishlistItem(dish=dish_id, referrer=referrer))
        return True

    async def remove_wishlist_item(self, fid: int | str, dish_id: str) -> int:
        user = self.users.get(fid)
        if user is None:
            return 0
        before = len(user.wish_list)
        user.wish_list = [item for item in user.wish_list if item.dish != dish_id]
        return before - len(user.wish_list)

    async def pull_dish_from_wishlists(self, dish_id: str) -> int:
        removed = 0
        for user in self.users.values():
            before = len(user.wish_list)
            user.wish_list = [item for item in user.wish_list if item.dish != dish_id]
            removed += before - len(user.wish_list)
        return removed

    # --- portfolio positions ---

    def _positions_for(self, fid: int) -> list[PortfolioPosition]:
        return [
            p.model_copy(deep=True)
            for (owner, _), p in self.positions.items()
            if owner == fid
        ]

    async def get_position(self, fid: int, dish_id: str) -> PortfolioPosition | None:
        position = self.positions.get((fid, dish_id))
        return position.model_copy(deep=True) if position else None

    async def list_positions(self, fid: int) -> list[PortfolioPosition]:
        return self._positions_for(fid)

    async def insert_position(self, fid: int, position: PortfolioPosition) -> bool:
        key = (fid, position.dish)
        if key in self.positions:
            return False
        self.positions[key] = position.model_copy(deep=True)
        return True

    async def increment_position_quantity(
        self, fid: int, dish_id: str, delta: float
    ) -> float | None:
        position = self.positions.get((fid, dish_id))
        if position is None:
            return None
        position.quantity += delta
        return position.quantity

    async def set_referred_by_if_unset(
        self, fid: int, dish_id: str, referrer_fid: int
    ) -> bool:
        position = self.positions.get((fid, dish_id))
        if position is None or position.referred_by is not None:
            return False
        position.referred_by = referrer_fid
        return True

    async def add_referred_to(self, fid: int, dish_id: str, referee_fid: int) -> bool:
        position = self.positions.get((fid, dish_id))
        if position is None or referee_fid in position.referred_to:
            return False
        position.referred_to.append(referee_fid)
        return True

    async def delete_position(self, fid: int, dish_id: str) -> bool:
        return self.positions.pop((fid, dish_id), None) is not None

    async def pull_dish_from_portfolios(self, dish_id: str) -> int:
        keys = [key for key in self.positions if key[1] == dish_id]
        for key in keys:
            del self.positions[key]
        return len(keys)

    # --- referral records ---

    async def insert_referral(self, record: ReferralRecord) -> bool:
        key = (record.referred_fid, record.dish_id)
        if key in self.referrals:
            return False
        self.referrals[key] = record.model_copy()
        return True

    async def get_referral(self, referred_fid: int, dish_id: str) -> ReferralRecord | None:
        record = self.referrals.get((referred_fid, dish_id))
        return record.model_copy() if record else None

    async def list_referrals(
        self, referrer_fid: int | None = None, referred_fid: int | None = None
    ) -> list[ReferralRecord]:
        records = [
            r.model_copy()
            for r in self.referrals.values()
            if (referrer_fid is None or r.referrer_fid == referrer_fid)
            and (referred_fid is None or r.referred_fid == referred_fid)
        ]
        return sorted(records, key=lambda r: r.created_at, reverse=True)

    async def delete_referrals_for_dish(self, dish_id: str) -> int:
        keys = [key for key in self.referrals if key[1] == dish_id]
        for key in keys:
            del self.referrals[key]
        return len(keys)

    # --- restaurants ---

    async def get_restaurant(self, restaurant_id: str) -> Restaurant | None:
        restaurant = self.restaurants.get(restaurant_id)
        return restaurant.model_copy() if restaurant else None

    async def save_restaurant(self, restaurant: Restaurant) -> Restaurant:
        self.restaurants[restaurant.id] = restaurant.model_copy()
        return restaurant.model_copy()

    async def set_restaurant_rating(self, restaurant_id: str, rating: float) -> None:
        restaurant = self.restaurants.get(restaurant_id)
        if restaurant is not None:
            restaurant.tmap_rating = rating
            restaurant.updated_at = datetime.now(UTC)

    async def delete_restaurant(self, restaurant_id: str) -> bool:
        return self.restaurants.pop(restaurant_id, None) is not None

    # --- dishes ---

    async def get_dish(self, dish_id: str) -> Dish | None:
        dish = self.dishes.get(dish_id)
        return dish.model_copy() if dish else None

    async def get_dishes(self, dish_ids: list[str]) -> list[Dish]:
        return [self.dishes[d].model_copy() for d in dish_ids if d in self.dishes]

    async def find_dishes(
        self,
        creator: int | None = None,
        restaurant: str | None = None,
        name: str | None = None,
        newest_first: bool = False,
    ) -> list[Dish]:
        dishes = [
            d.model_copy()
            for d in self.dishes.values()
            if (creator is None or d.creator == creator)
            and (restaurant is None or d.restaurant == restaurant)
            and (name is None or d.name == name)
        ]
        if newest_first:
            oldest = datetime.min.replace(tzinfo=UTC)
            dishes.sort(key=lambda d: d.created_at or oldest, reverse=True)
        return dishes

    async def insert_dish(self, dish: Dish) -> Dish:
        self.dishes[dish.dish_id] = dish.model_copy()
        return dish.model_copy()

    async def update_dish(
        self, dish_id: str, set_fields: dict[str, Any], inc_fields: dict[str, float] | None = None
    ) -> Dish | None:
        dish = self.dishes.get(dish_id)
        if dish is None:
            return None
        for key, value in set_fields.items():
            setattr(dish, key, value)
        for key, amount in (inc_fields or {}).items():
            setattr(dish, key, getattr(dish, key) + amount)
        return dish.model_copy()

    async def delete_dish(self, dish_id: str) -> bool:
        return self.dishes.pop(dish_id, None) is not None
