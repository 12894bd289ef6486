"""Store boundary for the registry collections.

The engines only talk to persistence through ``DishStore``. Implementations
provide per-record atomic operations (point lookups, filtered queries,
conditional field updates and array-style pulls) but no multi-record
transactions; cross-entity consistency is the caller's job.

Implementations raise ``UpstreamUnavailable`` when the backing store fails.
"""

from typing import Any, Protocol

from .models import Dish, PortfolioPosition, ReferralRecord, Restaurant, User


class DishStore(Protocol):
    # --- users ---

    async def get_user(self, fid: int | str) -> User | None:
        """Exact-type lookup: an ``int`` matches numeric fids, a ``str`` legacy ones."""
        ...

    async def upsert_user(
        self,
        fid: int,
        username: str,
        wallet_address: str,
        pfp_url: str | None = None,
        display_name: str | None = None,
    ) -> tuple[User, bool]:
        """Create or update a user. Returns ``(user, is_new_user)``."""
        ...

    async def increment_reputation(self, fid: int, amount: int) -> None: ...

    # --- wishlists ---

    async def add_wishlist_item(self, fid: int, dish_id: str, referrer: int) -> bool:
        """Append unless already present. Returns True if appended."""
        ...

    async def remove_wishlist_item(self, fid: int | str, dish_id: str) -> int: ...

    async def pull_dish_from_wishlists(self, dish_id: str) -> int:
        """Remove ``dish_id`` from every user's wishlist. Returns entries removed."""
        ...

    # --- portfolio positions ---

    async def get_position(self, fid: int, dish_id: str) -> PortfolioPosition | None: ...

    async def list_positions(self, fid: int) -> list[PortfolioPosition]: ...

    async def insert_position(self, fid: int, position: PortfolioPosition) -> bool:
        """Insert if no position exists for ``(fid, dish)``. Returns True if inserted."""
        ...

    async def increment_position_quantity(
        self, fid: int, dish_id: str, delta: float
    ) -> float | None:
        """Atomically add ``delta`` to the quantity; the new quantity, or None if absent."""
        ...

    async def set_referred_by_if_unset(
        self, fid: int, dish_id: str, referrer_fid: int
    ) -> bool:
        """Conditional write: set ``referred_by`` only while it is unset."""
        ...

    async def add_referred_to(self, fid: int, dish_id: str, referee_fid: int) -> bool:
        """Set-add ``referee_fid`` to the position's ``referred_to``."""
        ...

    async def delete_position(self, fid: int, dish_id: str) -> bool: ...

    async def pull_dish_from_portfolios(self, dish_id: str) -> int:
        """Remove every position in ``dish_id``. Returns positions removed."""
        ...

    # --- referral records ---

    async def insert_referral(self, record: ReferralRecord) -> bool:
        """Insert unless one exists for ``(referred_fid, dish_id)``."""
        ...

    async def get_referral(self, referred_fid: int, dish_id: str) -> ReferralRecord | None: ...

    async def list_referrals(
        self, referrer_fid: int | None = None, referred_fid: int | None = None
    ) -> list[ReferralRecord]:
        """Referral records matching the given filters, newest first."""
        ...

    async def delete_referrals_for_dish(self, dish_id: str) -> int: ...

    # --- restaurants ---

    async def get_restaurant(self, restaurant_id: str) -> Restaurant | None: ...

    async def save_restaurant(self, restaurant: Restaurant) -> Restaurant: ...

    async def set_restaurant_rating(self, restaurant_id: str, rating: float) -> None: ...

    async def delete_restaurant(self, restaurant_id: str) -> bool: ...

    # --- dishes ---

    async def get_dish(self, dish_id: str) -> Dish | None: ...

    async def get_dishes(self, dish_ids: list[str]) -> list[Dish]:
        """Dishes that still exist among ``dish_ids``; missing ids are skipped."""
        ...

    async def find_dishes(
        self,
        creator: int | None = None,
        restaurant: str | None = None,
        name: str | None = None,
        newest_first: bool = False,
    ) -> list[Dish]: ...

    async def insert_dish(self, dish: Dish) -> Dish: ...

    async def update_dish(
        self, dish_id: str, set_fields: dict[str, Any], inc_fields: dict[str, float] | None = None
    ) -> Dish | None:
        """Atomically set and increment fields on one dish."""
        ...

    async def delete_dish(self, dish_id: str) -> bool: ...
