"""Registry operations over users, restaurants and dishes.

Thin rules on top of the store: user sync, fid lookups that tolerate legacy
string-typed records, wishlist maintenance, dish creation and restaurant
ratings.
"""

import uuid
from datetime import UTC, datetime

import structlog
from eth_utils import encode_hex, keccak

from src.shared.errors import ConflictError, NotFoundError, ValidationError

from .config import RegistryConfig, default_config
from .models import (
    NO_REFERRER,
    CreatorDishItem,
    Dish,
    DishCreateRequest,
    PortfolioPosition,
    Restaurant,
    RestaurantDishItem,
    User,
    WishlistItem,
)
from .store import DishStore

logger = structlog.get_logger()


def parse_fid(raw_fid: int | str) -> int:
    """Parse a fid from a path/query value. Raises ValidationError if not numeric."""
    if isinstance(raw_fid, bool):
        raise ValidationError("Invalid FID")
    if isinstance(raw_fid, int):
        fid = raw_fid
    else:
        try:
            fid = int(str(raw_fid).strip())
        except ValueError:
            raise ValidationError("Invalid FID") from None
    if fid <= 0:
        raise ValidationError("Invalid FID")
    return fid


def calculate_rating_from_prices(
    prices: list[float], config: RegistryConfig | None = None
) -> float:
    """Restaurant rating from its dishes' current prices.

    Average price times the multiplier, capped, rounded to one decimal.
    $0.10 -> 1.0, $2.00 -> 20.0, $10.00 and above -> 100.0.
    """
    cfg = config or default_config
    if not prices:
        return 0.0
    avg_price = sum(p or 0.0 for p in prices) / len(prices)
    rating = min(avg_price * cfg.rating_multiplier, cfg.rating_cap)
    return round(rating, 1)


def generate_dish_id(restaurant_id: str, name: str) -> str:
    """New bytes32 dish id, usable verbatim as the on-chain key."""
    return encode_hex(keccak(text=f"{restaurant_id}:{name}:{uuid.uuid4()}"))


class DishRegistry:
    """Read/write operations on the registry collections."""

    def __init__(self, store: DishStore, config: RegistryConfig | None = None) -> None:
        self._store = store
        self._config = config or default_config

    # --- users ---

    async def sync_user(
        self,
        fid: int,
        username: str = "",
        wallet_address: str = "",
        pfp_url: str | None = None,
        display_name: str | None = None,
    ) -> tuple[User, bool]:
        """Idempotent upsert on sign-in. Returns ``(user, is_new_user)``."""
        fid = parse_fid(fid)
        user, is_new = await self._store.upsert_user(
            fid, username, wallet_address, pfp_url=pfp_url, display_name=display_name
        )
        logger.info("user_synced", fid=fid, is_new_user=is_new)
        return user, is_new

    async def find_user_by_fid(self, raw_fid: int | str) -> User | None:
        """Find a user by numeric fid, falling back to legacy string-typed records."""
        fid = parse_fid(raw_fid)
        user = await self._store.get_user(fid)
        if user is None:
            user = await self._store.get_user(str(fid))
            if user is not None:
                logger.debug("legacy_fid_match", fid=fid)
        return user

    async def get_user(self, raw_fid: int | str) -> User:
        user = await self.find_user_by_fid(raw_fid)
        if user is None:
            raise NotFoundError("User not found")
        return user

    # --- wishlists ---

    async def add_to_wishlist(
        self, fid: int, dish_id: str, referrer: int = NO_REFERRER
    ) -> bool:
        if not dish_id:
            raise ValidationError("Dish ID is required")
        await self.get_user(fid)
        added = await self._store.add_wishlist_item(fid, dish_id, referrer or NO_REFERRER)
        logger.info("wishlist_add", fid=fid, dish_id=dish_id, added=added)
        return added

    async def remove_from_wishlist(self, fid: int, dish_id: str) -> int:
        if not dish_id:
            raise ValidationError("Dish ID is required")
        return await self._store.remove_wishlist_item(fid, dish_id)

    async def cleanup_orphaned_wishlist(self, raw_fid: int | str) -> list[WishlistItem]:
        """Drop wishlist entries whose dish no longer exists; return what is left."""
        user = await self.get_user(raw_fid)
        # Legacy records keep their string fid
        fid = user.fid
        if not user.wish_list:
            return []

        dish_ids = [item.dish for item in user.wish_list]
        existing = {d.dish_id for d in await self._store.get_dishes(dish_ids)}
        orphaned = [d for d in dish_ids if d not in existing]

        for dish_id in orphaned:
            await self._store.remove_wishlist_item(fid, dish_id)

        if orphaned:
            logger.info("wishlist_orphans_removed", fid=fid, count=len(orphaned))

        return [item for item in user.wish_list if item.dish in existing]

    # --- dishes ---

    async def create_dish(self, request: DishCreateRequest) -> Dish:
        """Create a dish at a restaurant and give the creator an empty position.

        The restaurant is registered on the fly when the request carries its
        name and coordinates; otherwise it must already exist.
        """
        name = request.name.strip()
        if not name:
            raise ValidationError("Dish name is required")

        restaurant = await self._store.get_restaurant(request.restaurant_id)
        if restaurant is None:
            if (
                request.restaurant_name is None
                or request.restaurant_latitude is None
                or request.restaurant_longitude is None
            ):
                raise NotFoundError("Restaurant not found")
            restaurant = await self.create_restaurant(
                Restaurant(
                    id=request.restaurant_id,
                    name=request.restaurant_name,
                    address=request.restaurant_address,
                    latitude=request.restaurant_latitude,
                    longitude=request.restaurant_longitude,
                )
            )

        if await self._store.find_dishes(restaurant=restaurant.id, name=name):
            raise ConflictError("A dish with this name already exists at this restaurant")

        now = datetime.now(UTC)
        dish = Dish(
            dish_id=generate_dish_id(restaurant.id, name),
            name=name,
            description=(request.description or "").strip() or None,
            image=request.image or None,
            creator=request.creator_fid,
            restaurant=restaurant.id,
            starting_price=self._config.starting_price,
            current_price=self._config.starting_price,
            created_at=now,
            updated_at=now,
        )
        dish = await self._store.insert_dish(dish)

        # Creator starts with an empty position so they can refer others in
        if await self._store.get_user(request.creator_fid) is not None:
            await self._store.insert_position(
                request.creator_fid, PortfolioPosition(dish=dish.dish_id)
            )

        logger.info(
            "dish_created",
            dish_id=dish.dish_id,
            restaurant_id=restaurant.id,
            creator=request.creator_fid,
        )
        return dish

    async def dishes_by_creator(self, raw_fid: int | str) -> list[CreatorDishItem]:
        fid = parse_fid(raw_fid)
        dishes = await self._store.find_dishes(creator=fid)

        names: dict[str, str] = {}
        items = []
        for dish in dishes:
            if dish.restaurant not in names:
                restaurant = await self._store.get_restaurant(dish.restaurant)
                names[dish.restaurant] = restaurant.name if restaurant else ""
            items.append(
                CreatorDishItem(
                    dish_id=dish.dish_id,
                    name=dish.name,
                    image=dish.image or "",
                    current_price=dish.current_price,
                    total_holders=dish.total_holders,
                    restaurant=names[dish.restaurant],
                )
            )
        return items

    async def restaurant_dishes(self, restaurant_id: str) -> list[RestaurantDishItem]:
        """Dishes belonging to a restaurant, newest first."""
        if not restaurant_id:
            raise ValidationError("Restaurant ID is required")
        dishes = await self._store.find_dishes(restaurant=restaurant_id, newest_first=True)
        return [
            RestaurantDishItem(
                dish_id=d.dish_id,
                name=d.name,
                image=d.image,
                current_price=d.current_price or 0.0,
                current_supply=d.current_supply or 0.0,
                total_holders=d.total_holders or 0,
            )
            for d in dishes
        ]

    # --- restaurants ---

    async def create_restaurant(self, restaurant: Restaurant) -> Restaurant:
        now = datetime.now(UTC)
        restaurant = restaurant.model_copy(
            update={"created_at": restaurant.created_at or now, "updated_at": now}
        )
        saved = await self._store.save_restaurant(restaurant)
        logger.info("restaurant_saved", restaurant_id=saved.id)
        return saved

    async def refresh_restaurant_rating(self, restaurant_id: str) -> float:
        """Recompute and store a restaurant's rating from its dishes' prices."""
        dishes = await self._store.find_dishes(restaurant=restaurant_id)
        rating = calculate_rating_from_prices(
            [d.current_price for d in dishes], self._config
        )
        await self._store.set_restaurant_rating(restaurant_id, rating)
        logger.debug("restaurant_rating_updated", restaurant_id=restaurant_id, rating=rating)
        return rating
