"""Pydantic models for users, restaurants, dishes and their references."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

# A wishlist referrer of 0 means the dish was added without a referral.
NO_REFERRER = 0

STARTING_PRICE = 0.1


# --- Portfolio ---


class PortfolioPosition(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    dish: str
    quantity: float = Field(default=0.0, ge=0)
    return_: float = Field(default=0.0, alias="return")
    referred_by: int | None = None
    referred_to: list[int] = Field(default_factory=list)


class Portfolio(BaseModel):
    total_value: float = 0.0
    total_return: float = 0.0
    total_invested: float = 0.0
    dishes: list[PortfolioPosition] = Field(default_factory=list)
    # Dish ids held by the user whose current state could not be loaded
    unresolved: list[str] = Field(default_factory=list)


# --- Users ---


class WishlistItem(BaseModel):
    dish: str
    referrer: int = NO_REFERRER


class User(BaseModel):
    # Legacy records may carry a string-typed fid
    fid: int | str
    username: str = ""
    wallet_address: str = ""
    pfp_url: str | None = None
    display_name: str | None = None
    badges: list[str] = Field(default_factory=list)
    reputation_score: int = 0
    wish_list: list[WishlistItem] = Field(default_factory=list)
    portfolio: Portfolio = Field(default_factory=Portfolio)
    created_at: datetime | None = None
    updated_at: datetime | None = None


# --- Restaurants and dishes ---


class Restaurant(BaseModel):
    id: str
    name: str
    address: str = ""
    image: str = ""
    latitude: float = 0.0
    longitude: float = 0.0
    tmap_rating: float = 0.0
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Dish(BaseModel):
    dish_id: str
    name: str
    description: str | None = None
    image: str | None = None
    creator: int
    restaurant: str
    starting_price: float = STARTING_PRICE
    current_price: float = STARTING_PRICE
    daily_price_change: float = 0.0
    current_supply: float = 0.0
    total_holders: int = 0
    daily_volume: float = 0.0
    market_cap: float = 0.0
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ReferralRecord(BaseModel):
    referred_fid: int
    dish_id: str
    referrer_fid: int
    created_at: datetime


# --- Request Models ---


class UserSyncRequest(BaseModel):
    fid: int = Field(gt=0)
    username: str = ""
    wallet_address: str = ""
    pfp_url: str | None = None
    display_name: str | None = None


class WishlistAddRequest(BaseModel):
    dish_id: str = Field(min_length=1)
    referrer: int = NO_REFERRER


class RestaurantCreateRequest(BaseModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    address: str = ""
    image: str = ""
    latitude: float
    longitude: float


class DishCreateRequest(BaseModel):
    name: str = Field(min_length=1)
    description: str | None = None
    image: str | None = None
    restaurant_id: str = Field(min_length=1)
    creator_fid: int = Field(gt=0)
    # Used to register the restaurant on first dish if it is not known yet
    restaurant_name: str | None = None
    restaurant_address: str = ""
    restaurant_latitude: float | None = None
    restaurant_longitude: float | None = None


# --- API Response Models ---


class CreatorDishItem(BaseModel):
    dish_id: str
    name: str
    image: str
    current_price: float
    total_holders: int
    restaurant: str


class RestaurantDishItem(BaseModel):
    dish_id: str
    name: str
    image: str | None
    current_price: float
    current_supply: float
    total_holders: int
