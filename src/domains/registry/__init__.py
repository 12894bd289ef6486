"""Users, restaurants and dishes, and the store boundary they live behind."""

from .cascade import CascadeDeletionCoordinator, CascadeResult, CascadeState
from .identifiers import (
    CanonicalDishRef,
    RawDishRef,
    dish_id_to_bytes32,
    normalize,
    parse_dish_ref,
    to_hex,
)
from .models import Dish, Portfolio, PortfolioPosition, ReferralRecord, Restaurant, User
from .registry import DishRegistry, parse_fid
from .store import DishStore

__all__ = [
    "CanonicalDishRef",
    "CascadeDeletionCoordinator",
    "CascadeResult",
    "CascadeState",
    "Dish",
    "DishRegistry",
    "DishStore",
    "Portfolio",
    "PortfolioPosition",
    "RawDishRef",
    "ReferralRecord",
    "Restaurant",
    "User",
    "dish_id_to_bytes32",
    "normalize",
    "parse_dish_ref",
    "parse_fid",
    "to_hex",
]
