"""Restaurant endpoints, including cascading deletion."""

import structlog
from fastapi import APIRouter, Depends

from src.db.database import get_store
from src.domains.registry import CascadeDeletionCoordinator, DishRegistry, DishStore, Restaurant
from src.domains.registry.models import RestaurantCreateRequest
from src.shared.errors import NotFoundError

logger = structlog.get_logger()
router = APIRouter(prefix="/api/v1/restaurants", tags=["restaurants"])


@router.post("", status_code=201)
async def create_restaurant(
    request: RestaurantCreateRequest,
    store: DishStore = Depends(get_store),  # noqa: B008
) -> dict:
    restaurant = await DishRegistry(store).create_restaurant(
        Restaurant(**request.model_dump())
    )
    return restaurant.model_dump(mode="json")


@router.get("/{restaurant_id}")
async def get_restaurant(
    restaurant_id: str,
    store: DishStore = Depends(get_store),  # noqa: B008
) -> dict:
    restaurant = await store.get_restaurant(restaurant_id)
    if restaurant is None:
        raise NotFoundError("Restaurant not found")
    return restaurant.model_dump(mode="json")


@router.get("/{restaurant_id}/dishes")
async def restaurant_dishes(
    restaurant_id: str,
    store: DishStore = Depends(get_store),  # noqa: B008
) -> dict:
    """Dishes at a restaurant, newest first."""
    dishes = await DishRegistry(store).restaurant_dishes(restaurant_id)
    return {"dishes": [d.model_dump() for d in dishes]}


@router.delete("/{restaurant_id}")
async def delete_restaurant(
    restaurant_id: str,
    store: DishStore = Depends(get_store),  # noqa: B008
) -> dict:
    """Delete a restaurant, its dishes and every wishlist/portfolio reference to them."""
    result = await CascadeDeletionCoordinator(store).delete_restaurant(restaurant_id)
    if not result.found:
        raise NotFoundError("Restaurant not found")

    return {
        "success": True,
        "message": "Restaurant and associated data deleted successfully",
        "restaurants_deleted": result.restaurants_deleted,
        "dishes_deleted": result.dishes_deleted,
        "wishlist_references_removed": result.wishlist_references_removed,
        "portfolio_references_removed": result.portfolio_references_removed,
        "dish_ids": result.dish_ids,
    }
