"""Restaurant deletion with cascading reference cleanup.

The store offers per-record atomic updates only, so consistency comes from
ordering: every reference to a dish is pulled before the dish record is
deleted, and the restaurant is deleted only once all of its dishes are gone.
Each step is a pull or a delete keyed by id, so re-running the cascade after
a failure converges to the same end state.
"""

from enum import StrEnum

import structlog
from pydantic import BaseModel, Field

from src.shared.errors import PartialCascadeFailure, ValidationError

from .store import DishStore

logger = structlog.get_logger()


class CascadeState(StrEnum):
    REQUESTED = "requested"
    RESTAURANT_FOUND = "restaurant_found"
    NOT_FOUND = "not_found"
    DISHES_IDENTIFIED = "dishes_identified"
    REFERENCES_PURGED = "references_purged"
    RESTAURANT_REMOVED = "restaurant_removed"
    DONE = "done"
    ABORTED = "aborted"


class CascadeResult(BaseModel):
    restaurant_id: str
    state: CascadeState
    restaurants_deleted: int = 0
    dishes_deleted: int = 0
    wishlist_references_removed: int = 0
    portfolio_references_removed: int = 0
    dish_ids: list[str] = Field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.state != CascadeState.ABORTED


class CascadeDeletionCoordinator:
    """Runs one restaurant-delete request through the cascade state machine."""

    def __init__(self, store: DishStore) -> None:
        self._store = store

    async def delete_restaurant(self, restaurant_id: str) -> CascadeResult:
        """Delete a restaurant, its dishes and every reference to those dishes.

        Returns an ``ABORTED`` result when the restaurant does not exist (no
        work is done). Raises ``PartialCascadeFailure`` if the store fails
        after the precondition check.
        """
        if not restaurant_id:
            raise ValidationError("Restaurant ID is required")

        result = CascadeResult(restaurant_id=restaurant_id, state=CascadeState.REQUESTED)
        purged: list[str] = []

        restaurant = await self._store.get_restaurant(restaurant_id)
        if restaurant is None:
            self._advance(result, CascadeState.NOT_FOUND)
            self._advance(result, CascadeState.ABORTED)
            return result
        self._advance(result, CascadeState.RESTAURANT_FOUND)

        try:
            dishes = await self._store.find_dishes(restaurant=restaurant_id)
            result.dish_ids = [d.dish_id for d in dishes]
            self._advance(result, CascadeState.DISHES_IDENTIFIED)

            for dish_id in result.dish_ids:
                await self._purge_dish(dish_id, result)
                purged.append(dish_id)

            # Dishes created while the purge ran would be orphaned otherwise
            stragglers = await self._store.find_dishes(restaurant=restaurant_id)
            for dish in stragglers:
                if dish.dish_id in purged:
                    continue
                await self._purge_dish(dish.dish_id, result)
                purged.append(dish.dish_id)
                result.dish_ids.append(dish.dish_id)
            self._advance(result, CascadeState.REFERENCES_PURGED)

            if await self._store.delete_restaurant(restaurant_id):
                result.restaurants_deleted = 1
            self._advance(result, CascadeState.RESTAURANT_REMOVED)
        except Exception as exc:
            logger.error(
                "restaurant_cascade_failed",
                restaurant_id=restaurant_id,
                state=result.state.value,
                purged_count=len(purged),
                error=str(exc),
            )
            raise PartialCascadeFailure(
                "Restaurant deletion did not complete",
                restaurant_id=restaurant_id,
                state=result.state.value,
                purged_dish_ids=purged,
            ) from exc

        self._advance(result, CascadeState.DONE)
        logger.info(
            "restaurant_cascade_completed",
            restaurant_id=restaurant_id,
            dishes_deleted=result.dishes_deleted,
            wishlist_references_removed=result.wishlist_references_removed,
            portfolio_references_removed=result.portfolio_references_removed,
        )
        return result

    async def _purge_dish(self, dish_id: str, result: CascadeResult) -> None:
        """Pull all references to a dish, then delete its record."""
        result.wishlist_references_removed += await self._store.pull_dish_from_wishlists(
            dish_id
        )
        result.portfolio_references_removed += await self._store.pull_dish_from_portfolios(
            dish_id
        )
        await self._store.delete_referrals_for_dish(dish_id)
        if await self._store.delete_dish(dish_id):
            result.dishes_deleted += 1
        logger.debug("dish_purged", dish_id=dish_id, restaurant_id=result.restaurant_id)

    def _advance(self, result: CascadeResult, state: CascadeState) -> None:
        logger.debug(
            "cascade_state",
            restaurant_id=result.restaurant_id,
            previous=result.state.value,
            state=state.value,
        )
        result.state = state
