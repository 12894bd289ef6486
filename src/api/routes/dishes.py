"""Dish endpoints: creation, lookups, on-chain holder counts and trades."""

import structlog
from fastapi import APIRouter, Depends

from src.chain.reader import DishChainReader
from src.db.database import get_chain_reader, get_store
from src.domains.portfolio.holdings import HoldingsService
from src.domains.portfolio.models import AcquisitionRequest, DisposalRequest
from src.domains.registry import DishRegistry, DishStore, dish_id_to_bytes32
from src.domains.registry.models import DishCreateRequest
from src.shared.errors import NotFoundError

logger = structlog.get_logger()
router = APIRouter(prefix="/api/v1/dishes", tags=["dishes"])


@router.post("", status_code=201)
async def create_dish(
    request: DishCreateRequest,
    store: DishStore = Depends(get_store),  # noqa: B008
) -> dict:
    dish = await DishRegistry(store).create_dish(request)
    return {"success": True, "dish": dish.model_dump(mode="json")}


@router.get("/creator/{fid}")
async def dishes_by_creator(
    fid: str,
    store: DishStore = Depends(get_store),  # noqa: B008
) -> dict:
    """Dishes created by a user, each with its restaurant's name."""
    items = await DishRegistry(store).dishes_by_creator(fid)
    return {"dishes": [item.model_dump() for item in items]}


@router.get("/{dish_id}")
async def get_dish(
    dish_id: str,
    store: DishStore = Depends(get_store),  # noqa: B008
) -> dict:
    dish = await store.get_dish(dish_id)
    if dish is None:
        raise NotFoundError("Dish not found")
    return dish.model_dump(mode="json")


@router.get("/{dish_id}/holders")
async def holder_count(
    dish_id: str,
    chain_reader: DishChainReader = Depends(get_chain_reader),  # noqa: B008
) -> dict:
    """Holder count read from the dishes contract."""
    count = await chain_reader.holder_count(dish_id)
    return {
        "dish_id": dish_id,
        "bytes32_id": dish_id_to_bytes32(dish_id),
        "holder_count": count,
    }


@router.post("/{dish_id}/acquisitions")
async def record_acquisition(
    dish_id: str,
    request: AcquisitionRequest,
    store: DishStore = Depends(get_store),  # noqa: B008
) -> dict:
    result = await HoldingsService(store).record_acquisition(dish_id, request)
    return result.model_dump(mode="json")


@router.post("/{dish_id}/disposals")
async def record_disposal(
    dish_id: str,
    request: DisposalRequest,
    store: DishStore = Depends(get_store),  # noqa: B008
) -> dict:
    result = await HoldingsService(store).record_disposal(dish_id, request)
    return result.model_dump(mode="json")
