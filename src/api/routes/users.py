"""User, portfolio, tier and wishlist endpoints."""

import structlog
from fastapi import APIRouter, Depends, Query

from src.chain.reader import DishChainReader
from src.db.database import get_chain_reader, get_store
from src.domains.portfolio.aggregator import PortfolioAggregator
from src.domains.registry import DishRegistry, DishStore, parse_fid
from src.domains.registry.models import UserSyncRequest, WishlistAddRequest
from src.domains.tiers.classifier import classify_signals, signals_for_user
from src.domains.tiers.models import UserTierResponse

logger = structlog.get_logger()
router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.post("/sync")
async def sync_user(
    request: UserSyncRequest,
    store: DishStore = Depends(get_store),  # noqa: B008
) -> dict:
    """Create or update a user on sign-in."""
    user, is_new = await DishRegistry(store).sync_user(
        request.fid,
        username=request.username,
        wallet_address=request.wallet_address,
        pfp_url=request.pfp_url,
        display_name=request.display_name,
    )
    return {"user": user.model_dump(mode="json", by_alias=True), "is_new_user": is_new}


@router.get("/{fid}")
async def get_user(
    fid: str,
    store: DishStore = Depends(get_store),  # noqa: B008
    chain_reader: DishChainReader = Depends(get_chain_reader),  # noqa: B008
) -> dict:
    user = await DishRegistry(store).get_user(fid)
    user = await PortfolioAggregator(store, chain_reader).with_portfolio(user, parse_fid(fid))
    return user.model_dump(mode="json", by_alias=True)


@router.get("/{fid}/portfolio")
async def get_portfolio(
    fid: str,
    store: DishStore = Depends(get_store),  # noqa: B008
    chain_reader: DishChainReader = Depends(get_chain_reader),  # noqa: B008
) -> dict:
    """Aggregated portfolio metrics for a user."""
    await DishRegistry(store).get_user(fid)
    portfolio = await PortfolioAggregator(store, chain_reader).portfolio_for(parse_fid(fid))
    return portfolio.model_dump(mode="json", by_alias=True)


@router.get("/{fid}/tier")
async def get_tier(
    fid: str,
    store: DishStore = Depends(get_store),  # noqa: B008
    chain_reader: DishChainReader = Depends(get_chain_reader),  # noqa: B008
) -> dict:
    """Reputation tier with the signals it was derived from."""
    numeric_fid = parse_fid(fid)
    user = await DishRegistry(store).get_user(fid)
    user = await PortfolioAggregator(store, chain_reader).with_portfolio(user, numeric_fid)
    dishes_created = len(await store.find_dishes(creator=numeric_fid))

    signals = signals_for_user(user, dishes_created)
    tier = classify_signals(signals)
    return UserTierResponse(fid=numeric_fid, tier=tier, signals=signals).model_dump(mode="json")


# --- wishlist ---


@router.get("/{fid}/wishlist")
async def get_wishlist(
    fid: str,
    store: DishStore = Depends(get_store),  # noqa: B008
) -> dict:
    """Wishlist with entries for deleted dishes removed."""
    wishlist = await DishRegistry(store).cleanup_orphaned_wishlist(fid)
    return {"wishlist": [item.model_dump() for item in wishlist]}


@router.post("/{fid}/wishlist")
async def add_wishlist_item(
    fid: str,
    request: WishlistAddRequest,
    store: DishStore = Depends(get_store),  # noqa: B008
) -> dict:
    added = await DishRegistry(store).add_to_wishlist(
        parse_fid(fid), request.dish_id, request.referrer
    )
    return {"success": True, "added": added}


@router.delete("/{fid}/wishlist")
async def remove_wishlist_item(
    fid: str,
    dish_id: str = Query(..., min_length=1),
    store: DishStore = Depends(get_store),  # noqa: B008
) -> dict:
    removed = await DishRegistry(store).remove_from_wishlist(parse_fid(fid), dish_id)
    return {"success": True, "removed": removed}
