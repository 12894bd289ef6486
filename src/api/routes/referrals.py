"""Referral recording, lookups and referral-code attribution."""

import structlog
from fastapi import APIRouter, Depends, Header, Query

from src.db.database import get_attribution_store, get_store
from src.domains.referrals.attribution import AttributionStore, ReferralAttribution
from src.domains.referrals.ledger import ReferralLedger
from src.domains.referrals.models import ReferralRequest
from src.domains.registry.store import DishStore

logger = structlog.get_logger()
router = APIRouter(prefix="/api/v1/referrals", tags=["referrals"])


@router.post("")
async def record_referral(
    request: ReferralRequest,
    store: DishStore = Depends(get_store),  # noqa: B008
) -> dict:
    """Attribute a referee's dish position to a referrer. First referrer wins."""
    outcome = await ReferralLedger(store).record_referral(
        request.referrer_fid, request.referee_fid, request.dish_id
    )
    return {"success": True, **outcome.model_dump()}


@router.get("")
async def get_referrer(
    referred_fid: int = Query(..., gt=0),
    dish_id: str = Query(..., min_length=1),
    store: DishStore = Depends(get_store),  # noqa: B008
) -> dict:
    referrer_fid = await ReferralLedger(store).get_referrer(referred_fid, dish_id)
    return {"referred_fid": referred_fid, "dish_id": dish_id, "referrer_fid": referrer_fid}


@router.get("/attribution")
async def resolve_attribution(
    ref: str | None = Query(None),
    client_id: str = Header(..., alias="X-Client-Id"),
    attribution_store: AttributionStore = Depends(get_attribution_store),  # noqa: B008
) -> dict:
    """Referrer for this client: the ``ref`` code if valid, else the stored one."""
    result = await ReferralAttribution(attribution_store).resolve(client_id, ref)
    return result.model_dump()


@router.get("/by-referrer/{fid}")
async def referrals_by_referrer(
    fid: int,
    store: DishStore = Depends(get_store),  # noqa: B008
) -> dict:
    items = await ReferralLedger(store).referrals_by_referrer(fid)
    return {"items": [i.model_dump(mode="json") for i in items], "total": len(items)}


@router.get("/for-user/{fid}")
async def referrals_for_user(
    fid: int,
    store: DishStore = Depends(get_store),  # noqa: B008
) -> dict:
    items = await ReferralLedger(store).referrals_for_user(fid)
    return {"items": [i.model_dump(mode="json") for i in items], "total": len(items)}


@router.get("/chain/{fid}")
async def referral_chain(
    fid: int,
    dish_id: str = Query(..., min_length=1),
    store: DishStore = Depends(get_store),  # noqa: B008
) -> dict:
    """Upstream referrers of a user's position in one dish, nearest first."""
    chain = await ReferralLedger(store).referral_chain(fid, dish_id)
    return {"fid": fid, "dish_id": dish_id, "chain": [link.model_dump() for link in chain]}
