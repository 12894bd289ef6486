"""Pydantic models for the referral domain."""

from datetime import datetime

from pydantic import BaseModel, Field


class ReferralRequest(BaseModel):
    referrer_fid: int = Field(gt=0)
    referee_fid: int = Field(gt=0)
    dish_id: str = Field(min_length=1)


class ReferralOutcome(BaseModel):
    referrer_fid: int
    referee_fid: int
    dish_id: str
    # False when the referee was already attributed to someone
    recorded: bool
    # Whoever holds the attribution after the call (first write wins)
    effective_referrer: int | None


class ReferralItem(BaseModel):
    referred_fid: int
    dish_id: str
    referrer_fid: int
    created_at: datetime


class ReferralChainLink(BaseModel):
    fid: int
    level: int


class AttributionResponse(BaseModel):
    client_id: str
    referrer_fid: int | None
    source: str  # "url" / "stored" / "none"
