"""Pydantic models for holding changes."""

from pydantic import BaseModel, Field

from src.domains.referrals.models import ReferralOutcome

# --- Request Models ---


class AcquisitionRequest(BaseModel):
    fid: int = Field(gt=0)
    quantity: float = Field(gt=0)
    usdc_amount: float = Field(default=0.0, ge=0)
    referrer_fid: int | None = None
    # Post-trade state read from the contract by the client, if available
    current_price: float | None = Field(default=None, ge=0)
    current_supply: float | None = Field(default=None, ge=0)
    market_cap: float | None = Field(default=None, ge=0)


class DisposalRequest(BaseModel):
    fid: int = Field(gt=0)
    quantity: float = Field(gt=0)
    usdc_received: float = Field(default=0.0, ge=0)


# --- Result Models ---


class AcquisitionResult(BaseModel):
    fid: int
    dish_id: str
    quantity: float
    is_new_holder: bool
    current_price: float
    current_supply: float
    market_cap: float
    referral: ReferralOutcome | None = None


class DisposalResult(BaseModel):
    fid: int
    dish_id: str
    quantity: float
    position_closed: bool
    current_price: float
    current_supply: float
