"""Pydantic models for user reputation tiers."""

from enum import StrEnum

from pydantic import BaseModel


class TierName(StrEnum):
    RESTAURANT_ROYALTY = "Restaurant Royalty"
    FOOD_MOGUL = "Food Mogul"
    CULINARY_CAPITALIST = "Culinary Capitalist"
    PORTFOLIO_CHEF = "Portfolio Chef"
    TASTE_INVESTOR = "Taste Investor"
    RISING_FOODIE = "Rising Foodie"
    NEW_TASTER = "New Taster"


class BadgeClass(StrEnum):
    AMBER = "badge-amber"
    PURPLE = "badge-purple"
    PRIMARY = "badge-primary"
    BLUE = "badge-blue"
    MINT = "badge-mint"
    GRAY = "badge-gray"


class TierInfo(BaseModel):
    model_config = {"frozen": True}

    name: TierName
    badge_class: BadgeClass


class TierSignals(BaseModel):
    dishes_backed: int = 0
    dishes_created: int = 0
    portfolio_value: float = 0.0
    reputation_score: int = 0


# --- API Response Models ---


class UserTierResponse(BaseModel):
    fid: int
    tier: TierInfo
    signals: TierSignals
