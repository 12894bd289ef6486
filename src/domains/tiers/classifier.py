"""User tier classification.

Maps four activity signals to a named reputation tier via an ordered
decision list. The first matching rule wins; the last rule always matches,
so classification is total.
"""

from collections.abc import Callable
from dataclasses import dataclass

from src.domains.registry.models import User

from .models import BadgeClass, TierInfo, TierName, TierSignals


@dataclass(frozen=True)
class TierRule:
    tier: TierInfo
    matches: Callable[[TierSignals], bool]


TIER_RULES: tuple[TierRule, ...] = (
    TierRule(
        TierInfo(name=TierName.RESTAURANT_ROYALTY, badge_class=BadgeClass.AMBER),
        lambda s: s.reputation_score >= 1000 and s.portfolio_value >= 100_000,
    ),
    TierRule(
        TierInfo(name=TierName.FOOD_MOGUL, badge_class=BadgeClass.PURPLE),
        lambda s: s.dishes_created >= 20 and s.portfolio_value >= 50_000,
    ),
    TierRule(
        TierInfo(name=TierName.CULINARY_CAPITALIST, badge_class=BadgeClass.PRIMARY),
        lambda s: s.dishes_created >= 10 and s.portfolio_value >= 10_000,
    ),
    TierRule(
        TierInfo(name=TierName.PORTFOLIO_CHEF, badge_class=BadgeClass.BLUE),
        lambda s: s.dishes_created >= 3 and s.portfolio_value >= 2_000,
    ),
    TierRule(
        TierInfo(name=TierName.TASTE_INVESTOR, badge_class=BadgeClass.MINT),
        lambda s: s.dishes_created >= 1 or s.portfolio_value >= 500,
    ),
    TierRule(
        TierInfo(name=TierName.RISING_FOODIE, badge_class=BadgeClass.GRAY),
        lambda s: s.dishes_backed >= 5,
    ),
)

DEFAULT_TIER = TierInfo(name=TierName.NEW_TASTER, badge_class=BadgeClass.GRAY)


def classify(
    dishes_backed: int,
    dishes_created: int,
    portfolio_value: float,
    reputation_score: int,
) -> TierInfo:
    """Classify a user into a tier. Pure and deterministic."""
    # model_construct skips validation: any numeric quadruple is accepted
    signals = TierSignals.model_construct(
        dishes_backed=dishes_backed,
        dishes_created=dishes_created,
        portfolio_value=portfolio_value,
        reputation_score=reputation_score,
    )
    return classify_signals(signals)


def classify_signals(signals: TierSignals) -> TierInfo:
    for rule in TIER_RULES:
        if rule.matches(signals):
            return rule.tier
    return DEFAULT_TIER


def signals_for_user(user: User, dishes_created: int) -> TierSignals:
    """Tier inputs for a user whose portfolio totals are already aggregated."""
    return TierSignals(
        dishes_backed=sum(1 for p in user.portfolio.dishes if p.quantity > 0),
        dishes_created=dishes_created,
        portfolio_value=user.portfolio.total_value,
        reputation_score=user.reputation_score,
    )
