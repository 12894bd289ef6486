"""Portfolio and holding configuration.

The bonding curve is used to reprice a dish after a trade when no on-chain
price read is supplied: ``price = base_price + supply * price_slope``.
"""

import os
from dataclasses import dataclass


@dataclass
class PortfolioConfig:
    base_price: float = 1.0
    price_slope: float = 0.0125

    def __post_init__(self) -> None:
        if self.base_price < 0 or self.price_slope < 0:
            raise ValueError(
                f"Bonding curve must be non-negative, got base={self.base_price} "
                f"slope={self.price_slope}"
            )

    def price_at_supply(self, supply: float) -> float:
        return self.base_price + max(supply, 0.0) * self.price_slope

    @classmethod
    def from_env(cls) -> "PortfolioConfig":
        """Load config with environment variable overrides (PORTFOLIO_ prefix)."""
        config = cls()

        if v := os.getenv("PORTFOLIO_BASE_PRICE"):
            config.base_price = float(v)
        if v := os.getenv("PORTFOLIO_PRICE_SLOPE"):
            config.price_slope = float(v)

        config.__post_init__()
        return config


default_config = PortfolioConfig()
