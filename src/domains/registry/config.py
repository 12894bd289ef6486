"""Registry configuration: dish economics at mint time and restaurant rating."""

import os
from dataclasses import dataclass


@dataclass
class RegistryConfig:
    # Price a dish token starts at when created ($0.10)
    starting_price: float = 0.1

    # Restaurant rating = average dish price * multiplier, capped
    rating_multiplier: float = 10.0
    rating_cap: float = 100.0

    @classmethod
    def from_env(cls) -> "RegistryConfig":
        """Load config with environment variable overrides (REGISTRY_ prefix)."""
        config = cls()

        if v := os.getenv("REGISTRY_STARTING_PRICE"):
            config.starting_price = float(v)
        if v := os.getenv("REGISTRY_RATING_MULTIPLIER"):
            config.rating_multiplier = float(v)
        if v := os.getenv("REGISTRY_RATING_CAP"):
            config.rating_cap = float(v)

        return config


default_config = RegistryConfig()
