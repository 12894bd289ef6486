"""Referral system configuration."""

import os
from dataclasses import dataclass


@dataclass
class ReferralConfig:
    # Reputation granted to the referrer when a referred user first acquires the dish
    referral_reward: int = 10
    # Reputation granted to any user on each acquisition
    mint_reward: int = 5

    # How far up a referral chain to walk (A referred B referred C ...)
    max_chain_depth: int = 10

    # Key prefix for persisted client-side attribution
    attribution_key_prefix: str = "tmap:referrer:"

    def __post_init__(self) -> None:
        if self.max_chain_depth < 1:
            raise ValueError(f"max_chain_depth must be >= 1, got {self.max_chain_depth}")
        if self.referral_reward < 0 or self.mint_reward < 0:
            raise ValueError("Reputation rewards must be non-negative")

    @classmethod
    def from_env(cls) -> "ReferralConfig":
        """Load config with environment variable overrides (REFERRAL_ prefix)."""
        config = cls()

        if v := os.getenv("REFERRAL_REWARD"):
            config.referral_reward = int(v)
        if v := os.getenv("REFERRAL_MINT_REWARD"):
            config.mint_reward = int(v)
        if v := os.getenv("REFERRAL_MAX_CHAIN_DEPTH"):
            config.max_chain_depth = int(v)
        if v := os.getenv("REFERRAL_ATTRIBUTION_KEY_PREFIX"):
            config.attribution_key_prefix = v

        config.__post_init__()
        return config


default_config = ReferralConfig()
