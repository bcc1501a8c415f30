"""Configuration for the on-chain metrics engine."""

from sentinel.config.settings import OnChainConfig, load_config

__all__ = ["OnChainConfig", "load_config"]
