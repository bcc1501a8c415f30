"""Sentinel: on-chain metrics derivation for ERC-20 token risk analysis."""

__version__ = "0.1.0"
