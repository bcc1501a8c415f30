"""Data models for the on-chain metrics engine."""
