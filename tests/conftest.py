"""
Pytest configuration and shared fixtures

Add global fixtures here that are used across multiple test modules.
"""

import pytest

from sentinel.config.settings import OnChainConfig

# Register plugins for fixtures from separate files
pytest_plugins = ["tests.fixtures.rpc_fixtures"]


@pytest.fixture
def config(monkeypatch, tmp_path):
    """
    OnChainConfig isolated from the developer's environment.

    Retries are instant and logs go to a temporary directory.
    """
    for var in ("RPC_URL", "RPC_FALLBACK_URLS", "KNOWN_EXCHANGE_ADDRESSES"):
        monkeypatch.delenv(var, raising=False)
    return OnChainConfig(
        rpc_base_delay_seconds=0.0,
        log_dir=str(tmp_path / "logs"),
    )
