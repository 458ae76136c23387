"""Fixtures for feature tests.

These tests operate at a higher level than unit tests, exercising the
collection and marketplace end-to-end through the World API.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from nft_market.config_schema import validate_config_dict
from nft_market.world import World


@pytest.fixture
def feature_world(tmp_path: Path) -> World:
    """Create a World configured for feature testing.

    Deployer, seller and buyer with 10000 ether each and a 1% market fee.
    """
    log_file = tmp_path / "feature_test.jsonl"
    config = validate_config_dict({
        "contracts": {"marketplace": {"fee_percent": 1}},
        "ledger": {"starting_balance": 10000},
        "principals": [
            {"id": "deployer"},
            {"id": "seller"},
            {"id": "buyer"},
        ],
        "logging": {"output_file": str(log_file)},
    })
    return World(config)
