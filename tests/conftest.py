"""Pytest fixtures for nft_market tests.

Common fixtures for deploying a collection and a marketplace into a
fresh World and driving them through World.invoke.
"""

from __future__ import annotations

# Load environment variables from .env before any tests run
from dotenv import load_dotenv

load_dotenv()

from pathlib import Path
from typing import Any

import pytest

from nft_market.config_schema import AppConfig, validate_config_dict
from nft_market.world import Collection, Ledger, Marketplace, World, to_wei

ConfigDict = dict[str, Any]

SAMPLE_URI = "Sample URI"


@pytest.fixture
def minimal_config(tmp_path: Path) -> ConfigDict:
    """Minimal configuration dict for testing.

    Three principals with 10000 ether each, a 1% market fee, and the
    event log in a temporary directory.
    """
    return {
        "contracts": {
            "collection": {"name": "iVobs NFT", "symbol": "DSP"},
            "marketplace": {"fee_percent": 1},
        },
        "ledger": {"starting_balance": 10000},
        "principals": [
            {"id": "deployer"},
            {"id": "seller"},
            {"id": "buyer"},
        ],
        "logging": {
            "output_file": str(tmp_path / "test_run.jsonl"),
            "logs_dir": str(tmp_path / "logs"),
        },
    }


@pytest.fixture
def app_config(minimal_config: ConfigDict) -> AppConfig:
    """Validated form of minimal_config."""
    return validate_config_dict(minimal_config)


@pytest.fixture
def world(app_config: AppConfig) -> World:
    """Create a test World instance with minimal configuration."""
    return World(app_config)


@pytest.fixture
def deployer(world: World) -> str:
    return world.address_of("deployer")


@pytest.fixture
def seller(world: World) -> str:
    return world.address_of("seller")


@pytest.fixture
def buyer(world: World) -> str:
    return world.address_of("buyer")


@pytest.fixture
def collection(world: World, deployer: str) -> Collection:
    """A collection deployed by the deployer."""
    return world.deploy_collection(deployer)


@pytest.fixture
def marketplace(world: World, deployer: str) -> Marketplace:
    """A 1% fee marketplace deployed by the deployer (who is the fee account)."""
    return world.deploy_marketplace(deployer)


@pytest.fixture
def minted_token(world: World, collection: Collection, seller: str, marketplace: Marketplace) -> int:
    """A token minted by the seller, with the marketplace approved as operator."""
    result = world.invoke(seller, collection.address, "mint", [SAMPLE_URI])
    assert result["success"] is True
    approval = world.invoke(
        seller, collection.address, "set_approval_for_all", [marketplace.address, True]
    )
    assert approval["success"] is True
    return int(result["token_id"])


@pytest.fixture
def listed_item(
    world: World,
    collection: Collection,
    marketplace: Marketplace,
    seller: str,
    minted_token: int,
) -> int:
    """minted_token listed on the marketplace at 1 ether."""
    result = world.invoke(
        seller, marketplace.address, "make_item", [collection.address, minted_token, to_wei(1)]
    )
    assert result["success"] is True
    return int(result["item_id"])


@pytest.fixture
def empty_ledger() -> Ledger:
    """Create an empty Ledger instance with no accounts."""
    return Ledger()
