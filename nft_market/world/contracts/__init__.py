"""Contracts Package

Contracts are deployed into a World at an address and reached through
World.invoke:
- Collection: ERC-721 style token registry (the asset registry)
- Marketplace: escrow that lists, holds and sells tokens for a fee
"""

# Base classes and utilities
from .base import (
    CallContext,
    Contract,
    ContractMethod,
    require_address,
    require_arg,
    require_bool,
    require_int,
)

# Type definitions
from .types import (
    MethodInfo,
    ContractDict,
    ItemRecord,
    MakeItemResult,
    PurchaseResult,
    TotalPriceResult,
    ItemResult,
    ListActiveResult,
    MintResult,
    TransferResult,
    EventRecord,
)

# Contract classes
from .asset_registry import AssetRegistry
from .collection import Collection
from .marketplace import Marketplace, MarketItem

__all__ = [
    "CallContext",
    "Contract",
    "ContractMethod",
    "require_address",
    "require_arg",
    "require_bool",
    "require_int",
    "MethodInfo",
    "ContractDict",
    "ItemRecord",
    "MakeItemResult",
    "PurchaseResult",
    "TotalPriceResult",
    "ItemResult",
    "ListActiveResult",
    "MintResult",
    "TransferResult",
    "EventRecord",
    "AssetRegistry",
    "Collection",
    "Marketplace",
    "MarketItem",
]
