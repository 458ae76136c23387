# World kernel package
from .world import World, StateSummary
from .journal import Journal
from .ledger import Ledger
from .logger import EventLogger
from .event_bus import EventBus
from .id_registry import IDRegistry, IDCollisionError, ZERO_ADDRESS, derive_address
from .units import WEI_PER_ETHER, to_wei, from_wei, format_ether
from .contracts import (
    AssetRegistry,
    CallContext,
    Collection,
    Contract,
    Marketplace,
    MarketItem,
)

__all__ = [
    "World",
    "StateSummary",
    "Journal",
    "Ledger",
    "EventLogger",
    "EventBus",
    "IDRegistry",
    "IDCollisionError",
    "ZERO_ADDRESS",
    "derive_address",
    "WEI_PER_ETHER",
    "to_wei",
    "from_wei",
    "format_ether",
    "AssetRegistry",
    "CallContext",
    "Collection",
    "Contract",
    "Marketplace",
    "MarketItem",
]
