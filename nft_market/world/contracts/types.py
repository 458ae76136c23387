"""Contracts - Type definitions

Shared TypedDict definitions used across contracts.
"""

from typing import Any, TypedDict


class MethodInfo(TypedDict):
    """Information about a contract method for listing."""
    name: str
    description: str
    payable: bool
    view: bool


class ContractDict(TypedDict):
    """Dictionary representation of a deployed contract."""
    address: str
    kind: str
    deployer: str
    description: str
    methods: list[MethodInfo]


# Marketplace types
class ItemRecord(TypedDict):
    """A marketplace listing."""
    item_id: int
    nft: str
    token_id: int
    seller: str
    price: int  # wei
    sold: bool


class MakeItemResult(TypedDict):
    """Result from make_item."""
    success: bool
    item_id: int
    nft: str
    token_id: int
    price: int
    seller: str
    message: str


class PurchaseResult(TypedDict):
    """Result from purchase_item."""
    success: bool
    item_id: int
    nft: str
    token_id: int
    price: int
    seller: str
    buyer: str
    fee_paid: int  # value routed to the fee account
    message: str


class TotalPriceResult(TypedDict):
    """Result from get_total_price."""
    success: bool
    item_id: int
    total_price: int


class ItemResult(TypedDict):
    """Result from items."""
    success: bool
    item: ItemRecord


class ListActiveResult(TypedDict):
    """Result from list_active."""
    success: bool
    items: list[ItemRecord]
    count: int


# Collection types
class MintResult(TypedDict):
    """Result from mint."""
    success: bool
    token_id: int
    owner: str
    token_uri: str


class TransferResult(TypedDict):
    """Result from transfer_from."""
    success: bool
    token_id: int
    from_owner: str
    to_owner: str


# Event record written to the event log and published on the bus
class EventRecord(TypedDict, total=False):
    """A committed contract event."""
    timestamp: str
    sequence: int
    event_type: str
    contract: str
    args: dict[str, Any]
