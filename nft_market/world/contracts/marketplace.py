"""Marketplace - Escrow and settlement of NFT sales

Implements custody-based trading without trusting counterparties.

**Trading Flow:**
1. Seller mints a token on a collection and approves the marketplace as
   operator (set_approval_for_all)
2. Seller calls make_item([nft, token_id, price]):
   - Marketplace pulls the token into its own address
   - A new item is recorded with sold=False
3. Buyer reads get_total_price([item_id]) (price plus fee)
4. Buyer calls purchase_item([item_id]) with at least the total attached:
   - Seller receives the price
   - Fee account receives everything above the price (overpayment included)
   - Token moves from the marketplace to the buyer
   - Item is marked sold

Items are never deleted or re-listed. There is no cancel and no price
update: once listed, an item ends only by being bought.

Both mutating methods must be reached through World.invoke, which makes
each call all-or-nothing.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any

from ...config import get_validated_config
from ...config_schema import MarketplaceConfig
from ..errors import (
    AlreadySold,
    InsufficientFunds,
    InsufficientPayment,
    InvalidArgument,
    InvalidPrice,
    ItemNotFound,
)
from ..id_registry import ZERO_ADDRESS
from .asset_registry import AssetRegistry
from .base import CallContext, Contract, require_address, require_int
from .types import (
    ItemRecord,
    ItemResult,
    ListActiveResult,
    MakeItemResult,
    PurchaseResult,
    TotalPriceResult,
)

logger = logging.getLogger(__name__)


@dataclass
class MarketItem:
    """A listing. Default values stand in for ids that were never assigned."""
    item_id: int = 0
    nft: str = ZERO_ADDRESS
    token_id: int = 0
    seller: str = ZERO_ADDRESS
    price: int = 0  # wei
    sold: bool = False

    def to_dict(self) -> ItemRecord:
        record: ItemRecord = asdict(self)  # type: ignore[assignment]
        return record


class Marketplace(Contract):
    """
    Escrow marketplace contract.

    fee_percent and fee_account are fixed at deployment. The fee account is
    the deploying address. item_count always equals the highest item id.
    """

    items: dict[int, MarketItem]
    item_count: int
    _fee_account: str
    _fee_percent: int

    def __init__(
        self,
        fee_account: str,
        fee_percent: int | None = None,
        marketplace_config: MarketplaceConfig | None = None,
    ) -> None:
        """
        Args:
            fee_account: Address receiving the fee on every sale
            fee_percent: Fee as a percentage of price (default from config)
            marketplace_config: Optional marketplace config (uses global if not provided)
        """
        cfg = marketplace_config or get_validated_config().contracts.marketplace
        if fee_percent is None:
            fee_percent = cfg.fee_percent
        if isinstance(fee_percent, bool) or not isinstance(fee_percent, int) or fee_percent < 0:
            raise ValueError(f"fee_percent must be a non-negative integer, got {fee_percent!r}")
        if not fee_account:
            raise ValueError("fee_account is required")

        super().__init__(kind="marketplace", description=cfg.description)
        self._fee_account = fee_account
        self._fee_percent = fee_percent
        self.items = {}
        self.item_count = 0

        methods = cfg.methods
        self.register_method("make_item", self._make_item, methods.make_item.description)
        self.register_method(
            "purchase_item", self._purchase_item, methods.purchase_item.description, payable=True
        )
        self.register_method(
            "get_total_price", self._get_total_price, methods.get_total_price.description, view=True
        )
        self.register_method("items", self._items, methods.items.description, view=True)
        self.register_method("list_active", self._list_active, methods.list_active.description, view=True)
        self.register_method(
            "item_count", self._item_count, "Number of items ever listed. Args: []", view=True
        )
        self.register_method("fee_percent", self._fee_percent_view, "Market fee percent. Args: []", view=True)
        self.register_method("fee_account", self._fee_account_view, "Fee receiving address. Args: []", view=True)

    @property
    def fee_account(self) -> str:
        return self._fee_account

    @property
    def fee_percent(self) -> int:
        return self._fee_percent

    # ===== Reads =====

    def get_item(self, item_id: int) -> MarketItem | None:
        """The item, or None if the id was never assigned."""
        return self.items.get(item_id)

    def item(self, item_id: int) -> MarketItem:
        """The item, or a zero-valued record if the id was never assigned."""
        return self.items.get(item_id) or MarketItem()

    def get_total_price(self, item_id: int) -> int:
        """Price plus fee in wei. Unknown ids price at 0 and quote 0."""
        price = self.item(item_id).price
        return price + price * self._fee_percent // 100

    def active_items(self) -> list[MarketItem]:
        """Unsold items in listing order."""
        return [item for item in self.items.values() if not item.sold]

    # ===== Mutations =====

    def _registry(self, nft: str) -> AssetRegistry:
        contract = self.world.get_contract(nft)
        if not isinstance(contract, AssetRegistry):
            raise InvalidArgument(f"{nft} is a {contract.kind} contract, not an asset registry")
        return contract

    def make_item(self, seller: str, nft: str, token_id: int, price: int) -> MarketItem:
        """List token_id of nft at price, taking custody of the token.

        Registry refusals (not approved, not owner, unknown token) propagate
        unchanged.
        """
        self._require_transaction()
        if price <= 0:
            raise InvalidPrice("price must be greater than zero", price=price)

        registry = self._registry(nft)
        self._record_attr(self, "item_count")
        self.item_count += 1
        registry.transfer_from(self.address, seller, self.address, token_id)

        item = MarketItem(
            item_id=self.item_count,
            nft=nft,
            token_id=token_id,
            seller=seller,
            price=price,
            sold=False,
        )
        self._record(self.items, item.item_id)
        self.items[item.item_id] = item
        self._emit(
            "offered",
            item_id=item.item_id,
            nft=nft,
            token_id=token_id,
            price=price,
            seller=seller,
        )
        return item

    def purchase_item(self, buyer: str, item_id: int, value: int) -> tuple[MarketItem, int]:
        """Settle a sale paid with value already held by the marketplace.

        Returns:
            The sold item and the amount routed to the fee account
        """
        self._require_transaction()
        if item_id < 1 or item_id > self.item_count:
            raise ItemNotFound("item doesn't exist", item_id=item_id)
        total_price = self.get_total_price(item_id)
        if value < total_price:
            raise InsufficientPayment(
                "not enough value to cover item price and market fee",
                required=total_price,
                sent=value,
            )
        item = self.items[item_id]
        if item.sold:
            raise AlreadySold("item already sold", item_id=item_id)

        fee_paid = value - item.price
        # value was credited to this contract by World.invoke before the call
        ledger = self.world.ledger
        if not ledger.transfer(self.address, item.seller, item.price):
            raise InsufficientFunds("marketplace does not hold the attached value")
        if fee_paid > 0 and not ledger.transfer(self.address, self._fee_account, fee_paid):
            raise InsufficientFunds("marketplace does not hold the attached value")

        self._registry(item.nft).transfer_from(self.address, self.address, buyer, item.token_id)
        self._record_attr(item, "sold")
        item.sold = True

        self._emit(
            "bought",
            item_id=item.item_id,
            nft=item.nft,
            token_id=item.token_id,
            price=item.price,
            seller=item.seller,
            buyer=buyer,
        )
        return item, fee_paid

    # ===== Method handlers =====

    def _make_item(self, args: list[Any], ctx: CallContext) -> MakeItemResult:
        """List a token for sale.

        IMPORTANT: Before listing, the caller must approve the marketplace on
        the collection, e.g. collection.set_approval_for_all([marketplace, True]).

        Args: [nft, token_id, price]
        - nft: Address of the collection holding the token
        - token_id: Token to sell
        - price: Sale price in wei (fee is charged on top)
        """
        usage = "make_item([nft, token_id, price])"
        nft = require_address(args, 0, "nft", usage)
        token_id = require_int(args, 1, "token_id", usage)
        price = require_int(args, 2, "price", usage)

        item = self.make_item(ctx.sender, nft, token_id, price)
        logger.info("Item %d listed: token %d of %s at %d wei", item.item_id, token_id, nft, price)
        return {
            "success": True,
            "item_id": item.item_id,
            "nft": nft,
            "token_id": token_id,
            "price": price,
            "seller": ctx.sender,
            "message": f"Listed token {token_id} as item {item.item_id} for {price} wei",
        }

    def _purchase_item(self, args: list[Any], ctx: CallContext) -> PurchaseResult:
        """Purchase a listed item with the attached value.

        Args: [item_id]
        """
        item_id = require_int(args, 0, "item_id", "purchase_item([item_id])")
        item, fee_paid = self.purchase_item(ctx.sender, item_id, ctx.value)
        logger.info("Item %d bought by %s for %d wei", item_id, ctx.sender, ctx.value)
        return {
            "success": True,
            "item_id": item.item_id,
            "nft": item.nft,
            "token_id": item.token_id,
            "price": item.price,
            "seller": item.seller,
            "buyer": ctx.sender,
            "fee_paid": fee_paid,
            "message": f"Purchased item {item_id} for {ctx.value} wei from {item.seller}",
        }

    def _get_total_price(self, args: list[Any], ctx: CallContext) -> TotalPriceResult:
        item_id = require_int(args, 0, "item_id", "get_total_price([item_id])")
        return {"success": True, "item_id": item_id, "total_price": self.get_total_price(item_id)}

    def _items(self, args: list[Any], ctx: CallContext) -> ItemResult:
        item_id = require_int(args, 0, "item_id", "items([item_id])")
        return {"success": True, "item": self.item(item_id).to_dict()}

    def _list_active(self, args: list[Any], ctx: CallContext) -> ListActiveResult:
        active = [item.to_dict() for item in self.active_items()]
        return {"success": True, "items": active, "count": len(active)}

    def _item_count(self, args: list[Any], ctx: CallContext) -> dict[str, Any]:
        return {"success": True, "item_count": self.item_count}

    def _fee_percent_view(self, args: list[Any], ctx: CallContext) -> dict[str, Any]:
        return {"success": True, "fee_percent": self._fee_percent}

    def _fee_account_view(self, args: list[Any], ctx: CallContext) -> dict[str, Any]:
        return {"success": True, "fee_account": self._fee_account}

    def get_interface(self) -> dict[str, Any]:
        """Get detailed interface schema for the marketplace."""
        return {
            "description": self.description,
            "dataType": "service",
            "fee_percent": self._fee_percent,
            "fee_account": self._fee_account,
            "tools": [
                {
                    "name": "make_item",
                    "description": self.methods["make_item"].description,
                    "payable": False,
                    "inputSchema": {
                        "type": "object",
                        "properties": {
                            "nft": {"type": "string", "description": "Collection address"},
                            "token_id": {"type": "integer", "description": "Token to list"},
                            "price": {
                                "type": "integer",
                                "description": "Sale price in wei",
                                "minimum": 1,
                            },
                        },
                        "required": ["nft", "token_id", "price"],
                    },
                },
                {
                    "name": "purchase_item",
                    "description": self.methods["purchase_item"].description,
                    "payable": True,
                    "inputSchema": {
                        "type": "object",
                        "properties": {
                            "item_id": {"type": "integer", "description": "Item to buy", "minimum": 1},
                        },
                        "required": ["item_id"],
                    },
                },
                {
                    "name": "get_total_price",
                    "description": self.methods["get_total_price"].description,
                    "payable": False,
                    "inputSchema": {
                        "type": "object",
                        "properties": {"item_id": {"type": "integer"}},
                        "required": ["item_id"],
                    },
                },
                {
                    "name": "items",
                    "description": self.methods["items"].description,
                    "payable": False,
                    "inputSchema": {
                        "type": "object",
                        "properties": {"item_id": {"type": "integer"}},
                        "required": ["item_id"],
                    },
                },
                {
                    "name": "list_active",
                    "description": self.methods["list_active"].description,
                    "payable": False,
                    "inputSchema": {"type": "object", "properties": {}},
                },
            ],
        }
