"""Collection - ERC-721 style token registry

Issues token ids from 1, records one owner per token, a metadata URI per
token, single-token approvals and blanket operator approvals. It is the
AssetRegistry the marketplace takes custody through.

Listing flow from the holder's side:
1. collection.mint([uri]) -> token_id (caller owns it)
2. collection.set_approval_for_all([marketplace_address, True])
3. marketplace.make_item([collection_address, token_id, price])
"""

from __future__ import annotations

from typing import Any

from ...config import get_validated_config
from ...config_schema import CollectionConfig
from ..errors import InvalidArgument, NotAuthorized, NotOwner, TokenNotFound
from ..id_registry import ZERO_ADDRESS
from .base import CallContext, Contract, require_address, require_arg, require_bool, require_int
from .types import MintResult, TransferResult


class Collection(Contract):
    """
    NFT collection contract.

    State is keyed by token id and owner address. Operator approvals are
    keyed by (owner, operator). Transfers clear the token's
    single-token approval.
    """

    name: str
    symbol: str
    token_count: int
    _owners: dict[int, str]
    _balances: dict[str, int]
    _token_uris: dict[int, str]
    _token_approvals: dict[int, str]
    _operator_approvals: dict[tuple[str, str], bool]

    def __init__(self, collection_config: CollectionConfig | None = None) -> None:
        """
        Args:
            collection_config: Optional collection config (uses global if not provided)
        """
        cfg = collection_config or get_validated_config().contracts.collection
        super().__init__(kind="collection", description=cfg.description)
        self.name = cfg.name
        self.symbol = cfg.symbol
        self.token_count = 0
        self._owners = {}
        self._balances = {}
        self._token_uris = {}
        self._token_approvals = {}
        self._operator_approvals = {}

        methods = cfg.methods
        self.register_method("name", self._name, "Collection name. Args: []", view=True)
        self.register_method("symbol", self._symbol, "Collection symbol. Args: []", view=True)
        self.register_method(
            "token_count", self._token_count, "Number of tokens minted. Args: []", view=True
        )
        self.register_method("mint", self._mint, methods.mint.description)
        self.register_method("balance_of", self._balance_of, methods.balance_of.description, view=True)
        self.register_method("owner_of", self._owner_of, methods.owner_of.description, view=True)
        self.register_method("token_uri", self._token_uri, methods.token_uri.description, view=True)
        self.register_method("approve", self._approve, methods.approve.description)
        self.register_method(
            "get_approved", self._get_approved, "Approved address for a token. Args: [token_id]", view=True
        )
        self.register_method(
            "set_approval_for_all", self._set_approval_for_all, methods.set_approval_for_all.description
        )
        self.register_method(
            "is_approved_for_all",
            self._is_approved_for_all,
            "Whether operator may move all of owner's tokens. Args: [owner, operator]",
            view=True,
        )
        self.register_method("transfer_from", self._transfer_from, methods.transfer_from.description)

    # ===== Registry operations =====

    def mint(self, minter: str, uri: str) -> int:
        """Mint the next token id to minter with its metadata URI."""
        self._require_transaction()
        if not minter or minter == ZERO_ADDRESS:
            raise InvalidArgument("mint to the zero address")
        self._record_attr(self, "token_count")
        self.token_count += 1
        token_id = self.token_count
        self._record(self._owners, token_id)
        self._record(self._balances, minter)
        self._record(self._token_uris, token_id)
        self._owners[token_id] = minter
        self._balances[minter] = self._balances.get(minter, 0) + 1
        self._token_uris[token_id] = uri
        self._emit("Transfer", from_address=ZERO_ADDRESS, to_address=minter, token_id=token_id)
        return token_id

    def balance_of(self, owner: str) -> int:
        if not owner or owner == ZERO_ADDRESS:
            raise InvalidArgument("address zero is not a valid owner")
        return self._balances.get(owner, 0)

    def owner_of(self, token_id: int) -> str:
        owner = self._owners.get(token_id)
        if owner is None:
            raise TokenNotFound("invalid token ID", token_id=token_id)
        return owner

    def token_uri(self, token_id: int) -> str:
        self.owner_of(token_id)
        return self._token_uris.get(token_id, "")

    def approve(self, caller: str, to_address: str, token_id: int) -> None:
        """Let to_address transfer one token. ZERO_ADDRESS clears it."""
        self._require_transaction()
        owner = self.owner_of(token_id)
        if to_address == owner:
            raise InvalidArgument("approval to current owner")
        if caller != owner and not self.is_approved_for_all(owner, caller):
            raise NotAuthorized("approve caller is not token owner or approved for all")
        self._record(self._token_approvals, token_id)
        self._token_approvals[token_id] = to_address
        self._emit("Approval", owner=owner, approved=to_address, token_id=token_id)

    def get_approved(self, token_id: int) -> str:
        self.owner_of(token_id)
        return self._token_approvals.get(token_id, ZERO_ADDRESS)

    def set_approval_for_all(self, owner: str, operator: str, approved: bool) -> None:
        self._require_transaction()
        if owner == operator:
            raise InvalidArgument("approve to caller")
        self._record(self._operator_approvals, (owner, operator))
        self._operator_approvals[(owner, operator)] = approved
        self._emit("ApprovalForAll", owner=owner, operator=operator, approved=approved)

    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        return self._operator_approvals.get((owner, operator), False)

    def is_approved_or_owner(self, spender: str, token_id: int) -> bool:
        owner = self.owner_of(token_id)
        return (
            spender == owner
            or self.is_approved_for_all(owner, spender)
            or self._token_approvals.get(token_id) == spender
        )

    def transfer_from(self, operator: str, from_address: str, to_address: str, token_id: int) -> None:
        """Move token_id from from_address to to_address on operator's authority.

        Raises:
            TokenNotFound: token_id was never minted
            NotAuthorized: operator is not owner, approved, or an operator
            NotOwner: from_address does not hold the token
            InvalidArgument: to_address is empty
        """
        self._require_transaction()
        if not self.is_approved_or_owner(operator, token_id):
            raise NotAuthorized(
                "caller is not token owner or approved",
                operator=operator,
                token_id=token_id,
            )
        if self.owner_of(token_id) != from_address:
            raise NotOwner("transfer from incorrect owner", from_address=from_address, token_id=token_id)
        if not to_address or to_address == ZERO_ADDRESS:
            raise InvalidArgument("transfer to the zero address")

        self._record(self._token_approvals, token_id)
        self._record(self._balances, from_address)
        self._record(self._balances, to_address)
        self._record(self._owners, token_id)
        self._token_approvals.pop(token_id, None)
        self._balances[from_address] -= 1
        self._balances[to_address] = self._balances.get(to_address, 0) + 1
        self._owners[token_id] = to_address
        self._emit("Transfer", from_address=from_address, to_address=to_address, token_id=token_id)

    # ===== Method handlers =====

    def _name(self, args: list[Any], ctx: CallContext) -> dict[str, Any]:
        return {"success": True, "name": self.name}

    def _symbol(self, args: list[Any], ctx: CallContext) -> dict[str, Any]:
        return {"success": True, "symbol": self.symbol}

    def _token_count(self, args: list[Any], ctx: CallContext) -> dict[str, Any]:
        return {"success": True, "token_count": self.token_count}

    def _mint(self, args: list[Any], ctx: CallContext) -> MintResult:
        """Mint a token to the caller.

        Args: [token_uri]
        """
        uri = require_arg(args, 0, "token_uri", "mint([token_uri])")
        if not isinstance(uri, str):
            raise InvalidArgument(f"token_uri must be a string, got {type(uri).__name__}")
        token_id = self.mint(ctx.sender, uri)
        return {"success": True, "token_id": token_id, "owner": ctx.sender, "token_uri": uri}

    def _balance_of(self, args: list[Any], ctx: CallContext) -> dict[str, Any]:
        owner = require_address(args, 0, "owner", "balance_of([owner])")
        return {"success": True, "owner": owner, "balance": self.balance_of(owner)}

    def _owner_of(self, args: list[Any], ctx: CallContext) -> dict[str, Any]:
        token_id = require_int(args, 0, "token_id", "owner_of([token_id])")
        return {"success": True, "token_id": token_id, "owner": self.owner_of(token_id)}

    def _token_uri(self, args: list[Any], ctx: CallContext) -> dict[str, Any]:
        token_id = require_int(args, 0, "token_id", "token_uri([token_id])")
        return {"success": True, "token_id": token_id, "token_uri": self.token_uri(token_id)}

    def _approve(self, args: list[Any], ctx: CallContext) -> dict[str, Any]:
        usage = "approve([to, token_id])"
        to_address = require_address(args, 0, "to", usage)
        token_id = require_int(args, 1, "token_id", usage)
        self.approve(ctx.sender, to_address, token_id)
        return {"success": True, "token_id": token_id, "approved": to_address}

    def _get_approved(self, args: list[Any], ctx: CallContext) -> dict[str, Any]:
        token_id = require_int(args, 0, "token_id", "get_approved([token_id])")
        return {"success": True, "token_id": token_id, "approved": self.get_approved(token_id)}

    def _set_approval_for_all(self, args: list[Any], ctx: CallContext) -> dict[str, Any]:
        usage = "set_approval_for_all([operator, approved])"
        operator = require_address(args, 0, "operator", usage)
        approved = require_bool(args, 1, "approved", usage)
        self.set_approval_for_all(ctx.sender, operator, approved)
        return {"success": True, "owner": ctx.sender, "operator": operator, "approved": approved}

    def _is_approved_for_all(self, args: list[Any], ctx: CallContext) -> dict[str, Any]:
        usage = "is_approved_for_all([owner, operator])"
        owner = require_address(args, 0, "owner", usage)
        operator = require_address(args, 1, "operator", usage)
        return {"success": True, "approved": self.is_approved_for_all(owner, operator)}

    def _transfer_from(self, args: list[Any], ctx: CallContext) -> TransferResult:
        usage = "transfer_from([from, to, token_id])"
        from_address = require_address(args, 0, "from", usage)
        to_address = require_address(args, 1, "to", usage)
        token_id = require_int(args, 2, "token_id", usage)
        self.transfer_from(ctx.sender, from_address, to_address, token_id)
        return {"success": True, "token_id": token_id, "from_owner": from_address, "to_owner": to_address}
