"""Integration tests for the marketplace - listing, pricing and purchase.

Every mutation goes through World.invoke, so these also cover the
all-or-nothing behavior: failed calls leave balances, custody, item
records and the event log exactly as they were.
"""

from __future__ import annotations

from typing import Any

import pytest

from nft_market.world import (
    CallContext,
    Collection,
    Contract,
    Marketplace,
    MarketItem,
    World,
    ZERO_ADDRESS,
    to_wei,
)

SAMPLE_URI = "Sample URI"


def _mint_and_approve(world: World, collection: Collection, owner: str, operator: str) -> int:
    token_id = world.invoke(owner, collection.address, "mint", [SAMPLE_URI])["token_id"]
    world.invoke(owner, collection.address, "set_approval_for_all", [operator, True])
    return int(token_id)


class TestMakeItem:
    """Listing a token for sale."""

    def test_make_item_success(
        self,
        world: World,
        collection: Collection,
        marketplace: Marketplace,
        seller: str,
        minted_token: int,
    ) -> None:
        """Listing takes custody and records the item."""
        price = to_wei(1)
        result = world.invoke(
            seller, marketplace.address, "make_item", [collection.address, minted_token, price]
        )

        assert result["success"] is True
        assert result["item_id"] == 1
        assert marketplace.item_count == 1
        assert collection.owner_of(minted_token) == marketplace.address
        assert marketplace.item(1) == MarketItem(
            item_id=1,
            nft=collection.address,
            token_id=minted_token,
            seller=seller,
            price=price,
            sold=False,
        )

    def test_make_item_emits_offered(
        self,
        world: World,
        collection: Collection,
        marketplace: Marketplace,
        seller: str,
        minted_token: int,
    ) -> None:
        result = world.invoke(
            seller, marketplace.address, "make_item", [collection.address, minted_token, to_wei(1)]
        )

        event_types = [e["event_type"] for e in result["events"]]
        assert event_types == ["Transfer", "offered"]
        offered = result["events"][-1]
        assert offered["contract"] == marketplace.address
        assert offered["args"] == {
            "item_id": 1,
            "nft": collection.address,
            "token_id": minted_token,
            "price": to_wei(1),
            "seller": seller,
        }

    def test_item_ids_increase(
        self,
        world: World,
        collection: Collection,
        marketplace: Marketplace,
        seller: str,
    ) -> None:
        ids = []
        for _ in range(3):
            token_id = _mint_and_approve(world, collection, seller, marketplace.address)
            result = world.invoke(
                seller, marketplace.address, "make_item", [collection.address, token_id, 5]
            )
            ids.append(result["item_id"])

        assert ids == [1, 2, 3]
        assert marketplace.item_count == 3

    @pytest.mark.parametrize("price", [0, -1])
    def test_non_positive_price_rejected(
        self,
        world: World,
        collection: Collection,
        marketplace: Marketplace,
        seller: str,
        minted_token: int,
        price: int,
    ) -> None:
        result = world.invoke(
            seller, marketplace.address, "make_item", [collection.address, minted_token, price]
        )

        assert result["success"] is False
        assert result["code"] == "invalid_price"
        assert result["error"] == "price must be greater than zero"
        assert marketplace.item_count == 0
        assert collection.owner_of(minted_token) == seller

    def test_not_approved_rolls_back(
        self,
        world: World,
        collection: Collection,
        marketplace: Marketplace,
        seller: str,
    ) -> None:
        """Registry refusal undoes the item_count increment."""
        token_id = world.invoke(seller, collection.address, "mint", [SAMPLE_URI])["token_id"]

        result = world.invoke(
            seller, marketplace.address, "make_item", [collection.address, token_id, to_wei(1)]
        )

        assert result["success"] is False
        assert result["code"] == "not_authorized"
        assert marketplace.item_count == 0
        assert marketplace.get_item(1) is None
        assert collection.owner_of(token_id) == seller

    def test_listing_someone_elses_token_fails(
        self,
        world: World,
        collection: Collection,
        marketplace: Marketplace,
        buyer: str,
        minted_token: int,
    ) -> None:
        """Operator approval is per owner; the caller must hold the token."""
        result = world.invoke(
            buyer, marketplace.address, "make_item", [collection.address, minted_token, to_wei(1)]
        )

        assert result["success"] is False
        assert result["code"] == "not_owner"
        assert marketplace.item_count == 0

    def test_nft_must_be_a_registry(
        self,
        world: World,
        marketplace: Marketplace,
        seller: str,
    ) -> None:
        result = world.invoke(
            seller, marketplace.address, "make_item", [marketplace.address, 1, to_wei(1)]
        )
        assert result["code"] == "invalid_argument"

    def test_unknown_nft_address(self, world: World, marketplace: Marketplace, seller: str) -> None:
        result = world.invoke(seller, marketplace.address, "make_item", ["0xdeadbeef", 1, 10])
        assert result["code"] == "contract_not_found"

    def test_missing_arguments(self, world: World, marketplace: Marketplace, seller: str) -> None:
        result = world.invoke(seller, marketplace.address, "make_item", [])
        assert result["code"] == "missing_argument"


class TestTotalPrice:
    """Price plus market fee."""

    def test_total_includes_fee(
        self, world: World, marketplace: Marketplace, buyer: str, listed_item: int
    ) -> None:
        result = world.invoke(buyer, marketplace.address, "get_total_price", [listed_item])

        assert result["success"] is True
        assert result["total_price"] == to_wei("1.01")

    @pytest.mark.parametrize("item_id", [0, 7, -3])
    def test_unknown_item_quotes_zero(
        self, world: World, marketplace: Marketplace, buyer: str, item_id: int
    ) -> None:
        result = world.invoke(buyer, marketplace.address, "get_total_price", [item_id])

        assert result["success"] is True
        assert result["total_price"] == 0

    def test_fee_rounds_down(self, world: World, deployer: str) -> None:
        market = world.deploy_marketplace(deployer, fee_percent=3)
        market.items[1] = MarketItem(item_id=1, price=99)
        market.item_count = 1

        # 99 * 3 // 100 == 2
        assert market.get_total_price(1) == 101

    def test_zero_fee(self, world: World, deployer: str) -> None:
        market = world.deploy_marketplace(deployer, fee_percent=0)
        market.items[1] = MarketItem(item_id=1, price=50)
        market.item_count = 1

        assert market.get_total_price(1) == 50


class TestPurchaseItem:
    """Buying a listed item."""

    def test_purchase_settles(
        self,
        world: World,
        collection: Collection,
        marketplace: Marketplace,
        deployer: str,
        seller: str,
        buyer: str,
        listed_item: int,
    ) -> None:
        total = marketplace.get_total_price(listed_item)
        before = {a: world.get_balance(a) for a in (deployer, seller, buyer)}

        result = world.invoke(buyer, marketplace.address, "purchase_item", [listed_item], value=total)

        assert result["success"] is True
        assert result["fee_paid"] == to_wei("0.01")
        assert world.get_balance(seller) == before[seller] + to_wei(1)
        assert world.get_balance(deployer) == before[deployer] + to_wei("0.01")
        assert world.get_balance(buyer) == before[buyer] - total
        assert world.get_balance(marketplace.address) == 0
        assert collection.owner_of(1) == buyer
        assert marketplace.item(listed_item).sold is True

    def test_purchase_emits_bought(
        self,
        world: World,
        collection: Collection,
        marketplace: Marketplace,
        seller: str,
        buyer: str,
        listed_item: int,
    ) -> None:
        total = marketplace.get_total_price(listed_item)
        result = world.invoke(buyer, marketplace.address, "purchase_item", [listed_item], value=total)

        bought = result["events"][-1]
        assert bought["event_type"] == "bought"
        assert bought["args"] == {
            "item_id": listed_item,
            "nft": collection.address,
            "token_id": 1,
            "price": to_wei(1),
            "seller": seller,
            "buyer": buyer,
        }

    def test_overpayment_goes_to_fee_account(
        self,
        world: World,
        marketplace: Marketplace,
        deployer: str,
        seller: str,
        buyer: str,
        listed_item: int,
    ) -> None:
        fee_before = world.get_balance(deployer)
        seller_before = world.get_balance(seller)

        result = world.invoke(buyer, marketplace.address, "purchase_item", [listed_item], value=to_wei(2))

        assert result["success"] is True
        assert world.get_balance(seller) == seller_before + to_wei(1)
        assert world.get_balance(deployer) == fee_before + to_wei(1)

    @pytest.mark.parametrize("item_id", [0, 2, -1])
    def test_item_not_found(
        self,
        world: World,
        marketplace: Marketplace,
        buyer: str,
        listed_item: int,
        item_id: int,
    ) -> None:
        balance = world.get_balance(buyer)

        result = world.invoke(buyer, marketplace.address, "purchase_item", [item_id], value=to_wei(2))

        assert result["success"] is False
        assert result["code"] == "item_not_found"
        assert result["error"] == "item doesn't exist"
        assert world.get_balance(buyer) == balance

    def test_insufficient_payment(
        self,
        world: World,
        collection: Collection,
        marketplace: Marketplace,
        buyer: str,
        listed_item: int,
    ) -> None:
        """Paying the price without the fee is not enough."""
        balance = world.get_balance(buyer)

        result = world.invoke(buyer, marketplace.address, "purchase_item", [listed_item], value=to_wei(1))

        assert result["success"] is False
        assert result["code"] == "insufficient_payment"
        assert result["error"] == "not enough value to cover item price and market fee"
        assert world.get_balance(buyer) == balance
        assert collection.owner_of(1) == marketplace.address
        assert marketplace.item(listed_item).sold is False

    def test_already_sold(
        self,
        world: World,
        marketplace: Marketplace,
        deployer: str,
        buyer: str,
        listed_item: int,
    ) -> None:
        total = marketplace.get_total_price(listed_item)
        world.invoke(buyer, marketplace.address, "purchase_item", [listed_item], value=total)
        balance = world.get_balance(deployer)

        result = world.invoke(deployer, marketplace.address, "purchase_item", [listed_item], value=total)

        assert result["success"] is False
        assert result["code"] == "already_sold"
        assert result["error"] == "item already sold"
        assert world.get_balance(deployer) == balance

    def test_payment_checked_before_sold(
        self,
        world: World,
        marketplace: Marketplace,
        deployer: str,
        buyer: str,
        listed_item: int,
    ) -> None:
        """A short payment for a sold item reports the payment failure."""
        total = marketplace.get_total_price(listed_item)
        world.invoke(buyer, marketplace.address, "purchase_item", [listed_item], value=total)

        result = world.invoke(deployer, marketplace.address, "purchase_item", [listed_item], value=1)

        assert result["code"] == "insufficient_payment"

    def test_buyer_cannot_afford(
        self,
        world: World,
        marketplace: Marketplace,
        listed_item: int,
    ) -> None:
        poor = world.create_account("poor", starting_balance=to_wei("0.5"))

        result = world.invoke(poor, marketplace.address, "purchase_item", [listed_item], value=to_wei("1.01"))

        assert result["success"] is False
        assert result["code"] == "insufficient_funds"
        assert world.get_balance(poor) == to_wei("0.5")

    def test_seller_may_buy_own_item(
        self,
        world: World,
        collection: Collection,
        marketplace: Marketplace,
        seller: str,
        listed_item: int,
    ) -> None:
        total = marketplace.get_total_price(listed_item)

        result = world.invoke(seller, marketplace.address, "purchase_item", [listed_item], value=total)

        assert result["success"] is True
        assert collection.owner_of(1) == seller


class TestViews:
    """Read-only marketplace methods."""

    def test_items_unknown_is_zero_record(self, world: World, marketplace: Marketplace, buyer: str) -> None:
        result = world.invoke(buyer, marketplace.address, "items", [42])

        assert result["item"] == {
            "item_id": 0,
            "nft": ZERO_ADDRESS,
            "token_id": 0,
            "seller": ZERO_ADDRESS,
            "price": 0,
            "sold": False,
        }
        assert marketplace.get_item(42) is None

    def test_list_active(
        self,
        world: World,
        marketplace: Marketplace,
        buyer: str,
        listed_item: int,
    ) -> None:
        assert world.invoke(buyer, marketplace.address, "list_active")["count"] == 1

        total = marketplace.get_total_price(listed_item)
        world.invoke(buyer, marketplace.address, "purchase_item", [listed_item], value=total)

        result = world.invoke(buyer, marketplace.address, "list_active")
        assert result["count"] == 0
        assert result["items"] == []

    def test_fee_views(self, world: World, marketplace: Marketplace, deployer: str, buyer: str) -> None:
        assert world.invoke(buyer, marketplace.address, "fee_percent")["fee_percent"] == 1
        assert world.invoke(buyer, marketplace.address, "fee_account")["fee_account"] == deployer
        assert world.invoke(buyer, marketplace.address, "item_count")["item_count"] == 0

    def test_interface(self, marketplace: Marketplace) -> None:
        interface = marketplace.get_interface()
        tools = {t["name"]: t for t in interface["tools"]}

        assert tools["purchase_item"]["payable"] is True
        assert tools["make_item"]["inputSchema"]["required"] == ["nft", "token_id", "price"]


class TestDeployment:
    """Marketplace construction."""

    def test_fee_account_is_deployer(self, marketplace: Marketplace, deployer: str) -> None:
        assert marketplace.fee_account == deployer
        assert marketplace.deployer == deployer
        assert marketplace.fee_percent == 1

    def test_negative_fee_rejected(self, world: World, deployer: str) -> None:
        with pytest.raises(ValueError):
            world.deploy_marketplace(deployer, fee_percent=-1)

    def test_direct_mutation_outside_invoke_fails(
        self,
        marketplace: Marketplace,
        collection: Collection,
        seller: str,
        buyer: str,
        minted_token: int,
    ) -> None:
        """Mutators refuse before changing anything when called outside invoke()."""
        with pytest.raises(RuntimeError, match="only change inside invoke"):
            collection.mint(seller, SAMPLE_URI)
        with pytest.raises(RuntimeError, match="only change inside invoke"):
            marketplace.make_item(seller, collection.address, minted_token, to_wei(1))
        with pytest.raises(RuntimeError, match="only change inside invoke"):
            collection.transfer_from(seller, seller, buyer, minted_token)

        assert collection.token_count == minted_token == 1
        assert collection.owner_of(minted_token) == seller
        assert collection.balance_of(buyer) == 0
        assert marketplace.item_count == 0
        assert marketplace.items == {}

    def test_direct_purchase_outside_invoke_fails(
        self,
        world: World,
        marketplace: Marketplace,
        collection: Collection,
        seller: str,
        buyer: str,
        listed_item: int,
    ) -> None:
        item = marketplace.items[listed_item]
        balances = world.ledger.get_all_balances()

        with pytest.raises(RuntimeError, match="only change inside invoke"):
            marketplace.purchase_item(buyer, listed_item, marketplace.get_total_price(listed_item))

        assert item.sold is False
        assert collection.owner_of(item.token_id) == marketplace.address
        assert world.ledger.get_all_balances() == balances


class EscrowOnlyRegistry(Contract):
    """Minimal asset registry: one token per holder, owner-approved operators."""

    def __init__(self) -> None:
        super().__init__(kind="test_registry", description="test registry")
        self.owners: dict[int, str] = {}
        self.operators: dict[str, set[str]] = {}

    def owner_of(self, token_id: int) -> str:
        return self.owners[token_id]

    def balance_of(self, owner: str) -> int:
        return sum(1 for o in self.owners.values() if o == owner)

    def set_approval_for_all(self, owner: str, operator: str, approved: bool) -> None:
        self._require_transaction()
        ops = set(self.operators.get(owner, set()))
        if approved:
            ops.add(operator)
        else:
            ops.discard(operator)
        self._record(self.operators, owner)
        self.operators[owner] = ops

    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        return operator in self.operators.get(owner, set())

    def transfer_from(self, operator: str, from_address: str, to_address: str, token_id: int) -> None:
        self._require_transaction()
        self._record(self.owners, token_id)
        self.owners[token_id] = to_address


class TestPluggableRegistry:
    """The marketplace works with any contract providing the registry interface."""

    def test_custom_registry(
        self,
        world: World,
        marketplace: Marketplace,
        deployer: str,
        seller: str,
        buyer: str,
    ) -> None:
        registry = EscrowOnlyRegistry()
        registry.owners[7] = seller
        world.deploy(deployer, registry)

        listed = world.invoke(seller, marketplace.address, "make_item", [registry.address, 7, 100])
        assert listed["success"] is True
        assert registry.owner_of(7) == marketplace.address

        bought = world.invoke(buyer, marketplace.address, "purchase_item", [1], value=101)
        assert bought["success"] is True
        assert registry.owner_of(7) == buyer


class TestAtomicity:
    """Failed invocations change nothing."""

    def test_failed_call_emits_nothing(
        self,
        world: World,
        marketplace: Marketplace,
        buyer: str,
        listed_item: int,
    ) -> None:
        received: list[dict[str, Any]] = []
        world.subscribe("*", received.append)
        sequence = world.logger.sequence

        result = world.invoke(buyer, marketplace.address, "purchase_item", [listed_item], value=1)

        assert result["success"] is False
        assert received == []
        assert world.logger.sequence == sequence

    def test_subscriber_failure_does_not_revert(
        self,
        world: World,
        collection: Collection,
        marketplace: Marketplace,
        buyer: str,
        listed_item: int,
    ) -> None:
        def broken(event: dict[str, Any]) -> None:
            raise RuntimeError("indexer down")

        world.subscribe("bought", broken)
        total = marketplace.get_total_price(listed_item)

        result = world.invoke(buyer, marketplace.address, "purchase_item", [listed_item], value=total)

        assert result["success"] is True
        assert collection.owner_of(1) == buyer

    def test_value_to_non_payable_method_refunded(
        self,
        world: World,
        collection: Collection,
        marketplace: Marketplace,
        seller: str,
        minted_token: int,
    ) -> None:
        balance = world.get_balance(seller)

        result = world.invoke(
            seller,
            marketplace.address,
            "make_item",
            [collection.address, minted_token, to_wei(1)],
            value=to_wei(1),
        )

        assert result["code"] == "not_payable"
        assert world.get_balance(seller) == balance
        assert world.get_balance(marketplace.address) == 0

    def test_unexpected_exception_restores_and_raises(
        self,
        world: World,
        deployer: str,
        seller: str,
    ) -> None:
        class Exploding(Contract):
            def __init__(self) -> None:
                super().__init__(kind="exploding", description="")
                self.counter = 0
                self.register_method("boom", self._boom, payable=True)

            def _boom(self, args: list[Any], ctx: CallContext) -> dict[str, Any]:
                self._record_attr(self, "counter")
                self.counter += 1
                raise KeyError("bug")

        contract = Exploding()
        world.deploy(deployer, contract)
        balance = world.get_balance(seller)

        with pytest.raises(KeyError):
            world.invoke(seller, contract.address, "boom", value=5)

        assert contract.counter == 0
        assert world.get_balance(seller) == balance

    def test_unknown_method(self, world: World, marketplace: Marketplace, buyer: str) -> None:
        result = world.invoke(buyer, marketplace.address, "cancel_item", [1])

        assert result["code"] == "method_not_found"
        assert "purchase_item" in result["details"]["methods"]


class TestInvocationCost:
    """Undo bookkeeping covers what a call touches, not the whole world."""

    @pytest.fixture
    def journal_sizes(self, world: World, monkeypatch: pytest.MonkeyPatch) -> list[int]:
        """Entry count of every committed invocation, in order."""
        sizes: list[int] = []
        commit = world.journal.commit

        def counting_commit() -> int:
            count = commit()
            sizes.append(count)
            return count

        monkeypatch.setattr(world.journal, "commit", counting_commit)
        return sizes

    def test_listing_cost_flat_as_market_grows(
        self,
        world: World,
        collection: Collection,
        marketplace: Marketplace,
        seller: str,
        journal_sizes: list[int],
    ) -> None:
        world.invoke(seller, collection.address, "set_approval_for_all", [marketplace.address, True])
        listing_sizes: list[int] = []
        for _ in range(25):
            token_id = world.invoke(seller, collection.address, "mint", [SAMPLE_URI])["token_id"]
            world.invoke(seller, marketplace.address, "make_item", [collection.address, token_id, 100])
            listing_sizes.append(journal_sizes[-1])

        assert marketplace.item_count == 25
        assert len(set(listing_sizes)) == 1

    def test_views_record_nothing(
        self,
        world: World,
        collection: Collection,
        marketplace: Marketplace,
        seller: str,
        buyer: str,
        journal_sizes: list[int],
    ) -> None:
        for _ in range(10):
            token_id = _mint_and_approve(world, collection, seller, marketplace.address)
            world.invoke(seller, marketplace.address, "make_item", [collection.address, token_id, 100])
        journal_sizes.clear()

        world.invoke(buyer, marketplace.address, "item_count")
        world.invoke(buyer, marketplace.address, "list_active")
        world.invoke(buyer, marketplace.address, "get_total_price", [1])
        world.invoke(buyer, collection.address, "owner_of", [3])

        assert journal_sizes == [0, 0, 0, 0]

    def test_purchase_cost_independent_of_other_items(
        self,
        world: World,
        collection: Collection,
        marketplace: Marketplace,
        seller: str,
        buyer: str,
        journal_sizes: list[int],
    ) -> None:
        collection_sizes: list[int] = []
        for listed in (1, 10):
            while marketplace.item_count < listed:
                token_id = _mint_and_approve(world, collection, seller, marketplace.address)
                world.invoke(seller, marketplace.address, "make_item", [collection.address, token_id, 100])
            world.invoke(buyer, marketplace.address, "purchase_item", [listed], value=101)
            collection_sizes.append(journal_sizes[-1])

        assert collection_sizes[0] == collection_sizes[1]

    def test_failed_purchase_undoes_only_touched_state(
        self,
        world: World,
        collection: Collection,
        marketplace: Marketplace,
        seller: str,
        buyer: str,
        listed_item: int,
    ) -> None:
        balances = world.ledger.get_all_balances()
        total = marketplace.get_total_price(listed_item)
        world.invoke(buyer, marketplace.address, "purchase_item", [listed_item], value=total)

        again = world.invoke(buyer, marketplace.address, "purchase_item", [listed_item], value=total)

        assert again["code"] == "already_sold"
        assert not world.journal.active
        assert world.get_balance(buyer) == balances[buyer] - total
        assert marketplace.items[listed_item].sold is True
