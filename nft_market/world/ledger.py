"""Ledger for tracking native value balances

Every address (account or contract) has an integer balance in wei.
Balances are persistent and move only through transfers made during a
World invocation: attached value, seller payouts and market fees.

Balances are stored as int (discrete wei) - no precision issues. Ether
amounts are converted at the edges with nft_market.world.units.
"""

# All balance mutations go through here.
# Never allow negative balances - fail loud.
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .id_registry import IDRegistry
    from .journal import Journal

logger = logging.getLogger(__name__)


class Ledger:
    """
    Tracks native value balances per address.

    Optionally integrates with IDRegistry for global address collision
    prevention. Not thread-safe on its own: the World serializes access.
    When a Journal is attached, every touched balance is recorded so a
    failed invocation can be undone.
    """

    balances: dict[str, int]
    id_registry: "IDRegistry | None"
    journal: "Journal | None"

    def __init__(
        self,
        id_registry: "IDRegistry | None" = None,
        journal: "Journal | None" = None,
    ) -> None:
        self.balances = {}
        self.id_registry = id_registry
        self.journal = journal

    def _touch(self, address: str) -> None:
        if self.journal is not None:
            self.journal.record(self.balances, address)

    def create_account(self, address: str, starting_balance: int = 0, label: str | None = None) -> None:
        """Create a new account with a starting balance (wei).

        If id_registry is set, registers the address and raises
        IDCollisionError if it is already in use.
        """
        if starting_balance < 0:
            raise ValueError(f"Starting balance cannot be negative: {starting_balance}")
        if self.id_registry is not None:
            self.id_registry.register(address, "account", label=label)
        self._touch(address)
        self.balances[address] = starting_balance

    def account_exists(self, address: str) -> bool:
        """Check if an address has a balance entry."""
        return address in self.balances

    def ensure_account(self, address: str) -> None:
        """Ensure an address exists with at least 0 balance.

        Useful for contract wallets, which are registered as contracts.
        """
        if address not in self.balances:
            self._touch(address)
            self.balances[address] = 0

    def get_balance(self, address: str) -> int:
        """Get balance in wei. Unknown addresses hold 0."""
        return self.balances.get(address, 0)

    def can_afford(self, address: str, amount: int) -> bool:
        """Check if an address can pay the amount."""
        return self.get_balance(address) >= amount

    def transfer(self, from_address: str, to_address: str, amount: int) -> bool:
        """Transfer value between addresses. Returns False if not possible.

        Non-positive amounts and insufficient funds both fail without
        changing any balance. Auto-creates the recipient with 0 balance.
        """
        if amount <= 0:
            return False
        if not self.can_afford(from_address, amount):
            return False
        self.ensure_account(to_address)
        self._touch(from_address)
        self._touch(to_address)
        self.balances[from_address] -= amount
        self.balances[to_address] += amount
        logger.debug("transfer %s -> %s: %d wei", from_address, to_address, amount)
        return True

    def get_all_balances(self) -> dict[str, int]:
        """Get a copy of all balances."""
        return dict(self.balances)
