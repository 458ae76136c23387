"""The custody capability the marketplace consumes.

Any deployed contract providing these methods can hold tokens that the
marketplace lists. The marketplace never checks ownership itself; it
relies on transfer_from refusing unauthorized operators.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class AssetRegistry(Protocol):
    """Ownership registry for non-fungible tokens."""

    address: str

    def owner_of(self, token_id: int) -> str:
        """Current holder. Raises TokenNotFound for unknown ids."""
        ...

    def balance_of(self, owner: str) -> int:
        ...

    def set_approval_for_all(self, owner: str, operator: str, approved: bool) -> None:
        ...

    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        ...

    def transfer_from(self, operator: str, from_address: str, to_address: str, token_id: int) -> None:
        """Move a token, acting as operator. Raises ContractError on refusal."""
        ...
