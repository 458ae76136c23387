"""Address Registry - Single namespace for all addresses

Accounts and contracts share one address space. This registry enforces
global uniqueness so the same address cannot be handed to an account and
a contract, and derives fresh addresses deterministically.

Usage:
    registry = IDRegistry()

    # Register addresses (raises if collision)
    registry.register(address, "account")

    # Lookup returns entity type
    registry.lookup(address)  # "account"
"""

from __future__ import annotations

import hashlib
from typing import Literal


EntityType = Literal["account", "contract"]

# Empty address, used as "nobody" (no approval, burn target)
ZERO_ADDRESS: str = "0x" + "0" * 40


def derive_address(*parts: object) -> str:
    """Derive a 20-byte hex address from arbitrary seed parts.

    Same parts always give the same address.
    """
    seed = ":".join(str(p) for p in parts).encode("utf-8")
    return "0x" + hashlib.sha256(seed).hexdigest()[:40]


class IDCollisionError(Exception):
    """Raised when attempting to register an address that already exists."""

    def __init__(self, entity_id: str, existing_type: str, new_type: str) -> None:
        self.entity_id = entity_id
        self.existing_type = existing_type
        self.new_type = new_type
        super().__init__(
            f"ID collision: '{entity_id}' already registered as '{existing_type}', "
            f"cannot register as '{new_type}'"
        )


class IDRegistry:
    """Central registry for global address uniqueness.

    Thread-safety: This class is NOT thread-safe. The World serializes
    access to it.
    """

    _ids: dict[str, EntityType]
    _labels: dict[str, str]

    def __init__(self) -> None:
        """Initialize empty registry."""
        self._ids = {}
        self._labels = {}

    def register(self, entity_id: str, entity_type: EntityType, label: str | None = None) -> None:
        """Register an address in the global namespace.

        Args:
            entity_id: The address to register
            entity_type: "account" or "contract"
            label: Optional human-readable name for the address

        Raises:
            IDCollisionError: If the address is already registered
        """
        if entity_id in self._ids:
            raise IDCollisionError(entity_id, self._ids[entity_id], entity_type)
        self._ids[entity_id] = entity_type
        if label:
            self._labels[entity_id] = label

    def exists(self, entity_id: str) -> bool:
        """Check if an address is registered."""
        return entity_id in self._ids

    def lookup(self, entity_id: str) -> EntityType | None:
        """Look up the entity type for an address."""
        return self._ids.get(entity_id)

    def label_of(self, entity_id: str) -> str | None:
        """Human-readable label registered with the address, if any."""
        return self._labels.get(entity_id)

    def get_ids_by_type(self, entity_type: EntityType) -> list[str]:
        """Get all addresses of a specific type."""
        return [eid for eid, etype in self._ids.items() if etype == entity_type]

    def count(self) -> int:
        """Get total number of registered addresses."""
        return len(self._ids)
