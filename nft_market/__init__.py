"""NFT Market source package.

This package contains the marketplace ledger components:
- config: Configuration loading and management
- world: World kernel, ledger, event log, and the deployed contracts
"""

from __future__ import annotations

__all__: list[str] = []
