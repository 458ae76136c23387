"""Pydantic schema for configuration validation.

All config values are validated at startup. Typos and invalid values
fail fast with clear error messages.

Usage:
    from nft_market.config_schema import load_validated_config, AppConfig
    config = load_validated_config("config/config.yaml")
    # config is now a validated AppConfig instance
"""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# =============================================================================
# BASE MODEL WITH STRICT VALIDATION
# =============================================================================

class StrictModel(BaseModel):
    """Base model that rejects unknown fields (catches typos)."""

    model_config = ConfigDict(extra="forbid")


# =============================================================================
# CONTRACT MODELS
# =============================================================================

class MethodConfig(StrictModel):
    """Configuration for a contract method."""

    description: str = Field(default="", description="Method description for callers")


class CollectionMethodsConfig(StrictModel):
    """Collection (asset registry) method configurations."""

    mint: MethodConfig = Field(
        default_factory=lambda: MethodConfig(
            description="Mint a new token owned by the caller. Args: [token_uri]"
        )
    )
    transfer_from: MethodConfig = Field(
        default_factory=lambda: MethodConfig(
            description="Move a token between addresses. Caller must be owner, approved or operator. Args: [from, to, token_id]"
        )
    )
    approve: MethodConfig = Field(
        default_factory=lambda: MethodConfig(
            description="Approve one address to transfer a single token. Args: [to, token_id]"
        )
    )
    set_approval_for_all: MethodConfig = Field(
        default_factory=lambda: MethodConfig(
            description="Grant or revoke an operator over all of the caller's tokens. Args: [operator, approved]"
        )
    )
    owner_of: MethodConfig = Field(
        default_factory=lambda: MethodConfig(description="Get the owner of a token. Args: [token_id]")
    )
    balance_of: MethodConfig = Field(
        default_factory=lambda: MethodConfig(description="Count the tokens held by an address. Args: [address]")
    )
    token_uri: MethodConfig = Field(
        default_factory=lambda: MethodConfig(description="Get the metadata URI of a token. Args: [token_id]")
    )


class CollectionConfig(StrictModel):
    """NFT collection contract configuration."""

    name: str = Field(default="iVobs NFT", min_length=1, description="Collection name")
    symbol: str = Field(default="DSP", min_length=1, description="Collection ticker symbol")
    description: str = Field(
        default="ERC-721 style token registry. Mints tokens and tracks owners and transfer approvals.",
        description="Contract description"
    )
    methods: CollectionMethodsConfig = Field(default_factory=CollectionMethodsConfig)


class MarketplaceMethodsConfig(StrictModel):
    """Marketplace method configurations."""

    make_item: MethodConfig = Field(
        default_factory=lambda: MethodConfig(
            description="List a token for sale. Approve the marketplace on the collection first. Args: [nft, token_id, price]"
        )
    )
    purchase_item: MethodConfig = Field(
        default_factory=lambda: MethodConfig(
            description="Buy a listed item. Attach at least get_total_price as value. Args: [item_id]"
        )
    )
    get_total_price: MethodConfig = Field(
        default_factory=lambda: MethodConfig(
            description="Item price plus market fee. Args: [item_id]"
        )
    )
    items: MethodConfig = Field(
        default_factory=lambda: MethodConfig(
            description="Read an item record (zero-valued for unknown ids). Args: [item_id]"
        )
    )
    list_active: MethodConfig = Field(
        default_factory=lambda: MethodConfig(description="List all unsold items. Args: []")
    )


class MarketplaceConfig(StrictModel):
    """Marketplace (escrow) contract configuration."""

    fee_percent: int = Field(
        default=1,
        ge=0,
        description="Market fee as a percentage of the listed price"
    )
    description: str = Field(
        default="Escrow marketplace. Holds listed tokens and settles sales for a fee.",
        description="Contract description"
    )
    methods: MarketplaceMethodsConfig = Field(default_factory=MarketplaceMethodsConfig)


class ContractsConfig(StrictModel):
    """Configuration for all deployable contracts."""

    collection: CollectionConfig = Field(default_factory=CollectionConfig)
    marketplace: MarketplaceConfig = Field(default_factory=MarketplaceConfig)


# =============================================================================
# LEDGER MODELS
# =============================================================================

class LedgerConfig(StrictModel):
    """Native value ledger configuration."""

    starting_balance: Decimal = Field(
        default=Decimal("10000"),
        ge=0,
        description="Starting balance for new accounts, in ether"
    )


class PrincipalConfig(StrictModel):
    """An account created when the world starts."""

    id: str = Field(min_length=1, description="Account label (address is derived from it)")
    starting_balance: Decimal | None = Field(
        default=None,
        ge=0,
        description="Starting balance in ether (defaults to ledger.starting_balance)"
    )


# =============================================================================
# LOGGING MODEL
# =============================================================================

class LoggingConfig(StrictModel):
    """Logging configuration."""

    output_file: str = Field(
        default="run.jsonl",
        description="JSONL file for contract events"
    )
    logs_dir: str = Field(
        default="logs",
        description="Per-run logs directory (e.g., logs/run_20260115_120000/)"
    )
    default_recent: int = Field(
        default=50,
        gt=0,
        description="Default number of recent events to return"
    )
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Level for diagnostic (non-event) logging"
    )

    @field_validator("level", mode="before")
    @classmethod
    def upper_level(cls, v: Any) -> Any:
        """Accept lowercase level names."""
        if isinstance(v, str):
            return v.upper()
        return v


# =============================================================================
# ROOT CONFIG
# =============================================================================

class AppConfig(StrictModel):
    """Root configuration model for the entire application.

    All fields have sensible defaults, so an empty config file is valid.
    """

    contracts: ContractsConfig = Field(default_factory=ContractsConfig)
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    principals: list[PrincipalConfig] = Field(default_factory=list)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def unique_principals(self) -> "AppConfig":
        """Principal ids must be unique (they derive addresses)."""
        seen: set[str] = set()
        for p in self.principals:
            if p.id in seen:
                raise ValueError(f"Duplicate principal id: {p.id}")
            seen.add(p.id)
        return self


# =============================================================================
# LOADING
# =============================================================================

def load_validated_config(config_path: str | Path = "config/config.yaml") -> AppConfig:
    """Load and validate configuration from YAML file.

    Args:
        config_path: Path to config YAML file.

    Returns:
        Validated AppConfig instance.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        pydantic.ValidationError: If config is invalid (with detailed error message).
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        raw_config = yaml.safe_load(f) or {}

    return AppConfig.model_validate(raw_config)


def validate_config_dict(config_dict: dict[str, Any]) -> AppConfig:
    """Validate a configuration dictionary.

    Args:
        config_dict: Configuration as a dictionary.

    Returns:
        Validated AppConfig instance.

    Raises:
        pydantic.ValidationError: If config is invalid.
    """
    return AppConfig.model_validate(config_dict)


# =============================================================================
# EXPORTS
# =============================================================================

__all__ = [
    # Root config
    "AppConfig",
    # Contract configs
    "ContractsConfig",
    "CollectionConfig",
    "CollectionMethodsConfig",
    "MarketplaceConfig",
    "MarketplaceMethodsConfig",
    "MethodConfig",
    # Other configs
    "LedgerConfig",
    "PrincipalConfig",
    "LoggingConfig",
    # Functions
    "load_validated_config",
    "validate_config_dict",
]
