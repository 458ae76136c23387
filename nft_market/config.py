"""Process-wide configuration for NFT Market

The validated AppConfig is loaded once from config/config.yaml (or the
path given on the command line) and shared by every contract that is
built without an explicit config section.

Usage:
    from nft_market.config import load_config, get_validated_config

    load_config("config/config.yaml")
    fee = get_validated_config().contracts.marketplace.fee_percent
"""

from __future__ import annotations

from pathlib import Path

from .config_schema import AppConfig, load_validated_config, validate_config_dict

_validated_config: AppConfig | None = None

DEFAULT_CONFIG_PATH: Path = Path(__file__).parent.parent / "config" / "config.yaml"


def load_config(config_path: str | None = None) -> AppConfig:
    """Load, validate and install the config.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        pydantic.ValidationError: If config is invalid.
    """
    global _validated_config
    _validated_config = load_validated_config(Path(config_path) if config_path else DEFAULT_CONFIG_PATH)
    return _validated_config


def get_validated_config() -> AppConfig:
    """The installed config, loading the default file on first use."""
    if _validated_config is None:
        return load_config()
    return _validated_config


def override_fee_percent(fee_percent: int) -> AppConfig:
    """Replace the market fee and re-validate (CLI --fee-percent).

    Raises:
        pydantic.ValidationError: If the fee is invalid.
    """
    global _validated_config
    data = get_validated_config().model_dump()
    data["contracts"]["marketplace"]["fee_percent"] = fee_percent
    _validated_config = validate_config_dict(data)
    return _validated_config
