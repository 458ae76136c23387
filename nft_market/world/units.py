"""Native value unit conversions.

Balances and prices are stored as integer wei. Ether amounts are only
used at the edges (config, CLI, display) and are converted with Decimal
arithmetic so that values like 2.02 ether are exact.
"""

from __future__ import annotations

from decimal import Decimal

WEI_PER_ETHER: int = 10**18


def _to_decimal(value: int | float | str | Decimal) -> Decimal:
    """Convert to Decimal using string conversion for precision.

    >>> Decimal(0.1)  # Bad: Decimal('0.1000000000000000055511151231...')
    >>> Decimal(str(0.1))  # Good: Decimal('0.1')
    """
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_wei(ether: int | float | str | Decimal) -> int:
    """Convert an ether amount to integer wei.

    Raises ValueError if the amount has more precision than one wei.
    """
    wei = _to_decimal(ether) * WEI_PER_ETHER
    if wei != wei.to_integral_value():
        raise ValueError(f"{ether} ether is not a whole number of wei")
    return int(wei)


def from_wei(wei: int) -> Decimal:
    """Convert integer wei to an ether Decimal."""
    return Decimal(wei) / WEI_PER_ETHER


def format_ether(wei: int) -> str:
    """Format wei as a plain ether string without trailing zeros."""
    text = format(from_wei(wei), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text
