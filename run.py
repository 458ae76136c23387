#!/usr/bin/env python3
"""
NFT Market - scenario runner

Deploys a collection and a marketplace, mints a token for a seller, lists
it, and has a buyer purchase it. Prints balances and the committed events.

Usage:
    python run.py                       # Run with defaults from config/config.yaml
    python run.py --fee-percent 5       # Override the market fee
    python run.py --price 0.5           # List at 0.5 ether
    python run.py --run-id demo         # Write logs/demo/events.jsonl
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, TypedDict

from dotenv import load_dotenv
from pydantic import ValidationError

# Load environment variables
load_dotenv()

from nft_market.config import load_config, override_fee_percent
from nft_market.world import World, format_ether, to_wei

logger = logging.getLogger("nft_market.run")

SAMPLE_URI: str = "Sample URI"


class ScenarioReport(TypedDict):
    """What the scenario did, for printing."""

    fee_percent: int
    price: str
    total_price: str
    item: dict[str, Any]
    balance_changes: dict[str, str]
    token_owner: str
    events: list[dict[str, Any]]


class ScenarioFailed(RuntimeError):
    """A scenario step returned an error response."""


def _check(step: str, result: dict[str, Any]) -> dict[str, Any]:
    if not result.get("success"):
        raise ScenarioFailed(f"{step} failed: [{result.get('code')}] {result.get('error')}")
    return result


def run_scenario(world: World, price_ether: Decimal, fee_percent: int | None = None) -> ScenarioReport:
    """Mint, approve, list and buy one token.

    Accounts are taken from the first three configured principals
    (deployer, seller, buyer); missing ones are created.
    """
    labels = [p.id for p in world.config.principals][:3]
    for default in ("deployer", "seller", "buyer")[len(labels):]:
        world.create_account(default)
        labels.append(default)
    deployer, seller, buyer = (world.address_of(label) for label in labels)

    nft = world.deploy_collection(deployer)
    market = world.deploy_marketplace(deployer, fee_percent=fee_percent)

    before = {label: world.get_balance(world.address_of(label)) for label in labels}

    minted = _check("mint", world.invoke(seller, nft.address, "mint", [SAMPLE_URI]))
    token_id = minted["token_id"]
    _check("approve", world.invoke(seller, nft.address, "set_approval_for_all", [market.address, True]))
    listed = _check(
        "make_item",
        world.invoke(seller, market.address, "make_item", [nft.address, token_id, to_wei(price_ether)]),
    )
    item_id = listed["item_id"]

    quote = _check("get_total_price", world.invoke(buyer, market.address, "get_total_price", [item_id]))
    total_price = quote["total_price"]
    bought = _check(
        "purchase_item",
        world.invoke(buyer, market.address, "purchase_item", [item_id], value=total_price),
    )

    after = {label: world.get_balance(world.address_of(label)) for label in labels}
    changes = {
        label: ("+" if after[label] >= before[label] else "-")
        + format_ether(abs(after[label] - before[label]))
        for label in labels
    }

    return {
        "fee_percent": market.fee_percent,
        "price": format_ether(to_wei(price_ether)),
        "total_price": format_ether(total_price),
        "item": market.item(item_id).to_dict(),
        "balance_changes": changes,
        "token_owner": nft.owner_of(token_id),
        "events": bought["events"],
    }


def _ether_amount(text: str) -> Decimal:
    """argparse type: a finite ether amount that is a whole number of wei."""
    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"not a number: {text!r}") from None
    if not amount.is_finite():
        raise argparse.ArgumentTypeError(f"not a finite amount: {text!r}")
    try:
        to_wei(amount)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from None
    return amount


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the NFT marketplace listing/purchase scenario")
    parser.add_argument("--config", type=str, default=None, help="Path to config YAML")
    parser.add_argument("--fee-percent", type=int, default=None, help="Override market fee percent")
    parser.add_argument(
        "--price",
        type=_ether_amount,
        default=Decimal("2"),
        help="Listing price in ether (default 2)",
    )
    parser.add_argument(
        "--run-id",
        type=str,
        default=None,
        help="Per-run log directory name (use 'auto' for a timestamp)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = load_config(args.config)
    if args.fee_percent is not None:
        try:
            config = override_fee_percent(args.fee_percent)
        except ValidationError as e:
            parser.error(f"invalid --fee-percent {args.fee_percent}: {e.errors()[0]['msg']}")

    logging.basicConfig(
        level=getattr(logging, config.logging.level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    run_id = args.run_id
    if run_id == "auto":
        run_id = datetime.now().strftime("run_%Y%m%d_%H%M%S")

    world = World(config, run_id=run_id)
    try:
        report = run_scenario(world, args.price)
    except ScenarioFailed as e:
        logger.error("%s", e)
        return 1

    print(json.dumps(report, indent=2, default=str))
    logger.info("Events written to %s", world.logger.output_path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
