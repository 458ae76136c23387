"""World kernel - serialized, all-or-nothing execution of contract calls"""

from __future__ import annotations

__all__ = [
    "World",
    "StateSummary",
]

import logging
import threading
from decimal import Decimal
from typing import Any, TypedDict

from ..config import get_validated_config
from ..config_schema import AppConfig, CollectionConfig
from .contracts.base import CallContext, Contract
from .contracts.collection import Collection
from .contracts.marketplace import Marketplace
from .errors import ContractError, ContractNotFound, InsufficientFunds, InvalidArgument
from .event_bus import EventBus, EventCallback
from .id_registry import IDRegistry, derive_address
from .journal import Journal
from .ledger import Ledger
from .logger import EventLogger
from .units import from_wei, to_wei

logger = logging.getLogger(__name__)


class StateSummary(TypedDict):
    """World state summary."""
    balances: dict[str, int]
    contracts: list[dict[str, Any]]
    recent_events: list[dict[str, Any]]


class World:
    """The world kernel - owns accounts, contracts and the event log.

    Every invoke() runs under one re-entrant lock, so calls never
    interleave. Mutations made during a call are recorded in the journal
    and undone if the call raises, at a cost proportional to what the
    call touched. Events emitted during a call are buffered and only
    logged and published once the call has committed.
    """

    config: AppConfig
    id_registry: IDRegistry
    journal: Journal
    ledger: Ledger
    logger: EventLogger
    event_bus: EventBus
    contracts: dict[str, Contract]
    _lock: threading.RLock
    _pending_events: list[dict[str, Any]] | None
    _nonces: dict[str, int]
    _tx_count: int

    def __init__(
        self,
        config: AppConfig | None = None,
        run_id: str | None = None,
        output_file: str | None = None,
    ) -> None:
        """
        Args:
            config: Validated config (uses global if not provided)
            run_id: Enables per-run log directories under logging.logs_dir
            output_file: Event log path for single-file mode (overrides config)
        """
        self.config = config or get_validated_config()
        self.id_registry = IDRegistry()
        self.journal = Journal()
        self.ledger = Ledger(id_registry=self.id_registry, journal=self.journal)
        self.event_bus = EventBus()
        self.contracts = {}
        self._lock = threading.RLock()
        self._pending_events = None
        self._nonces = {}
        self._tx_count = 0
        self.logger = EventLogger.from_config(self.config.logging, run_id=run_id, output_file=output_file)

        default_balance = self.config.ledger.starting_balance
        for p in self.config.principals:
            balance = p.starting_balance if p.starting_balance is not None else default_balance
            self.create_account(p.id, to_wei(balance))

        self.logger.log("world_init", {
            "principals": [
                {"id": p.id, "address": self.address_of(p.id)}
                for p in self.config.principals
            ],
        })

    # ===== Accounts =====

    @staticmethod
    def address_of(label: str) -> str:
        """Address derived for an account label."""
        return derive_address("account", label)

    def create_account(self, label: str, starting_balance: int | None = None) -> str:
        """Create an account and return its address.

        Args:
            label: Human-readable name; the address is derived from it
            starting_balance: Wei (defaults to ledger.starting_balance from config)

        Raises:
            IDCollisionError: An account with this label already exists
        """
        if starting_balance is None:
            starting_balance = to_wei(self.config.ledger.starting_balance)
        address = self.address_of(label)
        with self._lock:
            self.ledger.create_account(address, starting_balance, label=label)
        logger.debug("Account %s created at %s with %d wei", label, address, starting_balance)
        return address

    def get_balance(self, address: str) -> int:
        return self.ledger.get_balance(address)

    def get_ether_balance(self, address: str) -> Decimal:
        return from_wei(self.ledger.get_balance(address))

    # ===== Contracts =====

    def deploy(self, deployer: str, contract: Contract) -> str:
        """Deploy a contract and return its address.

        The address is derived from the deployer and its deployment count.
        """
        with self._lock:
            nonce = self._nonces.get(deployer, 0)
            self._nonces[deployer] = nonce + 1
            address = derive_address("contract", deployer, nonce)
            self.id_registry.register(address, "contract", label=contract.kind)
            self.ledger.ensure_account(address)
            contract.bind(self, address, deployer)
            self.contracts[address] = contract
            self.logger.log("contract_deployed", {
                "contract": address,
                "kind": contract.kind,
                "deployer": deployer,
            })
        logger.info("Deployed %s at %s (deployer %s)", contract.kind, address, deployer)
        return address

    def deploy_collection(
        self, deployer: str, collection_config: CollectionConfig | None = None
    ) -> Collection:
        """Deploy an NFT collection using config defaults for name and symbol."""
        collection = Collection(collection_config or self.config.contracts.collection)
        self.deploy(deployer, collection)
        return collection

    def deploy_marketplace(self, deployer: str, fee_percent: int | None = None) -> Marketplace:
        """Deploy a marketplace whose fee account is the deployer."""
        marketplace = Marketplace(
            fee_account=deployer,
            fee_percent=fee_percent,
            marketplace_config=self.config.contracts.marketplace,
        )
        self.deploy(deployer, marketplace)
        return marketplace

    def get_contract(self, address: str) -> Contract:
        """Contract deployed at address.

        Raises:
            ContractNotFound: Nothing is deployed there
        """
        contract = self.contracts.get(address)
        if contract is None:
            raise ContractNotFound(f"No contract deployed at {address}", address=address)
        return contract

    # ===== Invocation =====

    def invoke(
        self,
        sender: str,
        address: str,
        method: str,
        args: list[Any] | None = None,
        value: int = 0,
    ) -> dict[str, Any]:
        """Call a contract method as sender, optionally attaching value (wei).

        Attached value moves from sender to the contract before the method
        runs. If anything fails, every balance and every contract is put
        back as it was and no events are published.

        Returns:
            {"success": True, ...method result..., "events": [...]} on commit,
            or a structured error dict (see errors.py) on revert
        """
        with self._lock:
            if self.journal.active:
                raise RuntimeError("invoke() cannot be nested; contracts call each other directly")
            self.journal.begin()
            self._pending_events = []
            try:
                result = self._execute(sender, address, method, list(args or []), value)
            except ContractError as e:
                undone = self.journal.rollback()
                self._pending_events = None
                logger.info("%s(%s) by %s reverted (%d undone): %s", method, address, sender, undone, e.message)
                return e.to_response()
            except Exception:
                self.journal.rollback()
                self._pending_events = None
                raise
            touched = self.journal.commit()
            pending = self._pending_events
            self._pending_events = None
            self._tx_count += 1
            tx = self._tx_count
            logger.debug("tx %d %s(%s) committed, %d entries", tx, method, address, touched)

            events = [
                self.logger.log_contract_event(tx, e["contract"], e["event_type"], e["args"])
                for e in pending
            ]
            for event in events:
                self.event_bus.publish(event)

        result["events"] = events
        return result

    def _execute(
        self, sender: str, address: str, method: str, args: list[Any], value: int
    ) -> dict[str, Any]:
        contract = self.get_contract(address)
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise InvalidArgument(f"value must be a non-negative integer (wei), got {value!r}")
        if value > 0:
            # Non-payable methods fail in dispatch and the transfer is rolled back
            if not self.ledger.transfer(sender, address, value):
                raise InsufficientFunds(
                    f"Insufficient funds. Need {value} wei, have {self.ledger.get_balance(sender)}",
                    required=value,
                )
        return contract.dispatch(method, args, CallContext(sender=sender, value=value))

    def emit(self, contract_address: str, event_type: str, args: dict[str, Any]) -> None:
        """Buffer an event from the running invocation."""
        if self._pending_events is None:
            raise RuntimeError("Events can only be emitted during invoke()")
        self._pending_events.append({
            "event_type": event_type,
            "contract": contract_address,
            "args": dict(args),
        })

    def require_transaction(self) -> None:
        """Raise unless an invoke() is running.

        Contracts call this before their first mutation, so a direct call
        outside invoke() fails with nothing changed.
        """
        if not self.journal.active:
            raise RuntimeError("State can only change inside invoke()")

    # ===== Events =====

    def subscribe(
        self,
        event_type: str,
        callback: EventCallback,
        contract: str | None = None,
        filter: dict[str, Any] | None = None,
    ) -> str:
        """Subscribe to committed events. See EventBus.subscribe."""
        return self.event_bus.subscribe(event_type, callback, contract=contract, filter=filter)

    def unsubscribe(self, subscription_id: str) -> bool:
        return self.event_bus.unsubscribe(subscription_id)

    def get_recent_events(
        self,
        n: int | None = None,
        event_type: str | None = None,
        contract: str | None = None,
    ) -> list[dict[str, Any]]:
        """Most recent records from the event log (default logging.default_recent)."""
        if n is None:
            n = self.config.logging.default_recent
        return self.logger.read_recent(n, event_type=event_type, contract=contract)

    def get_state_summary(self) -> StateSummary:
        """Balances, deployed contracts and recent events."""
        return {
            "balances": self.ledger.get_all_balances(),
            "contracts": [c.to_dict() for c in self.contracts.values()],
            "recent_events": self.get_recent_events(),
        }
