"""Contracts - Base class and utilities

Contracts are Python objects deployed into a World at an address. They:
1. Expose named methods that callers reach through World.invoke
2. Record every key or attribute they are about to change in the
   World's journal, so a failed invocation can be undone
3. Emit events through the World, which publishes them after commit

State-changing methods call _require_transaction() before touching
anything. Method handlers take (args, ctx) and return a result dict.
Failures are raised as ContractError subclasses and never returned.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, MutableMapping

from ..errors import ErrorCode, InvalidArgument, MethodNotFound, NotPayable
from .types import ContractDict, MethodInfo

if TYPE_CHECKING:
    from ..world import World


@dataclass(frozen=True)
class CallContext:
    """Who is calling and how much value is attached (wei)"""
    sender: str
    value: int = 0


Handler = Callable[[list[Any], CallContext], dict[str, Any]]


@dataclass
class ContractMethod:
    """A method exposed by a contract"""
    name: str
    handler: Handler
    description: str
    payable: bool = False  # Accepts attached value
    view: bool = False  # Reads state only


class Contract:
    """Base class for deployable contracts"""

    address: str
    kind: str
    deployer: str
    description: str
    methods: dict[str, ContractMethod]
    _world: "World | None"

    def __init__(self, kind: str, description: str) -> None:
        self.address = ""
        self.kind = kind
        self.deployer = ""
        self.description = description
        self.methods = {}
        self._world = None

    def bind(self, world: "World", address: str, deployer: str) -> None:
        """Attach to a World at an address. Called once by World.deploy."""
        if self._world is not None:
            raise RuntimeError(f"{self.kind} contract already deployed at {self.address}")
        self._world = world
        self.address = address
        self.deployer = deployer

    @property
    def world(self) -> "World":
        """The World this contract is deployed in."""
        if self._world is None:
            raise RuntimeError(f"{self.kind} contract is not deployed")
        return self._world

    @property
    def deployed(self) -> bool:
        return self._world is not None

    def register_method(
        self,
        name: str,
        handler: Handler,
        description: str = "",
        payable: bool = False,
        view: bool = False,
    ) -> None:
        """Register a callable method on this contract"""
        self.methods[name] = ContractMethod(
            name=name,
            handler=handler,
            description=description,
            payable=payable,
            view=view,
        )

    def get_method(self, method_name: str) -> ContractMethod | None:
        """Get a method by name"""
        return self.methods.get(method_name)

    def list_methods(self) -> list[MethodInfo]:
        """List available methods"""
        return [
            {
                "name": m.name,
                "description": m.description,
                "payable": m.payable,
                "view": m.view,
            }
            for m in self.methods.values()
        ]

    def dispatch(self, method_name: str, args: list[Any], ctx: CallContext) -> dict[str, Any]:
        """Run a registered method.

        Raises:
            MethodNotFound: No method with that name
            NotPayable: Value attached to a non-payable method
        """
        method = self.get_method(method_name)
        if method is None:
            raise MethodNotFound(
                f"{self.kind} has no method '{method_name}'",
                methods=sorted(self.methods),
            )
        if ctx.value and not method.payable:
            raise NotPayable(f"{self.kind}.{method_name} does not accept value")
        return method.handler(args, ctx)

    def _require_transaction(self) -> None:
        """Fail before any mutation if no invocation is open."""
        self.world.require_transaction()

    def _record(self, mapping: MutableMapping[Any, Any], key: Any) -> None:
        """Journal mapping[key] before changing it."""
        self.world.journal.record(mapping, key)

    def _record_attr(self, obj: object, name: str) -> None:
        """Journal obj.name before changing it."""
        self.world.journal.record_attr(obj, name)

    def _emit(self, event_type: str, **args: Any) -> None:
        """Emit an event. Published only if the invocation commits."""
        self.world.emit(self.address, event_type, args)

    def get_interface(self) -> dict[str, Any]:
        """Get the interface schema for this contract.

        Override in subclasses to add detailed inputSchema for each method.
        """
        return {
            "description": self.description,
            "tools": [
                {"name": m.name, "description": m.description, "payable": m.payable}
                for m in self.methods.values()
            ],
        }

    def to_dict(self) -> ContractDict:
        """Convert to dict for contract listing"""
        return {
            "address": self.address,
            "kind": self.kind,
            "deployer": self.deployer,
            "description": self.description,
            "methods": self.list_methods(),
        }


# Argument helpers for method handlers


def require_arg(args: list[Any], index: int, name: str, usage: str) -> Any:
    """Positional argument or InvalidArgument(MISSING_ARGUMENT)."""
    if len(args) <= index:
        raise InvalidArgument(
            f"Missing argument '{name}'. Usage: {usage}",
            code=ErrorCode.MISSING_ARGUMENT,
        )
    return args[index]


def require_int(args: list[Any], index: int, name: str, usage: str) -> int:
    """Integer positional argument. Booleans are rejected."""
    value = require_arg(args, index, name, usage)
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgument(
            f"{name} must be an integer, got {type(value).__name__}: {value!r}. Usage: {usage}",
            code=ErrorCode.INVALID_TYPE,
        )
    return value


def require_address(args: list[Any], index: int, name: str, usage: str) -> str:
    """Address (non-empty string) positional argument."""
    value = require_arg(args, index, name, usage)
    if not isinstance(value, str) or not value:
        raise InvalidArgument(
            f"{name} must be an address string, got {type(value).__name__}: {value!r}. Usage: {usage}",
            code=ErrorCode.INVALID_TYPE,
        )
    return value


def require_bool(args: list[Any], index: int, name: str, usage: str) -> bool:
    """Boolean positional argument."""
    value = require_arg(args, index, name, usage)
    if not isinstance(value, bool):
        raise InvalidArgument(
            f"{name} must be true or false, got {type(value).__name__}: {value!r}. Usage: {usage}",
            code=ErrorCode.INVALID_TYPE,
        )
    return value
