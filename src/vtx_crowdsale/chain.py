"""
In-process blockchain used to run and test the sale contracts.

Contracts are plain Python objects. The chain owns native balances, the clock,
the contract registry and the event log. Every outermost public call is a
transaction: if it raises (a Revert or any other error), balances, contract
state, the registry and the event log are restored to what they were before
the call. Addresses are compared in checksummed form.
"""
from __future__ import annotations

import copy
import functools
import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Iterator, List, Optional, Type, TypeVar, Union

from eth_account import Account as EthAccount
from eth_utils import keccak, to_checksum_address

from .project_constants import ZERO_ADDRESS
from .units import ether

log = logging.getLogger("chain")

C = TypeVar("C", bound="Contract")


class Revert(Exception):
    """A contract rejected the call."""


class NotOwner(Revert):
    pass


class InsufficientBalance(Revert):
    pass


@dataclass(frozen=True)
class Account:
    address: str
    private_key: str

    @classmethod
    def from_seed(cls, seed: str) -> "Account":
        key = keccak(text=seed)
        return cls(address=EthAccount.from_key(key).address, private_key="0x" + key.hex())


@dataclass(frozen=True)
class Context:
    sender: str
    value: int
    timestamp: int


@dataclass(frozen=True)
class Event:
    name: str
    address: str
    args: Dict[str, Any] = field(default_factory=dict)


@dataclass
class _Snapshot:
    balances: Dict[str, int]
    nonces: Dict[str, int]
    contracts: Dict[str, "Contract"]
    states: Dict[str, Dict[str, Any]]
    events: int


AddressLike = Union[str, Account]


def address_of(who: AddressLike) -> str:
    if isinstance(who, Account):
        return who.address
    return to_checksum_address(who)


def public(func: Optional[Callable] = None, *, payable: bool = False):
    """Mark a contract method as a transaction entry point.

    The method receives a Context first. Value attached to the context is
    moved from the sender to the contract before the body runs.
    """

    def decorate(fn: Callable) -> Callable:
        @functools.wraps(fn)
        def wrapper(self: "Contract", ctx: Context, *args: Any, **kwargs: Any) -> Any:
            return self.chain._execute(self, fn, payable, ctx, args, kwargs)

        wrapper.is_public = True  # type: ignore[attr-defined]
        wrapper.is_payable = payable  # type: ignore[attr-defined]
        return wrapper

    if func is not None:
        return decorate(func)
    return decorate


def view(fn: Callable) -> Callable:
    """Mark a read-only contract method."""
    fn.is_view = True  # type: ignore[attr-defined]
    return fn


class Contract:
    """Base class for contracts hosted on a Chain.

    Subclasses put their constructor logic in `initialize`, which runs inside
    the deploy transaction. The deployer becomes the owner.
    """

    chain: "Chain"
    address: str
    owner: str

    def initialize(self, ctx: Context, *args: Any) -> None:
        pass

    def _as_caller(self, ctx: Context, value: int = 0) -> Context:
        """Context for calls this contract makes to other contracts."""
        return Context(sender=self.address, value=value, timestamp=ctx.timestamp)

    def _only_owner(self, ctx: Context) -> None:
        if ctx.sender != self.owner:
            raise NotOwner(f"{type(self).__name__}: caller is not the owner")

    def _emit(self, name: str, **args: Any) -> None:
        self.chain.emit(self.address, name, args)

    def _send(self, to: str, amount: int) -> None:
        self.chain.transfer(self.address, to, amount)

    @view
    def balance(self) -> int:
        return self.chain.balance_of(self.address)

    @public
    def transfer_ownership(self, ctx: Context, new_owner: str) -> None:
        self._only_owner(ctx)
        new_owner = address_of(new_owner)
        if new_owner == ZERO_ADDRESS:
            raise Revert("New owner is the zero address")
        previous, self.owner = self.owner, new_owner
        self._emit("OwnershipTransferred", previous_owner=previous, new_owner=new_owner)


class Chain:
    """A single-node chain with a controllable clock."""

    def __init__(
        self,
        accounts: int = 10,
        initial_balance: int = ether(100),
        genesis_time: Optional[int] = None,
    ) -> None:
        self._now = int(time.time()) if genesis_time is None else int(genesis_time)
        self._balances: Dict[str, int] = {}
        self._nonces: Dict[str, int] = {}
        self._contracts: Dict[str, Contract] = {}
        self._depth = 0
        self._snapshot: Optional[_Snapshot] = None
        self.events: List[Event] = []

        # Deterministic keys so test accounts are the same on every run.
        self.accounts: List[Account] = [
            Account.from_seed(f"vtx-crowdsale-account-{i}") for i in range(accounts)
        ]
        for account in self.accounts:
            self._balances[account.address] = initial_balance

    # -- clock -------------------------------------------------------------

    def latest_time(self) -> int:
        return self._now

    def increase_time(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("Cannot move the clock backwards")
        self._now += int(seconds)
        return self._now

    def increase_time_to(self, target: int) -> int:
        if target < self._now:
            raise ValueError(
                f"Cannot increase current time ({self._now}) to a moment in the past ({target})"
            )
        return self.increase_time(target - self._now)

    # -- balances ----------------------------------------------------------

    def balance_of(self, who: AddressLike) -> int:
        return self._balances.get(address_of(who), 0)

    def transfer(self, frm: AddressLike, to: AddressLike, amount: int) -> None:
        frm, to = address_of(frm), address_of(to)
        if amount < 0:
            raise ValueError(f"Negative transfer amount: {amount}")
        available = self._balances.get(frm, 0)
        if available < amount:
            raise InsufficientBalance(
                f"{frm} has {available} wei, needs {amount} wei"
            )
        self._balances[frm] = available - amount
        self._balances[to] = self._balances.get(to, 0) + amount

    # -- contracts ---------------------------------------------------------

    def context(self, sender: AddressLike, value: int = 0) -> Context:
        return Context(sender=address_of(sender), value=int(value), timestamp=self._now)

    def at(self, address: str) -> Contract:
        try:
            return self._contracts[address_of(address)]
        except KeyError:
            raise RuntimeError(f"No contract at {address}") from None

    def is_contract(self, address: AddressLike) -> bool:
        return address_of(address) in self._contracts

    def deploy(self, contract_cls: Type[C], ctx: Context, *args: Any, **kwargs: Any) -> C:
        ctx = self._checked(ctx)
        with self._transaction(ctx, f"deploy {contract_cls.__name__}"):
            nonce = self._nonces.get(ctx.sender, 0)
            self._nonces[ctx.sender] = nonce + 1
            digest = keccak(bytes.fromhex(ctx.sender[2:]) + nonce.to_bytes(8, "big"))
            address = to_checksum_address("0x" + digest[-20:].hex())

            contract = contract_cls.__new__(contract_cls)
            contract.chain = self
            contract.address = address
            contract.owner = ctx.sender
            self._contracts[address] = contract
            self._balances.setdefault(address, 0)

            if ctx.value:
                self.transfer(ctx.sender, address, ctx.value)
            contract.initialize(ctx, *args, **kwargs)

        log.debug("Deployed %s at %s (from %s)", contract_cls.__name__, address, ctx.sender)
        return contract

    def send_transaction(self, sender: AddressLike, to: AddressLike, value: int) -> None:
        """Plain value transfer. Contracts receive it through their `receive` method."""
        ctx = self.context(sender, value)
        target = address_of(to)
        if not self.is_contract(target):
            with self._transaction(ctx, f"send to {target}"):
                self.transfer(ctx.sender, target, ctx.value)
            return

        contract = self._contracts[target]
        receive = getattr(contract, "receive", None)
        if receive is None:
            raise Revert(f"{type(contract).__name__} does not accept plain transfers")
        receive(ctx)

    def emit(self, address: str, name: str, args: Dict[str, Any]) -> None:
        event = Event(name=name, address=address, args=dict(args))
        self.events.append(event)
        log.debug("Event %s from %s: %s", name, address, args)

    def events_named(self, name: str) -> List[Event]:
        return [e for e in self.events if e.name == name]

    # -- transactions ------------------------------------------------------

    def _execute(
        self,
        contract: Contract,
        fn: Callable,
        payable: bool,
        ctx: Context,
        args: tuple,
        kwargs: Dict[str, Any],
    ) -> Any:
        label = f"{type(contract).__name__}.{fn.__name__}"
        ctx = self._checked(ctx)
        with self._transaction(ctx, label):
            if ctx.value < 0:
                raise Revert(f"{label}: negative value")
            if ctx.value and not payable:
                raise Revert(f"{label} is not payable")
            if ctx.value:
                self.transfer(ctx.sender, contract.address, ctx.value)
            return fn(contract, ctx, *args, **kwargs)

    @staticmethod
    def _checked(ctx: Context) -> Context:
        sender = address_of(ctx.sender)
        if sender == ctx.sender:
            return ctx
        return replace(ctx, sender=sender)

    @contextmanager
    def _transaction(self, ctx: Context, label: str) -> Iterator[None]:
        outermost = self._depth == 0
        if outermost:
            self._snapshot = self._take_snapshot()
            log.debug("tx %s from %s value=%d", label, ctx.sender, ctx.value)
        self._depth += 1
        try:
            yield
        except BaseException as e:
            # Any failure undoes the whole transaction, not only a Revert.
            if outermost:
                self._restore(self._snapshot)
                log.debug("tx %s reverted: %r", label, e)
            raise
        finally:
            self._depth -= 1
            if outermost:
                self._snapshot = None

    def _take_snapshot(self) -> _Snapshot:
        # Keep the chain and every contract as shared references so the copied
        # state still points at live objects.
        memo: Dict[int, Any] = {id(self): self}
        for contract in self._contracts.values():
            memo[id(contract)] = contract
        states = {
            address: copy.deepcopy(contract.__dict__, memo)
            for address, contract in self._contracts.items()
        }
        return _Snapshot(
            balances=dict(self._balances),
            nonces=dict(self._nonces),
            contracts=dict(self._contracts),
            states=states,
            events=len(self.events),
        )

    def _restore(self, snapshot: Optional[_Snapshot]) -> None:
        if snapshot is None:
            return
        self._balances = snapshot.balances
        self._nonces = snapshot.nonces
        self._contracts = snapshot.contracts
        for address, contract in self._contracts.items():
            contract.__dict__.clear()
            contract.__dict__.update(snapshot.states[address])
        del self.events[snapshot.events:]
