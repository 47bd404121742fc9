"""
In-process host ledger.

Provides the ledger facilities the forwarder protocol relies on, without a
node:

    - accounts with native balances, optionally backed by contract code;
    - ABI message calls carrying ``sender``, ``value`` and raw ``data``;
    - atomic call frames: every state change (storage, balances, logs) goes
      through a journal, and a frame that reverts is rolled back to the
      checkpoint taken when it was entered;
    - an append-only event log;
    - a chain id that can be changed after deployment to simulate a fork.

Execution is single-threaded: one top-level transaction at a time, nested
calls run depth-first on the frame stack.
"""

import logging
from collections.abc import MutableMapping
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Type, TypeVar, TYPE_CHECKING

from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_utils import keccak, to_canonical_address, to_checksum_address
from pydantic import ConfigDict, Field, field_serializer

from ..engine.events import BaseEvent, LogEntry
from ..engine.exceptions import ContractRevert
from ..schemas.bases import CanonicalModel, TransactionStatus, normalize_address

if TYPE_CHECKING:
    from .contracts import Contract

logger = logging.getLogger(__name__)

#: Chain id of a local development network.
DEFAULT_CHAIN_ID: int = 31337

ZERO_ADDRESS: str = "0x0000000000000000000000000000000000000000"

_MISSING = object()

C = TypeVar("C", bound="Contract")


# ---------------------------------------------------------------------------
# Journaled state
# ---------------------------------------------------------------------------

class Journal:
    """Undo log shared by every piece of mutable ledger state."""

    def __init__(self) -> None:
        self._undo: List[Callable[[], None]] = []

    def __len__(self) -> int:
        return len(self._undo)

    def record(self, undo: Callable[[], None]) -> None:
        self._undo.append(undo)

    def rollback(self, checkpoint: int) -> None:
        """Undo every change recorded after ``checkpoint``, newest first."""
        while len(self._undo) > checkpoint:
            self._undo.pop()()

    def commit(self) -> None:
        self._undo.clear()


class JournaledDict(MutableMapping):
    """Mapping whose writes can be rolled back through a ``Journal``."""

    def __init__(self, journal: Journal) -> None:
        self._journal = journal
        self._data: Dict[Any, Any] = {}

    def __getitem__(self, key: Any) -> Any:
        return self._data[key]

    def __setitem__(self, key: Any, value: Any) -> None:
        previous = self._data.get(key, _MISSING)
        self._journal.record(lambda: self._restore(key, previous))
        self._data[key] = value

    def __delitem__(self, key: Any) -> None:
        previous = self._data[key]
        self._journal.record(lambda: self._restore(key, previous))
        del self._data[key]

    def __iter__(self) -> Iterator[Any]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def _restore(self, key: Any, previous: Any) -> None:
        if previous is _MISSING:
            self._data.pop(key, None)
        else:
            self._data[key] = previous


# ---------------------------------------------------------------------------
# Call context and results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Message:
    """Context of one call frame (``msg`` in Solidity)."""
    sender: str
    to: str
    value: int
    data: bytes


@dataclass(frozen=True)
class CallResult:
    """Outcome of a nested call: success flag and return or revert data."""
    success: bool
    return_data: bytes


class TransactionReceipt(CanonicalModel):
    """
    Result of a committed top-level transaction.

    Attributes:
        status: Always ``SUCCESS``; reverted transactions raise instead.
        sender: Externally owned account that submitted the transaction.
        to: Called account.
        value: Native value sent with the transaction.
        return_data: Raw ABI-encoded return data.
        output: Decoded return value, when the call was built from an ABI function.
        logs: Events emitted by the transaction, in order.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    status: TransactionStatus = TransactionStatus.SUCCESS
    sender: str
    to: str
    value: int = 0
    return_data: bytes = b""
    output: Any = None
    logs: List[LogEntry] = Field(default_factory=list)

    @field_serializer("return_data", when_used="json")
    def _serialize_return_data(self, value: bytes) -> str:
        return "0x" + value.hex()

    def is_success(self) -> bool:
        return self.status == TransactionStatus.SUCCESS


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------

class Ledger:
    """
    Minimal EVM-like ledger hosting Python contracts.

    Example::

        ledger = Ledger(chain_id=1)
        relayer = ledger.new_account(balance=10**18)
        forwarder = ledger.deploy(Forwarder)
        receipt = forwarder.functions.getNonce(relayer.address).call()
    """

    def __init__(self, chain_id: int = DEFAULT_CHAIN_ID) -> None:
        self.chain_id = chain_id
        self._journal = Journal()
        self._balances = JournaledDict(self._journal)
        self._code: Dict[str, "Contract"] = {}
        self._logs: List[LogEntry] = []
        self._frames: List[Message] = []
        self._deployments = 0

    # ---- accounts -------------------------------------------------------

    def new_account(self, balance: int = 0) -> LocalAccount:
        """Create a fresh externally owned account, optionally funded."""
        account = Account.create()
        if balance:
            self.set_balance(account.address, balance)
        return account

    def get_balance(self, address: str) -> int:
        return self._balances.get(normalize_address(address), 0)

    def set_balance(self, address: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("Balance cannot be negative")
        self._balances[normalize_address(address)] = amount

    def mapping(self) -> JournaledDict:
        """Allocate contract storage that rolls back with its call frame."""
        return JournaledDict(self._journal)

    # ---- code -----------------------------------------------------------

    def deploy(self, contract_class: Type[C], *args: Any, deployer: str = ZERO_ADDRESS, **kwargs: Any) -> C:
        """
        Deploy ``contract_class`` at a fresh address and run its constructor.

        The address is derived from the deployer and a ledger-wide deployment
        counter, so repeated deployments never collide.
        """
        seed = to_canonical_address(normalize_address(deployer)) + self._deployments.to_bytes(32, "big")
        address = to_checksum_address(keccak(seed)[12:])
        self._deployments += 1

        contract = contract_class(self, address, *args, **kwargs)
        self._code[address] = contract
        logger.debug("Deployed %s at %s", contract_class.__name__, address)
        return contract

    def is_contract(self, address: str) -> bool:
        """Whether ``address`` is backed by executable code."""
        return normalize_address(address) in self._code

    # ---- logs -----------------------------------------------------------

    @property
    def logs(self) -> List[LogEntry]:
        return list(self._logs)

    def emit(self, address: str, event: BaseEvent) -> None:
        self._logs.append(LogEntry(address=address, event=event))
        self._journal.record(self._logs.pop)

    # ---- frames ---------------------------------------------------------

    @property
    def current_message(self) -> Message:
        if not self._frames:
            raise RuntimeError("No call frame is executing")
        return self._frames[-1]

    def snapshot(self) -> int:
        return len(self._journal)

    def revert(self, checkpoint: int) -> None:
        self._journal.rollback(checkpoint)

    def call(self, *, sender: str, to: str, data: bytes = b"", value: int = 0) -> CallResult:
        """
        Perform a nested message call.

        A ``ContractRevert`` raised by the callee unwinds the callee's frame
        and is reported as ``CallResult(False, revert_data)``.
        """
        checkpoint = self.snapshot()
        try:
            return_data = self._execute(Message(normalize_address(sender), normalize_address(to), value, data))
        except ContractRevert as exc:
            self.revert(checkpoint)
            logger.debug("Call to %s reverted: %s", to, exc.reason)
            return CallResult(False, exc.revert_data)
        return CallResult(True, return_data)

    def static_call(self, *, sender: str, to: str, data: bytes = b"") -> CallResult:
        """Nested call whose state changes are always discarded."""
        checkpoint = self.snapshot()
        try:
            return self.call(sender=sender, to=to, data=data)
        finally:
            self.revert(checkpoint)

    def transact(self, *, sender: str, to: str, data: bytes = b"", value: int = 0) -> TransactionReceipt:
        """
        Execute a top-level transaction from an externally owned account.

        Either every state change is committed, or the ledger is left exactly
        as before and the contract's exception is re-raised.
        """
        sender = normalize_address(sender)
        to = normalize_address(to)
        if self._frames:
            raise RuntimeError("Transactions cannot be nested; use Ledger.call")
        if self.is_contract(sender):
            raise ValueError(f"Transactions must originate from an externally owned account, got {sender}")

        checkpoint = self.snapshot()
        first_log = len(self._logs)
        try:
            return_data = self._execute(Message(sender, to, value, data))
        except ContractRevert as exc:
            self.revert(checkpoint)
            logger.info("Transaction from %s to %s reverted: %s", sender, to, exc.reason)
            raise
        except Exception:
            self.revert(checkpoint)
            raise

        logs = self._logs[first_log:]
        self._journal.commit()
        return TransactionReceipt(sender=sender, to=to, value=value, return_data=return_data, logs=logs)

    def simulate(self, *, sender: str, to: str, data: bytes = b"", value: int = 0) -> bytes:
        """
        Run a top-level call and discard its effects (``eth_call``).

        Reverts are re-raised like ``transact``; on success the return data
        is returned and the state is still rolled back.
        """
        if self._frames:
            raise RuntimeError("Simulations cannot be nested; use Ledger.static_call")
        checkpoint = self.snapshot()
        try:
            return self._execute(Message(normalize_address(sender), normalize_address(to), value, data))
        finally:
            self.revert(checkpoint)

    def _execute(self, msg: Message) -> bytes:
        if msg.value:
            self._move_value(msg.sender, msg.to, msg.value)

        contract = self._code.get(msg.to)
        if contract is None:
            return b""

        self._frames.append(msg)
        try:
            return contract.dispatch(msg)
        finally:
            self._frames.pop()

    def _move_value(self, sender: str, to: str, value: int) -> None:
        available = self._balances.get(sender, 0)
        if available < value:
            raise ContractRevert()
        self._balances[sender] = available - value
        self._balances[to] = self._balances.get(to, 0) + value
