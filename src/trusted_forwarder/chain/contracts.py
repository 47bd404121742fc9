"""
Base class for Python contracts hosted on the ``Ledger``.

External functions are declared with the ``external`` decorator using their
canonical Solidity signature; the base class builds the selector table,
decodes calldata, enforces ``payable`` and encodes return values.  Contracts
have no fallback: empty calldata or an unknown selector reverts silently.

Example::

    class Counter(Contract):
        def __init__(self, ledger, address):
            super().__init__(ledger, address)
            self._count = ledger.mapping()

        @external("increment()", returns=("uint256",))
        def increment(self):
            self._count["value"] = self._count.get("value", 0) + 1
            return self._count["value"]

    counter = ledger.deploy(Counter)
    receipt = counter.functions.increment().transact(sender=alice.address)
"""

from dataclasses import dataclass, replace
from typing import Any, Callable, ClassVar, Dict, Optional, Sequence, Tuple, TYPE_CHECKING

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError

from .abi import parse_signature, selector, to_abi_value
from .ledger import CallResult, Message, TransactionReceipt, ZERO_ADDRESS
from ..engine.events import BaseEvent
from ..engine.exceptions import ContractRevert

if TYPE_CHECKING:
    from .ledger import Ledger


@dataclass(frozen=True)
class ExternalFunction:
    """ABI description of one external contract function."""
    signature: str
    name: str
    input_types: Tuple[str, ...]
    output_types: Tuple[str, ...]
    payable: bool = False
    view: bool = False
    attribute: str = ""

    @property
    def selector(self) -> bytes:
        return selector(self.signature)

    def encode_input(self, args: Sequence[Any]) -> bytes:
        if len(args) != len(self.input_types):
            raise TypeError(f"{self.signature} takes {len(self.input_types)} arguments, got {len(args)}")
        return self.selector + encode(list(self.input_types), [to_abi_value(arg) for arg in args])

    def encode_output(self, result: Any) -> bytes:
        if not self.output_types:
            return b""
        values = [result] if len(self.output_types) == 1 else list(result)
        return encode(list(self.output_types), [to_abi_value(value) for value in values])

    def decode_output(self, data: bytes) -> Any:
        if not self.output_types:
            return None
        values = decode(list(self.output_types), data)
        return values[0] if len(values) == 1 else values


def external(
    signature: str,
    returns: Sequence[str] = (),
    payable: bool = False,
    view: bool = False,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Expose a method as an ABI function with the given canonical signature."""
    name, input_types = parse_signature(signature)

    def decorator(method: Callable[..., Any]) -> Callable[..., Any]:
        method.__external__ = ExternalFunction(
            signature=signature,
            name=name,
            input_types=tuple(input_types),
            output_types=tuple(returns),
            payable=payable,
            view=view,
        )
        return method

    return decorator


class Contract:
    """
    Code backing a ledger account.

    Attributes:
        ledger: Host ledger.
        address: Checksum address the contract was deployed at.
    """

    _external_functions: ClassVar[Dict[bytes, ExternalFunction]] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        functions: Dict[bytes, ExternalFunction] = {}
        for klass in reversed(cls.__mro__):
            for attribute, member in vars(klass).items():
                spec: Optional[ExternalFunction] = getattr(member, "__external__", None)
                if spec is not None:
                    functions[spec.selector] = replace(spec, attribute=attribute)
        cls._external_functions = functions

    def __init__(self, ledger: "Ledger", address: str) -> None:
        self.ledger = ledger
        self.address = address

    def __repr__(self) -> str:
        return f"{type(self).__name__}(address={self.address})"

    @property
    def msg(self) -> Message:
        """Context of the call frame currently executing this contract."""
        return self.ledger.current_message

    @property
    def functions(self) -> "ContractFunctions":
        return ContractFunctions(self)

    @classmethod
    def abi_function(cls, name: str) -> ExternalFunction:
        for spec in cls._external_functions.values():
            if spec.name == name:
                return spec
        raise AttributeError(f"{cls.__name__} has no external function {name!r}")

    def dispatch(self, msg: Message) -> bytes:
        """Route a message to the external function named by its selector."""
        spec = self._external_functions.get(msg.data[:4]) if len(msg.data) >= 4 else None
        if spec is None:
            raise ContractRevert()
        if msg.value and not spec.payable:
            raise ContractRevert()
        try:
            args = decode(list(spec.input_types), msg.data[4:])
        except DecodingError:
            raise ContractRevert() from None
        result = getattr(self, spec.attribute)(*args)
        return spec.encode_output(result)

    def emit(self, event: BaseEvent) -> None:
        self.ledger.emit(self.address, event)

    def call(self, to: str, data: bytes = b"", value: int = 0) -> CallResult:
        """Call another account with this contract as ``msg.sender``."""
        return self.ledger.call(sender=self.address, to=to, data=data, value=value)

    def static_call(self, to: str, data: bytes = b"") -> CallResult:
        return self.ledger.static_call(sender=self.address, to=to, data=data)


class BoundFunction:
    """An external function applied to arguments, ready to call or transact."""

    def __init__(self, contract: Contract, spec: ExternalFunction, args: Tuple[Any, ...]) -> None:
        self.contract = contract
        self.spec = spec
        self.args = args

    @property
    def data(self) -> bytes:
        """Calldata of this invocation."""
        return self.spec.encode_input(self.args)

    def call(self, sender: str = ZERO_ADDRESS, value: int = 0) -> Any:
        """Evaluate without committing state (``eth_call``); reverts raise."""
        return_data = self.contract.ledger.simulate(
            sender=sender, to=self.contract.address, data=self.data, value=value
        )
        return self.spec.decode_output(return_data)

    def transact(self, sender: str, value: int = 0) -> TransactionReceipt:
        """Submit as a top-level transaction; reverts raise after rolling back."""
        receipt = self.contract.ledger.transact(
            sender=sender, to=self.contract.address, data=self.data, value=value
        )
        return receipt.model_copy(update={"output": self.spec.decode_output(receipt.return_data)})


class ContractFunctions:
    """``contract.functions.<name>(*args)`` accessor, in the style of web3."""

    def __init__(self, contract: Contract) -> None:
        self._contract = contract

    def __getattr__(self, name: str) -> Callable[..., BoundFunction]:
        spec = type(self._contract).abi_function(name)
        return lambda *args: BoundFunction(self._contract, spec, args)
