"""
ABI helpers for message calls on the ledger.

Function signatures are written the way Solidity canonicalises them, e.g.
``"execute((address,address,uint256,uint256,bytes),bytes)"``; argument
and return encoding is delegated to ``eth_abi``.
"""

from typing import Any, List, Tuple

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_utils import function_signature_to_4byte_selector

from ..engine.exceptions import ERROR_STRING_SELECTOR

#: Reason reported when a failed call returns no decodable ``Error(string)``.
SILENT_REVERT_REASON = "Transaction reverted silently"

# selector (4) + offset word (32) + length word (32)
_MIN_REASON_LENGTH = 68


def split_types(types: str) -> List[str]:
    """
    Split a comma separated ABI type list at top level only.

    ``"(address,bytes),uint256[]"`` -> ``["(address,bytes)", "uint256[]"]``
    """
    parts: List[str] = []
    depth = 0
    current = ""
    for char in types:
        if char == "," and depth == 0:
            parts.append(current)
            current = ""
            continue
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        current += char
    if current:
        parts.append(current)
    return parts


def parse_signature(signature: str) -> Tuple[str, List[str]]:
    """Return ``(name, input_types)`` for a canonical function signature."""
    name, _, rest = signature.partition("(")
    if not name or not rest.endswith(")"):
        raise ValueError(f"Malformed function signature: {signature!r}")
    return name, split_types(rest[:-1])


def selector(signature: str) -> bytes:
    """4-byte function selector of ``signature``."""
    return function_signature_to_4byte_selector(signature)


def to_abi_value(value: Any) -> Any:
    """Convert schema models (anything with ``to_abi()``) and sequences for ``eth_abi``."""
    if hasattr(value, "to_abi"):
        return to_abi_value(value.to_abi())
    if isinstance(value, (list, tuple)):
        return type(value)(to_abi_value(item) for item in value)
    return value


def encode_call(signature: str, *args: Any) -> bytes:
    """
    Build calldata for ``signature`` applied to ``args``.

    Example::

        data = encode_call("transfer(address,uint256)", recipient, 10**18)
    """
    _, types = parse_signature(signature)
    if len(types) != len(args):
        raise TypeError(f"{signature} takes {len(types)} arguments, got {len(args)}")
    return selector(signature) + encode(types, [to_abi_value(arg) for arg in args])


def decode_revert_reason(result: bytes) -> str:
    """
    Extract a human-readable reason from the return data of a failed call.

    Payloads shorter than an ``Error(string)`` header plus offset and length
    words carry no reason and yield ``SILENT_REVERT_REASON``.
    """
    if len(result) < _MIN_REASON_LENGTH or result[:4] != ERROR_STRING_SELECTOR:
        return SILENT_REVERT_REASON
    try:
        (reason,) = decode(["string"], result[4:])
    except (DecodingError, UnicodeDecodeError):
        return SILENT_REVERT_REASON
    return reason
