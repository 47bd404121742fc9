"""
Base Schema Models for the Trusted Forwarder

This module defines the base classes every other schema model inherits from,
plus the small validators shared by request and receipt models.

Core Classes:
    - CanonicalModel: Pydantic base model with canonical JSON serialization
    - TransactionStatus: Outcome of a transaction submitted to a ledger

Dependencies:
    - pydantic: For data validation and serialization
    - eth_utils: For address checksumming and hex decoding
"""

import json
from enum import Enum
from typing import Any, Dict, Union

from eth_utils import is_address, to_bytes, to_checksum_address
from pydantic import BaseModel, ConfigDict


class CanonicalModel(BaseModel):
    """
    Pydantic base model with canonical JSON serialization.

    The JSON form is deterministic (sorted keys, no whitespace). Models with
    ``bytes`` fields serialize them as ``0x``-prefixed hex, which is what
    the relay service and logs emit.

    Example:
        class MyModel(CanonicalModel):
            name: str
            value: int

        model = MyModel(name="test", value=123)
        canonical_json = model.to_canonical_json()  # '{"name":"test","value":123}'
    """

    model_config = ConfigDict(populate_by_name=True)

    def to_canonical_json(self) -> str:
        """
        Convert model to a canonical JSON string.

        Returns:
            str: JSON string with sorted keys and no extra whitespace.
        """
        data = self.model_dump(mode="json", by_alias=True)
        return json.dumps(
            data,
            separators=(",", ":"),
            sort_keys=True,
            ensure_ascii=False
        )

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert model to dictionary representation.

        Returns:
            Dict[str, Any]: Dictionary with all model fields.
        """
        return self.model_dump()


class VerificationStatus(str, Enum):
    """
    Enumeration of possible request verification outcomes.

    Attributes:
        SUCCESS: Nonce is current and the signature authorizes the request
        INVALID_SIGNATURE: Signature is invalid or signer mismatch
        INVALID_NONCE: Nonce is stale, reused or skipped
        BLOCKCHAIN_ERROR: Error querying blockchain state
    """
    SUCCESS = "success"
    INVALID_SIGNATURE = "invalid_signature"
    INVALID_NONCE = "invalid_nonce"
    BLOCKCHAIN_ERROR = "blockchain_error"


class TransactionStatus(str, Enum):
    """
    Enumeration of possible transaction execution statuses.

    Attributes:
        SUCCESS: Transaction executed and its state changes were kept
        FAILED: Transaction reverted; every state change was unwound
    """
    SUCCESS = "success"
    FAILED = "failed"


def normalize_address(value: Any) -> str:
    """
    Validate an EVM address and return its checksum form.

    Accepts 0x-prefixed hex strings in any case as well as raw 20-byte values.

    Raises:
        ValueError: If ``value`` is not a 20-byte address.
    """
    if isinstance(value, (bytes, bytearray)):
        if len(value) != 20:
            raise ValueError(f"Address must be 20 bytes, got {len(value)}")
        return to_checksum_address(bytes(value))
    if not isinstance(value, str) or not is_address(value.lower()):
        raise ValueError(f"Invalid address: {value!r}")
    return to_checksum_address(value.lower())


def normalize_bytes(value: Union[str, bytes, bytearray]) -> bytes:
    """Coerce a ``0x`` hex string or bytes-like value to ``bytes``."""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        return to_bytes(hexstr=value) if value not in ("", "0x") else b""
    raise ValueError(f"Expected bytes or hex string, got {type(value).__name__}")
