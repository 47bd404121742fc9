"""
HTTP Request/Response Schema Models for the Relay Service

Pydantic models exchanged between relay clients and the relay service.  A
client signs a ``ForwardRequest`` off-chain and posts it with its signature;
the relay submits the forwarder transaction and pays for it.

The relay flow consists of:
1. Client reads the originator nonce (GET /nonce/{address})
2. Client reads the signing domain (GET /domain) and signs the request
3. Client optionally dry-runs the request (POST /verify)
4. Client submits the request (POST /execute or POST /execute-batch)

Byte fields travel as ``0x``-prefixed hex strings in both directions.
"""

from typing import Any, List, Optional

from pydantic import Field, field_serializer, field_validator

from .bases import CanonicalModel, normalize_bytes
from .requests import BatchEntry, ForwardRequest


# ============================================================================
# Requests
# ============================================================================

class SignedRequestBody(CanonicalModel):
    """Body of POST /verify and POST /execute.

    Attributes:
        request: The signed request (``from``/``to`` spelling accepted).
        signature: 65-byte signature as hex.
    """
    request: ForwardRequest
    signature: bytes

    @field_validator("signature", mode="before")
    @classmethod
    def _check_signature(cls, value: Any) -> bytes:
        return normalize_bytes(value)

    @field_serializer("signature", when_used="json")
    def _serialize_signature(self, value: bytes) -> str:
        return "0x" + value.hex()


class BatchRequestBody(CanonicalModel):
    """Body of POST /execute-batch.

    Attributes:
        entries: Independently signed requests, executed in list order.
        fail_fast: Abort and unwind the whole batch on the first failing call.
    """
    entries: List[BatchEntry] = Field(..., min_length=1)
    fail_fast: bool = Field(default=True, alias="failFast")


# ============================================================================
# Responses
# ============================================================================

class NonceResponse(CanonicalModel):
    address: str
    nonce: int


class DomainResponse(CanonicalModel):
    """Signing domain sealed into the relayed forwarder."""
    name: str
    version: str
    chain_id: int = Field(..., alias="chainId")
    verifying_contract: str = Field(..., alias="verifyingContract")
    separator: bytes

    @field_validator("separator", mode="before")
    @classmethod
    def _check_separator(cls, value: Any) -> bytes:
        return normalize_bytes(value)

    @field_serializer("separator", when_used="json")
    def _serialize_separator(self, value: bytes) -> str:
        return "0x" + value.hex()


class VerifyResponse(CanonicalModel):
    """Outcome of a dry run; ``error`` is the revert reason when invalid."""
    valid: bool
    error: Optional[str] = None


class ExecuteResponse(CanonicalModel):
    success: bool
    return_data: bytes = b""

    @field_validator("return_data", mode="before")
    @classmethod
    def _check_return_data(cls, value: Any) -> bytes:
        return normalize_bytes(value)

    @field_serializer("return_data", when_used="json")
    def _serialize_return_data(self, value: bytes) -> str:
        return "0x" + value.hex()


class ErrorResponse(CanonicalModel):
    """Error payload returned with HTTP 400 and 422.

    Attributes:
        error: Exception class name (e.g. ``InvalidNonce``).
        reason: Revert reason string.
        index: Failing entry of an aborted batch, if any.
    """
    error: str
    reason: Optional[str] = None
    index: Optional[int] = None
