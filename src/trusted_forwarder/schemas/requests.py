"""
Forward Request Schema Models

Pydantic models for the three transient structures the forwarder consumes:

    - ForwardRequest: a request signed off-chain by its originator.
    - BatchEntry: a (request, signature) pair in a heterogeneous batch.
    - Call: one sub-call of a same-signer batch; it carries no signature of
      its own because it inherits the authorization of the enclosing request.

Field names follow the EIP-712 ``ForwardRequest`` type (``from``, ``to``,
``value``, ``nonce``, ``data``).  ``from`` is a Python keyword, so the
attribute is ``originator`` with ``from`` as its alias; ``to`` is exposed
as ``target`` the same way.  Both spellings are accepted on input.
"""

from typing import Any, Dict, Tuple

from pydantic import ConfigDict, Field, field_serializer, field_validator

from .bases import CanonicalModel, normalize_address, normalize_bytes


class ForwardRequest(CanonicalModel):
    """
    Meta-transaction authored off-chain by ``originator``.

    Immutable once built: any change to a field changes the EIP-712 digest
    and invalidates the signature bound to it.

    Attributes:
        originator: Account on whose behalf the call is executed (``from``).
        target:     Contract that receives the forwarded call (``to``).
        value:      Native value forwarded with the call, in wei.
        nonce:      Originator's expected forwarder nonce.
        data:       Calldata for ``target``, without the sender suffix.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    originator: str = Field(..., alias="from", description="Originating account")
    target: str = Field(..., alias="to", description="Target contract")
    value: int = Field(default=0, ge=0, description="Forwarded native value (wei)")
    nonce: int = Field(..., ge=0, description="Forwarder nonce of the originator")
    data: bytes = Field(default=b"", description="Calldata forwarded to target")

    @field_validator("originator", "target", mode="before")
    @classmethod
    def _check_address(cls, value: Any) -> str:
        return normalize_address(value)

    @field_validator("data", mode="before")
    @classmethod
    def _check_data(cls, value: Any) -> bytes:
        return normalize_bytes(value)

    @field_serializer("data", when_used="json")
    def _serialize_data(self, value: bytes) -> str:
        return "0x" + value.hex()

    def to_abi(self) -> Tuple[str, str, int, int, bytes]:
        """Return the ``(address,address,uint256,uint256,bytes)`` ABI tuple."""
        return (self.originator, self.target, self.value, self.nonce, self.data)

    @classmethod
    def from_abi(cls, values: Tuple[Any, ...]) -> "ForwardRequest":
        """Build a request from a decoded ABI tuple."""
        originator, target, value, nonce, data = values
        return cls(originator=originator, target=target, value=value, nonce=nonce, data=data)

    def to_message(self) -> Dict[str, Any]:
        """Return the EIP-712 ``message`` dict for ``eth_account`` signing."""
        return {
            "from": self.originator,
            "to": self.target,
            "value": self.value,
            "nonce": self.nonce,
            "data": self.data,
        }


class BatchEntry(CanonicalModel):
    """One independently signed request of ``executeBatch``."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    request: ForwardRequest = Field(..., alias="req")
    signature: bytes = Field(..., alias="sig")

    @field_validator("signature", mode="before")
    @classmethod
    def _check_signature(cls, value: Any) -> bytes:
        return normalize_bytes(value)

    @field_serializer("signature", when_used="json")
    def _serialize_signature(self, value: bytes) -> str:
        return "0x" + value.hex()

    def to_abi(self) -> Tuple[Tuple[str, str, int, int, bytes], bytes]:
        return (self.request.to_abi(), self.signature)

    @classmethod
    def from_abi(cls, values: Tuple[Any, ...]) -> "BatchEntry":
        request, signature = values
        return cls(request=ForwardRequest.from_abi(request), signature=signature)


class Call(CanonicalModel):
    """Sub-call of a same-signer batch: ``(to, data, value)``."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    target: str = Field(..., alias="to")
    data: bytes = Field(default=b"")
    value: int = Field(default=0, ge=0)

    @field_validator("target", mode="before")
    @classmethod
    def _check_address(cls, value: Any) -> str:
        return normalize_address(value)

    @field_validator("data", mode="before")
    @classmethod
    def _check_data(cls, value: Any) -> bytes:
        return normalize_bytes(value)

    @field_serializer("data", when_used="json")
    def _serialize_data(self, value: bytes) -> str:
        return "0x" + value.hex()

    def to_abi(self) -> Tuple[str, bytes, int]:
        return (self.target, self.data, self.value)

    @classmethod
    def from_abi(cls, values: Tuple[Any, ...]) -> "Call":
        target, data, value = values
        return cls(target=target, data=data, value=value)
