"""
Relay Service Client

httpx client for the relay service: reads nonces and the signing domain,
signs requests locally and posts them for relaying.
"""

from typing import Any, Optional, Sequence

import httpx

from ..engine.exceptions import BatchAborted, CallReverted, ContractRevert, InvalidNonce, InvalidSignature
from ..forwarder.signatures import sign_forward_request
from ..schemas.https import (
    BatchRequestBody,
    DomainResponse,
    ErrorResponse,
    ExecuteResponse,
    NonceResponse,
    SignedRequestBody,
    VerifyResponse,
)
from ..schemas.requests import BatchEntry, ForwardRequest
from ..schemas.results import BatchExecutionResult

_REVERT_TYPES = {
    "InvalidNonce": InvalidNonce,
    "InvalidSignature": InvalidSignature,
    "CallReverted": CallReverted,
}


class RelayClient(httpx.AsyncClient):
    """
    Extended httpx.AsyncClient speaking the relay service API.

    Error responses from the relay are raised as the forwarder exception
    they describe (``InvalidNonce``, ``InvalidSignature``, ``CallReverted``,
    ``BatchAborted``), so callers handle relayed and local execution alike.

    Usage:
        ```python
        async with RelayClient(base_url="http://localhost:8000") as client:
            request = await client.build_forward_request(
                originator=alice.address, target=token_address, data=calldata,
            )
            signature = await client.sign(request, alice.key)
            result = await client.execute(request, signature)
        ```
    """

    def __init__(self, **kwargs):
        """
        Initialize client.

        Args:
            **kwargs: All standard httpx.AsyncClient arguments (base_url, timeout, transport, etc.)
        """
        super().__init__(**kwargs)
        self._domain: Optional[DomainResponse] = None

    async def get_nonce(self, address: str) -> int:
        response = await self.get(f"/nonce/{address}")
        self._raise_for_relay_error(response)
        return NonceResponse.model_validate(response.json()).nonce

    async def get_domain(self) -> DomainResponse:
        """Signing domain of the relayed forwarder; cached after the first call."""
        if self._domain is None:
            response = await self.get("/domain")
            self._raise_for_relay_error(response)
            self._domain = DomainResponse.model_validate(response.json())
        return self._domain

    async def build_forward_request(
        self,
        *,
        originator: str,
        target: str,
        data: bytes = b"",
        value: int = 0,
        nonce: Optional[int] = None,
    ) -> ForwardRequest:
        resolved_nonce = nonce if nonce is not None else await self.get_nonce(originator)
        return ForwardRequest(originator=originator, target=target, value=value, nonce=resolved_nonce, data=data)

    async def sign(self, request: ForwardRequest, private_key: Any) -> bytes:
        """Sign ``request`` under the relay's domain."""
        domain = await self.get_domain()
        return sign_forward_request(
            private_key=private_key,
            request=request,
            chain_id=domain.chain_id,
            forwarder=domain.verifying_contract,
            domain_name=domain.name,
            domain_version=domain.version,
        )

    async def verify(self, request: ForwardRequest, signature: bytes) -> VerifyResponse:
        body = SignedRequestBody(request=request, signature=signature)
        response = await self.post("/verify", content=body.to_canonical_json(), headers={"Content-Type": "application/json"})
        self._raise_for_relay_error(response)
        return VerifyResponse.model_validate(response.json())

    async def execute(self, request: ForwardRequest, signature: bytes) -> ExecuteResponse:
        body = SignedRequestBody(request=request, signature=signature)
        response = await self.post("/execute", content=body.to_canonical_json(), headers={"Content-Type": "application/json"})
        self._raise_for_relay_error(response)
        return ExecuteResponse.model_validate(response.json())

    async def execute_batch(self, entries: Sequence[BatchEntry], fail_fast: bool = True) -> BatchExecutionResult:
        body = BatchRequestBody(entries=list(entries), fail_fast=fail_fast)
        response = await self.post("/execute-batch", content=body.to_canonical_json(), headers={"Content-Type": "application/json"})
        self._raise_for_relay_error(response)
        return BatchExecutionResult.model_validate(response.json())

    @staticmethod
    def _raise_for_relay_error(response: httpx.Response) -> None:
        """Translate relay error payloads back into forwarder exceptions."""
        is_json = response.headers.get("content-type", "").startswith("application/json")
        if response.status_code in (400, 422) and is_json and "error" in response.json():
            error = ErrorResponse.model_validate(response.json())
            if error.error == "InvalidAddress":
                raise ValueError(error.reason)
            if error.error == "BatchAborted":
                raise BatchAborted(index=error.index, call_reason=error.reason)
            exc_type: type = _REVERT_TYPES.get(error.error, ContractRevert)
            raise exc_type(error.reason)
        response.raise_for_status()
