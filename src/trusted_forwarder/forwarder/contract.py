"""
Trusted forwarder contract.

Accepts ``ForwardRequest``s signed off-chain by their originator and
re-executes them on the ledger as if the originator had called directly.
Every path follows the same admission sequence:

    verify nonce -> advance nonce -> verify signature -> call target

The nonce advance happens before the call, so a call that reenters the
forwarder with the same signed request is rejected with ``InvalidNonce``.
Forwarded calldata carries the originator's 20-byte address as a suffix
(ERC-2771 sender substitution); compliant recipients read it back when the
immediate caller is their trusted forwarder.

Entry points:
    execute         one request; any failure unwinds the whole transaction.
    batchFromSelf   several calls under one signature; only reachable as the
                    target of a request executed by this forwarder.
    executeBatch    several independently signed requests, fail-fast or
                    continue-on-failure.
"""

import logging
from typing import List, Sequence, Tuple

from .domain import (
    DomainContext,
    EIP712_DOMAIN_TYPEHASH,
    FORWARD_REQUEST_TYPEHASH,
    FORWARDER_NAME,
    FORWARDER_VERSION,
)
from .nonces import NonceRegistry
from .verifier import SignatureVerifier
from ..chain.abi import decode_revert_reason
from ..chain.contracts import Contract, external
from ..chain.ledger import CallResult, Ledger
from ..engine.events import TransactionReverted
from ..engine.exceptions import BatchAborted, CallReverted, OnlyForwarder
from ..schemas.bases import normalize_address
from ..schemas.requests import BatchEntry, Call, ForwardRequest

logger = logging.getLogger(__name__)

_REQUEST = "(address,address,uint256,uint256,bytes)"
_CALL = "(address,bytes,uint256)"

# length of the originator suffix appended to forwarded calldata
ADDRESS_SUFFIX_LENGTH = 20


def append_sender(data: bytes, sender: str) -> bytes:
    """Calldata with ``sender`` appended as 20 trailing bytes."""
    return data + bytes.fromhex(normalize_address(sender)[2:])


def extract_sender(data: bytes) -> str:
    """Address stored in the last 20 bytes of ``data``."""
    if len(data) < ADDRESS_SUFFIX_LENGTH:
        raise ValueError("Calldata too short to carry a sender suffix")
    return normalize_address(data[-ADDRESS_SUFFIX_LENGTH:])


class Forwarder(Contract):
    """
    Meta-transaction forwarder.

    The domain separator is sealed in the constructor from the ledger's chain
    id at deployment time and this contract's address.  Nonces live in ledger
    storage, so a reverted frame also reverts the advances it made.
    """

    def __init__(
        self,
        ledger: Ledger,
        address: str,
        name: str = FORWARDER_NAME,
        version: str = FORWARDER_VERSION,
    ) -> None:
        super().__init__(ledger, address)
        self.domain = DomainContext(
            name=name,
            version=version,
            chain_id=ledger.chain_id,
            verifying_contract=address,
        )
        self.nonces = NonceRegistry(ledger.mapping())
        self.verifier = SignatureVerifier(
            domain=self.domain,
            nonces=self.nonces,
            is_contract=ledger.is_contract,
            static_call=self.static_call,
        )

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @external("DOMAIN_SEPARATOR()", returns=("bytes32",), view=True)
    def domain_separator(self) -> bytes:
        return self.domain.separator

    @external("REQUEST_TYPEHASH()", returns=("bytes32",), view=True)
    def request_typehash(self) -> bytes:
        return FORWARD_REQUEST_TYPEHASH

    @external("EIP712_DOMAIN_TYPEHASH()", returns=("bytes32",), view=True)
    def eip712_domain_typehash(self) -> bytes:
        return EIP712_DOMAIN_TYPEHASH

    @external("getNonce(address)", returns=("uint256",), view=True)
    def get_nonce(self, originator: str) -> int:
        return self.nonces.get_nonce(originator)

    @external(f"verify({_REQUEST},bytes)", view=True)
    def verify(self, req: Tuple, signature: bytes) -> None:
        """Dry-run admission check: raises ``InvalidNonce`` or ``InvalidSignature``."""
        self.verifier.verify(ForwardRequest.from_abi(req), signature)

    # ------------------------------------------------------------------
    # Single request
    # ------------------------------------------------------------------

    @external(f"execute({_REQUEST},bytes)", returns=("bool", "bytes"), payable=True)
    def execute(self, req: Tuple, signature: bytes) -> Tuple[bool, bytes]:
        """
        Admit and execute one signed request.

        Returns:
            ``(True, return_data)`` of the forwarded call.

        Raises:
            InvalidNonce: The request nonce is not the originator's next nonce.
            InvalidSignature: The signature does not authorize the request.
            CallReverted: The forwarded call failed; the whole transaction
                unwinds, nonce advance included.
        """
        request = ForwardRequest.from_abi(req)
        result = self._admit_and_call(request, signature)
        if not result.success:
            reason = self._report_revert(result.return_data)
            raise CallReverted(reason)
        return True, result.return_data

    # ------------------------------------------------------------------
    # Same-signer batch
    # ------------------------------------------------------------------

    @external(f"batchFromSelf({_CALL}[])", payable=True)
    def batch_from_self(self, calls: Sequence[Tuple]) -> None:
        """
        Run several calls on behalf of the signer of the enclosing request.

        Only reachable as the target of a request executed by this
        forwarder: the signer is the originator suffix ``execute`` appended
        to this frame's own calldata.  Any failing call unwinds all of them.
        """
        if self.msg.sender != self.address:
            raise OnlyForwarder()

        signer = extract_sender(self.msg.data)
        logger.debug("Same-signer batch of %d calls for %s", len(calls), signer)
        for raw_call in calls:
            call = Call.from_abi(raw_call)
            result = self.call(call.target, append_sender(call.data, signer), call.value)
            if not result.success:
                reason = self._report_revert(result.return_data)
                raise CallReverted(reason)

    # ------------------------------------------------------------------
    # Independent requests
    # ------------------------------------------------------------------

    @external(f"executeBatch(({_REQUEST},bytes)[],bool)", returns=("bool[]", "bytes[]"), payable=True)
    def execute_batch(self, entries: Sequence[Tuple], fail_fast: bool) -> Tuple[List[bool], List[bytes]]:
        """
        Admit and execute independently signed requests, in list order.

        Args:
            entries: ``(request, signature)`` pairs.
            fail_fast: When true the first failing call aborts the batch with
                ``BatchAborted`` and every effect is unwound.  When false the
                failure is recorded with a ``TransactionReverted`` event and
                the next entry runs; the failed entry's nonce stays consumed.

        Returns:
            Per-entry success flags and return (or revert) data.
        """
        successes: List[bool] = []
        results: List[bytes] = []
        for index, raw_entry in enumerate(entries):
            entry = BatchEntry.from_abi(raw_entry)
            result = self._admit_and_call(entry.request, entry.signature)
            if not result.success:
                reason = self._report_revert(result.return_data)
                if fail_fast:
                    raise BatchAborted(index=index, call_reason=reason)
            successes.append(result.success)
            results.append(result.return_data)
        return successes, results

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _admit_and_call(self, request: ForwardRequest, signature: bytes) -> CallResult:
        self.nonces.verify_nonce(request)
        self.nonces.advance_nonce(request)
        self.verifier.verify_signature(request, signature)
        logger.debug(
            "Forwarding request %d of %s to %s",
            request.nonce, request.originator, request.target,
        )
        return self.call(request.target, append_sender(request.data, request.originator), request.value)

    def _report_revert(self, return_data: bytes) -> str:
        reason = decode_revert_reason(return_data)
        logger.warning("Forwarded call reverted: %s", reason)
        self.emit(TransactionReverted(reason=reason))
        return reason
