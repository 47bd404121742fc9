"""
Dual-mode signature verification of forward requests.

The digest of a request is rebuilt from its fields and the forwarder's sealed
domain.  Which check applies depends on one runtime predicate, whether the
originator address has code:

    - plain account: secp256k1 public-key recovery; the recovered address
      must equal the originator;
    - contract account: ERC-1271 ``isValidSignature(digest, signature)`` on
      the originator, which must answer with the magic value.

Any failure in either branch, including malformed signatures, is reported
as ``InvalidSignature``.
"""

import logging
from typing import Callable

from eth_keys import keys
from eth_keys.exceptions import BadSignature, ValidationError

from .domain import DomainContext
from .nonces import NonceRegistry
from .standards import ERC1271_MAGIC_VALUE, IS_VALID_SIGNATURE_SIGNATURE
from ..chain.abi import encode_call
from ..chain.ledger import CallResult
from ..engine.exceptions import InvalidSignature
from ..schemas.requests import ForwardRequest

logger = logging.getLogger(__name__)

#: Half the secp256k1 group order; larger ``s`` values are malleable duplicates.
SECP256K1_N_HALF: int = 0x7FFFFFFFFFFFFFFFFFFFFFFFFFFFFFFF5D576E7357A4501DDFE92F46681B20A0

_MAGIC_WORD: bytes = ERC1271_MAGIC_VALUE.ljust(32, b"\x00")


def recover_signer(digest: bytes, signature: bytes) -> str:
    """
    Recover the address that produced ``signature`` over ``digest``.

    Args:
        digest: 32-byte message hash.
        signature: 65 bytes ``r || s || v`` with ``v`` in {27, 28} or {0, 1}.

    Returns:
        Checksum address of the signer.

    Raises:
        InvalidSignature: Wrong length, ``v`` out of range, upper-half ``s``,
            or no public key recoverable.
    """
    if len(signature) != 65:
        raise InvalidSignature()
    r = int.from_bytes(signature[:32], "big")
    s = int.from_bytes(signature[32:64], "big")
    v = signature[64]
    if v < 27:
        v += 27
    if v not in (27, 28) or s > SECP256K1_N_HALF:
        raise InvalidSignature()

    try:
        public_key = keys.Signature(vrs=(v - 27, r, s)).recover_public_key_from_msg_hash(digest)
    except (BadSignature, ValidationError):
        raise InvalidSignature() from None
    return public_key.to_checksum_address()


class SignatureVerifier:
    """
    Verifies requests against one sealed domain.

    The verifier owns no ledger state; its collaborators are injected:

    Args:
        domain: Sealed domain context of the forwarder.
        nonces: Nonce registry consulted by ``verify``.
        is_contract: Predicate "does this address have executable code".
        static_call: Read-only call ``(to, data) -> CallResult`` used for
            ERC-1271 delegation.
    """

    def __init__(
        self,
        domain: DomainContext,
        nonces: NonceRegistry,
        is_contract: Callable[[str], bool],
        static_call: Callable[[str, bytes], CallResult],
    ) -> None:
        self.domain = domain
        self.nonces = nonces
        self._is_contract = is_contract
        self._static_call = static_call

    def verify(self, request: ForwardRequest, signature: bytes) -> None:
        """Nonce check then signature check; raises on the first failure."""
        self.nonces.verify_nonce(request)
        self.verify_signature(request, signature)

    def verify_signature(self, request: ForwardRequest, signature: bytes) -> None:
        digest = self.domain.digest(request)
        if self._is_contract(request.originator):
            self._verify_delegated(request.originator, digest, signature)
        else:
            self._verify_recovered(request.originator, digest, signature)

    def _verify_recovered(self, originator: str, digest: bytes, signature: bytes) -> None:
        signer = recover_signer(digest, signature)
        if signer != originator:
            logger.warning("Signature of %s recovered to %s", originator, signer)
            raise InvalidSignature()

    def _verify_delegated(self, originator: str, digest: bytes, signature: bytes) -> None:
        data = encode_call(IS_VALID_SIGNATURE_SIGNATURE, digest, signature)
        result = self._static_call(originator, data)
        # bytes4 return values are left-aligned in a 32-byte word
        if not result.success or result.return_data[:32] != _MAGIC_WORD:
            logger.warning("Contract account %s rejected the request digest", originator)
            raise InvalidSignature()
