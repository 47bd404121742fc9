"""
Owner-delegated ERC-1271 wallet.

A contract account whose signatures are its owner's: ``isValidSignature``
accepts a digest signed by the owner key.  Lets the forwarder exercise its
contract-account verification path.
"""

from ..chain.contracts import Contract, external
from ..chain.ledger import Ledger
from ..engine.exceptions import InvalidSignature
from ..forwarder.standards import ERC1271_MAGIC_VALUE
from ..forwarder.verifier import recover_signer
from ..schemas.bases import normalize_address

_INVALID_VALUE: bytes = b"\xff\xff\xff\xff"


class DelegatedSignatureWallet(Contract):
    """Smart-contract account validating signatures against its owner."""

    def __init__(self, ledger: Ledger, address: str, owner: str) -> None:
        super().__init__(ledger, address)
        self.owner = normalize_address(owner)

    @external("isValidSignature(bytes32,bytes)", returns=("bytes4",), view=True)
    def is_valid_signature(self, digest: bytes, signature: bytes) -> bytes:
        try:
            signer = recover_signer(digest, signature)
        except InvalidSignature:
            return _INVALID_VALUE
        return ERC1271_MAGIC_VALUE if signer == self.owner else _INVALID_VALUE
