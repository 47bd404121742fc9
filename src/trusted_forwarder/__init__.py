"""
Trusted forwarder for EIP-712 signed meta-transactions.

Relayers submit requests that originators signed off-chain; the forwarder
checks the originator's nonce and signature, then calls the target with the
originator's address appended to the calldata (ERC-2771).
"""

from .chain import Ledger, encode_call
from .forwarder import Forwarder, sign_forward_request
from .schemas import BatchEntry, Call, ForwardRequest

__all__ = [
    "Ledger",
    "encode_call",
    "Forwarder",
    "sign_forward_request",
    "BatchEntry",
    "Call",
    "ForwardRequest",
]
