from .abi import SILENT_REVERT_REASON, decode_revert_reason, encode_call
from .contracts import Contract, external
from .ledger import DEFAULT_CHAIN_ID, ZERO_ADDRESS, CallResult, Ledger, Message, TransactionReceipt

__all__ = [
    "SILENT_REVERT_REASON",
    "decode_revert_reason",
    "encode_call",
    "Contract",
    "external",
    "DEFAULT_CHAIN_ID",
    "ZERO_ADDRESS",
    "CallResult",
    "Ledger",
    "Message",
    "TransactionReceipt",
]
