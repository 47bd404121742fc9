from .bases import CanonicalModel, VerificationStatus, TransactionStatus, normalize_address, normalize_bytes
from .requests import ForwardRequest, BatchEntry, Call
from .results import ForwardVerificationResult, BatchExecutionResult

__all__ = [
    "CanonicalModel",
    "VerificationStatus",
    "TransactionStatus",
    "normalize_address",
    "normalize_bytes",
    "ForwardRequest",
    "BatchEntry",
    "Call",
    "ForwardVerificationResult",
    "BatchExecutionResult",
]
