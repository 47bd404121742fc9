"""
Exception and Error Definitions Module

Defines the exception hierarchy for request verification, forwarded call
execution, configuration and blockchain interaction.

Exception Hierarchy:
    ForwarderError (root)
    ├── ContractRevert
    │   ├── InvalidNonce
    │   ├── InvalidSignature
    │   ├── OnlyForwarder
    │   ├── BatchAborted
    │   └── CallReverted
    ├── ConfigurationError
    └── BlockchainInteractionError
        └── TransactionExecutionError

``ContractRevert`` and its subclasses are raised by contract code running on
the ledger.  A revert inside a nested call frame unwinds that frame and is
handed to the caller as ABI-encoded revert data; a revert that reaches the
top-level transaction unwinds the whole transaction and is re-raised to the
Python caller unchanged.
"""

from typing import Optional

from eth_abi import encode

#: Selector of ``Error(string)``, the standard revert payload.
ERROR_STRING_SELECTOR: bytes = bytes.fromhex("08c379a0")


def encode_revert_reason(reason: str) -> bytes:
    """ABI-encode ``reason`` as an ``Error(string)`` revert payload."""
    return ERROR_STRING_SELECTOR + encode(["string"], [reason])


class ForwarderError(Exception):
    """
    Root exception class for all project-specific exceptions.

    All custom exceptions inherit from this class to enable unified
    exception handling.
    """
    pass


class ContractRevert(ForwarderError):
    """
    Raised by contract code to revert the current call frame.

    Attributes:
        reason: Human-readable revert string, or ``None`` for a silent revert.
    """

    default_reason: Optional[str] = None

    def __init__(self, reason: Optional[str] = None):
        self.reason = reason if reason is not None else self.default_reason
        super().__init__(self.reason or "reverted without a reason")

    @property
    def revert_data(self) -> bytes:
        """Revert payload returned to the caller of the reverted frame."""
        if self.reason is None:
            return b""
        return encode_revert_reason(self.reason)


class InvalidNonce(ContractRevert):
    """
    Raised when a request's nonce differs from the originator's expected nonce.

    Covers stale, reused and skipped nonces alike.  This is the replay
    protection of the forwarder.
    """
    default_reason = "FWDR: INVALID_NONCE"


class InvalidSignature(ContractRevert):
    """
    Raised when a signature does not authorize the request.

    This includes scenarios such as:
    - Recovered signer differs from the request originator
    - Malformed signature (length, ``v`` or ``s`` out of range)
    - Contract originator rejecting the digest via ``isValidSignature``
    - Signature produced under a different EIP-712 domain
    """
    default_reason = "FWDR: SIGNATURE_INVALID"


class OnlyForwarder(ContractRevert):
    """Raised when the same-signer batch entry point is not called by the forwarder itself."""
    default_reason = "FWDR: ONLY_FORWARDER"


class BatchAborted(ContractRevert):
    """
    Raised when a fail-fast batch meets a failing entry.

    Attributes:
        index: Position of the failing entry in the batch.
        call_reason: Decoded revert reason of the failing call.
    """
    default_reason = "FWDR: TX_REVERTED"

    def __init__(self, index: Optional[int] = None, call_reason: Optional[str] = None):
        super().__init__()
        self.index = index
        self.call_reason = call_reason


class CallReverted(ContractRevert):
    """
    Raised when a forwarded call fails.

    ``reason`` is the decoded revert string of the target, or
    ``"Transaction reverted silently"`` when none could be decoded.
    """
    pass


class ConfigurationError(ForwarderError):
    """
    Raised when configuration is missing or invalid.

    This includes scenarios such as:
    - Non-integer chain id
    - Malformed relayer private key
    - Missing RPC URL or forwarder address for the web3 client
    """
    pass


class BlockchainInteractionError(ForwarderError):
    """
    Raised when an RPC interaction with a deployed forwarder fails.

    Attributes:
        rpc_method: RPC method that was called (e.g., 'eth_call')
        reason: Error reason from blockchain node
    """

    def __init__(self, message: str, rpc_method: Optional[str] = None, reason: Optional[str] = None):
        super().__init__(message)
        self.rpc_method = rpc_method
        self.reason = reason


class TransactionExecutionError(BlockchainInteractionError):
    """
    Raised when a relayed transaction is mined but reverted.

    Attributes:
        tx_hash: Transaction hash if available
    """

    def __init__(self, message: str, tx_hash: Optional[str] = None, reason: Optional[str] = None):
        super().__init__(message, rpc_method="eth_sendRawTransaction", reason=reason)
        self.tx_hash = tx_hash
