from dataclasses import dataclass, field
from typing import Dict, Any, List

from .domain import FORWARDER_NAME, FORWARDER_VERSION
from ..schemas.requests import ForwardRequest


# -----------------------------
# EIP-712 Domain
# -----------------------------

@dataclass
class EIP712Domain:
    """
    EIP-712 domain separator.
    Used to prevent signature replay across domains.
    """
    chainId: int
    verifyingContract: str
    name: str = FORWARDER_NAME
    version: str = FORWARDER_VERSION

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "chainId": self.chainId,
            "verifyingContract": self.verifyingContract,
        }


# -----------------------------
# ForwardRequest typed data
# -----------------------------

@dataclass
class ForwardRequestTypedData:
    """
    Container for ``ForwardRequest`` typed data usable with EIP-712 signing routines.

    ``to_dict()`` produces the ``{types, primaryType, domain, message}``
    layout consumed by ``eth_account.Account.sign_typed_data`` and
    ``eth_signTypedData_v4``.  The digest it signs is the one the forwarder
    rebuilds on-ledger from the request fields and its sealed domain.

    Attributes:
        domain: EIP712Domain instance describing the signing domain.
        request: The request being authorized.
        primary_type: The primary EIP-712 type (``"ForwardRequest"``).
        types: The typed definitions required by EIP-712 (automatically set).
    """
    domain: EIP712Domain
    request: ForwardRequest

    primary_type: str = "ForwardRequest"

    types: Dict[str, List[Dict[str, str]]] = field(
        default_factory=lambda: {
            "EIP712Domain": [
                {"name": "name", "type": "string"},
                {"name": "version", "type": "string"},
                {"name": "chainId", "type": "uint256"},
                {"name": "verifyingContract", "type": "address"},
            ],
            "ForwardRequest": [
                {"name": "from", "type": "address"},
                {"name": "to", "type": "address"},
                {"name": "value", "type": "uint256"},
                {"name": "nonce", "type": "uint256"},
                {"name": "data", "type": "bytes"},
            ],
        }
    )

    def to_dict(self) -> Dict[str, Any]:
        """Return a dictionary compatible with EIP-712 structured signing."""
        return {
            "types": self.types,
            "primaryType": self.primary_type,
            "domain": self.domain.to_dict(),
            "message": self.request.to_message(),
        }


# -----------------------------
# ERC-1271: Contract-based signature validation
# -----------------------------

#: Magic value returned by a valid ERC-1271 ``isValidSignature`` call.
ERC1271_MAGIC_VALUE: bytes = b"\x16\x26\xba\x7e"

IS_VALID_SIGNATURE_SIGNATURE: str = "isValidSignature(bytes32,bytes)"


# -----------------------------
# Forwarder ABI (for web3 contract objects)
# -----------------------------

_FORWARD_REQUEST_COMPONENTS: List[Dict[str, str]] = [
    {"name": "from", "type": "address"},
    {"name": "to", "type": "address"},
    {"name": "value", "type": "uint256"},
    {"name": "nonce", "type": "uint256"},
    {"name": "data", "type": "bytes"},
]


def get_forwarder_abi() -> List[Dict[str, Any]]:
    """
    ABI of a deployed forwarder, as accepted by ``web3.eth.contract``.

    Mirrors the external functions of ``Forwarder`` on the in-process ledger.
    """
    request = {"name": "req", "type": "tuple", "components": _FORWARD_REQUEST_COMPONENTS}
    return [
        {
            "name": "getNonce",
            "type": "function",
            "stateMutability": "view",
            "inputs": [{"name": "from", "type": "address"}],
            "outputs": [{"name": "", "type": "uint256"}],
        },
        {
            "name": "verify",
            "type": "function",
            "stateMutability": "view",
            "inputs": [request, {"name": "signature", "type": "bytes"}],
            "outputs": [],
        },
        {
            "name": "execute",
            "type": "function",
            "stateMutability": "payable",
            "inputs": [request, {"name": "signature", "type": "bytes"}],
            "outputs": [
                {"name": "success", "type": "bool"},
                {"name": "ret", "type": "bytes"},
            ],
        },
        {
            "name": "batchFromSelf",
            "type": "function",
            "stateMutability": "payable",
            "inputs": [
                {
                    "name": "calls",
                    "type": "tuple[]",
                    "components": [
                        {"name": "to", "type": "address"},
                        {"name": "data", "type": "bytes"},
                        {"name": "value", "type": "uint256"},
                    ],
                }
            ],
            "outputs": [],
        },
        {
            "name": "executeBatch",
            "type": "function",
            "stateMutability": "payable",
            "inputs": [
                {
                    "name": "requests",
                    "type": "tuple[]",
                    "components": [
                        {"name": "req", "type": "tuple", "components": _FORWARD_REQUEST_COMPONENTS},
                        {"name": "sig", "type": "bytes"},
                    ],
                },
                {"name": "failFast", "type": "bool"},
            ],
            "outputs": [
                {"name": "successes", "type": "bool[]"},
                {"name": "results", "type": "bytes[]"},
            ],
        },
        {
            "name": "DOMAIN_SEPARATOR",
            "type": "function",
            "stateMutability": "view",
            "inputs": [],
            "outputs": [{"name": "", "type": "bytes32"}],
        },
        {
            "name": "REQUEST_TYPEHASH",
            "type": "function",
            "stateMutability": "view",
            "inputs": [],
            "outputs": [{"name": "", "type": "bytes32"}],
        },
        {
            "name": "EIP712_DOMAIN_TYPEHASH",
            "type": "function",
            "stateMutability": "view",
            "inputs": [],
            "outputs": [{"name": "", "type": "bytes32"}],
        },
        {
            "name": "TransactionReverted",
            "type": "event",
            "anonymous": False,
            "inputs": [{"name": "reason", "type": "string", "indexed": False}],
        },
    ]
