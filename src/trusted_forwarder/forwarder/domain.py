"""
EIP-712 domain context of a forwarder deployment.

The domain separator binds every signature to one protocol name, version,
chain id and forwarder address.  It is computed once, when the forwarder is
constructed, and never recomputed: if the chain id changes afterwards (a
fork), signatures stay bound to the chain id captured at construction.
"""

from dataclasses import dataclass, field

from eth_abi import encode
from eth_utils import keccak

from ..schemas.requests import ForwardRequest

#: Protocol name of the forwarder domain.
FORWARDER_NAME: str = "Forwarder"

#: Protocol version of the forwarder domain.
FORWARDER_VERSION: str = "0.0.1"

EIP712_DOMAIN_TYPE: str = "EIP712Domain(string name,string version,uint256 chainId,address verifyingContract)"
FORWARD_REQUEST_TYPE: str = "ForwardRequest(address from,address to,uint256 value,uint256 nonce,bytes data)"

EIP712_DOMAIN_TYPEHASH: bytes = keccak(text=EIP712_DOMAIN_TYPE)
FORWARD_REQUEST_TYPEHASH: bytes = keccak(text=FORWARD_REQUEST_TYPE)


def compute_domain_separator(name: str, version: str, chain_id: int, verifying_contract: str) -> bytes:
    """``keccak256(abi.encode(typehash, keccak(name), keccak(version), chainId, verifyingContract))``."""
    return keccak(
        encode(
            ["bytes32", "bytes32", "bytes32", "uint256", "address"],
            [
                EIP712_DOMAIN_TYPEHASH,
                keccak(text=name),
                keccak(text=version),
                chain_id,
                verifying_contract,
            ],
        )
    )


def hash_forward_request(request: ForwardRequest) -> bytes:
    """EIP-712 ``hashStruct`` of a request; ``data`` enters as its keccak hash."""
    return keccak(
        encode(
            ["bytes32", "address", "address", "uint256", "uint256", "bytes32"],
            [
                FORWARD_REQUEST_TYPEHASH,
                request.originator,
                request.target,
                request.value,
                request.nonce,
                keccak(request.data),
            ],
        )
    )


@dataclass(frozen=True)
class DomainContext:
    """
    Sealed signing domain of one forwarder deployment.

    Attributes:
        name: Protocol name.
        version: Protocol version.
        chain_id: Chain id captured at construction.
        verifying_contract: Forwarder address.
        separator: Domain separator hash derived from the four fields above.
    """
    name: str
    version: str
    chain_id: int
    verifying_contract: str
    separator: bytes = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "separator",
            compute_domain_separator(self.name, self.version, self.chain_id, self.verifying_contract),
        )

    def digest(self, request: ForwardRequest) -> bytes:
        """Structured-data digest ``keccak(0x1901 || separator || hashStruct(request))``."""
        return keccak(b"\x19\x01" + self.separator + hash_forward_request(request))
