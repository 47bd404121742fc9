from .contract import ADDRESS_SUFFIX_LENGTH, Forwarder, append_sender, extract_sender
from .domain import DomainContext, FORWARDER_NAME, FORWARDER_VERSION
from .nonces import NonceRegistry
from .signatures import build_forward_request_typed_data, recover_forward_request_signer, sign_forward_request
from .verifier import SignatureVerifier, recover_signer

__all__ = [
    "ADDRESS_SUFFIX_LENGTH",
    "Forwarder",
    "append_sender",
    "extract_sender",
    "DomainContext",
    "FORWARDER_NAME",
    "FORWARDER_VERSION",
    "NonceRegistry",
    "build_forward_request_typed_data",
    "recover_forward_request_signer",
    "sign_forward_request",
    "SignatureVerifier",
    "recover_signer",
]
