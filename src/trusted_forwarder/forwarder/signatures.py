"""
Off-Chain Forward Request Signing Utilities

Local EIP-712 signing helpers for ``ForwardRequest`` meta-transactions.  All
cryptographic operations are performed in-process using ``eth_account``; no
RPC calls or ledger state queries are made.

Exported helpers
----------------
build_forward_request_typed_data
    Low-level helper that wraps a ``ForwardRequest`` in a
    ``ForwardRequestTypedData`` envelope without signing.  Useful when the
    signing step is handled externally (e.g. a hardware wallet or MPC service).

sign_forward_request
    Build the EIP-712 payload, sign it with a private key and return the
    65-byte ``r || s || v`` signature the forwarder expects.

recover_forward_request_signer
    Recover the plain-account signer of a request off-chain.
"""

from eth_account import Account
from eth_account.messages import encode_typed_data

from .domain import FORWARDER_NAME, FORWARDER_VERSION
from .standards import EIP712Domain, ForwardRequestTypedData
from ..schemas.requests import ForwardRequest


def build_forward_request_typed_data(
    request: ForwardRequest,
    *,
    chain_id: int,
    verifying_contract: str,
    domain_name: str = FORWARDER_NAME,
    domain_version: str = FORWARDER_VERSION,
) -> ForwardRequestTypedData:
    """
    Wrap a ``ForwardRequest`` in an EIP-712 ``ForwardRequestTypedData`` envelope
    without signing.

    Args:
        request:            The request to authorize.
        chain_id:           Chain id the forwarder sealed into its domain.
        verifying_contract: Forwarder address.
        domain_name:        EIP-712 domain ``name`` of the forwarder.
        domain_version:     EIP-712 domain ``version`` of the forwarder.

    Returns:
        ``ForwardRequestTypedData`` whose ``to_dict()`` is compatible with
        ``eth_account.Account.sign_typed_data`` and ``eth_signTypedData_v4``.

    Example::

        typed_data = build_forward_request_typed_data(
            request, chain_id=1, verifying_contract=forwarder_address,
        )
        payload = typed_data.to_dict()   # hand off to external signer
    """
    domain = EIP712Domain(
        name=domain_name,
        version=domain_version,
        chainId=chain_id,
        verifyingContract=verifying_contract,
    )
    return ForwardRequestTypedData(domain=domain, request=request)


def sign_forward_request(
    *,
    private_key: str,
    request: ForwardRequest,
    chain_id: int,
    forwarder: str,
    domain_name: str = FORWARDER_NAME,
    domain_version: str = FORWARDER_VERSION,
) -> bytes:
    """
    Sign a ``ForwardRequest`` and return the 65-byte signature.

    The key must belong to ``request.originator`` for plain accounts.  For a
    contract originator, sign with whichever key its ``isValidSignature``
    accepts (e.g. the owner of a ``DelegatedSignatureWallet``); the digest is
    the same.

    Args:
        private_key:    Hex-encoded secp256k1 private key.
        request:        The request to authorize.
        chain_id:       Chain id the forwarder sealed into its domain.
        forwarder:      Forwarder address (EIP-712 ``verifyingContract``).
        domain_name:    EIP-712 domain ``name``; defaults to ``"Forwarder"``.
        domain_version: EIP-712 domain ``version``; defaults to ``"0.0.1"``.

    Returns:
        ``r || s || v`` signature bytes with ``v`` in {27, 28}.

    Example::

        request = ForwardRequest(
            originator=alice.address,
            target=token.address,
            nonce=forwarder.functions.getNonce(alice.address).call(),
            data=encode_call("transfer(address,uint256)", bob.address, 10**18),
        )
        signature = sign_forward_request(
            private_key=alice.key.hex(),
            request=request,
            chain_id=ledger.chain_id,
            forwarder=forwarder.address,
        )
    """
    typed_data = build_forward_request_typed_data(
        request,
        chain_id=chain_id,
        verifying_contract=forwarder,
        domain_name=domain_name,
        domain_version=domain_version,
    )
    signed = Account.sign_typed_data(private_key, full_message=typed_data.to_dict())
    return bytes(signed.signature)


def recover_forward_request_signer(
    *,
    request: ForwardRequest,
    signature: bytes,
    chain_id: int,
    forwarder: str,
    domain_name: str = FORWARDER_NAME,
    domain_version: str = FORWARDER_VERSION,
) -> str:
    """
    Recover the address that signed ``request`` under the given domain.

    Only meaningful for plain-account originators; contract originators
    validate through ERC-1271 instead.
    """
    typed_data = build_forward_request_typed_data(
        request,
        chain_id=chain_id,
        verifying_contract=forwarder,
        domain_name=domain_name,
        domain_version=domain_version,
    )
    signable = encode_typed_data(full_message=typed_data.to_dict())
    return Account.recover_message(signable, signature=signature)
