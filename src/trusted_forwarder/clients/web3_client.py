"""
Async client for a forwarder deployed on an EVM network.

Wraps the forwarder ABI in an ``AsyncWeb3`` contract object: reads nonces
and the domain separator, dry-runs ``verify`` through ``eth_call``, and
relays ``execute`` / ``executeBatch`` transactions signed by a relayer key.

Dependencies:
    - web3.py: For blockchain RPC interaction
    - eth_account: For request and transaction signing
"""

import logging
from typing import Any, List, Optional, Sequence, Tuple

from eth_account import Account
from web3 import AsyncWeb3
from web3.exceptions import ContractLogicError, Web3Exception
from web3.types import TxReceipt

from ..chain.abi import to_abi_value
from ..config import ForwarderSettings
from ..engine.exceptions import (
    BlockchainInteractionError,
    ConfigurationError,
    InvalidNonce,
    TransactionExecutionError,
)
from ..forwarder.domain import FORWARDER_NAME, FORWARDER_VERSION
from ..forwarder.signatures import sign_forward_request
from ..forwarder.standards import get_forwarder_abi
from ..schemas.bases import VerificationStatus, normalize_address
from ..schemas.requests import BatchEntry, ForwardRequest
from ..schemas.results import ForwardVerificationResult

logger = logging.getLogger(__name__)

#: Gas limit used when estimation fails (e.g. the call would revert).
_FALLBACK_GAS_LIMIT: int = 500000


class ForwarderClient:
    """
    Relay client for one deployed forwarder.

    Attributes:
        w3: Connected ``AsyncWeb3`` instance.
        address: Checksum address of the forwarder.
        relayer: Account submitting transactions, or ``None`` for read-only use.

    Example::

        client = ForwarderClient.from_settings(load_settings())
        request = await client.build_request(
            originator=alice.address, target=token_address, data=calldata,
        )
        signature = await client.sign_request(request, alice.key)
        tx_hash, receipt = await client.execute(request, signature)
    """

    def __init__(
        self,
        w3: AsyncWeb3,
        forwarder_address: str,
        relayer_private_key: Optional[str] = None,
        domain_name: str = FORWARDER_NAME,
        domain_version: str = FORWARDER_VERSION,
    ):
        self.w3 = w3
        self.address = normalize_address(forwarder_address)
        self.relayer = Account.from_key(relayer_private_key) if relayer_private_key else None
        self.domain_name = domain_name
        self.domain_version = domain_version
        self.contract = w3.eth.contract(address=self.address, abi=get_forwarder_abi())

    @classmethod
    def from_settings(cls, settings: ForwarderSettings) -> "ForwarderClient":
        """
        Build a client from environment settings.

        Raises:
            ConfigurationError: If ``FORWARDER_RPC_URL`` or ``FORWARDER_ADDRESS`` is missing.
        """
        if not settings.rpc_url:
            raise ConfigurationError("FORWARDER_RPC_URL is required for the web3 client")
        if not settings.forwarder_address:
            raise ConfigurationError("FORWARDER_ADDRESS is required for the web3 client")
        w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(settings.rpc_url))
        return cls(
            w3,
            settings.forwarder_address,
            relayer_private_key=settings.relayer_private_key,
            domain_name=settings.name,
            domain_version=settings.version,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_nonce(self, originator: str) -> int:
        try:
            return int(await self.contract.functions.getNonce(normalize_address(originator)).call())
        except Web3Exception as exc:
            raise BlockchainInteractionError(
                f"Failed to query nonce of {originator}: {exc}", rpc_method="eth_call", reason=str(exc)
            ) from exc

    async def domain_separator(self) -> bytes:
        return bytes(await self.contract.functions.DOMAIN_SEPARATOR().call())

    async def build_request(
        self,
        *,
        originator: str,
        target: str,
        data: bytes = b"",
        value: int = 0,
        nonce: Optional[int] = None,
    ) -> ForwardRequest:
        """Build a request, filling in the originator's current nonce unless given."""
        resolved_nonce = nonce if nonce is not None else await self.get_nonce(originator)
        return ForwardRequest(originator=originator, target=target, value=value, nonce=resolved_nonce, data=data)

    async def sign_request(self, request: ForwardRequest, private_key: Any) -> bytes:
        """Sign ``request`` for this forwarder on the connected chain."""
        chain_id = await self.w3.eth.chain_id
        return sign_forward_request(
            private_key=private_key,
            request=request,
            chain_id=chain_id,
            forwarder=self.address,
            domain_name=self.domain_name,
            domain_version=self.domain_version,
        )

    async def verify(self, request: ForwardRequest, signature: bytes) -> ForwardVerificationResult:
        """
        Dry-run the forwarder's ``verify`` through ``eth_call``.

        Never raises for a rejected request; the outcome is in the result.
        """
        def _result(status: VerificationStatus, message: str, details=None) -> ForwardVerificationResult:
            return ForwardVerificationResult(
                status=status,
                is_valid=status == VerificationStatus.SUCCESS,
                message=message,
                originator=request.originator,
                nonce=request.nonce,
                error_details=details,
            )

        try:
            await self.contract.functions.verify(request.to_abi(), signature).call()
        except ContractLogicError as exc:
            reason = str(exc)
            if InvalidNonce.default_reason in reason:
                return _result(VerificationStatus.INVALID_NONCE, "Nonce is not the originator's next nonce.", {"reason": reason})
            return _result(VerificationStatus.INVALID_SIGNATURE, "Signature does not authorize the request.", {"reason": reason})
        except Web3Exception as exc:
            return _result(VerificationStatus.BLOCKCHAIN_ERROR, f"Failed to call verify: {exc}", {"error": str(exc)})

        return _result(VerificationStatus.SUCCESS, "Request valid: forwarder would admit it.")

    # ------------------------------------------------------------------
    # Relayed transactions
    # ------------------------------------------------------------------

    async def execute(
        self,
        request: ForwardRequest,
        signature: bytes,
        wait: bool = True,
    ) -> Tuple[str, Optional[TxReceipt]]:
        """Relay ``execute(request, signature)``, forwarding ``request.value``."""
        function = self.contract.functions.execute(request.to_abi(), signature)
        return await self._send(function, value=request.value, wait=wait)

    async def execute_batch(
        self,
        entries: Sequence[BatchEntry],
        fail_fast: bool = True,
        wait: bool = True,
    ) -> Tuple[str, Optional[TxReceipt]]:
        """Relay ``executeBatch(entries, failFast)``; sends the sum of the entries' values."""
        value = sum(entry.request.value for entry in entries)
        payload: List[Any] = [to_abi_value(entry) for entry in entries]
        function = self.contract.functions.executeBatch(payload, fail_fast)
        return await self._send(function, value=value, wait=wait)

    async def _send(self, function, *, value: int, wait: bool) -> Tuple[str, Optional[TxReceipt]]:
        if self.relayer is None:
            raise ConfigurationError("A relayer private key is required to send transactions")

        sender = self.relayer.address
        tx_params = {
            "chainId": await self.w3.eth.chain_id,
            "from": sender,
            "nonce": await self.w3.eth.get_transaction_count(sender),
            "value": value,
        }

        try:
            gas_estimate = await function.estimate_gas({"from": sender, "value": value})
            tx_params["gas"] = gas_estimate * 12 // 10
        except (ContractLogicError, ValueError) as exc:
            logger.warning("Gas estimation failed, using fallback limit: %s", exc)
            tx_params["gas"] = _FALLBACK_GAS_LIMIT

        tx_params["gasPrice"] = await self.w3.eth.gas_price

        transaction = await function.build_transaction(tx_params)
        signed_tx = self.relayer.sign_transaction(transaction)
        tx_hash = await self.w3.eth.send_raw_transaction(signed_tx.raw_transaction)
        tx_hex = tx_hash.hex()
        logger.info("Relayed forwarder transaction %s", tx_hex)

        if not wait:
            return tx_hex, None

        receipt = await self.w3.eth.wait_for_transaction_receipt(tx_hash)
        if receipt["status"] == 0:
            raise TransactionExecutionError(f"Forwarder transaction reverted: {tx_hex}", tx_hash=tx_hex)
        return tx_hex, receipt
