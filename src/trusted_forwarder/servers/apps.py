"""
Relay Service - FastAPI wrapper around a forwarder on the in-process ledger.

Clients post requests signed off-chain; the relay account submits the
forwarder transaction and pays for the forwarded value.
"""

import logging
from typing import Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..chain.ledger import Ledger
from ..config import ForwarderSettings, load_settings
from ..engine.exceptions import (
    BatchAborted,
    ContractRevert,
    InvalidNonce,
    InvalidSignature,
)
from ..forwarder.contract import Forwarder
from ..schemas.bases import normalize_address
from ..schemas.https import (
    BatchRequestBody,
    DomainResponse,
    ErrorResponse,
    ExecuteResponse,
    NonceResponse,
    SignedRequestBody,
    VerifyResponse,
)
from ..schemas.results import BatchExecutionResult

logger = logging.getLogger(__name__)

#: Native balance given to a relay account created on the fly.
DEFAULT_RELAYER_BALANCE: int = 10**24


class RelayServer(FastAPI):
    """FastAPI server relaying signed forward requests."""

    def __init__(
        self,
        ledger: Ledger,
        forwarder: Forwarder,
        relayer: LocalAccount,
        **fastapi_kwargs
    ):
        """Initialize the relay.

        Args:
            ledger: Ledger hosting the forwarder
            forwarder: Deployed forwarder the relay submits to
            relayer: Account that signs and pays for relayed transactions
            **fastapi_kwargs: FastAPI arguments (title, version, etc.)
        """
        self.ledger = ledger
        self.forwarder = forwarder
        self.relayer = relayer

        super().__init__(**fastapi_kwargs)

        self.add_exception_handler(ContractRevert, self._handle_revert)
        self._setup_routes()

    @classmethod
    def from_settings(cls, settings: Optional[ForwarderSettings] = None, **fastapi_kwargs) -> "RelayServer":
        """Create a ledger, deploy a forwarder on it and serve it.

        Without ``FORWARDER_RELAYER_PRIVATE_KEY`` a fresh relay account is
        created. The relay account is funded with ``DEFAULT_RELAYER_BALANCE``.
        """
        settings = settings or load_settings()
        ledger = Ledger(chain_id=settings.chain_id)
        forwarder = ledger.deploy(Forwarder, name=settings.name, version=settings.version)
        if settings.relayer_private_key:
            relayer = Account.from_key(settings.relayer_private_key)
        else:
            relayer = ledger.new_account()
        ledger.set_balance(relayer.address, DEFAULT_RELAYER_BALANCE)
        logger.info("Relaying for forwarder %s on chain %d as %s", forwarder.address, ledger.chain_id, relayer.address)
        return cls(ledger, forwarder, relayer, **fastapi_kwargs)

    async def _handle_revert(self, request: Request, exc: ContractRevert) -> JSONResponse:
        """Protocol rejections answer 400; failed calls answer 422."""
        status_code = 400 if isinstance(exc, (InvalidNonce, InvalidSignature)) else 422
        payload = ErrorResponse(
            error=type(exc).__name__,
            reason=exc.call_reason if isinstance(exc, BatchAborted) else exc.reason,
            index=exc.index if isinstance(exc, BatchAborted) else None,
        )
        logger.info("%s %s rejected: %s", request.method, request.url.path, payload.reason)
        return JSONResponse(status_code=status_code, content=payload.model_dump(mode="json"))

    def _setup_routes(self) -> None:
        """Register the relay endpoints."""

        @self.get("/nonce/{address}")
        async def get_nonce(address: str):
            """Next expected nonce of ``address``."""
            try:
                address = normalize_address(address)
            except ValueError as exc:
                return JSONResponse(status_code=400, content=ErrorResponse(error="InvalidAddress", reason=str(exc)).model_dump(mode="json"))
            nonce = self.forwarder.functions.getNonce(address).call()
            return NonceResponse(address=address, nonce=nonce).model_dump(mode="json")

        @self.get("/domain")
        async def get_domain():
            """Signing domain clients must use."""
            domain = self.forwarder.domain
            return DomainResponse(
                name=domain.name,
                version=domain.version,
                chain_id=domain.chain_id,
                verifying_contract=domain.verifying_contract,
                separator=domain.separator,
            ).model_dump(mode="json", by_alias=True)

        @self.post("/verify")
        async def verify(body: SignedRequestBody):
            """Dry-run admission of a signed request; never changes state."""
            try:
                self.forwarder.functions.verify(body.request, body.signature).call()
            except (InvalidNonce, InvalidSignature) as exc:
                return VerifyResponse(valid=False, error=exc.reason).model_dump(mode="json")
            return VerifyResponse(valid=True).model_dump(mode="json")

        @self.post("/execute")
        async def execute(body: SignedRequestBody):
            """Relay one signed request."""
            receipt = self.forwarder.functions.execute(body.request, body.signature).transact(
                sender=self.relayer.address, value=body.request.value
            )
            success, return_data = receipt.output
            return ExecuteResponse(success=success, return_data=return_data).model_dump(mode="json")

        @self.post("/execute-batch")
        async def execute_batch(body: BatchRequestBody):
            """Relay independently signed requests in one transaction."""
            value = sum(entry.request.value for entry in body.entries)
            receipt = self.forwarder.functions.executeBatch(body.entries, body.fail_fast).transact(
                sender=self.relayer.address, value=value
            )
            successes, results = receipt.output
            return BatchExecutionResult(successes=list(successes), results=list(results)).model_dump(mode="json")
