"""
Web3 Forwarder Client Test Suite

Tests the async client against mock ``AsyncWeb3`` objects: reads, dry-run
verification, relayed transaction construction and failure handling.
"""

import pytest
from unittest.mock import patch

from eth_account import Account
from web3.exceptions import ContractLogicError

from trusted_forwarder.clients.web3_client import ForwarderClient
from trusted_forwarder.config import ForwarderSettings
from trusted_forwarder.engine.exceptions import ConfigurationError, TransactionExecutionError
from trusted_forwarder.forwarder.signatures import recover_forward_request_signer
from trusted_forwarder.schemas.bases import VerificationStatus
from trusted_forwarder.schemas.requests import BatchEntry, ForwardRequest

from forwarder_mocks import (
    ALICE,
    ALICE_KEY,
    BOB,
    MOCK_FORWARDER_ADDRESS,
    MOCK_GAS_PRICE,
    MOCK_TX_HASH,
    RELAYER,
    RELAYER_KEY,
    MockForwarderContract,
    MockWeb3Provider,
)


REQUEST = ForwardRequest(originator=ALICE.address, target=BOB.address, value=3, nonce=0, data=b"\x01")


@pytest.fixture
def mock_web3():
    return MockWeb3Provider()


@pytest.fixture
def client(mock_web3):
    return ForwarderClient(mock_web3, MOCK_FORWARDER_ADDRESS, relayer_private_key=RELAYER_KEY)


class TestInitialization:

    def test_contract_is_bound_to_forwarder(self, mock_web3, client):
        mock_web3.eth.contract.assert_called_once()
        assert mock_web3.eth.contract.call_args.kwargs["address"] == MOCK_FORWARDER_ADDRESS
        assert client.relayer.address == RELAYER.address

    def test_read_only_client_cannot_send(self, mock_web3):
        read_only = ForwarderClient(mock_web3, MOCK_FORWARDER_ADDRESS)

        assert read_only.relayer is None

    def test_from_settings_requires_rpc_url(self):
        with pytest.raises(ConfigurationError):
            ForwarderClient.from_settings(ForwarderSettings(forwarder_address=MOCK_FORWARDER_ADDRESS))

    def test_from_settings_requires_forwarder_address(self):
        with pytest.raises(ConfigurationError):
            ForwarderClient.from_settings(ForwarderSettings(rpc_url="http://localhost:8545"))

    def test_from_settings_builds_provider(self):
        settings = ForwarderSettings(
            rpc_url="http://localhost:8545",
            forwarder_address=MOCK_FORWARDER_ADDRESS,
            relayer_private_key=RELAYER_KEY,
            name="Custom",
        )

        client = ForwarderClient.from_settings(settings)

        assert client.address == MOCK_FORWARDER_ADDRESS
        assert client.domain_name == "Custom"
        assert client.relayer.address == RELAYER.address


class TestReads:

    @pytest.mark.asyncio
    async def test_get_nonce(self):
        client = ForwarderClient(MockWeb3Provider(MockForwarderContract(nonce=4)), MOCK_FORWARDER_ADDRESS)

        assert await client.get_nonce(ALICE.address) == 4

    @pytest.mark.asyncio
    async def test_domain_separator(self, client):
        assert await client.domain_separator() == b"\x01" * 32

    @pytest.mark.asyncio
    async def test_build_request_fills_nonce(self):
        client = ForwarderClient(MockWeb3Provider(MockForwarderContract(nonce=9)), MOCK_FORWARDER_ADDRESS)

        request = await client.build_request(originator=ALICE.address, target=BOB.address, data=b"\x02")

        assert request.nonce == 9
        assert request.data == b"\x02"

    @pytest.mark.asyncio
    async def test_sign_request_uses_chain_domain(self, client):
        signature = await client.sign_request(REQUEST, ALICE_KEY)

        assert recover_forward_request_signer(
            request=REQUEST, signature=signature, chain_id=31337, forwarder=MOCK_FORWARDER_ADDRESS
        ) == ALICE.address


class TestVerify:

    @pytest.mark.asyncio
    async def test_valid(self, client):
        result = await client.verify(REQUEST, b"\x00" * 65)

        assert result.is_success()
        assert result.status == VerificationStatus.SUCCESS
        assert result.originator == ALICE.address

    @pytest.mark.asyncio
    async def test_invalid_nonce(self):
        contract = MockForwarderContract(verify_error=ContractLogicError("execution reverted: FWDR: INVALID_NONCE"))
        client = ForwarderClient(MockWeb3Provider(contract), MOCK_FORWARDER_ADDRESS)

        result = await client.verify(REQUEST, b"\x00" * 65)

        assert result.is_valid is False
        assert result.status == VerificationStatus.INVALID_NONCE

    @pytest.mark.asyncio
    async def test_invalid_signature(self):
        contract = MockForwarderContract(verify_error=ContractLogicError("execution reverted: FWDR: SIGNATURE_INVALID"))
        client = ForwarderClient(MockWeb3Provider(contract), MOCK_FORWARDER_ADDRESS)

        result = await client.verify(REQUEST, b"\x00" * 65)

        assert result.status == VerificationStatus.INVALID_SIGNATURE
        assert "SIGNATURE_INVALID" in result.error_details["reason"]


class TestRelayedTransactions:

    @pytest.mark.asyncio
    async def test_execute_signs_and_sends(self, mock_web3, client):
        with patch.object(client.relayer, "sign_transaction", wraps=client.relayer.sign_transaction) as signer:
            tx_hash, receipt = await client.execute(REQUEST, b"\x00" * 65)

        assert tx_hash == MOCK_TX_HASH.hex()
        assert receipt["status"] == 1
        transaction = signer.call_args.args[0]
        assert transaction["value"] == REQUEST.value
        assert transaction["nonce"] == 7
        assert transaction["gasPrice"] == MOCK_GAS_PRICE
        assert transaction["gas"] == 120000
        mock_web3.eth.send_raw_transaction.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_execute_without_waiting(self, mock_web3, client):
        tx_hash, receipt = await client.execute(REQUEST, b"\x00" * 65, wait=False)

        assert tx_hash == MOCK_TX_HASH.hex()
        assert receipt is None
        mock_web3.eth.wait_for_transaction_receipt.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_gas_estimation_failure_uses_fallback(self):
        contract = MockForwarderContract(estimate_gas_error=ContractLogicError("execution reverted"))
        mock_web3 = MockWeb3Provider(contract)
        client = ForwarderClient(mock_web3, MOCK_FORWARDER_ADDRESS, relayer_private_key=RELAYER_KEY)

        with patch.object(client.relayer, "sign_transaction", wraps=client.relayer.sign_transaction) as signer:
            await client.execute(REQUEST, b"\x00" * 65)

        assert signer.call_args.args[0]["gas"] == 500000

    @pytest.mark.asyncio
    async def test_reverted_receipt_raises(self):
        client = ForwarderClient(
            MockWeb3Provider(receipt_status=0), MOCK_FORWARDER_ADDRESS, relayer_private_key=RELAYER_KEY
        )

        with pytest.raises(TransactionExecutionError) as exc_info:
            await client.execute(REQUEST, b"\x00" * 65)

        assert exc_info.value.tx_hash == MOCK_TX_HASH.hex()

    @pytest.mark.asyncio
    async def test_execute_requires_relayer(self, mock_web3):
        client = ForwarderClient(mock_web3, MOCK_FORWARDER_ADDRESS)

        with pytest.raises(ConfigurationError):
            await client.execute(REQUEST, b"\x00" * 65)

    @pytest.mark.asyncio
    async def test_execute_batch_sends_total_value(self, mock_web3, client):
        other = REQUEST.model_copy(update={"value": 4, "nonce": 1})
        entries = [
            BatchEntry(request=REQUEST, signature=b"\x00" * 65),
            BatchEntry(request=other, signature=b"\x00" * 65),
        ]

        with patch.object(client.relayer, "sign_transaction", wraps=client.relayer.sign_transaction) as signer:
            await client.execute_batch(entries, fail_fast=False)

        assert signer.call_args.args[0]["value"] == 7
        payload, fail_fast = mock_web3.mock_contract.functions.executeBatch.call_args.args
        assert fail_fast is False
        assert payload[1] == (other.to_abi(), b"\x00" * 65)


def test_relayer_account_matches_key():
    assert Account.from_key(RELAYER_KEY).address == RELAYER.address
