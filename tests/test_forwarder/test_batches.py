"""
Batch Execution Test Suite

Covers the same-signer batch (``batchFromSelf``) and the heterogeneous
batch (``executeBatch``) in fail-fast and continue-on-failure modes.
"""

import pytest

from trusted_forwarder.chain.abi import decode_revert_reason, encode_call
from trusted_forwarder.engine.events import TransactionReverted, filter_events
from trusted_forwarder.engine.exceptions import BatchAborted, CallReverted, InvalidNonce, InvalidSignature, OnlyForwarder
from trusted_forwarder.forwarder.contract import Forwarder
from trusted_forwarder.schemas.requests import BatchEntry, Call

from forwarder_mocks import (
    ALICE,
    ALICE_KEY,
    BOB,
    BOB_KEY,
    CAROL,
    CAROL_KEY,
    INITIAL_TOKENS,
    deploy_environment,
    make_request,
    sign_request,
    transfer_data,
)

BATCH_FROM_SELF = "batchFromSelf((address,bytes,uint256)[])"


@pytest.fixture
def env():
    return deploy_environment()


def _self_batch_request(env, calls):
    return make_request(env, ALICE.address, env.forwarder.address, encode_call(BATCH_FROM_SELF, calls))


def _entry(env, originator, key, target, data, nonce=None):
    request = make_request(env, originator, target, data, nonce=nonce)
    return BatchEntry(request=request, signature=sign_request(env, request, key))


def _execute_batch(env, entries, fail_fast):
    value = sum(entry.request.value for entry in entries)
    return env.forwarder.functions.executeBatch(entries, fail_fast).transact(
        sender=env.relayer.address, value=value
    )


class TestBatchFromSelf:
    """Several calls under one signature."""

    def test_all_calls_run_as_signer(self, env):
        calls = [
            Call(target=env.token.address, data=transfer_data(BOB.address, 10)),
            Call(target=env.token.address, data=transfer_data(CAROL.address, 20)),
        ]
        request = _self_batch_request(env, calls)

        env.forwarder.functions.execute(request, sign_request(env, request, ALICE_KEY)).transact(
            sender=env.relayer.address
        )

        assert env.balance(ALICE.address) == INITIAL_TOKENS - 30
        assert env.balance(BOB.address) == INITIAL_TOKENS + 10
        assert env.balance(CAROL.address) == 20
        assert env.nonce(ALICE.address) == 1

    def test_one_failing_call_unwinds_all(self, env):
        calls = [
            Call(target=env.token.address, data=transfer_data(BOB.address, 10)),
            Call(target=env.token.address, data=transfer_data(CAROL.address, 1000)),
        ]
        request = _self_batch_request(env, calls)

        with pytest.raises(CallReverted) as exc_info:
            env.forwarder.functions.execute(request, sign_request(env, request, ALICE_KEY)).transact(
                sender=env.relayer.address
            )

        assert exc_info.value.reason == "ERC20: transfer amount exceeds balance"
        assert env.balance(ALICE.address) == INITIAL_TOKENS
        assert env.balance(BOB.address) == INITIAL_TOKENS
        assert env.nonce(ALICE.address) == 0

    def test_calls_carry_value(self, env):
        calls = [Call(target=env.echo.address, data=encode_call("ping(uint256)", 1), value=40)]
        request = make_request(
            env, ALICE.address, env.forwarder.address, encode_call(BATCH_FROM_SELF, calls), value=40
        )

        env.forwarder.functions.execute(request, sign_request(env, request, ALICE_KEY)).transact(
            sender=env.relayer.address, value=40
        )

        assert env.ledger.get_balance(env.echo.address) == 40
        assert env.ledger.get_balance(env.forwarder.address) == 0

    def test_direct_call_rejected(self, env):
        calls = [Call(target=env.token.address, data=transfer_data(BOB.address, 10))]

        with pytest.raises(OnlyForwarder):
            env.forwarder.functions.batchFromSelf(calls).transact(sender=ALICE.address)

    def test_call_from_other_contract_rejected(self, env):
        calls = [Call(target=env.token.address, data=transfer_data(BOB.address, 10))]
        # a second forwarder sees the first one as its caller, not itself
        other = env.ledger.deploy(Forwarder)
        request = make_request(env, ALICE.address, other.address, encode_call(BATCH_FROM_SELF, calls))

        with pytest.raises(CallReverted) as exc_info:
            env.forwarder.functions.execute(request, sign_request(env, request, ALICE_KEY)).transact(
                sender=env.relayer.address
            )

        assert exc_info.value.reason == "FWDR: ONLY_FORWARDER"
        assert env.balance(BOB.address) == INITIAL_TOKENS


class TestExecuteBatchContinue:
    """``failFast = false``: failures are recorded and the batch goes on."""

    def test_mixed_outcomes(self, env):
        entries = [
            _entry(env, ALICE.address, ALICE_KEY, env.token.address, transfer_data(CAROL.address, 10)),
            _entry(env, BOB.address, BOB_KEY, env.token.address, transfer_data(CAROL.address, 1000)),
            _entry(env, CAROL.address, CAROL_KEY, env.echo.address, encode_call("ping(uint256)", 3)),
        ]

        receipt = _execute_batch(env, entries, fail_fast=False)

        successes, results = receipt.output
        assert list(successes) == [True, False, True]
        assert decode_revert_reason(results[1]) == "ERC20: transfer amount exceeds balance"
        assert env.balance(CAROL.address) == 10
        assert env.balance(BOB.address) == INITIAL_TOKENS

        reverted = filter_events(receipt.logs, TransactionReverted, address=env.forwarder.address)
        assert [event.reason for event in reverted] == ["ERC20: transfer amount exceeds balance"]

    def test_failed_entry_consumes_nonce(self, env):
        entries = [_entry(env, BOB.address, BOB_KEY, env.token.address, transfer_data(CAROL.address, 1000))]

        receipt = _execute_batch(env, entries, fail_fast=False)

        assert list(receipt.output[0]) == [False]
        assert env.nonce(BOB.address) == 1

    def test_same_originator_sequential_nonces(self, env):
        entries = [
            _entry(env, ALICE.address, ALICE_KEY, env.token.address, transfer_data(BOB.address, 1), nonce=0),
            _entry(env, ALICE.address, ALICE_KEY, env.token.address, transfer_data(BOB.address, 2), nonce=1),
        ]

        receipt = _execute_batch(env, entries, fail_fast=False)

        assert list(receipt.output[0]) == [True, True]
        assert env.nonce(ALICE.address) == 2
        assert env.balance(BOB.address) == INITIAL_TOKENS + 3

    def test_invalid_signature_aborts_batch(self, env):
        entries = [
            _entry(env, ALICE.address, ALICE_KEY, env.token.address, transfer_data(CAROL.address, 10)),
            _entry(env, BOB.address, ALICE_KEY, env.token.address, transfer_data(CAROL.address, 10)),
        ]

        with pytest.raises(InvalidSignature):
            _execute_batch(env, entries, fail_fast=False)

        assert env.balance(CAROL.address) == 0
        assert env.nonce(ALICE.address) == 0

    def test_invalid_nonce_aborts_batch(self, env):
        entries = [
            _entry(env, ALICE.address, ALICE_KEY, env.token.address, transfer_data(CAROL.address, 10)),
            _entry(env, ALICE.address, ALICE_KEY, env.token.address, transfer_data(CAROL.address, 10), nonce=0),
        ]

        with pytest.raises(InvalidNonce):
            _execute_batch(env, entries, fail_fast=False)

        assert env.nonce(ALICE.address) == 0


class TestExecuteBatchFailFast:
    """``failFast = true``: the first failure unwinds every entry."""

    def test_all_successful(self, env):
        entries = [
            _entry(env, ALICE.address, ALICE_KEY, env.token.address, transfer_data(CAROL.address, 10)),
            _entry(env, BOB.address, BOB_KEY, env.token.address, transfer_data(CAROL.address, 5)),
        ]

        receipt = _execute_batch(env, entries, fail_fast=True)

        assert list(receipt.output[0]) == [True, True]
        assert env.balance(CAROL.address) == 15

    def test_failure_aborts_and_unwinds(self, env):
        entries = [
            _entry(env, ALICE.address, ALICE_KEY, env.token.address, transfer_data(CAROL.address, 10)),
            _entry(env, BOB.address, BOB_KEY, env.token.address, transfer_data(CAROL.address, 1000)),
            _entry(env, CAROL.address, CAROL_KEY, env.echo.address, encode_call("ping(uint256)", 3)),
        ]

        with pytest.raises(BatchAborted) as exc_info:
            _execute_batch(env, entries, fail_fast=True)

        assert exc_info.value.reason == "FWDR: TX_REVERTED"
        assert exc_info.value.index == 1
        assert exc_info.value.call_reason == "ERC20: transfer amount exceeds balance"
        assert env.balance(CAROL.address) == 0
        assert env.nonce(ALICE.address) == 0
        assert env.nonce(BOB.address) == 0
        assert filter_events(env.ledger.logs, TransactionReverted) == []

    def test_empty_batch(self, env):
        receipt = _execute_batch(env, [], fail_fast=True)

        assert receipt.output == ((), ())
