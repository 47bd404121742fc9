"""
Signature Verifier Test Suite

Covers secp256k1 recovery (including malformed and malleable signatures)
and the dual-mode dispatch between plain-account recovery and ERC-1271
delegation to contract originators.
"""

import pytest
from unittest.mock import patch

from trusted_forwarder.engine.exceptions import InvalidNonce, InvalidSignature
from trusted_forwarder.forwarder.verifier import recover_signer
from trusted_forwarder.recipients.wallet import DelegatedSignatureWallet

from forwarder_mocks import (
    ALICE,
    ALICE_KEY,
    BOB,
    BOB_KEY,
    OWNER,
    OWNER_KEY,
    deploy_environment,
    make_request,
    sign_request,
    to_high_s,
    transfer_data,
)


@pytest.fixture
def env():
    return deploy_environment()


@pytest.fixture
def signed(env):
    request = make_request(env, ALICE.address, env.token.address, transfer_data(BOB.address, 10))
    return request, sign_request(env, request, ALICE_KEY)


class TestRecoverSigner:
    """Test public-key recovery over a request digest."""

    def test_recovers_originator(self, env, signed):
        request, signature = signed

        assert recover_signer(env.forwarder.domain.digest(request), signature) == ALICE.address

    def test_accepts_zero_based_recovery_id(self, env, signed):
        request, signature = signed
        compact_v = signature[:64] + bytes([signature[64] - 27])

        assert recover_signer(env.forwarder.domain.digest(request), compact_v) == ALICE.address

    @pytest.mark.parametrize("length", [0, 64, 66], ids=["empty", "short", "long"])
    def test_wrong_length_rejected(self, env, signed, length):
        request, signature = signed
        malformed = (signature + b"\x00")[:length]

        with pytest.raises(InvalidSignature):
            recover_signer(env.forwarder.domain.digest(request), malformed)

    @pytest.mark.parametrize("v", [2, 26, 29, 35])
    def test_out_of_range_v_rejected(self, env, signed, v):
        request, signature = signed

        with pytest.raises(InvalidSignature):
            recover_signer(env.forwarder.domain.digest(request), signature[:64] + bytes([v]))

    def test_high_s_rejected(self, env, signed):
        request, signature = signed

        with pytest.raises(InvalidSignature):
            recover_signer(env.forwarder.domain.digest(request), to_high_s(signature))


class TestPlainAccountPath:

    def test_valid_signature_passes(self, env, signed):
        request, signature = signed

        env.forwarder.functions.verify(request, signature).call()

    def test_signature_from_other_key_rejected(self, env):
        request = make_request(env, ALICE.address, env.token.address, transfer_data(BOB.address, 10))
        signature = sign_request(env, request, BOB_KEY)

        with pytest.raises(InvalidSignature):
            env.forwarder.functions.verify(request, signature).call()

    def test_nonce_is_checked_before_signature(self, env):
        request = make_request(env, ALICE.address, env.token.address, nonce=3)

        with pytest.raises(InvalidNonce):
            env.forwarder.functions.verify(request, b"\x00" * 65).call()

    def test_plain_account_never_delegates(self, env, signed):
        request, signature = signed
        verifier = env.forwarder.verifier

        with patch.object(verifier, "_verify_delegated", wraps=verifier._verify_delegated) as delegated:
            env.forwarder.functions.verify(request, signature).call()

        delegated.assert_not_called()


class TestContractAccountPath:
    """ERC-1271 delegation for originators with code."""

    def test_owner_signature_valid_for_wallet(self, env):
        request = make_request(env, env.wallet.address, env.token.address, transfer_data(BOB.address, 10))
        signature = sign_request(env, request, OWNER_KEY)

        env.forwarder.functions.verify(request, signature).call()

    def test_unrelated_key_rejected_for_wallet(self, env):
        request = make_request(env, env.wallet.address, env.token.address, transfer_data(BOB.address, 10))
        signature = sign_request(env, request, ALICE_KEY)

        with pytest.raises(InvalidSignature):
            env.forwarder.functions.verify(request, signature).call()

    def test_contract_account_never_recovers(self, env):
        request = make_request(env, env.wallet.address, env.token.address, transfer_data(BOB.address, 10))
        signature = sign_request(env, request, OWNER_KEY)
        verifier = env.forwarder.verifier

        with patch.object(verifier, "_verify_recovered", wraps=verifier._verify_recovered) as recovered:
            env.forwarder.functions.verify(request, signature).call()

        recovered.assert_not_called()

    def test_contract_without_erc1271_rejected(self, env):
        # the token has no isValidSignature, so the static call reverts
        request = make_request(env, env.token.address, env.echo.address)
        signature = sign_request(env, request, OWNER_KEY)

        with pytest.raises(InvalidSignature):
            env.forwarder.functions.verify(request, signature).call()

    def test_wallet_answers_magic_value_directly(self, env):
        wallet = env.ledger.deploy(DelegatedSignatureWallet, OWNER.address)
        request = make_request(env, wallet.address, env.token.address)
        digest = env.forwarder.domain.digest(request)
        signature = sign_request(env, request, OWNER_KEY)

        assert wallet.functions.isValidSignature(digest, signature).call() == bytes.fromhex("1626ba7e")
        assert wallet.functions.isValidSignature(digest, b"\x00" * 10).call() == b"\xff\xff\xff\xff"

    def test_wallet_executes_through_forwarder(self, env):
        request = make_request(env, env.wallet.address, env.token.address, transfer_data(BOB.address, 10))
        signature = sign_request(env, request, OWNER_KEY)

        env.forwarder.functions.execute(request, signature).transact(sender=env.relayer.address)

        assert env.balance(env.wallet.address) == 90
        assert env.balance(BOB.address) == 110
        assert env.nonce(env.wallet.address) == 1
