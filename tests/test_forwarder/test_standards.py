"""
Forwarder ABI tests.
"""

from trusted_forwarder.forwarder.contract import Forwarder
from trusted_forwarder.forwarder.standards import get_forwarder_abi


def test_abi_lists_every_external_function():
    abi_functions = {entry["name"] for entry in get_forwarder_abi() if entry["type"] == "function"}
    external = {function.name for function in Forwarder._external_functions.values()}

    assert abi_functions == external


def test_abi_mutability_matches_contract():
    mutability = {entry["name"]: entry["stateMutability"] for entry in get_forwarder_abi() if entry["type"] == "function"}

    for function in Forwarder._external_functions.values():
        expected = "view" if function.view else "payable" if function.payable else "nonpayable"
        assert mutability[function.name] == expected, function.name


def test_abi_declares_transaction_reverted_event():
    events = [entry for entry in get_forwarder_abi() if entry["type"] == "event"]

    assert [event["name"] for event in events] == ["TransactionReverted"]
