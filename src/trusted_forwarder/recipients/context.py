"""
ERC-2771 recipient context.

A recipient trusts exactly one forwarder.  When the immediate caller is that
forwarder, the effective sender is the 20-byte suffix the forwarder appended
to the calldata; otherwise it is the immediate caller.
"""

from ..chain.contracts import Contract, external
from ..chain.ledger import Ledger
from ..forwarder.contract import ADDRESS_SUFFIX_LENGTH, extract_sender
from ..schemas.bases import normalize_address


class ERC2771Context(Contract):
    """Base for contracts that accept calls relayed by a trusted forwarder."""

    def __init__(self, ledger: Ledger, address: str, trusted_forwarder: str) -> None:
        super().__init__(ledger, address)
        self._trusted_forwarder = normalize_address(trusted_forwarder)

    @external("trustedForwarder()", returns=("address",), view=True)
    def trusted_forwarder(self) -> str:
        return self._trusted_forwarder

    @external("isTrustedForwarder(address)", returns=("bool",), view=True)
    def is_trusted_forwarder(self, forwarder: str) -> bool:
        return normalize_address(forwarder) == self._trusted_forwarder

    def _msg_sender(self) -> str:
        msg = self.msg
        if self.is_trusted_forwarder(msg.sender) and len(msg.data) >= ADDRESS_SUFFIX_LENGTH:
            return extract_sender(msg.data)
        return msg.sender

    def _msg_data(self) -> bytes:
        msg = self.msg
        if self.is_trusted_forwarder(msg.sender) and len(msg.data) >= ADDRESS_SUFFIX_LENGTH:
            return msg.data[:-ADDRESS_SUFFIX_LENGTH]
        return msg.data
