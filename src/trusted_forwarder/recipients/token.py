"""
Minimal ERC-20 balance ledger that accepts relayed calls.

Used as the value-transfer target in integration tests and the relay demo;
``transfer`` attributes the debit to the ERC-2771 effective sender.
"""

from .context import ERC2771Context
from ..chain.contracts import external
from ..chain.ledger import Ledger, ZERO_ADDRESS
from ..engine.events import Transfer
from ..engine.exceptions import ContractRevert
from ..schemas.bases import normalize_address


class ERC20Mock(ERC2771Context):
    """Token with public ``mint`` and forwarder-aware ``transfer``."""

    def __init__(
        self,
        ledger: Ledger,
        address: str,
        trusted_forwarder: str,
        name: str = "Mock Token",
        symbol: str = "MOCK",
    ) -> None:
        super().__init__(ledger, address, trusted_forwarder)
        self.name = name
        self.symbol = symbol
        self._balances = ledger.mapping()
        self._supply = ledger.mapping()

    @external("balanceOf(address)", returns=("uint256",), view=True)
    def balance_of(self, account: str) -> int:
        return self._balances.get(normalize_address(account), 0)

    @external("totalSupply()", returns=("uint256",), view=True)
    def total_supply(self) -> int:
        return self._supply.get("total", 0)

    @external("mint(address,uint256)")
    def mint(self, account: str, amount: int) -> None:
        account = normalize_address(account)
        self._balances[account] = self.balance_of(account) + amount
        self._supply["total"] = self.total_supply() + amount
        self.emit(Transfer(sender=ZERO_ADDRESS, recipient=account, value=amount))

    @external("transfer(address,uint256)", returns=("bool",))
    def transfer(self, recipient: str, amount: int) -> bool:
        sender = self._msg_sender()
        recipient = normalize_address(recipient)
        balance = self.balance_of(sender)
        if balance < amount:
            raise ContractRevert("ERC20: transfer amount exceeds balance")
        self._balances[sender] = balance - amount
        self._balances[recipient] = self.balance_of(recipient) + amount
        self.emit(Transfer(sender=sender, recipient=recipient, value=amount))
        return True
