from .context import ERC2771Context
from .token import ERC20Mock
from .wallet import DelegatedSignatureWallet

__all__ = ["ERC2771Context", "ERC20Mock", "DelegatedSignatureWallet"]
