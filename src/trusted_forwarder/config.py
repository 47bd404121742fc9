"""
Forwarder Configuration

Environment-driven settings for the relay service and the web3 client.
A ``.env`` file in the working directory is loaded on import.

Environment Variables:
    - FORWARDER_CHAIN_ID: Chain id of the in-process ledger (default 31337)
    - FORWARDER_NAME: EIP-712 domain name (default "Forwarder")
    - FORWARDER_VERSION: EIP-712 domain version (default "0.0.1")
    - FORWARDER_RELAYER_PRIVATE_KEY: Key of the account that submits transactions
    - FORWARDER_RPC_URL: JSON-RPC endpoint of a network with a deployed forwarder
    - FORWARDER_ADDRESS: Address of that deployed forwarder
"""

import os
from typing import Optional

import dotenv
from eth_account import Account
from eth_keys.exceptions import ValidationError
from pydantic import BaseModel, Field

from .chain.ledger import DEFAULT_CHAIN_ID
from .engine.exceptions import ConfigurationError
from .forwarder.domain import FORWARDER_NAME, FORWARDER_VERSION
from .schemas.bases import normalize_address

dotenv.load_dotenv()


class ForwarderSettings(BaseModel):
    """Resolved forwarder configuration."""
    chain_id: int = Field(default=DEFAULT_CHAIN_ID, ge=1)
    name: str = FORWARDER_NAME
    version: str = FORWARDER_VERSION
    relayer_private_key: Optional[str] = Field(default=None, repr=False)
    rpc_url: Optional[str] = None
    forwarder_address: Optional[str] = None


def get_relayer_private_key_from_env() -> Optional[str]:
    """
    Load the relayer private key from environment variables.

    The relayer is the account that pays for and submits forwarded
    transactions.  The key should be stored securely in environment
    variables and never committed to version control.

    Example:
        # In your .env file or environment setup:
        # export FORWARDER_RELAYER_PRIVATE_KEY="0x1234567890abcdef..."
    """
    return os.getenv("FORWARDER_RELAYER_PRIVATE_KEY")


def get_chain_id_from_env() -> int:
    raw = os.getenv("FORWARDER_CHAIN_ID")
    if raw is None or raw == "":
        return DEFAULT_CHAIN_ID
    try:
        chain_id = int(raw, 0)
    except ValueError:
        raise ConfigurationError(f"FORWARDER_CHAIN_ID must be an integer, got {raw!r}") from None
    if chain_id < 1:
        raise ConfigurationError(f"FORWARDER_CHAIN_ID must be positive, got {chain_id}")
    return chain_id


def load_settings() -> ForwarderSettings:
    """
    Build ``ForwarderSettings`` from the environment.

    Raises:
        ConfigurationError: If a variable is present but malformed.
    """
    private_key = get_relayer_private_key_from_env()
    if private_key:
        try:
            Account.from_key(private_key)
        except (ValueError, TypeError, ValidationError) as exc:
            raise ConfigurationError("FORWARDER_RELAYER_PRIVATE_KEY is not a valid private key") from exc

    forwarder_address = os.getenv("FORWARDER_ADDRESS") or None
    if forwarder_address is not None:
        try:
            forwarder_address = normalize_address(forwarder_address)
        except ValueError as exc:
            raise ConfigurationError(f"FORWARDER_ADDRESS is not an address: {forwarder_address!r}") from exc

    return ForwarderSettings(
        chain_id=get_chain_id_from_env(),
        name=os.getenv("FORWARDER_NAME") or FORWARDER_NAME,
        version=os.getenv("FORWARDER_VERSION") or FORWARDER_VERSION,
        relayer_private_key=private_key or None,
        rpc_url=os.getenv("FORWARDER_RPC_URL") or None,
        forwarder_address=forwarder_address,
    )
