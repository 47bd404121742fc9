"""
Client module for relaying forward requests.

Provides an httpx client for the relay service and an async web3 client
for forwarders deployed on an EVM network.
"""

from .http_client import RelayClient
from .web3_client import ForwarderClient

__all__ = ["RelayClient", "ForwarderClient"]
