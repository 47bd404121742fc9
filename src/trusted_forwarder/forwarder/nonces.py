"""
Per-originator sequential nonce registry.

A request is admissible only when its nonce equals the registry's current
value for its originator.  Verification and advancement are always used as
a pair, in that order, before the forwarded call is attempted, so an
in-flight request can never be admitted twice even if its call fails.
"""

import logging
from collections.abc import MutableMapping

from ..engine.exceptions import InvalidNonce
from ..schemas.bases import normalize_address
from ..schemas.requests import ForwardRequest

logger = logging.getLogger(__name__)


class NonceRegistry:
    """
    Keyed counter store: originator address -> next expected nonce.

    Args:
        store: Backing mapping.  The forwarder passes ledger storage so that
               advances roll back with a reverted call frame; a plain
               ``dict`` works for off-ledger use.
    """

    def __init__(self, store: MutableMapping) -> None:
        self._store = store

    def get_nonce(self, address: str) -> int:
        """Current expected nonce of ``address``; zero if never seen."""
        return self._store.get(normalize_address(address), 0)

    def verify_nonce(self, request: ForwardRequest) -> None:
        expected = self.get_nonce(request.originator)
        if request.nonce != expected:
            logger.debug(
                "Nonce mismatch for %s: expected %d, got %d",
                request.originator, expected, request.nonce,
            )
            raise InvalidNonce()

    def advance_nonce(self, request: ForwardRequest) -> int:
        """Increment the originator's nonce by one and return the new value."""
        nonce = self.get_nonce(request.originator) + 1
        self._store[request.originator] = nonce
        return nonce
