"""
Typed contract events and the ledger log.

Contracts emit events as typed models; the ledger wraps each one in a
``LogEntry`` tagged with the emitting address.  Log entries written inside a
call frame that later reverts are discarded together with the frame's other
state changes.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..schemas.bases import normalize_address

# ==================== Base Event ====================

class BaseEvent(ABC):
    """Base class for all events in the system."""

    @abstractmethod
    def __repr__(self) -> str:
        """String representation of the event."""
        pass


# ==================== Forwarder Events ====================

class TransactionReverted(BaseModel, BaseEvent):
    """A forwarded call failed; ``reason`` is the decoded revert string."""
    reason: str

    model_config = ConfigDict(frozen=True)

    def __repr__(self) -> str:
        return f"TransactionReverted(reason={self.reason!r})"


# ==================== Token Events ====================

class Transfer(BaseModel, BaseEvent):
    """Token moved from ``sender`` to ``recipient`` (``from``/``to`` in ERC-20)."""
    sender: str = Field(..., alias="from")
    recipient: str = Field(..., alias="to")
    value: int

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @field_validator("sender", "recipient", mode="before")
    @classmethod
    def _check_address(cls, value):
        return normalize_address(value)

    def __repr__(self) -> str:
        return f"Transfer(from={self.sender}, to={self.recipient}, value={self.value})"


# ==================== Log ====================

E = TypeVar("E", bound=BaseEvent)


class LogEntry(BaseModel):
    """Event emitted by the contract at ``address``."""
    address: str
    event: BaseEvent

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    def __repr__(self) -> str:
        return f"LogEntry(address={self.address}, event={self.event!r})"


def filter_events(
    logs: List[LogEntry],
    event_class: Type[E],
    address: Optional[str] = None,
) -> List[E]:
    """
    Select the events of one type, optionally emitted by one address.

    Args:
        logs: Log entries, typically ``receipt.logs`` or ``ledger.logs``.
        event_class: Event type to keep.
        address: Only keep events emitted by this contract.

    Returns:
        Matching events in emission order.
    """
    wanted = normalize_address(address) if address is not None else None
    return [
        entry.event
        for entry in logs
        if isinstance(entry.event, event_class)
        and (wanted is None or entry.address == wanted)
    ]
