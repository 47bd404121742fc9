"""
Verification and execution result models returned by the web3 client and
the relay service.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field, field_serializer, field_validator

from .bases import CanonicalModel, VerificationStatus, normalize_bytes


class ForwardVerificationResult(CanonicalModel):
    """
    Outcome of a dry-run ``verify`` of a signed request.

    Attributes:
        status: Verification result status
        is_valid: Whether the forwarder would admit the request
        message: Human-readable status message
        originator: Request originator
        nonce: Nonce carried by the request
        error_details: Detailed error information if verification failed
        verified_at: Timestamp when verification was performed
    """

    status: VerificationStatus
    is_valid: bool
    message: str
    originator: str
    nonce: int
    error_details: Optional[Dict[str, Any]] = None
    verified_at: datetime = Field(default_factory=datetime.now)

    def is_success(self) -> bool:
        return self.is_valid and self.status == VerificationStatus.SUCCESS


class BatchExecutionResult(CanonicalModel):
    """Per-entry outcome of ``executeBatch``."""

    successes: List[bool]
    results: List[bytes]

    @field_validator("results", mode="before")
    @classmethod
    def _check_results(cls, value: Any) -> List[bytes]:
        return [normalize_bytes(item) for item in value]

    @field_serializer("results", when_used="json")
    def _serialize_results(self, value: List[bytes]) -> List[str]:
        return ["0x" + item.hex() for item in value]
