"""
Pipeline outcome models.

Each verification stage returns a StageOutcome instead of raising, so the
pipeline can stop at the first failure and map it to an HTTP response.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Rejection(str, Enum):
    """Reasons an ITN is not applied."""
    TRANSPORT_REJECTED = "TransportRejected"
    INVALID_SIGNATURE = "InvalidSignature"
    UPSTREAM_REJECTED = "UpstreamRejected"
    MERCHANT_MISMATCH = "MerchantMismatch"
    AMOUNT_MISMATCH = "AmountMismatch"
    MISSING_REFERENCE = "MissingReference"
    PERSISTENCE_FAILURE = "PersistenceFailure"

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS.get(self, 400)

    @property
    def reason(self) -> str:
        """Short plain-text body returned to the caller."""
        return _REASONS[self]

    def is_server_fault(self) -> bool:
        return self.http_status >= 500


_HTTP_STATUS = {
    Rejection.TRANSPORT_REJECTED: 405,
    Rejection.PERSISTENCE_FAILURE: 500,
}

_REASONS = {
    Rejection.TRANSPORT_REJECTED: "Method Not Allowed",
    Rejection.INVALID_SIGNATURE: "Invalid signature",
    Rejection.UPSTREAM_REJECTED: "Validation failed",
    Rejection.MERCHANT_MISMATCH: "Merchant ID mismatch",
    Rejection.AMOUNT_MISMATCH: "Amount mismatch",
    Rejection.MISSING_REFERENCE: "Missing payment ID",
    Rejection.PERSISTENCE_FAILURE: "DB update failed",
}


@dataclass(frozen=True)
class StageOutcome:
    """
    Result of one pipeline stage.

    Attributes:
        rejection: Why the stage failed, or None on success
        detail: Log-only context; never sent to the caller
    """

    rejection: Optional[Rejection] = None
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.rejection is None

    @property
    def http_status(self) -> int:
        return 200 if self.rejection is None else self.rejection.http_status

    @property
    def body(self) -> str:
        return "OK" if self.rejection is None else self.rejection.reason

    @classmethod
    def success(cls, detail: Optional[str] = None) -> 'StageOutcome':
        return cls(rejection=None, detail=detail)

    @classmethod
    def fail(cls, rejection: Rejection, detail: Optional[str] = None) -> 'StageOutcome':
        return cls(rejection=rejection, detail=detail)
