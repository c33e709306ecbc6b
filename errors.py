# src/errors.py
from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    INVALID_SIGNATURE = "invalid_signature"
    AMOUNT_MISMATCH = "amount_mismatch"
    INVALID_STATE = "invalid_state"
    BELOW_MINIMUM = "below_minimum"
    EXTERNAL_SERVICE = "external_service"
    INTERNAL_INCONSISTENCY = "internal_inconsistency"
    FORBIDDEN = "forbidden"


# Only the HTTP boundary (main.py) consults this table.
HTTP_STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_SIGNATURE: 400,
    ErrorKind.AMOUNT_MISMATCH: 400,
    ErrorKind.INVALID_STATE: 400,
    ErrorKind.BELOW_MINIMUM: 400,
    ErrorKind.EXTERNAL_SERVICE: 502,
    ErrorKind.INTERNAL_INCONSISTENCY: 500,
    ErrorKind.FORBIDDEN: 403,
}


class GymError(Exception):
    """Base class for domain errors raised by the service layer."""
    kind: ErrorKind = ErrorKind.INTERNAL_INCONSISTENCY

    def __init__(self, message: str, extra: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.extra = extra or {}

    @property
    def status_code(self) -> int:
        return HTTP_STATUS_BY_KIND[self.kind]

    def to_response(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"detail": self.message, "error": self.kind.value}
        body.update(self.extra)
        return body


class NotFound(GymError):
    kind = ErrorKind.NOT_FOUND


class InvalidSignature(GymError):
    kind = ErrorKind.INVALID_SIGNATURE


class AmountMismatch(GymError):
    kind = ErrorKind.AMOUNT_MISMATCH


class InvalidState(GymError):
    kind = ErrorKind.INVALID_STATE


class BelowMinimum(GymError):
    kind = ErrorKind.BELOW_MINIMUM


class ExternalServiceError(GymError):
    kind = ErrorKind.EXTERNAL_SERVICE


class InternalInconsistency(GymError):
    kind = ErrorKind.INTERNAL_INCONSISTENCY

    def to_response(self) -> Dict[str, Any]:
        # Never leak internals to the client.
        return {"detail": "Internal server error", "error": self.kind.value}


class Forbidden(GymError):
    kind = ErrorKind.FORBIDDEN


class QuotaExceeded(InvalidState):
    """Promo usage limit reached."""


class NotApplicable(InvalidState):
    """Promo restricted to a different package."""
