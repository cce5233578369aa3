"""
Error taxonomy shared by services and the API layer.

Every failure a service can report is a ``LedgerError`` subclass carrying a
stable ``kind`` and a human-readable message. The API layer turns these into
the uniform ``{"success": false, "error": kind, "message": ...}`` body, so
routers never build error responses by hand.
"""


class LedgerError(Exception):
    """Base class for all domain errors"""

    kind = "LedgerError"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"success": False, "error": self.kind, "message": self.message}


class ValidationError(LedgerError):
    """Bad input shape or values"""

    kind = "ValidationError"
    status_code = 400


class NotFound(LedgerError):
    """Entity absent or not visible to the caller's organization"""

    kind = "NotFound"
    status_code = 404


class DuplicateConstraint(LedgerError):
    """Unique-index violation"""

    kind = "DuplicateConstraint"
    status_code = 409


class DuplicateNumber(DuplicateConstraint):
    """Invoice number already taken; retrying obtains a fresh number"""


class AggregationError(LedgerError):
    kind = "AggregationError"
    status_code = 500


class TransactionAborted(LedgerError):
    """A multi-step write failed partway and was rolled back"""

    kind = "TransactionAborted"
    status_code = 500


class AuthenticationFailed(LedgerError):
    kind = "AuthenticationFailed"
    status_code = 401


class PermissionDenied(LedgerError):
    kind = "PermissionDenied"
    status_code = 403
