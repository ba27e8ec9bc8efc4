from typing import Any, Optional


class QuickBiteError(Exception):
    """Base error carrying the HTTP status and payload returned to the caller"""
    status = 500

    def __init__(self, message: str, data: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.data = data


class ValidationError(QuickBiteError):
    """Malformed or missing input"""
    status = 400


class InsufficientBalanceError(ValidationError):
    def __init__(self, required, available):
        super().__init__(
            "Insufficient wallet balance",
            data={
                "required": required,
                "available": available,
                "shortfall": required - available,
            },
        )
        self.required = required
        self.available = available


class EligibilityError(QuickBiteError):
    """Restaurant status or zone mismatch"""
    status = 403


class NotFoundError(QuickBiteError):
    status = 404


class ConsistencyError(QuickBiteError):
    """Concurrent wallet mutation lost the race; safe to retry"""
    status = 409


class ReconciliationError(QuickBiteError):
    """Money moved but the order could not be committed"""
    status = 500


class UpstreamError(QuickBiteError):
    """Gateway, notification or ETA collaborator failure"""
    status = 502
