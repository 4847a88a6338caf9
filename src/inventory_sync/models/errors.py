from typing import Optional, Sequence

from .enums import FailureReason, ValidationErrorKind


class InventoryError(Exception):
    """Base exception for inventory errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InventoryValidationError(InventoryError):
    """Raised when product input is rejected locally, before any store call."""

    def __init__(
        self,
        kind: ValidationErrorKind,
        message: str,
        fields: Optional[Sequence[str]] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.fields = list(fields or [])


class NotFoundError(InventoryError):
    """Raised when a lookup or edit target does not exist."""

    def __init__(self, key: str, message: Optional[str] = None):
        super().__init__(message or f"No product found with id '{key}'")
        self.key = key


class StoreFailure(InventoryError):
    """Raised when a remote store call fails."""

    def __init__(self, reason: FailureReason, message: str):
        super().__init__(message)
        self.reason = reason

    def __str__(self) -> str:
        return f"{self.reason.value}: {self.message}"


class SubscriptionError(StoreFailure):
    """Raised when the live collection subscription fails."""

    pass
