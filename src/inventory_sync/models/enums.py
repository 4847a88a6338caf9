from enum import Enum


class SyncState(str, Enum):
    UNINITIALIZED = "UNINITIALIZED"
    LOADING = "LOADING"
    READY = "READY"
    ERROR = "ERROR"
    CLOSED = "CLOSED"


class ValidationErrorKind(str, Enum):
    MISSING_FIELD = "MISSING_FIELD"
    INVALID_PRICE = "INVALID_PRICE"
    INVALID_STOCK = "INVALID_STOCK"


class FailureReason(str, Enum):
    NETWORK = "NETWORK"
    TIMEOUT = "TIMEOUT"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    AUTH_REVOKED = "AUTH_REVOKED"
    NOT_FOUND = "NOT_FOUND"
    REJECTED = "REJECTED"
    UNAVAILABLE = "UNAVAILABLE"
    INVALID_RESPONSE = "INVALID_RESPONSE"
    KEY_GENERATION = "KEY_GENERATION"
