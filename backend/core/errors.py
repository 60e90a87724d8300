"""Ledger error taxonomy.

Every rejection the ledger can produce is a subclass of LedgerError, so the
HTTP layer can translate each kind into its own status code. Each class carries
a machine-readable ``code``.
"""

from typing import Optional


class LedgerError(Exception):
    """Base class for all ledger errors."""

    code: str = "LEDGER_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidRequest(LedgerError):
    """Missing or malformed input, or an unrecognised movement type."""

    code: str = "INVALID_REQUEST"


class NotFound(LedgerError):
    """No inventory record exists for the requested product."""

    code: str = "NOT_FOUND"


class InsufficientStock(LedgerError):
    """An OUT movement would drive the quantity below zero."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, product_id: int, available: int, requested: int):
        self.product_id = product_id
        self.available = available
        self.requested = requested
        super().__init__("Insufficient stock")


class Conflict(LedgerError):
    """A uniqueness rule was violated (e.g. duplicate SKU)."""

    code: str = "CONFLICT"


class StorageError(LedgerError):
    """Transaction, commit or connectivity failure. Never retried by the ledger."""

    code: str = "STORAGE_ERROR"

    def __init__(self, message: str = "Internal server error", cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)


class ImmutableRecordError(LedgerError):
    """An attempt was made to update or delete an append-only record."""

    code: str = "IMMUTABLE_RECORD"

    def __init__(self, entity_type: str, entity_id, operation: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.operation = operation
        super().__init__(f"{entity_type} {entity_id} is append-only and cannot be {operation.lower()}d")
