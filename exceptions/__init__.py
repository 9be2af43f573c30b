"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    ExternalServiceError,

    # Backend
    BackendError,

    # Aggregates
    AggregateNotFoundError,
    CommitInProgressError,
    CommitRolledBackError,
    AggregateDeleteError,

    # Spreadsheet
    SpreadsheetParseError,

    # Orders / deliveries
    EmptyOrderError,
    InsufficientInventoryError,
    InventoryCheckError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "ExternalServiceError",

    # Backend
    "BackendError",

    # Aggregates
    "AggregateNotFoundError",
    "CommitInProgressError",
    "CommitRolledBackError",
    "AggregateDeleteError",

    # Spreadsheet
    "SpreadsheetParseError",

    # Orders / deliveries
    "EmptyOrderError",
    "InsufficientInventoryError",
    "InventoryCheckError",
]
