"""
Custom exception classes for the application.

Every error carries a machine code, a human message, the HTTP status it maps
to, and a details dict for the API response.
"""

from typing import Optional, Any
from datetime import datetime, timezone


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "AGGREGATE_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(AppError):
    """Conflict with existing resource (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class ExternalServiceError(AppError):
    """External service failure (503)."""

    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code=f"{service.upper()}_ERROR",
            message=message,
            status_code=503,
            details={"service": service, **(details or {})}
        )


# ===================
# BACKEND ERRORS
# ===================

class BackendError(ExternalServiceError):
    """A call to the inventory backend failed or returned an error status."""

    def __init__(
        self,
        operation: str,
        message: str,
        upstream_status: Optional[int] = None
    ):
        super().__init__(
            service="backend",
            message=f"Backend {operation} failed: {message}",
            details={"operation": operation, "upstream_status": upstream_status}
        )
        self.operation = operation
        self.upstream_status = upstream_status


# ===================
# AGGREGATE ERRORS
# ===================

class AggregateNotFoundError(NotFoundError):
    """Aggregate is not in the local collection."""

    def __init__(self, kind: str, aggregate_id: int):
        super().__init__(
            resource=kind.rstrip("s").capitalize(),
            identifier=str(aggregate_id),
            code="AGGREGATE_NOT_FOUND"
        )


class CommitInProgressError(ConflictError):
    """A commit for this aggregate has not settled yet."""

    def __init__(self, kind: str, aggregate_id: int):
        super().__init__(
            code="COMMIT_IN_PROGRESS",
            message="A previous edit of this record is still being saved",
            details={"kind": kind, "id": aggregate_id}
        )


class CommitRolledBackError(ConflictError):
    """Edit was not fully acknowledged; local state was re-synchronized."""

    def __init__(self, kind: str, aggregate_id: int, details: Optional[dict] = None):
        super().__init__(
            code="COMMIT_ROLLED_BACK",
            message="Saving the edit failed, changes were discarded",
            details={"kind": kind, "id": aggregate_id, **(details or {})}
        )


class AggregateDeleteError(AppError):
    """Delete call failed; nothing was removed locally."""

    def __init__(self, kind: str, aggregate_id: int, reason: str):
        super().__init__(
            code="AGGREGATE_DELETE_FAILED",
            message=f"Failed to delete: {reason}",
            status_code=502,
            details={"kind": kind, "id": aggregate_id}
        )


# ===================
# SPREADSHEET ERRORS
# ===================

class SpreadsheetParseError(ValidationError):
    """Spreadsheet file could not be read."""

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="SPREADSHEET_PARSE_ERROR",
            message=message,
            details=details
        )


# ===================
# ORDER / DELIVERY ERRORS
# ===================

class EmptyOrderError(ValidationError):
    """Order or delivery submitted without the required selections."""

    def __init__(self, message: str):
        super().__init__(
            code="EMPTY_ORDER",
            message=message
        )


class InsufficientInventoryError(ValidationError):
    """Requested quantity exceeds what the warehouse holds."""

    def __init__(self, product: str, warehouse: str, requested: int, available: Optional[int]):
        super().__init__(
            code="INSUFFICIENT_INVENTORY",
            message=f"Not enough {product} in stock at {warehouse}",
            details={
                "product": product,
                "warehouse": warehouse,
                "requested": requested,
                "available": available
            }
        )


class InventoryCheckError(ExternalServiceError):
    """Inventory could not be read before creating a delivery."""

    def __init__(self, product: str, reason: str):
        super().__init__(
            service="backend",
            message=f"Could not check inventory for {product}",
            details={"product": product, "reason": reason}
        )
