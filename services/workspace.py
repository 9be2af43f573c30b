"""
Per-process working session.

Holds the backend client, the upload session (catalog + barcode mappings)
and one aggregate collection with its sync coordinator per aggregate kind.
Closing the workspace cancels pending commits and closes the HTTP client.
"""

from typing import Optional
import structlog

from exceptions import SpreadsheetParseError
from integrations.backend_client import BackendClient
from models.aggregate import AggregateKind
from models.reconciliation import ReconciliationResult
from parsers.spreadsheet_parser import RawRow
from services.entity_sync_service import AggregateCollection, EntitySyncCoordinator
from services.mapping_store import UploadSession
from services.order_service import OrderService
from services.reconciliation_service import ReconciliationCoordinator

logger = structlog.get_logger(__name__)


class Workspace:
    """Everything one tool session works against."""

    def __init__(self, backend: Optional[BackendClient] = None):
        self.backend = backend or BackendClient()
        self.uploads = UploadSession()
        self.reconciler = ReconciliationCoordinator(self.backend)
        self.orders = OrderService(self.backend)
        self.sync: dict[AggregateKind, EntitySyncCoordinator] = {
            kind: EntitySyncCoordinator(self.backend, AggregateCollection(kind))
            for kind in AggregateKind
        }

    def coordinator(self, kind: AggregateKind) -> EntitySyncCoordinator:
        return self.sync[kind]

    async def upload(self, raw_rows: list[RawRow]) -> ReconciliationResult:
        """
        Reconcile rows and adopt the result into the upload session.

        Raises:
            SpreadsheetParseError: If no row is a valid product; the session
            is left unchanged
        """
        result = await self.reconciler.reconcile(raw_rows)

        if result.accepted_count == 0:
            raise SpreadsheetParseError(
                message="No valid products found in the file",
                details={"rows": len(raw_rows), "rejected": result.rejected_count}
            )

        self.uploads.record(result)
        return result

    async def close(self) -> None:
        for coordinator in self.sync.values():
            await coordinator.shutdown()
        await self.backend.aclose()
        logger.info("workspace_closed")


# Singleton instance for convenience
_workspace: Optional[Workspace] = None


def get_workspace() -> Workspace:
    """Get or create the Workspace instance."""
    global _workspace
    if _workspace is None:
        _workspace = Workspace()
    return _workspace


def set_workspace(workspace: Optional[Workspace]) -> None:
    """Install a workspace (or None to drop the current one)."""
    global _workspace
    _workspace = workspace
