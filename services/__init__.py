"""
Business logic services.

Each service handles one domain area.
"""

from services.row_normalizer import RowNormalizer
from services.barcode_resolver import BarcodeResolver
from services.mapping_store import BarcodeMappingStore, UploadSession
from services.reconciliation_service import ReconciliationCoordinator, apply_duplicate_policy
from services.entity_sync_service import AggregateCollection, EntitySyncCoordinator
from services.order_service import OrderService
from services.workspace import Workspace, get_workspace, set_workspace

__all__ = [
    "RowNormalizer",
    "BarcodeResolver",
    "BarcodeMappingStore",
    "UploadSession",
    "ReconciliationCoordinator",
    "apply_duplicate_policy",
    "AggregateCollection",
    "EntitySyncCoordinator",
    "OrderService",
    "Workspace",
    "get_workspace",
    "set_workspace",
]
