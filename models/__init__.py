"""
Pydantic models and value objects for validation and serialization.
"""

from models.base import BaseSchema, WireSchema
from models.product import (
    CandidateProduct,
    CanonicalProduct,
    ExistingProduct,
    NewProduct,
    ResolvedProduct,
    BarcodeMapping,
)
from models.reconciliation import (
    DuplicateKeyPolicy,
    NormalizationReport,
    CreationFailure,
    ReconciliationResult,
)
from models.aggregate import (
    AggregateKind,
    LineItem,
    Aggregate,
    Order,
    Delivery,
    aggregate_model,
)
from models.sync import CommitStatus, PatchFailure, CommitOutcome
from models.order import (
    Provider,
    Address,
    Warehouse,
    InventoryRecord,
    LineItemCreate,
    DeliveryItem,
    CreateOrderRequest,
    CreateDeliveryRequest,
    LineCreationFailure,
    CreationResult,
)

__all__ = [
    # Base
    "BaseSchema",
    "WireSchema",

    # Product
    "CandidateProduct",
    "CanonicalProduct",
    "ExistingProduct",
    "NewProduct",
    "ResolvedProduct",
    "BarcodeMapping",

    # Reconciliation
    "DuplicateKeyPolicy",
    "NormalizationReport",
    "CreationFailure",
    "ReconciliationResult",

    # Aggregates
    "AggregateKind",
    "LineItem",
    "Aggregate",
    "Order",
    "Delivery",
    "aggregate_model",

    # Sync
    "CommitStatus",
    "PatchFailure",
    "CommitOutcome",

    # Orders
    "Provider",
    "Address",
    "Warehouse",
    "InventoryRecord",
    "LineItemCreate",
    "DeliveryItem",
    "CreateOrderRequest",
    "CreateDeliveryRequest",
    "LineCreationFailure",
    "CreationResult",
]
