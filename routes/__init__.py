"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.reconciliation import router as reconciliation_router
from routes.aggregates import router as aggregates_router
from routes.orders import router as orders_router

__all__ = [
    "reconciliation_router",
    "aggregates_router",
    "orders_router",
]
