"""
Order and delivery creation routes.

POST /api/orders/lines - Default order lines for catalog products
POST /api/orders       - Create an order with its lines
POST /api/deliveries   - Check stock and create a delivery with its lines
"""

import asyncio

from fastapi import APIRouter, Body
import structlog

from exceptions import NotFoundError
from models.order import (
    CreateDeliveryRequest,
    CreateOrderRequest,
    CreationResult,
    LineItemCreate,
)
from routes.errors import handle_error
from services.workspace import get_workspace

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Order Creation"])


@router.post("/api/orders/lines", response_model=list[LineItemCreate])
async def draft_order_lines(product_ids: list[int] = Body(..., embed=True)):
    """
    Default lines for products from the current catalog.

    Raises:
        404: A product id is not in the catalog
    """
    try:
        workspace = get_workspace()
        catalog = {p.id: p for p in workspace.uploads.catalog}

        missing = [pid for pid in product_ids if pid not in catalog]
        if missing:
            raise NotFoundError("Product", ",".join(str(pid) for pid in missing), code="PRODUCT_NOT_IN_CATALOG")

        addresses, warehouses = await asyncio.gather(
            workspace.backend.list_addresses(),
            workspace.backend.list_warehouses(),
        )

        return [
            workspace.orders.new_line_item(catalog[pid], addresses, warehouses)
            for pid in product_ids
        ]

    except Exception as e:
        return handle_error(e)


@router.post("/api/orders", response_model=CreationResult, status_code=201)
async def create_order(data: CreateOrderRequest):
    """
    Create an order and its lines.

    Lines are created independently; failed lines are listed in the result.

    Raises:
        422: No provider or no lines
        503: Backend refused the order header
    """
    try:
        return await get_workspace().orders.create_order(
            order_date=data.order_date,
            provider_id=data.provider_id,
            items=data.items,
        )

    except Exception as e:
        return handle_error(e)


@router.post("/api/deliveries", response_model=CreationResult, status_code=201)
async def create_delivery(data: CreateDeliveryRequest):
    """
    Create a delivery after checking warehouse stock.

    Raises:
        422: No lines, no address, or insufficient stock
        503: Inventory could not be checked or backend refused the header
    """
    try:
        workspace = get_workspace()
        warehouses = await workspace.backend.list_warehouses()
        return await workspace.orders.create_delivery(
            delivery_date=data.delivery_date,
            address_id=data.address_id,
            items=data.items,
            warehouses=warehouses,
        )

    except Exception as e:
        return handle_error(e)
