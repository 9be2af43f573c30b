"""
Order and delivery creation.

Both flows create the header first, then every line concurrently. Lines are
independent calls with no cross-call atomicity, so a partial failure leaves
the header in place; the result lists the lines that failed.
"""

import asyncio
from datetime import date, timedelta
from typing import Optional
import structlog

from config import settings
from exceptions import (
    EmptyOrderError,
    InsufficientInventoryError,
    InventoryCheckError,
)
from integrations.backend_client import BackendClient
from models.order import (
    Address,
    CreationResult,
    DeliveryItem,
    LineCreationFailure,
    LineItemCreate,
    Warehouse,
)
from models.product import CanonicalProduct

logger = structlog.get_logger(__name__)


def to_utc_timestamp(day: date) -> str:
    """Midnight UTC of a date, in the backend's timestamp format."""
    return f"{day.isoformat()}T00:00:00.000Z"


class OrderService:
    """Creates orders (from suppliers) and deliveries (to customers)."""

    def __init__(self, backend: BackendClient, max_concurrency: Optional[int] = None):
        self.backend = backend
        self.max_concurrency = max_concurrency or settings.max_concurrent_requests

    # ===================
    # ORDERS
    # ===================

    def new_line_item(
        self,
        product: CanonicalProduct,
        addresses: list[Address],
        warehouses: list[Warehouse],
        today: Optional[date] = None,
    ) -> LineItemCreate:
        """
        Default order line for a catalog product.

        Quantity 1 at the product's unit price, no shipping, expected a week
        out, first address and warehouse (0 when none are known).
        """
        today = today or date.today()
        return LineItemCreate(
            product_id=product.id,
            price=product.unit_price,
            shipping_cost=0,
            order_quantity=1,
            expected_date=today + timedelta(days=settings.order_expected_days),
            address_id=addresses[0].id if addresses else 0,
            warehouse_id=warehouses[0].id if warehouses else 0,
        )

    async def create_order(
        self,
        order_date: date,
        provider_id: int,
        items: list[LineItemCreate],
    ) -> CreationResult:
        """
        Create an order and its lines.

        Raises:
            EmptyOrderError: No provider selected or no lines
            BackendError: If the order header cannot be created
        """
        if not provider_id or not items:
            raise EmptyOrderError("Select a provider and at least one product")

        logger.info("creating_order", provider_id=provider_id, line_count=len(items))

        order_id = await self.backend.create_order({
            "orderDate": to_utc_timestamp(order_date),
            "providerId": provider_id,
        })

        payloads = [
            (item.product_id, {**item.model_dump(by_alias=True), "ExpectedDate": to_utc_timestamp(item.expected_date)})
            for item in items
        ]
        result = await self._create_lines(order_id, payloads, self.backend.create_order_line_item)

        logger.info(
            "order_created",
            order_id=order_id,
            created=result.created,
            failed=len(result.failures)
        )
        return result

    # ===================
    # DELIVERIES
    # ===================

    async def check_inventory(self, items: list[DeliveryItem], warehouses: Optional[list[Warehouse]] = None) -> None:
        """
        Verify every item is in stock at its warehouse.

        Checked one item at a time, before anything is written.

        Raises:
            InsufficientInventoryError: Stock missing or too low
            InventoryCheckError: Inventory could not be read
        """
        names = {w.id: w.name for w in warehouses or []}

        for item in items:
            try:
                records = await self.backend.list_warehouse_inventories(item.warehouse_id)
            except Exception as e:
                logger.warning(
                    "inventory_check_failed",
                    product=item.product_name,
                    warehouse_id=item.warehouse_id,
                    error=str(e)
                )
                raise InventoryCheckError(item.product_name, str(e))

            record = next((r for r in records if r.id == item.inventory_id), None)
            if record is None or item.quantity > record.quantity:
                raise InsufficientInventoryError(
                    product=item.product_name,
                    warehouse=names.get(item.warehouse_id, f"warehouse {item.warehouse_id}"),
                    requested=item.quantity,
                    available=record.quantity if record else None,
                )

    async def create_delivery(
        self,
        delivery_date: date,
        address_id: Optional[int],
        items: list[DeliveryItem],
        warehouses: Optional[list[Warehouse]] = None,
    ) -> CreationResult:
        """
        Check stock, then create a delivery and its lines.

        Raises:
            EmptyOrderError: No items or no shipping address
            InsufficientInventoryError / InventoryCheckError: Stock check failed
            BackendError: If the delivery header cannot be created
        """
        if not items:
            raise EmptyOrderError("Add at least one product to the delivery")
        if not address_id:
            raise EmptyOrderError("Select a shipping address")

        await self.check_inventory(items, warehouses)

        logger.info("creating_delivery", address_id=address_id, line_count=len(items))

        delivery_id = await self.backend.create_delivery({
            "deliveryDate": to_utc_timestamp(delivery_date),
            "addressId": address_id,
        })

        expected = to_utc_timestamp(delivery_date + timedelta(days=settings.delivery_expected_days))
        payloads = [
            (item.product_id, {
                "price": item.selling_price,
                "shippingCost": settings.delivery_shipping_cost,
                "OrderQuantity": item.quantity,
                "ExpectedDate": expected,
                "productId": item.product_id,
                "warehouseId": item.warehouse_id,
                "addressId": address_id,
            })
            for item in items
        ]
        result = await self._create_lines(delivery_id, payloads, self.backend.create_delivery_line_item)

        logger.info(
            "delivery_created",
            delivery_id=delivery_id,
            created=result.created,
            failed=len(result.failures)
        )
        return result

    # ===================
    # HELPERS
    # ===================

    async def _create_lines(self, parent_id: int, payloads: list[tuple[int, dict]], create) -> CreationResult:
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _create_one(product_id: int, payload: dict) -> Optional[LineCreationFailure]:
            async with semaphore:
                try:
                    await create(parent_id, payload)
                except Exception as e:
                    logger.error(
                        "create_line_failed",
                        parent_id=parent_id,
                        product_id=product_id,
                        error=str(e)
                    )
                    return LineCreationFailure(product_id=product_id, error=str(e))
            return None

        outcomes = await asyncio.gather(*(_create_one(pid, body) for pid, body in payloads))
        failures = [f for f in outcomes if f is not None]

        return CreationResult(
            parent_id=parent_id,
            created=len(payloads) - len(failures),
            failures=failures,
        )
