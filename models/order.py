"""
Order and delivery creation schemas, plus the reference records (providers,
addresses, warehouses, inventories) the creation forms pick from.
"""

from datetime import date
from typing import Optional

from pydantic import ConfigDict, Field

from models.base import BaseSchema, WireSchema


# ===================
# REFERENCE DATA
# ===================

class Provider(WireSchema):
    """Supplier an order is placed with."""
    id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None


class Address(WireSchema):
    """Shipping address."""
    id: int
    street: str
    city: str
    zip_code: Optional[str] = Field(None, alias="zipCode")
    postal_code: Optional[str] = Field(None, alias="postalCode")


class Warehouse(WireSchema):
    """Stock location."""
    id: int
    name: str


class InventoryRecord(WireSchema):
    """Stock of one product in one warehouse."""

    model_config = ConfigDict(extra="allow")

    id: int
    quantity: int = Field(..., ge=0)
    product_id: Optional[int] = Field(None, alias="productId")


# ===================
# LINE ITEMS
# ===================

class LineItemCreate(WireSchema):
    """Line of a new order."""

    product_id: int = Field(..., alias="productId")
    price: float = Field(..., ge=0)
    shipping_cost: float = Field(0, ge=0, alias="shippingCost")
    order_quantity: int = Field(1, ge=1, alias="OrderQuantity")
    expected_date: date = Field(..., alias="ExpectedDate")
    address_id: int = Field(..., alias="addressId")
    warehouse_id: int = Field(..., alias="warehouseId")


class DeliveryItem(WireSchema):
    """Product picked from a warehouse for an outgoing delivery."""

    product_id: int = Field(..., alias="productId")
    product_name: str = Field(..., alias="productName")
    warehouse_id: int = Field(..., alias="warehouseId")
    inventory_id: int = Field(..., alias="inventoryId")
    quantity: int = Field(..., ge=1)
    selling_price: float = Field(..., ge=0, alias="sellingPrice")


# ===================
# REQUESTS / RESULTS
# ===================

class CreateOrderRequest(WireSchema):
    """Create an order with its lines."""
    order_date: date = Field(..., alias="orderDate")
    provider_id: int = Field(0, alias="providerId")
    items: list[LineItemCreate] = Field(default_factory=list)


class CreateDeliveryRequest(WireSchema):
    """Create a delivery with its lines."""
    delivery_date: date = Field(..., alias="deliveryDate")
    address_id: Optional[int] = Field(None, alias="addressId")
    items: list[DeliveryItem] = Field(default_factory=list)


class LineCreationFailure(BaseSchema):
    """A line whose creation call failed."""
    product_id: int
    error: str


class CreationResult(BaseSchema):
    """
    Outcome of creating a parent plus its lines.

    Lines are created without cross-call atomicity: the parent exists even
    when some lines failed.
    """
    parent_id: int
    created: int = 0
    failures: list[LineCreationFailure] = Field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failures
