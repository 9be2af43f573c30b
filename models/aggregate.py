"""
Editable aggregates: a parent record (order or delivery) owning an ordered
list of line items.

Only scalar fields are ever sent back in a patch. Nested display objects the
backend embeds (product, warehouse, address, user, provider) are kept on the
model as extras and ignored when building patch bodies.
"""

from enum import Enum
from typing import ClassVar, Optional

from pydantic import ConfigDict, Field

from models.base import WireSchema


class AggregateKind(str, Enum):
    """Aggregate types the backend exposes."""
    ORDERS = "orders"
    DELIVERIES = "deliveries"


class LineItem(WireSchema):
    """One child line of an order or delivery."""

    model_config = ConfigDict(extra="allow")

    PATCH_FIELDS: ClassVar[tuple[str, ...]] = (
        "price",
        "shipping_cost",
        "order_quantity",
        "expected_date",
        "product_id",
        "warehouse_id",
        "address_id",
    )

    id: int
    price: float = Field(..., ge=0)
    shipping_cost: float = Field(0, ge=0, alias="shippingCost")
    order_quantity: int = Field(..., ge=0, alias="OrderQuantity")
    expected_date: str = Field(..., alias="ExpectedDate", description="ISO-8601 timestamp")
    product_id: int = Field(..., alias="productId")
    warehouse_id: int = Field(..., alias="warehouseId")
    address_id: int = Field(..., alias="addressId")

    def patch_fields(self) -> dict:
        """Scalar fields for PATCH; the id only addresses the call."""
        return self.model_dump(by_alias=True, include=set(self.PATCH_FIELDS))


class Aggregate(WireSchema):
    """Parent record plus its line items."""

    model_config = ConfigDict(extra="allow")

    KIND: ClassVar[AggregateKind]
    PARENT_FIELDS: ClassVar[tuple[str, ...]] = ("order_date",)

    id: int
    order_date: str = Field(..., alias="orderDate", description="ISO-8601 timestamp")
    children: list[LineItem] = Field(default_factory=list)

    def parent_fields(self) -> dict:
        """Parent scalar fields for PATCH."""
        return self.model_dump(by_alias=True, include=set(self.PARENT_FIELDS))

    def child(self, child_id: int) -> Optional[LineItem]:
        return next((c for c in self.children if c.id == child_id), None)


class Order(Aggregate):
    """Incoming (supplier) order."""

    KIND: ClassVar[AggregateKind] = AggregateKind.ORDERS
    PARENT_FIELDS: ClassVar[tuple[str, ...]] = ("order_date", "provider_id")

    provider_id: int = Field(..., alias="providerId")
    children: list[LineItem] = Field(default_factory=list, alias="orderDetails")


class Delivery(Aggregate):
    """Outgoing (customer) delivery."""

    KIND: ClassVar[AggregateKind] = AggregateKind.DELIVERIES
    PARENT_FIELDS: ClassVar[tuple[str, ...]] = ("order_date", "user_id")

    user_id: int = Field(..., alias="userId")
    children: list[LineItem] = Field(default_factory=list, alias="deliveryDetails")


AGGREGATE_MODELS: dict[AggregateKind, type[Aggregate]] = {
    AggregateKind.ORDERS: Order,
    AggregateKind.DELIVERIES: Delivery,
}


def aggregate_model(kind: AggregateKind) -> type[Aggregate]:
    """Model class for an aggregate kind."""
    return AGGREGATE_MODELS[kind]
