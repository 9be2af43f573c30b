"""
Inventory backend integration.

Async HTTP client for the REST backend that owns products, orders and
deliveries. Every call is a single request: no retries, no batching. Callers
fan calls out concurrently and decide what a failure means.
"""

from typing import Any, Optional, TypeVar

import httpx
import structlog
from pydantic import BaseModel, ValidationError as PydanticValidationError

from config import settings
from exceptions import BackendError
from models.aggregate import Aggregate, AggregateKind, aggregate_model
from models.order import (
    Address,
    InventoryRecord,
    Provider,
    Warehouse,
)
from models.product import CandidateProduct, CanonicalProduct

logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

# (parent collection, child collection) per aggregate kind
KIND_PATHS: dict[AggregateKind, tuple[str, str]] = {
    AggregateKind.ORDERS: ("/orders", "/orders/orderDetails"),
    AggregateKind.DELIVERIES: ("/deliveries", "/deliveries/details"),
}


def _error_message(response: httpx.Response) -> str:
    """Backend error text: JSON "message" when present, else the reason phrase."""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and body.get("message"):
        message = body["message"]
        return ", ".join(message) if isinstance(message, list) else str(message)
    return response.reason_phrase


class BackendClient:
    """
    Inventory backend API.

    One httpx.AsyncClient is shared by all calls, so concurrent calls reuse
    the connection pool. Close with aclose() or use as an async context
    manager.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url or settings.backend_base_url
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout or settings.backend_timeout_seconds,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ===================
    # TRANSPORT
    # ===================

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[dict] = None,
    ) -> Any:
        """
        Issue one request and return the decoded JSON body (None if empty).

        Raises:
            BackendError: Network failure, error status, or undecodable body
        """
        logger.debug("backend_request", operation=operation, method=method, path=path)

        try:
            response = await self._client.request(method, path, json=json, params=params)
        except httpx.HTTPError as e:
            logger.warning(
                "backend_request_failed",
                operation=operation,
                path=path,
                error=str(e) or type(e).__name__
            )
            raise BackendError(operation, str(e) or type(e).__name__)

        if response.is_error:
            message = _error_message(response)
            logger.warning(
                "backend_error_status",
                operation=operation,
                path=path,
                status=response.status_code,
                error=message
            )
            raise BackendError(operation, message, upstream_status=response.status_code)

        if not response.content:
            return None

        try:
            return response.json()
        except ValueError:
            raise BackendError(operation, "Response body is not JSON", upstream_status=response.status_code)

    @staticmethod
    def _parse(operation: str, model: type[ModelT], data: Any) -> ModelT:
        try:
            return model.model_validate(data)
        except PydanticValidationError as e:
            raise BackendError(operation, f"Unexpected response shape: {e.error_count()} errors")

    def _parse_list(self, operation: str, model: type[ModelT], data: Any) -> list[ModelT]:
        if data is None:
            return []
        if not isinstance(data, list):
            raise BackendError(operation, "Expected a list response")
        return [self._parse(operation, model, row) for row in data]

    # ===================
    # PRODUCTS
    # ===================

    async def lookup_product_by_natural_key(self, natural_key: str) -> list[CanonicalProduct]:
        """
        Products stored under a supplier barcode.

        The backend answers with a list, a single object, or 404. An empty
        list means not found.

        Raises:
            BackendError: Any failure other than 404
        """
        operation = "lookup_product"
        try:
            data = await self._request(
                operation, "GET", "/products/byBarcode", params={"barcode": natural_key}
            )
        except BackendError as e:
            if e.upstream_status == 404:
                return []
            raise

        if data is None:
            return []
        if isinstance(data, dict):
            data = [data]
        return self._parse_list(operation, CanonicalProduct, data)

    async def create_product(self, candidate: CandidateProduct) -> CanonicalProduct:
        """Create a product; the backend assigns id and canonical barcode."""
        operation = "create_product"
        data = await self._request(operation, "POST", "/products", json=candidate.to_create_payload())
        return self._parse(operation, CanonicalProduct, data)

    # ===================
    # AGGREGATES
    # ===================

    async def list_aggregates(self, kind: AggregateKind) -> list[Aggregate]:
        """Full authoritative list of orders or deliveries."""
        operation = f"list_{kind.value}"
        parent_path, _ = KIND_PATHS[kind]
        data = await self._request(operation, "GET", parent_path)
        return self._parse_list(operation, aggregate_model(kind), data)

    async def patch_parent(self, kind: AggregateKind, aggregate_id: int, fields: dict) -> Any:
        parent_path, _ = KIND_PATHS[kind]
        return await self._request(
            f"patch_{kind.value}", "PATCH", f"{parent_path}/{aggregate_id}", json=fields
        )

    async def patch_child(self, kind: AggregateKind, child_id: int, fields: dict) -> Any:
        _, child_path = KIND_PATHS[kind]
        return await self._request(
            f"patch_{kind.value}_line", "PATCH", f"{child_path}/{child_id}", json=fields
        )

    async def delete_aggregate(self, kind: AggregateKind, aggregate_id: int) -> None:
        parent_path, _ = KIND_PATHS[kind]
        await self._request(f"delete_{kind.value}", "DELETE", f"{parent_path}/{aggregate_id}")

    # ===================
    # CREATION
    # ===================

    async def create_order(self, fields: dict) -> int:
        """Create an order header; returns its id."""
        data = await self._request("create_order", "POST", "/orders", json=fields)
        return self._created_id("create_order", data)

    async def create_order_line_item(self, order_id: int, fields: dict) -> Any:
        return await self._request(
            "create_order_line", "POST", "/orders/orderDetails", json={**fields, "orderId": order_id}
        )

    async def create_delivery(self, fields: dict) -> int:
        """Create a delivery header; returns its id."""
        data = await self._request("create_delivery", "POST", "/deliveries", json=fields)
        return self._created_id("create_delivery", data)

    async def create_delivery_line_item(self, delivery_id: int, fields: dict) -> Any:
        return await self._request(
            "create_delivery_line", "POST", "/deliveries/details", json={**fields, "deliveryId": delivery_id}
        )

    @staticmethod
    def _created_id(operation: str, data: Any) -> int:
        if not isinstance(data, dict) or "id" not in data:
            raise BackendError(operation, "Response has no id")
        return int(data["id"])

    # ===================
    # REFERENCE DATA
    # ===================

    async def list_providers(self) -> list[Provider]:
        data = await self._request("list_providers", "GET", "/orders/provider")
        return self._parse_list("list_providers", Provider, data)

    async def list_addresses(self) -> list[Address]:
        data = await self._request("list_addresses", "GET", "/addresses")
        return self._parse_list("list_addresses", Address, data)

    async def list_warehouses(self) -> list[Warehouse]:
        data = await self._request("list_warehouses", "GET", "/warehouses")
        return self._parse_list("list_warehouses", Warehouse, data)

    async def list_warehouse_inventories(self, warehouse_id: int) -> list[InventoryRecord]:
        operation = "list_inventories"
        data = await self._request(operation, "GET", f"/warehouses/{warehouse_id}/inventories")
        return self._parse_list(operation, InventoryRecord, data)
