"""
Shared test fixtures.

FakeBackend stands in for BackendClient: same async methods, state held in
memory, and per-call failure switches.
"""

import sys
from pathlib import Path

# Add project directory to Python path
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

import asyncio
from copy import deepcopy
from typing import Any, Optional

import pytest

from exceptions import BackendError
from models.aggregate import AggregateKind, aggregate_model
from models.order import Address, InventoryRecord, Provider, Warehouse
from models.product import CandidateProduct, CanonicalProduct

from tests.factories import reference_data


CHILD_KEYS = {
    AggregateKind.ORDERS: "orderDetails",
    AggregateKind.DELIVERIES: "deliveryDetails",
}


# ===================
# FAKE BACKEND
# ===================

class FakeBackend:
    """
    In-memory inventory backend.

    Products created here are stored under their supplier barcode, so a
    later lookup finds them. Successful patches are applied to the stored
    aggregates; failed ones are not.

    Usage:
        backend.add_product("111", {"id": 9, "barcode": "uuid-9", ...})
        backend.fail_lookup.add("222")
        backend.fail_patch_child.add(12)
    """

    def __init__(self):
        self.products: dict[str, list[dict]] = {}
        self.aggregates: dict[AggregateKind, list[dict]] = {kind: [] for kind in AggregateKind}
        self.inventories: dict[int, list[dict]] = {}
        self.reference = reference_data()
        self.created_headers: list[tuple[str, dict]] = []
        self.created_lines: list[tuple[str, int, dict]] = []
        self.calls: list[tuple] = []
        self.closed = False
        self._next_id = 100

        # Failure switches
        self.fail_lookup: set[str] = set()
        self.fail_create: set[str] = set()
        self.fail_patch_parent: set[int] = set()
        self.fail_patch_child: set[int] = set()
        self.fail_delete: set[int] = set()
        self.fail_list = False
        self.fail_create_header = False
        self.fail_create_line: set[int] = set()
        self.fail_inventory: set[int] = set()

        # When set, patch calls wait on it before answering; if gated is
        # non-empty, only patches of those ids wait
        self.gate: Optional[asyncio.Event] = None
        self.gated: set[int] = set()

    # Setup helpers

    def add_product(self, natural_key: str, product: dict) -> None:
        self.products.setdefault(natural_key, []).append(product)

    def set_aggregates(self, kind: AggregateKind, items: list[dict]) -> None:
        self.aggregates[kind] = deepcopy(items)

    def calls_named(self, name: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == name]

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    async def _wait(self, target_id: int) -> None:
        if self.gate is not None and (not self.gated or target_id in self.gated):
            await self.gate.wait()
        else:
            await asyncio.sleep(0)

    # Products

    async def lookup_product_by_natural_key(self, natural_key: str) -> list[CanonicalProduct]:
        self.calls.append(("lookup", natural_key))
        await asyncio.sleep(0)
        if natural_key in self.fail_lookup:
            raise BackendError("lookup_product", "connection reset")
        return [CanonicalProduct.model_validate(p) for p in self.products.get(natural_key, [])]

    async def create_product(self, candidate: CandidateProduct) -> CanonicalProduct:
        self.calls.append(("create", candidate.natural_key))
        await asyncio.sleep(0)
        if candidate.natural_key in self.fail_create:
            raise BackendError("create_product", "Barcode rejected", upstream_status=400)
        product_id = self._new_id()
        record = {
            "id": product_id,
            "barcode": f"uuid-{product_id}",
            "name": candidate.name,
            "unitPrice": candidate.unit_price,
        }
        self.add_product(candidate.natural_key, record)
        return CanonicalProduct.model_validate(record)

    # Aggregates

    async def list_aggregates(self, kind: AggregateKind):
        self.calls.append(("list", kind))
        await asyncio.sleep(0)
        if self.fail_list:
            raise BackendError(f"list_{kind.value}", "Service Unavailable", upstream_status=503)
        model = aggregate_model(kind)
        return [model.model_validate(deepcopy(a)) for a in self.aggregates[kind]]

    async def patch_parent(self, kind: AggregateKind, aggregate_id: int, fields: dict) -> Any:
        self.calls.append(("patch_parent", kind, aggregate_id, fields))
        await self._wait(aggregate_id)
        if aggregate_id in self.fail_patch_parent:
            raise BackendError(f"patch_{kind.value}", "Internal Server Error", upstream_status=500)
        for aggregate in self.aggregates[kind]:
            if aggregate["id"] == aggregate_id:
                aggregate.update(fields)
                return aggregate
        raise BackendError(f"patch_{kind.value}", "Not Found", upstream_status=404)

    async def patch_child(self, kind: AggregateKind, child_id: int, fields: dict) -> Any:
        self.calls.append(("patch_child", kind, child_id, fields))
        await self._wait(child_id)
        if child_id in self.fail_patch_child:
            raise BackendError(f"patch_{kind.value}_line", "Internal Server Error", upstream_status=500)
        for aggregate in self.aggregates[kind]:
            for child in aggregate[CHILD_KEYS[kind]]:
                if child["id"] == child_id:
                    child.update(fields)
                    return child
        raise BackendError(f"patch_{kind.value}_line", "Not Found", upstream_status=404)

    async def delete_aggregate(self, kind: AggregateKind, aggregate_id: int) -> None:
        self.calls.append(("delete", kind, aggregate_id))
        await asyncio.sleep(0)
        if aggregate_id in self.fail_delete:
            raise BackendError(f"delete_{kind.value}", "Forbidden", upstream_status=403)
        self.aggregates[kind] = [a for a in self.aggregates[kind] if a["id"] != aggregate_id]

    # Creation

    async def create_order(self, fields: dict) -> int:
        return await self._create_header("order", fields)

    async def create_delivery(self, fields: dict) -> int:
        return await self._create_header("delivery", fields)

    async def create_order_line_item(self, order_id: int, fields: dict) -> Any:
        return await self._create_line("order", order_id, {**fields, "orderId": order_id})

    async def create_delivery_line_item(self, delivery_id: int, fields: dict) -> Any:
        return await self._create_line("delivery", delivery_id, {**fields, "deliveryId": delivery_id})

    async def _create_header(self, kind: str, fields: dict) -> int:
        await asyncio.sleep(0)
        if self.fail_create_header:
            raise BackendError(f"create_{kind}", "Bad Request", upstream_status=400)
        self.created_headers.append((kind, fields))
        return self._new_id()

    async def _create_line(self, kind: str, parent_id: int, fields: dict) -> Any:
        await asyncio.sleep(0)
        if fields["productId"] in self.fail_create_line:
            raise BackendError(f"create_{kind}_line", "Bad Request", upstream_status=400)
        self.created_lines.append((kind, parent_id, fields))
        return {"id": self._new_id(), **fields}

    # Reference data

    async def list_providers(self) -> list[Provider]:
        return [Provider.model_validate(p) for p in self.reference["providers"]]

    async def list_addresses(self) -> list[Address]:
        return [Address.model_validate(a) for a in self.reference["addresses"]]

    async def list_warehouses(self) -> list[Warehouse]:
        return [Warehouse.model_validate(w) for w in self.reference["warehouses"]]

    async def list_warehouse_inventories(self, warehouse_id: int) -> list[InventoryRecord]:
        self.calls.append(("inventories", warehouse_id))
        await asyncio.sleep(0)
        if warehouse_id in self.fail_inventory:
            raise BackendError("list_inventories", "timed out")
        return [InventoryRecord.model_validate(r) for r in self.inventories.get(warehouse_id, [])]

    async def aclose(self) -> None:
        self.closed = True


# ===================
# FIXTURES
# ===================

@pytest.fixture
def backend() -> FakeBackend:
    """
    In-memory backend.

    Usage:
        def test_something(backend):
            backend.add_product("111", ProductFactory.create(id=9))
    """
    return FakeBackend()


@pytest.fixture
def workspace(backend):
    """Workspace over the fake backend, installed as the process workspace."""
    from services.workspace import Workspace, set_workspace

    ws = Workspace(backend=backend)
    set_workspace(ws)
    yield ws
    set_workspace(None)


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client(workspace):
    """
    FastAPI test client bound to the fake-backend workspace.

    Usage:
        def test_endpoint(test_client, backend):
            response = test_client.get("/api/aggregates/orders")
            assert response.status_code == 200
    """
    from fastapi.testclient import TestClient
    from main import app

    return TestClient(app)
