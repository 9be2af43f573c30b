"""
Unit tests for EntitySyncCoordinator (optimistic order/delivery editing).

Run: pytest tests/unit/test_entity_sync_service.py -v
"""

import asyncio

import pytest

from services.entity_sync_service import AggregateCollection, EntitySyncCoordinator
from models.aggregate import AggregateKind
from models.sync import CommitStatus
from exceptions import (
    AggregateDeleteError,
    AggregateNotFoundError,
    BackendError,
    CommitInProgressError,
)

from tests.factories import AggregateFactory


@pytest.fixture
def orders(backend):
    """Backend holding orders 1 (children 11, 12) and 2 (child 21), loaded locally."""
    backend.set_aggregates(AggregateKind.ORDERS, [
        AggregateFactory.order(id=1, child_ids=(11, 12)),
        AggregateFactory.order(id=2, child_ids=(21,)),
    ])
    coordinator = EntitySyncCoordinator(backend, AggregateCollection(AggregateKind.ORDERS))
    asyncio.run(coordinator.refresh())
    return coordinator


def edit_order(coordinator, aggregate_id: int = 1, price: float = 999):
    """Copy of an order with every line repriced."""
    edited = coordinator.begin_edit(aggregate_id)
    for child in edited.children:
        child.price = price
    return edited


class TestRefreshAndBeginEdit:
    """Tests for refresh() / begin_edit()"""

    def test_refresh_loads_collection(self, orders):
        assert len(orders.collection) == 2
        assert [c.id for c in orders.collection.get(1).children] == [11, 12]

    def test_empty_refresh_marks_loaded(self, backend):
        collection = AggregateCollection(AggregateKind.ORDERS)
        assert not collection.loaded

        asyncio.run(EntitySyncCoordinator(backend, collection).refresh())

        assert collection.loaded
        assert len(collection) == 0

    def test_refresh_failure_propagates(self, backend):
        backend.fail_list = True
        coordinator = EntitySyncCoordinator(backend, AggregateCollection(AggregateKind.ORDERS))

        with pytest.raises(BackendError):
            asyncio.run(coordinator.refresh())

    def test_begin_edit_is_a_deep_copy(self, orders):
        """Mutating the copy leaves the collection untouched."""
        edited = orders.begin_edit(1)
        edited.children[0].price = 1

        assert orders.collection.get(1).children[0].price == 100

    def test_begin_edit_unknown_id(self, orders):
        with pytest.raises(AggregateNotFoundError):
            orders.begin_edit(404)


class TestCommit:
    """Tests for commit()"""

    def test_all_patches_succeed(self, orders, backend):
        """Outcome is ALL_COMMITTED and the edit stays in the collection."""
        # Arrange
        edited = edit_order(orders)

        # Act
        outcome = asyncio.run(orders.commit(1, edited))

        # Assert
        assert outcome.status == CommitStatus.ALL_COMMITTED
        assert outcome.committed
        assert [c.price for c in orders.collection.get(1).children] == [999, 999]
        assert 1 not in orders.collection.in_flight

    def test_one_call_per_parent_and_child(self, orders, backend):
        asyncio.run(orders.commit(1, edit_order(orders)))

        assert [c[2] for c in backend.calls_named("patch_parent")] == [1]
        assert sorted(c[2] for c in backend.calls_named("patch_child")) == [11, 12]

    def test_patch_bodies_hold_only_scalar_fields(self, orders, backend):
        asyncio.run(orders.commit(1, edit_order(orders)))

        parent_body = backend.calls_named("patch_parent")[0][3]
        child_body = backend.calls_named("patch_child")[0][3]
        assert set(parent_body) == {"orderDate", "providerId"}
        assert set(child_body) == {
            "price", "shippingCost", "OrderQuantity", "ExpectedDate",
            "productId", "warehouseId", "addressId",
        }

    def test_child_failure_rolls_back_to_server_state(self, orders, backend):
        """Parent and child 1 land, child 2 fails: local state equals listAggregates()."""
        # Arrange
        backend.fail_patch_child.add(12)
        edited = edit_order(orders)
        edited.order_date = "2026-11-01T00:00:00.000Z"

        # Act
        outcome = asyncio.run(orders.commit(1, edited))
        server = asyncio.run(backend.list_aggregates(AggregateKind.ORDERS))

        # Assert
        assert outcome.status == CommitStatus.ROLLED_BACK
        assert outcome.resynced
        assert [(f.target, f.target_id) for f in outcome.failed_calls] == [("child", 12)]
        assert outcome.reason == "1 of 3 updates failed"
        assert orders.collection.items == server

        local = orders.collection.get(1)
        assert local.order_date == "2026-11-01T00:00:00.000Z"
        assert [c.price for c in local.children] == [999, 100]

    def test_parent_failure_rolls_back(self, orders, backend):
        backend.fail_patch_parent.add(1)

        outcome = asyncio.run(orders.commit(1, edit_order(orders)))

        assert not outcome.committed
        assert outcome.failed_calls[0].target == "parent"
        assert orders.collection.items == asyncio.run(backend.list_aggregates(AggregateKind.ORDERS))

    def test_rollback_refetch_failure_restores_original(self, orders, backend):
        """If reloading fails too, the pre-edit aggregate comes back and the set is stale."""
        # Arrange
        original = orders.collection.get(1)
        backend.fail_patch_child.add(11)
        backend.fail_patch_child.add(12)
        backend.fail_list = True

        # Act
        outcome = asyncio.run(orders.commit(1, edit_order(orders)))

        # Assert
        assert outcome.status == CommitStatus.ROLLED_BACK
        assert not outcome.resynced
        assert orders.collection.get(1) == original
        assert orders.collection.stale

    def test_other_aggregates_untouched(self, orders, backend):
        before = orders.collection.get(2)

        asyncio.run(orders.commit(1, edit_order(orders)))

        assert orders.collection.get(2) == before

    def test_unknown_id(self, orders):
        edited = edit_order(orders)

        with pytest.raises(AggregateNotFoundError):
            asyncio.run(orders.commit(404, edited))

    def test_outcome_to_dict(self, orders, backend):
        backend.fail_patch_child.add(12)

        outcome = asyncio.run(orders.commit(1, edit_order(orders)))

        data = outcome.to_dict()
        assert data["status"] == "rolled_back"
        assert data["failed_calls"][0]["target_id"] == 12
        assert data["resynced"] is True


class TestCommitConcurrency:
    """Tests for in-flight tracking, submit() and shutdown()"""

    def test_optimistic_state_visible_while_in_flight(self, orders, backend):
        """The edit is in the collection before any patch answers."""
        async def scenario():
            backend.gate = asyncio.Event()
            edited = edit_order(orders, price=777)

            task = orders.submit(1, edited)
            await asyncio.sleep(0)

            seen = [c.price for c in orders.collection.get(1).children]
            in_flight = 1 in orders.collection.in_flight

            backend.gate.set()
            outcome = await task
            return seen, in_flight, outcome

        seen, in_flight, outcome = asyncio.run(scenario())

        assert seen == [777, 777]
        assert in_flight
        assert outcome.committed
        assert orders.collection.in_flight == set()

    def test_second_commit_same_id_rejected(self, orders, backend):
        async def scenario():
            backend.gate = asyncio.Event()
            task = orders.submit(1, edit_order(orders))
            await asyncio.sleep(0)

            with pytest.raises(CommitInProgressError):
                await orders.commit(1, edit_order(orders, price=5))

            backend.gate.set()
            return await task

        outcome = asyncio.run(scenario())

        assert outcome.committed

    def test_commits_on_different_ids_proceed(self, orders, backend):
        async def scenario():
            first = orders.submit(1, edit_order(orders, aggregate_id=1))
            second = orders.submit(2, edit_order(orders, aggregate_id=2))
            return await asyncio.gather(first, second)

        outcomes = asyncio.run(scenario())

        assert all(o.committed for o in outcomes)

    def test_shutdown_cancels_pending_commit(self, orders, backend):
        """Teardown cancels the commit and closes the collection."""
        async def scenario():
            backend.gate = asyncio.Event()
            task = orders.submit(1, edit_order(orders))
            await asyncio.sleep(0)

            await orders.shutdown()
            return task

        task = asyncio.run(scenario())

        assert task.cancelled()
        assert orders.collection.closed
        assert orders.collection.in_flight == set()

    def test_delete_during_commit_is_not_undone(self, orders, backend):
        """An aggregate deleted while its commit is in flight stays deleted."""
        async def scenario():
            backend.gate = asyncio.Event()
            task = orders.submit(1, edit_order(orders))
            await asyncio.sleep(0)

            await orders.delete(1)
            backend.gate.set()
            return await task

        asyncio.run(scenario())

        assert 1 not in orders.collection
        assert 2 in orders.collection

    def test_rollback_keeps_other_in_flight_edit(self, orders, backend):
        """Reloading after one failed commit leaves another pending edit visible."""
        async def scenario():
            backend.gate = asyncio.Event()
            backend.gated = {2, 21}
            backend.fail_patch_child.add(12)

            pending = orders.submit(2, edit_order(orders, aggregate_id=2, price=555))
            await asyncio.sleep(0)

            rolled_back = await orders.commit(1, edit_order(orders, aggregate_id=1, price=999))
            during = [c.price for c in orders.collection.get(2).children]
            in_flight = set(orders.collection.in_flight)

            backend.gate.set()
            settled = await pending
            return rolled_back, during, in_flight, settled

        rolled_back, during, in_flight, settled = asyncio.run(scenario())

        assert rolled_back.status == CommitStatus.ROLLED_BACK
        assert rolled_back.resynced
        assert during == [555]
        assert in_flight == {2}
        assert settled.committed
        assert [c.price for c in orders.collection.get(1).children] == [999, 100]
        assert [c.price for c in orders.collection.get(2).children] == [555]
        assert orders.collection.in_flight == set()

    def test_reload_after_settle_takes_backend_copy(self, orders, backend):
        asyncio.run(orders.commit(2, edit_order(orders, aggregate_id=2, price=555)))
        backend.aggregates[AggregateKind.ORDERS][1]["orderDetails"][0]["price"] = 600

        asyncio.run(orders.refresh())

        assert [c.price for c in orders.collection.get(2).children] == [600]

    def test_closed_collection_ignores_refresh_result(self, orders, backend):
        asyncio.run(orders.shutdown())
        backend.set_aggregates(AggregateKind.ORDERS, [])

        items = asyncio.run(orders.refresh())

        assert items == []
        assert len(orders.collection) == 2


class TestDelete:
    """Tests for delete()"""

    def test_delete_removes_locally_after_backend(self, orders, backend):
        asyncio.run(orders.delete(1))

        assert 1 not in orders.collection
        assert backend.calls_named("delete") == [("delete", AggregateKind.ORDERS, 1)]

    def test_delete_failure_keeps_local_state(self, orders, backend):
        backend.fail_delete.add(1)

        with pytest.raises(AggregateDeleteError):
            asyncio.run(orders.delete(1))

        assert 1 in orders.collection


class TestDeliveries:
    """Deliveries go through the same coordinator."""

    def test_delivery_commit_uses_delivery_fields(self, backend):
        backend.set_aggregates(AggregateKind.DELIVERIES, [AggregateFactory.delivery(id=5, child_ids=(51,))])
        coordinator = EntitySyncCoordinator(backend, AggregateCollection(AggregateKind.DELIVERIES))
        asyncio.run(coordinator.refresh())

        edited = coordinator.begin_edit(5)
        edited.children[0].order_quantity = 3
        outcome = asyncio.run(coordinator.commit(5, edited))

        assert outcome.committed
        parent_body = backend.calls_named("patch_parent")[0][3]
        assert set(parent_body) == {"orderDate", "userId"}
        assert backend.aggregates[AggregateKind.DELIVERIES][0]["deliveryDetails"][0]["OrderQuantity"] == 3
