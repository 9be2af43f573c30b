"""
Optimistic editing of orders and deliveries.

An edit replaces the aggregate in the local collection immediately, then
patches the parent and every line item concurrently. The backend is not
transactional across those calls, so if any one of them fails the client
cannot know which others landed: it throws the optimistic copy away and
reloads the whole list from the backend.

State per commit: Idle -> Committing (optimistic, id in flight)
                       -> Settled | RolledBack
"""

import asyncio
from functools import partial
from typing import Optional
import structlog

from config import settings
from exceptions import (
    AggregateDeleteError,
    AggregateNotFoundError,
    CommitInProgressError,
)
from integrations.backend_client import BackendClient
from models.aggregate import Aggregate, AggregateKind
from models.sync import CommitOutcome, PatchFailure

logger = structlog.get_logger(__name__)


class AggregateCollection:
    """
    Caller-held working set of one aggregate kind.

    Tracks which ids have a commit in flight, along with their optimistic
    copies; a reload keeps those copies in place until their commit
    settles. Once closed (session teardown), late results are no longer
    applied.
    """

    def __init__(self, kind: AggregateKind, items: Optional[list[Aggregate]] = None):
        self.kind = kind
        self.items: list[Aggregate] = list(items or [])
        self.in_flight: set[int] = set()
        self.loaded = items is not None
        self.stale = False
        self.closed = False
        self._optimistic: dict[int, Aggregate] = {}

    def __len__(self) -> int:
        return len(self.items)

    def __contains__(self, aggregate_id: object) -> bool:
        return any(a.id == aggregate_id for a in self.items)

    def get(self, aggregate_id: int) -> Optional[Aggregate]:
        return next((a for a in self.items if a.id == aggregate_id), None)

    def replace(self, aggregate: Aggregate) -> bool:
        """Swap in a new version of an aggregate; False if it is not present."""
        for index, current in enumerate(self.items):
            if current.id == aggregate.id:
                self.items[index] = aggregate
                return True
        return False

    def remove(self, aggregate_id: int) -> bool:
        before = len(self.items)
        self.items = [a for a in self.items if a.id != aggregate_id]
        return len(self.items) != before

    def replace_all(self, items: list[Aggregate]) -> None:
        """Take the backend's list, keeping optimistic copies of in-flight ids."""
        self.items = [self._optimistic.get(a.id, a) for a in items]
        self.loaded = True
        self.stale = False

    def begin_commit(self, edited: Aggregate) -> None:
        self.replace(edited)
        self.in_flight.add(edited.id)
        self._optimistic[edited.id] = edited

    def end_commit(self, aggregate_id: int) -> None:
        self.in_flight.discard(aggregate_id)
        self._optimistic.pop(aggregate_id, None)

    def close(self) -> None:
        self.closed = True
        self.in_flight.clear()
        self._optimistic.clear()


class EntitySyncCoordinator:
    """Commits, deletes and reloads aggregates of one kind."""

    def __init__(
        self,
        backend: BackendClient,
        collection: AggregateCollection,
        max_concurrency: Optional[int] = None,
    ):
        self.backend = backend
        self.collection = collection
        self.kind = collection.kind
        self.max_concurrency = max_concurrency or settings.max_concurrent_requests
        self._tasks: set[asyncio.Task] = set()

    # ===================
    # READ
    # ===================

    async def refresh(self) -> list[Aggregate]:
        """
        Reload the full list from the backend into the collection.

        Raises:
            BackendError: If the list cannot be fetched
        """
        items = await self.backend.list_aggregates(self.kind)
        if not self.collection.closed:
            self.collection.replace_all(items)
        logger.info("aggregates_refreshed", kind=self.kind.value, count=len(items))
        return items

    def begin_edit(self, aggregate_id: int) -> Aggregate:
        """
        Start editing: a deep copy the caller may mutate freely.

        Dropping the copy cancels the edit with no network effect.

        Raises:
            AggregateNotFoundError: If the id is not in the collection
        """
        current = self.collection.get(aggregate_id)
        if current is None:
            raise AggregateNotFoundError(self.kind.value, aggregate_id)
        return current.model_copy(deep=True)

    # ===================
    # COMMIT
    # ===================

    async def commit(self, aggregate_id: int, edited: Aggregate) -> CommitOutcome:
        """
        Persist an edited aggregate optimistically.

        Args:
            aggregate_id: Id of the aggregate being edited
            edited: The edited copy (parent fields and line items)

        Returns:
            CommitOutcome: ALL_COMMITTED if every patch succeeded, otherwise
            ROLLED_BACK after local state was re-synchronized

        Raises:
            AggregateNotFoundError: If the id is not in the collection
            CommitInProgressError: If a commit for this id has not settled
        """
        collection = self.collection

        if aggregate_id in collection.in_flight:
            raise CommitInProgressError(self.kind.value, aggregate_id)

        original = collection.get(aggregate_id)
        if original is None:
            raise AggregateNotFoundError(self.kind.value, aggregate_id)

        if edited.id != aggregate_id:
            edited = edited.model_copy(update={"id": aggregate_id})

        # Optimistic write, visible before any call returns
        collection.begin_commit(edited)

        logger.info(
            "commit_started",
            kind=self.kind.value,
            aggregate_id=aggregate_id,
            line_items=len(edited.children)
        )

        try:
            failures = await self._patch_all(aggregate_id, edited)
        finally:
            collection.end_commit(aggregate_id)

        if not failures:
            logger.info("commit_settled", kind=self.kind.value, aggregate_id=aggregate_id)
            return CommitOutcome.all_committed(aggregate_id)

        reason = f"{len(failures)} of {len(edited.children) + 1} updates failed"
        logger.warning(
            "commit_failed_rolling_back",
            kind=self.kind.value,
            aggregate_id=aggregate_id,
            reason=reason,
            failed=[f"{f.target}:{f.target_id}" for f in failures]
        )

        resynced = await self._rollback(original)

        return CommitOutcome.rolled_back(
            aggregate_id,
            reason=reason,
            failed_calls=tuple(failures),
            resynced=resynced,
        )

    def submit(self, aggregate_id: int, edited: Aggregate) -> asyncio.Task:
        """
        Run commit() as a task owned by this coordinator.

        shutdown() cancels tasks that have not finished.
        """
        task = asyncio.create_task(self.commit(aggregate_id, edited))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def shutdown(self) -> None:
        """Cancel pending commits and stop applying results to the collection."""
        pending = [t for t in self._tasks if not t.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.info("pending_commits_cancelled", kind=self.kind.value, count=len(pending))
        self.collection.close()

    async def _patch_all(self, aggregate_id: int, edited: Aggregate) -> list[PatchFailure]:
        """Issue the parent patch and every child patch; collect the failures."""
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _guarded(target: str, target_id: int, call) -> Optional[PatchFailure]:
            async with semaphore:
                try:
                    await call()
                except Exception as e:
                    return PatchFailure(target=target, target_id=target_id, error=str(e))
            return None

        calls = [
            _guarded(
                "parent",
                aggregate_id,
                partial(self.backend.patch_parent, self.kind, aggregate_id, edited.parent_fields())
            )
        ]
        calls.extend(
            _guarded(
                "child",
                child.id,
                partial(self.backend.patch_child, self.kind, child.id, child.patch_fields())
            )
            for child in edited.children
        )

        results = await asyncio.gather(*calls)
        return [r for r in results if r is not None]

    async def _rollback(self, original: Aggregate) -> bool:
        """
        Replace local state with the backend's list.

        Returns:
            True if the list was re-fetched; False if the fetch failed and the
            pre-edit aggregate was restored instead (collection marked stale)
        """
        collection = self.collection
        try:
            items = await self.backend.list_aggregates(self.kind)
        except Exception as e:
            logger.error(
                "rollback_refetch_failed",
                kind=self.kind.value,
                aggregate_id=original.id,
                error=str(e)
            )
            if not collection.closed:
                collection.replace(original)
                collection.stale = True
            return False

        if not collection.closed:
            collection.replace_all(items)
        return True

    # ===================
    # DELETE
    # ===================

    async def delete(self, aggregate_id: int) -> None:
        """
        Delete an aggregate on the backend, then locally.

        Raises:
            AggregateDeleteError: If the backend call fails; local state is
            left untouched
        """
        logger.info("deleting_aggregate", kind=self.kind.value, aggregate_id=aggregate_id)

        try:
            await self.backend.delete_aggregate(self.kind, aggregate_id)
        except Exception as e:
            logger.error(
                "delete_aggregate_failed",
                kind=self.kind.value,
                aggregate_id=aggregate_id,
                error=str(e)
            )
            raise AggregateDeleteError(self.kind.value, aggregate_id, str(e))

        if not self.collection.closed:
            self.collection.remove(aggregate_id)

        logger.info("aggregate_deleted", kind=self.kind.value, aggregate_id=aggregate_id)
