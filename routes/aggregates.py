"""
Order and delivery editing routes.

GET    /api/aggregates/{kind}          - Working set (loaded on first use)
POST   /api/aggregates/{kind}/refresh  - Reload from the backend
PATCH  /api/aggregates/{kind}/{id}     - Commit an edited order/delivery
DELETE /api/aggregates/{kind}/{id}     - Delete an order/delivery

kind is "orders" or "deliveries".
"""

from typing import Any

from fastapi import APIRouter, Body
from pydantic import ValidationError as PydanticValidationError
import structlog

from exceptions import CommitRolledBackError, ValidationError
from models.aggregate import AggregateKind, aggregate_model
from routes.errors import handle_error
from services.workspace import get_workspace

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/aggregates", tags=["Orders & Deliveries"])


def _dump(aggregates) -> list[dict]:
    return [a.model_dump(by_alias=True) for a in aggregates]


@router.get("/{kind}")
async def list_aggregates(kind: AggregateKind):
    """
    List the local working set.

    The first call for a kind loads it from the backend.
    """
    try:
        coordinator = get_workspace().coordinator(kind)
        collection = coordinator.collection

        if not collection.loaded or collection.stale:
            await coordinator.refresh()

        return {
            "data": _dump(collection.items),
            "total": len(collection),
            "in_flight": sorted(collection.in_flight),
            "stale": collection.stale,
        }

    except Exception as e:
        return handle_error(e)


@router.post("/{kind}/refresh")
async def refresh_aggregates(kind: AggregateKind):
    """Replace the working set with the backend's list."""
    try:
        items = await get_workspace().coordinator(kind).refresh()
        return {"data": _dump(items), "total": len(items)}

    except Exception as e:
        return handle_error(e)


@router.patch("/{kind}/{aggregate_id}")
async def commit_aggregate(kind: AggregateKind, aggregate_id: int, body: dict[str, Any] = Body(...)):
    """
    Save an edited order or delivery.

    The body is the full edited record: parent fields plus every line item
    (orderDetails / deliveryDetails).

    Raises:
        404: Record not found
        409: Another save of this record is in progress, or the save failed
             and local state was reloaded (COMMIT_ROLLED_BACK)
        422: Body is not a valid record
    """
    try:
        try:
            edited = aggregate_model(kind).model_validate({**body, "id": aggregate_id})
        except PydanticValidationError as e:
            raise ValidationError(
                message="Invalid record",
                details={"errors": e.errors(include_url=False, include_context=False)}
            )

        coordinator = get_workspace().coordinator(kind)
        if aggregate_id not in coordinator.collection:
            await coordinator.refresh()

        outcome = await coordinator.commit(aggregate_id, edited)

        if not outcome.committed:
            raise CommitRolledBackError(kind.value, aggregate_id, details=outcome.to_dict())

        return edited.model_dump(by_alias=True)

    except Exception as e:
        return handle_error(e)


@router.delete("/{kind}/{aggregate_id}", status_code=204)
async def delete_aggregate(kind: AggregateKind, aggregate_id: int):
    """
    Delete an order or delivery.

    Raises:
        502: Backend refused; nothing was removed locally
    """
    try:
        await get_workspace().coordinator(kind).delete(aggregate_id)
        return None  # 204 No Content

    except Exception as e:
        return handle_error(e)
