"""Event intake — Bill change notifications pushed by the bill data service."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from legindex.api.deps import get_engine
from legindex.core.engine import BillIndexEngine
from legindex.models.bill import Bill
from legindex.models.events import BillChanged, BillsChanged

router = APIRouter()


class BillChangeNotification(BaseModel):
    """Bills that changed in the store."""

    bills: list[Bill] = Field(min_length=1, description="Changed bills in their current state")


class AcceptedResponse(BaseModel):
    accepted: int = Field(description="Number of bills queued for indexing")


@router.post(
    "/events/bills",
    response_model=AcceptedResponse,
    status_code=202,
    summary="Notify Bill Changes",
    description=(
        "Queue changed bills for index synchronization. The request returns "
        "as soon as the notification is on the event channel; the index is "
        "updated asynchronously."
    ),
)
async def notify_bill_changes(
    notification: BillChangeNotification,
    engine: BillIndexEngine = Depends(get_engine),
) -> AcceptedResponse:
    if len(notification.bills) == 1:
        engine.channel.publish(BillChanged(bill=notification.bills[0]))
    else:
        engine.channel.publish(BillsChanged(bills=notification.bills))
    return AcceptedResponse(accepted=len(notification.bills))
