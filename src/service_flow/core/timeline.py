"""Timeline events and the merge of per-entity event streams.

Each event kind is its own frozen dataclass carrying only the fields that
kind needs. Every event date is a timestamp copied from the source record;
nothing is back-dated or derived.
"""

from dataclasses import dataclass, fields
from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar, Iterable, Union

from service_flow.core.store import to_number
from service_flow.db.models import Checklist, Payment, Quote, WorkOrder


@dataclass(frozen=True)
class _Event:
    date: datetime
    id: str

    type: ClassVar[str]

    @property
    def data(self) -> dict:
        """Render payload: every field except the date, money as plain numbers."""
        payload = {}
        for f in fields(self):
            if f.name == "date":
                continue
            value = getattr(self, f.name)
            if isinstance(value, Decimal):
                value = to_number(value)
            elif isinstance(value, date):
                value = value.isoformat()
            payload[f.name] = value
        return payload


@dataclass(frozen=True)
class QuoteCreated(_Event):
    status: str
    total_value: Decimal
    items_count: int

    type: ClassVar[str] = "QUOTE_CREATED"


@dataclass(frozen=True)
class QuoteApproved(_Event):
    total_value: Decimal

    type: ClassVar[str] = "QUOTE_APPROVED"


@dataclass(frozen=True)
class QuoteRejected(_Event):
    type: ClassVar[str] = "QUOTE_REJECTED"


@dataclass(frozen=True)
class WorkOrderCreated(_Event):
    title: str
    status: str
    quote_id: str | None
    equipments_count: int

    type: ClassVar[str] = "WORK_ORDER_CREATED"


@dataclass(frozen=True)
class WorkOrderStarted(_Event):
    title: str

    type: ClassVar[str] = "WORK_ORDER_STARTED"


@dataclass(frozen=True)
class WorkOrderCompleted(_Event):
    title: str

    type: ClassVar[str] = "WORK_ORDER_COMPLETED"


@dataclass(frozen=True)
class WorkOrderCanceled(_Event):
    title: str

    type: ClassVar[str] = "WORK_ORDER_CANCELED"


@dataclass(frozen=True)
class ChecklistCreated(_Event):
    title: str
    work_order_id: str
    work_order_title: str

    type: ClassVar[str] = "CHECKLIST_CREATED"


@dataclass(frozen=True)
class PaymentCreated(_Event):
    value: Decimal
    billing_type: str
    status: str
    due_date: date
    work_order_id: str | None
    quote_id: str | None

    type: ClassVar[str] = "PAYMENT_CREATED"


@dataclass(frozen=True)
class PaymentConfirmed(_Event):
    value: Decimal
    billing_type: str

    type: ClassVar[str] = "PAYMENT_CONFIRMED"


TimelineEvent = Union[
    QuoteCreated,
    QuoteApproved,
    QuoteRejected,
    WorkOrderCreated,
    WorkOrderStarted,
    WorkOrderCompleted,
    WorkOrderCanceled,
    ChecklistCreated,
    PaymentCreated,
    PaymentConfirmed,
]

# Lifecycle rank of each kind; on equal dates the later stage sorts first.
EVENT_ORDER = (
    QuoteCreated.type,
    QuoteApproved.type,
    QuoteRejected.type,
    WorkOrderCreated.type,
    ChecklistCreated.type,
    WorkOrderStarted.type,
    WorkOrderCompleted.type,
    WorkOrderCanceled.type,
    PaymentCreated.type,
    PaymentConfirmed.type,
)
_RANK = {kind: rank for rank, kind in enumerate(EVENT_ORDER)}


# ── Projections ──────────────────────────────────────────────────────────────


def quote_events(quote: Quote) -> list[TimelineEvent]:
    events: list[TimelineEvent] = [
        QuoteCreated(quote.created_at, quote.id, quote.status, quote.total_value, len(quote.items))
    ]
    if quote.status == "APPROVED" and quote.updated_at:
        events.append(QuoteApproved(quote.updated_at, quote.id, quote.total_value))
    if quote.status == "REJECTED" and quote.updated_at:
        events.append(QuoteRejected(quote.updated_at, quote.id))
    return events


def work_order_events(
    work_order: WorkOrder,
    checklists: Iterable[Checklist] = (),
    include_canceled: bool = False,
) -> list[TimelineEvent]:
    """Events of a work order and of each checklist attached to it."""
    events: list[TimelineEvent] = [
        WorkOrderCreated(
            work_order.created_at,
            work_order.id,
            work_order.title,
            work_order.status,
            work_order.quote_id,
            len(work_order.equipment_ids),
        )
    ]
    if work_order.execution_start:
        events.append(WorkOrderStarted(work_order.execution_start, work_order.id, work_order.title))
    if work_order.execution_end:
        events.append(WorkOrderCompleted(work_order.execution_end, work_order.id, work_order.title))
    if include_canceled and work_order.status == "CANCELED" and work_order.updated_at:
        events.append(WorkOrderCanceled(work_order.updated_at, work_order.id, work_order.title))
    for checklist in checklists:
        events.append(
            ChecklistCreated(checklist.created_at, checklist.id, checklist.title,
                             work_order.id, work_order.title)
        )
    return events


def payment_events(payment: Payment) -> list[TimelineEvent]:
    events: list[TimelineEvent] = [
        PaymentCreated(
            payment.created_at,
            payment.id,
            payment.value,
            payment.billing_type,
            payment.status,
            payment.due_date,
            payment.work_order_id,
            payment.quote_id,
        )
    ]
    if payment.status == "RECEIVED" and payment.paid_at:
        events.append(PaymentConfirmed(payment.paid_at, payment.id, payment.value, payment.billing_type))
    return events


def merge(*streams: Iterable[TimelineEvent]) -> list[TimelineEvent]:
    """Merge event streams into one list, most recent first.

    Equal dates are ordered by lifecycle rank (later stage first), then by
    entity id ascending.
    """
    events = [event for stream in streams for event in stream]
    events.sort(key=lambda e: e.id)
    events.sort(key=lambda e: (e.date, _RANK[e.type]), reverse=True)
    return events
