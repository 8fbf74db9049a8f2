"""Data models for the service flow."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal

QUOTE_STATUSES = ("DRAFT", "SENT", "APPROVED", "REJECTED", "EXPIRED")
WORK_ORDER_STATUSES = ("SCHEDULED", "IN_PROGRESS", "DONE", "CANCELED")
PAYMENT_STATUSES = (
    "PENDING",
    "CONFIRMED",
    "RECEIVED",
    "RECEIVED_IN_CASH",
    "OVERDUE",
    "REFUNDED",
    "DELETED",
)
BILLING_TYPES = ("PIX", "BOLETO", "CREDIT_CARD", "UNDEFINED")
CHECKLIST_ITEM_TYPES = ("TEXT", "NUMERIC", "BOOLEAN", "PHOTO", "SELECT")


@dataclass
class Client:
    id: str
    owner_id: str
    name: str
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None


@dataclass
class Equipment:
    id: str
    owner_id: str
    client_id: str
    type: str
    brand: str | None = None
    model: str | None = None
    serial_number: str | None = None
    created_at: datetime | None = None
    deleted_at: datetime | None = None


@dataclass
class QuoteItem:
    name: str
    quantity: Decimal
    unit_price: Decimal
    total_price: Decimal
    position: int = 0


@dataclass
class Quote:
    id: str
    owner_id: str
    client_id: str
    status: str = "DRAFT"
    total_value: Decimal = Decimal("0")
    discount_value: Decimal = Decimal("0")
    notes: str | None = None
    items: list[QuoteItem] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None


@dataclass
class ChecklistTemplateItem:
    id: str
    title: str
    type: str = "TEXT"
    is_required: bool = False
    options: list[str] = field(default_factory=list)
    position: int = 0


@dataclass
class ChecklistTemplate:
    id: str
    owner_id: str
    name: str
    items: list[ChecklistTemplateItem] = field(default_factory=list)
    created_at: datetime | None = None


@dataclass
class ChecklistAnswer:
    template_item_id: str
    type: str
    value: str | float | bool
    id: int | None = None
    created_at: datetime | None = None


@dataclass
class Checklist:
    id: str
    work_order_id: str
    template_id: str
    title: str
    template: ChecklistTemplate | None = None
    answers: list[ChecklistAnswer] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class WorkOrder:
    id: str
    owner_id: str
    client_id: str
    title: str
    status: str = "SCHEDULED"
    quote_id: str | None = None
    description: str = ""
    address: str | None = None
    notes: str | None = None
    scheduled_date: datetime | None = None
    scheduled_start_time: datetime | None = None
    scheduled_end_time: datetime | None = None
    execution_start: datetime | None = None
    execution_end: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None
    equipment_ids: list[str] = field(default_factory=list)


@dataclass
class Payment:
    id: str
    owner_id: str
    client_id: str
    value: Decimal
    billing_type: str
    due_date: date
    status: str = "PENDING"
    work_order_id: str | None = None
    quote_id: str | None = None
    description: str | None = None
    paid_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class PaymentSuggestion:
    can_generate_payment: bool
    suggested_value: Decimal | None = None
    has_quote: bool = False
    quote_id: str | None = None


@dataclass
class WorkOrderDetail:
    """A work order together with the records it links to."""

    work_order: WorkOrder
    client: Client
    quote: Quote | None = None
    equipments: list[Equipment] = field(default_factory=list)


@dataclass
class CompletionResult:
    work_order: WorkOrderDetail
    payment_suggestion: PaymentSuggestion
