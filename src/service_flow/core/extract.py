"""Work order extract: the financial read-model of a single work order."""

from dataclasses import dataclass, field
from decimal import Decimal

from service_flow.core.store import to_number
from service_flow.db.models import Checklist, Client, Equipment, Payment, Quote, WorkOrder


@dataclass
class FinancialSummary:
    total_quoted: float
    total_paid: float
    total_pending: float
    balance: float


@dataclass
class ChecklistSummary:
    id: str
    title: str
    answers_count: int
    required_count: int


@dataclass
class WorkOrderExtract:
    work_order: WorkOrder
    client: Client
    quote: Quote | None
    payments: list[Payment] = field(default_factory=list)
    checklists: list[ChecklistSummary] = field(default_factory=list)
    equipments: list[Equipment] = field(default_factory=list)
    financial_summary: FinancialSummary | None = None


def summarize(quote: Quote | None, payments: list[Payment]) -> FinancialSummary:
    """Compute quoted, paid and pending totals.

    Sums are taken in Decimal and converted to plain numbers at the end.
    """
    quoted = quote.total_value if quote else Decimal("0")
    paid = sum((p.value for p in payments if p.status == "RECEIVED"), Decimal("0"))
    pending = sum((p.value for p in payments if p.status == "PENDING"), Decimal("0"))
    return FinancialSummary(
        total_quoted=to_number(quoted),
        total_paid=to_number(paid),
        total_pending=to_number(pending),
        balance=to_number(quoted - paid),
    )


def summarize_checklist(checklist: Checklist) -> ChecklistSummary:
    return ChecklistSummary(
        id=checklist.id,
        title=checklist.title,
        answers_count=len(checklist.answers),
        required_count=sum(1 for item in checklist.template.items if item.is_required)
        if checklist.template else 0,
    )


def build_extract(
    work_order: WorkOrder,
    client: Client,
    quote: Quote | None,
    payments: list[Payment],
    checklists: list[Checklist],
    equipments: list[Equipment],
) -> WorkOrderExtract:
    return WorkOrderExtract(
        work_order=work_order,
        client=client,
        quote=quote,
        payments=payments,
        checklists=[summarize_checklist(c) for c in checklists],
        equipments=equipments,
        financial_summary=summarize(quote, payments),
    )
