"""Service flow: quote conversion, work order completion, billing and read-models.

Every operation resolves its root record through an owned lookup before
acting. Business-rule violations raise PreconditionFailedError; the two
uniqueness rules (one work order per quote, one pending payment per work
order) are also enforced by store indexes, and a conflict there surfaces as
the same error.
"""

import logging
import sqlite3
from datetime import date
from typing import NoReturn

from service_flow.core import clients as clients_mod
from service_flow.core import quotes as quotes_mod
from service_flow.core import timeline
from service_flow.core import work_orders as work_orders_mod
from service_flow.core.checklists import get_work_order_checklists, is_complete
from service_flow.core.errors import ForbiddenError, PreconditionFailedError
from service_flow.core.extract import WorkOrderExtract, build_extract
from service_flow.core.payments import (
    PaymentIssuer,
    create_payment,
    list_client_payments,
    list_work_order_payments,
)
from service_flow.core.store import format_dt, to_decimal, utcnow
from service_flow.core.timeline import TimelineEvent
from service_flow.db.models import (
    CompletionResult,
    Payment,
    PaymentSuggestion,
    WorkOrder,
    WorkOrderDetail,
)

logger = logging.getLogger(__name__)


def _reject(message: str) -> NoReturn:
    logger.warning("Rejected: %s", message)
    raise PreconditionFailedError(message)


def _detail(db: sqlite3.Connection, work_order: WorkOrder) -> WorkOrderDetail:
    return WorkOrderDetail(
        work_order=work_order,
        client=clients_mod.load_client(db, work_order.client_id),
        quote=quotes_mod.load_quote(db, work_order.quote_id) if work_order.quote_id else None,
        equipments=clients_mod.get_work_order_equipments(db, work_order.id),
    )


# ── Convert ──────────────────────────────────────────────────────────────────


def convert_quote_to_work_order(
    db: sqlite3.Connection,
    owner_id: str,
    quote_id: str,
    title: str,
    description: str = "",
    scheduled_date=None,
    scheduled_start_time=None,
    scheduled_end_time=None,
    address: str | None = None,
    notes: str | None = None,
    equipment_ids: list[str] | None = None,
) -> WorkOrderDetail:
    """Create a SCHEDULED work order from an APPROVED quote."""
    logger.info("Converting quote %s to work order for owner %s", quote_id, owner_id)

    quote = quotes_mod.find_quote(db, owner_id, quote_id).require()

    if quote.status != "APPROVED":
        _reject(f"Quote must be APPROVED to convert to work order. Current status: {quote.status}")

    existing = work_orders_mod.get_work_order_for_quote(db, quote_id)
    if existing:
        _reject(f"Quote {quote_id} already has a work order: {existing.id}")

    if equipment_ids and clients_mod.resolve_client_equipments(
        db, owner_id, quote.client_id, equipment_ids
    ) is None:
        _reject("One or more equipments not found or do not belong to this client")

    try:
        work_order = work_orders_mod.create_work_order(
            db,
            owner_id,
            quote.client_id,
            title,
            description=description,
            quote_id=quote.id,
            scheduled_date=scheduled_date,
            scheduled_start_time=scheduled_start_time,
            scheduled_end_time=scheduled_end_time,
            address=address,
            notes=notes,
            equipment_ids=equipment_ids,
        )
    except sqlite3.IntegrityError as e:
        # Lost a race with a concurrent conversion of the same quote.
        existing = work_orders_mod.get_work_order_for_quote(db, quote_id)
        if existing is None:
            raise
        logger.warning("Quote %s converted concurrently into %s", quote_id, existing.id)
        raise PreconditionFailedError(
            f"Quote {quote_id} already has a work order: {existing.id}"
        ) from e

    logger.info("Work order %s created from quote %s", work_order.id, quote_id)
    return _detail(db, work_order)


# ── Complete ─────────────────────────────────────────────────────────────────


def complete_work_order(
    db: sqlite3.Connection,
    owner_id: str,
    work_order_id: str,
    skip_checklist_validation: bool = False,
    notes: str | None = None,
) -> CompletionResult:
    """Mark a work order DONE, gated by its checklists, and suggest a payment."""
    logger.info("Completing work order %s for owner %s", work_order_id, owner_id)

    work_order = work_orders_mod.find_work_order(db, owner_id, work_order_id).require()

    if work_order.status == "DONE":
        _reject("Work order is already completed")
    if work_order.status == "CANCELED":
        _reject("Cannot complete a canceled work order")

    if not skip_checklist_validation:
        for checklist in get_work_order_checklists(db, work_order_id):
            gate = is_complete(checklist)
            if not gate.ok:
                _reject(
                    f'Checklist "{checklist.title}" has {len(gate.missing_titles)} '
                    f"unanswered required items: {', '.join(gate.missing_titles)}"
                )

    if notes and work_order.notes:
        merged_notes = f"{work_order.notes}\n---\n{notes}"
    else:
        merged_notes = notes or work_order.notes

    now = format_dt(utcnow())
    cursor = db.execute(
        """UPDATE work_orders
           SET status = 'DONE', execution_end = ?, execution_start = COALESCE(execution_start, ?),
               notes = ?, updated_at = ?
           WHERE id = ? AND status NOT IN ('DONE', 'CANCELED')""",
        (now, now, merged_notes, now, work_order_id),
    )
    if cursor.rowcount == 0:
        db.rollback()
        _reject("Work order is already completed")
    db.commit()
    logger.info("Work order %s completed", work_order_id)

    detail = _detail(db, work_orders_mod.find_work_order(db, owner_id, work_order_id).require())
    has_pending = any(p.status == "PENDING" for p in list_work_order_payments(db, work_order_id))
    suggestion = PaymentSuggestion(
        can_generate_payment=not has_pending,
        suggested_value=detail.quote.total_value if detail.quote else None,
        has_quote=detail.quote is not None,
        quote_id=detail.quote.id if detail.quote else None,
    )
    return CompletionResult(work_order=detail, payment_suggestion=suggestion)


# ── Generate payment ─────────────────────────────────────────────────────────


def generate_payment(
    db: sqlite3.Connection,
    owner_id: str,
    work_order_id: str,
    billing_type: str,
    due_date: date | str,
    value=None,
    description: str | None = None,
    issuer: PaymentIssuer = create_payment,
) -> Payment:
    """Bill a DONE work order through the payment issuer.

    An explicit value takes precedence over the linked quote's total.
    """
    logger.info("Generating payment for work order %s", work_order_id)

    work_order = work_orders_mod.find_work_order(db, owner_id, work_order_id).require()

    if work_order.status != "DONE":
        _reject(f"Work order must be DONE to generate payment. Current status: {work_order.status}")

    quote = quotes_mod.load_quote(db, work_order.quote_id) if work_order.quote_id else None
    if value is not None:
        amount = to_decimal(value)
    elif quote is not None:
        amount = quote.total_value
    else:
        _reject("Value is required when work order has no associated quote")

    pending = next(
        (p for p in list_work_order_payments(db, work_order_id) if p.status == "PENDING"),
        None,
    )
    if pending:
        _reject(f"Work order already has a pending payment: {pending.id}")

    try:
        payment = issuer(
            db,
            owner_id,
            client_id=work_order.client_id,
            work_order_id=work_order.id,
            quote_id=work_order.quote_id,
            billing_type=billing_type,
            value=amount,
            due_date=due_date,
            description=description or f"Charge for work order #{work_order.id[:8]}",
        )
    except sqlite3.IntegrityError as e:
        # Lost a race with a concurrent payment for the same work order.
        logger.warning("Concurrent pending payment for work order %s", work_order_id)
        pending = next(
            (p for p in list_work_order_payments(db, work_order_id) if p.status == "PENDING"),
            None,
        )
        message = "Work order already has a pending payment"
        raise PreconditionFailedError(f"{message}: {pending.id}" if pending else message) from e

    logger.info("Payment %s generated for work order %s", payment.id, work_order_id)
    return payment


# ── Read-models ──────────────────────────────────────────────────────────────


def get_client_timeline(
    db: sqlite3.Connection,
    owner_id: str,
    client_id: str,
) -> list[TimelineEvent]:
    """All activity of a client across quotes, work orders, checklists and payments."""
    logger.info("Building timeline for client %s", client_id)

    clients_mod.find_client(db, owner_id, client_id).require(
        ForbiddenError,
        f"Client with ID {client_id} not found or does not belong to you",
    )

    quotes = quotes_mod.list_client_quotes(db, owner_id, client_id)
    work_orders = work_orders_mod.list_client_work_orders(db, owner_id, client_id)
    payments = list_client_payments(db, owner_id, client_id)

    return timeline.merge(
        (event for quote in quotes for event in timeline.quote_events(quote)),
        (
            event
            for wo in work_orders
            for event in timeline.work_order_events(wo, get_work_order_checklists(db, wo.id))
        ),
        (event for payment in payments for event in timeline.payment_events(payment)),
    )


def get_work_order_timeline(
    db: sqlite3.Connection,
    owner_id: str,
    work_order_id: str,
) -> list[TimelineEvent]:
    """Activity of a single work order: lifecycle, checklists and payments."""
    work_order = work_orders_mod.find_work_order(db, owner_id, work_order_id).require()
    checklists = get_work_order_checklists(db, work_order_id)
    payments = list_work_order_payments(db, work_order_id)
    return timeline.merge(
        timeline.work_order_events(work_order, checklists, include_canceled=True),
        (event for payment in payments for event in timeline.payment_events(payment)),
    )


def get_work_order_extract(
    db: sqlite3.Connection,
    owner_id: str,
    work_order_id: str,
) -> WorkOrderExtract:
    """Work order with client, quote, payments, checklists, equipment and totals."""
    work_order = work_orders_mod.find_work_order(db, owner_id, work_order_id).require()
    detail = _detail(db, work_order)
    return build_extract(
        work_order=work_order,
        client=detail.client,
        quote=detail.quote,
        payments=list_work_order_payments(db, work_order_id),
        checklists=get_work_order_checklists(db, work_order_id),
        equipments=detail.equipments,
    )
