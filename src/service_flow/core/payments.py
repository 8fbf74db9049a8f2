"""Payment records and the local payment issuer."""

import logging
import sqlite3
from datetime import date, datetime
from typing import Callable

from service_flow.core.clients import find_client
from service_flow.core.errors import PreconditionFailedError, ValidationError
from service_flow.core.store import (
    Lookup,
    find_owned,
    format_date,
    format_dt,
    new_id,
    parse_date,
    parse_dt,
    to_decimal,
    utcnow,
)
from service_flow.core.work_orders import find_work_order
from service_flow.db.models import BILLING_TYPES, Payment

logger = logging.getLogger(__name__)

# Signature shared by every payment issuer: (db, owner_id, **billing) -> Payment
PaymentIssuer = Callable[..., Payment]


def create_payment(
    db: sqlite3.Connection,
    owner_id: str,
    *,
    client_id: str,
    billing_type: str,
    value,
    due_date: date | str,
    work_order_id: str | None = None,
    quote_id: str | None = None,
    description: str | None = None,
) -> Payment:
    """Issue a PENDING payment record for a client.

    Raises sqlite3.IntegrityError if the work order already holds a pending payment.
    """
    if billing_type not in BILLING_TYPES:
        raise ValidationError(f"Invalid billing type: {billing_type}")
    amount = to_decimal(value)
    if not amount.is_finite() or amount <= 0:
        raise ValidationError(f"Payment value must be positive: {value}")

    find_client(db, owner_id, client_id).require()
    if work_order_id:
        find_work_order(db, owner_id, work_order_id).require()
    if quote_id:
        # A quote soft-deleted after conversion still backs the work order it produced.
        find_owned(db, "quote", quote_id, owner_id, include_deleted=True).require()

    payment_id = new_id()
    try:
        db.execute(
            """INSERT INTO payments (
                   id, owner_id, client_id, work_order_id, quote_id, value, billing_type,
                   status, description, due_date)
               VALUES (?, ?, ?, ?, ?, ?, ?, 'PENDING', ?, ?)""",
            (
                payment_id, owner_id, client_id, work_order_id, quote_id, str(amount),
                billing_type, description, format_date(due_date),
            ),
        )
        db.commit()
    except sqlite3.IntegrityError:
        db.rollback()
        raise
    logger.info("Payment %s issued for client %s (%s %s)", payment_id, client_id, billing_type, amount)
    return find_payment(db, owner_id, payment_id).require()


def find_payment(db: sqlite3.Connection, owner_id: str, payment_id: str) -> Lookup:
    return find_owned(db, "payment", payment_id, owner_id, _row_to_payment)


def list_work_order_payments(db: sqlite3.Connection, work_order_id: str) -> list[Payment]:
    """Payments issued against a work order, newest first."""
    rows = db.execute(
        "SELECT * FROM payments WHERE work_order_id = ? ORDER BY created_at DESC, id",
        (work_order_id,),
    ).fetchall()
    return [_row_to_payment(r) for r in rows]


def list_client_payments(db: sqlite3.Connection, owner_id: str, client_id: str) -> list[Payment]:
    """Payments of a client, newest first."""
    rows = db.execute(
        """SELECT * FROM payments WHERE client_id = ? AND owner_id = ?
           ORDER BY created_at DESC, id""",
        (client_id, owner_id),
    ).fetchall()
    return [_row_to_payment(r) for r in rows]


def mark_payment_received(
    db: sqlite3.Connection,
    owner_id: str,
    payment_id: str,
    paid_at: datetime | None = None,
) -> Payment:
    """Record a confirmed receipt, as reported by the payment gateway."""
    payment = find_payment(db, owner_id, payment_id).require()
    if payment.status not in ("PENDING", "CONFIRMED", "OVERDUE"):
        raise PreconditionFailedError(
            f"Cannot receive a payment with status {payment.status}"
        )
    paid = format_dt(paid_at or utcnow())
    db.execute(
        "UPDATE payments SET status = 'RECEIVED', paid_at = ?, updated_at = ? WHERE id = ?",
        (paid, format_dt(utcnow()), payment_id),
    )
    db.commit()
    logger.info("Payment %s received at %s", payment_id, paid)
    return find_payment(db, owner_id, payment_id).require()


def mark_payment_overdue(db: sqlite3.Connection, owner_id: str, payment_id: str) -> Payment:
    payment = find_payment(db, owner_id, payment_id).require()
    if payment.status != "PENDING":
        raise PreconditionFailedError(
            f"Only PENDING payments can become overdue. Current status: {payment.status}"
        )
    db.execute(
        "UPDATE payments SET status = 'OVERDUE', updated_at = ? WHERE id = ?",
        (format_dt(utcnow()), payment_id),
    )
    db.commit()
    return find_payment(db, owner_id, payment_id).require()


def _row_to_payment(row: sqlite3.Row) -> Payment:
    return Payment(
        id=row["id"],
        owner_id=row["owner_id"],
        client_id=row["client_id"],
        work_order_id=row["work_order_id"],
        quote_id=row["quote_id"],
        value=to_decimal(row["value"]),
        billing_type=row["billing_type"],
        status=row["status"],
        description=row["description"],
        due_date=parse_date(row["due_date"]),
        paid_at=parse_dt(row["paid_at"]),
        created_at=parse_dt(row["created_at"]),
        updated_at=parse_dt(row["updated_at"]),
    )
