"""Work order records, equipment bindings and scheduling transitions."""

import logging
import sqlite3

from service_flow.core.clients import find_client, resolve_client_equipments
from service_flow.core.errors import PreconditionFailedError, ValidationError
from service_flow.core.store import Lookup, find_owned, format_dt, new_id, parse_dt, utcnow
from service_flow.db.models import WorkOrder

logger = logging.getLogger(__name__)


def create_work_order(
    db: sqlite3.Connection,
    owner_id: str,
    client_id: str,
    title: str,
    description: str = "",
    quote_id: str | None = None,
    scheduled_date=None,
    scheduled_start_time=None,
    scheduled_end_time=None,
    address: str | None = None,
    notes: str | None = None,
    equipment_ids: list[str] | None = None,
) -> WorkOrder:
    """Create a SCHEDULED work order with its equipment bindings.

    Every equipment id must belong to the client; otherwise nothing is written.
    Raises sqlite3.IntegrityError if the quote already has a work order.
    """
    if not title or not title.strip():
        raise ValidationError("Work order title is required")
    client = find_client(db, owner_id, client_id).require()

    equipments = []
    if equipment_ids:
        equipments = resolve_client_equipments(db, owner_id, client_id, equipment_ids)
        if equipments is None:
            raise PreconditionFailedError(
                "One or more equipments not found or do not belong to this client"
            )

    work_order_id = new_id()
    try:
        db.execute(
            """INSERT INTO work_orders (
                   id, owner_id, client_id, quote_id, status, title, description, address, notes,
                   scheduled_date, scheduled_start_time, scheduled_end_time)
               VALUES (?, ?, ?, ?, 'SCHEDULED', ?, ?, ?, ?, ?, ?, ?)""",
            (
                work_order_id, owner_id, client_id, quote_id, title.strip(), description,
                address or client.address, notes,
                format_dt(scheduled_date), format_dt(scheduled_start_time),
                format_dt(scheduled_end_time),
            ),
        )
        for equipment in equipments:
            db.execute(
                "INSERT INTO work_order_equipments (work_order_id, equipment_id) VALUES (?, ?)",
                (work_order_id, equipment.id),
            )
        db.commit()
    except sqlite3.IntegrityError:
        db.rollback()
        raise
    return find_work_order(db, owner_id, work_order_id).require()


def find_work_order(db: sqlite3.Connection, owner_id: str, work_order_id: str) -> Lookup:
    """Owned lookup of a work order with its equipment ids loaded."""
    lookup = find_owned(db, "work_order", work_order_id, owner_id, _row_to_work_order)
    if lookup.found:
        lookup.record.equipment_ids = _equipment_ids(db, work_order_id)
    return lookup


def get_work_order_for_quote(db: sqlite3.Connection, quote_id: str) -> WorkOrder | None:
    """The work order derived from a quote, if any (soft-deleted ones included)."""
    row = db.execute(
        "SELECT * FROM work_orders WHERE quote_id = ?", (quote_id,)
    ).fetchone()
    if not row:
        return None
    return _row_to_work_order(row)


def list_client_work_orders(
    db: sqlite3.Connection,
    owner_id: str,
    client_id: str,
    status: str | None = None,
) -> list[WorkOrder]:
    """List a client's work orders, newest first."""
    query = """SELECT * FROM work_orders
               WHERE client_id = ? AND owner_id = ? AND deleted_at IS NULL"""
    params: list = [client_id, owner_id]
    if status:
        query += " AND status = ?"
        params.append(status)
    query += " ORDER BY created_at DESC"
    rows = db.execute(query, params).fetchall()
    work_orders = []
    for row in rows:
        work_order = _row_to_work_order(row)
        work_order.equipment_ids = _equipment_ids(db, work_order.id)
        work_orders.append(work_order)
    return work_orders


def start_work_order(db: sqlite3.Connection, owner_id: str, work_order_id: str) -> WorkOrder:
    """Move a SCHEDULED work order to IN_PROGRESS and record the execution start."""
    work_order = find_work_order(db, owner_id, work_order_id).require()
    if work_order.status != "SCHEDULED":
        raise PreconditionFailedError(
            f"Only SCHEDULED work orders can be started. Current status: {work_order.status}"
        )
    now = format_dt(utcnow())
    db.execute(
        """UPDATE work_orders
           SET status = 'IN_PROGRESS', execution_start = COALESCE(execution_start, ?), updated_at = ?
           WHERE id = ?""",
        (now, now, work_order_id),
    )
    db.commit()
    logger.info("Work order %s started", work_order_id)
    return find_work_order(db, owner_id, work_order_id).require()


def cancel_work_order(db: sqlite3.Connection, owner_id: str, work_order_id: str) -> WorkOrder:
    """Cancel a work order that is not yet DONE."""
    work_order = find_work_order(db, owner_id, work_order_id).require()
    if work_order.status in ("DONE", "CANCELED"):
        raise PreconditionFailedError(
            f"Cannot cancel a work order with status {work_order.status}"
        )
    db.execute(
        "UPDATE work_orders SET status = 'CANCELED', updated_at = ? WHERE id = ?",
        (format_dt(utcnow()), work_order_id),
    )
    db.commit()
    logger.info("Work order %s canceled", work_order_id)
    return find_work_order(db, owner_id, work_order_id).require()


def _equipment_ids(db: sqlite3.Connection, work_order_id: str) -> list[str]:
    rows = db.execute(
        "SELECT equipment_id FROM work_order_equipments WHERE work_order_id = ?",
        (work_order_id,),
    ).fetchall()
    return [r["equipment_id"] for r in rows]


def _row_to_work_order(row: sqlite3.Row) -> WorkOrder:
    return WorkOrder(
        id=row["id"],
        owner_id=row["owner_id"],
        client_id=row["client_id"],
        quote_id=row["quote_id"],
        status=row["status"],
        title=row["title"],
        description=row["description"] or "",
        address=row["address"],
        notes=row["notes"],
        scheduled_date=parse_dt(row["scheduled_date"]),
        scheduled_start_time=parse_dt(row["scheduled_start_time"]),
        scheduled_end_time=parse_dt(row["scheduled_end_time"]),
        execution_start=parse_dt(row["execution_start"]),
        execution_end=parse_dt(row["execution_end"]),
        created_at=parse_dt(row["created_at"]),
        updated_at=parse_dt(row["updated_at"]),
        deleted_at=parse_dt(row["deleted_at"]),
    )
