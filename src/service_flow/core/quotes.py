"""Quote records and their status changes."""

import sqlite3
from decimal import Decimal

from service_flow.core.clients import find_client
from service_flow.core.errors import PreconditionFailedError, ValidationError
from service_flow.core.store import Lookup, find_owned, format_dt, new_id, parse_dt, to_decimal, utcnow
from service_flow.db.models import QUOTE_STATUSES, Quote, QuoteItem

# APPROVED, REJECTED and EXPIRED are final.
_TRANSITIONS = {
    "DRAFT": {"SENT", "APPROVED", "REJECTED", "EXPIRED"},
    "SENT": {"APPROVED", "REJECTED", "EXPIRED"},
}


def create_quote(
    db: sqlite3.Connection,
    owner_id: str,
    client_id: str,
    items: list[dict] | None = None,
    discount_value=0,
    total_value=None,
    notes: str | None = None,
    status: str = "DRAFT",
) -> Quote:
    """Create a quote. Each item dict has 'name', 'quantity' and 'unit_price'.

    The total is the sum of the line totals minus the discount unless
    `total_value` is given.
    """
    find_client(db, owner_id, client_id).require()
    if status not in QUOTE_STATUSES:
        raise ValidationError(f"Invalid quote status: {status}")

    lines = []
    for position, item in enumerate(items or []):
        quantity = to_decimal(item.get("quantity", 1))
        unit_price = to_decimal(item["unit_price"])
        if quantity <= 0 or unit_price < 0:
            raise ValidationError(f"Invalid quantity or price for item '{item['name']}'")
        lines.append(QuoteItem(item["name"], quantity, unit_price, quantity * unit_price, position))

    discount = to_decimal(discount_value)
    if total_value is None:
        total = sum((line.total_price for line in lines), Decimal("0")) - discount
    else:
        total = to_decimal(total_value)
    if total < 0:
        raise ValidationError("Quote total cannot be negative")

    quote_id = new_id()
    db.execute(
        """INSERT INTO quotes (id, owner_id, client_id, status, total_value, discount_value, notes)
           VALUES (?, ?, ?, ?, ?, ?, ?)""",
        (quote_id, owner_id, client_id, status, str(total), str(discount), notes),
    )
    for line in lines:
        db.execute(
            """INSERT INTO quote_items (quote_id, position, name, quantity, unit_price, total_price)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (quote_id, line.position, line.name, str(line.quantity),
             str(line.unit_price), str(line.total_price)),
        )
    db.commit()
    return find_quote(db, owner_id, quote_id).require()


def find_quote(db: sqlite3.Connection, owner_id: str, quote_id: str) -> Lookup:
    """Owned lookup of a quote with its line items loaded."""
    lookup = find_owned(db, "quote", quote_id, owner_id, _row_to_quote)
    if lookup.found:
        lookup.record.items = get_quote_items(db, quote_id)
    return lookup


def get_quote_items(db: sqlite3.Connection, quote_id: str) -> list[QuoteItem]:
    rows = db.execute(
        "SELECT * FROM quote_items WHERE quote_id = ? ORDER BY position",
        (quote_id,),
    ).fetchall()
    return [
        QuoteItem(
            name=r["name"],
            quantity=to_decimal(r["quantity"]),
            unit_price=to_decimal(r["unit_price"]),
            total_price=to_decimal(r["total_price"]),
            position=r["position"],
        )
        for r in rows
    ]


def list_client_quotes(db: sqlite3.Connection, owner_id: str, client_id: str) -> list[Quote]:
    """List a client's quotes, newest first, with line items."""
    rows = db.execute(
        """SELECT * FROM quotes
           WHERE client_id = ? AND owner_id = ? AND deleted_at IS NULL
           ORDER BY created_at DESC""",
        (client_id, owner_id),
    ).fetchall()
    quotes = []
    for row in rows:
        quote = _row_to_quote(row)
        quote.items = get_quote_items(db, quote.id)
        quotes.append(quote)
    return quotes


def update_quote_status(
    db: sqlite3.Connection,
    owner_id: str,
    quote_id: str,
    status: str,
) -> Quote:
    """Move a quote to a new status. Final statuses cannot change."""
    if status not in QUOTE_STATUSES:
        raise ValidationError(f"Invalid quote status: {status}")
    quote = find_quote(db, owner_id, quote_id).require()
    if status == quote.status:
        return quote
    if status not in _TRANSITIONS.get(quote.status, set()):
        raise PreconditionFailedError(
            f"Cannot change quote status from {quote.status} to {status}"
        )
    db.execute(
        "UPDATE quotes SET status = ?, updated_at = ? WHERE id = ?",
        (status, format_dt(utcnow()), quote_id),
    )
    db.commit()
    return find_quote(db, owner_id, quote_id).require()


def delete_quote(db: sqlite3.Connection, owner_id: str, quote_id: str) -> bool:
    """Soft-delete a quote. Returns False if it was not found."""
    if not find_quote(db, owner_id, quote_id).found:
        return False
    now = format_dt(utcnow())
    db.execute(
        "UPDATE quotes SET deleted_at = ?, updated_at = ? WHERE id = ?",
        (now, now, quote_id),
    )
    db.commit()
    return True


def load_quote(db: sqlite3.Connection, quote_id: str) -> Quote | None:
    """Load a quote referenced by an already-owned record."""
    row = db.execute("SELECT * FROM quotes WHERE id = ?", (quote_id,)).fetchone()
    if not row:
        return None
    quote = _row_to_quote(row)
    quote.items = get_quote_items(db, quote_id)
    return quote


def _row_to_quote(row: sqlite3.Row) -> Quote:
    return Quote(
        id=row["id"],
        owner_id=row["owner_id"],
        client_id=row["client_id"],
        status=row["status"],
        total_value=to_decimal(row["total_value"]),
        discount_value=to_decimal(row["discount_value"]),
        notes=row["notes"],
        created_at=parse_dt(row["created_at"]),
        updated_at=parse_dt(row["updated_at"]),
        deleted_at=parse_dt(row["deleted_at"]),
    )
