"""Store helpers shared by the entity modules: ids, timestamps, money and owned lookups."""

import sqlite3
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable

from service_flow.core.errors import NotFoundError, ValidationError

FOUND = "found"
NOT_FOUND = "not_found"
NOT_OWNED = "not_owned"

# kind -> (table, label used in error messages, soft-deletable)
KINDS = {
    "client": ("clients", "Client", True),
    "equipment": ("equipments", "Equipment", True),
    "quote": ("quotes", "Quote", True),
    "work_order": ("work_orders", "Work order", True),
    "checklist_template": ("checklist_templates", "Checklist template", False),
    "payment": ("payments", "Payment", False),
}


@dataclass
class Lookup:
    """Result of an owned lookup: found-and-owned, not found, or not owned."""

    status: str
    kind: str
    record_id: str
    record: Any = None

    @property
    def found(self) -> bool:
        return self.status == FOUND

    def require(self, error: type[NotFoundError] = NotFoundError, message: str | None = None):
        """Return the record, or raise `error` for absent and foreign records alike."""
        if self.status == FOUND:
            return self.record
        label = KINDS[self.kind][1]
        raise error(message or f"{label} with ID {self.record_id} not found")


def find_owned(
    db: sqlite3.Connection,
    kind: str,
    record_id: str,
    owner_id: str,
    mapper: Callable[[sqlite3.Row], Any] | None = None,
    include_deleted: bool = False,
) -> Lookup:
    """Look up a record by id and classify it against the caller's ownership.

    Soft-deleted records are reported as not found unless `include_deleted` is set.
    """
    table, _, soft_delete = KINDS[kind]
    query = f"SELECT * FROM {table} WHERE id = ?"
    if soft_delete and not include_deleted:
        query += " AND deleted_at IS NULL"
    row = db.execute(query, (record_id,)).fetchone()
    if not row:
        return Lookup(NOT_FOUND, kind, record_id)
    if row["owner_id"] != owner_id:
        return Lookup(NOT_OWNED, kind, record_id)
    return Lookup(FOUND, kind, record_id, mapper(row) if mapper else row)


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the form stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def format_dt(val: datetime | date | str | None) -> str | None:
    """Normalize a datetime, date or ISO string for storage."""
    if val is None:
        return None
    if isinstance(val, str):
        try:
            val = datetime.fromisoformat(val)
        except ValueError as e:
            raise ValidationError(f"Invalid date: {val}") from e
    if isinstance(val, datetime):
        if val.tzinfo is not None:
            val = val.astimezone(timezone.utc).replace(tzinfo=None)
        return val.isoformat(timespec="milliseconds")
    return datetime(val.year, val.month, val.day).isoformat(timespec="milliseconds")


def format_date(val: date | str) -> str:
    if isinstance(val, datetime):
        return val.date().isoformat()
    if isinstance(val, date):
        return val.isoformat()
    try:
        return date.fromisoformat(val).isoformat()
    except ValueError as e:
        raise ValidationError(f"Invalid date: {val}") from e


def parse_dt(val: str | None) -> datetime | None:
    if val is None:
        return None
    return datetime.fromisoformat(val)


def parse_date(val: str | None) -> date | None:
    if val is None:
        return None
    return date.fromisoformat(val[:10])


def to_decimal(val) -> Decimal:
    """Parse a money or quantity value without going through binary floats."""
    if isinstance(val, Decimal):
        return val
    try:
        return Decimal(str(val))
    except InvalidOperation as e:
        raise ValidationError(f"Invalid amount: {val}") from e


def to_number(val: Decimal | None) -> float | None:
    """Convert a stored decimal to a plain number at a read-model boundary."""
    if val is None:
        return None
    return float(val)
