"""Client and equipment records."""

import sqlite3

from service_flow.core.errors import NotFoundError, ValidationError
from service_flow.core.store import Lookup, find_owned, format_dt, new_id, parse_dt, utcnow
from service_flow.db.models import Client, Equipment


def create_client(
    db: sqlite3.Connection,
    owner_id: str,
    name: str,
    email: str | None = None,
    phone: str | None = None,
    address: str | None = None,
) -> Client:
    """Create a new client."""
    if not name.strip():
        raise ValidationError("Client name is required")
    client_id = new_id()
    db.execute(
        """INSERT INTO clients (id, owner_id, name, email, phone, address)
           VALUES (?, ?, ?, ?, ?, ?)""",
        (client_id, owner_id, name.strip(), email, phone, address),
    )
    db.commit()
    return find_client(db, owner_id, client_id).require()


def find_client(db: sqlite3.Connection, owner_id: str, client_id: str) -> Lookup:
    return find_owned(db, "client", client_id, owner_id, _row_to_client)


def list_clients(db: sqlite3.Connection, owner_id: str) -> list[Client]:
    rows = db.execute(
        "SELECT * FROM clients WHERE owner_id = ? AND deleted_at IS NULL ORDER BY name",
        (owner_id,),
    ).fetchall()
    return [_row_to_client(r) for r in rows]


def delete_client(db: sqlite3.Connection, owner_id: str, client_id: str) -> bool:
    """Soft-delete a client. Returns False if it was not found."""
    if not find_client(db, owner_id, client_id).found:
        return False
    now = format_dt(utcnow())
    db.execute(
        "UPDATE clients SET deleted_at = ?, updated_at = ? WHERE id = ?",
        (now, now, client_id),
    )
    db.commit()
    return True


# ── Equipment ────────────────────────────────────────────────────────────────


def create_equipment(
    db: sqlite3.Connection,
    owner_id: str,
    client_id: str,
    type: str,
    brand: str | None = None,
    model: str | None = None,
    serial_number: str | None = None,
) -> Equipment:
    """Register a piece of equipment for a client."""
    find_client(db, owner_id, client_id).require()
    equipment_id = new_id()
    db.execute(
        """INSERT INTO equipments (id, owner_id, client_id, type, brand, model, serial_number)
           VALUES (?, ?, ?, ?, ?, ?, ?)""",
        (equipment_id, owner_id, client_id, type, brand, model, serial_number),
    )
    db.commit()
    return find_equipment(db, owner_id, equipment_id).require()


def find_equipment(db: sqlite3.Connection, owner_id: str, equipment_id: str) -> Lookup:
    return find_owned(db, "equipment", equipment_id, owner_id, _row_to_equipment)


def list_equipments(db: sqlite3.Connection, owner_id: str, client_id: str) -> list[Equipment]:
    rows = db.execute(
        """SELECT * FROM equipments
           WHERE owner_id = ? AND client_id = ? AND deleted_at IS NULL
           ORDER BY created_at""",
        (owner_id, client_id),
    ).fetchall()
    return [_row_to_equipment(r) for r in rows]


def resolve_client_equipments(
    db: sqlite3.Connection,
    owner_id: str,
    client_id: str,
    equipment_ids: list[str],
) -> list[Equipment] | None:
    """Resolve every id to equipment of the given client, or return None.

    All-or-nothing: a single unresolved id fails the whole set.
    """
    wanted = list(dict.fromkeys(equipment_ids))
    if not wanted:
        return []
    placeholders = ", ".join("?" for _ in wanted)
    rows = db.execute(
        f"""SELECT * FROM equipments
            WHERE id IN ({placeholders}) AND owner_id = ? AND client_id = ?
              AND deleted_at IS NULL""",
        (*wanted, owner_id, client_id),
    ).fetchall()
    if len(rows) != len(wanted):
        return None
    by_id = {r["id"]: _row_to_equipment(r) for r in rows}
    return [by_id[i] for i in wanted]


def get_work_order_equipments(db: sqlite3.Connection, work_order_id: str) -> list[Equipment]:
    rows = db.execute(
        """SELECT e.* FROM equipments e
           JOIN work_order_equipments woe ON woe.equipment_id = e.id
           WHERE woe.work_order_id = ?
           ORDER BY e.created_at""",
        (work_order_id,),
    ).fetchall()
    return [_row_to_equipment(r) for r in rows]


def _row_to_client(row: sqlite3.Row) -> Client:
    return Client(
        id=row["id"],
        owner_id=row["owner_id"],
        name=row["name"],
        email=row["email"],
        phone=row["phone"],
        address=row["address"],
        created_at=parse_dt(row["created_at"]),
        updated_at=parse_dt(row["updated_at"]),
        deleted_at=parse_dt(row["deleted_at"]),
    )


def _row_to_equipment(row: sqlite3.Row) -> Equipment:
    return Equipment(
        id=row["id"],
        owner_id=row["owner_id"],
        client_id=row["client_id"],
        type=row["type"],
        brand=row["brand"],
        model=row["model"],
        serial_number=row["serial_number"],
        created_at=parse_dt(row["created_at"]),
        deleted_at=parse_dt(row["deleted_at"]),
    )


def load_client(db: sqlite3.Connection, client_id: str) -> Client:
    """Load a client referenced by an already-owned record."""
    row = db.execute("SELECT * FROM clients WHERE id = ?", (client_id,)).fetchone()
    if not row:
        raise NotFoundError(f"Client with ID {client_id} not found")
    return _row_to_client(row)
