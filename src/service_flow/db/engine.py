"""SQLite database connection management and schema initialization."""

import sqlite3
from contextlib import contextmanager
from pathlib import Path

NOW = "(strftime('%Y-%m-%dT%H:%M:%f', 'now'))"

SCHEMA = f"""
CREATE TABLE IF NOT EXISTS clients (
    id TEXT PRIMARY KEY,
    owner_id TEXT NOT NULL,
    name TEXT NOT NULL,
    email TEXT,
    phone TEXT,
    address TEXT,
    created_at TEXT DEFAULT {NOW},
    updated_at TEXT DEFAULT {NOW},
    deleted_at TEXT
);

CREATE TABLE IF NOT EXISTS equipments (
    id TEXT PRIMARY KEY,
    owner_id TEXT NOT NULL,
    client_id TEXT NOT NULL REFERENCES clients(id),
    type TEXT NOT NULL,
    brand TEXT,
    model TEXT,
    serial_number TEXT,
    created_at TEXT DEFAULT {NOW},
    deleted_at TEXT
);

CREATE TABLE IF NOT EXISTS quotes (
    id TEXT PRIMARY KEY,
    owner_id TEXT NOT NULL,
    client_id TEXT NOT NULL REFERENCES clients(id),
    status TEXT DEFAULT 'DRAFT' CHECK (status IN ('DRAFT', 'SENT', 'APPROVED', 'REJECTED', 'EXPIRED')),
    total_value TEXT NOT NULL DEFAULT '0',
    discount_value TEXT NOT NULL DEFAULT '0',
    notes TEXT,
    created_at TEXT DEFAULT {NOW},
    updated_at TEXT DEFAULT {NOW},
    deleted_at TEXT
);

CREATE TABLE IF NOT EXISTS quote_items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    quote_id TEXT NOT NULL REFERENCES quotes(id) ON DELETE CASCADE,
    position INTEGER NOT NULL,
    name TEXT NOT NULL,
    quantity TEXT NOT NULL,
    unit_price TEXT NOT NULL,
    total_price TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS work_orders (
    id TEXT PRIMARY KEY,
    owner_id TEXT NOT NULL,
    client_id TEXT NOT NULL REFERENCES clients(id),
    quote_id TEXT REFERENCES quotes(id),
    status TEXT DEFAULT 'SCHEDULED' CHECK (status IN ('SCHEDULED', 'IN_PROGRESS', 'DONE', 'CANCELED')),
    title TEXT NOT NULL,
    description TEXT DEFAULT '',
    address TEXT,
    notes TEXT,
    scheduled_date TEXT,
    scheduled_start_time TEXT,
    scheduled_end_time TEXT,
    execution_start TEXT,
    execution_end TEXT,
    created_at TEXT DEFAULT {NOW},
    updated_at TEXT DEFAULT {NOW},
    deleted_at TEXT
);

CREATE TABLE IF NOT EXISTS work_order_equipments (
    work_order_id TEXT NOT NULL REFERENCES work_orders(id) ON DELETE CASCADE,
    equipment_id TEXT NOT NULL REFERENCES equipments(id),
    PRIMARY KEY (work_order_id, equipment_id)
);

CREATE TABLE IF NOT EXISTS checklist_templates (
    id TEXT PRIMARY KEY,
    owner_id TEXT NOT NULL,
    name TEXT NOT NULL,
    created_at TEXT DEFAULT {NOW}
);

CREATE TABLE IF NOT EXISTS checklist_template_items (
    id TEXT PRIMARY KEY,
    template_id TEXT NOT NULL REFERENCES checklist_templates(id) ON DELETE CASCADE,
    position INTEGER NOT NULL,
    title TEXT NOT NULL,
    type TEXT NOT NULL CHECK (type IN ('TEXT', 'NUMERIC', 'BOOLEAN', 'PHOTO', 'SELECT')),
    is_required INTEGER NOT NULL DEFAULT 0,
    options TEXT
);

CREATE TABLE IF NOT EXISTS work_order_checklists (
    id TEXT PRIMARY KEY,
    work_order_id TEXT NOT NULL REFERENCES work_orders(id) ON DELETE CASCADE,
    template_id TEXT NOT NULL REFERENCES checklist_templates(id),
    title TEXT NOT NULL,
    created_at TEXT DEFAULT {NOW},
    updated_at TEXT DEFAULT {NOW}
);

CREATE TABLE IF NOT EXISTS checklist_answers (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    checklist_id TEXT NOT NULL REFERENCES work_order_checklists(id) ON DELETE CASCADE,
    template_item_id TEXT NOT NULL REFERENCES checklist_template_items(id),
    type TEXT NOT NULL,
    value_text TEXT,
    value_number REAL,
    value_boolean INTEGER,
    value_photo TEXT,
    value_select TEXT,
    created_at TEXT DEFAULT {NOW},
    UNIQUE(checklist_id, template_item_id)
);

CREATE TABLE IF NOT EXISTS payments (
    id TEXT PRIMARY KEY,
    owner_id TEXT NOT NULL,
    client_id TEXT NOT NULL REFERENCES clients(id),
    work_order_id TEXT REFERENCES work_orders(id),
    quote_id TEXT REFERENCES quotes(id),
    value TEXT NOT NULL,
    billing_type TEXT NOT NULL CHECK (billing_type IN ('PIX', 'BOLETO', 'CREDIT_CARD', 'UNDEFINED')),
    status TEXT DEFAULT 'PENDING' CHECK (status IN (
        'PENDING', 'CONFIRMED', 'RECEIVED', 'RECEIVED_IN_CASH', 'OVERDUE', 'REFUNDED', 'DELETED'
    )),
    description TEXT,
    due_date TEXT NOT NULL,
    paid_at TEXT,
    created_at TEXT DEFAULT {NOW},
    updated_at TEXT DEFAULT {NOW}
);
"""

# Uniqueness invariants enforced by the store: one work order per quote and
# at most one pending payment per work order.
INDEXES = """
CREATE UNIQUE INDEX IF NOT EXISTS ux_work_orders_quote
    ON work_orders(quote_id) WHERE quote_id IS NOT NULL;

CREATE UNIQUE INDEX IF NOT EXISTS ux_payments_pending_work_order
    ON payments(work_order_id) WHERE status = 'PENDING' AND work_order_id IS NOT NULL;

CREATE INDEX IF NOT EXISTS ix_quotes_client ON quotes(client_id, owner_id);
CREATE INDEX IF NOT EXISTS ix_work_orders_client ON work_orders(client_id, owner_id);
CREATE INDEX IF NOT EXISTS ix_payments_client ON payments(client_id, owner_id);
CREATE INDEX IF NOT EXISTS ix_payments_work_order ON payments(work_order_id);
"""


def init_db(db_path: Path) -> sqlite3.Connection:
    """Initialize the database, creating tables if needed."""
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    conn.executescript(SCHEMA)
    conn.executescript(INDEXES)
    conn.commit()
    return conn


@contextmanager
def get_db(db_path: Path):
    """Context manager for database connections."""
    conn = init_db(db_path)
    try:
        yield conn
    finally:
        conn.close()
