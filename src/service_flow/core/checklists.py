"""Checklist templates, work order checklists, answers and the completion gate."""

import json
import sqlite3
from dataclasses import dataclass, field

from service_flow.core.errors import NotFoundError, PreconditionFailedError, ValidationError
from service_flow.core.store import Lookup, find_owned, format_dt, new_id, parse_dt, utcnow
from service_flow.core.work_orders import find_work_order
from service_flow.db.models import (
    CHECKLIST_ITEM_TYPES,
    Checklist,
    ChecklistAnswer,
    ChecklistTemplate,
    ChecklistTemplateItem,
)

_VALUE_COLUMNS = {
    "TEXT": "value_text",
    "NUMERIC": "value_number",
    "BOOLEAN": "value_boolean",
    "PHOTO": "value_photo",
    "SELECT": "value_select",
}


@dataclass
class GateResult:
    ok: bool
    missing_titles: list[str] = field(default_factory=list)


def is_complete(checklist: Checklist) -> GateResult:
    """Report whether every required template item of a checklist has an answer."""
    if checklist.template is None:
        raise ValueError(f"Checklist {checklist.id} has no template loaded")
    answered = {a.template_item_id for a in checklist.answers}
    missing = [
        item.title
        for item in checklist.template.items
        if item.is_required and item.id not in answered
    ]
    return GateResult(ok=not missing, missing_titles=missing)


# ── Templates ────────────────────────────────────────────────────────────────


def create_template(
    db: sqlite3.Connection,
    owner_id: str,
    name: str,
    items: list[dict],
) -> ChecklistTemplate:
    """Create a checklist template.

    Each item dict has 'title' and optionally 'type' (default TEXT),
    'is_required' and 'options' (for SELECT items).
    """
    if not name.strip():
        raise ValidationError("Template name is required")
    for item in items:
        if item.get("type", "TEXT") not in CHECKLIST_ITEM_TYPES:
            raise ValidationError(f"Invalid checklist item type: {item.get('type')}")

    template_id = new_id()
    db.execute(
        "INSERT INTO checklist_templates (id, owner_id, name) VALUES (?, ?, ?)",
        (template_id, owner_id, name.strip()),
    )
    for position, item in enumerate(items):
        item_type = item.get("type", "TEXT")
        db.execute(
            """INSERT INTO checklist_template_items
                   (id, template_id, position, title, type, is_required, options)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                new_id(), template_id, position, item["title"], item_type,
                1 if item.get("is_required") else 0,
                json.dumps(item["options"]) if item.get("options") else None,
            ),
        )
    db.commit()
    return find_template(db, owner_id, template_id).require()


def find_template(db: sqlite3.Connection, owner_id: str, template_id: str) -> Lookup:
    lookup = find_owned(db, "checklist_template", template_id, owner_id, _row_to_template)
    if lookup.found:
        lookup.record.items = _template_items(db, template_id)
    return lookup


def list_templates(db: sqlite3.Connection, owner_id: str) -> list[ChecklistTemplate]:
    rows = db.execute(
        "SELECT * FROM checklist_templates WHERE owner_id = ? ORDER BY name",
        (owner_id,),
    ).fetchall()
    templates = []
    for row in rows:
        template = _row_to_template(row)
        template.items = _template_items(db, template.id)
        templates.append(template)
    return templates


# ── Work order checklists ────────────────────────────────────────────────────


def attach_checklist(
    db: sqlite3.Connection,
    owner_id: str,
    work_order_id: str,
    template_id: str,
) -> Checklist:
    """Attach a template to a work order, snapshotting the template name as title."""
    work_order = find_work_order(db, owner_id, work_order_id).require()
    if work_order.status in ("DONE", "CANCELED"):
        raise PreconditionFailedError(
            f"Cannot attach a checklist to a {work_order.status} work order"
        )
    template = find_template(db, owner_id, template_id).require()
    checklist_id = new_id()
    db.execute(
        """INSERT INTO work_order_checklists (id, work_order_id, template_id, title)
           VALUES (?, ?, ?, ?)""",
        (checklist_id, work_order_id, template_id, template.name),
    )
    db.commit()
    return get_checklist(db, owner_id, work_order_id, checklist_id)


def get_checklist(
    db: sqlite3.Connection,
    owner_id: str,
    work_order_id: str,
    checklist_id: str,
) -> Checklist:
    """Get a checklist of an owned work order, with template and answers."""
    find_work_order(db, owner_id, work_order_id).require()
    row = db.execute(
        "SELECT * FROM work_order_checklists WHERE id = ? AND work_order_id = ?",
        (checklist_id, work_order_id),
    ).fetchone()
    if not row:
        raise NotFoundError(f"Checklist with ID {checklist_id} not found")
    return _load_checklist(db, row)


def get_work_order_checklists(db: sqlite3.Connection, work_order_id: str) -> list[Checklist]:
    """All checklists attached to a work order, oldest first, fully loaded."""
    rows = db.execute(
        "SELECT * FROM work_order_checklists WHERE work_order_id = ? ORDER BY created_at, id",
        (work_order_id,),
    ).fetchall()
    return [_load_checklist(db, r) for r in rows]


def submit_answers(
    db: sqlite3.Connection,
    owner_id: str,
    work_order_id: str,
    checklist_id: str,
    answers: list[dict],
) -> Checklist:
    """Record answers. Each dict has 'template_item_id' and 'value'.

    The value must match the item type. Answering an item again replaces the
    previous answer. All answers are validated before any is written.
    """
    checklist = get_checklist(db, owner_id, work_order_id, checklist_id)
    items = {item.id: item for item in checklist.template.items}

    rows = []
    for answer in answers:
        item = items.get(answer.get("template_item_id"))
        if item is None:
            raise ValidationError(
                f"Item with ID {answer.get('template_item_id')} does not exist in this template"
            )
        rows.append((item, _coerce_value(item, answer.get("value"))))

    now = format_dt(utcnow())
    for item, value in rows:
        column = _VALUE_COLUMNS[item.type]
        db.execute(
            f"""INSERT INTO checklist_answers (checklist_id, template_item_id, type, {column}, created_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(checklist_id, template_item_id) DO UPDATE SET
                    type = excluded.type,
                    value_text = excluded.value_text,
                    value_number = excluded.value_number,
                    value_boolean = excluded.value_boolean,
                    value_photo = excluded.value_photo,
                    value_select = excluded.value_select,
                    created_at = excluded.created_at""",
            (checklist_id, item.id, item.type, value, now),
        )
    db.execute(
        "UPDATE work_order_checklists SET updated_at = ? WHERE id = ?",
        (now, checklist_id),
    )
    db.commit()
    return get_checklist(db, owner_id, work_order_id, checklist_id)


def _coerce_value(item: ChecklistTemplateItem, value):
    if item.type == "BOOLEAN":
        if not isinstance(value, bool):
            raise ValidationError(f"BOOLEAN answer required for item \"{item.title}\"")
        return 1 if value else 0
    if item.type == "NUMERIC":
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValidationError(f"NUMERIC answer required for item \"{item.title}\"")
        return float(value)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{item.type} answer required for item \"{item.title}\"")
    if item.type == "SELECT" and item.options and value not in item.options:
        raise ValidationError(
            f"Value \"{value}\" is not a valid option for item \"{item.title}\""
        )
    return value


def _load_checklist(db: sqlite3.Connection, row: sqlite3.Row) -> Checklist:
    template_row = db.execute(
        "SELECT * FROM checklist_templates WHERE id = ?", (row["template_id"],)
    ).fetchone()
    template = _row_to_template(template_row)
    template.items = _template_items(db, template.id)
    answer_rows = db.execute(
        "SELECT * FROM checklist_answers WHERE checklist_id = ? ORDER BY id",
        (row["id"],),
    ).fetchall()
    return Checklist(
        id=row["id"],
        work_order_id=row["work_order_id"],
        template_id=row["template_id"],
        title=row["title"],
        template=template,
        answers=[_row_to_answer(a) for a in answer_rows],
        created_at=parse_dt(row["created_at"]),
        updated_at=parse_dt(row["updated_at"]),
    )


def _template_items(db: sqlite3.Connection, template_id: str) -> list[ChecklistTemplateItem]:
    rows = db.execute(
        "SELECT * FROM checklist_template_items WHERE template_id = ? ORDER BY position",
        (template_id,),
    ).fetchall()
    return [
        ChecklistTemplateItem(
            id=r["id"],
            title=r["title"],
            type=r["type"],
            is_required=bool(r["is_required"]),
            options=json.loads(r["options"]) if r["options"] else [],
            position=r["position"],
        )
        for r in rows
    ]


def _row_to_template(row: sqlite3.Row) -> ChecklistTemplate:
    return ChecklistTemplate(
        id=row["id"],
        owner_id=row["owner_id"],
        name=row["name"],
        created_at=parse_dt(row["created_at"]),
    )


def _row_to_answer(row: sqlite3.Row) -> ChecklistAnswer:
    value = row[_VALUE_COLUMNS[row["type"]]]
    if row["type"] == "BOOLEAN":
        value = bool(value)
    return ChecklistAnswer(
        id=row["id"],
        template_item_id=row["template_item_id"],
        type=row["type"],
        value=value,
        created_at=parse_dt(row["created_at"]),
    )
