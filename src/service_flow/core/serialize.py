"""JSON-ready dicts for the CLI, web and MCP surfaces."""

from datetime import date

from service_flow.core.extract import WorkOrderExtract
from service_flow.core.store import to_number


def _iso(val: date | None) -> str | None:
    return val.isoformat() if val else None


def client_dict(c) -> dict:
    return {
        "id": c.id,
        "name": c.name,
        "email": c.email,
        "phone": c.phone,
        "address": c.address,
    }


def equipment_dict(e) -> dict:
    return {
        "id": e.id,
        "type": e.type,
        "brand": e.brand,
        "model": e.model,
    }


def quote_summary_dict(q) -> dict:
    return {
        "id": q.id,
        "total_value": to_number(q.total_value),
        "status": q.status,
    }


def quote_dict(q) -> dict:
    return {
        "id": q.id,
        "client_id": q.client_id,
        "status": q.status,
        "total_value": to_number(q.total_value),
        "discount_value": to_number(q.discount_value),
        "items": [
            {
                "name": i.name,
                "quantity": to_number(i.quantity),
                "unit_price": to_number(i.unit_price),
                "total_price": to_number(i.total_price),
            }
            for i in q.items
        ],
        "created_at": _iso(q.created_at),
        "updated_at": _iso(q.updated_at),
    }


def work_order_dict(wo) -> dict:
    return {
        "id": wo.id,
        "client_id": wo.client_id,
        "quote_id": wo.quote_id,
        "status": wo.status,
        "title": wo.title,
        "description": wo.description,
        "address": wo.address,
        "notes": wo.notes,
        "scheduled_date": _iso(wo.scheduled_date),
        "scheduled_start_time": _iso(wo.scheduled_start_time),
        "scheduled_end_time": _iso(wo.scheduled_end_time),
        "execution_start": _iso(wo.execution_start),
        "execution_end": _iso(wo.execution_end),
        "equipment_ids": wo.equipment_ids,
        "created_at": _iso(wo.created_at),
        "updated_at": _iso(wo.updated_at),
    }


def work_order_detail_dict(detail) -> dict:
    """Work order enriched with client, quote summary and bound equipment."""
    d = work_order_dict(detail.work_order)
    d["client"] = client_dict(detail.client)
    d["quote"] = quote_summary_dict(detail.quote) if detail.quote else None
    d["equipments"] = [equipment_dict(e) for e in detail.equipments]
    return d


def completion_dict(result) -> dict:
    s = result.payment_suggestion
    return {
        "work_order": work_order_detail_dict(result.work_order),
        "payment_suggestion": {
            "can_generate_payment": s.can_generate_payment,
            "suggested_value": to_number(s.suggested_value),
            "has_quote": s.has_quote,
            "quote_id": s.quote_id,
        },
    }


def payment_dict(p) -> dict:
    return {
        "id": p.id,
        "client_id": p.client_id,
        "work_order_id": p.work_order_id,
        "quote_id": p.quote_id,
        "value": to_number(p.value),
        "billing_type": p.billing_type,
        "status": p.status,
        "description": p.description,
        "due_date": _iso(p.due_date),
        "paid_at": _iso(p.paid_at),
        "created_at": _iso(p.created_at),
    }


def checklist_dict(c) -> dict:
    return {
        "id": c.id,
        "work_order_id": c.work_order_id,
        "template_id": c.template_id,
        "title": c.title,
        "items": [
            {"id": i.id, "title": i.title, "type": i.type, "is_required": i.is_required}
            for i in (c.template.items if c.template else [])
        ],
        "answers": [
            {"template_item_id": a.template_item_id, "type": a.type, "value": a.value}
            for a in c.answers
        ],
        "created_at": _iso(c.created_at),
    }


def event_dict(e) -> dict:
    return {"type": e.type, "date": _iso(e.date), "data": e.data}


def extract_dict(x: WorkOrderExtract) -> dict:
    wo = x.work_order
    s = x.financial_summary
    return {
        "work_order": {
            "id": wo.id,
            "title": wo.title,
            "description": wo.description,
            "status": wo.status,
            "scheduled_date": _iso(wo.scheduled_date),
            "execution_start": _iso(wo.execution_start),
            "execution_end": _iso(wo.execution_end),
            "created_at": _iso(wo.created_at),
        },
        "client": client_dict(x.client),
        "quote": quote_dict(x.quote) if x.quote else None,
        "payments": [
            {
                "id": p.id,
                "value": to_number(p.value),
                "billing_type": p.billing_type,
                "status": p.status,
                "due_date": _iso(p.due_date),
                "paid_at": _iso(p.paid_at),
            }
            for p in x.payments
        ],
        "checklists": [
            {
                "id": c.id,
                "title": c.title,
                "answers_count": c.answers_count,
                "required_count": c.required_count,
            }
            for c in x.checklists
        ],
        "equipments": [equipment_dict(e) for e in x.equipments],
        "financial_summary": {
            "total_quoted": s.total_quoted,
            "total_paid": s.total_paid,
            "total_pending": s.total_pending,
            "balance": s.balance,
        },
    }
