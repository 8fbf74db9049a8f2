"""Tests for the service flow: conversion, completion, billing and read-models."""

import sqlite3
import tempfile
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

import pytest

from service_flow.core import checklists as checklists_mod
from service_flow.core import clients as clients_mod
from service_flow.core import payments as payments_mod
from service_flow.core import quotes as quotes_mod
from service_flow.core import service_flow as flow
from service_flow.core import work_orders as work_orders_mod
from service_flow.core.errors import (
    ForbiddenError,
    NotFoundError,
    PreconditionFailedError,
    ValidationError,
)
from service_flow.db.engine import init_db
from service_flow.db.models import Payment

OWNER = "owner-1"
OTHER = "owner-2"


@pytest.fixture
def db():
    """Create a temporary SQLite database for testing."""
    with tempfile.TemporaryDirectory() as tmp:
        db_path = Path(tmp) / "test.db"
        conn = init_db(db_path)
        yield conn
        conn.close()


@pytest.fixture
def client(db):
    return clients_mod.create_client(db, OWNER, "Acme Cooling", address="12 Frost St")


def _approved_quote(db, client, price="1500"):
    return quotes_mod.create_quote(
        db, OWNER, client.id,
        [{"name": "Split AC install", "quantity": 1, "unit_price": price}],
        status="APPROVED",
    )


def _set(db, table, record_id, **cols):
    assignments = ", ".join(f"{k} = ?" for k in cols)
    db.execute(f"UPDATE {table} SET {assignments} WHERE id = ?", (*cols.values(), record_id))
    db.commit()


@pytest.fixture
def work_order(db, client):
    quote = _approved_quote(db, client)
    return flow.convert_quote_to_work_order(db, OWNER, quote.id, "Install split AC").work_order


@pytest.fixture
def done_work_order(db, work_order):
    return flow.complete_work_order(db, OWNER, work_order.id).work_order.work_order


# ── Convert ──────────────────────────────────────────────────────────────────


class TestConvertQuote:
    def test_converts_approved_quote(self, db, client):
        quote = _approved_quote(db, client)
        detail = flow.convert_quote_to_work_order(
            db, OWNER, quote.id, "Install split AC", description="Living room",
            scheduled_date="2025-01-15T09:00:00",
        )
        wo = detail.work_order
        assert wo.status == "SCHEDULED"
        assert wo.quote_id == quote.id
        assert wo.client_id == client.id
        assert wo.description == "Living room"
        assert wo.scheduled_date == datetime(2025, 1, 15, 9, 0)
        assert wo.address == "12 Frost St"
        assert detail.client.name == "Acme Cooling"
        assert detail.quote.total_value == Decimal("1500")
        assert detail.equipments == []

    @pytest.mark.parametrize("status", ["DRAFT", "SENT", "REJECTED", "EXPIRED"])
    def test_rejects_quote_that_is_not_approved(self, db, client, status):
        quote = quotes_mod.create_quote(
            db, OWNER, client.id, [{"name": "Visit", "unit_price": 100}], status=status
        )
        with pytest.raises(PreconditionFailedError, match=f"Current status: {status}"):
            flow.convert_quote_to_work_order(db, OWNER, quote.id, "Visit")
        assert work_orders_mod.list_client_work_orders(db, OWNER, client.id) == []

    def test_rejects_second_conversion(self, db, client):
        quote = _approved_quote(db, client)
        first = flow.convert_quote_to_work_order(db, OWNER, quote.id, "Install")
        with pytest.raises(PreconditionFailedError, match="already has a work order") as exc:
            flow.convert_quote_to_work_order(db, OWNER, quote.id, "Install again")
        assert first.work_order.id in str(exc.value)

    def test_unknown_and_foreign_quotes_look_the_same(self, db, client):
        quote = _approved_quote(db, client)
        with pytest.raises(NotFoundError) as foreign:
            flow.convert_quote_to_work_order(db, OTHER, quote.id, "Steal")
        with pytest.raises(NotFoundError) as missing:
            flow.convert_quote_to_work_order(db, OWNER, "nope", "Ghost")
        assert str(foreign.value) == f"Quote with ID {quote.id} not found"
        assert str(missing.value) == "Quote with ID nope not found"

    def test_binds_client_equipment(self, db, client):
        unit = clients_mod.create_equipment(db, OWNER, client.id, "Split AC", brand="Daikin")
        quote = _approved_quote(db, client)
        detail = flow.convert_quote_to_work_order(
            db, OWNER, quote.id, "Install", equipment_ids=[unit.id, unit.id]
        )
        assert detail.work_order.equipment_ids == [unit.id]
        assert [e.brand for e in detail.equipments] == ["Daikin"]

    def test_rejects_equipment_of_another_client(self, db, client):
        other = clients_mod.create_client(db, OWNER, "Other Co")
        unit = clients_mod.create_equipment(db, OWNER, other.id, "Chiller")
        quote = _approved_quote(db, client)
        with pytest.raises(PreconditionFailedError, match="do not belong to this client"):
            flow.convert_quote_to_work_order(db, OWNER, quote.id, "Install", equipment_ids=[unit.id])
        assert work_orders_mod.get_work_order_for_quote(db, quote.id) is None

    def test_store_rejects_two_work_orders_for_one_quote(self, db, client):
        quote = _approved_quote(db, client)
        work_orders_mod.create_work_order(db, OWNER, client.id, "First", quote_id=quote.id)
        with pytest.raises(sqlite3.IntegrityError):
            work_orders_mod.create_work_order(db, OWNER, client.id, "Second", quote_id=quote.id)

    def test_concurrent_conversion_reports_existing_work_order(self, db, client, monkeypatch):
        quote = _approved_quote(db, client)
        first = flow.convert_quote_to_work_order(db, OWNER, quote.id, "Install")

        real_lookup = work_orders_mod.get_work_order_for_quote
        calls = []

        def stale_lookup(conn, quote_id):
            calls.append(quote_id)
            return None if len(calls) == 1 else real_lookup(conn, quote_id)

        monkeypatch.setattr(work_orders_mod, "get_work_order_for_quote", stale_lookup)
        with pytest.raises(PreconditionFailedError, match=first.work_order.id):
            flow.convert_quote_to_work_order(db, OWNER, quote.id, "Install again")
        assert len(work_orders_mod.list_client_work_orders(db, OWNER, client.id)) == 1


# ── Complete ─────────────────────────────────────────────────────────────────


class TestCompleteWorkOrder:
    def test_completes_without_checklists(self, db, work_order):
        result = flow.complete_work_order(db, OWNER, work_order.id)
        wo = result.work_order.work_order
        assert wo.status == "DONE"
        assert wo.execution_end is not None
        assert wo.execution_start == wo.execution_end
        suggestion = result.payment_suggestion
        assert suggestion.can_generate_payment is True
        assert suggestion.suggested_value == Decimal("1500")
        assert suggestion.has_quote is True
        assert suggestion.quote_id == work_order.quote_id

    def test_keeps_existing_execution_start(self, db, work_order):
        started = work_orders_mod.start_work_order(db, OWNER, work_order.id)
        _set(db, "work_orders", work_order.id, execution_start="2025-01-04T09:00:00.000")
        result = flow.complete_work_order(db, OWNER, started.id)
        assert result.work_order.work_order.execution_start == datetime(2025, 1, 4, 9, 0)

    def test_rejects_done_work_order(self, db, done_work_order):
        with pytest.raises(PreconditionFailedError, match="already completed"):
            flow.complete_work_order(db, OWNER, done_work_order.id)

    def test_rejects_canceled_work_order(self, db, work_order):
        work_orders_mod.cancel_work_order(db, OWNER, work_order.id)
        with pytest.raises(PreconditionFailedError, match="canceled"):
            flow.complete_work_order(db, OWNER, work_order.id)

    def test_foreign_work_order_not_found(self, db, work_order):
        with pytest.raises(NotFoundError, match="Work order with ID"):
            flow.complete_work_order(db, OTHER, work_order.id)

    def test_blocked_by_unanswered_required_items(self, db, work_order):
        template = checklists_mod.create_template(db, OWNER, "Maintenance", [
            {"title": "Voltage", "type": "NUMERIC", "is_required": True},
            {"title": "Photo of unit", "type": "PHOTO", "is_required": True},
            {"title": "Remarks"},
        ])
        checklists_mod.attach_checklist(db, OWNER, work_order.id, template.id)

        with pytest.raises(PreconditionFailedError) as exc:
            flow.complete_work_order(db, OWNER, work_order.id)
        assert str(exc.value) == (
            'Checklist "Maintenance" has 2 unanswered required items: Voltage, Photo of unit'
        )
        reloaded = work_orders_mod.find_work_order(db, OWNER, work_order.id).require()
        assert reloaded.status == "SCHEDULED"
        assert reloaded.execution_end is None

    def test_completes_once_required_items_answered(self, db, work_order):
        template = checklists_mod.create_template(db, OWNER, "Maintenance", [
            {"title": "Voltage", "type": "NUMERIC", "is_required": True},
            {"title": "Remarks"},
        ])
        checklist = checklists_mod.attach_checklist(db, OWNER, work_order.id, template.id)
        voltage = template.items[0]
        checklists_mod.submit_answers(
            db, OWNER, work_order.id, checklist.id,
            [{"template_item_id": voltage.id, "value": 220}],
        )
        result = flow.complete_work_order(db, OWNER, work_order.id)
        assert result.work_order.work_order.status == "DONE"

    def test_skip_checklist_validation(self, db, work_order):
        template = checklists_mod.create_template(db, OWNER, "Safety", [
            {"title": "Power off", "type": "BOOLEAN", "is_required": True},
        ])
        checklists_mod.attach_checklist(db, OWNER, work_order.id, template.id)
        result = flow.complete_work_order(db, OWNER, work_order.id, skip_checklist_validation=True)
        assert result.work_order.work_order.status == "DONE"

    def test_appends_notes(self, db, client):
        quote = _approved_quote(db, client)
        wo = flow.convert_quote_to_work_order(
            db, OWNER, quote.id, "Install", notes="Gate code 1234"
        ).work_order
        result = flow.complete_work_order(db, OWNER, wo.id, notes="All good")
        assert result.work_order.work_order.notes == "Gate code 1234\n---\nAll good"

    def test_notes_without_previous_notes(self, db, work_order):
        result = flow.complete_work_order(db, OWNER, work_order.id, notes="All good")
        assert result.work_order.work_order.notes == "All good"

    def test_suggestion_blocked_by_pending_payment(self, db, work_order):
        payments_mod.create_payment(
            db, OWNER, client_id=work_order.client_id, work_order_id=work_order.id,
            billing_type="PIX", value="200", due_date="2025-01-20",
        )
        result = flow.complete_work_order(db, OWNER, work_order.id)
        assert result.payment_suggestion.can_generate_payment is False

    def test_suggestion_without_quote(self, db, client):
        wo = work_orders_mod.create_work_order(db, OWNER, client.id, "Emergency visit")
        result = flow.complete_work_order(db, OWNER, wo.id)
        suggestion = result.payment_suggestion
        assert suggestion.can_generate_payment is True
        assert suggestion.suggested_value is None
        assert suggestion.has_quote is False
        assert suggestion.quote_id is None


# ── Generate payment ─────────────────────────────────────────────────────────


class TestGeneratePayment:
    def test_defaults_to_quote_total(self, db, done_work_order):
        payment = flow.generate_payment(
            db, OWNER, done_work_order.id, billing_type="PIX", due_date="2025-01-20"
        )
        assert payment.value == Decimal("1500")
        assert payment.status == "PENDING"
        assert payment.billing_type == "PIX"
        assert payment.due_date == date(2025, 1, 20)
        assert payment.work_order_id == done_work_order.id
        assert payment.quote_id == done_work_order.quote_id
        assert payment.client_id == done_work_order.client_id
        assert payment.description == f"Charge for work order #{done_work_order.id[:8]}"

    def test_explicit_value_wins(self, db, done_work_order):
        payment = flow.generate_payment(
            db, OWNER, done_work_order.id, billing_type="BOLETO",
            due_date=date(2025, 2, 1), value="999.90", description="Partial",
        )
        assert payment.value == Decimal("999.90")
        assert payment.description == "Partial"

    def test_requires_done(self, db, work_order):
        with pytest.raises(PreconditionFailedError, match="Current status: SCHEDULED"):
            flow.generate_payment(db, OWNER, work_order.id, "PIX", "2025-01-20")

    def test_value_required_without_quote(self, db, client):
        wo = work_orders_mod.create_work_order(db, OWNER, client.id, "Emergency visit")
        flow.complete_work_order(db, OWNER, wo.id)
        with pytest.raises(PreconditionFailedError, match="Value is required"):
            flow.generate_payment(db, OWNER, wo.id, "PIX", "2025-01-20")
        payment = flow.generate_payment(db, OWNER, wo.id, "PIX", "2025-01-20", value=350)
        assert payment.value == Decimal("350")
        assert payment.quote_id is None

    def test_rejects_second_pending_payment(self, db, done_work_order):
        first = flow.generate_payment(db, OWNER, done_work_order.id, "PIX", "2025-01-20")
        with pytest.raises(PreconditionFailedError, match=first.id):
            flow.generate_payment(db, OWNER, done_work_order.id, "PIX", "2025-01-21")
        assert len(payments_mod.list_work_order_payments(db, done_work_order.id)) == 1

    def test_bills_work_order_whose_quote_was_deleted(self, db, done_work_order):
        quotes_mod.delete_quote(db, OWNER, done_work_order.quote_id)
        payment = flow.generate_payment(db, OWNER, done_work_order.id, "PIX", "2025-01-20")
        assert payment.value == Decimal("1500")
        assert payment.quote_id == done_work_order.quote_id

    def test_confirmed_payment_neither_blocks_nor_counts_as_paid(self, db, done_work_order):
        first = flow.generate_payment(db, OWNER, done_work_order.id, "CREDIT_CARD", "2025-01-20")
        _set(db, "payments", first.id, status="CONFIRMED")
        second = flow.generate_payment(
            db, OWNER, done_work_order.id, "PIX", "2025-01-21", value="100"
        )
        s = flow.get_work_order_extract(db, OWNER, done_work_order.id).financial_summary
        assert second.status == "PENDING"
        assert (s.total_paid, s.total_pending, s.balance) == (0, 100, 1500)

    def test_new_payment_after_previous_received(self, db, done_work_order):
        first = flow.generate_payment(db, OWNER, done_work_order.id, "PIX", "2025-01-20", value=500)
        payments_mod.mark_payment_received(db, OWNER, first.id)
        second = flow.generate_payment(db, OWNER, done_work_order.id, "PIX", "2025-02-20", value=1000)
        assert second.id != first.id

    def test_invalid_billing_type(self, db, done_work_order):
        with pytest.raises(ValidationError, match="billing type"):
            flow.generate_payment(db, OWNER, done_work_order.id, "CHEQUE", "2025-01-20")

    @pytest.mark.parametrize("value", [0, -10, "NaN"])
    def test_rejects_non_positive_value(self, db, done_work_order, value):
        with pytest.raises(ValidationError):
            flow.generate_payment(db, OWNER, done_work_order.id, "PIX", "2025-01-20", value=value)

    def test_foreign_work_order_not_found(self, db, done_work_order):
        with pytest.raises(NotFoundError):
            flow.generate_payment(db, OTHER, done_work_order.id, "PIX", "2025-01-20")

    def test_custom_issuer(self, db, done_work_order):
        issued = {}

        def gateway(conn, owner_id, **billing):
            issued.update(billing)
            return Payment(
                id="gw-1",
                owner_id=owner_id,
                client_id=billing["client_id"],
                value=billing["value"],
                billing_type=billing["billing_type"],
                due_date=date.fromisoformat(billing["due_date"]),
                work_order_id=billing["work_order_id"],
            )

        payment = flow.generate_payment(
            db, OWNER, done_work_order.id, "CREDIT_CARD", "2025-01-20", issuer=gateway
        )
        assert payment.id == "gw-1"
        assert issued["value"] == Decimal("1500")
        assert issued["quote_id"] == done_work_order.quote_id
        assert issued["billing_type"] == "CREDIT_CARD"

    def test_store_rejects_two_pending_payments(self, db, done_work_order):
        payments_mod.create_payment(
            db, OWNER, client_id=done_work_order.client_id,
            work_order_id=done_work_order.id, billing_type="PIX", value=10, due_date="2025-01-20",
        )
        with pytest.raises(sqlite3.IntegrityError):
            payments_mod.create_payment(
                db, OWNER, client_id=done_work_order.client_id,
                work_order_id=done_work_order.id, billing_type="PIX", value=10, due_date="2025-01-20",
            )

    def test_concurrent_payment_is_rejected(self, db, done_work_order, monkeypatch):
        flow.generate_payment(db, OWNER, done_work_order.id, "PIX", "2025-01-20")
        monkeypatch.setattr(flow, "list_work_order_payments", lambda conn, wo_id: [])
        with pytest.raises(PreconditionFailedError, match="pending payment"):
            flow.generate_payment(db, OWNER, done_work_order.id, "PIX", "2025-01-21")


# ── Timelines ────────────────────────────────────────────────────────────────


def _full_history(db, client):
    """Quote through payment receipt, with fixed timestamps."""
    quote = _approved_quote(db, client)
    _set(db, "quotes", quote.id,
         created_at="2025-01-01T09:00:00.000", updated_at="2025-01-02T10:00:00.000")
    wo = flow.convert_quote_to_work_order(db, OWNER, quote.id, "Install").work_order
    template = checklists_mod.create_template(db, OWNER, "Install check", [{"title": "Level"}])
    checklist = checklists_mod.attach_checklist(db, OWNER, wo.id, template.id)
    flow.complete_work_order(db, OWNER, wo.id)
    _set(db, "work_orders", wo.id,
         created_at="2025-01-03T08:00:00.000",
         execution_start="2025-01-04T09:00:00.000",
         execution_end="2025-01-04T17:00:00.000")
    _set(db, "work_order_checklists", checklist.id, created_at="2025-01-03T12:00:00.000")
    payment = flow.generate_payment(db, OWNER, wo.id, "PIX", "2025-01-20")
    payments_mod.mark_payment_received(db, OWNER, payment.id, paid_at=datetime(2025, 1, 6, 14, 0))
    _set(db, "payments", payment.id, created_at="2025-01-05T10:00:00.000")
    return quote, wo, checklist, payment


class TestClientTimeline:
    def test_full_history_most_recent_first(self, db, client):
        quote, wo, checklist, payment = _full_history(db, client)
        events = flow.get_client_timeline(db, OWNER, client.id)
        assert [(e.type, e.id) for e in events] == [
            ("PAYMENT_CONFIRMED", payment.id),
            ("PAYMENT_CREATED", payment.id),
            ("WORK_ORDER_COMPLETED", wo.id),
            ("WORK_ORDER_STARTED", wo.id),
            ("CHECKLIST_CREATED", checklist.id),
            ("WORK_ORDER_CREATED", wo.id),
            ("QUOTE_APPROVED", quote.id),
            ("QUOTE_CREATED", quote.id),
        ]
        assert events[0].date == datetime(2025, 1, 6, 14, 0)
        assert events[4].data["work_order_title"] == "Install"

    def test_dates_are_non_increasing(self, db, client):
        _full_history(db, client)
        dates = [e.date for e in flow.get_client_timeline(db, OWNER, client.id)]
        assert dates == sorted(dates, reverse=True)

    def test_empty_for_new_client(self, db, client):
        assert flow.get_client_timeline(db, OWNER, client.id) == []

    def test_rejected_quote(self, db, client):
        quote = quotes_mod.create_quote(db, OWNER, client.id, [{"name": "Visit", "unit_price": 80}])
        quotes_mod.update_quote_status(db, OWNER, quote.id, "REJECTED")
        types = [e.type for e in flow.get_client_timeline(db, OWNER, client.id)]
        assert sorted(types) == ["QUOTE_CREATED", "QUOTE_REJECTED"]

    def test_canceled_work_order_has_no_cancel_event(self, db, work_order):
        work_orders_mod.cancel_work_order(db, OWNER, work_order.id)
        types = [e.type for e in flow.get_client_timeline(db, OWNER, work_order.client_id)]
        assert "WORK_ORDER_CANCELED" not in types
        assert "WORK_ORDER_CREATED" in types

    def test_excludes_other_clients(self, db, client):
        other = clients_mod.create_client(db, OWNER, "Other Co")
        _approved_quote(db, other)
        assert flow.get_client_timeline(db, OWNER, client.id) == []

    def test_unknown_and_foreign_clients_are_forbidden(self, db, client):
        with pytest.raises(ForbiddenError) as foreign:
            flow.get_client_timeline(db, OTHER, client.id)
        with pytest.raises(ForbiddenError) as missing:
            flow.get_client_timeline(db, OWNER, "nope")
        assert "does not belong to you" in str(foreign.value)
        assert str(missing.value) == "Client with ID nope not found or does not belong to you"
        assert isinstance(foreign.value, NotFoundError)


class TestWorkOrderTimeline:
    def test_includes_cancel_event(self, db, work_order):
        work_orders_mod.cancel_work_order(db, OWNER, work_order.id)
        events = flow.get_work_order_timeline(db, OWNER, work_order.id)
        assert events[0].type == "WORK_ORDER_CANCELED"
        assert {e.type for e in events} == {"WORK_ORDER_CREATED", "WORK_ORDER_CANCELED"}

    def test_only_this_work_order(self, db, client):
        _, wo, _, payment = _full_history(db, client)
        events = flow.get_work_order_timeline(db, OWNER, wo.id)
        assert not any(e.type.startswith("QUOTE_") for e in events)
        assert events[0].type == "PAYMENT_CONFIRMED"
        assert events[0].id == payment.id

    def test_foreign_work_order(self, db, work_order):
        with pytest.raises(NotFoundError):
            flow.get_work_order_timeline(db, OTHER, work_order.id)


# ── Extract ──────────────────────────────────────────────────────────────────


class TestWorkOrderExtract:
    def test_quote_to_pending_payment(self, db, client):
        quote = _approved_quote(db, client, price="1500")
        wo = flow.convert_quote_to_work_order(db, OWNER, quote.id, "Install").work_order
        result = flow.complete_work_order(db, OWNER, wo.id)
        assert result.payment_suggestion.can_generate_payment is True
        assert result.payment_suggestion.suggested_value == 1500

        payment = flow.generate_payment(db, OWNER, wo.id, "PIX", "2025-01-20")
        assert payment.value == 1500

        extract = flow.get_work_order_extract(db, OWNER, wo.id)
        s = extract.financial_summary
        assert (s.total_quoted, s.total_paid, s.total_pending, s.balance) == (1500, 0, 1500, 1500)
        assert extract.client.id == client.id
        assert extract.quote.id == quote.id
        assert [p.id for p in extract.payments] == [payment.id]

    def test_received_payment_settles_balance(self, db, client):
        quote = _approved_quote(db, client, price="1500")
        wo = flow.convert_quote_to_work_order(db, OWNER, quote.id, "Install").work_order
        flow.complete_work_order(db, OWNER, wo.id)
        payment = flow.generate_payment(db, OWNER, wo.id, "PIX", "2025-01-20")
        paid_at = datetime(2025, 1, 18, 11, 30)
        payments_mod.mark_payment_received(db, OWNER, payment.id, paid_at=paid_at)

        s = flow.get_work_order_extract(db, OWNER, wo.id).financial_summary
        assert (s.total_paid, s.total_pending, s.balance) == (1500, 0, 0)

        confirmed = [
            e for e in flow.get_client_timeline(db, OWNER, client.id)
            if e.type == "PAYMENT_CONFIRMED"
        ]
        assert len(confirmed) == 1
        assert confirmed[0].date == paid_at

    def test_without_quote(self, db, client):
        wo = work_orders_mod.create_work_order(db, OWNER, client.id, "Emergency visit")
        extract = flow.get_work_order_extract(db, OWNER, wo.id)
        assert extract.quote is None
        s = extract.financial_summary
        assert (s.total_quoted, s.total_paid, s.total_pending, s.balance) == (0, 0, 0, 0)

    def test_decimal_sums(self, db, client):
        quote = _approved_quote(db, client, price="0.30")
        wo = flow.convert_quote_to_work_order(db, OWNER, quote.id, "Small job").work_order
        flow.complete_work_order(db, OWNER, wo.id)
        first = flow.generate_payment(db, OWNER, wo.id, "PIX", "2025-01-20", value="0.10")
        payments_mod.mark_payment_received(db, OWNER, first.id)
        second = flow.generate_payment(db, OWNER, wo.id, "PIX", "2025-01-20", value="0.20")
        payments_mod.mark_payment_received(db, OWNER, second.id)
        s = flow.get_work_order_extract(db, OWNER, wo.id).financial_summary
        assert s.total_paid == 0.3
        assert s.balance == 0

    def test_checklist_summaries(self, db, work_order):
        template = checklists_mod.create_template(db, OWNER, "Safety", [
            {"title": "Power off", "type": "BOOLEAN", "is_required": True},
            {"title": "Gloves", "type": "BOOLEAN", "is_required": True},
            {"title": "Remarks"},
        ])
        checklist = checklists_mod.attach_checklist(db, OWNER, work_order.id, template.id)
        checklists_mod.submit_answers(
            db, OWNER, work_order.id, checklist.id,
            [{"template_item_id": template.items[0].id, "value": True}],
        )
        [summary] = flow.get_work_order_extract(db, OWNER, work_order.id).checklists
        assert summary.title == "Safety"
        assert summary.answers_count == 1
        assert summary.required_count == 2

    def test_foreign_work_order(self, db, work_order):
        with pytest.raises(NotFoundError):
            flow.get_work_order_extract(db, OTHER, work_order.id)
