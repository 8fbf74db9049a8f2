"""CLI entry point for the service flow."""

import functools
import json
import logging
import sys
from datetime import date, timedelta

import click

from service_flow.config import get_config
from service_flow.core import checklists as checklists_mod
from service_flow.core import clients as clients_mod
from service_flow.core import payments as payments_mod
from service_flow.core import quotes as quotes_mod
from service_flow.core import serialize
from service_flow.core import service_flow as flow
from service_flow.core import work_orders as work_orders_mod
from service_flow.core.errors import ServiceFlowError
from service_flow.core.store import format_dt, parse_dt
from service_flow.db.engine import get_db


def _get_db():
    config = get_config()
    return get_db(config.db_path)


def _handle_errors(fn):
    """Report service flow errors on stderr and exit 1."""

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except ServiceFlowError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)

    return wrapper


def _echo_json(data):
    click.echo(json.dumps(data, indent=2))


@click.group()
@click.option("--owner", default=None, help="Owner id (defaults to SF_OWNER_ID)")
@click.pass_context
def main(ctx, owner):
    """sf - Service Flow CLI"""
    config = get_config()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = {"owner": owner or config.owner_id}


# ── Client Commands ───────────────────────────────────────────────────────────


@main.group("client")
def client_group():
    """Manage clients."""
    pass


@client_group.command("add")
@click.argument("name")
@click.option("--email", default=None)
@click.option("--phone", default=None)
@click.option("--address", default=None)
@click.pass_obj
@_handle_errors
def client_add(obj, name, email, phone, address):
    """Create a new client."""
    with _get_db() as db:
        client = clients_mod.create_client(db, obj["owner"], name, email, phone, address)
        click.echo(f"Created client: {client.id}")
        click.echo(f"  Name: {client.name}")


@client_group.command("show")
@click.argument("client_id")
@click.pass_obj
@_handle_errors
def client_show(obj, client_id):
    """Show a client and its equipment."""
    with _get_db() as db:
        client = clients_mod.find_client(db, obj["owner"], client_id).require()
        click.echo(f"{client.name} ({client.id})")
        if client.address:
            click.echo(f"  Address: {client.address}")
        for e in clients_mod.list_equipments(db, obj["owner"], client.id):
            click.echo(f"  - {e.id}: {e.type} {e.brand or ''} {e.model or ''}".rstrip())


@client_group.command("list")
@click.pass_obj
def client_list(obj):
    """List clients."""
    with _get_db() as db:
        clients = clients_mod.list_clients(db, obj["owner"])
        if not clients:
            click.echo("No clients found.")
            return
        for c in clients:
            click.echo(f"  {c.id}: {c.name}")


@main.command("equipment")
@click.argument("client_id")
@click.argument("type")
@click.option("--brand", default=None)
@click.option("--model", default=None)
@click.option("--serial", default=None, help="Serial number")
@click.pass_obj
@_handle_errors
def equipment_add(obj, client_id, type, brand, model, serial):
    """Register equipment for a client."""
    with _get_db() as db:
        equipment = clients_mod.create_equipment(
            db, obj["owner"], client_id, type, brand, model, serial
        )
        click.echo(f"Created equipment: {equipment.id} ({equipment.type})")


# ── Quote Commands ────────────────────────────────────────────────────────────


def _parse_quote_item(raw: str) -> dict:
    parts = raw.rsplit(":", 2)
    if len(parts) != 3:
        raise click.BadParameter(f"expected NAME:QUANTITY:UNIT_PRICE, got '{raw}'")
    return {"name": parts[0], "quantity": parts[1], "unit_price": parts[2]}


@main.group("quote")
def quote_group():
    """Manage quotes."""
    pass


@quote_group.command("add")
@click.argument("client_id")
@click.option("--item", "items", multiple=True, help="Line item as NAME:QUANTITY:UNIT_PRICE")
@click.option("--discount", default="0", help="Discount value")
@click.option("--total", default=None, help="Explicit total value")
@click.option("--notes", default=None)
@click.pass_obj
@_handle_errors
def quote_add(obj, client_id, items, discount, total, notes):
    """Create a quote for a client."""
    parsed = [_parse_quote_item(i) for i in items]
    with _get_db() as db:
        quote = quotes_mod.create_quote(
            db, obj["owner"], client_id, parsed, discount_value=discount,
            total_value=total, notes=notes,
        )
        click.echo(f"Created quote: {quote.id}")
        click.echo(f"  Total: {quote.total_value}")
        click.echo(f"  Status: {quote.status}")


@quote_group.command("status")
@click.argument("quote_id")
@click.argument("status", type=click.Choice(["SENT", "APPROVED", "REJECTED", "EXPIRED"]))
@click.pass_obj
@_handle_errors
def quote_status(obj, quote_id, status):
    """Change a quote's status."""
    with _get_db() as db:
        quote = quotes_mod.update_quote_status(db, obj["owner"], quote_id, status)
        click.echo(f"Quote {quote.id} is now {quote.status}")


@quote_group.command("show")
@click.argument("quote_id")
@click.pass_obj
@_handle_errors
def quote_show(obj, quote_id):
    """Show quote details."""
    with _get_db() as db:
        quote = quotes_mod.find_quote(db, obj["owner"], quote_id).require()
        _echo_json(serialize.quote_dict(quote))


# ── Checklist Commands ────────────────────────────────────────────────────────


def _parse_template_item(raw: str) -> dict:
    title, _, rest = raw.partition(":")
    flags = [f.strip() for f in rest.split(":") if f.strip()]
    item = {"title": title, "is_required": "required" in flags}
    types = [f.upper() for f in flags if f != "required"]
    if types:
        item["type"] = types[0]
    return item


@main.group("checklist")
def checklist_group():
    """Manage checklist templates and work order checklists."""
    pass


@checklist_group.command("template")
@click.argument("name")
@click.option("--item", "items", multiple=True, help="Item as TITLE[:TYPE][:required]")
@click.pass_obj
@_handle_errors
def checklist_template(obj, name, items):
    """Create a checklist template."""
    with _get_db() as db:
        template = checklists_mod.create_template(
            db, obj["owner"], name, [_parse_template_item(i) for i in items]
        )
        click.echo(f"Created template: {template.id}")
        for item in template.items:
            req = " (required)" if item.is_required else ""
            click.echo(f"  {item.id}: {item.title} [{item.type}]{req}")


@checklist_group.command("attach")
@click.argument("work_order_id")
@click.argument("template_id")
@click.pass_obj
@_handle_errors
def checklist_attach(obj, work_order_id, template_id):
    """Attach a checklist template to a work order."""
    with _get_db() as db:
        checklist = checklists_mod.attach_checklist(db, obj["owner"], work_order_id, template_id)
        click.echo(f"Attached checklist: {checklist.id} ({checklist.title})")


@checklist_group.command("answer")
@click.argument("work_order_id")
@click.argument("checklist_id")
@click.argument("item_id")
@click.argument("value")
@click.pass_obj
@_handle_errors
def checklist_answer(obj, work_order_id, checklist_id, item_id, value):
    """Answer one checklist item."""
    with _get_db() as db:
        checklist = checklists_mod.get_checklist(db, obj["owner"], work_order_id, checklist_id)
        item = next((i for i in checklist.template.items if i.id == item_id), None)
        if item is not None and item.type == "BOOLEAN":
            value = value.lower() in ("true", "yes", "y", "1")
        elif item is not None and item.type == "NUMERIC":
            try:
                value = float(value)
            except ValueError:
                raise click.BadParameter(f"'{value}' is not a number") from None
        checklists_mod.submit_answers(
            db, obj["owner"], work_order_id, checklist_id,
            [{"template_item_id": item_id, "value": value}],
        )
        click.echo(f"Answered {item_id} on checklist {checklist_id}")


@checklist_group.command("show")
@click.argument("work_order_id")
@click.argument("checklist_id")
@click.pass_obj
@_handle_errors
def checklist_show(obj, work_order_id, checklist_id):
    """Show a checklist with its answers."""
    with _get_db() as db:
        checklist = checklists_mod.get_checklist(db, obj["owner"], work_order_id, checklist_id)
        _echo_json(serialize.checklist_dict(checklist))


# ── Work Order Commands ───────────────────────────────────────────────────────


@main.group("work-order")
def work_order_group():
    """Manage work orders."""
    pass


@work_order_group.command("start")
@click.argument("work_order_id")
@click.pass_obj
@_handle_errors
def work_order_start(obj, work_order_id):
    """Start execution of a scheduled work order."""
    with _get_db() as db:
        wo = work_orders_mod.start_work_order(db, obj["owner"], work_order_id)
        click.echo(f"Started work order: {wo.id}")


@work_order_group.command("cancel")
@click.argument("work_order_id")
@click.pass_obj
@_handle_errors
def work_order_cancel(obj, work_order_id):
    """Cancel a work order."""
    with _get_db() as db:
        wo = work_orders_mod.cancel_work_order(db, obj["owner"], work_order_id)
        click.echo(f"Canceled work order: {wo.id}")


@work_order_group.command("timeline")
@click.argument("work_order_id")
@click.option("--json-output", "--json", is_flag=True, help="Output as JSON")
@click.pass_obj
@_handle_errors
def work_order_timeline(obj, work_order_id, json_output):
    """Show the activity of a work order."""
    with _get_db() as db:
        events = flow.get_work_order_timeline(db, obj["owner"], work_order_id)
        _print_events(events, json_output)


# ── Service Flow Commands ─────────────────────────────────────────────────────


@main.command("convert")
@click.argument("quote_id")
@click.option("--title", required=True, help="Work order title")
@click.option("--description", "-d", default="", help="Work order description")
@click.option("--scheduled-date", default=None, help="ISO date or datetime")
@click.option("--equipment", "equipment_ids", multiple=True, help="Equipment id to bind")
@click.option("--notes", default=None)
@click.pass_obj
@_handle_errors
def convert(obj, quote_id, title, description, scheduled_date, equipment_ids, notes):
    """Convert an approved quote into a work order."""
    with _get_db() as db:
        detail = flow.convert_quote_to_work_order(
            db, obj["owner"], quote_id, title,
            description=description,
            scheduled_date=scheduled_date,
            notes=notes,
            equipment_ids=list(equipment_ids) or None,
        )
        wo = detail.work_order
        click.echo(f"Created work order: {wo.id}")
        click.echo(f"  Title: {wo.title}")
        click.echo(f"  Status: {wo.status}")
        click.echo(f"  Client: {detail.client.name}")
        if detail.equipments:
            click.echo(f"  Equipment: {', '.join(e.type for e in detail.equipments)}")


@main.command("complete")
@click.argument("work_order_id")
@click.option("--skip-checklists", is_flag=True, help="Skip checklist validation")
@click.option("--notes", default=None, help="Completion notes")
@click.pass_obj
@_handle_errors
def complete(obj, work_order_id, skip_checklists, notes):
    """Complete a work order."""
    with _get_db() as db:
        result = flow.complete_work_order(
            db, obj["owner"], work_order_id,
            skip_checklist_validation=skip_checklists, notes=notes,
        )
        suggestion = result.payment_suggestion
        click.echo(f"Completed work order: {result.work_order.work_order.id}")
        if suggestion.can_generate_payment:
            value = suggestion.suggested_value
            click.echo(f"  Ready to bill{f': {value}' if value is not None else ''}")


@main.command("bill")
@click.argument("work_order_id")
@click.option(
    "--billing-type",
    type=click.Choice(["PIX", "BOLETO", "CREDIT_CARD", "UNDEFINED"]),
    default="UNDEFINED",
)
@click.option("--due-date", default=None, help="Due date (YYYY-MM-DD)")
@click.option("--value", default=None, help="Amount (defaults to the quote total)")
@click.option("--description", default=None)
@click.pass_obj
@_handle_errors
def bill(obj, work_order_id, billing_type, due_date, value, description):
    """Generate a payment for a completed work order."""
    config = get_config()
    due = due_date or (date.today() + timedelta(days=config.default_due_days)).isoformat()
    with _get_db() as db:
        payment = flow.generate_payment(
            db, obj["owner"], work_order_id,
            billing_type=billing_type, due_date=due, value=value,
            description=description,
        )
        click.echo(f"Created payment: {payment.id}")
        click.echo(f"  Value: {payment.value}")
        click.echo(f"  Due: {payment.due_date}")


@main.command("timeline")
@click.argument("client_id")
@click.option("--json-output", "--json", is_flag=True, help="Output as JSON")
@click.pass_obj
@_handle_errors
def timeline(obj, client_id, json_output):
    """Show the activity of a client, most recent first."""
    with _get_db() as db:
        events = flow.get_client_timeline(db, obj["owner"], client_id)
        _print_events(events, json_output)


@main.command("extract")
@click.argument("work_order_id")
@click.option("--json-output", "--json", is_flag=True, help="Output as JSON")
@click.pass_obj
@_handle_errors
def extract(obj, work_order_id, json_output):
    """Show the financial extract of a work order."""
    with _get_db() as db:
        x = flow.get_work_order_extract(db, obj["owner"], work_order_id)
        if json_output:
            _echo_json(serialize.extract_dict(x))
            return
        s = x.financial_summary
        click.echo(f"Work order: {x.work_order.id} ({x.work_order.status})")
        click.echo(f"  Client: {x.client.name}")
        click.echo(f"  Quoted: {s.total_quoted:.2f}")
        click.echo(f"  Paid: {s.total_paid:.2f}")
        click.echo(f"  Pending: {s.total_pending:.2f}")
        click.echo(f"  Balance: {s.balance:.2f}")


# ── Payment Commands ──────────────────────────────────────────────────────────


@main.group("payment")
def payment_group():
    """Manage payments."""
    pass


@payment_group.command("receive")
@click.argument("payment_id")
@click.option("--paid-at", default=None, help="ISO datetime of receipt")
@click.pass_obj
@_handle_errors
def payment_receive(obj, payment_id, paid_at):
    """Record a payment as received."""
    with _get_db() as db:
        payment = payments_mod.mark_payment_received(
            db, obj["owner"], payment_id,
            paid_at=parse_dt(format_dt(paid_at)),
        )
        click.echo(f"Payment {payment.id} received at {payment.paid_at}")


@payment_group.command("list")
@click.argument("client_id")
@click.pass_obj
def payment_list(obj, client_id):
    """List a client's payments."""
    with _get_db() as db:
        payments = payments_mod.list_client_payments(db, obj["owner"], client_id)
        if not payments:
            click.echo("No payments found.")
            return
        for p in payments:
            click.echo(f"  [{p.status}] {p.id}: {p.value} {p.billing_type} due {p.due_date}")


# ── Server Commands ───────────────────────────────────────────────────────────


@main.command("serve")
@click.option("--host", default=None, help="Host to bind to")
@click.option("--port", default=None, type=int, help="Port to listen on")
def serve_command(host, port):
    """Run the HTTP API."""
    from service_flow.web.app import run_server

    config = get_config()
    host = host or config.host
    port = port or config.port
    click.echo(f"Serving API at http://{host}:{port}")
    run_server(host=host, port=port)


@main.group("mcp")
def mcp_group():
    """MCP server commands."""
    pass


@mcp_group.command("serve")
def mcp_serve():
    """Start the MCP server (stdio transport)."""
    from service_flow.mcp.server import mcp
    from service_flow.mcp import prompts  # noqa: F401 - registers prompts

    mcp.run(transport="stdio")


# ── Helpers ───────────────────────────────────────────────────────────────────


def _print_events(events, json_output: bool):
    if json_output:
        _echo_json([serialize.event_dict(e) for e in events])
        return
    if not events:
        click.echo("No activity.")
        return
    for e in events:
        click.echo(f"  [{e.date.isoformat(timespec='seconds')}] {e.type} {e.id}")


if __name__ == "__main__":
    main()
