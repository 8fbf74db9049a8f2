"""MCP server exposing the service flow operations as tools."""

from __future__ import annotations

import sqlite3
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from mcp.server.fastmcp import Context, FastMCP

from service_flow.config import Config, get_config
from service_flow.core import serialize
from service_flow.core import service_flow as flow
from service_flow.core.errors import ServiceFlowError
from service_flow.db.engine import init_db


@dataclass
class AppContext:
    db: sqlite3.Connection
    config: Config


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[AppContext]:
    """Initialize DB connection on startup, close on shutdown."""
    config = get_config()
    db = init_db(config.db_path)
    try:
        yield AppContext(db=db, config=config)
    finally:
        db.close()


mcp = FastMCP("service-flow", lifespan=app_lifespan)


def _ctx(ctx: Context) -> AppContext:
    """Extract AppContext from MCP Context."""
    return ctx.request_context.lifespan_context


def _owner(ctx: Context, owner_id: str | None) -> str:
    return owner_id or _ctx(ctx).config.owner_id


@mcp.tool()
def convert_quote(
    ctx: Context,
    quote_id: str,
    title: str,
    description: str = "",
    scheduled_date: str | None = None,
    equipment_ids: list[str] | None = None,
    owner_id: str | None = None,
) -> dict:
    """Convert an APPROVED quote into a SCHEDULED work order."""
    app = _ctx(ctx)
    try:
        detail = flow.convert_quote_to_work_order(
            app.db,
            _owner(ctx, owner_id),
            quote_id,
            title,
            description=description,
            scheduled_date=scheduled_date,
            equipment_ids=equipment_ids,
        )
    except ServiceFlowError as e:
        return {"error": str(e)}
    return serialize.work_order_detail_dict(detail)


@mcp.tool()
def complete_work_order(
    ctx: Context,
    work_order_id: str,
    skip_checklist_validation: bool = False,
    notes: str | None = None,
    owner_id: str | None = None,
) -> dict:
    """Mark a work order DONE. Fails if required checklist items are unanswered
    unless skip_checklist_validation is set. Returns a payment suggestion."""
    app = _ctx(ctx)
    try:
        result = flow.complete_work_order(
            app.db,
            _owner(ctx, owner_id),
            work_order_id,
            skip_checklist_validation=skip_checklist_validation,
            notes=notes,
        )
    except ServiceFlowError as e:
        return {"error": str(e)}
    return serialize.completion_dict(result)


@mcp.tool()
def generate_payment(
    ctx: Context,
    work_order_id: str,
    billing_type: str,
    due_date: str,
    value: float | None = None,
    owner_id: str | None = None,
) -> dict:
    """Bill a DONE work order. Billing types: PIX, BOLETO, CREDIT_CARD, UNDEFINED.
    The value defaults to the linked quote's total."""
    app = _ctx(ctx)
    try:
        payment = flow.generate_payment(
            app.db,
            _owner(ctx, owner_id),
            work_order_id,
            billing_type=billing_type,
            due_date=due_date,
            value=value,
        )
    except ServiceFlowError as e:
        return {"error": str(e)}
    return serialize.payment_dict(payment)


@mcp.tool()
def client_timeline(ctx: Context, client_id: str, owner_id: str | None = None) -> list[dict] | dict:
    """Get all activity for a client, most recent first."""
    app = _ctx(ctx)
    try:
        events = flow.get_client_timeline(app.db, _owner(ctx, owner_id), client_id)
    except ServiceFlowError as e:
        return {"error": str(e)}
    return [serialize.event_dict(e) for e in events]


@mcp.tool()
def work_order_timeline(ctx: Context, work_order_id: str, owner_id: str | None = None) -> list[dict] | dict:
    """Get all activity for a work order, most recent first."""
    app = _ctx(ctx)
    try:
        events = flow.get_work_order_timeline(app.db, _owner(ctx, owner_id), work_order_id)
    except ServiceFlowError as e:
        return {"error": str(e)}
    return [serialize.event_dict(e) for e in events]


@mcp.tool()
def work_order_extract(ctx: Context, work_order_id: str, owner_id: str | None = None) -> dict:
    """Get the financial extract of a work order: quote, payments and balance."""
    app = _ctx(ctx)
    try:
        extract = flow.get_work_order_extract(app.db, _owner(ctx, owner_id), work_order_id)
    except ServiceFlowError as e:
        return {"error": str(e)}
    return serialize.extract_dict(extract)
