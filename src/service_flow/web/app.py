"""HTTP API for the service flow."""

import json

import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from service_flow.config import get_config
from service_flow.core import serialize
from service_flow.core import service_flow as flow
from service_flow.core.errors import (
    ForbiddenError,
    NotFoundError,
    PreconditionFailedError,
    ValidationError,
)
from service_flow.db.engine import init_db


def _get_db():
    config = get_config()
    return init_db(config.db_path)


def _owner(request: Request) -> str:
    return request.headers.get("x-owner-id") or get_config().owner_id


async def _body(request: Request) -> dict:
    raw = await request.body()
    if not raw:
        return {}
    try:
        body = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON body: {e.msg}") from e
    if not isinstance(body, dict):
        raise ValidationError("JSON body must be an object")
    return body


def _required(body: dict, key: str):
    if body.get(key) in (None, ""):
        raise ValidationError(f"'{key}' is required")
    return body[key]


def _flag(body: dict, key: str) -> bool:
    value = body.get(key, False)
    if not isinstance(value, bool):
        raise ValidationError(f"'{key}' must be a boolean")
    return value


# ── Handlers ──────────────────────────────────────────────────────────────────


async def api_convert_quote(request: Request):
    quote_id = request.path_params["quote_id"]
    body = await _body(request)
    db = _get_db()
    try:
        detail = flow.convert_quote_to_work_order(
            db,
            _owner(request),
            quote_id,
            title=_required(body, "title"),
            description=body.get("description", ""),
            scheduled_date=body.get("scheduled_date"),
            scheduled_start_time=body.get("scheduled_start_time"),
            scheduled_end_time=body.get("scheduled_end_time"),
            address=body.get("address"),
            notes=body.get("notes"),
            equipment_ids=body.get("equipment_ids"),
        )
        return JSONResponse(serialize.work_order_detail_dict(detail), status_code=201)
    finally:
        db.close()


async def api_complete_work_order(request: Request):
    work_order_id = request.path_params["work_order_id"]
    body = await _body(request)
    skip = _flag(body, "skip_checklist_validation")
    db = _get_db()
    try:
        result = flow.complete_work_order(
            db,
            _owner(request),
            work_order_id,
            skip_checklist_validation=skip,
            notes=body.get("notes"),
        )
        return JSONResponse(serialize.completion_dict(result))
    finally:
        db.close()


async def api_generate_payment(request: Request):
    work_order_id = request.path_params["work_order_id"]
    body = await _body(request)
    db = _get_db()
    try:
        payment = flow.generate_payment(
            db,
            _owner(request),
            work_order_id,
            billing_type=_required(body, "billing_type"),
            due_date=_required(body, "due_date"),
            value=body.get("value"),
            description=body.get("description"),
        )
        return JSONResponse(serialize.payment_dict(payment), status_code=201)
    finally:
        db.close()


async def api_client_timeline(request: Request):
    client_id = request.path_params["client_id"]
    db = _get_db()
    try:
        events = flow.get_client_timeline(db, _owner(request), client_id)
        return JSONResponse([serialize.event_dict(e) for e in events])
    finally:
        db.close()


async def api_work_order_timeline(request: Request):
    work_order_id = request.path_params["work_order_id"]
    db = _get_db()
    try:
        events = flow.get_work_order_timeline(db, _owner(request), work_order_id)
        return JSONResponse([serialize.event_dict(e) for e in events])
    finally:
        db.close()


async def api_work_order_extract(request: Request):
    work_order_id = request.path_params["work_order_id"]
    db = _get_db()
    try:
        extract = flow.get_work_order_extract(db, _owner(request), work_order_id)
        return JSONResponse(serialize.extract_dict(extract))
    finally:
        db.close()


# ── Errors ────────────────────────────────────────────────────────────────────


def _error_handler(status_code: int):
    async def handler(request: Request, exc: Exception):
        return JSONResponse({"error": str(exc)}, status_code=status_code)

    return handler


# ── App ───────────────────────────────────────────────────────────────────────


def create_app() -> Starlette:
    routes = [
        Route("/api/quotes/{quote_id}/convert-to-work-order", api_convert_quote, methods=["POST"]),
        Route("/api/work-orders/{work_order_id}/complete", api_complete_work_order, methods=["POST"]),
        Route(
            "/api/work-orders/{work_order_id}/generate-payment",
            api_generate_payment,
            methods=["POST"],
        ),
        Route("/api/work-orders/{work_order_id}/timeline", api_work_order_timeline),
        Route("/api/work-orders/{work_order_id}/extract", api_work_order_extract),
        Route("/api/clients/{client_id}/timeline", api_client_timeline),
    ]
    exception_handlers = {
        ForbiddenError: _error_handler(403),
        NotFoundError: _error_handler(404),
        PreconditionFailedError: _error_handler(400),
        ValidationError: _error_handler(422),
    }
    return Starlette(routes=routes, exception_handlers=exception_handlers)


def run_server(host: str = "127.0.0.1", port: int = 8788):
    app = create_app()
    uvicorn.run(app, host=host, port=port)
