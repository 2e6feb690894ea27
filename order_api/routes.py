"""FastAPI routes for orders: listing, detail, creation, status and profit."""

import asyncio
import logging
from typing import AsyncIterator, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse

from order_api.exceptions import (
    OperationCancelled,
    ProductNotFoundError,
    StatusNotFoundError,
    ValidationFailure,
)
from order_api.models.api import (
    CreateOrderRequest,
    OrderIdResponse,
    ProfitResponse,
    UpdateOrderStatusRequest,
)
from order_api.models.domain import OrderDetail, OrderSummary, StatusUpdateResult
from order_api.services.lifecycle import OrderLifecycleEngine, get_order_engine
from order_api.services.validation import CreateOrderValidator, get_create_order_validator
from order_api.utils.cancellation import CancellationToken
from order_api.utils.config import Settings, get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])

DISCONNECT_POLL_SECONDS = 0.1


def _parse_uuid(value: Optional[str]) -> Optional[UUID]:
    if not value:
        return None
    try:
        return UUID(value)
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Request cancellation
# ---------------------------------------------------------------------------
async def cancel_on_disconnect(
    request: Request,
    token: CancellationToken,
    poll_interval: float = DISCONNECT_POLL_SECONDS,
) -> None:
    """Cancel the token once the client goes away"""
    while not token.cancelled:
        if await request.is_disconnected():
            logger.info(f"Client disconnected from {request.method} {request.url.path}; cancelling")
            token.cancel()
            return
        await asyncio.sleep(poll_interval)


async def request_cancellation(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> AsyncIterator[CancellationToken]:
    """
    One cancellation token per request.

    The token is cancelled when the client disconnects or, if
    REQUEST_TIMEOUT_SECONDS is set, when the request runs past it.
    """
    token = CancellationToken()
    watcher = asyncio.create_task(cancel_on_disconnect(request, token))
    timer = None
    if settings.REQUEST_TIMEOUT_SECONDS is not None:
        timer = asyncio.get_running_loop().call_later(settings.REQUEST_TIMEOUT_SECONDS, token.cancel)
    try:
        yield token
    finally:
        watcher.cancel()
        if timer is not None:
            timer.cancel()


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
@router.get("", response_model=List[OrderSummary])
def list_orders(
    engine: OrderLifecycleEngine = Depends(get_order_engine),
    token: CancellationToken = Depends(request_cancellation),
) -> List[OrderSummary]:
    return engine.list_orders(token=token)


@router.get("/status", response_model=List[OrderSummary])
def list_orders_by_status(
    status_name: Optional[str] = Query(default=None, alias="statusName"),
    status_id: Optional[str] = Query(default=None, alias="statusId"),
    engine: OrderLifecycleEngine = Depends(get_order_engine),
    token: CancellationToken = Depends(request_cancellation),
) -> List[OrderSummary]:
    """A parsable statusId wins over statusName; with neither the result is empty."""
    parsed_id = _parse_uuid(status_id)
    if parsed_id is not None:
        return engine.list_orders_by_status_id(parsed_id, token=token)
    if status_name and status_name.strip():
        return engine.list_orders_by_status_name(status_name, token=token)
    return []


@router.get("/profit", response_model=ProfitResponse)
def get_order_profit(
    engine: OrderLifecycleEngine = Depends(get_order_engine),
    token: CancellationToken = Depends(request_cancellation),
) -> ProfitResponse:
    return ProfitResponse(profit=engine.get_completed_profit_for_month(token=token))


@router.get("/{order_id}", response_model=OrderDetail)
def get_order(
    order_id: UUID,
    engine: OrderLifecycleEngine = Depends(get_order_engine),
    token: CancellationToken = Depends(request_cancellation),
) -> OrderDetail:
    order = engine.get_order_detail(order_id, token=token)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------
@router.post("", status_code=201, response_model=OrderIdResponse)
def create_order(
    body: CreateOrderRequest,
    response: Response,
    engine: OrderLifecycleEngine = Depends(get_order_engine),
    validator: CreateOrderValidator = Depends(get_create_order_validator),
    token: CancellationToken = Depends(request_cancellation),
) -> OrderIdResponse:
    validator.validate_and_raise(body)
    order_id = engine.create_order(body, token=token)
    response.headers["Location"] = f"/orders/{order_id}"
    return OrderIdResponse(order_id=order_id)


@router.patch("/{order_id}/status", status_code=204)
def update_order_status(
    order_id: UUID,
    body: UpdateOrderStatusRequest,
    engine: OrderLifecycleEngine = Depends(get_order_engine),
    token: CancellationToken = Depends(request_cancellation),
) -> Response:
    result = engine.update_order_status(order_id, body, token=token)
    if result == StatusUpdateResult.NOT_FOUND:
        raise HTTPException(status_code=404, detail="Order not found")
    if result == StatusUpdateResult.INVALID_STATUS:
        raise HTTPException(status_code=400, detail="Status not found")
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------
def _problem(status: int, title: str, detail: str, **extensions) -> JSONResponse:
    body = {"title": title, "status": status, "detail": detail}
    body.update(extensions)
    return JSONResponse(status_code=status, content=body, media_type="application/problem+json")


async def validation_failure_handler(request: Request, exc: ValidationFailure) -> JSONResponse:
    errors: Dict[str, List[str]] = {}
    for error in exc.errors:
        errors.setdefault(error.field, []).append(error.message)
    return _problem(400, "Bad Request", "One or more validation errors occurred.", errors=errors)


async def lookup_failure_handler(request: Request, exc: Exception) -> JSONResponse:
    return _problem(400, "Bad Request", str(exc))


async def cancelled_handler(request: Request, exc: OperationCancelled) -> JSONResponse:
    return _problem(499, "Client Closed Request", str(exc))


def create_app() -> FastAPI:
    """Build the FastAPI application with the order routes and error mapping"""
    settings = get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="Order API", version="0.1.0")
    app.include_router(router)
    app.add_exception_handler(ValidationFailure, validation_failure_handler)
    app.add_exception_handler(ProductNotFoundError, lookup_failure_handler)
    app.add_exception_handler(StatusNotFoundError, lookup_failure_handler)
    app.add_exception_handler(OperationCancelled, cancelled_handler)
    return app
