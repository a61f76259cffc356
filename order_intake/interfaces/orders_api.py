import logging
from typing import Any, Optional

from fastapi import APIRouter, Request
from starlette.concurrency import run_in_threadpool

from order_intake.domain.schemas import OrderLookupResponse, OrderRead

router = APIRouter()
logger = logging.getLogger(__name__)


def client_ip_from(request: Request) -> Optional[str]:
    """First entry of X-Forwarded-For. Direct peer addresses are the proxy's, not the caller's."""
    forwarded = request.headers.get("x-forwarded-for")
    if not forwarded:
        return None
    return forwarded.split(",")[0].strip() or None


async def read_json(request: Request) -> Any:
    """Parsed body, or None when it is not JSON. The services reject None after their rate-limit check."""
    try:
        return await request.json()
    except ValueError:
        logger.info("Request body is not valid JSON")
        return None


@router.post("/orders", response_model=OrderRead)
async def place_order(request: Request):
    """
    Places an order from a cart.
    Retrieves the intake service from app.state (Dependency Injection).
    Rejections are raised as OrderRejected and rendered by the app's exception handler.
    """
    client_ip = client_ip_from(request)
    payload = await read_json(request)
    logger.info(f"📨 Order request from {client_ip or 'unknown'}")

    service = request.app.state.order_service
    return await run_in_threadpool(service.place_order, payload, client_ip)


@router.post("/orders/lookup", response_model=OrderLookupResponse)
async def lookup_order(request: Request):
    client_ip = client_ip_from(request)
    payload = await read_json(request)

    service = request.app.state.lookup_service
    return await run_in_threadpool(service.lookup, payload, client_ip)
