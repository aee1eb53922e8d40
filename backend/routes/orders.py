"""
Order endpoints — the server half of the checkout flow.

Endpoints:
    POST /orders               — create an order (metadata status "created")
    GET  /orders/{id}          — current order (polled after redirect flows)
    POST /orders/{id}/pay      — charge the order with a chargeable source
"""
import logging

from fastapi import APIRouter, BackgroundTasks, Depends

from domain.responses import StandardErrorResponse
from middleware.rate_limit import rate_limit
from models import CreateOrderRequest, OrderResponse, PayOrderRequest, PayOrderResponse
from services import order_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])

_error_responses = {
    404: {"model": StandardErrorResponse},
    429: {"model": StandardErrorResponse},
    502: {"model": StandardErrorResponse},
}


@router.post("", response_model=OrderResponse, responses=_error_responses)
async def create_order(
    request: CreateOrderRequest,
    _=Depends(rate_limit("orders:create", 20, 60)),
):
    order = await order_service.create_order(
        request.currency,
        request.items,
        request.email,
        request.shipping,
        request.extra,
    )
    return {"order": order}


@router.get("/{order_id}", response_model=OrderResponse, responses=_error_responses)
async def get_order(order_id: str):
    return {"order": await order_service.retrieve_order(order_id)}


@router.post("/{order_id}/pay", response_model=PayOrderResponse, responses=_error_responses)
async def pay_order(
    order_id: str,
    request: PayOrderRequest,
    background_tasks: BackgroundTasks,
    _=Depends(rate_limit("orders:pay", 20, 60)),
):
    """
    Charge an order.

    Already-charged orders come back unchanged; the confirmation SMS is
    sent after the response, only for a charge made by this call.
    """
    order, source, charged = await order_service.pay_order(order_id, request.source)
    if charged is not None:
        background_tasks.add_task(order_service.notify_for_order, charged)
    return {"order": order, "source": source}
