"""
Payment provider webhook.

POST /webhook — signed provider events that move orders along after
redirect and receiver flows (source.chargeable, charge.succeeded, ...).
"""
import json
import logging

from fastapi import APIRouter, BackgroundTasks, Request

from domain.errors import UnauthorizedError, ValidationError
from services import order_service, webhook_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhook"])


@router.post("/webhook")
async def receive_webhook(request: Request, background_tasks: BackgroundTasks):
    payload = await request.body()
    signature = request.headers.get("Stripe-Signature", "")

    if not webhook_service.verify_webhook_signature(payload, signature):
        raise UnauthorizedError("Invalid webhook signature")

    try:
        event = json.loads(payload)
    except ValueError:
        raise ValidationError("Webhook payload is not valid JSON")

    logger.info(f"  📩 Webhook: {event.get('type')} ({event.get('id')})")
    result = await order_service.handle_webhook_event(event)

    if result.get("charged"):
        order = await order_service.retrieve_order(result["orderId"])
        background_tasks.add_task(order_service.notify_for_order, order)

    return {"received": True, **result}
