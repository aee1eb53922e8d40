"""
Order Service — orders and products on top of the payment provider.

The provider is the source of truth: nothing is persisted locally. This
module shapes parameters, fills metadata defaults and decides the business
status written back to an order's metadata.

Handles:
    1. Order creation with checkout metadata (status="created")
    2. Retrieval / partial updates
    3. Charging an order with a chargeable source
    4. Webhook-driven status transitions after redirect flows
    5. Catalog queries and the startup catalog sanity check
    6. Best-effort confirmation SMS
"""
import logging
from typing import Optional

from domain.constants import (
    ALLOWED_PRODUCT_IDS,
    ALREADY_CHARGED_STATES,
    EXPECTED_PRODUCT_COUNT,
    METADATA_DEFAULTS,
    SETTLED_STATES,
)
from domain.enums import OrderStatus, SourceStatus
from domain.errors import UpstreamError
from models import Order, OrderExtra, OrderItem, Product, ProductList, Shipping, Source
from services import sms_service, stripe_client

logger = logging.getLogger(__name__)


# ════════════════════════════════════════════════════════════════════
# Orders
# ════════════════════════════════════════════════════════════════════


def build_order_metadata(extra: OrderExtra) -> dict:
    """Checkout metadata for a new order."""
    metadata = {
        "status": OrderStatus.CREATED.value,
        "marketing": extra.marketing,
        "legal": extra.legal,
        "dob": extra.dob,
        "promo": extra.promo,
    }
    metadata.update(METADATA_DEFAULTS)
    return metadata


async def create_order(
    currency: str,
    items: list[OrderItem],
    email: str,
    shipping: Shipping,
    extra: OrderExtra,
) -> Order:
    """
    Create an order upstream.

    Raises:
        UpstreamError if the provider rejects it (bad currency, unknown SKU, outage).
    """
    payload = await stripe_client.create_order({
        "currency": currency,
        "items": [item.model_dump(exclude_none=True) for item in items],
        "email": email,
        "shipping": shipping.model_dump(exclude_none=True),
        "metadata": build_order_metadata(extra),
    })
    order = Order.model_validate(payload)
    logger.info(f"  🛒 Order created: {order.id} ({order.amount} {order.currency})")
    return order


async def retrieve_order(order_id: str) -> Order:
    """Raises NotFoundError for an unknown id."""
    return Order.model_validate(await stripe_client.retrieve_order(order_id))


async def update_order(order_id: str, properties: dict) -> Order:
    """Apply a partial update, e.g. {"metadata": {"status": "paid"}}."""
    return Order.model_validate(await stripe_client.update_order(order_id, properties))


async def set_order_status(order_id: str, status: OrderStatus) -> Order:
    order = await update_order(order_id, {"metadata": {"status": status.value}})
    logger.info(f"  Order {order_id} → {status.value}")
    return order


# ════════════════════════════════════════════════════════════════════
# Charging
# ════════════════════════════════════════════════════════════════════


async def pay_order(order_id: str, source: Source) -> tuple[Order, Source, Optional[Order]]:
    """
    Charge an order with a chargeable source.

    Orders already pending/paid/captured are returned unchanged so that a
    repeated submission cannot charge twice from this side.

    Returns:
        (order, source, charged) — `charged` is the paid order when a charge
        succeeded in this call, None otherwise.
    """
    order = await retrieve_order(order_id)

    if order.metadata_status in ALREADY_CHARGED_STATES:
        logger.info(f"  Order {order_id} already {order.metadata_status} — not charging again")
        return order, source, None

    if source.status != SourceStatus.CHARGEABLE.value or not source.id:
        logger.debug(f"  Source for {order_id} not chargeable ({source.status})")
        return order, source, None

    try:
        payload = await stripe_client.pay_order(order_id, {"source": source.id})
    except UpstreamError as e:
        logger.warning(f"  ❌ Charge failed for {order_id}: {e.message}")
        order = await set_order_status(order_id, OrderStatus.FAILED)
        return order, source, None

    charged = Order.model_validate(payload)
    status = OrderStatus.PAID if charged.status in ("paid", "fulfilled") else OrderStatus.PENDING
    order = await set_order_status(order_id, status)
    return order, source, order if status == OrderStatus.PAID else None


async def _settle_from_event(order_id: str, status: OrderStatus, event_type: str) -> Order:
    """
    Move an order to `status` unless it is already settled.

    Events may arrive out of order: a late failure must not undo a payment,
    and a repeated event must not rewrite the same status.
    """
    order = await retrieve_order(order_id)
    current = order.metadata_status
    if current in SETTLED_STATES or current == status.value:
        logger.info(f"  Webhook {event_type} for {order_id} ignored — order already {current}")
        return order
    return await set_order_status(order_id, status)


async def handle_webhook_event(event: dict) -> dict:
    """
    Apply a provider webhook event to the order it concerns.

    Handles:
        source.chargeable          → charge the order
        source.failed / .canceled  → order failed
        charge.succeeded           → order paid
        charge.failed              → order failed

    Paid and captured orders are never moved by an event.
    """
    event_type = event.get("type", "")
    obj = event.get("data", {}).get("object", {})
    order_id = (obj.get("metadata") or {}).get("order") or obj.get("order")

    if not order_id:
        logger.debug(f"  Webhook {event_type} without an order reference — ignored")
        return {"status": "ignored", "reason": "no_order"}

    if event_type == "source.chargeable":
        source = Source.model_validate(obj)
        if source.id:
            # The event body is a snapshot; charge against the source as it is now.
            source = Source.model_validate(await stripe_client.retrieve_source(source.id))
        order, _, charged = await pay_order(order_id, source)
        return {"status": order.metadata_status, "orderId": order_id, "charged": charged is not None}

    if event_type in ("source.failed", "source.canceled", "charge.failed"):
        order = await _settle_from_event(order_id, OrderStatus.FAILED, event_type)
        return {"status": order.metadata_status, "orderId": order_id}

    if event_type == "charge.succeeded":
        order = await _settle_from_event(order_id, OrderStatus.PAID, event_type)
        return {"status": order.metadata_status, "orderId": order_id}

    logger.debug(f"  Webhook event ignored: {event_type}")
    return {"status": "ignored", "reason": f"unhandled_{event_type}"}


# ════════════════════════════════════════════════════════════════════
# Catalog
# ════════════════════════════════════════════════════════════════════


async def list_products() -> ProductList:
    return ProductList.model_validate(await stripe_client.list_products())


async def retrieve_product(product_id: str) -> Product:
    return Product.model_validate(await stripe_client.retrieve_product(product_id))


def validate_catalog(product_list: ProductList) -> bool:
    """True only if the catalog holds exactly the two expected products."""
    products = product_list.data
    return len(products) == EXPECTED_PRODUCT_COUNT and all(
        product.id in ALLOWED_PRODUCT_IDS for product in products
    )


# ════════════════════════════════════════════════════════════════════
# Notifications
# ════════════════════════════════════════════════════════════════════


async def notify_customer(name: str, phone_number: str) -> None:
    """Fire-and-forget confirmation SMS. Failures are logged by sms_service."""
    await sms_service.send_confirmation(name, phone_number)


async def notify_for_order(order: Order) -> None:
    if order.shipping and order.shipping.phone:
        await notify_customer(order.shipping.name, order.shipping.phone)
