"""
Order status interpreter.

Every order update (after submission, after a charge, after a poll) is fed
through OrderHandler.handle(). The pair (order metadata status, source
status) selects one Action:

    order       source              action
    ─────────   ─────────────────   ──────────────────────
    created     chargeable          CHARGE (pay, then re-interpret)
    created     failed / canceled   AUTHENTICATION_FAILED
    created     anything else       AWAITING_CONFIRMATION
    pending     any                 PENDING_CONFIRMATION
    failed      any                 FAILED
    paid        any                 SUCCEEDED
    captured    any                 SUCCEEDED
    unknown     any                 NO_CHANGE

CHARGE is the only action that does not end a pass: the handler pays the
order and loops on the response, at most MAX_CHARGE_ATTEMPTS times.
"""
import logging
from enum import Enum
from typing import Any, Optional, Protocol

from domain.enums import OrderStatus, SourceStatus
from exceptions import CheckoutError
from models import Order, Source

from checkout.view import CheckoutView

logger = logging.getLogger(__name__)

MAX_CHARGE_ATTEMPTS = 3

PROCESSING_LABEL = "Processing Order…"
NOTE_PAYMENT_PENDING = (
    "We’ll send your receipt and ship your items as soon as your payment is confirmed."
)
NOTE_PAYMENT_CONFIRMED = (
    "We will send the confirmation to your email in the next few minutes, "
    "and your items will be on their way shortly."
)
MESSAGE_AUTHENTICATION_FAILED = (
    "Payment authentication failed. Please choose another payment method."
)
MESSAGE_AWAITING_CONFIRMATION = "Order received, awaiting payment confirmation."


class Action(str, Enum):
    CHARGE = "charge"
    AUTHENTICATION_FAILED = "authentication_failed"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    PENDING_CONFIRMATION = "pending_confirmation"
    FAILED = "failed"
    SUCCEEDED = "succeeded"
    NO_CHANGE = "no_change"


def interpret(order_status: Optional[str], source_status: Optional[str]) -> Action:
    """Select the UI action for an (order status, source status) pair."""
    if order_status == OrderStatus.CREATED.value:
        if source_status == SourceStatus.CHARGEABLE.value:
            return Action.CHARGE
        if source_status in (SourceStatus.FAILED.value, SourceStatus.CANCELED.value):
            return Action.AUTHENTICATION_FAILED
        return Action.AWAITING_CONFIRMATION
    if order_status == OrderStatus.PENDING.value:
        return Action.PENDING_CONFIRMATION
    if order_status == OrderStatus.FAILED.value:
        return Action.FAILED
    if order_status in (OrderStatus.PAID.value, OrderStatus.CAPTURED.value):
        return Action.SUCCEEDED
    return Action.NO_CHANGE


class PayingStore(Protocol):
    async def pay_order(self, order: Order, source: Source) -> Any: ...


class OrderHandler:
    """Applies interpreted actions to a CheckoutView, charging when required."""

    def __init__(self, view: CheckoutView, store: PayingStore, max_charge_attempts: int = MAX_CHARGE_ATTEMPTS):
        self.view = view
        self.store = store
        self.max_charge_attempts = max_charge_attempts

    async def handle(self, order: Order, source: Optional[Source], error: Any = None) -> Action:
        """
        Interpret an order update and render it.

        `error` is anything with a `message` (a TokenizationError, a provider
        error detail); it is rendered before the status table is consulted.
        """
        source = source or Source(status=None)
        attempts = 0

        while True:
            if error is not None:
                self.render_error(error)

            action = interpret(order.metadata_status, source.status)
            if action is not Action.CHARGE:
                self.apply(action, source, error)
                return action

            if attempts >= self.max_charge_attempts:
                logger.warning(
                    f"Order {order.id} still chargeable after {attempts} charge attempts"
                )
                self.apply(Action.AWAITING_CONFIRMATION, source, error)
                return Action.AWAITING_CONFIRMATION

            attempts += 1
            self.view.submit_label = PROCESSING_LABEL
            try:
                response = await self.store.pay_order(order, source)
            except CheckoutError as e:
                logger.warning(f"Charge request for order {order.id} failed: {e.message}")
                self.render_error(e)
                self.view.submit_disabled = False
                return Action.NO_CHANGE

            order, source, error = response.order, response.source, None

    def render_error(self, error: Any) -> None:
        view = self.view
        view.remove_class("processing", "receiver")
        view.error_message = getattr(error, "message", str(error))
        view.add_class("error")

    def apply(self, action: Action, source: Source, error: Any = None) -> None:
        view = self.view

        if action is Action.AUTHENTICATION_FAILED:
            view.form_message = MESSAGE_AUTHENTICATION_FAILED
            view.submit_disabled = False

        elif action is Action.AWAITING_CONFIRMATION:
            if error is None:
                view.form_message = MESSAGE_AWAITING_CONFIRMATION
            self._follow_source_flow(source)

        elif action is Action.PENDING_CONFIRMATION:
            view.remove_class("processing")
            view.confirmation_note = NOTE_PAYMENT_PENDING
            view.add_class("success")

        elif action is Action.FAILED:
            view.checkout_visible = False
            view.remove_class("success", "processing", "receiver")
            view.add_class("error")

        elif action is Action.SUCCEEDED:
            view.checkout_visible = False
            view.remove_class("processing", "receiver")
            view.confirmation_note = NOTE_PAYMENT_CONFIRMED
            view.add_class("success")

        else:
            logger.debug(f"No UI change for action {action.value}")

    def _follow_source_flow(self, source: Source) -> None:
        """Hand over to the provider for redirect flows, show instructions for receivers."""
        extra = source.model_extra or {}
        flow = extra.get("flow")
        if flow == "redirect":
            url = (extra.get("redirect") or {}).get("url")
            if url:
                self.view.redirect_to = url
        elif flow == "receiver":
            self.view.remove_class("processing")
            self.view.add_class("success", "receiver")
            self.view.receiver_info = extra.get("receiver") or extra.get(source.type or "", {})
