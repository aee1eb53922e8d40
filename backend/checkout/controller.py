"""
Checkout controller.

Orchestrates the checkout page:

    1. load()                 query string → cart, default country, or poller
    2. select_country()       zip label + eligible payment methods
    3. select_payment_method() payment info panels + button label
    4. submit()               create order → tokenize once → interpret

Errors never escape submit(): order creation failures become a form
message, tokenization failures an inline card error, and the order
handler always runs so the view stays consistent.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import parse_qs

from config import settings
from domain.enums import PaymentFlow
from exceptions import CheckoutError, RedirectRequired, TokenizationError
from models import Address, Order, OrderExtra, Shipping, Source

from checkout.interpreter import Action, OrderHandler
from checkout.payment_methods import (
    CARD,
    PAYMENT_METHODS,
    button_label,
    get_method,
    relevant_payment_methods,
    shows_state_field,
    zip_label,
)
from checkout.poller import OrderStatusPoller
from checkout.store import StoreClient
from checkout.tokenizer import CardDetails, PaymentTokenizer, TokenizationResult
from checkout.view import CheckoutView

logger = logging.getLogger(__name__)

SITE_ROOT = "/"
PAYMENT_INFO_PANELS = ("card", "sepa_debit", "wechat")


@dataclass
class CheckoutForm:
    """Values read from the checkout form on submit."""
    payment: str = CARD
    name: str = ""
    phone: str = ""
    email: str = ""
    address: str = ""
    city: str = ""
    postal_code: str = ""
    state: str = ""
    country: str = ""
    iban: str = ""
    marketing: bool = False
    legal: bool = False
    dob: str = ""
    card: Optional[CardDetails] = field(default=None, repr=False)

    def shipping(self) -> Shipping:
        return Shipping(
            name=self.name,
            phone=self.phone or None,
            address=Address(
                line1=self.address,
                city=self.city,
                postal_code=self.postal_code,
                state=self.state or None,
                country=self.country,
            ),
        )


class CheckoutController:
    def __init__(
        self,
        store: StoreClient,
        tokenizer: PaymentTokenizer,
        view: Optional[CheckoutView] = None,
        poller: Optional[OrderStatusPoller] = None,
        return_url: str = "",
        payment_methods: Optional[list[str]] = None,
    ):
        self.store = store
        self.tokenizer = tokenizer
        self.view = view or CheckoutView()
        self.handler = OrderHandler(self.view, store)
        self.poller = poller or OrderStatusPoller(store, self.handler)
        self.return_url = return_url
        self.payment_methods = payment_methods or list(PAYMENT_METHODS)
        self.promo: Optional[str] = None
        self.currency = ""

    # ── Page load ───────────────────────────────────────────────────

    async def load(self, query_string: str) -> None:
        """
        Prepare the page from the navigation query string.

        Raises:
            RedirectRequired if `dob` or `colour` is missing or empty.
        """
        params = parse_qs(query_string.lstrip("?"), keep_blank_values=True)
        dob = params.get("dob", [""])[0]
        colour = params.get("colour", [""])[0]
        self.promo = params.get("promo", [None])[0]

        if not dob or not colour:
            self.view.redirect_to = SITE_ROOT
            raise RedirectRequired(SITE_ROOT, "dob and colour are required to check out")

        self.view.dob = dob
        config = await self.store.get_config()
        self.currency = config["currency"]
        await self.store.load_products()
        self.store.display_order_summary(colour)

        order_id = self.store.get_active_order_id()
        if order_id and "source" in params:
            # Back from a redirect flow: webhooks settle the order server-side.
            self.view.add_class("success", "processing")
            self.poller.start(order_id)
        else:
            self.view.add_class("checkout")

        self.select_country(config["country"])

    # ── Country & payment method selection ─────────────────────────

    def select_country(self, country: str) -> None:
        self.view.country = country
        self.view.zip_label = zip_label(country)
        self.view.with_state = shows_state_field(country)
        self.show_relevant_payment_methods(country)

    def show_relevant_payment_methods(self, country: Optional[str] = None) -> list[str]:
        """Show only the methods offered in `country` and reselect the first."""
        country = country or self.view.country
        visible = relevant_payment_methods(self.payment_methods, country)
        self.view.visible_payment_methods = visible
        # Tabs are pointless when card is the only option.
        self.view.payment_tabs_visible = len(visible) > 1
        self.select_payment_method(visible[0])
        return visible

    def select_payment_method(self, method_id: str) -> None:
        method = get_method(method_id)
        view = self.view
        view.selected_payment_method = method_id
        view.submit_label = button_label(
            method_id, self.store.get_order_total(), self.currency, method
        )

        panels = {panel for panel in PAYMENT_INFO_PANELS if panel == method_id}
        if method.flow is PaymentFlow.REDIRECT:
            panels.add("redirect")
        elif method.flow is PaymentFlow.RECEIVER:
            panels.add("receiver")
        view.payment_info_visible = panels

        if method_id != CARD:
            view.hide_card_error()

    def card_changed(self, error: Optional[TokenizationError] = None) -> None:
        """Card field edited: show or clear its inline error and re-enable submit."""
        if error:
            self.view.show_card_error(error.message)
        else:
            self.view.hide_card_error()
        self.view.submit_disabled = False

    # ── Submission ──────────────────────────────────────────────────

    def build_extra(self, form: CheckoutForm) -> OrderExtra:
        return OrderExtra(
            marketing=form.marketing,
            legal=form.legal,
            dob=form.dob or self.view.dob,
            promo=self.promo,
        )

    def build_source_data(self, form: CheckoutForm, order: Order) -> dict:
        """Source request for every method except card."""
        source_data = {
            "type": form.payment,
            "amount": order.amount,
            "currency": order.currency,
            "owner": {"name": form.name, "email": form.email},
            "redirect": {"return_url": self.return_url},
            "statement_descriptor": settings.statement_descriptor,
            "metadata": {"order": order.id},
        }

        if form.payment == "sepa_debit":
            source_data["sepa_debit"] = {"iban": form.iban}
        elif form.payment == "sofort":
            # The bank is chosen by country before redirecting.
            source_data["sofort"] = {"country": form.country}
        elif form.payment == "ach_credit_transfer":
            # Test mode: the owner email encodes the amount to be received.
            source_data["owner"]["email"] = f"amount_{order.amount}@example.com"

        return source_data

    async def tokenize(self, form: CheckoutForm, order: Order) -> TokenizationResult:
        """Exactly one tokenization call per submission."""
        try:
            if form.payment == CARD:
                return await self.tokenizer.create_card_source(form.card, {"name": form.name})
            return await self.tokenizer.create_source(self.build_source_data(form, order))
        except CheckoutError as e:
            return TokenizationResult(error=TokenizationError(e.message))

    async def submit(self, form: CheckoutForm) -> Action:
        view = self.view
        view.submit_disabled = True
        view.form_message = ""

        try:
            order = await self.store.create_order(
                self.currency,
                self.store.get_order_items(),
                form.email,
                form.shipping(),
                self.build_extra(form),
            )
        except CheckoutError as e:
            logger.warning(f"Order creation failed: {e.message}")
            view.form_message = e.message
            view.submit_disabled = False
            return Action.NO_CHANGE

        result = await self.tokenize(form, order)
        if result.error is not None:
            if form.payment == CARD:
                view.show_card_error(result.error.message)
            view.submit_disabled = False

        return await self.handler.handle(order, result.source or Source(status=None), result.error)
