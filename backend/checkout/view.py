"""
Page state for the checkout.

Stands in for the DOM: the controller, interpreter and poller mutate one
CheckoutView and the rendering layer (or a test) reads it back.
"""
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class CheckoutView:
    # classes on the main element: checkout, processing, receiver, success, error
    main_classes: set[str] = field(default_factory=set)
    checkout_visible: bool = True

    # confirmation screen
    confirmation_note: str = ""
    error_message: str = ""

    # form
    form_message: str = ""
    submit_label: str = "Place Order"
    submit_disabled: bool = False
    card_error: str = ""
    card_error_visible: bool = False
    dob: str = ""
    country: str = ""
    zip_label: str = "Postal Code"
    with_state: bool = False

    # payment method selector
    visible_payment_methods: list[str] = field(default_factory=list)
    payment_tabs_visible: bool = False
    selected_payment_method: str = "card"
    payment_info_visible: set[str] = field(default_factory=set)

    # receiver flow instructions (bank transfer details, Multibanco reference)
    receiver_info: Optional[dict[str, Any]] = None

    # navigation requested by the checkout (site root, provider redirect)
    redirect_to: Optional[str] = None

    def add_class(self, *names: str) -> None:
        self.main_classes.update(names)

    def remove_class(self, *names: str) -> None:
        self.main_classes.difference_update(names)

    def has_class(self, name: str) -> bool:
        return name in self.main_classes

    def show_card_error(self, message: str) -> None:
        self.card_error = message
        self.card_error_visible = True

    def hide_card_error(self) -> None:
        self.card_error_visible = False
