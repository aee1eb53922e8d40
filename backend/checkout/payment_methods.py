"""
Payment methods offered at checkout and the country gate in front of them.

Card is always offered. Every other method is offered only in the
countries listed for it; a method without a country list is offered
everywhere.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from domain.enums import PaymentFlow

CARD = "card"
QR_CODE_METHOD = "wechat"


@dataclass(frozen=True)
class PaymentMethod:
    id: str
    name: str
    flow: PaymentFlow
    countries: Optional[tuple[str, ...]] = None


# Card first: it is the default selection after every country change
PAYMENT_METHODS: dict[str, PaymentMethod] = {
    m.id: m
    for m in (
        PaymentMethod("card", "Card", PaymentFlow.NONE),
        PaymentMethod("ach_credit_transfer", "Bank Transfer", PaymentFlow.RECEIVER, ("US",)),
        PaymentMethod("alipay", "Alipay", PaymentFlow.REDIRECT, ("CN", "HK", "SG", "JP")),
        PaymentMethod("bancontact", "Bancontact", PaymentFlow.REDIRECT, ("BE",)),
        PaymentMethod("eps", "EPS", PaymentFlow.REDIRECT, ("AT",)),
        PaymentMethod("ideal", "iDEAL", PaymentFlow.REDIRECT, ("NL",)),
        PaymentMethod("giropay", "Giropay", PaymentFlow.REDIRECT, ("DE",)),
        PaymentMethod("multibanco", "Multibanco", PaymentFlow.RECEIVER, ("PT",)),
        PaymentMethod(
            "sepa_debit",
            "SEPA Direct Debit",
            PaymentFlow.NONE,
            ("FR", "DE", "ES", "BE", "NL", "LU", "IT", "PT", "AT", "IE"),
        ),
        PaymentMethod("sofort", "SOFORT", PaymentFlow.REDIRECT, ("DE", "AT")),
        PaymentMethod("wechat", "WeChat", PaymentFlow.NONE, ("CN", "HK", "SG", "JP")),
    )
}

CURRENCY_SYMBOLS = {
    "gbp": "£",
    "eur": "€",
    "usd": "$",
    "jpy": "¥",
    "cny": "¥",
    "hkd": "HK$",
    "sgd": "S$",
}

# Amounts in these currencies are already in whole units
ZERO_DECIMAL_CURRENCIES = frozenset({"jpy", "krw", "vnd", "clp", "xaf", "xof"})


def get_method(method_id: str) -> PaymentMethod:
    try:
        return PAYMENT_METHODS[method_id]
    except KeyError:
        raise ValueError(f"Unknown payment method: {method_id}") from None


def is_eligible(method_id: str, country: str) -> bool:
    """Whether `method_id` may be offered to a buyer in `country`."""
    if method_id == CARD:
        return True
    method = get_method(method_id)
    if method.countries is None:
        return True
    return country in method.countries


def relevant_payment_methods(method_ids: Iterable[str], country: str) -> list[str]:
    """Filter `method_ids` down to those offered in `country`, order preserved."""
    return [method_id for method_id in method_ids if is_eligible(method_id, country)]


def format_price(amount: int, currency: str) -> str:
    """
    Format an amount in minor units for display.

    >>> format_price(1000, "GBP")
    '£10.00'
    """
    code = currency.lower()
    if code in ZERO_DECIMAL_CURRENCIES:
        value = f"{Decimal(amount):,.0f}"
    else:
        value = f"{Decimal(amount) / 100:,.2f}"
    symbol = CURRENCY_SYMBOLS.get(code)
    if symbol:
        return f"{symbol}{value}"
    return f"{value} {code.upper()}"


def button_label(method_id: str, amount: int, currency: str, descriptor: PaymentMethod) -> str:
    """Submit button copy for the selected payment method."""
    if method_id == CARD:
        return "Place Order"
    price = format_price(amount, currency)
    if method_id == QR_CODE_METHOD:
        return f"Generate QR code to pay {price} with {descriptor.name}"
    return f"Pay {price} with {descriptor.name}"


def zip_label(country: str) -> str:
    if country == "US":
        return "ZIP"
    if country in ("UK", "GB"):
        return "Postcode"
    return "Postal Code"


def shows_state_field(country: str) -> bool:
    return country == "US"
