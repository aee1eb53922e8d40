"""
Pytest configuration and shared fixtures for the checkout demo tests.

Provides an in-memory fake of the payment provider REST API (served through
httpx.MockTransport), an ASGI client for the FastAPI app, and a StoreClient
wired to the app so checkout tests run client → API → fake provider.
"""
import json
import re
from typing import AsyncGenerator, Callable
from unittest.mock import patch
from urllib.parse import parse_qsl

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from config import settings
from main import app
from middleware.rate_limit import limiter
from services import setup_service


# ── Test Configuration ───────────────────────────────────────────────


@pytest.fixture(autouse=True)
def configured_settings(monkeypatch):
    """Test-only credentials; never real keys."""
    monkeypatch.setattr(settings, "stripe_secret_key", "sk_test_checkout")
    monkeypatch.setattr(settings, "stripe_publishable_key", "pk_test_checkout")
    monkeypatch.setattr(settings, "stripe_webhook_secret", "whsec_test")
    monkeypatch.setattr(settings, "twilio_account_sid", "AC_test")
    monkeypatch.setattr(settings, "twilio_auth_token", "twilio_token")
    monkeypatch.setattr(settings, "currency", "gbp")
    monkeypatch.setattr(settings, "country", "GB")
    monkeypatch.setattr(settings, "proxy", None)
    limiter.reset()
    setup_service.reset_state()


def mock_http_client(handler: Callable[[httpx.Request], httpx.Response], base_url: str):
    """Stand-in for a service's build_http_client() answering through `handler`."""
    def build() -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=base_url, transport=httpx.MockTransport(handler))
    return build


def patch_provider(handler):
    return patch(
        "services.stripe_client.build_http_client",
        mock_http_client(handler, settings.stripe_api_base),
    )


def patch_messaging(handler):
    return patch(
        "services.sms_service.build_http_client",
        mock_http_client(handler, settings.twilio_api_base),
    )


# ── Fake payment provider ────────────────────────────────────────────

_KEY_PART = re.compile(r"\[([^\]]*)\]")


def unflatten_form(body: bytes) -> dict:
    """Rebuild nested params from bracketed form fields."""
    result: dict = {}
    for key, value in parse_qsl(body.decode(), keep_blank_values=True):
        parts = [key.split("[", 1)[0]] + _KEY_PART.findall(key)
        node = result
        for part in parts[:-1]:
            node = node.setdefault(part, {})
        node[parts[-1]] = value
    return _collapse_lists(result)


def _collapse_lists(value):
    """Dicts keyed "0", "1", ... become lists."""
    if isinstance(value, dict):
        converted = {k: _collapse_lists(v) for k, v in value.items()}
        if converted and all(k.isdigit() for k in converted):
            return [converted[k] for k in sorted(converted, key=int)]
        return converted
    return value


def _error(status_code: int, message: str, code: str | None = None, error_type: str = "invalid_request_error"):
    body = {"error": {"type": error_type, "message": message}}
    if code:
        body["error"]["code"] = code
    return httpx.Response(status_code, json=body)


DECLINED_CARD = "4000000000000002"


class FakeProvider:
    """Just enough of the provider API for the checkout flow."""

    def __init__(self):
        self.orders: dict[str, dict] = {}
        self.products: dict[str, dict] = {}
        self.sources: dict[str, dict] = {}
        self.requests: list[tuple[str, str, dict]] = []
        self.fail_all = False
        self._ids = 0

    def _next_id(self, prefix: str) -> str:
        self._ids += 1
        return f"{prefix}_{self._ids:04d}"

    def add_catalog(self):
        """Products as left behind by a successful setup run."""
        self.products["heets"] = {
            "id": "heets", "name": "HEETS", "type": "good", "attributes": ["type"],
            "skus": {"data": [{"id": "heets-mix", "product": "heets", "price": 2400, "currency": "gbp"}]},
        }
        self.products["iqos"] = {
            "id": "iqos", "name": "IQOS device", "type": "good", "attributes": ["colour"],
            "skus": {"data": [
                {"id": "iqos-white", "product": "iqos", "price": 0, "currency": "gbp"},
                {"id": "iqos-navy", "product": "iqos", "price": 0, "currency": "gbp"},
            ]},
        }

    def sku_price(self, sku_id: str) -> int:
        for product in self.products.values():
            for sku in product["skus"]["data"]:
                if sku["id"] == sku_id:
                    return sku["price"]
        return -1

    def calls(self, method: str, path: str) -> list[dict]:
        return [params for m, p, params in self.requests if m == method and p == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        params = unflatten_form(request.content) if request.content else {}
        self.requests.append((request.method, path, params))

        if self.fail_all:
            return _error(500, "Provider outage", error_type="api_error")
        if not request.headers.get("Authorization", "").startswith("Bearer "):
            return _error(401, "Invalid API Key provided")

        parts = path.strip("/").split("/")[1:]  # drop "v1"
        resource = parts[0]

        if resource == "orders":
            return self._orders(request.method, parts[1:], params)
        if resource == "products":
            return self._products(request.method, parts[1:], params)
        if resource == "skus":
            return self._skus(params)
        if resource == "sources":
            return self._sources(params, parts[1:])
        return _error(404, f"Unrecognized request URL ({path})")

    def _orders(self, method, rest, params):
        if not rest:
            if params.get("currency") != "gbp":
                return _error(400, "Invalid currency", code="parameter_invalid_currency")
            items = params.get("items") or []
            if not items:
                return _error(400, "Missing required param: items.", code="parameter_missing")
            amount = 0
            for item in items:
                price = self.sku_price(item.get("parent", ""))
                if price < 0:
                    return _error(400, f"No such sku: {item.get('parent')}", code="resource_missing_sku")
                amount += price * int(item.get("quantity", 1))
            order = {
                "id": self._next_id("or"),
                "object": "order",
                "amount": amount,
                "currency": params["currency"],
                "email": params.get("email"),
                "items": items,
                "shipping": params.get("shipping"),
                "metadata": params.get("metadata", {}),
                "status": "created",
            }
            self.orders[order["id"]] = order
            return httpx.Response(200, json=order)

        order = self.orders.get(rest[0])
        if order is None:
            return _error(404, f"No such order: {rest[0]}", code="resource_missing")

        if len(rest) == 2 and rest[1] == "pay":
            source = self.sources.get(params.get("source", ""))
            if source is None or source.get("declined"):
                return _error(402, "Your card was declined.", code="card_declined", error_type="card_error")
            order["status"] = "paid"
            return httpx.Response(200, json=order)

        if method == "POST":
            order["metadata"].update(params.get("metadata", {}))
        return httpx.Response(200, json=order)

    def _products(self, method, rest, params):
        if method == "GET" and not rest:
            return httpx.Response(200, json={"object": "list", "data": list(self.products.values()), "has_more": False})
        if method == "GET":
            product = self.products.get(rest[0])
            if product is None:
                return _error(404, f"No such product: {rest[0]}", code="resource_missing")
            return httpx.Response(200, json=product)
        if params["id"] in self.products:
            return _error(400, "Product already exists.", code="resource_already_exists")
        product = {**params, "skus": {"data": []}}
        self.products[params["id"]] = product
        return httpx.Response(200, json=product)

    def _skus(self, params):
        product = self.products[params["product"]]
        sku = {**params, "price": int(params["price"])}
        product["skus"]["data"].append(sku)
        return httpx.Response(200, json=sku)

    def _sources(self, params, rest=()):
        if rest:
            source = self.sources.get(rest[0])
            if source is None:
                return _error(404, f"No such source: {rest[0]}", code="resource_missing")
            return httpx.Response(200, json=source)
        source_type = params.get("type")
        if source_type == "card":
            card = params.get("card", {})
            if card.get("number") == DECLINED_CARD:
                return _error(402, "Your card was declined.", code="card_declined", error_type="card_error")
            status, flow = "chargeable", "none"
        elif source_type == "sepa_debit":
            status, flow = "chargeable", "none"
        elif source_type in ("ach_credit_transfer", "multibanco"):
            status, flow = "pending", "receiver"
        else:
            status, flow = "pending", "redirect"
        source = {
            "id": self._next_id("src"),
            "object": "source",
            "type": source_type,
            "status": status,
            "flow": flow,
            "metadata": params.get("metadata", {}),
        }
        if flow == "redirect":
            source["redirect"] = {"url": f"https://hooks.example.com/redirect/{source['id']}", "status": "pending"}
        if flow == "receiver":
            source["receiver"] = {"address": "110000000-test", "amount_received": 0}
        self.sources[source["id"]] = source
        return httpx.Response(200, json=source)


@pytest.fixture
def provider():
    """Fake payment provider with the demo catalog already provisioned."""
    fake = FakeProvider()
    fake.add_catalog()
    with patch_provider(fake.handler):
        yield fake


@pytest.fixture
def empty_provider():
    """Fake payment provider with an empty catalog."""
    fake = FakeProvider()
    with patch_provider(fake.handler):
        yield fake


@pytest.fixture(autouse=True)
def sms_outbox():
    """Captures messages posted to the messaging API (no test talks to the real one)."""
    outbox: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        outbox.append(dict(parse_qsl(request.content.decode())))
        return httpx.Response(201, json={"sid": f"SM{len(outbox):04d}"})

    with patch_messaging(handler):
        yield outbox


# ── API clients ─────────────────────────────────────────────────────


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """ASGI client for route-level tests."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
async def store():
    """StoreClient talking to the app in-process."""
    from checkout.store import StoreClient

    async with StoreClient(base_url="http://test", transport=ASGITransport(app=app)) as s:
        yield s


# ── Test Data Fixtures ────────────────────────────────────────────────


@pytest.fixture
def shipping_payload() -> dict:
    return {
        "name": "Jenny Rosen",
        "phone": "+447700900123",
        "address": {
            "line1": "1 Test Street",
            "city": "London",
            "postal_code": "N1 9GU",
            "country": "GB",
        },
    }


@pytest.fixture
def order_payload(shipping_payload) -> dict:
    return {
        "currency": "gbp",
        "items": [
            {"type": "sku", "parent": "heets-mix", "quantity": 1},
            {"type": "sku", "parent": "iqos-white", "quantity": 1},
        ],
        "email": "jenny@example.com",
        "shipping": shipping_payload,
        "extra": {"marketing": True, "legal": True, "dob": "01/01/1980", "promo": "WELCOME"},
    }


@pytest.fixture
def sign_webhook():
    """Returns a helper building a webhook body and its Stripe-Signature header."""
    import time
    from services.webhook_service import compute_signature

    def _sign(event: dict, secret: str = "whsec_test", timestamp: int | None = None) -> tuple[bytes, str]:
        payload = json.dumps(event).encode()
        ts = int(time.time()) if timestamp is None else timestamp
        return payload, f"t={ts},v1={compute_signature(payload, ts, secret)}"

    return _sign
