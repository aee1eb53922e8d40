"""
Store API client used by the checkout.

Wraps the HTTP API served by main.py: configuration, catalog, and the
order lifecycle. It also holds the cart (built from the device colour
chosen before checkout) and the id of the order in progress.
"""
import logging
from typing import Optional

import httpx
from pydantic import BaseModel, ValidationError

from config import settings
from domain.constants import DEVICE_SKU_PREFIX, HEETS_SKU_ID
from exceptions import StoreRequestError
from models import (
    CreateOrderRequest,
    Order,
    OrderExtra,
    OrderItem,
    PayOrderResponse,
    ProductList,
    Shipping,
    Source,
)

logger = logging.getLogger(__name__)


def describe_invalid_order(error: ValidationError) -> str:
    """First problem in the order form, readable by the buyer."""
    first = error.errors()[0]
    field = " ".join(str(part) for part in first["loc"] if not isinstance(part, int))
    label = field.replace("_", " ")
    return f"Please check your {label}: {first['msg']}"


class StoreClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        active_order_id: Optional[str] = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.api_base_url,
            transport=transport,
            timeout=settings.http_timeout_seconds,
        )
        self.config: Optional[dict] = None
        self.products: ProductList = ProductList()
        self.items: list[OrderItem] = []
        self.active_order_id = active_order_id

    async def __aenter__(self) -> "StoreClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _call(self, method: str, path: str, json: Optional[dict] = None) -> dict:
        try:
            response = await self._client.request(method, path, json=json)
        except httpx.HTTPError as e:
            raise StoreRequestError(f"Store is unreachable: {e}", status_code=0) from e

        if response.is_error:
            try:
                error = response.json().get("error") or {}
            except (ValueError, AttributeError):
                error = {}
            raise StoreRequestError(
                error.get("message") or f"Store request failed (HTTP {response.status_code})",
                status_code=response.status_code,
                code=error.get("code"),
            )
        try:
            return response.json()
        except ValueError as e:
            raise StoreRequestError(
                f"Store returned an unreadable response (HTTP {response.status_code})",
                status_code=response.status_code,
            ) from e

    @staticmethod
    def _parse(model: type[BaseModel], data: dict, key: Optional[str] = None):
        """Validate a store response body, or the object under `key` in it."""
        try:
            return model.model_validate(data[key] if key else data)
        except (KeyError, TypeError, ValidationError) as e:
            raise StoreRequestError(
                f"Unexpected store response: no valid {key or model.__name__}",
                status_code=200,
                code="invalid_response",
            ) from e

    # ── Configuration & catalog ─────────────────────────────────────

    async def get_config(self) -> dict:
        if self.config is None:
            self.config = await self._call("GET", "/config")
        return self.config

    async def load_products(self) -> ProductList:
        self.products = self._parse(ProductList, await self._call("GET", "/products"))
        return self.products

    def display_order_summary(self, colour: str) -> list[OrderItem]:
        """Fill the cart: one HEETS mix and the device in the chosen colour."""
        self.items = [
            OrderItem(type="sku", parent=HEETS_SKU_ID, quantity=1),
            OrderItem(type="sku", parent=f"{DEVICE_SKU_PREFIX}{colour.lower()}", quantity=1),
        ]
        return self.items

    def get_order_items(self) -> list[OrderItem]:
        return list(self.items)

    def get_sku_price(self, sku_id: str) -> int:
        for product in self.products.data:
            for sku in product.skus.data:
                if sku.id == sku_id:
                    return sku.price
        return 0

    def get_order_total(self) -> int:
        return sum(self.get_sku_price(item.parent) * (item.quantity or 1) for item in self.items)

    # ── Orders ──────────────────────────────────────────────────────

    async def create_order(
        self,
        currency: str,
        items: list[OrderItem],
        email: str,
        shipping: Shipping,
        extra: OrderExtra,
    ) -> Order:
        try:
            request = CreateOrderRequest(
                currency=currency, items=items, email=email, shipping=shipping, extra=extra
            )
        except ValidationError as e:
            raise StoreRequestError(
                describe_invalid_order(e), status_code=422, code="validation_error"
            ) from e
        data = await self._call("POST", "/orders", json=request.model_dump(mode="json", exclude_none=True))
        order = self._parse(Order, data, "order")
        self.active_order_id = order.id
        return order

    async def pay_order(self, order: Order, source: Source) -> PayOrderResponse:
        data = await self._call(
            "POST",
            f"/orders/{order.id}/pay",
            json={"source": source.model_dump(mode="json", exclude_none=True)},
        )
        return self._parse(PayOrderResponse, data)

    async def get_order_status(self, order_id: str) -> Order:
        data = await self._call("GET", f"/orders/{order_id}")
        return self._parse(Order, data, "order")

    def get_active_order_id(self) -> Optional[str]:
        return self.active_order_id
