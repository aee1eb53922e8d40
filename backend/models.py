"""
Pydantic models for provider objects and request/response validation.

Provider objects (orders, sources, products) keep unknown fields so that
responses round-trip to the checkout client unchanged.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional


class ProviderObject(BaseModel):
    """Shared base for provider payloads — unknown fields are preserved."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")


# ── Orders ──────────────────────────────────────────────────────────

class Address(BaseModel):
    line1: str = ""
    line2: Optional[str] = None
    city: str = ""
    postal_code: str = ""
    state: Optional[str] = None
    country: str = ""


class Shipping(BaseModel):
    name: str
    phone: Optional[str] = None
    address: Address


class OrderItem(ProviderObject):
    """Line item as sent on creation (`type=sku`, `parent=<sku id>`)."""
    type: str = "sku"
    parent: Optional[str] = None
    quantity: Optional[int] = None
    amount: Optional[int] = None
    currency: Optional[str] = None
    description: Optional[str] = None


class OrderExtra(BaseModel):
    """Consent and business fields collected alongside shipping details."""
    marketing: bool = False
    legal: bool = False
    dob: str = ""
    promo: Optional[str] = None


class Order(ProviderObject):
    id: str
    amount: int = 0
    currency: str = ""
    email: Optional[str] = None
    items: List[OrderItem] = Field(default_factory=list)
    shipping: Optional[Shipping] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    status: Optional[str] = None  # provider-side order status

    @property
    def metadata_status(self) -> Optional[str]:
        """Business status driving the checkout UI."""
        return self.metadata.get("status")


# ── Sources ─────────────────────────────────────────────────────────

class Source(ProviderObject):
    id: Optional[str] = None
    type: Optional[str] = None
    status: Optional[str] = None
    amount: Optional[int] = None
    currency: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


# ── Catalog ─────────────────────────────────────────────────────────

class Sku(ProviderObject):
    id: str
    product: Optional[str] = None
    price: int = 0
    currency: Optional[str] = None
    attributes: Dict[str, Any] = Field(default_factory=dict)


class SkuList(ProviderObject):
    data: List[Sku] = Field(default_factory=list)


class Product(ProviderObject):
    id: str
    name: Optional[str] = None
    type: Optional[str] = None
    attributes: List[str] = Field(default_factory=list)
    skus: SkuList = Field(default_factory=SkuList)


class ProductList(ProviderObject):
    data: List[Product] = Field(default_factory=list)
    has_more: bool = False


# ── API Requests / Responses ────────────────────────────────────────

class CreateOrderRequest(BaseModel):
    """Request body for POST /orders."""
    currency: str = Field(..., min_length=3, max_length=3)
    items: List[OrderItem] = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    shipping: Shipping
    extra: OrderExtra = Field(default_factory=OrderExtra)


class PayOrderRequest(BaseModel):
    """Request body for POST /orders/{order_id}/pay."""
    source: Source


class OrderResponse(BaseModel):
    order: Order


class PayOrderResponse(BaseModel):
    order: Order
    source: Source


class ConfigResponse(BaseModel):
    stripe_publishable_key: str = Field(..., alias="stripePublishableKey")
    currency: str
    country: str

    model_config = ConfigDict(populate_by_name=True)
