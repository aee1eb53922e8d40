"""
Payment provider REST client.

A thin async wrapper over the provider's order, product, SKU and source
endpoints. Nothing here knows about checkout rules; callers in
order_service.py and setup_service.py shape parameters and interpret results.

Request bodies use the provider's form encoding with bracketed keys:

    {"metadata": {"status": "created"}, "items": [{"parent": "heets-mix"}]}
    → metadata[status]=created&items[0][parent]=heets-mix

Errors:
    - 404 / resource_missing       → NotFoundError
    - resource_already_exists      → ConflictError
    - any other non-2xx / network  → UpstreamError
"""
import logging
from typing import Any, Optional

import httpx

from config import settings
from domain.constants import ERROR_RESOURCE_EXISTS, ERROR_RESOURCE_MISSING
from domain.errors import ConflictError, NotFoundError, UpstreamError

logger = logging.getLogger(__name__)


# ════════════════════════════════════════════════════════════════════
# Encoding
# ════════════════════════════════════════════════════════════════════


def encode_form(params: dict, prefix: str = "") -> list[tuple[str, str]]:
    """
    Flatten nested dicts/lists into bracketed form fields.

    None values are dropped; booleans become "true"/"false".
    """
    pairs: list[tuple[str, str]] = []
    for key, value in params.items():
        name = f"{prefix}[{key}]" if prefix else str(key)
        pairs.extend(_encode_value(name, value))
    return pairs


def _encode_value(name: str, value: Any) -> list[tuple[str, str]]:
    if value is None:
        return []
    if isinstance(value, dict):
        return encode_form(value, name)
    if isinstance(value, (list, tuple)):
        pairs = []
        for index, item in enumerate(value):
            pairs.extend(_encode_value(f"{name}[{index}]", item))
        return pairs
    if isinstance(value, bool):
        return [(name, "true" if value else "false")]
    return [(name, str(value))]


# ════════════════════════════════════════════════════════════════════
# Transport
# ════════════════════════════════════════════════════════════════════


def build_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=settings.stripe_api_base,
        timeout=settings.http_timeout_seconds,
    )


def _get_headers(api_key: Optional[str] = None) -> dict:
    """Build provider authentication headers."""
    key = api_key or settings.stripe_secret_key
    if not key:
        raise UpstreamError(
            "Payment provider key is not configured (STRIPE_SECRET_KEY)",
            code="missing_api_key",
        )
    return {
        "Authorization": f"Bearer {key}",
        "Stripe-Version": settings.stripe_api_version,
    }


def _raise_for_error(response: httpx.Response, resource: str, identifier: str) -> None:
    """Translate a provider error response into a domain error."""
    try:
        error = response.json().get("error", {})
    except ValueError:
        error = {}

    code = error.get("code")
    error_type = error.get("type")
    message = error.get("message") or f"Payment provider returned HTTP {response.status_code}"

    if response.status_code == 404 or code == ERROR_RESOURCE_MISSING:
        raise NotFoundError(resource, identifier, details={"providerMessage": message})
    if code == ERROR_RESOURCE_EXISTS:
        raise ConflictError(message)
    raise UpstreamError(message, code=code, error_type=error_type)


async def _request(
    method: str,
    path: str,
    *,
    resource: str,
    identifier: str = "",
    data: Optional[dict] = None,
    params: Optional[dict] = None,
    api_key: Optional[str] = None,
) -> dict:
    """Send one request to the provider and return the decoded JSON body."""
    headers = _get_headers(api_key)
    try:
        async with build_http_client() as client:
            response = await client.request(
                method,
                path,
                headers=headers,
                data=dict(encode_form(data)) if data else None,
                params=encode_form(params) if params else None,
            )
    except httpx.HTTPError as e:
        logger.error(f"Payment provider unreachable ({method} {path}): {e}")
        raise UpstreamError("Payment provider is unreachable", code="network_error") from e

    if response.is_error:
        logger.warning(f"Payment provider rejected {method} {path}: HTTP {response.status_code}")
        _raise_for_error(response, resource, identifier or path)

    return response.json()


# ════════════════════════════════════════════════════════════════════
# Orders
# ════════════════════════════════════════════════════════════════════


async def create_order(params: dict) -> dict:
    return await _request("POST", "/v1/orders", resource="Order", data=params)


async def retrieve_order(order_id: str) -> dict:
    return await _request("GET", f"/v1/orders/{order_id}", resource="Order", identifier=order_id)


async def update_order(order_id: str, params: dict) -> dict:
    return await _request(
        "POST", f"/v1/orders/{order_id}", resource="Order", identifier=order_id, data=params
    )


async def pay_order(order_id: str, params: dict) -> dict:
    return await _request(
        "POST", f"/v1/orders/{order_id}/pay", resource="Order", identifier=order_id, data=params
    )


# ════════════════════════════════════════════════════════════════════
# Catalog
# ════════════════════════════════════════════════════════════════════


async def list_products(params: Optional[dict] = None) -> dict:
    return await _request("GET", "/v1/products", resource="Product", params=params)


async def retrieve_product(product_id: str) -> dict:
    return await _request(
        "GET", f"/v1/products/{product_id}", resource="Product", identifier=product_id
    )


async def create_product(params: dict) -> dict:
    return await _request("POST", "/v1/products", resource="Product", data=params)


async def create_sku(params: dict) -> dict:
    return await _request("POST", "/v1/skus", resource="SKU", data=params)


# ════════════════════════════════════════════════════════════════════
# Sources
# ════════════════════════════════════════════════════════════════════


async def create_source(params: dict, api_key: Optional[str] = None) -> dict:
    """Create a source. The checkout client passes its publishable key."""
    return await _request("POST", "/v1/sources", resource="Source", data=params, api_key=api_key)


async def retrieve_source(source_id: str) -> dict:
    return await _request(
        "GET", f"/v1/sources/{source_id}", resource="Source", identifier=source_id
    )
