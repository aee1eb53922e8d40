"""
Store endpoints — checkout configuration and the product catalog.

Endpoints:
    GET /config               — publishable key, currency, default country
    GET /products             — product list (with SKUs)
    GET /products/{id}        — single product
"""
import logging

from fastapi import APIRouter

from config import settings
from domain.responses import StandardErrorResponse
from models import ConfigResponse, Product, ProductList
from services import order_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["store"])


@router.get("/config", response_model=ConfigResponse, response_model_by_alias=True)
async def get_config():
    """Configuration the checkout page needs before mounting payment fields."""
    return ConfigResponse(
        stripe_publishable_key=settings.stripe_publishable_key,
        currency=settings.currency,
        country=settings.country,
    )


@router.get(
    "/products",
    response_model=ProductList,
    responses={502: {"model": StandardErrorResponse}},
)
async def list_products():
    products = await order_service.list_products()
    if not order_service.validate_catalog(products):
        logger.warning("Catalog does not match the expected fixtures — run scripts/setup_catalog.py")
    return products


@router.get(
    "/products/{product_id}",
    response_model=Product,
    responses={404: {"model": StandardErrorResponse}},
)
async def get_product(product_id: str):
    return await order_service.retrieve_product(product_id)
