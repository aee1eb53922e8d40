"""
Catalog setup — one-time provisioning of the demo products and SKUs.

Creates:
    heets  (attribute "type")   → SKU heets-mix            (2400)
    iqos   (attribute "colour") → SKUs iqos-white, iqos-navy (0)

A second run hits "already exists" upstream; that is reported and not
re-raised. Concurrent calls to run() share one in-flight task.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from config import settings
from domain.constants import ERROR_RESOURCE_EXISTS, PRODUCT_EXISTS_MESSAGE
from domain.errors import UpstreamError
from services import stripe_client

logger = logging.getLogger(__name__)


CATALOG_FIXTURES = [
    {
        "product": {"id": "heets", "type": "good", "name": "HEETS", "attributes": ["type"]},
        "skus": [
            {
                "id": "heets-mix",
                "attributes": {
                    "type": "3 packs of HEETS (Amber, Turquoise, Yellow) "
                            "Each pack contains 20 tobacco sticks",
                },
                "price": 2400,
            },
        ],
    },
    {
        "product": {"id": "iqos", "type": "good", "name": "IQOS device", "attributes": ["colour"]},
        "skus": [
            {"id": "iqos-white", "attributes": {"colour": "White"}, "price": 0},
            {"id": "iqos-navy", "attributes": {"colour": "Navy"}, "price": 0},
        ],
    },
]


@dataclass
class SetupState:
    """Single-flight guard: the task of the setup run in progress, if any."""
    task: Optional[asyncio.Task] = None
    completed_runs: int = 0
    last_result: Optional[str] = field(default=None)

    @property
    def running(self) -> bool:
        return self.task is not None and not self.task.done()


_state = SetupState()


def get_state() -> SetupState:
    return _state


def reset_state() -> None:
    """Forget any previous run (tests only)."""
    global _state
    _state = SetupState()


def is_already_exists(error: UpstreamError) -> bool:
    """Match on the provider error code, falling back to its message."""
    if error.code == ERROR_RESOURCE_EXISTS:
        return True
    return error.message == PRODUCT_EXISTS_MESSAGE


async def provision_catalog() -> None:
    """Create every fixture product and its SKUs in order."""
    for fixture in CATALOG_FIXTURES:
        product = fixture["product"]
        await stripe_client.create_product(product)
        logger.info(f"  Product created: {product['id']}")
        for sku in fixture["skus"]:
            await stripe_client.create_sku({
                **sku,
                "product": product["id"],
                "currency": settings.currency,
                "inventory": {"type": "infinite"},
            })
            logger.info(f"    SKU created: {sku['id']}")


async def _run_once(state: SetupState) -> str:
    try:
        await provision_catalog()
    except UpstreamError as e:
        if is_already_exists(e):
            logger.warning("⚠️  Products have already been registered.")
            logger.warning("Delete them from your Dashboard to run this setup.")
            result = "exists"
        else:
            logger.error(f"⚠️  An error occurred during setup: {e.message}")
            result = "error"
    else:
        logger.info("Setup complete.")
        result = "complete"
    state.completed_runs += 1
    state.last_result = result
    return result


def run() -> asyncio.Task:
    """
    Start catalog provisioning, or join the run already in progress.

    Returns:
        The task of the (possibly shared) run. Its result is one of
        "complete", "exists" or "error".
    """
    state = _state
    if state.running:
        logger.warning("⚠️  Setup already in progress.")
        return state.task

    state.task = asyncio.create_task(_run_once(state))
    return state.task
