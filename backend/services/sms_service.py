"""
SMS Service — order confirmation messages through the Twilio REST API.

Delivery is best-effort: a confirmation that cannot be sent is logged and
the checkout carries on. Outbound requests go through a dedicated httpx
client so that deployments behind a corporate proxy can set PROXY.
"""
import logging

import httpx

from config import settings
from domain.constants import SMS_TEMPLATE

logger = logging.getLogger(__name__)


def build_http_client() -> httpx.AsyncClient:
    """HTTP client for the messaging API, routed through PROXY when set."""
    kwargs = {
        "base_url": settings.twilio_api_base,
        "auth": (settings.twilio_account_sid, settings.twilio_auth_token),
        "timeout": settings.http_timeout_seconds,
    }
    if settings.proxy:
        kwargs["proxy"] = settings.proxy
    return httpx.AsyncClient(**kwargs)


def render_message(name: str) -> str:
    return SMS_TEMPLATE.format(name=name)


async def send_confirmation(name: str, phone_number: str) -> bool:
    """
    Send the fixed confirmation text to `phone_number`.

    Returns:
        True if the messaging API accepted the message, False otherwise.
        Never raises.
    """
    if not settings.twilio_account_sid or not settings.twilio_auth_token:
        logger.warning("Twilio credentials not configured — skipping confirmation SMS")
        return False
    if not phone_number:
        logger.warning(f"No phone number for {name!r} — skipping confirmation SMS")
        return False

    try:
        async with build_http_client() as client:
            response = await client.post(
                f"/Accounts/{settings.twilio_account_sid}/Messages.json",
                data={
                    "To": phone_number,
                    "From": settings.twilio_from_number,
                    "Body": render_message(name),
                },
            )
            response.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning(f"Confirmation SMS to ...{phone_number[-4:]} failed: {e}")
        return False

    logger.info(f"  📱 Confirmation SMS queued: {response.json().get('sid', '?')}")
    return True
