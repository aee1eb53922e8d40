"""
Health check endpoint.
"""
from datetime import datetime, timezone
import logging

from fastapi import APIRouter, status

from config import settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check():
    """Liveness check: reports configuration without calling the provider."""
    return {
        "status": "healthy",
        "environment": settings.environment,
        "providerConfigured": bool(settings.stripe_secret_key),
        "messagingConfigured": bool(settings.twilio_account_sid and settings.twilio_auth_token),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
