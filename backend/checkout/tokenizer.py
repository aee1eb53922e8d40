"""
Payment tokenization.

Turns card details or method-specific source data into a provider Source
using the publishable key. Rejections come back as a TokenizationError in
the result rather than being raised, so the order handler always runs.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from config import settings
from domain.errors import DomainError
from exceptions import TokenizationError
from models import Source
from services import stripe_client

logger = logging.getLogger(__name__)


@dataclass
class CardDetails:
    number: str
    exp_month: int
    exp_year: int
    cvc: str
    postal_code: Optional[str] = None


@dataclass
class TokenizationResult:
    source: Optional[Source] = None
    error: Optional[TokenizationError] = None


class PaymentTokenizer(Protocol):
    async def create_card_source(self, card: Optional[CardDetails], owner: dict) -> TokenizationResult: ...

    async def create_source(self, source_data: dict) -> TokenizationResult: ...


class ProviderTokenizer:
    """Creates sources directly against the provider with the publishable key."""

    def __init__(self, publishable_key: Optional[str] = None):
        self.publishable_key = publishable_key or settings.stripe_publishable_key

    async def create_card_source(self, card: Optional[CardDetails], owner: dict) -> TokenizationResult:
        if card is None:
            return TokenizationResult(error=TokenizationError("Your card number is incomplete.", code="incomplete_number"))
        card_data = {
            "number": card.number,
            "exp_month": card.exp_month,
            "exp_year": card.exp_year,
            "cvc": card.cvc,
        }
        if card.postal_code:
            owner = {**owner, "address": {**owner.get("address", {}), "postal_code": card.postal_code}}
        return await self.create_source({"type": "card", "card": card_data, "owner": owner})

    async def create_source(self, source_data: dict) -> TokenizationResult:
        try:
            payload = await stripe_client.create_source(source_data, api_key=self.publishable_key)
        except DomainError as e:
            logger.info(f"Source creation rejected ({source_data.get('type')}): {e.message}")
            return TokenizationResult(error=TokenizationError(e.message, code=getattr(e, "code", None)))
        return TokenizationResult(source=Source.model_validate(payload))
