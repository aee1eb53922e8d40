"""
Tests for the payment provider REST client.

Tests: form encoding, auth headers, error mapping, network failures.
"""
import httpx
import pytest

from config import settings
from domain.errors import ConflictError, NotFoundError, UpstreamError
from services import stripe_client
from services.stripe_client import encode_form

from tests.conftest import patch_provider


class TestEncodeForm:

    @pytest.mark.unit
    def test_nested_dicts_use_brackets(self):
        pairs = encode_form({"metadata": {"status": "created", "promo": "WELCOME"}})
        assert pairs == [("metadata[status]", "created"), ("metadata[promo]", "WELCOME")]

    @pytest.mark.unit
    def test_lists_are_indexed(self):
        pairs = encode_form({"items": [{"type": "sku", "parent": "heets-mix"}, {"parent": "iqos-navy"}]})
        assert pairs == [
            ("items[0][type]", "sku"),
            ("items[0][parent]", "heets-mix"),
            ("items[1][parent]", "iqos-navy"),
        ]

    @pytest.mark.unit
    def test_booleans_and_none(self):
        pairs = encode_form({"metadata": {"marketing": True, "legal": False, "promo": None}})
        assert pairs == [("metadata[marketing]", "true"), ("metadata[legal]", "false")]

    @pytest.mark.unit
    def test_numbers_are_stringified(self):
        assert encode_form({"price": 2400}) == [("price", "2400")]

class TestRequests:

    @pytest.mark.asyncio
    async def test_sends_bearer_and_version_headers(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(request.headers)
            return httpx.Response(200, json={"id": "or_1"})

        with patch_provider(handler):
            await stripe_client.retrieve_order("or_1")

        assert seen["authorization"] == "Bearer sk_test_checkout"
        assert seen["stripe-version"] == settings.stripe_api_version

    @pytest.mark.asyncio
    async def test_publishable_key_overrides_secret(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers["authorization"]
            return httpx.Response(200, json={"id": "src_1", "status": "chargeable"})

        with patch_provider(handler):
            await stripe_client.create_source({"type": "card"}, api_key="pk_test_checkout")

        assert seen["auth"] == "Bearer pk_test_checkout"

    @pytest.mark.asyncio
    async def test_missing_key_is_upstream_error(self, monkeypatch):
        monkeypatch.setattr(settings, "stripe_secret_key", "")
        with pytest.raises(UpstreamError) as exc:
            await stripe_client.list_products()
        assert exc.value.code == "missing_api_key"

    @pytest.mark.unit
    def test_client_targets_configured_base(self, monkeypatch):
        monkeypatch.setattr(settings, "stripe_api_base", "https://provider.internal")
        client = stripe_client.build_http_client()
        assert client.base_url.host == "provider.internal"


def _respond(status_code: int, error: dict):
    return patch_provider(lambda request: httpx.Response(status_code, json={"error": error}))


class TestErrorMapping:

    @pytest.mark.asyncio
    async def test_404_is_not_found(self):
        with _respond(404, {"type": "invalid_request_error", "message": "No such order: or_x"}):
            with pytest.raises(NotFoundError) as exc:
                await stripe_client.retrieve_order("or_x")
        assert exc.value.status_code == 404
        assert "or_x" in exc.value.message

    @pytest.mark.asyncio
    async def test_already_exists_is_conflict(self):
        with _respond(400, {"code": "resource_already_exists", "message": "Product already exists."}):
            with pytest.raises(ConflictError) as exc:
                await stripe_client.create_product({"id": "heets"})
        assert exc.value.status_code == 409
        assert exc.value.code == "resource_already_exists"

    @pytest.mark.asyncio
    async def test_other_errors_keep_provider_fields(self):
        with _respond(402, {"type": "card_error", "code": "card_declined", "message": "Your card was declined."}):
            with pytest.raises(UpstreamError) as exc:
                await stripe_client.pay_order("or_1", {"source": "src_1"})
        assert exc.value.status_code == 502
        assert exc.value.message == "Your card was declined."
        assert exc.value.details == {"providerCode": "card_declined", "providerType": "card_error"}

    @pytest.mark.asyncio
    async def test_non_json_error_body(self):
        with patch_provider(lambda request: httpx.Response(503, text="unavailable")):
            with pytest.raises(UpstreamError) as exc:
                await stripe_client.list_products()
        assert "HTTP 503" in exc.value.message

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with patch_provider(handler):
            with pytest.raises(UpstreamError) as exc:
                await stripe_client.list_products()
        assert exc.value.code == "network_error"


class TestSources:

    @pytest.mark.asyncio
    async def test_retrieve_source(self, provider):
        created = await stripe_client.create_source({"type": "sepa_debit"})

        source = await stripe_client.retrieve_source(created["id"])

        assert source["id"] == created["id"]
        assert source["status"] == "chargeable"
