"""
Checkout Demo — FastAPI Application

Server half of the demo checkout: a façade over the payment provider's
order, product and charge APIs, the provider webhook, and SMS
confirmations. The checkout client lives in the `checkout` package.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi import HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from domain.errors import DomainError
from domain.responses import error_payload
from routes import health, orders, store, webhook

# ── Logging ─────────────────────────────────────────────────────────

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan ────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: validate settings, sanity-check the catalog."""
    settings.validate_production_settings()

    if settings.stripe_secret_key:
        from services import order_service
        try:
            products = await order_service.list_products()
            if order_service.validate_catalog(products):
                logger.info("Catalog check passed")
            else:
                logger.warning(
                    "Catalog check failed: expected products "
                    "'iqos' and 'heets' — run scripts/setup_catalog.py"
                )
        except DomainError as e:
            logger.warning(f"Catalog check skipped (non-fatal): {e.message}")

    yield  # app runs here

    logger.info("Shutting down")


# ── App Factory ─────────────────────────────────────────────────────

app = FastAPI(
    title="Checkout Demo API",
    description="Orders, catalog and payment webhooks for the demo checkout",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routes ──────────────────────────────────────────────────────────

app.include_router(health.router)
app.include_router(store.router)
app.include_router(orders.router)
app.include_router(webhook.router)


# ── Exception Handler ───────────────────────────────────────────────


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """
    Catch-all for unhandled exceptions.

    Never return raw exception details to clients; the traceback is
    logged server-side.
    """
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content=error_payload("internal_server_error", "Internal server error"),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc: HTTPException):
    """
    Standardize HTTPException responses for the checkout client.

    Keeps the original HTTP status code and headers, but wraps the payload.
    """
    if isinstance(exc, DomainError):
        error_code = exc.__class__.__name__.replace("Error", "").lower()
        return JSONResponse(
            status_code=exc.status_code,
            content=error_payload(error_code, exc.message, exc.details),
            headers=exc.headers,
        )

    detail = exc.detail
    message = detail if isinstance(detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_payload(
            "http_error", message, detail if not isinstance(detail, str) else None
        ),
        headers=exc.headers,
    )


# ── Entrypoint ──────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn
    import os
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="info")
