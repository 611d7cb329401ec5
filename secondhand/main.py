"""
Secondhand Marketplace API
FastAPI application entry point

- Every route is mounted under settings.API_PREFIX
- Errors render as {"error": message}
- Rate limiting with SlowAPI: a default per-IP limit, stricter on signup and checkout
- Startup ensures the image bucket exists and resumes interrupted checkouts
"""
import logging
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from secondhand import __version__
from secondhand.api.routes import auth, cart, health, products, profile, purchases, uploads
from secondhand.core.config import settings
from secondhand.core.error_handler import register_exception_handlers
from secondhand.core.rate_limit import limiter, rate_limit_exceeded_handler
from secondhand.core.request_context import RequestContextMiddleware
from secondhand.services.checkout_service import CheckoutService
from secondhand.services.entity_store import close_entity_store, get_entity_store
from secondhand.services.identity import close_identity_gateway
from secondhand.services.listing_service import ListingService
from secondhand.services.storage import get_storage_service

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


async def resume_interrupted_checkouts() -> None:
    """Finish checkout batches a crashed instance left pending."""
    store = get_entity_store()
    checkout = CheckoutService(store, ListingService(store))
    try:
        resumed = await checkout.reconcile_pending(
            older_than=timedelta(seconds=settings.CHECKOUT_RECONCILE_AFTER_SECONDS)
        )
    except Exception as e:
        logger.error(f"Checkout reconciliation failed: {type(e).__name__}: {e}")
        return
    if resumed:
        logger.warning(f"Resumed {len(resumed)} interrupted checkout batches")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.APP_NAME} v{__version__} ({settings.ENVIRONMENT})")

    if settings.STORAGE_INIT_ON_STARTUP:
        await get_storage_service().ensure_bucket()

    if settings.CHECKOUT_RECONCILE_ON_STARTUP:
        await resume_interrupted_checkouts()

    yield

    await close_identity_gateway()
    await close_entity_store()
    logger.info("Shutdown complete")


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        version=__version__,
        debug=settings.DEBUG,
        lifespan=lifespan,
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    # Applies RATE_LIMIT_DEFAULT to routes without an explicit limit
    app.add_middleware(SlowAPIMiddleware)
    register_exception_handlers(app)

    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        # Bearer tokens, not cookies
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        expose_headers=["Content-Length"],
        max_age=600,
    )

    for module in (health, auth, profile, uploads, products, cart, purchases):
        app.include_router(module.router, prefix=settings.API_PREFIX)

    return app


app = create_app()
