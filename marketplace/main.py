import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

# Load env from the repo root .env before settings are read
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv()

from marketplace.core.config import settings, validate_config
from marketplace.core.logging import configure_logging
from marketplace.core.middleware.request_id import RequestIdMiddleware
from marketplace.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    unhandled_exception_handler,
)
from marketplace.api import (
    access,
    affiliates,
    billing,
    compliance,
    gates,
    health,
    loyalty,
    plans,
    referrals,
    verification,
)
from marketplace.features.plans.service import find_shared_price_ids, get_missing_plan_config

configure_logging(settings.ENV)
validate_config(strict=getattr(settings, "CONFIG_STRICT", False))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("marketplace")
    logger.info("Starting marketplace backend...")

    # Build the catalogs up front so a shared price id fails the boot, not a checkout
    shared = find_shared_price_ids()
    if shared:
        raise RuntimeError(f"Price ids configured for both consumer and vendor plans: {', '.join(shared)}")
    missing = get_missing_plan_config()
    for family, keys in missing.items():
        if keys:
            logger.warning(f"[plans] {family} plans hidden, missing price ids: {', '.join(keys)}")

    try:
        yield
    finally:
        logging.getLogger("marketplace").info("Stopping marketplace backend...")


app = FastAPI(title="Marketplace - Backend", lifespan=lifespan)

app.add_middleware(RequestIdMiddleware)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(HTTPException, http_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, tags=["health"])
app.include_router(plans.router, prefix="/v1")
app.include_router(access.router, prefix="/v1")
app.include_router(gates.router, prefix="/v1")
app.include_router(verification.router, prefix="/v1")
app.include_router(loyalty.router, prefix="/v1")
app.include_router(referrals.router, prefix="/v1")
app.include_router(affiliates.router, prefix="/v1")
app.include_router(compliance.router, prefix="/v1")
app.include_router(billing.router, prefix="/v1")
