import logging

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import Optional

class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False

    # Database
    DATABASE_URL: Optional[str] = None
    ADMIN_DATABASE_URL: Optional[str] = None  # elevated credentials for access retries
    TEST_DATABASE_URL: Optional[str] = None

    # Stripe
    STRIPE_SECRET_KEY: Optional[str] = None
    STRIPE_WEBHOOK_SECRET: Optional[str] = None

    # Consumer plan prices
    STRIPE_CONSUMER_STARTER_MONTHLY_PRICE_ID: Optional[str] = None
    STRIPE_CONSUMER_STARTER_ANNUAL_PRICE_ID: Optional[str] = None
    STRIPE_CONSUMER_PLUS_MONTHLY_PRICE_ID: Optional[str] = None
    STRIPE_CONSUMER_PLUS_ANNUAL_PRICE_ID: Optional[str] = None
    STRIPE_CONSUMER_VIP_MONTHLY_PRICE_ID: Optional[str] = None
    STRIPE_CONSUMER_VIP_ANNUAL_PRICE_ID: Optional[str] = None

    # Vendor plan prices
    STRIPE_VENDOR_STARTER_MONTHLY_PRICE_ID: Optional[str] = None
    STRIPE_VENDOR_STARTER_ANNUAL_PRICE_ID: Optional[str] = None
    STRIPE_VENDOR_PRO_MONTHLY_PRICE_ID: Optional[str] = None
    STRIPE_VENDOR_PRO_ANNUAL_PRICE_ID: Optional[str] = None
    STRIPE_VENDOR_ENTERPRISE_MONTHLY_PRICE_ID: Optional[str] = None
    STRIPE_VENDOR_ENTERPRISE_ANNUAL_PRICE_ID: Optional[str] = None

    # Admin allow-list
    ADMIN_EMAILS: str = ""  # comma-separated
    ADMIN_EMAIL_DOMAIN: Optional[str] = None

    # Auth
    AUTH_JWT_SECRET: Optional[str] = None

    # Compliance
    INTOXICATING_ALLOWED_UNTIL: str = "2026-11-01"

    # App URLs
    APP_BASE_URL: str = "http://localhost:3000"
    CORS_ORIGINS: str = "http://localhost:3000"  # comma-separated

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
settings = Settings()


PLAN_PRICE_KEYS = [
    "STRIPE_CONSUMER_STARTER_MONTHLY_PRICE_ID",
    "STRIPE_CONSUMER_STARTER_ANNUAL_PRICE_ID",
    "STRIPE_CONSUMER_PLUS_MONTHLY_PRICE_ID",
    "STRIPE_CONSUMER_PLUS_ANNUAL_PRICE_ID",
    "STRIPE_CONSUMER_VIP_MONTHLY_PRICE_ID",
    "STRIPE_CONSUMER_VIP_ANNUAL_PRICE_ID",
    "STRIPE_VENDOR_STARTER_MONTHLY_PRICE_ID",
    "STRIPE_VENDOR_STARTER_ANNUAL_PRICE_ID",
    "STRIPE_VENDOR_PRO_MONTHLY_PRICE_ID",
    "STRIPE_VENDOR_PRO_ANNUAL_PRICE_ID",
    "STRIPE_VENDOR_ENTERPRISE_MONTHLY_PRICE_ID",
    "STRIPE_VENDOR_ENTERPRISE_ANNUAL_PRICE_ID",
]


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate required configuration.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    Secrets are not logged, only missing keys. Unset plan prices are never
    fatal: those plans are simply left out of the catalogs.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("marketplace")
    strict_mode = strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False)

    required_keys = [
        "DATABASE_URL",
        "STRIPE_SECRET_KEY",
        "STRIPE_WEBHOOK_SECRET",
        "AUTH_JWT_SECRET",
    ]

    missing = [key for key in required_keys if not getattr(cfg, key, None)]
    if missing:
        message = f"Missing required configuration: {', '.join(missing)}"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    missing_prices = [key for key in PLAN_PRICE_KEYS if not getattr(cfg, key, None)]
    if missing_prices:
        log.warning(f"Plan prices not configured: {', '.join(missing_prices)}")

    if not cfg.ADMIN_EMAILS.strip() and not (cfg.ADMIN_EMAIL_DOMAIN or "").strip():
        log.warning("Admin allow-list is empty; no email will be treated as admin")

    return True
