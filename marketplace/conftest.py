# marketplace/conftest.py
import pytest

from marketplace.core.config import Settings, settings
from marketplace.core.database import (
    create_all_tables,
    drop_all_tables,
    init_admin_engine,
    init_engine,
    reset_engines,
)
from marketplace.features.plans.service import reset_plan_catalogs


ADMIN_EMAIL = "admin@example.com"

PLAN_PRICE_IDS = {
    "STRIPE_CONSUMER_STARTER_MONTHLY_PRICE_ID": "price_consumer_starter_month",
    "STRIPE_CONSUMER_STARTER_ANNUAL_PRICE_ID": "price_consumer_starter_year",
    "STRIPE_CONSUMER_PLUS_MONTHLY_PRICE_ID": "price_consumer_plus_month",
    "STRIPE_CONSUMER_PLUS_ANNUAL_PRICE_ID": "price_consumer_plus_year",
    "STRIPE_CONSUMER_VIP_MONTHLY_PRICE_ID": "price_consumer_vip_month",
    "STRIPE_CONSUMER_VIP_ANNUAL_PRICE_ID": "price_consumer_vip_year",
    "STRIPE_VENDOR_STARTER_MONTHLY_PRICE_ID": "price_starter_month",
    "STRIPE_VENDOR_STARTER_ANNUAL_PRICE_ID": "price_starter_year",
    "STRIPE_VENDOR_PRO_MONTHLY_PRICE_ID": "price_pro_month",
    "STRIPE_VENDOR_PRO_ANNUAL_PRICE_ID": "price_pro_year",
    "STRIPE_VENDOR_ENTERPRISE_MONTHLY_PRICE_ID": "price_enterprise_month",
    "STRIPE_VENDOR_ENTERPRISE_ANNUAL_PRICE_ID": "price_enterprise_year",
}


@pytest.fixture(scope="function", autouse=True)
def sqlite_db():
    """
    In-memory SQLite database shared by the primary and elevated engines.

    Every test starts with freshly created tables.
    """
    engine = init_engine("sqlite://")
    init_admin_engine(engine=engine)
    create_all_tables()
    yield engine
    drop_all_tables()
    reset_engines()


@pytest.fixture(scope="function", autouse=True)
def test_settings(monkeypatch):
    """
    Deterministic settings for every test: all plan prices configured, one
    allow-listed admin email, billing and JWT auth disabled.

    Catalogs are rebuilt from these values on first use.
    """
    for key, value in PLAN_PRICE_IDS.items():
        monkeypatch.setattr(settings, key, value)
    monkeypatch.setattr(settings, "ADMIN_EMAILS", ADMIN_EMAIL)
    monkeypatch.setattr(settings, "ADMIN_EMAIL_DOMAIN", None)
    monkeypatch.setattr(settings, "STRIPE_SECRET_KEY", None)
    monkeypatch.setattr(settings, "STRIPE_WEBHOOK_SECRET", None)
    monkeypatch.setattr(settings, "AUTH_JWT_SECRET", None)
    reset_plan_catalogs()
    yield settings
    reset_plan_catalogs()


@pytest.fixture
def settings_factory():
    """Build an isolated Settings object (no .env file) with overrides."""
    def _build(**overrides) -> Settings:
        return Settings(_env_file=None, **overrides)
    return _build


@pytest.fixture
def billing_settings(monkeypatch):
    """Enable billing with fake Stripe credentials."""
    monkeypatch.setattr(settings, "STRIPE_SECRET_KEY", "sk_test_123")
    monkeypatch.setattr(settings, "STRIPE_WEBHOOK_SECRET", "whsec_test_123")
    return settings


@pytest.fixture
def client():
    """TestClient for the full app (lifespan not run)."""
    from fastapi.testclient import TestClient
    from marketplace.main import app

    return TestClient(app)
