"""
marketplace/features/access/store.py

Row reads for access decisions, validated at the boundary.

Any SQLAlchemy failure or malformed row surfaces as DataStoreError; a missing
row is a valid negative result and returns None.
"""

import logging
from contextlib import AbstractContextManager
from typing import Callable, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from marketplace.core.database import (
    get_admin_db_session,
    get_db_session,
    consumer_subscriptions,
    id_verifications,
    profiles,
    vendors,
)
from marketplace.core.errors import DataStoreError
from marketplace.models.records import (
    ConsumerSubscriptionRecord,
    ProfileRecord,
    VendorRecord,
    VerificationRecord,
)

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)

SessionScope = Callable[[], AbstractContextManager]


class AccessStore:
    """Reads profile, subscription, vendor and verification rows under one set of credentials."""

    def __init__(self, session_scope: SessionScope, name: str = "primary"):
        self._session_scope = session_scope
        self.name = name

    def _fetch_one(self, stmt, model: Type[RecordT]) -> Optional[RecordT]:
        try:
            with self._session_scope() as session:
                row = session.execute(stmt).mappings().first()
        except SQLAlchemyError as e:
            raise DataStoreError(f"{self.name} store read failed: {e.__class__.__name__}") from e

        if row is None:
            return None
        try:
            return model.model_validate(dict(row))
        except PydanticValidationError as e:
            logger.error(
                "[access] malformed row",
                extra={"event_type": model.__name__, "error_code": "row_validation"},
            )
            raise DataStoreError(f"Malformed {model.__name__} row") from e

    def fetch_profile(self, user_id: str) -> Optional[ProfileRecord]:
        stmt = select(
            profiles.c.id,
            profiles.c.role,
            profiles.c.is_admin,
            profiles.c.consumer_onboarding_completed,
            profiles.c.age_verified,
        ).where(profiles.c.id == user_id)
        return self._fetch_one(stmt, ProfileRecord)

    def fetch_consumer_subscription(self, user_id: str) -> Optional[ConsumerSubscriptionRecord]:
        stmt = select(
            consumer_subscriptions.c.user_id,
            consumer_subscriptions.c.subscription_status,
            consumer_subscriptions.c.consumer_plan_key,
        ).where(consumer_subscriptions.c.user_id == user_id)
        return self._fetch_one(stmt, ConsumerSubscriptionRecord)

    def fetch_vendor(self, user_id: str) -> Optional[VendorRecord]:
        stmt = select(
            vendors.c.id,
            vendors.c.owner_user_id,
            vendors.c.subscription_status,
            vendors.c.vendor_plan_key,
            vendors.c.vendor_onboarding_completed,
            vendors.c.terms_accepted_at,
            vendors.c.compliance_acknowledged_at,
        ).where(vendors.c.owner_user_id == user_id)
        return self._fetch_one(stmt, VendorRecord)

    def fetch_latest_verification(self, user_id: str) -> Optional[VerificationRecord]:
        stmt = (
            select(
                id_verifications.c.id,
                id_verifications.c.user_id,
                id_verifications.c.status,
                id_verifications.c.created_at,
                id_verifications.c.reviewed_at,
            )
            .where(id_verifications.c.user_id == user_id)
            .order_by(id_verifications.c.created_at.desc(), id_verifications.c.id.desc())
            .limit(1)
        )
        return self._fetch_one(stmt, VerificationRecord)


def get_primary_store() -> AccessStore:
    return AccessStore(get_db_session, name="primary")


def get_elevated_store() -> AccessStore:
    return AccessStore(get_admin_db_session, name="elevated")
