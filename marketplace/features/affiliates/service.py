"""
marketplace/features/affiliates/service.py

Affiliate codes and per-package rewards (in cents).
"""

import logging
import secrets
import string
from typing import Literal

from sqlalchemy import insert, select
from sqlalchemy.exc import IntegrityError

from marketplace.core.database import affiliates, get_db_session
from marketplace.models.records import AffiliateRecord

logger = logging.getLogger(__name__)

AffiliateRole = Literal["consumer", "vendor"]

DEFAULT_AFFILIATE_REWARD_CENTS = 500
AFFILIATE_REWARDS_CENTS = {
    "STARTER": 500,
    "PLUS": 1500,
    "VIP": 2500,
    # vendor packages
    "BASIC": 500,
    "PRO": 1500,
    "ELITE": 2500,
}

_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits


def generate_affiliate_code(user_id: str) -> str:
    """First 8 chars of the user id, uppercased, plus a 4-char random suffix."""
    user_part = user_id[:8].upper()
    random_part = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(4))
    return f"{user_part}-{random_part}"


def calculate_affiliate_reward(package_name: str) -> int:
    return AFFILIATE_REWARDS_CENTS.get((package_name or "").upper(), DEFAULT_AFFILIATE_REWARD_CENTS)


def _select_affiliate(user_id: str):
    return select(
        affiliates.c.user_id,
        affiliates.c.role,
        affiliates.c.affiliate_code,
        affiliates.c.reward_cents,
    ).where(affiliates.c.user_id == user_id)


def ensure_affiliate(user_id: str, role: AffiliateRole) -> AffiliateRecord:
    """Return the user's affiliate record, creating it on first call."""
    with get_db_session() as session:
        row = session.execute(_select_affiliate(user_id)).mappings().first()
    if row:
        return AffiliateRecord.model_validate(dict(row))

    code = generate_affiliate_code(user_id)
    try:
        with get_db_session() as session:
            session.execute(
                insert(affiliates).values(
                    user_id=user_id,
                    role=role,
                    affiliate_code=code,
                    reward_cents=0,
                )
            )
    except IntegrityError:
        with get_db_session() as session:
            row = session.execute(_select_affiliate(user_id)).mappings().first()
        if row is None:
            raise
        return AffiliateRecord.model_validate(dict(row))

    logger.info("[affiliates] affiliate created", extra={"user_id": user_id})
    return AffiliateRecord(user_id=user_id, role=role, affiliate_code=code, reward_cents=0)
