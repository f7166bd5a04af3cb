"""
marketplace/features/referrals/service.py

Referral eligibility, reward sizing and idempotent referral codes.

Only admins, subscribed vendors and Starter-tier consumers may share a
referral link; Plus and VIP consumers are deliberately excluded.
"""

import logging
import secrets
import string
from typing import Callable, Optional

from sqlalchemy import insert, select
from sqlalchemy.exc import IntegrityError

from marketplace.core.database import consumer_referrals, get_db_session
from marketplace.features.loyalty.rules import REFERRAL_SIGNUP_BONUS_POINTS
from marketplace.features.plans.consumer import get_consumer_plan_by_key
from marketplace.models.records import ReferralRecord

logger = logging.getLogger(__name__)

STARTER_CONSUMER_PREFIX = "consumer_starter_"
REFERRAL_CODE_PREFIX = "GHD-"
_CODE_ALPHABET = string.ascii_uppercase + string.digits


def ensure_referral_code(existing_code: Optional[str], generate: Callable[[], str]) -> str:
    """Return the existing code unchanged; otherwise call generate() exactly once."""
    if existing_code:
        return existing_code
    return generate()


def is_starter_consumer_plan_key(plan_key: Optional[str]) -> bool:
    return bool(plan_key) and plan_key.startswith(STARTER_CONSUMER_PREFIX)


def is_referral_link_eligible(
    *,
    is_admin: bool,
    consumer_plan_key: Optional[str] = None,
    is_vendor_subscribed: bool = False,
) -> bool:
    return bool(is_admin or is_vendor_subscribed or is_starter_consumer_plan_key(consumer_plan_key))


def get_referral_reward_points(consumer_plan_key: Optional[str]) -> int:
    """
    Points granted to the referrer.

    Starter consumers earn their tier's referral_reward_points; everyone
    else gets the flat signup bonus.
    """
    if is_starter_consumer_plan_key(consumer_plan_key):
        plan = get_consumer_plan_by_key(consumer_plan_key)
        if plan is not None:
            return plan.referral_reward_points
    return REFERRAL_SIGNUP_BONUS_POINTS


def generate_referral_code(length: int = 6) -> str:
    suffix = "".join(secrets.choice(_CODE_ALPHABET) for _ in range(length))
    return f"{REFERRAL_CODE_PREFIX}{suffix}"


def get_referral(user_id: str) -> Optional[ReferralRecord]:
    with get_db_session() as session:
        row = session.execute(
            select(
                consumer_referrals.c.referrer_user_id,
                consumer_referrals.c.referral_code,
                consumer_referrals.c.reward_points,
            ).where(consumer_referrals.c.referrer_user_id == user_id)
        ).mappings().first()
    return ReferralRecord.model_validate(dict(row)) if row else None


def get_or_create_referral_code(
    user_id: str,
    reward_points: int,
    generate: Callable[[], str] = generate_referral_code,
) -> ReferralRecord:
    """
    Return the user's referral code, minting one only if none exists.

    A concurrent insert for the same user loses on the unique constraint and
    re-reads the winner.
    """
    existing = get_referral(user_id)
    code = ensure_referral_code(existing.referral_code if existing else None, generate)
    if existing:
        return existing

    try:
        with get_db_session() as session:
            session.execute(
                insert(consumer_referrals).values(
                    referrer_user_id=user_id,
                    referral_code=code,
                    reward_points=reward_points,
                )
            )
    except IntegrityError:
        winner = get_referral(user_id)
        if winner is None:
            # Code collision with another user, not a race on this one
            raise
        return winner

    logger.info("[referrals] code created", extra={"user_id": user_id})
    return ReferralRecord(referrer_user_id=user_id, referral_code=code, reward_points=reward_points)
