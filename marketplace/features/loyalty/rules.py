"""
marketplace/features/loyalty/rules.py

Pure loyalty point rules.

Purchase points: one base point per whole currency unit spent, scaled by the
tier multiplier and rounded half-up.
"""

import math
from typing import Iterable, List

from marketplace.core.errors import ValidationError
from marketplace.features.plans.consumer import LOYALTY_MULTIPLIERS, REFERRAL_REWARD_POINTS


POINT_VALUE_CENTS = 1
SUBSCRIPTION_BONUS_POINTS = 500
REFERRAL_SIGNUP_BONUS_POINTS = 1
BONUS_POINTS_PER_100_SPENT = 100
SPEND_MILESTONE_CENTS = 10000


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_purchase_points(amount_cents: int, multiplier: float) -> int:
    """
    Points awarded for a purchase.

    Raises:
        ValidationError: negative amount or non-positive multiplier
    """
    if amount_cents < 0:
        raise ValidationError("amount_cents must be >= 0")
    if multiplier <= 0:
        raise ValidationError("multiplier must be > 0")
    base_points = amount_cents // 100
    return _round_half_up(base_points * multiplier)


def get_spend_milestones_to_award(total_spend_cents: int, awarded_milestones: Iterable[int]) -> List[int]:
    """Milestones 1..floor(total / $100) not yet awarded, ascending."""
    total_milestones = max(total_spend_cents, 0) // SPEND_MILESTONE_CENTS
    if total_milestones <= 0:
        return []
    awarded = set(awarded_milestones)
    return [m for m in range(1, total_milestones + 1) if m not in awarded]


def get_loyalty_multiplier(tier: str) -> float:
    return LOYALTY_MULTIPLIERS[tier]


def get_referral_reward_points(tier: str) -> int:
    return REFERRAL_REWARD_POINTS[tier]


def get_subscription_bonus_points() -> int:
    return SUBSCRIPTION_BONUS_POINTS


def points_to_cents(points: int) -> int:
    return points * POINT_VALUE_CENTS
