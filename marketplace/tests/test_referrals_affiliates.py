"""Tests for referral eligibility, idempotent referral codes and affiliates."""

import re

import pytest

from marketplace.features.affiliates.service import (
    DEFAULT_AFFILIATE_REWARD_CENTS,
    calculate_affiliate_reward,
    ensure_affiliate,
    generate_affiliate_code,
)
from marketplace.features.referrals.service import (
    ensure_referral_code,
    generate_referral_code,
    get_or_create_referral_code,
    get_referral,
    get_referral_reward_points,
    is_referral_link_eligible,
    is_starter_consumer_plan_key,
)


def test_ensure_referral_code_keeps_existing_and_never_generates():
    calls = []

    def generate():
        calls.append(1)
        return "GHD-NEW000"

    assert ensure_referral_code("GHD-ABC123", generate) == "GHD-ABC123"
    assert calls == []


def test_ensure_referral_code_generates_exactly_once_when_missing():
    calls = []

    def generate():
        calls.append(1)
        return "GHD-NEW000"

    assert ensure_referral_code(None, generate) == "GHD-NEW000"
    assert ensure_referral_code("", generate) == "GHD-NEW000"
    assert len(calls) == 2


@pytest.mark.parametrize(
    "is_admin,plan_key,vendor_subscribed,expected",
    [
        (True, None, False, True),
        (False, None, True, True),
        (False, "consumer_starter_monthly", False, True),
        (False, "consumer_starter_annual", False, True),
        (False, "consumer_plus_monthly", False, False),
        (False, "consumer_vip_annual", False, False),
        (False, None, False, False),
    ],
)
def test_referral_link_eligibility(is_admin, plan_key, vendor_subscribed, expected):
    """Admins, subscribed vendors and Starter consumers only."""
    assert is_referral_link_eligible(
        is_admin=is_admin,
        consumer_plan_key=plan_key,
        is_vendor_subscribed=vendor_subscribed,
    ) is expected


def test_starter_plan_key_detection():
    assert is_starter_consumer_plan_key("consumer_starter_monthly")
    assert not is_starter_consumer_plan_key("vendor_starter_monthly")
    assert not is_starter_consumer_plan_key(None)


def test_referral_reward_points():
    """Starter consumers earn their tier reward; everyone else the flat bonus."""
    assert get_referral_reward_points("consumer_starter_monthly") == 250
    assert get_referral_reward_points("consumer_vip_monthly") == 1
    assert get_referral_reward_points(None) == 1


def test_generated_referral_code_format():
    assert re.fullmatch(r"GHD-[A-Z0-9]{6}", generate_referral_code())


def test_referral_code_is_created_once_and_reused():
    """The second call returns the stored code without generating another."""
    codes = iter(["GHD-AAAAAA", "GHD-BBBBBB"])

    first = get_or_create_referral_code("u1", 250, generate=lambda: next(codes))
    second = get_or_create_referral_code("u1", 999, generate=lambda: next(codes))

    assert first.referral_code == "GHD-AAAAAA"
    assert second.referral_code == "GHD-AAAAAA"
    assert second.reward_points == 250
    assert get_referral("u1").referral_code == "GHD-AAAAAA"


def test_referral_code_collision_with_other_user_raises():
    from sqlalchemy.exc import IntegrityError

    get_or_create_referral_code("u1", 250, generate=lambda: "GHD-SAME00")
    with pytest.raises(IntegrityError):
        get_or_create_referral_code("u2", 250, generate=lambda: "GHD-SAME00")


def test_affiliate_code_format():
    code = generate_affiliate_code("user_abcdef123")
    assert re.fullmatch(r"USER_ABC-[A-Z0-9]{4}", code)


@pytest.mark.parametrize(
    "package,cents",
    [
        ("starter", 500),
        ("PLUS", 1500),
        ("vip", 2500),
        ("Basic", 500),
        ("pro", 1500),
        ("ELITE", 2500),
        ("unknown", DEFAULT_AFFILIATE_REWARD_CENTS),
        ("", DEFAULT_AFFILIATE_REWARD_CENTS),
    ],
)
def test_affiliate_reward_by_package(package, cents):
    assert calculate_affiliate_reward(package) == cents


def test_ensure_affiliate_is_idempotent():
    first = ensure_affiliate("u1", "consumer")
    second = ensure_affiliate("u1", "vendor")
    assert first.affiliate_code == second.affiliate_code
    assert second.role == "consumer"
