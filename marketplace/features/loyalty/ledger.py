"""
marketplace/features/loyalty/ledger.py

Append-only loyalty ledger.

Every balance change writes one consumer_loyalty_events row and updates the
consumer_loyalty account in the same transaction. Redemptions use a
conditional UPDATE (points_balance >= requested) so a concurrent redeem can
never drive the balance negative; a zero-row update means insufficient points.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import insert, select, update
from sqlalchemy.orm import Session

from marketplace.core.database import consumer_loyalty, consumer_loyalty_events, get_db_session
from marketplace.core.errors import InsufficientPointsError, ValidationError
from marketplace.features.loyalty.rules import (
    BONUS_POINTS_PER_100_SPENT,
    calculate_purchase_points,
    get_spend_milestones_to_award,
)
from marketplace.features.plans.consumer import get_consumer_plan_by_key
from marketplace.models.loyalty import LoyaltyAccount, LoyaltyEvent, LoyaltyEventType

logger = logging.getLogger(__name__)


def _ensure_account(session: Session, user_id: str) -> None:
    exists = session.execute(
        select(consumer_loyalty.c.user_id).where(consumer_loyalty.c.user_id == user_id)
    ).first()
    if not exists:
        session.execute(
            insert(consumer_loyalty).values(
                user_id=user_id,
                points_balance=0,
                lifetime_points_earned=0,
                lifetime_points_redeemed=0,
                awarded_milestones=[],
            )
        )


def _read_account(session: Session, user_id: str) -> LoyaltyAccount:
    row = session.execute(
        select(
            consumer_loyalty.c.user_id,
            consumer_loyalty.c.points_balance,
            consumer_loyalty.c.lifetime_points_earned,
            consumer_loyalty.c.lifetime_points_redeemed,
            consumer_loyalty.c.awarded_milestones,
        ).where(consumer_loyalty.c.user_id == user_id)
    ).mappings().first()
    if row is None:
        return LoyaltyAccount(user_id=user_id)
    return LoyaltyAccount(
        user_id=row["user_id"],
        points_balance=row["points_balance"],
        lifetime_points_earned=row["lifetime_points_earned"],
        lifetime_points_redeemed=row["lifetime_points_redeemed"],
        awarded_milestones=tuple(row["awarded_milestones"] or ()),
    )


def _append_event(
    session: Session,
    user_id: str,
    event_type: LoyaltyEventType,
    points_delta: int,
    balance_after: int,
    details: Optional[Dict[str, Any]],
) -> LoyaltyEvent:
    result = session.execute(
        insert(consumer_loyalty_events).values(
            user_id=user_id,
            event_type=event_type,
            points_delta=points_delta,
            balance_after=balance_after,
            details=details or {},
        )
    )
    return LoyaltyEvent(
        id=result.inserted_primary_key[0],
        user_id=user_id,
        event_type=event_type,
        points_delta=points_delta,
        balance_after=balance_after,
        details=details or {},
    )


def _credit(
    session: Session,
    user_id: str,
    points: int,
    event_type: LoyaltyEventType,
    details: Optional[Dict[str, Any]],
) -> LoyaltyEvent:
    _ensure_account(session, user_id)
    session.execute(
        update(consumer_loyalty)
        .where(consumer_loyalty.c.user_id == user_id)
        .values(
            points_balance=consumer_loyalty.c.points_balance + points,
            lifetime_points_earned=consumer_loyalty.c.lifetime_points_earned + points,
        )
    )
    balance = _read_account(session, user_id).points_balance
    return _append_event(session, user_id, event_type, points, balance, details)


def get_loyalty_account(user_id: str) -> LoyaltyAccount:
    """Current account; a user with no activity reads as all zeros."""
    with get_db_session() as session:
        return _read_account(session, user_id)


def get_loyalty_events(user_id: str, limit: int = 20) -> List[LoyaltyEvent]:
    """Most recent ledger events first."""
    with get_db_session() as session:
        rows = session.execute(
            select(consumer_loyalty_events)
            .where(consumer_loyalty_events.c.user_id == user_id)
            .order_by(consumer_loyalty_events.c.id.desc())
            .limit(limit)
        ).mappings().all()
    return [LoyaltyEvent.model_validate(dict(row)) for row in rows]


def award_points(
    user_id: str,
    points: int,
    *,
    event_type: LoyaltyEventType,
    details: Optional[Dict[str, Any]] = None,
) -> LoyaltyEvent:
    """
    Credit points to a user.

    Raises:
        ValidationError: points <= 0
    """
    if points <= 0:
        raise ValidationError("Points must be a positive number")

    with get_db_session() as session:
        event = _credit(session, user_id, points, event_type, details)

    logger.info(
        "[loyalty] points awarded",
        extra={"user_id": user_id, "event_type": event_type},
    )
    return event


def award_purchase_points(user_id: str, amount_cents: int, plan_key: Optional[str]) -> Optional[LoyaltyEvent]:
    """
    Award purchase points using the plan's loyalty multiplier.

    Unknown or unconfigured plans earn at the base rate (1.0). Returns None
    when the purchase earns nothing.
    """
    plan = get_consumer_plan_by_key(plan_key)
    multiplier = plan.loyalty_multiplier if plan else 1.0
    points = calculate_purchase_points(amount_cents, multiplier)
    if points == 0:
        return None
    return award_points(
        user_id,
        points,
        event_type="purchase",
        details={"amount_cents": amount_cents, "plan_key": plan_key, "multiplier": multiplier},
    )


def award_spend_milestones(user_id: str, total_spend_cents: int) -> List[LoyaltyEvent]:
    """
    Award the bonus for every $100 lifetime-spend milestone not yet awarded.

    Idempotent: awarded milestones are recorded on the account.
    """
    events: List[LoyaltyEvent] = []
    with get_db_session() as session:
        _ensure_account(session, user_id)
        account = _read_account(session, user_id)
        pending = get_spend_milestones_to_award(total_spend_cents, account.awarded_milestones)
        for milestone in pending:
            events.append(
                _credit(
                    session,
                    user_id,
                    BONUS_POINTS_PER_100_SPENT,
                    "milestone",
                    {"milestone": milestone, "total_spend_cents": total_spend_cents},
                )
            )
        if pending:
            session.execute(
                update(consumer_loyalty)
                .where(consumer_loyalty.c.user_id == user_id)
                .values(awarded_milestones=sorted(set(account.awarded_milestones) | set(pending)))
            )
    return events


def redeem_points(user_id: str, points: int, *, reason: str = "redeem") -> LoyaltyAccount:
    """
    Redeem points from the balance.

    Raises:
        ValidationError: points <= 0
        InsufficientPointsError: points exceed the current balance (nothing is written)
    """
    if points <= 0:
        raise ValidationError("Points must be a positive number")

    with get_db_session() as session:
        result = session.execute(
            update(consumer_loyalty)
            .where(consumer_loyalty.c.user_id == user_id)
            .where(consumer_loyalty.c.points_balance >= points)
            .values(
                points_balance=consumer_loyalty.c.points_balance - points,
                lifetime_points_redeemed=consumer_loyalty.c.lifetime_points_redeemed + points,
            )
        )
        if result.rowcount == 0:
            logger.warning(
                "[loyalty] redeem rejected",
                extra={"user_id": user_id, "error_code": "insufficient_points"},
            )
            raise InsufficientPointsError("Insufficient points")

        account = _read_account(session, user_id)
        _append_event(session, user_id, "redeem", -points, account.points_balance, {"reason": reason})

    return account
