"""
Discount resolution: voucher, coupon and loyalty points pricing

The pure pricing functions below are shared by the read-only preview path
and the booking commit path, so both always agree on the total.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

from sqlalchemy import func, or_, update
from sqlalchemy.orm import Session

from app.core.errors import (
    ValidationError,
    VoucherExhaustedError,
    VoucherExpiredError,
    VoucherNotFoundError,
)
from app.models import Coupon, DiscountType, Transaction, User, Voucher
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)

DiscountCode = Union[Voucher, Coupon]


@dataclass(frozen=True)
class PriceBreakdown:
    """Priced booking, all amounts in IDR"""

    subtotal: int
    discount_voucher: int = 0
    discount_coupon: int = 0
    points_used: int = 0
    total_payable: int = 0


def compute_discount(subtotal: int, discount_type: str, value: int) -> int:
    """Discount for one code against the original subtotal, clamped to [0, subtotal]"""
    if subtotal <= 0:
        return 0
    if discount_type == DiscountType.AMOUNT:
        amount = value
    elif discount_type == DiscountType.PERCENT:
        raw = Decimal(subtotal) * Decimal(value) / Decimal(100)
        amount = int(raw.quantize(Decimal(1), rounding=ROUND_HALF_UP))
    else:
        raise ValidationError(f"Unknown discount type: {discount_type}")
    return max(0, min(amount, subtotal))


def clamp_points(requested: int, subtotal: int, balance: int) -> int:
    """Points actually redeemed: min(requested, subtotal, balance), never negative"""
    return max(0, min(requested or 0, subtotal, balance))


def compute_total(subtotal: int, discount_voucher: int, discount_coupon: int, points_used: int) -> int:
    """Total payable: each reduction is taken from the same subtotal, floored at 0"""
    return max(0, subtotal - discount_voucher - discount_coupon - points_used)


def price_booking(
    subtotal: int,
    voucher: Optional[DiscountCode] = None,
    coupon: Optional[DiscountCode] = None,
    points_requested: int = 0,
    points_balance: int = 0,
) -> PriceBreakdown:
    discount_voucher = compute_discount(subtotal, voucher.discount_type, voucher.discount_value) if voucher else 0
    discount_coupon = compute_discount(subtotal, coupon.discount_type, coupon.discount_value) if coupon else 0
    points_used = clamp_points(points_requested, subtotal, points_balance)
    return PriceBreakdown(
        subtotal=subtotal,
        discount_voucher=discount_voucher,
        discount_coupon=discount_coupon,
        points_used=points_used,
        total_payable=compute_total(subtotal, discount_voucher, discount_coupon, points_used),
    )


class DiscountResolver:
    """Validates discount codes and commits or reverts their usage"""

    @staticmethod
    def _check_usable(code: DiscountCode, kind: str, now: datetime) -> None:
        if not (code.starts_at <= now <= code.ends_at):
            raise VoucherExpiredError(kind)
        if code.max_uses is not None and code.used_count >= code.max_uses:
            raise VoucherExhaustedError(kind)

    @staticmethod
    def validate_voucher(db: Session, code: str, event_id: int, now: Optional[datetime] = None) -> Voucher:
        """Look up an event voucher and check it can be used. Read only."""
        now = now or utcnow()
        voucher = db.query(Voucher).filter(
            Voucher.event_id == event_id,
            func.upper(Voucher.code) == (code or "").strip().upper(),
            Voucher.is_active.is_(True),
        ).first()
        if not voucher:
            raise VoucherNotFoundError("Voucher")
        DiscountResolver._check_usable(voucher, "Voucher", now)
        return voucher

    @staticmethod
    def validate_coupon(
        db: Session,
        code: str,
        user_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Coupon:
        """Look up a global or user-targeted coupon and check it can be used. Read only."""
        now = now or utcnow()
        coupon = db.query(Coupon).filter(
            func.upper(Coupon.code) == (code or "").strip().upper(),
            Coupon.is_active.is_(True),
        ).first()
        # A coupon targeted at someone else looks exactly like a missing one
        if not coupon or (coupon.user_id is not None and coupon.user_id != user_id):
            raise VoucherNotFoundError("Coupon")
        DiscountResolver._check_usable(coupon, "Coupon", now)
        return coupon

    @staticmethod
    def _claim_use(db: Session, model, code_id: int, kind: str) -> None:
        result = db.execute(
            update(model)
            .where(
                model.id == code_id,
                model.is_active.is_(True),
                or_(model.max_uses.is_(None), model.used_count < model.max_uses),
            )
            .values(used_count=model.used_count + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise VoucherExhaustedError(kind)

    @staticmethod
    def apply_at_commit(
        db: Session,
        transaction: Transaction,
        voucher: Optional[Voucher],
        coupon: Optional[Coupon],
        points_requested: int,
        user: User,
    ) -> PriceBreakdown:
        """Price the transaction and commit discount usage.

        The only place where usage counts increase and points are debited.
        Runs inside the caller's database transaction; the caller rolls back
        on any raised error.
        """
        breakdown = price_booking(
            transaction.subtotal,
            voucher=voucher,
            coupon=coupon,
            points_requested=points_requested,
            points_balance=user.points_balance,
        )

        if voucher:
            DiscountResolver._claim_use(db, Voucher, voucher.id, "Voucher")
        if coupon:
            DiscountResolver._claim_use(db, Coupon, coupon.id, "Coupon")
        if breakdown.points_used:
            result = db.execute(
                update(User)
                .where(User.id == user.id, User.points_balance >= breakdown.points_used)
                .values(points_balance=User.points_balance - breakdown.points_used)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise ValidationError("Insufficient points balance")

        transaction.voucher_id = voucher.id if voucher else None
        transaction.coupon_id = coupon.id if coupon else None
        transaction.discount_voucher = breakdown.discount_voucher
        transaction.discount_coupon = breakdown.discount_coupon
        transaction.points_used = breakdown.points_used
        transaction.total_payable = breakdown.total_payable

        logger.info(
            f"Discounts committed for transaction {transaction.id}: "
            f"voucher={breakdown.discount_voucher} coupon={breakdown.discount_coupon} "
            f"points={breakdown.points_used} total={breakdown.total_payable}"
        )
        return breakdown

    @staticmethod
    def revert(db: Session, transaction: Transaction) -> bool:
        """Give back voucher/coupon uses and refund points, at most once per transaction"""
        result = db.execute(
            update(Transaction)
            .where(Transaction.id == transaction.id, Transaction.discounts_reverted.is_(False))
            .values(discounts_reverted=True)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.info(f"Discounts for transaction {transaction.id} already reverted")
            return False

        for model, code_id in ((Voucher, transaction.voucher_id), (Coupon, transaction.coupon_id)):
            if code_id is None:
                continue
            db.execute(
                update(model)
                .where(model.id == code_id, model.used_count > 0)
                .values(used_count=model.used_count - 1)
                .execution_options(synchronize_session=False)
            )
        if transaction.points_used:
            db.execute(
                update(User)
                .where(User.id == transaction.user_id)
                .values(points_balance=User.points_balance + transaction.points_used)
                .execution_options(synchronize_session=False)
            )

        logger.info(f"Discounts reverted for transaction {transaction.id}")
        return True
