"""
Tests for discount pricing and code validation
"""

import pytest
from datetime import timedelta
from types import SimpleNamespace

from app.core.errors import VoucherExhaustedError, VoucherExpiredError, VoucherNotFoundError
from app.models import DiscountType, Voucher
from app.services.discount_service import (
    DiscountResolver,
    clamp_points,
    compute_discount,
    compute_total,
    price_booking,
)
from app.utils.clock import utcnow

from conftest import make_coupon, make_event, make_voucher


def code(discount_type, value):
    return SimpleNamespace(discount_type=discount_type, discount_value=value)


def test_percent_discount_on_subtotal():
    assert compute_discount(200000, DiscountType.PERCENT, 10) == 20000


def test_percent_discount_rounds_half_up():
    # 15% of 333 = 49.95
    assert compute_discount(333, DiscountType.PERCENT, 15) == 50
    # 10% of 5 = 0.5
    assert compute_discount(5, DiscountType.PERCENT, 10) == 1


def test_amount_discount_is_clamped_to_subtotal():
    assert compute_discount(50000, DiscountType.AMOUNT, 80000) == 50000
    assert compute_discount(0, DiscountType.AMOUNT, 80000) == 0


def test_clamp_points():
    assert clamp_points(500, 200, 1000) == 200
    assert clamp_points(500, 1000, 100) == 100
    assert clamp_points(None, 1000, 100) == 0
    assert clamp_points(300, 1000, 1000) == 300


def test_total_never_negative():
    assert compute_total(100000, 80000, 50000, 0) == 0


def test_voucher_only_scenario():
    breakdown = price_booking(200000, voucher=code(DiscountType.PERCENT, 10))
    assert breakdown.discount_voucher == 20000
    assert breakdown.total_payable == 180000


def test_each_discount_uses_original_subtotal():
    breakdown = price_booking(
        100000,
        voucher=code(DiscountType.AMOUNT, 30000),
        coupon=code(DiscountType.PERCENT, 10),
        points_requested=5000,
        points_balance=50000,
    )
    assert breakdown.discount_voucher == 30000
    assert breakdown.discount_coupon == 10000
    assert breakdown.points_used == 5000
    assert breakdown.total_payable == 55000


def test_discount_order_does_not_change_total():
    a = code(DiscountType.AMOUNT, 30000)
    b = code(DiscountType.PERCENT, 25)
    first = price_booking(90000, voucher=a, coupon=b)
    second = price_booking(90000, voucher=b, coupon=a)
    assert first.total_payable == second.total_payable


def test_points_are_capped_by_balance():
    breakdown = price_booking(100000, points_requested=80000, points_balance=20000)
    assert breakdown.points_used == 20000
    assert breakdown.total_payable == 80000


def test_validate_voucher_is_case_insensitive(db_session, organizer):
    event = make_event(db_session, organizer)
    make_voucher(db_session, event, code="SUMMER10")

    voucher = DiscountResolver.validate_voucher(db_session, " summer10 ", event.id)
    assert voucher.code == "SUMMER10"


def test_validate_voucher_scoped_to_event(db_session, organizer):
    event = make_event(db_session, organizer)
    other = make_event(db_session, organizer, title="Rock Night")
    make_voucher(db_session, event, code="SUMMER10")

    with pytest.raises(VoucherNotFoundError):
        DiscountResolver.validate_voucher(db_session, "SUMMER10", other.id)


def test_validate_voucher_outside_window(db_session, organizer):
    event = make_event(db_session, organizer)
    now = utcnow()
    make_voucher(
        db_session, event, code="LATE",
        starts_at=now - timedelta(days=10), ends_at=now - timedelta(days=1)
    )

    with pytest.raises(VoucherExpiredError):
        DiscountResolver.validate_voucher(db_session, "LATE", event.id)


def test_validate_voucher_exhausted(db_session, organizer):
    event = make_event(db_session, organizer)
    voucher = make_voucher(db_session, event, code="ONCE", max_uses=1)
    voucher.used_count = 1
    db_session.commit()

    with pytest.raises(VoucherExhaustedError):
        DiscountResolver.validate_voucher(db_session, "ONCE", event.id)


def test_inactive_voucher_is_not_found(db_session, organizer):
    event = make_event(db_session, organizer)
    voucher = make_voucher(db_session, event, code="OFF")
    voucher.is_active = False
    db_session.commit()

    with pytest.raises(VoucherNotFoundError):
        DiscountResolver.validate_voucher(db_session, "OFF", event.id)


def test_validate_voucher_does_not_mutate(db_session, organizer):
    event = make_event(db_session, organizer)
    make_voucher(db_session, event, code="SUMMER10", max_uses=5)

    DiscountResolver.validate_voucher(db_session, "SUMMER10", event.id)
    DiscountResolver.validate_voucher(db_session, "SUMMER10", event.id)

    stored = db_session.query(Voucher).filter(Voucher.code == "SUMMER10").one()
    assert stored.used_count == 0


def test_targeted_coupon_only_for_its_owner(db_session, buyer, other_buyer):
    make_coupon(db_session, code="VIPBUDI", user=buyer)

    assert DiscountResolver.validate_coupon(db_session, "VIPBUDI", buyer.id).code == "VIPBUDI"
    with pytest.raises(VoucherNotFoundError):
        DiscountResolver.validate_coupon(db_session, "VIPBUDI", other_buyer.id)


def test_global_coupon_for_anyone(db_session, other_buyer):
    make_coupon(db_session, code="WELCOME")
    assert DiscountResolver.validate_coupon(db_session, "welcome", other_buyer.id).code == "WELCOME"
