"""
Voucher (event-scoped) and coupon (global) discount code models
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship

from app.core.db import Base
from app.utils.clock import utcnow

class DiscountType:
    AMOUNT = "AMOUNT"
    PERCENT = "PERCENT"

class Voucher(Base):
    __tablename__ = "vouchers"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    code = Column(String(50), nullable=False, index=True)  # stored upper case
    discount_type = Column(String(10), nullable=False)
    discount_value = Column(Integer, nullable=False)
    starts_at = Column(DateTime, nullable=False)
    ends_at = Column(DateTime, nullable=False)
    max_uses = Column(Integer, nullable=True)
    used_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow)

    # Relationships
    event = relationship("Event", back_populates="vouchers")

    __table_args__ = (
        UniqueConstraint("event_id", "code", name="uq_voucher_event_code"),
        CheckConstraint("used_count >= 0", name="check_voucher_used_non_negative"),
        CheckConstraint("starts_at <= ends_at", name="check_voucher_window"),
    )

class Coupon(Base):
    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), nullable=False, unique=True, index=True)  # stored upper case
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)  # None = global
    discount_type = Column(String(10), nullable=False)
    discount_value = Column(Integer, nullable=False)
    starts_at = Column(DateTime, nullable=False)
    ends_at = Column(DateTime, nullable=False)
    max_uses = Column(Integer, nullable=True)
    used_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        CheckConstraint("used_count >= 0", name="check_coupon_used_non_negative"),
        CheckConstraint("starts_at <= ends_at", name="check_coupon_window"),
    )
