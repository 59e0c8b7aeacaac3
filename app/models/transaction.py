"""
Transaction, line item, payment proof and attendee record models
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Text, CheckConstraint
from sqlalchemy.orm import relationship

from app.core.db import Base
from app.utils.clock import utcnow

class TransactionStatus:
    WAITING_PAYMENT = "WAITING_PAYMENT"
    WAITING_ADMIN_CONFIRMATION = "WAITING_ADMIN_CONFIRMATION"
    DONE = "DONE"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"
    CANCELED = "CANCELED"

    ALL = (WAITING_PAYMENT, WAITING_ADMIN_CONFIRMATION, DONE, REJECTED, EXPIRED, CANCELED)
    TERMINAL = (DONE, REJECTED, EXPIRED, CANCELED)

class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    status = Column(String(30), nullable=False, default=TransactionStatus.WAITING_PAYMENT, index=True)

    subtotal = Column(Integer, nullable=False, default=0)
    voucher_id = Column(Integer, ForeignKey("vouchers.id"), nullable=True)
    coupon_id = Column(Integer, ForeignKey("coupons.id"), nullable=True)
    discount_voucher = Column(Integer, nullable=False, default=0)
    discount_coupon = Column(Integer, nullable=False, default=0)
    points_used = Column(Integer, nullable=False, default=0)
    total_payable = Column(Integer, nullable=False, default=0)

    # Rollback bookkeeping: each flag flips at most once
    inventory_released = Column(Boolean, nullable=False, default=False)
    discounts_reverted = Column(Boolean, nullable=False, default=False)

    payment_due_at = Column(DateTime, nullable=False, index=True)
    organizer_decision_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    organizer_decision_at = Column(DateTime, nullable=True)
    reject_reason = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    user = relationship("User", back_populates="transactions", foreign_keys=[user_id])
    event = relationship("Event", back_populates="transactions")
    voucher = relationship("Voucher")
    coupon = relationship("Coupon")
    items = relationship(
        "TransactionItem", back_populates="transaction", cascade="all, delete-orphan", order_by="TransactionItem.id"
    )
    payment_proof = relationship("PaymentProof", back_populates="transaction", uselist=False)
    attendees = relationship("AttendeeRecord", back_populates="transaction", order_by="AttendeeRecord.id")

    __table_args__ = (
        CheckConstraint("total_payable >= 0", name="check_total_payable_non_negative"),
    )

class TransactionItem(Base):
    __tablename__ = "transaction_items"

    id = Column(Integer, primary_key=True, index=True)
    transaction_id = Column(Integer, ForeignKey("transactions.id"), nullable=False, index=True)
    ticket_type_id = Column(Integer, ForeignKey("ticket_types.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Integer, nullable=False)  # snapshot at booking time

    # Relationships
    transaction = relationship("Transaction", back_populates="items")
    ticket_type = relationship("TicketType")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="check_item_quantity_positive"),
    )

class PaymentProof(Base):
    __tablename__ = "payment_proofs"

    id = Column(Integer, primary_key=True, index=True)
    transaction_id = Column(Integer, ForeignKey("transactions.id"), nullable=False, unique=True)
    image_url = Column(String(500), nullable=False)
    uploaded_at = Column(DateTime, default=utcnow)

    # Relationships
    transaction = relationship("Transaction", back_populates="payment_proof")

class AttendeeRecord(Base):
    __tablename__ = "attendee_records"

    id = Column(Integer, primary_key=True, index=True)
    transaction_id = Column(Integer, ForeignKey("transactions.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    ticket_type_id = Column(Integer, ForeignKey("ticket_types.id"), nullable=False)
    ticket_code = Column(String(50), nullable=False, unique=True, index=True)
    created_at = Column(DateTime, default=utcnow)

    # Relationships
    transaction = relationship("Transaction", back_populates="attendees")
    user = relationship("User")
    ticket_type = relationship("TicketType")
