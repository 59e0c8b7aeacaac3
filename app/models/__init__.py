"""
Database models package
"""

from .user import User
from .event import Event, EventStatus, TicketType
from .voucher import Coupon, DiscountType, Voucher
from .transaction import (
    AttendeeRecord,
    PaymentProof,
    Transaction,
    TransactionItem,
    TransactionStatus,
)

__all__ = [
    "User",
    "Event",
    "EventStatus",
    "TicketType",
    "Voucher",
    "Coupon",
    "DiscountType",
    "Transaction",
    "TransactionItem",
    "TransactionStatus",
    "PaymentProof",
    "AttendeeRecord",
]
