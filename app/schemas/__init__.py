"""
Pydantic schemas package
"""

from .common import *
from .event import *
from .discount import *
from .transaction import *

__all__ = [
    "CamelModel",
    "ErrorResponse",
    "UserSummary",
    "EventCreate",
    "EventUpdate",
    "EventResponse",
    "TicketTypeCreate",
    "TicketTypeUpdate",
    "TicketTypeResponse",
    "VoucherCreate",
    "VoucherResponse",
    "VoucherValidateRequest",
    "CouponValidateRequest",
    "DiscountPreview",
    "BookingItem",
    "BookingRequest",
    "BookingResponse",
    "QuoteResponse",
    "RejectRequest",
    "TransactionResponse",
    "AttendeeResponse",
]
