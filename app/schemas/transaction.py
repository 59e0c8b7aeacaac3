"""
Transaction-related Pydantic schemas
"""

from datetime import datetime
from typing import List, Optional
from pydantic import Field

from app.schemas.common import CamelModel, UserSummary

class BookingItem(CamelModel):
    ticket_type_id: int
    quantity: int = Field(gt=0)

class BookingRequest(CamelModel):
    """Schema for creating a transaction"""
    event_id: Optional[int] = None
    items: List[BookingItem] = Field(min_length=1)
    voucher_code: Optional[str] = None
    coupon_code: Optional[str] = None
    points_used: Optional[int] = Field(default=0, ge=0)

class BookingResponse(CamelModel):
    transaction_id: int
    status: str
    subtotal_idr: int = Field(alias="subtotalIDR")
    discount_voucher_idr: int = Field(alias="discountVoucherIDR")
    discount_coupon_idr: int = Field(alias="discountCouponIDR")
    points_used: int
    total_payable_idr: int = Field(alias="totalPayableIDR")
    payment_due_at: datetime

class QuoteResponse(CamelModel):
    subtotal_idr: int = Field(alias="subtotalIDR")
    discount_voucher_idr: int = Field(alias="discountVoucherIDR")
    discount_coupon_idr: int = Field(alias="discountCouponIDR")
    points_used: int
    total_payable_idr: int = Field(alias="totalPayableIDR")

class RejectRequest(CamelModel):
    reason: Optional[str] = Field(default=None, max_length=1000)

class EventSummary(CamelModel):
    id: int
    title: str
    start_at: datetime

class TicketTypeSummary(CamelModel):
    id: int
    name: str

class TransactionItemResponse(CamelModel):
    id: int
    quantity: int
    unit_price_idr: int = Field(alias="unitPriceIDR")
    ticket_type: TicketTypeSummary

class PaymentProofResponse(CamelModel):
    id: int
    image_url: str
    uploaded_at: datetime

class TransactionResponse(CamelModel):
    id: int
    status: str
    user: UserSummary
    event: EventSummary
    items: List[TransactionItemResponse]
    subtotal_idr: int = Field(alias="subtotalIDR")
    discount_voucher_idr: int = Field(alias="discountVoucherIDR")
    discount_coupon_idr: int = Field(alias="discountCouponIDR")
    points_used: int
    total_payable_idr: int = Field(alias="totalPayableIDR")
    created_at: datetime
    updated_at: Optional[datetime]
    payment_due_at: datetime
    organizer_decision_by: Optional[int]
    organizer_decision_at: Optional[datetime]
    reject_reason: Optional[str]
    payment_proof: Optional[PaymentProofResponse]

class AttendeeResponse(CamelModel):
    id: int
    ticket_code: str
    transaction_id: int
    user: UserSummary
    ticket_type: TicketTypeSummary
    created_at: datetime

def booking_to_response(transaction) -> BookingResponse:
    return BookingResponse(
        transaction_id=transaction.id,
        status=transaction.status,
        subtotal_idr=transaction.subtotal,
        discount_voucher_idr=transaction.discount_voucher,
        discount_coupon_idr=transaction.discount_coupon,
        points_used=transaction.points_used,
        total_payable_idr=transaction.total_payable,
        payment_due_at=transaction.payment_due_at,
    )

def quote_to_response(breakdown) -> QuoteResponse:
    return QuoteResponse(
        subtotal_idr=breakdown.subtotal,
        discount_voucher_idr=breakdown.discount_voucher,
        discount_coupon_idr=breakdown.discount_coupon,
        points_used=breakdown.points_used,
        total_payable_idr=breakdown.total_payable,
    )

def transaction_to_response(transaction) -> TransactionResponse:
    proof = transaction.payment_proof
    return TransactionResponse(
        id=transaction.id,
        status=transaction.status,
        user=UserSummary.model_validate(transaction.user),
        event=EventSummary.model_validate(transaction.event),
        items=[
            TransactionItemResponse(
                id=item.id,
                quantity=item.quantity,
                unit_price_idr=item.unit_price,
                ticket_type=TicketTypeSummary.model_validate(item.ticket_type),
            )
            for item in transaction.items
        ],
        subtotal_idr=transaction.subtotal,
        discount_voucher_idr=transaction.discount_voucher,
        discount_coupon_idr=transaction.discount_coupon,
        points_used=transaction.points_used,
        total_payable_idr=transaction.total_payable,
        created_at=transaction.created_at,
        updated_at=transaction.updated_at,
        payment_due_at=transaction.payment_due_at,
        organizer_decision_by=transaction.organizer_decision_by,
        organizer_decision_at=transaction.organizer_decision_at,
        reject_reason=transaction.reject_reason,
        payment_proof=PaymentProofResponse.model_validate(proof) if proof else None,
    )

def attendee_to_response(record) -> AttendeeResponse:
    return AttendeeResponse(
        id=record.id,
        ticket_code=record.ticket_code,
        transaction_id=record.transaction_id,
        user=UserSummary.model_validate(record.user),
        ticket_type=TicketTypeSummary.model_validate(record.ticket_type),
        created_at=record.created_at,
    )
