"""
Transaction API routes - buyer and organizer workflows
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, File, Query, UploadFile
from fastapi.responses import Response
from sqlalchemy.orm import Session

from app.core.db import get_db
from app.core.errors import ValidationError
from app.schemas.transaction import (
    AttendeeResponse,
    BookingRequest,
    BookingResponse,
    QuoteResponse,
    RejectRequest,
    TransactionResponse,
    attendee_to_response,
    booking_to_response,
    quote_to_response,
    transaction_to_response,
)
from app.services.review_queue import OrganizerReviewQueue
from app.services.transaction_service import TransactionService
from app.utils.security import AuthContext, get_auth_context

router = APIRouter()

def booking_lines(booking: BookingRequest):
    return [(item.ticket_type_id, item.quantity) for item in booking.items]

def create_booking(db: Session, auth: AuthContext, event_id: int, booking: BookingRequest) -> BookingResponse:
    """Shared by POST /transactions and POST /events/{id}/book"""
    transaction = TransactionService.create_transaction(
        db,
        auth,
        event_id=event_id,
        items=booking_lines(booking),
        voucher_code=booking.voucher_code,
        coupon_code=booking.coupon_code,
        points_used=booking.points_used or 0,
    )
    return booking_to_response(transaction)

@router.post("", response_model=BookingResponse, status_code=201)
def create_transaction(
    booking: BookingRequest,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context)
):
    """Reserve seats and create a transaction awaiting payment"""
    if booking.event_id is None:
        raise ValidationError("eventId is required")
    return create_booking(db, auth, booking.event_id, booking)

@router.post("/quote", response_model=QuoteResponse)
def quote_transaction(
    booking: BookingRequest,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context)
):
    """Preview the price of a booking without reserving anything"""
    if booking.event_id is None:
        raise ValidationError("eventId is required")
    breakdown = TransactionService.quote(
        db,
        auth,
        event_id=booking.event_id,
        items=booking_lines(booking),
        voucher_code=booking.voucher_code,
        coupon_code=booking.coupon_code,
        points_used=booking.points_used or 0,
    )
    return quote_to_response(breakdown)

@router.get("/my", response_model=List[TransactionResponse])
def list_my_transactions(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context)
):
    """List the caller's own transactions, newest first"""
    transactions = TransactionService.list_my_transactions(db, auth)
    return [transaction_to_response(t) for t in transactions]

@router.get("/organizer", response_model=List[TransactionResponse])
def list_organizer_transactions(
    event_id: Optional[int] = Query(None, alias="eventId"),
    status: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context)
):
    """Review queue for the caller's events"""
    transactions = OrganizerReviewQueue.list_for_organizer(
        db, auth, event_id=event_id, status=status, search=search
    )
    return [transaction_to_response(t) for t in transactions]

@router.get("/event/{event_id}/attendees", response_model=List[AttendeeResponse])
def list_attendees(
    event_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context)
):
    """Issued tickets for an owned event"""
    attendees = OrganizerReviewQueue.list_attendees(db, auth, event_id)
    return [attendee_to_response(a) for a in attendees]

@router.get("/event/{event_id}/attendees.xlsx")
def export_attendees(
    event_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context)
):
    """Download the attendee list as an Excel workbook"""
    content = OrganizerReviewQueue.export_attendees_xlsx(db, auth, event_id)
    return Response(
        content=content,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f"attachment; filename=attendees_event_{event_id}.xlsx"}
    )

@router.get("/{transaction_id}", response_model=TransactionResponse)
def get_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context)
):
    transaction = TransactionService.get_transaction(db, auth, transaction_id)
    return transaction_to_response(transaction)

@router.post("/{transaction_id}/payment-proof", response_model=TransactionResponse)
def upload_payment_proof(
    transaction_id: int,
    payment_proof: UploadFile = File(..., alias="paymentProof"),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context)
):
    """Upload the buyer's payment proof image"""
    content = payment_proof.file.read()
    transaction = TransactionService.upload_payment_proof(db, auth, transaction_id, content)
    return transaction_to_response(transaction)

@router.patch("/{transaction_id}/accept", response_model=TransactionResponse)
def accept_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context)
):
    transaction = OrganizerReviewQueue.accept(db, auth, transaction_id)
    return transaction_to_response(transaction)

@router.patch("/{transaction_id}/reject", response_model=TransactionResponse)
def reject_transaction(
    transaction_id: int,
    body: Optional[RejectRequest] = None,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context)
):
    transaction = OrganizerReviewQueue.reject(
        db, auth, transaction_id, reason=body.reason if body else None
    )
    return transaction_to_response(transaction)

@router.patch("/{transaction_id}/cancel", response_model=TransactionResponse)
def cancel_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context)
):
    transaction = TransactionService.cancel(db, auth, transaction_id)
    return transaction_to_response(transaction)

@router.get("/{transaction_id}/tickets/{attendee_id}/qr.png")
def get_ticket_qr(
    transaction_id: int,
    attendee_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context)
):
    """QR code for one issued ticket"""
    qr_bytes = TransactionService.ticket_qr_png(db, auth, transaction_id, attendee_id)
    return Response(
        content=qr_bytes,
        media_type="image/png",
        headers={"Cache-Control": "private, max-age=3600"}
    )
