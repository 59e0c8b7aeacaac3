"""
Buyer-side transaction workflow: booking, payment proof upload and cancellation
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import (
    DomainError,
    ForbiddenError,
    InvalidTransactionStateError,
    NotFoundError,
    ProofAlreadySubmittedError,
    TransactionExpiredError,
    ValidationError,
)
from app.models import (
    AttendeeRecord,
    Event,
    EventStatus,
    PaymentProof,
    Transaction,
    TransactionItem,
    TransactionStatus,
)
from app.services.discount_service import DiscountResolver, PriceBreakdown, price_booking
from app.services.inventory_ledger import InventoryLedger
from app.services.payment_window import PaymentWindowTimer, payment_due_at
from app.services.proof_storage import ProofStorage
from app.services.qr_service import QRService
from app.services.repositories import EventRepo, TransactionRepo, UserRepo
from app.services.transitions import apply_transition, rollback_reservation
from app.utils.clock import utcnow
from app.utils.security import AuthContext

logger = logging.getLogger(__name__)

UPLOAD_ACTION = "upload payment proof for"


def normalize_items(items: Iterable[Tuple[int, int]]) -> List[Tuple[int, int]]:
    """Merge repeated ticket types and reject empty or non-positive lines"""
    merged: Dict[int, int] = {}
    for ticket_type_id, quantity in items:
        if quantity is None or quantity <= 0:
            raise ValidationError("Quantity must be greater than 0", details={"ticketTypeId": ticket_type_id})
        merged[ticket_type_id] = merged.get(ticket_type_id, 0) + quantity
    if not merged:
        raise ValidationError("At least one ticket is required")
    return sorted(merged.items())


class TransactionService:
    """Transaction operations performed by the buyer"""

    @staticmethod
    def _load_bookable_event(db: Session, auth: AuthContext, event_id: int, now: datetime) -> Event:
        event = EventRepo.get_by_id(db, event_id)
        if not event:
            raise NotFoundError("Event")
        if event.status != EventStatus.PUBLISHED:
            raise ValidationError("Event is not open for booking")
        if event.end_at <= now:
            raise ValidationError("Event has already ended")
        if event.organizer_id == auth.user_id:
            raise ForbiddenError("Organizers cannot book tickets for their own event")
        return event

    @staticmethod
    def _unit_prices(db: Session, event: Event, lines: List[Tuple[int, int]]) -> Dict[int, int]:
        """Snapshot the current price of every requested ticket type"""
        requested = [ticket_type_id for ticket_type_id, _ in lines]
        ticket_types = EventRepo.list_ticket_types(db, event.id, requested)
        prices = {tt.id: tt.price for tt in ticket_types}

        unknown = [ticket_type_id for ticket_type_id in requested if ticket_type_id not in prices]
        if unknown:
            raise ValidationError(
                "Ticket type does not belong to this event",
                details={"ticketTypeIds": unknown}
            )
        return prices

    @staticmethod
    def _resolve_codes(db: Session, auth: AuthContext, event: Event, voucher_code, coupon_code, now: datetime):
        voucher = DiscountResolver.validate_voucher(db, voucher_code, event.id, now) if voucher_code else None
        coupon = DiscountResolver.validate_coupon(db, coupon_code, auth.user_id, now) if coupon_code else None
        return voucher, coupon

    @staticmethod
    def quote(
        db: Session,
        auth: AuthContext,
        event_id: int,
        items: Iterable[Tuple[int, int]],
        voucher_code: Optional[str] = None,
        coupon_code: Optional[str] = None,
        points_used: int = 0,
        now: Optional[datetime] = None,
    ) -> PriceBreakdown:
        """Price a booking without reserving anything"""
        now = now or utcnow()
        lines = normalize_items(items)
        event = TransactionService._load_bookable_event(db, auth, event_id, now)
        prices = TransactionService._unit_prices(db, event, lines)
        user = UserRepo.get(db, auth.user_id)
        voucher, coupon = TransactionService._resolve_codes(db, auth, event, voucher_code, coupon_code, now)

        subtotal = sum(prices[ticket_type_id] * quantity for ticket_type_id, quantity in lines)
        return price_booking(
            subtotal,
            voucher=voucher,
            coupon=coupon,
            points_requested=points_used or 0,
            points_balance=user.points_balance,
        )

    @staticmethod
    def create_transaction(
        db: Session,
        auth: AuthContext,
        event_id: int,
        items: Iterable[Tuple[int, int]],
        voucher_code: Optional[str] = None,
        coupon_code: Optional[str] = None,
        points_used: int = 0,
        now: Optional[datetime] = None,
    ) -> Transaction:
        """Create a WAITING_PAYMENT transaction.

        Seats, discount usage and points are committed together or not at all.

        Raises:
            InsufficientInventoryError: If any line cannot be satisfied.
            VoucherNotFoundError, VoucherExpiredError, VoucherExhaustedError:
                If a supplied code cannot be used.
            ValidationError: On malformed items or a closed event.
        """
        now = now or utcnow()
        try:
            lines = normalize_items(items)
            event = TransactionService._load_bookable_event(db, auth, event_id, now)
            user = UserRepo.get(db, auth.user_id)
            prices = TransactionService._unit_prices(db, event, lines)
            voucher, coupon = TransactionService._resolve_codes(db, auth, event, voucher_code, coupon_code, now)

            subtotal = sum(prices[ticket_type_id] * quantity for ticket_type_id, quantity in lines)
            transaction = Transaction(
                user_id=user.id,
                event_id=event.id,
                status=TransactionStatus.WAITING_PAYMENT,
                subtotal=subtotal,
                total_payable=subtotal,
                payment_due_at=payment_due_at(now),
                created_at=now,
                updated_at=now,
            )
            for ticket_type_id, quantity in lines:
                transaction.items.append(
                    TransactionItem(
                        ticket_type_id=ticket_type_id,
                        quantity=quantity,
                        unit_price=prices[ticket_type_id],
                    )
                )
            db.add(transaction)
            db.flush()

            InventoryLedger.reserve(db, event.id, lines)
            DiscountResolver.apply_at_commit(db, transaction, voucher, coupon, points_used or 0, user)
            db.commit()
        except DomainError:
            db.rollback()
            raise

        db.refresh(transaction)
        logger.info(
            f"Transaction {transaction.id} created for user {auth.user_id} on event {event_id}: "
            f"total {transaction.total_payable} due {transaction.payment_due_at.isoformat()}"
        )
        return transaction

    @staticmethod
    def _load_for_buyer(db: Session, auth: AuthContext, transaction_id: int) -> Transaction:
        transaction = TransactionRepo.get_by_id(db, transaction_id)
        if not transaction:
            raise NotFoundError("Transaction")
        if transaction.user_id != auth.user_id:
            logger.warning(f"User {auth.user_id} tried to act on transaction {transaction_id}")
            raise ForbiddenError()
        return transaction

    @staticmethod
    def get_transaction(
        db: Session,
        auth: AuthContext,
        transaction_id: int,
        now: Optional[datetime] = None,
    ) -> Transaction:
        """Fetch a transaction for its buyer or the event's organizer"""
        transaction = TransactionRepo.get_by_id(db, transaction_id)
        if not transaction:
            raise NotFoundError("Transaction")
        is_buyer = transaction.user_id == auth.user_id
        is_owner = auth.is_organizer and transaction.event.organizer_id == auth.user_id
        if not (is_buyer or is_owner):
            raise ForbiddenError()
        return PaymentWindowTimer.ensure_not_expired(db, transaction, now)

    @staticmethod
    def list_my_transactions(
        db: Session,
        auth: AuthContext,
        now: Optional[datetime] = None,
    ) -> List[Transaction]:
        PaymentWindowTimer.expire_overdue(db, now, user_id=auth.user_id)
        return TransactionRepo.list_for_buyer(db, auth.user_id)

    @staticmethod
    def upload_payment_proof(
        db: Session,
        auth: AuthContext,
        transaction_id: int,
        file_content: bytes,
        now: Optional[datetime] = None,
    ) -> Transaction:
        """Attach a payment proof and move the transaction to WAITING_ADMIN_CONFIRMATION.

        Raises:
            ProofAlreadySubmittedError: If a proof is already attached.
            TransactionExpiredError: If the payment window has elapsed.
            InvalidTransactionStateError: If the transaction was canceled or decided.
            ValidationError: If the file is not an acceptable image.
        """
        now = now or utcnow()
        transaction = TransactionService._load_for_buyer(db, auth, transaction_id)
        PaymentWindowTimer.ensure_not_expired(db, transaction, now)

        if transaction.payment_proof is not None:
            raise ProofAlreadySubmittedError()
        if transaction.status == TransactionStatus.EXPIRED:
            raise TransactionExpiredError()
        if transaction.status != TransactionStatus.WAITING_PAYMENT:
            raise InvalidTransactionStateError(transaction.status, UPLOAD_ACTION)

        image_format = ProofStorage.validate_image(file_content)
        image_url = ProofStorage.save(file_content, transaction.id, image_format)

        try:
            apply_transition(
                db,
                transaction,
                TransactionStatus.WAITING_PAYMENT,
                TransactionStatus.WAITING_ADMIN_CONFIRMATION,
                action=UPLOAD_ACTION,
                actor_id=auth.user_id,
            )
            db.add(PaymentProof(transaction_id=transaction.id, image_url=image_url, uploaded_at=now))
            db.commit()
        except InvalidTransactionStateError as e:
            db.rollback()
            ProofStorage.discard(image_url)
            # Lost the race against the expiry sweep
            if e.details["status"] == TransactionStatus.EXPIRED:
                raise TransactionExpiredError() from e
            raise
        except IntegrityError as e:
            db.rollback()
            ProofStorage.discard(image_url)
            raise ProofAlreadySubmittedError() from e

        db.refresh(transaction)
        logger.info(f"Payment proof stored for transaction {transaction.id}: {image_url}")
        return transaction

    @staticmethod
    def cancel(
        db: Session,
        auth: AuthContext,
        transaction_id: int,
        now: Optional[datetime] = None,
    ) -> Transaction:
        """Buyer cancels an unpaid transaction; seats and discounts are returned"""
        transaction = TransactionService._load_for_buyer(db, auth, transaction_id)
        PaymentWindowTimer.ensure_not_expired(db, transaction, now)

        try:
            apply_transition(
                db,
                transaction,
                TransactionStatus.WAITING_PAYMENT,
                TransactionStatus.CANCELED,
                action="cancel",
                actor_id=auth.user_id,
            )
            rollback_reservation(db, transaction)
            db.commit()
        except DomainError:
            db.rollback()
            raise

        db.refresh(transaction)
        return transaction

    @staticmethod
    def get_attendee_ticket(
        db: Session,
        auth: AuthContext,
        transaction_id: int,
        attendee_id: int,
    ) -> AttendeeRecord:
        transaction = TransactionService._load_for_buyer(db, auth, transaction_id)
        PaymentWindowTimer.ensure_not_expired(db, transaction)
        if transaction.status != TransactionStatus.DONE:
            raise InvalidTransactionStateError(transaction.status, "issue tickets for")
        for record in transaction.attendees:
            if record.id == attendee_id:
                return record
        raise NotFoundError("Ticket")

    @staticmethod
    def ticket_qr_png(db: Session, auth: AuthContext, transaction_id: int, attendee_id: int) -> bytes:
        """QR code image for one issued ticket"""
        record = TransactionService.get_attendee_ticket(db, auth, transaction_id, attendee_id)
        return QRService.generate_ticket_qr(record.ticket_code)
