"""
Organizer review queue: listing and deciding transactions on owned events
"""

import logging
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.errors import DomainError, ForbiddenError, ValidationError
from app.models import AttendeeRecord, EventStatus, Transaction, TransactionStatus
from app.services.excel_service import ExcelService
from app.services.inventory_ledger import InventoryLedger
from app.services.payment_window import PaymentWindowTimer
from app.services.repositories import EventRepo, TransactionRepo
from app.services.transitions import apply_transition, rollback_reservation
from app.utils.clock import utcnow
from app.utils.security import AuthContext

logger = logging.getLogger(__name__)

DEFAULT_REJECT_REASON = "Payment proof rejected by organizer"


def new_ticket_code() -> str:
    return f"TCK-{uuid.uuid4().hex[:10].upper()}"


class OrganizerReviewQueue:
    """Accept/reject decisions and attendee lists for an organizer's events"""

    @staticmethod
    def _load_owned(
        db: Session,
        auth: AuthContext,
        transaction_id: int,
        now: Optional[datetime] = None,
    ) -> Transaction:
        # Missing and foreign transactions look the same to the caller
        if not auth.is_organizer:
            raise ForbiddenError()
        transaction = TransactionRepo.get_by_id(db, transaction_id)
        if not transaction or transaction.event.organizer_id != auth.user_id:
            logger.warning(f"Organizer {auth.user_id} tried to decide transaction {transaction_id}")
            raise ForbiddenError()
        PaymentWindowTimer.ensure_not_expired(db, transaction, now)
        return transaction

    @staticmethod
    def list_for_organizer(
        db: Session,
        auth: AuthContext,
        event_id: Optional[int] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> List[Transaction]:
        """Transactions on the caller's events, newest first.

        Foreign event ids simply produce an empty list.
        """
        auth.require_organizer()
        if status and status not in TransactionStatus.ALL:
            raise ValidationError(f"Unknown status: {status}")

        PaymentWindowTimer.expire_overdue(db, now, organizer_id=auth.user_id)
        return TransactionRepo.list_for_organizer(db, auth.user_id, event_id, status, search)

    @staticmethod
    def accept(
        db: Session,
        auth: AuthContext,
        transaction_id: int,
        now: Optional[datetime] = None,
    ) -> Transaction:
        """WAITING_ADMIN_CONFIRMATION -> DONE, issuing one attendee record per seat"""
        now = now or utcnow()
        transaction = OrganizerReviewQueue._load_owned(db, auth, transaction_id, now)
        if transaction.event.status == EventStatus.CANCELED:
            raise ValidationError("Event is canceled; reject the transaction instead")

        try:
            apply_transition(
                db,
                transaction,
                TransactionStatus.WAITING_ADMIN_CONFIRMATION,
                TransactionStatus.DONE,
                action="accept",
                actor_id=auth.user_id,
                organizer_decision_by=auth.user_id,
                organizer_decision_at=now,
            )
            for item in transaction.items:
                for _ in range(item.quantity):
                    db.add(AttendeeRecord(
                        transaction_id=transaction.id,
                        user_id=transaction.user_id,
                        event_id=transaction.event_id,
                        ticket_type_id=item.ticket_type_id,
                        ticket_code=new_ticket_code(),
                        created_at=now,
                    ))
            InventoryLedger.finalize(db, transaction)
            db.commit()
        except DomainError:
            db.rollback()
            raise

        db.refresh(transaction)
        logger.info(f"Issued {len(transaction.attendees)} tickets for transaction {transaction.id}")
        return transaction

    @staticmethod
    def reject(
        db: Session,
        auth: AuthContext,
        transaction_id: int,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Transaction:
        """WAITING_ADMIN_CONFIRMATION -> REJECTED, returning seats and discounts"""
        now = now or utcnow()
        transaction = OrganizerReviewQueue._load_owned(db, auth, transaction_id, now)

        try:
            apply_transition(
                db,
                transaction,
                TransactionStatus.WAITING_ADMIN_CONFIRMATION,
                TransactionStatus.REJECTED,
                action="reject",
                actor_id=auth.user_id,
                organizer_decision_by=auth.user_id,
                organizer_decision_at=now,
                reject_reason=(reason or "").strip() or DEFAULT_REJECT_REASON,
            )
            rollback_reservation(db, transaction)
            db.commit()
        except DomainError:
            db.rollback()
            raise

        db.refresh(transaction)
        return transaction

    @staticmethod
    def list_attendees(db: Session, auth: AuthContext, event_id: int) -> List[AttendeeRecord]:
        auth.require_organizer()
        if not EventRepo.get_owned(db, event_id, auth.user_id):
            raise ForbiddenError()
        return TransactionRepo.list_attendees(db, event_id)

    @staticmethod
    def export_attendees_xlsx(db: Session, auth: AuthContext, event_id: int) -> bytes:
        attendees = OrganizerReviewQueue.list_attendees(db, auth, event_id)
        logger.info(f"Exporting {len(attendees)} attendees for event {event_id}")
        return ExcelService.export_attendees(attendees)
