"""
Repository layer: read helpers shared by the services.
"""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError
from app.models import AttendeeRecord, Event, TicketType, Transaction, User, Voucher


# -------- User repository --------

class UserRepo:
    @staticmethod
    def get(db: Session, user_id: int) -> User:
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User")
        return user


# -------- Event repository --------

class EventRepo:
    @staticmethod
    def get_by_id(db: Session, event_id: int) -> Optional[Event]:
        return db.query(Event).filter(Event.id == event_id).first()

    @staticmethod
    def get_owned(db: Session, event_id: int, organizer_id: int) -> Optional[Event]:
        return db.query(Event).filter(Event.id == event_id, Event.organizer_id == organizer_id).first()

    @staticmethod
    def list_by_organizer(db: Session, organizer_id: int) -> List[Event]:
        return db.query(Event).filter(Event.organizer_id == organizer_id).order_by(Event.start_at).all()

    @staticmethod
    def get_ticket_type(db: Session, ticket_type_id: int) -> Optional[TicketType]:
        return db.query(TicketType).filter(TicketType.id == ticket_type_id).first()

    @staticmethod
    def list_ticket_types(db: Session, event_id: int, ticket_type_ids: List[int]) -> List[TicketType]:
        return db.query(TicketType).filter(
            TicketType.event_id == event_id,
            TicketType.id.in_(ticket_type_ids)
        ).all()


# -------- Voucher repository --------

class VoucherRepo:
    @staticmethod
    def get_by_id(db: Session, voucher_id: int) -> Optional[Voucher]:
        return db.query(Voucher).filter(Voucher.id == voucher_id).first()

    @staticmethod
    def find_code(db: Session, event_id: int, code: str) -> Optional[Voucher]:
        return db.query(Voucher).filter(Voucher.event_id == event_id, Voucher.code == code.upper()).first()

    @staticmethod
    def list_for_organizer(db: Session, organizer_id: int, event_id: Optional[int] = None) -> List[Voucher]:
        query = db.query(Voucher).join(Event, Voucher.event_id == Event.id).filter(Event.organizer_id == organizer_id)
        if event_id is not None:
            query = query.filter(Voucher.event_id == event_id)
        return query.order_by(Voucher.created_at.desc(), Voucher.id.desc()).all()


# -------- Transaction repository --------

class TransactionRepo:
    @staticmethod
    def get_by_id(db: Session, transaction_id: int) -> Optional[Transaction]:
        return db.query(Transaction).filter(Transaction.id == transaction_id).first()

    @staticmethod
    def list_for_buyer(db: Session, user_id: int) -> List[Transaction]:
        return db.query(Transaction).filter(
            Transaction.user_id == user_id
        ).order_by(Transaction.created_at.desc(), Transaction.id.desc()).all()

    @staticmethod
    def list_for_organizer(
        db: Session,
        organizer_id: int,
        event_id: Optional[int] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[Transaction]:
        # Ownership filter is always applied, whatever else the caller asks for
        query = db.query(Transaction).join(
            Event, Transaction.event_id == Event.id
        ).join(
            User, Transaction.user_id == User.id
        ).filter(Event.organizer_id == organizer_id)

        if event_id is not None:
            query = query.filter(Transaction.event_id == event_id)
        if status:
            query = query.filter(Transaction.status == status)
        if search:
            term = search.strip().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            pattern = f"%{term}%"
            query = query.filter(or_(
                User.name.ilike(pattern, escape="\\"),
                Event.title.ilike(pattern, escape="\\"),
            ))

        return query.order_by(Transaction.created_at.desc(), Transaction.id.desc()).all()

    @staticmethod
    def list_attendees(db: Session, event_id: int) -> List[AttendeeRecord]:
        return db.query(AttendeeRecord).filter(
            AttendeeRecord.event_id == event_id
        ).order_by(AttendeeRecord.id).all()
