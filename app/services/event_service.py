"""
Event catalogue: events and their ticket types
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.errors import DomainError, ForbiddenError, NotFoundError, ValidationError
from app.models import Event, EventStatus, TicketType
from app.schemas.event import EventCreate, EventUpdate, TicketTypeCreate, TicketTypeUpdate
from app.services.inventory_ledger import InventoryLedger
from app.services.repositories import EventRepo
from app.utils.security import AuthContext

logger = logging.getLogger(__name__)


def _check_schedule(start_at, end_at) -> None:
    if start_at >= end_at:
        raise ValidationError("Event must start before it ends")


def _check_seat_sum(ticket_type_seats: int, event_seats: int) -> None:
    if ticket_type_seats > event_seats:
        raise ValidationError(
            "Ticket type seats exceed the event capacity",
            details={"ticketTypeSeats": ticket_type_seats, "eventSeats": event_seats}
        )


class EventService:
    """Service for organizer event management"""

    @staticmethod
    def _load_owned(db: Session, auth: AuthContext, event_id: int) -> Event:
        auth.require_organizer()
        event = EventRepo.get_by_id(db, event_id)
        if not event:
            raise NotFoundError("Event")
        if event.organizer_id != auth.user_id:
            raise ForbiddenError()
        return event

    @staticmethod
    def create_event(db: Session, auth: AuthContext, data: EventCreate) -> Event:
        """Create a DRAFT event with optional ticket types"""
        auth.require_organizer()

        title = data.title.strip()
        if not title:
            raise ValidationError("Title is required")
        _check_schedule(data.start_at, data.end_at)
        if data.total_seats <= 0:
            raise ValidationError("Total seats must be greater than 0")
        if data.base_price_idr < 0:
            raise ValidationError("Base price cannot be negative")
        _check_seat_sum(sum(tt.total_seats for tt in data.ticket_types), data.total_seats)

        event = Event(
            organizer_id=auth.user_id,
            title=title,
            description=data.description,
            location=data.location,
            start_at=data.start_at,
            end_at=data.end_at,
            base_price=data.base_price_idr,
            total_seats=data.total_seats,
            available_seats=data.total_seats,
            status=EventStatus.DRAFT,
        )
        for tt in data.ticket_types:
            event.ticket_types.append(TicketType(
                name=tt.name.strip(),
                price=tt.price_idr,
                total_seats=tt.total_seats,
                available_seats=tt.total_seats,
            ))

        db.add(event)
        db.commit()
        db.refresh(event)
        logger.info(f"Event {event.id} created by organizer {auth.user_id}")
        return event

    @staticmethod
    def update_event(db: Session, auth: AuthContext, event_id: int, data: EventUpdate) -> Event:
        """Edit a DRAFT event. Published events are frozen."""
        event = EventService._load_owned(db, auth, event_id)
        if event.status != EventStatus.DRAFT:
            raise ValidationError("Only draft events can be edited")

        try:
            if data.title is not None:
                if not data.title.strip():
                    raise ValidationError("Title is required")
                event.title = data.title.strip()
            if data.description is not None:
                event.description = data.description
            if data.location is not None:
                event.location = data.location
            if data.base_price_idr is not None:
                if data.base_price_idr < 0:
                    raise ValidationError("Base price cannot be negative")
                event.base_price = data.base_price_idr

            start_at = data.start_at or event.start_at
            end_at = data.end_at or event.end_at
            _check_schedule(start_at, end_at)
            event.start_at, event.end_at = start_at, end_at

            if data.total_seats is not None:
                if data.total_seats <= 0:
                    raise ValidationError("Total seats must be greater than 0")
                _check_seat_sum(sum(tt.total_seats for tt in event.ticket_types), data.total_seats)
                # Drafts have no sales, so availability follows capacity
                event.total_seats = data.total_seats
                event.available_seats = data.total_seats
            db.commit()
        except DomainError:
            db.rollback()
            raise

        db.refresh(event)
        return event

    @staticmethod
    def publish(db: Session, auth: AuthContext, event_id: int) -> Event:
        event = EventService._load_owned(db, auth, event_id)
        if event.status != EventStatus.DRAFT:
            raise ValidationError("Only draft events can be published")
        if not event.ticket_types:
            raise ValidationError("Add at least one ticket type before publishing")

        event.status = EventStatus.PUBLISHED
        db.commit()
        db.refresh(event)
        logger.info(f"Event {event.id} published")
        return event

    @staticmethod
    def cancel(db: Session, auth: AuthContext, event_id: int) -> Event:
        event = EventService._load_owned(db, auth, event_id)
        if event.status == EventStatus.CANCELED:
            raise ValidationError("Event is already canceled")

        event.status = EventStatus.CANCELED
        db.commit()
        db.refresh(event)
        logger.info(f"Event {event.id} canceled")
        return event

    @staticmethod
    def get_event(db: Session, auth: AuthContext, event_id: int) -> Event:
        event = EventRepo.get_by_id(db, event_id)
        # Drafts are private to their organizer
        if not event or (event.status == EventStatus.DRAFT and event.organizer_id != auth.user_id):
            raise NotFoundError("Event")
        return event

    @staticmethod
    def list_my_events(db: Session, auth: AuthContext) -> List[Event]:
        auth.require_organizer()
        return EventRepo.list_by_organizer(db, auth.user_id)

    @staticmethod
    def add_ticket_type(db: Session, auth: AuthContext, event_id: int, data: TicketTypeCreate) -> TicketType:
        event = EventService._load_owned(db, auth, event_id)
        if event.status == EventStatus.CANCELED:
            raise ValidationError("Event is canceled")
        _check_seat_sum(sum(tt.total_seats for tt in event.ticket_types) + data.total_seats, event.total_seats)

        ticket_type = TicketType(
            event_id=event.id,
            name=data.name.strip(),
            price=data.price_idr,
            total_seats=data.total_seats,
            available_seats=data.total_seats,
        )
        db.add(ticket_type)
        db.commit()
        db.refresh(ticket_type)
        logger.info(f"Ticket type {ticket_type.id} added to event {event.id}")
        return ticket_type

    @staticmethod
    def update_ticket_type(
        db: Session,
        auth: AuthContext,
        ticket_type_id: int,
        data: TicketTypeUpdate,
    ) -> TicketType:
        """Edit a ticket type.

        Price changes apply to future bookings only; existing transaction items
        keep the price they were booked at.
        """
        auth.require_organizer()
        ticket_type: Optional[TicketType] = EventRepo.get_ticket_type(db, ticket_type_id)
        if not ticket_type:
            raise NotFoundError("Ticket type")
        event = ticket_type.event
        if event.organizer_id != auth.user_id:
            raise ForbiddenError()

        try:
            if data.name is not None:
                ticket_type.name = data.name.strip()
            if data.price_idr is not None:
                ticket_type.price = data.price_idr

            if data.total_seats is not None and data.total_seats != ticket_type.total_seats:
                if data.total_seats < ticket_type.sold_seats:
                    raise ValidationError(
                        "Cannot reduce seats below those already sold",
                        details={"sold": ticket_type.sold_seats}
                    )
                others = sum(tt.total_seats for tt in event.ticket_types if tt.id != ticket_type.id)
                _check_seat_sum(others + data.total_seats, event.total_seats)

                db.flush()
                if not InventoryLedger.resize_ticket_type(db, ticket_type.id, data.total_seats - ticket_type.total_seats):
                    raise ValidationError("Cannot reduce seats below those already sold")
            db.commit()
        except DomainError:
            db.rollback()
            raise

        db.refresh(ticket_type)
        return ticket_type
