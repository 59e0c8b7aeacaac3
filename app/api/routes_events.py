"""
Event API routes - organizer catalogue management and booking entry point
"""

from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.routes_transactions import create_booking
from app.core.db import get_db
from app.core.errors import ValidationError
from app.schemas.event import (
    EventCreate,
    EventResponse,
    EventUpdate,
    TicketTypeCreate,
    TicketTypeResponse,
    TicketTypeUpdate,
    event_to_response,
    ticket_type_to_response,
)
from app.schemas.transaction import BookingRequest, BookingResponse
from app.services.event_service import EventService
from app.utils.security import AuthContext, get_auth_context

router = APIRouter()

@router.post("", response_model=EventResponse, status_code=201)
def create_event(
    event_data: EventCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context)
):
    """Create a new draft event"""
    event = EventService.create_event(db, auth, event_data)
    return event_to_response(event)

@router.get("/my", response_model=List[EventResponse])
def list_my_events(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context)
):
    events = EventService.list_my_events(db, auth)
    return [event_to_response(e) for e in events]

@router.patch("/ticket-types/{ticket_type_id}", response_model=TicketTypeResponse)
def update_ticket_type(
    ticket_type_id: int,
    data: TicketTypeUpdate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context)
):
    ticket_type = EventService.update_ticket_type(db, auth, ticket_type_id, data)
    return ticket_type_to_response(ticket_type)

@router.get("/{event_id}", response_model=EventResponse)
def get_event(
    event_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context)
):
    """Event details with live seat availability"""
    event = EventService.get_event(db, auth, event_id)
    return event_to_response(event)

@router.patch("/{event_id}", response_model=EventResponse)
def update_event(
    event_id: int,
    data: EventUpdate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context)
):
    event = EventService.update_event(db, auth, event_id, data)
    return event_to_response(event)

@router.patch("/{event_id}/publish", response_model=EventResponse)
def publish_event(
    event_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context)
):
    event = EventService.publish(db, auth, event_id)
    return event_to_response(event)

@router.patch("/{event_id}/cancel", response_model=EventResponse)
def cancel_event(
    event_id: int,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context)
):
    event = EventService.cancel(db, auth, event_id)
    return event_to_response(event)

@router.post("/{event_id}/ticket-types", response_model=TicketTypeResponse, status_code=201)
def add_ticket_type(
    event_id: int,
    data: TicketTypeCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context)
):
    ticket_type = EventService.add_ticket_type(db, auth, event_id, data)
    return ticket_type_to_response(ticket_type)

@router.post("/{event_id}/book", response_model=BookingResponse, status_code=201)
def book_event(
    event_id: int,
    booking: BookingRequest,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context)
):
    """Book tickets for an event"""
    if booking.event_id is not None and booking.event_id != event_id:
        raise ValidationError("eventId does not match the event being booked")
    return create_booking(db, auth, event_id, booking)
