"""
Event-related Pydantic schemas
"""

from datetime import datetime
from typing import List, Optional
from pydantic import Field

from app.schemas.common import CamelModel

class TicketTypeCreate(CamelModel):
    """Schema for creating a ticket type"""
    name: str = Field(min_length=1, max_length=100)
    price_idr: int = Field(alias="priceIDR", ge=0)
    total_seats: int = Field(gt=0)

class TicketTypeUpdate(CamelModel):
    """Schema for editing a ticket type"""
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    price_idr: Optional[int] = Field(default=None, alias="priceIDR", ge=0)
    total_seats: Optional[int] = Field(default=None, gt=0)

class TicketTypeResponse(CamelModel):
    id: int
    name: str
    price_idr: int = Field(alias="priceIDR")
    total_seats: int
    available_seats: int

class EventCreate(CamelModel):
    """Schema for creating an event"""
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    start_at: datetime
    end_at: datetime
    base_price_idr: int = Field(default=0, alias="basePriceIDR")
    total_seats: int
    ticket_types: List[TicketTypeCreate] = []

class EventUpdate(CamelModel):
    """Schema for editing a draft event"""
    title: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    base_price_idr: Optional[int] = Field(default=None, alias="basePriceIDR")
    total_seats: Optional[int] = None

class EventResponse(CamelModel):
    id: int
    organizer_id: int
    title: str
    description: Optional[str]
    location: Optional[str]
    start_at: datetime
    end_at: datetime
    base_price_idr: int = Field(alias="basePriceIDR")
    total_seats: int
    available_seats: int
    status: str
    ticket_types: List[TicketTypeResponse]

def ticket_type_to_response(ticket_type) -> TicketTypeResponse:
    return TicketTypeResponse(
        id=ticket_type.id,
        name=ticket_type.name,
        price_idr=ticket_type.price,
        total_seats=ticket_type.total_seats,
        available_seats=ticket_type.available_seats,
    )

def event_to_response(event) -> EventResponse:
    return EventResponse(
        id=event.id,
        organizer_id=event.organizer_id,
        title=event.title,
        description=event.description,
        location=event.location,
        start_at=event.start_at,
        end_at=event.end_at,
        base_price_idr=event.base_price,
        total_seats=event.total_seats,
        available_seats=event.available_seats,
        status=event.status,
        ticket_types=[ticket_type_to_response(tt) for tt in event.ticket_types],
    )
