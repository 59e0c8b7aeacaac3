"""
Event and ticket type models
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from app.core.db import Base
from app.utils.clock import utcnow

class EventStatus:
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    CANCELED = "CANCELED"

class Event(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    organizer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(String(2000), nullable=True)
    location = Column(String(255), nullable=True)
    start_at = Column(DateTime, nullable=False)
    end_at = Column(DateTime, nullable=False)
    base_price = Column(Integer, nullable=False, default=0)  # IDR
    total_seats = Column(Integer, nullable=False)
    available_seats = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default=EventStatus.DRAFT, index=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    organizer = relationship("User", back_populates="events")
    ticket_types = relationship(
        "TicketType", back_populates="event", cascade="all, delete-orphan", order_by="TicketType.id"
    )
    vouchers = relationship("Voucher", back_populates="event", cascade="all, delete-orphan")
    transactions = relationship("Transaction", back_populates="event")

    __table_args__ = (
        CheckConstraint("available_seats >= 0", name="check_event_available_non_negative"),
        CheckConstraint("available_seats <= total_seats", name="check_event_available_lte_total"),
        CheckConstraint("start_at < end_at", name="check_event_schedule"),
    )

class TicketType(Base):
    __tablename__ = "ticket_types"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    price = Column(Integer, nullable=False)  # IDR
    total_seats = Column(Integer, nullable=False)
    available_seats = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    # Relationships
    event = relationship("Event", back_populates="ticket_types")

    __table_args__ = (
        CheckConstraint("available_seats >= 0", name="check_ticket_available_non_negative"),
        CheckConstraint("available_seats <= total_seats", name="check_ticket_available_lte_total"),
        CheckConstraint("price >= 0", name="check_ticket_price_non_negative"),
    )

    @property
    def sold_seats(self) -> int:
        return self.total_seats - self.available_seats
