"""
Inventory ledger - the only code that changes seat availability

Every change is a conditional UPDATE, so two bookings racing for the last
seat cannot both succeed regardless of what either one read beforehand.
"""

import logging
from typing import Iterable, List, Tuple

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.core.errors import InsufficientInventoryError
from app.models import Event, TicketType, Transaction

logger = logging.getLogger(__name__)

# (ticket_type_id, quantity)
Line = Tuple[int, int]


class InventoryLedger:
    """Seat reservation and release for events and their ticket types"""

    @staticmethod
    def _decrement_ticket_type(db: Session, event_id: int, ticket_type_id: int, quantity: int) -> bool:
        result = db.execute(
            update(TicketType)
            .where(
                TicketType.id == ticket_type_id,
                TicketType.event_id == event_id,
                TicketType.available_seats >= quantity,
            )
            .values(available_seats=TicketType.available_seats - quantity)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def _decrement_event(db: Session, event_id: int, quantity: int) -> bool:
        result = db.execute(
            update(Event)
            .where(Event.id == event_id, Event.available_seats >= quantity)
            .values(available_seats=Event.available_seats - quantity)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def _credit(db: Session, event_id: int, lines: Iterable[Line]) -> None:
        total = 0
        for ticket_type_id, quantity in lines:
            db.execute(
                update(TicketType)
                .where(TicketType.id == ticket_type_id)
                .values(available_seats=TicketType.available_seats + quantity)
                .execution_options(synchronize_session=False)
            )
            total += quantity
        if total:
            db.execute(
                update(Event)
                .where(Event.id == event_id)
                .values(available_seats=Event.available_seats + total)
                .execution_options(synchronize_session=False)
            )

    @staticmethod
    def reserve(db: Session, event_id: int, lines: List[Line]) -> None:
        """Take seats for every line or none of them.

        Raises:
            InsufficientInventoryError: If any ticket type or the event itself
                does not have enough seats left.
        """
        # Stable lock order across concurrent bookings
        ordered = sorted(lines)
        applied: List[Line] = []

        for ticket_type_id, quantity in ordered:
            if not InventoryLedger._decrement_ticket_type(db, event_id, ticket_type_id, quantity):
                InventoryLedger._undo(db, applied)
                logger.warning(f"Insufficient seats for ticket type {ticket_type_id} (requested {quantity})")
                raise InsufficientInventoryError(ticket_type_id)
            applied.append((ticket_type_id, quantity))

        total = sum(quantity for _, quantity in ordered)
        if not InventoryLedger._decrement_event(db, event_id, total):
            InventoryLedger._undo(db, applied)
            logger.warning(f"Insufficient seats for event {event_id} (requested {total})")
            raise InsufficientInventoryError()

        logger.info(f"Reserved {total} seats for event {event_id}")

    @staticmethod
    def _undo(db: Session, applied: List[Line]) -> None:
        for ticket_type_id, quantity in applied:
            db.execute(
                update(TicketType)
                .where(TicketType.id == ticket_type_id)
                .values(available_seats=TicketType.available_seats + quantity)
                .execution_options(synchronize_session=False)
            )

    @staticmethod
    def release(db: Session, transaction: Transaction) -> bool:
        """Return a transaction's seats, at most once.

        Returns False when the seats were already released.
        """
        result = db.execute(
            update(Transaction)
            .where(Transaction.id == transaction.id, Transaction.inventory_released.is_(False))
            .values(inventory_released=True)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.info(f"Inventory for transaction {transaction.id} already released")
            return False

        lines = [(item.ticket_type_id, item.quantity) for item in transaction.items]
        InventoryLedger._credit(db, transaction.event_id, lines)
        logger.info(
            f"Released {sum(q for _, q in lines)} seats for transaction {transaction.id}"
        )
        return True

    @staticmethod
    def resize_ticket_type(db: Session, ticket_type_id: int, delta: int) -> bool:
        """Grow or shrink a ticket type's capacity without touching sold seats.

        Returns False when shrinking would cut into seats already sold.
        """
        result = db.execute(
            update(TicketType)
            .where(
                TicketType.id == ticket_type_id,
                TicketType.available_seats + delta >= 0,
            )
            .values(
                total_seats=TicketType.total_seats + delta,
                available_seats=TicketType.available_seats + delta,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning(f"Refused to resize ticket type {ticket_type_id} by {delta}")
            return False
        logger.info(f"Resized ticket type {ticket_type_id} by {delta} seats")
        return True

    @staticmethod
    def finalize(db: Session, transaction: Transaction) -> None:
        """Completed sales keep their seats; nothing to write"""
        logger.debug(f"Seats for transaction {transaction.id} finalized")
