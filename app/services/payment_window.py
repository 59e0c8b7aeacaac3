"""
Payment window timer

Expiry is applied two ways that share one transition:
- lazily, by ensure_not_expired() at the top of every read or action
- actively, by the periodic sweep started from the application lifespan
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import InvalidTransactionStateError
from app.models import Event, Transaction, TransactionStatus
from app.services.transitions import apply_transition, rollback_reservation
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)


def payment_due_at(created_at: datetime) -> datetime:
    return created_at + timedelta(minutes=settings.PAYMENT_WINDOW_MINUTES)


def is_overdue(transaction: Transaction, now: datetime) -> bool:
    return (
        transaction.status == TransactionStatus.WAITING_PAYMENT
        and transaction.payment_due_at <= now
    )


class PaymentWindowTimer:
    """Moves unpaid transactions to EXPIRED once their deadline passes"""

    @staticmethod
    def expire(db: Session, transaction: Transaction, now: Optional[datetime] = None) -> bool:
        """Expire one overdue transaction and commit. Returns False if another actor got there first."""
        now = now or utcnow()
        if not is_overdue(transaction, now):
            return False
        try:
            apply_transition(
                db,
                transaction,
                TransactionStatus.WAITING_PAYMENT,
                TransactionStatus.EXPIRED,
                action="expire",
            )
            rollback_reservation(db, transaction)
            db.commit()
        except InvalidTransactionStateError:
            db.rollback()
            return False
        finally:
            db.expire(transaction)
        return True

    @staticmethod
    def ensure_not_expired(db: Session, transaction: Transaction, now: Optional[datetime] = None) -> Transaction:
        """Flip an overdue transaction to EXPIRED before anyone looks at it"""
        now = now or utcnow()
        if is_overdue(transaction, now):
            PaymentWindowTimer.expire(db, transaction, now)
            db.refresh(transaction)
        return transaction

    @staticmethod
    def expire_overdue(
        db: Session,
        now: Optional[datetime] = None,
        organizer_id: Optional[int] = None,
        user_id: Optional[int] = None,
    ) -> int:
        """Expire every overdue transaction, optionally scoped to an organizer or buyer"""
        now = now or utcnow()
        query = db.query(Transaction).filter(
            Transaction.status == TransactionStatus.WAITING_PAYMENT,
            Transaction.payment_due_at <= now,
        )
        if organizer_id is not None:
            query = query.join(Event, Transaction.event_id == Event.id).filter(Event.organizer_id == organizer_id)
        if user_id is not None:
            query = query.filter(Transaction.user_id == user_id)

        expired = 0
        for transaction in query.order_by(Transaction.id).all():
            if PaymentWindowTimer.expire(db, transaction, now):
                expired += 1
        if expired:
            logger.info(f"Expired {expired} overdue transactions")
        return expired


class ExpirySweeper:
    """Background task running the expiry sweep on a fixed interval"""

    def __init__(self, session_factory: Callable[[], Session], interval_seconds: int):
        self.session_factory = session_factory
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    def sweep_once(self) -> int:
        db = self.session_factory()
        try:
            return PaymentWindowTimer.expire_overdue(db)
        finally:
            db.close()

    async def _run(self):
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await asyncio.to_thread(self.sweep_once)
            except Exception as e:
                logger.error(f"Expiry sweep failed: {e}")

    def start(self):
        if self.interval_seconds <= 0:
            logger.info("Expiry sweep disabled; relying on lazy expiry")
            return
        self._task = asyncio.create_task(self._run())
        logger.info(f"Expiry sweep running every {self.interval_seconds}s")

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
