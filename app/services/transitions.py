"""
Status-guarded transaction transitions and the shared rollback path
"""

import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.core.errors import InvalidTransactionStateError
from app.models import Transaction
from app.services.discount_service import DiscountResolver
from app.services.inventory_ledger import InventoryLedger
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)


def apply_transition(
    db: Session,
    transaction: Transaction,
    source: str,
    target: str,
    action: str,
    actor_id: Optional[int] = None,
    **values,
) -> None:
    """Move a transaction from `source` to `target` only if it is still in `source`.

    The UPDATE is keyed on the current status, so of several racing actors
    (buyer, organizer, expiry timer) exactly one wins.

    Raises:
        InvalidTransactionStateError: If the row is no longer in `source`.
    """
    result = db.execute(
        update(Transaction)
        .where(Transaction.id == transaction.id, Transaction.status == source)
        .values(status=target, updated_at=utcnow(), **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        current = db.execute(
            select(Transaction.status).where(Transaction.id == transaction.id)
        ).scalar_one()
        logger.warning(f"Refused to {action} transaction {transaction.id}: status is {current}")
        raise InvalidTransactionStateError(current, action)

    logger.info(f"Transaction {transaction.id}: {source} -> {target} (actor={actor_id})")


def rollback_reservation(db: Session, transaction: Transaction) -> None:
    """Undo a booking's side effects: seats, discount uses and points"""
    InventoryLedger.release(db, transaction)
    DiscountResolver.revert(db, transaction)
