"""
Tests for payment window expiry, lazy and swept
"""

import asyncio
import pytest
from datetime import timedelta

from app.core.errors import InvalidTransactionStateError, TransactionExpiredError
from app.models import Event, TicketType, Transaction, TransactionStatus, User, Voucher
from app.services.payment_window import ExpirySweeper, PaymentWindowTimer, is_overdue
from app.services.review_queue import OrganizerReviewQueue
from app.services.transaction_service import TransactionService
from app.utils.clock import utcnow

from conftest import TestingSessionLocal, auth_for, make_voucher, png_bytes


def reload(db, model, row_id):
    db.expire_all()
    return db.query(model).filter(model.id == row_id).one()


def stale_booking(db, buyer, event, ticket_type, quantity=2, **kwargs):
    """A booking made three hours ago, past its two-hour window"""
    return TransactionService.create_transaction(
        db, auth_for(buyer), event.id, [(ticket_type.id, quantity)],
        now=utcnow() - timedelta(hours=3), **kwargs
    )


def test_overdue_at_the_deadline(db_session, buyer, event, regular):
    transaction = TransactionService.create_transaction(db_session, auth_for(buyer), event.id, [(regular.id, 1)])

    assert not is_overdue(transaction, transaction.payment_due_at - timedelta(seconds=1))
    assert is_overdue(transaction, transaction.payment_due_at)


def test_read_applies_expiry_and_restores_seats(db_session, buyer, event, regular):
    transaction = stale_booking(db_session, buyer, event, regular)
    assert reload(db_session, TicketType, regular.id).available_seats == 8

    transaction = TransactionService.get_transaction(db_session, auth_for(buyer), transaction.id)

    assert transaction.status == TransactionStatus.EXPIRED
    assert reload(db_session, TicketType, regular.id).available_seats == 10
    assert reload(db_session, Event, event.id).available_seats == 10


def test_expiry_rollback_happens_once(db_session, buyer, event, regular):
    voucher = make_voucher(db_session, event, code="SUMMER10")
    transaction = stale_booking(db_session, buyer, event, regular, voucher_code="SUMMER10", points_used=2000)

    assert PaymentWindowTimer.expire_overdue(db_session) == 1
    assert PaymentWindowTimer.expire_overdue(db_session) == 0
    transaction = reload(db_session, Transaction, transaction.id)
    assert PaymentWindowTimer.expire(db_session, transaction) is False

    assert reload(db_session, TicketType, regular.id).available_seats == 10
    assert reload(db_session, Voucher, voucher.id).used_count == 0
    assert reload(db_session, User, buyer.id).points_balance == 50000


def test_upload_after_window_is_refused(db_session, buyer, event, regular):
    transaction = stale_booking(db_session, buyer, event, regular)

    with pytest.raises(TransactionExpiredError):
        TransactionService.upload_payment_proof(db_session, auth_for(buyer), transaction.id, png_bytes())

    transaction = reload(db_session, Transaction, transaction.id)
    assert transaction.status == TransactionStatus.EXPIRED
    assert transaction.payment_proof is None


def test_cancel_after_window_reports_expired_state(db_session, buyer, event, regular):
    transaction = stale_booking(db_session, buyer, event, regular)

    with pytest.raises(InvalidTransactionStateError) as exc_info:
        TransactionService.cancel(db_session, auth_for(buyer), transaction.id)

    assert exc_info.value.details == {"status": TransactionStatus.EXPIRED}
    assert reload(db_session, TicketType, regular.id).available_seats == 10


def test_proof_uploaded_in_time_never_expires(db_session, organizer, buyer, event, regular):
    created = utcnow() - timedelta(minutes=90)
    transaction = TransactionService.create_transaction(
        db_session, auth_for(buyer), event.id, [(regular.id, 2)], now=created
    )
    TransactionService.upload_payment_proof(db_session, auth_for(buyer), transaction.id, png_bytes())

    # Well past the original deadline, still waiting on the organizer
    assert PaymentWindowTimer.expire_overdue(db_session, now=utcnow() + timedelta(hours=5)) == 0
    transaction = OrganizerReviewQueue.accept(db_session, auth_for(organizer), transaction.id)
    assert transaction.status == TransactionStatus.DONE


def test_listing_applies_expiry(db_session, organizer, buyer, event, regular):
    stale_booking(db_session, buyer, event, regular)

    mine = TransactionService.list_my_transactions(db_session, auth_for(buyer))
    assert [t.status for t in mine] == [TransactionStatus.EXPIRED]

    queue = OrganizerReviewQueue.list_for_organizer(db_session, auth_for(organizer))
    assert [t.status for t in queue] == [TransactionStatus.EXPIRED]


def test_sweeper_expires_overdue_transactions(db_session, buyer, event, regular):
    transaction = stale_booking(db_session, buyer, event, regular)
    TransactionService.create_transaction(db_session, auth_for(buyer), event.id, [(regular.id, 1)])

    sweeper = ExpirySweeper(TestingSessionLocal, interval_seconds=60)
    assert sweeper.sweep_once() == 1

    assert reload(db_session, Transaction, transaction.id).status == TransactionStatus.EXPIRED
    assert reload(db_session, TicketType, regular.id).available_seats == 9


def test_sweeper_disabled_with_zero_interval():
    async def scenario():
        sweeper = ExpirySweeper(TestingSessionLocal, interval_seconds=0)
        sweeper.start()
        assert sweeper._task is None
        await sweeper.stop()

    asyncio.run(scenario())


def test_sweeper_start_and_stop():
    async def scenario():
        sweeper = ExpirySweeper(TestingSessionLocal, interval_seconds=3600)
        sweeper.start()
        assert sweeper._task is not None
        await sweeper.stop()
        assert sweeper._task is None

    asyncio.run(scenario())


def test_organizer_decision_applies_expiry(db_session, organizer, buyer, event, regular):
    transaction = stale_booking(db_session, buyer, event, regular)

    with pytest.raises(InvalidTransactionStateError) as exc_info:
        OrganizerReviewQueue.accept(db_session, auth_for(organizer), transaction.id)
    assert exc_info.value.details == {"status": TransactionStatus.EXPIRED}
    assert reload(db_session, TicketType, regular.id).available_seats == 10

    with pytest.raises(InvalidTransactionStateError):
        OrganizerReviewQueue.reject(db_session, auth_for(organizer), transaction.id)
    assert reload(db_session, TicketType, regular.id).available_seats == 10
    assert reload(db_session, Event, event.id).available_seats == 10


def test_ticket_lookup_applies_expiry(db_session, buyer, event, regular):
    transaction = stale_booking(db_session, buyer, event, regular)

    with pytest.raises(InvalidTransactionStateError) as exc_info:
        TransactionService.get_attendee_ticket(db_session, auth_for(buyer), transaction.id, 1)

    assert exc_info.value.details == {"status": TransactionStatus.EXPIRED}
    assert reload(db_session, TicketType, regular.id).available_seats == 10
