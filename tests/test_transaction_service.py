"""
Tests for the booking, payment proof and decision workflow
"""

import os
import threading
import pytest
from datetime import timedelta

from app.core.errors import (
    ForbiddenError,
    InsufficientInventoryError,
    InvalidTransactionStateError,
    NotFoundError,
    ProofAlreadySubmittedError,
    ValidationError,
    VoucherExhaustedError,
)
from app.models import Event, EventStatus, TicketType, Transaction, TransactionStatus, User, Voucher
from app.services.review_queue import DEFAULT_REJECT_REASON, OrganizerReviewQueue
from app.services.transaction_service import TransactionService, normalize_items

from conftest import (
    TestingSessionLocal,
    auth_for,
    make_coupon,
    make_event,
    make_user,
    make_voucher,
    png_bytes,
)


def reload(db, model, row_id):
    db.expire_all()
    return db.query(model).filter(model.id == row_id).one()


def book(db, buyer, event, ticket_type, quantity=2, **kwargs):
    return TransactionService.create_transaction(
        db, auth_for(buyer), event.id, [(ticket_type.id, quantity)], **kwargs
    )


def test_normalize_items_merges_duplicates():
    assert normalize_items([(2, 1), (1, 3), (2, 2)]) == [(1, 3), (2, 3)]


def test_normalize_items_rejects_zero_quantity():
    with pytest.raises(ValidationError):
        normalize_items([(1, 0)])
    with pytest.raises(ValidationError):
        normalize_items([])


def test_booking_reserves_seats(db_session, buyer, event, regular):
    transaction = book(db_session, buyer, event, regular)

    assert transaction.status == TransactionStatus.WAITING_PAYMENT
    assert transaction.subtotal == 200000
    assert transaction.total_payable == 200000
    assert transaction.items[0].unit_price == 100000
    assert transaction.payment_due_at == transaction.created_at + timedelta(minutes=120)
    assert reload(db_session, TicketType, regular.id).available_seats == 8
    assert reload(db_session, Event, event.id).available_seats == 8


def test_booking_with_voucher_coupon_and_points(db_session, buyer, event, regular):
    make_voucher(db_session, event, code="SUMMER10", value=10)
    make_coupon(db_session, code="WELCOME", value=25000)

    transaction = book(
        db_session, buyer, event, regular,
        voucher_code="summer10", coupon_code="WELCOME", points_used=10000,
    )

    assert transaction.discount_voucher == 20000
    assert transaction.discount_coupon == 25000
    assert transaction.points_used == 10000
    assert transaction.total_payable == 145000
    assert reload(db_session, User, buyer.id).points_balance == 40000
    assert reload(db_session, Voucher, transaction.voucher_id).used_count == 1


def test_points_over_request_is_clamped(db_session, buyer, event, regular):
    transaction = book(db_session, buyer, event, regular, quantity=1, points_used=999999)

    assert transaction.points_used == 50000
    assert transaction.total_payable == 50000
    assert reload(db_session, User, buyer.id).points_balance == 0


def test_insufficient_inventory_leaves_no_trace(db_session, buyer, event, regular):
    with pytest.raises(InsufficientInventoryError):
        book(db_session, buyer, event, regular, quantity=11)

    assert db_session.query(Transaction).count() == 0
    assert reload(db_session, TicketType, regular.id).available_seats == 10
    assert reload(db_session, Event, event.id).available_seats == 10


def test_last_seat_goes_to_one_buyer(db_session, organizer, buyer, other_buyer):
    event = make_event(db_session, organizer, seats=1, ticket_types=(("Regular", 100000, 1),))
    regular = event.ticket_types[0]

    book(db_session, buyer, event, regular, quantity=1)
    with pytest.raises(InsufficientInventoryError):
        book(db_session, other_buyer, event, regular, quantity=1)

    assert db_session.query(Transaction).count() == 1
    assert reload(db_session, TicketType, regular.id).available_seats == 0


def test_stale_availability_read_cannot_oversell(db_session, organizer, buyer, other_buyer):
    event = make_event(db_session, organizer, seats=1, ticket_types=(("Regular", 100000, 1),))
    regular = event.ticket_types[0]
    assert regular.available_seats == 1

    # Another session takes the last seat after we looked
    other = TestingSessionLocal()
    try:
        TransactionService.create_transaction(other, auth_for(other_buyer), event.id, [(regular.id, 1)])
    finally:
        other.close()

    with pytest.raises(InsufficientInventoryError):
        TransactionService.create_transaction(db_session, auth_for(buyer), event.id, [(regular.id, 1)])
    assert reload(db_session, TicketType, regular.id).available_seats == 0



def test_simultaneous_bookings_never_oversell(db_session, organizer):
    event = make_event(db_session, organizer, seats=3, ticket_types=(("Regular", 100000, 3),))
    regular = event.ticket_types[0]
    buyers = [auth_for(make_user(db_session, f"Buyer {i}")) for i in range(8)]
    barrier = threading.Barrier(len(buyers))
    outcomes = []

    def attempt(auth):
        db = TestingSessionLocal()
        try:
            barrier.wait()
            TransactionService.create_transaction(db, auth, event.id, [(regular.id, 1)])
            outcomes.append("booked")
        except InsufficientInventoryError:
            outcomes.append("sold out")
        finally:
            db.close()

    threads = [threading.Thread(target=attempt, args=(auth,)) for auth in buyers]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(outcomes) == ["booked"] * 3 + ["sold out"] * 5
    assert db_session.query(Transaction).count() == 3
    assert reload(db_session, TicketType, regular.id).available_seats == 0
    assert reload(db_session, Event, event.id).available_seats == 0

def test_exhausted_voucher_books_nothing(db_session, buyer, other_buyer, event, regular):
    voucher = make_voucher(db_session, event, code="ONCE", max_uses=1)
    book(db_session, buyer, event, regular, quantity=1, voucher_code="ONCE")

    with pytest.raises(VoucherExhaustedError):
        book(db_session, other_buyer, event, regular, quantity=1, voucher_code="ONCE")

    assert reload(db_session, TicketType, regular.id).available_seats == 9
    assert reload(db_session, Voucher, voucher.id).used_count == 1


def test_organizer_cannot_book_own_event(db_session, organizer, event, regular):
    with pytest.raises(ForbiddenError):
        book(db_session, organizer, event, regular)


def test_cannot_book_draft_event(db_session, organizer, buyer):
    event = make_event(db_session, organizer, status=EventStatus.DRAFT)
    with pytest.raises(ValidationError):
        book(db_session, buyer, event, event.ticket_types[0])


def test_ticket_type_must_belong_to_event(db_session, organizer, buyer, event):
    other = make_event(db_session, organizer, title="Rock Night")
    with pytest.raises(ValidationError) as exc_info:
        book(db_session, buyer, event, other.ticket_types[0])
    assert exc_info.value.details == {"ticketTypeIds": [other.ticket_types[0].id]}


def test_upload_proof_moves_to_admin_confirmation(db_session, buyer, event, regular, upload_dir):
    transaction = book(db_session, buyer, event, regular)

    transaction = TransactionService.upload_payment_proof(db_session, auth_for(buyer), transaction.id, png_bytes())

    assert transaction.status == TransactionStatus.WAITING_ADMIN_CONFIRMATION
    image_url = transaction.payment_proof.image_url
    assert image_url.startswith(f"/uploads/payment-proofs/{transaction.id}/")
    assert os.path.exists(os.path.join(upload_dir, image_url.removeprefix("/uploads/")))


def test_second_proof_is_refused(db_session, buyer, event, regular):
    transaction = book(db_session, buyer, event, regular)
    TransactionService.upload_payment_proof(db_session, auth_for(buyer), transaction.id, png_bytes())

    with pytest.raises(ProofAlreadySubmittedError):
        TransactionService.upload_payment_proof(db_session, auth_for(buyer), transaction.id, png_bytes("JPEG"))


def test_upload_rejects_non_image(db_session, buyer, event, regular):
    transaction = book(db_session, buyer, event, regular)

    with pytest.raises(ValidationError):
        TransactionService.upload_payment_proof(db_session, auth_for(buyer), transaction.id, b"not an image")
    assert reload(db_session, Transaction, transaction.id).status == TransactionStatus.WAITING_PAYMENT


def test_upload_by_someone_else_is_forbidden(db_session, buyer, other_buyer, event, regular):
    transaction = book(db_session, buyer, event, regular)

    with pytest.raises(ForbiddenError):
        TransactionService.upload_payment_proof(db_session, auth_for(other_buyer), transaction.id, png_bytes())
    with pytest.raises(NotFoundError):
        TransactionService.upload_payment_proof(db_session, auth_for(buyer), 9999, png_bytes())


def test_accept_issues_one_ticket_per_seat(db_session, organizer, buyer, event, regular):
    transaction = book(db_session, buyer, event, regular)
    TransactionService.upload_payment_proof(db_session, auth_for(buyer), transaction.id, png_bytes())

    transaction = OrganizerReviewQueue.accept(db_session, auth_for(organizer), transaction.id)

    assert transaction.status == TransactionStatus.DONE
    assert transaction.organizer_decision_by == organizer.id
    assert len(transaction.attendees) == 2
    assert all(a.ticket_code.startswith("TCK-") for a in transaction.attendees)
    assert len({a.ticket_code for a in transaction.attendees}) == 2
    assert reload(db_session, TicketType, regular.id).available_seats == 8


def test_reject_returns_seats_and_discounts(db_session, organizer, buyer, event, regular):
    voucher = make_voucher(db_session, event, code="SUMMER10")
    transaction = book(db_session, buyer, event, regular, voucher_code="SUMMER10", points_used=5000)
    TransactionService.upload_payment_proof(db_session, auth_for(buyer), transaction.id, png_bytes())

    transaction = OrganizerReviewQueue.reject(db_session, auth_for(organizer), transaction.id)

    assert transaction.status == TransactionStatus.REJECTED
    assert transaction.reject_reason == DEFAULT_REJECT_REASON
    assert reload(db_session, TicketType, regular.id).available_seats == 10
    assert reload(db_session, Event, event.id).available_seats == 10
    assert reload(db_session, Voucher, voucher.id).used_count == 0
    assert reload(db_session, User, buyer.id).points_balance == 50000


def test_reject_keeps_given_reason(db_session, organizer, buyer, event, regular):
    transaction = book(db_session, buyer, event, regular)
    TransactionService.upload_payment_proof(db_session, auth_for(buyer), transaction.id, png_bytes())

    transaction = OrganizerReviewQueue.reject(db_session, auth_for(organizer), transaction.id, "Blurry receipt")
    assert transaction.reject_reason == "Blurry receipt"


def test_decided_transaction_is_final(db_session, organizer, buyer, event, regular):
    transaction = book(db_session, buyer, event, regular)
    TransactionService.upload_payment_proof(db_session, auth_for(buyer), transaction.id, png_bytes())
    OrganizerReviewQueue.accept(db_session, auth_for(organizer), transaction.id)

    with pytest.raises(InvalidTransactionStateError):
        OrganizerReviewQueue.accept(db_session, auth_for(organizer), transaction.id)
    with pytest.raises(InvalidTransactionStateError) as exc_info:
        OrganizerReviewQueue.reject(db_session, auth_for(organizer), transaction.id)

    assert exc_info.value.details == {"status": TransactionStatus.DONE}
    assert reload(db_session, TicketType, regular.id).available_seats == 8


def test_accept_before_proof_is_refused(db_session, organizer, buyer, event, regular):
    transaction = book(db_session, buyer, event, regular)

    with pytest.raises(InvalidTransactionStateError):
        OrganizerReviewQueue.accept(db_session, auth_for(organizer), transaction.id)


def test_cancel_returns_seats_once(db_session, buyer, event, regular):
    transaction = book(db_session, buyer, event, regular, points_used=1000)

    transaction = TransactionService.cancel(db_session, auth_for(buyer), transaction.id)
    assert transaction.status == TransactionStatus.CANCELED

    with pytest.raises(InvalidTransactionStateError):
        TransactionService.cancel(db_session, auth_for(buyer), transaction.id)

    assert reload(db_session, TicketType, regular.id).available_seats == 10
    assert reload(db_session, User, buyer.id).points_balance == 50000


def test_cannot_cancel_after_proof(db_session, buyer, event, regular):
    transaction = book(db_session, buyer, event, regular)
    TransactionService.upload_payment_proof(db_session, auth_for(buyer), transaction.id, png_bytes())

    with pytest.raises(InvalidTransactionStateError):
        TransactionService.cancel(db_session, auth_for(buyer), transaction.id)


def test_get_transaction_visibility(db_session, organizer, other_organizer, buyer, other_buyer, event, regular):
    transaction = book(db_session, buyer, event, regular)

    assert TransactionService.get_transaction(db_session, auth_for(buyer), transaction.id).id == transaction.id
    assert TransactionService.get_transaction(db_session, auth_for(organizer), transaction.id).id == transaction.id
    with pytest.raises(ForbiddenError):
        TransactionService.get_transaction(db_session, auth_for(other_buyer), transaction.id)
    with pytest.raises(ForbiddenError):
        TransactionService.get_transaction(db_session, auth_for(other_organizer), transaction.id)


def test_list_my_transactions_newest_first(db_session, organizer, buyer, other_buyer, event, regular):
    first = book(db_session, buyer, event, regular, quantity=1)
    second = book(db_session, buyer, event, regular, quantity=1)
    book(db_session, other_buyer, event, regular, quantity=1)

    mine = TransactionService.list_my_transactions(db_session, auth_for(buyer))
    assert [t.id for t in mine] == [second.id, first.id]


def test_ticket_qr_only_for_done_transactions(db_session, organizer, buyer, event, regular):
    transaction = book(db_session, buyer, event, regular, quantity=1)
    TransactionService.upload_payment_proof(db_session, auth_for(buyer), transaction.id, png_bytes())

    with pytest.raises(InvalidTransactionStateError):
        TransactionService.ticket_qr_png(db_session, auth_for(buyer), transaction.id, 1)

    transaction = OrganizerReviewQueue.accept(db_session, auth_for(organizer), transaction.id)
    attendee = transaction.attendees[0]

    png = TransactionService.ticket_qr_png(db_session, auth_for(buyer), transaction.id, attendee.id)
    assert png.startswith(b"\x89PNG")
    with pytest.raises(NotFoundError):
        TransactionService.ticket_qr_png(db_session, auth_for(buyer), transaction.id, attendee.id + 100)


def test_quote_matches_committed_price(db_session, buyer, event, regular):
    make_voucher(db_session, event, code="SUMMER10")
    make_coupon(db_session, code="WELCOME", value=25000)

    quote = TransactionService.quote(
        db_session, auth_for(buyer), event.id, [(regular.id, 2)],
        voucher_code="SUMMER10", coupon_code="WELCOME", points_used=10000,
    )
    transaction = book(
        db_session, buyer, event, regular,
        voucher_code="SUMMER10", coupon_code="WELCOME", points_used=10000,
    )

    assert quote.total_payable == transaction.total_payable == 145000
    assert quote.points_used == transaction.points_used


def test_missing_user_record(db_session, organizer, event, regular):
    ghost = make_user(db_session, "Ghost")
    auth = auth_for(ghost)
    db_session.delete(ghost)
    db_session.commit()

    with pytest.raises(NotFoundError):
        TransactionService.create_transaction(db_session, auth, event.id, [(regular.id, 1)])
