"""
Shared fixtures: test database, seeded users and events, HTTP client
"""

import io
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.config import settings
from app.core.db import Base, get_db
from app.models import Coupon, Event, EventStatus, TicketType, User, Voucher
from app.utils.clock import utcnow
from app.utils.security import AuthContext, Role, issue_token, rate_limiter

# Test database setup
SQLALCHEMY_DATABASE_URL = "sqlite:///./test_ticketing.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

EVENT_START = datetime(2099, 6, 1, 19, 0)
EVENT_END = datetime(2099, 6, 1, 23, 0)


@pytest.fixture
def db_session():
    """Create test database session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path))
    return tmp_path


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    rate_limiter.clear()
    yield
    rate_limiter.clear()


def make_user(db, name, role=Role.CUSTOMER, points=0):
    user = User(
        name=name,
        email=f"{name.lower().replace(' ', '.')}@example.com",
        role=role,
        points_balance=points,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_for(user) -> AuthContext:
    return AuthContext(user_id=user.id, role=user.role)


def headers_for(user) -> dict:
    return {"Authorization": f"Bearer {issue_token(user.id, user.role)}"}


def make_event(db, organizer, title="Jazz Night", seats=10, ticket_types=(("Regular", 100000, 10),),
               status=EventStatus.PUBLISHED):
    event = Event(
        organizer_id=organizer.id,
        title=title,
        location="Jakarta",
        start_at=EVENT_START,
        end_at=EVENT_END,
        base_price=100000,
        total_seats=seats,
        available_seats=seats,
        status=status,
    )
    for name, price, tt_seats in ticket_types:
        event.ticket_types.append(
            TicketType(name=name, price=price, total_seats=tt_seats, available_seats=tt_seats)
        )
    db.add(event)
    db.commit()
    db.refresh(event)
    return event


def make_voucher(db, event, code="SUMMER10", discount_type="PERCENT", value=10, max_uses=None,
                 starts_at=None, ends_at=None):
    now = utcnow()
    voucher = Voucher(
        event_id=event.id,
        code=code,
        discount_type=discount_type,
        discount_value=value,
        starts_at=starts_at or now - timedelta(days=1),
        ends_at=ends_at or now + timedelta(days=30),
        max_uses=max_uses,
    )
    db.add(voucher)
    db.commit()
    db.refresh(voucher)
    return voucher


def make_coupon(db, code="WELCOME", discount_type="AMOUNT", value=25000, user=None, max_uses=None):
    now = utcnow()
    coupon = Coupon(
        code=code,
        user_id=user.id if user else None,
        discount_type=discount_type,
        discount_value=value,
        starts_at=now - timedelta(days=1),
        ends_at=now + timedelta(days=30),
        max_uses=max_uses,
    )
    db.add(coupon)
    db.commit()
    db.refresh(coupon)
    return coupon


def png_bytes(fmt="PNG") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (16, 16), color=(200, 30, 30)).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def organizer(db_session):
    return make_user(db_session, "Olivia Organizer", role=Role.ORGANIZER)


@pytest.fixture
def other_organizer(db_session):
    return make_user(db_session, "Oscar Organizer", role=Role.ORGANIZER)


@pytest.fixture
def buyer(db_session):
    return make_user(db_session, "Budi Buyer", points=50000)


@pytest.fixture
def other_buyer(db_session):
    return make_user(db_session, "Citra Customer")


@pytest.fixture
def event(db_session, organizer):
    return make_event(db_session, organizer)


@pytest.fixture
def regular(event):
    return event.ticket_types[0]


@pytest.fixture
def client(db_session):
    """HTTP client bound to the test session"""
    from main import app

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
