import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from skedify.db.base import Base
from skedify.db.models import Booking, BookingStatus, Calendar, CalendarEvent, Provider, SessionType


@pytest.fixture(autouse=True)
def _scheduling_env(monkeypatch):
    monkeypatch.setenv("APP_TIMEZONE", "UTC")
    monkeypatch.setenv("AUTH_TOKEN_SECRET", "test-secret")


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_provider(db):
    def _make(username="ada", email=None):
        provider = Provider(
            username=username,
            email=email or f"{username}@example.com",
            password_hash="not-a-real-hash",
        )
        db.add(provider)
        db.commit()
        return provider

    return _make


@pytest.fixture
def make_session_type(db):
    def _make(provider, duration_minutes=30, name="Consultation"):
        session_type = SessionType(
            provider_id=provider.id,
            name=name,
            duration_minutes=duration_minutes,
        )
        db.add(session_type)
        db.commit()
        return session_type

    return _make


@pytest.fixture
def make_calendar(db):
    def _make(provider, name="Work", created_at=None):
        calendar = Calendar(provider_id=provider.id, name=name)
        if created_at is not None:
            calendar.created_at = created_at
        db.add(calendar)
        db.commit()
        return calendar

    return _make


@pytest.fixture
def make_booking(db):
    def _make(session_type, start_time, status=BookingStatus.PENDING.value, email="guest@example.com"):
        booking = Booking(
            session_type_id=session_type.id,
            first_name="Grace",
            last_name="Hopper",
            email=email,
            start_time=start_time,
            status=status,
        )
        db.add(booking)
        db.commit()
        return booking

    return _make


@pytest.fixture
def make_event(db):
    def _make(calendar, start_time, end_time, title="Busy"):
        event = CalendarEvent(
            calendar_id=calendar.id,
            title=title,
            start_time=start_time,
            end_time=end_time,
        )
        db.add(event)
        db.commit()
        return event

    return _make

