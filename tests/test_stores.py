"""Tests for the in-memory and SQLAlchemy booking stores."""

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from agenda.models.booking import Booking, BookingStatus, Staff
from agenda.stores.base import BookingStore
from agenda.stores.memory import InMemoryBookingStore
from agenda.stores.sql import SqlBookingStore

TZ = ZoneInfo("America/Sao_Paulo")


def at(hour: int, minute: int = 0) -> datetime:
    return datetime(2026, 3, 16, hour, minute, tzinfo=TZ)


def seed(store):
    store.add_staff(Staff(id=1, name="Ana", google_calendar_email="ana@office.example"))
    store.add_staff(Staff(id=2, name="Bruno"))
    store.add_booking(Booking(id=1, staff_id=1, start=at(10), status=BookingStatus.CONFIRMED))
    store.add_booking(Booking(id=2, staff_id=1, start=at(13), duration_minutes=90))
    store.add_booking(Booking(id=3, staff_id=1, start=at(15), status=BookingStatus.CANCELLED))
    store.add_booking(Booking(id=4, staff_id=2, start=at(10)))
    return store


@pytest.fixture
def memory_store():
    return seed(InMemoryBookingStore())


@pytest.fixture
def sql_store(tmp_path):
    store = SqlBookingStore(f"sqlite:///{tmp_path / 'agenda.db'}")
    store.create_all()
    seed(store)
    yield store
    store.dispose()


@pytest.fixture(params=["memory", "sql"])
def any_store(request):
    return request.getfixturevalue(f"{request.param}_store")


class TestBookingStoreABC:
    def test_cannot_instantiate(self):
        with pytest.raises(TypeError):
            BookingStore()


class TestFindConflicts:
    @pytest.mark.asyncio
    async def test_get_staff(self, any_store):
        staff = await any_store.get_staff(1)
        assert staff.name == "Ana"
        assert staff.google_calendar_email == "ana@office.example"

    @pytest.mark.asyncio
    async def test_get_missing_staff(self, any_store):
        assert await any_store.get_staff(42) is None

    @pytest.mark.asyncio
    async def test_overlapping_booking(self, any_store):
        conflicts = await any_store.find_conflicts(1, at(9, 30), at(10, 30))
        assert [b.id for b in conflicts] == [1]

    @pytest.mark.asyncio
    async def test_touching_intervals_do_not_conflict(self, any_store):
        assert await any_store.find_conflicts(1, at(9), at(10)) == []
        assert await any_store.find_conflicts(1, at(11), at(12)) == []

    @pytest.mark.asyncio
    async def test_booking_duration_is_respected(self, any_store):
        conflicts = await any_store.find_conflicts(1, at(14), at(14, 30))
        assert [b.id for b in conflicts] == [2]
        assert await any_store.find_conflicts(1, at(14, 30), at(15)) == []

    @pytest.mark.asyncio
    async def test_multi_day_booking_conflicts(self, any_store):
        any_store.add_booking(
            Booking(
                id=5,
                staff_id=2,
                start=datetime(2026, 3, 15, 7, 0, tzinfo=TZ),
                duration_minutes=48 * 60,
            )
        )
        conflicts = await any_store.find_conflicts(2, at(16), at(17))
        assert [b.id for b in conflicts] == [5]

    @pytest.mark.asyncio
    async def test_cancelled_excluded(self, any_store):
        assert await any_store.find_conflicts(1, at(15), at(16)) == []

    @pytest.mark.asyncio
    async def test_scoped_to_staff(self, any_store):
        conflicts = await any_store.find_conflicts(2, at(8), at(17))
        assert [b.id for b in conflicts] == [4]


class TestSqlBookingStore:
    @pytest.mark.asyncio
    async def test_instants_round_trip_tz_aware(self, sql_store):
        [booking] = await sql_store.find_conflicts(1, at(10), at(11))
        assert booking.start.tzinfo is not None
        assert booking.start == at(10)
        assert booking.start.astimezone(timezone.utc).hour == 13
        assert booking.status is BookingStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_accepts_utc_bounds(self, sql_store):
        start = datetime(2026, 3, 16, 13, 0, tzinfo=timezone.utc)
        conflicts = await sql_store.find_conflicts(1, start, start + timedelta(minutes=30))
        assert [b.id for b in conflicts] == [1]

    @pytest.mark.asyncio
    async def test_query_failure_propagates(self, tmp_path):
        store = SqlBookingStore(f"sqlite:///{tmp_path / 'empty.db'}")
        with pytest.raises(Exception):
            await store.find_conflicts(1, at(8), at(9))
        store.dispose()
