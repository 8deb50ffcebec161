import asyncio
from datetime import date, datetime
from decimal import Decimal

import pytest

from app.core.exceptions import ServiceNotFoundError, ShopClosedError, SlotUnavailableError
from app.core.locks import InMemorySlotLock
from app.models.service import Service
from app.schemas.appointment import AppointmentCreate
from app.schemas.scheduling import SlotStatus, ViewerIdentity
from app.schemas.shop_calendar import DateExceptionUpdate
from app.services.booking import BookingService, load_active_appointments
from app.services.shop_settings import ShopSettingsService

DAY = date(2025, 3, 10)
NOW = datetime(2025, 3, 10, 8, 0)


def booking(time="09:00", service_id="svc-haircut", **kwargs) -> AppointmentCreate:
    data = {
        "client_id": "client-1",
        "client_name": "Ana",
        "client_phone": "11999990000",
        "service_id": service_id,
        "date": DAY,
        "time": time,
    }
    data.update(kwargs)
    return AppointmentCreate(**data)


@pytest.fixture
def booking_service(db):
    return BookingService(db, InMemorySlotLock())


class TestBook:
    """Test the booking critical section."""

    async def test_clean_online_booking_is_pending(self, booking_service, services):
        appointment = await booking_service.book(booking("10:00"), NOW)

        assert appointment.status == "pending"
        assert appointment.booking_source == "online"
        assert appointment.time == "10:00"
        assert appointment.price == Decimal("35.00")
        assert appointment.queue_sequence == 0
        assert appointment.version == 1

    async def test_booking_tomorrow_morning(self, booking_service, services):
        tomorrow = date(2025, 3, 11)

        day_slots = await booking_service.get_day_slots(tomorrow, "svc-beard", None, NOW)
        assert day_slots.slots[0].label == "09:00"
        assert day_slots.slots[0].status == SlotStatus.AVAILABLE

        appointment = await booking_service.book(
            booking("09:00", service_id="svc-beard", date=tomorrow), NOW
        )
        assert appointment.status == "pending"

    async def test_staff_booking_is_confirmed(self, booking_service, services):
        appointment = await booking_service.book(
            booking("10:00", client_id=None, client_phone=None, booking_source="staff"),
            NOW,
        )

        assert appointment.status == "confirmed"
        assert appointment.booking_source == "staff"

    async def test_overlap_with_longer_service_is_rejected(
        self, booking_service, services, make_appointment
    ):
        await make_appointment("09:00", service_id="svc-combo", client_id="other")

        with pytest.raises(SlotUnavailableError) as exc_info:
            await booking_service.book(booking("09:30"), NOW)

        assert exc_info.value.retryable
        assert exc_info.value.context["status"] == "occupied"

    async def test_same_time_twice_is_rejected(self, booking_service, services):
        await booking_service.book(booking("11:00"), NOW)

        with pytest.raises(SlotUnavailableError):
            await booking_service.book(
                booking("11:00", client_id="client-2", client_phone="11888880000"), NOW
            )

    async def test_requested_duration_must_fit_before_next_booking(
        self, booking_service, services, make_appointment
    ):
        await make_appointment("10:00", client_id="other")

        with pytest.raises(SlotUnavailableError):
            await booking_service.book(booking("09:30", service_id="svc-combo"), NOW)

        appointment = await booking_service.book(booking("09:00", service_id="svc-combo"), NOW)
        assert appointment.time == "09:00"

    async def test_cancelled_booking_frees_slot(
        self, booking_service, services, make_appointment
    ):
        await make_appointment("09:00", status="cancelled", client_id="other")

        appointment = await booking_service.book(booking("09:00"), NOW)

        assert appointment.status == "pending"

    async def test_past_slot_is_rejected(self, booking_service, services):
        with pytest.raises(SlotUnavailableError) as exc_info:
            await booking_service.book(booking("09:00"), datetime(2025, 3, 10, 9, 10))

        assert exc_info.value.context["status"] == "past"

    async def test_earlier_date_is_rejected(self, booking_service, services):
        next_day_noon = datetime(2025, 3, 11, 12, 0)

        with pytest.raises(SlotUnavailableError) as exc_info:
            await booking_service.book(booking("09:00"), next_day_noon)

        assert exc_info.value.context["status"] == "past"
        assert await booking_service.list_appointments(day=DAY) == []

    async def test_closed_day_is_rejected(self, booking_service, services):
        with pytest.raises(ShopClosedError):
            await booking_service.book(booking("10:00", date=date(2025, 3, 16)), NOW)

    async def test_closed_exception_is_rejected(self, db, booking_service, services):
        await ShopSettingsService(db).set_exception(DAY, DateExceptionUpdate(closed=True))

        with pytest.raises(ShopClosedError):
            await booking_service.book(booking("10:00"), NOW)

    async def test_time_off_grid_is_rejected(self, booking_service, services):
        with pytest.raises(ShopClosedError):
            await booking_service.book(booking("10:10"), NOW)

        with pytest.raises(ShopClosedError):
            await booking_service.book(booking("19:00"), NOW)

    async def test_lunch_is_rejected(self, db, booking_service, services):
        await ShopSettingsService(db).set_exception(
            DAY, DateExceptionUpdate(lunch_start_hour=12, lunch_end_hour=13)
        )

        with pytest.raises(ShopClosedError):
            await booking_service.book(booking("12:30"), NOW)

    async def test_unknown_service(self, booking_service, services):
        with pytest.raises(ServiceNotFoundError):
            await booking_service.book(booking("10:00", service_id="nope"), NOW)

    async def test_inactive_service(self, db, booking_service, services):
        services["beard"].is_active = False
        await db.commit()

        with pytest.raises(ServiceNotFoundError):
            await booking_service.book(booking("10:00", service_id="svc-beard"), NOW)


class TestGetDaySlots:
    async def test_marks_own_and_occupied(self, booking_service, services, make_appointment):
        await make_appointment("09:00", client_id="client-1")
        await make_appointment("10:00", service_id="svc-beard", client_id="other")

        day_slots = await booking_service.get_day_slots(
            DAY, "svc-haircut", ViewerIdentity(client_id="client-1"), NOW
        )
        by_label = {slot.label: slot.status for slot in day_slots.slots}

        assert day_slots.duration_minutes == 30
        assert not day_slots.closed
        assert len(day_slots.slots) == 20
        assert by_label["09:00"] == SlotStatus.OWN
        assert by_label["09:30"] == SlotStatus.AVAILABLE
        assert by_label["10:00"] == SlotStatus.OCCUPIED
        assert by_label["10:30"] == SlotStatus.OCCUPIED
        assert by_label["11:00"] == SlotStatus.AVAILABLE

    async def test_hides_past_slots(self, booking_service, services):
        day_slots = await booking_service.get_day_slots(
            DAY, "svc-haircut", None, datetime(2025, 3, 10, 14, 5)
        )

        assert day_slots.slots[0].label == "14:30"

    async def test_earlier_date_offers_nothing(
        self, booking_service, services, make_appointment
    ):
        await make_appointment("10:00", client_id="other")

        day_slots = await booking_service.get_day_slots(
            DAY, "svc-haircut", None, datetime(2025, 3, 11, 8, 0)
        )

        assert not day_slots.closed
        assert all(not slot.selectable for slot in day_slots.slots)
        assert [slot.label for slot in day_slots.slots] == ["10:00"]

    async def test_closed_day(self, booking_service, services):
        day_slots = await booking_service.get_day_slots(
            date(2025, 3, 16), "svc-haircut", None, NOW
        )

        assert day_slots.closed
        assert day_slots.slots == []


class TestListAppointments:
    async def test_filters(self, booking_service, services, make_appointment):
        await make_appointment("10:00", client_id="a")
        await make_appointment("09:00", client_id="b", status="pending")
        await make_appointment("09:00", day=date(2025, 3, 11), client_id="a")

        todays = await booking_service.list_appointments(day=DAY)
        mine = await booking_service.list_appointments(client_id="a")

        assert [a.time for a in todays] == ["09:00", "10:00"]
        assert len(mine) == 2


class TestConcurrentBooking:
    """Two sessions racing for the same chair time on one date."""

    @pytest.fixture
    async def seeded(self, session_factory):
        async with session_factory() as session:
            session.add_all(
                [
                    Service(
                        id="svc-haircut",
                        name="Haircut",
                        duration_minutes=30,
                        price=Decimal("35.00"),
                    ),
                    Service(
                        id="svc-combo", name="Combo", duration_minutes=60, price=Decimal("65.00")
                    ),
                ]
            )
            await session.commit()
            await ShopSettingsService(session).get_settings()
        return session_factory

    @pytest.mark.parametrize(
        "first, second",
        [
            (("09:00", "svc-haircut"), ("09:00", "svc-haircut")),
            (("09:00", "svc-combo"), ("09:30", "svc-haircut")),
        ],
    )
    async def test_only_one_booking_wins(self, seeded, first, second):
        lock = InMemorySlotLock()

        async def attempt(request: AppointmentCreate) -> str:
            async with seeded() as session:
                try:
                    await BookingService(session, lock).book(request, NOW)
                except SlotUnavailableError:
                    return "taken"
                return "booked"

        results = await asyncio.gather(
            attempt(booking(first[0], service_id=first[1])),
            attempt(
                booking(
                    second[0],
                    service_id=second[1],
                    client_id="client-2",
                    client_phone="11888880000",
                )
            ),
        )

        assert sorted(results) == ["booked", "taken"]
        async with seeded() as session:
            assert len(await load_active_appointments(session, DAY)) == 1
