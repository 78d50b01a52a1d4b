import threading

import pytest
from sqlalchemy.orm import sessionmaker

from chivas.bookings.booking_service import BookingService
from chivas.bookings.schemas import GuestInfo
from chivas.database import Base, build_engine
from chivas.exceptions import CapacityExceeded
from chivas.models import Reserva, Viaje
from tests.conftest import assert_ledger_consistent, make_trip, make_user


@pytest.fixture
def file_sessions(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path}/race.db", connect_args={"timeout": 30})
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


def test_stale_read_cannot_oversell(file_sessions):
    setup = file_sessions()
    trip = make_trip(setup, capacidad=1)
    ana = make_user(setup, correo="ana@example.com")
    luis = make_user(setup, correo="luis@example.com")
    trip_id, ana_id, luis_id = trip.id, ana.id, luis.id
    setup.close()

    slow = file_sessions()
    fast = file_sessions()
    try:
        assert slow.get(Viaje, trip_id).cupo == 1

        BookingService(fast).create_reservation(luis_id, trip_id)

        with pytest.raises(CapacityExceeded):
            BookingService(slow).create_reservation(ana_id, trip_id)
    finally:
        slow.close()
        fast.close()

    check = file_sessions()
    assert check.get(Viaje, trip_id).cupo == 0
    assert check.query(Reserva).count() == 1
    assert_ledger_consistent(check, trip_id)
    check.close()


def test_parallel_bookings_for_the_last_seats(file_sessions):
    setup = file_sessions()
    trip = make_trip(setup, capacidad=3)
    users = [make_user(setup, correo=f"viajero{i}@example.com") for i in range(2)]
    trip_id = trip.id
    user_ids = [u.id for u in users]
    setup.close()

    barrier = threading.Barrier(2)
    outcomes = []
    lock = threading.Lock()

    def book(index):
        session = file_sessions()
        guests = [
            GuestInfo(correo=f"acompanante{index}{n}@example.com", nombre="Acompanante", documento=f"800{index}{n}")
            for n in range(2)
        ]
        try:
            barrier.wait()
            BookingService(session).create_reservation(user_ids[index], trip_id, guests)
            result = "ok"
        except CapacityExceeded:
            result = "full"
        finally:
            session.close()
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=book, args=(i,)) for i in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(outcomes) == ["full", "ok"]
    check = file_sessions()
    assert check.get(Viaje, trip_id).cupo == 0
    assert_ledger_consistent(check, trip_id)
    check.close()
