from datetime import date, time, timedelta
from decimal import Decimal

import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from chivas.auth.utils import get_password_hash
from chivas.database import Base, build_engine
from chivas.models import Destino, Reserva, Usuario, Viaje, SUBTIPO_ADMIN, SUBTIPO_CLIENTE
from chivas.notifications import Notifier


class RecordingNotifier(Notifier):
    def __init__(self):
        self.sent = []

    def send(self, to_address, subject, body):
        self.sent.append((to_address, subject, body))


class FailingNotifier(Notifier):
    def send(self, to_address, subject, body):
        raise ConnectionError("smtp relay unreachable")


@pytest.fixture
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def notifier():
    return RecordingNotifier()


def make_user(db, correo="ana@example.com", subtipo=SUBTIPO_CLIENTE, password=None, nombre="Ana Gomez"):
    user = Usuario(
        correo=correo,
        documento="12345678",
        nombre=nombre,
        contacto="3001234567",
        subtipo=subtipo,
        password_hash=get_password_hash(password) if password else None
    )
    db.add(user)
    db.commit()
    return user


def make_admin(db, correo="admin@example.com", password="Admin123!"):
    return make_user(db, correo=correo, subtipo=SUBTIPO_ADMIN, password=password, nombre="Admin Chivas")


def make_trip(db, capacidad=10, precio="20000", days_ahead=10, nombre_destino="Guatapé"):
    destino = db.query(Destino).filter(Destino.nombre == nombre_destino).first()
    if destino is None:
        destino = Destino(nombre=nombre_destino)
        db.add(destino)
        db.flush()
    trip = Viaje(
        destino_id=destino.id,
        origen="Medellín",
        fecha=date.today() + timedelta(days=days_ahead),
        hora_salida=time(6, 30),
        hora_regreso=time(19, 0),
        capacidad=capacidad,
        cupo=capacidad,
        precio=Decimal(precio),
        incluye_comida=True,
        cancelado=False
    )
    db.add(trip)
    db.commit()
    return trip


def assert_ledger_consistent(db, trip_id):
    """cupo + seats of active reservations == configured capacity"""
    db.expire_all()
    trip = db.get(Viaje, trip_id)
    held = sum(
        r.n_boletas for r in db.query(Reserva).filter(Reserva.id_viaje == trip_id, Reserva.vigente.is_(True))
    )
    assert 0 <= trip.cupo <= trip.capacidad
    assert trip.cupo + held == trip.capacidad
