from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient

from chivas.bookings.router import get_notifier
from chivas.database import get_db
from chivas.main import app
from tests.conftest import RecordingNotifier, make_admin

API = "/api/v1"


@pytest.fixture
def sent():
    return RecordingNotifier()


@pytest.fixture
def client(session_factory, sent):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: sent
    yield TestClient(app)
    app.dependency_overrides.clear()


def register(client, correo="ana@example.com", **overrides):
    payload = {
        "correo": correo,
        "documento": "12345678",
        "nombre": "Ana",
        "apellido": "Gomez",
        "contacto": "3001234567",
        "fecha_nacimiento": "1990-05-20",
        "password": "Secreta123!",
    }
    payload.update(overrides)
    return client.post(f"{API}/auth/register", json=payload)


def login(client, correo, password="Secreta123!"):
    response = client.post(f"{API}/auth/login", json={"correo": correo, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def admin_headers(client, session_factory):
    session = session_factory()
    make_admin(session, correo="admin@example.com", password="Admin123!")
    session.close()
    return login(client, "admin@example.com", "Admin123!")


@pytest.fixture
def trip_id(client, admin_headers):
    destination = client.post(
        f"{API}/destinos", json={"nombre": "Guatapé", "descripcion": "Piedra del Peñol"}, headers=admin_headers
    )
    assert destination.status_code == 201, destination.text
    trip = client.post(f"{API}/viajes", json={
        "destino_id": destination.json()["id"],
        "origen": "Medellín",
        "fecha": (date.today() + timedelta(days=10)).isoformat(),
        "hora_salida": "06:30:00",
        "hora_regreso": "19:00:00",
        "precio": "20000",
        "incluye_comida": True,
        "capacidad": 10,
    }, headers=admin_headers)
    assert trip.status_code == 201, trip.text
    return trip.json()["id"]


@pytest.fixture
def user_headers(client):
    assert register(client).status_code == 201
    return login(client, "ana@example.com")


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_register_validation_and_duplicates(client):
    assert register(client).status_code == 201

    duplicate = register(client)
    assert duplicate.status_code == 409
    assert duplicate.json()["error"] == "ConstraintViolation"

    minor = register(client, correo="nino@example.com", fecha_nacimiento=date.today().isoformat())
    assert minor.status_code == 400
    assert "fecha_nacimiento" in minor.json()["detail"]


def test_login_failures(client):
    register(client)

    wrong = client.post(f"{API}/auth/login", json={"correo": "ana@example.com", "password": "Otra123!x"})
    assert wrong.status_code == 401
    assert client.get(f"{API}/auth/me").status_code == 401


def test_profile(client, user_headers):
    me = client.get(f"{API}/auth/me", headers=user_headers).json()
    assert me["nombre"] == "Ana Gomez"
    assert me["subtipo"] == "C"

    updated = client.put(f"{API}/auth/me", json={"contacto": "3109876543"}, headers=user_headers)
    assert updated.json()["contacto"] == "3109876543"


def test_booking_flow(client, admin_headers, user_headers, trip_id, sent):
    created = client.post(f"{API}/reservas", json={
        "id_viaje": trip_id,
        "invitados": [
            {"correo": "invitado1@example.com", "nombre": "Pedro Rios", "documento": "11111111"},
            {"correo": "invitado2@example.com", "nombre": "Lina Rios", "documento": "22222222"},
        ],
    }, headers=user_headers)
    assert created.status_code == 201, created.text
    body = created.json()
    reservation_id = body["id"]
    assert body["n_boletas"] == 3
    assert body["estado"] == "unpaid"
    assert len(body["boletos"]) == 3
    assert client.get(f"{API}/viajes/{trip_id}").json()["cupo"] == 7

    edited = client.put(f"{API}/reservas/{reservation_id}", json={"n_boletas": 5}, headers=user_headers)
    assert edited.status_code == 200
    assert float(edited.json()["total"]) == 100000
    assert client.get(f"{API}/viajes/{trip_id}").json()["cupo"] == 5

    paid = client.post(
        f"{API}/reservas/{reservation_id}/pay", json={"metodo_pago": "tarjeta"}, headers=admin_headers
    )
    assert paid.status_code == 200
    assert paid.json()["estado"] == "paid"
    assert sent.sent[0][0] == "ana@example.com"

    cancel_paid = client.post(f"{API}/reservas/{reservation_id}/cancel", headers=user_headers)
    assert cancel_paid.status_code == 409
    assert cancel_paid.json()["error"] == "AlreadyPaid"

    refunded = client.post(f"{API}/reservas/{reservation_id}/refund", headers=admin_headers)
    assert refunded.status_code == 200
    assert refunded.json()["tipo_reembolso"] == "total"
    assert float(refunded.json()["reembolso"]) == 100000
    assert refunded.json()["boletos_desactivados"] == 3

    cancelled = client.post(f"{API}/reservas/{reservation_id}/cancel", headers=user_headers)
    assert cancelled.status_code == 200
    assert cancelled.json()["estado"] == "cancelled"
    assert client.get(f"{API}/viajes/{trip_id}").json()["cupo"] == 10


def test_booking_errors(client, admin_headers, user_headers, trip_id):
    assert client.post(f"{API}/reservas", json={"id_viaje": 999}, headers=user_headers).status_code == 404

    first = client.post(f"{API}/reservas", json={"id_viaje": trip_id}, headers=user_headers)
    assert first.status_code == 201
    duplicate = client.post(f"{API}/reservas", json={"id_viaje": trip_id}, headers=user_headers)
    assert duplicate.status_code == 409
    assert duplicate.json()["error"] == "DuplicateReservation"

    too_many = client.put(f"{API}/reservas/{first.json()['id']}", json={"n_boletas": 11}, headers=user_headers)
    assert too_many.status_code == 409
    assert too_many.json()["error"] == "CapacityExceeded"

    not_paid = client.post(f"{API}/reservas/{first.json()['id']}/refund", headers=admin_headers)
    assert not_paid.status_code == 409
    assert not_paid.json()["error"] == "NotPaid"


def test_reservations_are_private(client, admin_headers, user_headers, trip_id):
    reservation = client.post(f"{API}/reservas", json={"id_viaje": trip_id}, headers=user_headers).json()
    register(client, correo="luis@example.com")
    other = login(client, "luis@example.com")

    assert client.get(f"{API}/reservas/{reservation['id']}", headers=other).status_code == 403
    assert client.post(f"{API}/reservas/{reservation['id']}/pay", json={}, headers=other).status_code == 403
    assert client.get(f"{API}/reservas/{reservation['id']}", headers=admin_headers).status_code == 200

    trip_reservations = client.get(f"{API}/viajes/{trip_id}/reservas", headers=admin_headers).json()
    assert [r["id"] for r in trip_reservations] == [reservation["id"]]


def test_ticket_qr(client, user_headers, trip_id):
    reservation = client.post(f"{API}/reservas", json={"id_viaje": trip_id}, headers=user_headers).json()
    code = reservation["boletos"][0]["codigo"]

    qr = client.get(f"{API}/boletos/{code}/qr", headers=user_headers)
    assert qr.status_code == 200
    assert qr.headers["content-type"] == "image/png"
    assert qr.content.startswith(b"\x89PNG")

    mine = client.get(f"{API}/boletos/mine", headers=user_headers).json()
    assert [t["codigo"] for t in mine] == [code]
    assert client.get(f"{API}/boletos/CHV-NOEXISTE/qr", headers=user_headers).status_code == 404


def test_trip_admin_endpoints(client, admin_headers, user_headers, trip_id):
    forbidden = client.post(f"{API}/viajes/{trip_id}/cancel", headers=user_headers)
    assert forbidden.status_code == 403

    listing = client.get(f"{API}/viajes").json()
    assert listing["total"] == 1
    assert listing["trips"][0]["destino_nombre"] == "Guatapé"

    assert client.post(f"{API}/viajes/{trip_id}/cancel", headers=admin_headers).status_code == 200
    assert client.get(f"{API}/viajes").json()["total"] == 0
    closed = client.post(f"{API}/reservas", json={"id_viaje": trip_id}, headers=user_headers)
    assert closed.status_code == 409
    assert closed.json()["error"] == "NotActive"


def test_reviews(client, admin_headers, user_headers, trip_id):
    destination_id = client.get(f"{API}/destinos").json()[0]["id"]

    created = client.post(
        f"{API}/opiniones", json={"id_destino": destination_id, "calificacion": 5, "comentario": "Hermoso"},
        headers=user_headers
    )
    assert created.status_code == 201
    review_id = created.json()["id"]

    out_of_range = client.post(
        f"{API}/opiniones", json={"id_destino": destination_id, "calificacion": 6}, headers=user_headers
    )
    assert out_of_range.status_code == 422

    edited = client.put(f"{API}/opiniones/{review_id}", json={"calificacion": 4}, headers=user_headers)
    assert edited.json()["calificacion"] == 4
    assert client.put(
        f"{API}/opiniones/{review_id}", json={"calificacion": 1}, headers=admin_headers
    ).status_code == 403

    reviews = client.get(f"{API}/destinos/{destination_id}/opiniones").json()
    assert [r["id"] for r in reviews] == [review_id]

    assert client.delete(f"{API}/opiniones/{review_id}", headers=admin_headers).status_code == 204
    assert client.get(f"{API}/destinos/{destination_id}/opiniones").json() == []


def test_partial_updates_reject_null_for_required_fields(client, admin_headers, user_headers, trip_id):
    trip_before = client.get(f"{API}/viajes/{trip_id}").json()
    null_date = client.put(f"{API}/viajes/{trip_id}", json={"fecha": None}, headers=admin_headers)
    assert null_date.status_code == 400
    assert null_date.json()["error"] == "ValidationFailed"
    assert client.get(f"{API}/viajes/{trip_id}").json() == trip_before

    null_name = client.put(f"{API}/auth/me", json={"nombre": None}, headers=user_headers)
    assert null_name.status_code == 400
    assert client.get(f"{API}/auth/me", headers=user_headers).json()["nombre"] == "Ana Gomez"

    destination_id = client.get(f"{API}/destinos").json()[0]["id"]
    review = client.post(
        f"{API}/opiniones", json={"id_destino": destination_id, "calificacion": 5}, headers=user_headers
    ).json()
    null_rating = client.put(f"{API}/opiniones/{review['id']}", json={"calificacion": None}, headers=user_headers)
    assert null_rating.status_code == 400
    reviews = client.get(f"{API}/destinos/{destination_id}/opiniones").json()
    assert reviews[0]["calificacion"] == 5


def test_contact_phone_can_be_cleared(client, user_headers):
    cleared = client.put(f"{API}/auth/me", json={"contacto": None}, headers=user_headers)

    assert cleared.status_code == 200
    assert cleared.json()["contacto"] is None

    bad_phone = client.put(f"{API}/auth/me", json={"contacto": "12"}, headers=user_headers)
    assert bad_phone.status_code == 400
