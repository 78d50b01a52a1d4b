from datetime import date

import pytest

from chivas import validation
from chivas.exceptions import ValidationFailed


@pytest.mark.parametrize("value", ["ana@example.com", "luis.perez@empresa.com.co"])
def test_valid_emails(value):
    assert validation.correo(value) is None


@pytest.mark.parametrize("value", ["", "ana", "ana@", "@example.com", "ana example@x.com"])
def test_invalid_emails(value):
    assert validation.correo(value) is not None


def test_documento():
    assert validation.documento("1234") is None
    assert "4 caracteres" in validation.documento("123")
    assert "dígitos" in validation.documento("12AB34")


def test_nombre_completo():
    assert validation.nombre_completo("María Ñúñez") is None
    assert validation.nombre_completo("A") is not None
    assert validation.nombre_completo("Ana 2") is not None


def test_telefono():
    assert validation.telefono("3001234567") is None
    assert validation.telefono("12345") is not None
    assert validation.telefono("300-123-4567") is not None


def test_mayor_de_edad_boundary():
    today = date(2026, 6, 15)

    assert validation.mayor_de_edad("2008-06-15", today) is None
    assert validation.mayor_de_edad("2008-06-16", today) == "El usuario debe ser mayor de edad"
    assert validation.mayor_de_edad(date(1990, 1, 1), today) is None


def test_mayor_de_edad_rejects_bad_dates():
    assert "formato" in validation.mayor_de_edad("15/06/2000")
    assert validation.mayor_de_edad("2000-02-30") == "La fecha de nacimiento no es válida"


def test_password_rules():
    assert validation.password("Secreta123!") is None
    reasons = validation.password("corta")
    assert "8 caracteres" in reasons
    assert "mayúscula" in reasons
    assert "número" in reasons
    assert "especial" in reasons


def test_require_collects_every_rejection():
    with pytest.raises(ValidationFailed) as exc:
        validation.require({
            "correo": (validation.correo, "no-es-correo"),
            "documento": (validation.documento, "1"),
            "nombre": (validation.nombre_completo, "Ana Gomez"),
        })

    detail = exc.value.detail
    assert detail.startswith("correo: ")
    assert "; documento: " in detail
    assert "nombre" not in detail


def test_require_passes_clean_input():
    validation.require({"correo": (validation.correo, "ana@example.com")})


def test_reject_nulls_only_flags_listed_fields_sent_as_null():
    validation.reject_nulls({"contacto": None, "nombre": "Ana"}, ("nombre", "password"))

    with pytest.raises(ValidationFailed) as exc:
        validation.reject_nulls({"nombre": None, "password": None}, ("nombre", "password"))
    assert exc.value.detail.startswith("nombre: ")
    assert "; password: " in exc.value.detail
