"""Field validators shared by registration and guest provisioning.

Each validator takes a raw value and returns ``None`` when it is acceptable or
a human-readable rejection reason otherwise. ``require`` collects the reasons
and raises ``ValidationFailed``.
"""
import re
from datetime import date, datetime
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

from email_validator import validate_email, EmailNotValidError

from chivas.exceptions import ValidationFailed

EDAD_MINIMA = 18

_NOMBRE_RE = re.compile(r"^[A-Za-zÁÉÍÓÚÑáéíóúñ\s]+$")
_DIGITOS_RE = re.compile(r"^\d+$")
_FECHA_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

def correo(value: Any) -> Optional[str]:
    try:
        validate_email(str(value), check_deliverability=False)
    except EmailNotValidError:
        return "El correo electrónico no es válido"
    return None

def documento(value: Any) -> Optional[str]:
    value = str(value)
    if len(value) < 4:
        return "El documento debe tener al menos 4 caracteres"
    if not _DIGITOS_RE.match(value):
        return "El documento debe contener solo dígitos"
    return None

def nombre_completo(value: Any) -> Optional[str]:
    value = str(value)
    if len(value) < 2:
        return "El nombre completo debe tener al menos 2 caracteres"
    if not _NOMBRE_RE.match(value):
        return "El nombre solo debe contener letras y espacios"
    return None

def telefono(value: Any) -> Optional[str]:
    value = str(value)
    if len(value) < 7:
        return "El número de teléfono debe tener al menos 7 caracteres"
    if not _DIGITOS_RE.match(value):
        return "El número de teléfono debe contener solo dígitos"
    return None

def mayor_de_edad(value: Any, today: Optional[date] = None) -> Optional[str]:
    """Birth date as YYYY-MM-DD (or a date); the holder must be 18 or older"""
    if isinstance(value, date):
        birth = value
    else:
        value = str(value)
        if not _FECHA_RE.match(value):
            return "La fecha de nacimiento debe estar en el formato YYYY-MM-DD"
        try:
            birth = datetime.strptime(value, "%Y-%m-%d").date()
        except ValueError:
            return "La fecha de nacimiento no es válida"
    
    today = today or date.today()
    age = today.year - birth.year
    if (today.month, today.day) < (birth.month, birth.day):
        age -= 1
    if age < EDAD_MINIMA:
        return "El usuario debe ser mayor de edad"
    return None

def password(value: Any) -> Optional[str]:
    value = str(value)
    errors = []
    if len(value) < 8:
        errors.append("La contraseña debe tener al menos 8 caracteres")
    if len(value) > 100:
        errors.append("La contraseña no puede tener más de 100 caracteres")
    if not re.search(r"[A-Z]", value):
        errors.append("La contraseña debe contener al menos una letra mayúscula")
    if not re.search(r"[a-z]", value):
        errors.append("La contraseña debe contener al menos una letra minúscula")
    if not re.search(r"[0-9]", value):
        errors.append("La contraseña debe contener al menos un número")
    if not re.search(r"[\W_]", value):
        errors.append("La contraseña debe contener al menos un carácter especial")
    return ", ".join(errors) or None

def reject_nulls(data: Dict[str, Any], fields: Iterable[str]) -> None:
    """Raise ValidationFailed for fields of a partial update sent explicitly as null"""
    errors = [f"{field}: El campo no puede ser nulo" for field in fields if field in data and data[field] is None]
    if errors:
        raise ValidationFailed("; ".join(errors))

def require(checks: Dict[str, Tuple[Callable[[Any], Optional[str]], Any]]) -> None:
    """Run ``{field: (validator, value)}`` and raise ValidationFailed on any rejection"""
    errors = []
    for field, (validator, value) in checks.items():
        reason = validator(value)
        if reason:
            errors.append(f"{field}: {reason}")
    if errors:
        raise ValidationFailed("; ".join(errors))
