from pydantic import BaseModel, Field, validator
from typing import List, Optional
from datetime import datetime, date, time
from decimal import Decimal
from enum import Enum

class ReservationStatus(str, Enum):
    """Derived lifecycle state of a reservation"""
    UNPAID = "unpaid"
    PAID = "paid"
    REFUNDED = "refunded"
    CANCELLED = "cancelled"

class RefundType(str, Enum):
    NONE = "ninguno"
    PARTIAL = "parcial"
    TOTAL = "total"

# Request Models
class GuestInfo(BaseModel):
    """Co-traveler named on a reservation"""
    correo: str
    nombre: str
    documento: str

class ReservationCreateRequest(BaseModel):
    id_viaje: int
    invitados: List[GuestInfo] = []
    
    @validator('invitados')
    def validate_guests(cls, v):
        if len(v) > 20:
            raise ValueError('Maximum 20 guests per reservation')
        return v

class ReservationUpdateRequest(BaseModel):
    n_boletas: int

class PaymentConfirmationRequest(BaseModel):
    metodo_pago: str = Field("efectivo", min_length=1, max_length=50)

# Response Models
class Ticket(BaseModel):
    id: int
    codigo: str
    id_usuario: int
    id_reserva: int
    fecha: date
    hora_salida: time
    activo: bool
    
    class Config:
        from_attributes = True

class Reservation(BaseModel):
    id: int
    id_usuario: int
    id_viaje: int
    n_boletas: int
    total: Decimal
    vigente: bool
    pagado: bool
    reembolso: Decimal
    tipo_reembolso: RefundType
    metodo_pago: Optional[str] = None
    creado_en: Optional[datetime] = None
    
    class Config:
        from_attributes = True

class ReservationDetail(Reservation):
    estado: ReservationStatus
    boletos: List[Ticket] = []

class RefundResult(BaseModel):
    reserva_id: int
    reembolso: Decimal
    tipo_reembolso: RefundType
    boletos_desactivados: int
