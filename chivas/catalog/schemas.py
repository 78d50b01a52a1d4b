from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime, date, time
from decimal import Decimal

class DestinationCreate(BaseModel):
    nombre: str = Field(..., min_length=2, max_length=255)
    descripcion: Optional[str] = None

class Destination(BaseModel):
    id: int
    nombre: str
    descripcion: Optional[str] = None
    creado_en: Optional[datetime] = None
    
    class Config:
        from_attributes = True

class TripBase(BaseModel):
    origen: str
    fecha: date
    hora_salida: time
    hora_regreso: Optional[time] = None
    precio: Decimal = Field(..., ge=0)
    incluye_comida: bool = False

class TripCreate(TripBase):
    destino_id: int
    capacidad: int = Field(..., ge=1)

class TripUpdate(BaseModel):
    origen: Optional[str] = None
    fecha: Optional[date] = None
    hora_salida: Optional[time] = None
    hora_regreso: Optional[time] = None
    precio: Optional[Decimal] = Field(None, ge=0)
    incluye_comida: Optional[bool] = None
    capacidad: Optional[int] = Field(None, ge=1)

class Trip(TripBase):
    id: int
    destino_id: int
    destino_nombre: Optional[str] = None
    capacidad: int
    cupo: int
    cancelado: bool
    
    class Config:
        from_attributes = True

class TripSearchResult(BaseModel):
    trips: List[Trip]
    total: int
    page: int
    per_page: int
