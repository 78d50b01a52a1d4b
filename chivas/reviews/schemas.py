from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

class ReviewCreate(BaseModel):
    id_destino: int
    calificacion: int = Field(..., ge=1, le=5)
    comentario: Optional[str] = Field(None, max_length=2000)

class ReviewUpdate(BaseModel):
    calificacion: Optional[int] = Field(None, ge=1, le=5)
    comentario: Optional[str] = Field(None, max_length=2000)

class Review(BaseModel):
    id: int
    id_usuario: int
    id_destino: int
    calificacion: int
    comentario: Optional[str] = None
    creado_en: Optional[datetime] = None
    
    class Config:
        from_attributes = True
