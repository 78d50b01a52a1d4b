from pydantic import BaseModel, EmailStr
from typing import Optional
from datetime import datetime, date

class UserBase(BaseModel):
    correo: EmailStr
    documento: str
    nombre: str
    apellido: str

class ClientCreate(UserBase):
    contacto: str
    fecha_nacimiento: str  # YYYY-MM-DD
    password: str

class AdminCreate(UserBase):
    fecha_nacimiento: str
    password: str

class UserUpdate(BaseModel):
    nombre: Optional[str] = None
    contacto: Optional[str] = None
    password: Optional[str] = None

class User(BaseModel):
    id: int
    correo: str
    documento: str
    nombre: str
    contacto: Optional[str] = None
    fecha_nacimiento: Optional[date] = None
    subtipo: str
    creado_en: Optional[datetime] = None
    
    class Config:
        from_attributes = True

class LoginRequest(BaseModel):
    correo: EmailStr
    password: str

class AuthResponse(BaseModel):
    access_token: str
    token_type: str
    user: User

class TokenData(BaseModel):
    user_id: Optional[int] = None
    subtipo: Optional[str] = None
