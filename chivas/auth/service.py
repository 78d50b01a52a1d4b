import logging
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from chivas import validation
from chivas.auth.schemas import AdminCreate, ClientCreate, UserUpdate
from chivas.auth.utils import get_password_hash, verify_password
from chivas.database import unit_of_work
from chivas.exceptions import AuthenticationFailed, ConstraintViolation, NotFound
from chivas.models import Usuario, SUBTIPO_ADMIN, SUBTIPO_CLIENTE

logger = logging.getLogger(__name__)

class UserService:
    @staticmethod
    def get_user_by_email(db: Session, correo: str, subtipo: str) -> Optional[Usuario]:
        """Get user by email within one account subtype"""
        return db.query(Usuario).filter(
            Usuario.correo == correo,
            Usuario.subtipo == subtipo
        ).first()
    
    @staticmethod
    def get_user_by_id(db: Session, user_id: int) -> Optional[Usuario]:
        return db.get(Usuario, user_id)
    
    @staticmethod
    def create_client(db: Session, data: ClientCreate) -> Usuario:
        """Register a client account"""
        full_name = f"{data.nombre} {data.apellido}"
        validation.require({
            "correo": (validation.correo, data.correo),
            "documento": (validation.documento, data.documento),
            "nombre": (validation.nombre_completo, full_name),
            "contacto": (validation.telefono, data.contacto),
            "fecha_nacimiento": (validation.mayor_de_edad, data.fecha_nacimiento),
            "password": (validation.password, data.password),
        })
        return UserService._create_account(
            db, SUBTIPO_CLIENTE,
            correo=data.correo,
            documento=data.documento,
            nombre=full_name,
            contacto=data.contacto,
            fecha_nacimiento=datetime.strptime(data.fecha_nacimiento, "%Y-%m-%d").date(),
            password_hash=get_password_hash(data.password)
        )
    
    @staticmethod
    def create_admin(db: Session, data: AdminCreate) -> Usuario:
        """Register an administrator account"""
        full_name = f"{data.nombre} {data.apellido}"
        validation.require({
            "documento": (validation.documento, data.documento),
            "nombre": (validation.nombre_completo, full_name),
            "fecha_nacimiento": (validation.mayor_de_edad, data.fecha_nacimiento),
            "password": (validation.password, data.password),
        })
        return UserService._create_account(
            db, SUBTIPO_ADMIN,
            correo=data.correo,
            documento=data.documento,
            nombre=full_name,
            fecha_nacimiento=datetime.strptime(data.fecha_nacimiento, "%Y-%m-%d").date(),
            password_hash=get_password_hash(data.password)
        )
    
    @staticmethod
    def authenticate(db: Session, correo: str, password: str, allowed_subtypes: Iterable[str]) -> Usuario:
        """Check credentials against the account subtypes allowed to log in"""
        candidates = db.query(Usuario).filter(
            Usuario.correo == correo,
            Usuario.subtipo.in_(list(allowed_subtypes)),
            Usuario.password_hash.isnot(None)
        ).all()
        
        for user in candidates:
            if verify_password(password, user.password_hash):
                return user
        
        logger.warning("Failed login for %s", correo)
        raise AuthenticationFailed()
    
    @staticmethod
    def update_user(db: Session, user_id: int, user_update: UserUpdate) -> Usuario:
        """Update profile fields of the current user"""
        update_data = user_update.dict(exclude_unset=True)
        # contacto is optional and may be cleared with null
        validation.reject_nulls(update_data, ("nombre", "password"))
        validators = {
            "nombre": validation.nombre_completo,
            "contacto": validation.telefono,
            "password": validation.password,
        }
        validation.require({
            field: (validators[field], value)
            for field, value in update_data.items()
            if field in validators and value is not None
        })
        
        with unit_of_work(db):
            db_user = UserService.get_user_by_id(db, user_id)
            if not db_user:
                raise NotFound("User not found")
            
            if "password" in update_data:
                update_data["password_hash"] = get_password_hash(update_data.pop("password"))
            
            for field, value in update_data.items():
                setattr(db_user, field, value)
        
        db.refresh(db_user)
        return db_user
    
    @staticmethod
    def _create_account(db: Session, subtipo: str, **fields) -> Usuario:
        db_user = Usuario(subtipo=subtipo, **fields)
        try:
            with unit_of_work(db):
                db.add(db_user)
                db.flush()
        except IntegrityError:
            raise ConstraintViolation("Email already registered")
        
        db.refresh(db_user)
        logger.info("Registered account %s (%s) for %s", db_user.id, subtipo, db_user.correo)
        return db_user
