from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from datetime import timedelta
from chivas.database import get_db
from chivas.auth.schemas import ClientCreate, AdminCreate, User, UserUpdate, LoginRequest, AuthResponse
from chivas.auth.service import UserService
from chivas.auth.utils import create_access_token
from chivas.auth.dependencies import get_current_user, require_admin
from chivas.config import settings

router = APIRouter()

@router.post("/register", response_model=User, status_code=status.HTTP_201_CREATED)
def register_client(user: ClientCreate, db: Session = Depends(get_db)):
    """Register a new client"""
    return UserService.create_client(db=db, data=user)

@router.post("/register-admin", response_model=User, status_code=status.HTTP_201_CREATED)
def register_admin(
    user: AdminCreate,
    db: Session = Depends(get_db),
    current_user = Depends(require_admin)
):
    """Register a new administrator (admins only)"""
    return UserService.create_admin(db=db, data=user)

@router.post("/login", response_model=AuthResponse)
def login(login_data: LoginRequest, db: Session = Depends(get_db)):
    """Log in a client or administrator"""
    user = UserService.authenticate(
        db, login_data.correo, login_data.password, settings.LOGIN_ALLOWED_SUBTYPES
    )
    
    access_token_expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = create_access_token(
        data={"sub": str(user.id), "subtipo": user.subtipo}, expires_delta=access_token_expires
    )
    return AuthResponse(
        access_token=access_token,
        token_type="bearer",
        user=User.model_validate(user)
    )

@router.get("/me", response_model=User)
def read_users_me(current_user = Depends(get_current_user)):
    """Get current user profile"""
    return current_user

@router.put("/me", response_model=User)
def update_user_profile(
    user_update: UserUpdate,
    current_user = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update current user profile"""
    return UserService.update_user(db=db, user_id=current_user.id, user_update=user_update)
