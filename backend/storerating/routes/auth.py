from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, EmailStr
from sqlalchemy.orm import Session

from storerating.core.database import get_db
from storerating.core.config import Settings
from storerating.core.deps import get_app_settings, get_current_user
from storerating.models.user import User
from storerating.routes.schemas import UserOut
from storerating.services import identity_service


router = APIRouter()


class RegisterRequest(BaseModel):
    name: str
    email: EmailStr
    password: str
    address: Optional[str] = ""


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class AuthResponse(BaseModel):
    message: str
    user: UserOut
    token: str
    token_type: str = "bearer"


class ProfileResponse(BaseModel):
    user: UserOut


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(data: RegisterRequest, db: Session = Depends(get_db), config: Settings = Depends(get_app_settings)):
    user, token = identity_service.register(db, data.name, data.email, data.password, data.address, config)
    return AuthResponse(message="User registered successfully", user=UserOut.model_validate(user), token=token)


@router.post("/login", response_model=AuthResponse)
def login(data: LoginRequest, db: Session = Depends(get_db), config: Settings = Depends(get_app_settings)):
    user, token = identity_service.login(db, data.email, data.password, config)
    return AuthResponse(message="Login successful", user=UserOut.model_validate(user), token=token)


@router.get("/profile", response_model=ProfileResponse)
def profile(user: User = Depends(get_current_user)):
    return ProfileResponse(user=UserOut.model_validate(user))
