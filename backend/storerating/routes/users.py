from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from storerating.core.database import get_db
from storerating.core.config import Settings
from storerating.core.deps import get_app_settings, get_current_user
from storerating.core.policy import Action, enforce, user_resource
from storerating.models.user import User
from storerating.routes.schemas import MessageOut, UserOut
from storerating.services import identity_service


router = APIRouter()


class PasswordUpdate(BaseModel):
    current_password: str
    new_password: str


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    address: Optional[str] = None


class ProfileResponse(BaseModel):
    user: UserOut


class ProfileUpdateResponse(BaseModel):
    message: str
    user: UserOut


@router.put("/password", response_model=MessageOut)
def update_password(
    data: PasswordUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    config: Settings = Depends(get_app_settings),
):
    enforce(user, Action.update, user_resource(user.id))
    identity_service.change_password(db, user.id, data.current_password, data.new_password, config)
    return MessageOut(message="Password updated successfully")


@router.get("/profile", response_model=ProfileResponse)
def get_profile(user: User = Depends(get_current_user)):
    return ProfileResponse(user=UserOut.model_validate(user))


@router.put("/profile", response_model=ProfileUpdateResponse)
def update_profile(data: ProfileUpdate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    enforce(user, Action.update, user_resource(user.id))
    updated = identity_service.update_profile(db, user, name=data.name, address=data.address)
    return ProfileUpdateResponse(message="Profile updated successfully", user=UserOut.model_validate(updated))
