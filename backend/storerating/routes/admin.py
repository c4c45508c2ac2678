from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, EmailStr
from sqlalchemy.orm import Session

from storerating.core.database import get_db
from storerating.core.config import Settings
from storerating.core.deps import get_app_settings, require_admin
from storerating.core.query import ListParams
from storerating.models.user import User
from storerating.routes.schemas import MessageOut, StoreDetailOut, StoreListOut, StoreMessageOut, StoreOut, UserOut
from storerating.services import aggregation_service, catalog_service


router = APIRouter(dependencies=[Depends(require_admin)])


class DashboardOut(BaseModel):
    total_users: int
    total_stores: int
    total_ratings: int


class UserCreate(BaseModel):
    name: str
    email: EmailStr
    password: str
    address: Optional[str] = ""
    role: str = "user"


class UserUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    role: Optional[str] = None


class UserListOut(BaseModel):
    users: List[UserOut]
    total: int


class UserDetailOut(BaseModel):
    user: UserOut


class UserMessageOut(BaseModel):
    message: str
    user: UserOut


class StoreWrite(BaseModel):
    name: str
    email: EmailStr
    address: Optional[str] = ""
    owner_id: Optional[int] = None


@router.get("/dashboard", response_model=DashboardOut)
def dashboard(db: Session = Depends(get_db)):
    return DashboardOut(**catalog_service.dashboard(db))


@router.get("/users", response_model=UserListOut)
def list_users(
    search: Optional[str] = Query(None),
    role: Optional[str] = Query(None),
    sort_by: Optional[str] = Query("name"),
    sort_order: Optional[str] = Query("asc"),
    db: Session = Depends(get_db),
):
    params = ListParams(search=search, role=role, sort_by=sort_by, sort_order=sort_order)
    users = aggregation_service.list_users(db, params)
    return UserListOut(users=[UserOut.model_validate(u) for u in users], total=len(users))


@router.get("/users/{user_id}", response_model=UserDetailOut)
def get_user(user_id: int, db: Session = Depends(get_db)):
    return UserDetailOut(user=UserOut.model_validate(aggregation_service.get_user_summary(db, user_id)))


@router.post("/users", response_model=UserMessageOut, status_code=status.HTTP_201_CREATED)
def create_user(data: UserCreate, db: Session = Depends(get_db), config: Settings = Depends(get_app_settings)):
    user = catalog_service.create_user(db, data.name, data.email, data.password, data.address, data.role, config)
    return UserMessageOut(message="User created successfully", user=UserOut.model_validate(user))


@router.put("/users/{user_id}", response_model=UserMessageOut)
def update_user(user_id: int, data: UserUpdate, db: Session = Depends(get_db)):
    user = catalog_service.update_user(
        db, user_id, name=data.name, email=data.email, address=data.address, role=data.role
    )
    return UserMessageOut(message="User updated successfully", user=UserOut.model_validate(user))


@router.delete("/users/{user_id}", response_model=MessageOut)
def delete_user(user_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    catalog_service.delete_user(db, admin, user_id)
    return MessageOut(message="User deleted successfully")


@router.get("/stores", response_model=StoreListOut)
def list_stores(
    search: Optional[str] = Query(None),
    sort_by: Optional[str] = Query("name"),
    sort_order: Optional[str] = Query("asc"),
    db: Session = Depends(get_db),
):
    params = ListParams(search=search, sort_by=sort_by, sort_order=sort_order)
    stores = aggregation_service.list_stores(db, params, search_owner=True)
    return StoreListOut(stores=[StoreOut.model_validate(s) for s in stores], total=len(stores))


@router.get("/stores/{store_id}", response_model=StoreDetailOut)
def get_store(store_id: int, db: Session = Depends(get_db)):
    return StoreDetailOut(store=StoreOut.model_validate(aggregation_service.get_store(db, store_id)))


@router.post("/stores", response_model=StoreMessageOut, status_code=status.HTTP_201_CREATED)
def create_store(data: StoreWrite, db: Session = Depends(get_db)):
    store = catalog_service.create_store(db, data.name, data.email, data.address, data.owner_id)
    summary = aggregation_service.get_store(db, store.id)
    return StoreMessageOut(message="Store created successfully", store=StoreOut.model_validate(summary))


@router.put("/stores/{store_id}", response_model=StoreMessageOut)
def update_store(store_id: int, data: StoreWrite, db: Session = Depends(get_db)):
    catalog_service.update_store(db, store_id, data.name, data.email, data.address, data.owner_id)
    summary = aggregation_service.get_store(db, store_id)
    return StoreMessageOut(message="Store updated successfully", store=StoreOut.model_validate(summary))


@router.delete("/stores/{store_id}", response_model=MessageOut)
def delete_store(store_id: int, db: Session = Depends(get_db)):
    catalog_service.delete_store(db, store_id)
    return MessageOut(message="Store deleted successfully")
