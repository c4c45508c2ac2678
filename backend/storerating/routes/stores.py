from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from storerating.core.database import get_db
from storerating.core.deps import get_current_user, require_store_owner
from storerating.core.policy import Action, enforce, store_resource
from storerating.core.query import ListParams
from storerating.models.user import User
from storerating.routes.schemas import StoreDetailOut, StoreListOut, StoreMessageOut, StoreOut
from storerating.services import aggregation_service, catalog_service


router = APIRouter()


class OwnedStoreUpdate(BaseModel):
    name: str
    email: str
    address: Optional[str] = ""


class OwnerSummaryOut(BaseModel):
    store_count: int
    average_rating: float
    total_ratings: int

    class Config:
        from_attributes = True


class MyStoresOut(BaseModel):
    stores: List[StoreOut]
    summary: OwnerSummaryOut


@router.get("", response_model=StoreListOut)
def list_stores(
    search: Optional[str] = Query(None, description="Match name, email or address"),
    sort_by: Optional[str] = Query("name"),
    sort_order: Optional[str] = Query("asc"),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    enforce(user, Action.browse, store_resource())
    params = ListParams(search=search, sort_by=sort_by, sort_order=sort_order)
    stores = aggregation_service.list_stores(db, params, caller_id=user.id)
    return StoreListOut(stores=[StoreOut.model_validate(s) for s in stores], total=len(stores))


@router.get("/my-store", response_model=MyStoresOut)
def my_stores(db: Session = Depends(get_db), owner: User = Depends(require_store_owner)):
    stores = aggregation_service.stores_for_owner(db, owner.id)
    summary = aggregation_service.owner_summary(db, owner.id)
    return MyStoresOut(
        stores=[StoreOut.model_validate(s) for s in stores],
        summary=OwnerSummaryOut.model_validate(summary),
    )


@router.put("/my-store/{store_id}", response_model=StoreMessageOut)
def update_my_store(
    store_id: int,
    data: OwnedStoreUpdate,
    db: Session = Depends(get_db),
    owner: User = Depends(require_store_owner),
):
    catalog_service.update_owned_store(db, owner, store_id, data.name, data.email, data.address)
    store = aggregation_service.get_store(db, store_id)
    return StoreMessageOut(message="Store updated successfully", store=StoreOut.model_validate(store))


@router.get("/{store_id}", response_model=StoreDetailOut)
def get_store(store_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    enforce(user, Action.browse, store_resource())
    store = aggregation_service.get_store(db, store_id, caller_id=user.id)
    return StoreDetailOut(store=StoreOut.model_validate(store))
