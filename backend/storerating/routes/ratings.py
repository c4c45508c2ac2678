from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, StrictInt
from sqlalchemy.orm import Session

from storerating.core.database import get_db
from storerating.core.deps import get_current_user
from storerating.models.user import User
from storerating.routes.schemas import MessageOut
from storerating.services import aggregation_service, rating_service


router = APIRouter()


class RatingSubmit(BaseModel):
    rating: StrictInt


class RatingOut(BaseModel):
    id: int
    user_id: int
    store_id: int
    rating: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RatingSubmitOut(BaseModel):
    message: str
    rating: RatingOut


class OwnRatingOut(BaseModel):
    rating: Optional[int] = None


class StoreRatingOut(BaseModel):
    id: int
    rating: int
    created_at: datetime
    updated_at: Optional[datetime] = None
    user_id: int
    user_name: str
    user_email: str
    user_address: str

    class Config:
        from_attributes = True


class AggregateOut(BaseModel):
    average_rating: float
    total_ratings: int

    class Config:
        from_attributes = True


class StoreRatingsOut(BaseModel):
    ratings: List[StoreRatingOut]
    summary: AggregateOut


@router.get("/store/{store_id}", response_model=StoreRatingsOut)
def store_ratings(store_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    entries = rating_service.list_store_ratings(db, user, store_id)
    aggregate = aggregation_service.store_aggregate(db, store_id)
    return StoreRatingsOut(
        ratings=[StoreRatingOut.model_validate(e) for e in entries],
        summary=AggregateOut.model_validate(aggregate),
    )


@router.post("/{store_id}", response_model=RatingSubmitOut)
def submit_rating(
    store_id: int,
    data: RatingSubmit,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    rating_service.ensure_can_write_rating(user, store_id)
    rating = rating_service.submit_rating(db, user.id, store_id, data.rating)
    return RatingSubmitOut(message="Rating submitted successfully", rating=RatingOut.model_validate(rating))


@router.get("/{store_id}", response_model=OwnRatingOut)
def own_rating(store_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return OwnRatingOut(rating=rating_service.get_user_rating(db, user.id, store_id))


@router.delete("/{store_id}", response_model=MessageOut)
def delete_rating(store_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    rating_service.ensure_can_write_rating(user, store_id)
    rating_service.delete_rating(db, user.id, store_id)
    return MessageOut(message="Rating deleted successfully")
