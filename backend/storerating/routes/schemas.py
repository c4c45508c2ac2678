from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class MessageOut(BaseModel):
    message: str


class UserOut(BaseModel):
    id: int
    name: str
    email: str
    address: str
    role: str
    created_at: Optional[datetime] = None
    # Filled for store owners in admin listings only
    average_rating: Optional[float] = None

    class Config:
        from_attributes = True


class StoreOut(BaseModel):
    id: int
    name: str
    email: str
    address: str
    owner_id: Optional[int] = None
    owner_name: Optional[str] = None
    owner_email: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    average_rating: float = 0.0
    total_ratings: int = 0
    user_rating: Optional[int] = None

    class Config:
        from_attributes = True


class StoreListOut(BaseModel):
    stores: List[StoreOut]
    total: int


class StoreDetailOut(BaseModel):
    store: StoreOut


class StoreMessageOut(BaseModel):
    message: str
    store: StoreOut
