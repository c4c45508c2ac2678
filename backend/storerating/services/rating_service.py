import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storerating.core.errors import NotFoundError, ValidationError
from storerating.core.policy import Action, enforce, rating_resource, store_ratings_resource
from storerating.models.base import utcnow
from storerating.models.rating import MAX_RATING, MIN_RATING, Rating
from storerating.models.store import Store
from storerating.models.user import User


logger = logging.getLogger(__name__)

_ON_CONFLICT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


@dataclass
class StoreRatingEntry:
    id: int
    rating: int
    created_at: datetime
    updated_at: Optional[datetime]
    user_id: int
    user_name: str
    user_email: str
    user_address: str


def validate_rating_value(value) -> int:
    # bool is an int subclass; True must not pass as a 1-star rating
    if isinstance(value, bool) or not isinstance(value, int) or not MIN_RATING <= value <= MAX_RATING:
        raise ValidationError(
            "Validation failed",
            details=[{"field": "rating", "message": f"Rating must be between {MIN_RATING} and {MAX_RATING}"}],
        )
    return value


def _get_store(db: Session, store_id: int) -> Store:
    store = db.query(Store).filter(Store.id == store_id).first()
    if not store:
        raise NotFoundError("Store not found")
    return store


def _find_rating(db: Session, user_id: int, store_id: int) -> Optional[Rating]:
    return db.query(Rating).filter(Rating.user_id == user_id, Rating.store_id == store_id).first()


def _upsert_on_conflict(db: Session, dialect: str, user_id: int, store_id: int, value: int) -> None:
    now = utcnow()
    values = dict(user_id=user_id, store_id=store_id, rating=value, created_at=now, updated_at=now)
    if dialect == "mysql":
        stmt = mysql.insert(Rating).values(**values)
        stmt = stmt.on_duplicate_key_update(rating=stmt.inserted.rating, updated_at=stmt.inserted.updated_at)
    else:
        stmt = _ON_CONFLICT_INSERTS[dialect](Rating).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "store_id"],
            set_={"rating": stmt.excluded.rating, "updated_at": stmt.excluded.updated_at},
        )
    db.execute(stmt)


def _insert_or_update(db: Session, user_id: int, store_id: int, value: int) -> None:
    """Check-then-write inside a SAVEPOINT; a lost insert race is retried as an update."""
    now = utcnow()
    existing = _find_rating(db, user_id, store_id)
    if existing is None:
        try:
            with db.begin_nested():
                db.add(Rating(user_id=user_id, store_id=store_id, rating=value, created_at=now, updated_at=now))
            return
        except IntegrityError:
            logger.info("Concurrent rating insert user=%s store=%s, retrying as update", user_id, store_id)
            existing = _find_rating(db, user_id, store_id)
            if existing is None:
                raise
    existing.rating = value
    existing.updated_at = now


def submit_rating(db: Session, user_id: int, store_id: int, value) -> Rating:
    """Create the caller's rating for a store, or overwrite it in place."""
    value = validate_rating_value(value)
    _get_store(db, store_id)

    dialect = db.get_bind().dialect.name
    try:
        if dialect in _ON_CONFLICT_INSERTS or dialect == "mysql":
            _upsert_on_conflict(db, dialect, user_id, store_id, value)
        else:
            _insert_or_update(db, user_id, store_id, value)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Rating submitted user=%s store=%s rating=%s", user_id, store_id, value)
    return _find_rating(db, user_id, store_id)


def get_user_rating(db: Session, user_id: int, store_id: int) -> Optional[int]:
    rating = _find_rating(db, user_id, store_id)
    return rating.rating if rating else None


def delete_rating(db: Session, user_id: int, store_id: int) -> None:
    deleted = (
        db.query(Rating)
        .filter(Rating.user_id == user_id, Rating.store_id == store_id)
        .delete(synchronize_session=False)
    )
    if not deleted:
        db.rollback()
        raise NotFoundError("Rating not found")
    db.commit()
    logger.info("Rating deleted user=%s store=%s", user_id, store_id)


def ensure_can_write_rating(user: User, store_id: int) -> None:
    enforce(user, Action.update, rating_resource(user.id, store_id))


def list_store_ratings(db: Session, user: User, store_id: int) -> List[StoreRatingEntry]:
    store = _get_store(db, store_id)
    enforce(
        user,
        Action.read,
        store_ratings_resource(store),
        "Access denied. Only store owners and admins can view store ratings.",
    )

    rows = (
        db.query(Rating, User)
        .join(User, User.id == Rating.user_id)
        .filter(Rating.store_id == store_id)
        .order_by(Rating.created_at.desc(), Rating.id.desc())
        .all()
    )
    return [
        StoreRatingEntry(
            id=rating.id,
            rating=rating.rating,
            created_at=rating.created_at,
            updated_at=rating.updated_at,
            user_id=rater.id,
            user_name=rater.name,
            user_email=rater.email,
            user_address=rater.address,
        )
        for rating, rater in rows
    ]
