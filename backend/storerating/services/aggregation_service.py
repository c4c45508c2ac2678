"""
Read-time rating aggregation.

Averages and counts are never stored: every listing joins a grouped
``(store_id, AVG, COUNT)`` subquery over the current rating rows, so one query
serves any number of stores and the numbers cannot drift from the rows.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional

from sqlalchemy import and_, func
from sqlalchemy.orm import Session, aliased

from storerating.core.errors import NotFoundError
from storerating.core.query import (
    STORE_SORT_FIELDS,
    USER_SORT_FIELDS,
    ListParams,
    build_list_query,
    order_clauses,
    search_clause,
)
from storerating.core.roles import Role
from storerating.models.rating import Rating
from storerating.models.store import Store
from storerating.models.user import User


_TWO_PLACES = Decimal("0.01")


def round_average(value) -> float:
    """Half-up rounding to two decimals; no ratings means 0."""
    if value is None:
        return 0.0
    return float(Decimal(str(value)).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP))


@dataclass
class Aggregate:
    average_rating: float
    total_ratings: int


@dataclass
class StoreSummary:
    id: int
    name: str
    email: str
    address: str
    owner_id: Optional[int]
    created_at: datetime
    updated_at: Optional[datetime]
    average_rating: float
    total_ratings: int
    owner_name: Optional[str] = None
    owner_email: Optional[str] = None
    user_rating: Optional[int] = None


@dataclass
class UserSummary:
    id: int
    name: str
    email: str
    address: str
    role: str
    created_at: datetime
    # Only store owners carry an average across the stores they own
    average_rating: Optional[float] = None


@dataclass
class OwnerSummary:
    store_count: int
    average_rating: float
    total_ratings: int


def rating_stats_subquery(db: Session):
    return (
        db.query(
            Rating.store_id.label("store_id"),
            func.avg(Rating.rating).label("average_rating"),
            func.count(Rating.id).label("total_ratings"),
        )
        .group_by(Rating.store_id)
        .subquery("rating_stats")
    )


def _store_query(db: Session, caller_id: Optional[int] = None):
    stats = rating_stats_subquery(db)
    owner = aliased(User)
    average = func.coalesce(stats.c.average_rating, 0)
    total = func.coalesce(stats.c.total_ratings, 0)

    query = (
        db.query(
            Store,
            average.label("average_rating"),
            total.label("total_ratings"),
            owner.name.label("owner_name"),
            owner.email.label("owner_email"),
        )
        .outerjoin(stats, stats.c.store_id == Store.id)
        .outerjoin(owner, owner.id == Store.owner_id)
    )

    if caller_id is not None:
        # At most one row per store thanks to the (user, store) unique constraint
        own = aliased(Rating)
        query = query.add_columns(own.rating.label("user_rating")).outerjoin(
            own, and_(own.store_id == Store.id, own.user_id == caller_id)
        )

    columns = {
        "name": Store.name,
        "email": Store.email,
        "address": Store.address,
        "created_at": Store.created_at,
        "average_rating": average,
        "total_ratings": total,
    }
    return query, columns, owner


def _to_store_summary(row) -> StoreSummary:
    store = row.Store
    return StoreSummary(
        id=store.id,
        name=store.name,
        email=store.email,
        address=store.address,
        owner_id=store.owner_id,
        created_at=store.created_at,
        updated_at=store.updated_at,
        average_rating=round_average(row.average_rating if row.total_ratings else None),
        total_ratings=int(row.total_ratings or 0),
        owner_name=row.owner_name,
        owner_email=row.owner_email,
        user_rating=getattr(row, "user_rating", None),
    )


def list_stores(
    db: Session,
    params: ListParams,
    caller_id: Optional[int] = None,
    search_owner: bool = False,
) -> List[StoreSummary]:
    list_query = build_list_query(params, STORE_SORT_FIELDS)
    query, columns, owner = _store_query(db, caller_id)

    if list_query.search:
        searchable = [Store.name, Store.email, Store.address]
        if search_owner:
            searchable.append(owner.name)
        query = query.filter(search_clause(list_query.search, *searchable))

    query = query.order_by(*order_clauses(list_query, columns, Store.id))
    return [_to_store_summary(row) for row in query.all()]


def get_store(db: Session, store_id: int, caller_id: Optional[int] = None) -> StoreSummary:
    query, _, _ = _store_query(db, caller_id)
    row = query.filter(Store.id == store_id).first()
    if row is None:
        raise NotFoundError("Store not found")
    return _to_store_summary(row)


def stores_for_owner(db: Session, owner_id: int) -> List[StoreSummary]:
    query, _, _ = _store_query(db)
    rows = query.filter(Store.owner_id == owner_id).order_by(Store.created_at.desc(), Store.id.desc()).all()
    return [_to_store_summary(row) for row in rows]


def store_aggregate(db: Session, store_id: int) -> Aggregate:
    average, total = (
        db.query(func.avg(Rating.rating), func.count(Rating.id))
        .filter(Rating.store_id == store_id)
        .one()
    )
    return Aggregate(average_rating=round_average(average if total else None), total_ratings=int(total or 0))


def owner_summary(db: Session, owner_id: int) -> OwnerSummary:
    store_count = db.query(func.count(Store.id)).filter(Store.owner_id == owner_id).scalar() or 0
    average, total = (
        db.query(func.avg(Rating.rating), func.count(Rating.id))
        .join(Store, Store.id == Rating.store_id)
        .filter(Store.owner_id == owner_id)
        .one()
    )
    return OwnerSummary(
        store_count=int(store_count),
        average_rating=round_average(average if total else None),
        total_ratings=int(total or 0),
    )


def _owner_stats_subquery(db: Session):
    return (
        db.query(
            Store.owner_id.label("owner_id"),
            func.avg(Rating.rating).label("average_rating"),
        )
        .join(Rating, Rating.store_id == Store.id)
        .filter(Store.owner_id.isnot(None))
        .group_by(Store.owner_id)
        .subquery("owner_stats")
    )


def _user_query(db: Session):
    stats = _owner_stats_subquery(db)
    query = db.query(User, stats.c.average_rating.label("average_rating")).outerjoin(
        stats, stats.c.owner_id == User.id
    )
    columns = {
        "name": User.name,
        "email": User.email,
        "address": User.address,
        "role": User.role,
        "created_at": User.created_at,
        "average_rating": func.coalesce(stats.c.average_rating, 0),
    }
    return query, columns


def _to_user_summary(row) -> UserSummary:
    user = row.User
    average = None
    if user.role == Role.store_owner.value:
        average = round_average(row.average_rating)
    return UserSummary(
        id=user.id,
        name=user.name,
        email=user.email,
        address=user.address,
        role=user.role,
        created_at=user.created_at,
        average_rating=average,
    )


def list_users(db: Session, params: ListParams) -> List[UserSummary]:
    list_query = build_list_query(params, USER_SORT_FIELDS)
    if list_query.match_nothing:
        return []
    query, columns = _user_query(db)

    if list_query.search:
        query = query.filter(search_clause(list_query.search, User.name, User.email, User.address))
    if list_query.role is not None:
        query = query.filter(User.role == list_query.role.value)

    query = query.order_by(*order_clauses(list_query, columns, User.id))
    return [_to_user_summary(row) for row in query.all()]


def get_user_summary(db: Session, user_id: int) -> UserSummary:
    query, _ = _user_query(db)
    row = query.filter(User.id == user_id).first()
    if row is None:
        raise NotFoundError("User not found")
    return _to_user_summary(row)
