"""
Administrator operations over the user and store catalogs, plus the store
owner's self-service update of their own stores.
"""
import logging
from typing import Dict, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storerating.core.config import Settings
from storerating.core.errors import ConflictError, NotFoundError, ValidationError
from storerating.core.policy import Action, check_role_change, check_user_deletion, enforce, store_resource
from storerating.core.roles import Role
from storerating.core.validators import (
    check_address,
    check_email,
    check_name,
    check_store_name,
    ensure_valid,
    normalize_email,
)
from storerating.models.rating import Rating
from storerating.models.store import Store
from storerating.models.user import User
from storerating.services import identity_service


logger = logging.getLogger(__name__)


def dashboard(db: Session) -> Dict[str, int]:
    return {
        "total_users": db.query(func.count(User.id)).scalar() or 0,
        "total_stores": db.query(func.count(Store.id)).scalar() or 0,
        "total_ratings": db.query(func.count(Rating.id)).scalar() or 0,
    }


def _parse_role(role: Optional[str]) -> Role:
    try:
        return Role(role or Role.user.value)
    except ValueError:
        raise ValidationError("Invalid role", details=[{"field": "role", "message": "Invalid role"}])


def _locked_admins(db: Session):
    # Locks the admin rows until the caller commits or rolls back
    return db.query(User.id).filter(User.role == Role.admin.value).with_for_update()


def _admin_count(db: Session) -> int:
    return len(_locked_admins(db).all())


def _owned_store_count(db: Session, user_id: int) -> int:
    return db.query(func.count(Store.id)).filter(Store.owner_id == user_id).scalar() or 0


def _get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")
    return user


def create_user(
    db: Session,
    name: str,
    email: str,
    password: str,
    address: Optional[str],
    role: Optional[str] = None,
    config: Optional[Settings] = None,
) -> User:
    return identity_service.create_account(db, name, email, password, address, _parse_role(role), config)


def update_user(
    db: Session,
    user_id: int,
    name: Optional[str] = None,
    email: Optional[str] = None,
    address: Optional[str] = None,
    role: Optional[str] = None,
) -> User:
    user = _get_user(db, user_id)

    checks = []
    if name is not None:
        checks.append(check_name(name))
    if email is not None:
        checks.append(check_email(email))
    if address is not None:
        checks.append(check_address(address))
    ensure_valid(*checks)

    if email is not None:
        email = normalize_email(email)
        taken = db.query(User).filter(User.email == email, User.id != user.id).first()
        if taken:
            raise ConflictError("User with this email already exists")
        user.email = email

    if role is not None:
        new_role = _parse_role(role)
        check_role_change(user, new_role, _admin_count(db), _owned_store_count(db, user.id))
        user.role = new_role.value

    if name is not None:
        user.name = name
    if address is not None:
        user.address = address

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("User with this email already exists")
    db.refresh(user)
    logger.info("User updated id=%s role=%s", user.id, user.role)
    return user


def delete_user(db: Session, actor: User, user_id: int) -> None:
    target = _get_user(db, user_id)
    check_user_deletion(actor, target, _admin_count(db), _owned_store_count(db, target.id))

    try:
        db.query(Rating).filter(Rating.user_id == target.id).delete(synchronize_session=False)
        db.delete(target)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("User deleted id=%s by admin id=%s", user_id, actor.id)


def _resolve_owner(db: Session, owner_id: Optional[int]) -> Optional[int]:
    if owner_id is None:
        return None
    owner = db.query(User).filter(User.id == owner_id).first()
    if not owner:
        raise ValidationError("Owner not found", details=[{"field": "owner_id", "message": "Owner not found"}])
    if owner.role != Role.store_owner.value:
        raise ValidationError(
            "Owner must be a store owner",
            details=[{"field": "owner_id", "message": "Owner must be a store owner"}],
        )
    return owner.id


def _ensure_store_email_free(db: Session, email: str, store_id: Optional[int] = None) -> None:
    query = db.query(Store).filter(Store.email == email)
    if store_id is not None:
        query = query.filter(Store.id != store_id)
    if query.first():
        raise ConflictError("Store with this email already exists")


def _get_store(db: Session, store_id: int) -> Store:
    store = db.query(Store).filter(Store.id == store_id).first()
    if not store:
        raise NotFoundError("Store not found")
    return store


def _commit_store(db: Session, store: Store) -> Store:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Store with this email already exists")
    db.refresh(store)
    return store


def create_store(db: Session, name: str, email: str, address: Optional[str], owner_id: Optional[int] = None) -> Store:
    ensure_valid(check_store_name(name), check_email(email), check_address(address))
    email = normalize_email(email)
    _ensure_store_email_free(db, email)
    owner_id = _resolve_owner(db, owner_id)

    store = Store(name=name.strip(), email=email, address=address or "", owner_id=owner_id)
    db.add(store)
    store = _commit_store(db, store)
    logger.info("Store created id=%s owner=%s", store.id, store.owner_id)
    return store


def update_store(
    db: Session,
    store_id: int,
    name: str,
    email: str,
    address: Optional[str],
    owner_id: Optional[int] = None,
) -> Store:
    """Full replacement: an omitted owner leaves the store unassigned."""
    store = _get_store(db, store_id)
    ensure_valid(check_store_name(name), check_email(email), check_address(address))
    email = normalize_email(email)
    _ensure_store_email_free(db, email, store.id)

    store.owner_id = _resolve_owner(db, owner_id)
    store.name = name.strip()
    store.email = email
    store.address = address or ""
    store = _commit_store(db, store)
    logger.info("Store updated id=%s owner=%s", store.id, store.owner_id)
    return store


def delete_store(db: Session, store_id: int) -> None:
    store = _get_store(db, store_id)
    try:
        db.query(Rating).filter(Rating.store_id == store.id).delete(synchronize_session=False)
        db.delete(store)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Store deleted id=%s", store_id)


def update_owned_store(db: Session, owner: User, store_id: int, name: str, email: str, address: Optional[str]) -> Store:
    store = db.query(Store).filter(Store.id == store_id, Store.owner_id == owner.id).first()
    if not store:
        raise NotFoundError("Store not found or you do not have permission to update it")
    enforce(owner, Action.update, store_resource(store))

    ensure_valid(check_store_name(name), check_email(email), check_address(address))
    email = normalize_email(email)
    _ensure_store_email_free(db, email, store.id)

    store.name = name.strip()
    store.email = email
    store.address = address or ""
    return _commit_store(db, store)
