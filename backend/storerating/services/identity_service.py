"""
Registration, login and bearer-token resolution.

Tokens are HS256 JWTs carrying only the user id; ``authenticate`` reloads the
user row on every call so role changes and deletions apply immediately.
"""
import logging
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storerating.core.config import Settings
from storerating.core.errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from storerating.core.roles import Role
from storerating.core.security import (
    ACCESS_TOKEN_TYPE,
    create_access_token,
    decode_token,
    hash_password,
    verify_password,
)
from storerating.core.validators import (
    check_address,
    check_email,
    check_name,
    check_password,
    ensure_valid,
    normalize_email,
)
from storerating.models.user import User


logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == normalize_email(email)).first()


def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def create_account(
    db: Session,
    name: str,
    email: str,
    password: str,
    address: Optional[str],
    role: Role,
    config: Optional[Settings] = None,
) -> User:
    """Validate and persist a user; shared by self-registration and admin creation."""
    ensure_valid(check_name(name), check_email(email), check_password(password), check_address(address))
    email = normalize_email(email)

    if get_user_by_email(db, email):
        raise ConflictError("User with this email already exists")

    user = User(
        name=name,
        email=email,
        address=address or "",
        password_hash=hash_password(password, config),
        role=role.value,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("User with this email already exists")
    db.refresh(user)
    logger.info("User created id=%s role=%s", user.id, user.role)
    return user


def register(
    db: Session,
    name: str,
    email: str,
    password: str,
    address: Optional[str],
    config: Optional[Settings] = None,
) -> Tuple[User, str]:
    # Self-registration always yields the plain user role
    user = create_account(db, name, email, password, address, Role.user, config)
    return user, create_access_token(user.id, config)


def login(db: Session, email: str, password: str, config: Optional[Settings] = None) -> Tuple[User, str]:
    user = get_user_by_email(db, email)
    if not user or not verify_password(password or "", user.password_hash, config):
        logger.warning("Failed login for email=%s", normalize_email(email))
        raise AuthenticationError(INVALID_CREDENTIALS)
    return user, create_access_token(user.id, config)


def authenticate(db: Session, token: Optional[str], config: Optional[Settings] = None) -> User:
    if not token:
        raise AuthenticationError("Access token required")
    payload = decode_token(token, config)
    if not payload or payload.get("type") != ACCESS_TOKEN_TYPE:
        raise AuthenticationError("Invalid or expired token")
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise AuthenticationError("Invalid or expired token")

    user = get_user_by_id(db, user_id)
    if not user:
        raise AuthenticationError("User not found")
    return user


def change_password(
    db: Session,
    user_id: int,
    current_password: str,
    new_password: str,
    config: Optional[Settings] = None,
) -> None:
    user = get_user_by_id(db, user_id)
    if not user:
        raise NotFoundError("User not found")

    ensure_valid(check_password(new_password, field="new_password"))
    if not verify_password(current_password or "", user.password_hash, config):
        raise ValidationError(
            "Current password is incorrect",
            details=[{"field": "current_password", "message": "Current password is incorrect"}],
        )

    user.password_hash = hash_password(new_password, config)
    db.commit()
    logger.info("Password changed for user id=%s", user.id)


def update_profile(db: Session, user: User, name: Optional[str] = None, address: Optional[str] = None) -> User:
    if name is None and address is None:
        raise ValidationError("No fields to update")

    checks = []
    if name is not None:
        checks.append(check_name(name))
    if address is not None:
        checks.append(check_address(address))
    ensure_valid(*checks)

    if name is not None:
        user.name = name
    if address is not None:
        user.address = address
    db.commit()
    db.refresh(user)
    return user
