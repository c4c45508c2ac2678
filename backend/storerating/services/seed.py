import logging
from typing import Optional

from sqlalchemy.orm import Session

from storerating.core.config import Settings
from storerating.core.roles import Role
from storerating.core.security import hash_password
from storerating.core.validators import normalize_email
from storerating.models.user import User


logger = logging.getLogger(__name__)


def ensure_default_admin(db: Session, settings: Settings) -> Optional[User]:
    """Create the bootstrap admin when the database has no admin at all.

    An existing account that already uses the configured email is left as it is:
    its role and password are never touched. Promote it with ``create_admin.py``.
    """
    if db.query(User).filter(User.role == Role.admin.value).first():
        return None

    email = normalize_email(settings.default_admin_email)
    if db.query(User).filter(User.email == email).first():
        logger.warning("No admin exists and %s belongs to a non-admin account; skipping default admin", email)
        return None

    admin = User(
        name=settings.default_admin_name,
        email=email,
        address="",
        password_hash=hash_password(settings.default_admin_password, settings),
        role=Role.admin.value,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    logger.info("Default admin created email=%s", email)
    return admin
