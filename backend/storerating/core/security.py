from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Optional

import jwt
from passlib.context import CryptContext

from storerating.core.config import Settings, settings as default_settings


ACCESS_TOKEN_TYPE = "access"


@lru_cache
def _password_context(rounds: int) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


def password_context(config: Optional[Settings] = None) -> CryptContext:
    config = config or default_settings
    return _password_context(config.bcrypt_rounds)


def hash_password(password: str, config: Optional[Settings] = None) -> str:
    return password_context(config).hash(password)


def verify_password(password: str, hashed_password: str, config: Optional[Settings] = None) -> bool:
    if not hashed_password:
        return False
    try:
        return password_context(config).verify(password, hashed_password)
    except ValueError:
        # Unrecognised or corrupt hash in the row
        return False


def create_token(
    subject: str,
    expires_minutes: int,
    token_type: str = ACCESS_TOKEN_TYPE,
    config: Optional[Settings] = None,
) -> str:
    config = config or default_settings
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": subject,
        "type": token_type,
        "exp": now + timedelta(minutes=expires_minutes),
        "iat": now,
    }
    return jwt.encode(payload, config.secret_key, algorithm=config.jwt_algorithm)


def create_access_token(user_id: int, config: Optional[Settings] = None) -> str:
    config = config or default_settings
    return create_token(str(user_id), config.access_token_expire_minutes, token_type=ACCESS_TOKEN_TYPE, config=config)


def decode_token(token: str, config: Optional[Settings] = None) -> Optional[dict[str, Any]]:
    """Return the verified payload, or None when the token is malformed, expired or badly signed."""
    config = config or default_settings
    try:
        return jwt.decode(token, config.secret_key, algorithms=[config.jwt_algorithm])
    except jwt.PyJWTError:
        return None
