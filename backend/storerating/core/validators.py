"""
Field rules shared by registration, admin user/store creation and profile updates.

Each ``check_*`` function returns a list of ``{"field", "message"}`` entries
(empty when the value is valid) so several fields can be reported together.
"""
import re
from typing import Any, Dict, List, Optional

from email_validator import EmailNotValidError, validate_email

from storerating.core.errors import ValidationError


NAME_MIN_LENGTH = 20
NAME_MAX_LENGTH = 60
ADDRESS_MAX_LENGTH = 400
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 16
PASSWORD_SPECIAL_CHARACTERS = "!@#$%^&*"

_UPPERCASE_RE = re.compile(r"[A-Z]")
_SPECIAL_RE = re.compile("[" + re.escape(PASSWORD_SPECIAL_CHARACTERS) + "]")

FieldErrors = List[Dict[str, Any]]


def _error(field: str, message: str) -> Dict[str, Any]:
    return {"field": field, "message": message}


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def check_name(name: Optional[str], field: str = "name") -> FieldErrors:
    length = len(name or "")
    if length < NAME_MIN_LENGTH or length > NAME_MAX_LENGTH:
        return [_error(field, f"Name must be between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH} characters")]
    return []


def check_store_name(name: Optional[str], field: str = "name") -> FieldErrors:
    if not (name or "").strip():
        return [_error(field, "Store name is required")]
    if len(name) > 255:
        return [_error(field, "Store name must not exceed 255 characters")]
    return []


def check_email(email: Optional[str], field: str = "email") -> FieldErrors:
    try:
        validate_email(normalize_email(email), check_deliverability=False)
    except EmailNotValidError:
        return [_error(field, "Please provide a valid email address")]
    return []


def check_address(address: Optional[str], field: str = "address") -> FieldErrors:
    if address is not None and len(address) > ADDRESS_MAX_LENGTH:
        return [_error(field, f"Address must not exceed {ADDRESS_MAX_LENGTH} characters")]
    return []


def check_password(password: Optional[str], field: str = "password") -> FieldErrors:
    value = password or ""
    if (
        not PASSWORD_MIN_LENGTH <= len(value) <= PASSWORD_MAX_LENGTH
        or not _UPPERCASE_RE.search(value)
        or not _SPECIAL_RE.search(value)
    ):
        return [_error(
            field,
            f"Password must be {PASSWORD_MIN_LENGTH}-{PASSWORD_MAX_LENGTH} characters with at least "
            f"one uppercase letter and one special character ({PASSWORD_SPECIAL_CHARACTERS})",
        )]
    return []


def ensure_valid(*checks: FieldErrors) -> None:
    errors: FieldErrors = [entry for check in checks for entry in check]
    if errors:
        raise ValidationError("Validation failed", details=errors)
