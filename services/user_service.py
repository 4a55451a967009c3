# services/user_service.py
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError

from auth.token import create_access_token
from auth.utils import hash_password, verify_password
from db import SessionLocal
from models import User
from services.car_service import ValidationError

logger = logging.getLogger(__name__)


class AuthError(Exception):
    """Bad credentials or a duplicate account."""


def _normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def _require_strings(**values) -> None:
    bad = sorted(k for k, v in values.items() if v is not None and not isinstance(v, str))
    if bad:
        raise ValidationError(f"{', '.join(bad)} must be text")


def register_user(name: Optional[str], email: Optional[str], password: Optional[str]) -> User:
    """
    Create an account. Emails are unique after trimming and lower-casing;
    the unique index backs up the lookup when two signups race.
    """
    _require_strings(name=name, email=email, password=password)
    email = _normalize_email(email)
    if not name or not email or not password:
        raise ValidationError("Name, email and password are required")

    with SessionLocal() as db:
        if db.query(User).filter(User.email == email).first():
            raise AuthError("User already exists")

        user = User(name=name, email=email, password_hash=hash_password(password))
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise AuthError("User already exists")
        db.refresh(user)
        logger.info("Registered user %s", user.id)
        return user


def authenticate(email: Optional[str], password: Optional[str]) -> tuple[str, User]:
    """Return (access_token, user) for valid credentials."""
    _require_strings(email=email, password=password)
    email = _normalize_email(email)
    if not email or not password:
        raise ValidationError("Email and password are required")

    with SessionLocal() as db:
        user = db.query(User).filter(User.email == email).first()

    if not user:
        raise AuthError("User not found")
    if not verify_password(password, user.password_hash):
        raise AuthError("Invalid password")

    return create_access_token({"sub": str(user.id)}), user
