"""Email/password accounts and cookie sessions.

``current_user`` is the request-time view of the auth state: it resolves the
session cookie to a user, or ``None`` for anonymous visitors.
"""
import logging
import secrets
from typing import Optional

import bcrypt
from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from . import crud, models
from .config import get_settings
from .db import get_db
from .schemas import MAX_PASSWORD_BYTES

logger = logging.getLogger(__name__)


class AuthError(Exception):
    pass


def password_too_long(password: str) -> bool:
    return len(password.encode("utf-8")) > MAX_PASSWORD_BYTES


def hash_password(password: str) -> str:
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not hashed_password or password_too_long(plain_password):
        return False
    return bcrypt.checkpw(
        plain_password.encode("utf-8"), hashed_password.encode("utf-8")
    )


def sign_up(db: Session, email: str, password: str, name: str):
    if password_too_long(password):
        raise AuthError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    email = email.strip().lower()
    if crud.get_user_by_email(db, email):
        raise AuthError("An account with this email already exists")
    user = crud.save_user(
        db, name=name.strip(), email=email, password_hash=hash_password(password)
    )
    logger.info("created account %s", user.id)
    return user


def sign_in(db: Session, email: str, password: str) -> str:
    """Return a new session token for valid credentials."""
    user = crud.get_user_by_email(db, email.strip().lower())
    if user is None or not verify_password(password, user.password_hash):
        raise AuthError("Invalid email or password")
    token = secrets.token_hex(32)
    db.add(models.UserSession(token=token, user_id=user.id))
    db.commit()
    return token


def sign_out(db: Session, token: Optional[str]) -> None:
    if not token:
        return
    db.query(models.UserSession).filter(models.UserSession.token == token).delete()
    db.commit()


def user_for_token(db: Session, token: Optional[str]):
    if not token:
        return None
    s = db.get(models.UserSession, token)
    if s is None:
        return None
    return crud.get_user(db, s.user_id)


def current_user(request: Request, db: Session = Depends(get_db)):
    token = request.cookies.get(get_settings().SESSION_COOKIE)
    return user_for_token(db, token)


def require_user(user=Depends(current_user)):
    if user is None:
        raise HTTPException(status_code=401, detail="Please login first")
    return user
