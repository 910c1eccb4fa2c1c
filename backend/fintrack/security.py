# backend/fintrack/security.py
"""
Password hashing and bearer-token authentication.

Tokens are HS256 JWTs. Each one also has an ``access_tokens`` row keyed by
its ``jti`` so logout/refresh/login can revoke it before it expires.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
from uuid import uuid4

import bcrypt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from backend.fintrack.config import get_settings
from backend.fintrack.db import get_db, utcnow
from backend.fintrack.exceptions import AuthenticationError
from backend.fintrack.logging_config import get_logger
from backend.fintrack.models.token_model import AccessToken
from backend.fintrack.models.user_model import User
from backend.fintrack.rate_limit import api_limiter, record_failed_authentication

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


# ---------------- Passwords ----------------

def _password_bytes(password: str) -> bytes:
    # bcrypt only looks at the first 72 bytes and newer releases refuse longer input
    return password.encode("utf-8")[:72]


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=get_settings().bcrypt_rounds)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        return False


# ---------------- Tokens ----------------

@dataclass
class IssuedToken:
    token: str
    record: AccessToken
    expires_at: datetime
    expires_in: int

    def as_dict(self) -> dict:
        return {
            "token": self.token,
            "token_type": "bearer",
            "expires_at": self.expires_at,
            "expires_in": self.expires_in,
        }


def issue_token(
    db: Session, user: User, name: str = "api-token", ttl_minutes: Optional[int] = None
) -> IssuedToken:
    settings = get_settings()
    ttl = settings.token_ttl_minutes if ttl_minutes is None else ttl_minutes
    issued_at = utcnow()
    expires_at = issued_at + timedelta(minutes=ttl)
    jti = uuid4().hex

    claims = {"sub": str(user.id), "jti": jti, "iat": issued_at, "exp": expires_at}
    token = jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)

    record = AccessToken(user_id=user.id, jti=jti, name=name, expires_at=expires_at)
    db.add(record)
    db.commit()
    db.refresh(record)

    logger.info("token_issued", user_id=user.id, token_id=record.id, expires_at=expires_at.isoformat())
    return IssuedToken(token=token, record=record, expires_at=expires_at, expires_in=ttl * 60)


def revoke_token(db: Session, record: AccessToken) -> None:
    db.delete(record)
    db.commit()


def revoke_all_tokens(db: Session, user_id: int) -> int:
    count = db.query(AccessToken).filter(AccessToken.user_id == user_id).delete(synchronize_session=False)
    db.commit()
    return count


def decode_token(token: str) -> dict:
    settings = get_settings()
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise AuthenticationError(context={"reason": str(exc)}) from exc


# ---------------- Dependencies ----------------

def _authenticate(
    request: Request, credentials: Optional[HTTPAuthorizationCredentials], db: Session
) -> AccessToken:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError()

    claims = decode_token(credentials.credentials)

    record = db.query(AccessToken).filter(AccessToken.jti == claims.get("jti")).first()
    if record is None:
        raise AuthenticationError(context={"reason": "revoked"})
    if record.expires_at <= utcnow():
        raise AuthenticationError(context={"reason": "expired"})

    user = db.get(User, record.user_id)
    if user is None or user.is_deleted or str(user.id) != claims.get("sub"):
        raise AuthenticationError(context={"reason": "user_unavailable"})

    record.last_used_at = utcnow()
    db.commit()

    request.state.user_id = user.id
    return record


def get_current_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> AccessToken:
    try:
        return _authenticate(request, credentials, db)
    except AuthenticationError:
        # Bad tokens never reach the per-user limit, so they are counted per client
        record_failed_authentication(request)
        raise


def get_current_user(token: AccessToken = Depends(get_current_token)) -> User:
    return token.user


def limit_by_user(user: User = Depends(get_current_user)) -> User:
    api_limiter.hit(f"user:{user.id}")
    return user
