# backend/fintrack/api/auth.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backend.fintrack.db import get_db
from backend.fintrack.exceptions import AuthenticationError, ValidationFailedError
from backend.fintrack.logging_config import get_logger
from backend.fintrack.models.token_model import AccessToken
from backend.fintrack.models.user_model import User
from backend.fintrack.rate_limit import limit_by_client
from backend.fintrack.schemas import (
    AuthOut,
    LoginIn,
    MessageOut,
    RegisterIn,
    TokenOut,
    UserOut,
    UserUpdateIn,
)
from backend.fintrack.security import (
    get_current_token,
    hash_password,
    issue_token,
    limit_by_user,
    revoke_all_tokens,
    revoke_token,
    verify_password,
)
from backend.fintrack.validation import require_any_field

router = APIRouter()
logger = get_logger(__name__)


def _email_taken(db: Session, email: str, ignore_id=None) -> bool:
    query = db.query(User).filter(User.email == email)
    if ignore_id is not None:
        query = query.filter(User.id != ignore_id)
    return query.first() is not None


def _auth_payload(user: User, issued) -> dict:
    return {"user": UserOut.model_validate(user), **issued.as_dict()}


@router.post("/register", response_model=AuthOut, status_code=201, dependencies=[Depends(limit_by_client)])
def register(payload: RegisterIn, db: Session = Depends(get_db)):
    if _email_taken(db, payload.email):
        raise ValidationFailedError.for_field("email", "The email has already been taken.")

    user = User(
        name=payload.name,
        email=payload.email,
        password_hash=hash_password(payload.password),
        timezone=payload.timezone,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("user_registered", user_id=user.id)

    return _auth_payload(user, issue_token(db, user))


@router.post("/login", response_model=AuthOut, dependencies=[Depends(limit_by_client)])
def login(payload: LoginIn, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == payload.email).first()
    if user is None or user.is_deleted or not verify_password(payload.password, user.password_hash):
        logger.warning("login_failed", email=payload.email)
        raise AuthenticationError("Invalid credentials")

    # One active session per login: earlier tokens are revoked
    revoke_all_tokens(db, user.id)
    return _auth_payload(user, issue_token(db, user))


@router.post("/logout", response_model=MessageOut, dependencies=[Depends(limit_by_user)])
def logout(token: AccessToken = Depends(get_current_token), db: Session = Depends(get_db)):
    revoke_token(db, token)
    return {"message": "Logged out successfully"}


@router.post("/refresh", response_model=TokenOut, dependencies=[Depends(limit_by_user)])
def refresh(token: AccessToken = Depends(get_current_token), db: Session = Depends(get_db)):
    user = token.user
    revoke_token(db, token)
    return issue_token(db, user, name="refresh-token").as_dict()


@router.get("/user", response_model=UserOut)
def profile(user: User = Depends(limit_by_user)):
    return user


@router.api_route("/user", methods=["PUT", "PATCH"], response_model=UserOut)
def update_profile(payload: UserUpdateIn, user: User = Depends(limit_by_user), db: Session = Depends(get_db)):
    changes = require_any_field("user", payload.provided())

    if "email" in changes and _email_taken(db, changes["email"], ignore_id=user.id):
        raise ValidationFailedError.for_field("email", "The email has already been taken.")

    if "password" in changes:
        if payload.password_confirmation != changes["password"]:
            raise ValidationFailedError.for_field(
                "password_confirmation", "The password confirmation does not match."
            )
        user.password_hash = hash_password(changes.pop("password"))

    for key, value in changes.items():
        setattr(user, key, value)
    db.commit()
    db.refresh(user)

    logger.info("profile_updated", user_id=user.id, fields=sorted(changes))
    return user


@router.delete("/user", response_model=MessageOut)
def delete_account(user: User = Depends(limit_by_user), db: Session = Depends(get_db)):
    # Soft delete only: owned categories, transactions and budgets stay in place
    revoke_all_tokens(db, user.id)
    user.soft_delete()
    db.commit()
    logger.info("account_deleted", user_id=user.id)
    return {"message": "Account deleted successfully"}
