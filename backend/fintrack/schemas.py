# backend/fintrack/schemas.py
import datetime as dt
from decimal import Decimal
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field, field_validator

from backend.fintrack.models.budget_model import BudgetPeriod

MAX_AMOUNT = Decimal("99999999.99")


class PayloadModel(BaseModel):
    """Base for request bodies.

    Ownership is always taken from the authenticated user, so ``user_id``
    (and ``id``) in a request body is rejected outright instead of ignored.
    """

    id: Any = Field(default=None, exclude=True)
    user_id: Any = Field(default=None, exclude=True)

    @field_validator("id", "user_id")
    @classmethod
    def _prohibited(cls, v, info):
        raise ValueError(f"The {info.field_name} field is prohibited.")

    def provided(self) -> dict:
        """Fields the client actually sent, minus the prohibited ones."""
        return self.model_dump(include=self.model_fields_set - {"id", "user_id"})


def _check_timezone(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    try:
        ZoneInfo(v)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError("The timezone must be a valid IANA zone name.")
    return v


# ---------------- Users & auth ----------------

class UserOut(BaseModel):
    id: int
    name: str
    email: str
    timezone: Optional[str] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    model_config = ConfigDict(from_attributes=True)


class RegisterIn(PayloadModel):
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(min_length=8, max_length=72)
    password_confirmation: str
    timezone: Optional[str] = Field(default=None, max_length=64)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("The name field is required.")
        return v

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("password_confirmation")
    @classmethod
    def _passwords_match(cls, v: str, info) -> str:
        if "password" in info.data and v != info.data["password"]:
            raise ValueError("The password confirmation does not match.")
        return v

    @field_validator("timezone")
    @classmethod
    def _valid_timezone(cls, v):
        return _check_timezone(v)


class LoginIn(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.lower()


class UserUpdateIn(PayloadModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    timezone: Optional[str] = Field(default=None, max_length=64)
    password: Optional[str] = Field(default=None, min_length=8, max_length=72)
    password_confirmation: Optional[str] = None

    @field_validator("name", "email", "password")
    @classmethod
    def _not_null(cls, v, info):
        if v is None:
            raise ValueError(f"The {info.field_name} field cannot be null.")
        return v

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v):
        return v.lower()

    @field_validator("password_confirmation")
    @classmethod
    def _passwords_match(cls, v, info):
        if info.data.get("password") is not None and v != info.data["password"]:
            raise ValueError("The password confirmation does not match.")
        return v

    @field_validator("timezone")
    @classmethod
    def _valid_timezone(cls, v):
        return _check_timezone(v)


class TokenOut(BaseModel):
    token: str
    token_type: str = "bearer"
    expires_at: dt.datetime
    expires_in: int


class AuthOut(TokenOut):
    user: UserOut


class MessageOut(BaseModel):
    message: str


# ---------------- Categories ----------------

class CategoryCreate(PayloadModel):
    name: str = Field(min_length=1, max_length=255)
    icon: Optional[str] = Field(default=None, max_length=255)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("The name field is required.")
        return v


class CategoryUpdate(PayloadModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    icon: Optional[str] = Field(default=None, max_length=255)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v):
        if v is None:
            raise ValueError("The name field cannot be null.")
        v = v.strip()
        if not v:
            raise ValueError("The name field is required.")
        return v


class CategoryOut(BaseModel):
    id: int
    user_id: int
    name: str
    icon: Optional[str] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    model_config = ConfigDict(from_attributes=True)


class CategoryRef(BaseModel):
    """Category as embedded in transaction and budget responses."""

    id: Optional[int] = None
    name: str
    icon: Optional[str] = None
    is_deleted: bool = False


# ---------------- Transactions ----------------

class TransactionCreate(PayloadModel):
    category_id: Optional[int] = None
    amount: Decimal = Field(gt=0, le=MAX_AMOUNT, max_digits=10, decimal_places=2)
    description: Optional[str] = Field(default=None, max_length=255)
    date: dt.date


class TransactionUpdate(PayloadModel):
    category_id: Optional[int] = None
    amount: Optional[Decimal] = Field(default=None, gt=0, le=MAX_AMOUNT, max_digits=10, decimal_places=2)
    description: Optional[str] = Field(default=None, max_length=255)
    date: Optional[dt.date] = None

    @field_validator("amount", "date")
    @classmethod
    def _not_null(cls, v, info):
        if v is None:
            raise ValueError(f"The {info.field_name} field cannot be null.")
        return v


class TransactionOut(BaseModel):
    id: int
    user_id: int
    category_id: Optional[int] = None
    category: Optional[CategoryRef] = None
    amount: Decimal
    description: Optional[str] = None
    date: dt.date
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None


# ---------------- Budgets ----------------

class BudgetCreate(PayloadModel):
    category_id: Optional[int] = None
    # "amount" is accepted as an alias for "limit"
    limit: Decimal = Field(
        validation_alias=AliasChoices("limit", "amount"),
        ge=0,
        le=MAX_AMOUNT,
        max_digits=10,
        decimal_places=2,
    )
    period: BudgetPeriod
    start_date: dt.date
    end_date: Optional[dt.date] = None

    @field_validator("end_date")
    @classmethod
    def _end_after_start(cls, v, info):
        start = info.data.get("start_date")
        if v is not None and start is not None and v < start:
            raise ValueError("The end date must be a date after or equal to start date.")
        return v


class BudgetUpdate(PayloadModel):
    # Present only so an attempt to change it can be detected and refused
    category_id: Optional[int] = None
    limit: Optional[Decimal] = Field(
        default=None,
        validation_alias=AliasChoices("limit", "amount"),
        ge=0,
        le=MAX_AMOUNT,
        max_digits=10,
        decimal_places=2,
    )
    period: Optional[BudgetPeriod] = None
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None

    @field_validator("limit", "period", "start_date")
    @classmethod
    def _not_null(cls, v, info):
        if v is None:
            raise ValueError(f"The {info.field_name} field cannot be null.")
        return v

    @field_validator("end_date")
    @classmethod
    def _end_after_start(cls, v, info):
        start = info.data.get("start_date")
        if v is not None and start is not None and v < start:
            raise ValueError("The end date must be a date after or equal to start date.")
        return v


class DateRangeOut(BaseModel):
    start: dt.date
    end: Optional[dt.date] = None


class BudgetStatsOut(BaseModel):
    limit: Decimal
    spent: Decimal
    remaining: Decimal
    progress_percent: Decimal
    is_over_budget: bool


class BudgetOut(BaseModel):
    id: int
    user_id: int
    category_id: Optional[int] = None
    category: CategoryRef
    limit: Decimal
    period: BudgetPeriod
    range: DateRangeOut
    stats: BudgetStatsOut
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None
