# backend/fintrack/validation.py
"""
Entity rules that need the database or cross several fields.

Per-field shape (types, lengths, amount precision) is handled by the
pydantic schemas; what is left here runs right before a row is written.
"""

import datetime as dt
from typing import Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy.orm import Session

from backend.fintrack.exceptions import ValidationFailedError
from backend.fintrack.models.budget_model import BudgetPeriod
from backend.fintrack.models.category_model import Category

# Fields a client may change on update, per entity. Everything else
# (id, user_id, timestamps, budget category) is server-controlled.
MUTABLE_FIELDS = {
    "user": ("name", "email", "timezone", "password"),
    "category": ("name", "icon"),
    "transaction": ("category_id", "amount", "description", "date"),
    "budget": ("limit", "period", "start_date", "end_date"),
}

PERIOD_LENGTHS = {
    BudgetPeriod.WEEKLY: relativedelta(weeks=1),
    BudgetPeriod.MONTHLY: relativedelta(months=1),
    BudgetPeriod.YEARLY: relativedelta(years=1),
}


def mutable_fields(entity: str, payload: dict) -> dict:
    allowed = MUTABLE_FIELDS[entity]
    return {key: value for key, value in payload.items() if key in allowed}


def require_any_field(entity: str, payload: dict) -> dict:
    changes = mutable_fields(entity, payload)
    if not changes:
        raise ValidationFailedError.for_field(
            "payload", "At least one updatable field must be provided."
        )
    return changes


def compute_end_date(start_date: dt.date, period) -> dt.date:
    """Last day of the period that starts on ``start_date``.

    Months and years are calendar-aware: Jan 31 + 1 month lands on the
    last day of February, so the budget ends the day before.
    """
    period = BudgetPeriod(period)
    return start_date + PERIOD_LENGTHS[period] - relativedelta(days=1)


def check_date_range(start_date: dt.date, end_date: Optional[dt.date]) -> None:
    if end_date is not None and end_date < start_date:
        raise ValidationFailedError.for_field(
            "end_date", "The end date must be a date after or equal to start date."
        )


def resolve_category_for_write(db: Session, user_id: int, category_id: int) -> Category:
    """Category a new reference may point to: it must exist, be the user's and be live.

    The lookup is scoped by owner, so another user's id reads exactly like an
    id that does not exist.
    """
    category = (
        db.query(Category)
        .filter(Category.id == category_id, Category.user_id == user_id)
        .first()
    )
    if category is None:
        raise ValidationFailedError.for_field("category_id", "The selected category_id is invalid.")
    if category.is_deleted:
        raise ValidationFailedError.for_field(
            "category_id", "The selected category has been deleted and cannot be used."
        )
    return category


def find_category_for_display(db: Session, user_id: int, category_id: Optional[int]) -> Optional[Category]:
    """Category referenced by an existing row, soft-deleted ones included."""
    if category_id is None:
        return None
    return (
        db.query(Category)
        .filter(Category.id == category_id, Category.user_id == user_id)
        .first()
    )


def check_category_name_available(
    db: Session, user_id: int, name: str, ignore_id: Optional[int] = None
) -> None:
    query = db.query(Category).filter(
        Category.user_id == user_id,
        Category.name == name,
        Category.deleted_at.is_(None),
    )
    if ignore_id is not None:
        query = query.filter(Category.id != ignore_id)
    if query.first() is not None:
        raise ValidationFailedError.for_field("name", "The name has already been taken.")
