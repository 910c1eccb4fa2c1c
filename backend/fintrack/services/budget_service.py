# backend/fintrack/services/budget_service.py
"""
Budget lifecycle and spending progress.

Progress is recomputed from live transactions on every call: spent is the
sum of the owner's transactions between the start date and the effective
end date (the stored end date, or today when none is stored), limited to
the budget's category unless it is an overall budget.
"""

import datetime as dt
from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import func
from sqlalchemy.orm import Session

from backend.fintrack.exceptions import BusinessRuleError
from backend.fintrack.logging_config import get_logger
from backend.fintrack.models.budget_model import Budget, BudgetPeriod
from backend.fintrack.models.transaction_model import Transaction
from backend.fintrack.models.user_model import User
from backend.fintrack.ownership import owned_query
from backend.fintrack.validation import (
    check_date_range,
    compute_end_date,
    require_any_field,
    resolve_category_for_write,
)

logger = get_logger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
OVERALL_BUDGET_NAME = "Overall Budget"


@dataclass(frozen=True)
class BudgetProgress:
    limit: Decimal
    spent: Decimal
    remaining: Decimal
    progress_percent: Decimal
    is_over_budget: bool

    def as_dict(self) -> dict:
        return asdict(self)


def to_money(value) -> Decimal:
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        # str() first so a float coming back from the driver is not expanded bit by bit
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def calculate_progress(limit, spent) -> BudgetProgress:
    limit = to_money(limit)
    spent = to_money(spent)

    remaining = max(limit - spent, ZERO)
    if limit > 0:
        progress_percent = (spent / limit * 100).quantize(CENT, rounding=ROUND_HALF_UP)
    else:
        progress_percent = ZERO

    return BudgetProgress(
        limit=limit,
        spent=spent,
        remaining=remaining,
        progress_percent=progress_percent,
        is_over_budget=spent > limit,
    )


def local_today(timezone_name: Optional[str] = None) -> dt.date:
    tz = dt.timezone.utc
    if timezone_name:
        try:
            tz = ZoneInfo(timezone_name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("unknown_user_timezone", timezone=timezone_name)
    return dt.datetime.now(tz).date()


def effective_end_date(budget: Budget, today: Optional[dt.date] = None) -> dt.date:
    if budget.end_date is not None:
        return budget.end_date
    if today is not None:
        return today
    return local_today(budget.user.timezone if budget.user is not None else None)


def sum_spent(db: Session, budget: Budget, end_date: dt.date) -> Decimal:
    query = db.query(func.coalesce(func.sum(Transaction.amount), 0)).filter(
        Transaction.user_id == budget.user_id,
        Transaction.deleted_at.is_(None),
        Transaction.date >= budget.start_date,
        Transaction.date <= end_date,
    )
    # An overall budget (no category) counts every transaction in range
    if budget.category_id is not None:
        query = query.filter(Transaction.category_id == budget.category_id)
    return to_money(query.scalar())


def get_budget_progress(db: Session, budget: Budget, today: Optional[dt.date] = None) -> BudgetProgress:
    owner = db.get(User, budget.user_id) if budget.user_id is not None else None
    if owner is None:
        # Kept as a zero-spend fallback rather than an error; the warning makes
        # the broken row visible.
        logger.warning("budget_owner_unresolved", budget_id=budget.id, user_id=budget.user_id)
        return calculate_progress(budget.limit, ZERO)

    spent = sum_spent(db, budget, effective_end_date(budget, today))
    return calculate_progress(budget.limit, spent)


def category_summary(budget: Budget) -> dict:
    category = budget.category
    if category is None:
        return {"id": None, "name": OVERALL_BUDGET_NAME, "icon": None, "is_deleted": False}
    return {
        "id": category.id,
        "name": category.name,
        "icon": category.icon,
        "is_deleted": category.is_deleted,
    }


def serialize_budget(budget: Budget, progress: BudgetProgress) -> dict:
    return {
        "id": budget.id,
        "user_id": budget.user_id,
        "category_id": budget.category_id,
        "category": category_summary(budget),
        "limit": to_money(budget.limit),
        "period": budget.period,
        "range": {"start": budget.start_date, "end": budget.end_date},
        "stats": progress.as_dict(),
        "created_at": budget.created_at,
        "updated_at": budget.updated_at,
    }


# ---------------- CRUD ----------------

def list_budgets(db: Session, user_id: int) -> list[Budget]:
    return owned_query(db, Budget, user_id).order_by(Budget.id.desc()).all()


def create_budget(db: Session, user: User, data: dict) -> Budget:
    category_id = data.get("category_id")
    if category_id is not None:
        resolve_category_for_write(db, user.id, category_id)

    period = BudgetPeriod(data["period"])
    start_date = data["start_date"]
    end_date = data.get("end_date") or compute_end_date(start_date, period)
    check_date_range(start_date, end_date)

    budget = Budget(
        user_id=user.id,
        category_id=category_id,
        limit=data["limit"],
        period=period,
        start_date=start_date,
        end_date=end_date,
    )
    db.add(budget)
    db.commit()
    db.refresh(budget)

    logger.info("budget_created", budget_id=budget.id, user_id=user.id, category_id=category_id)
    return budget


def update_budget(db: Session, budget: Budget, payload: dict) -> Budget:
    if "category_id" in payload:
        raise BusinessRuleError(
            "budget_category_immutable",
            "The category of a budget cannot be changed after creation.",
            {"budget_id": budget.id},
        )

    changes = require_any_field("budget", payload)

    start_date = changes.get("start_date", budget.start_date)
    period = changes.get("period", budget.period)
    if changes.get("end_date") is None and ("start_date" in changes or "period" in changes):
        changes["end_date"] = compute_end_date(start_date, period)

    check_date_range(start_date, changes.get("end_date", budget.end_date))

    for key, value in changes.items():
        setattr(budget, key, value)
    db.commit()
    db.refresh(budget)

    logger.info("budget_updated", budget_id=budget.id, fields=sorted(changes))
    return budget


def delete_budget(db: Session, budget: Budget) -> None:
    budget_id, user_id = budget.id, budget.user_id
    db.delete(budget)
    db.commit()
    logger.info("budget_deleted", budget_id=budget_id, user_id=user_id)
