# backend/fintrack/models/budget_model.py
import enum
from decimal import Decimal, InvalidOperation

from sqlalchemy import Column, Date, Enum, ForeignKey, Integer, Numeric
from sqlalchemy.orm import relationship, validates

from backend.fintrack.db import Base, TimestampMixin
from backend.fintrack.exceptions import ValidationFailedError


class BudgetPeriod(str, enum.Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class Budget(TimestampMixin, Base):
    __tablename__ = "budgets"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", name="fk_budgets_user_id", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=False,
        index=True,
    )
    # NULL means an overall budget; a hard-deleted category demotes the budget to one
    category_id = Column(
        Integer,
        ForeignKey("categories.id", name="fk_budgets_category_id", ondelete="SET NULL", onupdate="CASCADE"),
        nullable=True,
        index=True,
    )
    limit = Column(Numeric(10, 2), nullable=False)
    period = Column(
        Enum(
            BudgetPeriod,
            name="budget_period",
            native_enum=False,
            values_callable=lambda members: [m.value for m in members],
        ),
        nullable=False,
        default=BudgetPeriod.MONTHLY,
    )
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)

    user = relationship("User", back_populates="budgets")
    category = relationship("Category")

    @validates("limit")
    def _validate_limit(self, key, value):
        try:
            limit = Decimal(str(value))
        except (InvalidOperation, TypeError):
            raise ValidationFailedError.for_field("limit", "The limit must be a number.")
        if limit < 0:
            raise ValidationFailedError.for_field("limit", "The limit must be at least 0.")
        return limit.quantize(Decimal("0.01"))

    def __repr__(self):
        return f"<Budget id={self.id} user_id={self.user_id} limit={self.limit} period={self.period}>"
