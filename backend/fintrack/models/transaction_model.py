# backend/fintrack/models/transaction_model.py
from decimal import Decimal, InvalidOperation

from sqlalchemy import Column, Date, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import relationship, validates

from backend.fintrack.db import Base, SoftDeleteMixin, TimestampMixin
from backend.fintrack.exceptions import ValidationFailedError


class Transaction(SoftDeleteMixin, TimestampMixin, Base):
    __tablename__ = "transactions"
    __table_args__ = (Index("idx_transactions_user_date", "user_id", "date"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", name="fk_transactions_user_id", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=False,
        index=True,
    )
    # No foreign key: the reference must survive a hard-deleted category.
    # Ownership and existence are checked when the transaction is written.
    category_id = Column(Integer, nullable=True, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    description = Column(String(255), nullable=True)
    date = Column(Date, nullable=False)

    user = relationship("User", back_populates="transactions")

    @validates("amount")
    def _validate_amount(self, key, value):
        try:
            amount = Decimal(str(value))
        except (InvalidOperation, TypeError):
            raise ValidationFailedError.for_field("amount", "The amount must be a number.")
        if amount <= 0:
            raise ValidationFailedError.for_field("amount", "The amount must be at least 0.01.")
        return amount.quantize(Decimal("0.01"))

    def __repr__(self):
        return f"<Transaction id={self.id} user_id={self.user_id} amount={self.amount}>"
