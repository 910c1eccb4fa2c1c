# backend/fintrack/models/user_model.py
from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship

from backend.fintrack.db import Base, SoftDeleteMixin, TimestampMixin


class User(SoftDeleteMixin, TimestampMixin, Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    timezone = Column(String(64), nullable=True)

    # Hard-deleting a user removes everything it owns; the database enforces
    # the same rule through ON DELETE CASCADE.
    categories = relationship(
        "Category", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
    transactions = relationship(
        "Transaction", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
    budgets = relationship(
        "Budget", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
    tokens = relationship(
        "AccessToken", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self):
        return f"<User id={self.id} email={self.email!r}>"
