# backend/fintrack/models/category_model.py
from sqlalchemy import Column, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from backend.fintrack.db import Base, SoftDeleteMixin, TimestampMixin


class Category(SoftDeleteMixin, TimestampMixin, Base):
    __tablename__ = "categories"
    # AUTOINCREMENT on SQLite: ids of hard-deleted categories are never handed out again,
    # so dangling transaction references cannot resolve to a newer category.
    __table_args__ = (
        Index("idx_categories_user_name", "user_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", name="fk_categories_user_id", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(255), nullable=False)
    icon = Column(String(255), nullable=True)

    user = relationship("User", back_populates="categories")

    def __repr__(self):
        return f"<Category id={self.id} user_id={self.user_id} name={self.name!r}>"
