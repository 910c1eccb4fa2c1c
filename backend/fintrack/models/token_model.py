# backend/fintrack/models/token_model.py
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from backend.fintrack.db import Base, utcnow


class AccessToken(Base):
    """Server-side record of an issued JWT, so tokens can be revoked before expiry."""

    __tablename__ = "access_tokens"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", name="fk_access_tokens_user_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    jti = Column(String(64), unique=True, index=True, nullable=False)
    name = Column(String(64), nullable=False, default="api-token")
    expires_at = Column(DateTime, nullable=False, index=True)
    last_used_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    user = relationship("User", back_populates="tokens")
