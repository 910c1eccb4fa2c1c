# backend/fintrack/ownership.py
"""
Ownership guard.

Every category, transaction and budget belongs to exactly one user. Reads
and writes on a single row go through ``authorize``; listings are scoped in
the SQL itself with ``owned_query`` so rows of other users are never loaded.
"""

import enum
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Query, Session

from backend.fintrack.exceptions import ResourceNotFoundError, UnauthorizedAccessError
from backend.fintrack.logging_config import get_logger

logger = get_logger(__name__)


class DenyReason(str, enum.Enum):
    NOT_OWNER = "not_owner"
    OWNERSHIP_INDETERMINATE = "ownership_indeterminate"


@dataclass(frozen=True)
class OwnershipDecision:
    allowed: bool
    reason: Optional[DenyReason] = None

    @classmethod
    def allow(cls) -> "OwnershipDecision":
        return cls(True)

    @classmethod
    def deny(cls, reason: DenyReason) -> "OwnershipDecision":
        return cls(False, reason)


def check_ownership(acting_user_id: int, resource) -> OwnershipDecision:
    owner_id = getattr(resource, "user_id", None)
    if owner_id is None:
        return OwnershipDecision.deny(DenyReason.OWNERSHIP_INDETERMINATE)
    if owner_id != acting_user_id:
        return OwnershipDecision.deny(DenyReason.NOT_OWNER)
    return OwnershipDecision.allow()


def authorize(acting_user_id: int, resource, resource_type: str) -> None:
    """Raise UnauthorizedAccessError unless ``acting_user_id`` owns ``resource``."""
    decision = check_ownership(acting_user_id, resource)
    if not decision.allowed:
        logger.warning(
            "ownership_denied",
            resource_type=resource_type,
            resource_id=getattr(resource, "id", None),
            user_id=acting_user_id,
            reason=decision.reason.value,
        )
        raise UnauthorizedAccessError(resource_type, getattr(resource, "id", None), decision.reason.value)


def owned_query(db: Session, model, user_id: int, with_deleted: bool = False) -> Query:
    query = db.query(model).filter(model.user_id == user_id)
    if not with_deleted and hasattr(model, "deleted_at"):
        query = query.filter(model.deleted_at.is_(None))
    return query


def find_owned(db: Session, model, resource_id: int, acting_user_id: int, resource_type: str):
    """Load one live row by id and make sure the caller owns it.

    A missing or soft-deleted row is a 404; a row owned by someone else is a 403.
    """
    query = db.query(model).filter(model.id == resource_id)
    if hasattr(model, "deleted_at"):
        query = query.filter(model.deleted_at.is_(None))
    resource = query.first()
    if resource is None:
        raise ResourceNotFoundError(resource_type, resource_id)

    authorize(acting_user_id, resource, resource_type)
    return resource
