# backend/fintrack/api/transactions.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from backend.fintrack.db import get_db
from backend.fintrack.logging_config import get_logger
from backend.fintrack.models.category_model import Category
from backend.fintrack.models.transaction_model import Transaction
from backend.fintrack.models.user_model import User
from backend.fintrack.ownership import find_owned, owned_query
from backend.fintrack.schemas import TransactionCreate, TransactionOut, TransactionUpdate
from backend.fintrack.security import limit_by_user
from backend.fintrack.services.budget_service import to_money
from backend.fintrack.validation import (
    find_category_for_display,
    mutable_fields,
    require_any_field,
    resolve_category_for_write,
)

router = APIRouter()
logger = get_logger(__name__)


def serialize_transaction(transaction: Transaction, category: Optional[Category]) -> dict:
    # A soft-deleted category is still shown, flagged; a hard-deleted one is null
    # while category_id keeps the old reference.
    return {
        "id": transaction.id,
        "user_id": transaction.user_id,
        "category_id": transaction.category_id,
        "category": {
            "id": category.id,
            "name": category.name,
            "icon": category.icon,
            "is_deleted": category.is_deleted,
        } if category is not None else None,
        "amount": to_money(transaction.amount),
        "description": transaction.description,
        "date": transaction.date,
        "created_at": transaction.created_at,
        "updated_at": transaction.updated_at,
    }


def _present(db: Session, transaction: Transaction) -> dict:
    category = find_category_for_display(db, transaction.user_id, transaction.category_id)
    return serialize_transaction(transaction, category)


@router.get("", response_model=List[TransactionOut])
def list_transactions(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    user: User = Depends(limit_by_user),
    db: Session = Depends(get_db),
):
    transactions = (
        owned_query(db, Transaction, user.id)
        .order_by(Transaction.date.desc(), Transaction.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )

    category_ids = {t.category_id for t in transactions if t.category_id is not None}
    categories = {}
    if category_ids:
        rows = owned_query(db, Category, user.id, with_deleted=True).filter(Category.id.in_(category_ids))
        categories = {c.id: c for c in rows}

    return [serialize_transaction(t, categories.get(t.category_id)) for t in transactions]


@router.post("", response_model=TransactionOut, status_code=201)
def create_transaction(payload: TransactionCreate, user: User = Depends(limit_by_user), db: Session = Depends(get_db)):
    fields = mutable_fields("transaction", payload.provided())
    if fields.get("category_id") is not None:
        resolve_category_for_write(db, user.id, fields["category_id"])

    transaction = Transaction(user_id=user.id, **fields)
    db.add(transaction)
    db.commit()
    db.refresh(transaction)

    logger.info("transaction_created", transaction_id=transaction.id, user_id=user.id)
    return _present(db, transaction)


@router.get("/{transaction_id}", response_model=TransactionOut)
def show_transaction(transaction_id: int, user: User = Depends(limit_by_user), db: Session = Depends(get_db)):
    transaction = find_owned(db, Transaction, transaction_id, user.id, "Transaction")
    return _present(db, transaction)


@router.api_route("/{transaction_id}", methods=["PUT", "PATCH"], response_model=TransactionOut)
def update_transaction(
    transaction_id: int,
    payload: TransactionUpdate,
    user: User = Depends(limit_by_user),
    db: Session = Depends(get_db),
):
    transaction = find_owned(db, Transaction, transaction_id, user.id, "Transaction")
    changes = require_any_field("transaction", payload.provided())

    # Only a new reference has to be live; keeping the current (maybe deleted) one is fine
    new_category = changes.get("category_id")
    if new_category is not None and new_category != transaction.category_id:
        resolve_category_for_write(db, user.id, new_category)

    for key, value in changes.items():
        setattr(transaction, key, value)
    db.commit()
    db.refresh(transaction)
    return _present(db, transaction)


@router.delete("/{transaction_id}", status_code=204)
def delete_transaction(transaction_id: int, user: User = Depends(limit_by_user), db: Session = Depends(get_db)):
    transaction = find_owned(db, Transaction, transaction_id, user.id, "Transaction")
    transaction.soft_delete()
    db.commit()
    logger.info("transaction_deleted", transaction_id=transaction_id, user_id=user.id)
    return Response(status_code=204)
